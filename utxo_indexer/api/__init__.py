"""
UTXO Indexer - API Package
============================
REST API for ledger interaction.
"""

from utxo_indexer.api.rest_api import create_app, create_app_from_settings

__all__ = [
    "create_app",
    "create_app_from_settings",
]
