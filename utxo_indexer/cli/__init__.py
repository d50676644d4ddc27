"""
UTXO Indexer - CLI Package
============================
Operator command line interface.
"""
