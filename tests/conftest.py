"""
UTXO Indexer - Pytest Configuration
=====================================
Fixtures e configurazione per testing.

Last Updated: 2026-10-18
Version: 1.0.0
"""

import pytest
from pathlib import Path
import tempfile
import shutil

# Internal imports
from utxo_indexer.config import IndexerSettings
from utxo_indexer.domain.validation import BlockValidator
from utxo_indexer.services.indexer_service import IndexerService
from utxo_indexer.storage.db import LedgerDatabase
from utxo_indexer.utils.hashing import compute_block_id


# ============================================================================
# CONFIGURATION FIXTURES
# ============================================================================

@pytest.fixture
def temp_data_dir():
    """Temporary data directory"""
    temp_dir = Path(tempfile.mkdtemp())
    yield temp_dir
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def test_config(temp_data_dir):
    """Test configuration"""
    return IndexerSettings(
        data_dir=temp_data_dir / "data",
        log_dir=temp_data_dir / "logs",
        log_to_file=False,
        enable_audit_log=False,
    )


# ============================================================================
# DATABASE FIXTURES
# ============================================================================

@pytest.fixture
def test_database(test_config):
    """Test database"""
    db = LedgerDatabase(test_config.db_path, test_config)
    yield db
    db.close()


@pytest.fixture
def validator(test_database):
    """Block validator sul database di test"""
    return BlockValidator(test_database)


# ============================================================================
# INDEXER FIXTURES
# ============================================================================

@pytest.fixture
def indexer(test_config, test_database):
    """Indexer service per test"""
    return IndexerService(test_database, test_config)


@pytest.fixture
def funded_indexer(indexer, block_factory):
    """Indexer con blocco genesis: addr1 = 100"""
    result = indexer.process_block(
        block_factory.genesis(outputs=[("addr1", 100)])
    )
    assert result.success, result.error
    return indexer


# ============================================================================
# BLOCK FACTORY
# ============================================================================

class BlockFactory:
    """
    Costruisce payload wire (dict) di blocchi e transazioni.

    Gli ID blocco sono calcolati, salvo override esplicito.
    """

    @staticmethod
    def tx(tx_id, inputs=(), outputs=()):
        """inputs: [(tx_id, index)], outputs: [(address, value)]"""
        return {
            "id": tx_id,
            "inputs": [{"txId": ref, "index": idx} for ref, idx in inputs],
            "outputs": [{"address": addr, "value": value} for addr, value in outputs],
        }

    @staticmethod
    def block(height, transactions, block_id=None):
        transactions = list(transactions)
        return {
            "id": block_id or compute_block_id(height, [tx["id"] for tx in transactions]),
            "height": height,
            "transactions": transactions,
        }

    def genesis(self, outputs=(("addr1", 100),), tx_id="tx1"):
        return self.block(1, [self.tx(tx_id, outputs=outputs)])


@pytest.fixture
def block_factory():
    """Factory per payload di blocchi"""
    return BlockFactory()


# ============================================================================
# HELPER FIXTURES
# ============================================================================

@pytest.fixture
def scenario_chain(block_factory):
    """
    Chain di riferimento (3 blocchi):
    1. tx1: addr1 = 100 (genesis)
    2. tx2: tx1:0 → addr2 = 60, addr3 = 40
    3. tx3: tx2:1 → addr4 = 40
    """
    f = block_factory
    return [
        f.genesis(outputs=[("addr1", 100)]),
        f.block(2, [f.tx("tx2", inputs=[("tx1", 0)], outputs=[("addr2", 60), ("addr3", 40)])]),
        f.block(3, [f.tx("tx3", inputs=[("tx2", 1)], outputs=[("addr4", 40)])]),
    ]
