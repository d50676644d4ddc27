"""
UTXO Indexer - Full Cycle E2E Test
====================================
Complete end-to-end test: genesis → spend → rollback → re-ingest
"""

import pytest
from fastapi.testclient import TestClient

from utxo_indexer.api.rest_api import create_app
from utxo_indexer.config import IndexerSettings
from utxo_indexer.services.indexer_service import IndexerService


@pytest.fixture
def config(temp_data_dir):
    """Create test configuration"""
    return IndexerSettings(
        data_dir=temp_data_dir / "e2e",
        log_dir=temp_data_dir / "logs",
        log_to_file=False,
        enable_audit_log=True,
        max_rollback_depth=10,
    )


@pytest.fixture
def service(config):
    """Create indexer from settings"""
    indexer = IndexerService.from_settings(config)
    yield indexer
    indexer.close()


class TestFullCycle:
    """
    Complete end-to-end test covering:
    1. Genesis mint
    2. Spends across several blocks
    3. Rollback of the tip
    4. Re-ingest of a different branch
    5. Reopen from disk
    """

    def test_complete_workflow(self, service, config, block_factory):
        """Test complete indexer workflow"""
        f = block_factory

        print("\n" + "=" * 60)
        print("UTXO INDEXER FULL CYCLE E2E TEST")
        print("=" * 60)

        # ================================================================
        # PHASE 1: GENESIS
        # ================================================================

        result = service.process_block(f.genesis(outputs=[("miner", 1000)], tx_id="coinbase"))
        assert result.success, result.error
        assert service.get_balance("miner") == 1000
        print(f"  ✅ Genesis applied, height {service.get_current_height()}")

        # ================================================================
        # PHASE 2: TRANSFERS
        # ================================================================

        blocks = [
            f.block(2, [f.tx("pay-alice", inputs=[("coinbase", 0)],
                             outputs=[("alice", 300), ("miner", 700)])]),
            f.block(3, [f.tx("pay-bob", inputs=[("pay-alice", 1)],
                             outputs=[("bob", 200), ("miner", 500)])]),
            f.block(4, [
                f.tx("alice-carol", inputs=[("pay-alice", 0)], outputs=[("carol", 300)]),
                f.tx("carol-dave", inputs=[("alice-carol", 0)], outputs=[("dave", 300)]),
            ]),
        ]
        for payload in blocks:
            result = service.process_block(payload)
            assert result.success, result.error

        assert service.get_current_height() == 4
        balances = {a: service.get_balance(a) for a in ("miner", "alice", "bob", "carol", "dave")}
        assert balances == {"miner": 500, "alice": 0, "bob": 200, "carol": 0, "dave": 300}
        assert sum(balances.values()) == 1000
        print(f"  💰 Balances after transfers: {balances}")

        # Double spend di un output già consumato
        rejected = service.process_block(
            f.block(5, [f.tx("again", inputs=[("coinbase", 0)], outputs=[("eve", 1000)])])
        )
        assert not rejected.success
        assert rejected.error == "Output already spent: coinbase:0"

        # ================================================================
        # PHASE 3: ROLLBACK
        # ================================================================

        result = service.rollback_to_height(2)
        assert result.success, result.error
        assert service.get_current_height() == 2
        assert service.get_balance("alice") == 300
        assert service.get_balance("miner") == 700
        assert service.get_balance("dave") == 0
        assert service.get_output("pay-alice", 1).spent is False
        print(f"  ↩️  Rolled back to height {service.get_current_height()}")

        # ================================================================
        # PHASE 4: RE-INGEST DIFFERENT BRANCH
        # ================================================================

        branch = f.block(3, [f.tx("alice-eve", inputs=[("pay-alice", 0)], outputs=[("eve", 300)])])
        assert service.process_block(branch).success
        assert service.get_balance("eve") == 300
        assert service.get_balance("bob") == 0
        assert service.get_current_height() == 3

        # ================================================================
        # PHASE 5: REOPEN FROM DISK
        # ================================================================

        service.close()
        reopened = IndexerService.from_settings(config)
        try:
            assert reopened.get_current_height() == 3
            assert reopened.get_balance("eve") == 300
            assert reopened.get_balance("miner") == 700
        finally:
            reopened.close()

        audit_lines = (config.log_dir / "audit.log").read_text(encoding="utf-8").splitlines()
        assert len(audit_lines) == 6

        print("\n" + "=" * 60)
        print("✅ FULL CYCLE COMPLETED")
        print("=" * 60)

    def test_workflow_over_http(self, service, scenario_chain):
        """Same cycle through the REST API"""
        with TestClient(create_app(service)) as client:
            for payload in scenario_chain:
                assert client.post("/blocks", json=payload).status_code == 201

            assert client.get("/").json()["current_height"] == 3
            assert client.get("/balance/addr4").json()["balance"] == 40

            response = client.post("/rollback", params={"height": 1})
            assert response.status_code == 200
            assert client.get("/balance/addr1").json()["balance"] == 100
            assert client.get("/balance/addr2").json()["balance"] == 0

            # Dopo il rollback la stessa chain si ri-applica
            for payload in scenario_chain[1:]:
                assert client.post("/blocks", json=payload).status_code == 201
            assert client.get("/balance/addr4").json()["balance"] == 40
