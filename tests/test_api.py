"""
UTXO Indexer - REST API Tests
===============================
Tests for the FastAPI application (TestClient / httpx).
"""

import httpx
import pytest
from fastapi.testclient import TestClient

from utxo_indexer.api.rest_api import create_app
from utxo_indexer.version import __version__


@pytest.fixture
def client(indexer):
    """TestClient sull'indexer di test"""
    with TestClient(create_app(indexer)) as test_client:
        yield test_client


@pytest.fixture
def funded_client(client, block_factory):
    response = client.post("/blocks", json=block_factory.genesis(outputs=[("addr1", 100)]))
    assert response.status_code == 201
    return client


class TestHealth:
    """Test GET /"""

    def test_health(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json() == {
            "status": "healthy",
            "message": "UTXO indexer API",
            "version": __version__,
            "current_height": 0,
        }

    def test_request_id_header(self, client):
        response = client.get("/", headers={"X-Request-ID": "req-42"})
        assert response.headers["X-Request-ID"] == "req-42"
        assert "X-Process-Time" in response.headers

    def test_uninitialized_app_returns_503(self):
        with TestClient(create_app()) as bare_client:
            assert bare_client.get("/").status_code == 503


class TestPostBlocks:
    """Test POST /blocks"""

    def test_block_accepted(self, client, block_factory):
        response = client.post("/blocks", json=block_factory.genesis())

        assert response.status_code == 201
        assert response.json() == {"success": True, "message": "Block processed successfully"}

    def test_validation_failure(self, funded_client, block_factory):
        f = block_factory
        response = funded_client.post(
            "/blocks",
            json=f.block(2, [f.tx("tx2", inputs=[("tx1", 0)], outputs=[("addr2", 90)])])
        )

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Block validation failed"
        assert body["message"] == "Input sum (100) does not equal output sum (90)"
        assert body["code"] == "SUM_MISMATCH"

    def test_schema_failure(self, client):
        response = client.post("/blocks", json={"id": "x", "height": "1", "transactions": []})

        assert response.status_code == 400
        assert response.json()["message"] == "Block height must be a positive integer"

    def test_invalid_json(self, client):
        response = client.post(
            "/blocks",
            content=b"{not json",
            headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_JSON"

    def test_persistence_failure_is_500(self, client, indexer, block_factory, monkeypatch):
        from utxo_indexer.errors import PersistenceError

        def failing_apply(block):
            raise PersistenceError("Failed to apply block: disk full")

        monkeypatch.setattr(indexer.database, "apply_block", failing_apply)

        response = client.post("/blocks", json=block_factory.genesis())

        assert response.status_code == 500
        assert response.json()["error"] == "Internal server error"


class TestBalance:
    """Test GET /balance/{address}"""

    def test_balance(self, funded_client):
        response = funded_client.get("/balance/addr1")

        assert response.status_code == 200
        assert response.json() == {"address": "addr1", "balance": 100}

    def test_unknown_address_is_zero(self, client):
        assert client.get("/balance/nobody").json()["balance"] == 0


class TestRollback:
    """Test POST /rollback"""

    def test_rollback(self, funded_client):
        response = funded_client.post("/rollback", params={"height": 0})

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "message": "Successfully rolled back to height 0",
        }
        assert funded_client.get("/balance/addr1").json()["balance"] == 0

    def test_missing_height(self, client):
        response = client.post("/rollback")

        assert response.status_code == 400
        assert response.json()["error"] == "Missing height parameter"

    def test_non_numeric_height(self, client):
        response = client.post("/rollback", params={"height": "abc"})

        assert response.status_code == 400
        assert response.json()["message"] == "Height must be a valid number"

    def test_negative_height(self, funded_client):
        response = funded_client.post("/rollback", params={"height": -1})

        assert response.status_code == 400
        assert response.json()["message"] == "Height must be a non-negative integer"

    def test_future_height(self, funded_client):
        response = funded_client.post("/rollback", params={"height": 9})

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Rollback failed"
        assert body["message"] == "Cannot rollback to height 9, current height is 1"


class TestLedgerQueries:
    """Test block, output and UTXO endpoints"""

    def test_get_block(self, funded_client, block_factory):
        response = funded_client.get("/blocks/1")

        assert response.status_code == 200
        assert response.json() == block_factory.genesis(outputs=[("addr1", 100)])

    def test_missing_block(self, client):
        assert client.get("/blocks/5").status_code == 404

    def test_get_output(self, funded_client):
        response = funded_client.get("/outputs/tx1/0")

        assert response.status_code == 200
        body = response.json()
        assert body["txId"] == "tx1"
        assert body["spent"] is False
        assert body["producedAtHeight"] == 1

    def test_missing_output(self, funded_client):
        assert funded_client.get("/outputs/tx1/3").status_code == 404

    def test_output_index_beyond_sqlite_integer(self, funded_client):
        response = funded_client.get(f"/outputs/tx1/{2 ** 63}")

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_OUTPUT_INDEX"

    def test_oversized_value_rejected_as_client_error(self, client, block_factory):
        response = client.post("/blocks", json=block_factory.genesis(outputs=[("big", 2 ** 63)]))

        assert response.status_code == 400
        assert response.json()["error"] == "Block validation failed"

    def test_address_utxos(self, funded_client):
        response = funded_client.get("/address/addr1/utxos")

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 100
        assert [u["index"] for u in body["utxos"]] == [0]


class TestAsyncClient:
    """Test app through httpx.AsyncClient"""

    @pytest.mark.asyncio
    async def test_ingest_and_query(self, indexer, block_factory):
        transport = httpx.ASGITransport(app=create_app(indexer))

        async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
            response = await ac.post("/blocks", json=block_factory.genesis())
            assert response.status_code == 201

            response = await ac.get("/balance/addr1")
            assert response.json()["balance"] == 100
