"""
UTXO Indexer - CLI Tests
==========================
Tests for the typer command line interface.
"""

import json

import pytest
from typer.testing import CliRunner

from utxo_indexer.cli.main import app


runner = CliRunner()


@pytest.fixture
def cli_env(temp_data_dir):
    """Environment isolato: niente file di log/audit fuori dalla temp dir"""
    return {
        "UTXOINDEXER_LOG_TO_FILE": "false",
        "UTXOINDEXER_ENABLE_AUDIT_LOG": "false",
        "UTXOINDEXER_LOG_DIR": str(temp_data_dir / "logs"),
    }


@pytest.fixture
def invoke(temp_data_dir, cli_env):
    data_dir = temp_data_dir / "data"

    def _invoke(*args, input=None):
        return runner.invoke(
            app,
            ["--data-dir", str(data_dir), *args],
            env=cli_env,
            input=input
        )

    return _invoke


@pytest.fixture
def chain_file(temp_data_dir, scenario_chain):
    path = temp_data_dir / "chain.json"
    path.write_text(json.dumps(scenario_chain), encoding="utf-8")
    return path


class TestIngest:
    """Test ingest command"""

    def test_ingest_list(self, invoke, chain_file):
        result = invoke("ingest", str(chain_file))

        assert result.exit_code == 0, result.output
        assert "Applied 3 block(s)" in result.output

        height = invoke("height")
        assert height.output.strip() == "3"

    def test_ingest_single_block(self, invoke, temp_data_dir, block_factory):
        path = temp_data_dir / "genesis.json"
        path.write_text(json.dumps(block_factory.genesis()), encoding="utf-8")

        result = invoke("ingest", str(path))

        assert result.exit_code == 0, result.output
        assert "addr1: 100" in invoke("balance", "addr1").output

    def test_ingest_stops_at_first_rejection(self, invoke, temp_data_dir, scenario_chain):
        path = temp_data_dir / "gap.json"
        path.write_text(json.dumps([scenario_chain[0], scenario_chain[2]]), encoding="utf-8")

        result = invoke("ingest", str(path))

        assert result.exit_code == 1
        assert "HEIGHT_MISMATCH" in result.output
        assert invoke("height").output.strip() == "1"

    def test_ingest_invalid_json(self, invoke, temp_data_dir):
        path = temp_data_dir / "broken.json"
        path.write_text("{oops", encoding="utf-8")

        assert invoke("ingest", str(path)).exit_code == 1


class TestQueries:
    """Test query commands"""

    def test_balance_and_utxos(self, invoke, chain_file):
        invoke("ingest", str(chain_file))

        assert "addr2: 60" in invoke("balance", "addr2").output

        utxos = invoke("utxos", "addr4")
        assert utxos.exit_code == 0
        assert "tx3:0" in utxos.output

    def test_utxos_empty(self, invoke):
        assert "No unspent outputs" in invoke("utxos", "nobody").output

    def test_block(self, invoke, chain_file):
        invoke("ingest", str(chain_file))

        result = invoke("block", "2")

        assert result.exit_code == 0
        assert "tx2" in result.output

    def test_missing_block(self, invoke):
        result = invoke("block", "4")
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_status(self, invoke, chain_file):
        invoke("ingest", str(chain_file))

        result = invoke("status")

        assert result.exit_code == 0
        assert "Unspent Value" in result.output


class TestRollback:
    """Test rollback command"""

    def test_rollback_with_yes(self, invoke, chain_file):
        invoke("ingest", str(chain_file))

        result = invoke("rollback", "2", "--yes")

        assert result.exit_code == 0, result.output
        assert "Successfully rolled back to height 2" in result.output
        assert "addr3: 40" in invoke("balance", "addr3").output

    def test_rollback_confirmation_declined(self, invoke, chain_file):
        invoke("ingest", str(chain_file))

        result = invoke("rollback", "0", input="n\n")

        assert result.exit_code != 0
        assert invoke("height").output.strip() == "3"

    def test_rollback_future_height(self, invoke):
        result = invoke("rollback", "5", "--yes")

        assert result.exit_code == 1
        assert "Cannot rollback to height 5" in result.output


class TestMisc:
    """Test version and configuration errors"""

    def test_version(self, invoke):
        result = invoke("version")
        assert result.exit_code == 0
        assert "utxo-indexer 1.0.0" in result.output

    def test_invalid_log_level(self, invoke):
        result = invoke("--log-level", "LOUD", "height")
        assert result.exit_code == 2

    def test_db_path_directory_rejected(self, invoke, temp_data_dir):
        result = invoke("--db-path", str(temp_data_dir), "height")
        assert result.exit_code == 1
        assert "Cannot open ledger" in result.output
