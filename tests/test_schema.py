"""
UTXO Indexer - Schema Guard Tests
===================================
Unit tests for the structural block gate.
"""

import pytest

from utxo_indexer.domain.models import Block
from utxo_indexer.domain.schema import parse_block, validate_block_schema
from utxo_indexer.errors import SchemaError


def _reason(payload) -> str:
    with pytest.raises(SchemaError) as exc_info:
        parse_block(payload)
    return exc_info.value.message


class TestBlockShape:
    """Test block-level checks"""

    def test_valid_block_parses(self, block_factory):
        block = parse_block(block_factory.genesis())
        assert isinstance(block, Block)
        assert block.height == 1
        assert block.transactions[0].outputs[0].value == 100

    @pytest.mark.parametrize("payload", [None, "block", 42, ["id"]])
    def test_non_object_rejected(self, payload):
        assert _reason(payload) == "Block must be an object"

    @pytest.mark.parametrize("block_id", [None, "", 123])
    def test_bad_block_id(self, block_id):
        payload = {"id": block_id, "height": 1, "transactions": []}
        assert _reason(payload) == "Block ID must be a non-empty string"

    @pytest.mark.parametrize("height", [0, -1, 1.5, "1", True, None, 2 ** 63])
    def test_bad_height(self, height):
        payload = {"id": "x", "height": height, "transactions": []}
        assert _reason(payload) == "Block height must be a positive integer"

    def test_transactions_must_be_list(self):
        payload = {"id": "x", "height": 1, "transactions": {"id": "tx1"}}
        assert _reason(payload) == "Block transactions must be an array"

    def test_empty_transaction_list_is_structurally_valid(self):
        assert validate_block_schema({"id": "x", "height": 1, "transactions": []}).is_valid


class TestTransactionShape:
    """Test transaction, input and output checks"""

    def test_transaction_must_be_object(self):
        payload = {"id": "x", "height": 1, "transactions": ["tx1"]}
        assert _reason(payload) == "Transaction 0: Transaction must be an object"

    def test_transaction_id_required(self, block_factory):
        tx = block_factory.tx("", outputs=[("addr1", 1)])
        assert _reason(block_factory.block(1, [tx], block_id="x")) == (
            "Transaction 0: Transaction ID must be a non-empty string"
        )

    def test_inputs_must_be_list(self):
        payload = {"id": "x", "height": 1, "transactions": [{"id": "tx1", "inputs": None, "outputs": []}]}
        assert _reason(payload) == "Transaction 0: Transaction inputs must be an array"

    def test_outputs_must_be_list(self):
        payload = {"id": "x", "height": 1, "transactions": [{"id": "tx1", "inputs": []}]}
        assert _reason(payload) == "Transaction 0: Transaction outputs must be an array"

    def test_reason_names_transaction_index(self, block_factory):
        good = block_factory.tx("tx1", outputs=[("addr1", 1)])
        bad = block_factory.tx("tx2", outputs=[("addr2", -5)])
        payload = block_factory.block(1, [good, bad])

        assert _reason(payload) == "Transaction 1: Output 0 value must be a non-negative number"

    @pytest.mark.parametrize("inp, reason", [
        ("tx1:0", "Input 0 must be an object"),
        ({"txId": "", "index": 0}, "Input 0 txId must be a non-empty string"),
        ({"index": 0}, "Input 0 txId must be a non-empty string"),
        ({"txId": "tx1", "index": -1}, "Input 0 index must be a non-negative integer"),
        ({"txId": "tx1", "index": 0.5}, "Input 0 index must be a non-negative integer"),
        ({"txId": "tx1"}, "Input 0 index must be a non-negative integer"),
        ({"txId": "tx1", "index": 2 ** 63}, "Input 0 index must be a non-negative integer"),
    ])
    def test_bad_inputs(self, inp, reason):
        payload = {
            "id": "x",
            "height": 2,
            "transactions": [{"id": "tx2", "inputs": [inp], "outputs": []}],
        }
        assert _reason(payload) == f"Transaction 0: {reason}"

    @pytest.mark.parametrize("output, reason", [
        (["addr1", 1], "Output 0 must be an object"),
        ({"address": "", "value": 1}, "Output 0 address must be a non-empty string"),
        ({"value": 1}, "Output 0 address must be a non-empty string"),
        ({"address": "addr1", "value": -1}, "Output 0 value must be a non-negative number"),
        ({"address": "addr1", "value": "10"}, "Output 0 value must be a non-negative number"),
        ({"address": "addr1", "value": 1.5}, "Output 0 value must be a non-negative number"),
        ({"address": "addr1", "value": False}, "Output 0 value must be a non-negative number"),
        ({"address": "addr1", "value": 2 ** 63}, "Output 0 value must be a non-negative number"),
    ])
    def test_bad_outputs(self, output, reason):
        payload = {
            "id": "x",
            "height": 1,
            "transactions": [{"id": "tx1", "inputs": [], "outputs": [output]}],
        }
        assert _reason(payload) == f"Transaction 0: {reason}"


class TestTaggedResult:
    """Test validate_block_schema tagged form"""

    def test_invalid_result_carries_reason(self):
        result = validate_block_schema({"height": 1})
        assert not result.is_valid
        assert result.error == "Block ID must be a non-empty string"
        assert result.code == "INVALID_BLOCK_ID"

    def test_zero_value_and_large_values_accepted(self, block_factory):
        payload = block_factory.genesis(outputs=[("addr1", 0), ("addr2", 2 ** 53 - 1)])
        assert validate_block_schema(payload).is_valid

    def test_int64_boundary_accepted(self, block_factory):
        payload = block_factory.genesis(outputs=[("addr1", 2 ** 63 - 1)])
        assert validate_block_schema(payload).is_valid
