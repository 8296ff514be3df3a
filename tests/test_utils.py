import json

from hexbytes import HexBytes
from web3 import Web3

from quest_indexer.utils import _hex, _json_dumps, _normalize_log, _parse_int


def test_parse_int_accepts_quantities_and_decimals():
    assert _parse_int("0x1F") == 31
    assert _parse_int("0X10") == 16
    assert _parse_int("42") == 42
    assert _parse_int(7) == 7
    assert _parse_int(True) == 1


def test_json_dumps_stores_bytes_as_lower_hex():
    payload = {"role": HexBytes("0xABCD"), "raw": b"\x01\x02", "tags": {"b", "a"}}
    assert json.loads(_json_dumps(payload)) == {"role": "0xabcd", "raw": "0x0102", "tags": ["a", "b"]}


def test_hex_normalizes_strings_and_bytes():
    assert _hex("0xAB") == "0xab"
    assert _hex("ab") == "0xab"
    assert _hex(HexBytes("0xab")) == "0xab"


def test_normalize_log_coerces_rpc_fields():
    raw = {
        "address": "0x" + "1" * 40,
        "topics": ["0x" + "aa" * 32],
        "data": "0x",
        "blockNumber": "0x10",
        "blockHash": "0x" + "bb" * 32,
        "transactionHash": "0x" + "cc" * 32,
        "transactionIndex": "0x2",
        "logIndex": "0x3",
    }
    log = _normalize_log(raw)
    assert log["address"] == Web3.to_checksum_address(raw["address"])
    assert log["topics"] == [HexBytes("0x" + "aa" * 32)]
    assert isinstance(log["transactionHash"], HexBytes)
    assert isinstance(log["blockHash"], HexBytes)
    assert (log["blockNumber"], log["transactionIndex"], log["logIndex"]) == (16, 2, 3)
    # The input is left untouched.
    assert raw["blockNumber"] == "0x10"


def test_normalize_log_without_topics():
    assert _normalize_log({"blockNumber": 5})["topics"] == []
