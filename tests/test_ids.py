import pytest
from hexbytes import HexBytes

from quest_indexer.ids import (
    achievement_id,
    address_id,
    event_id,
    int_id,
    pair_id,
    timed_pair_id,
)


def test_address_id_is_lowercase_hex():
    assert address_id("0xAbCdEf0000000000000000000000000000000001") == (
        "0xabcdef0000000000000000000000000000000001"
    )


def test_int_id_is_fixed_width():
    assert int_id(7) == "0x" + "0" * 63 + "7"
    assert len(int_id(2**256 - 1)) == 66
    assert int_id("0x07") == int_id(7)


def test_int_id_rejects_negative():
    with pytest.raises(ValueError):
        int_id(-1)


def test_event_id_accepts_bytes_and_strings():
    tx = "0x" + "12" * 32
    assert event_id(HexBytes(tx), 4) == event_id(tx, "4") == f"{tx}-4"


def test_relationship_ids_are_deterministic():
    sub = int_id(7)
    assert pair_id(sub, "0xB" + "b" * 39) == pair_id(sub, "0xb" + "b" * 39)
    assert timed_pair_id(sub, "0x" + "b" * 40, 10) != timed_pair_id(sub, "0x" + "b" * 40, 11)
    assert achievement_id("0x" + "a" * 40, 1) != achievement_id("0x" + "a" * 40, 2)
