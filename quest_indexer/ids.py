"""Deterministic storage keys.

Re-delivery of the same event always resolves to the same keys, so the
store itself deduplicates likes, achievements, participants and team
members. Audit facts are keyed by their ledger position instead of their
payload, so two identical payloads emitted twice stay two facts.
"""

from typing import Any

from quest_indexer.utils import _hex, _parse_int

PLATFORM_STATS_ID = "PLATFORM_STATS"


def address_id(address: Any) -> str:
    return _hex(address)


def int_id(value: Any) -> str:
    """Fixed-width (uint256) hex encoding of an integer id."""
    number = _parse_int(value)
    if number < 0:
        raise ValueError(f"negative id: {number}")
    return "0x" + format(number, "064x")


def event_id(transaction_hash: Any, log_index: Any) -> str:
    return f"{_hex(transaction_hash)}-{_parse_int(log_index)}"


def pair_id(parent: str, actor: Any) -> str:
    return f"{parent}-{address_id(actor)}"


def timed_pair_id(parent: str, actor: Any, timestamp: Any) -> str:
    return f"{pair_id(parent, actor)}-{_parse_int(timestamp)}"


def achievement_id(user: Any, achievement: Any) -> str:
    return f"{address_id(user)}-{int_id(achievement)}"
