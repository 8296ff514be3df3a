"""Platform-wide aggregate counters.

The tracker is a single ``PlatformStats`` record. Handlers read-modify-write
it inside their own transaction; nothing here commits on its own.
"""

from quest_indexer.entities import PlatformStats
from quest_indexer.ids import PLATFORM_STATS_ID, address_id
from quest_indexer.store import EntityStore

COUNTERS = (
    "total_users",
    "total_quests",
    "total_submissions",
    "total_rewards_distributed",
)


def get_or_create_stats(store: EntityStore) -> PlatformStats:
    stats, _created = store.get_or_create(PlatformStats, PLATFORM_STATS_ID, PlatformStats.empty)
    return stats


def save_stats(store: EntityStore, stats: PlatformStats) -> None:
    store.put(stats)


def bump(store: EntityStore, counter: str, amount: int = 1) -> PlatformStats:
    if counter not in COUNTERS:
        raise ValueError(f"unknown platform counter: {counter}")
    if amount < 0:
        raise ValueError(f"{counter} only increases, got {amount}")
    stats = get_or_create_stats(store)
    setattr(stats, counter, getattr(stats, counter) + amount)
    save_stats(store, stats)
    return stats


def adjust_value_locked(store: EntityStore, delta: int) -> PlatformStats:
    stats = get_or_create_stats(store)
    stats.total_value_locked = max(0, stats.total_value_locked + delta)
    save_stats(store, stats)
    return stats


def set_fee(store: EntityStore, fee_percentage: int) -> PlatformStats:
    stats = get_or_create_stats(store)
    stats.platform_fee_percentage = fee_percentage
    save_stats(store, stats)
    return stats


def set_fee_recipient(store: EntityStore, recipient: str) -> PlatformStats:
    stats = get_or_create_stats(store)
    stats.platform_fee_recipient = address_id(recipient)
    save_stats(store, stats)
    return stats
