from typing import Dict, Optional

from quest_indexer.entities import EscrowEvent, EscrowKind, Quest, Reward, RewardType
from quest_indexer.events import Event
from quest_indexer.handlers.registry import REWARD_MANAGER, get_or_create_user, handles, require
from quest_indexer.ids import event_id, int_id
from quest_indexer.stats import adjust_value_locked, bump
from quest_indexer.store import EntityStore
from quest_indexer.utils import _log

REWARD_TYPE_CODES: Dict[int, RewardType] = {
    0: RewardType.WINNER_REWARD,
    1: RewardType.PARTICIPATION_REWARD,
    2: RewardType.BONUS_REWARD,
    3: RewardType.PLATFORM_FEE,
}


@handles(REWARD_MANAGER, "RewardDistributed")
def handle_reward_distributed(store: EntityStore, event: Event) -> None:
    quest = require(store, Quest, int_id(event.arg("questId")))
    recipient = get_or_create_user(store, event.addr_arg("recipient"))

    code = event.int_arg("rewardType")
    reward_type = REWARD_TYPE_CODES.get(code)
    if reward_type is None:
        _log(f"WARN: unknown reward type {code}, recording as {RewardType.WINNER_REWARD.value}")
        reward_type = RewardType.WINNER_REWARD

    amount = event.int_arg("amount")
    reward = Reward(
        id=int_id(event.arg("rewardId")),
        reward_id=event.int_arg("rewardId"),
        quest=quest.id,
        recipient=recipient.id,
        amount=amount,
        token=event.addr_arg("token"),
        reward_type=reward_type,
        distributed_at=event.block_timestamp,
        tx_hash=event.transaction_hash,
        block_number=event.block_number,
    )
    if not store.create_if_absent(reward):
        return

    if reward_type is not RewardType.PLATFORM_FEE:
        recipient.total_rewards_earned += amount
        store.put(recipient)
    bump(store, "total_rewards_distributed", amount)


def _record_escrow(
    store: EntityStore,
    event: Event,
    kind: EscrowKind,
    account: str,
    delta: int,
    quest: Optional[str] = None,
    token: Optional[str] = None,
) -> None:
    fact = EscrowEvent(
        id=event_id(event.transaction_hash, event.log_index),
        kind=kind,
        quest=quest,
        account=account,
        amount=abs(delta),
        token=token,
        block_number=event.block_number,
        block_timestamp=event.block_timestamp,
        transaction_hash=event.transaction_hash,
    )
    if store.create_if_absent(fact):
        adjust_value_locked(store, delta)


@handles(REWARD_MANAGER, "BountyEscrowed")
def handle_bounty_escrowed(store: EntityStore, event: Event) -> None:
    creator = get_or_create_user(store, event.addr_arg("creator"))
    token = event.addr_arg("token") if event.arg("token") is not None else None
    _record_escrow(
        store,
        event,
        EscrowKind.ESCROWED,
        creator.id,
        event.int_arg("amount"),
        quest=int_id(event.arg("questId")),
        token=token,
    )


@handles(REWARD_MANAGER, "BountyRefunded")
def handle_bounty_refunded(store: EntityStore, event: Event) -> None:
    creator = get_or_create_user(store, event.addr_arg("creator"))
    _record_escrow(
        store,
        event,
        EscrowKind.REFUNDED,
        creator.id,
        -event.int_arg("amount"),
        quest=int_id(event.arg("questId")),
    )


@handles(REWARD_MANAGER, "EmergencyWithdraw")
def handle_emergency_withdraw(store: EntityStore, event: Event) -> None:
    recipient = get_or_create_user(store, event.addr_arg("recipient"))
    token = event.addr_arg("token") if event.arg("token") is not None else None
    _record_escrow(
        store,
        event,
        EscrowKind.EMERGENCY_WITHDRAW,
        recipient.id,
        -event.int_arg("amount"),
        token=token,
    )


@handles(REWARD_MANAGER, "PaymentSplitUpdated")
def handle_payment_split_updated(store: EntityStore, event: Event) -> None:
    quest = store.get(Quest, int_id(event.arg("questId")))
    if quest is None:
        return
    quest.updated_at = event.block_timestamp
    store.put(quest)
