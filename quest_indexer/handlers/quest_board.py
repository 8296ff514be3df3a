from typing import Dict

from quest_indexer.entities import Quest, QuestParticipant, QuestStatus
from quest_indexer.events import Event
from quest_indexer.handlers.registry import QUEST_BOARD, get_or_create_user, handles, require
from quest_indexer.ids import address_id, int_id, pair_id
from quest_indexer.stats import bump, set_fee, set_fee_recipient
from quest_indexer.store import EntityStore
from quest_indexer.utils import _log

STATUS_CODES: Dict[int, QuestStatus] = {
    0: QuestStatus.DRAFT,
    1: QuestStatus.ACTIVE,
    2: QuestStatus.PAUSED,
    3: QuestStatus.COMPLETED,
    4: QuestStatus.CANCELLED,
}


@handles(QUEST_BOARD, "QuestCreated")
def handle_quest_created(store: EntityStore, event: Event) -> None:
    creator = get_or_create_user(store, event.addr_arg("creator"))
    quest = Quest(
        id=int_id(event.arg("questId")),
        quest_id=event.int_arg("questId"),
        creator=creator.id,
        title=event.arg("title", ""),
        bounty_amount=event.int_arg("bountyAmount"),
        bounty_token=event.addr_arg("bountyToken"),
        status=QuestStatus.ACTIVE,
        created_at=event.block_timestamp,
        creation_tx_hash=event.transaction_hash,
    )
    if not store.create_if_absent(quest):
        return
    creator.total_quests_created += 1
    store.put(creator)
    bump(store, "total_quests")


@handles(QUEST_BOARD, "QuestUpdated")
def handle_quest_updated(store: EntityStore, event: Event) -> None:
    quest = require(store, Quest, int_id(event.arg("questId")))
    code = event.int_arg("status")
    status = STATUS_CODES.get(code)
    if status is None:
        _log(f"WARN: unknown quest status {code} for {quest.id}, ignored")
        return
    quest.status = status
    quest.updated_at = event.block_timestamp
    store.put(quest)


@handles(QUEST_BOARD, "QuestCompleted")
def handle_quest_completed(store: EntityStore, event: Event) -> None:
    quest = require(store, Quest, int_id(event.arg("questId")))
    for winner in event.arg("winners") or []:
        winner_id = address_id(winner)
        if winner_id not in quest.winners:
            quest.winners.append(winner_id)
    quest.status = QuestStatus.COMPLETED
    quest.completed_at = event.block_timestamp
    quest.updated_at = event.block_timestamp
    store.put(quest)


@handles(QUEST_BOARD, "QuestCancelled")
def handle_quest_cancelled(store: EntityStore, event: Event) -> None:
    quest = require(store, Quest, int_id(event.arg("questId")))
    quest.status = QuestStatus.CANCELLED
    quest.cancel_reason = event.arg("reason")
    quest.cancelled_at = event.block_timestamp
    quest.updated_at = event.block_timestamp
    store.put(quest)


@handles(QUEST_BOARD, "ParticipantJoined")
def handle_participant_joined(store: EntityStore, event: Event) -> None:
    quest = require(store, Quest, int_id(event.arg("questId")))
    user = get_or_create_user(store, event.addr_arg("participant"))
    key = pair_id(quest.id, user.id)
    participant = store.get(QuestParticipant, key)
    if participant is None:
        participant = QuestParticipant(id=key, quest=quest.id, participant=user.id)
    if participant.is_active:
        return
    participant.is_active = True
    participant.joined_at = event.block_timestamp
    participant.left_at = None
    store.put(participant)
    quest.participant_count += 1
    store.put(quest)


@handles(QUEST_BOARD, "ParticipantLeft")
def handle_participant_left(store: EntityStore, event: Event) -> None:
    quest = require(store, Quest, int_id(event.arg("questId")))
    participant = store.get(QuestParticipant, pair_id(quest.id, event.addr_arg("participant")))
    if participant is None or not participant.is_active:
        return
    participant.is_active = False
    participant.left_at = event.block_timestamp
    store.put(participant)
    quest.participant_count = max(0, quest.participant_count - 1)
    store.put(quest)


@handles(QUEST_BOARD, "PlatformFeeUpdated")
def handle_platform_fee_updated(store: EntityStore, event: Event) -> None:
    set_fee(store, event.int_arg("newFeePercentage"))


@handles(QUEST_BOARD, "PlatformFeeRecipientUpdated")
def handle_platform_fee_recipient_updated(store: EntityStore, event: Event) -> None:
    set_fee_recipient(store, event.addr_arg("newRecipient"))
