import sqlite3

import pytest

from conftest import ALICE, BOB, CAROL, TOKEN, Chain

from quest_indexer.dispatcher import (
    APPLIED,
    SKIPPED,
    UNHANDLED,
    Dispatcher,
    is_processed,
    replay,
)
from quest_indexer.entities import User
from quest_indexer.events import make_event
from quest_indexer.handlers import HANDLERS
from quest_indexer.store import EntityStore


def _history(chain):
    return [
        chain.emit("UserProfile", "ProfileCreated", user=ALICE, username="alice"),
        chain.emit("QuestBoard", "QuestCreated", questId=3, creator=ALICE, title="t",
                   bountyAmount=500, bountyToken=TOKEN),
        chain.emit("RewardManager", "BountyEscrowed", questId=3, creator=ALICE, amount=500, token=TOKEN),
        chain.emit("QuestBoard", "ParticipantJoined", questId=3, participant=BOB),
        chain.emit("SubmissionManager", "SubmissionCreated", submissionId=7, questId=3, submitter=BOB),
        chain.emit("SubmissionManager", "SubmissionLiked", submissionId=7, user=CAROL),
        chain.emit("SubmissionManager", "SubmissionLiked", submissionId=8, user=CAROL),
        chain.emit("SubmissionManager", "SubmissionReviewed", submissionId=7, reviewer=ALICE,
                   score=90, approved=True),
        chain.emit("SubmissionManager", "WinnerSelected", questId=3, submissionId=7, winner=BOB),
        chain.emit("RewardManager", "RewardDistributed", rewardId=1, questId=3, recipient=BOB,
                   amount=450, token=TOKEN, rewardType=0),
        chain.emit("QuestBoard", "QuestCompleted", questId=3, winners=[BOB]),
        chain.emit("QuestBoard", "RoleGranted", role="0x" + "11" * 32, account=BOB, sender=ALICE),
    ]


def _fresh_store(tmp_path, name):
    s = EntityStore(str(tmp_path / name))
    s.init_db()
    return s


def test_is_processed():
    event = make_event("UserProfile", "ProfileUpdated", block_number=10, log_index=2)
    assert not is_processed(None, event)
    assert is_processed((10, 2), event)
    assert is_processed((10, None), event)
    assert is_processed((11, 0), event)
    assert not is_processed((10, 1), event)
    assert not is_processed((9, None), event)


def test_events_at_or_before_checkpoint_are_skipped(dispatcher, chain, model):
    event = chain.emit("UserProfile", "SkillAdded", user=ALICE, skill="Rust")
    assert dispatcher.dispatch(event) == APPLIED
    assert dispatcher.dispatch(event) == SKIPPED
    assert dispatcher.counts[SKIPPED] == 1
    assert model.user(ALICE).skills == ["Rust"]


def test_unhandled_event_advances_checkpoint(dispatcher, store):
    event = make_event("QuestBoard", "SomethingNew", {"x": 1}, block_number=5, log_index=1)
    assert dispatcher.dispatch(event) == UNHANDLED
    assert store.checkpoint() == (5, 1)
    assert [e.name for e in store.iter_events()] == ["SomethingNew"]


def test_out_of_order_delivery_is_rejected(dispatcher):
    later = make_event("UserProfile", "ProfileUpdated", {"user": ALICE}, block_number=9)
    earlier = make_event("UserProfile", "ProfileUpdated", {"user": ALICE}, block_number=8)
    with pytest.raises(ValueError):
        dispatcher.dispatch_all([later, earlier])


def test_store_failure_leaves_no_partial_state(dispatcher, store, chain, monkeypatch):
    dispatcher.dispatch(chain.emit("UserProfile", "ProfileCreated", user=ALICE, username="alice"))
    before = store.checkpoint()

    def failing(store, event):
        store.put(User(id=BOB))
        raise sqlite3.OperationalError("disk I/O error")

    monkeypatch.setitem(HANDLERS, ("UserProfile", "ProfileCreated"), failing)
    event = chain.emit("UserProfile", "ProfileCreated", user=BOB, username="bob")
    with pytest.raises(sqlite3.OperationalError):
        dispatcher.dispatch(event)

    assert store.get(User, BOB) is None
    assert store.checkpoint() == before
    assert [e.block_number for e in store.iter_events()] == [before[0]]


def test_complete_block_marks_whole_block(dispatcher, store):
    dispatcher.complete_block(20, 1234)
    assert store.checkpoint() == (20, None)
    assert dispatcher.dispatch(make_event("UserProfile", "ProfileUpdated", {"user": ALICE}, block_number=20, log_index=5)) == SKIPPED

    # Never moves the checkpoint backwards.
    dispatcher.complete_block(10)
    assert store.checkpoint() == (20, None)


def test_replay_is_deterministic(tmp_path, dispatcher, store, chain):
    dispatcher.dispatch_all(_history(chain))

    first = _fresh_store(tmp_path, "a.db")
    second = _fresh_store(tmp_path, "b.db")
    replay(store, first)
    replay(store, second)

    assert first.snapshot() == second.snapshot() == store.snapshot()
    assert first.dropped_events() == store.dropped_events()
    assert len(first.dropped_events()) == 1


def test_restart_matches_uninterrupted_run(tmp_path):
    events = _history(Chain())

    whole = _fresh_store(tmp_path, "whole.db")
    Dispatcher(whole).dispatch_all(events)

    path = str(tmp_path / "restarted.db")
    part = EntityStore(path)
    part.init_db()
    Dispatcher(part).dispatch_all(events[:6])
    part.close()

    resumed = EntityStore(path)
    resumed.init_db()
    # Overlapping redelivery from an earlier block is harmless.
    Dispatcher(resumed).dispatch_all(events[3:])

    assert resumed.snapshot() == whole.snapshot()
    assert resumed.checkpoint() == whole.checkpoint()


def test_replay_to_block(tmp_path, dispatcher, store, chain):
    events = _history(chain)
    dispatcher.dispatch_all(events)

    target = _fresh_store(tmp_path, "partial.db")
    replayed = replay(store, target, to_block=events[1].block_number)
    assert replayed.counts[APPLIED] == 2
    assert target.checkpoint() == (events[1].block_number, 0)
