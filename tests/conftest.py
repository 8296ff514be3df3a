"""Shared fixtures: a fresh sqlite store per test and an event builder."""

import pytest

from quest_indexer.dispatcher import Dispatcher
from quest_indexer.events import Event, make_event
from quest_indexer.query import ReadModel
from quest_indexer.store import EntityStore

ALICE = "0x" + "a" * 40
BOB = "0x" + "b" * 40
CAROL = "0x" + "c" * 40
DAVE = "0x" + "d" * 40
TOKEN = "0x" + "e" * 40

GENESIS_TS = 1_700_000_000


class Chain:
    """Emits events at strictly increasing ledger positions, one block each."""

    def __init__(self, start_block: int = 100):
        self.block = start_block - 1

    def emit(self, contract: str, name: str, /, **args) -> Event:
        self.block += 1
        return make_event(
            contract,
            name,
            args,
            block_number=self.block,
            block_timestamp=GENESIS_TS + self.block * 12,
            transaction_hash="0x" + format(self.block, "064x"),
            transaction_index=0,
            log_index=0,
        )


@pytest.fixture
def store(tmp_path):
    s = EntityStore(str(tmp_path / "projection.db"))
    s.init_db()
    yield s
    s.close()


@pytest.fixture
def dispatcher(store):
    return Dispatcher(store)


@pytest.fixture
def model(store):
    return ReadModel(store)


@pytest.fixture
def chain():
    return Chain()


@pytest.fixture
def quest_3(dispatcher, chain):
    """Quest 3 created by Alice."""
    dispatcher.dispatch(
        chain.emit(
            "QuestBoard",
            "QuestCreated",
            questId=3,
            creator=ALICE,
            title="Build an indexer",
            bountyAmount=10**18,
            bountyToken=TOKEN,
        )
    )
    return 3


@pytest.fixture
def submission_7(dispatcher, chain, quest_3):
    """Submission 7 by Bob under quest 3."""
    dispatcher.dispatch(
        chain.emit(
            "SubmissionManager",
            "SubmissionCreated",
            submissionId=7,
            questId=quest_3,
            submitter=BOB,
            isTeamSubmission=False,
        )
    )
    return 7
