from typing import Callable, Dict, Optional, Tuple, Type, TypeVar

from quest_indexer.entities import Record, User
from quest_indexer.errors import MissingParent
from quest_indexer.events import Event
from quest_indexer.ids import address_id
from quest_indexer.stats import bump
from quest_indexer.store import EntityStore

USER_PROFILE = "UserProfile"
QUEST_BOARD = "QuestBoard"
SUBMISSION_MANAGER = "SubmissionManager"
REWARD_MANAGER = "RewardManager"
COLLABORATION_MANAGER = "CollaborationManager"

CONTRACTS = (
    USER_PROFILE,
    QUEST_BOARD,
    SUBMISSION_MANAGER,
    REWARD_MANAGER,
    COLLABORATION_MANAGER,
)

Handler = Callable[[EntityStore, Event], None]
R = TypeVar("R", bound=Record)

HANDLERS: Dict[Tuple[str, str], Handler] = {}


def handles(contract: str, event_name: str) -> Callable[[Handler], Handler]:
    def register(fn: Handler) -> Handler:
        key = (contract, event_name)
        if key in HANDLERS:
            raise ValueError(f"duplicate handler for {contract}.{event_name}")
        HANDLERS[key] = fn
        return fn

    return register


def resolve(contract: str, event_name: str) -> Optional[Handler]:
    return HANDLERS.get((contract, event_name))


def get_or_create_user(store: EntityStore, address: str) -> User:
    """Load a user, fabricating an empty profile on first reference.

    A fabricated user counts once toward the platform's user total.
    """
    user, created = store.get_or_create(User, address_id(address), User.empty)
    if created:
        bump(store, "total_users")
    return user


def require(store: EntityStore, kind: Type[R], key: str) -> R:
    record = store.get(kind, key)
    if record is None:
        raise MissingParent(kind.KIND, key)
    return record
