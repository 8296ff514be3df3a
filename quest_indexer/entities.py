"""Read model records, one dataclass per entity kind.

Records are plain data: handlers load them from the store, mutate them and
put them back. Each record serializes to a JSON object whose keys are the
dataclass field names; enum fields are stored by value.
"""

from dataclasses import asdict, dataclass, field, fields
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Type, TypeVar

from quest_indexer.utils import ZERO_ADDRESS

R = TypeVar("R", bound="Record")


class SubmissionStatus(str, Enum):
    CREATED = "CREATED"
    UNDER_REVIEW = "UNDER_REVIEW"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    WINNER = "WINNER"


class QuestStatus(str, Enum):
    DRAFT = "DRAFT"
    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class RoleEventKind(str, Enum):
    GRANTED = "GRANTED"
    REVOKED = "REVOKED"
    ADMIN_CHANGED = "ADMIN_CHANGED"


class RewardType(str, Enum):
    WINNER_REWARD = "WINNER_REWARD"
    PARTICIPATION_REWARD = "PARTICIPATION_REWARD"
    BONUS_REWARD = "BONUS_REWARD"
    PLATFORM_FEE = "PLATFORM_FEE"


class InviteStatus(str, Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


class EscrowKind(str, Enum):
    ESCROWED = "ESCROWED"
    REFUNDED = "REFUNDED"
    EMERGENCY_WITHDRAW = "EMERGENCY_WITHDRAW"


@dataclass
class Record:
    KIND: ClassVar[str] = "record"
    # Field holding the owning entity's id, used for ordered child listings.
    PARENT_FIELD: ClassVar[Optional[str]] = None

    id: str

    @property
    def parent(self) -> Optional[str]:
        if self.PARENT_FIELD is None:
            return None
        return getattr(self, self.PARENT_FIELD)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        for key, value in data.items():
            if isinstance(value, Enum):
                data[key] = value.value
        return data

    @classmethod
    def from_dict(cls: Type[R], data: Dict[str, Any]) -> R:
        kwargs = {}
        for f in fields(cls):
            if f.name not in data:
                continue
            value = data[f.name]
            if isinstance(f.type, type) and issubclass(f.type, Enum) and value is not None:
                value = f.type(value)
            kwargs[f.name] = value
        return cls(**kwargs)


@dataclass
class User(Record):
    KIND = "user"

    username: Optional[str] = None
    profile_created_at: Optional[int] = None
    profile_updated_at: Optional[int] = None
    reputation: int = 0
    skills: List[str] = field(default_factory=list)
    total_quests_created: int = 0
    total_quests_completed: int = 0
    total_submissions: int = 0
    total_rewards_earned: int = 0

    @classmethod
    def empty(cls, key: str) -> "User":
        return cls(id=key)


@dataclass
class Quest(Record):
    KIND = "quest"

    quest_id: int = 0
    creator: str = ZERO_ADDRESS
    title: str = ""
    bounty_amount: int = 0
    bounty_token: str = ZERO_ADDRESS
    status: QuestStatus = QuestStatus.ACTIVE
    participant_count: int = 0
    submission_count: int = 0
    winners: List[str] = field(default_factory=list)
    created_at: int = 0
    updated_at: Optional[int] = None
    completed_at: Optional[int] = None
    cancelled_at: Optional[int] = None
    cancel_reason: Optional[str] = None
    creation_tx_hash: Optional[str] = None


@dataclass
class QuestParticipant(Record):
    KIND = "quest_participant"
    PARENT_FIELD = "quest"

    quest: str = ""
    participant: str = ""
    is_active: bool = False
    joined_at: Optional[int] = None
    left_at: Optional[int] = None


@dataclass
class QuestWinner(Record):
    """Completed-quest credit for one winner of one quest."""

    KIND = "quest_winner"
    PARENT_FIELD = "quest"

    quest: str = ""
    winner: str = ""
    submission: str = ""
    selected_at: int = 0
    tx_hash: Optional[str] = None


@dataclass
class Submission(Record):
    KIND = "submission"
    PARENT_FIELD = "quest"

    submission_id: int = 0
    quest: str = ""
    submitter: str = ""
    is_team_submission: bool = False
    team: Optional[str] = None
    status: SubmissionStatus = SubmissionStatus.CREATED
    score: Optional[int] = None
    is_approved: bool = False
    is_winner: bool = False
    created_at: int = 0
    updated_at: Optional[int] = None
    reviewed_at: Optional[int] = None
    like_count: int = 0
    comment_count: int = 0
    creation_tx_hash: Optional[str] = None
    creation_block_number: Optional[int] = None


@dataclass
class SubmissionLike(Record):
    KIND = "submission_like"
    PARENT_FIELD = "submission"

    submission: str = ""
    user: str = ""
    liked_at: int = 0
    tx_hash: Optional[str] = None


@dataclass
class SubmissionComment(Record):
    KIND = "submission_comment"
    PARENT_FIELD = "submission"

    submission: str = ""
    commenter: str = ""
    commented_at: int = 0
    tx_hash: Optional[str] = None


@dataclass
class SubmissionReview(Record):
    KIND = "submission_review"
    PARENT_FIELD = "submission"

    submission: str = ""
    reviewer: str = ""
    score: int = 0
    approved: bool = False
    reviewed_at: int = 0
    tx_hash: Optional[str] = None


@dataclass
class UserAchievement(Record):
    KIND = "user_achievement"
    PARENT_FIELD = "user"

    user: str = ""
    achievement_id: int = 0
    earned_at: int = 0
    tx_hash: Optional[str] = None


@dataclass
class RoleEvent(Record):
    """Append-only role audit fact. One record per emitted log, never merged."""

    KIND = "role_event"
    PARENT_FIELD = "contract"

    contract: str = ""
    role: str = ""
    account: str = ""
    kind: RoleEventKind = RoleEventKind.GRANTED
    sender: Optional[str] = None
    previous_admin_role: Optional[str] = None
    block_number: int = 0
    block_timestamp: int = 0
    transaction_hash: str = ""


@dataclass
class PauseEvent(Record):
    """Append-only pause/unpause fact."""

    KIND = "pause_event"
    PARENT_FIELD = "contract"

    contract: str = ""
    account: str = ""
    is_paused: bool = False
    block_number: int = 0
    block_timestamp: int = 0
    transaction_hash: str = ""


@dataclass
class PlatformStats(Record):
    KIND = "platform_stats"

    total_users: int = 0
    total_quests: int = 0
    total_submissions: int = 0
    total_rewards_distributed: int = 0
    total_value_locked: int = 0
    platform_fee_percentage: int = 0
    platform_fee_recipient: str = ZERO_ADDRESS

    @classmethod
    def empty(cls, key: str) -> "PlatformStats":
        return cls(id=key)


@dataclass
class Reward(Record):
    KIND = "reward"
    PARENT_FIELD = "quest"

    reward_id: int = 0
    quest: str = ""
    recipient: str = ""
    amount: int = 0
    token: str = ZERO_ADDRESS
    reward_type: RewardType = RewardType.WINNER_REWARD
    distributed_at: int = 0
    tx_hash: Optional[str] = None
    block_number: Optional[int] = None


@dataclass
class EscrowEvent(Record):
    KIND = "escrow_event"
    PARENT_FIELD = "quest"

    kind: EscrowKind = EscrowKind.ESCROWED
    quest: Optional[str] = None
    account: str = ""
    amount: int = 0
    token: Optional[str] = None
    block_number: int = 0
    block_timestamp: int = 0
    transaction_hash: str = ""


@dataclass
class Team(Record):
    KIND = "team"
    PARENT_FIELD = "quest"

    team_id: int = 0
    quest: str = ""
    leader: str = ""
    name: str = ""
    is_active: bool = True
    member_count: int = 0
    created_at: int = 0
    disbanded_at: Optional[int] = None
    creation_tx_hash: Optional[str] = None


@dataclass
class TeamMember(Record):
    KIND = "team_member"
    PARENT_FIELD = "team"

    team: str = ""
    user: str = ""
    is_active: bool = False
    joined_at: Optional[int] = None
    removed_at: Optional[int] = None
    join_tx_hash: Optional[str] = None
    remove_tx_hash: Optional[str] = None


@dataclass
class TeamInvite(Record):
    KIND = "team_invite"
    PARENT_FIELD = "team"

    team: str = ""
    invitee: str = ""
    inviter: str = ""
    status: InviteStatus = InviteStatus.PENDING
    sent_at: int = 0
    responded_at: Optional[int] = None
    sent_tx_hash: Optional[str] = None
    response_tx_hash: Optional[str] = None


@dataclass
class CollaborationRequest(Record):
    KIND = "collaboration_request"
    PARENT_FIELD = "quest"

    request_id: int = 0
    quest: str = ""
    requester: str = ""
    created_at: int = 0
    tx_hash: Optional[str] = None


ENTITY_TYPES: Dict[str, Type[Record]] = {
    cls.KIND: cls
    for cls in (
        User,
        Quest,
        QuestParticipant,
        QuestWinner,
        Submission,
        SubmissionLike,
        SubmissionComment,
        SubmissionReview,
        UserAchievement,
        RoleEvent,
        PauseEvent,
        PlatformStats,
        Reward,
        EscrowEvent,
        Team,
        TeamMember,
        TeamInvite,
        CollaborationRequest,
    )
}
