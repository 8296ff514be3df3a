from typing import Any, Dict, List, Optional

from quest_indexer.entities import (
    ENTITY_TYPES,
    CollaborationRequest,
    EscrowEvent,
    PauseEvent,
    PlatformStats,
    Quest,
    QuestParticipant,
    QuestWinner,
    Record,
    Reward,
    RoleEvent,
    Submission,
    SubmissionComment,
    SubmissionLike,
    SubmissionReview,
    Team,
    TeamMember,
    User,
    UserAchievement,
)
from quest_indexer.ids import PLATFORM_STATS_ID, address_id, int_id
from quest_indexer.store import EntityStore


class ReadModel:
    """Lookups and ordered listings over a populated store."""

    def __init__(self, store: EntityStore):
        self.store = store

    def entity(self, kind: str, key: str) -> Optional[Record]:
        cls = ENTITY_TYPES.get(kind)
        if cls is None:
            raise ValueError(f"unknown entity kind: {kind}")
        return self.store.get(cls, key)

    def user(self, address: str) -> Optional[User]:
        return self.store.get(User, address_id(address))

    def quest(self, quest_id: Any) -> Optional[Quest]:
        return self.store.get(Quest, int_id(quest_id))

    def submission(self, submission_id: Any) -> Optional[Submission]:
        return self.store.get(Submission, int_id(submission_id))

    def team(self, team_id: Any) -> Optional[Team]:
        return self.store.get(Team, int_id(team_id))

    def stats(self) -> Optional[PlatformStats]:
        return self.store.get(PlatformStats, PLATFORM_STATS_ID)

    def likes(self, submission_id: Any) -> List[SubmissionLike]:
        return self.store.list(SubmissionLike, parent=int_id(submission_id))

    def comments(self, submission_id: Any) -> List[SubmissionComment]:
        return self.store.list(SubmissionComment, parent=int_id(submission_id))

    def reviews(self, submission_id: Any) -> List[SubmissionReview]:
        return self.store.list(SubmissionReview, parent=int_id(submission_id))

    def winners(self, quest_id: Any) -> List[str]:
        quest = self.quest(quest_id)
        return list(quest.winners) if quest else []

    def winner_selections(self, quest_id: Any) -> List[QuestWinner]:
        return self.store.list(QuestWinner, parent=int_id(quest_id))

    def submissions(self, quest_id: Any) -> List[Submission]:
        return self.store.list(Submission, parent=int_id(quest_id))

    def participants(self, quest_id: Any, active_only: bool = True) -> List[QuestParticipant]:
        rows = self.store.list(QuestParticipant, parent=int_id(quest_id))
        return [p for p in rows if p.is_active or not active_only]

    def rewards(self, quest_id: Any) -> List[Reward]:
        return self.store.list(Reward, parent=int_id(quest_id))

    def escrow_events(self, quest_id: Optional[Any] = None) -> List[EscrowEvent]:
        parent = int_id(quest_id) if quest_id is not None else None
        return self.store.list(EscrowEvent, parent=parent)

    def team_members(self, team_id: Any, active_only: bool = True) -> List[TeamMember]:
        rows = self.store.list(TeamMember, parent=int_id(team_id))
        return [m for m in rows if m.is_active or not active_only]

    def collaboration_requests(self, quest_id: Any) -> List[CollaborationRequest]:
        return self.store.list(CollaborationRequest, parent=int_id(quest_id))

    def achievements(self, address: str) -> List[UserAchievement]:
        return self.store.list(UserAchievement, parent=address_id(address))

    def role_events(self, contract: Optional[str] = None) -> List[RoleEvent]:
        return self.store.list(RoleEvent, parent=contract)

    def pause_events(self, contract: Optional[str] = None) -> List[PauseEvent]:
        return self.store.list(PauseEvent, parent=contract)

    def dropped_events(self) -> List[Dict[str, Any]]:
        return self.store.dropped_events()
