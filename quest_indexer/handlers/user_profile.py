from quest_indexer.entities import UserAchievement
from quest_indexer.events import Event
from quest_indexer.handlers.registry import USER_PROFILE, get_or_create_user, handles
from quest_indexer.ids import achievement_id
from quest_indexer.store import EntityStore
from quest_indexer.utils import _log


@handles(USER_PROFILE, "ProfileCreated")
def handle_profile_created(store: EntityStore, event: Event) -> None:
    user = get_or_create_user(store, event.addr_arg("user"))
    user.username = event.arg("username")
    if user.profile_created_at is None:
        user.profile_created_at = event.block_timestamp
        user.profile_updated_at = event.block_timestamp
    store.put(user)


@handles(USER_PROFILE, "ProfileUpdated")
def handle_profile_updated(store: EntityStore, event: Event) -> None:
    user = get_or_create_user(store, event.addr_arg("user"))
    user.profile_updated_at = event.block_timestamp
    store.put(user)


@handles(USER_PROFILE, "ReputationUpdated")
def handle_reputation_updated(store: EntityStore, event: Event) -> None:
    # The emitting contract computes the total; it replaces ours outright.
    reputation = event.int_arg("newReputation")
    if reputation < 0:
        _log(f"WARN: ignoring negative reputation {reputation} for {event.addr_arg('user')}")
        return
    user = get_or_create_user(store, event.addr_arg("user"))
    user.reputation = reputation
    store.put(user)


@handles(USER_PROFILE, "SkillAdded")
def handle_skill_added(store: EntityStore, event: Event) -> None:
    user = get_or_create_user(store, event.addr_arg("user"))
    skill = event.arg("skill")
    if skill in user.skills:
        return
    user.skills.append(skill)
    store.put(user)


@handles(USER_PROFILE, "SkillRemoved")
def handle_skill_removed(store: EntityStore, event: Event) -> None:
    user = get_or_create_user(store, event.addr_arg("user"))
    skill = event.arg("skill")
    if skill not in user.skills:
        return
    user.skills = [s for s in user.skills if s != skill]
    store.put(user)


@handles(USER_PROFILE, "AchievementEarned")
def handle_achievement_earned(store: EntityStore, event: Event) -> None:
    user = get_or_create_user(store, event.addr_arg("user"))
    store.create_if_absent(
        UserAchievement(
            id=achievement_id(user.id, event.arg("achievementId")),
            user=user.id,
            achievement_id=event.int_arg("achievementId"),
            earned_at=event.block_timestamp,
            tx_hash=event.transaction_hash,
        )
    )
