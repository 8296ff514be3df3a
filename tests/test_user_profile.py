from conftest import ALICE, BOB

from quest_indexer.handlers.user_profile import handle_achievement_earned, handle_skill_added


def test_profile_created_sets_username_and_timestamps(dispatcher, chain, model):
    event = chain.emit("UserProfile", "ProfileCreated", user=ALICE, username="alice")
    dispatcher.dispatch(event)

    user = model.user(ALICE)
    assert user.username == "alice"
    assert user.profile_created_at == event.block_timestamp
    assert user.profile_updated_at == event.block_timestamp
    assert model.stats().total_users == 1


def test_profile_updated_only_moves_update_timestamp(dispatcher, chain, model):
    created = chain.emit("UserProfile", "ProfileCreated", user=ALICE, username="alice")
    updated = chain.emit("UserProfile", "ProfileUpdated", user=ALICE)
    dispatcher.dispatch_all([created, updated])

    user = model.user(ALICE)
    assert user.profile_created_at == created.block_timestamp
    assert user.profile_updated_at == updated.block_timestamp
    assert user.username == "alice"


def test_reputation_is_the_last_reported_value(dispatcher, chain, model):
    values = [10, 250, 40, 40, 7]
    dispatcher.dispatch_all(
        chain.emit("UserProfile", "ReputationUpdated", user=ALICE, newReputation=v) for v in values
    )
    assert model.user(ALICE).reputation == values[-1]


def test_negative_reputation_is_ignored(dispatcher, chain, model):
    dispatcher.dispatch(chain.emit("UserProfile", "ReputationUpdated", user=ALICE, newReputation=12))
    dispatcher.dispatch(chain.emit("UserProfile", "ReputationUpdated", user=ALICE, newReputation=-3))
    assert model.user(ALICE).reputation == 12


def test_duplicate_skill_is_stored_once(dispatcher, chain, model):
    dispatcher.dispatch_all(
        [
            chain.emit("UserProfile", "ProfileCreated", user=ALICE, username="alice"),
            chain.emit("UserProfile", "SkillAdded", user=ALICE, skill="Rust"),
            chain.emit("UserProfile", "SkillAdded", user=ALICE, skill="Rust"),
        ]
    )
    assert model.user(ALICE).skills == ["Rust"]


def test_skill_added_handler_is_idempotent(store, chain, model):
    event = chain.emit("UserProfile", "SkillAdded", user=ALICE, skill="Solidity")
    with store.transaction():
        handle_skill_added(store, event)
        handle_skill_added(store, event)
    assert model.user(ALICE).skills == ["Solidity"]


def test_skill_removed_filters_and_tolerates_absent(dispatcher, chain, model):
    dispatcher.dispatch_all(
        [
            chain.emit("UserProfile", "SkillAdded", user=ALICE, skill="Rust"),
            chain.emit("UserProfile", "SkillAdded", user=ALICE, skill="Go"),
            chain.emit("UserProfile", "SkillRemoved", user=ALICE, skill="Rust"),
            chain.emit("UserProfile", "SkillRemoved", user=ALICE, skill="Haskell"),
        ]
    )
    assert model.user(ALICE).skills == ["Go"]


def test_achievement_recorded_once_per_user(store, chain, model):
    event = chain.emit("UserProfile", "AchievementEarned", user=BOB, achievementId=3)
    with store.transaction():
        handle_achievement_earned(store, event)
        handle_achievement_earned(store, event)

    achievements = model.achievements(BOB)
    assert len(achievements) == 1
    assert achievements[0].achievement_id == 3
    assert achievements[0].earned_at == event.block_timestamp


def test_lazily_created_user_counts_once(dispatcher, chain, model):
    dispatcher.dispatch_all(
        [
            chain.emit("UserProfile", "ProfileUpdated", user=ALICE),
            chain.emit("UserProfile", "SkillAdded", user=ALICE, skill="Rust"),
            chain.emit("UserProfile", "ProfileUpdated", user=BOB),
        ]
    )
    user = model.user(ALICE)
    assert user.username is None
    assert model.stats().total_users == 2
