from conftest import ALICE, BOB, CAROL, TOKEN

from quest_indexer.dispatcher import DROPPED
from quest_indexer.entities import EscrowKind, RewardType


def _reward(chain, reward_id, recipient, amount, reward_type=0, quest_id=3):
    return chain.emit(
        "RewardManager",
        "RewardDistributed",
        rewardId=reward_id,
        questId=quest_id,
        recipient=recipient,
        amount=amount,
        token=TOKEN,
        rewardType=reward_type,
    )


def test_reward_credits_recipient_and_platform(dispatcher, chain, model, quest_3):
    dispatcher.dispatch(_reward(chain, 1, BOB, 700))

    (reward,) = model.rewards(quest_3)
    assert reward.recipient == BOB
    assert reward.amount == 700
    assert reward.reward_type is RewardType.WINNER_REWARD
    assert model.user(BOB).total_rewards_earned == 700
    assert model.stats().total_rewards_distributed == 700


def test_reward_redelivery_counts_once(dispatcher, chain, model, quest_3):
    dispatcher.dispatch_all([_reward(chain, 1, BOB, 700), _reward(chain, 1, BOB, 700)])
    assert len(model.rewards(quest_3)) == 1
    assert model.user(BOB).total_rewards_earned == 700
    assert model.stats().total_rewards_distributed == 700


def test_platform_fee_is_not_user_earnings(dispatcher, chain, model, quest_3):
    dispatcher.dispatch_all([_reward(chain, 1, BOB, 900, 1), _reward(chain, 2, CAROL, 100, 3)])
    assert model.user(CAROL).total_rewards_earned == 0
    assert model.stats().total_rewards_distributed == 1000
    types = [r.reward_type for r in model.rewards(quest_3)]
    assert types == [RewardType.PARTICIPATION_REWARD, RewardType.PLATFORM_FEE]


def test_unknown_reward_type_defaults_to_winner(dispatcher, chain, model, quest_3):
    dispatcher.dispatch(_reward(chain, 1, BOB, 5, reward_type=8))
    assert model.rewards(quest_3)[0].reward_type is RewardType.WINNER_REWARD


def test_reward_for_missing_quest_is_dropped(dispatcher, chain, model):
    assert dispatcher.dispatch(_reward(chain, 1, BOB, 5, quest_id=44)) == DROPPED
    assert model.user(BOB) is None


def test_value_locked_follows_escrow_and_clamps(dispatcher, chain, model, quest_3):
    dispatcher.dispatch_all(
        [
            chain.emit("RewardManager", "BountyEscrowed", questId=3, creator=ALICE, amount=1000, token=TOKEN),
            chain.emit("RewardManager", "BountyRefunded", questId=3, creator=ALICE, amount=400),
        ]
    )
    assert model.stats().total_value_locked == 600

    dispatcher.dispatch(
        chain.emit("RewardManager", "EmergencyWithdraw", recipient=CAROL, amount=5000, token=TOKEN)
    )
    assert model.stats().total_value_locked == 0

    kinds = [e.kind for e in model.escrow_events()]
    assert kinds == [EscrowKind.ESCROWED, EscrowKind.REFUNDED, EscrowKind.EMERGENCY_WITHDRAW]
    assert len(model.escrow_events(quest_3)) == 2


def test_payment_split_touches_quest(dispatcher, chain, model, quest_3):
    event = chain.emit("RewardManager", "PaymentSplitUpdated", questId=3)
    dispatcher.dispatch(event)
    assert model.quest(quest_3).updated_at == event.block_timestamp
