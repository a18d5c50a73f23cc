import unittest
from datetime import datetime, timedelta, timezone

from lcf_auto.exceptions import (
    InsufficientPointsError,
    RewardNotFoundError,
    RewardUnavailableError,
    UserRewardNotFoundError,
)
from lcf_auto.models.loyalty import LoyaltyTransactionType
from lcf_auto.models.reward import UserRewardStatus
from lcf_auto.schemas.reward import RewardCreate, RewardUpdate
from lcf_auto.services import loyalty, rewards

from tests.helpers import DatabaseTestCase


class TestRewardCatalog(DatabaseTestCase):

    async def test_active_rewards_cheapest_first(self):
        await rewards.create_reward(self.db, RewardCreate(name="Vidange", points_cost=300))
        await rewards.create_reward(self.db, RewardCreate(name="Lavage", points_cost=100))
        hidden = await rewards.create_reward(
            self.db, RewardCreate(name="Ancien", points_cost=50, is_active=False)
        )

        active = await rewards.get_active_rewards(self.db)
        self.assertEqual([r.name for r in active], ["Lavage", "Vidange"])

        everything = await rewards.get_all_rewards(self.db)
        self.assertIn(hidden.id, [r.id for r in everything])
        self.assertEqual(len(everything), 3)

    async def test_partial_update(self):
        reward = await rewards.create_reward(
            self.db, RewardCreate(name="Lavage", description="Lavage complet", points_cost=100)
        )
        updated = await rewards.update_reward(self.db, reward.id, RewardUpdate(points_cost=120))

        self.assertEqual(updated.points_cost, 120)
        self.assertEqual(updated.description, "Lavage complet")

    async def test_update_unknown_reward(self):
        with self.assertRaises(RewardNotFoundError):
            await rewards.update_reward(self.db, 9999, RewardUpdate(points_cost=1))


class TestClaimReward(DatabaseTestCase):

    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.user_id = await self.create_user()
        await loyalty.adjust_points(self.db, self.user_id, 150)

    async def make_reward(self, **fields):
        data = {"name": "Lavage offert", "points_cost": 100}
        data.update(fields)
        reward = await rewards.create_reward(self.db, RewardCreate(**data))
        return reward.id

    async def test_claim_debits_points_and_stock(self):
        reward_id = await self.make_reward(stock=2)

        user_reward = await rewards.claim_reward(self.db, self.user_id, reward_id)

        self.assertEqual(user_reward.points_spent, 100)
        self.assertEqual(user_reward.status, UserRewardStatus.AVAILABLE)
        self.assertEqual(await loyalty.get_user_points(self.db, self.user_id), 50)

        reward = await rewards.get_reward(self.db, reward_id)
        self.assertEqual(reward.stock, 1)

        transactions = await loyalty.get_user_transactions(self.db, self.user_id)
        self.assertEqual(transactions[0].type, LoyaltyTransactionType.REWARD_REDEMPTION)
        self.assertEqual(transactions[0].points, -100)
        self.assertEqual(transactions[0].related_reward_id, reward_id)
        self.assertEqual(transactions[0].description, "Récompense échangée : Lavage offert")

    async def test_unlimited_stock(self):
        reward_id = await self.make_reward(points_cost=50)

        await rewards.claim_reward(self.db, self.user_id, reward_id)

        reward = await rewards.get_reward(self.db, reward_id)
        self.assertIsNone(reward.stock)
        self.assertEqual(await loyalty.get_user_points(self.db, self.user_id), 100)

    async def test_minimum_balance_for_redemption(self):
        # Cost is covered but the balance is below the program minimum
        await loyalty.adjust_points(self.db, self.user_id, -70)
        reward_id = await self.make_reward(points_cost=50, stock=5)

        with self.assertRaises(InsufficientPointsError):
            await rewards.claim_reward(self.db, self.user_id, reward_id)

        self.assertEqual(await loyalty.get_user_points(self.db, self.user_id), 80)
        reward = await rewards.get_reward(self.db, reward_id)
        self.assertEqual(reward.stock, 5)
        self.assertEqual(await rewards.get_user_rewards(self.db, self.user_id), [])

    async def test_insufficient_points(self):
        reward_id = await self.make_reward(points_cost=500)

        with self.assertRaises(InsufficientPointsError):
            await rewards.claim_reward(self.db, self.user_id, reward_id)
        self.assertEqual(await loyalty.get_user_points(self.db, self.user_id), 150)

    async def test_out_of_stock(self):
        reward_id = await self.make_reward(stock=0)

        with self.assertRaises(RewardUnavailableError):
            await rewards.claim_reward(self.db, self.user_id, reward_id)
        self.assertEqual(await loyalty.get_user_points(self.db, self.user_id), 150)

    async def test_inactive_reward(self):
        reward_id = await self.make_reward(is_active=False)

        with self.assertRaises(RewardUnavailableError):
            await rewards.claim_reward(self.db, self.user_id, reward_id)

    async def test_expired_reward(self):
        reward_id = await self.make_reward(valid_until=datetime.now(timezone.utc) - timedelta(days=1))

        with self.assertRaises(RewardUnavailableError):
            await rewards.claim_reward(self.db, self.user_id, reward_id)

    async def test_unknown_reward(self):
        with self.assertRaises(RewardNotFoundError):
            await rewards.claim_reward(self.db, self.user_id, 9999)

    async def test_mark_reward_used(self):
        reward_id = await self.make_reward()
        user_reward = await rewards.claim_reward(self.db, self.user_id, reward_id)

        used = await rewards.mark_reward_used(self.db, user_reward.id)

        self.assertEqual(used.status, UserRewardStatus.USED)
        self.assertIsNotNone(used.used_at)

        claimed = await rewards.get_user_rewards(self.db, self.user_id)
        self.assertEqual([r.status for r in claimed], [UserRewardStatus.USED])

    async def test_mark_unknown_reward_used(self):
        with self.assertRaises(UserRewardNotFoundError):
            await rewards.mark_reward_used(self.db, 9999)


if __name__ == '__main__':
    unittest.main()
