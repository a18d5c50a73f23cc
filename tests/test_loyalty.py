import unittest
from unittest import mock

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from lcf_auto.database import get_session_factory
from lcf_auto.exceptions import InsufficientPointsError, InvalidPointsError, UserNotFoundError
from lcf_auto.models.loyalty import LoyaltyTransaction, LoyaltyTransactionType
from lcf_auto.models.user import User
from lcf_auto.schemas.loyalty import LoyaltySettings, LoyaltySettingsUpdate
from lcf_auto.services import loyalty

from tests.helpers import DatabaseTestCase


class TestLoyaltySettings(DatabaseTestCase):

    async def test_defaults_on_empty_store(self):
        settings = await loyalty.get_loyalty_settings(self.db)
        self.assertEqual(settings.points_per_appointment, 10)
        self.assertEqual(settings.min_points_for_redemption, 100)
        self.assertEqual(settings.welcome_bonus_points, 50)
        self.assertIsNone(settings.referral_bonus_points)

    async def test_partial_update_keeps_other_fields(self):
        await loyalty.update_loyalty_settings(self.db, LoyaltySettingsUpdate(points_per_appointment=20))

        settings = await loyalty.get_loyalty_settings(self.db)
        self.assertEqual(settings.points_per_appointment, 20)
        self.assertEqual(settings.min_points_for_redemption, 100)
        self.assertEqual(settings.welcome_bonus_points, 50)

    async def test_successive_updates_merge(self):
        await loyalty.update_loyalty_settings(self.db, LoyaltySettingsUpdate(min_points_for_redemption=200))
        await loyalty.update_loyalty_settings(
            self.db, LoyaltySettingsUpdate(points_per_appointment=5, points_per_euro_spent=0.5)
        )

        settings = await loyalty.get_loyalty_settings(self.db)
        self.assertEqual(settings.min_points_for_redemption, 200)
        self.assertEqual(settings.points_per_appointment, 5)
        self.assertEqual(settings.points_per_euro_spent, 0.5)

    async def test_negative_values_are_stored(self):
        settings = await loyalty.update_loyalty_settings(
            self.db, LoyaltySettingsUpdate(welcome_bonus_points=-10)
        )
        self.assertEqual(settings.welcome_bonus_points, -10)


class TestLedger(DatabaseTestCase):

    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.user_id = await self.create_user()

    async def test_balance_follows_ledger(self):
        await loyalty.record_transaction(
            self.db, self.user_id, LoyaltyTransactionType.BONUS, 10, "Bonus de bienvenue"
        )
        await loyalty.record_transaction(
            self.db, self.user_id, LoyaltyTransactionType.APPOINTMENT_COMPLETED, 10, "Rendez-vous"
        )
        await loyalty.record_transaction(
            self.db, self.user_id, LoyaltyTransactionType.REWARD_REDEMPTION, -5, "Café offert"
        )

        self.assertEqual(await loyalty.get_user_points(self.db, self.user_id), 15)

        transactions = await loyalty.get_user_transactions(self.db, self.user_id)
        self.assertEqual(
            [t.type for t in transactions],
            [
                LoyaltyTransactionType.REWARD_REDEMPTION,
                LoyaltyTransactionType.APPOINTMENT_COMPLETED,
                LoyaltyTransactionType.BONUS,
            ],
        )
        self.assertEqual(sum(t.points for t in transactions), 15)

    async def test_history_pagination(self):
        for points in (1, 2, 3, 4):
            await loyalty.record_transaction(
                self.db, self.user_id, LoyaltyTransactionType.MANUAL_ADJUSTMENT, points, "Ajustement"
            )

        page = await loyalty.get_user_transactions(self.db, self.user_id, limit=2, offset=1)
        self.assertEqual([t.points for t in page], [3, 2])

    async def test_unknown_user_writes_nothing(self):
        with self.assertRaises(UserNotFoundError):
            await loyalty.record_transaction(
                self.db, 9999, LoyaltyTransactionType.BONUS, 10, "Bonus"
            )

        count = await self.db.scalar(select(func.count(LoyaltyTransaction.id)))
        self.assertEqual(count, 0)

    async def test_missing_user_has_zero_points(self):
        self.assertEqual(await loyalty.get_user_points(self.db, 9999), 0)

    async def test_idempotency_key_records_once(self):
        first = await loyalty.record_transaction(
            self.db, self.user_id, LoyaltyTransactionType.BONUS, 25, "Parrainage",
            idempotency_key="referral:42",
        )
        second = await loyalty.record_transaction(
            self.db, self.user_id, LoyaltyTransactionType.BONUS, 25, "Parrainage",
            idempotency_key="referral:42",
        )

        self.assertEqual(first, second)
        self.assertEqual(await loyalty.get_user_points(self.db, self.user_id), 25)

    async def test_duplicate_key_race_returns_existing_transaction(self):
        first = await loyalty.record_transaction(
            self.db, self.user_id, LoyaltyTransactionType.BONUS, 25, "Parrainage",
            idempotency_key="referral:42",
        )

        find = loyalty._find_by_idempotency_key
        lookups = []

        async def miss_first_lookup(db, key):
            lookups.append(key)
            # The concurrent writer has not committed when the first lookup runs
            if len(lookups) == 1:
                return None
            return await find(db, key)

        with mock.patch.object(loyalty, "_find_by_idempotency_key", miss_first_lookup):
            second = await loyalty.record_transaction(
                self.db, self.user_id, LoyaltyTransactionType.BONUS, 25, "Parrainage",
                idempotency_key="referral:42",
            )

        self.assertEqual(second, first)
        self.assertEqual(len(lookups), 2)
        self.assertEqual(await loyalty.get_user_points(self.db, self.user_id), 25)
        count = await self.db.scalar(select(func.count(LoyaltyTransaction.id)))
        self.assertEqual(count, 1)


class TestAwardTriggers(DatabaseTestCase):

    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.user_id = await self.create_user()

    async def test_welcome_bonus_credited_once(self):
        first = await loyalty.award_welcome_bonus(self.db, self.user_id)
        second = await loyalty.award_welcome_bonus(self.db, self.user_id)

        self.assertIsNotNone(first)
        self.assertIsNone(second)
        self.assertEqual(await loyalty.get_user_points(self.db, self.user_id), 50)

        transactions = await loyalty.get_user_transactions(self.db, self.user_id)
        self.assertEqual(len(transactions), 1)
        self.assertEqual(transactions[0].description, "Bonus de bienvenue")
        self.assertEqual(transactions[0].type, LoyaltyTransactionType.BONUS)

    async def test_welcome_bonus_disabled(self):
        await loyalty.update_loyalty_settings(self.db, LoyaltySettingsUpdate(welcome_bonus_points=0))

        self.assertIsNone(await loyalty.award_welcome_bonus(self.db, self.user_id))
        self.assertEqual(await loyalty.get_user_transactions(self.db, self.user_id), [])

    async def test_welcome_bonus_unknown_user(self):
        with self.assertRaises(UserNotFoundError):
            await loyalty.award_welcome_bonus(self.db, 9999)

    async def test_appointment_points_once_per_appointment(self):
        await loyalty.award_appointment_points(self.db, self.user_id, appointment_id=1)
        await loyalty.award_appointment_points(self.db, self.user_id, appointment_id=1)
        await loyalty.award_appointment_points(self.db, self.user_id, appointment_id=2)

        self.assertEqual(await loyalty.get_user_points(self.db, self.user_id), 20)
        transactions = await loyalty.get_user_transactions(self.db, self.user_id)
        self.assertEqual(sorted(t.related_appointment_id for t in transactions), [1, 2])

    async def test_appointment_points_disabled(self):
        for points in (0, -5):
            result = await loyalty.award_appointment_points(
                self.db, self.user_id, appointment_id=3,
                settings=LoyaltySettings(points_per_appointment=points),
            )
            self.assertIsNone(result)

        self.assertEqual(await loyalty.get_user_points(self.db, self.user_id), 0)
        self.assertEqual(await loyalty.get_user_transactions(self.db, self.user_id), [])

    async def test_injected_settings_are_used(self):
        await loyalty.award_appointment_points(
            self.db, self.user_id, settings=LoyaltySettings(points_per_appointment=25)
        )
        self.assertEqual(await loyalty.get_user_points(self.db, self.user_id), 25)


class TestAdjustments(DatabaseTestCase):

    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.user_id = await self.create_user()
        await loyalty.adjust_points(self.db, self.user_id, 30, admin_id=1)

    async def test_manual_credit(self):
        transactions = await loyalty.get_user_transactions(self.db, self.user_id)
        self.assertEqual(transactions[0].description, "Ajustement manuel de points")
        self.assertEqual(transactions[0].created_by, 1)
        self.assertEqual(await loyalty.get_user_points(self.db, self.user_id), 30)

    async def test_manual_debit(self):
        await loyalty.adjust_points(self.db, self.user_id, -10)

        transactions = await loyalty.get_user_transactions(self.db, self.user_id)
        self.assertEqual(transactions[0].description, "Déduction manuelle de points")
        self.assertEqual(await loyalty.get_user_points(self.db, self.user_id), 20)

    async def test_zero_adjustment_rejected(self):
        with self.assertRaises(InvalidPointsError):
            await loyalty.adjust_points(self.db, self.user_id, 0)

    async def test_debit_cannot_overdraw(self):
        with self.assertRaises(InsufficientPointsError):
            await loyalty.adjust_points(self.db, self.user_id, -31)
        self.assertEqual(await loyalty.get_user_points(self.db, self.user_id), 30)

    async def test_deduct_points(self):
        await loyalty.deduct_points(self.db, self.user_id, 30, None, "Lavage offert")
        await self.db.commit()
        self.assertEqual(await loyalty.get_user_points(self.db, self.user_id), 0)

        with self.assertRaises(InsufficientPointsError):
            await loyalty.deduct_points(self.db, self.user_id, 1, None, "Lavage offert")
        await self.db.rollback()

        transactions = await loyalty.get_user_transactions(self.db, self.user_id)
        self.assertEqual(len(transactions), 2)
        self.assertEqual(transactions[0].points, -30)


class TestReconciliation(DatabaseTestCase):

    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.user_id = await self.create_user()
        await loyalty.award_welcome_bonus(self.db, self.user_id)

    async def test_consistent_balance_left_alone(self):
        previous, ledger_balance = await loyalty.reconcile_balance(self.db, self.user_id)
        self.assertEqual((previous, ledger_balance), (50, 50))

    async def test_drifted_balance_is_corrected(self):
        await self.db.execute(update(User).where(User.id == self.user_id).values(loyalty_points=999))
        await self.db.commit()

        previous, ledger_balance = await loyalty.reconcile_balance(self.db, self.user_id)

        self.assertEqual((previous, ledger_balance), (999, 50))
        self.assertEqual(await loyalty.get_user_points(self.db, self.user_id), 50)

    async def test_award_during_reconciliation_is_kept(self):
        await self.db.execute(update(User).where(User.id == self.user_id).values(loyalty_points=999))
        await self.db.commit()

        execute = AsyncSession.execute
        calls = []

        async def award_after_first_read(session, *args, **kwargs):
            result = await execute(session, *args, **kwargs)
            if session is self.db and not calls:
                calls.append(True)
                # Another request completes an appointment once the balance was read
                async with get_session_factory()() as other:
                    await loyalty.award_appointment_points(other, self.user_id, appointment_id=7)
            return result

        with mock.patch.object(AsyncSession, "execute", award_after_first_read):
            previous, ledger_balance = await loyalty.reconcile_balance(self.db, self.user_id)

        self.assertEqual(previous, 999)
        self.assertEqual(ledger_balance, 60)
        self.assertEqual(await loyalty.get_user_points(self.db, self.user_id), 60)

        ledger_sum = await self.db.scalar(
            select(func.sum(LoyaltyTransaction.points)).where(LoyaltyTransaction.user_id == self.user_id)
        )
        self.assertEqual(ledger_sum, 60)

    async def test_reconcile_all(self):
        other_id = await self.create_user("other@example.com")
        await self.db.execute(update(User).where(User.id == other_id).values(loyalty_points=7))
        await self.db.commit()

        corrections = await loyalty.reconcile_all_balances(self.db)
        self.assertEqual(corrections, {other_id: (7, 0)})

    async def test_unknown_user(self):
        with self.assertRaises(UserNotFoundError):
            await loyalty.reconcile_balance(self.db, 9999)


class TestMembers(DatabaseTestCase):

    async def test_search_and_ordering(self):
        first_id = await self.create_user("marie@example.com", "Marie", "Curie")
        second_id = await self.create_user("paul@example.com", "Paul", "Martin")
        await loyalty.adjust_points(self.db, second_id, 40)

        members = await loyalty.list_members(self.db)
        self.assertEqual([m.id for m in members], [second_id, first_id])

        members = await loyalty.list_members(self.db, search="curie")
        self.assertEqual([m.id for m in members], [first_id])


if __name__ == '__main__':
    unittest.main()
