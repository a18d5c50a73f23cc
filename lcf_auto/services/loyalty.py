"""
Loyalty points ledger.

The balance stored on ``User.loyalty_points`` is a denormalized view of the
ledger. Every write goes through ``append_transaction`` which moves the balance
with an SQL increment and inserts the ledger row inside the same database
transaction, so the two can never diverge.
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from lcf_auto.exceptions import (
    InsufficientPointsError,
    InvalidPointsError,
    LoyaltyError,
    UserNotFoundError,
)
from lcf_auto.models.loyalty import (
    SETTINGS_ID,
    LoyaltySettings as LoyaltySettingsRow,
    LoyaltyTransaction,
    LoyaltyTransactionType,
)
from lcf_auto.models.user import User, UserRole
from lcf_auto.schemas.loyalty import LoyaltySettings, LoyaltySettingsUpdate

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS = {
    "points_per_appointment": 10,
    "min_points_for_redemption": 100,
    "welcome_bonus_points": 50,
}

# Columns that cannot be cleared through a partial update
_REQUIRED_SETTINGS = ("points_per_appointment", "min_points_for_redemption")

WELCOME_BONUS_DESCRIPTION = "Bonus de bienvenue"
APPOINTMENT_DESCRIPTION = "Points gagnés pour un rendez-vous terminé"
MANUAL_CREDIT_DESCRIPTION = "Ajustement manuel de points"
MANUAL_DEBIT_DESCRIPTION = "Déduction manuelle de points"


# ==================== SETTINGS ====================

async def get_loyalty_settings(db: AsyncSession) -> LoyaltySettings:
    """Return the program settings, or the defaults when none were saved."""
    row = await db.get(LoyaltySettingsRow, SETTINGS_ID)
    if row is None:
        return LoyaltySettings(**DEFAULT_SETTINGS)
    return LoyaltySettings.model_validate(row)


async def update_loyalty_settings(
    db: AsyncSession, updates: LoyaltySettingsUpdate
) -> LoyaltySettings:
    """
    Merge the provided fields into the settings, creating them if needed.

    Values are stored as given, negative numbers included.
    """
    update_data = updates.model_dump(exclude_unset=True)

    row = await db.get(LoyaltySettingsRow, SETTINGS_ID)
    if row is None:
        row = LoyaltySettingsRow(id=SETTINGS_ID, **DEFAULT_SETTINGS)
        db.add(row)

    for field, value in update_data.items():
        if value is None and field in _REQUIRED_SETTINGS:
            continue
        setattr(row, field, value)

    try:
        await db.commit()
    except Exception:
        await db.rollback()
        logger.exception("Error updating loyalty settings")
        raise
    await db.refresh(row)

    logger.info("Loyalty settings updated: %s", update_data)
    return LoyaltySettings.model_validate(row)


# ==================== LEDGER WRITER ====================

async def _user_exists(db: AsyncSession, user_id: int) -> bool:
    return await db.scalar(select(User.id).where(User.id == user_id)) is not None


async def _find_by_idempotency_key(db: AsyncSession, key: str) -> Optional[int]:
    return await db.scalar(
        select(LoyaltyTransaction.id).where(LoyaltyTransaction.idempotency_key == key)
    )


async def append_transaction(
    db: AsyncSession,
    user_id: int,
    type: LoyaltyTransactionType,
    points: int,
    description: str,
    *,
    min_balance: Optional[int] = None,
    user_values: Optional[Dict[str, Any]] = None,
    **fields: Any,
) -> LoyaltyTransaction:
    """
    Move the balance and stage the ledger row without committing.

    When ``min_balance`` is set the balance is only moved if it is at least
    that amount at write time. ``user_values`` are extra columns written on the
    user by the same statement.
    """
    stmt = update(User).where(User.id == user_id)
    if min_balance is not None:
        stmt = stmt.where(User.loyalty_points >= min_balance)
    values = {"loyalty_points": User.loyalty_points + points}
    values.update(user_values or {})

    result = await db.execute(stmt.values(**values))
    if result.rowcount == 0:
        if min_balance is not None and await _user_exists(db, user_id):
            raise InsufficientPointsError()
        raise UserNotFoundError()

    transaction = LoyaltyTransaction(
        user_id=user_id,
        type=type,
        points=points,
        description=description,
        **fields,
    )
    db.add(transaction)
    await db.flush()
    return transaction


async def record_transaction(
    db: AsyncSession,
    user_id: int,
    type: LoyaltyTransactionType,
    points: int,
    description: str,
    *,
    related_appointment_id: Optional[int] = None,
    related_reward_id: Optional[int] = None,
    created_by: Optional[int] = None,
    idempotency_key: Optional[str] = None,
    min_balance: Optional[int] = None,
    user_values: Optional[Dict[str, Any]] = None,
) -> int:
    """
    Append a ledger entry and apply it to the user's balance atomically.

    Returns the transaction id. If ``idempotency_key`` was already used the
    id of the earlier transaction is returned and nothing is written.
    """
    if idempotency_key:
        existing = await _find_by_idempotency_key(db, idempotency_key)
        if existing is not None:
            logger.info("Transaction %s already recorded as #%s", idempotency_key, existing)
            return existing

    try:
        transaction = await append_transaction(
            db,
            user_id,
            type,
            points,
            description,
            min_balance=min_balance,
            user_values=user_values,
            related_appointment_id=related_appointment_id,
            related_reward_id=related_reward_id,
            created_by=created_by,
            idempotency_key=idempotency_key,
        )
        await db.commit()
    except IntegrityError:
        await db.rollback()
        # Lost a race against a concurrent writer using the same key
        if idempotency_key:
            existing = await _find_by_idempotency_key(db, idempotency_key)
            if existing is not None:
                return existing
        logger.exception("Error recording loyalty transaction for user %s", user_id)
        raise
    except LoyaltyError as e:
        await db.rollback()
        logger.warning("Loyalty transaction refused for user %s: %s", user_id, e.message)
        raise
    except Exception:
        await db.rollback()
        logger.exception("Error recording loyalty transaction for user %s", user_id)
        raise

    logger.info(
        "Recorded %s transaction #%s for user %s: %+d points",
        type.value, transaction.id, user_id, points,
    )
    return transaction.id


async def award_welcome_bonus(
    db: AsyncSession, user_id: int, settings: Optional[LoyaltySettings] = None
) -> Optional[int]:
    """
    Credit the welcome bonus once per user.

    No-op when the configured bonus is zero or absent, or when the user
    already received it.
    """
    settings = settings or await get_loyalty_settings(db)
    points = settings.welcome_bonus_points or 0
    if points <= 0:
        return None

    already_awarded = await db.scalar(
        select(User.welcome_bonus_awarded).where(User.id == user_id)
    )
    if already_awarded is None:
        raise UserNotFoundError()
    if already_awarded:
        logger.info("Welcome bonus already awarded to user %s", user_id)
        return None

    return await record_transaction(
        db,
        user_id,
        LoyaltyTransactionType.BONUS,
        points,
        WELCOME_BONUS_DESCRIPTION,
        idempotency_key=f"welcome-bonus:{user_id}",
        user_values={"welcome_bonus_awarded": True},
    )


async def award_appointment_points(
    db: AsyncSession,
    user_id: int,
    appointment_id: Optional[int] = None,
    settings: Optional[LoyaltySettings] = None,
) -> Optional[int]:
    """Credit the points earned for a completed appointment."""
    settings = settings or await get_loyalty_settings(db)
    points = settings.points_per_appointment
    if points <= 0:
        return None

    return await record_transaction(
        db,
        user_id,
        LoyaltyTransactionType.APPOINTMENT_COMPLETED,
        points,
        APPOINTMENT_DESCRIPTION,
        related_appointment_id=appointment_id,
        idempotency_key=f"appointment:{appointment_id}" if appointment_id is not None else None,
    )


async def adjust_points(
    db: AsyncSession,
    user_id: int,
    points: int,
    description: Optional[str] = None,
    admin_id: Optional[int] = None,
) -> int:
    """Manual credit or debit by an administrator. Debits cannot overdraw."""
    if points == 0:
        raise InvalidPointsError()

    if not description:
        description = MANUAL_CREDIT_DESCRIPTION if points > 0 else MANUAL_DEBIT_DESCRIPTION

    return await record_transaction(
        db,
        user_id,
        LoyaltyTransactionType.MANUAL_ADJUSTMENT,
        points,
        description,
        created_by=admin_id,
        min_balance=-points if points < 0 else None,
    )


async def deduct_points(
    db: AsyncSession,
    user_id: int,
    points: int,
    reward_id: Optional[int],
    description: str,
    minimum_balance: Optional[int] = None,
) -> LoyaltyTransaction:
    """
    Stage a redemption debit without committing; the caller commits.

    The balance must hold at least ``points`` (and ``minimum_balance`` when
    given) at write time, otherwise ``InsufficientPointsError`` is raised.
    """
    if points < 0:
        raise InvalidPointsError("Points to deduct cannot be negative")

    return await append_transaction(
        db,
        user_id,
        LoyaltyTransactionType.REWARD_REDEMPTION,
        -points,
        description,
        min_balance=max(points, minimum_balance or 0),
        related_reward_id=reward_id,
    )


async def reconcile_balance(db: AsyncSession, user_id: int) -> Tuple[int, int]:
    """
    Recompute a user's balance from the ledger.

    Returns ``(previous_balance, ledger_balance)``. The user row is locked and
    the balance is rewritten from the ledger sum by a single UPDATE, so an award
    committed while the job runs is never overwritten.
    """
    row = (
        await db.execute(
            select(User.id, User.loyalty_points).where(User.id == user_id).with_for_update()
        )
    ).first()
    if row is None:
        raise UserNotFoundError()
    previous = row.loyalty_points or 0

    ledger_sum = (
        select(func.coalesce(func.sum(LoyaltyTransaction.points), 0))
        .where(LoyaltyTransaction.user_id == user_id)
        .scalar_subquery()
    )
    try:
        await db.execute(
            update(User)
            .where(User.id == user_id)
            .values(loyalty_points=ledger_sum)
            .execution_options(synchronize_session="fetch")
        )
        ledger_balance = await db.scalar(select(User.loyalty_points).where(User.id == user_id))
        await db.commit()
    except Exception:
        await db.rollback()
        logger.exception("Error reconciling balance of user %s", user_id)
        raise

    if previous != ledger_balance:
        logger.warning(
            "Balance of user %s drifted from ledger: %s -> %s", user_id, previous, ledger_balance
        )

    return previous, ledger_balance


async def reconcile_all_balances(db: AsyncSession) -> Dict[int, Tuple[int, int]]:
    """Reconcile every user and return the corrections that were applied."""
    user_ids = (await db.execute(select(User.id))).scalars().all()
    corrections = {}
    for user_id in user_ids:
        previous, ledger_balance = await reconcile_balance(db, user_id)
        if previous != ledger_balance:
            corrections[user_id] = (previous, ledger_balance)
    return corrections


# ==================== BALANCE & HISTORY ====================

async def get_user_points(db: AsyncSession, user_id: int) -> int:
    points = await db.scalar(select(User.loyalty_points).where(User.id == user_id))
    return points or 0


async def get_user_transactions(
    db: AsyncSession,
    user_id: int,
    limit: Optional[int] = None,
    offset: int = 0,
) -> List[LoyaltyTransaction]:
    """All transactions of a user, most recent first."""
    query = (
        select(LoyaltyTransaction)
        .where(LoyaltyTransaction.user_id == user_id)
        .order_by(LoyaltyTransaction.created_at.desc(), LoyaltyTransaction.id.desc())
        .offset(offset)
    )
    if limit is not None:
        query = query.limit(limit)

    result = await db.execute(query)
    return list(result.scalars().all())


async def list_members(db: AsyncSession, search: Optional[str] = None) -> List[User]:
    """Customers with their balances, highest balance first."""
    query = select(User).where(User.role == UserRole.USER)
    if search:
        pattern = f"%{search.lower()}%"
        query = query.where(
            or_(
                func.lower(User.email).like(pattern),
                func.lower(User.first_name).like(pattern),
                func.lower(User.last_name).like(pattern),
            )
        )

    result = await db.execute(query.order_by(User.loyalty_points.desc(), User.id))
    return list(result.scalars().all())
