"""
User directory — the wallet's view of the users table.

The wallet ledger only needs three things from user records: existence,
the stored balance, and a way to move it. Keeping these behind a small
module means the ledger never touches the users table any other way.

change_balance() must only be called from inside a wallet unit of work,
right before the matching ledger row is appended (see
wallet_service.apply_ledger_entry).
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from wallet_ledger.exceptions import UserNotFoundError
from wallet_ledger.models.user import User


async def get_user(db: AsyncSession, user_id: uuid.UUID) -> User:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise UserNotFoundError(user_id)
    return user


async def get_balance(db: AsyncSession, user_id: uuid.UUID) -> int:
    """
    Read a user's stored wallet balance in cents.

    Raises:
        UserNotFoundError: If the user doesn't exist.
    """
    result = await db.execute(
        select(User.wallet_balance_cents).where(User.id == user_id)
    )
    balance = result.scalar_one_or_none()
    if balance is None:
        raise UserNotFoundError(user_id)
    return balance


async def change_balance(
    db: AsyncSession,
    user_id: uuid.UUID,
    delta_cents: int,
) -> int | None:
    """
    Add delta_cents (may be negative) to a user's stored balance.

    A single UPDATE ... SET balance = balance + delta, so the row is
    changed relative to whatever is committed when the write lock is
    granted. Concurrent writers for the same user wait on each other
    instead of overwriting each other's result.

    Returns:
        The new balance in cents, or None when nothing was updated: the
        user doesn't exist or the result would be negative.
    """
    new_balance = User.wallet_balance_cents + delta_cents
    result = await db.execute(
        update(User)
        .where(User.id == user_id, new_balance >= 0)
        .values(
            wallet_balance_cents=new_balance,
            updated_at=datetime.now(timezone.utc),
        )
        .returning(User.wallet_balance_cents)
        .execution_options(synchronize_session="fetch")
    )
    return result.scalar_one_or_none()
