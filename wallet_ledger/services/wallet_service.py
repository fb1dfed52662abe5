"""
Wallet service — balance mutations and the transaction ledger.

THIS IS THE MOST CRITICAL FILE IN THE PROJECT. It handles:
  - The one building block that changes a balance (apply_ledger_entry)
  - Direct admin adjustments
  - Purchase debits and refund credits for storefront orders
  - Balance integrity (stored balance vs. signed ledger sum)
  - Ledger listing

Atomicity:
  Every balance change and its ledger row are written inside the SAME
  database transaction. apply_ledger_entry() never commits; its callers
  wrap it in unit_of_work(), which commits both together or rolls both
  back. users.wallet_balance_cents therefore always equals the signed sum
  of the user's wallet_transactions.

Locking:
  The balance is never read and written back. It moves with one guarded
  UPDATE (balance = balance + delta WHERE balance + delta >= 0), which
  takes the row lock on PostgreSQL and the database write lock on SQLite.
  A second writer for the same user waits, then applies its delta to the
  committed result. Different users never share a row lock.

Money:
  Amounts arrive as decimals (e.g. Decimal("-50"), Decimal("12.345")) and
  are rounded half-up to whole cents before anything else happens.
"""

import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from wallet_ledger.database import unit_of_work
from wallet_ledger.exceptions import InsufficientBalanceError, InvalidAmountError
from wallet_ledger.models.wallet_transaction import (
    MAX_AMOUNT_CENTS,
    SIGNS,
    WalletTransaction,
    WalletTransactionType,
)
from wallet_ledger.services import user_directory


logger = logging.getLogger(__name__)

_CENT = Decimal("0.01")
_MAX_AMOUNT = Decimal(MAX_AMOUNT_CENTS) / 100

# Sortable columns for list_wallet_transactions (order="column.direction")
TRANSACTION_ORDER_COLUMNS = {
    "created_at": WalletTransaction.created_at,
    "amount": WalletTransaction.amount_cents,
}


@dataclass
class LedgerResult:
    """Outcome of one balance mutation."""
    balance_cents: int
    transaction: WalletTransaction

    @property
    def balance(self) -> float:
        return self.balance_cents / 100


# ---------------------------------------------------------------------------
# Money helpers
# ---------------------------------------------------------------------------

def to_cents(amount: Decimal | int | float | str) -> int:
    """
    Convert a decimal money amount to integer cents (half-up).

    Raises:
        InvalidAmountError: If the value is not a finite number or is larger
            than MAX_AMOUNT_CENTS allows.
    """
    try:
        value = amount if isinstance(amount, Decimal) else Decimal(str(amount).strip())
    except (InvalidOperation, ValueError):
        raise InvalidAmountError(f"Amount {amount!r} is not a number")

    if not value.is_finite():
        raise InvalidAmountError("Amount must be finite")

    if abs(value) > _MAX_AMOUNT:
        raise InvalidAmountError(f"Amount must not exceed {_MAX_AMOUNT}")

    return int((value.quantize(_CENT, rounding=ROUND_HALF_UP) * 100).to_integral_value())


def to_positive_cents(amount: Decimal | int | float | str) -> int:
    """Like to_cents(), but the result must be at least one cent."""
    cents = to_cents(amount)
    if cents <= 0:
        raise InvalidAmountError("Amount must be positive")
    return cents


# ---------------------------------------------------------------------------
# Core building block
# ---------------------------------------------------------------------------

async def _insert_ledger_entry(
    db: AsyncSession,
    user_id: uuid.UUID,
    txn_type: WalletTransactionType,
    amount_cents: int,
    description: str | None,
    order_id: uuid.UUID | None,
) -> WalletTransaction:
    txn = WalletTransaction(
        user_id=user_id,
        type=txn_type.value,
        amount_cents=amount_cents,
        description=description,
        order_id=order_id,
    )
    db.add(txn)
    await db.flush()
    return txn


async def apply_ledger_entry(
    db: AsyncSession,
    user_id: uuid.UUID,
    txn_type: WalletTransactionType,
    amount_cents: int,
    description: str | None = None,
    order_id: uuid.UUID | None = None,
) -> LedgerResult:
    """
    Move a user's balance and append the matching ledger row.

    Must run inside the caller's unit_of_work(); nothing is committed here.

    Steps:
      1. Move the balance by the signed amount in one guarded UPDATE
      2. If no row changed, tell a missing user from an overdraw
      3. Insert the ledger row

    Args:
        db: Database session (inside an open unit of work).
        user_id: Wallet owner.
        txn_type: Ledger entry type; decides the direction.
        amount_cents: Unsigned magnitude, > 0.
        description: Optional note stored on the ledger row.
        order_id: Optional storefront order reference.

    Returns:
        LedgerResult with the new balance and the created row.

    Raises:
        UserNotFoundError: If the user doesn't exist.
        InsufficientBalanceError: If a debit exceeds the balance.
        InvalidAmountError: If amount_cents is not positive.
    """
    if amount_cents <= 0:
        raise InvalidAmountError("Ledger amount must be positive")

    delta = SIGNS[txn_type] * amount_cents
    next_balance = await user_directory.change_balance(db, user_id, delta)

    if next_balance is None:
        # Raises UserNotFoundError for a missing user
        current = await user_directory.get_balance(db, user_id)
        raise InsufficientBalanceError(
            user_id=user_id,
            requested_cents=amount_cents,
            available_cents=current,
        )

    current = next_balance - delta
    txn = await _insert_ledger_entry(
        db,
        user_id=user_id,
        txn_type=txn_type,
        amount_cents=amount_cents,
        description=description,
        order_id=order_id,
    )

    logger.info(
        "wallet %s: %s %d cents, balance %d -> %d (txn %s)",
        user_id, txn_type.value, amount_cents, current, next_balance, txn.id,
    )
    return LedgerResult(balance_cents=next_balance, transaction=txn)


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------

async def adjust_user_wallet(
    db: AsyncSession,
    user_id: uuid.UUID,
    amount: Decimal | int | float | str,
    description: str | None = None,
) -> LedgerResult:
    """
    Admin adjustment: add (amount > 0) or remove (amount < 0) money.

    The ledger row is a deposit for positive amounts and a withdrawal for
    negative ones, always storing abs(amount).

    Raises:
        InvalidAmountError: Zero (after rounding to cents) or non-finite.
        UserNotFoundError: If the user doesn't exist.
        InsufficientBalanceError: If a withdrawal exceeds the balance.
    """
    cents = to_cents(amount)
    if cents == 0:
        raise InvalidAmountError("Adjustment amount must be non-zero")

    txn_type = WalletTransactionType.DEPOSIT if cents > 0 else WalletTransactionType.WITHDRAWAL

    async with unit_of_work(db):
        return await apply_ledger_entry(
            db,
            user_id=user_id,
            txn_type=txn_type,
            amount_cents=abs(cents),
            description=description,
        )


async def record_purchase(
    db: AsyncSession,
    user_id: uuid.UUID,
    amount: Decimal | int | float | str,
    order_id: uuid.UUID,
    description: str | None = None,
) -> LedgerResult:
    """Debit the wallet for a storefront order paid from the balance."""
    cents = to_positive_cents(amount)
    async with unit_of_work(db):
        return await apply_ledger_entry(
            db,
            user_id=user_id,
            txn_type=WalletTransactionType.PURCHASE,
            amount_cents=cents,
            description=description or f"Order {order_id}",
            order_id=order_id,
        )


async def record_refund(
    db: AsyncSession,
    user_id: uuid.UUID,
    amount: Decimal | int | float | str,
    order_id: uuid.UUID,
    description: str | None = None,
) -> LedgerResult:
    """Credit the wallet back for a cancelled or failed order."""
    cents = to_positive_cents(amount)
    async with unit_of_work(db):
        return await apply_ledger_entry(
            db,
            user_id=user_id,
            txn_type=WalletTransactionType.REFUND,
            amount_cents=cents,
            description=description or f"Refund for order {order_id}",
            order_id=order_id,
        )


# ---------------------------------------------------------------------------
# Balance integrity
# ---------------------------------------------------------------------------

async def compute_ledger_balance(db: AsyncSession, user_id: uuid.UUID) -> int:
    """Signed sum of a user's ledger in cents (credits minus debits)."""
    signed_amount = case(
        (
            WalletTransaction.type.in_(
                [t.value for t, sign in SIGNS.items() if sign > 0]
            ),
            WalletTransaction.amount_cents,
        ),
        else_=-WalletTransaction.amount_cents,
    )
    result = await db.execute(
        select(func.coalesce(func.sum(signed_amount), 0))
        .where(WalletTransaction.user_id == user_id)
    )
    return int(result.scalar())


async def get_wallet_balance(db: AsyncSession, user_id: uuid.UUID) -> dict:
    """
    Stored balance next to the balance recomputed from the ledger.

    A mismatch means the ledger invariant was broken somewhere.

    Raises:
        UserNotFoundError: If the user doesn't exist.
    """
    stored = await user_directory.get_balance(db, user_id)
    computed = await compute_ledger_balance(db, user_id)

    if stored != computed:
        logger.error(
            "wallet %s out of balance: stored %d cents, ledger %d cents",
            user_id, stored, computed,
        )

    return {
        "user_id": user_id,
        "balance": stored / 100,
        "computed_balance": computed / 100,
        "match": stored == computed,
    }


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------

def parse_order(order: str | None, columns: dict, default: str = "created_at"):
    """
    Turn "column.direction" into an ORDER BY clause.

    Unknown columns fall back to the default column; anything but "asc" is
    treated as "desc".
    """
    column_name, _, direction = (order or f"{default}.desc").partition(".")
    column = columns.get(column_name, columns[default])
    return column.asc() if direction == "asc" else column.desc()


async def list_wallet_transactions(
    db: AsyncSession,
    user_id: uuid.UUID | None = None,
    type_filter: WalletTransactionType | None = None,
    order: str | None = None,
    limit: int = 100,
    offset: int = 0,
) -> tuple[list[WalletTransaction], int]:
    """
    Page through ledger rows with optional user/type filters.

    Returns:
        (rows, total) where total counts every matching row, ignoring
        limit/offset.
    """
    filters = []
    if user_id is not None:
        filters.append(WalletTransaction.user_id == user_id)
    if type_filter is not None:
        filters.append(WalletTransaction.type == type_filter.value)

    total_result = await db.execute(
        select(func.count()).select_from(WalletTransaction).where(*filters)
    )
    total = total_result.scalar() or 0

    result = await db.execute(
        select(WalletTransaction)
        .where(*filters)
        .order_by(
            parse_order(order, TRANSACTION_ORDER_COLUMNS),
            WalletTransaction.id,
        )
        .limit(limit)
        .offset(offset)
    )
    return list(result.scalars().all()), total
