"""
Deposit request service — the top-up approval workflow.

Flow:
  1. A customer files a request (amount, payment method, proof URL).
     Nothing happens to the balance yet.
  2. An admin reviews it and PATCHes the status:
       pending -> approved   wallet credited through apply_ledger_entry()
       pending -> rejected   no ledger effect
     approved and rejected are terminal; leaving them is refused.

Exactly-once credit:
  The status change is a compare-and-swap:

      UPDATE wallet_deposit_requests
         SET status = 'approved', ...
       WHERE id = :id AND status = 'pending'

  Only the reviewer whose UPDATE matched a row credits the wallet, and the
  credit happens in the same transaction as the status change. A second
  reviewer (or a retried request) matches zero rows, re-reads the request,
  and either succeeds as a no-op (the status already is what they asked
  for) or gets invalid_status_transition.

  On PostgreSQL the request row is additionally locked with
  SELECT ... FOR UPDATE at the start of the review.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from wallet_ledger.config import settings
from wallet_ledger.database import unit_of_work
from wallet_ledger.exceptions import (
    DepositRequestNotFoundError,
    InvalidStatusTransitionError,
)
from wallet_ledger.models.wallet_deposit_request import (
    DepositRequestStatus,
    WalletDepositRequest,
)
from wallet_ledger.models.wallet_transaction import WalletTransactionType
from wallet_ledger.services import user_directory
from wallet_ledger.services.wallet_service import (
    apply_ledger_entry,
    parse_order,
    to_positive_cents,
)


logger = logging.getLogger(__name__)

DEPOSIT_REQUEST_ORDER_COLUMNS = {
    "created_at": WalletDepositRequest.created_at,
    "updated_at": WalletDepositRequest.updated_at,
    "amount": WalletDepositRequest.amount_cents,
}

# Accepted besides ISO 8601 (what the admin panel sends)
PROCESSED_AT_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass
class DepositReview:
    """Result of patch_deposit_request()."""
    request: WalletDepositRequest
    just_approved: bool = False
    balance_cents: int | None = None

    @property
    def balance(self) -> float | None:
        return None if self.balance_cents is None else self.balance_cents / 100


def parse_processed_at(value: str | datetime | None) -> datetime | None:
    """
    Parse a reviewer-supplied processed_at.

    None clears the field. Naive values are taken as UTC. A string that
    matches neither "YYYY-MM-DD HH:MM:SS" nor ISO 8601 falls back to now.
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        parsed = value
    else:
        text = value.strip()
        try:
            parsed = datetime.strptime(text, PROCESSED_AT_FORMAT)
        except ValueError:
            try:
                parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
            except ValueError:
                logger.warning("Unparseable processed_at %r, using now", value)
                return datetime.now(timezone.utc)

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


async def get_deposit_request(
    db: AsyncSession,
    request_id: uuid.UUID,
) -> WalletDepositRequest:
    """
    Load one request with its user joined (fresh from the database).

    Raises:
        DepositRequestNotFoundError: If the id is unknown.
    """
    result = await db.execute(
        select(WalletDepositRequest)
        .options(joinedload(WalletDepositRequest.user))
        .where(WalletDepositRequest.id == request_id)
        .execution_options(populate_existing=True)
    )
    request = result.scalar_one_or_none()
    if request is None:
        raise DepositRequestNotFoundError(request_id)
    return request


async def create_deposit_request(
    db: AsyncSession,
    user_id: uuid.UUID,
    amount: Decimal | int | float | str,
    payment_method: str | None = None,
    payment_proof: str | None = None,
) -> WalletDepositRequest:
    """
    File a new pending deposit request.

    Raises:
        InvalidAmountError: If amount is not at least one cent.
        UserNotFoundError: If the user doesn't exist.
    """
    amount_cents = to_positive_cents(amount)

    async with unit_of_work(db):
        await user_directory.get_user(db, user_id)
        request = WalletDepositRequest(
            user_id=user_id,
            amount_cents=amount_cents,
            payment_method=payment_method or settings.DEFAULT_PAYMENT_METHOD,
            payment_proof=payment_proof,
            status=DepositRequestStatus.PENDING.value,
        )
        db.add(request)
        await db.flush()
        request_id = request.id

    logger.info(
        "deposit request %s filed: user %s, %d cents via %s",
        request_id, user_id, amount_cents, request.payment_method,
    )
    return await get_deposit_request(db, request_id)


async def patch_deposit_request(
    db: AsyncSession,
    request_id: uuid.UUID,
    changes: dict,
) -> DepositReview:
    """
    Apply an admin review to a deposit request.

    Args:
        db: Database session.
        request_id: The request to update.
        changes: Only the fields the caller actually sent. Recognized keys:
                 status, admin_notes, payment_proof, processed_at.

    Returns:
        DepositReview with the reloaded request, whether THIS call moved it
        to approved, and the wallet balance after the credit.

    Raises:
        DepositRequestNotFoundError: Unknown id (nothing is changed).
        InvalidStatusTransitionError: Leaving approved/rejected, or going
                                      back to pending.
    """
    now = datetime.now(timezone.utc)
    just_approved = False
    balance_cents = None

    async with unit_of_work(db):
        result = await db.execute(
            select(WalletDepositRequest)
            .where(WalletDepositRequest.id == request_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        request = result.scalar_one_or_none()
        if request is None:
            raise DepositRequestNotFoundError(request_id)

        values = {}
        for field in ("admin_notes", "payment_proof"):
            if field in changes:
                values[field] = changes[field]
        if "processed_at" in changes:
            values["processed_at"] = parse_processed_at(changes["processed_at"])

        requested = changes.get("status")
        if requested is not None:
            requested = DepositRequestStatus(str(requested).lower())
            current = DepositRequestStatus(request.status)

            if requested != current:
                if current != DepositRequestStatus.PENDING or requested == DepositRequestStatus.PENDING:
                    raise InvalidStatusTransitionError(current.value, requested.value)

                swap_values = {"status": requested.value, "updated_at": now}
                if requested == DepositRequestStatus.APPROVED and "processed_at" not in changes:
                    swap_values["processed_at"] = now

                swap = await db.execute(
                    update(WalletDepositRequest)
                    .where(WalletDepositRequest.id == request_id)
                    .where(WalletDepositRequest.status == DepositRequestStatus.PENDING.value)
                    .values(**swap_values)
                    .execution_options(synchronize_session=False)
                )

                if swap.rowcount == 1:
                    just_approved = requested == DepositRequestStatus.APPROVED
                else:
                    # Another reviewer got there first
                    await db.refresh(request, attribute_names=["status"])
                    if request.status != requested.value:
                        raise InvalidStatusTransitionError(request.status, requested.value)
                    logger.info(
                        "deposit request %s already %s, not crediting again",
                        request_id, requested.value,
                    )

        if values:
            values["updated_at"] = now
            await db.execute(
                update(WalletDepositRequest)
                .where(WalletDepositRequest.id == request_id)
                .values(**values)
                .execution_options(synchronize_session=False)
            )

        if just_approved:
            credit = await apply_ledger_entry(
                db,
                user_id=request.user_id,
                txn_type=WalletTransactionType.DEPOSIT,
                amount_cents=request.amount_cents,
                description=f"Deposit request approved - {request.payment_method}",
            )
            balance_cents = credit.balance_cents

    if just_approved:
        logger.info("deposit request %s approved", request_id)

    return DepositReview(
        request=await get_deposit_request(db, request_id),
        just_approved=just_approved,
        balance_cents=balance_cents,
    )


async def list_deposit_requests(
    db: AsyncSession,
    user_id: uuid.UUID | None = None,
    status: DepositRequestStatus | None = None,
    order: str | None = None,
    limit: int = 100,
    offset: int = 0,
) -> tuple[list[WalletDepositRequest], int]:
    """
    List deposit requests, each with its user joined.

    Returns:
        (rows, total) where total ignores limit/offset.
    """
    filters = []
    if user_id is not None:
        filters.append(WalletDepositRequest.user_id == user_id)
    if status is not None:
        filters.append(WalletDepositRequest.status == status.value)

    total_result = await db.execute(
        select(func.count()).select_from(WalletDepositRequest).where(*filters)
    )
    total = total_result.scalar() or 0

    result = await db.execute(
        select(WalletDepositRequest)
        .options(joinedload(WalletDepositRequest.user))
        .where(*filters)
        .order_by(
            parse_order(order, DEPOSIT_REQUEST_ORDER_COLUMNS),
            WalletDepositRequest.id,
        )
        .limit(limit)
        .offset(offset)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all()), total
