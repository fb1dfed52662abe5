"""
Wallet transactions router — the admin view of the ledger.

Endpoints:
  GET /wallet_transactions   — [Admin] List ledger rows (x-total-count)

The ledger is append-only; there are no write endpoints here. Rows are
created by deposit approvals, admin adjustments and the order hooks.
"""

import uuid

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from wallet_ledger.database import get_db
from wallet_ledger.dependencies import require_admin
from wallet_ledger.models.user import User
from wallet_ledger.models.wallet_transaction import WalletTransactionType
from wallet_ledger.schemas.wallet import WalletTransactionResponse
from wallet_ledger.services import wallet_service

router = APIRouter()

ORDER_PATTERN = r"^(created_at|amount)(\.(asc|desc))?$"


@router.get(
    "",
    response_model=list[WalletTransactionResponse],
    summary="[Admin] List wallet transactions",
)
async def list_wallet_transactions(
    response: Response,
    user_id: uuid.UUID | None = Query(None, description="Only this user's ledger"),
    type: WalletTransactionType | None = Query(
        None, description="deposit, withdrawal, purchase or refund"
    ),
    order: str = Query("created_at.desc", pattern=ORDER_PATTERN),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """
    List ledger rows across all users, newest first by default.

    The total number of matching rows is returned in **x-total-count**.
    """
    rows, total = await wallet_service.list_wallet_transactions(
        db=db,
        user_id=user_id,
        type_filter=type,
        order=order,
        limit=limit,
        offset=offset,
    )
    response.headers["x-total-count"] = str(total)
    return rows
