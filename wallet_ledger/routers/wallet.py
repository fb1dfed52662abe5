"""
Wallet router — a signed-in user's own wallet.

Endpoints:
  GET /wallet/me/balance        — Own balance (stored and recomputed)
  GET /wallet/me/transactions   — Own ledger, newest first (x-total-count)

Both are scoped to the authenticated user; there is no way to read another
user's wallet here. Admins use /admin/users/{id}/wallet for that.
"""

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from wallet_ledger.database import get_db
from wallet_ledger.dependencies import get_current_user
from wallet_ledger.models.user import User
from wallet_ledger.models.wallet_transaction import WalletTransactionType
from wallet_ledger.schemas.wallet import WalletBalanceResponse, WalletTransactionResponse
from wallet_ledger.services import wallet_service
from wallet_ledger.routers.wallet_transactions import ORDER_PATTERN

router = APIRouter()


@router.get(
    "/me/balance",
    response_model=WalletBalanceResponse,
    summary="Get my wallet balance",
)
async def get_my_balance(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Current balance, plus the balance recomputed from the ledger."""
    return await wallet_service.get_wallet_balance(db, user.id)


@router.get(
    "/me/transactions",
    response_model=list[WalletTransactionResponse],
    summary="List my wallet transactions",
)
async def list_my_transactions(
    response: Response,
    type: WalletTransactionType | None = Query(None),
    order: str = Query("created_at.desc", pattern=ORDER_PATTERN),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    rows, total = await wallet_service.list_wallet_transactions(
        db=db,
        user_id=user.id,
        type_filter=type,
        order=order,
        limit=limit,
        offset=offset,
    )
    response.headers["x-total-count"] = str(total)
    return rows
