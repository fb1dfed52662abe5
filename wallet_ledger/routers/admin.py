"""
Admin router — direct wallet operations on any user.

All endpoints require ADMIN role.

Endpoints:
  POST /admin/users/{user_id}/wallet/adjust  — Credit or debit a wallet
  GET  /admin/users/{user_id}/wallet         — Balance integrity check

Adjustments are the manual escape hatch (goodwill credits, corrections).
Each one writes exactly one ledger row: a deposit for a positive amount,
a withdrawal for a negative one.
"""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from wallet_ledger.database import get_db
from wallet_ledger.dependencies import require_admin
from wallet_ledger.models.user import User
from wallet_ledger.schemas.wallet import (
    WalletAdjustRequest,
    WalletAdjustResponse,
    WalletBalanceResponse,
    WalletTransactionResponse,
)
from wallet_ledger.services import wallet_service

router = APIRouter()


@router.post(
    "/users/{user_id}/wallet/adjust",
    response_model=WalletAdjustResponse,
    summary="[Admin] Adjust a user's wallet",
)
async def adjust_user_wallet(
    user_id: uuid.UUID,
    request: WalletAdjustRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """
    Add (**amount** > 0) or remove (**amount** < 0) money.

    - Amounts are rounded half-up to cents; zero is rejected
    - A debit larger than the balance returns 422 insufficient_balance
    - The balance update and the ledger row commit together or not at all
    """
    result = await wallet_service.adjust_user_wallet(
        db=db,
        user_id=user_id,
        amount=request.amount,
        description=request.description,
    )
    return WalletAdjustResponse(
        balance=result.balance,
        transaction=WalletTransactionResponse.model_validate(result.transaction),
    )


@router.get(
    "/users/{user_id}/wallet",
    response_model=WalletBalanceResponse,
    summary="[Admin] Get a user's wallet balance",
)
async def get_user_wallet(
    user_id: uuid.UUID,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """
    Stored balance next to the balance recomputed from the ledger.

    **match** is false only if the ledger and the stored balance have
    drifted apart, which signals a data integrity problem.
    """
    return await wallet_service.get_wallet_balance(db, user_id)
