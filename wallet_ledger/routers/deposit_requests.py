"""
Deposit requests router — the top-up approval workflow.

Endpoints:
  GET   /wallet_deposit_requests        — [Admin] List requests (x-total-count)
  POST  /wallet_deposit_requests        — File a request (any signed-in user)
  PATCH /wallet_deposit_requests/{id}   — [Admin] Review: status, notes, proof

Notifications are emitted after the service has committed, so a failing
notifier can never undo or block a deposit.
"""

import uuid

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from wallet_ledger.database import get_db
from wallet_ledger.dependencies import get_current_user, require_admin
from wallet_ledger.models.user import User, UserType
from wallet_ledger.models.wallet_deposit_request import DepositRequestStatus
from wallet_ledger.schemas.wallet import (
    DepositRequestCreate,
    DepositRequestPatch,
    DepositRequestResponse,
)
from wallet_ledger.services import deposit_request_service, notification_service

router = APIRouter()

ORDER_PATTERN = r"^(created_at|updated_at|amount)(\.(asc|desc))?$"


@router.get(
    "",
    response_model=list[DepositRequestResponse],
    summary="[Admin] List deposit requests",
)
async def list_deposit_requests(
    response: Response,
    user_id: uuid.UUID | None = Query(None, description="Only this user's requests"),
    status: DepositRequestStatus | None = Query(None, description="pending, approved or rejected"),
    order: str = Query("created_at.desc", pattern=ORDER_PATTERN),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """
    List deposit requests with the requesting user's email and name joined.

    The total number of matching rows (ignoring limit/offset) is returned
    in the **x-total-count** header.
    """
    rows, total = await deposit_request_service.list_deposit_requests(
        db=db,
        user_id=user_id,
        status=status,
        order=order,
        limit=limit,
        offset=offset,
    )
    response.headers["x-total-count"] = str(total)
    return rows


@router.post(
    "",
    response_model=DepositRequestResponse,
    status_code=201,
    summary="File a deposit request",
)
async def create_deposit_request(
    request: DepositRequestCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Tell the store about an external payment (e.g. a bank transfer).

    The request starts as **pending**; the wallet is only credited once an
    admin approves it. Members always file for themselves; admins may pass
    **user_id** to file on a customer's behalf.
    """
    owner_id = user.id
    if user.user_type == UserType.ADMIN and request.user_id is not None:
        owner_id = request.user_id

    deposit_request = await deposit_request_service.create_deposit_request(
        db=db,
        user_id=owner_id,
        amount=request.amount,
        payment_method=request.payment_method,
        payment_proof=request.payment_proof,
    )

    notification_service.dispatcher.emit(
        notification_service.new_deposit_request_event(deposit_request)
    )
    return deposit_request


@router.patch(
    "/{request_id}",
    response_model=DepositRequestResponse,
    summary="[Admin] Review a deposit request",
)
async def patch_deposit_request(
    request_id: uuid.UUID,
    request: DepositRequestPatch,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """
    Approve or reject a pending request, or edit its notes and proof.

    - **pending → approved** credits the wallet exactly once
    - **pending → rejected** has no effect on the wallet
    - approved and rejected are final; changing them returns 409
    - **processed_at** is stamped on approval unless supplied
    """
    review = await deposit_request_service.patch_deposit_request(
        db=db,
        request_id=request_id,
        changes=request.changes(),
    )

    if review.just_approved:
        notification_service.dispatcher.emit(
            notification_service.deposit_approved_event(review.request, review.balance)
        )
    return review.request
