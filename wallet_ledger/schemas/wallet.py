"""
Pydantic schemas for the wallet endpoints.

Amounts are decimal numbers on the wire (e.g. 100.5) and integer cents in
the database. Requests accept any finite decimal; the service rounds to
cents (half-up). Responses always carry two-place floats.

Validation failures on any field named "amount" are reported as
invalid_amount (see exceptions.classify_validation_error).
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from wallet_ledger.models.wallet_transaction import MAX_AMOUNT_CENTS


MAX_AMOUNT = Decimal(MAX_AMOUNT_CENTS) / 100


# ---------------------------------------------------------------------------
# Deposit requests
# ---------------------------------------------------------------------------

class DepositRequestCreate(BaseModel):
    """Request body for POST /wallet_deposit_requests."""
    amount: Decimal = Field(gt=0, le=MAX_AMOUNT, description="Amount to top up (must be positive)")
    payment_method: str | None = Field(None, min_length=1, max_length=50)
    payment_proof: str | None = Field(None, max_length=500)
    # Honoured for admins only; members always file for themselves
    user_id: uuid.UUID | None = None


class DepositRequestPatch(BaseModel):
    """
    Request body for PATCH /wallet_deposit_requests/{id}.

    Every field is optional. Only the fields present in the body are
    applied; "processed_at": null explicitly clears the timestamp.
    """
    status: Literal["pending", "approved", "rejected"] | None = None
    admin_notes: str | None = None
    payment_proof: str | None = Field(None, max_length=500)
    processed_at: str | None = None

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value

    def changes(self) -> dict:
        """The fields the client actually sent."""
        return self.model_dump(include=self.model_fields_set)


class DepositRequestResponse(BaseModel):
    """Public representation of a deposit request, with its user joined."""
    id: uuid.UUID
    user_id: uuid.UUID
    amount: float
    payment_method: str
    payment_proof: str | None
    status: str
    admin_notes: str | None
    processed_at: datetime | None
    created_at: datetime
    updated_at: datetime
    user_email: str | None = None
    user_full_name: str | None = None

    model_config = {"from_attributes": True}


# ---------------------------------------------------------------------------
# Ledger
# ---------------------------------------------------------------------------

class WalletTransactionResponse(BaseModel):
    """Public representation of a ledger row."""
    id: uuid.UUID
    user_id: uuid.UUID
    type: str
    amount: float
    description: str | None
    order_id: uuid.UUID | None
    created_at: datetime

    model_config = {"from_attributes": True}


# ---------------------------------------------------------------------------
# Admin adjustment and balances
# ---------------------------------------------------------------------------

class WalletAdjustRequest(BaseModel):
    """
    Request body for POST /admin/users/{id}/wallet/adjust.

    Positive amounts credit the wallet, negative amounts debit it.
    """
    amount: Decimal = Field(allow_inf_nan=False, ge=-MAX_AMOUNT, le=MAX_AMOUNT)
    description: str | None = Field(None, max_length=500)

    @field_validator("amount")
    @classmethod
    def amount_must_be_non_zero(cls, value: Decimal) -> Decimal:
        if value == 0:
            raise ValueError("Amount must be non-zero")
        return value


class WalletAdjustResponse(BaseModel):
    ok: bool = True
    balance: float
    transaction: WalletTransactionResponse


class WalletBalanceResponse(BaseModel):
    """Stored balance next to the balance recomputed from the ledger."""
    user_id: uuid.UUID
    balance: float
    computed_balance: float
    match: bool
