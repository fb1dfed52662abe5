"""
WalletDepositRequest model — a user's claim of an external payment.

A customer pays by bank transfer (or another offline method), then files a
deposit request with the amount and an optional proof URL. An admin reviews
it and either approves (the wallet is credited) or rejects it.

Lifecycle:
    pending ──► approved   (terminal, wallet credited exactly once)
       │
       └──────► rejected   (terminal, no ledger effect)

processed_at is stamped automatically on approval unless the reviewer sets
it explicitly.
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Integer, Text, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from wallet_ledger.database import Base
from wallet_ledger.models.user import User


class DepositRequestStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class WalletDepositRequest(Base):
    __tablename__ = "wallet_deposit_requests"

    __table_args__ = (
        CheckConstraint("amount_cents > 0", name="ck_wallet_deposit_requests_positive_amount"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )

    amount_cents: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    # Free-text label, "havale" (bank transfer) unless the user picks another
    payment_method: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default="havale",
    )

    # URL of the uploaded receipt/screenshot
    payment_proof: Mapped[str | None] = mapped_column(
        String(500),
        nullable=True,
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=DepositRequestStatus.PENDING.value,
        index=True,
    )

    admin_notes: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    processed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    # --- Relationships ---
    # Loaded explicitly (joinedload) by the service; async sessions can't lazy-load
    user: Mapped[User] = relationship(lazy="raise")

    @property
    def amount(self) -> float:
        return self.amount_cents / 100

    @property
    def user_email(self) -> str | None:
        return self.user.email if self.user is not None else None

    @property
    def user_full_name(self) -> str:
        if self.user is None:
            return str(self.user_id)
        return self.user.display_label
