"""
WalletTransaction model — the append-only wallet ledger.

Every change to a user's wallet balance creates exactly one WalletTransaction
in the same database transaction as the balance update. Rows are never
updated or deleted; corrections are new rows.

Key fields:
  - type: deposit | withdrawal | purchase | refund — the direction of money flow
  - amount_cents: Always positive (the direction is implied by the type)
  - order_id: Weak back-reference to the storefront order a purchase or
    refund belongs to (no foreign key — orders live in another module)

Why amount_cents is always positive:
  Storing a positive amount with a separate type field is clearer than
  using signed integers. The signed contribution to the balance is derived
  from the type (see SIGNS), and the ledger sum uses the same mapping.
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Integer, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column

from wallet_ledger.database import Base


class WalletTransactionType(str, enum.Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    PURCHASE = "purchase"
    REFUND = "refund"


# +1 credits the wallet, -1 debits it
SIGNS: dict[WalletTransactionType, int] = {
    WalletTransactionType.DEPOSIT: 1,
    WalletTransactionType.REFUND: 1,
    WalletTransactionType.WITHDRAWAL: -1,
    WalletTransactionType.PURCHASE: -1,
}

# Largest amount a single ledger entry or deposit request may carry
# (10,000,000.00). Balances stay far inside a 64-bit integer column.
MAX_AMOUNT_CENTS = 1_000_000_000


class WalletTransaction(Base):
    __tablename__ = "wallet_transactions"

    __table_args__ = (
        # Amount must always be positive; direction is indicated by type
        CheckConstraint("amount_cents > 0", name="ck_wallet_transactions_positive_amount"),
        CheckConstraint(
            "type IN ('deposit', 'withdrawal', 'purchase', 'refund')",
            name="ck_wallet_transactions_type",
        ),
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

    type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        index=True,
    )

    description: Mapped[str | None] = mapped_column(
        String(500),
        nullable=True,
    )

    # Lookup only, no FK
    order_id: Mapped[uuid.UUID | None] = mapped_column(
        nullable=True,
        index=True,
    )

    # Immutable; indexed for the default created_at.desc listing
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
    )

    @property
    def amount(self) -> float:
        return self.amount_cents / 100
