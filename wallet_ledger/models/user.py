"""
User model — the storefront identity and the wallet owner.

Each User represents a login credential (email + hashed password) with a
defined role, plus the stored wallet balance.

User types:
  - ADMIN: Store administrator — reviews deposit requests, adjusts wallets
  - EMPLOYEE: Store staff — reserved for support tooling
  - MEMBER: Customer — the default role for signup

Wallet balance:
  `wallet_balance_cents` is the running balance in integer cents. It is
  only ever written by the wallet service, inside the same database
  transaction that appends the matching ledger row, so it always equals the
  signed sum of the user's wallet transactions.

  A CHECK constraint enforces that the balance can never go negative. The
  wallet service checks before debiting; the constraint is the final net
  against bugs or races.

The password is stored as an Argon2id hash — never in plaintext.
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Boolean, Integer, DateTime, Enum, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column

from wallet_ledger.database import Base


class UserType(str, enum.Enum):
    """
    Defines the role a user holds within the storefront.

    Inherits from str so the enum value serializes naturally to JSON
    and can be stored as a simple string in the database.
    """
    ADMIN = "admin"         # Store administrator: wallet review and adjustments
    EMPLOYEE = "employee"   # Store staff: operational access
    MEMBER = "member"       # Customer: standard access


class User(Base):
    __tablename__ = "users"

    __table_args__ = (
        CheckConstraint(
            "wallet_balance_cents >= 0",
            name="ck_users_non_negative_wallet_balance",
        ),
    )

    # Primary key: UUID provides globally unique IDs without sequential guessing
    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    # Email is the login identifier, must be unique and indexed for fast lookups
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )

    # Argon2id hash of the password (never store plaintext!)
    hashed_password: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    full_name: Mapped[str | None] = mapped_column(
        String(200),
        nullable=True,
    )

    # User role: determines access level throughout the system
    user_type: Mapped[UserType] = mapped_column(
        Enum(UserType),
        default=UserType.MEMBER,
        nullable=False,
    )

    # Soft-disable: deactivated users can't log in but their data is preserved
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    # Running wallet balance in cents, see module docstring
    wallet_balance_cents: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    # Audit timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    @property
    def display_label(self) -> str:
        """Name shown to admins: full name, else the email's local part, else a short id."""
        if self.full_name and self.full_name.strip():
            return self.full_name.strip()
        if self.email and self.email.strip():
            return self.email.strip().split("@")[0]
        raw = str(self.id)
        return f"{raw[:6]}…{raw[-4:]}"
