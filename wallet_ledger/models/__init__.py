"""
SQLAlchemy ORM models package.

All models are imported here so that:
  1. Base.metadata.create_all() and Alembic see every table
  2. Other modules can import from wallet_ledger.models directly
"""

from wallet_ledger.models.user import User, UserType  # noqa: F401
from wallet_ledger.models.wallet_transaction import (  # noqa: F401
    SIGNS,
    WalletTransaction,
    WalletTransactionType,
)
from wallet_ledger.models.wallet_deposit_request import (  # noqa: F401
    DepositRequestStatus,
    WalletDepositRequest,
)
