"""
Error catalog, domain exceptions, and FastAPI exception handlers.

Why custom exceptions?
  The service layer raises domain errors (like UserNotFoundError) without
  importing HTTP concepts. This module is the single place where those
  errors become HTTP responses, so every endpoint answers with the same
  shape:

      {"detail": "<human readable>", "error_type": "<machine code>"}

  The machine codes form a closed set (ErrorCode). Admin and storefront
  clients switch on error_type, never on the detail text.

Exception hierarchy:
    WalletAPIError (base)
    ├── InvalidAmountError               — amount not a usable money value
    ├── UserNotFoundError                — target user doesn't exist
    ├── DepositRequestNotFoundError      — deposit request id unknown
    ├── InvalidStatusTransitionError     — e.g. rejected -> approved
    ├── InsufficientBalanceError         — debit would overdraw the wallet
    ├── DuplicateEmailError              — signup with a taken email
    └── InvalidCredentialsError          — bad login
"""

import enum
import logging
import uuid

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse


logger = logging.getLogger(__name__)


class ErrorCode(str, enum.Enum):
    """Machine-readable error codes, paired with their HTTP status."""

    INVALID_AMOUNT = "invalid_amount"
    INVALID_BODY = "invalid_body"
    INVALID_QUERY = "invalid_query"
    INVALID_ID = "invalid_id"
    NOT_FOUND = "not_found"
    USER_NOT_FOUND = "user_not_found"
    INVALID_STATUS_TRANSITION = "invalid_status_transition"
    INSUFFICIENT_BALANCE = "insufficient_balance"
    DUPLICATE_EMAIL = "duplicate_email"
    INVALID_CREDENTIALS = "invalid_credentials"
    REQUEST_FAILED = "request_failed_500"

    @property
    def status_code(self) -> int:
        return _STATUS_CODES[self]


_STATUS_CODES = {
    ErrorCode.INVALID_AMOUNT: 400,
    ErrorCode.INVALID_BODY: 400,
    ErrorCode.INVALID_QUERY: 400,
    ErrorCode.INVALID_ID: 400,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.USER_NOT_FOUND: 404,
    ErrorCode.INVALID_STATUS_TRANSITION: 409,
    ErrorCode.DUPLICATE_EMAIL: 409,
    ErrorCode.INVALID_CREDENTIALS: 401,
    ErrorCode.INSUFFICIENT_BALANCE: 422,
    ErrorCode.REQUEST_FAILED: 500,
}


# ---------------------------------------------------------------------------
# Base exception
# ---------------------------------------------------------------------------

class WalletAPIError(Exception):
    """Base exception for all Wallet API domain errors."""

    code: ErrorCode = ErrorCode.REQUEST_FAILED

    def __init__(self, detail: str = "An error occurred"):
        self.detail = detail
        super().__init__(self.detail)

    def to_content(self) -> dict:
        return {"detail": self.detail, "error_type": self.code.value}


# ---------------------------------------------------------------------------
# Domain exceptions
# ---------------------------------------------------------------------------

class InvalidAmountError(WalletAPIError):
    """Raised when an amount is non-numeric, non-finite, zero, or has the wrong sign."""

    code = ErrorCode.INVALID_AMOUNT

    def __init__(self, detail: str = "Invalid amount"):
        super().__init__(detail)


class UserNotFoundError(WalletAPIError):
    """Raised when the wallet owner does not exist in the user directory."""

    code = ErrorCode.USER_NOT_FOUND

    def __init__(self, user_id: uuid.UUID):
        self.user_id = user_id
        super().__init__(f"User {user_id} not found")


class DepositRequestNotFoundError(WalletAPIError):
    """Raised when a deposit request id is unknown."""

    code = ErrorCode.NOT_FOUND

    def __init__(self, request_id: uuid.UUID):
        self.request_id = request_id
        super().__init__(f"Deposit request {request_id} not found")


class InvalidStatusTransitionError(WalletAPIError):
    """
    Raised when a deposit request would leave a terminal state.

    Only pending requests can be approved or rejected; approved and
    rejected are final.
    """

    code = ErrorCode.INVALID_STATUS_TRANSITION

    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(
            f"Cannot change deposit request status from {current} to {requested}"
        )


class InsufficientBalanceError(WalletAPIError):
    """
    Raised when a debit would make a wallet balance negative.

    Attributes:
        user_id: The wallet owner.
        requested_cents: The amount the caller tried to debit.
        available_cents: The current balance of the wallet.
    """

    code = ErrorCode.INSUFFICIENT_BALANCE

    def __init__(
        self,
        user_id: uuid.UUID,
        requested_cents: int,
        available_cents: int,
    ):
        self.user_id = user_id
        self.requested_cents = requested_cents
        self.available_cents = available_cents
        super().__init__(
            f"Insufficient balance: requested {requested_cents} cents, "
            f"available {available_cents} cents"
        )

    def to_content(self) -> dict:
        content = super().to_content()
        content["requested"] = self.requested_cents / 100
        content["available"] = self.available_cents / 100
        return content


class DuplicateEmailError(WalletAPIError):
    """Raised when attempting to register with an email that's already in use."""

    code = ErrorCode.DUPLICATE_EMAIL

    def __init__(self, email: str):
        self.email = email
        super().__init__(f"Email {email} is already registered")


class InvalidCredentialsError(WalletAPIError):
    """Raised when login credentials are incorrect."""

    code = ErrorCode.INVALID_CREDENTIALS

    def __init__(self):
        super().__init__("Invalid email or password")


# ---------------------------------------------------------------------------
# Validation error translation
# ---------------------------------------------------------------------------

def classify_validation_error(exc: RequestValidationError) -> ErrorCode:
    """
    Map a pydantic/FastAPI validation failure to one error code.

    Any problem with an ``amount`` field wins (the admin UI shows a
    dedicated message for it); otherwise the location of the first error
    decides between body, query and path.
    """
    errors = exc.errors()
    for error in errors:
        loc = error.get("loc") or ()
        if loc and loc[-1] == "amount":
            return ErrorCode.INVALID_AMOUNT

    source = (errors[0].get("loc") or ("body",))[0] if errors else "body"
    if source == "query":
        return ErrorCode.INVALID_QUERY
    if source == "path":
        return ErrorCode.INVALID_ID
    return ErrorCode.INVALID_BODY


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

def register_exception_handlers(app: FastAPI) -> None:
    """
    Register the exception handlers with the FastAPI application.

    This is called once during app construction in main.py.
    """

    @app.exception_handler(WalletAPIError)
    async def wallet_api_error_handler(
        request: Request, exc: WalletAPIError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.code.status_code,
            content=exc.to_content(),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        code = classify_validation_error(exc)
        return JSONResponse(
            status_code=code.status_code,
            content={
                "detail": "Request validation failed",
                "error_type": code.value,
                "errors": [
                    {"loc": list(e.get("loc", ())), "msg": e.get("msg")}
                    for e in exc.errors()
                ],
            },
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        logger.exception("%s %s failed", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={
                "detail": "Internal server error",
                "error_type": ErrorCode.REQUEST_FAILED.value,
            },
        )
