"""Domain-level exception primitives with stable machine-readable codes."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    VALIDATION_ERROR = "VALIDATION_ERROR"
    DUPLICATE_EMAIL = "DUPLICATE_EMAIL"
    WEAK_PASSWORD = "WEAK_PASSWORD"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    ACCOUNT_DISABLED = "ACCOUNT_DISABLED"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    EQUIPMENT_NOT_FOUND = "EQUIPMENT_NOT_FOUND"
    TAG_ALREADY_ASSIGNED = "TAG_ALREADY_ASSIGNED"
    NO_TAG_ASSIGNED = "NO_TAG_ASSIGNED"
    TOKEN_MISSING = "TOKEN_MISSING"
    TOKEN_INVALID = "TOKEN_INVALID"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    FORBIDDEN = "FORBIDDEN"
    RESET_TOKEN_INVALID = "RESET_TOKEN_INVALID"
    RATE_LIMITED = "RATE_LIMITED"
    SERVER_MISCONFIGURED = "SERVER_MISCONFIGURED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


HTTP_STATUS_BY_CODE: dict[ErrorCode, int] = {
    ErrorCode.VALIDATION_ERROR: 400,
    ErrorCode.DUPLICATE_EMAIL: 409,
    ErrorCode.WEAK_PASSWORD: 400,
    ErrorCode.INVALID_CREDENTIALS: 401,
    ErrorCode.ACCOUNT_DISABLED: 401,
    ErrorCode.USER_NOT_FOUND: 404,
    ErrorCode.EQUIPMENT_NOT_FOUND: 404,
    ErrorCode.TAG_ALREADY_ASSIGNED: 409,
    ErrorCode.NO_TAG_ASSIGNED: 400,
    ErrorCode.TOKEN_MISSING: 401,
    ErrorCode.TOKEN_INVALID: 401,
    ErrorCode.TOKEN_EXPIRED: 401,
    ErrorCode.FORBIDDEN: 403,
    ErrorCode.RESET_TOKEN_INVALID: 400,
    ErrorCode.RATE_LIMITED: 429,
    ErrorCode.SERVER_MISCONFIGURED: 500,
    ErrorCode.INTERNAL_ERROR: 500,
}


@dataclass(eq=False)
class DomainError(Exception):
    """Use-case level error with stable code and HTTP mapping."""

    code: str
    http_status: int
    message: str
    details: dict[str, Any] | None = None
    headers: dict[str, str] | None = None

    def __str__(self) -> str:
        return self.message


def domain_error(
    code: ErrorCode,
    message: str,
    *,
    details: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
) -> DomainError:
    """Build a DomainError whose HTTP status comes from the code table."""
    return DomainError(
        code=code.value,
        http_status=HTTP_STATUS_BY_CODE[code],
        message=message,
        details=details,
        headers=headers,
    )
