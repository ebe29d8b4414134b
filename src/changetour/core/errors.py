"""ChangeTour error types with typed error codes.

Error code ranges:
- 2xxx: Config
- 5xxx: Tour / explanation
- 9xxx: Internal
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002
    CONFIG_FILE_NOT_FOUND = 2004

    # Tour / explanation (5xxx)
    EXPLANATION_REQUEST_FAILED = 5001
    EXPLANATION_BAD_RESPONSE = 5002
    STORE_WRITE_FAILED = 5003

    # Internal (9xxx)
    INTERNAL_ERROR = 9001
    INTERNAL_INVARIANT = 9003


@dataclass(frozen=True, slots=True)
class ChangeTourError(Exception):
    """Base error with structured context."""

    code: ErrorCode
    message: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'CONFIG_PARSE_ERROR')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class ConfigError(ChangeTourError):
    """Configuration-related errors."""

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )

    @classmethod
    def file_not_found(cls, path: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_FILE_NOT_FOUND,
            message=f"Config file not found: {path}",
            details={"path": path},
        )


class ExplanationError(ChangeTourError):
    """Failures of the external explanation generator."""

    @classmethod
    def request_failed(cls, reason: str, **details: Any) -> "ExplanationError":
        return cls(
            code=ErrorCode.EXPLANATION_REQUEST_FAILED,
            message=f"Explanation request failed: {reason}",
            retryable=True,
            details=details,
        )

    @classmethod
    def bad_response(cls, reason: str, **details: Any) -> "ExplanationError":
        return cls(
            code=ErrorCode.EXPLANATION_BAD_RESPONSE,
            message=f"Explanation response unusable: {reason}",
            details=details,
        )


class StoreError(ChangeTourError):
    """Explanation cache persistence errors."""

    @classmethod
    def write_failed(cls, path: str, reason: str) -> "StoreError":
        return cls(
            code=ErrorCode.STORE_WRITE_FAILED,
            message=f"Failed to write explanation store at {path}: {reason}",
            details={"path": path, "reason": reason},
        )


class InternalError(ChangeTourError):
    """Internal/unexpected errors."""

    @classmethod
    def unexpected(cls, reason: str, **details: Any) -> "InternalError":
        return cls(
            code=ErrorCode.INTERNAL_ERROR,
            message=f"Internal error: {reason}",
            details=details,
        )

    @classmethod
    def invariant_violation(cls, reason: str, **details: Any) -> "InternalError":
        return cls(
            code=ErrorCode.INTERNAL_INVARIANT,
            message=f"Invariant violated: {reason}",
            details=details,
        )
