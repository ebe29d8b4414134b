"""Core module exports."""

from changetour.core.errors import (
    ChangeTourError,
    ConfigError,
    ErrorCode,
    ExplanationError,
    InternalError,
    StoreError,
)
from changetour.core.logging import (
    clear_build_id,
    configure_logging,
    get_build_id,
    set_build_id,
)

__all__ = [
    # Errors
    "ChangeTourError",
    "ConfigError",
    "ErrorCode",
    "ExplanationError",
    "InternalError",
    "StoreError",
    # Logging
    "clear_build_id",
    "configure_logging",
    "get_build_id",
    "set_build_id",
]
