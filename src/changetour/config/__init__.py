"""Configuration module."""

from changetour.config.loader import load_config
from changetour.config.models import (
    ChangeTourConfig,
    DiffConfig,
    ExplainConfig,
    GroupingConfig,
    LoggingConfig,
    LogOutputConfig,
    OverallConfig,
    StoreConfig,
)

__all__ = [
    "ChangeTourConfig",
    "DiffConfig",
    "ExplainConfig",
    "GroupingConfig",
    "LogOutputConfig",
    "LoggingConfig",
    "OverallConfig",
    "StoreConfig",
    "load_config",
]
