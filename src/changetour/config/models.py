"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (CHANGETOUR__SECTION__KEY)
3. Repo YAML (.changetour/config.yaml)
4. Global YAML (~/.config/changetour/config.yaml)
5. Built-in defaults (this file)

Environment Variable Format:
    CHANGETOUR__<SECTION>__<KEY>=<VALUE>

Examples:
    CHANGETOUR__LOGGING__LEVEL=DEBUG
    CHANGETOUR__GROUPING__PROXIMITY_THRESHOLD=8
    CHANGETOUR__EXPLAIN__MODEL=gpt-4o-mini
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LogOutputConfig(BaseModel):
    """Single logging output configuration.

    Env vars: Not directly configurable via env (use YAML for multi-output).
    """

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        CHANGETOUR__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="INFO",
        description="Root log level. DEBUG logs every hunk split and resolution.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class DiffConfig(BaseModel):
    """Diff collection configuration.

    Env vars:
        CHANGETOUR__DIFF__CONTEXT_LINES: Context lines around each hunk
    """

    context_lines: int = Field(
        default=0,
        description="Unchanged context lines per hunk. Zero keeps hunks tight so "
        "unrelated edits are never fused into one hunk.",
    )
    ignored_extensions: list[str] = Field(
        default_factory=lambda: [".md"],
        description="File extensions whose hunks are dropped from the tour.",
    )

    @field_validator("context_lines")
    @classmethod
    def validate_context_lines(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"context_lines must be >= 0, got {v}")
        return v

    @field_validator("ignored_extensions")
    @classmethod
    def normalize_extensions(cls, v: list[str]) -> list[str]:
        return [ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in v]


class GroupingConfig(BaseModel):
    """Unit grouping configuration.

    Env vars:
        CHANGETOUR__GROUPING__PROXIMITY_THRESHOLD: Max line gap inside one group
    """

    proximity_threshold: int = Field(
        default=5,
        description="Units in the same file and symbol whose line gap is at most "
        "this many lines share a group.",
    )

    @field_validator("proximity_threshold")
    @classmethod
    def validate_threshold(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"proximity_threshold must be >= 0, got {v}")
        return v


class ExplainConfig(BaseModel):
    """Explanation generator configuration.

    Env vars:
        CHANGETOUR__EXPLAIN__MODEL: Model name sent to the responses endpoint
        CHANGETOUR__EXPLAIN__API_BASE: Base URL of an OpenAI-compatible API
        CHANGETOUR__EXPLAIN__API_KEY_ENV: Name of the env var holding the API key
    """

    model: str = "gpt-4o"
    api_base: str = "https://api.openai.com/v1"
    api_key_env: str = Field(
        default="OPENAI_API_KEY",
        description="Environment variable read for the bearer token. "
        "The key itself is never stored in config.",
    )
    timeout_sec: float = 60.0
    max_file_context_chars: int = Field(
        default=12000,
        description="File text beyond this size is truncated (head and tail kept).",
    )
    placeholder_main: str = "Explanation pending."
    placeholder_background: str = "Background context pending."

    @field_validator("max_file_context_chars")
    @classmethod
    def validate_max_chars(cls, v: int) -> int:
        if v < 64:
            raise ValueError(f"max_file_context_chars must be >= 64, got {v}")
        return v


class StoreConfig(BaseModel):
    """Explanation cache and debug dump locations, relative to the repo root."""

    directory: str = ".changetour"
    explanations_file: str = "explanations.json"
    debug_log_file: str = "tour-debug.txt"


class OverallConfig(BaseModel):
    """Overall (whole-repository) exploration mode.

    Env vars:
        CHANGETOUR__OVERALL__EXCLUDE_DIRS: JSON list of directory names to skip
    """

    include_globs: list[str] = Field(
        default_factory=lambda: [
            "**/*.py",
            "**/*.js",
            "**/*.jsx",
            "**/*.cjs",
            "**/*.mjs",
            "**/*.ts",
            "**/*.tsx",
        ]
    )
    exclude_dirs: list[str] = Field(
        default_factory=lambda: ["node_modules", "dist", "out", ".git", ".venv", "__pycache__"]
    )


class ChangeTourConfig(BaseModel):
    """Root configuration for ChangeTour.

    All settings can be configured via:
    1. Environment variables: CHANGETOUR__SECTION__KEY
    2. YAML config files (repo or global)
    3. Direct kwargs to load_config()
    """

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    diff: DiffConfig = Field(default_factory=DiffConfig)
    grouping: GroupingConfig = Field(default_factory=GroupingConfig)
    explain: ExplainConfig = Field(default_factory=ExplainConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    overall: OverallConfig = Field(default_factory=OverallConfig)
