"""Explanation generators for tour steps.

The tour builder only depends on the ``Explainer`` protocol. The
``ResponsesExplainer`` talks to an OpenAI-compatible ``/responses``
endpoint over httpx; ``PlaceholderExplainer`` returns fixed text and is used
offline and in tests.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Protocol

import httpx
import structlog

from changetour.config.models import ExplainConfig
from changetour.core.errors import ExplanationError
from changetour.diff.context import SourceReader
from changetour.diff.models import ChangeUnit, CodeRegion
from changetour.git.errors import GitError

log = structlog.get_logger(__name__)

TRUNCATION_MARKER = "\n... [truncated] ...\n"


class Explainer(Protocol):
    """Produces plain-text narration for main and background steps."""

    def explain_unit(self, unit: ChangeUnit, intent: str | None = None) -> str: ...

    def explain_region(self, region: CodeRegion) -> str: ...


class PlaceholderExplainer:
    """Fixed text for every step."""

    def __init__(
        self,
        main_text: str = "Explanation pending.",
        background_text: str = "Background context pending.",
    ) -> None:
        self.main_text = main_text
        self.background_text = background_text

    @classmethod
    def from_config(cls, config: ExplainConfig) -> PlaceholderExplainer:
        return cls(config.placeholder_main, config.placeholder_background)

    def explain_unit(self, unit: ChangeUnit, intent: str | None = None) -> str:  # noqa: ARG002
        return self.main_text

    def explain_region(self, region: CodeRegion) -> str:  # noqa: ARG002
        return self.background_text


def truncate(text: str, max_chars: int) -> str:
    """Keep the first 60% and the tail of ``text`` when it exceeds ``max_chars``."""
    if len(text) <= max_chars:
        return text
    head = max(0, int(max_chars * 0.6))
    tail = max(0, max_chars - head - 16)
    return f"{text[:head]}{TRUNCATION_MARKER}{text[len(text) - tail:] if tail else ''}"


@dataclass(frozen=True, slots=True)
class FileContext:
    file_path: str
    original_text: str
    revised_text: str


def extract_output_text(payload: Any) -> str:
    """Pull the generated text out of a responses-API payload."""
    if not isinstance(payload, dict):
        raise ExplanationError.bad_response("response body is not an object")
    direct = payload.get("output_text")
    if isinstance(direct, str) and direct.strip():
        return direct.strip()

    parts: list[str] = []
    for item in payload.get("output") or []:
        if not isinstance(item, dict):
            continue
        for content in item.get("content") or []:
            if isinstance(content, dict) and content.get("type") == "output_text":
                text = content.get("text")
                if isinstance(text, str):
                    parts.append(text)
    joined = "".join(parts).strip()
    if not joined:
        raise ExplanationError.bad_response("no output text in response")
    return joined


class ResponsesExplainer:
    """Explainer backed by an OpenAI-compatible responses endpoint.

    File contexts (HEAD and working-tree text) are read once per path and
    kept for the life of the explainer. Requests are sent one at a time.
    """

    def __init__(
        self,
        config: ExplainConfig,
        reader: SourceReader,
        *,
        api_key: str | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self._config = config
        self._reader = reader
        self._api_key = api_key if api_key is not None else os.environ.get(config.api_key_env)
        self._client = client or httpx.Client(timeout=config.timeout_sec)
        self._contexts: dict[str, FileContext] = {}

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> ResponsesExplainer:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def _read(self, path: str, *, head: bool) -> str:
        try:
            return self._reader.read_head(path) if head else self._reader.read_now(path)
        except (OSError, GitError):
            return ""

    def _context(self, file_path: str) -> FileContext:
        cached = self._contexts.get(file_path)
        if cached is None:
            cached = FileContext(
                file_path=file_path,
                original_text=self._read(file_path, head=True),
                revised_text=self._read(file_path, head=False),
            )
            self._contexts[file_path] = cached
        return cached

    def unit_prompt(self, unit: ChangeUnit, intent: str | None = None) -> str:
        context = self._context(unit.file_path)
        limit = self._config.max_file_context_chars
        lines = [
            "You are explaining code changes to a developer.",
            "Focus only on the change and its effect.",
            "Use 2-4 concise sentences. Plain text only; no markdown.",
            "If something is unclear, state that explicitly.",
            "",
        ]
        if intent and intent.strip():
            lines += [f"AUTHOR INTENT: {intent.strip()}", ""]
        lines += [
            f"FILE: {unit.file_path}",
            f"SYMBOL: {unit.symbol_name or 'unknown'}",
            f"RANGE: {unit.range}",
            "DIFF:",
            unit.diff_text,
            "",
            "ORIGINAL FILE (HEAD):",
            truncate(context.original_text, limit),
            "",
            "REVISED FILE (WORKING TREE):",
            truncate(context.revised_text, limit),
        ]
        return "\n".join(lines)

    def region_prompt(self, region: CodeRegion) -> str:
        context = self._context(region.file_path)
        source_lines = context.original_text.splitlines()
        excerpt = "\n".join(source_lines[region.range.start_line - 1 : region.range.end_line])
        return "\n".join(
            [
                "You are providing background context needed to understand a code change.",
                "Focus on pre-existing behavior and structure in the ORIGINAL code.",
                "Use 2-4 concise sentences. Plain text only; no markdown.",
                "If something is unclear, state that explicitly.",
                "",
                f"FILE: {region.file_path}",
                f"SYMBOL: {region.label or 'unknown'}",
                f"RANGE: {region.range}",
                "DEFINITION (HEAD):",
                excerpt,
                "",
                "ORIGINAL FILE (HEAD):",
                truncate(context.original_text, self._config.max_file_context_chars),
            ]
        )

    def _complete(self, prompt: str) -> str:
        if not self._api_key:
            raise ExplanationError.request_failed(
                f"no API key in ${self._config.api_key_env}", env=self._config.api_key_env
            )
        url = f"{self._config.api_base.rstrip('/')}/responses"
        try:
            response = self._client.post(
                url,
                json={"model": self._config.model, "input": prompt},
                headers={"Authorization": f"Bearer {self._api_key}"},
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            raise ExplanationError.request_failed(
                f"HTTP {e.response.status_code}", url=url, status=e.response.status_code
            ) from e
        except httpx.RequestError as e:
            raise ExplanationError.request_failed(str(e), url=url) from e
        except ValueError as e:
            raise ExplanationError.bad_response(f"invalid JSON: {e}", url=url) from e
        return extract_output_text(payload)

    def explain_unit(self, unit: ChangeUnit, intent: str | None = None) -> str:
        text = self._complete(self.unit_prompt(unit, intent))
        log.debug("unit_explained", path=unit.file_path, range=str(unit.range), chars=len(text))
        return text

    def explain_region(self, region: CodeRegion) -> str:
        text = self._complete(self.region_prompt(region))
        log.debug("region_explained", path=region.file_path, range=str(region.range), chars=len(text))
        return text
