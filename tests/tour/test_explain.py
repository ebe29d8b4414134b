"""Tests for explanation generators."""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

import httpx
import pytest

from changetour.config.models import ExplainConfig
from changetour.core.errors import ErrorCode, ExplanationError
from changetour.core.ranges import LineRange
from changetour.diff.context import BuildContext
from changetour.diff.models import ChangeUnit, CodeRegion
from changetour.tour.explain import (
    TRUNCATION_MARKER,
    PlaceholderExplainer,
    ResponsesExplainer,
    extract_output_text,
    truncate,
)

HEAD = "def bar():\n    return 1\n\n\ndef other():\n    pass\n"
NOW = HEAD + "\n\ndef foo():\n    return bar()\n"

UNIT = ChangeUnit(
    file_path="a.py",
    range=LineRange(9, 10),
    diff_text="@@ -6,0 +7,4 @@\n+\n+\n+def foo():\n+    return bar()",
    change_kind="definition",
    symbol_name="foo",
)
REGION = CodeRegion("a.py", LineRange(1, 2), "bar")


class Transport:
    """Mock transport that records requests and answers each with the same response."""

    def __init__(self, status_code: int, **kwargs: Any) -> None:
        self.status_code = status_code
        self.kwargs = kwargs
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, **self.kwargs)


@pytest.fixture
def context(make_context: Callable[..., BuildContext]) -> BuildContext:
    return make_context({"a.py": NOW}, {"a.py": HEAD})


def _explainer(
    context: BuildContext,
    transport: Transport,
    *,
    api_key: str | None = "sk-test",
    config: ExplainConfig | None = None,
) -> ResponsesExplainer:
    return ResponsesExplainer(
        config or ExplainConfig(api_base="https://llm.example/v1/", model="test-model"),
        context.reader,
        api_key=api_key,
        client=httpx.Client(transport=httpx.MockTransport(transport)),
    )


class TestTruncate:
    def test_short_text_untouched(self) -> None:
        assert truncate("abc", 10) == "abc"

    def test_head_and_tail_kept(self) -> None:
        text = "".join(chr(ord("a") + i % 26) for i in range(100))
        result = truncate(text, 50)
        assert result == text[:30] + TRUNCATION_MARKER + text[-4:]


class TestExtractOutputText:
    def test_direct_output_text(self) -> None:
        assert extract_output_text({"output_text": "  Adds foo.  "}) == "Adds foo."

    def test_nested_output_items(self) -> None:
        payload = {
            "output": [
                {"type": "reasoning", "content": []},
                {
                    "type": "message",
                    "content": [
                        {"type": "output_text", "text": "Adds "},
                        {"type": "refusal", "text": "ignored"},
                        {"type": "output_text", "text": "foo."},
                    ],
                },
            ]
        }
        assert extract_output_text(payload) == "Adds foo."

    @pytest.mark.parametrize("payload", [[], {"output": []}, {"output_text": "   "}])
    def test_unusable_payload(self, payload: object) -> None:
        with pytest.raises(ExplanationError) as exc_info:
            extract_output_text(payload)
        assert exc_info.value.code == ErrorCode.EXPLANATION_BAD_RESPONSE


class TestPlaceholderExplainer:
    def test_from_config(self) -> None:
        explainer = PlaceholderExplainer.from_config(
            ExplainConfig(placeholder_main="M", placeholder_background="B")
        )
        assert explainer.explain_unit(UNIT, "intent") == "M"
        assert explainer.explain_region(REGION) == "B"


class TestResponsesExplainer:
    """Requests against an OpenAI-compatible responses endpoint."""

    def test_unit_request(self, context: BuildContext) -> None:
        # Given
        transport = Transport(200, json={"output_text": "Adds foo, which calls bar."})

        # When
        with _explainer(context, transport) as explainer:
            text = explainer.explain_unit(UNIT, "  Simplify the API  ")

        # Then
        assert text == "Adds foo, which calls bar."
        request = transport.requests[0]
        assert str(request.url) == "https://llm.example/v1/responses"
        assert request.headers["Authorization"] == "Bearer sk-test"
        body = json.loads(request.content)
        assert body["model"] == "test-model"
        assert "AUTHOR INTENT: Simplify the API" in body["input"]
        assert "SYMBOL: foo" in body["input"]
        assert "+def foo():" in body["input"]

    def test_prompt_without_intent(self, context: BuildContext) -> None:
        explainer = _explainer(context, Transport(200))
        assert "AUTHOR INTENT" not in explainer.unit_prompt(UNIT, "   ")

    def test_region_prompt_has_head_excerpt(self, context: BuildContext) -> None:
        explainer = _explainer(context, Transport(200))

        prompt = explainer.region_prompt(REGION)

        assert "DEFINITION (HEAD):\ndef bar():\n    return 1\n" in prompt
        assert "SYMBOL: bar" in prompt

    def test_file_context_read_once(self, context: BuildContext) -> None:
        transport = Transport(200, json={"output_text": "ok"})
        explainer = _explainer(context, transport)

        explainer.explain_unit(UNIT)
        explainer.explain_region(REGION)

        assert context.reader.head_reads == ["a.py"]  # type: ignore[attr-defined]
        assert len(transport.requests) == 2

    def test_large_file_truncated_in_prompt(self, context: BuildContext) -> None:
        config = ExplainConfig(max_file_context_chars=64)
        explainer = _explainer(context, Transport(200), config=config)
        assert TRUNCATION_MARKER in explainer.unit_prompt(UNIT)

    def test_http_error_is_retryable_failure(self, context: BuildContext) -> None:
        explainer = _explainer(context, Transport(503, text="busy"))

        with pytest.raises(ExplanationError) as exc_info:
            explainer.explain_unit(UNIT)

        assert exc_info.value.code == ErrorCode.EXPLANATION_REQUEST_FAILED
        assert exc_info.value.retryable
        assert exc_info.value.details["status"] == 503

    def test_invalid_json_is_bad_response(self, context: BuildContext) -> None:
        explainer = _explainer(context, Transport(200, text="<html>"))

        with pytest.raises(ExplanationError) as exc_info:
            explainer.explain_region(REGION)

        assert exc_info.value.code == ErrorCode.EXPLANATION_BAD_RESPONSE

    def test_missing_key_fails_without_request(
        self, context: BuildContext, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.delenv("CHANGETOUR_TEST_KEY", raising=False)
        transport = Transport(200, json={"output_text": "ok"})
        config = ExplainConfig(api_key_env="CHANGETOUR_TEST_KEY")
        explainer = _explainer(context, transport, api_key=None, config=config)

        with pytest.raises(ExplanationError) as exc_info:
            explainer.explain_unit(UNIT)

        assert "CHANGETOUR_TEST_KEY" in exc_info.value.message
        assert transport.requests == []

    def test_key_read_from_environment(
        self, context: BuildContext, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("CHANGETOUR_TEST_KEY", "sk-env")
        transport = Transport(200, json={"output_text": "ok"})
        config = ExplainConfig(api_key_env="CHANGETOUR_TEST_KEY")

        _explainer(context, transport, api_key=None, config=config).explain_unit(UNIT)

        assert transport.requests[0].headers["Authorization"] == "Bearer sk-env"
