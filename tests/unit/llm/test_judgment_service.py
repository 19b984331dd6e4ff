"""Unit tests for the LLM-backed judgment service with a scripted backend."""

import json

import pytest

from citeguard.errors import JudgmentServiceError
from citeguard.llm.judgment import (
    AccuracyChecker,
    FixGenerator,
    LLMJudgmentService,
    QuoteExtractor,
    SectionRewriter,
)
from citeguard.llm.pydantic_client import _is_gemini, _is_retryable
from citeguard.models import AccuracyVerdict, AgentConfig, EnrichedFlaggedCitation, SettingsConfig


class ScriptedBackend:
    def __init__(self, *replies):
        self.replies = list(replies)
        self.calls = []

    async def complete(self, prompt, *, model, temperature, json_schema=None):
        self.calls.append({"prompt": prompt, "model": model, "temperature": temperature, "schema": json_schema})
        reply = self.replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        return reply


def test_service_satisfies_every_judgment_protocol():
    service = LLMJudgmentService(ScriptedBackend())
    for protocol in (QuoteExtractor, AccuracyChecker, FixGenerator, SectionRewriter):
        assert isinstance(service, protocol)


@pytest.mark.asyncio
async def test_extract_quote_uses_schema_and_agent_model():
    backend = ScriptedBackend('{"quote": "ten million", "location": "p1", "confidence": 0.8}')
    settings = SettingsConfig()
    settings.agents["quote_extraction"] = AgentConfig(model="openai:gpt-4o-mini", temperature=0.1)
    service = LLMJudgmentService(backend, settings)

    result = await service.extract_quote("claim", "source")
    assert result.quote == "ten million"
    assert backend.calls[0]["model"] == "openai:gpt-4o-mini"
    assert backend.calls[0]["temperature"] == 0.1
    assert "quote" in backend.calls[0]["schema"]["properties"]
    assert service.model_name == "openai:gpt-4o-mini"


@pytest.mark.asyncio
async def test_check_accuracy_parses_reply():
    backend = ScriptedBackend(json.dumps({"verdict": "unsupported", "score": 0.1, "issues": ["absent"]}))
    result = await LLMJudgmentService(backend).check_accuracy("claim", "evidence", "Title")
    assert result.verdict == AccuracyVerdict.UNSUPPORTED
    assert 'Source title: "Title"' in backend.calls[0]["prompt"]


@pytest.mark.asyncio
async def test_generate_fixes_is_plain_text_call():
    reply = '```json\n[{"footnote": 1, "original": "costs $50", "replacement": "costs $45"}]\n```'
    backend = ScriptedBackend(reply)
    flagged = [EnrichedFlaggedCitation(page_id="p", footnote=1, verdict=AccuracyVerdict.INACCURATE)]
    proposals = await LLMJudgmentService(backend).generate_fixes("p", flagged, "It costs $50[^1].")
    assert proposals[0].replacement == "costs $45"
    assert backend.calls[0]["schema"] is None


@pytest.mark.asyncio
async def test_generate_fixes_without_flagged_makes_no_call():
    backend = ScriptedBackend()
    assert await LLMJudgmentService(backend).generate_fixes("p", [], "text") == []
    assert backend.calls == []


@pytest.mark.asyncio
async def test_backend_errors_become_judgment_errors():
    backend = ScriptedBackend(RuntimeError("503 UNAVAILABLE"))
    with pytest.raises(JudgmentServiceError, match="accuracy_check"):
        await LLMJudgmentService(backend).check_accuracy("c", "e")


@pytest.mark.asyncio
async def test_empty_rewrite_raises():
    backend = ScriptedBackend("```markdown\n\n```")
    with pytest.raises(JudgmentServiceError):
        await LLMJudgmentService(backend).rewrite_section("## A\n\ntext", {1: "ev"}, set())


@pytest.mark.asyncio
async def test_missing_agent_raises():
    settings = SettingsConfig(agents={})
    with pytest.raises(JudgmentServiceError, match="No agent configured"):
        await LLMJudgmentService(ScriptedBackend(), settings).extract_quote("c", "s")


@pytest.mark.parametrize(
    "message,expected",
    [
        ("429 Too Many Requests", True),
        ("Model is overloaded", True),
        ("RESOURCE_EXHAUSTED", True),
        ("401 Unauthorized", False),
        ("invalid schema", False),
    ],
)
def test_retryable_errors(message, expected):
    assert _is_retryable(RuntimeError(message)) is expected


def test_gemini_detection():
    assert _is_gemini("google-gla:gemini-2.0-flash")
    assert not _is_gemini("anthropic:claude-sonnet-4-5")
