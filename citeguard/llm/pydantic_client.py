"""PydanticAI-backed LLM client used by the judgment agents.

The provider is inferred from the model string prefix in
``config/settings.yaml`` (``google-gla:``, ``anthropic:``, ``openai:``,
``openrouter:``...). Gemini models get schema enforcement through
``NativeOutput``; other providers use the default tool-call output.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Protocol, runtime_checkable

from pydantic_ai import Agent, NativeOutput, StructuredDict
from pydantic_ai.settings import ModelSettings
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)

logger = logging.getLogger(__name__)

_GEMINI_PREFIXES = ("google-gla:", "google-vertex:")

_MAX_ATTEMPTS = 5
_BASE_DELAY = 2.0
_MAX_DELAY = 90.0

_RETRYABLE_CODES = {"429", "502", "503", "504"}
_RETRYABLE_MSGS = {"unavailable", "resource_exhausted", "rate", "overloaded", "gateway", "quota"}


@runtime_checkable
class LLMBackend(Protocol):
    """Anything that turns a prompt into text, or JSON when a schema is given."""

    async def complete(
        self,
        prompt: str,
        *,
        model: str,
        temperature: float,
        json_schema: dict | None = None,
    ) -> str: ...


def _is_gemini(model: str) -> bool:
    return model.startswith(_GEMINI_PREFIXES)


def _is_retryable(exc: BaseException) -> bool:
    s = str(exc).lower()
    return any(c in s for c in _RETRYABLE_CODES) or any(m in s for m in _RETRYABLE_MSGS)


async def _run_with_retry(agent: Agent[Any, Any], prompt: str, *, model_settings: ModelSettings) -> Any:
    """Run *agent*, retrying transient provider errors with jittered backoff.

    Non-retryable errors (auth, schema, bad request) propagate on first failure.
    """
    async for attempt in AsyncRetrying(
        retry=retry_if_exception(_is_retryable),
        stop=stop_after_attempt(_MAX_ATTEMPTS),
        wait=wait_exponential_jitter(initial=_BASE_DELAY, max=_MAX_DELAY),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    ):
        with attempt:
            return await agent.run(prompt, model_settings=model_settings)
    raise RuntimeError("unreachable")  # pragma: no cover


class PydanticAIClient:
    """Provider-agnostic client; switching models is a settings change only."""

    async def complete(
        self,
        prompt: str,
        *,
        model: str,
        temperature: float,
        json_schema: dict | None = None,
    ) -> str:
        """Return the completion as text, or as a JSON string when *json_schema* is given."""
        settings = ModelSettings(temperature=temperature)

        if json_schema is None:
            text_agent: Agent[None, str] = Agent(model, output_type=str)
            text_result = await _run_with_retry(text_agent, prompt, model_settings=settings)
            return text_result.output

        if _is_gemini(model):
            output_type = NativeOutput(StructuredDict(json_schema))
        else:
            output_type = StructuredDict(json_schema)
        agent: Agent = Agent(model, output_type=output_type)  # type: ignore[arg-type]
        result = await _run_with_retry(agent, prompt, model_settings=settings)
        output = result.output
        if isinstance(output, (dict, list)):
            return json.dumps(output)
        return str(output)
