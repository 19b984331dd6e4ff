"""Judgment services: quote extraction, accuracy checks, fixes and section rewrites.

Each service is a small Protocol so the workflows can run against any
implementation. ``LLMJudgmentService`` satisfies all four through an
``LLMBackend`` and raises ``JudgmentServiceError`` when a call fails.
"""

from __future__ import annotations

import logging
from typing import AbstractSet, List, Mapping, Optional, Protocol, Sequence, runtime_checkable

from pydantic import BaseModel, Field

from citeguard.errors import JudgmentServiceError
from citeguard.llm import prompts
from citeguard.llm.pydantic_client import LLMBackend, PydanticAIClient
from citeguard.models import (
    AccuracyCheck,
    AgentConfig,
    EnrichedFlaggedCitation,
    FixProposal,
    QuoteExtraction,
    SettingsConfig,
)

logger = logging.getLogger(__name__)


@runtime_checkable
class QuoteExtractor(Protocol):
    model_name: str

    async def extract_quote(self, claim: str, source_text: str) -> QuoteExtraction: ...


@runtime_checkable
class AccuracyChecker(Protocol):
    async def check_accuracy(
        self, claim: str, evidence: str, source_title: Optional[str] = None
    ) -> AccuracyCheck: ...


@runtime_checkable
class FixGenerator(Protocol):
    async def generate_fixes(
        self,
        page_id: str,
        flagged: Sequence[EnrichedFlaggedCitation],
        page_content: str,
    ) -> List[FixProposal]: ...


@runtime_checkable
class SectionRewriter(Protocol):
    async def rewrite_section(
        self,
        section_text: str,
        evidence: Mapping[int, str],
        removable: AbstractSet[int],
    ) -> str: ...


class _QuoteLLMResponse(BaseModel):
    quote: str = ""
    location: str = "unknown"
    confidence: float = 0.0


class _AccuracyLLMResponse(BaseModel):
    verdict: str
    score: float = 0.5
    issues: List[str] = Field(default_factory=list)
    supporting_quotes: List[str] = Field(default_factory=list)
    verification_difficulty: str = ""


class LLMJudgmentService:
    def __init__(
        self,
        client: LLMBackend,
        settings: Optional[SettingsConfig] = None,
    ):
        self.client = client
        self.settings = settings or SettingsConfig()

    def _agent(self, name: str) -> AgentConfig:
        agent = self.settings.agents.get(name)
        if agent is None:
            raise JudgmentServiceError(f"No agent configured for '{name}'")
        return agent

    @property
    def model_name(self) -> str:
        return self._agent("quote_extraction").model

    async def _call(self, name: str, prompt: str, json_schema: dict | None = None) -> str:
        agent = self._agent(name)
        try:
            return await self.client.complete(
                prompt,
                model=agent.model,
                temperature=agent.temperature,
                json_schema=json_schema,
            )
        except Exception as exc:
            raise JudgmentServiceError(f"{name} call failed ({type(exc).__name__}): {exc}") from exc

    async def extract_quote(self, claim: str, source_text: str) -> QuoteExtraction:
        prompt = prompts.build_quote_prompt(
            claim, source_text, self.settings.accuracy.max_source_chars
        )
        raw = await self._call("quote_extraction", prompt, _QuoteLLMResponse.model_json_schema())
        return prompts.parse_quote_extraction_response(raw)

    async def check_accuracy(
        self, claim: str, evidence: str, source_title: Optional[str] = None
    ) -> AccuracyCheck:
        prompt = prompts.build_accuracy_prompt(
            claim, evidence, source_title, self.settings.accuracy.max_source_chars
        )
        raw = await self._call("accuracy_check", prompt, _AccuracyLLMResponse.model_json_schema())
        return prompts.parse_accuracy_check_response(raw)

    async def generate_fixes(
        self,
        page_id: str,
        flagged: Sequence[EnrichedFlaggedCitation],
        page_content: str,
    ) -> List[FixProposal]:
        if not flagged:
            return []
        prompt = prompts.build_fix_prompt(
            page_id,
            flagged,
            page_content,
            self.settings.repair.max_source_chars_per_citation,
        )
        # Plain text: the reply is a bare JSON array, which structured output can't express.
        raw = await self._call("fix_generation", prompt)
        proposals = prompts.parse_fix_response(raw)
        logger.debug("%s: %d fix proposals parsed", page_id, len(proposals))
        return proposals

    async def rewrite_section(
        self,
        section_text: str,
        evidence: Mapping[int, str],
        removable: AbstractSet[int],
    ) -> str:
        prompt = prompts.build_section_rewrite_prompt(section_text, evidence, removable)
        raw = await self._call("section_rewrite", prompt)
        rewritten = prompts.clean_rewritten_section(raw)
        if not rewritten.strip():
            raise JudgmentServiceError("section_rewrite returned empty text")
        return rewritten


def create_judgment_service(settings: SettingsConfig) -> LLMJudgmentService:
    return LLMJudgmentService(PydanticAIClient(), settings)
