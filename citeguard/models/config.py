"""Configuration models loaded from YAML."""

from __future__ import annotations

import datetime
from typing import Dict, List

from pydantic import BaseModel, Field


class AgentConfig(BaseModel):
    model: str
    temperature: float = Field(ge=0.0, le=1.0, default=0.0)


class PathsConfig(BaseModel):
    content_dir: str = "content"
    archive_dir: str = "data/citation-archive"
    accuracy_dir: str = "data/citation-accuracy"
    db_path: str = ".cache/citations.db"


class FetchConfig(BaseModel):
    timeout_seconds: float = Field(gt=0, default=15.0)
    user_agent: str = "Mozilla/5.0 (compatible; CiteguardCitationVerifier/1.0)"
    concurrency: int = Field(ge=1, le=50, default=5)
    batch_delay_ms: int = Field(ge=0, default=1000)
    snippet_chars: int = Field(ge=1, default=500)
    unverifiable_domains: List[str] = Field(
        default_factory=lambda: [
            "twitter.com",
            "x.com",
            "linkedin.com",
            "facebook.com",
            "t.co",
            "instagram.com",
            "tiktok.com",
        ]
    )
    academic_domains: List[str] = Field(
        default_factory=lambda: [
            "academic.oup.com",
            "jstor.org",
            "dl.acm.org",
            "ieee.org",
            "proceedings.neurips.cc",
            "cambridge.org",
        ]
    )


class IntegrityConfig(BaseModel):
    sequential_min_run: int = Field(
        ge=2,
        default=3,
        description="Run length of consecutive arXiv serials treated as suspicious. Tunable heuristic.",
    )
    arxiv_min_year: int = Field(ge=0, le=99, default=7)
    arxiv_max_year: int = Field(
        ge=0,
        le=99,
        default_factory=lambda: (datetime.date.today().year + 1) % 100,
    )


class RiskConfig(BaseModel):
    baseline: int = Field(ge=0, le=100, default=40)
    threshold_low: int = Field(ge=0, le=100, default=30)
    threshold_medium: int = Field(ge=0, le=100, default=60)


class RepairConfig(BaseModel):
    escalate: bool = True
    second_pass: bool = True
    min_length_ratio: float = Field(gt=0.0, default=0.3)
    max_length_ratio: float = Field(gt=0.0, default=3.0)
    source_replace_max_score: float = Field(ge=0.0, le=1.0, default=0.2)
    max_source_chars_per_citation: int = Field(ge=100, default=8000)
    page_concurrency: int = Field(ge=1, le=20, default=3)
    show_summary: bool = True


class AccuracyConfig(BaseModel):
    max_source_chars: int = Field(ge=1000, default=50_000)
    quote_verified_threshold: float = Field(ge=0.0, le=1.0, default=0.4)
    min_source_chars_for_llm: int = Field(ge=0, default=100)
    delay_ms: int = Field(ge=0, default=500)


class SearchConfig(BaseModel):
    num_results: int = Field(ge=1, le=50, default=5)
    max_query_chars: int = Field(ge=20, default=200)


def _default_agents() -> Dict[str, AgentConfig]:
    model = "google-gla:gemini-2.0-flash"
    return {
        "quote_extraction": AgentConfig(model=model),
        "accuracy_check": AgentConfig(model=model),
        "fix_generation": AgentConfig(model=model),
        "section_rewrite": AgentConfig(model="anthropic:claude-sonnet-4-5", temperature=0.2),
    }


class SettingsConfig(BaseModel):
    agents: Dict[str, AgentConfig] = Field(default_factory=_default_agents)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    fetch: FetchConfig = Field(default_factory=FetchConfig)
    integrity: IntegrityConfig = Field(default_factory=IntegrityConfig)
    risk: RiskConfig = Field(default_factory=RiskConfig)
    repair: RepairConfig = Field(default_factory=RepairConfig)
    accuracy: AccuracyConfig = Field(default_factory=AccuracyConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)
