"""Integrity check and risk scoring results."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from citeguard.models.enums import RiskLevel


class OrphanedFootnotes(BaseModel):
    orphaned_refs: List[int] = Field(default_factory=list)
    total_refs: int = 0
    total_defs: int = 0
    orphaned_ratio: float = 0.0


class SequentialIdResult(BaseModel):
    suspicious: bool = False
    longest_run: int = 0
    sequential_ids: List[str] = Field(default_factory=list)


class UnsourcedFootnotes(BaseModel):
    unsourced: int = 0
    total_defs: int = 0
    unsourced_ratio: float = 0.0


class IntegrityResult(BaseModel):
    orphaned_footnotes: OrphanedFootnotes
    duplicate_footnote_defs: List[int] = Field(default_factory=list)
    sequential_arxiv_ids: SequentialIdResult
    unsourced_footnotes: UnsourcedFootnotes


class IntegrityRisk(BaseModel):
    score: int = 0
    factors: List[str] = Field(default_factory=list)


class AccuracyCounts(BaseModel):
    checked: int
    inaccurate: int


class RiskInput(BaseModel):
    """Snapshot of everything the hallucination risk scorer looks at.

    ``entity_type`` is resolved through the alias table before scoring, so
    raw frontmatter values like ``researcher`` may be passed directly.
    """

    entity_type: Optional[str] = None
    word_count: int = 0
    footnote_count: int = 0
    aux_citation_count: int = 0
    external_links: int = 0
    rigor: Optional[float] = Field(default=None, ge=0, le=10)
    quality: Optional[float] = Field(default=None, ge=0, le=100)
    has_human_review: Optional[bool] = None
    accuracy: Optional[AccuracyCounts] = None
    content_body: Optional[str] = None
    content_format: Optional[str] = None


class RiskResult(BaseModel):
    level: RiskLevel
    score: int
    factors: List[str] = Field(default_factory=list)
    integrity_issues: Optional[List[str]] = None
