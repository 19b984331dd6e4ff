"""Repair proposals, edits and per-page repair reports."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from citeguard.models.enums import ApplyStatus, RepairOutcome, RepairState


class FixProposal(BaseModel):
    footnote: int = 0
    original: str
    replacement: str
    explanation: str = ""
    fix_type: str = "unknown"


class TextEdit(BaseModel):
    """A replacement of ``[start, end)`` in an immutable source buffer."""

    start: int = Field(ge=0)
    end: int = Field(ge=0)
    replacement: str
    footnote: int = 0
    explanation: str = ""

    def overlaps(self, other: TextEdit) -> bool:
        return self.start < other.end and other.start < self.end


class ApplyDetail(BaseModel):
    footnote: int
    status: ApplyStatus
    explanation: str = ""


class ApplyResult(BaseModel):
    content: str
    applied: int = 0
    skipped: int = 0
    details: List[ApplyDetail] = Field(default_factory=list)


class SectionRewrite(BaseModel):
    heading: str
    original_section: str
    rewritten_section: str
    start_line: int
    end_line: int


class RewriteCheck(BaseModel):
    accepted: bool
    reason: Optional[str] = None


class SectionRewriteResult(BaseModel):
    content: str
    applied: int = 0
    skipped: int = 0


class CleanupResult(BaseModel):
    content: str
    removed: List[int] = Field(default_factory=list)


class SourceCandidate(BaseModel):
    title: str = ""
    url: str
    text_snippet: str = ""


class SourceReplacement(BaseModel):
    footnote: int
    old_url: str
    new_url: str
    new_title: str = ""
    reason: str = ""
    confidence: str = "medium"


class PageRepairReport(BaseModel):
    page_id: str
    applied_changes: bool = False
    proposed: int = 0
    applied: int = 0
    skipped: int = 0
    sections_rewritten: int = 0
    rewrites_rejected: int = 0
    orphans_removed: List[int] = Field(default_factory=list)
    sources_replaced: int = 0
    before_flagged: int = 0
    after_flagged: Optional[int] = None
    outcome: RepairOutcome = RepairOutcome.NOT_RUN
    stages: List[RepairState] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)

    @property
    def improvement(self) -> int:
        if self.after_flagged is None:
            return 0
        return self.before_flagged - self.after_flagged


class BatchRepairSummary(BaseModel):
    reports: List[PageRepairReport] = Field(default_factory=list)
    errors: dict[str, str] = Field(default_factory=dict)

    @property
    def improved(self) -> int:
        return sum(1 for r in self.reports if r.outcome == RepairOutcome.IMPROVED)

    @property
    def regressed(self) -> int:
        return sum(1 for r in self.reports if r.outcome == RepairOutcome.REGRESSED)
