"""Results of the quote-extraction and accuracy-check workflows."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from citeguard.models.enums import AccuracyVerdict, QuoteVerificationMethod


class QuoteExtraction(BaseModel):
    quote: str = ""
    location: str = "unknown"
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)


class QuoteVerification(BaseModel):
    method: QuoteVerificationMethod
    score: float = Field(ge=0.0, le=1.0)


class AccuracyCheck(BaseModel):
    verdict: AccuracyVerdict = AccuracyVerdict.NOT_VERIFIABLE
    score: float = Field(default=0.5, ge=0.0, le=1.0)
    issues: List[str] = Field(default_factory=list)
    supporting_quotes: List[str] = Field(default_factory=list)
    difficulty: str = ""


class ExtractResult(BaseModel):
    page_id: str
    total: int = 0
    extracted: int = 0
    verified: int = 0
    skipped: int = 0
    errors: int = 0


class AccuracyIssue(BaseModel):
    footnote: int
    verdict: AccuracyVerdict
    score: Optional[float] = None
    issues: List[str] = Field(default_factory=list)


class AccuracyResult(BaseModel):
    page_id: str
    total: int = 0
    accurate: int = 0
    minor_issues: int = 0
    inaccurate: int = 0
    unsupported: int = 0
    not_verifiable: int = 0
    errors: int = 0
    issues: List[AccuracyIssue] = Field(default_factory=list)

    @property
    def flagged(self) -> int:
        return self.inaccurate + self.unsupported

    def count(self, verdict: AccuracyVerdict) -> None:
        field = {
            AccuracyVerdict.ACCURATE: "accurate",
            AccuracyVerdict.MINOR_ISSUES: "minor_issues",
            AccuracyVerdict.INACCURATE: "inaccurate",
            AccuracyVerdict.UNSUPPORTED: "unsupported",
            AccuracyVerdict.NOT_VERIFIABLE: "not_verifiable",
        }[verdict]
        setattr(self, field, getattr(self, field) + 1)
