"""Citation, archive and store records."""

from __future__ import annotations

import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from citeguard.models.enums import (
    AccuracyVerdict,
    FootnoteFormat,
    QuoteVerificationMethod,
    VerificationStatus,
)


class FootnoteDefinition(BaseModel):
    number: int
    raw: str
    format: FootnoteFormat
    url: Optional[str] = None
    link_text: str = ""
    line: int = Field(ge=0, description="0-indexed line of the definition in the body.")


class ExtractedCitation(BaseModel):
    footnote: int
    url: Optional[str] = None
    link_text: str = ""
    claim_context: str = ""
    ref_line: int = Field(default=0, description="1-indexed line of the first inline reference; 0 if none.")


class CitationRecord(BaseModel):
    footnote: int
    url: str
    link_text: str = ""
    claim_context: str = ""
    fetched_at: Optional[str] = None
    http_status: Optional[int] = None
    page_title: Optional[str] = None
    content_snippet: Optional[str] = None
    content_length: Optional[int] = None
    status: VerificationStatus = VerificationStatus.PENDING
    note: Optional[str] = None


class CitationArchiveFile(BaseModel):
    page_id: str
    verified_at: str
    total_citations: int = 0
    verified: int = 0
    broken: int = 0
    unverifiable: int = 0
    citations: List[CitationRecord] = Field(default_factory=list)


class CitationQuoteRecord(BaseModel):
    page_id: str
    footnote: int
    url: Optional[str] = None
    claim_text: str = ""
    claim_context: Optional[str] = None
    source_quote: Optional[str] = None
    source_location: Optional[str] = None
    quote_verified: bool = False
    verification_method: Optional[QuoteVerificationMethod] = None
    verification_score: Optional[float] = None
    source_title: Optional[str] = None
    source_type: str = "url"
    extraction_model: Optional[str] = None
    accuracy_verdict: Optional[AccuracyVerdict] = None
    accuracy_score: Optional[float] = None
    accuracy_issues: Optional[str] = None
    accuracy_supporting_quotes: Optional[str] = None
    verification_difficulty: Optional[str] = None
    accuracy_checked_at: Optional[str] = None


class CitationContentRecord(BaseModel):
    url: str
    page_id: Optional[str] = None
    footnote: Optional[int] = None
    fetched_at: Optional[str] = None
    http_status: Optional[int] = None
    content_type: Optional[str] = None
    page_title: Optional[str] = None
    full_html: Optional[str] = None
    full_text: Optional[str] = None
    content_length: Optional[int] = None
    content_hash: Optional[str] = None


class FlaggedCitation(BaseModel):
    page_id: str
    footnote: int
    claim_text: str = ""
    source_title: Optional[str] = None
    url: Optional[str] = None
    verdict: AccuracyVerdict
    score: Optional[float] = None
    issues: Optional[str] = None
    difficulty: Optional[str] = None
    checked_at: Optional[str] = None


class EnrichedFlaggedCitation(FlaggedCitation):
    full_claim_text: Optional[str] = None
    source_quote: Optional[str] = None
    supporting_quotes: Optional[str] = None
    source_full_text: Optional[str] = None


class EditLogEntry(BaseModel):
    page_id: str
    date: str = Field(default_factory=lambda: datetime.date.today().isoformat())
    tool: str
    agency: str = "automated"
    requested_by: Optional[str] = None
    note: Optional[str] = None
