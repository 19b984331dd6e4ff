"""Enum definitions shared across parsing, verification and repair."""

from enum import Enum


class FootnoteFormat(str, Enum):
    MARKDOWN_LINK = "markdown_link"
    TEXT_THEN_URL = "text_then_url"
    BARE_URL = "bare_url"
    NO_URL = "no_url"


class VerificationStatus(str, Enum):
    VERIFIED = "verified"
    BROKEN = "broken"
    UNVERIFIABLE = "unverifiable"
    PENDING = "pending"


class AccuracyVerdict(str, Enum):
    ACCURATE = "accurate"
    MINOR_ISSUES = "minor_issues"
    INACCURATE = "inaccurate"
    UNSUPPORTED = "unsupported"
    NOT_VERIFIABLE = "not_verifiable"


# Verdicts that make a citation eligible for repair (and its marker removable).
FLAGGED_VERDICTS = frozenset({AccuracyVerdict.INACCURATE, AccuracyVerdict.UNSUPPORTED})


class VerificationDifficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class QuoteVerificationMethod(str, Enum):
    EXACT = "exact"
    NORMALIZED = "normalized"
    FUZZY = "fuzzy"


class ApplyStatus(str, Enum):
    APPLIED = "applied"
    NOT_FOUND = "not_found"


class RepairState(str, Enum):
    TARGETED = "targeted"
    ESCALATE = "escalate"
    CLEANUP = "cleanup"
    SOURCE_REPLACE = "source_replace"
    REVERIFY = "reverify"
    DONE = "done"


class RepairOutcome(str, Enum):
    IMPROVED = "improved"
    UNCHANGED = "unchanged"
    REGRESSED = "regressed"
    NOT_RUN = "not_run"
