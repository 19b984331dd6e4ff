"""Model exports."""

from citeguard.models.accuracy import (
    AccuracyCheck,
    AccuracyIssue,
    AccuracyResult,
    ExtractResult,
    QuoteExtraction,
    QuoteVerification,
)
from citeguard.models.citations import (
    CitationArchiveFile,
    CitationContentRecord,
    CitationQuoteRecord,
    CitationRecord,
    EditLogEntry,
    EnrichedFlaggedCitation,
    ExtractedCitation,
    FlaggedCitation,
    FootnoteDefinition,
)
from citeguard.models.config import (
    AccuracyConfig,
    AgentConfig,
    FetchConfig,
    IntegrityConfig,
    PathsConfig,
    RepairConfig,
    RiskConfig,
    SearchConfig,
    SettingsConfig,
)
from citeguard.models.enums import (
    FLAGGED_VERDICTS,
    AccuracyVerdict,
    ApplyStatus,
    FootnoteFormat,
    QuoteVerificationMethod,
    RepairOutcome,
    RepairState,
    RiskLevel,
    VerificationDifficulty,
    VerificationStatus,
)
from citeguard.models.integrity import (
    AccuracyCounts,
    IntegrityResult,
    IntegrityRisk,
    OrphanedFootnotes,
    RiskInput,
    RiskResult,
    SequentialIdResult,
    UnsourcedFootnotes,
)
from citeguard.models.repair import (
    ApplyDetail,
    ApplyResult,
    BatchRepairSummary,
    CleanupResult,
    FixProposal,
    PageRepairReport,
    RewriteCheck,
    SectionRewrite,
    SectionRewriteResult,
    SourceCandidate,
    SourceReplacement,
    TextEdit,
)

__all__ = [
    "AccuracyCheck",
    "AccuracyConfig",
    "AccuracyCounts",
    "AccuracyIssue",
    "AccuracyResult",
    "AccuracyVerdict",
    "AgentConfig",
    "ApplyDetail",
    "ApplyResult",
    "ApplyStatus",
    "BatchRepairSummary",
    "CitationArchiveFile",
    "CitationContentRecord",
    "CitationQuoteRecord",
    "CitationRecord",
    "CleanupResult",
    "EditLogEntry",
    "EnrichedFlaggedCitation",
    "ExtractResult",
    "ExtractedCitation",
    "FLAGGED_VERDICTS",
    "FetchConfig",
    "FixProposal",
    "FlaggedCitation",
    "FootnoteDefinition",
    "FootnoteFormat",
    "IntegrityConfig",
    "IntegrityResult",
    "IntegrityRisk",
    "OrphanedFootnotes",
    "PageRepairReport",
    "PathsConfig",
    "QuoteExtraction",
    "QuoteVerification",
    "QuoteVerificationMethod",
    "RepairConfig",
    "RepairOutcome",
    "RepairState",
    "RewriteCheck",
    "RiskConfig",
    "RiskInput",
    "RiskLevel",
    "RiskResult",
    "SearchConfig",
    "SectionRewrite",
    "SectionRewriteResult",
    "SequentialIdResult",
    "SettingsConfig",
    "SourceCandidate",
    "SourceReplacement",
    "TextEdit",
    "UnsourcedFootnotes",
    "VerificationDifficulty",
    "VerificationStatus",
]
