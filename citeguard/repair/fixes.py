"""Targeted fix generation for a page's flagged citations."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Sequence

from citeguard.accuracy.dashboard import build_flagged_citations, enrich_flagged, load_flagged_citations
from citeguard.db.store import CitationStore
from citeguard.errors import JudgmentServiceError
from citeguard.llm.judgment import FixGenerator
from citeguard.models import AccuracyVerdict, EnrichedFlaggedCitation, FixProposal, FlaggedCitation

logger = logging.getLogger(__name__)


async def load_page_flagged(
    page_id: str,
    store: CitationStore,
    accuracy_dir: str | Path,
    verdict: Optional[AccuracyVerdict] = None,
    max_score: Optional[float] = None,
) -> List[EnrichedFlaggedCitation]:
    """Flagged citations for one page, enriched with quotes and source text.

    Reads the store when it is available, otherwise the exported YAML view.
    """
    if store.available:
        flagged: List[FlaggedCitation] = await build_flagged_citations(store, page_id)
        if verdict is not None:
            flagged = [f for f in flagged if f.verdict == verdict]
        if max_score is not None:
            flagged = [f for f in flagged if (f.score if f.score is not None else 1.0) <= max_score]
    else:
        flagged = load_flagged_citations(accuracy_dir, page_id, verdict, max_score)
    return await enrich_flagged(store, flagged)


async def generate_fixes_for_page(
    page_id: str,
    content: str,
    flagged: Sequence[EnrichedFlaggedCitation],
    generator: FixGenerator,
) -> List[FixProposal]:
    """One judgment call for all flagged citations; failures yield no proposals."""
    if not flagged:
        return []
    try:
        proposals = await generator.generate_fixes(page_id, flagged, content)
    except JudgmentServiceError as exc:
        logger.warning("%s: fix generation failed: %s", page_id, exc)
        return []
    accepted = [p for p in proposals if p.original and p.original != p.replacement]
    logger.info("%s: %d fix proposals for %d flagged citations", page_id, len(accepted), len(flagged))
    return accepted
