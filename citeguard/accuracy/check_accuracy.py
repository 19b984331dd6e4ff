"""Per-page accuracy checking of stored claims against their sources."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import aiosqlite

from citeguard.db.store import CitationStore
from citeguard.errors import JudgmentServiceError
from citeguard.footnotes.parser import find_footnote_refs, parse_footnote_definitions, strip_frontmatter
from citeguard.llm.judgment import AccuracyChecker
from citeguard.models import (
    AccuracyConfig,
    AccuracyIssue,
    AccuracyResult,
    AccuracyVerdict,
    CitationQuoteRecord,
)

logger = logging.getLogger(__name__)


def _current_footnotes(content: str) -> set[int]:
    body = strip_frontmatter(content)
    defined = {d.number for d in parse_footnote_definitions(body)}
    return defined | find_footnote_refs(body)


async def _evidence_for(store: CitationStore, row: CitationQuoteRecord) -> str:
    evidence = row.source_quote or ""
    if row.url:
        cached = await store.get_content(row.url)
        if cached and cached.full_text and len(cached.full_text) > len(evidence):
            return cached.full_text
    return evidence


def _tally(result: AccuracyResult, footnote: int, verdict: AccuracyVerdict, score, issues) -> None:
    result.count(verdict)
    if verdict != AccuracyVerdict.ACCURATE:
        result.issues.append(
            AccuracyIssue(footnote=footnote, verdict=verdict, score=score, issues=list(issues))
        )


async def check_accuracy_for_page(
    page_id: str,
    store: CitationStore,
    checker: AccuracyChecker,
    content: Optional[str] = None,
    recheck: bool = False,
    config: Optional[AccuracyConfig] = None,
) -> AccuracyResult:
    """Judge every stored claim that has a quote; return per-verdict counts.

    When *content* is given, only footnotes still present on the page count.
    Without *recheck*, rows that already carry a verdict are tallied as-is.
    """
    config = config or AccuracyConfig()
    rows = [r for r in await store.get_quotes_for_page(page_id) if r.source_quote]
    if content is not None:
        present = _current_footnotes(content)
        rows = [r for r in rows if r.footnote in present]

    result = AccuracyResult(page_id=page_id, total=len(rows))
    for i, row in enumerate(rows):
        if not recheck and row.accuracy_verdict is not None:
            issues = (row.accuracy_issues or "").split("\n")
            _tally(result, row.footnote, row.accuracy_verdict, row.accuracy_score, [s for s in issues if s])
            continue

        try:
            evidence = await _evidence_for(store, row)
            check = await checker.check_accuracy(row.claim_text, evidence, row.source_title)
            await store.mark_accuracy(page_id, row.footnote, check)
        except (JudgmentServiceError, aiosqlite.Error) as exc:
            result.errors += 1
            logger.warning("%s [^%d]: accuracy check failed: %s", page_id, row.footnote, exc)
            continue

        _tally(result, row.footnote, check.verdict, check.score, check.issues)
        logger.debug("[^%d] %s (%.0f%%)", row.footnote, check.verdict.value, check.score * 100)

        if i < len(rows) - 1 and config.delay_ms:
            await asyncio.sleep(config.delay_ms / 1000)

    logger.info(
        "%s: %d checked, %d accurate, %d minor, %d inaccurate, %d unsupported, %d errors",
        page_id,
        result.total,
        result.accurate,
        result.minor_issues,
        result.inaccurate,
        result.unsupported,
        result.errors,
    )
    return result
