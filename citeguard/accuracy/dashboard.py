"""Flagged-citation view: derived from the store, exported as per-page YAML."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List, Optional

import yaml
from pydantic import ValidationError

from citeguard.db.store import CitationStore
from citeguard.models import (
    FLAGGED_VERDICTS,
    AccuracyVerdict,
    CitationQuoteRecord,
    EnrichedFlaggedCitation,
    FlaggedCitation,
)
from citeguard.pages import write_text_atomic

logger = logging.getLogger(__name__)

MAX_CLAIM_LENGTH = 150


def _truncate_claim(text: str) -> str:
    return text if len(text) <= MAX_CLAIM_LENGTH else text[:MAX_CLAIM_LENGTH] + "..."


def pages_dir(accuracy_dir: str | Path) -> Path:
    return Path(accuracy_dir) / "pages"


def flagged_from_rows(rows: Iterable[CitationQuoteRecord]) -> List[FlaggedCitation]:
    """Rows with an inaccurate/unsupported verdict, worst score first."""
    flagged = [
        FlaggedCitation(
            page_id=row.page_id,
            footnote=row.footnote,
            claim_text=row.claim_text,
            source_title=row.source_title,
            url=row.url,
            verdict=row.accuracy_verdict,
            score=row.accuracy_score,
            issues=row.accuracy_issues,
            difficulty=row.verification_difficulty,
            checked_at=row.accuracy_checked_at,
        )
        for row in rows
        if row.accuracy_verdict in FLAGGED_VERDICTS
    ]
    flagged.sort(key=lambda f: (f.score if f.score is not None else 0.0, f.page_id, f.footnote))
    return flagged


async def build_flagged_citations(
    store: CitationStore, page_id: Optional[str] = None
) -> List[FlaggedCitation]:
    if page_id is not None:
        rows = await store.get_quotes_for_page(page_id)
    else:
        rows = await store.get_quotes_with_verdicts(v.value for v in FLAGGED_VERDICTS)
    return flagged_from_rows(rows)


def export_flagged_citations(
    accuracy_dir: str | Path,
    flagged: Iterable[FlaggedCitation],
    page_ids: Iterable[str],
) -> List[Path]:
    """Rewrite ``pages/<page_id>.yaml`` for each page in *page_ids*.

    Pages with no flagged citations lose their file; files for pages not in
    *page_ids* are left alone.
    """
    out_dir = pages_dir(accuracy_dir)
    by_page: dict[str, List[FlaggedCitation]] = {}
    for item in flagged:
        by_page.setdefault(item.page_id, []).append(item)

    written: List[Path] = []
    for page_id in sorted(set(page_ids) | set(by_page)):
        path = out_dir / f"{page_id}.yaml"
        items = by_page.get(page_id)
        if not items:
            path.unlink(missing_ok=True)
            continue
        data = [
            {**item.model_dump(mode="json"), "claim_text": _truncate_claim(item.claim_text)}
            for item in items
        ]
        write_text_atomic(path, yaml.safe_dump(data, sort_keys=False, allow_unicode=True, width=1000))
        written.append(path)
    logger.info("Exported flagged citations for %d pages to %s", len(written), out_dir)
    return written


def _read_page_file(path: Path) -> List[FlaggedCitation]:
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
        if not isinstance(data, list):
            return []
        return [FlaggedCitation.model_validate(item) for item in data]
    except (OSError, yaml.YAMLError, ValidationError) as exc:
        logger.warning("Skipping malformed flagged-citation file %s: %s", path, exc)
        return []


def load_flagged_citations(
    accuracy_dir: str | Path,
    page_id: Optional[str] = None,
    verdict: Optional[AccuracyVerdict] = None,
    max_score: Optional[float] = None,
) -> List[FlaggedCitation]:
    root = pages_dir(accuracy_dir)
    if page_id is not None:
        paths = [root / f"{page_id}.yaml"]
    else:
        paths = sorted(root.glob("*.yaml")) if root.is_dir() else []

    flagged: List[FlaggedCitation] = []
    for path in paths:
        if path.is_file():
            flagged.extend(_read_page_file(path))

    if verdict is not None:
        flagged = [f for f in flagged if f.verdict == verdict]
    if max_score is not None:
        flagged = [f for f in flagged if (f.score if f.score is not None else 1.0) <= max_score]
    return flagged


async def enrich_flagged(
    store: CitationStore, flagged: Iterable[FlaggedCitation]
) -> List[EnrichedFlaggedCitation]:
    """Attach the full claim, quotes and cached source text; fields stay None without a store."""
    enriched: List[EnrichedFlaggedCitation] = []
    for item in flagged:
        row = await store.get_quote(item.page_id, item.footnote)
        full_text = None
        if item.url:
            cached = await store.get_content(item.url)
            full_text = cached.full_text if cached else None
        enriched.append(
            EnrichedFlaggedCitation(
                **item.model_dump(),
                full_claim_text=row.claim_text if row else None,
                source_quote=row.source_quote if row else None,
                supporting_quotes=row.accuracy_supporting_quotes if row else None,
                source_full_text=full_text,
            )
        )
    return enriched
