"""Section-level rewrites for flagged citations that targeted fixes could not repair."""

from __future__ import annotations

import logging
import re
from collections import Counter
from typing import Dict, Iterable, List, Optional, Sequence, Set

from citeguard.db.store import CitationStore
from citeguard.errors import JudgmentServiceError
from citeguard.footnotes.parser import (
    SectionSpan,
    extract_section_context,
    inline_ref_numbers,
    strip_frontmatter,
)
from citeguard.llm.judgment import SectionRewriter
from citeguard.llm.prompts import format_source_evidence
from citeguard.models import (
    FLAGGED_VERDICTS,
    EnrichedFlaggedCitation,
    RepairConfig,
    RewriteCheck,
    SectionRewrite,
    SectionRewriteResult,
)

logger = logging.getLogger(__name__)

ENTITY_LINK_RE = re.compile(r"<EntityLink\b[^>]*?(?:/>|>[\s\S]*?</EntityLink>)")


def entity_link_markers(text: str) -> Counter:
    return Counter(ENTITY_LINK_RE.findall(text))


def removable_footnotes(flagged: Iterable[EnrichedFlaggedCitation]) -> Set[int]:
    """Footnotes whose verdict allows dropping the reference outright."""
    return {f.footnote for f in flagged if f.verdict in FLAGGED_VERDICTS}


def sections_with_flagged(body: str, flagged_numbers: Iterable[int]) -> List[SectionSpan]:
    """Heading-bounded blocks around each flagged reference, in page order.

    Footnotes sharing a block yield it once.
    """
    spans: Dict[int, SectionSpan] = {}
    for number in sorted(set(flagged_numbers)):
        span = extract_section_context(body, number)
        if span is not None and span.text.strip():
            spans.setdefault(span.start_line, span)
    return [spans[start] for start in sorted(spans)]


def check_rewrite(
    original: str,
    rewritten: str,
    removable: Set[int],
    config: Optional[RepairConfig] = None,
) -> RewriteCheck:
    """Structural checks a rewrite must pass before it may replace *original*."""
    config = config or RepairConfig()
    ratio = len(rewritten) / max(len(original), 1)
    if ratio < config.min_length_ratio:
        return RewriteCheck(accepted=False, reason=f"Rewrite too short ({ratio:.0%} of original)")
    if ratio > config.max_length_ratio:
        return RewriteCheck(accepted=False, reason=f"Rewrite too long ({ratio:.0%} of original)")

    kept = set(inline_ref_numbers(rewritten))
    lost = sorted(n for n in inline_ref_numbers(original) if n not in removable and n not in kept)
    if lost:
        refs = ", ".join(f"[^{n}]" for n in lost)
        return RewriteCheck(accepted=False, reason=f"Non-removable footnote(s) dropped: {refs}")

    if entity_link_markers(original) != entity_link_markers(rewritten):
        return RewriteCheck(accepted=False, reason="EntityLink components changed")
    return RewriteCheck(accepted=True)


async def gather_section_evidence(
    store: CitationStore,
    page_id: str,
    numbers: Sequence[int],
    flagged: Dict[int, EnrichedFlaggedCitation],
    max_chars: int,
) -> Dict[int, str]:
    """Evidence for every footnote in a section, flagged or not."""
    evidence: Dict[int, str] = {}
    for number in numbers:
        citation = flagged.get(number)
        if citation is not None:
            supporting = citation.supporting_quotes
            quote = citation.source_quote
            full_text = citation.source_full_text
        else:
            row = await store.get_quote(page_id, number)
            supporting = row.accuracy_supporting_quotes if row else None
            quote = row.source_quote if row else None
            full_text = None
            if row and row.url and not (supporting or quote):
                cached = await store.get_content(row.url)
                full_text = cached.full_text if cached else None
        evidence[number] = format_source_evidence(supporting, quote, full_text, max_chars) or ""
    return evidence


def _line_span(content: str, section_text: str) -> tuple[int, int]:
    offset = content.find(section_text)
    if offset == -1:
        return 0, 0
    start = content.count("\n", 0, offset)
    return start, start + section_text.count("\n") + 1


async def escalate_sections(
    page_id: str,
    content: str,
    flagged: Sequence[EnrichedFlaggedCitation],
    store: CitationStore,
    rewriter: SectionRewriter,
    config: Optional[RepairConfig] = None,
) -> tuple[List[SectionRewrite], int]:
    """Request a rewrite of every heading-bounded block holding a flagged citation.

    Returns the accepted rewrites and the number rejected by :func:`check_rewrite`
    or lost to a failed judgment call.
    """
    config = config or RepairConfig()
    by_number = {f.footnote: f for f in flagged}
    removable = removable_footnotes(flagged)
    body = strip_frontmatter(content)

    accepted: List[SectionRewrite] = []
    rejected = 0
    for section in sections_with_flagged(body, by_number):
        numbers = inline_ref_numbers(section.text)
        evidence = await gather_section_evidence(
            store, page_id, numbers, by_number, config.max_source_chars_per_citation
        )
        try:
            rewritten = await rewriter.rewrite_section(section.text, evidence, removable)
        except JudgmentServiceError as exc:
            logger.warning("%s: rewrite of '%s' failed: %s", page_id, section.heading, exc)
            rejected += 1
            continue

        if section.heading and not rewritten.lstrip().startswith(section.heading):
            rewritten = f"{section.heading}\n\n{rewritten.strip()}"
        check = check_rewrite(section.text, rewritten, removable, config)
        if not check.accepted:
            logger.warning("%s: rejected rewrite of '%s': %s", page_id, section.heading, check.reason)
            rejected += 1
            continue

        start, end = _line_span(content, section.text)
        accepted.append(
            SectionRewrite(
                heading=section.heading,
                original_section=section.text,
                rewritten_section=rewritten,
                start_line=start,
                end_line=end,
            )
        )
    return accepted, rejected


def apply_section_rewrites(content: str, rewrites: Sequence[SectionRewrite]) -> SectionRewriteResult:
    """Swap each original section for its rewrite by exact substring match."""
    result = SectionRewriteResult(content=content)
    for rewrite in rewrites:
        if rewrite.original_section not in result.content:
            result.skipped += 1
            logger.debug("Section '%s' no longer matches; skipped", rewrite.heading)
            continue
        result.content = result.content.replace(rewrite.original_section, rewrite.rewritten_section, 1)
        result.applied += 1
    return result
