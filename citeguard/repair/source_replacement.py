"""Find and substitute better sources for citations the checker found unsupported."""

from __future__ import annotations

import logging
import re
from typing import List, Optional, Sequence

from citeguard.errors import JudgmentServiceError, SourceDiscoveryError
from citeguard.footnotes.parser import ANY_MARKER_RE, DEFINITION_RE, classify_footnote
from citeguard.llm.judgment import AccuracyChecker
from citeguard.models import (
    AccuracyVerdict,
    ApplyDetail,
    ApplyResult,
    ApplyStatus,
    EnrichedFlaggedCitation,
    FootnoteFormat,
    SearchConfig,
    SourceCandidate,
    SourceReplacement,
)
from citeguard.search.source_discovery import SourceDiscovery
from citeguard.verification.fetcher import get_domain

logger = logging.getLogger(__name__)

_ENTITY_LINK_RE = re.compile(r"<EntityLink\b[^>]*>([\s\S]*?)</EntityLink>")
_TAG_RE = re.compile(r"<[^>]+>")
_MD_LINK_RE = re.compile(r"\[([^\]]*)\]\([^)]*\)")
_SENTENCE_END_RE = re.compile(r"(?<=[.!?])\s+")

_SUPPORTING_VERDICTS = {AccuracyVerdict.ACCURATE, AccuracyVerdict.MINOR_ISSUES}


def build_search_query(claim_text: str, max_chars: int = 200) -> str:
    """Plain-text query from a claim: markup and markers removed, first sentence only."""
    text = _ENTITY_LINK_RE.sub(r"\1", claim_text)
    text = _TAG_RE.sub(" ", text)
    text = ANY_MARKER_RE.sub("", text)
    text = _MD_LINK_RE.sub(r"\1", text)
    text = re.sub(r"\s+", " ", text).strip()
    parts = _SENTENCE_END_RE.split(text, maxsplit=1)
    if len(parts) > 1:
        text = parts[0]
    return text[:max_chars].strip()


async def _pick_candidate(
    citation: EnrichedFlaggedCitation,
    claim: str,
    candidates: Sequence[SourceCandidate],
    checker: Optional[AccuracyChecker],
) -> Optional[SourceReplacement]:
    if not candidates:
        return None
    old_url = citation.url or ""
    if checker is None:
        best = candidates[0]
        return SourceReplacement(
            footnote=citation.footnote,
            old_url=old_url,
            new_url=best.url,
            new_title=best.title,
            reason="Top search result (not checked against the claim)",
            confidence="low",
        )

    for candidate in candidates:
        if not candidate.text_snippet:
            continue
        check = await checker.check_accuracy(claim, candidate.text_snippet, candidate.title)
        if check.verdict in _SUPPORTING_VERDICTS:
            return SourceReplacement(
                footnote=citation.footnote,
                old_url=old_url,
                new_url=candidate.url,
                new_title=candidate.title,
                reason=f"Search result judged {check.verdict.value} ({check.score:.2f}) for the claim",
                confidence="high" if check.verdict == AccuracyVerdict.ACCURATE else "medium",
            )
    return None


async def find_replacement_sources(
    flagged: Sequence[EnrichedFlaggedCitation],
    discovery: SourceDiscovery,
    checker: Optional[AccuracyChecker] = None,
    config: Optional[SearchConfig] = None,
) -> List[SourceReplacement]:
    """Search for a new source per citation, never on the citation's current domain.

    With a *checker*, only a candidate whose snippet supports the claim is
    taken; search and judgment failures skip the citation.
    """
    config = config or SearchConfig()
    replacements: List[SourceReplacement] = []
    for citation in flagged:
        if not citation.url:
            continue
        claim = citation.full_claim_text or citation.claim_text
        query = build_search_query(claim, config.max_query_chars)
        if not query:
            continue
        domain = get_domain(citation.url)
        try:
            candidates = await discovery.search(query, exclude_domains=[domain])
            candidates = [c for c in candidates if get_domain(c.url) != domain and c.url != citation.url]
            replacement = await _pick_candidate(citation, claim, candidates, checker)
        except SourceDiscoveryError as exc:
            logger.warning("[^%d] source search failed: %s", citation.footnote, exc)
            continue
        except JudgmentServiceError as exc:
            logger.warning("[^%d] candidate check failed: %s", citation.footnote, exc)
            continue
        if replacement is not None:
            replacements.append(replacement)
    logger.info("Found %d replacement sources for %d citations", len(replacements), len(flagged))
    return replacements


def _rewrite_definition(text: str, replacement: SourceReplacement) -> Optional[str]:
    """New definition text with only the URL and title swapped; None if the old URL is absent."""
    if replacement.old_url not in text:
        return None
    classified = classify_footnote(text)
    title = replacement.new_title or classified.link_text
    if classified.format == FootnoteFormat.MARKDOWN_LINK:
        link = re.compile(r"\[[^\]]*\]\(" + re.escape(replacement.old_url) + r"\)")
        new_text, count = link.subn(lambda _: f"[{title}]({replacement.new_url})", text, count=1)
        if count:
            return new_text
    if classified.format == FootnoteFormat.TEXT_THEN_URL and replacement.new_title:
        return f"{replacement.new_title} {replacement.new_url}"
    return text.replace(replacement.old_url, replacement.new_url, 1)


def _replace_definition(lines: List[str], replacement: SourceReplacement) -> bool:
    for i, line in enumerate(lines):
        match = DEFINITION_RE.match(line)
        if not match or int(match.group(1)) != replacement.footnote:
            continue
        new_text = _rewrite_definition(match.group(2), replacement)
        if new_text is None:
            return False
        lines[i] = f"[^{replacement.footnote}]: {new_text}"
        return True
    return False


def apply_source_replacements(content: str, replacements: Sequence[SourceReplacement]) -> ApplyResult:
    """Swap URLs in ``[^N]:`` definition lines; the prose is never touched."""
    lines = content.split("\n")
    result = ApplyResult(content=content)
    for replacement in replacements:
        if _replace_definition(lines, replacement):
            result.applied += 1
            result.details.append(
                ApplyDetail(
                    footnote=replacement.footnote,
                    status=ApplyStatus.APPLIED,
                    explanation=f"{replacement.old_url} -> {replacement.new_url}",
                )
            )
        else:
            result.skipped += 1
            result.details.append(
                ApplyDetail(
                    footnote=replacement.footnote,
                    status=ApplyStatus.NOT_FOUND,
                    explanation="Definition line with the old URL not found",
                )
            )
    result.content = "\n".join(lines)
    return result
