"""Prompt text for the judgment agents and tolerant parsing of their replies."""

from __future__ import annotations

import json
import logging
import re
from typing import AbstractSet, Any, List, Mapping, Optional, Sequence

from citeguard.footnotes.parser import extract_claim_context, strip_frontmatter
from citeguard.models import (
    AccuracyCheck,
    AccuracyVerdict,
    EnrichedFlaggedCitation,
    FixProposal,
    QuoteExtraction,
)

logger = logging.getLogger(__name__)

MAX_SOURCE_CHARS = 50_000
TRUNCATION_MARKER = "\n\n[... truncated ...]"

_FENCE_OPEN_RE = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_FENCE_CLOSE_RE = re.compile(r"```\s*$")

QUOTE_EXTRACTION_SYSTEM = """You are a citation verification assistant. Given a claim from a wiki article and the full text of a cited source, find the specific passage in the source that most directly supports the claim.

Rules:
- Return the EXACT quote from the source text (copy it verbatim, do not paraphrase)
- The quote should be the most specific, relevant passage, typically 1-3 sentences
- If the source doesn't support the claim, return an empty quote
- For "location", describe where in the source the quote appears (e.g. "Introduction", "Section 3", "near the beginning")
- For "confidence", rate 0.0-1.0 how well the quote supports the claim (0.0 = no support, 1.0 = exact match)

Respond in exactly this JSON format:
{"quote": "exact text from source", "location": "where in document", "confidence": 0.85}"""

ACCURACY_CHECK_SYSTEM = """You are a fact-checking assistant. Given a claim from a wiki article and the text of the cited source, determine whether the wiki claim ACCURATELY represents what the source says.

First search the ENTIRE source for all passages relevant to the claim, then check every factual detail of the claim against them. Look for:
1. WRONG NUMBERS: dates, percentages, amounts or counts that differ from the source
2. WRONG ATTRIBUTION: a statement credited to the wrong person or organization
3. MISLEADING PARAPHRASE: the claim distorts the meaning or emphasis of the source
4. OVERCLAIMS: the claim is more definitive than the source supports
5. FABRICATED DETAILS: specifics that do not appear in the source at all

Verdicts:
- "accurate": the claim faithfully represents the source (minor wording differences are OK)
- "minor_issues": small discrepancies that don't change the core meaning (e.g. rounding)
- "inaccurate": the claim misrepresents the source in a meaningful way
- "unsupported": the source genuinely doesn't contain information supporting the claim
- "not_verifiable": the source is too short or ambiguous to check

"score" is 0.0-1.0 (1.0 = perfectly accurate). "issues" lists each discrepancy concisely. "supporting_quotes" holds the key source passages you relied on. "verification_difficulty" is exactly one of "easy", "medium" or "hard".

Respond in exactly this JSON format:
{"verdict": "accurate", "score": 0.95, "issues": [], "supporting_quotes": ["passage 1"], "verification_difficulty": "easy"}"""

FIX_GENERATION_SYSTEM = """You are a wiki editor fixing citation inaccuracies. You receive flagged citations where the wiki text misrepresents or is unsupported by the cited source.

You are given:
- The wiki section context around each flagged citation
- The issue description explaining what's wrong
- Source evidence: passages from the cited source showing what it actually says

Generate fixes that make the wiki text accurately reflect the cited source. Rules:

1. Use the SOURCE EVIDENCE to determine what's correct. Replace wrong facts, names, numbers and dates with the values the source provides. Do NOT guess.
2. If the source says something substantially different, rewrite the claim to match the source.
3. For unsupported claims: either remove the footnote reference [^N] if the claim might still be true from other sources, or remove/rewrite the claim if it appears fabricated.
4. For overclaims: tone down the language to match what the source supports.
5. Keep accurate parts of claims intact; only change what's wrong.
6. NEVER change footnote definitions (lines starting with [^N]:)
7. NEVER add new footnotes or alter MDX components like <EntityLink>
8. The "original" text must be an EXACT substring of the page content
9. Keep "original" as short as possible while being unique in the page

Return a JSON array of fix objects. If no fix is needed, return an empty array.

JSON format:
[
  {
    "footnote": 5,
    "original": "exact text from the page",
    "replacement": "fixed text",
    "explanation": "brief reason for the change",
    "fix_type": "rewrite|correct|soften|remove_ref|remove_detail"
  }
]"""

SECTION_REWRITE_SYSTEM = """You are a wiki editor repairing one section of an article whose citations were flagged as inaccurate or unsupported.

Rewrite the section so every claim matches the source evidence given for its footnote. Rules:
- Keep the section heading line exactly as it is
- Keep every footnote reference listed under MUST KEEP; you may move it within the section but never drop it
- Footnotes listed under MAY REMOVE may be dropped together with the claims they failed to support
- Never add new footnote references and never edit footnote definition lines
- Preserve every <EntityLink ...>...</EntityLink> component byte-for-byte
- Keep the length and tone close to the original; do not pad or summarize away accurate content

Return only the rewritten section as markdown, with no commentary and no code fences."""


def strip_code_fences(content: str) -> str:
    text = content.strip()
    text = _FENCE_OPEN_RE.sub("", text)
    text = _FENCE_CLOSE_RE.sub("", text)
    return text.strip()


def truncate_source(text: str, limit: int = MAX_SOURCE_CHARS) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + TRUNCATION_MARKER


def _clamp(value: Any, default: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    return max(0.0, min(1.0, float(value)))


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str) and item]


def build_quote_prompt(claim: str, source_text: str, limit: int = MAX_SOURCE_CHARS) -> str:
    return (
        f"{QUOTE_EXTRACTION_SYSTEM}\n\n"
        f"WIKI CLAIM:\n{claim}\n\n"
        f"SOURCE TEXT:\n{truncate_source(source_text, limit)}\n\n"
        "Find the specific passage in the source that supports this claim. Return JSON only."
    )


def build_accuracy_prompt(
    claim: str,
    evidence: str,
    source_title: str | None = None,
    limit: int = MAX_SOURCE_CHARS,
) -> str:
    title = f'\nSource title: "{source_title}"' if source_title else ""
    return (
        f"{ACCURACY_CHECK_SYSTEM}\n\n"
        f"WIKI CLAIM:\n{claim}\n{title}\n"
        f"SOURCE TEXT:\n{truncate_source(evidence, limit)}\n\n"
        "Search the entire source for all passages relevant to this claim, then check every "
        "factual detail. Return JSON only."
    )


def parse_quote_extraction_response(content: str) -> QuoteExtraction:
    try:
        parsed = json.loads(strip_code_fences(content))
    except json.JSONDecodeError:
        return QuoteExtraction()
    if not isinstance(parsed, dict):
        return QuoteExtraction()
    quote = parsed.get("quote")
    location = parsed.get("location")
    return QuoteExtraction(
        quote=quote if isinstance(quote, str) else "",
        location=location if isinstance(location, str) and location else "unknown",
        confidence=_clamp(parsed.get("confidence"), 0.0),
    )


def normalize_difficulty(raw: Any) -> str:
    """Map free-form difficulty text onto easy/medium/hard; empty stays empty."""
    if not isinstance(raw, str) or not raw.strip():
        return ""
    lower = raw.strip().lower()
    if lower in ("easy", "medium", "hard"):
        return lower
    if "easy" in lower or "single sentence" in lower or "directly stated" in lower:
        return "easy"
    if "hard" in lower or "entire" in lower or "multiple sections" in lower:
        return "hard"
    return "medium"


def parse_accuracy_check_response(content: str) -> AccuracyCheck:
    try:
        parsed = json.loads(strip_code_fences(content))
    except json.JSONDecodeError:
        return AccuracyCheck(issues=["Failed to parse LLM response"])
    if not isinstance(parsed, dict):
        return AccuracyCheck(issues=["Failed to parse LLM response"])

    try:
        verdict = AccuracyVerdict(parsed.get("verdict"))
    except ValueError:
        verdict = AccuracyVerdict.NOT_VERIFIABLE

    return AccuracyCheck(
        verdict=verdict,
        score=_clamp(parsed.get("score"), 0.5),
        issues=_string_list(parsed.get("issues")),
        supporting_quotes=_string_list(parsed.get("supporting_quotes")),
        difficulty=normalize_difficulty(parsed.get("verification_difficulty")),
    )


def parse_fix_response(content: str) -> List[FixProposal]:
    """Keep only proposals with a non-empty ``original`` that differs from ``replacement``.

    Accepts a bare JSON array or an object wrapping it under ``fixes``.
    """
    try:
        parsed = json.loads(strip_code_fences(content))
    except json.JSONDecodeError:
        logger.debug("Unparseable fix response: %.200s", content)
        return []
    if isinstance(parsed, dict):
        parsed = parsed.get("fixes")
    if not isinstance(parsed, list):
        return []

    proposals: List[FixProposal] = []
    for item in parsed:
        if not isinstance(item, dict):
            continue
        original = item.get("original")
        replacement = item.get("replacement")
        if not isinstance(original, str) or not isinstance(replacement, str):
            continue
        if not original or original == replacement:
            continue
        footnote = item.get("footnote")
        explanation = item.get("explanation")
        fix_type = item.get("fix_type")
        proposals.append(
            FixProposal(
                footnote=footnote if isinstance(footnote, int) and not isinstance(footnote, bool) else 0,
                original=original,
                replacement=replacement,
                explanation=explanation if isinstance(explanation, str) else "",
                fix_type=fix_type if isinstance(fix_type, str) else "unknown",
            )
        )
    return proposals


def clean_rewritten_section(content: str) -> str:
    """Drop a wrapping code fence some models add around markdown output."""
    text = content.strip()
    match = re.match(r"^```(?:markdown|md|mdx)?\s*\n([\s\S]*?)\n```$", text, re.IGNORECASE)
    return match.group(1) if match else text


# ---------------------------------------------------------------------------
# Fix generation and section rewrite prompts
# ---------------------------------------------------------------------------

MAX_SOURCE_PER_CITATION = 8_000


def format_source_evidence(
    supporting_quotes: Optional[str],
    source_quote: Optional[str],
    full_text: Optional[str],
    max_chars: int = MAX_SOURCE_PER_CITATION,
) -> Optional[str]:
    """Best available evidence: supporting quotes, then the extracted quote, then full text."""
    parts: List[str] = []
    supporting = supporting_quotes or ""
    if supporting:
        parts.append("Key passages from source:")
        parts.append(supporting)
    if source_quote and source_quote[:50] not in supporting:
        parts.append("Extracted quote:")
        parts.append(source_quote)
    if parts:
        return "\n".join(parts)

    if full_text:
        text = full_text
        if len(text) > max_chars:
            text = text[:max_chars] + "\n[... truncated ...]"
        return f"Full source text:\n{text}"
    return None


def build_source_evidence(
    citation: EnrichedFlaggedCitation,
    max_chars: int = MAX_SOURCE_PER_CITATION,
) -> Optional[str]:
    return format_source_evidence(
        citation.supporting_quotes,
        citation.source_quote,
        citation.source_full_text,
        max_chars,
    )


def build_fix_prompt(
    page_id: str,
    flagged: Sequence[EnrichedFlaggedCitation],
    page_content: str,
    max_chars: int = MAX_SOURCE_PER_CITATION,
) -> str:
    body = strip_frontmatter(page_content)
    parts = [f"Page: {page_id}\n"]
    for c in flagged:
        parts.append(f"--- Citation [^{c.footnote}] ---")
        parts.append(f"Verdict: {c.verdict.value}")
        parts.append(f"Score: {c.score}")
        if c.issues:
            parts.append(f"Issues: {c.issues}")
        parts.append(f"Source: {c.source_title or 'unknown'}")
        parts.append(f"\nClaim text: {c.full_claim_text or c.claim_text}")

        context = extract_claim_context(body, c.footnote)
        if context:
            parts.append(f"\nSection context:\n{context}")
        evidence = build_source_evidence(c, max_chars)
        if evidence:
            parts.append(f"\nSource evidence (use this to determine correct values):\n{evidence}")
        parts.append("")
    return f"{FIX_GENERATION_SYSTEM}\n\n" + "\n".join(parts)


def build_section_rewrite_prompt(
    section_text: str,
    evidence: Mapping[int, str],
    removable: AbstractSet[int],
) -> str:
    keep = sorted(n for n in evidence if n not in removable)
    drop = sorted(n for n in evidence if n in removable)
    parts = [
        SECTION_REWRITE_SYSTEM,
        "",
        "MUST KEEP: " + (", ".join(f"[^{n}]" for n in keep) or "(none)"),
        "MAY REMOVE: " + (", ".join(f"[^{n}]" for n in drop) or "(none)"),
        "",
        "SOURCE EVIDENCE:",
    ]
    for number in sorted(evidence):
        parts.append(f"--- [^{number}] ---")
        parts.append(evidence[number] or "(no evidence available)")
    parts.extend(["", "SECTION:", section_text])
    return "\n".join(parts)
