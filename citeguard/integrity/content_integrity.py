"""
Content integrity checks.

Pure functions over a page body (frontmatter already stripped) that detect
structural corruption and fabrication signals. Their findings feed the
hallucination risk score as additional factors:

- orphaned footnote references (the definitions block was cut off)
- duplicate footnote definitions (merge or copy-paste damage)
- runs of consecutive arXiv identifiers (a fabrication pattern)
- footnote definitions with no URL at all
"""

from __future__ import annotations

import datetime
import re
from collections import Counter
from typing import Optional

from citeguard.footnotes.parser import (
    DEFINITION_RE,
    find_footnote_defs,
    find_footnote_refs,
    is_definition_line,
)
from citeguard.models import (
    IntegrityConfig,
    IntegrityResult,
    IntegrityRisk,
    OrphanedFootnotes,
    SequentialIdResult,
    UnsourcedFootnotes,
)

# Point contributions per factor.
RISK_SEVERE_TRUNCATION = 30
RISK_ORPHANED_FOOTNOTES = 15
RISK_SEQUENTIAL_ARXIV_IDS = 25
RISK_DUPLICATE_FOOTNOTE_DEFS = 10
RISK_MOSTLY_UNSOURCED = 10
RISK_SOME_UNSOURCED = 5

ORPHANED_RATIO_SEVERE = 0.5
UNSOURCED_RATIO_SEVERE = 0.5

ARXIV_ID_RE = re.compile(r"\b(\d{4}\.\d{4,5})\b")
URL_RE = re.compile(r"https?://\S+")
_CONTINUATION_RE = re.compile(r"^\s+\S")


def detect_orphaned_footnotes(body: str) -> OrphanedFootnotes:
    refs = find_footnote_refs(body)
    defs = find_footnote_defs(body)
    orphaned = sorted(refs - defs)
    return OrphanedFootnotes(
        orphaned_refs=orphaned,
        total_refs=len(refs),
        total_defs=len(defs),
        orphaned_ratio=len(orphaned) / len(refs) if refs else 0.0,
    )


def detect_duplicate_footnote_defs(body: str) -> list[int]:
    counts: Counter[int] = Counter()
    for line in body.split("\n"):
        match = DEFINITION_RE.match(line.strip())
        if match:
            counts[int(match.group(1))] += 1
    return sorted(number for number, count in counts.items() if count > 1)


def is_plausible_arxiv_prefix(yymm: str, min_year: int = 7, max_year: Optional[int] = None) -> bool:
    """Whether a YYMM prefix could belong to a real arXiv identifier.

    Filters out version strings and other ``NNNN.NNNN`` tokens: the year
    must fall between *min_year* and *max_year* (default: next year) and
    the month between 01 and 12.
    """
    if len(yymm) != 4 or not yymm.isdigit():
        return False
    if max_year is None:
        max_year = (datetime.date.today().year + 1) % 100
    year, month = int(yymm[:2]), int(yymm[2:])
    return min_year <= year <= max_year and 1 <= month <= 12


def detect_sequential_arxiv_ids(
    body: str,
    min_run_length: int = 3,
    min_year: int = 7,
    max_year: Optional[int] = None,
) -> SequentialIdResult:
    ids = [
        candidate
        for candidate in ARXIV_ID_RE.findall(body)
        if is_plausible_arxiv_prefix(candidate.split(".")[0], min_year, max_year)
    ]
    if len(ids) < min_run_length:
        return SequentialIdResult()

    unique = sorted(set(ids), key=lambda token: (token.split(".")[0], int(token.split(".")[1])))

    longest_run, longest_start = 1, 0
    current_run, current_start = 1, 0
    for i in range(1, len(unique)):
        prev_prefix, prev_serial = unique[i - 1].split(".")
        prefix, serial = unique[i].split(".")
        if prefix == prev_prefix and int(serial) == int(prev_serial) + 1:
            current_run += 1
            if current_run > longest_run:
                longest_run, longest_start = current_run, current_start
        else:
            current_run, current_start = 1, i

    suspicious = longest_run >= min_run_length
    return SequentialIdResult(
        suspicious=suspicious,
        longest_run=longest_run,
        sequential_ids=unique[longest_start : longest_start + longest_run] if suspicious else [],
    )


def detect_unsourced_footnotes(body: str) -> UnsourcedFootnotes:
    """Count definitions (with their indented continuation lines) lacking a URL."""
    total = 0
    unsourced = 0
    current: Optional[str] = None

    def close(definition: Optional[str]) -> None:
        nonlocal total, unsourced
        if definition is None:
            return
        total += 1
        if not URL_RE.search(definition):
            unsourced += 1

    for line in body.split("\n"):
        if is_definition_line(line):
            close(current)
            current = line
        elif current is not None and _CONTINUATION_RE.match(line):
            current += " " + line
        else:
            close(current)
            current = None
    close(current)

    return UnsourcedFootnotes(
        unsourced=unsourced,
        total_defs=total,
        unsourced_ratio=unsourced / total if total else 0.0,
    )


def assess_content_integrity(body: str, config: Optional[IntegrityConfig] = None) -> IntegrityResult:
    """Run all four checks on a page body."""
    cfg = config or IntegrityConfig()
    return IntegrityResult(
        orphaned_footnotes=detect_orphaned_footnotes(body),
        duplicate_footnote_defs=detect_duplicate_footnote_defs(body),
        sequential_arxiv_ids=detect_sequential_arxiv_ids(
            body,
            min_run_length=cfg.sequential_min_run,
            min_year=cfg.arxiv_min_year,
            max_year=cfg.arxiv_max_year,
        ),
        unsourced_footnotes=detect_unsourced_footnotes(body),
    )


def compute_integrity_risk(integrity: IntegrityResult) -> IntegrityRisk:
    """Map integrity findings to summed point deltas and factor names."""
    score = 0
    factors: list[str] = []

    orphaned = integrity.orphaned_footnotes
    if orphaned.orphaned_refs:
        if orphaned.orphaned_ratio > ORPHANED_RATIO_SEVERE:
            score += RISK_SEVERE_TRUNCATION
            factors.append("severe-truncation")
        else:
            score += RISK_ORPHANED_FOOTNOTES
            factors.append("orphaned-footnotes")

    if integrity.sequential_arxiv_ids.suspicious:
        score += RISK_SEQUENTIAL_ARXIV_IDS
        factors.append("suspicious-sequential-ids")

    if integrity.duplicate_footnote_defs:
        score += RISK_DUPLICATE_FOOTNOTE_DEFS
        factors.append("duplicate-footnote-defs")

    unsourced = integrity.unsourced_footnotes
    if unsourced.unsourced:
        if unsourced.unsourced_ratio > UNSOURCED_RATIO_SEVERE:
            score += RISK_MOSTLY_UNSOURCED
            factors.append("mostly-unsourced-footnotes")
        else:
            score += RISK_SOME_UNSOURCED
            factors.append("some-unsourced-footnotes")

    return IntegrityRisk(score=score, factors=factors)
