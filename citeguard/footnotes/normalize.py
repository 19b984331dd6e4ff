"""Rewrite text-then-URL footnote definitions into markdown-link form."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from citeguard.footnotes.parser import DEFINITION_RE, classify_footnote
from citeguard.models import FootnoteFormat

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FootnoteNormalization:
    footnote: int
    line: int
    original: str
    normalized: str


def normalize_footnotes(content: str) -> tuple[str, list[FootnoteNormalization]]:
    """Return the normalized content and the list of rewritten definitions.

    Only ``text-then-url`` definitions change; markdown links are already in
    the preferred shape, and bare URLs or URL-less definitions have no title
    to build a link from.
    """
    lines = content.split("\n")
    changes: list[FootnoteNormalization] = []
    for index, line in enumerate(lines):
        match = DEFINITION_RE.match(line)
        if not match:
            continue
        classified = classify_footnote(match.group(2))
        if classified.format != FootnoteFormat.TEXT_THEN_URL:
            continue
        number = int(match.group(1))
        normalized = f"[^{number}]: [{classified.link_text}]({classified.url})"
        changes.append(FootnoteNormalization(number, index, line, normalized))
        lines[index] = normalized
    if changes:
        logger.debug("Normalized %d footnote definition(s)", len(changes))
    return "\n".join(lines), changes
