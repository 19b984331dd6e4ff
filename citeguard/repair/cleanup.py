"""Remove footnote definitions left without any inline reference."""

from __future__ import annotations

import logging
import re

from citeguard.footnotes.parser import DEFINITION_RE, find_footnote_refs
from citeguard.models import CleanupResult

logger = logging.getLogger(__name__)


def cleanup_orphaned_footnotes(content: str) -> CleanupResult:
    referenced = find_footnote_refs(content)
    kept_lines = []
    removed: set[int] = set()
    for line in content.split("\n"):
        match = DEFINITION_RE.match(line.strip())
        if match and int(match.group(1)) not in referenced:
            removed.add(int(match.group(1)))
            continue
        kept_lines.append(line)

    if not removed:
        return CleanupResult(content=content)
    cleaned = re.sub(r"\n{3,}", "\n\n", "\n".join(kept_lines))
    logger.debug("Removed orphaned definitions: %s", sorted(removed))
    return CleanupResult(content=cleaned, removed=sorted(removed))
