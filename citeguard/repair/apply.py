"""Apply string-replacement fix proposals to page content.

Proposals are resolved to spans of the unmodified content and applied from
the end of the buffer backward, so no replacement shifts a span that is
still waiting to be applied.
"""

from __future__ import annotations

import logging
from typing import List, Sequence, Tuple

from citeguard.models import ApplyDetail, ApplyResult, ApplyStatus, FixProposal, TextEdit

logger = logging.getLogger(__name__)


def resolve_edits(
    content: str, proposals: Sequence[FixProposal]
) -> Tuple[List[TextEdit], List[ApplyDetail]]:
    """Locate each proposal in *content*; return non-overlapping edits, highest offset first.

    Proposals whose text is missing, or whose span collides with an edit
    already accepted, are returned as ``not_found`` details.
    """
    located: List[TextEdit] = []
    rejected: List[ApplyDetail] = []
    for proposal in proposals:
        offset = content.find(proposal.original) if proposal.original else -1
        if offset == -1:
            rejected.append(
                ApplyDetail(
                    footnote=proposal.footnote,
                    status=ApplyStatus.NOT_FOUND,
                    explanation="Original text not found in page",
                )
            )
            continue
        located.append(
            TextEdit(
                start=offset,
                end=offset + len(proposal.original),
                replacement=proposal.replacement,
                footnote=proposal.footnote,
                explanation=proposal.explanation,
            )
        )

    located.sort(key=lambda edit: (edit.start, edit.end), reverse=True)
    accepted: List[TextEdit] = []
    for edit in located:
        if any(edit.overlaps(other) for other in accepted):
            rejected.append(
                ApplyDetail(
                    footnote=edit.footnote,
                    status=ApplyStatus.NOT_FOUND,
                    explanation=f"Text at offset {edit.start} no longer matches after an earlier fix",
                )
            )
            continue
        accepted.append(edit)
    return accepted, rejected


def apply_edits(content: str, edits: Sequence[TextEdit]) -> str:
    """Splice *edits* (non-overlapping) into *content*, last span first."""
    result = content
    for edit in sorted(edits, key=lambda e: e.start, reverse=True):
        result = result[: edit.start] + edit.replacement + result[edit.end :]
    return result


def apply_fixes(content: str, proposals: Sequence[FixProposal]) -> ApplyResult:
    edits, rejected = resolve_edits(content, proposals)
    details = [
        ApplyDetail(footnote=e.footnote, status=ApplyStatus.APPLIED, explanation=e.explanation)
        for e in edits
    ]
    details.extend(rejected)
    for detail in rejected:
        logger.debug("[^%d] skipped: %s", detail.footnote, detail.explanation)
    return ApplyResult(
        content=apply_edits(content, edits),
        applied=len(edits),
        skipped=len(rejected),
        details=details,
    )
