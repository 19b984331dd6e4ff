"""Edit-log write-through for mutating repair stages."""

from __future__ import annotations

import logging
from typing import List, Optional

import aiosqlite

from citeguard.db.store import CitationStore
from citeguard.models import EditLogEntry

logger = logging.getLogger(__name__)

AGENCY_AUTOMATED = "automated"

TOOL_FIX = "citeguard-fix"
TOOL_AUDIT = "citeguard-audit"
TOOL_ESCALATED = "citeguard-audit-escalated"
TOOL_SOURCE_REPLACE = "citeguard-audit-source-replace"
TOOL_PASS2 = "citeguard-audit-pass2"


async def append_edit_log(
    store: CitationStore,
    page_id: str,
    *,
    tool: str,
    note: Optional[str] = None,
    agency: str = AGENCY_AUTOMATED,
    requested_by: Optional[str] = None,
    date: Optional[str] = None,
) -> EditLogEntry:
    """Record one mutation of *page_id*.

    A failing write is logged and otherwise ignored: the page edit it
    describes has already happened.
    """
    fields = {"page_id": page_id, "tool": tool, "agency": agency, "requested_by": requested_by, "note": note}
    if date:
        fields["date"] = date
    entry = EditLogEntry(**fields)
    try:
        await store.append_edit_log(entry)
    except aiosqlite.Error as exc:
        logger.warning("Could not write edit log for %s (%s): %s", page_id, tool, exc)
    return entry


async def read_edit_log(store: CitationStore, page_id: str) -> List[EditLogEntry]:
    return await store.read_edit_log(page_id)
