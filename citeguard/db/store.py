"""Store handle injected into every component that persists citation data.

Two implementations satisfy :class:`CitationStore`: a SQLite-backed one and
:class:`NullCitationStore` for environments where no database is
provisioned. Reads never raise; a store that is absent or broken answers
with empty results.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Iterable, List, Optional, Protocol, runtime_checkable

import aiosqlite

from citeguard.db.database import connect_db
from citeguard.db.repositories import (
    CitationContentRepository,
    CitationQuoteRepository,
    EditLogRepository,
)
from citeguard.models import (
    AccuracyCheck,
    CitationContentRecord,
    CitationQuoteRecord,
    EditLogEntry,
)

logger = logging.getLogger(__name__)


@runtime_checkable
class CitationStore(Protocol):
    available: bool

    async def get_quote(self, page_id: str, footnote: int) -> Optional[CitationQuoteRecord]: ...

    async def get_quotes_for_page(self, page_id: str) -> List[CitationQuoteRecord]: ...

    async def get_quotes_with_verdicts(self, verdicts: Iterable[str]) -> List[CitationQuoteRecord]: ...

    async def upsert_quote(self, record: CitationQuoteRecord) -> None: ...

    async def mark_accuracy(self, page_id: str, footnote: int, check: AccuracyCheck) -> None: ...

    async def prune_page(self, page_id: str, keep_footnotes: Iterable[int]) -> int: ...

    async def get_content(self, url: str) -> Optional[CitationContentRecord]: ...

    async def upsert_content(self, record: CitationContentRecord) -> None: ...

    async def append_edit_log(self, entry: EditLogEntry) -> None: ...

    async def read_edit_log(self, page_id: str) -> List[EditLogEntry]: ...


class NullCitationStore:
    """Store-absent variant: reads are empty, writes are dropped."""

    available = False

    async def get_quote(self, page_id: str, footnote: int) -> Optional[CitationQuoteRecord]:
        return None

    async def get_quotes_for_page(self, page_id: str) -> List[CitationQuoteRecord]:
        return []

    async def get_quotes_with_verdicts(self, verdicts: Iterable[str]) -> List[CitationQuoteRecord]:
        return []

    async def upsert_quote(self, record: CitationQuoteRecord) -> None:
        return None

    async def mark_accuracy(self, page_id: str, footnote: int, check: AccuracyCheck) -> None:
        return None

    async def prune_page(self, page_id: str, keep_footnotes: Iterable[int]) -> int:
        return 0

    async def get_content(self, url: str) -> Optional[CitationContentRecord]:
        return None

    async def upsert_content(self, record: CitationContentRecord) -> None:
        return None

    async def append_edit_log(self, entry: EditLogEntry) -> None:
        logger.debug("No store; edit log entry for %s not persisted: %s", entry.page_id, entry.tool)

    async def read_edit_log(self, page_id: str) -> List[EditLogEntry]:
        return []


class SqliteCitationStore:
    """SQLite-backed store. Read failures are logged and read as empty."""

    available = True

    def __init__(self, db: aiosqlite.Connection):
        self.quotes = CitationQuoteRepository(db)
        self.content = CitationContentRepository(db)
        self.edit_log = EditLogRepository(db)

    async def get_quote(self, page_id: str, footnote: int) -> Optional[CitationQuoteRecord]:
        try:
            return await self.quotes.get(page_id, footnote)
        except aiosqlite.Error as exc:
            logger.warning("Quote read failed for %s [^%d]: %s", page_id, footnote, exc)
            return None

    async def get_quotes_for_page(self, page_id: str) -> List[CitationQuoteRecord]:
        try:
            return await self.quotes.get_by_page(page_id)
        except aiosqlite.Error as exc:
            logger.warning("Quote read failed for %s: %s", page_id, exc)
            return []

    async def get_quotes_with_verdicts(self, verdicts: Iterable[str]) -> List[CitationQuoteRecord]:
        try:
            return await self.quotes.get_with_verdicts(verdicts)
        except aiosqlite.Error as exc:
            logger.warning("Flagged quote read failed: %s", exc)
            return []

    async def upsert_quote(self, record: CitationQuoteRecord) -> None:
        await self.quotes.upsert_quote(record)

    async def mark_accuracy(self, page_id: str, footnote: int, check: AccuracyCheck) -> None:
        await self.quotes.mark_accuracy(page_id, footnote, check)

    async def prune_page(self, page_id: str, keep_footnotes: Iterable[int]) -> int:
        return await self.quotes.prune_page(page_id, keep_footnotes)

    async def get_content(self, url: str) -> Optional[CitationContentRecord]:
        try:
            return await self.content.get_by_url(url)
        except aiosqlite.Error as exc:
            logger.warning("Content read failed for %s: %s", url, exc)
            return None

    async def upsert_content(self, record: CitationContentRecord) -> None:
        await self.content.upsert(record)

    async def append_edit_log(self, entry: EditLogEntry) -> None:
        await self.edit_log.append(entry)

    async def read_edit_log(self, page_id: str) -> List[EditLogEntry]:
        try:
            return await self.edit_log.list_for_page(page_id)
        except aiosqlite.Error as exc:
            logger.warning("Edit log read failed for %s: %s", page_id, exc)
            return []


@asynccontextmanager
async def open_store(db_path: Optional[str]) -> AsyncIterator[CitationStore]:
    """Yield a SQLite store, or the null store when *db_path* is empty or unusable."""
    if not db_path:
        yield NullCitationStore()
        return
    try:
        db = await connect_db(db_path)
    except (aiosqlite.Error, OSError) as exc:
        logger.warning("Citation store unavailable at %s (%s); continuing without it", db_path, exc)
        yield NullCitationStore()
        return
    try:
        yield SqliteCitationStore(db)
    finally:
        await db.close()
