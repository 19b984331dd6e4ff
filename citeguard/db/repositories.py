"""Typed repositories for citation persistence."""

from __future__ import annotations

import datetime
from typing import Iterable, List, Optional

import aiosqlite

from citeguard.models import (
    AccuracyCheck,
    CitationContentRecord,
    CitationQuoteRecord,
    EditLogEntry,
)

_QUOTE_FIELDS = (
    "url",
    "claim_text",
    "claim_context",
    "source_quote",
    "source_location",
    "quote_verified",
    "verification_method",
    "verification_score",
    "source_title",
    "source_type",
    "extraction_model",
)

_CONTENT_FIELDS = (
    "page_id",
    "footnote",
    "fetched_at",
    "http_status",
    "content_type",
    "page_title",
    "full_html",
    "full_text",
    "content_length",
    "content_hash",
)


def _now() -> str:
    return datetime.datetime.now(datetime.timezone.utc).isoformat(timespec="seconds")


class CitationQuoteRepository:
    """Rows keyed by ``(page_id, footnote)``.

    Extraction upserts only touch quote and claim columns; accuracy columns
    change only through :meth:`mark_accuracy`.
    """

    def __init__(self, db: aiosqlite.Connection):
        self.db = db

    async def upsert_quote(self, record: CitationQuoteRecord) -> None:
        values = record.model_dump(mode="json")
        columns = ", ".join(("page_id", "footnote") + _QUOTE_FIELDS)
        placeholders = ", ".join("?" for _ in range(len(_QUOTE_FIELDS) + 2))
        updates = ", ".join(f"{name} = excluded.{name}" for name in _QUOTE_FIELDS)
        await self.db.execute(
            f"""
            INSERT INTO citation_quotes ({columns})
            VALUES ({placeholders})
            ON CONFLICT(page_id, footnote) DO UPDATE SET
                {updates},
                updated_at = CURRENT_TIMESTAMP
            """,
            (
                record.page_id,
                record.footnote,
                *(int(values[name]) if name == "quote_verified" else values[name] for name in _QUOTE_FIELDS),
            ),
        )
        await self.db.commit()

    async def mark_accuracy(self, page_id: str, footnote: int, check: AccuracyCheck) -> None:
        await self.db.execute(
            """
            UPDATE citation_quotes
            SET accuracy_verdict = ?,
                accuracy_score = ?,
                accuracy_issues = ?,
                accuracy_supporting_quotes = ?,
                verification_difficulty = ?,
                accuracy_checked_at = ?,
                updated_at = CURRENT_TIMESTAMP
            WHERE page_id = ? AND footnote = ?
            """,
            (
                check.verdict.value,
                check.score,
                "\n".join(check.issues) or None,
                "\n---\n".join(check.supporting_quotes) or None,
                check.difficulty or None,
                _now(),
                page_id,
                footnote,
            ),
        )
        await self.db.commit()

    async def get(self, page_id: str, footnote: int) -> Optional[CitationQuoteRecord]:
        cursor = await self.db.execute(
            "SELECT * FROM citation_quotes WHERE page_id = ? AND footnote = ?",
            (page_id, footnote),
        )
        row = await cursor.fetchone()
        return CitationQuoteRecord.model_validate(dict(row)) if row else None

    async def get_by_page(self, page_id: str) -> List[CitationQuoteRecord]:
        cursor = await self.db.execute(
            "SELECT * FROM citation_quotes WHERE page_id = ? ORDER BY footnote",
            (page_id,),
        )
        rows = await cursor.fetchall()
        return [CitationQuoteRecord.model_validate(dict(row)) for row in rows]

    async def get_with_verdicts(self, verdicts: Iterable[str]) -> List[CitationQuoteRecord]:
        wanted = list(verdicts)
        if not wanted:
            return []
        placeholders = ", ".join("?" for _ in wanted)
        cursor = await self.db.execute(
            f"SELECT * FROM citation_quotes WHERE accuracy_verdict IN ({placeholders}) "
            "ORDER BY page_id, footnote",
            tuple(wanted),
        )
        rows = await cursor.fetchall()
        return [CitationQuoteRecord.model_validate(dict(row)) for row in rows]

    async def prune_page(self, page_id: str, keep_footnotes: Iterable[int]) -> int:
        """Delete rows for footnotes no longer present on the page."""
        keep = list(keep_footnotes)
        if keep:
            placeholders = ", ".join("?" for _ in keep)
            cursor = await self.db.execute(
                f"DELETE FROM citation_quotes WHERE page_id = ? AND footnote NOT IN ({placeholders})",
                (page_id, *keep),
            )
        else:
            cursor = await self.db.execute(
                "DELETE FROM citation_quotes WHERE page_id = ?", (page_id,)
            )
        await self.db.commit()
        return cursor.rowcount


class CitationContentRepository:
    """Fetched source content, one row per URL (last fetch wins)."""

    def __init__(self, db: aiosqlite.Connection):
        self.db = db

    async def upsert(self, record: CitationContentRecord) -> None:
        columns = ", ".join(("url",) + _CONTENT_FIELDS)
        placeholders = ", ".join("?" for _ in range(len(_CONTENT_FIELDS) + 1))
        updates = ", ".join(f"{name} = excluded.{name}" for name in _CONTENT_FIELDS)
        await self.db.execute(
            f"""
            INSERT INTO citation_content ({columns})
            VALUES ({placeholders})
            ON CONFLICT(url) DO UPDATE SET
                {updates},
                updated_at = CURRENT_TIMESTAMP
            """,
            (record.url, *(getattr(record, name) for name in _CONTENT_FIELDS)),
        )
        await self.db.commit()

    async def get_by_url(self, url: str) -> Optional[CitationContentRecord]:
        cursor = await self.db.execute("SELECT * FROM citation_content WHERE url = ?", (url,))
        row = await cursor.fetchone()
        return CitationContentRecord.model_validate(dict(row)) if row else None


class EditLogRepository:
    def __init__(self, db: aiosqlite.Connection):
        self.db = db

    async def append(self, entry: EditLogEntry) -> None:
        await self.db.execute(
            """
            INSERT INTO edit_log (page_id, date, tool, agency, requested_by, note)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (entry.page_id, entry.date, entry.tool, entry.agency, entry.requested_by, entry.note),
        )
        await self.db.commit()

    async def list_for_page(self, page_id: str) -> List[EditLogEntry]:
        cursor = await self.db.execute(
            "SELECT page_id, date, tool, agency, requested_by, note FROM edit_log "
            "WHERE page_id = ? ORDER BY id",
            (page_id,),
        )
        rows = await cursor.fetchall()
        return [EditLogEntry.model_validate(dict(row)) for row in rows]
