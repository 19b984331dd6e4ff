"""Verify every citation on a page and archive the result."""

from __future__ import annotations

import asyncio
import datetime
import hashlib
import logging
from pathlib import Path
from typing import List, Optional

import aiohttp
import aiosqlite

from citeguard.db.store import CitationStore, NullCitationStore
from citeguard.footnotes.parser import extract_citations, strip_frontmatter
from citeguard.models import (
    CitationArchiveFile,
    CitationContentRecord,
    CitationRecord,
    ExtractedCitation,
    FetchConfig,
    VerificationStatus,
)
from citeguard.verification.archive import write_citation_archive
from citeguard.verification.fetcher import CitationFetcher, FetchResult, status_for

logger = logging.getLogger(__name__)

SOCIAL_MEDIA_NOTE = "Social media domain: cannot verify automatically"


def _now() -> str:
    return datetime.datetime.now(datetime.timezone.utc).isoformat()


def content_hash(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def summarize(page_id: str, records: List[CitationRecord]) -> CitationArchiveFile:
    return CitationArchiveFile(
        page_id=page_id,
        verified_at=datetime.date.today().isoformat(),
        total_citations=len(records),
        verified=sum(1 for r in records if r.status == VerificationStatus.VERIFIED),
        broken=sum(1 for r in records if r.status == VerificationStatus.BROKEN),
        unverifiable=sum(1 for r in records if r.status == VerificationStatus.UNVERIFIABLE),
        citations=records,
    )


class VerificationPipeline:
    """Fetches citation URLs in bounded batches and writes the page archive.

    The store is optional; fetched content is cached in it when present.
    """

    def __init__(
        self,
        archive_dir: str | Path,
        config: Optional[FetchConfig] = None,
        store: Optional[CitationStore] = None,
        fetcher: Optional[CitationFetcher] = None,
    ):
        self.archive_dir = Path(archive_dir)
        self.config = config or FetchConfig()
        self.store = store or NullCitationStore()
        self.fetcher = fetcher or CitationFetcher(self.config)

    async def verify_page(
        self,
        page_id: str,
        body: str,
        session: Optional[aiohttp.ClientSession] = None,
        write_archive: bool = True,
    ) -> CitationArchiveFile:
        citations = extract_citations(strip_frontmatter(body))
        logger.info("Verifying %d citations for %s", len(citations), page_id)

        if session is None:
            async with self.fetcher.new_session() as own_session:
                records = await self._verify_all(own_session, page_id, citations)
        else:
            records = await self._verify_all(session, page_id, citations)

        archive = summarize(page_id, records)
        if write_archive:
            write_citation_archive(self.archive_dir, archive)
        logger.info(
            "%s: %d verified, %d broken, %d unverifiable",
            page_id,
            archive.verified,
            archive.broken,
            archive.unverifiable,
        )
        return archive

    async def _verify_all(
        self,
        session: aiohttp.ClientSession,
        page_id: str,
        citations: List[ExtractedCitation],
    ) -> List[CitationRecord]:
        records: List[CitationRecord] = []
        size = self.config.concurrency
        for start in range(0, len(citations), size):
            batch = citations[start : start + size]
            records.extend(
                await asyncio.gather(*(self._verify_one(session, page_id, c) for c in batch))
            )
            if start + size < len(citations) and self.config.batch_delay_ms:
                await asyncio.sleep(self.config.batch_delay_ms / 1000)
        return records

    async def _verify_one(
        self,
        session: aiohttp.ClientSession,
        page_id: str,
        citation: ExtractedCitation,
    ) -> CitationRecord:
        url = citation.url or ""
        record = CitationRecord(
            footnote=citation.footnote,
            url=url,
            link_text=citation.link_text,
            claim_context=citation.claim_context,
        )

        if self.fetcher.is_unverifiable(url):
            record.fetched_at = _now()
            record.status = VerificationStatus.UNVERIFIABLE
            record.note = SOCIAL_MEDIA_NOTE
            return record

        result = await self.fetcher.fetch(session, url)
        record.fetched_at = _now()
        record.http_status = result.http_status
        record.status = status_for(result)

        if self.fetcher.is_academic(url):
            record.note = (
                "Academic publisher: URL accessible"
                if result.reachable
                else f"Academic publisher: {result.error or 'unreachable'}"
            )
            await self._cache_content(page_id, citation, result)
            return record

        record.page_title = result.page_title
        record.content_snippet = result.content_snippet
        record.content_length = result.content_length
        record.note = result.error or result.note
        logger.debug("[^%d] %s -> %s", citation.footnote, url, record.status.value)

        if result.full_html or result.full_text:
            await self._cache_content(page_id, citation, result)
        return record

    async def _cache_content(self, page_id: str, citation: ExtractedCitation, result: FetchResult) -> None:
        await cache_fetched_content(self.store, page_id, citation, result)


async def cache_fetched_content(
    store: CitationStore,
    page_id: str,
    citation: ExtractedCitation,
    result: FetchResult,
) -> None:
    """Best-effort write of a fetch result to the content cache."""
    if not store.available or not citation.url:
        return
    text = result.full_text or result.full_html or ""
    try:
        await store.upsert_content(
            CitationContentRecord(
                url=citation.url,
                page_id=page_id,
                footnote=citation.footnote,
                fetched_at=_now(),
                http_status=result.http_status,
                content_type=result.content_type,
                page_title=result.page_title,
                full_html=result.full_html,
                full_text=result.full_text,
                content_length=result.content_length,
                content_hash=content_hash(text) if text else None,
            )
        )
    except aiosqlite.Error as exc:
        logger.warning("Could not cache content for %s: %s", citation.url, exc)


class SourceTextLoader:
    """Full source text for a citation: content cache first, then one fetch.

    Opens its own HTTP session on first use unless one is supplied.
    """

    def __init__(
        self,
        store: CitationStore,
        fetcher: Optional[CitationFetcher] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.store = store
        self.fetcher = fetcher or CitationFetcher()
        self._session = session
        self._owns_session = False

    async def __aenter__(self) -> SourceTextLoader:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None
            self._owns_session = False

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = self.fetcher.new_session()
            self._owns_session = True
        return self._session

    async def source_title(self, url: str) -> Optional[str]:
        cached = await self.store.get_content(url)
        return cached.page_title if cached else None

    async def load(self, page_id: str, citation: ExtractedCitation) -> Optional[str]:
        if not citation.url:
            return None
        cached = await self.store.get_content(citation.url)
        if cached and cached.full_text:
            return cached.full_text
        if self.fetcher.is_unverifiable(citation.url):
            return None

        result = await self.fetcher.fetch(self._get_session(), citation.url)
        if not result.full_text:
            logger.debug("No source text for [^%d] %s: %s", citation.footnote, citation.url, result.error)
            return None
        await cache_fetched_content(self.store, page_id, citation, result)
        return result.full_text
