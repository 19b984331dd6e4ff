"""Per-page quote extraction: claim text, supporting quote and its verification."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import aiosqlite

from citeguard.accuracy.quotes import verify_quote_in_source
from citeguard.db.store import CitationStore
from citeguard.errors import JudgmentServiceError
from citeguard.footnotes.parser import extract_citations, extract_claim_sentence, strip_frontmatter
from citeguard.llm.judgment import QuoteExtractor
from citeguard.models import AccuracyConfig, CitationQuoteRecord, ExtractResult
from citeguard.verification.pipeline import SourceTextLoader

logger = logging.getLogger(__name__)

SHORT_SOURCE_QUOTE_CHARS = 500
SHORT_SOURCE_LOCATION = "full document (short)"


async def extract_quotes_for_page(
    page_id: str,
    content: str,
    store: CitationStore,
    extractor: QuoteExtractor,
    loader: Optional[SourceTextLoader] = None,
    recheck: bool = False,
    config: Optional[AccuracyConfig] = None,
) -> ExtractResult:
    """Extract and store a supporting quote for every URL citation on the page.

    Rows that already hold a quote are skipped unless *recheck* is set. Rows
    for footnotes that no longer exist on the page are pruned.
    """
    config = config or AccuracyConfig()
    body = strip_frontmatter(content)
    citations = extract_citations(body)
    result = ExtractResult(page_id=page_id, total=len(citations))
    if not citations:
        return result

    if store.available:
        try:
            pruned = await store.prune_page(page_id, [c.footnote for c in citations])
            if pruned:
                logger.info("%s: pruned %d stale quote rows", page_id, pruned)
        except aiosqlite.Error as exc:
            logger.warning("%s: could not prune stale quote rows: %s", page_id, exc)

    own_loader = loader is None
    loader = loader or SourceTextLoader(store)
    try:
        for i, citation in enumerate(citations):
            if not recheck:
                existing = await store.get_quote(page_id, citation.footnote)
                if existing and existing.source_quote:
                    result.skipped += 1
                    logger.debug("[^%d] already extracted, skipping", citation.footnote)
                    continue

            claim = extract_claim_sentence(body, citation.footnote) or citation.claim_context
            record = CitationQuoteRecord(
                page_id=page_id,
                footnote=citation.footnote,
                url=citation.url,
                claim_text=claim,
                claim_context=citation.claim_context,
                source_title=citation.link_text or None,
            )

            try:
                source_text = await loader.load(page_id, citation)
                if source_text and len(source_text) > config.min_source_chars_for_llm:
                    extraction = await extractor.extract_quote(claim, source_text)
                    record.source_quote = extraction.quote or None
                    record.source_location = extraction.location if extraction.quote else None
                    record.extraction_model = extractor.model_name
                    if extraction.quote:
                        check = verify_quote_in_source(extraction.quote, source_text)
                        record.verification_method = check.method
                        record.verification_score = check.score
                        record.quote_verified = check.score >= config.quote_verified_threshold
                elif source_text:
                    record.source_quote = source_text[:SHORT_SOURCE_QUOTE_CHARS]
                    record.source_location = SHORT_SOURCE_LOCATION

                if citation.url:
                    record.source_title = await loader.source_title(citation.url) or record.source_title
                await store.upsert_quote(record)
            except (JudgmentServiceError, aiosqlite.Error) as exc:
                result.errors += 1
                logger.warning("%s [^%d]: quote extraction failed: %s", page_id, citation.footnote, exc)
                await _store_claim_only(store, record)
                continue

            if record.source_quote:
                result.extracted += 1
                if record.quote_verified:
                    result.verified += 1

            if i < len(citations) - 1 and config.delay_ms:
                await asyncio.sleep(config.delay_ms / 1000)
    finally:
        if own_loader:
            await loader.aclose()

    logger.info(
        "%s: %d/%d quotes extracted, %d verified, %d skipped, %d errors",
        page_id,
        result.extracted,
        result.total,
        result.verified,
        result.skipped,
        result.errors,
    )
    return result


async def _store_claim_only(store: CitationStore, record: CitationQuoteRecord) -> None:
    claim_only = CitationQuoteRecord(
        page_id=record.page_id,
        footnote=record.footnote,
        url=record.url,
        claim_text=record.claim_text,
        claim_context=record.claim_context,
        source_title=record.source_title,
    )
    try:
        await store.upsert_quote(claim_only)
    except aiosqlite.Error as exc:
        logger.warning("%s [^%d]: could not store claim: %s", record.page_id, record.footnote, exc)
