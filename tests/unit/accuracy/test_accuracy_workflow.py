"""Unit tests for quote extraction, accuracy checking and the flagged export."""

import pytest

from citeguard.accuracy.check_accuracy import check_accuracy_for_page
from citeguard.accuracy.dashboard import (
    build_flagged_citations,
    enrich_flagged,
    export_flagged_citations,
    load_flagged_citations,
    pages_dir,
)
from citeguard.accuracy.extract_quotes import SHORT_SOURCE_LOCATION, extract_quotes_for_page
from citeguard.db.store import NullCitationStore, open_store
from citeguard.models import AccuracyConfig, AccuracyVerdict, CitationContentRecord
from citeguard.verification.fetcher import CitationFetcher
from citeguard.verification.pipeline import SourceTextLoader
from tests.fixtures.fakes import FakeChecker, FakeExtractor, FakeResponse, FakeSession

CONFIG = AccuracyConfig(delay_ms=0)

LONG_SOURCE = (
    "Annual report. In 2023 the lab received ten million dollars in funding from "
    "several philanthropic donors, which it spent on interpretability research."
)

PAGE = """## Funding

The lab received $10M in 2023[^1]. It employs 40 researchers[^2].

[^1]: [Annual Report](https://example.org/report)
[^2]: [Team page](https://example.org/team)
"""


def _rule(claim, evidence):
    return AccuracyVerdict.INACCURATE if "40 researchers" in claim else AccuracyVerdict.ACCURATE


async def _seed_content(store):
    await store.upsert_content(
        CitationContentRecord(url="https://example.org/report", full_text=LONG_SOURCE, page_title="Report 2023")
    )
    await store.upsert_content(CitationContentRecord(url="https://example.org/team", full_text="Team: 25 staff."))


@pytest.mark.asyncio
async def test_extract_quotes_llm_and_short_sources(tmp_path):
    async with open_store(str(tmp_path / "x.db")) as store:
        await _seed_content(store)
        extractor = FakeExtractor(quote="the lab received ten million dollars")
        result = await extract_quotes_for_page("lab", PAGE, store, extractor, config=CONFIG)

        assert (result.total, result.extracted, result.verified, result.errors) == (2, 2, 1, 0)
        assert len(extractor.calls) == 1

        long_row = await store.get_quote("lab", 1)
        assert long_row.claim_text == "The lab received $10M in 2023."
        assert long_row.quote_verified
        assert long_row.source_title == "Report 2023"
        assert long_row.extraction_model == "fake:extractor"

        short_row = await store.get_quote("lab", 2)
        assert short_row.source_quote == "Team: 25 staff."
        assert short_row.source_location == SHORT_SOURCE_LOCATION


@pytest.mark.asyncio
async def test_extraction_is_idempotent_without_recheck(tmp_path):
    async with open_store(str(tmp_path / "x.db")) as store:
        await _seed_content(store)
        extractor = FakeExtractor()
        await extract_quotes_for_page("lab", PAGE, store, extractor, config=CONFIG)
        first = await store.get_quotes_for_page("lab")

        again = await extract_quotes_for_page("lab", PAGE, store, extractor, config=CONFIG)
        assert again.skipped == 2
        assert len(extractor.calls) == 1
        assert [r.source_quote for r in await store.get_quotes_for_page("lab")] == [
            r.source_quote for r in first
        ]

        rechecked = await extract_quotes_for_page("lab", PAGE, store, extractor, recheck=True, config=CONFIG)
        assert rechecked.skipped == 0
        assert len(extractor.calls) == 2


@pytest.mark.asyncio
async def test_extraction_failure_still_stores_claim(tmp_path):
    async with open_store(str(tmp_path / "x.db")) as store:
        await _seed_content(store)
        result = await extract_quotes_for_page("lab", PAGE, store, FakeExtractor(fail=True), config=CONFIG)
        assert result.errors == 1
        row = await store.get_quote("lab", 1)
        assert row.claim_text == "The lab received $10M in 2023."
        assert row.source_quote is None


@pytest.mark.asyncio
async def test_extraction_fetches_on_cache_miss_and_prunes_stale_rows(tmp_path):
    async with open_store(str(tmp_path / "x.db")) as store:
        await _seed_content(store)
        await extract_quotes_for_page("lab", PAGE, store, FakeExtractor(), config=CONFIG)

        page = PAGE.replace("[^2]", "[^3]").replace("https://example.org/team", "https://example.org/new")
        session = FakeSession({"https://example.org/new": FakeResponse(200, "<p>Staff of 40 people.</p>")})
        loader = SourceTextLoader(store, CitationFetcher(), session=session)
        await extract_quotes_for_page("lab", page, store, FakeExtractor(), loader=loader, config=CONFIG)

        footnotes = [r.footnote for r in await store.get_quotes_for_page("lab")]
        assert footnotes == [1, 3]
        assert session.requested == ["https://example.org/new"]
        assert (await store.get_content("https://example.org/new")).full_text == "Staff of 40 people."


@pytest.mark.asyncio
async def test_check_accuracy_counts_and_persists(tmp_path):
    async with open_store(str(tmp_path / "x.db")) as store:
        await _seed_content(store)
        await extract_quotes_for_page("lab", PAGE, store, FakeExtractor(), config=CONFIG)
        checker = FakeChecker(_rule)
        result = await check_accuracy_for_page("lab", store, checker, content=PAGE, config=CONFIG)

        assert (result.total, result.accurate, result.inaccurate, result.flagged) == (2, 1, 1, 1)
        assert [issue.footnote for issue in result.issues] == [2]
        assert (await store.get_quote("lab", 2)).accuracy_verdict == AccuracyVerdict.INACCURATE
        # Evidence prefers cached full text over a shorter quote.
        assert checker.calls[0][1] == LONG_SOURCE

        again = await check_accuracy_for_page("lab", store, checker, content=PAGE, config=CONFIG)
        assert len(checker.calls) == 2
        assert again.inaccurate == 1


@pytest.mark.asyncio
async def test_check_accuracy_ignores_footnotes_removed_from_page(tmp_path):
    async with open_store(str(tmp_path / "x.db")) as store:
        await _seed_content(store)
        await extract_quotes_for_page("lab", PAGE, store, FakeExtractor(), config=CONFIG)
        trimmed = PAGE.replace(" It employs 40 researchers[^2].", "").replace(
            "[^2]: [Team page](https://example.org/team)\n", ""
        )
        result = await check_accuracy_for_page("lab", store, FakeChecker(), content=trimmed, config=CONFIG)
        assert result.total == 1


@pytest.mark.asyncio
async def test_check_accuracy_counts_errors(tmp_path):
    async with open_store(str(tmp_path / "x.db")) as store:
        await _seed_content(store)
        await extract_quotes_for_page("lab", PAGE, store, FakeExtractor(), config=CONFIG)
        result = await check_accuracy_for_page("lab", store, FakeChecker(fail=True), config=CONFIG)
        assert result.errors == 2
        assert result.flagged == 0


@pytest.mark.asyncio
async def test_flagged_export_and_reload(tmp_path):
    accuracy_dir = tmp_path / "accuracy"
    async with open_store(str(tmp_path / "x.db")) as store:
        await _seed_content(store)
        await extract_quotes_for_page("lab", PAGE, store, FakeExtractor(), config=CONFIG)
        await check_accuracy_for_page("lab", store, FakeChecker(_rule), config=CONFIG)

        flagged = await build_flagged_citations(store, "lab")
        assert [(f.footnote, f.verdict) for f in flagged] == [(2, AccuracyVerdict.INACCURATE)]
        assert flagged == await build_flagged_citations(store)

        export_flagged_citations(accuracy_dir, flagged, ["lab", "clean-page"])
        loaded = load_flagged_citations(accuracy_dir, "lab")
        assert loaded == flagged
        assert load_flagged_citations(accuracy_dir, verdict=AccuracyVerdict.UNSUPPORTED) == []
        assert load_flagged_citations(accuracy_dir, max_score=0.1) == []

        enriched = await enrich_flagged(store, loaded)
        assert enriched[0].full_claim_text == "It employs 40 researchers."
        assert enriched[0].source_full_text == "Team: 25 staff."

        export_flagged_citations(accuracy_dir, [], ["lab"])
        assert not (pages_dir(accuracy_dir) / "lab.yaml").exists()


@pytest.mark.asyncio
async def test_enrich_without_store_leaves_fields_empty(tmp_path):
    async with open_store(str(tmp_path / "x.db")) as store:
        await _seed_content(store)
        await extract_quotes_for_page("lab", PAGE, store, FakeExtractor(), config=CONFIG)
        await check_accuracy_for_page("lab", store, FakeChecker(_rule), config=CONFIG)
        flagged = await build_flagged_citations(store, "lab")

    enriched = await enrich_flagged(NullCitationStore(), flagged)
    assert enriched[0].full_claim_text is None
    assert enriched[0].source_full_text is None
