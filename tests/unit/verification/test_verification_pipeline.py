"""Unit tests for the page verification pipeline and archive files."""

import pytest

from citeguard.db.store import open_store
from citeguard.models import CitationArchiveFile, FetchConfig, VerificationStatus
from citeguard.verification.archive import (
    archive_path,
    list_archived_pages,
    read_citation_archive,
    write_citation_archive,
)
from citeguard.verification.pipeline import SOCIAL_MEDIA_NOTE, VerificationPipeline
from tests.fixtures.fakes import FakeResponse, FakeSession

PAGE = """---
title: Lab
---
## Funding

The lab received ten million dollars.[^1] A post announced it.[^2]
The journal version is paywalled.[^3] An old link is gone.[^4]

[^1]: [Report](https://example.org/report)
[^2]: https://twitter.com/lab/status/1
[^3]: [Paper](https://academic.oup.com/article/1)
[^4]: [Old](https://gone.example.org/page)
"""

RESPONSES = {
    "https://example.org/report": FakeResponse(
        200, "<title>Report</title><p>The lab received ten million dollars.</p>"
    ),
    "https://academic.oup.com/article/1": FakeResponse(403),
    "https://gone.example.org/page": FakeResponse(404),
}


def _pipeline(tmp_path, store=None) -> VerificationPipeline:
    config = FetchConfig(concurrency=2, batch_delay_ms=0)
    return VerificationPipeline(tmp_path / "archive", config=config, store=store)


@pytest.mark.asyncio
async def test_verify_page_statuses_and_archive(tmp_path):
    session = FakeSession(dict(RESPONSES))
    archive = await _pipeline(tmp_path).verify_page("lab", PAGE, session=session)

    by_footnote = {c.footnote: c for c in archive.citations}
    assert by_footnote[1].status == VerificationStatus.VERIFIED
    assert by_footnote[1].page_title == "Report"
    assert by_footnote[2].status == VerificationStatus.UNVERIFIABLE
    assert by_footnote[2].note == SOCIAL_MEDIA_NOTE
    assert by_footnote[3].status == VerificationStatus.BROKEN
    assert by_footnote[3].note == "Academic publisher: HTTP 403"
    assert by_footnote[4].status == VerificationStatus.BROKEN

    assert (archive.total_citations, archive.verified, archive.broken, archive.unverifiable) == (4, 1, 2, 1)
    assert "https://twitter.com/lab/status/1" not in session.requested
    assert read_citation_archive(tmp_path / "archive", "lab") == archive


@pytest.mark.asyncio
async def test_fetched_content_is_cached(tmp_path):
    async with open_store(str(tmp_path / "x.db")) as store:
        session = FakeSession(dict(RESPONSES))
        await _pipeline(tmp_path, store).verify_page("lab", PAGE, session=session, write_archive=False)
        cached = await store.get_content("https://example.org/report")
        assert cached is not None
        assert cached.page_id == "lab"
        assert "ten million" in cached.full_text
        assert cached.content_hash

    assert not archive_path(tmp_path / "archive", "lab").exists()


def test_archive_round_trip_and_listing(tmp_path):
    for page_id in ("beta", "alpha"):
        write_citation_archive(tmp_path, CitationArchiveFile(page_id=page_id, verified_at="2026-01-01"))
    assert list_archived_pages(tmp_path) == ["alpha", "beta"]
    assert read_citation_archive(tmp_path, "alpha").verified_at == "2026-01-01"


def test_missing_or_corrupt_archive_reads_as_none(tmp_path):
    assert read_citation_archive(tmp_path, "nope") is None
    archive_path(tmp_path, "bad").write_text("citations: [unclosed", encoding="utf-8")
    assert read_citation_archive(tmp_path, "bad") is None
    assert list_archived_pages(tmp_path / "missing") == []


@pytest.mark.asyncio
async def test_non_html_source_is_verified_with_placeholder_note(tmp_path):
    page = "Data behind the claim.[^1]\n\n[^1]: [Dataset](https://example.org/data.json)\n"
    session = FakeSession({"https://example.org/data.json": FakeResponse(200, "{}", "application/json")})
    archive = await _pipeline(tmp_path).verify_page("lab", page, session=session, write_archive=False)

    record = archive.citations[0]
    assert record.status == VerificationStatus.VERIFIED
    assert record.note == "(non-HTML content: application/json)"
    assert record.content_snippet == record.note
