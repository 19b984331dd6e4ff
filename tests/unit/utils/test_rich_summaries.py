"""
Unit tests for the Rich run summaries.
"""

from rich.console import Console

from citeguard.models import (
    BatchRepairSummary,
    CitationArchiveFile,
    CitationRecord,
    PageRepairReport,
    RepairOutcome,
    RepairState,
    VerificationStatus,
)
from citeguard.utils.rich_utils import build_archive_table, print_archive_summary, print_batch_summary, print_repair_report


def _console():
    return Console(record=True, width=120, force_terminal=False)


def test_archive_summary_lists_every_citation():
    archive = CitationArchiveFile(
        page_id="lab",
        verified_at="2026-01-01T00:00:00Z",
        total_citations=2,
        verified=1,
        broken=1,
        citations=[
            CitationRecord(footnote=1, url="https://example.org/a", status=VerificationStatus.VERIFIED, http_status=200),
            CitationRecord(footnote=2, url="https://example.org/b", status=VerificationStatus.BROKEN, note="HTTP 404"),
        ],
    )
    assert build_archive_table(archive).row_count == 2

    console = _console()
    print_archive_summary(archive, target=console)
    text = console.export_text()
    assert "https://example.org/b" in text
    assert "1 verified" in text
    assert "1 broken" in text


def test_repair_report_panel():
    report = PageRepairReport(
        page_id="lab",
        applied_changes=True,
        proposed=2,
        applied=1,
        skipped=1,
        orphans_removed=[3],
        before_flagged=2,
        after_flagged=1,
        outcome=RepairOutcome.IMPROVED,
        stages=[RepairState.TARGETED, RepairState.REVERIFY],
        warnings=["[^4] Original text not found in page"],
    )
    console = _console()
    print_repair_report(report, target=console)
    text = console.export_text()

    assert "Citation repair: lab" in text
    assert "targeted, reverify" in text
    assert "2 -> 1" in text
    assert "[^3]" in text
    assert "[^4] Original text not found in page" in text


def test_batch_summary_includes_errors():
    summary = BatchRepairSummary(
        reports=[PageRepairReport(page_id="lab", before_flagged=1, outcome=RepairOutcome.UNCHANGED)],
        errors={"missing": "PageNotFoundError: not found"},
    )
    console = _console()
    print_batch_summary(summary, target=console)
    text = console.export_text()

    assert "lab" in text
    assert "1 -> n/a" in text
    assert "error: PageNotFoundError" in text
