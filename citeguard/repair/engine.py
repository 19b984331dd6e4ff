"""
Per-page auto-repair: targeted fixes, section escalation, orphan cleanup,
source replacement and re-verification, driven by :mod:`state_machine`.
"""

from __future__ import annotations

import asyncio
import logging
import os
from contextlib import asynccontextmanager
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import AsyncIterator, Iterable, List, Optional

from citeguard.accuracy.check_accuracy import check_accuracy_for_page
from citeguard.accuracy.dashboard import build_flagged_citations, export_flagged_citations
from citeguard.accuracy.extract_quotes import extract_quotes_for_page
from citeguard.config.loader import SEARCH_ENV_KEY, ensure_secret_env
from citeguard.db.store import CitationStore
from citeguard.edit_log import TOOL_AUDIT, TOOL_ESCALATED, TOOL_FIX, TOOL_PASS2, TOOL_SOURCE_REPLACE, append_edit_log
from citeguard.llm.judgment import (
    AccuracyChecker,
    FixGenerator,
    QuoteExtractor,
    SectionRewriter,
    create_judgment_service,
)
from citeguard.models import (
    AccuracyResult,
    AccuracyVerdict,
    ApplyStatus,
    BatchRepairSummary,
    EnrichedFlaggedCitation,
    PageRepairReport,
    RepairOutcome,
    RepairState,
    SettingsConfig,
)
from citeguard.pages import read_page, resolve_page_file, write_text_atomic
from citeguard.repair.apply import apply_fixes
from citeguard.repair.cleanup import cleanup_orphaned_footnotes
from citeguard.repair.escalation import apply_section_rewrites, escalate_sections
from citeguard.repair.fixes import generate_fixes_for_page, load_page_flagged
from citeguard.repair.source_replacement import apply_source_replacements, find_replacement_sources
from citeguard.repair.state_machine import (
    RepairProgress,
    classify_outcome,
    next_state,
    should_run_second_pass,
)
from citeguard.search.source_discovery import ExaSourceDiscovery, SourceDiscovery
from citeguard.utils.rich_utils import print_batch_summary, print_repair_report
from citeguard.verification.fetcher import CitationFetcher
from citeguard.verification.pipeline import SourceTextLoader

logger = logging.getLogger(__name__)


@dataclass
class _PageRun:
    page_id: str
    path: Path
    content: str
    apply: bool
    loader: SourceTextLoader
    report: PageRepairReport
    flagged: List[EnrichedFlaggedCitation] = field(default_factory=list)
    # Latest accuracy result and whether it still describes ``content``.
    latest: Optional[AccuracyResult] = None
    fresh: bool = False


class RepairEngine:
    """Runs the staged repair of one page or a batch of pages.

    The judgment collaborators are usually one :class:`LLMJudgmentService`
    passed four times; tests hand in separate fakes.
    """

    def __init__(
        self,
        settings: SettingsConfig,
        store: CitationStore,
        extractor: QuoteExtractor,
        checker: AccuracyChecker,
        fixer: FixGenerator,
        rewriter: SectionRewriter,
        discovery: Optional[SourceDiscovery] = None,
        loader: Optional[SourceTextLoader] = None,
    ):
        self.settings = settings
        self.store = store
        self.extractor = extractor
        self.checker = checker
        self.fixer = fixer
        self.rewriter = rewriter
        self.discovery = discovery
        self.loader = loader
        self._stages = {
            RepairState.TARGETED: self._targeted,
            RepairState.ESCALATE: self._escalate,
            RepairState.CLEANUP: self._cleanup,
            RepairState.SOURCE_REPLACE: self._source_replace,
            RepairState.REVERIFY: self._reverify,
        }

    @asynccontextmanager
    async def _loader_scope(self) -> AsyncIterator[SourceTextLoader]:
        if self.loader is not None:
            yield self.loader
            return
        async with SourceTextLoader(self.store, CitationFetcher(self.settings.fetch)) as loader:
            yield loader

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def repair_page(self, page_id: str, apply: bool = False, recheck: bool = False) -> PageRepairReport:
        async with self._loader_scope() as loader:
            report = await self._repair_page(page_id, apply, recheck, loader)
        if self.settings.repair.show_summary:
            print_repair_report(report)
        return report

    async def repair_pages(
        self, page_ids: Iterable[str], apply: bool = False, recheck: bool = False
    ) -> BatchRepairSummary:
        """Repair pages concurrently within ``repair.page_concurrency``.

        A page that raises is recorded in ``errors`` and does not stop the others.
        """
        page_ids = list(dict.fromkeys(page_ids))
        semaphore = asyncio.Semaphore(self.settings.repair.page_concurrency)
        summary = BatchRepairSummary()

        async with self._loader_scope() as loader:

            async def _one(page_id: str) -> PageRepairReport:
                async with semaphore:
                    return await self._repair_page(page_id, apply, recheck, loader)

            outcomes = await asyncio.gather(*(_one(p) for p in page_ids), return_exceptions=True)

        for page_id, outcome in zip(page_ids, outcomes):
            if isinstance(outcome, BaseException):
                summary.errors[page_id] = f"{type(outcome).__name__}: {outcome}"
                logger.error("Repair of %s failed: %s", page_id, summary.errors[page_id])
                continue
            summary.reports.append(outcome)

        logger.info(
            "Repaired %d pages: %d improved, %d regressed, %d failed",
            len(summary.reports),
            summary.improved,
            summary.regressed,
            len(summary.errors),
        )
        if self.settings.repair.show_summary:
            print_batch_summary(summary)
        return summary

    async def fix_page(self, page_id: str, apply: bool = False) -> PageRepairReport:
        """Targeted fixes only, from the flagged view as it stands; no re-verification."""
        path = resolve_page_file(self.settings.paths.content_dir, page_id)
        content = read_page(path)
        report = PageRepairReport(page_id=page_id, applied_changes=apply)
        flagged = await load_page_flagged(page_id, self.store, self.settings.paths.accuracy_dir)
        report.before_flagged = len(flagged)

        proposals = await generate_fixes_for_page(page_id, content, flagged, self.fixer)
        result = apply_fixes(content, proposals)
        report.proposed, report.applied, report.skipped = len(proposals), result.applied, result.skipped
        report.warnings.extend(self._not_found_warnings(result.details))
        if apply and result.applied:
            write_text_atomic(path, result.content)
            await append_edit_log(
                self.store, page_id, tool=TOOL_FIX, note=f"Fixed {result.applied} flagged citation inaccuracies"
            )
        report.stages.append(RepairState.TARGETED)
        return report

    # ------------------------------------------------------------------
    # Page run
    # ------------------------------------------------------------------

    async def _repair_page(
        self, page_id: str, apply: bool, recheck: bool, loader: SourceTextLoader
    ) -> PageRepairReport:
        path = resolve_page_file(self.settings.paths.content_dir, page_id)
        run = _PageRun(
            page_id=page_id,
            path=path,
            content=read_page(path),
            apply=apply,
            loader=loader,
            report=PageRepairReport(page_id=page_id, applied_changes=apply),
        )
        before = await self._verify(run, recheck=recheck)
        run.report.before_flagged = before.flagged
        run.flagged = await load_page_flagged(page_id, self.store, self.settings.paths.accuracy_dir)

        if not run.flagged:
            logger.info("%s: no flagged citations", page_id)
            run.report.after_flagged = before.flagged
            run.report.outcome = RepairOutcome.UNCHANGED
            return run.report

        progress = RepairProgress(
            apply=apply,
            escalate=self.settings.repair.escalate,
            search=self.discovery is not None,
        )
        state = RepairState.TARGETED
        while state != RepairState.DONE:
            run.report.stages.append(state)
            progress = await self._stages[state](run, progress)
            state = next_state(state, progress)

        self._finish(run, progress)
        return run.report

    def _finish(self, run: _PageRun, progress: RepairProgress) -> None:
        report = run.report
        if not run.apply:
            report.outcome = RepairOutcome.NOT_RUN
            return
        if not progress.changed:
            report.after_flagged = report.before_flagged
            report.outcome = RepairOutcome.UNCHANGED
            return
        report.outcome = classify_outcome(report.before_flagged, report.after_flagged or 0)
        if report.outcome == RepairOutcome.REGRESSED:
            logger.error(
                "%s: repair made things worse: %d -> %d flagged citations",
                run.page_id,
                report.before_flagged,
                report.after_flagged,
            )
        else:
            logger.info(
                "%s: %s (%d -> %d flagged)",
                run.page_id,
                report.outcome.value,
                report.before_flagged,
                report.after_flagged,
            )

    async def _verify(self, run: _PageRun, recheck: bool = True) -> AccuracyResult:
        """Re-extract claims and re-check accuracy against the page as it is now."""
        await extract_quotes_for_page(
            run.page_id,
            run.content,
            self.store,
            self.extractor,
            loader=run.loader,
            recheck=recheck,
            config=self.settings.accuracy,
        )
        result = await check_accuracy_for_page(
            run.page_id,
            self.store,
            self.checker,
            content=run.content,
            recheck=recheck,
            config=self.settings.accuracy,
        )
        if self.store.available:
            flagged = await build_flagged_citations(self.store, run.page_id)
            export_flagged_citations(self.settings.paths.accuracy_dir, flagged, [run.page_id])
        run.latest, run.fresh = result, True
        return result

    def _write(self, run: _PageRun, content: str) -> None:
        write_text_atomic(run.path, content)
        run.content = content
        run.fresh = False

    @staticmethod
    def _not_found_warnings(details) -> List[str]:
        return [
            f"[^{d.footnote}] {d.explanation}" for d in details if d.status == ApplyStatus.NOT_FOUND
        ]

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def _targeted(self, run: _PageRun, progress: RepairProgress) -> RepairProgress:
        proposals = await generate_fixes_for_page(run.page_id, run.content, run.flagged, self.fixer)
        result = apply_fixes(run.content, proposals)
        report = run.report
        report.proposed, report.applied, report.skipped = len(proposals), result.applied, result.skipped
        report.warnings.extend(self._not_found_warnings(result.details))

        changed = progress.changed
        if run.apply and result.applied:
            self._write(run, result.content)
            await append_edit_log(
                self.store,
                run.page_id,
                tool=TOOL_AUDIT,
                note=f"Fixed {result.applied} flagged citation inaccuracies via audit",
            )
            changed = True
        return replace(progress, proposals=len(proposals), applied=result.applied, changed=changed)

    async def _escalate(self, run: _PageRun, progress: RepairProgress) -> RepairProgress:
        rewrites, rejected = await escalate_sections(
            run.page_id, run.content, run.flagged, self.store, self.rewriter, self.settings.repair
        )
        run.report.rewrites_rejected = rejected
        if not run.apply or not rewrites:
            run.report.sections_rewritten = len(rewrites)
            return replace(progress, rewrites_applied=0)

        result = apply_section_rewrites(run.content, rewrites)
        run.report.sections_rewritten = result.applied
        if result.applied:
            # Written together with the orphan cleanup that always follows.
            run.content, run.fresh = result.content, False
        return replace(progress, rewrites_applied=result.applied)

    async def _cleanup(self, run: _PageRun, progress: RepairProgress) -> RepairProgress:
        result = cleanup_orphaned_footnotes(run.content)
        run.report.orphans_removed = result.removed
        self._write(run, result.content)

        note = f"Rewrote {run.report.sections_rewritten} sections with flagged citations"
        if result.removed:
            note += f", removed {len(result.removed)} orphaned footnotes"
        await append_edit_log(self.store, run.page_id, tool=TOOL_ESCALATED, note=note)
        return replace(progress, changed=True)

    async def _source_replace(self, run: _PageRun, progress: RepairProgress) -> RepairProgress:
        if not run.fresh:
            await self._verify(run)
        candidates = await load_page_flagged(
            run.page_id,
            self.store,
            self.settings.paths.accuracy_dir,
            verdict=AccuracyVerdict.UNSUPPORTED,
            max_score=self.settings.repair.source_replace_max_score,
        )
        if not candidates:
            return progress

        replacements = await find_replacement_sources(
            candidates, self.discovery, self.checker, self.settings.search
        )
        result = apply_source_replacements(run.content, replacements)
        run.report.sources_replaced = result.applied
        if not result.applied:
            return progress

        self._write(run, result.content)
        await append_edit_log(
            self.store,
            run.page_id,
            tool=TOOL_SOURCE_REPLACE,
            note=f"Replaced {result.applied} unsupported citation sources",
        )
        return replace(progress, changed=True)

    async def _reverify(self, run: _PageRun, progress: RepairProgress) -> RepairProgress:
        after = run.latest if run.fresh and run.latest is not None else await self._verify(run)
        run.report.after_flagged = after.flagged

        if not should_run_second_pass(run.report.before_flagged, after.flagged, self.settings.repair.second_pass):
            return progress

        logger.info("%s: %d flagged after first pass; running a second pass", run.page_id, after.flagged)
        run.flagged = await load_page_flagged(run.page_id, self.store, self.settings.paths.accuracy_dir)
        proposals = await generate_fixes_for_page(run.page_id, run.content, run.flagged, self.fixer)
        result = apply_fixes(run.content, proposals)
        run.report.warnings.extend(self._not_found_warnings(result.details))
        if not result.applied:
            return progress

        run.report.applied += result.applied
        self._write(run, result.content)
        await append_edit_log(
            self.store,
            run.page_id,
            tool=TOOL_PASS2,
            note=f"Second pass: fixed {result.applied} remaining flagged citations",
        )
        final = await self._verify(run)
        run.report.after_flagged = final.flagged
        return progress


def create_repair_engine(
    settings: SettingsConfig, store: CitationStore, require_search: bool = False
) -> RepairEngine:
    """Build an engine backed by the configured LLM agents.

    Source replacement is enabled when ``EXA_API_KEY`` is set. Missing
    credentials raise :class:`~citeguard.errors.ConfigurationError` here,
    before any page is touched.
    """
    ensure_secret_env(settings, require_search=require_search)
    service = create_judgment_service(settings)
    discovery = None
    if os.getenv(SEARCH_ENV_KEY):
        discovery = ExaSourceDiscovery(config=settings.search)
    return RepairEngine(settings, store, service, service, service, service, discovery=discovery)
