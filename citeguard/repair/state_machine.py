"""Stage transitions for a single page repair.

Transitions are pure functions of the current state and what the stage
just did, so the whole path can be tested without touching pages, the
store or any model.
"""

from __future__ import annotations

from dataclasses import dataclass

from citeguard.models import RepairOutcome, RepairState


@dataclass(frozen=True)
class RepairProgress:
    """What the repair run is allowed to do and what the last stage produced."""

    apply: bool = False
    escalate: bool = True
    search: bool = False
    proposals: int = 0
    applied: int = 0
    rewrites_applied: int = 0
    changed: bool = False


def next_state(state: RepairState, progress: RepairProgress) -> RepairState:
    if state == RepairState.TARGETED:
        if progress.proposals == 0:
            return RepairState.ESCALATE if progress.escalate else RepairState.DONE
        if not progress.apply or progress.applied == 0:
            return RepairState.DONE
        return RepairState.SOURCE_REPLACE if progress.search else RepairState.REVERIFY

    if state == RepairState.ESCALATE:
        if not progress.apply:
            return RepairState.DONE
        if progress.rewrites_applied:
            return RepairState.CLEANUP
        return RepairState.SOURCE_REPLACE if progress.search else RepairState.DONE

    if state == RepairState.CLEANUP:
        return RepairState.SOURCE_REPLACE if progress.search else RepairState.REVERIFY

    if state == RepairState.SOURCE_REPLACE:
        return RepairState.REVERIFY if progress.changed else RepairState.DONE

    return RepairState.DONE


def should_run_second_pass(before: int, after: int, enabled: bool = True) -> bool:
    """A second targeted pass is worth it only when the first one helped and left work."""
    return enabled and 0 < after < before


def classify_outcome(before: int, after: int) -> RepairOutcome:
    if after < before:
        return RepairOutcome.IMPROVED
    if after > before:
        return RepairOutcome.REGRESSED
    return RepairOutcome.UNCHANGED
