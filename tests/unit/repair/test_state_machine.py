"""Unit tests for repair stage transitions."""

import pytest

from citeguard.models import RepairOutcome, RepairState
from citeguard.repair.state_machine import (
    RepairProgress,
    classify_outcome,
    next_state,
    should_run_second_pass,
)

S = RepairState


@pytest.mark.parametrize(
    "state, progress, expected",
    [
        # targeted
        (S.TARGETED, RepairProgress(proposals=0), S.ESCALATE),
        (S.TARGETED, RepairProgress(proposals=0, escalate=False), S.DONE),
        (S.TARGETED, RepairProgress(proposals=2, apply=False), S.DONE),
        (S.TARGETED, RepairProgress(proposals=2, apply=True, applied=0), S.DONE),
        (S.TARGETED, RepairProgress(proposals=2, apply=True, applied=1), S.REVERIFY),
        (S.TARGETED, RepairProgress(proposals=2, apply=True, applied=1, search=True), S.SOURCE_REPLACE),
        # escalate
        (S.ESCALATE, RepairProgress(apply=False, rewrites_applied=1), S.DONE),
        (S.ESCALATE, RepairProgress(apply=True, rewrites_applied=1), S.CLEANUP),
        (S.ESCALATE, RepairProgress(apply=True, rewrites_applied=0), S.DONE),
        (S.ESCALATE, RepairProgress(apply=True, rewrites_applied=0, search=True), S.SOURCE_REPLACE),
        # cleanup
        (S.CLEANUP, RepairProgress(apply=True), S.REVERIFY),
        (S.CLEANUP, RepairProgress(apply=True, search=True), S.SOURCE_REPLACE),
        # source replacement
        (S.SOURCE_REPLACE, RepairProgress(apply=True, changed=True), S.REVERIFY),
        (S.SOURCE_REPLACE, RepairProgress(apply=True, changed=False), S.DONE),
        # terminal
        (S.REVERIFY, RepairProgress(apply=True, changed=True), S.DONE),
        (S.DONE, RepairProgress(), S.DONE),
    ],
)
def test_next_state(state, progress, expected):
    assert next_state(state, progress) == expected


def test_dry_run_never_leaves_targeted_for_a_writing_stage():
    progress = RepairProgress(apply=False, proposals=3, search=True)
    assert next_state(S.TARGETED, progress) == S.DONE


@pytest.mark.parametrize(
    "before, after, enabled, expected",
    [
        (5, 2, True, True),
        (5, 0, True, False),
        (5, 5, True, False),
        (5, 7, True, False),
        (5, 2, False, False),
    ],
)
def test_should_run_second_pass(before, after, enabled, expected):
    assert should_run_second_pass(before, after, enabled) is expected


@pytest.mark.parametrize(
    "before, after, outcome",
    [
        (4, 1, RepairOutcome.IMPROVED),
        (4, 4, RepairOutcome.UNCHANGED),
        (0, 0, RepairOutcome.UNCHANGED),
        (1, 3, RepairOutcome.REGRESSED),
    ],
)
def test_classify_outcome(before, after, outcome):
    assert classify_outcome(before, after) == outcome
