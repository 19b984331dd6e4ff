"""Unit tests for resolving and applying fix proposals."""

import itertools

import pytest

from citeguard.models import ApplyStatus, FixProposal, TextEdit
from citeguard.repair.apply import apply_edits, apply_fixes, resolve_edits


def test_single_fix_applied():
    content = "The service costs $50[^1] per month.\n\n[^1]: https://example.org\n"
    result = apply_fixes(content, [FixProposal(footnote=1, original="costs $50[^1]", replacement="costs approximately $45[^1]")])
    assert (result.applied, result.skipped) == (1, 0)
    assert "costs approximately $45[^1]" in result.content
    assert "costs $50[^1]" not in result.content


def test_missing_text_is_reported_not_dropped():
    result = apply_fixes("Nothing here.", [FixProposal(footnote=3, original="absent", replacement="x")])
    assert (result.applied, result.skipped) == (0, 1)
    assert result.content == "Nothing here."
    assert result.details[0].status == ApplyStatus.NOT_FOUND
    assert result.details[0].footnote == 3


def test_length_changing_edits_do_not_disturb_each_other():
    content = "Alpha is short[^1]. Beta is long[^2]. Gamma is mid[^3]."
    proposals = [
        FixProposal(footnote=1, original="Alpha is short", replacement="Alpha is now a much longer sentence"),
        FixProposal(footnote=2, original="Beta is long", replacement="B"),
        FixProposal(footnote=3, original="Gamma is mid", replacement="Gamma is medium-sized"),
    ]
    expected = "Alpha is now a much longer sentence[^1]. B[^2]. Gamma is medium-sized[^3]."
    for ordering in itertools.permutations(proposals):
        result = apply_fixes(content, list(ordering))
        assert result.content == expected
        assert result.applied == 3


def test_overlapping_proposals_apply_once():
    content = "The lab has 40 staff[^1]."
    proposals = [
        FixProposal(footnote=1, original="has 40 staff", replacement="has 25 staff"),
        FixProposal(footnote=1, original="40 staff", replacement="about 25 staff"),
    ]
    result = apply_fixes(content, proposals)
    assert (result.applied, result.skipped) == (1, 1)
    assert "no longer matches" in [d for d in result.details if d.status == ApplyStatus.NOT_FOUND][0].explanation


def test_resolve_edits_sorted_descending():
    edits, rejected = resolve_edits("aaa bbb ccc", [
        FixProposal(original="aaa", replacement="A"),
        FixProposal(original="ccc", replacement="C"),
        FixProposal(original="bbb", replacement="B"),
    ])
    assert [e.start for e in edits] == [8, 4, 0]
    assert rejected == []


def test_apply_edits_is_order_independent():
    edits = [TextEdit(start=0, end=1, replacement="xyz"), TextEdit(start=2, end=3, replacement="")]
    assert apply_edits("abc", edits) == apply_edits("abc", list(reversed(edits))) == "xyzb"


@pytest.mark.parametrize("proposals", [[], [FixProposal(original="", replacement="x")]])
def test_nothing_to_apply(proposals):
    result = apply_fixes("text", proposals)
    assert result.content == "text"
    assert result.applied == 0
