"""Unit tests for the hallucination risk scorer."""

import pytest

from citeguard.integrity.hallucination_risk import (
    WEIGHT_ACCURACY_MAJORITY,
    WEIGHT_ACCURACY_MANY,
    WEIGHT_ACCURACY_SOME,
    classify_risk_level,
    compute_accuracy_risk,
    compute_hallucination_risk,
    resolve_entity_type,
)
from citeguard.models import AccuracyCounts, RiskConfig, RiskInput, RiskLevel


def _input(**overrides) -> RiskInput:
    values = dict(entity_type="person", word_count=1500, footnote_count=2, external_links=5, rigor=5, quality=60)
    values.update(overrides)
    return RiskInput(**values)


def test_baseline_only_for_empty_input():
    result = compute_hallucination_risk(RiskInput(word_count=300, external_links=3))
    assert result.score == RiskConfig().baseline
    assert result.factors == []
    assert result.level == RiskLevel.MEDIUM


def test_alias_resolution():
    assert resolve_entity_type("researcher") == "person"
    assert resolve_entity_type("concept") == "concept"
    assert resolve_entity_type(None) is None


def test_biographical_page_with_low_density():
    result = compute_hallucination_risk(_input())
    assert "biographical-claims" in result.factors
    assert "low-citation-density" in result.factors


def test_no_citations_on_long_page():
    result = compute_hallucination_risk(_input(footnote_count=0))
    assert "no-citations" in result.factors
    assert "low-citation-density" not in result.factors


@pytest.mark.parametrize(
    "checked,inaccurate,expected",
    [
        (10, 0, 0),
        (10, 1, WEIGHT_ACCURACY_SOME),
        (10, 4, WEIGHT_ACCURACY_MANY),
        (10, 6, WEIGHT_ACCURACY_MAJORITY),
        (0, 3, 0),
        (4, 9, WEIGHT_ACCURACY_MAJORITY),
    ],
)
def test_accuracy_tiers_are_exclusive(checked, inaccurate, expected):
    assert compute_accuracy_risk(checked, inaccurate)[0] == expected


def test_accuracy_penalty_applied_once():
    result = compute_hallucination_risk(_input(accuracy=AccuracyCounts(checked=10, inaccurate=8)))
    accuracy_factors = [f for f in result.factors if f.endswith("inaccurate")]
    assert accuracy_factors == ["majority-inaccurate"]


def test_score_is_clamped():
    high = compute_hallucination_risk(
        _input(
            entity_type="event",
            footnote_count=0,
            external_links=0,
            rigor=1,
            quality=10,
            has_human_review=False,
            accuracy=AccuracyCounts(checked=2, inaccurate=2),
            content_body="Claim[^1] and[^2] and[^3]. 2506.00001 2506.00002 2506.00003",
        ),
        config=RiskConfig(baseline=90),
    )
    assert high.score == 100
    assert high.level == RiskLevel.HIGH

    low = compute_hallucination_risk(
        RiskInput(
            entity_type="concept",
            word_count=100,
            footnote_count=5,
            rigor=9,
            quality=95,
            has_human_review=True,
            content_format="table",
        ),
        config=RiskConfig(baseline=10),
    )
    assert low.score == 0
    assert low.level == RiskLevel.LOW


def test_integrity_factors_added_last():
    result = compute_hallucination_risk(_input(content_body="Claim[^1] and[^2] and[^3]."))
    assert result.factors[-1] == "severe-truncation"
    assert result.integrity_issues == ["severe-truncation"]


def test_no_integrity_issues_reported_as_none():
    assert compute_hallucination_risk(_input()).integrity_issues is None


@pytest.mark.parametrize("footnotes", [0, 1, 3, 5, 8, 12, 20, 40])
def test_more_citations_never_increase_risk(footnotes):
    lower = compute_hallucination_risk(_input(footnote_count=footnotes))
    higher = compute_hallucination_risk(_input(footnote_count=footnotes + 5))
    assert higher.score <= lower.score


@pytest.mark.parametrize("entity_type", ["person", "concept", "event", None])
def test_human_review_never_increases_risk(entity_type):
    without = compute_hallucination_risk(_input(entity_type=entity_type))
    reviewed = compute_hallucination_risk(_input(entity_type=entity_type, has_human_review=True))
    assert reviewed.score <= without.score


def test_risk_level_thresholds():
    assert classify_risk_level(30) == RiskLevel.LOW
    assert classify_risk_level(31) == RiskLevel.MEDIUM
    assert classify_risk_level(60) == RiskLevel.MEDIUM
    assert classify_risk_level(61) == RiskLevel.HIGH
