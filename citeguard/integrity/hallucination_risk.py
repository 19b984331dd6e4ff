"""
Hallucination risk scorer.

Starts from a non-zero baseline (every page is machine-written) and applies
signed, named deltas so each point of the final score can be traced back to
a factor. The total is clamped to 0-100 and bucketed into low / medium /
high.
"""

from __future__ import annotations

from typing import Optional

from citeguard.integrity.content_integrity import assess_content_integrity, compute_integrity_risk
from citeguard.models import IntegrityConfig, RiskConfig, RiskInput, RiskLevel, RiskResult

BIOGRAPHICAL_TYPES = frozenset({"person", "organization", "funder"})
FACTUAL_TYPES = frozenset({"event", "historical", "case-study"})
STRUCTURAL_TYPES = frozenset(
    {"concept", "approach", "safety-agenda", "intelligence-paradigm", "crux", "debate", "argument"}
)
LOW_RISK_FORMATS = frozenset({"table", "diagram", "index", "dashboard"})

WEIGHT_BIOGRAPHICAL = 20
WEIGHT_FACTUAL = 15
WEIGHT_NO_CITATIONS = 15
WEIGHT_LOW_CITATION_DENSITY = 10
WEIGHT_LOW_RIGOR = 10
WEIGHT_LOW_QUALITY = 5
WEIGHT_FEW_EXTERNAL = 5
WEIGHT_NO_HUMAN_REVIEW = 5
WEIGHT_WELL_CITED = -15
WEIGHT_MODERATELY_CITED = -10
WEIGHT_HIGH_RIGOR = -15
WEIGHT_STRUCTURAL = -10
WEIGHT_LOW_RISK_FORMAT = -15
WEIGHT_MINIMAL_CONTENT = -10
WEIGHT_HIGH_QUALITY = -5
WEIGHT_HUMAN_REVIEWED = -5

# Citations per 1000 words.
CITATION_DENSITY_HIGH = 8
CITATION_DENSITY_MODERATE = 4
CITATION_DENSITY_LOW = 2

ACCURACY_MAJORITY_THRESHOLD = 0.5
ACCURACY_MANY_THRESHOLD = 0.3
WEIGHT_ACCURACY_MAJORITY = 20
WEIGHT_ACCURACY_MANY = 10
WEIGHT_ACCURACY_SOME = 5

ENTITY_TYPE_ALIASES = {
    "researcher": "person",
    "lab": "organization",
    "lab-frontier": "organization",
    "lab-research": "organization",
    "lab-academic": "organization",
    "lab-startup": "organization",
    "safety-approaches": "safety-agenda",
    "policies": "policy",
    "concepts": "concept",
    "events": "event",
    "models": "model",
}


def resolve_entity_type(raw_type: Optional[str]) -> Optional[str]:
    if not raw_type:
        return None
    return ENTITY_TYPE_ALIASES.get(raw_type, raw_type)


def compute_accuracy_risk(checked: int, inaccurate: int) -> tuple[int, Optional[str]]:
    """Penalty for externally-reported inaccurate citations.

    Tiers are exclusive; only the highest applicable one applies:
    >50% inaccurate is +20, >30% is +10, any inaccurate is +5.
    """
    if checked <= 0 or inaccurate < 0:
        return 0, None
    clamped = min(inaccurate, checked)
    share = clamped / checked
    if share > ACCURACY_MAJORITY_THRESHOLD:
        return WEIGHT_ACCURACY_MAJORITY, "majority-inaccurate"
    if share > ACCURACY_MANY_THRESHOLD:
        return WEIGHT_ACCURACY_MANY, "many-inaccurate"
    if clamped > 0:
        return WEIGHT_ACCURACY_SOME, "some-inaccurate"
    return 0, None


def classify_risk_level(score: int, config: Optional[RiskConfig] = None) -> RiskLevel:
    cfg = config or RiskConfig()
    if score <= cfg.threshold_low:
        return RiskLevel.LOW
    if score <= cfg.threshold_medium:
        return RiskLevel.MEDIUM
    return RiskLevel.HIGH


def compute_hallucination_risk(
    risk_input: RiskInput,
    config: Optional[RiskConfig] = None,
    integrity_config: Optional[IntegrityConfig] = None,
) -> RiskResult:
    cfg = config or RiskConfig()
    score = cfg.baseline
    factors: list[str] = []

    def add(delta: int, factor: str) -> None:
        nonlocal score
        score += delta
        factors.append(factor)

    entity_type = resolve_entity_type(risk_input.entity_type)
    word_count = risk_input.word_count
    rigor = risk_input.rigor
    quality = risk_input.quality
    total_citations = risk_input.footnote_count + risk_input.aux_citation_count
    density = (total_citations / word_count) * 1000 if word_count > 0 else 0.0

    # Risk-increasing factors
    if entity_type in BIOGRAPHICAL_TYPES:
        add(WEIGHT_BIOGRAPHICAL, "biographical-claims")
    if entity_type in FACTUAL_TYPES:
        add(WEIGHT_FACTUAL, "specific-factual-claims")

    if total_citations == 0 and word_count > 300:
        add(WEIGHT_NO_CITATIONS, "no-citations")
    elif density < CITATION_DENSITY_LOW and word_count > 500:
        add(WEIGHT_LOW_CITATION_DENSITY, "low-citation-density")

    if rigor is not None and rigor < 4:
        add(WEIGHT_LOW_RIGOR, "low-rigor-score")
    if quality is not None and quality < 40:
        add(WEIGHT_LOW_QUALITY, "low-quality-score")
    if risk_input.external_links < 2 and word_count > 500:
        add(WEIGHT_FEW_EXTERNAL, "few-external-sources")
    if risk_input.has_human_review is False:
        add(WEIGHT_NO_HUMAN_REVIEW, "no-human-review")

    if risk_input.accuracy is not None:
        delta, factor = compute_accuracy_risk(risk_input.accuracy.checked, risk_input.accuracy.inaccurate)
        if factor:
            add(delta, factor)

    # Risk-decreasing factors
    if density > CITATION_DENSITY_HIGH:
        add(WEIGHT_WELL_CITED, "well-cited")
    elif density > CITATION_DENSITY_MODERATE:
        add(WEIGHT_MODERATELY_CITED, "moderately-cited")

    if rigor is not None and rigor >= 7:
        add(WEIGHT_HIGH_RIGOR, "high-rigor")
    if entity_type in STRUCTURAL_TYPES:
        add(WEIGHT_STRUCTURAL, "conceptual-content")
    if risk_input.content_format in LOW_RISK_FORMATS:
        add(WEIGHT_LOW_RISK_FORMAT, "structured-format")
    if word_count < 300:
        add(WEIGHT_MINIMAL_CONTENT, "minimal-content")
    if quality is not None and quality >= 80:
        add(WEIGHT_HIGH_QUALITY, "high-quality")
    if risk_input.has_human_review is True:
        add(WEIGHT_HUMAN_REVIEWED, "human-reviewed")

    # Integrity signals go last
    integrity_issues: list[str] = []
    if risk_input.content_body:
        integrity_risk = compute_integrity_risk(
            assess_content_integrity(risk_input.content_body, integrity_config)
        )
        if integrity_risk.score > 0:
            score += integrity_risk.score
            factors.extend(integrity_risk.factors)
            integrity_issues.extend(integrity_risk.factors)

    score = max(0, min(100, score))
    return RiskResult(
        level=classify_risk_level(score, cfg),
        score=score,
        factors=factors,
        integrity_issues=integrity_issues or None,
    )
