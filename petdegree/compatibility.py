from __future__ import annotations

import math
from datetime import date
from typing import Optional

from .birthdate_utils import age_in_years
from .models import (
    AnimalRecord,
    BreedingAssessment,
    CompatibilityVerdict,
    ScoreBreakdown,
)

# ---------------------------------------------------------------------------
# Scoring constants
# ---------------------------------------------------------------------------

WEIGHTS = {
    "genetic_risk": 0.50,
    "health": 0.25,
    "breed": 0.12,
    "age": 0.08,
    "color": 0.05,
}

RELATEDNESS_PENALTY = {
    "inbreeding": 30.0,
    "linebreeding": 12.0,
    "outcross": 0.0,
}
UNKNOWN_PEDIGREE_PENALTY = 6.0

# genetic_risk: 100 is safe, 0 is maximal risk
RISK_PARENT_CHILD = 0
RISK_FULL_SIBLINGS = 10
RISK_HALF_SIBLINGS = 40
RISK_UNKNOWN_PEDIGREE = 70
RISK_UNRELATED = 100

BREED_EXACT = 100
BREED_SIMILAR = 70
BREED_CROSS = 20

HEALTH_BASELINE = 50
HEALTH_PER_CERTIFIED = 25

# No per-color genetics; every pairing gets the same color score.
COLOR_BASELINE = 90

PRIME_AGE_MIN = 2
PRIME_AGE_MAX = 6
MIN_BREEDING_AGE = 1
SENIOR_AGE = 8

AGE_PRIME = 100
AGE_TOO_YOUNG = 0
AGE_SENIOR = 50
AGE_DEFAULT = 80

LABEL_THRESHOLDS = (
    (90.0, "Perfect Match"),
    (80.0, "Excellent"),
    (60.0, "Good"),
    (40.0, "Fair"),
)


def _norm(value: Optional[str]) -> str:
    return (value or "").strip().lower()


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def _incompatible(message: str, *, genetic_risk: int) -> CompatibilityVerdict:
    return CompatibilityVerdict(
        score=0,
        label="Incompatible",
        breakdown=ScoreBreakdown(genetic_risk=genetic_risk),
        breeding=BreedingAssessment(
            type="outcross",
            level="high",
            warnings=[message],
            summary=message,
        ),
        advice=message,
    )


def label_for_score(score: float, genetic_risk: int) -> str:
    """
    Map a clamped composite score to a label.

    Below 40 the label depends on genetics: "Risk" only when relatedness
    drove the score down (genetic_risk < 40), "Incompatible" otherwise.
    """
    for threshold, label in LABEL_THRESHOLDS:
        if score >= threshold:
            return label
    return "Risk" if genetic_risk < 40 else "Incompatible"


def breed_score(a: AnimalRecord, b: AnimalRecord) -> tuple[int, Optional[str]]:
    """
    Returns (score, warning-or-None).
    """
    ba = _norm(a.breed)
    bb = _norm(b.breed)
    if ba and ba == bb:
        return BREED_EXACT, None
    if ba and bb and (ba in bb or bb in ba):
        return BREED_SIMILAR, None
    if ba and bb:
        return BREED_CROSS, "Cross-breeding will produce mixed breed offspring."
    return BREED_CROSS, None


def score_compatibility(
    a: AnimalRecord,
    b: AnimalRecord,
    *,
    today: date | None = None,
) -> CompatibilityVerdict:
    """
    Score a breeding pair.

    Pure: the only clock input is `today` (defaults to date.today()), so a
    fixed `today` gives identical output for identical inputs.

    Decision order:
      1) different species      -> Incompatible (terminal)
      2) same gender            -> Incompatible (terminal)
      3) relatedness from parent-id overlap; parent/child is terminal (Risk)
      4-7) breed / health / color / age sub-scores
      8) weighted composite minus relatedness + unknown-pedigree penalties
      9) label thresholds
    """
    if today is None:
        today = date.today()

    # 1) Species
    if _norm(a.species) != _norm(b.species):
        return _incompatible("Different species cannot breed.", genetic_risk=0)

    # 2) Gender
    if _norm(a.gender) == _norm(b.gender):
        return _incompatible("Same gender. Cannot breed naturally.", genetic_risk=100)

    warnings: list[str] = []
    pros: list[str] = []
    cons: list[str] = []

    # 3) Relatedness
    parents_a = a.parent_ids()
    parents_b = b.parent_ids()

    genetic_risk = RISK_UNRELATED
    advice = "Genetically diverse match."
    summary = "Outcross. Higher genetic diversity."
    breeding_type = "outcross"
    breeding_level = "low"

    if b.id in parents_a or a.id in parents_b:
        genetic_risk = RISK_PARENT_CHILD
        advice = "CRITICAL: Parent/Child relationship. Do not breed."
        summary = "Inbreeding. Very high genetic risk."
        breeding_type = "inbreeding"
        breeding_level = "high"
        warnings.append("Parent/child relationship. Do not breed.")
        pros.append("Strongly preserves specific traits.")
        cons += ["High risk of inherited disorders.", "Lower genetic diversity."]
    else:
        shared = len(parents_a & parents_b)
        if shared >= 2:
            genetic_risk = RISK_FULL_SIBLINGS
            advice = "HIGH RISK: Full siblings. Avoid inbreeding."
            summary = "Inbreeding. High genetic risk."
            breeding_type = "inbreeding"
            breeding_level = "high"
            warnings.append("Full siblings share both parents.")
            pros.append("Predictable traits.")
            cons += ["High risk of recessive defects.", "Lower fertility and litter health."]
        elif shared == 1:
            genetic_risk = RISK_HALF_SIBLINGS
            advice = "MODERATE RISK: Half siblings. Line breeding requires expert knowledge."
            summary = "Linebreeding. Moderate genetic risk."
            breeding_type = "linebreeding"
            breeding_level = "moderate"
            warnings.append("Shared parent detected. Review lineage carefully.")
            pros.append("Retains desired family traits.")
            cons.append("Moderate risk of inherited issues.")
        else:
            pros += ["Higher genetic diversity.", "Lower inherited risk."]
            cons.append("Traits may be less predictable.")

    unknown_pedigree = not parents_a or not parents_b
    if unknown_pedigree:
        warnings.append("Limited pedigree data. Confirm lineage if possible.")
        if genetic_risk == RISK_UNRELATED:
            genetic_risk = RISK_UNKNOWN_PEDIGREE
            advice = "Pedigree data is limited. Treat genetic risk as unknown."
            summary = "Pedigree unknown. Genetic risk is uncertain."

    # 4) Breed
    breed, breed_warning = breed_score(a, b)
    if breed_warning:
        warnings.append(breed_warning)

    # 5) Health
    health = HEALTH_BASELINE
    if a.health_certified:
        health += HEALTH_PER_CERTIFIED
    if b.health_certified:
        health += HEALTH_PER_CERTIFIED
    if not (a.health_certified and b.health_certified):
        warnings.append("Health screening recommended for both parents.")

    # 6) Color
    color = COLOR_BASELINE

    # 7) Age
    age_a = age_in_years(a.birth_date, today)
    age_b = age_in_years(b.birth_date, today)

    age = AGE_DEFAULT
    if all(PRIME_AGE_MIN <= x <= PRIME_AGE_MAX for x in (age_a, age_b)):
        age = AGE_PRIME
    elif age_a < MIN_BREEDING_AGE or age_b < MIN_BREEDING_AGE:
        age = AGE_TOO_YOUNG
        advice = "One or both pets are too young to breed."
        warnings.append("Breeding age is below recommended minimum.")
    elif age_a > SENIOR_AGE or age_b > SENIOR_AGE:
        age = AGE_SENIOR
        advice += " Consider age-related risks."
        warnings.append("Older breeding age increases health risks.")

    breakdown = ScoreBreakdown(
        genetic_risk=genetic_risk,
        breed=breed,
        health=health,
        color=color,
        age=age,
    )
    breeding = BreedingAssessment(
        type=breeding_type,
        level=breeding_level,
        warnings=warnings,
        pros=pros,
        cons=cons,
        summary=summary,
    )

    # Parent/child: sub-scores are reported but never blended in.
    if genetic_risk == RISK_PARENT_CHILD:
        return CompatibilityVerdict(
            score=0,
            label="Risk",
            breakdown=breakdown,
            breeding=breeding,
            advice=advice,
        )

    # 8) Composite
    total = (
        genetic_risk * WEIGHTS["genetic_risk"]
        + health * WEIGHTS["health"]
        + breed * WEIGHTS["breed"]
        + age * WEIGHTS["age"]
        + color * WEIGHTS["color"]
    )
    total -= RELATEDNESS_PENALTY[breeding_type]
    if unknown_pedigree:
        total -= UNKNOWN_PEDIGREE_PENALTY
    total = max(0.0, min(100.0, total))

    # 9) Label
    return CompatibilityVerdict(
        score=_round_half_up(total),
        label=label_for_score(total, genetic_risk),
        breakdown=breakdown,
        breeding=breeding,
        advice=advice,
    )
