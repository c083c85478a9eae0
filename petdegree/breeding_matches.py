from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

from .ancestor_resolver import ParentLookup
from .compatibility import score_compatibility
from .inbreeding import (
    COI_PARENT_OFFSPRING,
    MAX_SAFE_COI,
    InbreedingEstimate,
    coefficient_of_inbreeding,
)
from .models import AnimalRecord, CompatibilityVerdict

# Overall status of a match search, decided on the top candidate.
STATUS_BANDS = (
    (85, "excellent"),
    (70, "good"),
    (50, "acceptable"),
)
STATUS_RISKY = "risky"
STATUS_NOT_RECOMMENDED = "not_recommended"

STATUS_TEXT = {
    "excellent": "Excellent",
    "good": "Good",
    "acceptable": "Acceptable",
    "risky": "Risky",
    "not_recommended": "Not Recommended",
}

# Pair recommendation tiers
MIN_COMPATIBLE_SCORE = 50
HIGHLY_RECOMMENDED_SCORE = 80
GOOD_MATCH_SCORE = 60


@dataclass
class BreedingMatch:
    candidate: AnimalRecord
    verdict: CompatibilityVerdict
    inbreeding: Optional[InbreedingEstimate] = None

    @property
    def coi(self) -> float:
        return self.inbreeding.coi if self.inbreeding else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "candidate_id": self.candidate.id,
            "candidate_name": self.candidate.name,
            "verdict": self.verdict.to_dict(),
            "inbreeding": self.inbreeding.to_dict() if self.inbreeding else None,
        }


@dataclass
class MatchReport:
    status: str
    matches: List[BreedingMatch] = field(default_factory=list)
    summary: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "summary": self.summary,
            "matches": [m.to_dict() for m in self.matches],
        }


@dataclass
class PairRecommendation:
    compatible: bool
    recommendation: str
    verdict: CompatibilityVerdict
    inbreeding: Optional[InbreedingEstimate] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "compatible": self.compatible,
            "recommendation": self.recommendation,
        }


def _norm(value: Optional[str]) -> str:
    return (value or "").strip().lower()


def is_critical(verdict: CompatibilityVerdict, inbreeding: Optional[InbreedingEstimate] = None) -> bool:
    """
    True for pairings that must not be bred: a terminal incompatibility,
    parent/child or full siblings, or a COI at the parent-offspring level.
    """
    if verdict.breeding.level == "high":
        return True
    return inbreeding is not None and inbreeding.coi >= COI_PARENT_OFFSPRING


def determine_status(matches: List[BreedingMatch]) -> str:
    if not matches:
        return STATUS_NOT_RECOMMENDED

    top = matches[0]
    if is_critical(top.verdict, top.inbreeding):
        return STATUS_NOT_RECOMMENDED
    for threshold, status in STATUS_BANDS:
        if top.verdict.score >= threshold:
            return status
    return STATUS_RISKY


def match_summary(animal: AnimalRecord, matches: List[BreedingMatch], status: str) -> str:
    if not matches:
        return f"No suitable breeding matches found for {animal.name or animal.id} at this time"

    top = matches[0]
    return (
        f"Found {len(matches)} possible matches\n"
        f"Recommended: {top.candidate.name or top.candidate.id} (Score {top.verdict.score}/100)\n"
        f"COI: {top.coi * 100:.2f}%\n"
        f"Status: {STATUS_TEXT[status]}"
    )


def rank_breeding_matches(
    animal: AnimalRecord,
    candidates: Iterable[AnimalRecord],
    *,
    today: date | None = None,
    limit: int = 10,
    parent_lookup: ParentLookup | None = None,
    max_coi: float = MAX_SAFE_COI,
    include_related: bool = False,
    same_breed_only: bool = True,
    max_generations: int = 3,
) -> MatchReport:
    """
    Score every plausible partner for `animal` and report the best ones.

    Candidates are limited to the same species and the opposite gender,
    and to the same breed when same_breed_only is set and `animal` has a
    breed. With a parent_lookup each candidate also gets a COI estimate,
    and candidates above max_coi are dropped unless include_related is set.

    Order: score descending, then candidate name, then id. The report's
    status and summary describe the top candidate after truncation.
    """
    if today is None:
        today = date.today()

    species = _norm(animal.species)
    gender = _norm(animal.gender)
    breed = _norm(animal.breed)

    matches: List[BreedingMatch] = []
    for cand in candidates:
        if cand.id == animal.id:
            continue
        if _norm(cand.species) != species or _norm(cand.gender) == gender:
            continue
        if same_breed_only and breed and _norm(cand.breed) != breed:
            continue

        estimate: Optional[InbreedingEstimate] = None
        if parent_lookup is not None:
            estimate = coefficient_of_inbreeding(
                animal.id,
                cand.id,
                parent_lookup,
                max_generations=max_generations,
            )
            if not include_related and estimate.coi > max_coi:
                continue

        verdict = score_compatibility(animal, cand, today=today)
        matches.append(BreedingMatch(candidate=cand, verdict=verdict, inbreeding=estimate))

    matches.sort(key=lambda m: (-m.verdict.score, m.candidate.name.casefold(), m.candidate.id))
    top = matches[:limit]

    status = determine_status(top)
    return MatchReport(status=status, matches=top, summary=match_summary(animal, top, status))


def recommend_pair(
    a: AnimalRecord,
    b: AnimalRecord,
    *,
    today: date | None = None,
    parent_lookup: ParentLookup | None = None,
    max_generations: int = 3,
) -> PairRecommendation:
    """
    Verdict plus a go/no-go call for one specific pairing.

    compatible: score >= 50 and nothing critical.
    Tiers: >= 80 highly recommended, >= 60 good match, otherwise acceptable
    when compatible, else not recommended.
    """
    verdict = score_compatibility(a, b, today=today)
    estimate: Optional[InbreedingEstimate] = None
    if parent_lookup is not None:
        estimate = coefficient_of_inbreeding(a.id, b.id, parent_lookup, max_generations=max_generations)

    critical = is_critical(verdict, estimate)
    compatible = verdict.score >= MIN_COMPATIBLE_SCORE and not critical

    if critical and verdict.label == "Incompatible":
        recommendation = f"Not Recommended: {verdict.advice}"
    elif not critical and verdict.score >= HIGHLY_RECOMMENDED_SCORE:
        recommendation = f"Highly Recommended! Score {verdict.score}/100"
    elif not critical and verdict.score >= GOOD_MATCH_SCORE:
        recommendation = f"Good Match! Score {verdict.score}/100"
    elif compatible:
        recommendation = f"Acceptable but with cautions ({verdict.score}/100)"
    else:
        recommendation = "Not Recommended due to genetic risks"

    return PairRecommendation(
        compatible=compatible,
        recommendation=recommendation,
        verdict=verdict,
        inbreeding=estimate,
    )
