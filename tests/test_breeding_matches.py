from __future__ import annotations

from datetime import date

import pytest

from petdegree.ancestor_resolver import lookup_from_records
from petdegree.breeding_matches import (
    BreedingMatch,
    determine_status,
    rank_breeding_matches,
    recommend_pair,
)
from petdegree.inbreeding import InbreedingEstimate
from petdegree.models import (
    AnimalRecord,
    BreedingAssessment,
    CompatibilityVerdict,
    ScoreBreakdown,
)

TODAY = date(2026, 6, 1)


def _pet(id: str, gender: str, **kw) -> AnimalRecord:
    base = {
        "id": id,
        "name": id.capitalize(),
        "species": "dog",
        "gender": gender,
        "breed": "Thai Ridgeback",
        "health_certified": True,
        "birth_date": date(2022, 3, 1),
    }
    base.update(kw)
    return AnimalRecord(**base)


def _kennel() -> list[AnimalRecord]:
    return [
        _pet("stud", "male", father_id="s1", mother_id="d1"),
        _pet("sister", "female", father_id="s1", mother_id="d2"),     # half sibling
        _pet("bella", "female", father_id="s9", mother_id="d9"),      # unrelated, certified
        _pet("coco", "female", father_id="s8", mother_id="d8", health_certified=False),
        _pet("anna", "female"),                                       # unknown pedigree
        _pet("rex", "male", father_id="s7", mother_id="d7"),          # same gender
        _pet("tom", "female", species="cat"),                         # other species
        _pet("poodle", "female", father_id="s6", mother_id="d6", breed="Poodle"),
        _pet("s1", "male"),
        _pet("d1", "female", birth_date=date(2012, 1, 1)),
        _pet("d2", "female", birth_date=date(2012, 1, 1)),
    ]


def test_filters_species_gender_and_self_and_sorts_by_score() -> None:
    kennel = _kennel()
    stud = kennel[0]

    report = rank_breeding_matches(stud, kennel, today=TODAY, limit=20, same_breed_only=False)
    ids = [m.candidate.id for m in report.matches]

    assert "stud" not in ids
    assert "rex" not in ids
    assert "tom" not in ids
    assert "poodle" in ids
    assert ids[0] == "bella"
    scores = [m.verdict.score for m in report.matches]
    assert scores == sorted(scores, reverse=True)
    assert all(m.inbreeding is None for m in report.matches)


def test_same_breed_is_the_default() -> None:
    kennel = _kennel()
    stud = kennel[0]

    ids = [m.candidate.id for m in rank_breeding_matches(stud, kennel, today=TODAY, limit=20).matches]

    assert "poodle" not in ids
    assert "bella" in ids


def test_breedless_animal_is_not_breed_filtered() -> None:
    kennel = _kennel()
    mutt = _pet("mutt", "male", breed="", father_id="s5", mother_id="d5")

    ids = [m.candidate.id for m in rank_breeding_matches(mutt, kennel, today=TODAY, limit=20).matches]

    assert "poodle" in ids


def test_related_candidates_dropped_when_lookup_given() -> None:
    kennel = _kennel()
    stud = kennel[0]
    lookup = lookup_from_records(kennel)

    strict = rank_breeding_matches(stud, kennel, today=TODAY, limit=20, parent_lookup=lookup)
    loose = rank_breeding_matches(
        stud, kennel, today=TODAY, limit=20, parent_lookup=lookup, include_related=True
    )

    assert "sister" not in [m.candidate.id for m in strict.matches]
    sister = next(m for m in loose.matches if m.candidate.id == "sister")
    assert sister.inbreeding is not None
    assert sister.coi == 0.125
    assert sister.verdict.breakdown.genetic_risk == 40


def test_limit_applies_after_sorting() -> None:
    kennel = _kennel()
    stud = kennel[0]

    report = rank_breeding_matches(stud, kennel, today=TODAY, limit=2)

    assert len(report.matches) == 2
    assert report.matches[0].candidate.id == "bella"
    assert all(m.candidate.breed == "Thai Ridgeback" for m in report.matches)


def test_ties_break_on_name() -> None:
    stud = _pet("stud", "male", father_id="s1", mother_id="d1")
    twins = [
        _pet("b", "female", name="Zoe", father_id="x1", mother_id="y1"),
        _pet("a", "female", name="amy", father_id="x2", mother_id="y2"),
    ]

    report = rank_breeding_matches(stud, twins, today=TODAY)

    assert [m.candidate.name for m in report.matches] == ["amy", "Zoe"]


def test_report_status_and_summary_for_top_candidate() -> None:
    kennel = _kennel()
    stud = kennel[0]

    report = rank_breeding_matches(stud, kennel, today=TODAY, limit=3)

    assert report.status == "excellent"
    assert report.summary.splitlines() == [
        "Found 3 possible matches",
        "Recommended: Bella (Score 100/100)",
        "COI: 0.00%",
        "Status: Excellent",
    ]
    assert report.to_dict()["status"] == "excellent"


def test_empty_search_is_not_recommended() -> None:
    stud = _pet("stud", "male")

    report = rank_breeding_matches(stud, [stud, _pet("rex", "male")], today=TODAY)

    assert report.matches == []
    assert report.status == "not_recommended"
    assert report.summary == "No suitable breeding matches found for Stud at this time"


def _match(score: int, level: str = "low", coi: float | None = None) -> BreedingMatch:
    verdict = CompatibilityVerdict(
        score=score,
        label="",
        breakdown=ScoreBreakdown(),
        breeding=BreedingAssessment(type="outcross", level=level),
        advice="",
    )
    estimate = InbreedingEstimate(coi=coi) if coi is not None else None
    return BreedingMatch(candidate=_pet("x", "female"), verdict=verdict, inbreeding=estimate)


@pytest.mark.parametrize(
    "score,expected",
    [
        (100, "excellent"),
        (85, "excellent"),
        (84, "good"),
        (70, "good"),
        (69, "acceptable"),
        (50, "acceptable"),
        (49, "risky"),
        (0, "risky"),
    ],
)
def test_status_bands(score: int, expected: str) -> None:
    assert determine_status([_match(score), _match(10)]) == expected


def test_critical_top_candidate_is_not_recommended() -> None:
    assert determine_status([_match(90, level="high")]) == "not_recommended"
    assert determine_status([_match(90, coi=0.25)]) == "not_recommended"
    assert determine_status([_match(90, coi=0.125)]) == "excellent"


def test_recommend_pair_tiers() -> None:
    kennel = _kennel()
    by_id = {p.id: p for p in kennel}
    lookup = lookup_from_records(kennel)
    stud = by_id["stud"]

    best = recommend_pair(stud, by_id["bella"], today=TODAY, parent_lookup=lookup)
    assert best.compatible is True
    assert best.recommendation == "Highly Recommended! Score 100/100"

    half = recommend_pair(stud, by_id["sister"], today=TODAY, parent_lookup=lookup)
    assert half.verdict.score == 58
    assert half.compatible is True
    assert half.recommendation == "Acceptable but with cautions (58/100)"
    assert half.inbreeding is not None and half.inbreeding.coi == 0.125

    same = recommend_pair(stud, by_id["rex"], today=TODAY)
    assert same.compatible is False
    assert same.recommendation.startswith("Not Recommended: ")
    assert same.inbreeding is None


def test_recommend_pair_full_siblings_never_compatible() -> None:
    a = _pet("a", "male", father_id="s1", mother_id="d1")
    b = _pet("b", "female", father_id="s1", mother_id="d1")

    pair = recommend_pair(a, b, today=TODAY)

    assert pair.compatible is False
    assert pair.recommendation == "Not Recommended due to genetic risks"
