from __future__ import annotations

import pytest

from petdegree.inbreeding import coefficient_of_inbreeding


def _lookup(rows: list[dict]):
    graph = {r["id"]: r for r in rows}
    return graph.get


def test_parent_offspring() -> None:
    lookup = _lookup([
        {"id": "p"},
        {"id": "c", "father_id": "p", "mother_id": "m"},
        {"id": "m"},
    ])

    est = coefficient_of_inbreeding("p", "c", lookup)

    assert est.coi == 0.25
    assert est.relationship == "parent-offspring"
    assert est.common_ancestors == ["p"]


def test_full_and_half_siblings() -> None:
    lookup = _lookup([
        {"id": "a", "father_id": "f", "mother_id": "m"},
        {"id": "b", "father_id": "f", "mother_id": "m"},
        {"id": "h", "father_id": "f", "mother_id": "m2"},
        {"id": "f"},
        {"id": "m"},
        {"id": "m2"},
    ])

    full = coefficient_of_inbreeding("a", "b", lookup)
    half = coefficient_of_inbreeding("a", "h", lookup)

    assert full.coi == 0.25
    assert full.relationship == "full siblings"
    assert half.coi == 0.125
    assert half.relationship == "half-siblings (same father)"


def test_first_cousins_counts_grandparents_once() -> None:
    # p1 and q1 are full siblings (parents g1 x g2), so a and b are first cousins.
    lookup = _lookup([
        {"id": "a", "father_id": "p1", "mother_id": "p2"},
        {"id": "b", "father_id": "q2", "mother_id": "q1"},
        {"id": "p1", "father_id": "g1", "mother_id": "g2"},
        {"id": "q1", "father_id": "g1", "mother_id": "g2"},
        {"id": "g1", "father_id": "gg"},
        {"id": "g2"},
        {"id": "gg"},
        {"id": "p2"},
        {"id": "q2"},
    ])

    est = coefficient_of_inbreeding("a", "b", lookup)

    # 2 * 0.5 ** (2 + 2 + 1); gg is blocked by g1
    assert est.coi == pytest.approx(0.0625)
    assert sorted(est.common_ancestors) == ["g1", "g2"]
    assert est.relationship == "first cousins or closer"


def test_unrelated_and_unknown() -> None:
    lookup = _lookup([
        {"id": "a", "father_id": "f1", "mother_id": "m1"},
        {"id": "b", "father_id": "f2", "mother_id": "m2"},
    ])

    est = coefficient_of_inbreeding("a", "b", lookup)

    assert est.coi == 0.0
    assert est.relationship is None
    assert coefficient_of_inbreeding("x", "y", lookup).coi == 0.0


def test_common_ancestor_beyond_max_generations_is_ignored() -> None:
    lookup = _lookup([
        {"id": "a", "father_id": "a1"},
        {"id": "a1", "father_id": "a2"},
        {"id": "a2", "father_id": "root"},
        {"id": "b", "father_id": "b1"},
        {"id": "b1", "father_id": "b2"},
        {"id": "b2", "father_id": "root"},
        {"id": "root"},
    ])

    assert coefficient_of_inbreeding("a", "b", lookup, max_generations=2).coi == 0.0

    deep = coefficient_of_inbreeding("a", "b", lookup, max_generations=3)
    assert deep.coi == pytest.approx(0.5 ** 7)
    assert deep.relationship == "distant relatives"
