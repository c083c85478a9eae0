from __future__ import annotations

from collections import Counter
from typing import Dict, Iterable, List, Sequence

from .birthdate_utils import birth_sort_key
from .models import AnimalRecord, RegistrationAssignment, RegistrationChange

DEFAULT_REGISTRY_PREFIX = "TRD"


def format_registration_code(
    lineage_prefix: str,
    generation: int,
    sequence: int,
    *,
    registry_prefix: str = DEFAULT_REGISTRY_PREFIX,
) -> str:
    """
    e.g. ("BOONPING", 2, 5) -> "TRD-BOONPING-02-005"
    """
    return f"{registry_prefix}-{lineage_prefix}-{generation:02d}-{sequence:03d}"


def build_children_map(records: Iterable[AnimalRecord]) -> Dict[str, List[AnimalRecord]]:
    """
    Invert father_id/mother_id into {parent_id: [children...]}.

    A child with both parents known is listed under each of them; callers
    must not count it twice. Children keep the input record order.
    """
    children: Dict[str, List[AnimalRecord]] = {}
    for rec in records:
        for pid in (rec.father_id, rec.mother_id):
            if pid:
                children.setdefault(pid, []).append(rec)
    return children


def assign_registration_codes(
    root_id: str,
    records: Sequence[AnimalRecord],
    lineage_prefix: str,
    *,
    registry_prefix: str = DEFAULT_REGISTRY_PREFIX,
) -> Dict[str, RegistrationAssignment]:
    """
    Number every descendant of root_id by generation and birth order.

    Guarantees:
      - root is generation 0, sequence 1
      - all children of generation g are numbered before generation g+1, so
        sequence numbers inside one generation are exactly 1..k
      - each generation is numbered oldest first across all its parents
        (missing birth date last, ties in first-reach order)
      - an animal reachable through both parents (or through reconverging
        lines) is numbered once, on first reach
      - animals not descended from root get nothing

    This is a full recompute: the caller diffs the result against what is
    stored (see diff_registration_codes) instead of patching node by node.
    """
    by_id = {r.id: r for r in records}
    if root_id not in by_id:
        return {}

    children_map = build_children_map(records)

    assignments: Dict[str, RegistrationAssignment] = {}
    processed: set[str] = {root_id}
    assignments[root_id] = RegistrationAssignment(
        animal_id=root_id,
        generation=0,
        sequence_in_generation=1,
        code=format_registration_code(lineage_prefix, 0, 1, registry_prefix=registry_prefix),
    )

    current = [root_id]
    generation = 0

    while current:
        generation += 1

        # Collect the whole generation first: the first parent to reach a
        # child claims it, later parents skip it.
        pending: Dict[str, AnimalRecord] = {}
        for parent_id in current:
            for child in children_map.get(parent_id, []):
                if child.id in processed or child.id in pending:
                    continue
                pending[child.id] = child

        # One stable sort per generation, so birth order holds across parents.
        ordered = sorted(pending.values(), key=lambda c: birth_sort_key(c.birth_date))

        nxt: List[str] = []
        for sequence, child in enumerate(ordered, start=1):
            processed.add(child.id)
            assignments[child.id] = RegistrationAssignment(
                animal_id=child.id,
                generation=generation,
                sequence_in_generation=sequence,
                code=format_registration_code(
                    lineage_prefix, generation, sequence, registry_prefix=registry_prefix
                ),
            )
            nxt.append(child.id)

        current = nxt

    return assignments


def diff_registration_codes(
    assignments: Dict[str, RegistrationAssignment],
    records: Iterable[AnimalRecord],
) -> List[RegistrationChange]:
    """
    Compare a fresh assignment with the codes currently stored on records.

    Returns one change per record whose code must be written or cleared,
    in input record order. Records without a code and without an
    assignment produce nothing.
    """
    changes: List[RegistrationChange] = []
    for rec in records:
        assigned = assignments.get(rec.id)
        new_code = assigned.code if assigned is not None else None
        if new_code != rec.registration_number:
            changes.append(
                RegistrationChange(
                    animal_id=rec.id,
                    old_code=rec.registration_number,
                    new_code=new_code,
                )
            )
    return changes


def generation_counts(assignments: Dict[str, RegistrationAssignment]) -> Dict[int, int]:
    counts = Counter(a.generation for a in assignments.values())
    return dict(sorted(counts.items()))
