from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .ancestor_resolver import ParentLookup, _get_parent_id, _safe_lookup, resolve_ancestors

# Maximum acceptable COI for a recommended pairing (first cousins).
MAX_SAFE_COI = 0.0625

COI_PARENT_OFFSPRING = 0.25
COI_FULL_SIBLINGS = 0.25
COI_HALF_SIBLINGS = 0.125
COI_FIRST_COUSINS = 0.0625
COI_SECOND_COUSINS = 0.0156


@dataclass
class InbreedingEstimate:
    """
    Coefficient of inbreeding of a hypothetical offspring of two animals.
    """
    coi: float
    relationship: Optional[str] = None
    common_ancestors: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "coi": self.coi,
            "relationship": self.relationship,
            "common_ancestors": list(self.common_ancestors),
        }


def _parents(parent_lookup: ParentLookup, animal_id: str) -> tuple[Optional[str], Optional[str]]:
    node = _safe_lookup(parent_lookup, animal_id)
    if node is None:
        return None, None
    return _get_parent_id(node, "father_id"), _get_parent_id(node, "mother_id")


def _generation_map(
    animal_id: str,
    parent_lookup: ParentLookup,
    max_generations: int,
) -> Dict[str, int]:
    """
    {ancestor_id: generation}, including the animal itself at generation 0.
    """
    nodes = resolve_ancestors(
        animal_id,
        parent_lookup,
        max_depth=max_generations,
        include_root=True,
    )
    return {n.id: n.generation for n in nodes}


def coefficient_of_inbreeding(
    a_id: str,
    b_id: str,
    parent_lookup: ParentLookup,
    *,
    max_generations: int = 3,
) -> InbreedingEstimate:
    """
    Estimate the COI of an a x b mating.

    Close relationships are recognised directly (parent-offspring, full and
    half siblings). Otherwise uses the simplified Wright sum

        F = sum over common ancestors of 0.5 ** (n1 + n2 + 1)

    where n1 / n2 are the generations from each animal to the ancestor.
    A common ancestor that is itself an ancestor of another common ancestor
    is skipped, so a shared grandparent pair is not counted again through
    their own parents. Ancestors of common ancestors (implex) are not
    weighted by their own F.
    """
    fa, ma = _parents(parent_lookup, a_id)
    fb, mb = _parents(parent_lookup, b_id)
    parents_a = {p for p in (fa, ma) if p}
    parents_b = {p for p in (fb, mb) if p}

    if b_id in parents_a or a_id in parents_b:
        return InbreedingEstimate(
            coi=COI_PARENT_OFFSPRING,
            relationship="parent-offspring",
            common_ancestors=[b_id if b_id in parents_a else a_id],
        )

    shared = parents_a & parents_b
    if len(shared) >= 2:
        return InbreedingEstimate(
            coi=COI_FULL_SIBLINGS,
            relationship="full siblings",
            common_ancestors=sorted(shared),
        )
    if shared:
        side = "father" if fa and fa in shared else "mother"
        return InbreedingEstimate(
            coi=COI_HALF_SIBLINGS,
            relationship=f"half-siblings (same {side})",
            common_ancestors=sorted(shared),
        )

    gens_a = _generation_map(a_id, parent_lookup, max_generations)
    gens_b = _generation_map(b_id, parent_lookup, max_generations)

    common = [aid for aid in gens_a if aid in gens_b]
    if not common:
        return InbreedingEstimate(coi=0.0)

    blocked: set[str] = set()
    for cid in common:
        for anc in resolve_ancestors(cid, parent_lookup, max_depth=max_generations):
            blocked.add(anc.id)

    counted = [cid for cid in common if cid not in blocked]

    coi = 0.0
    for cid in counted:
        coi += 0.5 ** (gens_a[cid] + gens_b[cid] + 1)

    relationship: Optional[str] = None
    if coi >= COI_FIRST_COUSINS:
        relationship = "first cousins or closer"
    elif coi >= COI_SECOND_COUSINS:
        relationship = "second cousins"
    elif coi > 0:
        relationship = "distant relatives"

    return InbreedingEstimate(coi=coi, relationship=relationship, common_ancestors=counted)
