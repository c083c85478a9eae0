from __future__ import annotations

from collections import deque
from typing import Any, Callable, Dict, Iterable, List, Optional

from .birthdate_utils import parse_birth_date
from .models import MISSING_TOKENS, AncestorNode, AnimalRecord

ParentLookup = Callable[[str], Any]


def _field(node: Any, key: str) -> Any:
    if node is None:
        return None
    if isinstance(node, dict):
        return node.get(key)
    return getattr(node, key, None)


def _get_parent_id(node: Any, key: str) -> Optional[str]:
    """
    Parent pointer keys:
      - preferred: "father_id" / "mother_id"
      - fallback:  "parentIds": {"sire": ..., "dam": ...} on raw mappings
    """
    v = _field(node, key)
    if v is None and isinstance(node, dict):
        parent_ids = node.get("parentIds") or {}
        if isinstance(parent_ids, dict):
            v = parent_ids.get("sire" if key == "father_id" else "dam")

    if v is None:
        return None
    s = str(v).strip()
    if s.lower() in MISSING_TOKENS:
        return None
    return s


def _safe_lookup(parent_lookup: ParentLookup, animal_id: str) -> Any:
    # An id the store cannot find is unknown ancestry, not an error.
    try:
        return parent_lookup(animal_id)
    except LookupError:
        return None


def role_label(line: Optional[str], parent_role: str, generation: int) -> str:
    """
    Display label for an ancestor relative to the root.

      generation 1 -> "sire" / "dam"
      generation 2 -> "paternal grandsire", "maternal granddam", ...
      generation n -> "paternal great-great-grandsire", ...
    """
    if generation <= 0:
        return "self"
    if generation == 1:
        return parent_role
    side = "paternal" if line == "sire" else "maternal"
    greats = "great-" * (generation - 2)
    return f"{side} {greats}grand{parent_role}"


def resolve_ancestors(
    root_id: str,
    parent_lookup: ParentLookup,
    *,
    max_depth: int | None = None,
    include_root: bool = False,
) -> List[AncestorNode]:
    """
    Enumerate the ancestors of root_id, breadth-first by generation.

    Each ancestor id appears at most once. An ancestor reachable through
    both the sire and dam line (or several times within one line) keeps
    the generation/role of its first discovery, and the visited set also
    guarantees termination on corrupt cyclic data.

    Missing parent links and ids unknown to parent_lookup simply end that
    branch. parent_lookup(id) must return a record exposing father_id /
    mother_id (AnimalRecord or mapping), or None.
    """
    out: List[AncestorNode] = []
    visited: set[str] = {root_id}

    root = _safe_lookup(parent_lookup, root_id)

    if include_root:
        out.append(
            AncestorNode(
                id=root_id,
                name=_field(root, "name") or "",
                role="self",
                line=None,
                generation=0,
                birth_date=parse_birth_date(_field(root, "birth_date")),
            )
        )

    if root is None:
        return out

    # (animal_id, generation, line) of nodes whose parents are still to expand
    q: deque[tuple[str, int, Optional[str]]] = deque([(root_id, 0, None)])

    while q:
        nid, gen, line = q.popleft()
        if max_depth is not None and gen >= max_depth:
            continue

        node = root if nid == root_id else _safe_lookup(parent_lookup, nid)
        if node is None:
            continue

        for key, parent_role in (("father_id", "sire"), ("mother_id", "dam")):
            pid = _get_parent_id(node, key)
            if pid is None or pid in visited:
                continue
            visited.add(pid)

            parent = _safe_lookup(parent_lookup, pid)
            if parent is None:
                # Unknown to the store: nothing to report or expand.
                continue

            pline = line or parent_role
            out.append(
                AncestorNode(
                    id=pid,
                    name=_field(parent, "name") or "",
                    role=role_label(pline, parent_role, gen + 1),
                    line=pline,
                    generation=gen + 1,
                    birth_date=parse_birth_date(_field(parent, "birth_date")),
                )
            )
            q.append((pid, gen + 1, pline))

    return out


def lookup_from_records(records: Iterable[AnimalRecord]) -> Callable[[str], Optional[AnimalRecord]]:
    index: Dict[str, AnimalRecord] = {r.id: r for r in records}
    return index.get


def ancestors_by_generation(nodes: Iterable[AncestorNode]) -> Dict[int, List[AncestorNode]]:
    """
    Convenience grouping: {generation: [nodes...]}.
    """
    by_gen: Dict[int, List[AncestorNode]] = {}
    for node in nodes:
        by_gen.setdefault(node.generation, []).append(node)
    return dict(sorted(by_gen.items()))
