from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List

from .models import AnimalRecord

# ---------------------------------------------------------------------
# JSON snapshot of the animal table
# ---------------------------------------------------------------------
#
# Two layouts are accepted on load:
#   - legacy: top-level list of animal dicts
#   - versioned: {"schema_version": 1, "created_at": ..., "animals": [...]}
# save_records() always writes the versioned layout.
# ---------------------------------------------------------------------

SCHEMA_VERSION = 1


def _parse_payload(payload: Any, path: Path) -> List[dict]:
    if isinstance(payload, list):
        return payload

    if not isinstance(payload, dict):
        raise ValueError(f"Malformed record snapshot {path}: expected list or object, got {type(payload)}")

    schema_version = payload.get("schema_version")
    if schema_version != SCHEMA_VERSION:
        raise ValueError(f"Unsupported record snapshot schema_version: {schema_version}")

    animals = payload.get("animals")
    if not isinstance(animals, list):
        raise ValueError(f"Malformed record snapshot {path}: 'animals' must be a list")
    return animals


def load_records(path: Path) -> List[AnimalRecord]:
    """
    Load an animal snapshot from disk.

    Raises:
      - FileNotFoundError if the file does not exist
      - ValueError if the payload shape or schema is unsupported, or an
        entry has no id
      - json.JSONDecodeError for invalid JSON
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Record snapshot not found: {path}")

    with path.open("r", encoding="utf-8") as f:
        payload = json.load(f)

    records: List[AnimalRecord] = []
    for i, raw in enumerate(_parse_payload(payload, path)):
        if not isinstance(raw, dict):
            raise ValueError(f"Malformed animal at index {i}: expected object, got {type(raw)}")
        if raw.get("id") in (None, ""):
            raise ValueError(f"Malformed animal at index {i}: missing id")
        records.append(AnimalRecord.from_dict(raw))

    return records


def save_records(path: Path, records: Iterable[AnimalRecord]) -> None:
    """
    Persist an animal snapshot (versioned layout).

    Writes to a temporary file and atomically replaces the target.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    animals = [r.to_dict() for r in records]
    payload: Dict[str, Any] = {
        "schema_version": SCHEMA_VERSION,
        "created_at": datetime.now(timezone.utc).replace(microsecond=0).isoformat(),
        "animal_count": len(animals),
        "animals": animals,
    }

    tmp_path = path.with_suffix(path.suffix + ".tmp")
    with tmp_path.open("w", encoding="utf-8") as f:
        json.dump(payload, f, ensure_ascii=False, indent=2)

    tmp_path.replace(path)


def build_index(records: Iterable[AnimalRecord]) -> Dict[str, AnimalRecord]:
    """
    Returns a dictionary: animal id -> record (last duplicate wins).
    """
    return {r.id: r for r in records}
