from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional, Dict, Any

from .birthdate_utils import parse_birth_date


# ---------------------------------------------------------------------------
# Animal records (read-only snapshot from the record store)
# ---------------------------------------------------------------------------

MISSING_TOKENS = ("", "unknown", "none", "null", "?")

_TRUE_TOKENS = ("true", "yes", "y", "1", "t")


def _clean_id(v: Any) -> Optional[str]:
    """
    Normalize an id-like value to a non-empty string, or None when missing.
    """
    if v is None:
        return None
    s = str(v).strip()
    if s.lower() in MISSING_TOKENS:
        return None
    return s


def _clean_text(v: Any) -> str:
    return "" if v is None else str(v).strip()


def _clean_flag(v: Any) -> bool:
    # Booleans may arrive as strings ("false", "0").
    if isinstance(v, str):
        return v.strip().lower() in _TRUE_TOKENS
    return bool(v)


@dataclass(frozen=True)
class AnimalRecord:
    """
    One animal as supplied by the record store.

    The engine never mutates these; every derived value (ancestors,
    registration codes, verdicts) is returned to the caller to persist.
    """
    id: str
    name: str = ""
    species: str = ""                  # upstream "type", e.g. "dog"
    gender: str = ""                   # "male" / "female"
    birth_date: Optional[date] = None
    father_id: Optional[str] = None
    mother_id: Optional[str] = None
    breed: str = ""
    color: str = ""
    health_certified: bool = False
    registration_number: Optional[str] = None

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "AnimalRecord":
        """
        Build a record from a loosely-shaped mapping.

        Parent pointer keys:
          - preferred: "father_id" / "mother_id"
          - fallback:  "parentIds": {"sire": ..., "dam": ...}
        """
        parent_ids = raw.get("parentIds") or {}
        if not isinstance(parent_ids, dict):
            parent_ids = {}

        father_id = _clean_id(raw.get("father_id")) or _clean_id(parent_ids.get("sire"))
        mother_id = _clean_id(raw.get("mother_id")) or _clean_id(parent_ids.get("dam"))

        birth_raw = raw.get("birth_date")
        if birth_raw is None:
            birth_raw = raw.get("birthday", raw.get("birthDate"))

        certified = raw.get("health_certified")
        if certified is None:
            certified = raw.get("healthCertified")

        return cls(
            id=str(raw.get("id")).strip(),
            name=_clean_text(raw.get("name")),
            species=_clean_text(raw.get("species", raw.get("type"))),
            gender=_clean_text(raw.get("gender")),
            birth_date=parse_birth_date(birth_raw),
            father_id=father_id,
            mother_id=mother_id,
            breed=_clean_text(raw.get("breed")),
            color=_clean_text(raw.get("color")),
            health_certified=_clean_flag(certified),
            registration_number=_clean_id(raw.get("registration_number")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.species,
            "gender": self.gender,
            "birth_date": self.birth_date.isoformat() if self.birth_date else None,
            "father_id": self.father_id,
            "mother_id": self.mother_id,
            "breed": self.breed,
            "color": self.color,
            "health_certified": self.health_certified,
            "registration_number": self.registration_number,
        }

    def parent_ids(self) -> set[str]:
        return {pid for pid in (self.father_id, self.mother_id) if pid}

    def label(self) -> str:
        """
        Short human-readable label for log lines and CLI output.
        """
        if self.name:
            return f"{self.name} ({self.id})"
        return self.id


# ---------------------------------------------------------------------------
# Derived structures
# ---------------------------------------------------------------------------

@dataclass
class AncestorNode:
    """
    One ancestor found while walking parent links upward from a root.

    `line` is the side of the root's pedigree the ancestor was reached
    through ("sire" or "dam"); `role` is a display label relative to the
    root, e.g. "maternal grandsire".
    """
    id: str
    name: str
    role: str
    line: Optional[str]
    generation: int                    # 0 = root, 1 = parents, 2 = grandparents
    birth_date: Optional[date] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "role": self.role,
            "line": self.line,
            "generation": self.generation,
            "birth_date": self.birth_date.isoformat() if self.birth_date else None,
        }


@dataclass(frozen=True)
class RegistrationAssignment:
    animal_id: str
    generation: int
    sequence_in_generation: int
    code: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "animal_id": self.animal_id,
            "generation": self.generation,
            "sequence_in_generation": self.sequence_in_generation,
            "code": self.code,
        }


@dataclass(frozen=True)
class RegistrationChange:
    """
    A pending write produced by diffing a fresh assignment against the
    codes currently stored. new_code=None means "clear the code".
    """
    animal_id: str
    old_code: Optional[str]
    new_code: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "animal_id": self.animal_id,
            "old_code": self.old_code,
            "new_code": self.new_code,
        }


@dataclass
class ScoreBreakdown:
    genetic_risk: int = 0              # 100 is safe, 0 is high risk
    breed: int = 0
    health: int = 0
    color: int = 0
    age: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "genetic_risk": self.genetic_risk,
            "breed": self.breed,
            "health": self.health,
            "color": self.color,
            "age": self.age,
        }


@dataclass
class BreedingAssessment:
    type: str                          # "outcross" | "linebreeding" | "inbreeding"
    level: str                         # "low" | "moderate" | "high"
    warnings: List[str] = field(default_factory=list)
    pros: List[str] = field(default_factory=list)
    cons: List[str] = field(default_factory=list)
    summary: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "level": self.level,
            "warnings": list(self.warnings),
            "pros": list(self.pros),
            "cons": list(self.cons),
            "summary": self.summary,
        }


@dataclass
class CompatibilityVerdict:
    score: int
    label: str
    breakdown: ScoreBreakdown
    breeding: BreedingAssessment
    advice: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score": self.score,
            "label": self.label,
            "breakdown": self.breakdown.to_dict(),
            "breeding": self.breeding.to_dict(),
            "advice": self.advice,
        }
