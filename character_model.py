from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Any

from TRAV_constants import Characteristic, DEFAULT_SPECIES, DEFAULT_RANK


def _normalize_key(text: str) -> str:
    return "".join(ch for ch in text.lower() if ch.isalnum())


_CHARACTERISTIC_LOOKUP = {_normalize_key(c.value): c for c in Characteristic}


def _parse_characteristic(name: str) -> Characteristic | None:
    return _CHARACTERISTIC_LOOKUP.get(_normalize_key(name))


def _characteristic_key(char: Characteristic | str) -> str:
    return char.value if isinstance(char, Characteristic) else str(char)


# --- Leaf models ---

@dataclass
class CharacteristicScore:
    base: int = 7
    modifier: int = 0   # background package
    bonus: int = 0      # finalization benefit
    total: int = 7

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CharacteristicScore":
        return cls(
            base=data.get("base", 7),
            modifier=data.get("modifier", 0),
            bonus=data.get("bonus", 0),
            total=data.get("total", 7),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "base": self.base,
            "modifier": self.modifier,
            "bonus": self.bonus,
            "total": self.total,
        }


@dataclass
class SkillEntry:
    name: str = ""
    level: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SkillEntry":
        return cls(
            name=data.get("name", ""),
            level=data.get("level", 0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "level": self.level}


@dataclass
class BuildEvent:
    kind: str = ""      # "background", "career", "age", "specialization", ...
    title: str = ""
    detail: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BuildEvent":
        return cls(
            kind=data.get("kind", ""),
            title=data.get("title", ""),
            detail=data.get("detail", ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "title": self.title, "detail": self.detail}


# --- Root model ---

@dataclass
class FinalCharacter:
    name: str = ""
    species: str = DEFAULT_SPECIES
    background: str = ""
    career: str = ""
    age: int = 0
    terms: int = 0
    rank: str = DEFAULT_RANK
    credits: int = 0
    characteristics: Dict[Characteristic | str, CharacteristicScore] = field(default_factory=dict)
    skills: List[SkillEntry] = field(default_factory=list)
    equipment: List[str] = field(default_factory=list)
    benefits: List[str] = field(default_factory=list)
    finalization: Dict[str, Any] = field(default_factory=dict)
    history: List[BuildEvent] = field(default_factory=list)
    notes: str = ""

    def skill_level(self, name: str) -> int | None:
        entry = next((s for s in self.skills if s.name == name), None)
        return entry.level if entry else None

    def characteristic(self, char: Characteristic | str) -> int:
        key = _parse_characteristic(_characteristic_key(char)) or char
        score = self.characteristics.get(key)
        return score.total if score else 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FinalCharacter":
        characteristics: Dict[Characteristic | str, CharacteristicScore] = {}
        for name, entry in data.get("characteristics", {}).items():
            key = _parse_characteristic(name) or name
            characteristics[key] = CharacteristicScore.from_dict(entry)

        return cls(
            name=data.get("name", ""),
            species=data.get("species", DEFAULT_SPECIES),
            background=data.get("background", ""),
            career=data.get("career", ""),
            age=data.get("age", 0),
            terms=data.get("terms", 0),
            rank=data.get("rank", DEFAULT_RANK),
            credits=data.get("credits", 0),
            characteristics=characteristics,
            skills=[SkillEntry.from_dict(s) for s in data.get("skills", [])],
            equipment=list(data.get("equipment", [])),
            benefits=list(data.get("benefits", [])),
            finalization=dict(data.get("finalization", {})),
            history=[BuildEvent.from_dict(e) for e in data.get("history", [])],
            notes=data.get("notes", ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "species": self.species,
            "background": self.background,
            "career": self.career,
            "age": self.age,
            "terms": self.terms,
            "rank": self.rank,
            "credits": self.credits,
            "characteristics": {
                _characteristic_key(k): v.to_dict() for k, v in self.characteristics.items()
            },
            "skills": [s.to_dict() for s in self.skills],
            "equipment": list(self.equipment),
            "benefits": list(self.benefits),
            "finalization": dict(self.finalization),
            "history": [e.to_dict() for e in self.history],
            "notes": self.notes,
        }


# Convenience helpers

def load_final_character(data: Dict[str, Any]) -> FinalCharacter:
    """Create a FinalCharacter from a plain dict (already parsed JSON)."""
    return FinalCharacter.from_dict(data)


def dump_final_character(character: FinalCharacter) -> Dict[str, Any]:
    """Convert a FinalCharacter back to a plain dict (ready for JSON serialization)."""
    return character.to_dict()
