"""
Package dataclasses - background and career packages loaded from JSON.

Background packages provide:
- Characteristic modifiers
- Skill grants (terse strings such as "Vacc Suit-1")
- Benefits, credits and equipment
- Narrative text

Career packages provide the same minus characteristic modifiers, and their
benefits may name a starting rank ("Rank 2 (corporal)").

Grant strings are checked when a package is loaded so that a malformed table
fails immediately instead of in the middle of a build.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Any
import json
import re
from pathlib import Path

from TRAV_constants import SkillSource, DEFAULT_RANK
from .common import CharacteristicModifier
from .grant import Grant, parse_grants


_RANK_PATTERN = re.compile(r"rank\s+(\d+)", re.IGNORECASE)


@dataclass
class BackgroundPackage:
    """A background package loaded from JSON data."""

    id: str
    name: str
    description: str = ""
    characteristic_modifiers: List[CharacteristicModifier] = field(default_factory=list)
    skills: List[str] = field(default_factory=list)
    benefits: List[str] = field(default_factory=list)
    credits: int = 0
    equipment: List[str] = field(default_factory=list)
    narrative: Dict[str, Any] = field(default_factory=dict)  # background, suitable_for

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BackgroundPackage":
        return cls(
            id=data.get("id", ""),
            name=data.get("name", ""),
            description=data.get("description", ""),
            characteristic_modifiers=[
                CharacteristicModifier.from_dict(m)
                for m in data.get("characteristic_modifiers", [])
            ],
            skills=list(data.get("skills", [])),
            benefits=list(data.get("benefits", [])),
            credits=data.get("credits", 0),
            equipment=list(data.get("equipment", [])),
            narrative=dict(data.get("narrative", {})),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "characteristic_modifiers": [m.to_dict() for m in self.characteristic_modifiers],
            "skills": list(self.skills),
            "benefits": list(self.benefits),
            "credits": self.credits,
            "equipment": list(self.equipment),
            "narrative": dict(self.narrative),
        }

    def modifier_map(self) -> Dict[str, int]:
        """Characteristic -> modifier, for display and final characteristics."""
        return {m.characteristic: m.modifier for m in self.characteristic_modifiers}

    def parsed_grants(self) -> List[Grant]:
        return parse_grants(self.skills, SkillSource.BACKGROUND)


@dataclass
class CareerPackage:
    """A career package loaded from JSON data."""

    id: str
    name: str
    description: str = ""
    skills: List[str] = field(default_factory=list)
    benefits: List[str] = field(default_factory=list)
    credits: int = 0
    equipment: List[str] = field(default_factory=list)
    narrative: Dict[str, Any] = field(default_factory=dict)  # background, personality, motivations

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CareerPackage":
        return cls(
            id=data.get("id", ""),
            name=data.get("name", ""),
            description=data.get("description", ""),
            skills=list(data.get("skills", [])),
            benefits=list(data.get("benefits", [])),
            credits=data.get("credits", 0),
            equipment=list(data.get("equipment", [])),
            narrative=dict(data.get("narrative", {})),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "skills": list(self.skills),
            "benefits": list(self.benefits),
            "credits": self.credits,
            "equipment": list(self.equipment),
            "narrative": dict(self.narrative),
        }

    @property
    def rank(self) -> str:
        """Starting rank named in the benefits, e.g. "Rank 2 (corporal)" -> "Rank 2"."""
        for benefit in self.benefits:
            match = _RANK_PATTERN.search(benefit)
            if match:
                return f"Rank {match.group(1)}"
        return DEFAULT_RANK

    def parsed_grants(self) -> List[Grant]:
        return parse_grants(self.skills, SkillSource.CAREER)


def load_background_package(filepath: str) -> BackgroundPackage:
    """Load a background package from a JSON file."""
    with open(filepath, 'r', encoding='utf-8') as f:
        data = json.load(f)
    package = BackgroundPackage.from_dict(data)
    package.parsed_grants()
    return package


def load_all_background_packages(directory: str) -> Dict[str, BackgroundPackage]:
    """Load all background packages from a directory of JSON files."""
    packages = {}
    path = Path(directory)
    for file in sorted(path.glob("*.json")):
        package = load_background_package(str(file))
        packages[package.id] = package
    return packages


def load_career_package(filepath: str) -> CareerPackage:
    """Load a career package from a JSON file."""
    with open(filepath, 'r', encoding='utf-8') as f:
        data = json.load(f)
    package = CareerPackage.from_dict(data)
    package.parsed_grants()
    return package


def load_all_career_packages(directory: str) -> Dict[str, CareerPackage]:
    """Load all career packages from a directory of JSON files."""
    packages = {}
    path = Path(directory)
    for file in sorted(path.glob("*.json")):
        package = load_career_package(str(file))
        packages[package.id] = package
    return packages
