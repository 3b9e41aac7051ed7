"""
Specialization catalog - which skills need a specialization, and which.

The catalog is static configuration. It is built from the defaults in
TRAV_constants or loaded from data/specializations.json, which has the shape:

    {
        "specializations": {"Electronics": ["comms", "computers", ...], ...},
        "special_cases": {"any survival": ["belter", "construction", "other"], ...}
    }
"""

from dataclasses import dataclass, field
from typing import Dict, List, Any
import json

from TRAV_constants import SKILL_SPECIALIZATIONS, SPECIAL_CASE_OPTIONS
from .grant import Grant, GrantKind


@dataclass
class SpecializationCatalog:
    """Base skill name -> valid specializations, plus placeholder special cases."""

    specializations: Dict[str, List[str]] = field(default_factory=dict)
    special_cases: Dict[str, List[str]] = field(default_factory=dict)

    @classmethod
    def default(cls) -> "SpecializationCatalog":
        return cls(
            specializations={k: list(v) for k, v in SKILL_SPECIALIZATIONS.items()},
            special_cases={k: list(v) for k, v in SPECIAL_CASE_OPTIONS.items()},
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SpecializationCatalog":
        return cls(
            specializations={k: list(v) for k, v in data.get("specializations", {}).items()},
            special_cases={k.lower(): list(v) for k, v in data.get("special_cases", {}).items()},
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "specializations": {k: list(v) for k, v in self.specializations.items()},
            "special_cases": {k: list(v) for k, v in self.special_cases.items()},
        }

    def has_specializations(self, base_skill: str) -> bool:
        return bool(self.specializations.get(base_skill))

    def options_for(self, base_skill: str) -> List[str]:
        return list(self.specializations.get(base_skill, []))

    def candidates_for(self, grant: Grant) -> List[str]:
        """
        Candidate specializations for an ambiguous grant.

        Special-case placeholders win over everything, an or-list supplies its
        own options, and anything else falls back to the catalog entry for
        the base skill.
        """
        if grant.kind is GrantKind.SPECIAL_CASE and grant.placeholder in self.special_cases:
            return list(self.special_cases[grant.placeholder])
        if grant.kind is GrantKind.OR_LIST and grant.options:
            return list(grant.options)
        return self.options_for(grant.base_skill)


def load_catalog(filepath: str) -> SpecializationCatalog:
    """Load a specialization catalog from a JSON file."""
    with open(filepath, 'r', encoding='utf-8') as f:
        data = json.load(f)
    return SpecializationCatalog.from_dict(data)
