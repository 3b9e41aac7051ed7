"""
Common dataclasses and errors used across the package-creation layers.
"""

from dataclasses import dataclass
from typing import Dict, Any


class GrantParseError(ValueError):
    """A skill-grant string does not have the shape 'Name[ (spec)]-level'."""


class ChoiceStateError(ValueError):
    """A specialization choice was resolved twice or no longer matches its grant."""


class StepTransitionError(ValueError):
    """A finalization operation was requested in the wrong step."""


@dataclass
class CharacteristicModifier:
    """A package modifier applied to one characteristic."""
    characteristic: str  # "STR", "DEX", ...
    modifier: int

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CharacteristicModifier":
        return cls(
            characteristic=data.get("characteristic", ""),
            modifier=data.get("modifier", 0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"characteristic": self.characteristic, "modifier": self.modifier}
