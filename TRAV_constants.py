#Constants for Traveller package-based character creation

from enum import Enum
from typing import Dict, List, Optional, Tuple


LEVEL_MIN = 0
LEVEL_MAX = 4

CHARACTERISTIC_START = 7
CHARACTERISTIC_POINT_MIN = 2
CHARACTERISTIC_POINT_MAX = 12
CHARACTERISTIC_FINAL_MIN = 1
CHARACTERISTIC_FINAL_MAX = 15

BASE_AGE = 22
AGE_DICE = "3d6"

DEFAULT_SPECIES = "Human"
DEFAULT_RANK = "Rank 0"
LEAVE_SERVICE_RANK = "Rank 4"


def clamp_level(level: int) -> int:
    """Clamp a skill level into the closed range [LEVEL_MIN, LEVEL_MAX]."""
    return max(LEVEL_MIN, min(LEVEL_MAX, level))


class Characteristic(str, Enum):
    STR = "STR"
    DEX = "DEX"
    END = "END"
    INT = "INT"
    EDU = "EDU"
    SOC = "SOC"


class SkillSource(str, Enum):
    BACKGROUND = "background"
    CAREER = "career"
    COMBINED = "combined"
    IMPROVEMENT = "improvement"


class CandidateStatus(str, Enum):
    NEW = "new"
    LEVEL_UP = "level-up"
    BLOCKED = "blocked"


class FinalizationStep(str, Enum):
    REVIEW = "review"
    CAREER_OPTION = "career_option"
    SKILL_IMPROVEMENT = "skill_improvement"
    BENEFITS = "benefits"
    COMPLETE = "complete"


class ImprovementPhase(str, Enum):
    OPTION = "option"
    SKILL_PAIR = "skill_pair"


class CareerOption(Enum):
    RAISE_TO_FOUR = 1
    THREE_PLUS_ONE = 2
    LEAVE_AT_RANK_FOUR = 3

    @property
    def description(self) -> str:
        return {
            CareerOption.RAISE_TO_FOUR: (
                "Increase any skill offered at level 1 or above in the Traveller's "
                "career package to level 4"
            ),
            CareerOption.THREE_PLUS_ONE: (
                "Increase any 3 skills listed in the Traveller's career package at "
                "any level by one each, to a maximum of 2"
            ),
            CareerOption.LEAVE_AT_RANK_FOUR: (
                "Leave the service at Rank 4 without gaining extra skills"
            ),
        }[self]


# Career option 1 / 2 parameters
OPTION_ONE_TARGET_LEVEL = 4
OPTION_TWO_PICKS = 3
OPTION_TWO_LEVEL_CAP = 2

# Skill-pair sub-phase: each half is raised to this level if below it
SKILL_PAIR_TARGET_LEVEL = 1

SKILL_PAIR_OPTIONS: List[str] = [
    "Vacc Suit and Steward",
    "Gunner (any) and Mechanic",
    "Pilot and Electronics (any)",
    "Gun Combat (any) and Recon",
    "Melee (any) and Streetwise",
    "Broker and Admin",
    "Carouse and Deception",
    "Engineer (any) and Electronics (any)",
    "Science (any) and Investigate",
    "Drive (any) and Profession (any)",
    "Survival and Navigation",
    "Medic and Admin",
]


class Benefit(Enum):
    SHIP_SHARE = "1 Ship Share"
    CASH = "Cr100000 in cash"
    COMBAT_IMPLANT = "Combat implant"
    ALLY_AND_CONTACTS = "1 Ally and 2 Contacts"
    TAS_MEMBERSHIP = "TAS Membership"
    SOC_PLUS_ONE = "SOC+1"

    @property
    def credits(self) -> int:
        return 100000 if self is Benefit.CASH else 0

    @property
    def characteristic_bonus(self) -> Optional[Tuple[Characteristic, int]]:
        if self is Benefit.SOC_PLUS_ONE:
            return (Characteristic.SOC, 1)
        return None


# Official skill specializations (lower case, as written in package grants)
SKILL_SPECIALIZATIONS: Dict[str, List[str]] = {
    "Animals": ["handling", "veterinary", "training"],
    "Art": ["performer", "holography", "instrument", "visual media", "write"],
    "Athletics": ["dexterity", "endurance", "strength"],
    "Drive": ["hovercraft", "mole", "tracked", "walker", "wheeled"],
    "Electronics": ["comms", "computers", "remote ops", "sensors"],
    "Engineer": ["m-drive", "j-drive", "life support", "power"],
    "Flyer": ["airship", "grav", "ornithopter", "rotor", "wing"],
    "Gun Combat": ["archaic", "energy", "slug"],
    "Gunner": ["turret", "ortillery", "screen", "capital"],
    "Heavy Weapons": ["artillery", "portable", "vehicle"],
    "Language": ["galanglic", "vilani", "zdetl", "oynprith", "trokh", "gvegh", "other"],
    "Melee": ["unarmed", "blade", "bludgeon", "natural"],
    "Pilot": ["small craft", "spacecraft", "capital ships"],
    "Profession": [
        "belter", "biologicals", "civil engineering", "construction",
        "hydroponics", "polymers", "other",
    ],
    "Science": [
        "archaeology", "astronomy", "biology", "chemistry", "cosmology",
        "cybernetics", "economics", "genetics", "history", "linguistics",
        "philosophy", "physics", "planetology", "psionicology", "psychology",
        "robotics", "sophontology", "xenology",
    ],
    "Seafarer": ["ocean ships", "personal", "sail", "submarine"],
    "Tactics": ["military", "naval"],
}

# Placeholder texts whose options override the catalog lookup
SPECIAL_CASE_OPTIONS: Dict[str, List[str]] = {
    "any survival": ["belter", "construction", "other"],
    "local dialect": ["galanglic", "vilani", "zdetl", "oynprith", "trokh", "gvegh", "other"],
}
