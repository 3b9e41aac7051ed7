"""
Validation Classes for package-based Traveller creation.

Checks a build (or an exported character dict) before it is handed to an
export adapter. Each validator returns a ValidationResult with success status
and error messages.

Usage:
    from validation import BuildValidator, ValidationResult

    validator = BuildValidator(data_dir="data")

    # Validate a builder before export
    result = validator.validate_build(builder)
    if not result.valid:
        print(result.errors)

    # Validate an exported character
    result = validator.validate_character(character_dict)
"""

from dataclasses import dataclass, field
from typing import Dict, List, Any, Optional
from pathlib import Path

from TRAV_constants import (
    Characteristic,
    FinalizationStep,
    LEVEL_MIN,
    LEVEL_MAX,
    CHARACTERISTIC_POINT_MIN,
    CHARACTERISTIC_POINT_MAX,
    CHARACTERISTIC_FINAL_MIN,
    CHARACTERISTIC_FINAL_MAX,
    CHARACTERISTIC_START,
)
from core import load_all_background_packages, load_all_career_packages
from core.grant import split_display_name


CHARACTERISTIC_NAMES = {c.value for c in Characteristic}
POINT_TOTAL = CHARACTERISTIC_START * len(Characteristic)


@dataclass
class ValidationResult:
    """Result of a validation check."""
    valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def add_error(self, message: str):
        """Add an error and mark as invalid."""
        self.errors.append(message)
        self.valid = False

    def add_warning(self, message: str):
        """Add a warning (doesn't affect validity)."""
        self.warnings.append(message)

    def merge(self, other: "ValidationResult"):
        """Merge another result into this one."""
        if not other.valid:
            self.valid = False
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)

    def __bool__(self) -> bool:
        return self.valid


class BuildValidator:
    """
    Validates package builds and exported characters.

    Loads package ids from the data directory when one is given, so that
    exported characters can be checked against the known tables.
    """

    def __init__(self, data_dir: Optional[str] = None):
        self.data_dir = Path(data_dir) if data_dir else None
        self.valid_backgrounds: set = set()
        self.valid_careers: set = set()
        if self.data_dir is not None:
            self._load_valid_names()

    def _load_valid_names(self):
        """Load package names from the JSON tables."""
        bg_dir = self.data_dir / "backgrounds"
        if bg_dir.exists():
            self.valid_backgrounds = {
                p.name for p in load_all_background_packages(str(bg_dir)).values()
            }
        career_dir = self.data_dir / "careers"
        if career_dir.exists():
            self.valid_careers = {
                p.name for p in load_all_career_packages(str(career_dir)).values()
            }

    # =========================================================================
    # CHARACTERISTICS
    # =========================================================================

    def validate_base_characteristics(self, values: Dict[str, int]) -> ValidationResult:
        """Validate point-redistributed base characteristics."""
        result = ValidationResult(valid=True)

        missing = CHARACTERISTIC_NAMES - set(values.keys())
        if missing:
            result.add_error(f"Missing characteristics: {', '.join(sorted(missing))}")

        extra = set(values.keys()) - CHARACTERISTIC_NAMES
        if extra:
            result.add_error(f"Unknown characteristics: {', '.join(sorted(extra))}")

        for name, value in values.items():
            if not isinstance(value, int):
                result.add_error(f"{name} must be an integer, got {type(value).__name__}")
            elif value < CHARACTERISTIC_POINT_MIN:
                result.add_error(f"{name} cannot be less than {CHARACTERISTIC_POINT_MIN} (got {value})")
            elif value > CHARACTERISTIC_POINT_MAX:
                result.add_error(f"{name} cannot exceed {CHARACTERISTIC_POINT_MAX} (got {value})")

        total = sum(v for v in values.values() if isinstance(v, int))
        if total > POINT_TOTAL:
            result.add_error(f"Spent {total} points (max {POINT_TOTAL})")
        elif total < POINT_TOTAL and not missing:
            result.add_warning(f"Only {total} of {POINT_TOTAL} points assigned")

        return result

    def validate_final_characteristics(self, totals: Dict[str, int]) -> ValidationResult:
        result = ValidationResult(valid=True)
        for name, value in totals.items():
            if not CHARACTERISTIC_FINAL_MIN <= value <= CHARACTERISTIC_FINAL_MAX:
                result.add_error(
                    f"{name} must be between {CHARACTERISTIC_FINAL_MIN} and "
                    f"{CHARACTERISTIC_FINAL_MAX} (got {value})"
                )
        return result

    # =========================================================================
    # SKILLS
    # =========================================================================

    def validate_skill_list(self, skills: List[Dict[str, Any]]) -> ValidationResult:
        """
        Validate a final skill list.

        Levels must be in [0, 4], names unique, and no generic skill may sit
        next to a specialization of it held at level 1 or more.
        """
        result = ValidationResult(valid=True)
        seen = set()
        specialized = set()

        for skill in skills:
            name = skill.get("name", "")
            level = skill.get("level")
            if not name:
                result.add_error("Skill with no name")
                continue
            if name in seen:
                result.add_error(f"Duplicate skill: {name}")
            seen.add(name)
            if not isinstance(level, int) or not LEVEL_MIN <= level <= LEVEL_MAX:
                result.add_error(f"{name} level must be between {LEVEL_MIN} and {LEVEL_MAX} (got {level})")
                continue
            base, spec = split_display_name(name)
            if spec and level >= 1:
                specialized.add(base)

        for name in seen:
            base, spec = split_display_name(name)
            if spec is None and base in specialized:
                result.add_error(f"Generic {base} listed alongside a specialization")

        return result

    # =========================================================================
    # BUILD
    # =========================================================================

    def validate_build(self, builder) -> ValidationResult:
        """Validate a PackageBuilder before export."""
        result = ValidationResult(valid=True)
        session = builder.session

        if session.background is None:
            result.add_error("No background package selected")
        if session.career is None:
            result.add_error("No career package selected")
        if builder.age is None:
            result.add_error("Age has not been rolled")

        pending = builder.sequencer.pending
        if pending:
            names = ", ".join(c.skill_name for c in pending)
            result.add_error(f"Unresolved specialization choices: {names}")

        if builder.stepper.step is not FinalizationStep.COMPLETE:
            result.add_error(f"Finalization not complete (at {builder.stepper.step.value})")

        result.merge(self.validate_base_characteristics(builder.characteristics))
        result.merge(self.validate_final_characteristics(
            {k: v.total for k, v in builder.final_characteristics().items()}
        ))
        result.merge(self.validate_skill_list(builder.final_skills()))
        return result

    def validate_character(self, character: Dict[str, Any]) -> ValidationResult:
        """Validate an exported character dict."""
        result = ValidationResult(valid=True)

        required = ["background", "career", "age", "rank"]
        for key in required:
            if key not in character or character.get(key) in (None, ""):
                result.add_error(f"Missing required field: {key}")

        if self.valid_backgrounds and character.get("background"):
            if character["background"] not in self.valid_backgrounds:
                result.add_error(f"Unknown background: {character['background']}")
        if self.valid_careers and character.get("career"):
            if character["career"] not in self.valid_careers:
                result.add_error(f"Unknown career: {character['career']}")

        if "characteristics" in character:
            totals = {}
            for name, data in character["characteristics"].items():
                totals[name] = data.get("total", 0) if isinstance(data, dict) else data
            result.merge(self.validate_final_characteristics(totals))
        else:
            result.add_error("Missing characteristics")

        result.merge(self.validate_skill_list(character.get("skills", [])))

        age = character.get("age")
        if isinstance(age, int) and age < 18:
            result.add_warning(f"Age {age} is younger than any career allows")

        return result
