"""
Package Builder - Orchestrates package-based character creation.

This class manages the creation of a Traveller from packages:
1. Set characteristics (point redistribution)
2. Choose a background package
3. Choose a career package
4. Resolve specialization choices
5. Roll age
6. Finalize (career option, skill improvement, benefit)

The skill engine itself lives in BuildSession, ChoiceSequencer and
FinalizationStepper; this class wires them to the package tables and keeps
the build history.
"""

import logging
import random
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Any, Optional

from TRAV_constants import (
    Characteristic,
    CareerOption,
    Benefit,
    FinalizationStep,
    SKILL_PAIR_OPTIONS,
    CHARACTERISTIC_START,
    CHARACTERISTIC_POINT_MIN,
    CHARACTERISTIC_POINT_MAX,
    CHARACTERISTIC_FINAL_MIN,
    CHARACTERISTIC_FINAL_MAX,
    BASE_AGE,
    AGE_DICE,
    DEFAULT_SPECIES,
)
from core import (
    BackgroundPackage,
    CareerPackage,
    SpecializationCatalog,
    StepTransitionError,
    load_all_background_packages,
    load_all_career_packages,
    load_catalog,
)
from build_session import BuildSession
from choice_detector import Choice
from choice_sequencer import ChoiceSequencer
from finalization import FinalizationStepper
from character_model import FinalCharacter, CharacteristicScore, SkillEntry, BuildEvent
from dice import roll
from validation import BuildValidator


logger = logging.getLogger(__name__)

POINT_TOTAL = CHARACTERISTIC_START * len(Characteristic)


def _characteristic_name(name: str) -> str:
    try:
        return Characteristic(name.upper()).value
    except ValueError:
        raise ValueError(f"Unknown characteristic: {name}")


@dataclass
class PackageBuilder:
    """
    Manages the package-based creation process.

    Usage:
        builder = PackageBuilder()
        builder.load_game_data("data")

        builder.set_characteristics({"STR": 9, "DEX": 8, ...})
        builder.select_background("belter")
        builder.select_career("scout")

        while builder.current_choice():
            builder.resolve_choice("computers")

        builder.roll_age()
        builder.begin_finalization()
        builder.select_career_option(CareerOption.LEAVE_AT_RANK_FOUR)
        builder.advance()
        builder.select_skill_pair("Survival and Navigation")
        builder.select_benefit(Benefit.TAS_MEMBERSHIP)
        builder.advance()

        character = builder.get_character()
    """

    name: str = ""
    backgrounds: Dict[str, BackgroundPackage] = field(default_factory=dict)
    careers: Dict[str, CareerPackage] = field(default_factory=dict)
    catalog: SpecializationCatalog = field(default_factory=SpecializationCatalog.default)
    skill_pairs: List[str] = field(default_factory=lambda: list(SKILL_PAIR_OPTIONS))
    characteristics: Dict[str, int] = field(
        default_factory=lambda: {c.value: CHARACTERISTIC_START for c in Characteristic}
    )
    age: Optional[int] = None
    age_rolls: List[int] = field(default_factory=list)
    events: List[BuildEvent] = field(default_factory=list)
    rng: Optional[random.Random] = None

    def __post_init__(self):
        self.session = BuildSession(self.catalog)
        self.stepper = FinalizationStepper(self.session, self.skill_pairs)

    def load_game_data(self, data_dir: str = "data") -> None:
        """Load package tables and the specialization catalog from JSON files."""
        self.backgrounds = load_all_background_packages(f"{data_dir}/backgrounds")
        self.careers = load_all_career_packages(f"{data_dir}/careers")
        catalog_file = Path(data_dir) / "specializations.json"
        if catalog_file.exists():
            self.catalog = load_catalog(str(catalog_file))
            self.session.catalog = self.catalog
        logger.info(
            "Loaded %d backgrounds and %d careers from %s",
            len(self.backgrounds), len(self.careers), data_dir,
        )

    @property
    def sequencer(self) -> ChoiceSequencer:
        return self.stepper.sequencer

    def _record(self, kind: str, title: str, detail: str = "") -> None:
        self.events.append(BuildEvent(kind=kind, title=title, detail=detail))

    # -------------------------------------------------------------------------
    # Step 1: Characteristics
    # -------------------------------------------------------------------------

    @property
    def point_pool(self) -> int:
        """Points taken from one characteristic and not yet given to another."""
        return POINT_TOTAL - sum(self.characteristics.values())

    def set_characteristics(self, values: Dict[str, int]) -> None:
        """
        Set all base characteristics at once.

        Args:
            values: e.g. {"STR": 9, "DEX": 8, "END": 7, "INT": 7, "EDU": 6, "SOC": 5}
        """
        result = {c.value: CHARACTERISTIC_START for c in Characteristic}
        for name, value in values.items():
            key = _characteristic_name(name)
            if not CHARACTERISTIC_POINT_MIN <= value <= CHARACTERISTIC_POINT_MAX:
                raise ValueError(
                    f"{key} must be between {CHARACTERISTIC_POINT_MIN} and "
                    f"{CHARACTERISTIC_POINT_MAX}, got {value}"
                )
            result[key] = value
        if sum(result.values()) > POINT_TOTAL:
            raise ValueError(
                f"Characteristics total {sum(result.values())}, maximum is {POINT_TOTAL}"
            )
        self.characteristics = result

    def increment_characteristic(self, name: str) -> None:
        key = _characteristic_name(name)
        if self.point_pool <= 0:
            raise ValueError("No points available; lower another characteristic first")
        if self.characteristics[key] >= CHARACTERISTIC_POINT_MAX:
            raise ValueError(f"{key} is already at {CHARACTERISTIC_POINT_MAX}")
        self.characteristics[key] += 1

    def decrement_characteristic(self, name: str) -> None:
        key = _characteristic_name(name)
        if self.characteristics[key] <= CHARACTERISTIC_POINT_MIN:
            raise ValueError(f"{key} is already at {CHARACTERISTIC_POINT_MIN}")
        self.characteristics[key] -= 1

    def final_characteristics(self) -> Dict[str, CharacteristicScore]:
        """Base + background modifier + benefit bonus, clamped to [1, 15]."""
        modifiers = self.session.background.modifier_map() if self.session.background else {}
        bonus = self.stepper.characteristic_bonus
        scores = {}
        for char in Characteristic:
            base = self.characteristics[char.value]
            mod = modifiers.get(char.value, 0)
            extra = bonus.get(char.value, 0)
            total = max(CHARACTERISTIC_FINAL_MIN, min(CHARACTERISTIC_FINAL_MAX, base + mod + extra))
            scores[char.value] = CharacteristicScore(base=base, modifier=mod, bonus=extra, total=total)
        return scores

    # -------------------------------------------------------------------------
    # Steps 2-3: Packages
    # -------------------------------------------------------------------------

    def get_available_backgrounds(self) -> List[BackgroundPackage]:
        return list(self.backgrounds.values())

    def get_available_careers(self) -> List[CareerPackage]:
        return list(self.careers.values())

    def select_background(self, background_id: str) -> None:
        """Choose a background package. Resets finalization."""
        if background_id not in self.backgrounds:
            raise ValueError(f"Unknown background: {background_id}")
        package = self.backgrounds[background_id]
        self.session.set_background(package)
        self.stepper.reset()
        self._record("background", f"Background: {package.name}", package.description)

    def select_career(self, career_id: str) -> None:
        """Choose a career package. Resets finalization."""
        if career_id not in self.careers:
            raise ValueError(f"Unknown career: {career_id}")
        package = self.careers[career_id]
        self.session.set_career(package)
        self.stepper.reset()
        self._record("career", f"Career: {package.name}", package.description)

    # -------------------------------------------------------------------------
    # Step 4: Specialization choices
    # -------------------------------------------------------------------------

    def current_choice(self) -> Optional[Choice]:
        """The one choice the player must answer next, if any."""
        return self.sequencer.current()

    def pending_choices(self) -> List[Choice]:
        return self.sequencer.pending

    def resolve_choice(self, specialization: str) -> Choice:
        """Answer the current choice."""
        choice = self.sequencer.resolve(specialization)
        candidate = choice.find_candidate(specialization)
        self._record(
            "specialization",
            f"{choice.skill_name} ({candidate.display})",
            f"{candidate.status.value} at level {choice.granted_level}",
        )
        return choice

    def get_skills(self) -> List[Dict[str, Any]]:
        """Merged package skills (before finalization), for display."""
        return [{"name": s.name, "level": s.level} for s in self.session.merged()]

    # -------------------------------------------------------------------------
    # Step 5: Age
    # -------------------------------------------------------------------------

    def roll_age(self) -> int:
        result = roll(AGE_DICE, self.rng)
        self.age = BASE_AGE + result.total
        self.age_rolls = result.rolls
        self._record("age", f"Age {self.age}", f"{AGE_DICE} rolled {result.rolls}")
        logger.info("Rolled age %d (%s)", self.age, result.rolls)
        return self.age

    @property
    def terms(self) -> int:
        if self.age is None:
            return 0
        return max(1, (self.age - 18) // 4)

    # -------------------------------------------------------------------------
    # Step 6: Finalization
    # -------------------------------------------------------------------------

    def begin_finalization(self) -> None:
        if self.age is None:
            raise StepTransitionError("Roll age before finalizing")
        self.stepper.begin()

    def advance(self) -> None:
        was_complete = self.stepper.is_complete
        if self.stepper.step is FinalizationStep.REVIEW:
            self.begin_finalization()
            return
        self.stepper.advance()
        if self.stepper.is_complete and not was_complete:
            self._record("complete", "Finalization complete")

    def go_back(self) -> None:
        self.stepper.go_back()

    def select_career_option(self, option: CareerOption) -> None:
        self.stepper.select_career_option(option)
        option = CareerOption(option)
        self._record("career_option", f"Career option {option.value}", option.description)

    def select_option_one_skill(self, skill_name: str) -> None:
        self.stepper.select_option_one_skill(skill_name)
        self._record("skill_improvement", f"{skill_name} raised to 4")

    def select_option_two_skills(self, skill_names: List[str]) -> None:
        self.stepper.select_option_two_skills(skill_names)
        self._record("skill_improvement", "+1 to " + ", ".join(skill_names))

    def select_skill_pair(self, pair: str) -> List[Choice]:
        choices = self.stepper.select_skill_pair(pair)
        self._record("skill_improvement", f"Skill pair: {pair}")
        return choices

    def select_benefit(self, benefit: Benefit) -> None:
        self.stepper.select_benefit(benefit)
        self._record("benefit", f"Benefit: {Benefit(benefit).value}")

    # -------------------------------------------------------------------------
    # Result
    # -------------------------------------------------------------------------

    @property
    def rank(self) -> str:
        return self.stepper.rank

    def total_credits(self) -> int:
        total = 0
        if self.session.background:
            total += self.session.background.credits
        if self.session.career:
            total += self.session.career.credits
        if self.stepper.benefit:
            total += self.stepper.benefit.credits
        return total

    def final_skills(self) -> List[Dict[str, Any]]:
        return self.stepper.final_skills()

    def is_complete(self) -> bool:
        """Check if character creation is complete."""
        return self.stepper.is_complete and not self.sequencer.has_pending()

    def get_character(self) -> FinalCharacter:
        """
        Get the finished character.

        Raises:
            ValueError: If finalization is not complete or the build does not validate
        """
        if not self.is_complete():
            raise ValueError("Character creation is not complete")

        result = BuildValidator().validate_build(self)
        if not result.valid:
            raise ValueError("Invalid build: " + "; ".join(result.errors))

        background = self.session.background
        career = self.session.career
        benefits = list(background.benefits) + list(career.benefits)
        benefits.append(self.stepper.benefit.value)

        return FinalCharacter(
            name=self.name,
            species=DEFAULT_SPECIES,
            background=background.name,
            career=career.name,
            age=self.age,
            terms=self.terms,
            rank=self.rank,
            credits=self.total_credits(),
            characteristics=self.final_characteristics(),
            skills=[SkillEntry(name=s["name"], level=s["level"]) for s in self.final_skills()],
            equipment=list(background.equipment) + list(career.equipment),
            benefits=benefits,
            finalization=self.stepper.selections(),
            history=list(self.events),
        )

    def get_summary(self) -> str:
        """Get a summary of the current build."""
        background = self.session.background
        career = self.session.career
        lines = [
            f"Traveller: {self.name or '(unnamed)'}",
            f"Finalization Step: {self.stepper.step.value}",
            f"",
            f"Background: {background.name if background else '(not chosen)'}",
            f"Career: {career.name if career else '(not chosen)'}",
            f"Age: {self.age if self.age is not None else '(not rolled)'}",
            f"Rank: {self.rank}",
            f"Credits: Cr{self.total_credits()}",
            f"",
            f"Pending Choices: {len(self.sequencer.pending)}",
        ]
        for choice in self.sequencer.pending:
            options = ", ".join(c.display for c in choice.options)
            lines.append(f"  - {choice.skill_name} (level {choice.granted_level}): {options}")
        return "\n".join(lines)
