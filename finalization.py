"""
Finalization Stepper - the last stage of package-based creation.

Steps run strictly in order:

    review -> career_option -> skill_improvement -> benefits -> complete

career_option picks one of three options. skill_improvement has two
sub-phases: the option's own pick (options 1 and 2 only) followed by the
skill-pair pick. Option 3 goes straight to the skill pair. benefits picks one
benefit from a fixed list.

Every selection is stored as a selection, never as a level change. The
Improvement Ledger (display skill name -> level delta) is rebuilt from the
current selections each time one of them changes, so revising an earlier
choice can never count twice. Going back to career_option clears everything
downstream of it.
"""

import logging
from typing import Dict, List, Optional, Any, Set, Tuple

from TRAV_constants import (
    FinalizationStep,
    ImprovementPhase,
    CareerOption,
    Benefit,
    SkillSource,
    OPTION_ONE_TARGET_LEVEL,
    OPTION_TWO_PICKS,
    OPTION_TWO_LEVEL_CAP,
    SKILL_PAIR_OPTIONS,
    SKILL_PAIR_TARGET_LEVEL,
    DEFAULT_RANK,
    LEAVE_SERVICE_RANK,
    clamp_level,
)
from core.common import StepTransitionError
from core.grant import Grant, display_name, parse_grant, split_display_name
from build_session import BuildSession
from choice_detector import Choice, SpecializationCandidate, evaluate_candidates
from choice_sequencer import ChoiceSequencer
from skill_merger import ResolvedSkill


logger = logging.getLogger(__name__)


class FinalizationStepper:
    """State machine for career option, skill improvement and benefit selection."""

    def __init__(self, session: BuildSession, skill_pairs: Optional[List[str]] = None):
        self.session = session
        self.skill_pairs = list(skill_pairs or SKILL_PAIR_OPTIONS)
        self.sequencer = ChoiceSequencer(session, listener=self)

        self.step = FinalizationStep.REVIEW
        self.phase = ImprovementPhase.OPTION
        self.option: Optional[CareerOption] = None
        self.option_one_skill: Optional[str] = None
        self.option_two_skills: List[str] = []
        self.skill_pair: Optional[str] = None
        self.pair_specializations: Dict[int, str] = {}
        self.benefit: Optional[Benefit] = None
        self.characteristic_bonus: Dict[str, int] = {}
        self.ledger: Dict[str, int] = {}

    # =========================================================================
    # STATE
    # =========================================================================

    def _require(self, *steps: FinalizationStep) -> None:
        if self.step not in steps:
            allowed = ", ".join(s.value for s in steps)
            raise StepTransitionError(
                f"Not allowed in step '{self.step.value}' (requires {allowed})"
            )

    def _require_phase(self, phase: ImprovementPhase) -> None:
        self._require(FinalizationStep.SKILL_IMPROVEMENT)
        if self.phase is not phase:
            raise StepTransitionError(
                f"Not allowed in sub-phase '{self.phase.value}' (requires {phase.value})"
            )

    def _enter(self, step: FinalizationStep) -> None:
        logger.info("Finalization step %s -> %s", self.step.value, step.value)
        self.step = step

    def _clear_pair(self) -> None:
        self.skill_pair = None
        self.pair_specializations = {}
        self.sequencer.clear_improvements()

    def _clear_benefit(self) -> None:
        self.benefit = None
        self.characteristic_bonus = {}

    def _clear_downstream(self) -> None:
        """Forget everything that depends on the career option."""
        self.option_one_skill = None
        self.option_two_skills = []
        self.phase = ImprovementPhase.OPTION
        self._clear_pair()
        self._clear_benefit()
        self.ledger = {}

    def reset(self) -> None:
        """Return to review with nothing selected (source packages changed)."""
        self.option = None
        self._clear_downstream()
        self.step = FinalizationStep.REVIEW
        self.sequencer.reset()

    @property
    def is_complete(self) -> bool:
        return self.step is FinalizationStep.COMPLETE

    @property
    def rank(self) -> str:
        if self.option is CareerOption.LEAVE_AT_RANK_FOUR:
            return LEAVE_SERVICE_RANK
        if self.session.career is not None:
            return self.session.career.rank
        return DEFAULT_RANK

    # =========================================================================
    # NAVIGATION
    # =========================================================================

    def begin(self) -> None:
        """Leave review. Every package choice must be resolved first."""
        self._require(FinalizationStep.REVIEW)
        if self.session.background is None or self.session.career is None:
            raise StepTransitionError("Select a background and a career before finalizing")
        self.sequencer.refresh()
        if self.sequencer.has_pending():
            raise StepTransitionError("Resolve all specialization choices before finalizing")
        self._enter(FinalizationStep.CAREER_OPTION)

    def advance(self) -> None:
        """Move forward one step (or sub-phase) once its selection is made."""
        if self.step is FinalizationStep.REVIEW:
            self.begin()
        elif self.step is FinalizationStep.CAREER_OPTION:
            if self.option is None:
                raise StepTransitionError("Select a career option first")
            self.phase = (
                ImprovementPhase.SKILL_PAIR
                if self.option is CareerOption.LEAVE_AT_RANK_FOUR
                else ImprovementPhase.OPTION
            )
            self._enter(FinalizationStep.SKILL_IMPROVEMENT)
        elif self.step is FinalizationStep.SKILL_IMPROVEMENT:
            if self.phase is ImprovementPhase.OPTION:
                self._check_option_selection()
                self.phase = ImprovementPhase.SKILL_PAIR
                logger.info("Skill improvement sub-phase -> %s", self.phase.value)
            else:
                if self.skill_pair is None:
                    raise StepTransitionError("Select a skill pair first")
                if self.sequencer.has_pending():
                    raise StepTransitionError("Resolve the pending specialization choice first")
                self._enter(FinalizationStep.BENEFITS)
        elif self.step is FinalizationStep.BENEFITS:
            if self.benefit is None:
                raise StepTransitionError("Select a benefit first")
            self._enter(FinalizationStep.COMPLETE)
        else:
            raise StepTransitionError("Finalization is already complete")

    def _check_option_selection(self) -> None:
        if self.option is CareerOption.RAISE_TO_FOUR and self.option_one_skill is None:
            raise StepTransitionError("Select a skill to raise to level 4")
        if self.option is CareerOption.THREE_PLUS_ONE and len(self.option_two_skills) != OPTION_TWO_PICKS:
            raise StepTransitionError(f"Select exactly {OPTION_TWO_PICKS} skills")

    def go_back(self) -> None:
        """
        Step back once.

        Leaving the skill-pair sub-phase drops the pair, leaving benefits drops
        the benefit, and arriving at career_option clears every later selection.
        """
        if self.step is FinalizationStep.COMPLETE:
            raise StepTransitionError("Finalization is complete")
        if self.step is FinalizationStep.REVIEW:
            raise StepTransitionError("Already at the first step")

        if self.step is FinalizationStep.BENEFITS:
            self._clear_benefit()
            self._enter(FinalizationStep.SKILL_IMPROVEMENT)
        elif self.step is FinalizationStep.SKILL_IMPROVEMENT:
            if self.phase is ImprovementPhase.SKILL_PAIR and self.option is not CareerOption.LEAVE_AT_RANK_FOUR:
                self._clear_pair()
                self.phase = ImprovementPhase.OPTION
                self.rebuild_ledger()
            else:
                self._clear_downstream()
                self._enter(FinalizationStep.CAREER_OPTION)
        else:
            self.option = None
            self._clear_downstream()
            self._enter(FinalizationStep.REVIEW)

    # =========================================================================
    # CAREER OPTION
    # =========================================================================

    def select_career_option(self, option: CareerOption) -> None:
        """Pick one of the three career options. Clears every later selection."""
        if self.step is FinalizationStep.SKILL_IMPROVEMENT:
            self._enter(FinalizationStep.CAREER_OPTION)
        self._require(FinalizationStep.CAREER_OPTION)
        option = CareerOption(option)
        if option is not self.option:
            logger.info("Career option %d selected", option.value)
        self.option = option
        self._clear_downstream()

    # =========================================================================
    # SKILL IMPROVEMENT: OPTIONS 1 AND 2
    # =========================================================================

    def current_levels(self, include_ledger: bool = False) -> Dict[str, int]:
        """Display name -> level for the merged skills, optionally with the ledger."""
        levels = {s.name: s.level for s in self.session.merged()}
        if include_ledger:
            for name, delta in self.ledger.items():
                levels[name] = clamp_level(levels.get(name, 0) + delta)
        return levels

    def _specialized_bases(self) -> Set[str]:
        """Base skills held through a specialization at level 1 or above."""
        return {
            s.base_skill for s in self.session.merged()
            if s.specialization and s.level >= 1
        }

    def _improvable(self, skill: ResolvedSkill, specialized: Set[str]) -> bool:
        # A generic entry next to a specialization is dropped from the final list
        if skill.needs_choice:
            return False
        return bool(skill.specialization) or skill.base_skill not in specialized

    def option_one_candidates(self) -> List[Tuple[str, int]]:
        """(skill, current level) for career skills offered at level 1 or above."""
        levels = self.current_levels()
        specialized = self._specialized_bases()
        return [
            (s.name, levels.get(s.name, s.level))
            for s in self.session.career_skills()
            if s.level >= 1 and self._improvable(s, specialized)
        ]

    def option_two_candidates(self) -> List[Tuple[str, int, bool]]:
        """(skill, current level, eligible) for every career skill."""
        levels = self.current_levels()
        specialized = self._specialized_bases()
        result = []
        for s in self.session.career_skills():
            if s.needs_choice:
                continue
            current = levels.get(s.name, s.level)
            eligible = current < OPTION_TWO_LEVEL_CAP and self._improvable(s, specialized)
            result.append((s.name, current, eligible))
        return result

    def select_option_one_skill(self, skill_name: str) -> None:
        self._require_phase(ImprovementPhase.OPTION)
        if self.option is not CareerOption.RAISE_TO_FOUR:
            raise StepTransitionError("Option 1 is not the selected career option")
        names = [name for name, _ in self.option_one_candidates()]
        if skill_name not in names:
            raise ValueError(f"Invalid skill '{skill_name}'. Options: {names}")
        self.option_one_skill = skill_name
        self.rebuild_ledger()

    def toggle_option_two_skill(self, skill_name: str) -> None:
        """Add or remove one option 2 skill."""
        if skill_name in self.option_two_skills:
            selection = [n for n in self.option_two_skills if n != skill_name]
        else:
            selection = self.option_two_skills + [skill_name]
        self.select_option_two_skills(selection)

    def select_option_two_skills(self, skill_names: List[str]) -> None:
        """Replace the option 2 selection (up to three distinct eligible skills)."""
        self._require_phase(ImprovementPhase.OPTION)
        if self.option is not CareerOption.THREE_PLUS_ONE:
            raise StepTransitionError("Option 2 is not the selected career option")
        if len(set(skill_names)) != len(skill_names):
            raise ValueError("Option 2 skills must be distinct")
        if len(skill_names) > OPTION_TWO_PICKS:
            raise ValueError(f"Select at most {OPTION_TWO_PICKS} skills")
        eligible = {name for name, _, ok in self.option_two_candidates() if ok}
        for name in skill_names:
            if name not in eligible:
                raise ValueError(f"Invalid skill '{name}'. Options: {sorted(eligible)}")
        self.option_two_skills = list(skill_names)
        self.rebuild_ledger()

    # =========================================================================
    # SKILL IMPROVEMENT: SKILL PAIR
    # =========================================================================

    def pair_halves(self, pair: Optional[str] = None) -> List[Grant]:
        """The two skills of a pair as level-1 improvement grants."""
        pair = pair or self.skill_pair
        if pair is None:
            return []
        return [
            parse_grant(
                f"{label.strip()}-{SKILL_PAIR_TARGET_LEVEL}",
                SkillSource.IMPROVEMENT,
                index,
                self.session.catalog.special_cases,
            )
            for index, label in enumerate(pair.split(" and "))
        ]

    def pair_no_effect(self, pair: str) -> List[str]:
        """Halves of a pair that would change nothing (already held, no specializations)."""
        levels = self.current_levels(include_ledger=True)
        return [
            half.base_skill for half in self.pair_halves(pair)
            if not self.session.catalog.has_specializations(half.base_skill)
            and levels.get(half.base_skill, 0) >= SKILL_PAIR_TARGET_LEVEL
        ]

    def select_skill_pair(self, pair: str) -> List[Choice]:
        """
        Pick a skill pair.

        Halves with specializations become improvement choices in the shared
        queue; the stepper moves on to benefits once the last one is resolved.
        With nothing to choose the ledger is rebuilt and benefits is entered
        immediately.

        Returns:
            The improvement choices queued for this pair
        """
        self._require_phase(ImprovementPhase.SKILL_PAIR)
        if pair not in self.skill_pairs:
            raise ValueError(f"Invalid skill pair '{pair}'. Options: {self.skill_pairs}")

        self._clear_pair()
        self.skill_pair = pair
        self.rebuild_ledger()
        logger.info("Skill pair selected: %s", pair)

        choices = self._improvement_choices()
        if choices:
            self.sequencer.enqueue_improvements(choices)
        else:
            self._enter(FinalizationStep.BENEFITS)
        return choices

    def _improvement_choices(self) -> List[Choice]:
        catalog = self.session.catalog
        levels = self.current_levels(include_ledger=True)
        choices = []
        for half in self.pair_halves():
            if not catalog.has_specializations(half.base_skill):
                continue
            held: Dict[str, int] = {}
            for name, level in levels.items():
                base, spec = split_display_name(name)
                if base == half.base_skill and spec:
                    held[spec.lower()] = level
            candidates = evaluate_candidates(
                catalog.candidates_for(half), held, SKILL_PAIR_TARGET_LEVEL
            )
            if not any(c.selectable for c in candidates):
                logger.warning("Every %s specialization is already held, no effect", half.base_skill)
                continue
            choices.append(Choice(
                skill_name=half.base_skill,
                current_level=max(held.values(), default=0),
                granted_level=SKILL_PAIR_TARGET_LEVEL,
                candidates=candidates,
                instance_key=half.instance_key,
                source=SkillSource.IMPROVEMENT,
                grant_text=half.original,
            ))
        return choices

    def improvement_resolved(self, choice: Choice, candidate: SpecializationCandidate) -> None:
        index = int(choice.instance_key.partition(":")[2])
        self.pair_specializations[index] = candidate.specialization

    def improvements_complete(self) -> None:
        self.rebuild_ledger()
        self._enter(FinalizationStep.BENEFITS)

    # =========================================================================
    # LEDGER
    # =========================================================================

    def rebuild_ledger(self) -> Dict[str, int]:
        """
        Recompute the Improvement Ledger from the current selections only.

        The previous ledger is discarded, never patched.
        """
        ledger: Dict[str, int] = {}
        levels = self.current_levels()

        def current(name: str) -> int:
            return levels.get(name, 0) + ledger.get(name, 0)

        if self.option is CareerOption.RAISE_TO_FOUR and self.option_one_skill:
            delta = OPTION_ONE_TARGET_LEVEL - current(self.option_one_skill)
            if delta > 0:
                ledger[self.option_one_skill] = delta
        elif self.option is CareerOption.THREE_PLUS_ONE:
            for name in self.option_two_skills:
                if current(name) < OPTION_TWO_LEVEL_CAP:
                    ledger[name] = ledger.get(name, 0) + 1

        for index, half in enumerate(self.pair_halves()):
            if self.session.catalog.has_specializations(half.base_skill):
                spec = self.pair_specializations.get(index)
                if spec is None:
                    continue
                name = display_name(half.base_skill, spec)
            else:
                name = half.base_skill
            delta = SKILL_PAIR_TARGET_LEVEL - current(name)
            if delta > 0:
                ledger[name] = ledger.get(name, 0) + delta
            elif not self.session.catalog.has_specializations(half.base_skill):
                logger.warning("%s is already at level %d, skill pair half has no effect",
                               name, current(name))

        self.ledger = ledger
        logger.debug("Improvement ledger rebuilt: %s", ledger)
        return ledger

    # =========================================================================
    # BENEFITS
    # =========================================================================

    def select_benefit(self, benefit: Benefit) -> None:
        """Pick the finalization benefit. A characteristic bonus is set, never added."""
        self._require(FinalizationStep.BENEFITS)
        benefit = Benefit(benefit)
        self.benefit = benefit
        bonus = benefit.characteristic_bonus
        self.characteristic_bonus = {bonus[0].value: bonus[1]} if bonus else {}
        logger.info("Benefit selected: %s", benefit.value)

    # =========================================================================
    # OUTPUT
    # =========================================================================

    def final_skills(self) -> List[Dict[str, Any]]:
        """Merged skills plus the ledger, capped at 4, generic duplicates dropped."""
        levels = self.current_levels(include_ledger=True)
        specialized = {
            split_display_name(name)[0]
            for name, level in levels.items()
            if split_display_name(name)[1] and level >= 1
        }
        return [
            {"name": name, "level": level}
            for name, level in sorted(levels.items())
            if split_display_name(name)[1] or name not in specialized
        ]

    def selections(self) -> Dict[str, Any]:
        return {
            "career_option": self.option.value if self.option else None,
            "option_one_skill": self.option_one_skill,
            "option_two_skills": list(self.option_two_skills),
            "skill_pair": self.skill_pair,
            "pair_specializations": {
                str(k): v for k, v in sorted(self.pair_specializations.items())
            },
            "benefit": self.benefit.value if self.benefit else None,
            "skill_improvements": dict(self.ledger),
        }
