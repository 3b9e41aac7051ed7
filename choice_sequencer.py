"""
Choice Sequencer - presents pending specialization choices one at a time.

Package choices (from the session's grants) and skill-improvement choices
(queued by the finalization stepper) share one FIFO queue. Only the head of
the queue is "current". Resolving it:

1. rewrites the originating grant with the chosen specialization (and any
   generic grant of the same skill merged with it), or for an improvement
   choice hands the pick back to the stepper,
2. deletes any lower explicit grant the pick levels up,
3. marks the choice resolved and claims the specialization so that sibling
   choices for the same base skill show it as blocked,
4. re-derives the queue from the session.
"""

import logging
from typing import List, Optional, Protocol

from TRAV_constants import CandidateStatus
from core.common import ChoiceStateError
from core.grant import GrantKind, parse_grant
from build_session import BuildSession
from choice_detector import Choice, SpecializationCandidate


logger = logging.getLogger(__name__)


class ImprovementListener(Protocol):
    def improvement_resolved(self, choice: Choice, candidate: SpecializationCandidate) -> None:
        ...

    def improvements_complete(self) -> None:
        ...


class ChoiceSequencer:
    """FIFO queue over package choices followed by improvement choices."""

    def __init__(self, session: BuildSession, listener: Optional[ImprovementListener] = None):
        self.session = session
        self.listener = listener
        self._package_choices: List[Choice] = []
        self._improvement_choices: List[Choice] = []
        self.resolved: List[Choice] = []
        self.refresh()

    # =========================================================================
    # QUEUE
    # =========================================================================

    def refresh(self) -> None:
        """Re-derive package choices from the current source grants."""
        self._package_choices = self.session.detect()

    @property
    def pending(self) -> List[Choice]:
        return [c for c in self._package_choices + self._improvement_choices if not c.resolved]

    def has_pending(self) -> bool:
        return bool(self.pending)

    def current(self) -> Optional[Choice]:
        """Head of the queue, or None when nothing is pending."""
        pending = self.pending
        return pending[0] if pending else None

    def enqueue_improvements(self, choices: List[Choice]) -> None:
        self._improvement_choices.extend(choices)

    def clear_improvements(self) -> None:
        self._improvement_choices = []

    def reset(self) -> None:
        """Drop queued improvements and re-derive after the source packages changed."""
        self._improvement_choices = []
        self.refresh()

    def live_choice(self, choice: Choice) -> Optional[Choice]:
        """The queued choice for the same grant instance, if it is still pending."""
        if choice.is_improvement:
            return choice if any(c is choice for c in self._improvement_choices) else None
        if self.session.grant_text(choice.instance_key) != choice.grant_text:
            return None
        return next(
            (c for c in self._package_choices if c.instance_key == choice.instance_key),
            None,
        )

    # =========================================================================
    # RESOLUTION
    # =========================================================================

    def resolve(self, specialization: str) -> Choice:
        """Resolve the current choice with one of its selectable candidates."""
        choice = self.current()
        if choice is None:
            raise ChoiceStateError("No pending specialization choice")
        return self.resolve_choice(choice, specialization)

    def resolve_choice(self, choice: Choice, specialization: str) -> Choice:
        """
        Resolve a specific choice.

        Raises:
            ChoiceStateError: If the choice was already resolved or its grant is gone
            ValueError: If the specialization is not a selectable candidate
        """
        if choice.resolved:
            raise ChoiceStateError(f"Choice for {choice.skill_name} already resolved")
        live = self.live_choice(choice)
        if live is None:
            raise ChoiceStateError(
                f"Choice for {choice.skill_name} ({choice.instance_key}) is stale"
            )
        requested, choice = choice, live

        candidate = choice.find_candidate(specialization)
        if candidate is None or not candidate.selectable:
            valid = [c.specialization for c in choice.options]
            raise ValueError(f"Invalid selection '{specialization}'. Options: {valid}")

        if choice.is_improvement:
            self._apply_improvement(choice, candidate)
        else:
            self._apply_package(choice, candidate)
        requested.resolved = True

        self.resolved.append(choice)
        logger.info(
            "Resolved %s as %s (%s)",
            choice.grant_text or choice.skill_name,
            candidate.specialization,
            candidate.status.value,
        )

        if choice.is_improvement and not any(not c.resolved for c in self._improvement_choices):
            self._improvement_choices = []
            if self.listener is not None:
                self.listener.improvements_complete()
        return choice

    def _apply_package(self, choice: Choice, candidate: SpecializationCandidate) -> None:
        self.session.rewrite(choice.instance_key, choice.grant_text, candidate.specialization)
        grant = parse_grant(choice.grant_text, special_cases=self.session.catalog.special_cases)
        if grant.kind is GrantKind.GENERIC:
            for key, text in self.session.generic_partners(choice.skill_name, choice.instance_key):
                self.session.rewrite(key, text, candidate.specialization)
        if candidate.status is CandidateStatus.LEVEL_UP:
            self.session.remove_superseded(
                choice.skill_name,
                candidate.specialization,
                choice.granted_level,
                choice.instance_key,
            )
        choice.resolved = True
        self.session.claim(choice.skill_name, candidate.specialization, choice.source)
        self.refresh()

    def _apply_improvement(self, choice: Choice, candidate: SpecializationCandidate) -> None:
        choice.resolved = True
        for sibling in self._improvement_choices:
            if sibling is not choice and not sibling.resolved and sibling.skill_name == choice.skill_name:
                sibling.block(candidate.specialization, "Already chosen for another grant of this skill")
        if self.listener is not None:
            self.listener.improvement_resolved(choice, candidate)

