"""
Choice Detector - finds grants that still need a specialization picked.

A merged entry needs a choice when its base skill has specializations in the
catalog, its level is 1 or more, and its grant is generic ("Electronics-1")
or ambiguous ("Science (any)-1", "Electronics (comms or computers)-1",
"Profession (any survival)-2").

Every candidate specialization is compared with what the character already
holds for the same base skill:

    not held                     -> new
    held below the granted level -> level-up
    held at or above it          -> blocked

A choice is only raised when at least one candidate is not blocked.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Any

from TRAV_constants import CandidateStatus, SkillSource, LEVEL_MIN
from core.catalog import SpecializationCatalog
from core.grant import GrantKind, capitalize_words
from skill_merger import ResolvedSkill


logger = logging.getLogger(__name__)


@dataclass
class SpecializationCandidate:
    """One option offered by a choice, with its status against current holdings."""
    specialization: str
    status: CandidateStatus
    existing_level: int = 0
    reason: str = ""

    @property
    def selectable(self) -> bool:
        return self.status is not CandidateStatus.BLOCKED

    @property
    def display(self) -> str:
        return capitalize_words(self.specialization)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "specialization": self.specialization,
            "status": self.status.value,
            "existing_level": self.existing_level,
            "reason": self.reason,
        }


@dataclass
class Choice:
    """A pending specialization pick for one grant instance."""
    skill_name: str  # base skill
    current_level: int
    granted_level: int
    candidates: List[SpecializationCandidate] = field(default_factory=list)
    instance_key: str = ""
    resolved: bool = False
    source: SkillSource = SkillSource.BACKGROUND
    grant_text: str = ""

    @property
    def options(self) -> List[SpecializationCandidate]:
        """Candidates that may be selected."""
        return [c for c in self.candidates if c.selectable]

    @property
    def is_improvement(self) -> bool:
        return self.source is SkillSource.IMPROVEMENT

    def find_candidate(self, specialization: str) -> Optional[SpecializationCandidate]:
        lowered = specialization.strip().lower()
        return next(
            (c for c in self.candidates if c.specialization.lower() == lowered),
            None,
        )

    def block(self, specialization: str, reason: str) -> None:
        candidate = self.find_candidate(specialization)
        if candidate is not None and candidate.selectable:
            candidate.status = CandidateStatus.BLOCKED
            candidate.reason = reason

    def to_dict(self) -> Dict[str, Any]:
        return {
            "skill_name": self.skill_name,
            "current_level": self.current_level,
            "granted_level": self.granted_level,
            "candidates": [c.to_dict() for c in self.candidates],
            "instance_key": self.instance_key,
            "resolved": self.resolved,
        }


def holdings_for(skills: List[ResolvedSkill], base_skill: str) -> Dict[str, int]:
    """Specialization (lower case) -> highest level held for one base skill."""
    held: Dict[str, int] = {}
    for skill in skills:
        if skill.base_skill != base_skill or not skill.specialization:
            continue
        if skill.needs_choice:
            continue
        key = skill.specialization.lower()
        held[key] = max(held.get(key, LEVEL_MIN), skill.level)
    return held


def evaluate_candidates(
    options: List[str],
    held: Dict[str, int],
    granted_level: int,
    claimed: Optional[Set[str]] = None,
) -> List[SpecializationCandidate]:
    """Annotate each option as new, level-up or blocked."""
    claimed = claimed or set()
    candidates = []
    for option in options:
        key = option.lower()
        if key in claimed:
            candidates.append(SpecializationCandidate(
                specialization=option,
                status=CandidateStatus.BLOCKED,
                existing_level=held.get(key, 0),
                reason="Already chosen for another grant of this skill",
            ))
        elif key not in held:
            candidates.append(SpecializationCandidate(
                specialization=option,
                status=CandidateStatus.NEW,
                existing_level=0,
                reason=f"Gain at level {granted_level}",
            ))
        elif held[key] >= granted_level:
            candidates.append(SpecializationCandidate(
                specialization=option,
                status=CandidateStatus.BLOCKED,
                existing_level=held[key],
                reason=f"Already held at level {held[key]}",
            ))
        else:
            candidates.append(SpecializationCandidate(
                specialization=option,
                status=CandidateStatus.LEVEL_UP,
                existing_level=held[key],
                reason=f"Raise from {held[key]} to {granted_level}",
            ))
    return candidates


def needs_choice(skill: ResolvedSkill, catalog: SpecializationCatalog) -> bool:
    grant = skill.grant
    if grant is None or skill.level < 1:
        return False
    if not catalog.has_specializations(grant.base_skill):
        return False
    return grant.kind is GrantKind.GENERIC or grant.is_ambiguous


def detect_choices(
    unfiltered: List[ResolvedSkill],
    catalog: SpecializationCatalog,
    claims: Optional[Dict[str, Set[str]]] = None,
) -> List[Choice]:
    """
    Scan the unfiltered merge result for grants that need a specialization.

    Args:
        unfiltered: Output of merge_grants_unfiltered, in processing order
        catalog: Specialization catalog
        claims: Base skill -> specializations already chosen this session

    Returns:
        One Choice per grant instance, in the order the grants were merged
    """
    claims = claims or {}
    choices = []

    for skill in unfiltered:
        if not needs_choice(skill, catalog):
            continue
        grant = skill.grant
        held = holdings_for(unfiltered, grant.base_skill)
        candidates = evaluate_candidates(
            catalog.candidates_for(grant),
            held,
            skill.level,
            claims.get(grant.base_skill),
        )
        if not any(c.selectable for c in candidates):
            logger.debug("All options of %s already covered, nothing to choose", grant.original)
            continue

        choices.append(Choice(
            skill_name=grant.base_skill,
            current_level=max(held.values(), default=0),
            granted_level=skill.level,
            candidates=candidates,
            instance_key=grant.instance_key,
            source=grant.source,
            grant_text=grant.original,
        ))

    return choices
