"""
Build Session - the source grants of one character build.

The session owns the two mutable grant-string lists (background and career)
and the specialization catalog. Everything else (parsed grants, merged
skills, pending choices) is derived from them on every call and never cached,
so a rewrite made while resolving a choice is visible on the next read.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Set, Tuple

from TRAV_constants import SkillSource
from core.catalog import SpecializationCatalog
from core.common import ChoiceStateError
from core.grant import Grant, GrantKind, format_grant, parse_grant, parse_grants
from core.package import BackgroundPackage, CareerPackage
from skill_merger import ResolvedSkill, merge_grants, merge_grants_unfiltered
from choice_detector import Choice, detect_choices


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Claim:
    """A specialization picked during this session for one base skill."""
    base_skill: str
    specialization: str
    source: SkillSource


class BuildSession:
    """Source grants for one build plus the derivation pipeline over them."""

    def __init__(self, catalog: Optional[SpecializationCatalog] = None):
        self.catalog = catalog or SpecializationCatalog.default()
        self.background: Optional[BackgroundPackage] = None
        self.career: Optional[CareerPackage] = None
        self.background_grants: List[str] = []
        self.career_grants: List[str] = []
        self.claims: List[Claim] = []

    # =========================================================================
    # SOURCE PACKAGES
    # =========================================================================

    def set_background(self, package: Optional[BackgroundPackage]) -> None:
        """Replace the background package. Both grant lists start again from their tables."""
        self.background = package
        self._restore_grants()
        logger.info("Background set to %s", package.name if package else None)

    def set_career(self, package: Optional[CareerPackage]) -> None:
        """Replace the career package. Both grant lists start again from their tables."""
        self.career = package
        self._restore_grants()
        logger.info("Career set to %s", package.name if package else None)

    def _restore_grants(self) -> None:
        # Level-up resolutions delete grants from either list: rebuild both, forget every claim
        self.background_grants = list(self.background.skills) if self.background else []
        self.career_grants = list(self.career.skills) if self.career else []
        self.claims = []

    def grants_for(self, source: SkillSource) -> List[str]:
        if source is SkillSource.BACKGROUND:
            return self.background_grants
        if source is SkillSource.CAREER:
            return self.career_grants
        raise ValueError(f"No source grant list for {source.value}")

    # =========================================================================
    # DERIVATION
    # =========================================================================

    def parsed(self) -> Tuple[List[Grant], List[Grant]]:
        cases = list(self.catalog.special_cases)
        return (
            parse_grants(self.background_grants, SkillSource.BACKGROUND, cases),
            parse_grants(self.career_grants, SkillSource.CAREER, cases),
        )

    def merged(self) -> List[ResolvedSkill]:
        """Display skill list: filtered, one entry per skill, sorted."""
        background, career = self.parsed()
        return merge_grants(background, career)

    def unfiltered(self) -> List[ResolvedSkill]:
        background, career = self.parsed()
        return merge_grants_unfiltered(background, career)

    def career_skills(self) -> List[ResolvedSkill]:
        """The career package merged on its own, as listed in the package."""
        _, career = self.parsed()
        return merge_grants(career, [])

    def claim_map(self) -> Dict[str, Set[str]]:
        claimed: Dict[str, Set[str]] = {}
        for claim in self.claims:
            claimed.setdefault(claim.base_skill, set()).add(claim.specialization.lower())
        return claimed

    def detect(self) -> List[Choice]:
        """Pending package choices, in grant order."""
        return detect_choices(self.unfiltered(), self.catalog, self.claim_map())

    # =========================================================================
    # MUTATION
    # =========================================================================

    def _locate(self, instance_key: str) -> Tuple[List[str], int]:
        source_name, _, index_str = instance_key.partition(":")
        try:
            source = SkillSource(source_name)
            index = int(index_str)
            grants = self.grants_for(source)
        except ValueError:
            raise ChoiceStateError(f"Unknown grant instance: {instance_key!r}")
        if not 0 <= index < len(grants):
            raise ChoiceStateError(f"Grant instance {instance_key!r} no longer exists")
        return grants, index

    def grant_text(self, instance_key: str) -> Optional[str]:
        """Current source string for an instance key, or None if it is gone."""
        try:
            grants, index = self._locate(instance_key)
        except ChoiceStateError:
            return None
        return grants[index]

    def rewrite(self, instance_key: str, expected_text: str, specialization: str) -> str:
        """
        Give the grant at instance_key an explicit specialization, keeping its level.

        Raises:
            ChoiceStateError: If the slot no longer holds expected_text
        """
        grants, index = self._locate(instance_key)
        if grants[index] != expected_text:
            raise ChoiceStateError(
                f"Grant {instance_key!r} changed from {expected_text!r} to {grants[index]!r}"
            )
        grant = parse_grant(grants[index], index=index, special_cases=self.catalog.special_cases)
        grants[index] = format_grant(grant.base_skill, specialization, grant.level)
        logger.info("Rewrote %s grant %r as %r", instance_key, expected_text, grants[index])
        return grants[index]

    def generic_partners(self, base_skill: str, keep_key: str) -> List[Tuple[str, str]]:
        """
        (instance_key, text) of the other generic grants of base_skill.

        Generic grants of one base merge into a single entry, so a choice
        made for that entry speaks for all of them.
        """
        partners = []
        for source in (SkillSource.BACKGROUND, SkillSource.CAREER):
            for index, text in enumerate(self.grants_for(source)):
                grant = parse_grant(text, source, index, self.catalog.special_cases)
                if (grant.kind is GrantKind.GENERIC and grant.base_skill == base_skill
                        and grant.instance_key != keep_key):
                    partners.append((grant.instance_key, text))
        return partners

    def remove_superseded(
        self,
        base_skill: str,
        specialization: str,
        level: int,
        keep_key: str,
    ) -> List[str]:
        """
        Delete explicit grants of one specialization below `level`.

        The grant at keep_key is never removed. Returns the removed strings.
        """
        removed = []
        wanted = specialization.lower()
        for source in (SkillSource.BACKGROUND, SkillSource.CAREER):
            grants = self.grants_for(source)
            kept = []
            for index, text in enumerate(grants):
                grant = parse_grant(text, source, index, self.catalog.special_cases)
                superseded = (
                    grant.instance_key != keep_key
                    and grant.kind is GrantKind.EXPLICIT
                    and grant.base_skill == base_skill
                    and grant.specialization.lower() == wanted
                    and grant.level < level
                )
                if superseded:
                    removed.append(text)
                else:
                    kept.append(text)
            grants[:] = kept
        if removed:
            logger.info("Removed superseded grants %s", removed)
        return removed

    def claim(self, base_skill: str, specialization: str, source: SkillSource) -> None:
        self.claims.append(Claim(base_skill, specialization, source))
