"""
Skill Merger - combines background and career grants into one skill list.

Background grants are taken as-is; career grants are folded in one by one:

1. A career grant whose base skill is new is appended.
2. A grant with exactly the same specialization (or the same lack of one)
   as an existing entry raises that entry to the higher of the two levels,
   unless either side still needs a specialization choice.
3. Any other career grant becomes its own entry. Grants that still need a
   choice ("Science (any)-1") are never merged, so that every instance
   reaches the choice detector.

The display list then drops a generic entry ("Electronics") whenever a
specialized sibling ("Electronics (Computers)") is held at level 1 or more.
The unfiltered list keeps everything for choice detection.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Iterable, Any, Tuple

from TRAV_constants import SkillSource, clamp_level, LEVEL_MIN
from core.grant import Grant, display_name, parse_grants


logger = logging.getLogger(__name__)


@dataclass
class ResolvedSkill:
    """One merged skill entry, keyed by (base skill, specialization)."""
    base_skill: str
    specialization: Optional[str]
    level: int
    source: SkillSource
    grant: Optional[Grant] = None  # grant supplying the current level

    @property
    def name(self) -> str:
        return display_name(self.base_skill, self.specialization)

    @property
    def key(self) -> Tuple[str, Optional[str]]:
        spec = self.specialization.lower() if self.specialization else None
        return (self.base_skill, spec)

    @property
    def needs_choice(self) -> bool:
        return self.grant is not None and self.grant.is_ambiguous

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "level": self.level, "source": self.source.value}


def _entry_from(grant: Grant) -> ResolvedSkill:
    return ResolvedSkill(
        base_skill=grant.base_skill,
        specialization=grant.specialization,
        level=clamp_level(grant.level),
        source=grant.source,
        grant=grant,
    )


def _same_specialization(a: Optional[str], b: Optional[str]) -> bool:
    if a is None or b is None:
        return a is b
    return a.lower() == b.lower()


def merge_grants_unfiltered(
    background: Iterable[Grant],
    career: Iterable[Grant],
) -> List[ResolvedSkill]:
    """
    Merge grants without the generic-suppression filter.

    Entries come out in processing order: background first, then career,
    each in input order. This is the list the choice detector works on.
    """
    entries: List[ResolvedSkill] = [_entry_from(g) for g in background]

    for grant in career:
        siblings = [e for e in entries if e.base_skill == grant.base_skill]
        if not siblings:
            entries.append(_entry_from(grant))
            continue

        exact = None
        if not grant.is_ambiguous:
            exact = next(
                (e for e in siblings
                 if not e.needs_choice
                 and _same_specialization(e.specialization, grant.specialization)),
                None,
            )

        if exact is not None:
            if grant.level > exact.level:
                exact.grant = grant
            exact.level = clamp_level(max(exact.level, grant.level))
            exact.source = SkillSource.COMBINED
            logger.debug("Merged %s into %s (level %d)", grant.original, exact.name, exact.level)
        else:
            entries.append(_entry_from(grant))

    return entries


def suppress_generic(entries: List[ResolvedSkill]) -> List[ResolvedSkill]:
    """Drop generic entries that have a specialized sibling at level 1 or higher."""
    specialized_bases = {
        e.base_skill for e in entries
        if e.specialization and e.level >= 1
    }
    return [
        e for e in entries
        if e.specialization or e.base_skill not in specialized_bases
    ]


def _fold_duplicates(entries: List[ResolvedSkill]) -> List[ResolvedSkill]:
    # Unresolved placeholders display under the bare base name; keep one per key
    folded: Dict[Tuple[str, Optional[str]], ResolvedSkill] = {}
    for entry in entries:
        existing = folded.get(entry.key)
        if existing is None:
            folded[entry.key] = ResolvedSkill(
                base_skill=entry.base_skill,
                specialization=entry.specialization,
                level=entry.level,
                source=entry.source,
                grant=entry.grant,
            )
            continue
        existing.level = clamp_level(max(existing.level, entry.level))
        if existing.source is not entry.source:
            existing.source = SkillSource.COMBINED
    return list(folded.values())


def merge_grants(
    background: Iterable[Grant],
    career: Iterable[Grant],
) -> List[ResolvedSkill]:
    """Merge grants for display: filtered, one entry per skill, sorted by name."""
    entries = suppress_generic(merge_grants_unfiltered(background, career))
    entries = _fold_duplicates(entries)
    return sorted(entries, key=lambda e: e.name)


def merge_skill_strings(
    background: Iterable[str],
    career: Iterable[str],
    unfiltered: bool = False,
) -> List[ResolvedSkill]:
    """Parse and merge two lists of grant strings in one call."""
    bg = parse_grants(background, SkillSource.BACKGROUND)
    cr = parse_grants(career, SkillSource.CAREER)
    if unfiltered:
        return merge_grants_unfiltered(bg, cr)
    return merge_grants(bg, cr)


def find_skill(skills: List[ResolvedSkill], name: str) -> Optional[ResolvedSkill]:
    """Find an entry by display name (case-insensitive)."""
    lowered = name.lower()
    return next((s for s in skills if s.name.lower() == lowered), None)


def skill_level(skills: List[ResolvedSkill], name: str, default: int = LEVEL_MIN) -> int:
    found = find_skill(skills, name)
    return found.level if found else default
