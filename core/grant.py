"""
Grant parser - turns terse package skill grants into structured grants.

A grant string looks like "Electronics (computers)-1": a base skill name, an
optional trailing parenthesised group, and a level after the last hyphen.
The parenthesised group is classified once, here, into one of:

- EXPLICIT      "Electronics (computers)-1"            specialization known
- PLACEHOLDER   "Science (any)-1", "Language (any suitable)-1"
- OR_LIST       "Electronics (comms or computers)-1"   options in the string
- SPECIAL_CASE  "Profession (any survival)-2", "Language (local dialect)-2"
- GENERIC       "Mechanic-1"                           no parentheses

Only EXPLICIT grants carry a specialization. Everything else is left for the
choice detector to decide whether the player has to pick one.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Tuple

from TRAV_constants import SkillSource, SPECIAL_CASE_OPTIONS
from .common import GrantParseError


_TRAILING_GROUP = re.compile(r"\(([^)]+)\)\s*$")
_WORD_START = re.compile(r"(^|[\s-])([a-z])")


class GrantKind(Enum):
    GENERIC = "generic"
    EXPLICIT = "explicit"
    PLACEHOLDER = "placeholder"
    OR_LIST = "or_list"
    SPECIAL_CASE = "special_case"


# Kinds that stand for "one specialization, not yet chosen"
AMBIGUOUS_KINDS = frozenset({GrantKind.PLACEHOLDER, GrantKind.OR_LIST, GrantKind.SPECIAL_CASE})


def capitalize_words(text: str) -> str:
    """Capitalize the first letter of every space- or hyphen-separated word.

    The rest of each word is left alone, so "life support" becomes
    "Life Support" and "Jack-of-All-Trades" becomes "Jack-Of-All-Trades".
    """
    return _WORD_START.sub(lambda m: m.group(1) + m.group(2).upper(), text.strip())


def display_name(base_skill: str, specialization: Optional[str] = None) -> str:
    """'Base' or 'Base (Specialization)'."""
    if specialization:
        return f"{base_skill} ({capitalize_words(specialization)})"
    return base_skill


def split_display_name(name: str) -> Tuple[str, Optional[str]]:
    """Inverse of display_name: 'Melee (Unarmed)' -> ('Melee', 'Unarmed')."""
    match = _TRAILING_GROUP.search(name)
    if not match:
        return name.strip(), None
    return name[:match.start()].strip(), match.group(1).strip()


def format_grant(base_skill: str, specialization: Optional[str], level: int) -> str:
    """Build a grant string back from its parts."""
    return f"{display_name(base_skill, specialization)}-{level}"


@dataclass(frozen=True)
class Grant:
    """A parsed skill grant. Derived fresh from its source string on every pass."""
    base_skill: str
    specialization: Optional[str]
    level: int
    source: SkillSource = SkillSource.BACKGROUND
    kind: GrantKind = GrantKind.GENERIC
    placeholder: str = ""           # raw parenthesised text for non-explicit kinds
    options: Tuple[str, ...] = ()   # options spelled out by an or-list
    original: str = ""
    index: int = -1                 # position in its source list

    @property
    def display_name(self) -> str:
        return display_name(self.base_skill, self.specialization)

    @property
    def is_ambiguous(self) -> bool:
        return self.kind in AMBIGUOUS_KINDS

    @property
    def instance_key(self) -> str:
        return f"{self.source.value}:{self.index}"


def parse_grant(
    text: str,
    source: SkillSource = SkillSource.BACKGROUND,
    index: int = -1,
    special_cases: Iterable[str] = SPECIAL_CASE_OPTIONS,
) -> Grant:
    """
    Parse a grant string such as "Gun Combat (slug)-1".

    Args:
        text: The grant string from a package table
        source: Which package list the grant came from
        index: Position of the grant in that list (used for instance keys)
        special_cases: Placeholder texts that carry their own option lists

    Raises:
        GrantParseError: If the string has no numeric level or no skill name
    """
    skill_part, sep, level_str = text.rpartition("-")
    level_str = level_str.strip()
    if not sep or not level_str.isdigit():
        raise GrantParseError(f"Malformed skill grant (no numeric level): {text!r}")

    paren = skill_part.find("(")
    base = skill_part[:paren] if paren >= 0 else skill_part
    base = capitalize_words(base)
    if not base:
        raise GrantParseError(f"Malformed skill grant (no skill name): {text!r}")

    kind = GrantKind.GENERIC
    specialization = None
    placeholder = ""
    options: Tuple[str, ...] = ()

    match = _TRAILING_GROUP.search(skill_part)
    if match:
        inner = match.group(1).strip()
        lowered = inner.lower()
        if lowered in {case.lower() for case in special_cases}:
            kind = GrantKind.SPECIAL_CASE
            placeholder = lowered
        elif " or " in lowered:
            kind = GrantKind.OR_LIST
            placeholder = lowered
            options = tuple(opt.strip() for opt in lowered.split(" or ") if opt.strip())
        elif "any" in lowered:
            kind = GrantKind.PLACEHOLDER
            placeholder = lowered
        else:
            kind = GrantKind.EXPLICIT
            specialization = capitalize_words(inner)

    return Grant(
        base_skill=base,
        specialization=specialization,
        level=int(level_str),
        source=source,
        kind=kind,
        placeholder=placeholder,
        options=options,
        original=text,
        index=index,
    )


def parse_grants(
    grants: Iterable[str],
    source: SkillSource,
    special_cases: Iterable[str] = SPECIAL_CASE_OPTIONS,
) -> list:
    """Parse a whole package list, keeping each grant's position."""
    cases = list(special_cases)
    return [parse_grant(text, source, i, cases) for i, text in enumerate(grants)]
