"""
Traveller Core - Package data classes, grant parsing and the specialization catalog.

Usage:
    from core import parse_grant, Grant, GrantKind, SpecializationCatalog
    from core import BackgroundPackage, CareerPackage
    from core import load_all_background_packages, load_all_career_packages
"""

from .common import (
    CharacteristicModifier,
    GrantParseError,
    ChoiceStateError,
    StepTransitionError,
)
from .grant import (
    Grant,
    GrantKind,
    AMBIGUOUS_KINDS,
    parse_grant,
    parse_grants,
    format_grant,
    display_name,
    split_display_name,
    capitalize_words,
)
from .catalog import SpecializationCatalog, load_catalog
from .package import (
    BackgroundPackage,
    CareerPackage,
    load_background_package,
    load_all_background_packages,
    load_career_package,
    load_all_career_packages,
)

__all__ = [
    # Common
    "CharacteristicModifier",
    "GrantParseError",
    "ChoiceStateError",
    "StepTransitionError",
    # Grant
    "Grant",
    "GrantKind",
    "AMBIGUOUS_KINDS",
    "parse_grant",
    "parse_grants",
    "format_grant",
    "display_name",
    "split_display_name",
    "capitalize_words",
    # Catalog
    "SpecializationCatalog",
    "load_catalog",
    # Packages
    "BackgroundPackage",
    "CareerPackage",
    "load_background_package",
    "load_all_background_packages",
    "load_career_package",
    "load_all_career_packages",
]
