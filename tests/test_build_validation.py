import random
import sys
from pathlib import Path

import pytest

ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from TRAV_constants import CareerOption, Benefit
from package_builder import PackageBuilder
from validation import BuildValidator, ValidationResult


@pytest.fixture(scope="module")
def validator():
    return BuildValidator(data_dir=str(ROOT_DIR / "data"))


def _complete_builder_with_defaults() -> PackageBuilder:
    builder = PackageBuilder(name="Test Traveller", rng=random.Random(5))
    builder.load_game_data(str(ROOT_DIR / "data"))

    builder.set_characteristics({
        "STR": 8,
        "DEX": 9,
        "END": 7,
        "INT": 8,
        "EDU": 6,
        "SOC": 4,
    })

    builder.select_background("space_habitat")
    builder.select_career("spacer_crew")

    # Resolve any pending choices deterministically (pick the first options)
    while builder.current_choice():
        choice = builder.current_choice()
        builder.resolve_choice(choice.options[0].specialization)

    builder.roll_age()
    builder.begin_finalization()
    builder.select_career_option(CareerOption.LEAVE_AT_RANK_FOUR)
    builder.advance()
    for choice in builder.select_skill_pair("Vacc Suit and Steward"):
        builder.resolve_choice(choice.options[0].specialization)
    builder.select_benefit(Benefit.SOC_PLUS_ONE)
    builder.advance()
    return builder


def test_builder_produces_valid_character(validator: BuildValidator):
    builder = _complete_builder_with_defaults()
    assert builder.is_complete(), "Builder should report completion after steps resolved"

    assert validator.validate_build(builder).valid

    char = builder.get_character()
    assert char.characteristics["SOC"].total == char.characteristics["SOC"].base + \
        char.characteristics["SOC"].modifier + 1
    assert char.rank == "Rank 4"

    result = validator.validate_character(char.to_dict())
    assert result.valid, f"Validation failed: {result.errors}"


def test_incomplete_build_is_invalid(validator: BuildValidator):
    builder = PackageBuilder()
    result = validator.validate_build(builder)
    assert not result.valid
    joined = " ".join(result.errors)
    assert "background" in joined
    assert "career" in joined
    assert "Age" in joined


def test_validator_flags_missing_fields(validator: BuildValidator):
    result = validator.validate_character({})
    assert not result.valid
    missing = {"background", "career", "age", "rank"}
    assert missing.issubset({err.split(":")[-1].strip() for err in result.errors})


def test_validator_flags_unknown_packages(validator: BuildValidator):
    result = validator.validate_character({
        "background": "Atlantis",
        "career": "Scout",
        "age": 30,
        "rank": "Rank 1",
        "characteristics": {},
    })
    assert not result.valid
    assert any("Atlantis" in err for err in result.errors)


def test_base_characteristic_rules(validator: BuildValidator):
    good = {"STR": 7, "DEX": 7, "END": 7, "INT": 7, "EDU": 7, "SOC": 7}
    assert validator.validate_base_characteristics(good).valid

    assert not validator.validate_base_characteristics(dict(good, STR=13, SOC=1)).valid
    assert not validator.validate_base_characteristics(dict(good, STR=8)).valid

    short = validator.validate_base_characteristics(dict(good, STR=6))
    assert short.valid
    assert short.warnings

    missing = dict(good)
    del missing["SOC"]
    assert not validator.validate_base_characteristics(missing).valid


def test_final_characteristic_range(validator: BuildValidator):
    assert validator.validate_final_characteristics({"STR": 1, "SOC": 15}).valid
    assert not validator.validate_final_characteristics({"STR": 0}).valid
    assert not validator.validate_final_characteristics({"SOC": 16}).valid


def test_skill_list_rules(validator: BuildValidator):
    assert validator.validate_skill_list([
        {"name": "Electronics", "level": 0},
        {"name": "Electronics (Comms)", "level": 0},
    ]).valid

    generic = validator.validate_skill_list([
        {"name": "Electronics", "level": 0},
        {"name": "Electronics (Comms)", "level": 1},
    ])
    assert not generic.valid

    assert not validator.validate_skill_list([
        {"name": "Admin", "level": 1},
        {"name": "Admin", "level": 2},
    ]).valid
    assert not validator.validate_skill_list([{"name": "Admin", "level": 5}]).valid


def test_result_merge():
    first = ValidationResult(valid=True)
    first.add_warning("careful")
    second = ValidationResult(valid=True)
    second.add_error("broken")
    first.merge(second)
    assert not first
    assert first.errors == ["broken"]
    assert first.warnings == ["careful"]


if __name__ == "__main__":
    pytest.main([__file__])
