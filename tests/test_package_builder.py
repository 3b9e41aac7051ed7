import json
import random
import sys
from pathlib import Path

import pytest

ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from TRAV_constants import CareerOption, Benefit, FinalizationStep
from core import StepTransitionError
from package_builder import PackageBuilder
from validation import BuildValidator
from character_sheet import render_summary
from character_model import dump_final_character, load_final_character
from interactive_builder import show_saved_character


@pytest.fixture(scope="module")
def tables():
    builder = PackageBuilder()
    builder.load_game_data(str(ROOT_DIR / "data"))
    return builder.backgrounds, builder.careers


def _builder(tables, **kwargs):
    backgrounds, careers = tables
    return PackageBuilder(backgrounds=backgrounds, careers=careers, **kwargs)


def _resolve_all(builder):
    while builder.current_choice():
        choice = builder.current_choice()
        builder.resolve_choice(choice.options[0].specialization)


def test_game_data_loads(tables):
    backgrounds, careers = tables
    assert len(backgrounds) == 8
    assert len(careers) == 17
    assert "belter" in backgrounds
    assert "scout" in careers


def test_characteristic_point_pool(tables):
    builder = _builder(tables)
    assert builder.point_pool == 0
    with pytest.raises(ValueError):
        builder.increment_characteristic("STR")

    builder.decrement_characteristic("SOC")
    assert builder.point_pool == 1
    builder.increment_characteristic("str")
    assert builder.characteristics["STR"] == 8
    assert builder.point_pool == 0


def test_set_characteristics_rules(tables):
    builder = _builder(tables)
    builder.set_characteristics({"STR": 12, "DEX": 10, "END": 8, "INT": 6, "EDU": 4, "SOC": 2})
    assert builder.point_pool == 0

    with pytest.raises(ValueError):
        builder.set_characteristics({"STR": 13})
    with pytest.raises(ValueError):
        builder.set_characteristics({"STR": 1})
    with pytest.raises(ValueError):
        builder.set_characteristics({"STR": 12, "DEX": 12, "END": 12, "INT": 12})
    with pytest.raises(ValueError):
        builder.set_characteristics({"LUCK": 7})


def test_background_modifiers_apply_to_final_characteristics(tables):
    builder = _builder(tables)
    builder.select_background("belter")
    final = builder.final_characteristics()
    assert final["STR"].total == 6
    assert final["DEX"].total == 8
    assert final["EDU"].total == 6
    assert final["INT"].total == 7
    assert final["DEX"].modifier == 1


def test_unknown_package_raises(tables):
    builder = _builder(tables)
    with pytest.raises(ValueError):
        builder.select_background("atlantis")
    with pytest.raises(ValueError):
        builder.select_career("astronaut")


def test_full_build(tables):
    builder = _builder(tables, name="Kaya Trent", rng=random.Random(1))
    builder.select_background("belter")
    builder.select_career("scout")

    assert builder.current_choice().skill_name == "Engineer"
    _resolve_all(builder)
    assert not builder.pending_choices()

    age = builder.roll_age()
    assert 25 <= age <= 40
    assert len(builder.age_rolls) == 3

    builder.begin_finalization()
    builder.select_career_option(CareerOption.LEAVE_AT_RANK_FOUR)
    builder.advance()
    assert builder.select_skill_pair("Survival and Navigation") == []
    builder.select_benefit(Benefit.CASH)
    builder.advance()
    assert builder.is_complete()

    character = builder.get_character()
    assert character.rank == "Rank 4"
    assert character.credits == 2500 + 25000 + 100000
    assert character.background == "Belter"
    assert character.career == "Scout"
    assert character.skill_level("Survival") == 1
    assert character.skill_level("Electronics (Computers)") == 1
    assert character.skill_level("Electronics") is None
    assert character.skill_level("Engineer (M-Drive)") == 1
    assert character.finalization["career_option"] == 3

    validator = BuildValidator(data_dir=str(ROOT_DIR / "data"))
    result = validator.validate_character(character.to_dict())
    assert result.valid, result.errors

    summary = render_summary(character)
    assert "Kaya Trent" in summary
    assert "Survival-1" in summary


def test_get_character_requires_completion(tables):
    builder = _builder(tables)
    builder.select_background("belter")
    builder.select_career("scout")
    with pytest.raises(ValueError):
        builder.get_character()


def test_finalization_requires_age(tables):
    builder = _builder(tables)
    builder.select_background("belter")
    builder.select_career("scout")
    _resolve_all(builder)
    with pytest.raises(StepTransitionError):
        builder.begin_finalization()


def test_changing_career_resets_finalization(tables):
    builder = _builder(tables, rng=random.Random(3))
    builder.select_background("colonist")
    builder.select_career("scout")
    _resolve_all(builder)
    builder.roll_age()
    builder.begin_finalization()
    builder.select_career_option(CareerOption.LEAVE_AT_RANK_FOUR)

    builder.select_career("marine")
    assert builder.stepper.step is FinalizationStep.REVIEW
    assert builder.stepper.option is None
    assert builder.rank != "Rank 4"


def test_every_package_pair_resolves_cleanly(tables):
    backgrounds, careers = tables
    validator = BuildValidator()
    for bg_id in backgrounds:
        for career_id in careers:
            builder = _builder(tables)
            builder.select_background(bg_id)
            builder.select_career(career_id)
            _resolve_all(builder)
            result = validator.validate_skill_list(builder.get_skills())
            assert result.valid, f"{bg_id} + {career_id}: {result.errors}"


def test_summary_lists_pending_choices(tables):
    builder = _builder(tables)
    builder.select_background("belter")
    builder.select_career("scout")
    summary = builder.get_summary()
    assert "Pending Choices: 1" in summary
    assert "Engineer" in summary


def test_saved_character_loads_back(tables, tmp_path, capsys):
    builder = _builder(tables, name="Ash Morrow", rng=random.Random(2))
    builder.select_background("belter")
    builder.select_career("scout")
    _resolve_all(builder)
    builder.roll_age()
    builder.begin_finalization()
    builder.select_career_option(CareerOption.LEAVE_AT_RANK_FOUR)
    builder.advance()
    builder.select_skill_pair("Survival and Navigation")
    builder.select_benefit(Benefit.SOC_PLUS_ONE)
    builder.advance()
    character = builder.get_character()

    path = tmp_path / "ash.json"
    path.write_text(json.dumps(dump_final_character(character)), encoding="utf-8")
    loaded = load_final_character(json.loads(path.read_text(encoding="utf-8")))

    assert loaded.name == "Ash Morrow"
    assert loaded.skills == character.skills
    assert loaded.characteristic("SOC") == character.characteristic("SOC")
    assert loaded.finalization["benefit"] == "SOC+1"

    show_saved_character(str(path))
    assert "Ash Morrow" in capsys.readouterr().out


if __name__ == "__main__":
    pytest.main([__file__])
