import sys
from pathlib import Path

import pytest

ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from TRAV_constants import (
    CandidateStatus,
    CareerOption,
    Benefit,
    FinalizationStep,
    ImprovementPhase,
)
from core import BackgroundPackage, CareerPackage, StepTransitionError
from build_session import BuildSession
from finalization import FinalizationStepper


CAREER_SKILLS = ["Admin-1", "Broker-1", "Carouse-0", "Diplomat-0", "Advocate-2"]


def _stepper(bg_skills=None, career_skills=None, begin=True):
    session = BuildSession()
    session.set_background(BackgroundPackage(
        id="bg", name="Test Background", skills=bg_skills or ["Streetwise-1"],
    ))
    session.set_career(CareerPackage(
        id="cr", name="Test Career",
        skills=career_skills or list(CAREER_SKILLS),
        benefits=["Rank 2 (manager)", "Cr1000"],
    ))
    stepper = FinalizationStepper(session)
    if begin:
        stepper.begin()
    return stepper


def _final(stepper):
    return {s["name"]: s["level"] for s in stepper.final_skills()}


def _to_skill_pair(stepper, option=CareerOption.LEAVE_AT_RANK_FOUR):
    stepper.select_career_option(option)
    stepper.advance()


def test_begin_requires_resolved_choices():
    stepper = _stepper(career_skills=["Electronics (any)-1"], begin=False)
    with pytest.raises(StepTransitionError):
        stepper.begin()
    stepper.sequencer.resolve("comms")
    stepper.begin()
    assert stepper.step is FinalizationStep.CAREER_OPTION


def test_option_one_raises_skill_to_four():
    stepper = _stepper()
    stepper.select_career_option(CareerOption.RAISE_TO_FOUR)
    stepper.advance()
    assert stepper.phase is ImprovementPhase.OPTION
    assert [name for name, _ in stepper.option_one_candidates()] == ["Admin", "Advocate", "Broker"]

    stepper.select_option_one_skill("Advocate")
    assert stepper.ledger == {"Advocate": 2}
    assert _final(stepper)["Advocate"] == 4


def test_reselecting_option_one_skill_replaces_ledger():
    stepper = _stepper()
    _to_skill_pair(stepper, CareerOption.RAISE_TO_FOUR)
    stepper.select_option_one_skill("Admin")
    stepper.select_option_one_skill("Broker")
    assert stepper.ledger == {"Broker": 3}
    assert _final(stepper)["Admin"] == 1


def test_changing_option_discards_abandoned_improvement():
    stepper = _stepper()
    _to_skill_pair(stepper, CareerOption.RAISE_TO_FOUR)
    stepper.select_option_one_skill("Admin")
    assert _final(stepper)["Admin"] == 4

    stepper.select_career_option(CareerOption.THREE_PLUS_ONE)
    assert stepper.step is FinalizationStep.CAREER_OPTION
    assert stepper.ledger == {}
    stepper.advance()
    stepper.select_option_two_skills(["Broker", "Carouse", "Diplomat"])

    final = _final(stepper)
    assert final["Admin"] == 1
    assert final["Broker"] == 2
    assert final["Carouse"] == 1
    assert final["Diplomat"] == 1


def test_option_two_rules():
    stepper = _stepper()
    _to_skill_pair(stepper, CareerOption.THREE_PLUS_ONE)
    eligible = {name: ok for name, _, ok in stepper.option_two_candidates()}
    assert eligible["Advocate"] is False
    assert eligible["Admin"] is True

    with pytest.raises(ValueError):
        stepper.select_option_two_skills(["Advocate"])
    with pytest.raises(ValueError):
        stepper.select_option_two_skills(["Admin", "Admin"])
    with pytest.raises(ValueError):
        stepper.select_option_two_skills(["Admin", "Broker", "Carouse", "Diplomat"])

    stepper.toggle_option_two_skill("Admin")
    stepper.toggle_option_two_skill("Broker")
    with pytest.raises(StepTransitionError):
        stepper.advance()
    stepper.toggle_option_two_skill("Admin")
    assert stepper.option_two_skills == ["Broker"]
    assert stepper.ledger == {"Broker": 1}


def test_option_three_pair_with_specialization_queues_choice():
    stepper = _stepper(bg_skills=["Streetwise-1"], career_skills=["Admin-1"])
    _to_skill_pair(stepper)
    assert stepper.phase is ImprovementPhase.SKILL_PAIR
    assert stepper.rank == "Rank 4"

    choices = stepper.select_skill_pair("Gunner (any) and Mechanic")

    assert len(choices) == 1
    gunner = choices[0]
    assert gunner.skill_name == "Gunner"
    assert gunner.is_improvement
    assert len(gunner.candidates) == 4
    assert all(c.status is CandidateStatus.NEW for c in gunner.candidates)
    assert stepper.ledger == {"Mechanic": 1}
    assert stepper.sequencer.current() is gunner
    assert stepper.step is FinalizationStep.SKILL_IMPROVEMENT

    stepper.sequencer.resolve("turret")

    assert stepper.step is FinalizationStep.BENEFITS
    assert stepper.ledger == {"Mechanic": 1, "Gunner (Turret)": 1}
    assert _final(stepper) == {
        "Admin": 1, "Gunner (Turret)": 1, "Mechanic": 1, "Streetwise": 1,
    }


def test_pair_half_already_held_has_no_effect():
    stepper = _stepper(bg_skills=["Mechanic-1"], career_skills=["Admin-1"])
    _to_skill_pair(stepper)
    assert stepper.pair_no_effect("Gunner (any) and Mechanic") == ["Mechanic"]
    stepper.select_skill_pair("Gunner (any) and Mechanic")
    assert "Mechanic" not in stepper.ledger


def test_pair_without_specializations_moves_to_benefits():
    stepper = _stepper()
    _to_skill_pair(stepper)
    choices = stepper.select_skill_pair("Survival and Navigation")
    assert choices == []
    assert stepper.step is FinalizationStep.BENEFITS
    assert stepper.ledger == {"Survival": 1, "Navigation": 1}


def test_pair_specialization_already_held_is_blocked():
    stepper = _stepper(bg_skills=["Gunner (turret)-1"], career_skills=["Admin-1"])
    _to_skill_pair(stepper)
    gunner = stepper.select_skill_pair("Gunner (any) and Mechanic")[0]
    assert gunner.find_candidate("turret").status is CandidateStatus.BLOCKED


def test_pair_builds_on_option_two_improvements():
    stepper = _stepper(career_skills=["Admin-0", "Broker-0", "Carouse-0"])
    _to_skill_pair(stepper, CareerOption.THREE_PLUS_ONE)
    stepper.select_option_two_skills(["Admin", "Broker", "Carouse"])
    stepper.advance()
    stepper.select_skill_pair("Broker and Admin")
    assert stepper.ledger == {"Admin": 1, "Broker": 1, "Carouse": 1}


def test_soc_benefit_sets_bonus_once():
    stepper = _stepper()
    _to_skill_pair(stepper)
    stepper.select_skill_pair("Survival and Navigation")

    stepper.select_benefit(Benefit.SOC_PLUS_ONE)
    assert stepper.characteristic_bonus == {"SOC": 1}
    stepper.select_benefit(Benefit.SOC_PLUS_ONE)
    assert stepper.characteristic_bonus == {"SOC": 1}
    stepper.select_benefit(Benefit.CASH)
    assert stepper.characteristic_bonus == {}


def test_going_back_to_career_option_clears_downstream():
    stepper = _stepper()
    _to_skill_pair(stepper)
    stepper.select_skill_pair("Survival and Navigation")
    stepper.select_benefit(Benefit.SOC_PLUS_ONE)

    stepper.go_back()
    assert stepper.step is FinalizationStep.SKILL_IMPROVEMENT
    assert stepper.benefit is None
    stepper.go_back()

    assert stepper.step is FinalizationStep.CAREER_OPTION
    assert stepper.ledger == {}
    assert stepper.characteristic_bonus == {}
    assert stepper.skill_pair is None
    assert _final(stepper)["Admin"] == 1


def test_going_back_from_pair_keeps_option_selection():
    stepper = _stepper()
    _to_skill_pair(stepper, CareerOption.RAISE_TO_FOUR)
    stepper.select_option_one_skill("Admin")
    stepper.advance()
    stepper.select_skill_pair("Survival and Navigation")
    stepper.go_back()
    stepper.go_back()
    assert stepper.phase is ImprovementPhase.OPTION
    assert stepper.option_one_skill == "Admin"
    assert stepper.ledger == {"Admin": 3}


def test_complete_is_terminal():
    stepper = _stepper()
    with pytest.raises(StepTransitionError):
        stepper.advance()
    _to_skill_pair(stepper)
    stepper.select_skill_pair("Survival and Navigation")
    with pytest.raises(StepTransitionError):
        stepper.advance()
    stepper.select_benefit(Benefit.TAS_MEMBERSHIP)
    stepper.advance()
    assert stepper.is_complete
    with pytest.raises(StepTransitionError):
        stepper.go_back()
    with pytest.raises(StepTransitionError):
        stepper.select_benefit(Benefit.CASH)


def test_rank_follows_career_unless_leaving_at_four():
    stepper = _stepper()
    assert stepper.rank == "Rank 2"
    stepper.select_career_option(CareerOption.LEAVE_AT_RANK_FOUR)
    assert stepper.rank == "Rank 4"
    stepper.select_career_option(CareerOption.THREE_PLUS_ONE)
    assert stepper.rank == "Rank 2"


def test_generic_skill_behind_a_specialization_cannot_be_improved():
    stepper = _stepper(
        bg_skills=["Electronics (comms)-1"],
        career_skills=["Electronics-0", "Admin-0", "Broker-0", "Carouse-0"],
    )
    _to_skill_pair(stepper, CareerOption.THREE_PLUS_ONE)
    eligible = {name: ok for name, _, ok in stepper.option_two_candidates()}
    assert eligible["Electronics"] is False
    with pytest.raises(ValueError):
        stepper.select_option_two_skills(["Electronics", "Admin", "Broker"])

    stepper.select_option_two_skills(["Admin", "Broker", "Carouse"])
    final = _final(stepper)
    assert final["Electronics (Comms)"] == 1
    assert sum(stepper.ledger.values()) == 3
    assert all(name in final for name in stepper.ledger)


def test_option_one_skips_generic_skill_behind_a_specialization():
    stepper = _stepper(bg_skills=["Admin (paperwork)-1"], career_skills=["Admin-1", "Broker-1"])
    _to_skill_pair(stepper, CareerOption.RAISE_TO_FOUR)
    assert [name for name, _ in stepper.option_one_candidates()] == ["Broker"]
    with pytest.raises(ValueError):
        stepper.select_option_one_skill("Admin")


if __name__ == "__main__":
    pytest.main([__file__])
