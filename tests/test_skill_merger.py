import sys
from pathlib import Path

import pytest

ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from TRAV_constants import SkillSource, LEVEL_MIN, LEVEL_MAX
from core import load_all_background_packages, load_all_career_packages
from skill_merger import merge_skill_strings, find_skill, skill_level


def _levels(skills):
    return {s.name: s.level for s in skills}


@pytest.fixture(scope="module")
def packages():
    backgrounds = load_all_background_packages(str(ROOT_DIR / "data" / "backgrounds"))
    careers = load_all_career_packages(str(ROOT_DIR / "data" / "careers"))
    return backgrounds, careers


def test_plain_grants_merge_without_choices():
    skills = merge_skill_strings(
        ["Profession (belter)-2", "Jack-of-All-Trades-1"],
        ["Admin-1"],
    )
    assert _levels(skills) == {
        "Admin": 1,
        "Jack-Of-All-Trades": 1,
        "Profession (Belter)": 2,
    }
    assert [s.name for s in skills] == sorted(s.name for s in skills)


def test_merge_is_idempotent():
    bg = ["Vacc Suit-1", "Electronics-0", "Science (any)-1"]
    career = ["Vacc Suit-2", "Electronics (comms)-1", "Science (physics)-1"]
    first = merge_skill_strings(bg, career)
    second = merge_skill_strings(bg, career)
    assert first == second


def test_same_skill_takes_the_higher_level():
    skills = merge_skill_strings(["Vacc Suit-1"], ["Vacc Suit-2"])
    assert len(skills) == 1
    assert skills[0].level == 2
    assert skills[0].source is SkillSource.COMBINED


def test_same_specialization_any_case_merges():
    skills = merge_skill_strings(["Pilot (small craft)-1"], ["Pilot (Small Craft)-1"])
    assert _levels(skills) == {"Pilot (Small Craft)": 1}


def test_career_specialization_keeps_its_own_slot():
    skills = merge_skill_strings(["Melee (blade)-1"], ["Melee (unarmed)-1"], unfiltered=True)
    assert _levels(skills) == {"Melee (Blade)": 1, "Melee (Unarmed)": 1}


def test_generic_suppressed_by_specialized_sibling():
    bg = ["Electronics-0"]
    career = ["Electronics (computers)-1"]
    assert _levels(merge_skill_strings(bg, career)) == {"Electronics (Computers)": 1}
    unfiltered = merge_skill_strings(bg, career, unfiltered=True)
    assert find_skill(unfiltered, "Electronics") is not None


def test_generic_kept_when_specialization_is_level_zero():
    skills = merge_skill_strings(["Electronics-0"], ["Electronics (comms)-0"])
    assert _levels(skills) == {"Electronics": 0, "Electronics (Comms)": 0}


def test_ambiguous_grants_never_merge():
    unfiltered = merge_skill_strings(["Science (any)-1"], ["Science (any)-2"], unfiltered=True)
    assert len(unfiltered) == 2
    assert all(s.needs_choice for s in unfiltered)

    # The display list shows a single entry for the unresolved skill
    assert _levels(merge_skill_strings(["Science (any)-1"], ["Science (any)-2"])) == {"Science": 2}


def test_unfiltered_order_is_background_then_career():
    unfiltered = merge_skill_strings(["Recon-0", "Admin-1"], ["Broker-1", "Admin-0"], unfiltered=True)
    assert [s.name for s in unfiltered] == ["Recon", "Admin", "Broker"]


def test_levels_are_clamped():
    skills = merge_skill_strings(["Admin-6"], ["Admin-5"])
    assert skill_level(skills, "Admin") == LEVEL_MAX


def test_every_package_pair_merges_cleanly(packages):
    backgrounds, careers = packages
    for bg in backgrounds.values():
        for career in careers.values():
            skills = merge_skill_strings(bg.skills, career.skills)
            keys = [s.key for s in skills]
            assert len(keys) == len(set(keys)), f"{bg.id} + {career.id} duplicated a skill"
            for s in skills:
                assert LEVEL_MIN <= s.level <= LEVEL_MAX
            specialized = {s.base_skill for s in skills if s.specialization and s.level >= 1}
            for s in skills:
                assert s.specialization or s.base_skill not in specialized


if __name__ == "__main__":
    pytest.main([__file__])
