"""
Interactive Traveller Builder CLI

Run from the repository root:
    python interactive_builder.py [--data-dir data] [--seed N] [--verbose]
    python interactive_builder.py --show traveller.json
"""

import argparse
import json
import logging
import os
import random
import textwrap
from typing import List, Optional, Set

from TRAV_constants import (
    CareerOption,
    Benefit,
    FinalizationStep,
    ImprovementPhase,
    OPTION_TWO_PICKS,
)
from package_builder import PackageBuilder
from character_model import dump_final_character, load_final_character
from character_sheet import render_summary


def clear_screen():
    """Clear the terminal screen."""
    os.system('cls' if os.name == 'nt' else 'clear')


def print_header(title: str):
    """Print a section header."""
    print("\n" + "=" * 60)
    print(f"  {title}")
    print("=" * 60)


def print_subheader(title: str):
    """Print a subsection header."""
    print("\n" + "-" * 40)
    print(f"  {title}")
    print("-" * 40)


def wrap_text(text: str, width: int = 55, indent: str = "       ") -> str:
    """Wrap text to specified width with indent for continuation lines."""
    lines = textwrap.wrap(text, width=width)
    if not lines:
        return ""
    return "\n".join([lines[0]] + [indent + line for line in lines[1:]])


def _print_options(options: List[str], labels: List[str], disabled: Set[str]):
    print()
    for number, (opt, label) in enumerate(zip(options, labels), 1):
        suffix = " [unavailable]" if opt in disabled else ""
        print(f"  {number}. {label}{suffix}")


def _parse_number(text: str, options: List[str]) -> Optional[int]:
    """1-based menu number -> 0-based index, or None if it is not one."""
    if not text.isdigit():
        return None
    index = int(text) - 1
    return index if 0 <= index < len(options) else None


def get_choice(prompt: str, options: List[str], disabled: Set[str] = None,
               allow_back: bool = True, labels: List[str] = None) -> Optional[str]:
    """
    Ask for one option by number (or by a unique part of its name).

    Unavailable options are listed but refused. Returns None for 0 (back).
    """
    disabled = disabled or set()
    _print_options(options, labels or options, disabled)
    if allow_back:
        print("  0. Go back")

    while True:
        answer = input(f"\n{prompt} > ").strip()
        if answer == "0" and allow_back:
            return None
        index = _parse_number(answer, options)
        if index is None:
            named = [o for o in options if answer and answer.lower() in o.lower()]
            if len(named) != 1:
                print(f"  Enter a number from 1 to {len(options)}")
                continue
            selected = named[0]
        else:
            selected = options[index]
        if selected in disabled:
            print(f"  {selected} is unavailable")
            continue
        return selected


def get_multiple_choices(prompt: str, options: List[str], count: int,
                         disabled: Set[str] = None) -> Optional[List[str]]:
    """Ask for exactly `count` different options as comma-separated numbers. None for 0."""
    disabled = disabled or set()
    _print_options(options, options, disabled)
    print(f"\n  Pick {count} (e.g. 1,3,4), or 0 to go back")

    while True:
        answer = input(f"\n{prompt} > ").strip()
        if answer == "0":
            return None
        indices = [_parse_number(part.strip(), options) for part in answer.split(",")]
        if None in indices:
            print(f"  Use numbers from 1 to {len(options)}")
            continue
        picked = [options[i] for i in dict.fromkeys(indices)]
        if len(picked) != count:
            print(f"  Pick exactly {count} different skills")
            continue
        refused = [p for p in picked if p in disabled]
        if refused:
            print(f"  Unavailable: {', '.join(refused)}")
            continue
        return picked


def show_current_build(builder: PackageBuilder):
    """Display current build state."""
    print_subheader("Current Traveller")
    finals = builder.final_characteristics()
    print("  " + "  ".join(f"{k} {v.total}" for k, v in finals.items()))
    skills = builder.final_skills() if builder.stepper.step is not FinalizationStep.REVIEW else builder.get_skills()
    if skills:
        print("  Skills: " + wrap_text(
            ", ".join(f"{s['name']}-{s['level']}" for s in skills), width=50, indent="          "
        ))
    if builder.age is not None:
        print(f"  Age: {builder.age}  Terms: {builder.terms}  {builder.rank}  Cr{builder.total_credits()}")


# -------------------------------------------------------------------------
# Creation steps
# -------------------------------------------------------------------------

def step_characteristics(builder: PackageBuilder) -> bool:
    """Point redistribution: all start at 7, move points between them."""
    print_header("STEP 1: CHARACTERISTICS")
    print("\n  All characteristics start at 7. Lower one to free a point,")
    print("  then raise another. Enter e.g. 'STR+' or 'SOC-', or 'done'.")

    while True:
        print("\n  " + "  ".join(f"{k} {v}" for k, v in builder.characteristics.items()))
        print(f"  Points available: {builder.point_pool}")
        entry = input("\n  Adjust > ").strip().upper()
        if entry in ("DONE", ""):
            return True
        if len(entry) < 4 or entry[-1] not in "+-":
            print("  Use the form 'DEX+' or 'EDU-'")
            continue
        try:
            if entry[-1] == "+":
                builder.increment_characteristic(entry[:-1])
            else:
                builder.decrement_characteristic(entry[:-1])
        except ValueError as e:
            print(f"  {e}")


def step_background(builder: PackageBuilder) -> bool:
    """Handle background package selection."""
    print_header("STEP 2: CHOOSE BACKGROUND")

    backgrounds = builder.get_available_backgrounds()
    for i, bg in enumerate(backgrounds, 1):
        mods = ", ".join(f"{m.characteristic} {m.modifier:+d}" for m in bg.characteristic_modifiers)
        print(f"\n  {i}. {bg.name}")
        print(f"     {wrap_text(bg.description, width=50)}")
        print(f"     Modifiers: {mods or 'none'}")
        print(f"     Skills: {wrap_text(', '.join(bg.skills), width=50, indent='             ')}")

    choice = get_choice("Select background", [b.id for b in backgrounds],
                        labels=[b.name for b in backgrounds])
    if choice:
        builder.select_background(choice)
        print(f"\n  ✓ Selected {builder.session.background.name}")
        return True
    return False


def step_career(builder: PackageBuilder) -> bool:
    """Handle career package selection."""
    print_header("STEP 3: CHOOSE CAREER")

    careers = builder.get_available_careers()
    for i, career in enumerate(careers, 1):
        print(f"\n  {i}. {career.name} ({career.rank}, Cr{career.credits})")
        print(f"     Skills: {wrap_text(', '.join(career.skills), width=50, indent='             ')}")

    choice = get_choice("Select career", [c.id for c in careers],
                        labels=[c.name for c in careers])
    if choice:
        builder.select_career(choice)
        print(f"\n  ✓ Selected {builder.session.career.name}")
        return True
    return False


def resolve_pending_choices(builder: PackageBuilder):
    """Answer specialization choices one at a time."""
    while builder.current_choice() is not None:
        choice = builder.current_choice()
        print_header("SPECIALIZATION CHOICE")
        print(f"\n  {choice.grant_text or choice.skill_name}")
        print(f"  Choose a {choice.skill_name} specialization at level {choice.granted_level}:")

        options = [c.specialization for c in choice.candidates]
        labels = [f"{c.display} ({c.reason})" for c in choice.candidates]
        disabled = {c.specialization for c in choice.candidates if not c.selectable}

        selection = get_choice("Select", options, disabled=disabled, allow_back=False, labels=labels)
        builder.resolve_choice(selection)
        print(f"\n  ✓ {choice.skill_name} ({selection})")


def step_age(builder: PackageBuilder) -> bool:
    print_header("STEP 4: AGE")
    input("\n  Press Enter to roll 3D6 + 22...")
    age = builder.roll_age()
    print(f"\n  Rolled {builder.age_rolls}: age {age}, {builder.terms} term(s)")
    return True


def step_finalize(builder: PackageBuilder) -> bool:
    """Career option, skill improvement and benefit."""
    builder.begin_finalization()

    while not builder.stepper.is_complete:
        step = builder.stepper.step
        if step is FinalizationStep.CAREER_OPTION:
            print_header("FINALISING: CAREER OPTION")
            options = [str(o.value) for o in CareerOption]
            labels = [wrap_text(o.description, width=50) for o in CareerOption]
            choice = get_choice("Select option", options, labels=labels)
            if choice is None:
                builder.go_back()
                return False
            builder.select_career_option(CareerOption(int(choice)))
            builder.advance()

        elif step is FinalizationStep.SKILL_IMPROVEMENT:
            if builder.stepper.phase is ImprovementPhase.OPTION:
                if not _option_phase(builder):
                    builder.go_back()
                    continue
                builder.advance()
            else:
                print_header("FINALISING: SKILL PAIR")
                print("\n  Each skill of the pair is raised to level 1 if below it.")
                pairs = builder.stepper.skill_pairs
                labels = []
                for pair in pairs:
                    no_effect = builder.stepper.pair_no_effect(pair)
                    labels.append(pair + (f"  [no effect: {', '.join(no_effect)}]" if no_effect else ""))
                choice = get_choice("Select pair", pairs, labels=labels)
                if choice is None:
                    builder.go_back()
                    continue
                builder.select_skill_pair(choice)
                resolve_pending_choices(builder)

        elif step is FinalizationStep.BENEFITS:
            print_header("FINALISING: BENEFIT")
            options = [b.value for b in Benefit]
            choice = get_choice("Select benefit", options)
            if choice is None:
                builder.go_back()
                continue
            builder.select_benefit(Benefit(choice))
            builder.advance()

    return True


def _option_phase(builder: PackageBuilder) -> bool:
    stepper = builder.stepper
    if stepper.option is CareerOption.RAISE_TO_FOUR:
        print_header("FINALISING: RAISE ONE SKILL TO 4")
        candidates = stepper.option_one_candidates()
        options = [name for name, _ in candidates]
        labels = [f"{name} (current {level})" for name, level in candidates]
        choice = get_choice("Select skill", options, labels=labels)
        if choice is None:
            return False
        builder.select_option_one_skill(choice)
        return True

    print_header(f"FINALISING: +1 TO {OPTION_TWO_PICKS} SKILLS (MAX 2)")
    candidates = stepper.option_two_candidates()
    options = [name for name, _, _ in candidates]
    disabled = {name for name, _, eligible in candidates if not eligible}
    selection = get_multiple_choices("Select skills", options, OPTION_TWO_PICKS, disabled=disabled)
    if selection is None:
        return False
    builder.select_option_two_skills(selection)
    return True


def finalize_character(builder: PackageBuilder):
    """Name and export the Traveller."""
    print_header("FINISHED TRAVELLER")

    name = input("\n  Traveller Name > ").strip()
    if name:
        builder.name = name

    character = builder.get_character()
    print()
    print(render_summary(character))

    print_subheader("Export")
    print("  1. Save to JSON file")
    print("  2. Print JSON to screen")
    print("  3. Done (exit)")

    export = input("\n  > ").strip()

    if export == "1":
        slug = "".join(ch for ch in builder.name if ch.isalnum() or ch in "-_ ").strip().replace(" ", "_")
        default_filename = f"{slug or 'traveller'}.json"
        filename = input(f"  Filename (default: {default_filename}) > ").strip() or default_filename
        if not filename.endswith(".json"):
            filename += ".json"
        with open(filename, "w", encoding="utf-8") as f:
            json.dump(dump_final_character(character), f, indent=2)
        print(f"\n  ✓ Saved to {filename}")
    elif export == "2":
        print("\n" + json.dumps(dump_final_character(character), indent=2))


def show_saved_character(path: str):
    """Print the sheet of a Traveller saved by the export step."""
    with open(path, "r", encoding="utf-8") as f:
        character = load_final_character(json.load(f))
    print(render_summary(character))


def main():
    """Main interactive builder loop."""
    parser = argparse.ArgumentParser(description="Package-based Traveller builder")
    parser.add_argument("--data-dir", default="data", help="Directory with package JSON files")
    parser.add_argument("--seed", type=int, default=None, help="Seed for the age roll")
    parser.add_argument("--show", metavar="FILE", help="Print the sheet of a saved Traveller and exit")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log engine decisions")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.show:
        show_saved_character(args.show)
        return

    clear_screen()
    print_header("TRAVELLER - PACKAGE-BASED CREATION")
    print("\n  Type numbers to select options, or 0 to go back")

    rng = random.Random(args.seed) if args.seed is not None else None
    builder = PackageBuilder(rng=rng)

    print("\n  Loading game data...")
    try:
        builder.load_game_data(args.data_dir)
    except (OSError, ValueError) as e:
        print(f"  ✗ Error loading data: {e}")
        print(f"\n  Make sure '{args.data_dir}' exists with JSON files.")
        return
    print(f"  ✓ Loaded {len(builder.backgrounds)} backgrounds, {len(builder.careers)} careers")

    steps = [step_characteristics, step_background, step_career, step_age, step_finalize]
    current_step_idx = 0

    while current_step_idx < len(steps):
        if current_step_idx > 0:
            show_current_build(builder)

        if steps[current_step_idx](builder):
            if builder.current_choice() is not None:
                resolve_pending_choices(builder)
            current_step_idx += 1
        elif current_step_idx > 0:
            current_step_idx -= 1

    finalize_character(builder)


if __name__ == "__main__":
    main()
