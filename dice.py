"""
Dice - the random-integer source used for age rolls.

    roll("3d6")  -> DiceResult(total=11, rolls=[2, 4, 5])
    roll("2d6+2", rng=random.Random(7))

Pass an rng (anything with randint) to make rolls reproducible.
"""

import random
import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple


_DICE_PATTERN = re.compile(r"^\s*(\d*)\s*d\s*(\d+)\s*(?:([+-])\s*(\d+))?\s*$", re.IGNORECASE)


@dataclass
class DiceResult:
    total: int
    rolls: List[int] = field(default_factory=list)


def parse_dice_string(spec: str) -> Tuple[int, int, int]:
    """'3d6+1' -> (count, sides, modifier)."""
    match = _DICE_PATTERN.match(spec)
    if not match:
        raise ValueError(f"Invalid dice string: {spec!r}")
    count = int(match.group(1) or 1)
    sides = int(match.group(2))
    modifier = int(match.group(4) or 0)
    if match.group(3) == "-":
        modifier = -modifier
    if count < 1 or sides < 1:
        raise ValueError(f"Invalid dice string: {spec!r}")
    return count, sides, modifier


def roll(spec: str, rng: Optional[random.Random] = None) -> DiceResult:
    rng = rng or random
    count, sides, modifier = parse_dice_string(spec)
    rolls = [rng.randint(1, sides) for _ in range(count)]
    return DiceResult(total=sum(rolls) + modifier, rolls=rolls)
