"""
Dice notation parsing and rolling.

Formulas follow the classic ``[count]d<sides>[+/-modifier]`` notation:
``d20``, ``2d6``, ``3d8+2``, ``1d100-10``. Whitespace is ignored and the
``d`` is case-insensitive.
"""

import logging
import random
import re
from dataclasses import dataclass, field
from typing import List, Optional

from .errors import InvalidDiceFormulaError

logger = logging.getLogger(__name__)


DICE_PATTERN = re.compile(r'^([1-9]\d*)?d([1-9]\d*)([+-]\d+)?$', re.IGNORECASE)


@dataclass
class RollResult:
    """Outcome of a single formula roll."""
    formula: str
    total: int
    rolls: List[int] = field(default_factory=list)
    modifier: int = 0


class DiceRoller:
    """
    Validates and rolls dice formulas.

    Limits on dice count and die size keep a hostile template from
    turning one macro into millions of random draws.
    """

    def __init__(
        self,
        max_dice: int = 1000,
        max_sides: int = 1_000_000,
        rng: Optional[random.Random] = None
    ):
        """
        Initialize the roller.

        Args:
            max_dice: Largest number of dice a formula may roll
            max_sides: Largest die size a formula may use
            rng: Random source (defaults to system entropy)
        """
        self.max_dice = max_dice
        self.max_sides = max_sides
        self.rng = rng or random.SystemRandom()

    def _parse(self, formula: str) -> Optional[tuple[int, int, int]]:
        if not isinstance(formula, str):
            return None

        cleaned = re.sub(r'\s+', '', formula)
        match = DICE_PATTERN.match(cleaned)
        if not match:
            return None

        count = int(match.group(1)) if match.group(1) else 1
        sides = int(match.group(2))
        modifier = int(match.group(3)) if match.group(3) else 0

        if count > self.max_dice or sides > self.max_sides:
            return None

        return count, sides, modifier

    def validate(self, formula: str) -> bool:
        """Check whether a formula can be rolled."""
        return self._parse(formula) is not None

    def roll(self, formula: str) -> RollResult:
        """
        Roll a formula.

        Raises:
            InvalidDiceFormulaError: If the formula is not valid dice notation
        """
        parsed = self._parse(formula)
        if parsed is None:
            raise InvalidDiceFormulaError(formula)

        count, sides, modifier = parsed
        rolls = [self.rng.randint(1, sides) for _ in range(count)]
        total = sum(rolls) + modifier

        logger.debug(f"Rolled {formula}: {rolls} {modifier:+d} = {total}")
        return RollResult(formula=formula, total=total, rolls=rolls, modifier=modifier)
