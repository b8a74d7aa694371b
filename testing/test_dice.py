"""Tests for dice formula validation and rolling."""

import random

import pytest
from persona_macros.macros import DiceRoller, InvalidDiceFormulaError


class TestValidate:
    """Test suite for DiceRoller.validate."""

    @pytest.mark.parametrize("formula", ["d20", "1d20", "2d6", "3D8+2", "1d100-10", " 2 d 6 "])
    def test_valid_formulas(self, formula):
        assert DiceRoller().validate(formula)

    @pytest.mark.parametrize("formula", ["", "20", "notaformula", "0d6", "2d0", "d", "2d6*3", "1d06x", None])
    def test_invalid_formulas(self, formula):
        assert not DiceRoller().validate(formula)

    def test_limits(self):
        roller = DiceRoller(max_dice=10, max_sides=100)

        assert roller.validate("10d100")
        assert not roller.validate("11d6")
        assert not roller.validate("1d101")


class TestRoll:
    """Test suite for DiceRoller.roll."""

    def test_total_in_range(self):
        roller = DiceRoller(rng=random.Random(1234))

        for _ in range(100):
            result = roller.roll("2d6")
            assert 2 <= result.total <= 12
            assert len(result.rolls) == 2
            assert result.total == sum(result.rolls)

    def test_modifier(self):
        roller = DiceRoller(rng=random.Random(1))

        result = roller.roll("1d1-3")
        assert result.total == -2
        assert result.modifier == -3
        assert result.rolls == [1]

    def test_seeded_rng_is_reproducible(self):
        first = DiceRoller(rng=random.Random(99)).roll("5d20")
        second = DiceRoller(rng=random.Random(99)).roll("5d20")
        assert first.rolls == second.rolls

    def test_invalid_formula_raises(self):
        with pytest.raises(InvalidDiceFormulaError) as exc_info:
            DiceRoller().roll("banana")
        assert exc_info.value.formula == "banana"


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
