"""Exceptions raised by the macro engine."""


class MacroError(Exception):
    """Base exception for macro engine errors."""
    pass


class InvalidMacroKeyError(MacroError, ValueError):
    """Macro name is not a usable registry key."""
    pass


class InvalidDiceFormulaError(MacroError, ValueError):
    """Dice formula does not match the dice notation grammar."""

    def __init__(self, formula: str):
        self.formula = formula
        super().__init__(f"Invalid roll formula: {formula}")
