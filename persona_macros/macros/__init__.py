"""
Macro Engine
============

Expands {{macro}} placeholders in prompts, messages and UI strings.

Supports:
- Plugin macros registered at runtime (static strings or functions)
- Legacy <USER>/<CHAR>/<GROUP> tags
- Chat state, time/date and idle-duration macros
- Dice rolls, entropy random picks and reproducible seeded picks
- Comments, trim/noop markers and banned-word directives
"""

from .context import ChatMessage, MacroContext
from .dice import DiceRoller, RollResult
from .errors import MacroError, InvalidMacroKeyError, InvalidDiceFormulaError
from .evaluator import MacroEvaluator
from .registry import (
    MacroRegistry,
    StaticMacro,
    DynamicMacro,
    MacroValue,
    as_macro_value,
    sanitize_value,
)

__all__ = [
    'ChatMessage',
    'MacroContext',
    'DiceRoller',
    'RollResult',
    'MacroError',
    'InvalidMacroKeyError',
    'InvalidDiceFormulaError',
    'MacroEvaluator',
    'MacroRegistry',
    'StaticMacro',
    'DynamicMacro',
    'MacroValue',
    'as_macro_value',
    'sanitize_value',
]
