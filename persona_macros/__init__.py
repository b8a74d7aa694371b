"""
Persona Macros - Macro substitution engine for character persona chat.

Expands {{macro}} placeholders in prompt templates, chat messages and UI
strings into runtime values: persona names, message history, timestamps,
dice rolls, seeded random picks and plugin-registered values.
"""

__version__ = "0.1.0"
