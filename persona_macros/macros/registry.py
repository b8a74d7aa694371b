"""
Macro registry.

Holds the plugin macros other subsystems register by name. Registered macros
are merged into every evaluation's environment and win over same-named
entries supplied at the call site.

Usage:
    registry = MacroRegistry()
    registry.register("weather", "sunny")
    registry.register("mood", lambda nonce: pick_mood(nonce))

    evaluator = MacroEvaluator(registry)
    evaluator.evaluate("It is {{weather}} and I feel {{mood}}.", env)
"""

import inspect
import json
import logging
from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass
from datetime import date, datetime
from threading import RLock
from typing import Any, Callable, Dict, List, Optional, Union

from .errors import InvalidMacroKeyError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StaticMacro:
    """Macro with a fixed string value."""
    value: str

    def invoke(self, nonce: Optional[str] = None) -> str:
        return self.value


@dataclass(frozen=True)
class DynamicMacro:
    """
    Macro computed on every occurrence.

    The function takes either no arguments or a single nonce that is constant
    for one evaluation call.
    """
    fn: Callable[..., Any]

    def _accepts_nonce(self) -> bool:
        try:
            params = inspect.signature(self.fn).parameters.values()
        except (TypeError, ValueError):
            return True
        for param in params:
            if param.kind in (param.POSITIONAL_ONLY, param.POSITIONAL_OR_KEYWORD, param.VAR_POSITIONAL):
                return True
        return False

    def invoke(self, nonce: Optional[str] = None) -> Any:
        if self._accepts_nonce():
            return self.fn(nonce)
        return self.fn()


MacroValue = Union[StaticMacro, DynamicMacro]


def sanitize_value(value: Any) -> str:
    """
    Convert an arbitrary macro value into display text.

    Strings pass through, None becomes empty, dates become ISO-8601 and
    mappings/sequences become JSON. Awaitables and functions are not
    supported as values and are replaced with an empty string.
    """
    if isinstance(value, str):
        return value

    if value is None:
        return ""

    if inspect.isawaitable(value):
        logger.warning("Awaitables are not supported as macro values")
        if inspect.iscoroutine(value):
            value.close()
        return ""

    if isinstance(value, StaticMacro):
        return value.value

    if isinstance(value, DynamicMacro) or callable(value):
        logger.warning("Functions are not supported as macro values")
        return ""

    if isinstance(value, (datetime, date)):
        return value.isoformat()

    if isinstance(value, bool):
        return "true" if value else "false"

    if isinstance(value, (Mapping, list, tuple)):
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"), default=str)

    return str(value)


def as_macro_value(value: Any) -> MacroValue:
    """Wrap a raw environment value in its macro variant."""
    if isinstance(value, (StaticMacro, DynamicMacro)):
        return value
    if callable(value):
        return DynamicMacro(value)
    return StaticMacro(sanitize_value(value))


def _validate_key(key: Any) -> str:
    if not isinstance(key, str):
        raise InvalidMacroKeyError("Macro key must be a string")

    key = key.strip()

    if not key:
        raise InvalidMacroKeyError("Macro key must not be empty or whitespace only")

    if "{{" in key or "}}" in key:
        raise InvalidMacroKeyError("Macro key must not include the surrounding braces")

    return key


class MacroRegistry:
    """
    Process-wide store of registered macros.

    Thread-safe: registration, removal and environment population hold
    a re-entrant lock.
    """

    def __init__(self):
        self._macros: Dict[str, MacroValue] = {}
        self._lock = RLock()

    def register(self, key: str, value: Any) -> None:
        """
        Register a macro usable anywhere substitution is allowed.

        Args:
            key: Macro name (without braces)
            value: A string, or a function returning a string

        Raises:
            InvalidMacroKeyError: If the key is not a non-empty string or includes braces
        """
        key = _validate_key(key)

        if isinstance(value, (StaticMacro, DynamicMacro)):
            macro = value
        elif isinstance(value, str):
            macro = StaticMacro(value)
        elif callable(value):
            macro = DynamicMacro(value)
        else:
            logger.warning(f"Macro value for \"{key}\" will be converted to a string")
            macro = StaticMacro(sanitize_value(value))

        with self._lock:
            if key in self._macros:
                logger.warning(f"Macro {key} is already registered")
            self._macros[key] = macro

        logger.debug(f"Registered macro: {key} ({type(macro).__name__})")

    def unregister(self, key: str) -> None:
        """
        Remove a registered macro.

        Raises:
            InvalidMacroKeyError: If the key is not a non-empty string or includes braces
        """
        key = _validate_key(key)

        with self._lock:
            removed = self._macros.pop(key, None)

        if removed is None:
            logger.warning(f"Macro {key} was not registered")
        else:
            logger.debug(f"Unregistered macro: {key}")

    def get(self, key: str) -> Optional[MacroValue]:
        with self._lock:
            return self._macros.get(key)

    def names(self) -> List[str]:
        with self._lock:
            return list(self._macros.keys())

    def snapshot(self) -> Dict[str, MacroValue]:
        """Copy of the registered macros taken under the lock."""
        with self._lock:
            return dict(self._macros)

    def clear(self) -> None:
        with self._lock:
            self._macros.clear()

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._macros

    def __len__(self) -> int:
        with self._lock:
            return len(self._macros)

    def populate_env(self, env: Any) -> None:
        """
        Copy every registered macro into an evaluation environment.

        Existing entries with the same name are overwritten.
        """
        if not isinstance(env, MutableMapping):
            logger.warning("Env object is not provided")
            return

        macros = self.snapshot()
        if not macros:
            return

        for key, value in macros.items():
            env[key] = value

    sanitize_value = staticmethod(sanitize_value)
