"""Configuration loading and validation."""

from .models import (
    SystemConfig,
    MacroEngineConfig,
    DiceConfig,
    TimeFormatConfig,
)
from .loader import ConfigLoader, ConfigLoadError, ConfigValidationError

__all__ = [
    "SystemConfig",
    "MacroEngineConfig",
    "DiceConfig",
    "TimeFormatConfig",
    "ConfigLoader",
    "ConfigLoadError",
    "ConfigValidationError",
]
