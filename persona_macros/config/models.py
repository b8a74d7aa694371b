"""Pydantic models for configuration validation."""

from typing import Optional
from pydantic import BaseModel, Field, field_validator, ConfigDict


class DiceConfig(BaseModel):
    """Limits for the {{roll}} macro."""

    max_dice: int = Field(default=1000, gt=0, description="Most dice a single formula may roll")
    max_sides: int = Field(default=1_000_000, gt=1, description="Largest die a formula may use")


class TimeFormatConfig(BaseModel):
    """Moment-style format strings for the time/date macros."""

    time: str = "LT"
    date: str = "LL"
    weekday: str = "dddd"
    isotime: str = "HH:mm"
    isodate: str = "YYYY-MM-DD"


class MacroEngineConfig(BaseModel):
    """Macro evaluation behaviour."""

    empty_list_placeholder: str = Field(
        default="",
        description="Substituted when a {{random}} or {{pick}} list is empty"
    )
    invalid_roll_placeholder: str = Field(
        default="",
        description="Substituted when a {{roll}} formula is invalid"
    )
    ban_list_backend: str = Field(
        default="textgenerationwebui",
        description="Generation backend that accepts inline banned-word lists"
    )
    default_max_context_size: int = Field(default=4096, gt=0)
    dice: DiceConfig = Field(default_factory=DiceConfig)
    time_formats: TimeFormatConfig = Field(default_factory=TimeFormatConfig)

    @field_validator('ban_list_backend')
    @classmethod
    def validate_backend(cls, v: str) -> str:
        """Backend identifiers are compared verbatim, so strip stray whitespace."""
        v = v.strip()
        if not v:
            raise ValueError('ban_list_backend must not be empty')
        return v


class SystemConfig(BaseModel):
    """Top-level system configuration."""

    model_config = ConfigDict(extra='ignore')

    macros: MacroEngineConfig = Field(default_factory=MacroEngineConfig)
    debug: bool = False
    api_host: str = "localhost"
    api_port: int = Field(default=8080, gt=0, le=65535)
    log_dir: Optional[str] = Field(
        default="data/debug_logs/server",
        description="Directory for debug log files (debug mode only)"
    )
