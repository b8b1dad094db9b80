"""Pydantic models — single source of truth for all data types."""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

# The ten slice colors of the original dinner wheel.
DEFAULT_PALETTE: list[str] = [
    "#FF5252",
    "#FF7752",
    "#FFB752",
    "#FFE652",
    "#B4FF52",
    "#52FF9A",
    "#52FFFF",
    "#5286FF",
    "#A952FF",
    "#FF52B4",
]


class SpinState(str, enum.Enum):
    """Wheel selector lifecycle states."""

    IDLE = "idle"
    SPINNING = "spinning"


class WheelConfiguration(BaseModel):
    """Options and slice colors for one wheel."""

    options: list[str] = Field(min_length=1)
    colors: list[str] = Field(default_factory=list)

    @property
    def option_count(self) -> int:
        return len(self.options)

    def color_for(self, index: int) -> str:
        """Color of slice *index*, cycling through the palette."""
        palette = self.colors or DEFAULT_PALETTE
        return palette[index % len(palette)]


class SpinOutcome(BaseModel):
    """Result of one completed spin."""

    target_rotation_degrees: float = Field(ge=1440, lt=2880)
    winning_index: int = Field(ge=0)
    winning_label: str


class Wheel(BaseModel):
    """A saved, named list of options."""

    id: int
    name: str
    options: list[str]
    colors: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.now)

    def to_configuration(self) -> WheelConfiguration:
        return WheelConfiguration(options=self.options, colors=self.colors)


class WheelCreate(BaseModel):
    """Input model for saving a new wheel."""

    name: str = Field(min_length=1, max_length=100)
    options: list[str] = Field(min_length=1)
    colors: list[str] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("name must not be blank")
        return stripped

    @field_validator("options")
    @classmethod
    def _strip_options(cls, value: list[str]) -> list[str]:
        cleaned = [opt.strip() for opt in value if opt.strip()]
        if not cleaned:
            raise ValueError("a wheel needs at least one non-blank option")
        return cleaned


class SpinRecord(BaseModel):
    """A logged spin result."""

    id: int
    wheel_id: Optional[int] = None
    label: str
    winning_index: int = Field(ge=0)
    rotation_degrees: float
    spun_at: datetime = Field(default_factory=datetime.now)


class SpinRecordCreate(BaseModel):
    """Input model for logging a spin."""

    wheel_id: Optional[int] = None
    label: str
    winning_index: int = Field(ge=0)
    rotation_degrees: float

    @classmethod
    def from_outcome(cls, outcome: SpinOutcome, wheel_id: Optional[int] = None) -> SpinRecordCreate:
        return cls(
            wheel_id=wheel_id,
            label=outcome.winning_label,
            winning_index=outcome.winning_index,
            rotation_degrees=outcome.target_rotation_degrees,
        )


class AppConfig(BaseModel):
    """Application configuration (persisted to ~/.config/ruleta/config.json)."""

    db_path: Optional[str] = None  # None = use default (~/.local/share/ruleta/)
    palette: list[str] = Field(default_factory=lambda: list(DEFAULT_PALETTE))
    spin_duration_ms: int = Field(default=3000, ge=100, le=60000)
