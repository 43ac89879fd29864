"""
Configuration management using Pydantic models loaded from YAML.
"""

from datetime import time
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .domain.budget import SearchBudget
from .domain.models import BreakPeriod, OperatingHours


def parse_clock(value: str) -> time:
    """Parse an ``HH:MM`` string into a time of day."""
    try:
        hour, minute = (int(part) for part in value.strip().split(":"))
        return time(hour=hour, minute=minute)
    except (AttributeError, ValueError) as exc:
        raise ValueError(f"Expected a time in HH:MM format, got {value!r}") from exc


class BreakConfig(BaseModel):
    """A break inside operating hours; ``day`` limits it to one weekday."""
    start: str
    end: str
    day: Optional[int] = None
    note: str = ""

    @field_validator("start", "end")
    @classmethod
    def validate_clock(cls, value: str) -> str:
        parse_clock(value)
        return value

    @field_validator("day")
    @classmethod
    def validate_day(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and value not in range(7):
            raise ValueError(f"Break day must be between 0 and 6, got {value}")
        return value

    @model_validator(mode="after")
    def validate_order(self) -> "BreakConfig":
        if parse_clock(self.end) <= parse_clock(self.start):
            raise ValueError("Break end must be later than break start")
        return self

    def to_break_period(self) -> BreakPeriod:
        return BreakPeriod(
            start=parse_clock(self.start),
            end=parse_clock(self.end),
            weekday=self.day,
            note=self.note,
        )


class OperatingHoursConfig(BaseModel):
    """Opening window, business days (0=Monday) and breaks."""
    start: str = "08:00"
    end: str = "18:00"
    business_days: List[int] = Field(default_factory=lambda: [0, 1, 2, 3, 4, 5])
    breaks: List[BreakConfig] = Field(default_factory=list)
    step_minutes: int = 15

    @field_validator("start", "end")
    @classmethod
    def validate_clock(cls, value: str) -> str:
        parse_clock(value)
        return value

    @field_validator("step_minutes")
    @classmethod
    def validate_step(cls, value: int) -> int:
        """Keep the grid between one minute and one hour, as the booking UI does."""
        if not 1 <= value <= 60:
            raise ValueError(f"step_minutes must be between 1 and 60, got {value}")
        return value

    @field_validator("business_days")
    @classmethod
    def validate_business_days(cls, value: List[int]) -> List[int]:
        """Ensure weekdays are in valid range and deduplicated."""
        invalid_days = [day for day in value if day not in range(7)]
        if invalid_days:
            raise ValueError(f"business_days must be between 0 and 6, got {invalid_days}")
        # Preserve order while removing duplicates
        seen: set[int] = set()
        deduped: List[int] = []
        for day in value:
            if day not in seen:
                deduped.append(day)
                seen.add(day)
        return deduped

    @model_validator(mode="after")
    def validate_hours_order(self) -> "OperatingHoursConfig":
        """Ensure the configured window opens before it closes."""
        if parse_clock(self.end) <= parse_clock(self.start):
            raise ValueError("Operating hours end must be later than start")
        # Breaks must fit the window and must not overlap each other.
        self.to_operating_hours()
        return self

    def to_operating_hours(self) -> OperatingHours:
        return OperatingHours(
            start=parse_clock(self.start),
            end=parse_clock(self.end),
            business_days=frozenset(self.business_days),
            breaks=tuple(b.to_break_period() for b in self.breaks),
            step_minutes=self.step_minutes,
        )


class BookingStoreConfig(BaseModel):
    """Connection to the external booking store REST API."""
    base_url: str = ""
    organization_id: str = ""
    token: str = ""
    timeout_seconds: float = 30.0

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("timeout_seconds")
    @classmethod
    def validate_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("timeout_seconds must be greater than zero")
        return value


class SearchConfig(BaseModel):
    """Optional per-request search budget."""
    max_candidates: Optional[int] = None
    max_seconds: Optional[float] = None

    @field_validator("max_candidates", "max_seconds")
    @classmethod
    def validate_positive(cls, value):
        if value is not None and value <= 0:
            raise ValueError("Search limits must be greater than zero")
        return value

    def to_budget(self) -> Optional[SearchBudget]:
        if self.max_candidates is None and self.max_seconds is None:
            return None
        return SearchBudget(max_candidates=self.max_candidates, max_seconds=self.max_seconds)


class AppConfig(BaseModel):
    """Application configuration."""
    timezone: str = "America/Bogota"
    operating_hours: OperatingHoursConfig = Field(default_factory=OperatingHoursConfig)
    booking_store: BookingStoreConfig = Field(default_factory=BookingStoreConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)
    snapshot_file: Optional[Path] = None

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to the YAML config file

        Returns:
            AppConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        if not config_path.exists():
            raise FileNotFoundError(
                f"Config file not found: {config_path}\n"
                f"Please create a config.yaml file. See config.example.yaml for reference."
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {config_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ValueError("Config file must contain a mapping at the root level.")

        config = cls(**data)

        # Relative snapshot paths are resolved against the config file.
        if config.snapshot_file is not None and not config.snapshot_file.is_absolute():
            config.snapshot_file = config_path.parent / config.snapshot_file

        return config

    def get_operating_hours(self) -> OperatingHours:
        return self.operating_hours.to_operating_hours()

    def get_search_budget(self) -> Optional[SearchBudget]:
        return self.search.to_budget()


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for config.yaml in current directory
    current_dir = Path.cwd()
    config_path = current_dir / "config.yaml"

    if not config_path.exists():
        # Try in the project root (parent of the package)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"

    return config_path
