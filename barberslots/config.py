"""
Configuration management using Pydantic models loaded from YAML.
"""

import logging
from datetime import time
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from .domain.clock import DEFAULT_UTC_OFFSET_HOURS
from .domain.exceptions import ConfigError
from .domain.models import OperatingWindow, parse_local_time
from .domain.slot_generator import DEFAULT_GRANULARITY_MINUTES
from .domain.suggester import DEFAULT_SUGGESTION_COUNT

logger = logging.getLogger(__name__)


class ShopConfig(BaseModel):
    """Opening hours and slot settings of a barbershop."""
    opening_time: time = time(8, 0)
    closing_time: time = time(19, 0)
    slot_granularity_minutes: int = DEFAULT_GRANULARITY_MINUTES
    suggestion_count: int = DEFAULT_SUGGESTION_COUNT
    utc_offset_hours: int = DEFAULT_UTC_OFFSET_HOURS

    @field_validator("opening_time", "closing_time", mode="before")
    @classmethod
    def parse_time_of_day(cls, value: Any) -> Any:
        """Accept "HH:MM" strings and YAML's sexagesimal integers."""
        # YAML 1.1 reads an unquoted 19:00 as the integer 1140 (base 60)
        if isinstance(value, int) and not isinstance(value, bool):
            if not 0 <= value < 24 * 60:
                raise ValueError(f"Time of day out of range: {value}")
            return time(value // 60, value % 60)
        if isinstance(value, str):
            return parse_local_time(value)
        return value

    @field_validator("slot_granularity_minutes", "suggestion_count")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        """Ensure counts and spacings are positive."""
        if value <= 0:
            raise ValueError(f"Value must be greater than zero, got {value}")
        return value

    @field_validator("utc_offset_hours")
    @classmethod
    def validate_offset(cls, value: int) -> int:
        if not -12 <= value <= 14:
            raise ValueError(f"UTC offset must be between -12 and 14 hours, got {value}")
        return value

    @model_validator(mode="after")
    def warn_closed_window(self) -> "ShopConfig":
        """A window that never opens is kept (the shop shows no slots) but reported."""
        if self.closing_time <= self.opening_time:
            logger.warning(
                "Closing time %s is not after opening time %s; no slots will be offered",
                self.closing_time,
                self.opening_time,
            )
        return self

    def operating_window(self) -> OperatingWindow:
        return OperatingWindow(opens=self.opening_time, closes=self.closing_time)


class SupabaseConfig(BaseModel):
    """Connection settings for the hosted booking database."""
    url: str
    api_key: str
    barbershop_id: str
    timeout_seconds: int = 30

    @field_validator("url")
    @classmethod
    def validate_url(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError(f"Supabase url must start with http:// or https://, got {value!r}")
        return value.rstrip("/")


class AppConfig(BaseModel):
    """Application configuration."""
    shop: ShopConfig = Field(default_factory=ShopConfig)
    supabase: Optional[SupabaseConfig] = None
    mock_data_file: Optional[Path] = None

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
            ConfigError: If config is invalid
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
            raise ConfigError(f"Invalid YAML in {config_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ConfigError("Config file must contain a mapping at the root level.")

        try:
            config = cls(**data)
        except ValidationError as exc:
            raise ConfigError(f"Invalid configuration in {config_path}:\n{exc}") from exc

        # Relative data files are resolved next to the config file
        if config.mock_data_file is not None and not config.mock_data_file.is_absolute():
            config.mock_data_file = config_path.parent / config.mock_data_file

        return config


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
