"""
Configuration management using Pydantic Settings.
"""

from datetime import time
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .domain.models import DEFAULT_TIMEZONE, BusinessHours


class BusinessHoursConfig(BaseModel):
    """Daily booking window and slot granularity."""
    open_hour: int = 7
    open_minute: int = 0
    close_hour: int = 19
    close_minute: int = 0
    slot_minutes: int = 30

    @field_validator("open_hour", "close_hour")
    @classmethod
    def validate_hour(cls, v: int) -> int:
        """Validate hour is between 0 and 23."""
        if not 0 <= v <= 23:
            raise ValueError(f"Hour must be between 0 and 23, got {v}")
        return v

    @field_validator("open_minute", "close_minute")
    @classmethod
    def validate_minute(cls, v: int) -> int:
        if not 0 <= v <= 59:
            raise ValueError(f"Minute must be between 0 and 59, got {v}")
        return v

    @field_validator("slot_minutes")
    @classmethod
    def validate_slot_minutes(cls, value: int) -> int:
        """Ensure slot granularity is positive."""
        if value <= 0:
            raise ValueError("slot_minutes must be greater than zero")
        return value

    @model_validator(mode="after")
    def validate_hours_order(self) -> "BusinessHoursConfig":
        """Ensure the configured window opens before it closes."""
        if self.get_close_time() <= self.get_open_time():
            raise ValueError("closing time must be later than opening time")
        return self

    def get_open_time(self) -> time:
        return time(hour=self.open_hour, minute=self.open_minute)

    def get_close_time(self) -> time:
        return time(hour=self.close_hour, minute=self.close_minute)


class SuggestionConfig(BaseModel):
    """Settings for the free-gap suggestions shown on the dashboard."""
    target_minutes: int = 90
    limit: int = 3

    @field_validator("target_minutes", "limit")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("value must be greater than zero")
        return value


class AppConfig(BaseModel):
    """Application configuration."""
    business_hours: BusinessHoursConfig = Field(default_factory=BusinessHoursConfig)
    suggestion: SuggestionConfig = Field(default_factory=SuggestionConfig)
    default_duration_minutes: int = 60
    days_ahead: int = 2
    inactive_client_days: int = 60
    week_starts_on: int = 6  # Sunday
    timezone: str = DEFAULT_TIMEZONE
    currency: str = "BRL"
    data_file: Path | None = None

    @field_validator("default_duration_minutes", "days_ahead", "inactive_client_days")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("value must be greater than zero")
        return value

    @field_validator("week_starts_on")
    @classmethod
    def validate_weekday(cls, value: int) -> int:
        """Ensure the weekday is in valid range."""
        if value not in range(7):
            raise ValueError(f"week_starts_on must be between 0 and 6, got {value}")
        return value

    def get_business_hours(self) -> BusinessHours:
        """Build the domain BusinessHours from the configured values."""
        return BusinessHours(
            open_time=self.business_hours.get_open_time(),
            close_time=self.business_hours.get_close_time(),
            slot_minutes=self.business_hours.slot_minutes,
            timezone=self.timezone,
        )

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

        # Relative data paths are resolved against the config file location
        if config.data_file is not None and not config.data_file.is_absolute():
            config.data_file = config_path.parent / config.data_file

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


def load_config(config_path: Path | None = None) -> AppConfig:
    """
    Load the configuration, falling back to defaults when no file exists.

    An explicitly given path must exist.
    """
    if config_path is not None:
        return AppConfig.load_from_yaml(config_path)

    default_path = get_default_config_path()
    if default_path.exists():
        return AppConfig.load_from_yaml(default_path)
    return AppConfig()
