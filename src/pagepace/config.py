"""Configuration management for pagepace.

Loads configuration from environment variables and provides defaults.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load .env file if present
load_dotenv()


@dataclass(frozen=True)
class PaceDefaults:
    """Tunable constants for pace recommendations."""

    default_ppm: float = 0.8  # pages per minute when the user has no profile
    baseline_slack: float = 0.90
    slack_min: float = 0.85
    slack_max: float = 0.95
    slack_window_days: int = 7
    slack_min_samples: int = 3

    def validate(self) -> list[str]:
        """Validate the constants, return list of errors."""
        errors = []

        if self.default_ppm <= 0:
            errors.append(f"Default pages per minute must be positive: {self.default_ppm}")
        if self.slack_min > self.slack_max:
            errors.append(f"Slack bounds are inverted: {self.slack_min} > {self.slack_max}")
        elif not self.slack_min <= self.baseline_slack <= self.slack_max:
            errors.append(
                f"Baseline slack {self.baseline_slack} is outside "
                f"[{self.slack_min}, {self.slack_max}]"
            )
        if self.slack_window_days <= 0:
            errors.append(f"Slack window must be at least one day: {self.slack_window_days}")
        if self.slack_min_samples <= 0:
            errors.append(f"Slack sample minimum must be positive: {self.slack_min_samples}")

        return errors


@dataclass
class Config:
    """Application configuration."""

    # Database
    db_path: Path

    # CLI identity
    default_user: str

    # Logging
    log_level: str

    # Recommendation tuning
    pace: PaceDefaults = field(default_factory=PaceDefaults)

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        db_path_str = os.environ.get(
            "PAGEPACE_DB_PATH",
            str(Path.home() / ".pagepace" / "pagepace.db"),
        )
        db_path = Path(db_path_str).expanduser()

        pace = PaceDefaults(
            default_ppm=float(os.environ.get("PAGEPACE_DEFAULT_PPM", "0.8")),
            baseline_slack=float(os.environ.get("PAGEPACE_BASELINE_SLACK", "0.90")),
            slack_min=float(os.environ.get("PAGEPACE_SLACK_MIN", "0.85")),
            slack_max=float(os.environ.get("PAGEPACE_SLACK_MAX", "0.95")),
            slack_window_days=int(os.environ.get("PAGEPACE_SLACK_WINDOW_DAYS", "7")),
            slack_min_samples=int(os.environ.get("PAGEPACE_SLACK_MIN_SAMPLES", "3")),
        )

        return cls(
            db_path=db_path,
            default_user=os.environ.get("PAGEPACE_USER", "local"),
            log_level=os.environ.get("PAGEPACE_LOG_LEVEL", "WARNING").upper(),
            pace=pace,
        )

    def validate(self) -> list[str]:
        """Validate configuration, return list of errors."""
        errors = list(self.pace.validate())

        # Check database directory is writable
        if not self.db_path.parent.exists():
            try:
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
            except PermissionError:
                errors.append(f"Cannot create database directory: {self.db_path.parent}")

        return errors


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create the global config instance."""
    global _config
    if _config is None:
        _config = Config.from_env()
    return _config


def reset_config() -> None:
    """Reset the global config instance. Used for testing."""
    global _config
    _config = None
