"""
Application settings management.

Settings are loaded from environment variables with .env file support.
Ritual behaviour (phase timers, scoring policy, streak thresholds) is loaded
from config/ritual_config.yaml. All configuration is validated using Pydantic.
"""

from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from ritual_engine.core.exceptions import ConfigurationError

# config/ shipped next to the ritual_engine package
PROJECT_CONFIG_DIR = Path(__file__).resolve().parent.parent.parent / "config"
RITUAL_CONFIG_FILE = "ritual_config.yaml"


class Settings(BaseSettings):
    """
    Application settings loaded from environment.

    Environment variables take precedence over .env file values.
    """

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # ==========================================================================
    # Paths
    # ==========================================================================

    config_dir: Path = Field(
        default=PROJECT_CONFIG_DIR,
        description="Directory holding ritual_config.yaml and content/catalog.yaml",
    )

    # ==========================================================================
    # Database
    # ==========================================================================

    database_path: Path = Field(
        default=Path("data/ritual.db"), description="Path to SQLite metrics database"
    )

    # ==========================================================================
    # Logging
    # ==========================================================================

    logs_dir: Path = Field(default=Path("logs"), description="Directory for run log files")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_sessions_to_keep: int = Field(
        default=5, ge=1, le=100, description="Number of run log files to retain"
    )


# ============================================================================
# Ritual Configuration (from YAML)
# ============================================================================


class PhaseTimingConfig(BaseModel):
    """Timer configuration for a single ritual phase.

    When the dwell time expires, auto-advance phases move on by themselves;
    the others stop their timer and wait for the user.
    """

    max_dwell_seconds: float = Field(
        default=0.0, ge=0, description="Maximum dwell time (0 = no timer)"
    )
    auto_advance: bool = Field(
        default=False, description="Advance automatically when the timer expires"
    )


class PhasesConfig(BaseModel):
    """Timer configuration for every content phase."""

    preparation: PhaseTimingConfig = Field(
        default_factory=lambda: PhaseTimingConfig(max_dwell_seconds=60, auto_advance=True)
    )
    breathing: PhaseTimingConfig = Field(
        default_factory=lambda: PhaseTimingConfig(max_dwell_seconds=120, auto_advance=True)
    )
    evocation: PhaseTimingConfig = Field(
        default_factory=lambda: PhaseTimingConfig(max_dwell_seconds=180, auto_advance=True)
    )
    recognition: PhaseTimingConfig = Field(
        default_factory=lambda: PhaseTimingConfig(max_dwell_seconds=300)
    )
    liberation: PhaseTimingConfig = Field(
        default_factory=lambda: PhaseTimingConfig(max_dwell_seconds=300)
    )
    returning: PhaseTimingConfig = Field(
        default_factory=lambda: PhaseTimingConfig(max_dwell_seconds=300)
    )
    cutting: PhaseTimingConfig = Field(
        default_factory=lambda: PhaseTimingConfig(max_dwell_seconds=60)
    )
    sealing: PhaseTimingConfig = Field(
        default_factory=lambda: PhaseTimingConfig(max_dwell_seconds=90)
    )
    renewal: PhaseTimingConfig = Field(
        default_factory=lambda: PhaseTimingConfig(max_dwell_seconds=180)
    )

    def for_phase(self, phase_name: str) -> PhaseTimingConfig:
        """Timer config for a phase name; phases without one get no timer."""
        timing = getattr(self, phase_name, None)
        if isinstance(timing, PhaseTimingConfig):
            return timing
        return PhaseTimingConfig()


class VoiceConfig(BaseModel):
    """Voice reading validation policy."""

    pass_threshold: float = Field(
        default=0.7,
        gt=0.0,
        le=1.0,
        description="Fraction of expected phrases that must be matched to pass",
    )


class ScoringConfig(BaseModel):
    """Points awarded for a completed session."""

    base_points: int = Field(default=100, ge=0)
    points_per_intensity_point: int = Field(default=20, ge=0)
    points_per_passed_validation: int = Field(default=25, ge=0)
    honored_vow_bonus: int = Field(default=50, ge=0)


class SessionConfig(BaseModel):
    """Ritual session configuration."""

    skip_preparation: bool = Field(
        default=False,
        description="Start sessions in the first content phase (preparation done upstream)",
    )


class AchievementConfig(BaseModel):
    """Thresholds for count-based achievements."""

    bond_cutter_sessions: int = Field(default=3, ge=1)
    light_soul_sessions: int = Field(default=21, ge=1)
    streak_master_days: int = Field(default=7, ge=1)
    intensity_master_improvement: int = Field(default=3, ge=1)


class RitualConfig(BaseModel):
    """
    Complete ritual configuration loaded from ritual_config.yaml.

    Holds every policy constant the engine, scorer and ledger use.
    """

    session: SessionConfig = Field(default_factory=SessionConfig)
    phases: PhasesConfig = Field(default_factory=PhasesConfig)
    voice: VoiceConfig = Field(default_factory=VoiceConfig)
    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    achievements: AchievementConfig = Field(default_factory=AchievementConfig)


def load_ritual_config(config_path: Optional[Path] = None) -> RitualConfig:
    """
    Load ritual configuration from YAML file.

    A missing or empty file yields the built-in defaults.

    Args:
        config_path: Path to ritual_config.yaml. If None, uses
            settings.config_dir/ritual_config.yaml.

    Returns:
        RitualConfig with validated settings

    Raises:
        ConfigurationError: The file is not valid YAML or fails validation
    """
    config_path = Path(config_path or settings.config_dir / RITUAL_CONFIG_FILE).resolve()

    if not config_path.exists():
        return RitualConfig()

    try:
        with open(config_path, encoding="utf-8") as f:
            config_data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"{config_path} is not valid YAML: {e}") from e

    if not config_data:
        return RitualConfig()
    if not isinstance(config_data, dict):
        raise ConfigurationError(f"{config_path} must hold a mapping of sections")

    try:
        return RitualConfig(**config_data)
    except PydanticValidationError as e:
        raise ConfigurationError(f"Invalid ritual configuration in {config_path}: {e}") from e


# Global settings instance
settings = Settings()
