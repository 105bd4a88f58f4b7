"""Configuration management using Pydantic Settings."""

import logging
from functools import lru_cache
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class PointsConfig(BaseModel):
    """Points economy parameters."""

    starting_grant: int = 1000  # Balance of an account that has never been touched


class MissionConfig(BaseModel):
    """Mission topic parameters."""

    default_reward: int = 10  # Used when a mission topic has no reward_points metadata


class DatabaseConfig(BaseModel):
    """Storage connection and transient-failure handling."""

    url: str = "sqlite+aiosqlite:///data/clutch.db"
    echo: bool = False
    max_retries: int = 3
    retry_backoff_seconds: float = 0.05


class IdentityConfig(BaseModel):
    """Participant pseudonymization."""

    secret: str = "change-me"


class APIConfig(BaseModel):
    """HTTP adapter parameters."""

    host: str = "0.0.0.0"
    port: int = 8000
    allowed_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000"]
    )
    admin_roles: list[str] = Field(default_factory=lambda: ["admin"])


class Settings(BaseSettings):
    """Main configuration class."""

    # Paths
    data_dir: Path = Path("data")

    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"
    logfire_token: str = ""

    # Nested configuration sections
    points: PointsConfig = Field(default_factory=PointsConfig)
    missions: MissionConfig = Field(default_factory=MissionConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    identity: IdentityConfig = Field(default_factory=IdentityConfig)
    api: APIConfig = Field(default_factory=APIConfig)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("data_dir", mode="after")
    @classmethod
    def resolve_data_dir(cls, v: Path) -> Path:
        """Resolve data directory to absolute path."""
        return v.resolve()

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment.lower() == "development"

    def load_yaml_config(self) -> None:
        """Load and merge YAML configuration."""
        config_path = self.data_dir / "config.yaml"

        if not config_path.exists():
            logger.debug(f"Config file not found: {config_path}. Using defaults.")
            return

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                yaml_config = yaml.safe_load(f)

            if not yaml_config:
                logger.warning(f"Empty config file: {config_path}")
                return

            for section_name in ["points", "missions", "database", "identity", "api"]:
                if section_name in yaml_config:
                    section = getattr(self, section_name)
                    section_dict = section.model_dump()
                    section_dict.update(yaml_config[section_name] or {})
                    setattr(self, section_name, section.__class__(**section_dict))

            logger.info(f"Loaded configuration from {config_path}")

        except yaml.YAMLError as e:
            logger.error(f"Failed to parse YAML config: {e}")
            raise


@lru_cache()
def get_settings() -> Settings:
    """Get singleton Settings instance."""
    settings = Settings()
    settings.load_yaml_config()
    return settings
