"""Configuration management for Barcode Sorter."""

import os
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic_settings import (
    BaseSettings,
    JsonConfigSettingsSource,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

DEFAULT_SETTINGS_FILE = "settings.json"


class CollisionPolicy(str, Enum):
    """What to do when the destination file already exists."""

    ERROR = "error"
    SUFFIX = "suffix"


class Settings(BaseSettings):
    """Application settings.

    Sources, highest priority first: constructor arguments, environment
    variables (``BARSORT_*``), ``.env``, then ``settings.json`` in the
    working directory.
    """

    # Folders
    input_folder: Optional[str] = None
    output_folder: Optional[str] = None

    # Processing
    render_dpi: int = 200
    max_workers: int = os.cpu_count() or 1
    document_timeout: Optional[float] = None
    collision_policy: CollisionPolicy = CollisionPolicy.ERROR

    # Logging
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="BARSORT_",
        env_file=".env",
        env_file_encoding="utf-8",
        json_file=DEFAULT_SETTINGS_FILE,
        json_file_encoding="utf-8",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            JsonConfigSettingsSource(settings_cls),
            file_secret_settings,
        )

    @property
    def input_path(self) -> Optional[Path]:
        """Input folder as Path object."""
        return Path(self.input_folder) if self.input_folder else None

    @property
    def output_path(self) -> Optional[Path]:
        """Output folder as Path object."""
        return Path(self.output_folder) if self.output_folder else None


def load_settings(settings_file: Optional[Path] = None, **overrides) -> Settings:
    """Load settings, optionally from a JSON file other than ``settings.json``.

    Args:
        settings_file: Path to a JSON settings file.
        **overrides: Explicit values that win over every file source.

    Returns:
        Populated Settings instance.
    """
    overrides = {key: value for key, value in overrides.items() if value is not None}
    if settings_file is None:
        return Settings(**overrides)

    settings_file = Path(settings_file)
    if not settings_file.exists():
        raise FileNotFoundError(f"Settings file not found: {settings_file}")

    class _FileSettings(Settings):
        model_config = SettingsConfigDict(json_file=settings_file)

    return _FileSettings(**overrides)


settings = Settings()
