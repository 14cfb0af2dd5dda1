"""Application configuration using pydantic-settings."""

import functools
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict


def _find_project_root() -> Path:
    """Find project root by locating pyproject.toml."""
    current = Path(__file__).resolve()
    for parent in [current] + list(current.parents):
        if (parent / "pyproject.toml").exists():
            return parent
    return Path(__file__).resolve().parent.parent.parent


class YamlSettingsSource(PydanticBaseSettingsSource):
    """Custom settings source that loads from settings.yaml."""

    def get_field_value(self, field_name: str) -> tuple[Any, str, bool]:
        """Not used - we implement __call__ instead."""
        return None, "", False

    def __call__(self) -> dict[str, Any]:
        """Load settings from YAML file."""
        yaml_path = _find_project_root() / "config" / "settings.yaml"
        if not yaml_path.exists():
            return {}

        with open(yaml_path, encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}

        # Flatten nested structure to match Settings field names
        flattened = {}
        if 'server' in data:
            flattened['host'] = data['server'].get('host')
            flattened['port'] = data['server'].get('port')
        if 'storage' in data:
            flattened['data_dir'] = data['storage'].get('data_dir')
        if 'progression' in data:
            progression = data['progression']
            flattened['xp_per_completion'] = progression.get('xp_per_completion')
            flattened['default_session_minutes'] = progression.get('default_session_minutes')
            flattened['max_update_retries'] = progression.get('max_update_retries')
        if 'leaderboard' in data:
            flattened['leaderboard_limit'] = data['leaderboard'].get('limit')

        # Remove None values
        return {k: v for k, v in flattened.items() if v is not None}


class Settings(BaseSettings):
    """Application settings loaded from environment and config files."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Authentication (optional: None disables the shared-secret check)
    app_secret: str | None = Field(default=None)

    # Progression
    xp_per_completion: int = Field(default=50, gt=0)
    default_session_minutes: int = Field(default=30, gt=0)
    max_update_retries: int = Field(default=5, gt=0)

    # Leaderboard
    leaderboard_limit: int = Field(default=50, gt=0)

    # Server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)

    # Paths
    project_root: Path = Field(default_factory=_find_project_root)
    data_dir: Path | None = Field(default=None)

    @property
    def resolved_data_dir(self) -> Path:
        d = self.data_dir if self.data_dir is not None else self.project_root / "data"
        d.mkdir(parents=True, exist_ok=True)
        return d

    @property
    def store_path(self) -> Path:
        return self.resolved_data_dir / "study_planner.json"

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Customise settings sources to include YAML file.

        Priority order (highest to lowest):
        1. init_settings (arguments passed to Settings())
        2. env_settings (environment variables)
        3. dotenv_settings (.env file)
        4. YamlSettingsSource (settings.yaml)
        5. file_secret_settings
        """
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlSettingsSource(settings_cls),
            file_secret_settings,
        )


@functools.lru_cache
def get_settings() -> Settings:
    """Get application settings singleton."""
    return Settings()
