from __future__ import annotations

from contextvars import ContextVar
from pathlib import Path
from typing import Any, Literal, Self

import yaml
from pydantic import (
    BaseModel,
    Field,
    ValidationError,
    ValidationInfo,
    field_validator,
    model_validator,
)
from pydantic.fields import FieldInfo
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from gitscribe.constants import (
    DEFAULT_BLAME_TTL_SECONDS,
    DEFAULT_BRANCH_TTL_SECONDS,
    DEFAULT_DEBOUNCE_SECONDS,
    DEFAULT_DIFF_TTL_SECONDS,
    DEFAULT_GUTTER_PROXIMITY,
)
from gitscribe.exceptions import ConfigError
from gitscribe.logging import get_logger

__all__ = [
    "GitScribeConfig",
    "CacheConfig",
    "ParserConfig",
    "load_config",
    "get_user_config_path",
    "PROJECT_CONFIG_NAME",
]

logger = get_logger(__name__)

PROJECT_CONFIG_NAME = "gitscribe.yaml"


class CacheConfig(BaseModel):
    """Settings for one caching service.

    Attributes:
        debounce_seconds: Window during which repeated requests for the same
            key collapse into one fetch (default: 0.3s).
        ttl_seconds: Maximum age of a cached result before it is refetched.
        enabled: When False, every ``get`` goes straight to the fetcher.
    """

    debounce_seconds: float = Field(default=DEFAULT_DEBOUNCE_SECONDS, ge=0.0, le=10.0)
    ttl_seconds: float = Field(default=DEFAULT_DIFF_TTL_SECONDS, gt=0.0, le=86400.0)
    enabled: bool = True


def _blame_cache_defaults() -> CacheConfig:
    return CacheConfig(ttl_seconds=DEFAULT_BLAME_TTL_SECONDS)


def _diff_cache_defaults() -> CacheConfig:
    return CacheConfig(ttl_seconds=DEFAULT_DIFF_TTL_SECONDS)


def _branch_cache_defaults() -> CacheConfig:
    return CacheConfig(ttl_seconds=DEFAULT_BRANCH_TTL_SECONDS)


_SECTION_TTLS: dict[str, float] = {
    "blame": DEFAULT_BLAME_TTL_SECONDS,
    "diff": DEFAULT_DIFF_TTL_SECONDS,
    "branch": DEFAULT_BRANCH_TTL_SECONDS,
}


class ParserConfig(BaseModel):
    """Settings shared by the format parsers.

    Attributes:
        strict: Raise MalformedLineError instead of skipping malformed lines.
        gutter_proximity: Distance (in lines) within which an addition next
            to a deletion is reported as a modification in diff gutters.
    """

    strict: bool = False
    gutter_proximity: int = Field(default=DEFAULT_GUTTER_PROXIMITY, ge=0, le=100)


class YamlConfigSource(PydanticBaseSettingsSource):
    """Custom settings source that loads from YAML files."""

    def __init__(
        self,
        settings_cls: type[BaseSettings],
        yaml_file: Path | None = None,
    ):
        super().__init__(settings_cls)
        self.yaml_file = yaml_file
        self._config_data: dict[str, Any] = {}
        if yaml_file and yaml_file.exists():
            try:
                with open(yaml_file) as f:
                    loaded = yaml.safe_load(f)
                    if loaded is None:
                        logger.warning("config_file_empty", path=str(yaml_file))
                    elif isinstance(loaded, dict):
                        self._config_data = loaded
                    else:
                        raise ConfigError(
                            message=f"Config file {yaml_file} must contain a mapping",
                            field=None,
                            value=type(loaded).__name__,
                        )
            except yaml.YAMLError as e:
                raise ConfigError(
                    message=f"Invalid YAML in {yaml_file}: {e}",
                    field=None,
                    value=None,
                ) from e

    def get_field_value(
        self, field: FieldInfo, field_name: str
    ) -> tuple[Any, str, bool]:
        """Get value for a specific field from the YAML config."""
        if field_name in self._config_data:
            return self._config_data[field_name], field_name, False
        return None, field_name, False

    def __call__(self) -> dict[str, Any]:
        """Return the complete config data."""
        return self._config_data


class GitScribeConfig(BaseSettings):
    """Root configuration object containing all gitscribe settings."""

    model_config = SettingsConfigDict(
        env_prefix="GITSCRIBE_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    blame: CacheConfig = Field(default_factory=_blame_cache_defaults)
    diff: CacheConfig = Field(default_factory=_diff_cache_defaults)
    branch: CacheConfig = Field(default_factory=_branch_cache_defaults)
    parser: ParserConfig = Field(default_factory=ParserConfig)
    verbosity: Literal["error", "warning", "info", "debug"] = "warning"

    @field_validator("blame", "diff", "branch", mode="before")
    @classmethod
    def apply_section_ttl(cls, value: Any, info: ValidationInfo) -> Any:
        # A partial section keeps its own service's TTL default
        if isinstance(value, dict) and "ttl_seconds" not in value:
            return {"ttl_seconds": _SECTION_TTLS[info.field_name], **value}
        return value

    @model_validator(mode="after")
    def check_debounce_below_ttl(self) -> Self:
        for name in ("blame", "diff", "branch"):
            section: CacheConfig = getattr(self, name)
            if section.debounce_seconds >= section.ttl_seconds:
                logger.warning(
                    "debounce_exceeds_ttl",
                    section=name,
                    debounce_seconds=section.debounce_seconds,
                    ttl_seconds=section.ttl_seconds,
                )
        return self

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Customize the order of settings sources.

        Priority (highest to lowest):
        1. Init arguments
        2. Environment variables (GITSCRIBE_*)
        3. Project YAML config (./gitscribe.yaml, or the path given to load_config)
        4. User YAML config (~/.config/gitscribe/config.yaml)
        5. Model defaults
        """
        project_config_path = _project_config_path.get() or (
            Path.cwd() / PROJECT_CONFIG_NAME
        )

        return (
            init_settings,
            env_settings,
            YamlConfigSource(settings_cls, project_config_path),
            YamlConfigSource(settings_cls, get_user_config_path()),
        )


# Set by load_config() for the duration of one GitScribeConfig() construction.
_project_config_path: ContextVar[Path | None] = ContextVar(
    "gitscribe_project_config_path", default=None
)


def get_user_config_path() -> Path:
    """Get the path to the user configuration file.

    Returns:
        Path to ~/.config/gitscribe/config.yaml
    """
    return Path.home() / ".config" / "gitscribe" / "config.yaml"


def load_config(config_path: Path | None = None) -> GitScribeConfig:
    """Load configuration with hierarchy: defaults -> user -> project -> env.

    Args:
        config_path: Optional path to project config file. Defaults to
            ./gitscribe.yaml

    Returns:
        GitScribeConfig instance with merged configuration

    Raises:
        ConfigError: If configuration is invalid
    """
    if config_path is None:
        config_path = Path.cwd() / PROJECT_CONFIG_NAME

    if not config_path.exists():
        logger.info("project_config_missing", path=str(config_path))

    token = _project_config_path.set(config_path)
    try:
        return GitScribeConfig()
    except ValidationError as e:
        first_error = e.errors()[0]
        field = ".".join(str(loc) for loc in first_error["loc"])
        raise ConfigError(
            message=f"Invalid configuration: {first_error['msg']}",
            field=field,
            value=first_error.get("input"),
        ) from e
    finally:
        _project_config_path.reset(token)
