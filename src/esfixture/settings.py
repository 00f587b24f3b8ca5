"""Fixture configuration using pydantic-settings.

Settings are loaded once, when the session starts, from (in priority order)
explicit overrides, an optional YAML config file, ``ESFIXTURE_*`` environment
variables and a ``.env`` file. For nested settings, use double underscore:
ESFIXTURE_HOSTS='[{"host": "es", "port": 9200}]'.

The YAML file accepts the camelCase keys used by suite configuration files
(``snapshotPath``, ``populateBeforeTest``...) as well as snake_case ones.
"""

import os
from functools import cached_property
from pathlib import Path
from typing import Any

import yaml
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from esfixture.exceptions import ConfigurationError
from esfixture.models import AllIndexes, IndexSelection, PopulationMode, SpecificIndexes

DEFAULT_REPOSITORY_NAME = "codeception"

# Keys a YAML suite file may nest the settings under.
SECTION_KEYS = ("Elasticsearch", "elasticsearch", "esfixture")

CAMEL_CASE_KEYS = {
    "snapshotPath": "snapshot_path",
    "snapshotName": "snapshot_name",
    "compressedSnapshot": "compressed_snapshot",
    "populateBeforeTest": "populate_before_test",
    "populateBeforeSuite": "populate_before_suite",
    "projectRoot": "project_root",
    "repositoryName": "repository_name",
    "releaseRepositoryOnFailure": "release_repository_on_failure",
    "logFormat": "log_format",
}


class HostSettings(BaseModel):
    """A single Elasticsearch node."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True, extra="forbid")

    host: str = Field("localhost", min_length=1, description="Node host name")
    port: int = Field(9200, ge=1, le=65535, description="Node HTTP port")
    user: str = Field("elastic", description="Basic auth user, empty for none")
    password: str = Field(
        "",
        validation_alias=AliasChoices("password", "pass"),
        description="Basic auth password",
    )
    scheme: str = Field("http", pattern="^https?$", description="Transport scheme")

    @property
    def url(self) -> str:
        return f"{self.scheme}://{self.host}:{self.port}"


class FixtureSettings(BaseSettings):
    """Connection configuration and feature flags for the fixture controller."""

    model_config = SettingsConfigDict(
        env_prefix="ESFIXTURE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_nested_delimiter="__",
        extra="ignore",
        frozen=True,
    )

    hosts: list[HostSettings] = Field(
        default_factory=lambda: [HostSettings()],  # type: ignore[call-arg]
        min_length=1,
        description="Elasticsearch hosts",
    )

    # Snapshot population
    snapshot_path: str | None = Field(None, description="Snapshot directory, relative to project_root")
    snapshot_name: str | None = Field(None, description="Snapshot to restore")
    compressed_snapshot: bool = Field(True, description="Whether the snapshot is compressed")
    populate_before_test: bool = Field(False, description="Restore the snapshot before each test")
    populate_before_suite: bool = Field(False, description="Restore the snapshot once per session")
    repository_name: str = Field(
        DEFAULT_REPOSITORY_NAME,
        min_length=1,
        description="Name of the ephemeral snapshot repository registration",
    )
    release_repository_on_failure: bool = Field(
        False,
        description="Delete the repository registration even when the restore fails",
    )
    project_root: Path = Field(default_factory=Path.cwd, description="Base directory for snapshot_path")

    # Cleanup
    cleanup: bool = Field(False, description="Delete indexes after each populated test or session")
    indexes: list[str] | None = Field(None, description="Indexes to delete; all indexes when unset")

    # Logging
    log_format: str = Field("console", pattern="^(console|json)$", description="structlog renderer")

    @model_validator(mode="after")
    def _check_snapshot(self) -> "FixtureSettings":
        if self.population_mode is not PopulationMode.NOT_POPULATED:
            missing = [
                name for name in ("snapshot_path", "snapshot_name") if not getattr(self, name)
            ]
            if missing:
                raise ValueError(f"populating requires {' and '.join(missing)} to be set")
        return self

    @cached_property
    def index_selection(self) -> IndexSelection:
        """Indexes targeted by cleanup."""
        if self.indexes is None:
            return AllIndexes()
        return SpecificIndexes(tuple(self.indexes))

    @cached_property
    def population_mode(self) -> PopulationMode:
        return PopulationMode.from_flags(self.populate_before_test, self.populate_before_suite)

    @property
    def snapshot_location(self) -> Path:
        """Filesystem location registered for the snapshot repository."""
        if not self.snapshot_path:
            raise ConfigurationError("snapshot_path is not configured")
        return self.project_root / self.snapshot_path


def normalize_keys(data: dict[str, Any]) -> dict[str, Any]:
    """Map camelCase suite-file keys onto settings field names."""
    return {CAMEL_CASE_KEYS.get(key, key): value for key, value in data.items()}


def read_config_file(path: str | Path) -> dict[str, Any]:
    """
    Read fixture settings from a YAML file.

    The mapping may sit at the top level or under one of ``SECTION_KEYS``.

    Raises:
        ConfigurationError: If the file is missing or not a mapping
    """
    path = Path(path)
    try:
        with path.open(encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except OSError as e:
        raise ConfigurationError(f"cannot read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"invalid YAML in config file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"config file {path} must contain a mapping")

    for key in SECTION_KEYS:
        if isinstance(data.get(key), dict):
            return data[key]
    return data


def load_settings(
    path: str | Path | None = None,
    defaults: dict[str, Any] | None = None,
    **overrides: Any,
) -> FixtureSettings:
    """
    Load fixture settings.

    Args:
        path: Optional YAML config file
        defaults: Values used only when neither the config file nor an
            ``ESFIXTURE_*`` environment variable sets them
        **overrides: Values taking priority over the file and the environment

    Returns:
        Validated, read-only settings

    Raises:
        ConfigurationError: If the configuration does not validate
    """
    prefix = FixtureSettings.model_config["env_prefix"]
    environment = {name.upper() for name in os.environ}
    data: dict[str, Any] = {
        key: value
        for key, value in (defaults or {}).items()
        if f"{prefix}{key}".upper() not in environment
    }
    if path is not None:
        data.update(normalize_keys(read_config_file(path)))
    data.update(normalize_keys(overrides))

    try:
        return FixtureSettings(**data)
    except ValidationError as e:
        raise ConfigurationError(f"invalid esfixture settings: {e}") from e
