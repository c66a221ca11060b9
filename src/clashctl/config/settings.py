"""Settings for one clashctl invocation.

Priority chain (highest to lowest):
  1. CLI flags      (``--json``, ``--timeout``, ...)
  2. Env vars       ``CLASHCTL_*``; nested keys use ``__`` (``CLASHCTL_FETCH__TIMEOUT``)
  3. ``clashctl.toml``  found via ``-c``, ``$CLASHCTL_CONFIG`` or a walk up from the CWD
  4. Defaults baked into the section models

The directory holding ``clashctl.toml`` is the data root; the rule store
lives under it. Without a config file the CWD is the data root.
"""

from __future__ import annotations

import os
import threading
import tomllib
from pathlib import Path
from typing import Any

import click
from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from clashctl.config.models import ExportConfig, FetchConfig, StoreConfig

CONFIG_FILENAME = "clashctl.toml"
CONFIG_ENV_VAR = "CLASHCTL_CONFIG"


def find_config(start: Path | None = None) -> Path | None:
    """Locate ``clashctl.toml`` the way git locates ``.git/``.

    ``$CLASHCTL_CONFIG`` wins when set; a path there that is not a file
    means "no config" rather than falling back to the walk.
    """
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        p = Path(env_path)
        return p if p.is_file() else None

    current = (start or Path.cwd()).resolve()
    for directory in (current, *current.parents):
        candidate = directory / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None


def _read_toml(path: Path | None) -> dict[str, Any]:
    if path is None or not path.is_file():
        return {}
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise click.ClickException(f"Invalid TOML in {path}: {exc}") from exc


# TOML data for the settings object under construction on this thread.
_pending = threading.local()


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Serve the sections parsed from ``clashctl.toml``."""

    def __init__(self, settings_cls: type[BaseSettings]) -> None:
        super().__init__(settings_cls)
        self._data: dict[str, Any] = getattr(_pending, "toml", None) or {}

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        return self._data.get(field_name), field_name, field_name in self._data

    def __call__(self) -> dict[str, Any]:
        return self._data


class ClashSettings(BaseSettings):
    """Frozen view of every knob clashctl reads.

    Attributes:
        data_root: Directory the store lives under.
        config_path: The ``clashctl.toml`` that was loaded, if any.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "CLASHCTL_",
        "env_nested_delimiter": "__",
    }

    data_root: Path = Field(default_factory=Path.cwd)
    config_path: Path | None = None

    # Output and logging flags
    json_output: bool = False
    quiet: bool = False
    verbose: bool = False
    log_json: bool = False

    store: StoreConfig = Field(default_factory=StoreConfig)
    fetch: FetchConfig = Field(default_factory=FetchConfig)
    export: ExportConfig = Field(default_factory=ExportConfig)

    @property
    def store_dir(self) -> Path:
        """Directory holding the database and its backups."""
        return self.data_root / self.store.dirname

    @property
    def db_path(self) -> Path:
        return self.store_dir / self.store.filename

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (init_settings, env_settings, TomlSettingsSource(settings_cls))

    @classmethod
    def from_cli(
        cls,
        *,
        config_path: str | None = None,
        data_root: Path | None = None,
        fetch_timeout: float | None = None,
        **cli_flags: Any,
    ) -> ClashSettings:
        """Build settings for a CLI invocation.

        *fetch_timeout* overrides ``[fetch] timeout`` only; the rest of
        the section still comes from env and TOML. Bad values anywhere in
        the chain surface as a :class:`click.ClickException` naming the
        config file.
        """
        toml_path: Path | None
        if config_path:
            p = Path(config_path)
            toml_path = p if p.is_file() else None
        else:
            toml_path = find_config(data_root)

        if data_root is None:
            data_root = toml_path.parent if toml_path else Path.cwd()
        if fetch_timeout is not None:
            cli_flags["fetch"] = {"timeout": fetch_timeout}

        _pending.toml = _read_toml(toml_path)
        try:
            return cls(data_root=data_root, config_path=toml_path, **cli_flags)
        except ValidationError as exc:
            where = f" (config: {toml_path})" if toml_path else ""
            problems = "; ".join(
                f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()
            )
            raise click.ClickException(f"Invalid settings{where}: {problems}") from exc
        finally:
            _pending.toml = None
