"""Configuration management for Treepatch."""

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field

from . import CONFIG_FILE, DEFAULT_COMPRESSION_LEVEL

logger = logging.getLogger(__name__)

# <major>.<minor> with optional further numeric parts
_VERSION_PATTERN = re.compile(r"\d+(?:\.\d+)+")

# camelCase key names accepted from older config files
_LEGACY_KEYS = {
    "tarFileName": "archive_name",
    "gzipCompression": "compression_level",
    "createListFile": "create_manifest",
    "createOnlyListFile": "manifest_only",
    "pack": "version",
}

# Keys whose scalar is kept exactly as written, so "2.10" is not read as 2.1
_VERSION_KEYS = frozenset({"pack", "version"})
_INT_TAG = "tag:yaml.org,2002:int"
_FLOAT_TAG = "tag:yaml.org,2002:float"


class ConfigLoader(yaml.SafeLoader):
    """YAML SafeLoader subclass that reads version tags as text.

    Uses a dedicated subclass so the global ``yaml.SafeLoader`` is never
    modified.
    """

    def construct_mapping(self, node, deep=False):
        mapping = super().construct_mapping(node, deep=deep)
        for key_node, value_node in node.value:
            if (
                isinstance(key_node, yaml.ScalarNode)
                and key_node.value in _VERSION_KEYS
                and isinstance(value_node, yaml.ScalarNode)
                and value_node.tag in (_INT_TAG, _FLOAT_TAG)
            ):
                mapping[key_node.value] = value_node.value
        return mapping


class DirectoriesConfig(BaseModel):
    """Locations of the trees being compared and of the delta output."""

    model_config = ConfigDict(frozen=True)

    old: str = "old/"
    new: str = "new/"
    out: str = "out/"


class PatcherConfig(BaseModel):
    """Configuration for a single patch run.

    Built once at startup and passed explicitly to every component.
    """

    model_config = ConfigDict(frozen=True)

    directories: DirectoriesConfig = Field(default_factory=DirectoriesConfig)
    archive_name: str = "newFiles"
    # Raw value; the archive builder clamps it to [0, 9]
    compression_level: Any = DEFAULT_COMPRESSION_LEVEL
    create_manifest: bool = False
    manifest_only: bool = False
    version: str | None = None
    delta_command: str = "xdelta3"
    delta_workers: int = Field(default=1, ge=1)

    @property
    def writes_manifest(self) -> bool:
        """A manifest-only run always produces the manifest."""
        return self.create_manifest or self.manifest_only

    @property
    def package_version(self) -> str | None:
        """The version tag if packaging is enabled for this run."""
        return normalize_version(self.version)


def normalize_version(value: object) -> str | None:
    """Return the version string if it is a usable package tag, else None."""
    if value is None or value is False:
        return None
    version = str(value).strip()
    if _VERSION_PATTERN.fullmatch(version):
        return version
    logger.warning("Ignoring invalid version %r; packaging disabled", value)
    return None


def get_config_path(work_dir: Path) -> Path:
    """Get the default config file path."""
    return work_dir / CONFIG_FILE


def load_config(config_path: Path) -> PatcherConfig:
    """Load configuration from a YAML file.

    A missing file is created with the default configuration, the same
    way the first run of the tool bootstraps its config.
    Environment variables can override config values.
    """
    if config_path.exists():
        with open(config_path, encoding="utf-8") as f:
            data = yaml.load(f, Loader=ConfigLoader) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file {config_path} must contain a mapping")
        config = PatcherConfig.model_validate(_normalize_keys(data))
    else:
        logger.info("No config file found at %s. Creating...", config_path)
        config = PatcherConfig()
        save_config(config, config_path)

    return _apply_env_overrides(config)


def save_config(config: PatcherConfig, config_path: Path) -> None:
    """Save configuration to a YAML file."""
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, "w", encoding="utf-8") as f:
        yaml.safe_dump(config.model_dump(), f, sort_keys=False)


def apply_overrides(config: PatcherConfig, **overrides: Any) -> PatcherConfig:
    """Return a copy of config with every non-None override applied.

    Directory overrides are given as ``old``, ``new`` and ``out``.
    """
    data = config.model_dump()
    for key in ("old", "new", "out"):
        value = overrides.pop(key, None)
        if value is not None:
            data["directories"][key] = str(value)
    for key, value in overrides.items():
        if value is not None:
            data[key] = value
    return PatcherConfig.model_validate(data)


def _normalize_keys(data: dict[str, Any]) -> dict[str, Any]:
    """Map legacy key names and merge nested sections over the defaults."""
    result: dict[str, Any] = {}
    for key, value in data.items():
        result[_LEGACY_KEYS.get(key, key)] = value

    # Legacy files store "pack: false" when packaging is off
    if result.get("version") is False:
        result["version"] = None

    directories = result.get("directories")
    if isinstance(directories, dict):
        merged = DirectoriesConfig().model_dump()
        merged.update({k: str(v) for k, v in directories.items() if v is not None})
        result["directories"] = merged

    # Drop keys that only mattered to the legacy loader
    result.pop("configFile", None)
    return result


def _apply_env_overrides(config: PatcherConfig) -> PatcherConfig:
    """Apply environment variable overrides to config."""
    data = config.model_dump()

    # TREEPATCH_DELTA_COMMAND
    if command := os.environ.get("TREEPATCH_DELTA_COMMAND"):
        data["delta_command"] = command

    # TREEPATCH_DELTA_WORKERS
    if workers := os.environ.get("TREEPATCH_DELTA_WORKERS"):
        try:
            data["delta_workers"] = max(1, int(workers))
        except ValueError:
            logger.warning("Ignoring non-numeric TREEPATCH_DELTA_WORKERS=%r", workers)

    return PatcherConfig.model_validate(data)
