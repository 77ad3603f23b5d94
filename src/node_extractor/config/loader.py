"""Extractor configuration: YAML file plus command-line overrides."""

from pathlib import Path
from typing import Optional, Union

import yaml
from pydantic import ValidationError

from node_extractor.config.schema import ExtractorConfig


DEFAULT_CONFIG_PATH = Path.home() / ".node-extractor" / "config.yaml"


class ConfigError(Exception):
    """The config file or an override value is unusable."""


def load_config(path: Optional[Path] = None) -> ExtractorConfig:
    """Read the extractor configuration.

    Args:
        path: YAML file to read (default: ``~/.node-extractor/config.yaml``).
              A missing or empty file yields the built-in defaults.

    Returns:
        ExtractorConfig with file values layered over the defaults

    Raises:
        ConfigError: The file is not valid YAML or fails validation
    """
    config_path = path or DEFAULT_CONFIG_PATH
    if not config_path.is_file():
        return ExtractorConfig()

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f)
        if not raw:
            return ExtractorConfig()
        return ExtractorConfig.model_validate(raw)

    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"Configuration validation failed: {e}") from e
    except (OSError, TypeError) as e:
        raise ConfigError(f"Could not read config {config_path}: {e}") from e


def save_config(config: ExtractorConfig, path: Optional[Union[str, Path]] = None) -> None:
    """Write ``config`` as YAML, creating parent directories.

    Args:
        config: Configuration to write
        path: Target file (default: ``~/.node-extractor/config.yaml``)
    """
    target = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    target.parent.mkdir(parents=True, exist_ok=True)

    with open(target, "w", encoding="utf-8") as f:
        yaml.safe_dump(config.model_dump(), f, default_flow_style=False, sort_keys=False)


def apply_overrides(
    config: ExtractorConfig,
    *,
    output_dir: Optional[str] = None,
    registry_url: Optional[str] = None,
    load_timeout: Optional[float] = None,
    verbose: Optional[bool] = None,
) -> ExtractorConfig:
    """Return a copy of ``config`` with command-line values applied.

    ``None`` leaves the loaded value in place.
    """
    updated = config.model_copy(deep=True)
    if output_dir is not None:
        updated.output.directory = output_dir
    if registry_url is not None:
        updated.registry.url = registry_url.rstrip("/")
    if load_timeout is not None:
        if load_timeout <= 0:
            raise ConfigError(f"Load timeout must be positive, got {load_timeout}")
        updated.loader.timeout = load_timeout
    if verbose is not None:
        updated.verbose = verbose
    return updated
