#!/usr/bin/env python3

import os
import json
import tomllib
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Optional

import logging
import sys

import toml
import yaml

from .domain.package import Selector
from .domain.instant import parse_duration
from .exit_codes import ConfigError

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s: %(message)s",
    handlers=[
        logging.StreamHandler(sys.stderr) # Default to stderr
    ]
)
logger = logging.getLogger("debsnapgit")


def get_config_path():
    """Get the path to the configuration file.

    Checks in order:
    1. DEBSNAPGIT_CONFIG environment variable
    2. ~/.debsnapgit/ directory
    """
    # Check for environment variable override
    if 'DEBSNAPGIT_CONFIG' in os.environ:
        path = Path(os.environ['DEBSNAPGIT_CONFIG'])
        if path.exists():
            return path

    config_dir = Path.home() / '.debsnapgit'
    for filename in ['config.json', 'config.toml', 'config.yaml', 'config.yml']:
        path = config_dir / filename
        if path.exists() and path.stat().st_size > 10:  # Not empty/trivial
            return path

    # If no file exists, return default path for saving
    return config_dir / 'config.json'


def load_config():
    """Load configuration from file."""
    config_path = get_config_path()

    # Start with default config
    config = get_default_config()

    # Load from file if it exists
    if config_path.exists():
        try:
            if config_path.suffix.lower() in ['.toml']:
                with open(config_path, 'rb') as f:
                    file_config = tomllib.load(f)
            elif config_path.suffix.lower() in ['.yaml', '.yml']:
                with open(config_path, 'r') as f:
                    file_config = yaml.safe_load(f) or {}
            else:
                # Default to JSON format
                with open(config_path, 'r') as f:
                    file_config = json.load(f)
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise ConfigError(f"Error loading config from {config_path}: {e}") from e

        if not isinstance(file_config, dict):
            raise ConfigError(f"Config file {config_path} must contain a mapping")

        # Merge file config with defaults
        config = merge_configs(config, file_config)

    # Apply environment variable overrides
    config = apply_env_overrides(config)

    return config


def save_config(config, config_path: Optional[Path] = None):
    """Save configuration to file."""
    config_path = config_path or get_config_path()

    # Create directory if it doesn't exist
    config_path.parent.mkdir(parents=True, exist_ok=True)

    if config_path.suffix.lower() in ['.toml']:
        with open(config_path, 'w') as f:
            toml.dump(_without_nulls(config), f)
    elif config_path.suffix.lower() in ['.yaml', '.yml']:
        with open(config_path, 'w') as f:
            yaml.safe_dump(config, f, default_flow_style=False)
    else:
        # Default to JSON format
        with open(config_path, 'w') as f:
            json.dump(config, f, indent=2)

    logger.info(f"Configuration saved to {config_path}")
    return config_path


def _without_nulls(config):
    # TOML has no null
    if isinstance(config, dict):
        return {k: _without_nulls(v) for k, v in config.items() if v is not None}
    return config


def get_default_config():
    """Get default configuration."""
    return {
        "archive": {
            "base_url": "https://snapshot.debian.org/archive",
            "name": "debian",
            "timeout_seconds": None,  # None: transport default (no timeout)
        },
        "snapshot": {
            "distribution": "sid",
            "component": "main",
            "architecture": "amd64",
            "repository_path": "~/debsnapgit-archive",
            "step": "6h",
            "lookback": "30d",
        },
        "git": {
            "user_name": "debsnapgit",
            "user_email": "debsnapgit@localhost",
            "timeout_seconds": 600,
        },
        "logging": {
            "level": "INFO",
            "format": "%(levelname)s: %(message)s"
        },
    }


def configure_logging(config, verbose: bool = False) -> None:
    """Apply the logging section of the config to the root logger."""
    log_config = config.get('logging', {})
    level_name = 'DEBUG' if verbose else str(log_config.get('level', 'INFO')).upper()
    level = getattr(logging, level_name, None)
    if not isinstance(level, int):
        raise ConfigError(f"Unknown logging level: {level_name}")

    root = logging.getLogger()
    root.setLevel(level)
    formatter = logging.Formatter(log_config.get('format', '%(levelname)s: %(message)s'))
    for handler in root.handlers:
        handler.setFormatter(formatter)


def merge_configs(base_config, override_config):
    """
    Recursively merge two configuration dictionaries.

    Args:
        base_config (dict): Base configuration
        override_config (dict): Configuration to merge/override with

    Returns:
        dict: Merged configuration
    """
    merged = base_config.copy()

    for key, value in override_config.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            # Recursively merge nested dictionaries
            merged[key] = merge_configs(merged[key], value)
        else:
            # Override or add new key
            merged[key] = value

    return merged


def apply_env_overrides(config):
    """
    Apply environment variable overrides to configuration.
    Environment variables follow the pattern: DEBSNAPGIT_SECTION_KEY
    For example: DEBSNAPGIT_SNAPSHOT_DISTRIBUTION=bookworm
    """
    env_prefix = "DEBSNAPGIT_"

    for env_key, value in os.environ.items():
        if not env_key.startswith(env_prefix) or env_key == "DEBSNAPGIT_CONFIG":
            continue

        key_parts = env_key[len(env_prefix):].lower().split('_')

        # Convert value
        if value.lower() in ('true', 'yes', 'on'):
            typed_value = True
        elif value.lower() in ('false', 'no', 'off'):
            typed_value = False
        elif value.isdigit():
            typed_value = int(value)
        else:
            typed_value = value

        current_level = config
        i = 0
        while i < len(key_parts):
            # Find the longest key in current_level that is a prefix of the remaining key_parts
            best_match_len = 0
            matched_key = None

            for config_key in current_level.keys():
                config_key_parts_from_key = config_key.split('_')
                if key_parts[i : i + len(config_key_parts_from_key)] == config_key_parts_from_key:
                    if len(config_key_parts_from_key) > best_match_len:
                        best_match_len = len(config_key_parts_from_key)
                        matched_key = config_key

            if matched_key:
                # If we are at the end of the env var, we have found the key to set
                if i + best_match_len == len(key_parts):
                    current_level[matched_key] = typed_value
                    break

                # Otherwise, we descend into the dictionary
                if isinstance(current_level[matched_key], dict):
                    current_level = current_level[matched_key]
                    i += best_match_len
                else:
                    # Path conflict, e.g., env var is longer but we found a non-dict value
                    break
            else:
                # No match found
                break

    return config


@dataclass
class WalkConfig:
    """Typed view of the settings a walk needs."""
    selector: Selector
    repository_path: Path
    step: timedelta
    lookback: timedelta
    base_url: str
    archive_name: str
    http_timeout: Optional[float]
    git_user_name: str
    git_user_email: str
    git_timeout: Optional[int]

    @classmethod
    def from_config(cls, config) -> 'WalkConfig':
        """
        Build from a loaded config dict.

        Raises:
            ConfigError: If a value is missing or malformed
        """
        snapshot = config.get('snapshot', {})
        archive = config.get('archive', {})
        git = config.get('git', {})

        try:
            selector = Selector(
                distribution=str(snapshot['distribution']),
                component=str(snapshot['component']),
                architecture=str(snapshot['architecture']),
            )
            for name in ('distribution', 'component', 'architecture'):
                if not getattr(selector, name):
                    raise ConfigError(f"snapshot.{name} must not be empty")
            step = parse_duration(str(snapshot.get('step', '6h')))
            lookback = parse_duration(str(snapshot.get('lookback', '30d')))
            timeout = archive.get('timeout_seconds')
            git_timeout = git.get('timeout_seconds')
            return cls(
                selector=selector,
                repository_path=Path(str(snapshot['repository_path'])).expanduser(),
                step=step,
                lookback=lookback,
                base_url=str(archive['base_url']),
                archive_name=str(archive.get('name', 'debian')),
                http_timeout=float(timeout) if timeout else None,
                git_user_name=str(git.get('user_name', 'debsnapgit')),
                git_user_email=str(git.get('user_email', 'debsnapgit@localhost')),
                git_timeout=int(git_timeout) if git_timeout else None,
            )
        except KeyError as e:
            raise ConfigError(f"Missing configuration value: {e.args[0]}") from e
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid configuration: {e}") from e
