"""
Merge configuration, loaded from YAML files or the environment.
"""

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml

from .errors import ConfigError
from .models import DuplicatePolicy


logger = logging.getLogger(__name__)

ENV_PREFIX = "HCL_MERGE_"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class MergeConfig:
    """Settings for HCLMerger"""
    duplicate_blocks: DuplicatePolicy = DuplicatePolicy.LAST
    metrics_enabled: bool = True
    log_level: Optional[str] = None  # applied to the hcl_merge logger when set

    @staticmethod
    def from_file(filepath: Union[str, Path]) -> "MergeConfig":
        """Load configuration from YAML file"""
        filepath = Path(filepath)

        with open(filepath, 'r') as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid configuration file {filepath}: {e}") from e

        # Top-level 'hcl_merge' section is optional
        if isinstance(data, dict) and isinstance(data.get('hcl_merge'), dict):
            data = data['hcl_merge']

        logger.debug(f"Loaded merge configuration from {filepath}")
        return MergeConfig.from_dict(data or {})

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "MergeConfig":
        """Parse configuration from dictionary"""
        if not isinstance(data, dict):
            raise ConfigError(f"Configuration must be a mapping, got {type(data).__name__}")

        known = {f.name for f in fields(MergeConfig)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown configuration keys: {', '.join(unknown)}")

        config = MergeConfig()

        if 'duplicate_blocks' in data:
            config.duplicate_blocks = _parse_policy(data['duplicate_blocks'])

        if 'metrics_enabled' in data:
            config.metrics_enabled = _parse_bool('metrics_enabled', data['metrics_enabled'])

        if data.get('log_level') is not None:
            config.log_level = _parse_log_level(data['log_level'])

        return config

    @staticmethod
    def from_env(environ: Optional[Mapping[str, str]] = None) -> "MergeConfig":
        """Build configuration from HCL_MERGE_* environment variables"""
        if environ is None:
            environ = os.environ

        data: Dict[str, Any] = {}
        for f in fields(MergeConfig):
            value = environ.get(ENV_PREFIX + f.name.upper())
            if value is not None and value != "":
                data[f.name] = value

        return MergeConfig.from_dict(data)

    def apply_logging(self):
        """
        Set the hcl_merge logger level if configured.

        The logger is process-wide, so this is never done implicitly;
        applications call it once at startup when they want the level.
        """
        if self.log_level:
            logging.getLogger("hcl_merge").setLevel(self.log_level)


def _parse_policy(value: Any) -> DuplicatePolicy:
    if isinstance(value, DuplicatePolicy):
        return value
    try:
        return DuplicatePolicy(str(value).lower())
    except ValueError:
        choices = ", ".join(p.value for p in DuplicatePolicy)
        raise ConfigError(f"Invalid duplicate_blocks policy {value!r} (expected one of: {choices})")


def _parse_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).lower()
    if text in ('true', '1', 'yes', 'on'):
        return True
    if text in ('false', '0', 'no', 'off'):
        return False
    raise ConfigError(f"Invalid boolean for {name}: {value!r}")


def _parse_log_level(value: Any) -> str:
    level = str(value).upper()
    if level not in LOG_LEVELS:
        raise ConfigError(f"Invalid log_level {value!r} (expected one of: {', '.join(LOG_LEVELS)})")
    return level
