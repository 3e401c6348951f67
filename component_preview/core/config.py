"""
Configuration management for Component Preview.
"""

import json
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigurationError

DEFAULT_CONFIG_FILENAME = "preview_config.yaml"

SUPPORTED_STRATEGIES = {"auto", "embedded", "process"}


@dataclass
class CompilerConfig:
    """Configuration for compiling the synthetic unit."""

    strategy: str = "auto"  # auto | embedded | process
    optimize: int = -1  # same meaning as compile(optimize=...)
    process_timeout_seconds: int = 60


@dataclass
class PreviewConfig:
    """Main engine configuration."""

    throttle_seconds: float = 2.5
    compiler: CompilerConfig = field(default_factory=CompilerConfig)
    temp_root: str | None = None
    unit_prefix: str = "_preview_unit_"
    log_level: str = "WARNING"
    worker_threads: int | None = None

    def __post_init__(self) -> None:
        strategy = str(self.compiler.strategy or "auto").strip().lower()
        if strategy not in SUPPORTED_STRATEGIES:
            raise ConfigurationError(
                f"Unsupported compiler strategy '{self.compiler.strategy}'. "
                f"Supported: {', '.join(sorted(SUPPORTED_STRATEGIES))}"
            )
        self.compiler.strategy = strategy
        if self.throttle_seconds < 0:
            raise ConfigurationError("throttle_seconds must not be negative")
        if not self.unit_prefix.isidentifier():
            raise ConfigurationError(f"unit_prefix '{self.unit_prefix}' is not an identifier")

    @classmethod
    def load_from_file(cls, config_path: Path) -> "PreviewConfig":
        """Load configuration from a YAML or JSON file."""
        if not config_path.exists():
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        try:
            with open(config_path) as f:
                if config_path.suffix.lower() == ".json":
                    data = json.load(f)
                else:
                    data = yaml.safe_load(f)
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Failed to load configuration: {e}") from e

        return cls.from_dict(data or {})

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PreviewConfig":
        """Build a configuration from plain data, ignoring unknown keys."""
        if not isinstance(data, dict):
            raise ConfigurationError("Configuration root must be a mapping")

        valid_fields = {
            "throttle_seconds",
            "compiler",
            "temp_root",
            "unit_prefix",
            "log_level",
            "worker_threads",
        }
        filtered_data = {k: v for k, v in data.items() if k in valid_fields}

        compiler_data = filtered_data.get("compiler") or {}
        if not isinstance(compiler_data, dict):
            compiler_data = {}
        try:
            filtered_data["compiler"] = CompilerConfig(**compiler_data)
            config = cls(**filtered_data)
        except TypeError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

        config._apply_env_overrides()
        return config

    @classmethod
    def discover(cls, project_dir: Path | None = None) -> "PreviewConfig":
        """Load ``preview_config.yaml`` from the project directory, or defaults."""
        project_dir = project_dir or Path.cwd()
        config_path = project_dir / DEFAULT_CONFIG_FILENAME
        if config_path.exists():
            return cls.load_from_file(config_path)
        config = cls()
        config._apply_env_overrides()
        return config

    def _apply_env_overrides(self) -> None:
        """Apply PREVIEW_* environment variables on top of file values."""
        throttle = os.getenv("PREVIEW_THROTTLE_SECONDS")
        if throttle:
            try:
                self.throttle_seconds = float(throttle)
            except ValueError as e:
                raise ConfigurationError(
                    f"PREVIEW_THROTTLE_SECONDS must be a number, got '{throttle}'"
                ) from e

        strategy = os.getenv("PREVIEW_COMPILER_STRATEGY")
        if strategy:
            strategy = strategy.strip().lower()
            if strategy not in SUPPORTED_STRATEGIES:
                raise ConfigurationError(
                    f"Unsupported compiler strategy '{strategy}' in PREVIEW_COMPILER_STRATEGY"
                )
            self.compiler.strategy = strategy

        log_level = os.getenv("PREVIEW_LOG_LEVEL")
        if log_level:
            self.log_level = log_level.strip().upper()

    def save_to_file(self, config_path: Path) -> None:
        """Save configuration to a YAML or JSON file."""
        data = asdict(self)
        try:
            with open(config_path, "w") as f:
                if config_path.suffix.lower() == ".json":
                    json.dump(data, f, indent=2)
                else:
                    yaml.dump(data, f, default_flow_style=False, indent=2)
        except OSError as e:
            raise ConfigurationError(f"Failed to save configuration: {e}") from e
