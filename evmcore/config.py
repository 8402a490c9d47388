"""
evmcore Configuration System

Configuration management with YAML files, environment variables, schema
validation and runtime updates.

Configuration Sources (in order of precedence):
    1. Environment variables (EVMCORE_*)
    2. Runtime overrides (ConfigManager.set)
    3. User config file (~/.evmcore/config.yaml)
    4. Project config file (./evmcore.yaml)
    5. Default values

Example evmcore.yaml:

    engine:
      stack_limit: 1024
      memory_limit_bytes: 1048576
      step_limit: 100000
      trace_steps: false
    observability:
      log_level: warning
      log_format: text

Copyright (c) 2026 Momentum. All rights reserved.
Contact: engineering@momentum.inc
"""

from __future__ import annotations

import os
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar, Union

import yaml
from jsonschema import Draft202012Validator

T = TypeVar("T")

_JSON_TYPES = {bool: "boolean", int: "integer", float: "number", str: "string"}


class ConfigError(Exception):
    """Configuration error."""
    pass


class ConfigValidationError(ConfigError):
    """Configuration validation error."""

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        self.errors = list(errors or [])
        super().__init__(message)


@dataclass
class ConfigValue(Generic[T]):
    """
    A single configuration value with metadata.

    Supports default values, environment variable binding, validation,
    JSON-schema constraints for file loading, and change callbacks.
    """
    default: T
    env_var: Optional[str] = None
    description: str = ""
    validator: Optional[Callable[[T], bool]] = None
    constraints: Dict[str, Any] = field(default_factory=dict)
    _value: Optional[T] = field(default=None, repr=False)
    _callbacks: List[Callable[[T, T], None]] = field(default_factory=list, repr=False)

    def get(self) -> T:
        """Get the current value."""
        if self.env_var and self.env_var in os.environ:
            return self._coerce(os.environ[self.env_var])
        return self._value if self._value is not None else self.default

    def set(self, value: T) -> None:
        """Set the value with validation."""
        if self.validator and not self.validator(value):
            raise ConfigValidationError(f"Invalid value for config: {value!r}")

        old_value = self.get()
        self._value = value

        for callback in self._callbacks:
            callback(old_value, value)

    def clear(self) -> None:
        """Drop any runtime override."""
        self._value = None

    def _coerce(self, value: str) -> T:
        """Coerce an environment string to the default's type."""
        target_type = type(self.default)

        try:
            if target_type == bool:
                return value.lower() in ("true", "1", "yes", "on")  # type: ignore
            elif target_type == int:
                return int(value, 0)  # type: ignore
            elif target_type == float:
                return float(value)  # type: ignore
            return value  # type: ignore
        except ValueError as e:
            raise ConfigError(f"Cannot parse {self.env_var}={value!r}: {e}") from e

    def on_change(self, callback: Callable[[T, T], None]) -> None:
        """Register a change callback."""
        self._callbacks.append(callback)

    def json_schema(self) -> Dict[str, Any]:
        schema: Dict[str, Any] = {"type": _JSON_TYPES.get(type(self.default), "string")}
        if self.description:
            schema["description"] = self.description
        schema.update(self.constraints)
        return schema


@dataclass
class EngineConfig:
    """Configuration for the execution engine."""
    stack_limit: ConfigValue[int] = field(default_factory=lambda: ConfigValue(
        default=1024,
        env_var="EVMCORE_STACK_LIMIT",
        description="Maximum stack depth (1-1024)",
        validator=lambda x: isinstance(x, int) and 0 < x <= 1024,
        constraints={"minimum": 1, "maximum": 1024},
    ))
    memory_limit_bytes: ConfigValue[int] = field(default_factory=lambda: ConfigValue(
        default=32 * 1024 * 1024,  # 32 MiB
        env_var="EVMCORE_MEMORY_LIMIT",
        description="Maximum memory size in bytes",
        validator=lambda x: isinstance(x, int) and x > 0,
        constraints={"minimum": 1},
    ))
    step_limit: ConfigValue[int] = field(default_factory=lambda: ConfigValue(
        default=0,
        env_var="EVMCORE_STEP_LIMIT",
        description="Maximum instructions per run (0 = unlimited)",
        validator=lambda x: isinstance(x, int) and x >= 0,
        constraints={"minimum": 0},
    ))
    trace_steps: ConfigValue[bool] = field(default_factory=lambda: ConfigValue(
        default=False,
        env_var="EVMCORE_TRACE_STEPS",
        description="Record and log every executed instruction",
    ))


@dataclass
class ObservabilityConfig:
    """Configuration for Observability."""
    log_level: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="info",
        env_var="EVMCORE_LOG_LEVEL",
        description="Log level (debug, info, warning, error, critical)",
        validator=lambda x: x in ("debug", "info", "warning", "error", "critical"),
        constraints={"enum": ["debug", "info", "warning", "error", "critical"]},
    ))
    log_format: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="json",
        env_var="EVMCORE_LOG_FORMAT",
        description="Log format (json, text)",
        validator=lambda x: x in ("json", "text"),
        constraints={"enum": ["json", "text"]},
    ))


@dataclass
class EvmCoreConfig:
    """Root configuration."""
    engine: EngineConfig = field(default_factory=EngineConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    def to_dict(self) -> Dict[str, Any]:
        def extract_values(obj: Any) -> Any:
            if isinstance(obj, ConfigValue):
                return obj.get()
            elif hasattr(obj, "__dataclass_fields__"):
                return {k: extract_values(getattr(obj, k)) for k in obj.__dataclass_fields__}
            return obj

        return extract_values(self)

    def to_yaml(self) -> str:
        return yaml.dump(self.to_dict(), default_flow_style=False)

    def json_schema(self) -> Dict[str, Any]:
        """Draft 2020-12 schema accepted by ConfigManager.load_from_file()."""
        def build(obj: Any) -> Dict[str, Any]:
            if isinstance(obj, ConfigValue):
                return obj.json_schema()
            return {
                "type": "object",
                "additionalProperties": False,
                "properties": {
                    name: build(getattr(obj, name)) for name in obj.__dataclass_fields__
                },
            }

        schema = build(self)
        schema["$schema"] = "https://json-schema.org/draft/2020-12/schema"
        return schema


class ConfigManager:
    """
    Configuration manager with file loading and environment binding.

    Thread-safe singleton that manages configuration lifecycle.
    """

    _instance: Optional["ConfigManager"] = None
    _lock = threading.Lock()

    def __new__(cls) -> "ConfigManager":
        with cls._lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
                cls._instance._initialized = False
            return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self._config = EvmCoreConfig()
        self._config_paths: List[Path] = []
        self._watchers: List[Callable[[EvmCoreConfig], None]] = []
        self._initialized = True

    @property
    def config(self) -> EvmCoreConfig:
        return self._config

    def validator(self) -> Draft202012Validator:
        return Draft202012Validator(self._config.json_schema())

    def load_from_file(self, path: Union[str, Path]) -> None:
        """Load and validate configuration from a YAML file."""
        path = Path(path)
        if not path.exists():
            raise ConfigError(f"Configuration file not found: {path}")

        with open(path) as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid YAML in {path}: {e}") from e

        if data is None:
            data = {}
        self.validate_document(data, source=str(path))

        self._apply_dict(data)
        if path not in self._config_paths:
            self._config_paths.append(path)

    def validate_document(self, data: Any, source: str = "<document>") -> None:
        """Raise ConfigValidationError if `data` does not match the schema."""
        errors = [
            f"{error.json_path}: {error.message}"
            for error in self.validator().iter_errors(data)
        ]
        if errors:
            raise ConfigValidationError(
                f"Invalid configuration in {source}: " + "; ".join(errors),
                errors,
            )

    def load_defaults(self) -> None:
        """Load the project file, then the user file, which overrides it."""
        default_paths = [
            Path("evmcore.yaml"),
            Path.home() / ".evmcore" / "config.yaml",
        ]

        for path in default_paths:
            if path.exists():
                self.load_from_file(path)

    def _apply_dict(self, data: Dict[str, Any]) -> None:
        def apply_to_config(config_obj: Any, values: Dict[str, Any]) -> None:
            for key, value in values.items():
                attr = getattr(config_obj, key)
                if isinstance(attr, ConfigValue):
                    attr.set(value)
                else:
                    apply_to_config(attr, value)

        apply_to_config(self._config, data)

    def _resolve(self, path: str) -> Any:
        obj: Any = self._config
        for part in path.split("."):
            if not hasattr(obj, "__dataclass_fields__") or part not in obj.__dataclass_fields__:
                raise ConfigError(f"Invalid config path: {path}")
            obj = getattr(obj, part)
        return obj

    def set(self, path: str, value: Any) -> None:
        """
        Set a configuration value by path.

        Example: config.set("engine.step_limit", 100000)
        """
        attr = self._resolve(path)
        if not isinstance(attr, ConfigValue):
            raise ConfigError(f"Invalid config path: {path}")
        attr.set(value)

    def get(self, path: str) -> Any:
        """
        Get a configuration value by path.

        Example: config.get("engine.stack_limit")
        """
        obj = self._resolve(path)
        if isinstance(obj, ConfigValue):
            return obj.get()
        return obj

    def watch(self, callback: Callable[[EvmCoreConfig], None]) -> None:
        """Register a callback for configuration reloads."""
        self._watchers.append(callback)

    def reload(self) -> None:
        """Reload configuration from all loaded files."""
        for path in self._config_paths:
            if path.exists():
                self.load_from_file(path)

        for watcher in self._watchers:
            watcher(self._config)

    def reset(self) -> None:
        """Restore defaults and forget loaded files and watchers."""
        self._config = EvmCoreConfig()
        self._config_paths = []
        self._watchers = []

    def validate(self) -> List[str]:
        """
        Validate all effective configuration values.

        Returns list of validation errors.
        """
        errors: List[str] = []

        def validate_config(obj: Any, path: str = "") -> None:
            if isinstance(obj, ConfigValue):
                try:
                    value = obj.get()
                except ConfigError as e:
                    errors.append(f"{path}: {e}")
                    return
                if obj.validator and not obj.validator(value):
                    errors.append(f"{path}: validation failed for value {value!r}")
            elif hasattr(obj, "__dataclass_fields__"):
                for field_name in obj.__dataclass_fields__:
                    field_path = f"{path}.{field_name}" if path else field_name
                    validate_config(getattr(obj, field_name), field_path)

        validate_config(self._config)
        return errors

    def export_schema(self) -> Dict[str, Any]:
        """Export configuration schema for documentation."""
        schema: Dict[str, Any] = {"properties": {}}

        def extract_schema(obj: Any, properties: Dict[str, Any]) -> None:
            if isinstance(obj, ConfigValue):
                properties["type"] = type(obj.default).__name__
                properties["default"] = str(obj.default)
                properties["description"] = obj.description
                if obj.env_var:
                    properties["env_var"] = obj.env_var
            elif hasattr(obj, "__dataclass_fields__"):
                for field_name in obj.__dataclass_fields__:
                    properties[field_name] = {}
                    extract_schema(getattr(obj, field_name), properties[field_name])

        extract_schema(self._config, schema["properties"])
        return schema


def get_config() -> EvmCoreConfig:
    """Get the current configuration."""
    return ConfigManager().config


def get_config_manager() -> ConfigManager:
    """Get the configuration manager instance."""
    return ConfigManager()
