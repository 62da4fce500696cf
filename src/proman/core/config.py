"""Configuration resolver with 4-level priority.

Priority (highest to lowest):
1. CLI arguments
2. Environment variables (PROMAN_*)
3. Config files (user > system)
4. Defaults
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from proman.core.errors import ConfigError

ALLOWED_LOGGING_LEVELS = frozenset({"quiet", "normal", "verbose", "debug"})
DEFAULT_LOGGING_LEVEL = "normal"

COMMAND_FAILURE_POLICIES = ("continue", "abort")
UI_THEMES = ("default", "mono", "custom")

DEFAULT_BUS_CAPACITY = 4096
DEFAULT_POLL_INTERVAL_MS = 50


@dataclass
class ConfigSource:
    """Represents where a config value came from."""

    value: Any
    source: str  # 'cli' | 'env' | 'user_config' | 'system_config' | 'default'


CONFIG_TYPE_ANY = "any"
CONFIG_TYPE_STRING = "string"
CONFIG_TYPE_INT = "int"
CONFIG_TYPE_BOOL = "bool"
CONFIG_TYPE_ENUM = "enum"
CONFIG_TYPE_LIST = "list"
CONFIG_TYPE_OBJECT = "object"
CONFIG_TYPE_PATH = "path"


@dataclass(frozen=True)
class ConfigKeySchema:
    """Schema metadata for a single config key."""

    key_path: str
    type: str
    description: str = ""
    default: Any | None = None
    enum_values: list[str] | None = None
    allow_numeric_strings: bool = False
    allow_bool_strings: bool = False
    unknown: bool = False


class ConfigSchema:
    """Registry of known config keys and their metadata."""

    def __init__(self, keys: dict[str, ConfigKeySchema]) -> None:
        self._keys = dict(keys)

    @classmethod
    def from_defaults(cls, defaults: dict[str, Any]) -> ConfigSchema:
        keys: dict[str, ConfigKeySchema] = {}
        for key_path, value in _flatten_items(defaults):
            keys[key_path] = ConfigKeySchema(
                key_path=key_path,
                type=_infer_schema_type(value),
                default=value,
                # Environment values always arrive as strings.
                allow_numeric_strings=True,
                allow_bool_strings=True,
            )
        return cls(keys)

    def with_overrides(self, overrides: dict[str, ConfigKeySchema]) -> ConfigSchema:
        keys = dict(self._keys)
        keys.update(overrides)
        return ConfigSchema(keys)

    def list_known_keys(self) -> list[str]:
        return sorted(self._keys.keys())

    def get(self, key_path: str) -> ConfigKeySchema | None:
        return self._keys.get(key_path)


def _infer_schema_type(value: Any) -> str:
    if isinstance(value, bool):
        return CONFIG_TYPE_BOOL
    if isinstance(value, int):
        return CONFIG_TYPE_INT
    if isinstance(value, list):
        return CONFIG_TYPE_LIST
    if isinstance(value, dict):
        return CONFIG_TYPE_OBJECT
    if value is None:
        return CONFIG_TYPE_ANY
    if isinstance(value, str):
        return CONFIG_TYPE_STRING
    return CONFIG_TYPE_ANY


def _flatten_items(data: dict[str, Any], prefix: str = "") -> list[tuple[str, Any]]:
    """Flatten nested dicts to dot-notation key paths.

    Non-empty dicts recurse; everything else (including empty dicts) is a leaf.
    """
    items: list[tuple[str, Any]] = []

    for key, value in data.items():
        key_path = f"{prefix}.{key}" if prefix else str(key)

        if isinstance(value, dict) and value:
            items.extend(_flatten_items(value, key_path))
        else:
            items.append((key_path, value))

    return items


def _flatten_keys(data: dict[str, Any], prefix: str = "") -> set[str]:
    return {k for k, _v in _flatten_items(data, prefix=prefix)}


@dataclass(frozen=True)
class LoggingPolicy:
    """Resolved, immutable logging policy."""

    level_name: str  # quiet | normal | verbose | debug
    emit_error: bool
    emit_warning: bool
    emit_info: bool
    emit_debug: bool
    color: bool
    file: str | None
    sources: dict[str, ConfigSource]


@dataclass(frozen=True)
class RunnerSettings:
    """Typed runner configuration.

    prompt_timeout of 0 means prompts wait until answered or cancelled.
    """

    bus_capacity: int = DEFAULT_BUS_CAPACITY
    on_command_failure: str = "continue"
    prompt_timeout: float = 0.0
    workdir: Path = field(default_factory=lambda: Path("."))

    @property
    def abort_on_failure(self) -> bool:
        return self.on_command_failure == "abort"


@dataclass(frozen=True)
class UISettings:
    """Typed terminal UI configuration."""

    poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS
    theme: str = "default"
    custom_theme: dict[str, str] = field(default_factory=dict)


class ConfigResolver:
    """Resolve configuration with strict 4-level priority.

    Example:
        resolver = ConfigResolver(
            cli_args={'runner': {'on_command_failure': 'abort'}},
            user_config_path=Path('~/.config/proman/config.yaml')
        )

        policy, source = resolver.resolve('runner.on_command_failure')
        # policy = 'abort', source = 'cli'
    """

    def __init__(
        self,
        cli_args: dict[str, Any] | None = None,
        user_config_path: Path | None = None,
        system_config_path: Path | None = None,
        defaults: dict[str, Any] | None = None,
        schema: ConfigSchema | None = None,
    ) -> None:
        """Initialize config resolver.

        Args:
            cli_args: Arguments from CLI (highest priority)
            user_config_path: Path to user config file
            system_config_path: Path to system config file
            defaults: Default values (lowest priority)
            schema: Explicit key schema (defaults-derived when omitted)
        """
        self.cli_args = cli_args or {}
        self.user_config_path = user_config_path or Path.home() / ".config/proman/config.yaml"
        self.system_config_path = system_config_path or Path("/etc/proman/config.yaml")
        self.defaults = defaults or self._default_config()

        self.schema = schema or ConfigSchema.from_defaults(self.defaults).with_overrides(
            _enum_overrides()
        )

        # Cache loaded configs
        self._user_config: dict[str, Any] | None = None
        self._system_config: dict[str, Any] | None = None

    def resolve(self, key: str) -> tuple[Any, str]:
        """Resolve config value with priority.

        Args:
            key: Config key (supports dot notation: 'runner.bus_capacity')

        Returns:
            (value, source) tuple

        Raises:
            ConfigError: If key not found in any source
        """
        value = self._from_cli(key)
        if value is not None:
            return value, "cli"

        value = self._from_env(key)
        if value is not None:
            return value, "env"

        value = self._from_user_config(key)
        if value is not None:
            return value, "user_config"

        value = self._from_system_config(key)
        if value is not None:
            return value, "system_config"

        value = self._from_defaults(key)
        if value is not None:
            return value, "default"

        raise ConfigError(f"Config key '{key}' not found in any source")

    def resolve_logging_level(self) -> str:
        """Resolve and validate logging.level.

        Allowed values (after normalization): quiet | normal | verbose | debug.
        If the key is not provided by any source, returns DEFAULT_LOGGING_LEVEL.

        Raises:
            ConfigError: If the resolved value is invalid.
        """
        level, _src = self._resolve_logging_level_and_source()
        return level

    def resolve_logging_policy(self) -> LoggingPolicy:
        """Resolve canonical logging policy.

        Deterministic and side-effect free; apply it with
        proman.core.logging.apply_logging_policy().
        """
        level_name, src = self._resolve_logging_level_and_source()

        color, _ = self.resolve("logging.color")
        log_file, _ = self.resolve("logging.file")
        if not isinstance(log_file, str):
            raise ConfigError(
                f"Config key 'logging.file' must be a string, got {type(log_file).__name__}"
            )

        return LoggingPolicy(
            level_name=level_name,
            emit_error=True,
            emit_warning=True,
            emit_info=level_name != "quiet",
            emit_debug=level_name in ("verbose", "debug"),
            color=_coerce_bool("logging.color", color),
            file=log_file.strip() or None,
            sources={"level_name": src},
        )

    def resolve_profiles_dir(self) -> Path:
        """Resolve profiles_dir as an expanded path."""
        value, _src = self.resolve("profiles_dir")
        if not isinstance(value, str) or value.strip() == "":
            raise ConfigError("Config key 'profiles_dir' must be a non-empty path string")
        return Path(value).expanduser()

    def resolve_runner_settings(self) -> RunnerSettings:
        """Resolve and validate the runner.* keys."""
        capacity = _coerce_int("runner.bus_capacity", self.resolve("runner.bus_capacity")[0])
        if capacity < 1:
            raise ConfigError("Config key 'runner.bus_capacity' must be at least 1")

        policy = self._resolve_enum("runner.on_command_failure")

        timeout = _coerce_float("runner.prompt_timeout", self.resolve("runner.prompt_timeout")[0])
        if timeout < 0:
            raise ConfigError("Config key 'runner.prompt_timeout' must not be negative")

        workdir, _ = self.resolve("runner.workdir")
        if not isinstance(workdir, str) or workdir.strip() == "":
            raise ConfigError("Config key 'runner.workdir' must be a non-empty path string")

        return RunnerSettings(
            bus_capacity=capacity,
            on_command_failure=policy,
            prompt_timeout=timeout,
            workdir=Path(workdir).expanduser(),
        )

    def resolve_ui_settings(self) -> UISettings:
        """Resolve and validate the ui.* keys."""
        interval = _coerce_int("ui.poll_interval_ms", self.resolve("ui.poll_interval_ms")[0])
        if interval < 1:
            raise ConfigError("Config key 'ui.poll_interval_ms' must be at least 1")

        theme = self._resolve_enum("ui.theme")

        custom, _ = self.resolve("ui.custom_theme")
        if not isinstance(custom, dict):
            raise ConfigError("Config key 'ui.custom_theme' must be an object")

        return UISettings(
            poll_interval_ms=interval,
            theme=theme,
            custom_theme={str(k): str(v) for k, v in custom.items()},
        )

    def _resolve_enum(self, key: str) -> str:
        value, _src = self.resolve(key)
        if isinstance(value, str):
            value = value.strip().lower()
        self.validate_value(key, value)
        return value

    def _resolve_logging_level_and_source(self) -> tuple[str, ConfigSource]:
        key = "logging.level"
        found = self._try_resolve_value(key)

        if found is None:
            return DEFAULT_LOGGING_LEVEL, ConfigSource(
                value=DEFAULT_LOGGING_LEVEL,
                source="default",
            )

        value, source = found
        norm = self._normalize_logging_level(key, value)
        return norm, ConfigSource(value=norm, source=source)

    def _try_resolve_value(self, key: str) -> tuple[Any, str] | None:
        try:
            return self.resolve(key)
        except ConfigError as e:
            if "not found in any source" in str(e):
                return None
            raise

    def _normalize_logging_level(self, key: str, value: Any) -> str:
        if not isinstance(value, str):
            raise ConfigError(f"Config key '{key}' must be a string, got {type(value).__name__}")

        norm = value.strip().lower()
        if norm == "":
            raise ConfigError(f"Config key '{key}' must not be empty")

        if norm not in ALLOWED_LOGGING_LEVELS:
            allowed = ", ".join(sorted(ALLOWED_LOGGING_LEVELS))
            raise ConfigError(f"Invalid '{key}': {value!r}. Allowed values: {allowed}")

        return norm

    def list_known_keys(self) -> list[str]:
        """Return a deterministic list of known keys (schema-driven)."""
        return self.schema.list_known_keys()

    def get_key_schema(self, key_path: str) -> ConfigKeySchema:
        """Return schema metadata for a key.

        Unknown keys are allowed and are returned as type 'any' with unknown=True.
        """
        known = self.schema.get(key_path)
        if known is not None:
            return known
        return ConfigKeySchema(
            key_path=key_path,
            type=CONFIG_TYPE_ANY,
            unknown=True,
        )

    def validate_value(self, key_path: str, value: Any) -> None:
        """Validate a value against schema (no coercion).

        Unknown keys are not validated.
        """
        schema = self.get_key_schema(key_path)
        if schema.unknown:
            return

        if value is None:
            return

        t = schema.type
        if t == CONFIG_TYPE_ANY:
            return
        if t == CONFIG_TYPE_STRING:
            if not isinstance(value, str):
                raise ConfigError(
                    f"Config key '{key_path}' must be a string, got {type(value).__name__}"
                )
            return
        if t == CONFIG_TYPE_INT:
            if isinstance(value, int) and not isinstance(value, bool):
                return
            if schema.allow_numeric_strings and isinstance(value, str) and value.isdigit():
                return
            raise ConfigError(f"Config key '{key_path}' must be an int")
        if t == CONFIG_TYPE_BOOL:
            if isinstance(value, bool):
                return
            if (
                schema.allow_bool_strings
                and isinstance(value, str)
                and value.lower() in {"true", "false"}
            ):
                return
            raise ConfigError(f"Config key '{key_path}' must be a bool")
        if t == CONFIG_TYPE_ENUM:
            if not isinstance(value, str):
                raise ConfigError(f"Config key '{key_path}' must be a string enum")
            if not schema.enum_values:
                raise ConfigError(f"Config key '{key_path}' has no enum_values defined")
            if value not in schema.enum_values:
                allowed = ", ".join(schema.enum_values)
                raise ConfigError(f"Invalid '{key_path}': {value!r}. Allowed values: {allowed}")
            return
        if t == CONFIG_TYPE_LIST:
            if not isinstance(value, list):
                raise ConfigError(f"Config key '{key_path}' must be a list")
            return
        if t == CONFIG_TYPE_OBJECT:
            if not isinstance(value, dict):
                raise ConfigError(f"Config key '{key_path}' must be an object")
            return
        if t == CONFIG_TYPE_PATH:
            if not isinstance(value, str):
                raise ConfigError(f"Config key '{key_path}' must be a path string")
            return

        raise ConfigError(f"Unknown schema type for '{key_path}': {t!r}")

    def resolve_all(self) -> dict[str, ConfigSource]:
        """Resolve all known config keys plus unknown keys found in config files.

        Returns:
            Dict of key -> ConfigSource
        """
        result: dict[str, ConfigSource] = {}

        all_keys: set[str] = set(self.list_known_keys())
        all_keys.update(_flatten_keys(self.cli_args))
        all_keys.update(_flatten_keys(self._get_user_config()))
        all_keys.update(_flatten_keys(self._get_system_config()))

        for key in sorted(all_keys):
            try:
                value, source = self.resolve(key)
                result[key] = ConfigSource(value=value, source=source)
            except ConfigError:
                continue

        return result

    def _from_cli(self, key: str) -> Any | None:
        return self._get_nested(self.cli_args, key)

    def _from_env(self, key: str) -> Any | None:
        """Get value from environment variables.

        Environment variable format: PROMAN_KEY_NAME
        Example: PROMAN_PROFILES_DIR, PROMAN_RUNNER_BUS_CAPACITY
        """
        env_key = f"PROMAN_{key.upper().replace('.', '_')}"
        return os.environ.get(env_key)

    def _from_user_config(self, key: str) -> Any | None:
        return self._get_nested(self._get_user_config(), key)

    def _from_system_config(self, key: str) -> Any | None:
        return self._get_nested(self._get_system_config(), key)

    def _from_defaults(self, key: str) -> Any | None:
        return self._get_nested(self.defaults, key)

    def _get_user_config(self) -> dict[str, Any]:
        """Load user config file (cached)."""
        if self._user_config is None:
            self._user_config = self._load_yaml(self.user_config_path)
        return self._user_config

    def _get_system_config(self) -> dict[str, Any]:
        """Load system config file (cached)."""
        if self._system_config is None:
            self._system_config = self._load_yaml(self.system_config_path)
        return self._system_config

    def _load_yaml(self, path: Path) -> dict[str, Any]:
        """Load YAML file."""
        if not path.exists():
            return {}

        try:
            with open(path) as f:
                data = yaml.safe_load(f)
                return data if isinstance(data, dict) else {}
        except Exception as e:
            raise ConfigError(f"Failed to load config from {path}: {e}") from e

    def _get_nested(self, data: dict[str, Any], key: str) -> Any | None:
        """Get nested value using dot notation.

        Example:
            data = {'runner': {'workdir': '/tmp'}}
            _get_nested(data, 'runner.workdir') -> '/tmp'
        """
        parts = key.split(".")
        current: Any = data

        for part in parts:
            if not isinstance(current, dict):
                return None
            current = current.get(part)
            if current is None:
                return None

        return current

    @staticmethod
    def _default_config() -> dict[str, Any]:
        """Default configuration."""
        return {
            "profiles_dir": str(Path.home() / ".config" / "proman" / "profiles"),
            "logging": {
                "level": DEFAULT_LOGGING_LEVEL,
                "color": True,
                "file": "",
            },
            "runner": {
                "bus_capacity": DEFAULT_BUS_CAPACITY,
                "on_command_failure": "continue",
                "prompt_timeout": 0,
                "workdir": ".",
            },
            "ui": {
                "poll_interval_ms": DEFAULT_POLL_INTERVAL_MS,
                "theme": "default",
                "custom_theme": {},
            },
        }


def _enum_overrides() -> dict[str, ConfigKeySchema]:
    return {
        "runner.on_command_failure": ConfigKeySchema(
            key_path="runner.on_command_failure",
            type=CONFIG_TYPE_ENUM,
            description="What to do when a shell step exits non-zero",
            default="continue",
            enum_values=list(COMMAND_FAILURE_POLICIES),
        ),
        "ui.theme": ConfigKeySchema(
            key_path="ui.theme",
            type=CONFIG_TYPE_ENUM,
            description="Terminal color scheme",
            default="default",
            enum_values=list(UI_THEMES),
        ),
        "profiles_dir": ConfigKeySchema(
            key_path="profiles_dir",
            type=CONFIG_TYPE_PATH,
            description="Directory scanned for user profile YAML files",
        ),
        "runner.workdir": ConfigKeySchema(
            key_path="runner.workdir",
            type=CONFIG_TYPE_PATH,
            description="Working directory for shell steps",
            default=".",
        ),
    }


def _coerce_int(key: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"Config key '{key}' must be an int")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    raise ConfigError(f"Config key '{key}' must be an int, got {value!r}")


def _coerce_float(key: str, value: Any) -> float:
    if isinstance(value, bool):
        raise ConfigError(f"Config key '{key}' must be a number")
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            pass
    raise ConfigError(f"Config key '{key}' must be a number, got {value!r}")


def _coerce_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in {"true", "false"}:
        return value.strip().lower() == "true"
    raise ConfigError(f"Config key '{key}' must be a bool, got {value!r}")
