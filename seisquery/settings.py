"""
seisquery Settings - Centralized Configuration

Tunable parameters of the query engine. Settings can be changed via:
1. Settings file (~/.seisquery/settings.toml or custom path)
2. Environment variables (SEISQUERY_<SECTION>_<KEY>)
3. Programmatic access via the SettingsManager singleton
"""

from __future__ import annotations

import json
import os
import tomllib
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Literal

import tomli_w

from seisquery.utils.logging import get_logger

logger = get_logger(__name__)

ENV_PREFIX = "SEISQUERY_"
SETTINGS_PATH_ENV = "SEISQUERY_SETTINGS_PATH"


# =============================================================================
# Settings Data Classes - Organized by Domain
# =============================================================================


@dataclass
class QuerySettings:
    """Slice and fence request defaults."""

    # Interpolation used when a request leaves it empty
    default_interpolation: Literal["nearest", "linear", "cubic"] = "nearest"

    # Reject annotation line numbers that fall between two lines instead of
    # snapping them to the nearest line
    strict_lineno: bool = False


@dataclass
class HorizonSettings:
    """Horizon extraction and chunked execution."""

    # Surface rows processed per chunk; 0 processes the surface in one chunk
    rows_per_chunk: int = 256

    # Worker threads for chunked reads; 1 runs chunks sequentially
    max_workers: int = 4


@dataclass
class AttributeSettings:
    """Attribute computation parameters."""

    # Extra native samples read above and below a window so that
    # resampling has support at the window edges
    interpolation_margin: int = 2


@dataclass
class LoggingSettings:
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_file: str = ""
    rich_tracebacks: bool = True


@dataclass
class ApplicationSettings:
    """Root settings container with all subsections."""

    query: QuerySettings = field(default_factory=QuerySettings)
    horizon: HorizonSettings = field(default_factory=HorizonSettings)
    attribute: AttributeSettings = field(default_factory=AttributeSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)

    def to_dict(self) -> dict[str, Any]:
        """Convert to nested dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ApplicationSettings":
        """Create from nested dictionary."""
        return cls(
            query=QuerySettings(**data.get("query", {})),
            horizon=HorizonSettings(**data.get("horizon", {})),
            attribute=AttributeSettings(**data.get("attribute", {})),
            logging=LoggingSettings(**data.get("logging", {})),
        )


_SECTIONS = tuple(f.name for f in fields(ApplicationSettings))


# =============================================================================
# Settings Manager - Singleton for Global Access
# =============================================================================


class SettingsManager:
    """
    Singleton manager for application settings.

    Usage:
        from seisquery.settings import get_settings

        s = get_settings()
        s.horizon.rows_per_chunk = 64
        save_settings("my_settings.toml")
        load_settings("my_settings.toml")
    """

    _instance: "SettingsManager | None" = None
    _settings: ApplicationSettings
    _settings_path: Path | None = None

    def __new__(cls) -> "SettingsManager":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._settings = ApplicationSettings()
            cls._instance._settings_path = None
        return cls._instance

    @property
    def settings(self) -> ApplicationSettings:
        return self._settings

    @property
    def path(self) -> Path | None:
        """Path of the loaded settings file."""
        return self._settings_path

    def reset(self) -> None:
        self._settings = ApplicationSettings()
        self._settings_path = None

    def update(self, **kwargs) -> None:
        """
        Update settings from keyword arguments.

        Keys are dotted paths such as "horizon.rows_per_chunk".

        Raises:
            AttributeError: Unknown section or key
        """
        for key, value in kwargs.items():
            parts = key.split(".")
            obj = self._settings
            for part in parts[:-1]:
                obj = getattr(obj, part)
            if not hasattr(obj, parts[-1]):
                raise AttributeError(f"Unknown setting: {key}")
            setattr(obj, parts[-1], value)

    def load_from_file(self, path: Path | str) -> None:
        """Load settings from TOML or JSON file."""
        path = Path(path)

        if not path.exists():
            raise FileNotFoundError(f"Settings file not found: {path}")

        with open(path, "rb") as f:
            if path.suffix == ".toml":
                data = tomllib.load(f)
            elif path.suffix == ".json":
                data = json.load(f)
            else:
                raise ValueError(f"Unsupported file format: {path.suffix}")

        self._settings = ApplicationSettings.from_dict(data)
        self._settings_path = path
        logger.debug(f"Loaded settings from {path}")

    def save_to_file(self, path: Path | str) -> None:
        """Save settings to TOML or JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        data = self._settings.to_dict()

        if path.suffix == ".toml":
            with open(path, "wb") as f:
                tomli_w.dump(data, f)
        elif path.suffix == ".json":
            with open(path, "w") as f:
                json.dump(data, f, indent=2)
        else:
            raise ValueError(f"Unsupported file format: {path.suffix}")

        self._settings_path = path

    def load_from_env(self, environ: dict[str, str] | None = None) -> int:
        """
        Apply SEISQUERY_<SECTION>_<KEY> environment overrides.

        SEISQUERY_HORIZON_ROWS_PER_CHUNK=64 sets horizon.rows_per_chunk.
        Values are coerced to the type of the current setting.

        Returns:
            Number of settings applied
        """
        environ = os.environ if environ is None else environ
        applied = 0
        for key, raw in environ.items():
            if not key.startswith(ENV_PREFIX) or key == SETTINGS_PATH_ENV:
                continue
            name = key[len(ENV_PREFIX):].lower()
            section = next((s for s in _SECTIONS if name.startswith(s + "_")), None)
            if section is None:
                logger.warning(f"Ignoring unknown settings variable {key}")
                continue
            attr = name[len(section) + 1:]
            target = getattr(self._settings, section)
            if not hasattr(target, attr):
                logger.warning(f"Ignoring unknown settings variable {key}")
                continue
            setattr(target, attr, _coerce(raw, getattr(target, attr)))
            applied += 1
        return applied

    def get_default_path(self) -> Path:
        """Settings file location: SEISQUERY_SETTINGS_PATH or ~/.seisquery/settings.toml."""
        if SETTINGS_PATH_ENV in os.environ:
            return Path(os.environ[SETTINGS_PATH_ENV])
        return Path.home() / ".seisquery" / "settings.toml"

    def auto_load(self) -> bool:
        """
        Load settings from the default location, then apply environment overrides.

        Returns:
            True if a settings file was loaded, False if using defaults
        """
        loaded = False
        path = self.get_default_path()
        if path.exists():
            self.load_from_file(path)
            loaded = True
        self.load_from_env()
        return loaded


def _coerce(raw: str, current: Any) -> Any:
    """Convert an environment string to the type of `current`."""
    if isinstance(current, bool):
        if raw.lower() in ("1", "true", "yes", "on"):
            return True
        if raw.lower() in ("0", "false", "no", "off"):
            return False
        raise ValueError(f"Cannot interpret '{raw}' as a boolean")
    if isinstance(current, int):
        return int(raw)
    if isinstance(current, float):
        return float(raw)
    return raw


# =============================================================================
# Module-Level Convenience Functions and Singleton Access
# =============================================================================


_manager = SettingsManager()


def get_settings() -> ApplicationSettings:
    """Get current application settings."""
    return _manager.settings


def get_settings_manager() -> SettingsManager:
    return _manager


def load_settings(path: Path | str) -> ApplicationSettings:
    """Load settings from file."""
    _manager.load_from_file(path)
    return _manager.settings


def save_settings(path: Path | str | None = None) -> Path:
    """
    Save current settings to file.

    Args:
        path: Output path. If None, uses the default path.

    Returns:
        Path where settings were saved
    """
    if path is None:
        path = _manager.get_default_path()
    _manager.save_to_file(path)
    return Path(path)


def reset_settings() -> ApplicationSettings:
    """Reset to default settings."""
    _manager.reset()
    return _manager.settings


def generate_toml_with_comments() -> str:
    """Default settings as TOML with descriptive comments."""
    defaults = ApplicationSettings()
    return f'''# seisquery settings
# Generated default configuration - modify as needed

# =============================================================================
# Query Settings - Slice and fence defaults
# =============================================================================
[query]
default_interpolation = "{defaults.query.default_interpolation}"  # Options: nearest, linear, cubic
# Reject off-grid annotation line numbers instead of snapping them
strict_lineno = {str(defaults.query.strict_lineno).lower()}

# =============================================================================
# Horizon Settings - Chunked extraction
# =============================================================================
[horizon]
rows_per_chunk = {defaults.horizon.rows_per_chunk}  # 0 = single chunk
max_workers = {defaults.horizon.max_workers}

# =============================================================================
# Attribute Settings
# =============================================================================
[attribute]
# Native samples read beyond the window for resampling support
interpolation_margin = {defaults.attribute.interpolation_margin}

# =============================================================================
# Logging Settings
# =============================================================================
[logging]
level = "{defaults.logging.level}"  # Options: DEBUG, INFO, WARNING, ERROR
log_file = ""
rich_tracebacks = {str(defaults.logging.rich_tracebacks).lower()}
'''


# =============================================================================
# Auto-load settings on module import
# =============================================================================

try:
    _manager.auto_load()
except (OSError, ValueError, TypeError) as exc:
    logger.warning(f"Could not load settings, using defaults: {exc}")
