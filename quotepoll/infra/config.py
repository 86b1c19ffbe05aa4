"""Endpoint resolution and runtime settings for the quote poller."""

from __future__ import annotations

import logging
import math
import os
import tomllib
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Mapping, Optional

DEFAULT_ENDPOINT = "http://thesimpsonsquoteapi.glitch.me/quotes"
CONFIG_DIR_ENV = "SNAP_DATA"
CONFIG_FILENAME = "config.toml"

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised when a configuration source exists but cannot be used."""


@dataclass(frozen=True)
class PollSchedule:
    """Tick interval and total lifetime of a polling run, in seconds."""

    interval: float = 10.0
    lifetime: float = 100.0

    def __post_init__(self) -> None:
        for name in ("interval", "lifetime"):
            value = getattr(self, name)
            if not math.isfinite(value) or value <= 0:
                raise ConfigError(f"{name} must be a positive number of seconds, got {value!r}")


@dataclass(frozen=True)
class Settings:
    default_endpoint: str = DEFAULT_ENDPOINT
    config_dir_env: str = CONFIG_DIR_ENV
    config_filename: str = CONFIG_FILENAME
    schedule: PollSchedule = field(default_factory=PollSchedule)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings, letting QUOTEPOLL_* variables override the schedule."""

        env = os.environ if environ is None else environ
        defaults = PollSchedule()
        schedule = PollSchedule(
            interval=_env_seconds(env, "QUOTEPOLL_INTERVAL_SECONDS", defaults.interval),
            lifetime=_env_seconds(env, "QUOTEPOLL_LIFETIME_SECONDS", defaults.lifetime),
        )
        return cls(schedule=schedule)

    def with_schedule(self, interval: Optional[float] = None, lifetime: Optional[float] = None) -> "Settings":
        schedule = PollSchedule(
            interval=self.schedule.interval if interval is None else interval,
            lifetime=self.schedule.lifetime if lifetime is None else lifetime,
        )
        return replace(self, schedule=schedule)


def _env_seconds(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env_or_default(key, "", env)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigError(f"{key} must be a number of seconds, got {raw!r}") from exc


def env_or_default(key: str, default: str, environ: Optional[Mapping[str, str]] = None) -> str:
    env = os.environ if environ is None else environ
    return env.get(key, default)


def resolve_endpoint(settings: Settings, environ: Optional[Mapping[str, str]] = None) -> str:
    """Return the configured endpoint, or the default when nothing is configured.

    A missing directory variable, a missing file or a file without an
    ``endpoint`` key all resolve to ``settings.default_endpoint``. A file that
    exists but cannot be read or parsed raises :class:`ConfigError`; deciding
    what to do about that is left to the caller.
    """

    config_dir = env_or_default(settings.config_dir_env, "", environ)
    if not config_dir:
        logger.info(
            "%s environment variable is not set, using default endpoint", settings.config_dir_env,
            extra={"event": "config_default", "reason": "env_unset"},
        )
        return settings.default_endpoint

    config_path = Path(config_dir) / settings.config_filename
    try:
        config_path.stat()
    except FileNotFoundError:
        logger.info(
            "%s not found in %s, using default endpoint", settings.config_filename, config_dir,
            extra={"event": "config_default", "reason": "file_missing"},
        )
        return settings.default_endpoint
    except OSError as exc:
        raise ConfigError(f"cannot stat {config_path}: {exc}") from exc

    try:
        with config_path.open("rb") as handle:
            raw = tomllib.load(handle)
    except OSError as exc:
        raise ConfigError(f"cannot read {config_path}: {exc}") from exc
    except (tomllib.TOMLDecodeError, UnicodeDecodeError) as exc:
        raise ConfigError(f"cannot parse {config_path}: {exc}") from exc

    endpoint = raw.get("endpoint")
    if endpoint is not None and not isinstance(endpoint, str):
        raise ConfigError(f"endpoint in {config_path} must be a string, got {type(endpoint).__name__}")
    if not endpoint:
        logger.info(
            "No endpoint set in %s, using default endpoint", config_path,
            extra={"event": "config_default", "reason": "key_missing"},
        )
        return settings.default_endpoint

    logger.info("Loaded endpoint from %s", config_path, extra={"event": "config_loaded", "endpoint": endpoint})
    return endpoint


def load_endpoint(settings: Settings, environ: Optional[Mapping[str, str]] = None) -> str:
    """Resolve the endpoint, falling back to the default on configuration errors."""

    try:
        return resolve_endpoint(settings, environ)
    except ConfigError as exc:
        logger.warning("error loading config: %s", exc, extra={"event": "config_error"})
        logger.warning(
            "using default endpoint: %s", settings.default_endpoint,
            extra={"event": "config_default", "reason": "config_error"},
        )
        return settings.default_endpoint


__all__ = [
    "ConfigError",
    "DEFAULT_ENDPOINT",
    "PollSchedule",
    "Settings",
    "env_or_default",
    "load_endpoint",
    "resolve_endpoint",
]
