"""Engine configuration and logging setup.

Settings come from the environment:
    POS_BRANCH_ID: Branch prefix for transaction ids (default: B001)
    POS_TERMINAL_ID: Terminal id bound into log context (default: T01)
    POS_TIMEZONE: IANA zone for register-local dates (default: system local)
    POS_TOP_SELLING_LIMIT: Length of the top-selling list (default: 5)
    POS_STAR_POINTS_DIVISOR: Pesos per loyalty star point (default: 200)
    POS_LOG_LEVEL: debug, info, warning or error (default: info)
    POS_LOG_FORMAT: json or console (default: json)
"""

import logging
import os
from dataclasses import dataclass
from datetime import tzinfo
from typing import Mapping, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import structlog

from .errors import ConfigError

LOG_LEVELS = ("debug", "info", "warning", "error")
LOG_FORMATS = ("json", "console")


@dataclass(frozen=True)
class EngineConfig:
    branch_id: str = "B001"
    terminal_id: str = "T01"
    timezone: Optional[str] = None
    top_selling_limit: int = 5
    star_points_divisor: int = 200
    log_level: str = "info"
    log_format: str = "json"

    @property
    def tz(self) -> Optional[tzinfo]:
        """Zone used for register-local dates; None means the system zone."""
        if not self.timezone:
            return None
        try:
            return ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ConfigError("POS_TIMEZONE", self.timezone, "an IANA time zone") from e


def _positive_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(name, raw, "a positive integer") from None
    if value <= 0:
        raise ConfigError(name, raw, "a positive integer")
    return value


def _choice(env: Mapping[str, str], name: str, default: str, choices: tuple[str, ...]) -> str:
    value = env.get(name, default).strip().lower() or default
    if value not in choices:
        raise ConfigError(name, value, " or ".join(choices))
    return value


def get_engine_config(env: Optional[Mapping[str, str]] = None) -> EngineConfig:
    """Read engine settings from the environment.

    Args:
        env: Mapping to read instead of ``os.environ``.

    Raises:
        ConfigError: A setting is present but unparseable.
    """
    env = os.environ if env is None else env

    config = EngineConfig(
        branch_id=env.get("POS_BRANCH_ID", "B001").strip() or "B001",
        terminal_id=env.get("POS_TERMINAL_ID", "T01").strip() or "T01",
        timezone=env.get("POS_TIMEZONE") or None,
        top_selling_limit=_positive_int(env, "POS_TOP_SELLING_LIMIT", 5),
        star_points_divisor=_positive_int(env, "POS_STAR_POINTS_DIVISOR", 200),
        log_level=_choice(env, "POS_LOG_LEVEL", "info", LOG_LEVELS),
        log_format=_choice(env, "POS_LOG_FORMAT", "json", LOG_FORMATS),
    )
    # Fail on a bad zone at startup rather than at the first report.
    config.tz
    return config


def configure_logging(level: str = "info", fmt: str = "json") -> None:
    """Configure structlog with ISO timestamps and JSON (or console) rendering."""
    renderer = (
        structlog.dev.ConsoleRenderer()
        if fmt == "console"
        else structlog.processors.JSONRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper(), logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
    )
