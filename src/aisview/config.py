"""Client configuration for aisview."""

from __future__ import annotations

import dataclasses
import json
import os
from typing import TYPE_CHECKING, Any

from aisview._constants import DEFAULT_BOUNDS, DEFAULT_FEED_URL
from aisview.exceptions import AisViewConfigError, ViewportError

if TYPE_CHECKING:
    from aisview.models.viewport import Viewport


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_optional_float(value: str) -> float | None:
    normalized = value.strip().lower()
    if normalized in {"", "none", "off", "0"}:
        return None
    return float(normalized)


def _parse_bounds(value: str) -> tuple[tuple[float, float], tuple[float, float]]:
    """Parse ``[[lon, lat], [lon, lat]]`` JSON or ``lon,lat,lon,lat`` text."""
    text = value.strip()
    try:
        if text.startswith("["):
            (lon1, lat1), (lon2, lat2) = json.loads(text)
        else:
            lon1, lat1, lon2, lat2 = (float(part) for part in text.split(","))
    except (TypeError, ValueError) as exc:
        raise AisViewConfigError(f"Invalid AISVIEW_BOUNDS value: {value!r}") from exc
    return (float(lon1), float(lat1)), (float(lon2), float(lat2))


@dataclasses.dataclass(frozen=True)
class AisViewConfig:
    """Client configuration.

    Parameters
    ----------
    url : str
        WebSocket endpoint of the feed server.
    initial_bounds : tuple
        ``((lon, lat), (lon, lat))`` region subscribed at startup, before the
        map reports its first settled viewport.
    connect_timeout : float
        Seconds a connect attempt may take before it counts as a transport
        error and a reconnect is scheduled.
    reconnect_initial_delay : float
        Backoff delay in seconds before the first reconnect attempt.
    reconnect_max_delay : float
        Upper bound for the backoff delay.
    reconnect_multiplier : float
        Growth factor applied to the delay after each failed attempt.
    reconnect_max_attempts : int
        Consecutive failed attempts after which the client reports a
        persistent failure and stops retrying until the viewport changes.
    heartbeat : float or None
        WebSocket ping interval in seconds. ``None`` disables pings.
    min_report_interval : float
        Minimum seconds between two viewport changes forwarded by the
        tracker. Changes arriving faster are coalesced to the latest one.
        ``0`` forwards every distinct change immediately.
    log_payloads : bool
        Debug-log (truncated) decoded server payloads.
    """

    url: str = DEFAULT_FEED_URL
    initial_bounds: tuple[tuple[float, float], tuple[float, float]] = DEFAULT_BOUNDS
    connect_timeout: float = 10.0
    reconnect_initial_delay: float = 1.0
    reconnect_max_delay: float = 30.0
    reconnect_multiplier: float = 2.0
    reconnect_max_attempts: int = 8
    heartbeat: float | None = 30.0
    min_report_interval: float = 0.0
    log_payloads: bool = False

    def __post_init__(self) -> None:
        if not self.url.startswith(("ws://", "wss://")):
            raise AisViewConfigError(f"Feed URL must use ws:// or wss://, got {self.url!r}")
        if self.connect_timeout <= 0:
            raise AisViewConfigError("connect_timeout must be positive")
        if self.reconnect_initial_delay < 0 or self.reconnect_max_delay < 0:
            raise AisViewConfigError("Reconnect delays must not be negative")
        if self.reconnect_max_delay < self.reconnect_initial_delay:
            raise AisViewConfigError("reconnect_max_delay must be >= reconnect_initial_delay")
        if self.reconnect_multiplier < 1.0:
            raise AisViewConfigError("reconnect_multiplier must be >= 1.0")
        if self.reconnect_max_attempts < 0:
            raise AisViewConfigError("reconnect_max_attempts must not be negative")
        if self.heartbeat is not None and self.heartbeat <= 0:
            raise AisViewConfigError("heartbeat must be positive or None")
        if self.min_report_interval < 0:
            raise AisViewConfigError("min_report_interval must not be negative")
        # Fail at construction rather than when the client starts.
        _ = self.initial_viewport

    @property
    def initial_viewport(self) -> Viewport:
        """The startup region as a validated :class:`Viewport`."""
        from aisview.models.viewport import Viewport

        try:
            return Viewport.from_bounds(self.initial_bounds)
        except ViewportError as exc:
            raise AisViewConfigError(f"Invalid initial_bounds: {exc}") from exc

    def reconnect_delay(self, attempt: int) -> float:
        """Backoff delay in seconds before reconnect *attempt* (1-based)."""
        delay = self.reconnect_initial_delay * self.reconnect_multiplier ** max(attempt - 1, 0)
        return min(delay, self.reconnect_max_delay)

    @classmethod
    def from_env(cls, **overrides: Any) -> AisViewConfig:
        """Create configuration from environment variables.

        Reads ``AISVIEW_URL``, ``AISVIEW_BOUNDS`` and the optional
        ``AISVIEW_*`` tuning variables. Explicit keyword arguments override
        environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        AisViewConfig
            Populated configuration.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        url = env.get("AISVIEW_URL")
        if url is not None:
            config_kwargs["url"] = url.strip()

        bounds = env.get("AISVIEW_BOUNDS")
        if bounds is not None and "initial_bounds" not in overrides:
            config_kwargs["initial_bounds"] = _parse_bounds(bounds)

        _ENV_FLOAT_MAP = {
            "AISVIEW_CONNECT_TIMEOUT": "connect_timeout",
            "AISVIEW_RECONNECT_INITIAL_DELAY": "reconnect_initial_delay",
            "AISVIEW_RECONNECT_MAX_DELAY": "reconnect_max_delay",
            "AISVIEW_RECONNECT_MULTIPLIER": "reconnect_multiplier",
            "AISVIEW_MIN_REPORT_INTERVAL": "min_report_interval",
        }
        try:
            for env_key, field_name in _ENV_FLOAT_MAP.items():
                val = env.get(env_key)
                if val is not None and field_name not in overrides:
                    config_kwargs[field_name] = float(val)

            attempts_env = env.get("AISVIEW_RECONNECT_MAX_ATTEMPTS")
            if attempts_env is not None and "reconnect_max_attempts" not in overrides:
                config_kwargs["reconnect_max_attempts"] = int(attempts_env)

            heartbeat_env = env.get("AISVIEW_HEARTBEAT")
            if heartbeat_env is not None and "heartbeat" not in overrides:
                config_kwargs["heartbeat"] = _env_optional_float(heartbeat_env)
        except ValueError as exc:
            raise AisViewConfigError(f"Invalid numeric AISVIEW_* value: {exc}") from exc

        if "log_payloads" not in overrides:
            config_kwargs["log_payloads"] = _env_bool(env.get("AISVIEW_LOG_PAYLOADS"), False)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
