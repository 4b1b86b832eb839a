"""Configuration for pyfresh."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pyfresh.exceptions import FreshConfigError

#: Recognised supersession strategy names (see ``pyfresh.coordinator``).
STRATEGY_NAMES: frozenset[str] = frozenset({"sequence", "liveness", "cancel"})


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_float(env_key: str, value: str) -> float:
    try:
        return float(value)
    except ValueError as exc:
        raise FreshConfigError(f"{env_key} must be a number, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class FreshConfig:
    """Library configuration.

    Parameters
    ----------
    debounce_delay : float
        Default quiet period, in seconds, for debounced callbacks created
        through a :class:`~pyfresh.scope.CallbackScope` without an explicit
        delay.
    throttle_interval : float
        Default window, in seconds, for throttled callbacks.
    throttle_leading : bool
        Whether a throttled callback fires immediately when its window is open.
    throttle_trailing : bool
        Whether a throttled callback fires once more at the end of a window
        in which further calls arrived.
    strategy : str
        Default supersession strategy for request coordinators. One of
        ``"sequence"``, ``"liveness"`` or ``"cancel"``.
    base_url : str
        Base URL used by :class:`~pyfresh.http.HttpFetcher`.
    http_timeout : float
        Total timeout, in seconds, for a single HTTP fetch.  ``0`` disables
        the timeout.  The coordinator itself never imposes one.
    """

    debounce_delay: float = 0.5
    throttle_interval: float = 0.5
    throttle_leading: bool = True
    throttle_trailing: bool = True
    strategy: str = "sequence"
    base_url: str = "http://localhost:8000"
    http_timeout: float = 30.0

    def __post_init__(self) -> None:
        if self.debounce_delay < 0:
            raise FreshConfigError("debounce_delay must be >= 0")
        if self.throttle_interval < 0:
            raise FreshConfigError("throttle_interval must be >= 0")
        if not (self.throttle_leading or self.throttle_trailing):
            raise FreshConfigError("throttle_leading and throttle_trailing cannot both be disabled")
        if self.strategy not in STRATEGY_NAMES:
            raise FreshConfigError(f"Unknown strategy {self.strategy!r}; expected one of {sorted(STRATEGY_NAMES)}")
        if self.http_timeout < 0:
            raise FreshConfigError("http_timeout must be >= 0")

    @classmethod
    def from_env(cls, **overrides: Any) -> FreshConfig:
        """Create configuration from environment variables.

        Reads optional ``PYFRESH_*`` variables.  Explicit keyword arguments
        override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        FreshConfig
            Populated configuration.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        _ENV_FLOAT_MAP = {
            "PYFRESH_DEBOUNCE_DELAY": "debounce_delay",
            "PYFRESH_THROTTLE_INTERVAL": "throttle_interval",
            "PYFRESH_HTTP_TIMEOUT": "http_timeout",
        }
        for env_key, field_name in _ENV_FLOAT_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = _env_float(env_key, val)

        if "throttle_leading" not in overrides:
            config_kwargs["throttle_leading"] = _env_bool(env.get("PYFRESH_THROTTLE_LEADING"), True)
        if "throttle_trailing" not in overrides:
            config_kwargs["throttle_trailing"] = _env_bool(env.get("PYFRESH_THROTTLE_TRAILING"), True)

        strategy_env = env.get("PYFRESH_STRATEGY")
        if strategy_env is not None and "strategy" not in overrides:
            config_kwargs["strategy"] = strategy_env.strip().lower()

        base_url_env = env.get("PYFRESH_BASE_URL")
        if base_url_env is not None and "base_url" not in overrides:
            config_kwargs["base_url"] = base_url_env.strip()

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
