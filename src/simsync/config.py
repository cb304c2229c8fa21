"""Client configuration for simsync."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from simsync._constants import DEFAULT_API_BASE_URL, DEFAULT_BROKER_URL
from simsync.exceptions import SimSyncConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class SimSyncConfig:
    """Client configuration.

    Parameters
    ----------
    broker_url : str
        WebSocket URL of the STOMP broker endpoint.
    api_base_url : str
        REST base URL used for polling fallback and blockage submission.
    reconnect_delay : float
        Seconds to wait between connection attempts.
    heartbeat_outgoing_ms : int
        Interval at which the client offers to send heartbeats (0 disables).
    heartbeat_incoming_ms : int
        Interval at which the client wants to receive heartbeats (0 disables).
    heartbeat_grace : float
        Multiplier applied to the negotiated incoming interval before the
        connection is declared dead.
    connect_timeout : float
        Seconds to wait for the broker's ``CONNECTED`` reply.
    topic_style : str
        ``"path"`` for ``/topic/simulation/<id>`` destinations, ``"dotted"``
        for ``topic.simulation.<id>``.
    stomp_host : str or None
        Virtual host sent in the ``CONNECT`` frame. Defaults to the broker
        URL's host.
    stomp_login, stomp_passcode : str or None
        Optional broker credentials.
    polling_fallback : bool
        Poll the REST API for the active simulation while the broker
        connection is down.
    poll_interval : float
        Seconds between polling fallback fetches.
    """

    broker_url: str = DEFAULT_BROKER_URL
    api_base_url: str = DEFAULT_API_BASE_URL
    reconnect_delay: float = 5.0
    heartbeat_outgoing_ms: int = 4000
    heartbeat_incoming_ms: int = 4000
    heartbeat_grace: float = 2.0
    connect_timeout: float = 10.0
    topic_style: str = "path"
    stomp_host: str | None = None
    stomp_login: str | None = None
    stomp_passcode: str | None = None
    polling_fallback: bool = False
    poll_interval: float = 2.0

    def __post_init__(self) -> None:
        if not self.broker_url.startswith(("ws://", "wss://")):
            raise SimSyncConfigError(f"broker_url must be a ws:// or wss:// URL, got {self.broker_url!r}")
        if self.reconnect_delay < 0:
            raise SimSyncConfigError("reconnect_delay must be >= 0")
        if self.heartbeat_outgoing_ms < 0 or self.heartbeat_incoming_ms < 0:
            raise SimSyncConfigError("heartbeat intervals must be >= 0")
        if self.heartbeat_grace < 1.0:
            raise SimSyncConfigError("heartbeat_grace must be >= 1.0")
        if self.connect_timeout <= 0:
            raise SimSyncConfigError("connect_timeout must be > 0")
        if self.topic_style not in {"path", "dotted"}:
            raise SimSyncConfigError(f"topic_style must be 'path' or 'dotted', got {self.topic_style!r}")
        if self.poll_interval <= 0:
            raise SimSyncConfigError("poll_interval must be > 0")

    @classmethod
    def from_env(cls, **overrides: Any) -> SimSyncConfig:
        """Create configuration from ``SIMSYNC_*`` environment variables.

        Explicit keyword arguments override environment values.
        """
        env = os.environ

        _ENV_STR_MAP = {
            "SIMSYNC_BROKER_URL": "broker_url",
            "SIMSYNC_API_BASE_URL": "api_base_url",
            "SIMSYNC_TOPIC_STYLE": "topic_style",
            "SIMSYNC_STOMP_HOST": "stomp_host",
            "SIMSYNC_STOMP_LOGIN": "stomp_login",
            "SIMSYNC_STOMP_PASSCODE": "stomp_passcode",
        }
        _ENV_FLOAT_MAP = {
            "SIMSYNC_RECONNECT_DELAY": "reconnect_delay",
            "SIMSYNC_HEARTBEAT_GRACE": "heartbeat_grace",
            "SIMSYNC_CONNECT_TIMEOUT": "connect_timeout",
            "SIMSYNC_POLL_INTERVAL": "poll_interval",
        }
        _ENV_INT_MAP = {
            "SIMSYNC_HEARTBEAT_OUTGOING_MS": "heartbeat_outgoing_ms",
            "SIMSYNC_HEARTBEAT_INCOMING_MS": "heartbeat_incoming_ms",
        }

        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val
        try:
            for env_key, field_name in _ENV_FLOAT_MAP.items():
                val = env.get(env_key)
                if val is not None:
                    config_kwargs[field_name] = float(val)
            for env_key, field_name in _ENV_INT_MAP.items():
                val = env.get(env_key)
                if val is not None:
                    config_kwargs[field_name] = int(val)
        except ValueError as exc:
            raise SimSyncConfigError(f"Invalid numeric environment value: {exc}") from exc

        if "polling_fallback" not in overrides:
            config_kwargs["polling_fallback"] = _env_bool(env.get("SIMSYNC_POLLING_FALLBACK"), False)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
