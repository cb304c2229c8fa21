"""Custom exception hierarchy for simsync."""

from __future__ import annotations

from collections.abc import Mapping


class SimSyncError(Exception):
    """Base exception for all simsync errors."""


class SimSyncConfigError(SimSyncError):
    """Invalid or missing configuration."""


class ScheduleError(SimSyncError, ValueError):
    """Blockage schedule text could not be encoded or decoded."""


class MalformedTokenError(ScheduleError):
    """An offset token does not match the fixed-width ``DDdHHhMMm`` shape."""

    def __init__(self, message: str, *, token: str = "") -> None:
        self.token = token
        super().__init__(message)


class MalformedLineError(ScheduleError):
    """A blockage schedule line could not be decoded.

    ``line_number`` is 1-based and only set by the bulk importer; the
    single-line decoder does not know where the line came from.
    """

    def __init__(
        self,
        message: str,
        *,
        line: str = "",
        line_number: int | None = None,
    ) -> None:
        self.line = line
        self.line_number = line_number
        super().__init__(message)

    def with_line_number(self, line_number: int) -> MalformedLineError:
        """Return a copy of this error annotated with its position in a file."""
        error = MalformedLineError(
            f"line {line_number}: {self.args[0] if self.args else ''}",
            line=self.line,
            line_number=line_number,
        )
        error.__cause__ = self.__cause__
        return error


class ConnectionStateError(SimSyncError):
    """Broker connection is not in a state that allows the operation."""


class NotConnectedError(ConnectionStateError):
    """Operation requires a CONNECTED transport.

    Callers should treat this as transient: the transport keeps retrying
    in the background and the operation can be issued again once
    connected.
    """


class HeartbeatTimeoutError(ConnectionStateError):
    """No inbound traffic within the negotiated heartbeat window."""


class BrokerError(ConnectionStateError):
    """Broker replied with a STOMP ``ERROR`` frame."""

    def __init__(self, message: str, *, headers: Mapping[str, str] | None = None) -> None:
        self.headers = dict(headers or {})
        super().__init__(message)


class SubscriptionConflictError(SimSyncError):
    """A second simulation subscription would overlap the live one.

    Should not occur given the unsubscribe-before-subscribe switch-over.
    """


class FrameDecodeError(SimSyncError):
    """An inbound frame body could not be decoded into a snapshot."""

    def __init__(self, message: str, *, topic: str = "") -> None:
        self.topic = topic
        super().__init__(message)


class HttpTransportError(SimSyncError):
    """HTTP-level failure (network, non-2xx, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)
