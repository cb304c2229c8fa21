"""STOMP-over-WebSocket broker transport with heartbeats and reconnection.

:class:`FrameTransport` exclusively owns the broker connection. Framing,
heart-beat sending and heart-beat timeouts are handled by ``stomp.py``,
whose receiver thread is bridged onto the asyncio loop. The transport
knows about destinations and subscription handles but nothing about
simulations: after a reconnect it resubscribes nothing on its own, the
layers above decide what is still wanted.
"""

from __future__ import annotations

import asyncio
import contextlib
import enum
import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Protocol
from urllib.parse import urlsplit

import stomp
from stomp.exception import StompException
from stomp.utils import Frame, calculate_heartbeats

from simsync._constants import JSON_CONTENT_TYPE
from simsync._redact import describe_frame
from simsync.config import SimSyncConfig
from simsync.exceptions import BrokerError, HeartbeatTimeoutError, NotConnectedError

_logger = logging.getLogger(__name__)

_LISTENER_NAME = "simsync"

MessageCallback = Callable[[Frame], None]
ConnectListener = Callable[[], Awaitable[None]]
DisconnectListener = Callable[[BaseException | None], None]
StateListener = Callable[["ConnectionState"], None]


class ConnectionState(enum.StrEnum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"
    CLOSED = "closed"


class StompConnection(Protocol):
    """Subset of a ``stomp.py`` connection the transport drives.

    Keeping this structural lets tests drive the transport with an
    in-memory connection.
    """

    def set_listener(self, name: str, listener: Any) -> None: ...

    def is_connected(self) -> bool: ...

    def connect(
        self,
        username: str | None = None,
        passcode: str | None = None,
        wait: bool = False,
        headers: dict[str, str] | None = None,
        **keyword_headers: Any,
    ) -> None: ...

    def disconnect(self, receipt: str | None = None, headers: dict[str, str] | None = None, **keyword_headers: Any) -> None: ...

    def subscribe(
        self,
        destination: str,
        id: str,
        ack: str = "auto",
        headers: dict[str, str] | None = None,
        **keyword_headers: Any,
    ) -> None: ...

    def unsubscribe(self, id: str, headers: dict[str, str] | None = None, **keyword_headers: Any) -> None: ...

    def send(
        self,
        destination: str,
        body: Any,
        content_type: str | None = None,
        headers: dict[str, str] | None = None,
        **keyword_headers: Any,
    ) -> None: ...


ConnectionFactory = Callable[[SimSyncConfig], StompConnection]


class Transport(Protocol):
    """Structural transport interface used by the subscription registry."""

    @property
    def is_connected(self) -> bool: ...

    async def subscribe(self, destination: str, callback: MessageCallback) -> str: ...

    async def unsubscribe(self, handle: str) -> None: ...

    async def send(self, destination: str, body: Any = None) -> None: ...

    def add_connect_listener(self, listener: ConnectListener) -> None: ...

    def add_disconnect_listener(self, listener: DisconnectListener) -> None: ...

    def remove_connect_listener(self, listener: ConnectListener) -> None: ...

    def remove_disconnect_listener(self, listener: DisconnectListener) -> None: ...


def create_ws_connection(config: SimSyncConfig) -> StompConnection:
    """Build a ``stomp.py`` WebSocket connection for ``config.broker_url``."""
    url = urlsplit(config.broker_url)
    secure = url.scheme in {"wss", "https"}
    host = url.hostname or "localhost"
    port = url.port or (443 if secure else 80)
    conn = stomp.WSConnection(
        host_and_ports=[(host, port)],
        heartbeats=(config.heartbeat_outgoing_ms, config.heartbeat_incoming_ms),
        heart_beat_receive_scale=config.heartbeat_grace,
        reconnect_attempts_max=1,
        vhost=config.stomp_host or host,
        ws_path=url.path or "/",
    )
    if secure:
        conn.set_ssl(for_hosts=[(host, port)])
    return conn


class _LoopBridge(stomp.ConnectionListener):
    """Forwards ``stomp.py`` receiver-thread callbacks onto the event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop, sink: Callable[[tuple[str, Frame | None]], None]) -> None:
        self._loop = loop
        self._sink = sink

    def _post(self, kind: str, frame: Frame | None = None) -> None:
        try:
            self._loop.call_soon_threadsafe(self._sink, (kind, frame))
        except RuntimeError:
            # Loop already closed; the connection outlived its client.
            _logger.debug("Dropping broker %s event after loop shutdown", kind)

    def on_connected(self, frame: Frame) -> None:
        self._post("connected", frame)

    def on_message(self, frame: Frame) -> None:
        self._post("message", frame)

    def on_error(self, frame: Frame) -> None:
        self._post("error", frame)

    def on_heartbeat_timeout(self) -> None:
        self._post("heartbeat_timeout")

    def on_disconnected(self) -> None:
        self._post("disconnected")


@dataclass(frozen=True)
class _Subscription:
    destination: str
    callback: MessageCallback


def _negotiated_heartbeat(config: SimSyncConfig, frame: Frame) -> tuple[int, int]:
    server = frame.headers.get("heart-beat", "0,0").replace(" ", "").split(",")
    if len(server) != 2 or not all(part.isdigit() for part in server):
        server = ["0", "0"]
    return calculate_heartbeats(server, (config.heartbeat_outgoing_ms, config.heartbeat_incoming_ms))


class FrameTransport:
    """Single persistent STOMP-over-WebSocket connection.

    Lifecycle::

        DISCONNECTED -> CONNECTING -> CONNECTED -> (ERROR | CLOSED)
                             ^                          |
                             +---- reconnect_delay -----+

    ``activate()`` starts the background connection loop, which retries
    indefinitely until ``deactivate()``.

    Parameters
    ----------
    config
        Broker URL, credentials, heart-beat and reconnect settings.
    connection_factory
        Builds one ``stomp.py`` connection per attempt. Defaults to
        :func:`create_ws_connection`.
    """

    def __init__(
        self,
        config: SimSyncConfig,
        *,
        connection_factory: ConnectionFactory | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._config = config
        self._connection_factory = connection_factory or create_ws_connection
        self._logger = logger or _logger

        self._state = ConnectionState.DISCONNECTED
        self._active = False
        self._runner: asyncio.Task[None] | None = None
        self._conn: StompConnection | None = None
        self._handles: dict[str, _Subscription] = {}
        self._handle_counter = 0
        self._last_error: str | None = None
        self._outgoing_ms = 0
        self._incoming_ms = 0

        self._connect_listeners: list[ConnectListener] = []
        self._disconnect_listeners: list[DisconnectListener] = []
        self._state_listeners: list[StateListener] = []

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state == ConnectionState.CONNECTED

    @property
    def is_active(self) -> bool:
        """Whether the connection loop is running (connected or retrying)."""
        return self._active

    @property
    def last_error(self) -> str | None:
        """Message of the most recent connection failure, cleared on connect."""
        return self._last_error

    @property
    def heartbeat(self) -> tuple[int, int]:
        """Negotiated ``(outgoing_ms, incoming_ms)`` of the current connection."""
        return self._outgoing_ms, self._incoming_ms

    @property
    def subscriptions(self) -> dict[str, str]:
        """Live handles mapped to their destinations."""
        return {handle: sub.destination for handle, sub in self._handles.items()}

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def add_connect_listener(self, listener: ConnectListener) -> None:
        """Register a coroutine awaited after every successful CONNECTED."""
        self._connect_listeners.append(listener)

    def add_disconnect_listener(self, listener: DisconnectListener) -> None:
        """Register a callback invoked after every lost connection and on deactivate."""
        self._disconnect_listeners.append(listener)

    def remove_connect_listener(self, listener: ConnectListener) -> None:
        with contextlib.suppress(ValueError):
            self._connect_listeners.remove(listener)

    def remove_disconnect_listener(self, listener: DisconnectListener) -> None:
        with contextlib.suppress(ValueError):
            self._disconnect_listeners.remove(listener)

    def add_state_listener(self, listener: StateListener) -> None:
        self._state_listeners.append(listener)

    def _set_state(self, state: ConnectionState) -> None:
        if state == self._state:
            return
        self._logger.debug("Transport state %s -> %s", self._state, state)
        self._state = state
        for listener in list(self._state_listeners):
            try:
                listener(state)
            except Exception:
                self._logger.exception("Transport state listener failed")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def activate(self) -> None:
        """Start connecting in the background (no-op when already active)."""
        if self._active:
            return
        self._active = True
        self._runner = asyncio.create_task(self._run(), name="simsync-transport")

    async def deactivate(self) -> None:
        """Stop reconnecting, disconnect, and drop every subscription handle.

        Disconnect listeners are called before this returns, so layers
        holding handles forget them synchronously. In-flight
        subscribe/unsubscribe calls are abandoned; the broker forgets
        server-side subscriptions when the socket closes.
        """
        was_connected = self.is_connected
        self._active = False

        runner = self._runner
        self._runner = None
        if runner is not None:
            runner.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await runner

        await self._teardown_connection()
        self._set_state(ConnectionState.DISCONNECTED)
        if was_connected:
            self._logger.info("Broker connection closed by client")
            self._notify_disconnected(None)

    async def _run(self) -> None:
        while self._active:
            self._set_state(ConnectionState.CONNECTING)
            error: BaseException | None = None
            try:
                await self._connect_and_serve()
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                error = exc
            finally:
                await self._teardown_connection()

            if error is not None:
                self._last_error = str(error) or type(error).__name__
                self._logger.warning("Broker connection failed: %s", self._last_error)
                self._logger.debug("Broker connection failure details", exc_info=error)
                self._set_state(ConnectionState.ERROR)
            else:
                self._logger.info("Broker connection closed")
                self._set_state(ConnectionState.CLOSED)
            self._notify_disconnected(error)

            if not self._active:
                break
            await asyncio.sleep(self._config.reconnect_delay)

    async def _connect_and_serve(self) -> None:
        loop = asyncio.get_running_loop()
        events: asyncio.Queue[tuple[str, Frame | None]] = asyncio.Queue()
        conn = self._connection_factory(self._config)
        conn.set_listener(_LISTENER_NAME, _LoopBridge(loop, events.put_nowait))
        self._conn = conn

        self._logger.debug("Connecting to %s", self._config.broker_url)
        connected = await asyncio.wait_for(self._handshake(conn, events), self._config.connect_timeout)
        self._outgoing_ms, self._incoming_ms = _negotiated_heartbeat(self._config, connected)
        self._last_error = None
        self._set_state(ConnectionState.CONNECTED)
        self._logger.info(
            "Broker connected url=%s heartbeat=%s/%s ms",
            self._config.broker_url,
            self._outgoing_ms,
            self._incoming_ms,
        )

        for listener in list(self._connect_listeners):
            try:
                await listener()
            except NotConnectedError:
                self._logger.debug("Connect listener lost the connection", exc_info=True)
            except Exception:
                self._logger.exception("Connect listener failed")

        await self._pump(events)

    async def _handshake(self, conn: StompConnection, events: asyncio.Queue[tuple[str, Frame | None]]) -> Frame:
        host = self._config.stomp_host or urlsplit(self._config.broker_url).hostname or "localhost"
        await asyncio.to_thread(
            conn.connect,
            self._config.stomp_login,
            self._config.stomp_passcode,
            wait=False,
            headers={"host": host},
        )
        while True:
            kind, frame = await events.get()
            if kind == "connected" and frame is not None:
                return frame
            if kind == "error" and frame is not None:
                raise BrokerError(frame.headers.get("message", "broker rejected CONNECT"), headers=dict(frame.headers))
            if kind in {"disconnected", "heartbeat_timeout"}:
                raise NotConnectedError("Connection closed before CONNECTED")
            self._logger.debug("Ignoring %s event before CONNECTED", kind)

    async def _pump(self, events: asyncio.Queue[tuple[str, Frame | None]]) -> None:
        while True:
            kind, frame = await events.get()
            if kind == "message" and frame is not None:
                self._handle_message(frame)
            elif kind == "error" and frame is not None:
                self._logger.debug("<<< %s", describe_frame(frame))
                raise BrokerError(frame.headers.get("message", "broker error"), headers=dict(frame.headers))
            elif kind == "heartbeat_timeout":
                raise HeartbeatTimeoutError(
                    f"No broker traffic within {self._incoming_ms * self._config.heartbeat_grace / 1000.0:.1f}s"
                )
            elif kind == "disconnected":
                return

    def _handle_message(self, frame: Frame) -> None:
        self._logger.debug("<<< %s", describe_frame(frame))
        handle = frame.headers.get("subscription")
        sub = self._handles.get(handle) if handle is not None else None
        if sub is None:
            self._logger.debug("Dropping MESSAGE for unknown subscription %s", handle)
            return
        try:
            sub.callback(frame)
        except Exception:
            self._logger.exception("Subscription callback failed destination=%s", sub.destination)

    async def _teardown_connection(self) -> None:
        conn = self._conn
        self._conn = None
        self._handles.clear()
        self._outgoing_ms = self._incoming_ms = 0
        if conn is None or not conn.is_connected():
            return
        try:
            await asyncio.to_thread(conn.disconnect)
        except (StompException, OSError):
            self._logger.debug("Broker disconnect failed", exc_info=True)

    def _notify_disconnected(self, error: BaseException | None) -> None:
        for listener in list(self._disconnect_listeners):
            try:
                listener(error)
            except Exception:
                self._logger.exception("Disconnect listener failed")

    # ------------------------------------------------------------------
    # Frame I/O
    # ------------------------------------------------------------------

    def _require_connection(self) -> StompConnection:
        conn = self._conn
        if not self.is_connected or conn is None:
            raise NotConnectedError(f"Broker not connected (state={self._state})")
        return conn

    async def _call(self, command: str, func: Callable[..., None], **kwargs: Any) -> None:
        headers = {key: str(value) for key, value in kwargs.items() if key != "body"}
        self._logger.debug(">>> %s", describe_frame(Frame(command, headers, kwargs.get("body", ""))))
        try:
            await asyncio.to_thread(func, **kwargs)
        except (StompException, OSError) as exc:
            raise NotConnectedError(f"{command} failed: {exc}") from exc

    async def send(self, destination: str, body: Any = None) -> None:
        """Publish a JSON body to *destination*.

        Raises :class:`NotConnectedError` unless CONNECTED.
        """
        conn = self._require_connection()
        if body is None:
            text = ""
        elif isinstance(body, str):
            text = body
        else:
            text = json.dumps(body, separators=(",", ":"))
        await self._call("SEND", conn.send, destination=destination, body=text, content_type=JSON_CONTENT_TYPE)

    async def subscribe(self, destination: str, callback: MessageCallback) -> str:
        """Subscribe to *destination* and return the subscription handle."""
        conn = self._require_connection()
        self._handle_counter += 1
        handle = f"sub-{self._handle_counter}"
        # Registered before the SUBSCRIBE is written so no early MESSAGE is lost.
        self._handles[handle] = _Subscription(destination=destination, callback=callback)
        try:
            await self._call("SUBSCRIBE", conn.subscribe, destination=destination, id=handle, ack="auto")
        except BaseException:
            self._handles.pop(handle, None)
            raise
        return handle

    async def unsubscribe(self, handle: str) -> None:
        """Drop *handle*; no frame for it is delivered after this returns.

        Unknown handles and a disconnected socket are not errors.
        """
        if self._handles.pop(handle, None) is None:
            return
        conn = self._conn
        if not self.is_connected or conn is None:
            return
        with contextlib.suppress(NotConnectedError):
            await self._call("UNSUBSCRIBE", conn.unsubscribe, id=handle)
