"""Session orchestrator for an OBS WebSocket v5 connection.

This layer is responsible for:
- Transport lifecycle (open, receive loop, close)
- The Hello/Identify/Identified handshake (via HandshakeController)
- Routing inbound frames to the correlator and the event dispatcher
- Teardown of pending requests and reconnect signalling on closure

It never interprets request or event payloads.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, List, Mapping, Optional, Sequence, Union

from pydantic import BaseModel

from obsws.config import ClientSettings
from obsws.errors import (
    AlreadyConnectedError,
    ConnectionClosedError,
    ConnectionError,
    NotConnectedError,
    ProtocolParseError,
    UnknownOpcodeError,
)
from obsws.models import (
    EventMessage,
    HelloMessage,
    IdentifiedMessage,
    IdentifiedPayload,
    Message,
    RequestBatchResponseMessage,
    RequestResponseMessage,
)
from obsws.network.correlator import RequestCorrelator
from obsws.network.events import EventDispatcher, Listener, SessionEvent
from obsws.network.handshake import HandshakeController
from obsws.network.reconnect import ReconnectionSupervisor
from obsws.network.session_state import SessionState, SessionTracker
from obsws.network.transport.base import BaseTransport, TransportClosed
from obsws.network.transport.websocket import WebSocketTransport
from obsws.protocol.codec import encode_message, make_reidentify_message, parse_message
from obsws.protocol.constants import NORMAL_CLOSURE, WebSocketCloseCode

LOGGER = logging.getLogger(__name__)

CLIENT_DISCONNECT_REASON = "Client disconnect"


@dataclass
class Session:
    """Client session for one OBS WebSocket server."""

    settings: ClientSettings = field(default_factory=ClientSettings)
    transport_factory: Callable[[ClientSettings], BaseTransport] = WebSocketTransport
    logger: Union[logging.Logger, logging.LoggerAdapter] = LOGGER

    events: EventDispatcher = field(init=False, repr=False)
    tracker: SessionTracker = field(default_factory=SessionTracker, init=False)
    _correlator: RequestCorrelator = field(init=False, repr=False)
    _reconnect: ReconnectionSupervisor = field(init=False, repr=False)
    _transport: Optional[BaseTransport] = field(default=None, init=False, repr=False)
    _handshake: Optional[HandshakeController] = field(default=None, init=False, repr=False)
    _receive_task: Optional[asyncio.Task[None]] = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        self.events = EventDispatcher(logger=self.logger)
        self._correlator = RequestCorrelator(
            send=self._send,
            is_ready=lambda: self.connected,
            logger=self.logger,
        )
        self._reconnect = ReconnectionSupervisor(
            on_reconnect=self._on_reconnect_due,
            base_delay=self.settings.reconnect_base_delay_seconds,
            max_delay=self.settings.reconnect_max_delay_seconds,
            logger=self.logger,
        )

    async def __aenter__(self) -> "Session":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.disconnect()

    # -- observable state -------------------------------------------------

    @property
    def connected(self) -> bool:
        return self.tracker.state is SessionState.IDENTIFIED

    @property
    def state(self) -> SessionState:
        return self.tracker.state

    @property
    def negotiated_rpc_version(self) -> Optional[int]:
        return self.tracker.negotiated_rpc_version

    @property
    def server_version(self) -> Optional[str]:
        return self.tracker.server_version

    @property
    def pending_requests(self) -> int:
        return self._correlator.pending_count

    @property
    def reconnect(self) -> ReconnectionSupervisor:
        return self._reconnect

    # -- lifecycle ----------------------------------------------------------

    async def connect(self, url: Optional[str] = None, password: Optional[str] = None) -> None:
        """Open the transport and complete the handshake.

        Returns once the server has sent Identified. Raises
        ``AuthenticationRequiredError`` when the server demands a password
        and none is configured, and ``ConnectionError`` when the transport
        fails or closes first.
        """

        if self._transport is not None:
            raise AlreadyConnectedError()
        url = url or self.settings.url
        if password is None:
            password = self.settings.password

        self._reconnect.enable()
        self._reconnect.cancel()
        self.tracker.transition(SessionState.SOCKET_CONNECTING)
        transport = self.transport_factory(self.settings)
        handshake = HandshakeController(
            send=self._send,
            tracker=self.tracker,
            event_subscriptions=self.settings.event_subscriptions,
            password=password,
            logger=self.logger,
        )
        self._transport = transport
        self._handshake = handshake
        self.logger.debug("Connecting to %s", url)

        try:
            await transport.connect(url)
        except asyncio.CancelledError:
            self.logger.debug("Connection attempt to %s cancelled", url)
            if self._transport is transport:
                self._detach()
                self._try_transition(SessionState.CLOSED)
            try:
                await transport.close(NORMAL_CLOSURE, "Connection attempt cancelled")
            except Exception:  # noqa: BLE001
                self.logger.debug("Suppress transport close error", exc_info=True)
            raise
        except Exception as exc:  # noqa: BLE001
            self.logger.error("Connection error: %s", exc)
            if self._transport is transport:
                self._detach()
                self._try_transition(SessionState.CLOSED)
                self._reconnect.handle_close(int(WebSocketCloseCode.ABNORMAL_CLOSURE))
            raise ConnectionError("Failed to connect to OBS WebSocket") from exc

        if self._transport is transport:
            self.logger.debug("WebSocket connected")
            self._try_transition(SessionState.AWAITING_HELLO)
            self._receive_task = asyncio.create_task(self._receive_loop(transport), name="obsws-receive")
        else:
            with contextlib.suppress(Exception):
                await transport.close(NORMAL_CLOSURE, CLIENT_DISCONNECT_REASON)

        try:
            await handshake.wait()
        except BaseException:
            await self._abort_attempt(transport)
            raise

    async def disconnect(self) -> None:
        """Close the session; fails every outstanding request with ConnectionClosedError."""

        self._reconnect.disable()
        transport, task, handshake = self._detach()
        self._teardown(NORMAL_CLOSURE, CLIENT_DISCONNECT_REASON, handshake)
        if transport is not None:
            self.events.emit(
                SessionEvent.CONNECTION_CLOSED,
                {"code": NORMAL_CLOSURE, "reason": CLIENT_DISCONNECT_REASON},
            )
        if task is not None and task is not asyncio.current_task():
            with contextlib.suppress(asyncio.CancelledError):
                await task
        if transport is not None:
            try:
                await transport.close(NORMAL_CLOSURE, CLIENT_DISCONNECT_REASON)
            except Exception:  # noqa: BLE001
                self.logger.debug("Suppress transport close error", exc_info=True)

    # -- requests -------------------------------------------------------------

    async def call(self, request_type: str, request_data: Optional[Mapping[str, Any]] = None) -> Any:
        """Send one request and return its ``responseData`` (``None`` when absent)."""

        return await self._correlator.call(request_type, request_data)

    async def call_batch(
        self,
        requests: Sequence[Mapping[str, Any]],
        *,
        halt_on_failure: Optional[bool] = None,
        execution_type: Optional[int] = None,
    ) -> List[Any]:
        """Send a RequestBatch; any failing member fails the whole batch."""

        return await self._correlator.call_batch(
            requests,
            halt_on_failure=halt_on_failure,
            execution_type=execution_type,
        )

    async def reidentify(self, event_subscriptions: Optional[int] = None) -> None:
        """Update the server-side event subscription without a new handshake."""

        if not self.connected:
            raise NotConnectedError()
        mask = event_subscriptions if event_subscriptions is not None else self.settings.event_subscriptions
        await self._send(make_reidentify_message(mask))

    # -- events -------------------------------------------------------------

    def on(self, name: str, listener: Listener) -> "Session":
        self.events.on(name, listener)
        return self

    def once(self, name: str, listener: Listener) -> "Session":
        self.events.once(name, listener)
        return self

    def off(self, name: str, listener: Listener) -> "Session":
        self.events.off(name, listener)
        return self

    def remove_all_listeners(self, name: Optional[str] = None) -> "Session":
        self.events.remove_all_listeners(name)
        return self

    # -- internals ------------------------------------------------------------

    def _try_transition(self, state: SessionState) -> None:
        try:
            self.tracker.transition(state)
        except ValueError:
            self.logger.debug(
                "Ignoring invalid session transition %s -> %s",
                self.tracker.state.value,
                state.value,
            )

    async def _send(self, message: BaseModel) -> None:
        transport = self._transport
        if transport is None:
            raise NotConnectedError("WebSocket is not connected")
        self.logger.debug("Sending message: %s", getattr(message, "op", "?"))
        try:
            await transport.send(encode_message(message))
        except TransportClosed as exc:
            raise ConnectionClosedError(exc.code, exc.reason) from exc

    def _detach(
        self,
    ) -> tuple[Optional[BaseTransport], Optional[asyncio.Task[None]], Optional[HandshakeController]]:
        transport, task, handshake = self._transport, self._receive_task, self._handshake
        self._transport = None
        self._receive_task = None
        self._handshake = None
        if task is not None and task is not asyncio.current_task():
            task.cancel()
        return transport, task, handshake

    def _teardown(self, code: int, reason: str, handshake: Optional[HandshakeController]) -> None:
        if handshake is not None:
            handshake.fail(ConnectionError(f"Connection closed before establishing (code: {code})"))
        self._try_transition(SessionState.CLOSED)
        self._correlator.fail_all(ConnectionClosedError(code, reason))

    async def _abort_attempt(self, transport: BaseTransport) -> None:
        if self._transport is not transport:
            return
        _, task, handshake = self._detach()
        self._teardown(NORMAL_CLOSURE, "Handshake failed", handshake)
        if task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        try:
            await transport.close(NORMAL_CLOSURE, "Handshake failed")
        except Exception:  # noqa: BLE001
            self.logger.debug("Suppress transport close error", exc_info=True)

    async def _receive_loop(self, transport: BaseTransport) -> None:
        code, reason = int(WebSocketCloseCode.ABNORMAL_CLOSURE), ""
        try:
            while True:
                raw = await transport.receive()
                await self._handle_frame(raw)
        except TransportClosed as exc:
            code, reason = exc.code, exc.reason
        except asyncio.CancelledError:
            self.logger.debug("Session receive loop cancelled")
            raise
        except Exception as exc:  # noqa: BLE001
            self.logger.warning("WebSocket error: %s", exc)
            reason = str(exc)
        await self._on_transport_closed(transport, code, reason)

    async def _handle_frame(self, raw: Union[str, bytes]) -> None:
        try:
            message = parse_message(raw)
        except UnknownOpcodeError as exc:
            self.logger.warning("Unknown message opcode: %s", exc.op)
            return
        except ProtocolParseError as exc:
            self.logger.error("Failed to parse message: %s", exc)
            self.events.emit(SessionEvent.PROTOCOL_ERROR, exc)
            return
        self.logger.debug("Received message: %s", message.op)
        try:
            await self._route(message)
        except Exception:  # noqa: BLE001
            self.logger.exception("Failed to process inbound message op=%s", message.op)

    async def _route(self, message: Message) -> None:
        handshake = self._handshake
        if isinstance(message, HelloMessage):
            if handshake is None:
                self.logger.warning("Ignoring Hello outside of a connection attempt")
                return
            await handshake.handle_hello(message.d)
        elif isinstance(message, IdentifiedMessage):
            if handshake is not None and handshake.handle_identified(message.d):
                self._on_identified(message.d)
        elif not self.connected:
            self.logger.debug("Ignoring opcode %s received before Identified", message.op)
        elif isinstance(message, EventMessage):
            self.logger.debug("Event received: %s", message.d.eventType)
            self.events.emit(message.d.eventType, message.d.eventData)
        elif isinstance(message, RequestResponseMessage):
            self._correlator.handle_response(message.d)
        elif isinstance(message, RequestBatchResponseMessage):
            self._correlator.handle_batch_response(message.d)
        else:
            self.logger.warning("Ignoring client-only opcode %s sent by server", message.op)

    def _on_identified(self, identified: IdentifiedPayload) -> None:
        self._reconnect.reset()
        self.logger.info(
            "Identified with OBS WebSocket %s (rpcVersion %s)",
            self.tracker.server_version,
            identified.negotiatedRpcVersion,
        )
        self.events.emit(SessionEvent.IDENTIFIED, identified.model_dump())
        self.events.emit(SessionEvent.CONNECTION_OPENED)

    async def _on_transport_closed(self, transport: BaseTransport, code: int, reason: str) -> None:
        if transport is not self._transport:
            return
        self.logger.info("WebSocket closed: %s %s", code, reason)
        _, _, handshake = self._detach()
        self._teardown(code, reason, handshake)
        try:
            await transport.close(NORMAL_CLOSURE, reason)
        except Exception:  # noqa: BLE001
            self.logger.debug("Suppress transport close error", exc_info=True)
        self.events.emit(SessionEvent.CONNECTION_CLOSED, {"code": code, "reason": reason})
        self._reconnect.handle_close(code)

    def _on_reconnect_due(self) -> None:
        self.logger.info("Reconnect requested after abnormal close")
        self.events.emit(SessionEvent.RECONNECT_REQUESTED)
