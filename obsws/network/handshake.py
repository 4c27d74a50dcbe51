"""Hello → Identify → Identified handshake for a single connection attempt."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, Union

from pydantic import BaseModel

from obsws.errors import AuthenticationRequiredError, ConnectionError
from obsws.models import HelloPayload, IdentifiedPayload
from obsws.network.session_state import SessionState, SessionTracker
from obsws.protocol.auth import generate_auth
from obsws.protocol.codec import make_identify_message

LOGGER = logging.getLogger(__name__)


@dataclass
class HandshakeController:
    """Drives one attempt from AWAITING_HELLO to IDENTIFIED or fails it.

    The outcome is delivered through ``wait()``; a fresh controller is built
    for every connection attempt so a late Identified from an older socket can
    never complete a newer attempt.
    """

    send: Callable[[BaseModel], Awaitable[None]]
    tracker: SessionTracker
    event_subscriptions: int
    password: Optional[str] = None
    logger: Union[logging.Logger, logging.LoggerAdapter] = LOGGER

    _waiter: asyncio.Future[IdentifiedPayload] = field(init=False, repr=False)
    _identify_sent: bool = field(default=False, init=False, repr=False)

    def __post_init__(self) -> None:
        self._waiter = asyncio.get_running_loop().create_future()

    @property
    def done(self) -> bool:
        return self._waiter.done()

    @property
    def identify_sent(self) -> bool:
        return self._identify_sent

    async def wait(self) -> IdentifiedPayload:
        return await self._waiter

    async def handle_hello(self, hello: HelloPayload) -> None:
        if self._waiter.done():
            return
        if self.tracker.state is not SessionState.AWAITING_HELLO:
            self.logger.warning("Ignoring Hello received in state %s", self.tracker.state.value)
            return
        self.tracker.server_version = hello.obsWebSocketVersion

        authentication: Optional[str] = None
        if hello.authentication is not None:
            if not self.password:
                self.fail(AuthenticationRequiredError())
                return
            authentication = generate_auth(
                self.password,
                hello.authentication.salt,
                hello.authentication.challenge,
            )

        message = make_identify_message(
            rpc_version=hello.rpcVersion,
            authentication=authentication,
            event_subscriptions=self.event_subscriptions,
        )
        try:
            await self.send(message)
        except Exception as exc:  # noqa: BLE001
            self.fail(ConnectionError(f"Failed to send Identify: {exc}"))
            return
        self._identify_sent = True
        self.tracker.transition(SessionState.AWAITING_IDENTIFIED)
        self.logger.debug("Identify sent (rpcVersion=%s, authenticated=%s)", hello.rpcVersion, authentication is not None)

    def handle_identified(self, identified: IdentifiedPayload) -> bool:
        if self._waiter.done():
            self.logger.warning("Ignoring Identified received after the handshake finished")
            return False
        if not self._identify_sent:
            self.logger.warning("Ignoring Identified received before Identify was sent")
            return False
        self.tracker.negotiated_rpc_version = identified.negotiatedRpcVersion
        self.tracker.transition(SessionState.IDENTIFIED)
        self._waiter.set_result(identified)
        return True

    def fail(self, exc: BaseException) -> None:
        if not self._waiter.done():
            self._waiter.set_exception(exc)
