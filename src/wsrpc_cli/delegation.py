"""Hand a call to the local agent and read back its outcome."""

from __future__ import annotations

import enum
import logging
import threading
from typing import Callable, Optional

from wsrpc_cli.errors import CancelledError, RemoteError, TransportError
from wsrpc_cli.models import CallRequest, ConnectionConfig, DelegationDescriptor, RawJSON
from wsrpc_cli.protocol import AgentChannel, open_agent_channel

logger = logging.getLogger(__name__)


class DelegationState(str, enum.Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    SEND_AUTH = "send_auth"
    SEND_DESCRIPTOR = "send_descriptor"
    AWAIT_ERROR = "await_error"
    AWAIT_RESULT = "await_result"
    CLOSED = "closed"


class DelegatedCaller:
    """Runs one call through the agent.

    The exchange is fixed: connect, send the token, send the descriptor,
    read the error string, and read the result only if that string was
    empty. The channel is closed exactly once on every exit.
    """

    def __init__(
        self,
        locator: str,
        token: str,
        connection: ConnectionConfig,
        connect: Callable[[str], AgentChannel] = open_agent_channel,
    ):
        self._locator = locator
        self._token = token
        self._connection = connection
        self._connect = connect
        self._channel: Optional[AgentChannel] = None
        self._cancelled = threading.Event()
        self._lock = threading.Lock()
        self.state = DelegationState.IDLE
        self.history: list[DelegationState] = []

    def _enter(self, state: DelegationState) -> None:
        logger.debug("Delegation %s -> %s", self.state.value, state.value)
        self.state = state
        self.history.append(state)

    def cancel(self) -> None:
        """Abandon the call; safe to call from another thread."""
        self._cancelled.set()
        with self._lock:
            channel = self._channel
        if channel is not None:
            channel.shutdown()

    def execute(self, request: CallRequest) -> RawJSON:
        if self.state is not DelegationState.IDLE:
            raise RuntimeError("a DelegatedCaller runs exactly one call")
        descriptor = DelegationDescriptor.for_call(self._connection, request)

        self._enter(DelegationState.CONNECTING)
        try:
            channel = self._connect(self._locator)
        except KeyboardInterrupt:
            self._enter(DelegationState.CLOSED)
            raise CancelledError("delegated call cancelled") from None
        except TransportError:
            self._enter(DelegationState.CLOSED)
            raise

        with self._lock:
            self._channel = channel
        try:
            if self._cancelled.is_set():
                raise CancelledError("delegated call cancelled")
            return self._exchange(channel, descriptor)
        except KeyboardInterrupt:
            raise CancelledError("delegated call cancelled") from None
        except TransportError:
            if self._cancelled.is_set():
                raise CancelledError("delegated call cancelled") from None
            raise
        finally:
            self._close()

    def _exchange(self, channel: AgentChannel, descriptor: DelegationDescriptor) -> RawJSON:
        self._enter(DelegationState.SEND_AUTH)
        channel.send_token(self._token)

        self._enter(DelegationState.SEND_DESCRIPTOR)
        channel.send_descriptor(descriptor)

        self._enter(DelegationState.AWAIT_ERROR)
        message = channel.recv_error()
        if message:
            raise RemoteError(message)

        self._enter(DelegationState.AWAIT_RESULT)
        return channel.recv_result()

    def _close(self) -> None:
        with self._lock:
            channel, self._channel = self._channel, None
        if channel is not None:
            channel.close()
        self._enter(DelegationState.CLOSED)
