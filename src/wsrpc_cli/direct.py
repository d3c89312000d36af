"""Direct calls: JSON-RPC over a websocket with locally held credentials."""

from __future__ import annotations

import base64
import json
import logging
import ssl
import threading
from typing import Any, Callable, Optional

from websocket import WebSocket, WebSocketException, create_connection

from wsrpc_cli import jsontext
from wsrpc_cli.errors import CancelledError, EncodingError, InputError, RpcError, TransportError
from wsrpc_cli.models import CallRequest, ConnectionConfig, RawJSON

logger = logging.getLogger(__name__)


def build_ssl_context(root_certificate: Optional[bytes]) -> Optional[ssl.SSLContext]:
    """Trust only the given PEM roots, or return None for the default trust store."""
    if not root_certificate:
        return None
    try:
        return ssl.create_default_context(cadata=root_certificate.decode("utf-8"))
    except (ssl.SSLError, ValueError) as e:
        raise InputError("unparsable root certificate chain") from e


def basic_auth_header(user: str, password: str) -> list[str]:
    if not (user or password):
        return []
    token = base64.b64encode(f"{user}:{password}".encode("utf-8")).decode("ascii")
    return [f"Authorization: Basic {token}"]


class RpcSession:
    """One websocket connection carrying JSON-RPC 2.0 requests."""

    def __init__(self, ws: WebSocket):
        self._ws = ws
        self._next_id = 1
        self._closed = False

    @classmethod
    def dial(cls, connection: ConnectionConfig) -> "RpcSession":
        sslopt: dict[str, Any] = {}
        context = build_ssl_context(connection.root_certificate)
        if context is not None:
            sslopt["context"] = context
        logger.debug("Dialing %s (custom roots: %s, basic auth: %s)",
                     connection.address, context is not None, connection.uses_basic_auth)
        try:
            ws = create_connection(
                connection.address,
                header=basic_auth_header(connection.user, connection.password),
                sslopt=sslopt,
            )
        except (WebSocketException, OSError) as e:
            raise TransportError(f"cannot dial {connection.address}: {e}") from e
        return cls(ws)

    def call(self, method: str, params: list[Any]) -> RawJSON:
        req_id = self._next_id
        self._next_id += 1
        try:
            frame = json.dumps({"jsonrpc": "2.0", "id": req_id, "method": method, "params": params})
        except (TypeError, ValueError) as e:
            raise EncodingError(f"cannot encode request: {e}") from e
        try:
            self._ws.send(frame)
        except (WebSocketException, OSError) as e:
            raise TransportError(f"write of {method} request failed: {e}") from e
        return self._wait_response(req_id)

    def _wait_response(self, req_id: int) -> RawJSON:
        while True:
            try:
                raw = self._ws.recv()
            except (WebSocketException, OSError) as e:
                raise TransportError(f"read from endpoint failed: {e}") from e
            if not raw:
                raise TransportError("endpoint closed the connection")
            try:
                frame = json.loads(raw)
            except json.JSONDecodeError as e:
                raise EncodingError(f"malformed response frame: {e}") from e
            if not isinstance(frame, dict) or frame.get("id") != req_id:
                logger.debug("Skipping frame not addressed to request %d", req_id)
                continue
            error = frame.get("error")
            if error is not None:
                if isinstance(error, dict):
                    raise RpcError(
                        str(error.get("message") or "RPC request failed"),
                        code=error.get("code"),
                        data=error.get("data"),
                    )
                raise RpcError(str(error))
            return jsontext.dumps(jsontext.loads(raw, "response frame").get("result"))

    def shutdown(self) -> None:
        try:
            self._ws.shutdown()
        except (WebSocketException, OSError):
            pass

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._ws.close()
        except (WebSocketException, OSError) as e:
            logger.debug("Error closing websocket: %s", e)


class DirectCaller:
    """Performs the call itself, using the TLS roots and credentials it was given."""

    def __init__(
        self,
        connection: ConnectionConfig,
        dial: Callable[[ConnectionConfig], RpcSession] = RpcSession.dial,
    ):
        self._connection = connection
        self._dial = dial
        self._session: Optional[RpcSession] = None
        self._cancelled = threading.Event()
        self._lock = threading.Lock()

    def cancel(self) -> None:
        """Abandon the call; safe to call from another thread."""
        self._cancelled.set()
        with self._lock:
            session = self._session
        if session is not None:
            session.shutdown()

    def execute(self, request: CallRequest) -> RawJSON:
        try:
            session = self._dial(self._connection)
        except KeyboardInterrupt:
            raise CancelledError("call cancelled") from None

        with self._lock:
            self._session = session
        try:
            if self._cancelled.is_set():
                raise CancelledError("call cancelled")
            return session.call(request.method, request.params)
        except KeyboardInterrupt:
            raise CancelledError("call cancelled") from None
        except TransportError:
            if self._cancelled.is_set():
                raise CancelledError("call cancelled") from None
            raise
        finally:
            with self._lock:
                self._session = None
            session.close()
