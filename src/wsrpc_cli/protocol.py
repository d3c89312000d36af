"""Framing for the local agent channel.

The channel carries a stream of JSON values. Writers end each value with a
newline; readers accept any JSON whitespace (or none) between values.
A delegated call is exactly four values on one connection:

    caller -> agent   authorization token (string)
    caller -> agent   call descriptor (object)
    agent  -> caller  error message (string, empty on success)
    agent  -> caller  raw result (only when the error message was empty)
"""

from __future__ import annotations

import codecs
import json
import logging
import socket
from typing import Any, Optional

from pydantic import ValidationError

from wsrpc_cli import jsontext
from wsrpc_cli.config import AGENT_SOCKET_ENV
from wsrpc_cli.errors import EncodingError, TransportError
from wsrpc_cli.models import DelegationDescriptor, RawJSON

logger = logging.getLogger(__name__)

_RECV_SIZE = 65536
_WHITESPACE = " \t\r\n"
_NUMBER_CHARS = frozenset("0123456789+-.eE")
_LITERALS = ("true", "false", "null")


def encode_value(value: Any) -> bytes:
    try:
        text = json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise EncodingError(f"cannot encode protocol value: {e}") from e
    return text.encode("utf-8") + b"\n"


def decode_string(raw: RawJSON, what: str) -> str:
    value = jsontext.loads(raw, what)
    if not isinstance(value, str):
        raise EncodingError(f"{what} must be a JSON string")
    return value


def check_raw(raw: RawJSON, what: str) -> RawJSON:
    jsontext.loads(raw, what)
    return raw


def _may_continue(text: str, err: json.JSONDecodeError) -> bool:
    """Whether more input could still turn ``text`` into a valid value."""
    if err.pos >= len(text) or err.msg.startswith("Unterminated string"):
        return True
    rest = text[err.pos:]
    if err.msg.startswith("Invalid \\uXXXX escape") and len(text) - err.pos <= 6:
        return True
    if any(lit.startswith(rest) for lit in _LITERALS):
        return True
    return all(c in _NUMBER_CHARS for c in rest)


class _ValueSocket:
    """Reads consecutive JSON values from a stream socket and writes them newline-terminated."""

    def __init__(self, sock: socket.socket):
        self._sock = sock
        self._buf = ""
        self._utf8 = codecs.getincrementaldecoder("utf-8")()
        self._decoder = json.JSONDecoder(
            parse_float=jsontext.Number,
            parse_int=jsontext.Number,
            parse_constant=jsontext.reject_constant,
        )
        self._eof = False
        self._closed = False

    def send(self, value: Any) -> None:
        self._write(encode_value(value))

    def send_raw(self, raw: RawJSON) -> None:
        self._write(raw.encode("utf-8") + b"\n")

    def _write(self, data: bytes) -> None:
        try:
            self._sock.sendall(data)
        except OSError as e:
            raise TransportError(f"write to agent channel failed: {e}") from e
        logger.debug("Sent %d bytes", len(data))

    def recv_raw(self) -> Optional[RawJSON]:
        """Return the next value as raw JSON text, or None at end of stream."""
        while True:
            raw = self._take_value()
            if raw is not None:
                return raw
            if self._eof:
                return None
            self._fill()

    def _fill(self) -> None:
        try:
            chunk = self._sock.recv(_RECV_SIZE)
        except OSError as e:
            raise TransportError(f"read from agent channel failed: {e}") from e
        try:
            if chunk:
                self._buf += self._utf8.decode(chunk)
            else:
                self._eof = True
                self._buf += self._utf8.decode(b"", final=True)
        except UnicodeDecodeError as e:
            raise EncodingError(f"agent channel value is not UTF-8: {e}") from e

    def _take_value(self) -> Optional[RawJSON]:
        text = self._buf.lstrip(_WHITESPACE)
        self._buf = text
        if not text:
            return None
        try:
            value, end = self._decoder.raw_decode(text)
        except json.JSONDecodeError as e:
            if not self._eof and _may_continue(text, e):
                return None
            raise EncodingError(f"malformed value on agent channel: {e}") from e
        rest = text[end:]
        if isinstance(value, jsontext.Number):
            if not rest and not self._eof:
                return None
            if rest and rest[0] in _NUMBER_CHARS:
                if not self._eof and all(c in _NUMBER_CHARS for c in rest):
                    return None
                raise EncodingError(f"malformed number on agent channel: {text[:end + 1]!r}")
        self._buf = rest
        return text[:end]

    def shutdown(self) -> None:
        try:
            self._sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._sock.close()


class AgentChannel(_ValueSocket):
    """Caller side of a connection to the agent."""

    def send_token(self, token: str) -> None:
        self.send(token)

    def send_descriptor(self, descriptor: DelegationDescriptor) -> None:
        self.send(descriptor.to_wire())

    def recv_error(self) -> str:
        raw = self.recv_raw()
        if raw is None:
            raise TransportError("agent closed the channel before reporting an outcome")
        return decode_string(raw, "agent error message")

    def recv_result(self) -> RawJSON:
        raw = self.recv_raw()
        if raw is None:
            raise TransportError("agent closed the channel before sending a result")
        return check_raw(raw, "agent result")


def open_agent_channel(locator: str) -> AgentChannel:
    """Connect to the agent's Unix socket."""
    if not locator:
        raise TransportError(f"{AGENT_SOCKET_ENV} is not set")
    sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
    try:
        sock.connect(locator)
    except OSError as e:
        sock.close()
        raise TransportError(f"cannot connect to agent at {locator}: {e.strerror or e}") from e
    logger.debug("Connected to agent at %s", locator)
    return AgentChannel(sock)


class AgentSession(_ValueSocket):
    """Agent side of one delegated call.

    Reads the caller's token and descriptor and writes back the outcome.
    Deciding whether the token is acceptable, and performing the call, is
    up to the agent.
    """

    def read_token(self) -> str:
        raw = self.recv_raw()
        if raw is None:
            raise TransportError("caller closed the channel before sending a token")
        return decode_string(raw, "authorization token")

    def read_descriptor(self) -> DelegationDescriptor:
        raw = self.recv_raw()
        if raw is None:
            raise TransportError("caller closed the channel before sending a descriptor")
        try:
            return DelegationDescriptor.model_validate_json(raw)
        except ValidationError as e:
            raise EncodingError(f"malformed call descriptor: {e}") from e

    def reply_error(self, message: str) -> None:
        if not message:
            raise ValueError("error message must not be empty")
        self.send(message)

    def reply_result(self, raw: RawJSON) -> None:
        compact = jsontext.dumps(jsontext.loads(raw, "result"))
        self.send("")
        self.send_raw(compact)
