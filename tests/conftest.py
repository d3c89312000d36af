"""Shared fixtures for wsrpc tests."""

from __future__ import annotations

import datetime
import shutil
import tempfile
from pathlib import Path

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

from wsrpc_cli.errors import TransportError


@pytest.fixture
def root_pem() -> bytes:
    """A freshly generated self-signed CA certificate in PEM form."""
    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "wsrpc test root")])
    now = datetime.datetime.now(datetime.timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(days=1))
        .not_valid_after(now + datetime.timedelta(days=1))
        .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
        .sign(key, hashes.SHA256())
    )
    return cert.public_bytes(serialization.Encoding.PEM)


@pytest.fixture
def sock_dir():
    """Short temp directory; Unix socket paths are limited to ~100 bytes."""
    path = Path(tempfile.mkdtemp(prefix="wsrpc", dir="/tmp"))
    yield path
    shutil.rmtree(path, ignore_errors=True)


class FakeChannel:
    """Scripted stand-in for AgentChannel that records every interaction."""

    def __init__(self, replies: list[str], fail_on: str | None = None):
        self.replies = list(replies)
        self.fail_on = fail_on
        self.sent: list[object] = []
        self.recv_calls = 0
        self.close_calls = 0
        self.shutdown_calls = 0

    def _maybe_fail(self, step: str) -> None:
        if self.fail_on == step:
            raise TransportError(f"{step} failed")

    def send_token(self, token: str) -> None:
        self._maybe_fail("token")
        self.sent.append(token)

    def send_descriptor(self, descriptor) -> None:
        self._maybe_fail("descriptor")
        self.sent.append(descriptor.to_wire())

    def recv_error(self) -> str:
        self.recv_calls += 1
        self._maybe_fail("error")
        return self.replies.pop(0)

    def recv_result(self) -> str:
        self.recv_calls += 1
        self._maybe_fail("result")
        return self.replies.pop(0)

    def shutdown(self) -> None:
        self.shutdown_calls += 1

    def close(self) -> None:
        self.close_calls += 1


@pytest.fixture
def fake_channel_factory():
    def _make(replies: list[str], fail_on: str | None = None) -> FakeChannel:
        return FakeChannel(replies, fail_on)

    return _make
