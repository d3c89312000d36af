"""wsrpc configuration, resolved once per invocation."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Mapping, Optional

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from pydantic import BaseModel, ConfigDict, Field

from wsrpc_cli.errors import InputError
from wsrpc_cli.models import ConnectionConfig

logger = logging.getLogger(__name__)

AGENT_SOCKET_ENV = "WSRPCAGENT_SOCK"
AGENT_TOKEN_ENV = "WSRPCAGENT_AUTH"


class ClientConfig(BaseModel):
    """Everything one invocation needs to pick and run a call path."""

    model_config = ConfigDict(frozen=True)

    connection: ConnectionConfig
    agent_socket: str = ""
    agent_token: str = Field(default="", repr=False)


def load_root_certificate(path: Path) -> bytes:
    """Read a PEM root certificate chain and return it re-encoded as plain PEM.

    Text outside the certificate blocks (comments, other encodings) is dropped,
    so the result is always ASCII.
    """
    try:
        pem = Path(path).read_bytes()
    except OSError as e:
        raise InputError(f"cannot read root certificate {path}: {e.strerror or e}") from e
    try:
        certs = x509.load_pem_x509_certificates(pem)
    except ValueError as e:
        raise InputError("unparsable root certificate chain") from e
    logger.debug("Loaded %d root certificate(s) from %s", len(certs), path)
    return b"".join(cert.public_bytes(serialization.Encoding.PEM) for cert in certs)


def build_config(
    address: str,
    root_cert_path: Optional[Path] = None,
    user: str = "",
    password: str = "",
    environ: Optional[Mapping[str, str]] = None,
) -> ClientConfig:
    """Combine command-line values with the agent settings from the environment."""
    env = os.environ if environ is None else environ
    pem = load_root_certificate(root_cert_path) if root_cert_path else None
    return ClientConfig(
        connection=ConnectionConfig(
            address=address,
            root_certificate=pem,
            user=user or "",
            password=password or "",
        ),
        agent_socket=env.get(AGENT_SOCKET_ENV, ""),
        agent_token=env.get(AGENT_TOKEN_ENV, ""),
    )
