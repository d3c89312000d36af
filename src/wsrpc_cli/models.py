"""Pydantic value objects shared by the direct and delegated call paths."""

from __future__ import annotations

import json
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from wsrpc_cli.errors import InputError

# A syntactically valid JSON text, kept opaque until it is rendered.
RawJSON = str


def _reject_constant(name: str) -> Any:
    raise InputError(f"{name} is not valid JSON")


class CallRequest(BaseModel):
    """The remote method to invoke and its positional arguments."""

    model_config = ConfigDict(frozen=True)

    method: str = Field(min_length=1)
    params_text: str = ""
    params: list[Any] = Field(default_factory=list)

    @classmethod
    def from_text(cls, method: str, params_text: Optional[str] = None) -> "CallRequest":
        """Build a request from command-line text.

        ``params_text`` must be empty or a JSON array. The raw text is kept
        for delegation, the decoded list for direct calls.
        """
        if not method:
            raise InputError("method name must not be empty")
        params_text = params_text or ""
        params: list[Any] = []
        if params_text:
            if not params_text.startswith("["):
                raise InputError("parameter must be JSON array")
            try:
                decoded = json.loads(params_text, parse_constant=_reject_constant)
            except json.JSONDecodeError as e:
                raise InputError(f"invalid JSON parameter: {e}") from e
            if not isinstance(decoded, list):
                raise InputError("parameter must be JSON array")
            params = decoded
        return cls(method=method, params_text=params_text, params=params)


class ConnectionConfig(BaseModel):
    """How to reach the RPC endpoint when calling it directly."""

    model_config = ConfigDict(frozen=True)

    address: str
    root_certificate: Optional[bytes] = Field(default=None, repr=False)
    user: str = ""
    password: str = Field(default="", repr=False)

    @property
    def root_certificate_pem(self) -> str:
        if not self.root_certificate:
            return ""
        return self.root_certificate.decode("utf-8", errors="replace")

    @property
    def uses_basic_auth(self) -> bool:
        return bool(self.user or self.password)


class DelegationDescriptor(BaseModel):
    """Self-contained description of a call handed to the agent.

    Field aliases are the JSON keys the agent decodes.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    address: str = Field(alias="Address")
    root_cert: str = Field(default="", alias="RootCert", repr=False)
    user: str = Field(default="", alias="User")
    password: str = Field(default="", alias="Pass", repr=False)
    method: str = Field(alias="Method")
    params: str = Field(default="", alias="Params")

    @classmethod
    def for_call(cls, connection: ConnectionConfig, request: CallRequest) -> "DelegationDescriptor":
        return cls(
            address=connection.address,
            root_cert=connection.root_certificate_pem,
            user=connection.user,
            password=connection.password,
            method=request.method,
            params=request.params_text,
        )

    def to_wire(self) -> dict[str, str]:
        return self.model_dump(by_alias=True)
