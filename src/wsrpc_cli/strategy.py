"""Choose between calling the endpoint directly and delegating to the agent."""

from __future__ import annotations

import logging
from typing import Protocol

from wsrpc_cli.config import ClientConfig
from wsrpc_cli.delegation import DelegatedCaller
from wsrpc_cli.direct import DirectCaller
from wsrpc_cli.models import CallRequest, RawJSON

logger = logging.getLogger(__name__)


class CallStrategy(Protocol):
    def execute(self, request: CallRequest) -> RawJSON:
        ...

    def cancel(self) -> None:
        ...


def should_delegate(agent_socket: str, agent_token: str) -> bool:
    """Delegate when either agent setting is present."""
    return bool(agent_socket) or bool(agent_token)


def select_strategy(config: ClientConfig) -> CallStrategy:
    if should_delegate(config.agent_socket, config.agent_token):
        logger.debug("Delegating call to agent at %s", config.agent_socket or "<unset>")
        return DelegatedCaller(config.agent_socket, config.agent_token, config.connection)
    logger.debug("Calling %s directly", config.connection.address)
    return DirectCaller(config.connection)
