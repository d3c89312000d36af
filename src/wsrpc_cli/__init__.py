"""wsrpc - invoke one websocket JSON-RPC method, directly or through a local agent."""

__version__ = "0.3.0"
