"""JSON-RPC dispatch core."""

from sqlapigate.api.rpc.dispatcher import McpDispatcher

__all__ = ["McpDispatcher"]
