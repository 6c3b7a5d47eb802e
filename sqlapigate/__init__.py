"""sqlapigate - policy-checked HTTP and SQL Server tools behind a JSON-RPC gateway."""

__version__ = "1.0.0"
__logo__ = "⛩"

SERVER_NAME = "sqlapigate"
