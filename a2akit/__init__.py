"""Agent-to-agent JSON-RPC server with task storage and server-sent event streaming."""

__version__ = "0.1.0"