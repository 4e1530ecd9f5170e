"""ACP client, JSON-RPC peer, tool registry and MCP tool bridge over JSON-RPC 2.0."""

__version__ = "0.1.0"