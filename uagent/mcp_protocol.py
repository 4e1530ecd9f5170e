"""Transport-agnostic MCP (Model Context Protocol) request handling."""

from __future__ import annotations

import json
from typing import Any, Optional

from .registry import ToolRegistry

MCP_METHOD_PREFIX = "_ue5/"
MCP_PROTOCOL_VERSION = "2024-11-05"
SERVER_NAME = "UAgent"

PARSE_ERROR = -32700
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602

_MISSING = object()


class McpProtocol:
    """Turns one parsed JSON-RPC message into its MCP response envelope.

    Only registry entries whose method starts with ``_ue5/`` are exposed;
    the prefix is stripped for the MCP-facing tool name.
    """

    def __init__(
        self, registry: Optional[ToolRegistry], server_version: str = "0.0.0"
    ) -> None:
        self.registry = registry
        self.server_version = server_version

    def dispatch(self, message: dict) -> Optional[dict]:
        """Return the response for a request, or None for a notification."""
        request_id = message.get("id", _MISSING)
        if request_id is _MISSING:
            return None

        method = message.get("method")
        if not isinstance(method, str):
            method = ""

        if method == "initialize":
            return self._handle_initialize(request_id)
        if method == "tools/list":
            return self._handle_tools_list(request_id)
        if method == "tools/call":
            params = message.get("params")
            return self._handle_tools_call(
                request_id, params if isinstance(params, dict) else None
            )
        return self._make_error(request_id, METHOD_NOT_FOUND, f"method not found: {method}")

    def make_parse_error(self, message: str) -> dict:
        """JSON-RPC parse error (-32700) envelope without an id."""
        return self._make_error(_MISSING, PARSE_ERROR, message)

    def _handle_initialize(self, request_id: Any) -> dict:
        return self._make_result(
            request_id,
            {
                "protocolVersion": MCP_PROTOCOL_VERSION,
                "capabilities": {"tools": {}},
                "serverInfo": {"name": SERVER_NAME, "version": self.server_version},
            },
        )

    def _handle_tools_list(self, request_id: Any) -> dict:
        tools = []
        if self.registry is not None:
            for method in self.registry.method_names():
                if not method.startswith(MCP_METHOD_PREFIX):
                    continue
                tool = self.registry.find(method)
                if tool is None:
                    continue
                entry: dict[str, Any] = {
                    "name": method[len(MCP_METHOD_PREFIX):],
                    "description": tool.description,
                }
                schema = tool.input_schema
                if schema is not None:
                    entry["inputSchema"] = schema
                if tool.read_only:
                    entry["annotations"] = {"readOnlyHint": True}
                tools.append(entry)
        return self._make_result(request_id, {"tools": tools})

    def _handle_tools_call(self, request_id: Any, params: Optional[dict]) -> dict:
        if params is None:
            return self._make_error(request_id, INVALID_PARAMS, "missing params")

        name = params.get("name")
        if not isinstance(name, str) or not name:
            return self._make_error(request_id, INVALID_PARAMS, "missing name")

        arguments = params.get("arguments")
        if not isinstance(arguments, dict):
            arguments = None

        tool = (
            self.registry.find(MCP_METHOD_PREFIX + name)
            if self.registry is not None
            else None
        )
        if tool is None:
            return self._make_error(request_id, METHOD_NOT_FOUND, f"tool not found: {name}")

        response = tool.execute(arguments)

        # Tool failures are reported in the result, not as JSON-RPC errors.
        if response.error is not None:
            text = response.error.message
            is_error = True
        else:
            text = (
                json.dumps(response.result, indent="\t", ensure_ascii=False)
                if response.result is not None
                else ""
            )
            is_error = False

        return self._make_result(
            request_id,
            {"content": [{"type": "text", "text": text}], "isError": is_error},
        )

    @staticmethod
    def _envelope(request_id: Any) -> dict:
        envelope: dict[str, Any] = {"jsonrpc": "2.0"}
        if request_id is not _MISSING:
            envelope["id"] = request_id
        return envelope

    def _make_result(self, request_id: Any, result: dict) -> dict:
        envelope = self._envelope(request_id)
        envelope["result"] = result
        return envelope

    def _make_error(self, request_id: Any, code: int, message: str) -> dict:
        envelope = self._envelope(request_id)
        envelope["error"] = {"code": code, "message": message}
        return envelope