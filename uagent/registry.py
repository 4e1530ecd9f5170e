"""Tool handlers and the method-name registry that routes to them."""

from __future__ import annotations

import abc
import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterator, Optional

logger = logging.getLogger(__name__)

INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603
SERVER_ERROR = -32000


@dataclass(frozen=True)
class ToolError:
    """JSON-RPC-style error payload returned by a tool."""

    code: int = SERVER_ERROR
    message: str = ""


@dataclass(frozen=True)
class ToolResponse:
    """Either ``result`` is set (success) or ``error`` is set (failure)."""

    result: Optional[dict] = None
    error: Optional[ToolError] = None

    @staticmethod
    def ok(result: Optional[dict] = None) -> ToolResponse:
        return ToolResponse(result={} if result is None else result)

    @staticmethod
    def fail(code: int, message: str) -> ToolResponse:
        return ToolResponse(error=ToolError(code, message))

    @staticmethod
    def invalid_params(message: str) -> ToolResponse:
        return ToolResponse.fail(INVALID_PARAMS, message)


class Tool(abc.ABC):
    """Handler for one agent-to-client JSON-RPC method."""

    @property
    @abc.abstractmethod
    def method(self) -> str:
        """JSON-RPC method name, e.g. ``fs/read_text_file``."""

    @property
    @abc.abstractmethod
    def read_only(self) -> bool:
        """True when the tool only reads or queries state."""

    @property
    def description(self) -> str:
        """One-line human description, used as the MCP ``description``."""
        return ""

    @property
    def input_schema(self) -> Optional[dict]:
        """JSON Schema for the tool's arguments; None marks an internal tool."""
        return None

    def execute(self, params: Optional[dict]) -> ToolResponse:
        """Handle the request synchronously. ``params`` may be None."""
        return ToolResponse.fail(INTERNAL_ERROR, "tool has no synchronous Execute")

    def execute_async(
        self, params: Optional[dict], complete: Callable[[ToolResponse], Any]
    ) -> None:
        """Run the tool and hand the response to ``complete``; default is synchronous."""
        complete(self.execute(params))


class ToolRegistry:
    """Map of method name to tool."""

    def __init__(self) -> None:
        self._tools: dict[str, Tool] = {}

    def register(self, tool: Tool) -> None:
        method = tool.method
        if not method:
            raise ValueError("tool returned empty method name")
        if method in self._tools:
            logger.warning("replacing existing handler for '%s'", method)
        self._tools[method] = tool

    def unregister(self, method: str) -> None:
        self._tools.pop(method, None)

    def find(self, method: str) -> Optional[Tool]:
        return self._tools.get(method)

    def __contains__(self, method: object) -> bool:
        return method in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def __iter__(self) -> Iterator[str]:
        return iter(self.method_names())

    def method_names(self) -> list[str]:
        """Sorted list of all registered method names."""
        return sorted(self._tools)


def parse_json_object(text: str) -> dict:
    """Parse a JSON object literal (e.g. an input schema); raises ValueError."""
    try:
        value = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValueError(f"failed to parse JSON object: {exc}") from exc
    if not isinstance(value, dict):
        raise ValueError("JSON text is not an object")
    return value