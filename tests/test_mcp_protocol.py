import json

import pytest

from uagent.mcp_protocol import McpProtocol
from uagent.registry import Tool, ToolRegistry, ToolResponse


class EchoTool(Tool):
    @property
    def method(self):
        return "_ue5/echo"

    @property
    def read_only(self):
        return True

    @property
    def description(self):
        return "Echo arguments"

    @property
    def input_schema(self):
        return {"type": "object"}

    def execute(self, params):
        return ToolResponse.ok({"args": params})


class BreakTool(Tool):
    @property
    def method(self):
        return "_ue5/break"

    @property
    def read_only(self):
        return False

    def execute(self, params):
        return ToolResponse.fail(-32000, "boom")


class InternalTool(Tool):
    @property
    def method(self):
        return "fs/read_text_file"

    @property
    def read_only(self):
        return True


@pytest.fixture
def protocol():
    registry = ToolRegistry()
    for tool in (EchoTool(), BreakTool(), InternalTool()):
        registry.register(tool)
    return McpProtocol(registry, server_version="1.2.3")


def test_notification_has_no_response(protocol):
    assert protocol.dispatch({"jsonrpc": "2.0", "method": "tools/list"}) is None


def test_initialize(protocol):
    reply = protocol.dispatch({"jsonrpc": "2.0", "id": 1, "method": "initialize"})
    assert reply["jsonrpc"] == "2.0"
    assert reply["id"] == 1
    result = reply["result"]
    assert result["protocolVersion"] == "2024-11-05"
    assert result["capabilities"] == {"tools": {}}
    assert result["serverInfo"] == {"name": "UAgent", "version": "1.2.3"}


def test_string_id_passes_through(protocol):
    reply = protocol.dispatch({"id": "abc", "method": "initialize"})
    assert reply["id"] == "abc"


def test_tools_list_filters_and_strips_prefix(protocol):
    reply = protocol.dispatch({"id": 2, "method": "tools/list"})
    tools = reply["result"]["tools"]
    assert [t["name"] for t in tools] == ["break", "echo"]
    echo = tools[1]
    assert echo["description"] == "Echo arguments"
    assert echo["inputSchema"] == {"type": "object"}
    assert echo["annotations"] == {"readOnlyHint": True}
    brk = tools[0]
    assert "inputSchema" not in brk
    assert "annotations" not in brk
    assert brk["description"] == ""


def test_tools_list_without_registry():
    reply = McpProtocol(None).dispatch({"id": 3, "method": "tools/list"})
    assert reply["result"] == {"tools": []}


def test_tools_call_success_round_trips_result(protocol):
    reply = protocol.dispatch(
        {"id": 4, "method": "tools/call", "params": {"name": "echo", "arguments": {"x": 1}}}
    )
    result = reply["result"]
    assert result["isError"] is False
    assert len(result["content"]) == 1
    block = result["content"][0]
    assert block["type"] == "text"
    assert json.loads(block["text"]) == {"args": {"x": 1}}


def test_tools_call_without_arguments(protocol):
    reply = protocol.dispatch({"id": 5, "method": "tools/call", "params": {"name": "echo"}})
    assert json.loads(reply["result"]["content"][0]["text"]) == {"args": None}


def test_tools_call_tool_failure_is_result(protocol):
    reply = protocol.dispatch({"id": 6, "method": "tools/call", "params": {"name": "break"}})
    assert "error" not in reply
    assert reply["result"]["isError"] is True
    assert reply["result"]["content"] == [{"type": "text", "text": "boom"}]


@pytest.mark.parametrize(
    "params, message",
    [(None, "missing params"), ({}, "missing name"), ({"name": ""}, "missing name")],
)
def test_tools_call_invalid_params(protocol, params, message):
    msg = {"id": 7, "method": "tools/call"}
    if params is not None:
        msg["params"] = params
    reply = protocol.dispatch(msg)
    assert reply["error"] == {"code": -32602, "message": message}
    assert reply["id"] == 7


def test_tools_call_unknown_tool(protocol):
    reply = protocol.dispatch({"id": 8, "method": "tools/call", "params": {"name": "nope"}})
    assert reply["error"]["code"] == -32601
    assert reply["error"]["message"] == "tool not found: nope"


def test_internal_tool_not_callable(protocol):
    reply = protocol.dispatch(
        {"id": 9, "method": "tools/call", "params": {"name": "fs/read_text_file"}}
    )
    assert reply["error"]["code"] == -32601


def test_unknown_method(protocol):
    reply = protocol.dispatch({"id": 10, "method": "resources/list"})
    assert reply["error"] == {"code": -32601, "message": "method not found: resources/list"}


def test_parse_error_has_no_id(protocol):
    reply = protocol.make_parse_error("Parse error")
    assert reply == {"jsonrpc": "2.0", "error": {"code": -32700, "message": "Parse error"}}