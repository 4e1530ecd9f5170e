# uagent

A small library for driving coding agents over JSON-RPC 2.0 and exposing tools to them.
It has no runtime dependencies.

It has two sides:

- **ACP client.** `uagent.client.AcpClient` runs the Agent Client Protocol handshake
  (`initialize`, then `session/new`, then `session/prompt`). It sends user prompts and
  passes streamed `session/update` notifications to subscribers. Requests that the
  agent sends to the client are routed through a `ToolRegistry`.
- **MCP bridge.** `uagent.mcp_protocol.McpProtocol` answers `initialize`, `tools/list`
  and `tools/call` against the same registry. Only tools whose method name starts
  with `_ue5/` are exposed, and the prefix is stripped from the names it shows.
  `uagent.mcp_server.McpServer` serves it over HTTP on `POST /mcp` and answers
  loopback peers only.

## Installing

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Modules

- `uagent.types`: `ContentBlock` (and `ContentKind`), `ConfigOption`,
  `ConfigOptionChoice`, `parse_config_options`, `StopReason`, `SessionUpdate`
  (and `SessionUpdateKind`), `content_blocks_to_json`.
- `uagent.registry`: `Tool`, `ToolRegistry`, `ToolResponse`, `ToolError`,
  `parse_json_object`.
- `uagent.transport`: the abstract `Transport`, plus newline-delimited JSON helpers
  `LineBuffer`, `StderrLog`, `encode_message` and `decode_message`.
- `uagent.jsonrpc`: `JsonRpcPeer`, which allocates request ids, keeps pending
  continuations and classifies inbound messages as requests, notifications or
  responses.
- `uagent.client`: `AcpClient`, `ClientState`, `ClientStateError`, `Signal`.
- `uagent.mcp_protocol`: `McpProtocol`.
- `uagent.mcp_server`: `McpServer`, `HttpReply`, `is_loopback_peer`.

## Defining tools

Subclass `uagent.registry.Tool`. `method` and `read_only` are abstract properties;
`description` and `input_schema` are optional properties. Then register the instance:

```python
from uagent.registry import Tool, ToolRegistry, ToolResponse, parse_json_object


class Echo(Tool):
    @property
    def method(self):
        return "_ue5/echo"

    @property
    def read_only(self):
        return True

    @property
    def description(self):
        return "Echo the given text back."

    @property
    def input_schema(self):
        return parse_json_object(
            '{"type": "object", "properties": {"text": {"type": "string"}}}'
        )

    def execute(self, params):
        if params is None:
            return ToolResponse.invalid_params("missing params")
        return ToolResponse.ok({"text": params.get("text", "")})


registry = ToolRegistry()
registry.register(Echo())
print(registry.method_names())   # ['_ue5/echo']
print("_ue5/echo" in registry)   # True
```

`register` raises `ValueError` for a tool with an empty method name. It replaces an
existing tool that has the same name and logs a warning.
A tool that has to wait, for example on a user decision, overrides
`execute_async(params, complete)` and calls `complete(response)` later.

## Serving tools over MCP

```python
from uagent.mcp_protocol import McpProtocol

protocol = McpProtocol(registry)
reply = protocol.dispatch({
    "jsonrpc": "2.0",
    "id": 1,
    "method": "tools/call",
    "params": {"name": "echo", "arguments": {"text": "hi"}},
})
```

`dispatch` returns `None` for a notification, that is a message without an `id`.
A tool that fails is reported as `isError: true` with a text content block. JSON-RPC
error envelopes are kept for protocol errors: `-32601` for an unknown method or tool,
`-32602` for missing params or name, and `-32700` from `make_parse_error`.
`tools/list` adds `annotations.readOnlyHint` for read-only tools.

```python
from uagent.mcp_server import McpServer

with McpServer() as server:
    server.start(8765, registry)     # port 0 picks a free port; OSError on bind failure
    print(server.endpoint_url())     # http://127.0.0.1:8765/mcp
```

A request from a non-loopback peer gets 403. A body that is not a JSON object gets a
parse-error envelope. A notification gets 202 with an empty body.
`handle_body(body, peer)` produces the same `HttpReply` without going through HTTP.

## Talking to an agent

`AcpClient` takes a factory that returns a `uagent.transport.Transport`. A transport
implements `start`, `shutdown`, `is_running` and `send`. It delivers inbound messages
to its `on_message` callback and reports the agent's end through
`on_exit(exit_code, stderr)`.

```python
from uagent.client import AcpClient, ClientState
from uagent.transport import Transport
from uagent.types import ContentBlock


class MyTransport(Transport):
    def __init__(self):
        super().__init__()
        self.sent = []
        self.running = False

    def start(self, command, args, working_dir):
        self.running = True
        return True

    def shutdown(self):
        self.running = False

    def is_running(self):
        return self.running

    def send(self, message):
        self.sent.append(message)
        return True


client = AcpClient(MyTransport, tool_registry=registry, mcp_server_url="")
client.session_update.connect(lambda update: print(update.kind, update.content.text))
client.prompt_completed.connect(lambda reason, error: print("done:", reason))
client.start("agent", [], "")
# once client.state is ClientState.READY:
client.send_prompt([ContentBlock.text_block("Hello")])
```

The signals are `state_changed`, `session_update`, `prompt_completed`, `error` and
`agent_settings_changed`. `send_prompt` raises `ClientStateError` unless the client is
`READY`. `start` returns `False` if the transport could not start.
`set_config_option(config_id, value)` updates the local `config_options` snapshot and
sends `session/set_config_option`. `cancel_prompt` sends `session/cancel` while a
prompt is running.

## What this package does not do

- It includes no concrete transport. It does not launch agent processes or read their
  stdio. You supply the `Transport`. `LineBuffer`, `StderrLog`, `encode_message` and
  `decode_message` help with newline-delimited JSON framing.
- It ships no tools of its own. The registry is empty until you register tools.
- It has no command-line entry point.