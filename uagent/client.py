"""High-level ACP client: initialize, session/new, session/prompt."""

from __future__ import annotations

import enum
import logging
import os
from dataclasses import replace
from typing import Any, Callable, Iterable, Optional, Sequence

from .jsonrpc import METHOD_NOT_FOUND, JsonRpcPeer
from .registry import ToolRegistry, ToolResponse
from .transport import Transport
from .types import (
    ConfigOption,
    ContentBlock,
    SessionUpdate,
    SessionUpdateKind,
    StopReason,
    content_blocks_to_json,
    parse_config_options,
)

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = 1
CLIENT_NAME = "UAgent"
CLIENT_TITLE = "Unreal Engine 5 Agent Bridge"

TransportFactory = Callable[[], Transport]


class ClientState(enum.Enum):
    """Where the client is in the ACP handshake and prompt cycle."""

    DISCONNECTED = "disconnected"
    STARTING = "starting"
    INITIALIZING = "initializing"
    CREATING_SESSION = "creating_session"
    READY = "ready"
    PROMPTING = "prompting"
    ERROR = "error"


class ClientStateError(RuntimeError):
    """Raised when an operation needs a state the client is not in."""


class Signal:
    """A list of callbacks that are all called on ``emit``."""

    def __init__(self) -> None:
        self._callbacks: list[Callable[..., Any]] = []

    def connect(self, callback: Callable[..., Any]) -> Callable[..., Any]:
        """Subscribe ``callback``; returns it so this works as a decorator."""
        self._callbacks.append(callback)
        return callback

    def disconnect(self, callback: Callable[..., Any]) -> None:
        """Unsubscribe ``callback``; raises ValueError if it was not connected."""
        self._callbacks.remove(callback)

    def emit(self, *args: Any) -> None:
        for callback in list(self._callbacks):
            callback(*args)

    def __len__(self) -> int:
        return len(self._callbacks)


def _error_message(error: dict) -> str:
    message = error.get("message")
    return message if isinstance(message, str) else ""


def _copy_options(options: Iterable[ConfigOption]) -> list[ConfigOption]:
    return [replace(option, options=list(option.options)) for option in options]


class AcpClient:
    """Drives the ACP state machine and routes agent requests to a tool registry.

    Signals:
      ``state_changed(state)``, ``session_update(update)``,
      ``prompt_completed(stop_reason, error_or_empty)``, ``error(message)``,
      ``agent_settings_changed()``.
    """

    def __init__(
        self,
        transport_factory: TransportFactory,
        tool_registry: Optional[ToolRegistry] = None,
        mcp_server_url: str = "",
        client_version: str = "0.0.0",
        project_dir: Optional[str] = None,
    ) -> None:
        self.transport_factory = transport_factory
        self.tool_registry = tool_registry
        self.mcp_server_url = mcp_server_url
        self.client_version = client_version
        self.project_dir = project_dir if project_dir is not None else os.getcwd()

        self.state_changed = Signal()
        self.session_update = Signal()
        self.prompt_completed = Signal()
        self.error = Signal()
        self.agent_settings_changed = Signal()

        self._peer = JsonRpcPeer()
        self._peer.on_request = self._handle_request
        self._peer.on_notification = self._handle_notification

        self._transport: Optional[Transport] = None
        self._state = ClientState.DISCONNECTED
        self._session_id = ""
        self._last_error = ""
        self._agent_supports_http_mcp = False
        self._config_options: list[ConfigOption] = []
        # Shutdown may report the exit synchronously; that is not a crash.
        self._stopping = False

    @property
    def state(self) -> ClientState:
        return self._state

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def last_error(self) -> str:
        return self._last_error

    @property
    def config_options(self) -> tuple[ConfigOption, ...]:
        """Latest snapshot of the agent's advertised config options."""
        return tuple(self._config_options)

    def start(self, command: str, args: Sequence[str] = (), working_dir: str = "") -> bool:
        """Launch the agent and begin initialize + session/new; False if launch failed."""
        self.stop()

        transport = self.transport_factory()
        transport.on_exit = self._on_transport_exit
        self._transport = transport
        self._peer.bind_transport(transport)

        self._set_state(ClientState.STARTING)
        if not transport.start(command, args, working_dir):
            self._report_error("Start", f"failed to launch '{command}'")
            self._transport = None
            self._peer.bind_transport(None)
            return False

        self._send_initialize()
        return True

    def stop(self) -> None:
        """Shut the agent down and reset the session."""
        self._stopping = True
        try:
            if self._transport is not None:
                transport, self._transport = self._transport, None
                transport.shutdown()
            self._peer.reset()
            self._session_id = ""
            self._config_options = []
            self.agent_settings_changed.emit()
            self._set_state(ClientState.DISCONNECTED)
        finally:
            self._stopping = False

    def send_prompt(self, blocks: Iterable[ContentBlock]) -> None:
        """Send a user prompt; raises ClientStateError unless the client is READY."""
        if self._state is not ClientState.READY:
            raise ClientStateError(f"cannot prompt while {self._state.value} (need ready)")

        params = {"sessionId": self._session_id, "prompt": content_blocks_to_json(blocks)}
        self._set_state(ClientState.PROMPTING)

        def on_response(result: Optional[dict], error: Optional[dict]) -> None:
            if error is not None:
                self.prompt_completed.emit(StopReason.UNKNOWN, _error_message(error))
                self._set_state(ClientState.READY)
                return
            reason = ""
            if result is not None and isinstance(result.get("stopReason"), str):
                reason = result["stopReason"]
            self.prompt_completed.emit(StopReason.parse(reason), "")
            self._set_state(ClientState.READY)

        self._peer.send_request("session/prompt", params, on_response)

    def cancel_prompt(self) -> None:
        """Send session/cancel while a prompt is running; otherwise do nothing."""
        if self._state is not ClientState.PROMPTING or not self._session_id:
            return
        self._peer.send_notification("session/cancel", {"sessionId": self._session_id})

    def set_config_option(self, config_id: str, value: str) -> None:
        """Optimistically set an agent config option and tell the agent."""
        if not self._session_id or not config_id:
            return
        option = next(
            (
                opt
                for opt in self._config_options
                if opt.id == config_id and opt.current_value != value
            ),
            None,
        )
        if option is None:
            return
        option.current_value = value
        self.agent_settings_changed.emit()

        def on_response(_result: Optional[dict], error: Optional[dict]) -> None:
            if error is not None:
                logger.warning("session/set_config_option failed: %s", _error_message(error))

        self._peer.send_request(
            "session/set_config_option",
            {"sessionId": self._session_id, "configId": config_id, "value": value},
            on_response,
        )

    def _set_state(self, state: ClientState) -> None:
        if self._state is state:
            return
        self._state = state
        self.state_changed.emit(state)

    def _report_error(self, where: str, message: str) -> None:
        self._last_error = f"[{where}] {message}"
        logger.error("%s", self._last_error)
        self._set_state(ClientState.ERROR)
        self.error.emit(self._last_error)

    def _on_transport_exit(self, exit_code: int, stderr: str) -> None:
        logger.warning("Agent exited with code %d. Stderr tail: %s", exit_code, stderr[-1024:])
        if self._stopping or self._state is ClientState.DISCONNECTED:
            return
        tail = stderr[-512:].strip()
        message = (
            f"agent exited (code {exit_code}): {tail}" if tail else f"agent exited (code {exit_code})"
        )
        self._report_error("AgentExit", message)

    def _has_tool(self, method: str) -> bool:
        return self.tool_registry is not None and method in self.tool_registry

    def _send_initialize(self) -> None:
        self._set_state(ClientState.INITIALIZING)
        params = {
            "protocolVersion": PROTOCOL_VERSION,
            "clientCapabilities": {
                "fs": {
                    "readTextFile": self._has_tool("fs/read_text_file"),
                    "writeTextFile": self._has_tool("fs/write_text_file"),
                },
                "terminal": False,
            },
            "clientInfo": {
                "name": CLIENT_NAME,
                "title": CLIENT_TITLE,
                "version": self.client_version,
            },
        }

        def on_response(result: Optional[dict], error: Optional[dict]) -> None:
            if error is not None:
                self._report_error("initialize", _error_message(error))
                return
            self._agent_supports_http_mcp = False
            caps = result.get("agentCapabilities") if result is not None else None
            mcp = caps.get("mcpCapabilities") if isinstance(caps, dict) else None
            if isinstance(mcp, dict) and isinstance(mcp.get("http"), bool):
                self._agent_supports_http_mcp = mcp["http"]
            self._send_new_session()

        self._peer.send_request("initialize", params, on_response)

    def _send_new_session(self) -> None:
        self._set_state(ClientState.CREATING_SESSION)
        servers: list[dict] = []
        if self.mcp_server_url:
            if self._agent_supports_http_mcp:
                servers.append(
                    {"type": "http", "name": "ue5", "url": self.mcp_server_url, "headers": []}
                )
            else:
                logger.warning(
                    "Agent did not advertise mcp_capabilities.http; MCP tools "
                    "won't be auto-registered for this session."
                )
        params = {"cwd": os.path.abspath(self.project_dir), "mcpServers": servers}

        def on_response(result: Optional[dict], error: Optional[dict]) -> None:
            if error is not None:
                self._report_error("session/new", _error_message(error))
                return
            session_id = result.get("sessionId") if result is not None else None
            if not isinstance(session_id, str):
                self._report_error("session/new", "response missing sessionId")
                return
            self._session_id = session_id
            values = result.get("configOptions")
            self._config_options = parse_config_options(values) if isinstance(values, list) else []
            self.agent_settings_changed.emit()
            logger.info(
                "Session ready: %s (configOptions=%d)", session_id, len(self._config_options)
            )
            self._set_state(ClientState.READY)

        self._peer.send_request("session/new", params, on_response)

    def _handle_notification(self, method: str, params: Optional[dict]) -> None:
        if method == "session/update" and params is not None:
            try:
                update = SessionUpdate.from_json(params)
            except ValueError:
                return
            settings_changed = update.kind is SessionUpdateKind.CONFIG_OPTION_UPDATE
            if settings_changed:
                self._config_options = _copy_options(update.config_options)
            self.session_update.emit(update)
            if settings_changed:
                self.agent_settings_changed.emit()
            return
        logger.debug("Unhandled notification: %s", method)

    def _handle_request(self, method: str, params: Optional[dict], request_id: Any) -> None:
        tool = self.tool_registry.find(method) if self.tool_registry is not None else None
        if tool is None:
            self._peer.send_error_response(
                request_id, METHOD_NOT_FOUND, f"method not found: {method}"
            )
            return

        def complete(response: ToolResponse) -> None:
            if response.error is not None:
                self._peer.send_error_response(
                    request_id, response.error.code, response.error.message
                )
                return
            self._peer.send_response(
                request_id, response.result if response.result is not None else {}
            )

        tool.execute_async(params, complete)