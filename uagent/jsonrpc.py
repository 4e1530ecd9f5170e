"""Generic JSON-RPC 2.0 peer on top of a Transport."""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from .transport import Transport

logger = logging.getLogger(__name__)

METHOD_NOT_FOUND = -32601

ResponseContinuation = Callable[[Optional[dict], Optional[dict]], Any]
RequestHandler = Callable[[str, Optional[dict], Any], Any]
NotificationHandler = Callable[[str, Optional[dict]], Any]


def _dict_or_none(value: Any) -> Optional[dict]:
    return value if isinstance(value, dict) else None


class JsonRpcPeer:
    """Allocates request ids, tracks pending continuations and classifies inbound messages.

    ``on_request(method, params, id)`` handles requests from the other side;
    ``on_notification(method, params)`` handles notifications.
    """

    def __init__(self) -> None:
        self.transport: Optional[Transport] = None
        self.on_request: Optional[RequestHandler] = None
        self.on_notification: Optional[NotificationHandler] = None
        self._next_id = 0
        self._pending: dict[int, ResponseContinuation] = {}

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def bind_transport(self, transport: Optional[Transport]) -> None:
        """Route the transport's inbound messages here; None unbinds."""
        self.transport = transport
        if transport is not None:
            transport.on_message = self.handle_incoming

    def reset(self) -> None:
        """Drop pending continuations and restart id allocation."""
        self._pending.clear()
        self._next_id = 0

    def _send(self, message: dict) -> None:
        if self.transport is not None:
            self.transport.send(message)

    def send_request(
        self,
        method: str,
        params: dict,
        continuation: Optional[ResponseContinuation] = None,
    ) -> Optional[int]:
        """Send a request; returns its id, or None when no transport is bound."""
        if self.transport is None:
            return None
        self._next_id += 1
        request_id = self._next_id
        if continuation is not None:
            self._pending[request_id] = continuation
        self._send({"jsonrpc": "2.0", "id": request_id, "method": method, "params": params})
        return request_id

    def send_notification(self, method: str, params: dict) -> None:
        self._send({"jsonrpc": "2.0", "method": method, "params": params})

    def send_response(self, id: Any, result: dict) -> None:
        """Reply to a request; ``id`` is passed through as the request used it."""
        if id is None:
            return
        self._send({"jsonrpc": "2.0", "id": id, "result": result})

    def send_error_response(self, id: Any, code: int, message: str) -> None:
        if id is None:
            return
        self._send(
            {"jsonrpc": "2.0", "id": id, "error": {"code": code, "message": message}}
        )

    def handle_incoming(self, message: dict) -> None:
        """Classify one inbound message and dispatch it."""
        has_method = "method" in message
        has_id = "id" in message

        if has_method:
            method = message["method"] if isinstance(message["method"], str) else ""
            params = _dict_or_none(message.get("params"))
            if has_id:
                request_id = message["id"]
                if self.on_request is not None:
                    self.on_request(method, params, request_id)
                else:
                    self.send_error_response(
                        request_id, METHOD_NOT_FOUND, f"no handler for method '{method}'"
                    )
            elif self.on_notification is not None:
                self.on_notification(method, params)
            return

        if has_id:
            raw_id = message["id"]
            if isinstance(raw_id, (int, float)) and not isinstance(raw_id, bool):
                response_id = int(raw_id)
            else:
                response_id = 0
            self._handle_response(
                response_id,
                _dict_or_none(message.get("result")),
                _dict_or_none(message.get("error")),
            )
            return

        logger.warning("malformed message (no method, no id): dropping")

    def _handle_response(
        self, response_id: int, result: Optional[dict], error: Optional[dict]
    ) -> None:
        continuation = self._pending.pop(response_id, None)
        if continuation is None:
            logger.warning("response for unknown id=%d", response_id)
            return
        continuation(result, error)