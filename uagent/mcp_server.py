"""HTTP adapter that serves McpProtocol on POST /mcp."""

from __future__ import annotations

import http.server
import ipaddress
import json
import logging
import threading
from dataclasses import dataclass
from http import HTTPStatus
from typing import Optional, Union

from .mcp_protocol import McpProtocol
from .registry import ToolRegistry

logger = logging.getLogger(__name__)

MCP_PATH = "/mcp"


def is_loopback_peer(address: Optional[Union[str, bytes]]) -> bool:
    """True for 127.x.x.x, ::1 and ::ffff:127.x.x.x; accepts text or packed bytes."""
    if address is None:
        return False
    try:
        ip = ipaddress.ip_address(address)
    except ValueError:
        return False
    if isinstance(ip, ipaddress.IPv4Address):
        return ip.packed[0] == 127
    if ip == ipaddress.IPv6Address("::1"):
        return True
    mapped = ip.ipv4_mapped
    return mapped is not None and mapped.packed[0] == 127


@dataclass(frozen=True)
class HttpReply:
    """Status, content type and body of one HTTP response."""

    status: int
    content_type: str
    body: bytes = b""


class _Handler(http.server.BaseHTTPRequestHandler):
    server: "_HttpServer"

    def do_POST(self) -> None:  # noqa: N802
        if self.path != MCP_PATH:
            self._write(HttpReply(HTTPStatus.NOT_FOUND, "text/plain"))
            return
        length = int(self.headers.get("Content-Length") or 0)
        body = self.rfile.read(length) if length > 0 else b""
        self._write(self.server.owner.handle_body(body, self.client_address[0]))

    def _write(self, reply: HttpReply) -> None:
        self.send_response(reply.status)
        self.send_header("Content-Type", reply.content_type)
        self.send_header("Content-Length", str(len(reply.body)))
        self.end_headers()
        if reply.body:
            self.wfile.write(reply.body)

    def log_message(self, format: str, *args: object) -> None:
        logger.debug("%s - %s", self.address_string(), format % args)


class _HttpServer(http.server.HTTPServer):
    def __init__(self, address: tuple, owner: "McpServer") -> None:
        self.owner = owner
        super().__init__(address, _Handler)


class McpServer:
    """Serves MCP over HTTP on ``<host>:<port>/mcp``, loopback peers only."""

    def __init__(self, host: str = "127.0.0.1", server_version: str = "0.0.0") -> None:
        self.host = host
        self.server_version = server_version
        self._protocol: Optional[McpProtocol] = None
        self._http: Optional[_HttpServer] = None
        self._thread: Optional[threading.Thread] = None
        self._port = 0

    @property
    def port(self) -> int:
        return self._port

    def start(self, port: int, registry: ToolRegistry) -> None:
        """Bind and start serving; port 0 picks a free port. Raises OSError on bind failure."""
        if self._port > 0:
            logger.warning("McpServer.start called while already listening on :%d", self._port)
            return
        if registry is None:
            raise ValueError("McpServer.start: no registry")

        self._protocol = McpProtocol(registry, self.server_version)
        try:
            self._http = _HttpServer((self.host, port), self)
        except OSError:
            self._protocol = None
            raise
        self._port = self._http.server_address[1]
        self._thread = threading.Thread(
            target=self._http.serve_forever, name="McpServer", daemon=True
        )
        self._thread.start()
        logger.info("MCP server listening on %s", self.endpoint_url())

    def stop(self) -> None:
        if self._http is not None:
            self._http.shutdown()
            self._http.server_close()
            self._http = None
        if self._thread is not None:
            self._thread.join()
            self._thread = None
        self._protocol = None
        self._port = 0

    def is_running(self) -> bool:
        return self._port > 0

    def endpoint_url(self) -> str:
        """``http://127.0.0.1:<port>/mcp``, or empty when not running."""
        return f"http://127.0.0.1:{self._port}/mcp" if self._port > 0 else ""

    def handle_body(self, body: bytes, peer: Optional[Union[str, bytes]]) -> HttpReply:
        """Answer one POST body from ``peer``; raises RuntimeError when not running."""
        if self._protocol is None:
            raise RuntimeError("MCP server is not running")

        if not is_loopback_peer(peer):
            logger.warning("MCP rejected non-loopback peer: %s", peer if peer is not None else "?")
            return HttpReply(HTTPStatus.FORBIDDEN, "text/plain")

        text = body.decode("utf-8", errors="replace")
        try:
            message = json.loads(text)
        except ValueError:
            message = None
        if not isinstance(message, dict):
            return self._json(self._protocol.make_parse_error("Parse error"))

        response = self._protocol.dispatch(message)
        if response is None:
            return HttpReply(HTTPStatus.ACCEPTED, "application/json")
        return self._json(response)

    @staticmethod
    def _json(envelope: dict) -> HttpReply:
        data = json.dumps(envelope, ensure_ascii=False, separators=(",", ":")).encode("utf-8")
        return HttpReply(HTTPStatus.OK, "application/json", data)

    def __enter__(self) -> "McpServer":
        return self

    def __exit__(self, *exc: object) -> None:
        self.stop()