"""Transport interface and newline-delimited JSON framing helpers."""

from __future__ import annotations

import abc
import json
import logging
from typing import Any, Callable, Optional, Sequence

logger = logging.getLogger(__name__)

MAX_STDERR_CHARS = 64 * 1024

MessageHandler = Callable[[dict], Any]
ExitHandler = Callable[[int, str], Any]


class Transport(abc.ABC):
    """A bidirectional JSON-RPC message channel to an agent.

    Implementations deliver each complete inbound message to ``on_message``
    and report the end of the agent through ``on_exit(exit_code, stderr)``.
    """

    def __init__(self) -> None:
        self.on_message: Optional[MessageHandler] = None
        self.on_exit: Optional[ExitHandler] = None

    @abc.abstractmethod
    def start(self, command: str, args: Sequence[str], working_dir: str) -> bool:
        """Open the channel; returns False when the agent could not be reached."""

    @abc.abstractmethod
    def shutdown(self) -> None:
        """Close the channel. Safe to call twice."""

    @abc.abstractmethod
    def is_running(self) -> bool:
        """True while the channel is open."""

    @abc.abstractmethod
    def send(self, message: dict) -> bool:
        """Write one message as a single newline-terminated line."""


class LineBuffer:
    """Accumulates raw bytes and yields complete, trimmed UTF-8 lines.

    Bytes are decoded only once a whole line is present, so multi-byte
    characters split across chunks stay intact.
    """

    def __init__(self) -> None:
        self._pending = bytearray()

    @property
    def pending(self) -> bytes:
        """Bytes of the incomplete trailing line."""
        return bytes(self._pending)

    def feed(self, data: bytes) -> list[str]:
        """Add a chunk and return the non-blank lines it completed."""
        self._pending.extend(data)
        *complete, rest = bytes(self._pending).split(b"\n")
        self._pending = bytearray(rest)
        lines = []
        for raw in complete:
            if raw.endswith(b"\r"):
                raw = raw[:-1]
            line = raw.decode("utf-8", errors="replace").strip()
            if line:
                lines.append(line)
        return lines


class StderrLog:
    """Keeps the tail of an agent's stderr, capped at ``max_chars``."""

    def __init__(self, max_chars: int = MAX_STDERR_CHARS) -> None:
        if max_chars <= 0:
            raise ValueError("max_chars must be positive")
        self.max_chars = max_chars
        self._text = ""

    def append(self, line: str) -> None:
        self._text = f"{self._text}\n{line}" if self._text else line
        if len(self._text) > self.max_chars:
            self._text = self._text[-self.max_chars:]

    def text(self) -> str:
        return self._text


def encode_message(message: dict) -> bytes:
    """Serialize a message to compact UTF-8 JSON with exactly one trailing newline."""
    return json.dumps(message, ensure_ascii=False, separators=(",", ":")).encode("utf-8") + b"\n"


def decode_message(line: str) -> dict:
    """Parse one line into a JSON object; raises ValueError otherwise."""
    try:
        value = json.loads(line)
    except json.JSONDecodeError as exc:
        raise ValueError(f"failed to parse line: {line}") from exc
    if not isinstance(value, dict):
        raise ValueError(f"line is not a JSON object: {line}")
    return value