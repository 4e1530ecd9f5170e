"""ACP wire types: content blocks, config options, stop reasons, session updates."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional


def _get_str(obj: Mapping[str, Any], key: str) -> Optional[str]:
    value = obj.get(key)
    return value if isinstance(value, str) else None


def _get_dict(obj: Mapping[str, Any], key: str) -> Optional[dict]:
    value = obj.get(key)
    return value if isinstance(value, dict) else None


def _get_list(obj: Mapping[str, Any], key: str) -> Optional[list]:
    value = obj.get(key)
    return value if isinstance(value, list) else None


def _get_number(obj: Mapping[str, Any], key: str) -> Optional[float]:
    value = obj.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


class ContentKind(enum.Enum):
    """Variant tag of an ACP content block."""

    TEXT = "text"
    RESOURCE = "resource"
    RESOURCE_LINK = "resource_link"
    IMAGE = "image"
    AUDIO = "audio"


@dataclass
class ContentBlock:
    """ACP content block: text, embedded resource, resource link, image or audio."""

    kind: ContentKind = ContentKind.TEXT
    text: str = ""
    resource_uri: str = ""
    resource_mime_type: str = ""
    resource_text: str = ""
    resource_blob: str = ""
    link_uri: str = ""
    link_name: str = ""
    link_mime_type: str = ""
    link_size: int = -1
    media_mime_type: str = ""
    media_data_base64: str = ""

    @staticmethod
    def text_block(text: str) -> ContentBlock:
        return ContentBlock(kind=ContentKind.TEXT, text=text)

    @staticmethod
    def resource_link(
        uri: str, name: str, mime_type: str = "", size: int = -1
    ) -> ContentBlock:
        return ContentBlock(
            kind=ContentKind.RESOURCE_LINK,
            link_uri=uri,
            link_name=name,
            link_mime_type=mime_type,
            link_size=size,
        )

    @staticmethod
    def resource(uri: str, mime_type: str, text: str) -> ContentBlock:
        return ContentBlock(
            kind=ContentKind.RESOURCE,
            resource_uri=uri,
            resource_mime_type=mime_type,
            resource_text=text,
        )

    def to_json(self) -> dict:
        """Serialize to the ACP JSON object form."""
        if self.kind is ContentKind.TEXT:
            return {"type": "text", "text": self.text}
        if self.kind is ContentKind.RESOURCE:
            res: dict[str, Any] = {"uri": self.resource_uri}
            if self.resource_mime_type:
                res["mimeType"] = self.resource_mime_type
            if self.resource_text:
                res["text"] = self.resource_text
            elif self.resource_blob:
                res["blob"] = self.resource_blob
            return {"type": "resource", "resource": res}
        if self.kind is ContentKind.RESOURCE_LINK:
            out: dict[str, Any] = {"type": "resource_link", "uri": self.link_uri}
            if self.link_name:
                out["name"] = self.link_name
            if self.link_mime_type:
                out["mimeType"] = self.link_mime_type
            if self.link_size >= 0:
                out["size"] = self.link_size
            return out
        return {
            "type": self.kind.value,
            "mimeType": self.media_mime_type,
            "data": self.media_data_base64,
        }

    @staticmethod
    def from_json(obj: Mapping[str, Any]) -> ContentBlock:
        """Parse a content block; raises ValueError for an unknown type."""
        kind = _get_str(obj, "type") or ""
        if kind == "text":
            return ContentBlock(kind=ContentKind.TEXT, text=_get_str(obj, "text") or "")
        if kind == "resource":
            block = ContentBlock(kind=ContentKind.RESOURCE)
            res = _get_dict(obj, "resource")
            if res is not None:
                block.resource_uri = _get_str(res, "uri") or ""
                block.resource_mime_type = _get_str(res, "mimeType") or ""
                block.resource_text = _get_str(res, "text") or ""
                block.resource_blob = _get_str(res, "blob") or ""
            return block
        if kind == "resource_link":
            block = ContentBlock(
                kind=ContentKind.RESOURCE_LINK,
                link_uri=_get_str(obj, "uri") or "",
                link_name=_get_str(obj, "name") or "",
                link_mime_type=_get_str(obj, "mimeType") or "",
            )
            size = _get_number(obj, "size")
            if size is not None:
                block.link_size = int(size)
            return block
        if kind in ("image", "audio"):
            return ContentBlock(
                kind=ContentKind(kind),
                media_mime_type=_get_str(obj, "mimeType") or "",
                media_data_base64=_get_str(obj, "data") or "",
            )
        raise ValueError(f"unknown content block type: {kind!r}")


@dataclass
class ConfigOptionChoice:
    """One choice inside a config option's ``options`` array."""

    value: str
    name: str = ""


@dataclass
class ConfigOption:
    """A session config option advertised by the agent (model, mode, ...)."""

    id: str
    category: str = ""
    current_value: str = ""
    options: list[ConfigOptionChoice] = field(default_factory=list)

    @staticmethod
    def from_json(obj: Mapping[str, Any]) -> ConfigOption:
        """Parse a config option; raises ValueError when ``id`` is missing or empty."""
        option_id = _get_str(obj, "id")
        if not option_id:
            raise ValueError("config option requires a non-empty 'id'")
        option = ConfigOption(
            id=option_id,
            category=_get_str(obj, "category") or "",
            current_value=_get_str(obj, "currentValue") or "",
        )
        for entry in _get_list(obj, "options") or []:
            if not isinstance(entry, dict):
                continue
            value = _get_str(entry, "value")
            if value is None:
                continue
            option.options.append(
                ConfigOptionChoice(value=value, name=_get_str(entry, "name") or "")
            )
        return option


def parse_config_options(values: Iterable[Any]) -> list[ConfigOption]:
    """Parse a JSON array of config options, skipping malformed entries."""
    options = []
    for value in values:
        if not isinstance(value, dict):
            continue
        try:
            options.append(ConfigOption.from_json(value))
        except ValueError:
            continue
    return options


class StopReason(enum.Enum):
    """Why a session/prompt turn ended."""

    END_TURN = "end_turn"
    MAX_TOKENS = "max_tokens"
    MAX_TURN_REQUESTS = "max_turn_requests"
    REFUSAL = "refusal"
    CANCELLED = "cancelled"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, text: str) -> StopReason:
        """Map a wire string to a stop reason; anything unrecognised is UNKNOWN."""
        for reason in cls:
            if reason is not cls.UNKNOWN and reason.value == text:
                return reason
        return cls.UNKNOWN

    def __str__(self) -> str:
        return self.value


class SessionUpdateKind(enum.Enum):
    """Variant tag of a session/update notification."""

    USER_MESSAGE_CHUNK = "user_message_chunk"
    AGENT_MESSAGE_CHUNK = "agent_message_chunk"
    AGENT_THOUGHT_CHUNK = "agent_thought_chunk"
    TOOL_CALL = "tool_call"
    TOOL_CALL_UPDATE = "tool_call_update"
    PLAN = "plan"
    AVAILABLE_COMMANDS_UPDATE = "available_commands_update"
    CURRENT_MODE_UPDATE = "current_mode_update"
    CONFIG_OPTION_UPDATE = "config_option_update"
    RAW = "raw"


_CHUNK_KINDS = {
    SessionUpdateKind.USER_MESSAGE_CHUNK,
    SessionUpdateKind.AGENT_MESSAGE_CHUNK,
    SessionUpdateKind.AGENT_THOUGHT_CHUNK,
}
_TOOL_KINDS = {SessionUpdateKind.TOOL_CALL, SessionUpdateKind.TOOL_CALL_UPDATE}
_KNOWN_KINDS = {k.value: k for k in SessionUpdateKind if k is not SessionUpdateKind.RAW}


def _try_block(obj: Mapping[str, Any]) -> Optional[ContentBlock]:
    try:
        return ContentBlock.from_json(obj)
    except ValueError:
        return None


@dataclass
class SessionUpdate:
    """A parsed session/update notification (unknown kinds are RAW)."""

    kind: SessionUpdateKind = SessionUpdateKind.RAW
    session_id: str = ""
    content: ContentBlock = field(default_factory=ContentBlock)
    tool_call_id: str = ""
    tool_call_title: str = ""
    tool_call_kind: str = ""
    tool_call_status: str = ""
    tool_call_content: list[ContentBlock] = field(default_factory=list)
    config_options: list[ConfigOption] = field(default_factory=list)
    raw: Optional[dict] = None

    @staticmethod
    def from_json(params: dict) -> SessionUpdate:
        """Parse notification params; raises ValueError without an update kind."""
        update = SessionUpdate(session_id=_get_str(params, "sessionId") or "", raw=params)
        body = _get_dict(params, "update")
        if body is None:
            raise ValueError("session update missing 'update' object")
        kind_name = _get_str(body, "sessionUpdate")
        if kind_name is None:
            raise ValueError("session update missing 'sessionUpdate'")

        kind = _KNOWN_KINDS.get(kind_name, SessionUpdateKind.RAW)
        update.kind = kind

        if kind in _CHUNK_KINDS:
            inner = _get_dict(body, "content")
            if inner is not None:
                block = _try_block(inner)
                if block is not None:
                    update.content = block
        elif kind in _TOOL_KINDS:
            update.tool_call_id = _get_str(body, "toolCallId") or ""
            update.tool_call_title = _get_str(body, "title") or ""
            update.tool_call_kind = _get_str(body, "kind") or ""
            update.tool_call_status = _get_str(body, "status") or ""
            for entry in _get_list(body, "content") or []:
                if not isinstance(entry, dict):
                    continue
                # Tool-call content entries usually wrap a block under "content".
                inner = _get_dict(entry, "content")
                block = _try_block(inner if inner is not None else entry)
                if block is not None:
                    update.tool_call_content.append(block)
        elif kind is SessionUpdateKind.CONFIG_OPTION_UPDATE:
            values = _get_list(body, "configOptions")
            if values is not None:
                update.config_options = parse_config_options(values)
        return update


def content_blocks_to_json(blocks: Iterable[ContentBlock]) -> list[dict]:
    """Serialize content blocks to a JSON array."""
    return [block.to_json() for block in blocks]