"""Core A2A data types and their JSON wire representation."""

from __future__ import annotations

import base64
import binascii
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Union

logger = logging.getLogger(__name__)

PARSE_ERROR_CODE = -32700
INVALID_REQUEST_CODE = -32600
METHOD_NOT_FOUND_CODE = -32601
INVALID_PARAMS_CODE = -32602
INTERNAL_ERROR_CODE = -32603
TASK_NOT_FOUND_CODE = -32001
TASK_CANNOT_BE_CANCELED_CODE = -32002
PUSH_NOTIFY_NOT_SUPPORTED_CODE = -32003
UNSUPPORTED_OPERATION_CODE = -32004


class TaskState(str, Enum):
    """Possible states of a task."""

    UNKNOWN = "unknown"
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELED = "canceled"


FINAL_STATES = frozenset({TaskState.COMPLETED, TaskState.CANCELED, TaskState.FAILED})


class Role(str, Enum):
    """Originator of a message."""

    USER = "user"
    AGENT = "agent"


class PartError(ValueError):
    """Raised when a message part cannot be encoded or decoded."""


# --- decoding helpers -------------------------------------------------------


def _require_mapping(data: Any, what: str) -> Mapping:
    if not isinstance(data, Mapping):
        raise ValueError(f"{what} must be a JSON object, got {type(data).__name__}")
    return data


def _opt_str(data: Mapping, key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"field {key!r} must be a string")
    return value


def _opt_int(data: Mapping, key: str) -> int:
    value = data.get(key)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"field {key!r} must be an integer")
    return value


def _opt_bool(data: Mapping, key: str) -> bool:
    value = data.get(key)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ValueError(f"field {key!r} must be a boolean")
    return value


def _opt_dict(data: Mapping, key: str) -> dict[str, Any] | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, Mapping):
        raise ValueError(f"field {key!r} must be an object")
    return dict(value)


def _opt_str_list(data: Mapping, key: str) -> list[str]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValueError(f"field {key!r} must be a list of strings")
    return list(value)


def _coerce(enum_cls: type[Enum], value: Any) -> Any:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        return value


def _enum_value(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def _to_jsonable(value: Any) -> Any:
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Mapping):
        return {k: _to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_jsonable(v) for v in value]
    return value


# --- parts -------------------------------------------------------------------


@dataclass
class TextPart:
    """Plain text content."""

    text: str = ""

    @property
    def type(self) -> str:
        return "text"

    def to_dict(self) -> dict[str, Any]:
        return {"text": self.text, "type": self.type}


@dataclass
class FileData:
    """File content, given either as raw bytes or as a URI."""

    content: bytes | None = None
    uri: str | None = None


@dataclass
class FilePart:
    """A file attachment."""

    file: FileData
    mime_type: str = ""

    @property
    def type(self) -> str:
        return "file"

    def to_dict(self) -> dict[str, Any]:
        file_dict: dict[str, Any] = {}
        if self.file.content is not None:
            file_dict["bytes"] = base64.b64encode(self.file.content).decode("ascii")
        if self.file.uri is not None:
            file_dict["uri"] = self.file.uri
        result: dict[str, Any] = {"file": file_dict}
        if self.mime_type:
            result["mimeType"] = self.mime_type
        result["type"] = self.type
        return result


@dataclass
class DataPart:
    """Generic structured data."""

    data: Any = None
    mime_type: str = ""

    @property
    def type(self) -> str:
        return "data"

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"data": _to_jsonable(self.data)}
        if self.mime_type:
            result["mimeType"] = self.mime_type
        result["type"] = self.type
        return result


Part = Union[TextPart, FilePart, DataPart]


def part_to_dict(part: Part) -> dict[str, Any]:
    """Encode a part, including its ``type`` discriminator."""
    if not isinstance(part, (TextPart, FilePart, DataPart)):
        raise PartError(f"cannot encode part of type {type(part).__name__}")
    return part.to_dict()


def _decode_file_data(raw: Any) -> FileData:
    if raw is None:
        return FileData()
    if not isinstance(raw, Mapping):
        raise PartError("unmarshal FilePart: 'file' must be an object")
    content = None
    raw_bytes = raw.get("bytes")
    if raw_bytes is not None:
        if not isinstance(raw_bytes, str):
            raise PartError("unmarshal FilePart: 'bytes' must be a base64 string")
        try:
            content = base64.b64decode(raw_bytes, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise PartError(f"unmarshal FilePart: {exc}") from exc
    uri = raw.get("uri")
    if uri is not None and not isinstance(uri, str):
        raise PartError("unmarshal FilePart: 'uri' must be a string")
    return FileData(content=content, uri=uri)


def part_from_dict(data: Any) -> Part:
    """Decode a part from its JSON object form."""
    if not isinstance(data, Mapping):
        raise PartError("part must be a JSON object")
    part_type = data.get("type")
    if part_type is not None and not isinstance(part_type, str):
        logger.warning("Part type detection failed: non-string type. Assuming text part.")
        part_type = "text"
    if not part_type:
        part_type = "text"

    try:
        if part_type == "text":
            return TextPart(text=_opt_str(data, "text"))
        if part_type == "file":
            file_data = _decode_file_data(data.get("file"))
            if (file_data.content is None) == (file_data.uri is None):
                raise PartError(
                    "invalid FilePart: exactly one of 'bytes' or 'uri' must be provided"
                )
            return FilePart(file=file_data, mime_type=_opt_str(data, "mimeType"))
        if part_type == "data":
            return DataPart(data=data.get("data"), mime_type=_opt_str(data, "mimeType"))
    except PartError:
        raise
    except ValueError as exc:
        raise PartError(f"unmarshal {part_type} part: {exc}") from exc
    raise PartError(f"unknown part type: {part_type}")


def _parts_from_list(raw: Any) -> list[Part]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise PartError("failed to unmarshal parts array: expected a list")
    parts = []
    for index, raw_part in enumerate(raw):
        try:
            parts.append(part_from_dict(raw_part))
        except PartError as exc:
            raise PartError(f"failed to unmarshal part at index {index}: {exc}") from exc
    return parts


# --- messages, artifacts and tasks --------------------------------------------


@dataclass
class Message:
    """A message exchanged within a task."""

    role: Role | str
    parts: list[Part] = field(default_factory=list)
    metadata: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "role": _enum_value(self.role),
            "parts": [part_to_dict(p) for p in self.parts],
        }
        if self.metadata:
            result["metadata"] = _to_jsonable(self.metadata)
        return result

    @classmethod
    def from_dict(cls, data: Any) -> Message:
        data = _require_mapping(data, "message")
        return cls(
            role=_coerce(Role, _opt_str(data, "role")),
            parts=_parts_from_list(data.get("parts")),
            metadata=_opt_dict(data, "metadata"),
        )


@dataclass
class Artifact:
    """Data generated or used during a task."""

    parts: list[Part] = field(default_factory=list)
    name: str = ""
    description: str = ""
    metadata: dict[str, Any] | None = None
    index: int = 0
    last_chunk: bool = False
    append: bool = False

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        if self.name:
            result["name"] = self.name
        if self.description:
            result["description"] = self.description
        result["parts"] = [part_to_dict(p) for p in self.parts]
        if self.metadata:
            result["metadata"] = _to_jsonable(self.metadata)
        if self.index:
            result["index"] = self.index
        if self.last_chunk:
            result["lastChunk"] = True
        if self.append:
            result["append"] = True
        return result

    @classmethod
    def from_dict(cls, data: Any) -> Artifact:
        data = _require_mapping(data, "artifact")
        return cls(
            parts=_parts_from_list(data.get("parts")),
            name=_opt_str(data, "name"),
            description=_opt_str(data, "description"),
            metadata=_opt_dict(data, "metadata"),
            index=_opt_int(data, "index"),
            last_chunk=_opt_bool(data, "lastChunk"),
            append=_opt_bool(data, "append"),
        )


def _format_timestamp(moment: datetime) -> str:
    utc = moment.astimezone(timezone.utc)
    text = utc.strftime("%Y-%m-%dT%H:%M:%S")
    if utc.microsecond:
        text += "." + f"{utc.microsecond:06d}".rstrip("0")
    return text + "Z"


@dataclass
class TaskStatus:
    """The status of a task."""

    state: TaskState | str
    message: Message | None = None
    timestamp: str = ""

    def set_timestamp(self, moment: datetime) -> None:
        """Set the timestamp from a datetime, as RFC 3339 in UTC."""
        self.timestamp = _format_timestamp(moment)

    def is_final(self) -> bool:
        return self.state in FINAL_STATES

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"state": _enum_value(self.state)}
        if self.message is not None:
            result["message"] = self.message.to_dict()
        if self.timestamp:
            result["timestamp"] = self.timestamp
        return result

    @classmethod
    def from_dict(cls, data: Any) -> TaskStatus:
        data = _require_mapping(data, "task status")
        raw_message = data.get("message")
        return cls(
            state=_coerce(TaskState, _opt_str(data, "state")),
            message=Message.from_dict(raw_message) if raw_message is not None else None,
            timestamp=_opt_str(data, "timestamp"),
        )


@dataclass
class Task:
    """A stateful unit of collaboration."""

    id: str
    status: TaskStatus = field(default_factory=lambda: TaskStatus(TaskState.UNKNOWN))
    session_id: str = ""
    artifacts: list[Artifact] = field(default_factory=list)
    metadata: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"id": self.id}
        if self.session_id:
            result["sessionId"] = self.session_id
        result["status"] = self.status.to_dict()
        if self.artifacts:
            result["artifacts"] = [a.to_dict() for a in self.artifacts]
        if self.metadata:
            result["metadata"] = _to_jsonable(self.metadata)
        return result

    @classmethod
    def from_dict(cls, data: Any) -> Task:
        data = _require_mapping(data, "task")
        raw_artifacts = data.get("artifacts")
        if raw_artifacts is None:
            artifacts = []
        elif isinstance(raw_artifacts, list):
            artifacts = [Artifact.from_dict(a) for a in raw_artifacts]
        else:
            raise ValueError("field 'artifacts' must be a list")
        raw_status = data.get("status")
        return cls(
            id=_opt_str(data, "id"),
            status=TaskStatus.from_dict(raw_status if raw_status is not None else {}),
            session_id=_opt_str(data, "sessionId"),
            artifacts=artifacts,
            metadata=_opt_dict(data, "metadata"),
        )


# --- agent description ----------------------------------------------------------


@dataclass
class AgentProvider:
    """The service provider of an agent."""

    organization: str
    url: str

    def to_dict(self) -> dict[str, Any]:
        return {"organization": self.organization, "url": self.url}


@dataclass
class AgentAuthentication:
    """Authentication schemes an agent supports or requires."""

    schemes: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"schemes": list(self.schemes)}

    @classmethod
    def from_dict(cls, data: Any) -> AgentAuthentication:
        data = _require_mapping(data, "authentication")
        return cls(schemes=_opt_str_list(data, "schemes"))


@dataclass
class AgentCapabilities:
    """Optional features an agent supports."""

    streaming: bool = False
    push_notifications: bool = False

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        if self.streaming:
            result["streaming"] = True
        if self.push_notifications:
            result["pushNotifications"] = True
        return result


@dataclass
class AgentSkill:
    """A specific capability of an agent."""

    id: str
    name: str
    description: str = ""
    tags: list[str] = field(default_factory=list)
    examples: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"id": self.id, "name": self.name}
        if self.description:
            result["description"] = self.description
        if self.tags:
            result["tags"] = list(self.tags)
        if self.examples:
            result["examples"] = list(self.examples)
        return result


@dataclass
class AgentCard:
    """Metadata describing an A2A agent."""

    name: str
    url: str
    version: str
    description: str = ""
    icon_uri: str = ""
    capabilities: AgentCapabilities = field(default_factory=AgentCapabilities)
    authentication: AgentAuthentication = field(default_factory=AgentAuthentication)
    default_input_modes: list[str] = field(default_factory=list)
    default_output_modes: list[str] = field(default_factory=list)
    skills: list[AgentSkill] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"name": self.name}
        if self.description:
            result["description"] = self.description
        result["url"] = self.url
        result["version"] = self.version
        if self.icon_uri:
            result["iconUri"] = self.icon_uri
        result["capabilities"] = self.capabilities.to_dict()
        result["authentication"] = self.authentication.to_dict()
        if self.default_input_modes:
            result["defaultInputModes"] = list(self.default_input_modes)
        if self.default_output_modes:
            result["defaultOutputModes"] = list(self.default_output_modes)
        if self.skills:
            result["skills"] = [s.to_dict() for s in self.skills]
        return result


# --- JSON-RPC envelopes ---------------------------------------------------------------


@dataclass
class RPCError:
    """A JSON-RPC error object."""

    code: int
    message: str
    data: Any = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            result["data"] = _to_jsonable(self.data)
        return result


@dataclass
class RPCRequest:
    """A JSON-RPC request; ``params`` is kept as decoded JSON."""

    jsonrpc: str = ""
    method: str = ""
    params: Any = None
    id: Any = None

    @classmethod
    def from_dict(cls, data: Any) -> RPCRequest:
        data = _require_mapping(data, "request")
        return cls(
            jsonrpc=_opt_str(data, "jsonrpc"),
            method=_opt_str(data, "method"),
            params=data.get("params"),
            id=data.get("id"),
        )


@dataclass
class RPCResponse:
    """A JSON-RPC response carrying either a result or an error."""

    id: Any = None
    result: Any = None
    error: RPCError | None = None
    jsonrpc: str = "2.0"

    def to_dict(self) -> dict[str, Any]:
        response: dict[str, Any] = {"jsonrpc": self.jsonrpc}
        if self.result is not None:
            response["result"] = _to_jsonable(self.result)
        if self.error is not None:
            response["error"] = self.error.to_dict()
        response["id"] = self.id
        return response