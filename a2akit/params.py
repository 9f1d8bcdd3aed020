"""Parameter and event types for the A2A RPC methods."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from a2akit.schema import AgentAuthentication, Artifact, Message, Task, TaskStatus

UpdateFunc = Callable[[Any], None]


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


def _opt_dict(data: Mapping, key: str) -> dict[str, Any] | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, Mapping):
        raise ValueError(f"field {key!r} must be an object")
    return dict(value)


@dataclass
class PushNotificationConfig:
    """Where and how to deliver push notifications for a task."""

    url: str = ""
    token: str | None = None
    authentication: AgentAuthentication | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"url": self.url}
        if self.token is not None:
            result["token"] = self.token
        if self.authentication is not None:
            result["authentication"] = self.authentication.to_dict()
        return result

    @classmethod
    def from_dict(cls, data: Any) -> PushNotificationConfig:
        data = _require_mapping(data, "push notification config")
        token = data.get("token")
        if token is not None and not isinstance(token, str):
            raise ValueError("field 'token' must be a string")
        raw_auth = data.get("authentication")
        return cls(
            url=_opt_str(data, "url"),
            token=token,
            authentication=(
                AgentAuthentication.from_dict(raw_auth) if raw_auth is not None else None
            ),
        )


@dataclass
class TaskContext:
    """Parameters of a send request, plus server-provided state for handlers."""

    message: Message
    id: str = ""
    session_id: str = ""
    history_length: int = 0
    push_notification: PushNotificationConfig | None = None
    metadata: dict[str, Any] | None = None
    update_fn: UpdateFunc | None = field(default=None, compare=False, repr=False)
    current_task: Task | None = None

    @classmethod
    def from_dict(cls, data: Any) -> TaskContext:
        data = _require_mapping(data, "task params")
        raw_message = data.get("message")
        raw_push = data.get("pushNotification")
        return cls(
            message=Message.from_dict(raw_message if raw_message is not None else {}),
            id=_opt_str(data, "id"),
            session_id=_opt_str(data, "sessionId"),
            history_length=_opt_int(data, "historyLength"),
            push_notification=(
                PushNotificationConfig.from_dict(raw_push) if raw_push is not None else None
            ),
            metadata=_opt_dict(data, "metadata"),
        )


@dataclass
class TaskIdParams:
    """Parameters naming a task by id."""

    id: str = ""
    metadata: dict[str, Any] | None = None

    @classmethod
    def from_dict(cls, data: Any) -> TaskIdParams:
        data = _require_mapping(data, "task id params")
        return cls(id=_opt_str(data, "id"), metadata=_opt_dict(data, "metadata"))


TaskCancelParams = TaskIdParams


@dataclass
class TaskGetParams:
    """Parameters for querying a task."""

    id: str = ""
    history_length: int = 0
    metadata: dict[str, Any] | None = None

    @classmethod
    def from_dict(cls, data: Any) -> TaskGetParams:
        data = _require_mapping(data, "task query params")
        return cls(
            id=_opt_str(data, "id"),
            history_length=_opt_int(data, "historyLength"),
            metadata=_opt_dict(data, "metadata"),
        )


@dataclass
class TaskPushNotificationSetParams:
    """Parameters for configuring push notifications on a task."""

    id: str = ""
    push_notification_config: PushNotificationConfig = field(
        default_factory=PushNotificationConfig
    )
    metadata: dict[str, Any] | None = None

    @classmethod
    def from_dict(cls, data: Any) -> TaskPushNotificationSetParams:
        data = _require_mapping(data, "push notification params")
        raw_config = data.get("pushNotificationConfig")
        return cls(
            id=_opt_str(data, "id"),
            push_notification_config=PushNotificationConfig.from_dict(
                raw_config if raw_config is not None else {}
            ),
            metadata=_opt_dict(data, "metadata"),
        )


@dataclass
class TaskStatusUpdateEvent:
    """Streamed event announcing a new task status."""

    id: str
    status: TaskStatus
    final: bool = False
    metadata: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"id": self.id, "status": self.status.to_dict()}
        if self.final:
            result["final"] = True
        if self.metadata:
            result["metadata"] = dict(self.metadata)
        return result


@dataclass
class TaskArtifactUpdateEvent:
    """Streamed event announcing a new or updated artifact."""

    id: str
    artifact: Artifact
    final: bool = False
    metadata: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"id": self.id, "artifact": self.artifact.to_dict()}
        if self.final:
            result["final"] = True
        if self.metadata:
            result["metadata"] = dict(self.metadata)
        return result