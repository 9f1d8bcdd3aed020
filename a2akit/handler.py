"""Handler errors, the function table used to configure a server, and default handler behaviour."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, NoReturn

from a2akit.params import (
    PushNotificationConfig,
    TaskCancelParams,
    TaskContext,
    TaskGetParams,
    TaskIdParams,
    TaskPushNotificationSetParams,
)
from a2akit.schema import AgentCard, Task


class _DetailedError(Exception):
    """An error with a fixed base message and an optional detail."""

    base_message = ""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        message = f"{self.base_message}: {detail}" if detail else self.base_message
        super().__init__(message)


class UnsupportedOperationError(_DetailedError):
    """Raised when a handler does not provide an RPC method."""

    base_message = "unsupported operation"


class PushNotificationsNotSupportedError(_DetailedError):
    """Raised when a handler does not support push notifications."""

    base_message = "push notifications not supported"


class TaskNotCancelableError(Exception):
    """Raised when a task is already in a final state and cannot be canceled."""

    def __init__(self, task_id: str, state: Any) -> None:
        self.task_id = task_id
        self.state = state
        state_text = state.value if isinstance(state, Enum) else state
        super().__init__(f"task {task_id} cannot be canceled, already in state {state_text}")


@dataclass
class HandlerFuncs:
    """Functions implementing the A2A RPC methods.

    Only ``get_agent_card_func`` is mandatory; for the others the server
    falls back to defaults backed by its task store.
    """

    get_agent_card_func: Callable[[], AgentCard] | None = None
    send_task_func: Callable[[TaskContext], Task] | None = None
    get_task_func: Callable[[TaskGetParams], Task] | None = None
    cancel_task_func: Callable[[TaskCancelParams], Task] | None = None
    set_task_push_notifications_func: (
        Callable[[TaskPushNotificationSetParams], PushNotificationConfig] | None
    ) = None
    get_task_push_notifications_func: (
        Callable[[TaskIdParams], PushNotificationConfig] | None
    ) = None
    send_task_subscribe_func: Callable[[TaskContext], Task] | None = None
    resubscribe_func: Callable[[TaskGetParams], None] | None = None


# RPC method name -> (error raised by the default handler, detail text)
_DEFAULT_REJECTIONS: dict[str, tuple[type[_DetailedError], str]] = {
    "tasks/send": (UnsupportedOperationError, "tasks/send not implemented"),
    "tasks/get": (UnsupportedOperationError, "tasks/get not implemented"),
    "tasks/cancel": (UnsupportedOperationError, "tasks/cancel not implemented"),
    "tasks/pushNotification/set": (
        PushNotificationsNotSupportedError,
        "tasks/pushNotification/set",
    ),
    "tasks/pushNotification/get": (
        PushNotificationsNotSupportedError,
        "tasks/pushNotification/get",
    ),
    "tasks/sendSubscribe": (UnsupportedOperationError, "tasks/sendSubscribe not implemented"),
    "tasks/resubscribe": (UnsupportedOperationError, "tasks/resubscribe not implemented"),
}


class BaseHandler:
    """Default handler: every method reports that it is not supported.

    Subclass it and override the methods the agent provides;
    ``get_agent_card`` must always be overridden.
    """

    def _reject(self, rpc_method: str) -> NoReturn:
        """Raise the error the default handler reports for ``rpc_method``."""
        error_type, detail = _DEFAULT_REJECTIONS[rpc_method]
        raise error_type(detail)

    def get_agent_card(self) -> AgentCard:
        handler_name = type(self).__name__
        raise RuntimeError(
            f"get_agent_card must be implemented by the handler subclass ({handler_name})"
        )

    def send_task(self, ctx: TaskContext) -> Task:
        self._reject("tasks/send")

    def get_task(self, params: TaskGetParams) -> Task:
        self._reject("tasks/get")

    def cancel_task(self, params: TaskCancelParams) -> Task:
        self._reject("tasks/cancel")

    def set_task_push_notifications(
        self, params: TaskPushNotificationSetParams
    ) -> PushNotificationConfig:
        self._reject("tasks/pushNotification/set")

    def get_task_push_notifications(self, params: TaskIdParams) -> PushNotificationConfig:
        self._reject("tasks/pushNotification/get")

    def send_task_subscribe(self, ctx: TaskContext) -> Task:
        self._reject("tasks/sendSubscribe")

    def resubscribe(self, params: TaskGetParams) -> None:
        self._reject("tasks/resubscribe")