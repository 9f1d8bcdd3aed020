"""Handler built from a function table, with store-backed defaults."""

from __future__ import annotations

import logging
import threading
import uuid
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from a2akit.handler import BaseHandler, HandlerFuncs, TaskNotCancelableError
from a2akit.params import (
    PushNotificationConfig,
    TaskCancelParams,
    TaskContext,
    TaskGetParams,
    TaskIdParams,
    TaskPushNotificationSetParams,
)
from a2akit.schema import (
    AgentCard,
    Artifact,
    Message,
    Role,
    Task,
    TaskState,
    TaskStatus,
    TextPart,
)
from a2akit.store import TaskAndHistory, TaskNotFoundError, TaskStore
from a2akit.updates import apply_update_to_task_and_history

NotifyFunc = Callable[[str, str, Any], None]

CANCELLATION_TEXT = "Task canceled by request."


def _no_notify(task_id: str, event_type: str, data: Any) -> None:
    """Default notifier that drops events."""


class HandlerAdapter(BaseHandler):
    """Dispatches RPC methods to user functions, falling back to store-backed defaults.

    ``notify`` is called as ``notify(task_id, event_type, payload)`` whenever a
    task changes through the defaults or through the streaming update callback.
    """

    def __init__(
        self,
        funcs: HandlerFuncs,
        store: TaskStore,
        notify: NotifyFunc | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.funcs = funcs
        self.store = store
        self.notify = notify or _no_notify
        self.logger = logger or logging.getLogger(__name__)

    # --- task preparation -------------------------------------------------

    def _load_or_create(
        self,
        task_id_hint: str,
        initial_message: Message,
        session_id: str,
        metadata: dict[str, Any] | None,
    ) -> tuple[TaskAndHistory, str]:
        """Load a task and append the message, or build a new pending task.

        Nothing is saved; the caller is responsible for that.
        """
        task_id = task_id_hint
        existing: TaskAndHistory | None = None
        if task_id:
            try:
                existing = self.store.load(task_id)
            except TaskNotFoundError:
                existing = None
        else:
            task_id = str(uuid.uuid4())

        if existing is not None:
            self.logger.debug("Task %s found, using existing data.", task_id)
            if existing.history is None:
                existing.history = []
            existing.history.append(initial_message)
            return existing, task_id

        self.logger.debug("Task %s not found or no hint provided, creating new pending task.", task_id)
        status = TaskStatus(state=TaskState.PENDING)
        status.set_timestamp(datetime.now(timezone.utc))
        task = Task(
            id=task_id,
            session_id=session_id,
            status=status,
            metadata=metadata,
            artifacts=[],
        )
        return TaskAndHistory(task=task, history=[initial_message]), task_id

    def _prepare(self, ctx: TaskContext) -> tuple[TaskAndHistory, str]:
        return self._load_or_create(ctx.id, ctx.message, ctx.session_id, ctx.metadata)

    def _save_or_fail(self, data: TaskAndHistory, failure: str) -> None:
        try:
            self.store.save(data)
        except Exception as exc:
            self.logger.error("Error saving task %s: %s", data.task.id, exc)
            raise RuntimeError(failure) from exc

    # --- RPC methods ------------------------------------------------------

    def get_agent_card(self) -> AgentCard:
        if self.funcs.get_agent_card_func is None:
            raise RuntimeError("get_agent_card_func is mandatory but was not provided")
        return self.funcs.get_agent_card_func()

    def send_task(self, ctx: TaskContext) -> Task:
        initial, task_id = self._prepare(ctx)
        ctx.id = task_id

        if self.funcs.send_task_func is None:
            self.logger.debug("send_task (default): saving pending task %s", task_id)
            self._save_or_fail(initial, "internal server error while saving pending task")
            return initial.task

        self.logger.debug("send_task: calling user function for task %s", task_id)
        ctx.current_task = initial.task
        final_task = self.funcs.send_task_func(ctx)
        if final_task is None:
            raise RuntimeError("internal error: send_task_func returned no task")

        history = list(initial.history)
        message = final_task.status.message
        if message is not None and message.role == Role.AGENT:
            history.append(message)
        self._save_or_fail(
            TaskAndHistory(task=final_task, history=history),
            "internal server error while saving task",
        )
        return final_task

    def get_task(self, params: TaskGetParams) -> Task:
        if self.funcs.get_task_func is not None:
            return self.funcs.get_task_func(params)
        try:
            data = self.store.load(params.id)
        except Exception as exc:
            self.logger.error("Error loading task %s for get_task: %s", params.id, exc)
            raise RuntimeError("failed to load task data from store") from exc
        if data is None:
            raise TaskNotFoundError()
        return data.task

    def cancel_task(self, params: TaskCancelParams) -> Task:
        if self.funcs.cancel_task_func is not None:
            return self.funcs.cancel_task_func(params)

        data = self.store.load(params.id)
        if data is None:
            raise TaskNotFoundError()

        status = data.task.status
        if status.is_final():
            self.logger.info(
                "Attempted to cancel task %s already in final state %s", params.id, status.state
            )
            raise TaskNotCancelableError(params.id, status.state)

        cancel_status = TaskStatus(
            state=TaskState.CANCELED,
            message=Message(role=Role.AGENT, parts=[TextPart(text=CANCELLATION_TEXT)]),
        )
        try:
            updated = apply_update_to_task_and_history(data, cancel_status)
        except Exception as exc:
            raise RuntimeError("internal server error while applying cancel update") from exc
        self._save_or_fail(updated, "failed to save canceled task state")
        self.notify(params.id, "task_status_update", updated.task.status)
        return updated.task

    def set_task_push_notifications(
        self, params: TaskPushNotificationSetParams
    ) -> PushNotificationConfig:
        if self.funcs.set_task_push_notifications_func is not None:
            return self.funcs.set_task_push_notifications_func(params)
        return super().set_task_push_notifications(params)

    def get_task_push_notifications(self, params: TaskIdParams) -> PushNotificationConfig:
        if self.funcs.get_task_push_notifications_func is not None:
            return self.funcs.get_task_push_notifications_func(params)
        return super().get_task_push_notifications(params)

    def _make_update_fn(self, task_id: str) -> Callable[[Any], None]:
        lock = threading.Lock()

        def update_fn(update: Any) -> None:
            with lock:
                try:
                    current = self.store.load(task_id)
                except Exception as exc:
                    raise RuntimeError("internal error: failed to load task for update") from exc
                if current is None:
                    raise RuntimeError("internal error: task not found for update")
                try:
                    updated = apply_update_to_task_and_history(current, update)
                except Exception as exc:
                    raise RuntimeError("internal error: failed to apply update") from exc
                self._save_or_fail(updated, "internal error: failed to save update")
                if isinstance(update, TaskStatus):
                    self.notify(task_id, "task_status_update", updated.task.status)
                elif isinstance(update, Artifact):
                    self.notify(task_id, "new_artifact", update)

        return update_fn

    def send_task_subscribe(self, ctx: TaskContext) -> Task:
        initial, task_id = self._prepare(ctx)

        if self.funcs.send_task_subscribe_func is None:
            self._save_or_fail(initial, "internal server error while saving pending task")
            return initial.task

        ctx.id = task_id
        initial_task = initial.task
        self._save_or_fail(initial, "internal server error while saving initial task state")

        update_fn = self._make_update_fn(task_id)
        ctx.update_fn = update_fn
        ctx.current_task = initial_task

        try:
            self.funcs.send_task_subscribe_func(ctx)
        except Exception as exc:
            self.logger.error("send_task_subscribe: handler failed for task %s: %s", task_id, exc)
            failure = Message(
                role=Role.AGENT, parts=[TextPart(text=f"Processing failed: {exc}")]
            )
            try:
                update_fn(TaskStatus(state=TaskState.FAILED, message=failure))
            except Exception as update_exc:
                self.logger.error("Could not record failure for task %s: %s", task_id, update_exc)
        return initial_task

    def resubscribe(self, params: TaskGetParams) -> None:
        if self.funcs.resubscribe_func is not None:
            self.funcs.resubscribe_func(params)
            return
        try:
            data = self.store.load(params.id)
        except Exception as exc:
            raise RuntimeError("failed to check task existence for resubscription") from exc
        if data is None:
            raise TaskNotFoundError()