"""Applying status and artifact updates to stored task data."""

from __future__ import annotations

import dataclasses
from datetime import datetime, timezone
from typing import Any

from a2akit.schema import Artifact, Role, TaskStatus
from a2akit.store import TaskAndHistory


def _apply_status(task_status: TaskStatus, update: TaskStatus, history: list) -> TaskStatus:
    new_status = dataclasses.replace(task_status, state=update.state)
    if update.message is not None:
        new_status.message = update.message
        if update.message.role == Role.AGENT:
            history.append(update.message)
    new_status.set_timestamp(datetime.now(timezone.utc))
    return new_status


def _apply_artifact(artifacts: list[Artifact], update: Artifact) -> None:
    if 0 <= update.index < len(artifacts):
        artifacts[update.index] = update
        return
    if update.name:
        for position, existing in enumerate(artifacts):
            if existing.name == update.name:
                artifacts[position] = update
                return
    artifacts.append(update)


def apply_update_to_task_and_history(current: TaskAndHistory, update: Any) -> TaskAndHistory:
    """Return new task data with a status or artifact update applied.

    The input is left unchanged. A status update replaces the state, keeps
    the old message unless a new one is given, adds agent messages to the
    history and refreshes the timestamp. An artifact replaces the one at
    its index, else the one with the same name, else it is appended.
    """
    if current is None or current.task is None:
        raise ValueError("cannot apply update to nil task data")

    history = list(current.history)
    artifacts = list(current.task.artifacts)
    new_task = dataclasses.replace(current.task, artifacts=artifacts)

    if isinstance(update, TaskStatus):
        new_task.status = _apply_status(new_task.status, update, history)
    elif isinstance(update, Artifact):
        _apply_artifact(new_task.artifacts, update)
    else:
        raise TypeError(f"unknown update type: {type(update).__name__}")

    return TaskAndHistory(task=new_task, history=history)