"""Persistence of tasks and their message history."""

from __future__ import annotations

import copy
import json
import logging
import os
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from a2akit.schema import Message, Task

logger = logging.getLogger(__name__)

DEFAULT_BASE_DIR = ".a2a-tasks"


class TaskNotFoundError(LookupError):
    """Raised when a task does not exist in a store."""

    def __init__(self, message: str = "task not found in store") -> None:
        super().__init__(message)


@dataclass
class TaskAndHistory:
    """A task bundled with its message history."""

    task: Task
    history: list[Message] = field(default_factory=list)


class TaskStore(ABC):
    """Storage for tasks and their history."""

    @abstractmethod
    def save(self, data: TaskAndHistory) -> None:
        """Store the task and history, replacing any data with the same task id."""

    @abstractmethod
    def load(self, task_id: str) -> TaskAndHistory | None:
        """Return the stored data for ``task_id``, or ``None`` if there is none."""

    @abstractmethod
    def delete(self, task_id: str) -> None:
        """Remove the task; removing a missing task is not an error."""


def _check_data(data: Any, where: str) -> None:
    if data is None or getattr(data, "task", None) is None:
        raise ValueError(f"cannot save nil task data{where}")


class InMemoryTaskStore(TaskStore):
    """A thread-safe store that keeps tasks in a dictionary."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._tasks: dict[str, TaskAndHistory] = {}

    def save(self, data: TaskAndHistory) -> None:
        _check_data(data, " to memory store")
        stored = copy.deepcopy(data)
        with self._lock:
            self._tasks[data.task.id] = stored

    def load(self, task_id: str) -> TaskAndHistory | None:
        with self._lock:
            data = self._tasks.get(task_id)
            return copy.deepcopy(data) if data is not None else None

    def delete(self, task_id: str) -> None:
        with self._lock:
            self._tasks.pop(task_id, None)


def sanitize_task_id(task_id: str) -> str:
    """Return ``task_id`` if it is safe to use as a file name, else raise ValueError."""
    if not task_id:
        raise ValueError("task ID cannot be empty")
    if "/" in task_id or "\\" in task_id:
        raise ValueError(f"invalid task ID format: {task_id}")
    return task_id


def _write_file(path: Path, content: str) -> None:
    def opener(name: str, flags: int) -> int:
        return os.open(name, flags, 0o640)

    with open(path, "w", encoding="utf-8", opener=opener) as handle:
        handle.write(content)


def _remove_quietly(path: Path) -> None:
    try:
        path.unlink()
    except OSError:
        pass


class FileTaskStore(TaskStore):
    """A thread-safe store keeping each task in ``<id>.json`` and ``<id>.history.json``."""

    def __init__(self, base_dir: str | os.PathLike[str] = "") -> None:
        self.base_dir = Path(base_dir or DEFAULT_BASE_DIR)
        self._lock = threading.Lock()
        self._ensure_directory()

    def _ensure_directory(self) -> None:
        self.base_dir.mkdir(mode=0o750, parents=True, exist_ok=True)

    def _task_path(self, task_id: str) -> Path:
        return self.base_dir / f"{sanitize_task_id(task_id)}.json"

    def _history_path(self, task_id: str) -> Path:
        return self.base_dir / f"{sanitize_task_id(task_id)}.history.json"

    def save(self, data: TaskAndHistory) -> None:
        _check_data(data, "")
        task_id = data.task.id
        with self._lock:
            task_path = self._task_path(task_id)
            history_path = self._history_path(task_id)
            self._ensure_directory()

            task_text = json.dumps(data.task.to_dict(), indent=2)
            temp_task = task_path.with_name(task_path.name + ".tmp")
            _write_file(temp_task, task_text)

            temp_history = history_path.with_name(history_path.name + ".tmp")
            try:
                history_text = json.dumps(
                    {"history": [m.to_dict() for m in data.history]}, indent=2
                )
                _write_file(temp_history, history_text)
            except Exception:
                _remove_quietly(temp_task)
                raise

            try:
                os.replace(temp_task, task_path)
            except OSError:
                _remove_quietly(temp_task)
                _remove_quietly(temp_history)
                raise
            try:
                os.replace(temp_history, history_path)
            except OSError as exc:
                logger.warning(
                    "Failed to rename history file %s, task file %s might be updated: %s",
                    temp_history,
                    task_path,
                    exc,
                )
                _remove_quietly(temp_history)
                raise

    def load(self, task_id: str) -> TaskAndHistory | None:
        with self._lock:
            task_path = self._task_path(task_id)
            history_path = self._history_path(task_id)

            try:
                task_text = task_path.read_text(encoding="utf-8")
            except FileNotFoundError:
                return None

            try:
                task = Task.from_dict(json.loads(task_text))
            except ValueError as exc:
                raise ValueError(
                    f"failed to unmarshal task data from {task_path}: {exc}"
                ) from exc

            try:
                history_text = history_path.read_text(encoding="utf-8")
            except FileNotFoundError:
                return TaskAndHistory(task=task, history=[])

            try:
                history = self._decode_history(json.loads(history_text))
            except ValueError as exc:
                logger.warning(
                    "Malformed history file found for task %s at %s. Ignoring content. Error: %s",
                    task_id,
                    history_path,
                    exc,
                )
                history = []
            return TaskAndHistory(task=task, history=history)

    @staticmethod
    def _decode_history(raw: Any) -> list[Message]:
        if not isinstance(raw, dict):
            raise ValueError("history file must hold a JSON object")
        entries = raw.get("history")
        if entries is None:
            return []
        if not isinstance(entries, list):
            raise ValueError("field 'history' must be a list")
        return [Message.from_dict(entry) for entry in entries]

    def delete(self, task_id: str) -> None:
        with self._lock:
            task_path = self._task_path(task_id)
            history_path = self._history_path(task_id)
            for path in (task_path, history_path):
                try:
                    path.unlink()
                except FileNotFoundError:
                    pass