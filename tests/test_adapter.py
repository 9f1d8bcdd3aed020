import uuid

import pytest

from a2akit.adapter import HandlerAdapter
from a2akit.handler import (
    HandlerFuncs,
    PushNotificationsNotSupportedError,
    TaskNotCancelableError,
)
from a2akit.params import (
    PushNotificationConfig,
    TaskContext,
    TaskGetParams,
    TaskIdParams,
    TaskPushNotificationSetParams,
)
from a2akit.schema import (
    AgentAuthentication,
    AgentCapabilities,
    AgentCard,
    AgentSkill,
    Artifact,
    Message,
    Role,
    Task,
    TaskState,
    TaskStatus,
    TextPart,
)
from a2akit.store import TaskAndHistory, TaskNotFoundError, TaskStore


class MockTaskStore(TaskStore):
    def __init__(self):
        self.tasks = {}
        self.save_called = False
        self.load_called = False
        self.last_saved = None
        self.last_loaded_id = None
        self.save_error = None
        self.load_error = None

    def save(self, data):
        self.save_called = True
        self.last_saved = data
        if self.save_error is not None:
            raise self.save_error
        self.tasks[data.task.id] = data

    def load(self, task_id):
        self.load_called = True
        self.last_loaded_id = task_id
        if self.load_error is not None:
            raise self.load_error
        return self.tasks.get(task_id)

    def delete(self, task_id):
        self.tasks.pop(task_id, None)


def _card():
    return AgentCard(
        name="Test Agent",
        url="http://test",
        version="1.0",
        capabilities=AgentCapabilities(streaming=True),
        authentication=AgentAuthentication(schemes=["None"]),
        skills=[AgentSkill(id="test_skill", name="Test Skill")],
    )


def make_adapter(store, **funcs):
    events = []
    adapter = HandlerAdapter(
        HandlerFuncs(get_agent_card_func=_card, **funcs),
        store,
        notify=lambda task_id, kind, data: events.append((task_id, kind, data)),
    )
    return adapter, events


def user_msg(text):
    return Message(role=Role.USER, parts=[TextPart(text=text)])


def pre_save(store, task_id, state, history=None):
    store.save(
        TaskAndHistory(task=Task(id=task_id, status=TaskStatus(state=state)), history=history or [])
    )
    store.save_called = False
    store.last_saved = None


def test_get_agent_card_returns_card():
    adapter, _ = make_adapter(MockTaskStore())
    assert adapter.get_agent_card().name == "Test Agent"


def test_get_agent_card_missing_raises():
    adapter = HandlerAdapter(HandlerFuncs(), MockTaskStore())
    with pytest.raises(RuntimeError):
        adapter.get_agent_card()


def test_default_send_task():
    store = MockTaskStore()
    adapter, _ = make_adapter(store)
    ctx = TaskContext(id="test-default-send-task", message=user_msg("Test default send"))

    task = adapter.send_task(ctx)

    assert task.id == "test-default-send-task"
    assert task.status.state == TaskState.PENDING
    assert store.save_called
    assert store.last_saved.task.id == "test-default-send-task"
    assert store.last_saved.task.status.state == TaskState.PENDING
    assert len(store.last_saved.history) == 1
    assert store.last_saved.history[0].parts[0].text == "Test default send"


def test_user_send_task_func():
    store = MockTaskStore()
    seen_states = []

    def user_func(ctx):
        seen_states.append(ctx.current_task.status.state)
        final = ctx.current_task
        final.status.state = TaskState.COMPLETED
        final.status.message = Message(role=Role.AGENT, parts=[TextPart(text="User func done")])
        final.artifacts = [Artifact(name="user-artifact")]
        return final

    adapter, _ = make_adapter(store, send_task_func=user_func)
    ctx = TaskContext(id="test-user-send-task", message=user_msg("Test user send"))

    task = adapter.send_task(ctx)

    assert seen_states == [TaskState.PENDING]
    assert task.id == "test-user-send-task"
    assert task.status.state == TaskState.COMPLETED
    assert [a.name for a in task.artifacts] == ["user-artifact"]
    saved = store.last_saved
    assert saved.task.id == "test-user-send-task"
    assert saved.task.status.state == TaskState.COMPLETED
    assert len(saved.history) == 2
    assert saved.history[0].role == Role.USER
    assert saved.history[0].parts[0].text == "Test user send"
    assert saved.history[1].role == Role.AGENT
    assert saved.history[1].parts[0].text == "User func done"


def test_user_send_task_returning_none_raises():
    adapter, _ = make_adapter(MockTaskStore(), send_task_func=lambda ctx: None)
    with pytest.raises(RuntimeError):
        adapter.send_task(TaskContext(id="x", message=user_msg("hi")))


def test_default_send_task_save_error_raises():
    store = MockTaskStore()
    store.save_error = OSError("disk full")
    adapter, _ = make_adapter(store)
    with pytest.raises(RuntimeError, match="saving pending task"):
        adapter.send_task(TaskContext(id="x", message=user_msg("hi")))


def test_default_get_task_found():
    store = MockTaskStore()
    pre_save(store, "get-task-test-id", TaskState.PROCESSING, [user_msg("Initial message")])
    adapter, _ = make_adapter(store)

    task = adapter.get_task(TaskGetParams(id="get-task-test-id"))

    assert store.load_called
    assert store.last_loaded_id == "get-task-test-id"
    assert task.id == "get-task-test-id"
    assert task.status.state == TaskState.PROCESSING


def test_default_get_task_not_found():
    store = MockTaskStore()
    adapter, _ = make_adapter(store)
    with pytest.raises(TaskNotFoundError):
        adapter.get_task(TaskGetParams(id="non-existent-id"))
    assert store.last_loaded_id == "non-existent-id"


def test_default_get_task_load_error():
    store = MockTaskStore()
    store.load_error = OSError("broken")
    adapter, _ = make_adapter(store)
    with pytest.raises(RuntimeError, match="failed to load task data"):
        adapter.get_task(TaskGetParams(id="any"))


def test_default_cancel_task_success():
    store = MockTaskStore()
    pre_save(store, "cancel-task-test-id", TaskState.PROCESSING, [user_msg("Process this")])
    adapter, events = make_adapter(store)

    task = adapter.cancel_task(TaskIdParams(id="cancel-task-test-id"))

    assert store.last_loaded_id == "cancel-task-test-id"
    assert store.save_called
    assert store.last_saved.task.status.state == TaskState.CANCELED
    assert len(store.last_saved.history) == 2
    assert store.last_saved.history[1].role == Role.AGENT
    assert store.last_saved.history[1].parts
    assert task.status.state == TaskState.CANCELED
    assert len(events) == 1
    assert events[0][0] == "cancel-task-test-id"
    assert events[0][1] == "task_status_update"
    assert events[0][2].state == TaskState.CANCELED


def test_default_cancel_task_not_found():
    store = MockTaskStore()
    adapter, _ = make_adapter(store)
    with pytest.raises(TaskNotFoundError):
        adapter.cancel_task(TaskIdParams(id="non-existent-id"))
    assert store.load_called
    assert not store.save_called


def test_default_cancel_task_already_completed():
    store = MockTaskStore()
    pre_save(store, "completed-task-id", TaskState.COMPLETED)
    adapter, _ = make_adapter(store)
    with pytest.raises(TaskNotCancelableError, match="cannot be canceled"):
        adapter.cancel_task(TaskIdParams(id="completed-task-id"))
    assert store.load_called
    assert not store.save_called


def test_push_notifications_default_unsupported():
    adapter, _ = make_adapter(MockTaskStore())
    with pytest.raises(PushNotificationsNotSupportedError):
        adapter.get_task_push_notifications(TaskIdParams(id="t"))
    with pytest.raises(PushNotificationsNotSupportedError):
        adapter.set_task_push_notifications(TaskPushNotificationSetParams(id="t"))


def test_push_notifications_user_funcs():
    config = PushNotificationConfig(url="http://example.com/hook", token="token")
    adapter, _ = make_adapter(
        MockTaskStore(),
        set_task_push_notifications_func=lambda params: params.push_notification_config,
        get_task_push_notifications_func=lambda params: config,
    )
    params = TaskPushNotificationSetParams(id="t", push_notification_config=config)
    assert adapter.set_task_push_notifications(params).url == "http://example.com/hook"
    assert adapter.get_task_push_notifications(TaskIdParams(id="t")).token == "token"


def test_default_send_task_subscribe():
    store = MockTaskStore()
    adapter, _ = make_adapter(store)
    ctx = TaskContext(id="test-default-subscribe-task", message=user_msg("Test default subscribe"))

    task = adapter.send_task_subscribe(ctx)

    assert task.id == "test-default-subscribe-task"
    assert task.status.state == TaskState.PENDING
    assert store.last_saved.task.id == "test-default-subscribe-task"
    assert store.last_saved.task.status.state == TaskState.PENDING
    assert len(store.last_saved.history) == 1
    assert store.last_saved.history[0].parts[0].text == "Test default subscribe"


def test_user_send_task_subscribe():
    store = MockTaskStore()
    seen_states = []

    def user_func(ctx):
        seen_states.append(ctx.current_task.status.state)
        ctx.update_fn(TaskStatus(state=TaskState.PROCESSING))
        ctx.update_fn(Artifact(name="stream-artifact"))
        done = Message(role=Role.AGENT, parts=[TextPart(text="Stream done")])
        ctx.update_fn(TaskStatus(state=TaskState.COMPLETED, message=done))
        return ctx.current_task

    adapter, events = make_adapter(store, send_task_subscribe_func=user_func)
    ctx = TaskContext(id="test-user-subscribe-task", message=user_msg("Test user subscribe"))

    initial = adapter.send_task_subscribe(ctx)

    assert seen_states == [TaskState.PENDING]
    assert initial.id == "test-user-subscribe-task"
    assert initial.status.state == TaskState.PENDING

    final = store.load("test-user-subscribe-task")
    assert final.task.status.state == TaskState.COMPLETED
    assert final.task.status.message.parts[0].text == "Stream done"
    assert [a.name for a in final.task.artifacts] == ["stream-artifact"]
    assert [m.role for m in final.history] == [Role.USER, Role.AGENT]

    assert [kind for _, kind, _ in events] == [
        "task_status_update",
        "new_artifact",
        "task_status_update",
    ]
    assert events[0][2].state == TaskState.PROCESSING
    assert events[1][2].name == "stream-artifact"
    assert events[2][2].state == TaskState.COMPLETED


def test_user_send_task_subscribe_failure_records_failed_state():
    store = MockTaskStore()

    def user_func(ctx):
        raise ValueError("boom")

    adapter, events = make_adapter(store, send_task_subscribe_func=user_func)
    initial = adapter.send_task_subscribe(TaskContext(id="fail-task", message=user_msg("go")))

    assert initial.status.state == TaskState.PENDING
    stored = store.load("fail-task")
    assert stored.task.status.state == TaskState.FAILED
    assert stored.task.status.message.parts[0].text == "Processing failed: boom"
    assert events[-1][2].state == TaskState.FAILED


def test_update_fn_rejects_unknown_update():
    store = MockTaskStore()
    errors = []

    def user_func(ctx):
        try:
            ctx.update_fn("bogus")
        except RuntimeError as exc:
            errors.append(str(exc))
        return ctx.current_task

    adapter, _ = make_adapter(store, send_task_subscribe_func=user_func)
    adapter.send_task_subscribe(TaskContext(id="u", message=user_msg("go")))
    assert errors == ["internal error: failed to apply update"]
    assert store.load("u").task.status.state == TaskState.PENDING


def test_default_resubscribe_found():
    store = MockTaskStore()
    pre_save(store, "resubscribe-found-id", TaskState.PROCESSING)
    adapter, _ = make_adapter(store)
    assert adapter.resubscribe(TaskGetParams(id="resubscribe-found-id")) is None
    assert store.last_loaded_id == "resubscribe-found-id"


def test_default_resubscribe_not_found():
    store = MockTaskStore()
    adapter, _ = make_adapter(store)
    with pytest.raises(TaskNotFoundError):
        adapter.resubscribe(TaskGetParams(id="non-existent-resub-id"))
    assert store.last_loaded_id == "non-existent-resub-id"


def test_send_task_existing_task_appends_message():
    store = MockTaskStore()
    pre_save(store, "load-existing-id", TaskState.PROCESSING, [user_msg("Original msg")])
    adapter, _ = make_adapter(store)

    task = adapter.send_task(
        TaskContext(id="load-existing-id", message=user_msg("New msg"), session_id="session1")
    )

    assert store.last_loaded_id == "load-existing-id"
    assert task.status.state == TaskState.PROCESSING
    texts = [m.parts[0].text for m in store.last_saved.history]
    assert texts == ["Original msg", "New msg"]


def test_send_task_new_task_with_hint_keeps_session_and_metadata():
    store = MockTaskStore()
    adapter, _ = make_adapter(store)

    task = adapter.send_task(
        TaskContext(
            id="create-with-hint-id",
            message=user_msg("First msg"),
            session_id="session2",
            metadata={"key": "value"},
        )
    )

    assert store.last_loaded_id == "create-with-hint-id"
    assert task.id == "create-with-hint-id"
    assert task.status.state == TaskState.PENDING
    assert task.session_id == "session2"
    assert task.metadata == {"key": "value"}
    assert [m.parts[0].text for m in store.last_saved.history] == ["First msg"]


def test_send_task_without_hint_generates_uuid():
    store = MockTaskStore()
    adapter, _ = make_adapter(store)
    ctx = TaskContext(message=user_msg("Another first msg"), session_id="session3")

    task = adapter.send_task(ctx)

    assert not store.load_called
    assert str(uuid.UUID(task.id)) == task.id
    assert ctx.id == task.id
    assert task.session_id == "session3"
    assert task.status.state == TaskState.PENDING
    assert [m.parts[0].text for m in store.last_saved.history] == ["Another first msg"]