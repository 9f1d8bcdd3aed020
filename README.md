# a2akit

A small server for agent-to-agent (A2A) communication. It speaks JSON-RPC
over HTTP, publishes an agent card at `/.well-known/agent.json`, keeps tasks
and their message history in a task store, and streams task updates to
clients as server-sent events.

It is built on the standard library alone; there are no runtime
dependencies.

## Installing

```
pip install .
```

For the test suite:

```
pip install ".[test]"
pytest
```

## Writing an agent

An agent is described by a `HandlerFuncs` table. Only
`get_agent_card_func` is required; every other method falls back to a
default backed by the server's task store.

```python
from a2akit.handler import HandlerFuncs
from a2akit.schema import AgentCard, Message, Role, TaskState, TextPart
from a2akit.server import Server


def card():
    return AgentCard(name="Echo", url="http://localhost:8080", version="1.0")


def send(ctx):
    task = ctx.current_task
    task.status.state = TaskState.COMPLETED
    task.status.message = Message(role=Role.AGENT, parts=[TextPart(text="done")])
    return task


server = Server(
    HandlerFuncs(get_agent_card_func=card, send_task_func=send),
    address=":8080",
)
server.serve()  # blocks until server.shutdown() is called from another thread
```

`Server` takes the keyword options `address` (default `":8080"`), `store`
(default an `InMemoryTaskStore`), `logger` and `base_path` (default `"/"`;
a leading slash is added if missing). If the agent card does not enable
streaming, the server enables it and logs a warning.

For a send handler the server prepares `ctx.current_task` (a new pending
task, or the stored one if `ctx.id` names an existing task), calls the
handler, and saves the task it returns together with the history; an agent
message in the returned status is appended to the history.

For a streaming handler (`send_task_subscribe_func`) the pending task is
saved first and `ctx.update_fn` is provided. Call it with a `TaskStatus` or
an `Artifact`; each call loads the task, applies the update with
`apply_update_to_task_and_history()`, saves it and sends an event to every
subscribed client. If the handler raises, the task is marked failed.

## Defaults

When a method is not given in `HandlerFuncs`:

- `tasks/send` and `tasks/sendSubscribe` store a new pending task (or append
  the message to an existing one) and return it.
- `tasks/get` returns the task from the store, or a "task not found" error.
- `tasks/cancel` marks the task canceled with the agent message
  "Task canceled by request.", unless it is already completed, failed or
  canceled.
- `tasks/resubscribe` checks that the task exists and then streams its
  future events.
- `tasks/pushNotification/set` and `tasks/pushNotification/get` report
  that push notifications are not supported.

## Streaming

`tasks/sendSubscribe` and `tasks/resubscribe` answer with a
`text/event-stream` response. The first event is `rpc_result`, carrying
the JSON-RPC response; after it come `task_status_update` events
(`TaskStatusUpdateEvent`, with `final` set for completed, failed or
canceled states) and `task_artifact_update` events
(`TaskArtifactUpdateEvent`, with `final` taken from the artifact's
`last_chunk`). Events can also be pushed directly with
`Server.notify_task_update(task_id, event_type, data)`, and channels
managed with `Server.subscribe()` and `Server.unsubscribe()`.

`Server.dispatch(body)` handles one JSON-RPC body without HTTP and returns
the response to send, which is convenient in tests.

## Modules

- `a2akit.schema` – `Task`, `TaskStatus`, `TaskState`, `Message`, `Role`,
  `Artifact`, the parts `TextPart`, `FilePart` (with `FileData`) and
  `DataPart`, and `AgentCard`, `AgentCapabilities`, `AgentAuthentication`,
  `AgentSkill`, `AgentProvider`, plus the JSON-RPC types `RPCRequest`,
  `RPCResponse` and `RPCError`. Types convert to and from JSON-ready
  dictionaries with `to_dict()` / `from_dict()`. `part_from_dict()` raises
  `PartError` for an unknown part type or a file part that does not carry
  exactly one of `bytes` and `uri`; a part without a type is read as text.
- `a2akit.params` – request parameters (`TaskContext`, `TaskIdParams`,
  `TaskGetParams`, `TaskPushNotificationSetParams`,
  `PushNotificationConfig`) and the streamed event types.
- `a2akit.store` – `TaskAndHistory`, the `TaskStore` interface,
  `InMemoryTaskStore`, and `FileTaskStore`, which keeps `<id>.json` and
  `<id>.history.json` per task in a directory (by default `.a2a-tasks`).
  `load()` returns `None` for a missing task; task ids containing `/` or
  `\` are rejected.
- `a2akit.handler` – `HandlerFuncs`, `BaseHandler` and the errors
  `UnsupportedOperationError`, `PushNotificationsNotSupportedError` and
  `TaskNotCancelableError`.
- `a2akit.updates` – `apply_update_to_task_and_history()`. An artifact
  replaces the one at its index, else the one with the same name, else it
  is appended.
- `a2akit.adapter` – `HandlerAdapter`, which supplies the defaults.
- `a2akit.server` – `Server`.

## Error codes

| Situation                        | Code   |
|----------------------------------|--------|
| Malformed JSON                   | -32700 |
| Invalid request or version       | -32600 |
| Unknown method                   | -32601 |
| Invalid parameters               | -32602 |
| Internal error                   | -32603 |
| Task not found                   | -32001 |
| Task cannot be canceled          | -32002 |
| Push notifications not supported | -32003 |
| Unsupported operation            | -32004 |

The `jsonrpc` field must be `"2.0"` (or `"0"`).

## Bundled agents

A streaming agent that, after short pauses, reports it is processing,
sends an artifact echoing the first text part and completes:

```
a2akit-server
```

An agent that answers every task with "Hello World!":

```
a2akit-helloworld
```

An agent that echoes its input back and attaches an `echo_result` artifact:

```
a2akit-simple
```

Each listens on `:8080` by default and takes `--addr` to change it. Stop a
server with Ctrl+C.

## What it does not do

- Push notifications are not delivered; without handler functions for
  them the server only reports that they are unsupported.
- `historyLength` in a request is read but not applied; the default
  `tasks/get` returns the task without trimming anything.
- Resubscribing does not replay earlier events; only new ones are streamed.
- There is no authentication or authorization of requests.