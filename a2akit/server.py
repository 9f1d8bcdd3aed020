"""A2A JSON-RPC server over HTTP, with server-sent event streaming."""

from __future__ import annotations

import json
import logging
import queue
import threading
from collections.abc import Callable
from dataclasses import dataclass
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any
from urllib.parse import urlsplit

from a2akit.adapter import HandlerAdapter
from a2akit.handler import (
    HandlerFuncs,
    PushNotificationsNotSupportedError,
    TaskNotCancelableError,
    UnsupportedOperationError,
)
from a2akit.params import (
    TaskArtifactUpdateEvent,
    TaskCancelParams,
    TaskContext,
    TaskGetParams,
    TaskIdParams,
    TaskPushNotificationSetParams,
    TaskStatusUpdateEvent,
)
from a2akit.schema import (
    INTERNAL_ERROR_CODE,
    INVALID_PARAMS_CODE,
    INVALID_REQUEST_CODE,
    METHOD_NOT_FOUND_CODE,
    PARSE_ERROR_CODE,
    PUSH_NOTIFY_NOT_SUPPORTED_CODE,
    TASK_CANNOT_BE_CANCELED_CODE,
    TASK_NOT_FOUND_CODE,
    UNSUPPORTED_OPERATION_CODE,
    Artifact,
    Message,
    RPCError,
    RPCRequest,
    RPCResponse,
    Task,
    TaskStatus,
)
from a2akit.store import InMemoryTaskStore, TaskAndHistory, TaskNotFoundError, TaskStore

AGENT_CARD_PATH = "/.well-known/agent.json"
CLIENT_BUFFER_SIZE = 10
SEND_TIMEOUT = 1.0
RESUBSCRIBE_STATUS = "resubscription initiated"
_POLL_INTERVAL = 0.25


@dataclass
class DispatchResult:
    """Outcome of dispatching one JSON-RPC request body."""

    http_status: int
    response: RPCResponse
    stream_task_id: str | None = None

    @property
    def streaming(self) -> bool:
        return self.stream_task_id is not None


def _format_sse(event_name: str, payload: dict[str, Any]) -> bytes:
    data = json.dumps(payload, separators=(",", ":"))
    return f"event: {event_name}\ndata: {data}\n\n".encode("utf-8")


def _parse_address(address: str) -> tuple[str, int]:
    host, sep, port_text = address.rpartition(":")
    if not sep:
        raise ValueError(f"invalid listen address: {address}")
    try:
        port = int(port_text) if port_text else 0
    except ValueError as exc:
        raise ValueError(f"invalid port in listen address: {address}") from exc
    return host.strip("[]"), port


_Method = tuple[Callable[[Any], Any], Callable[[HandlerAdapter, Any], Any]]

_METHODS: dict[str, _Method] = {
    "tasks/send": (TaskContext.from_dict, lambda h, p: h.send_task(p)),
    "tasks/get": (TaskGetParams.from_dict, lambda h, p: h.get_task(p)),
    "tasks/cancel": (TaskCancelParams.from_dict, lambda h, p: h.cancel_task(p)),
    "tasks/pushNotification/set": (
        TaskPushNotificationSetParams.from_dict,
        lambda h, p: h.set_task_push_notifications(p),
    ),
    "tasks/pushNotification/get": (
        TaskIdParams.from_dict,
        lambda h, p: h.get_task_push_notifications(p),
    ),
    "tasks/sendSubscribe": (TaskContext.from_dict, lambda h, p: h.send_task_subscribe(p)),
    "tasks/resubscribe": (TaskGetParams.from_dict, lambda h, p: h.resubscribe(p)),
}


class Server:
    """Serves an agent card and the A2A JSON-RPC methods, streaming task events."""

    def __init__(
        self,
        funcs: HandlerFuncs,
        *,
        address: str = ":8080",
        store: TaskStore | None = None,
        logger: logging.Logger | None = None,
        base_path: str = "/",
    ) -> None:
        if funcs.get_agent_card_func is None:
            raise ValueError("HandlerFuncs.get_agent_card_func is mandatory but was not provided")
        if not address:
            raise ValueError("server address cannot be empty")
        if not base_path:
            raise ValueError("base path cannot be empty")
        if not base_path.startswith("/"):
            base_path = "/" + base_path

        self.address = address
        self.base_path = base_path
        self.logger = logger or logging.getLogger(__name__)
        self.store = store if store is not None else InMemoryTaskStore()
        self.handler = HandlerAdapter(
            funcs, self.store, notify=self.notify_task_update, logger=self.logger
        )
        self.server_address: tuple[str, int] | None = None

        self._clients: dict[str, set[queue.Queue]] = {}
        self._clients_lock = threading.Lock()
        self._shutdown = threading.Event()
        self._httpd_lock = threading.Lock()
        self._httpd: ThreadingHTTPServer | None = None

        try:
            card = self.handler.get_agent_card()
        except Exception as exc:
            raise RuntimeError(f"failed to get agent card from handler funcs: {exc}") from exc
        if not card.capabilities.streaming:
            self.logger.warning(
                "AgentCard does not explicitly enable streaming. "
                "Enabling based on server capability."
            )
            card.capabilities.streaming = True
        self.agent_card = card
        self.logger.info(
            "Server configured for address: %s, Store: %s", address, type(self.store).__name__
        )

    # --- task helpers ---------------------------------------------------------

    def load_or_create_task_and_history(
        self,
        task_id_hint: str,
        initial_message: Message,
        session_id: str,
        metadata: dict[str, Any] | None,
    ) -> tuple[TaskAndHistory, str]:
        """Load a task and append the message, or build a new pending one; nothing is saved."""
        return self.handler._load_or_create(task_id_hint, initial_message, session_id, metadata)

    # --- event subscriptions ----------------------------------------------------

    def subscribe(self, task_id: str) -> queue.Queue:
        """Register a new event channel for a task and return it."""
        channel: queue.Queue = queue.Queue(maxsize=CLIENT_BUFFER_SIZE)
        with self._clients_lock:
            self._clients.setdefault(task_id, set()).add(channel)
        return channel

    def unsubscribe(self, task_id: str, channel: queue.Queue) -> None:
        """Remove a channel; a ``None`` is queued on it to mark it closed."""
        with self._clients_lock:
            clients = self._clients.get(task_id)
            if clients is None or channel not in clients:
                return
            clients.discard(channel)
            if not clients:
                del self._clients[task_id]
        try:
            channel.put_nowait(None)
        except queue.Full:
            pass

    def notify_task_update(self, task_id: str, event_type: str, data: Any) -> None:
        """Send a status or artifact event to every channel subscribed to the task."""
        with self._clients_lock:
            channels = list(self._clients.get(task_id, ()))
        if not channels:
            return

        if event_type == "task_status_update":
            if not isinstance(data, TaskStatus):
                self.logger.error(
                    "Invalid data type for task_status_update: %s", type(data).__name__
                )
                return
            final = data.is_final()
            sse_name = "task_status_update"
            payload = TaskStatusUpdateEvent(id=task_id, status=data, final=final).to_dict()
        elif event_type == "new_artifact":
            if not isinstance(data, Artifact):
                self.logger.error("Invalid data type for new_artifact: %s", type(data).__name__)
                return
            final = data.last_chunk
            sse_name = "task_artifact_update"
            payload = TaskArtifactUpdateEvent(id=task_id, artifact=data, final=final).to_dict()
        else:
            self.logger.warning(
                "Unknown or unsupported event type for SSE notification: %s", event_type
            )
            return

        try:
            message = _format_sse(sse_name, payload)
        except (TypeError, ValueError) as exc:
            self.logger.error(
                "Error marshaling SSE event data for task %s (%s): %s", task_id, sse_name, exc
            )
            return

        self.logger.debug(
            "Notifying %d clients for task %s (event: %s, final: %s)",
            len(channels),
            task_id,
            sse_name,
            final,
        )
        for channel in channels:
            self._deliver(channel, message, task_id)

    def _deliver(self, channel: queue.Queue, message: bytes, task_id: str) -> None:
        try:
            channel.put_nowait(message)
            return
        except queue.Full:
            pass

        def wait_and_put() -> None:
            try:
                channel.put(message, timeout=SEND_TIMEOUT)
            except queue.Full:
                self.logger.warning("Timeout sending SSE message to client for task %s", task_id)

        threading.Thread(target=wait_and_put, daemon=True).start()

    def _pump_events(self, wfile: Any, task_id: str) -> None:
        channel = self.subscribe(task_id)
        self.logger.debug("SSE client channel registered for task %s", task_id)
        try:
            while not self._shutdown.is_set():
                try:
                    message = channel.get(timeout=_POLL_INTERVAL)
                except queue.Empty:
                    continue
                if message is None:
                    self.logger.debug("SSE client channel closed for task %s", task_id)
                    return
                wfile.write(message)
                wfile.flush()
        except OSError as exc:
            self.logger.info("SSE client disconnected for task %s: %s", task_id, exc)
        finally:
            self.unsubscribe(task_id, channel)

    # --- JSON-RPC ---------------------------------------------------------------

    def map_handler_error(self, error: BaseException) -> RPCError:
        """Translate a handler exception into a JSON-RPC error."""
        text = str(error)
        if isinstance(error, TaskNotFoundError):
            return RPCError(TASK_NOT_FOUND_CODE, "Task not found", text)
        if isinstance(error, UnsupportedOperationError):
            return RPCError(UNSUPPORTED_OPERATION_CODE, "Unsupported operation", text)
        if isinstance(error, PushNotificationsNotSupportedError):
            return RPCError(
                PUSH_NOTIFY_NOT_SUPPORTED_CODE, "Push notifications not supported", text
            )
        if isinstance(error, TaskNotCancelableError) or "cannot be canceled" in text.lower():
            return RPCError(TASK_CANNOT_BE_CANCELED_CODE, "Task cannot be canceled", text)
        self.logger.error("Internal handler error: %s", error)
        return RPCError(INTERNAL_ERROR_CODE, "Internal server error", text)

    def dispatch(self, body: bytes | str) -> DispatchResult:
        """Handle one JSON-RPC request body and describe the response to send."""
        try:
            request = RPCRequest.from_dict(json.loads(body))
        except ValueError as exc:
            self.logger.info("Error parsing JSON request: %s", exc)
            return DispatchResult(
                400,
                RPCResponse(
                    error=RPCError(PARSE_ERROR_CODE, "Failed to parse JSON request", str(exc))
                ),
            )

        if request.jsonrpc not in ("2.0", "0"):
            return DispatchResult(
                400,
                RPCResponse(
                    id=request.id,
                    error=RPCError(INVALID_REQUEST_CODE, "Invalid jsonrpc version"),
                ),
            )

        def failure(error: RPCError) -> DispatchResult:
            return DispatchResult(200, RPCResponse(id=request.id, error=error))

        entry = _METHODS.get(request.method)
        if entry is None:
            return failure(
                RPCError(METHOD_NOT_FOUND_CODE, f"Method '{request.method}' not found")
            )
        parse, call = entry

        raw_params = request.params if request.params is not None else {}
        try:
            params = parse(raw_params)
        except ValueError as exc:
            return failure(
                RPCError(INVALID_PARAMS_CODE, f"Invalid params for {request.method}", str(exc))
            )

        try:
            result = call(self.handler, params)
        except Exception as exc:
            return failure(self.map_handler_error(exc))

        stream_task_id = None
        if request.method == "tasks/sendSubscribe":
            if not isinstance(result, Task):
                return failure(
                    RPCError(
                        INTERNAL_ERROR_CODE,
                        "Internal error: sendSubscribe handler returned unexpected type",
                    )
                )
            stream_task_id = result.id
            self.logger.debug("sendSubscribe successful for task %s; streaming.", result.id)
        elif request.method == "tasks/resubscribe":
            result = {"status": RESUBSCRIBE_STATUS}
            stream_task_id = params.id
            self.logger.debug("resubscribe successful for task %s; streaming.", params.id)

        return DispatchResult(
            200, RPCResponse(id=request.id, result=result), stream_task_id=stream_task_id
        )

    def _matches_base_path(self, path: str) -> bool:
        if self.base_path.endswith("/"):
            return path.startswith(self.base_path)
        return path == self.base_path

    # --- lifecycle ------------------------------------------------------------------

    def serve(self) -> None:
        """Listen on the configured address and serve requests until shut down."""
        host, port = _parse_address(self.address)
        with self._httpd_lock:
            if self._shutdown.is_set():
                raise RuntimeError("server has been shut down")
            httpd = ThreadingHTTPServer((host, port), _RequestHandler)
            httpd.daemon_threads = True
            httpd.a2a_server = self  # type: ignore[attr-defined]
            self._httpd = httpd
            self.server_address = (httpd.server_address[0], httpd.server_address[1])
        self.logger.info(
            "A2A Server listening on %s (RPC: %s, AgentCard: %s)",
            self.address,
            self.base_path,
            AGENT_CARD_PATH,
        )
        try:
            httpd.serve_forever()
        finally:
            httpd.server_close()

    def shutdown(self) -> None:
        """Stop serving and end every open event stream."""
        self.logger.info("Shutting down server gracefully...")
        self._shutdown.set()
        with self._httpd_lock:
            httpd = self._httpd
            self._httpd = None
        if httpd is not None:
            httpd.shutdown()


class _RequestHandler(BaseHTTPRequestHandler):
    server_version = "a2akit"

    @property
    def a2a(self) -> Server:
        return self.server.a2a_server  # type: ignore[attr-defined]

    def log_message(self, format: str, *args: Any) -> None:
        self.a2a.logger.debug("%s - %s", self.address_string(), format % args)

    def do_GET(self) -> None:
        self._route("GET")

    def do_POST(self) -> None:
        self._route("POST")

    def do_PUT(self) -> None:
        self._route("PUT")

    def do_DELETE(self) -> None:
        self._route("DELETE")

    def do_PATCH(self) -> None:
        self._route("PATCH")

    def _route(self, method: str) -> None:
        path = urlsplit(self.path).path
        if path == AGENT_CARD_PATH:
            self._agent_card(method)
        elif self.a2a._matches_base_path(path):
            self._rpc(method)
        else:
            self._send_body(404, "text/plain; charset=utf-8", b"404 page not found\n")

    def _send_body(self, status: int, content_type: str, body: bytes) -> None:
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def _send_json(self, status: int, payload: Any) -> None:
        body = (json.dumps(payload) + "\n").encode("utf-8")
        self._send_body(status, "application/json", body)

    def _agent_card(self, method: str) -> None:
        if method != "GET":
            self._send_body(405, "text/plain; charset=utf-8", b"Method Not Allowed\n")
            return
        self._send_json(200, self.a2a.agent_card.to_dict())

    def _rpc(self, method: str) -> None:
        if method != "POST":
            response = RPCResponse(error=RPCError(INVALID_REQUEST_CODE, "Method Not Allowed"))
            self._send_json(405, response.to_dict())
            return
        length = int(self.headers.get("Content-Length") or 0)
        body = self.rfile.read(length) if length > 0 else b""
        result = self.a2a.dispatch(body)
        if result.streaming:
            self._stream(result)
        else:
            self._send_json(result.http_status, result.response.to_dict())

    def _stream(self, result: DispatchResult) -> None:
        assert result.stream_task_id is not None
        self.send_response(200)
        self.send_header("Content-Type", "text/event-stream")
        self.send_header("Cache-Control", "no-cache")
        self.send_header("Connection", "keep-alive")
        self.send_header("Access-Control-Allow-Origin", "*")
        self.end_headers()
        try:
            self.wfile.write(_format_sse("rpc_result", result.response.to_dict()))
            self.wfile.flush()
        except OSError as exc:
            self.a2a.logger.info("SSE client gone before streaming began: %s", exc)
            return
        self.a2a._pump_events(self.wfile, result.stream_task_id)