"""Example A2A server with a simple streaming task, run from the command line."""

from __future__ import annotations

import argparse
import logging
import signal
import threading
import time
from datetime import datetime, timezone
from typing import Any

from a2akit.handler import HandlerFuncs
from a2akit.params import TaskContext
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
from a2akit.server import Server

logger = logging.getLogger(__name__)

# Pauses, in seconds, before the working status, the artifact and the final status.
WORK_DELAYS = (1.0, 2.0, 1.0)

LOG_FORMAT = "[A2A Simple Server] %(asctime)s %(filename)s:%(lineno)d: %(message)s"


def get_agent_card() -> AgentCard:
    """Return the static description of this agent."""
    return AgentCard(
        name="Simple Example Agent",
        description="A basic agent demonstrating the a2akit library.",
        url="http://localhost:8080",
        version="0.1.0",
        capabilities=AgentCapabilities(streaming=True, push_notifications=False),
        authentication=AgentAuthentication(schemes=["None"]),
        skills=[
            AgentSkill(
                id="simple_echo",
                name="Simple Echo Task",
                description="Echoes back the input message as an agent message and completes.",
            ),
            AgentSkill(
                id="simple_stream",
                name="Simple Streaming Task",
                description="Sends a few status updates and an artifact via SSE.",
            ),
        ],
    )


def _first_text(message: Message) -> str:
    if not message.parts or not isinstance(message.parts[0], TextPart):
        raise ValueError("first message part is not a text part")
    return message.parts[0].text


def _send_update(ctx: TaskContext, update: Any, what: str) -> None:
    try:
        ctx.update_fn(update)
    except Exception as exc:
        logger.error("[Task %s] Error sending %s update: %s", ctx.id, what, exc)


def _stream_work(ctx: TaskContext) -> None:
    first_pause, second_pause, third_pause = WORK_DELAYS

    time.sleep(first_pause)
    logger.info("[Task %s] Sending working status...", ctx.id)
    _send_update(ctx, TaskStatus(state=TaskState.PROCESSING), "working status")

    time.sleep(second_pause)
    logger.info("[Task %s] Sending text artifact...", ctx.id)
    try:
        text = _first_text(ctx.message)
    except ValueError as exc:
        logger.error("[Task %s] Cannot process input: %s", ctx.id, exc)
        return
    artifact = Artifact(parts=[TextPart(text=f"Processed input: {text}")])
    _send_update(ctx, artifact, "artifact")

    time.sleep(third_pause)
    logger.info("[Task %s] Sending completed status...", ctx.id)
    completion = Message(
        role=Role.AGENT,
        parts=[TextPart(text="Task completed successfully after streaming.")],
    )
    _send_update(ctx, TaskStatus(state=TaskState.COMPLETED, message=completion), "completed status")
    logger.info("[Task %s] Streaming finished.", ctx.id)


def send_task_subscribe(ctx: TaskContext) -> Task:
    """Start the streaming work in the background and return the initial task."""
    logger.info("Handling send_task_subscribe for task %s", ctx.id)
    threading.Thread(target=_stream_work, args=(ctx,), daemon=True).start()
    logger.info("[Task %s] Returning initial task state to start stream.", ctx.id)
    return ctx.current_task


def main(argv: list[str] | None = None) -> int:
    """Run the example server until interrupted."""
    parser = argparse.ArgumentParser(prog="a2akit", description="Run the example A2A server.")
    parser.add_argument("--addr", default=":8080", help="Address to listen on")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
    log = logging.getLogger("a2akit.cli")

    funcs = HandlerFuncs(
        get_agent_card_func=get_agent_card,
        send_task_subscribe_func=send_task_subscribe,
    )
    try:
        server = Server(funcs, address=args.addr, logger=log)
    except (ValueError, RuntimeError) as exc:
        log.error("Failed to create server: %s", exc)
        return 1

    stop = threading.Event()
    failures: list[BaseException] = []

    def run() -> None:
        try:
            server.serve()
        except (OSError, ValueError, RuntimeError) as exc:
            failures.append(exc)
            stop.set()

    previous: dict[int, Any] = {}
    if threading.current_thread() is threading.main_thread():
        for signum in (signal.SIGINT, signal.SIGTERM):
            previous[signum] = signal.signal(signum, lambda *_: stop.set())

    thread = threading.Thread(target=run, daemon=True)
    thread.start()
    try:
        while not stop.wait(0.5):
            pass
    finally:
        for signum, handler in previous.items():
            signal.signal(signum, handler)

    if failures:
        log.error("Server failed: %s", failures[0])
        return 1

    log.info("Shutting down server...")
    server.shutdown()
    thread.join(timeout=30)
    log.info("Server exiting at %s", datetime.now(timezone.utc).isoformat())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())