"""Example agent that echoes its input back synchronously."""

from __future__ import annotations

import argparse
import logging
import time
from datetime import datetime, timezone

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
    TextPart,
)
from a2akit.server import Server

logger = logging.getLogger(__name__)

# Simulated processing time, in seconds.
WORK_DELAY = 0.5
NO_TEXT = "(No text part found)"
LOG_FORMAT = "[Simple A2A] %(asctime)s %(filename)s:%(lineno)d: %(message)s"


def get_agent_card() -> AgentCard:
    """Return the static description of the echo agent."""
    return AgentCard(
        name="Simple Echo Agent",
        description="A minimal agent using send_task_func.",
        url="http://localhost:8080",
        version="0.0.2",
        capabilities=AgentCapabilities(streaming=False, push_notifications=False),
        authentication=AgentAuthentication(schemes=["None"]),
        skills=[
            AgentSkill(
                id="simple_echo",
                name="Simple Echo",
                description="Receives text via SendTask, completes task, echoes artifact.",
            )
        ],
    )


def simple_echo_task(ctx: TaskContext) -> Task:
    """Complete the task, echoing the first text part as a message and an artifact."""
    logger.info("[Task %s] Received non-stream request.", ctx.id)
    time.sleep(WORK_DELAY)

    parts = ctx.message.parts
    input_text = parts[0].text if parts and isinstance(parts[0], TextPart) else NO_TEXT

    completion = Message(
        role=Role.AGENT, parts=[TextPart(text=f"Echoing back: '{input_text}'")]
    )
    artifact = Artifact(
        name="echo_result", parts=[TextPart(text=f"Processed: {input_text}")]
    )

    final_task = ctx.current_task
    if final_task is None:
        raise RuntimeError("internal error: current task not found in context")

    final_task.status.state = TaskState.COMPLETED
    final_task.status.message = completion
    final_task.status.set_timestamp(datetime.now(timezone.utc))
    final_task.artifacts = [artifact]

    logger.info("[Task %s] Completed synchronously.", ctx.id)
    return final_task


def main(argv: list[str] | None = None) -> int:
    """Serve the echo agent until interrupted."""
    parser = argparse.ArgumentParser(description="Run the simple echo A2A agent.")
    parser.add_argument("--addr", default=":8080", help="Address to listen on")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
    log = logging.getLogger("a2akit.examples.simple")
    log.info("Starting Simple A2A Server on %s", args.addr)

    funcs = HandlerFuncs(get_agent_card_func=get_agent_card, send_task_func=simple_echo_task)
    try:
        server = Server(funcs, address=args.addr, logger=log)
    except (ValueError, RuntimeError) as exc:
        log.error("Failed to create server: %s", exc)
        return 1

    try:
        server.serve()
    except KeyboardInterrupt:
        server.shutdown()
    except (OSError, ValueError, RuntimeError) as exc:
        log.error("Server failed: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())