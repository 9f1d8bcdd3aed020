"""Example agent that answers every task with a greeting."""

from __future__ import annotations

import argparse
import logging
from datetime import datetime, timezone

from a2akit.handler import HandlerFuncs
from a2akit.params import TaskContext
from a2akit.schema import (
    AgentAuthentication,
    AgentCapabilities,
    AgentCard,
    AgentSkill,
    Message,
    Role,
    Task,
    TaskState,
    TextPart,
)
from a2akit.server import Server

logger = logging.getLogger(__name__)

GREETING = "Hello World!"
LOG_FORMAT = "[HelloWorld A2A] %(asctime)s %(filename)s:%(lineno)d: %(message)s"


def get_agent_card() -> AgentCard:
    """Return the static description of the greeting agent."""
    return AgentCard(
        name="HelloWorld Agent",
        description="A simple agent that says Hello World via send_task_func.",
        url="http://localhost:8080",
        version="0.0.2",
        capabilities=AgentCapabilities(streaming=False, push_notifications=False),
        authentication=AgentAuthentication(schemes=["None"]),
        skills=[
            AgentSkill(
                id="hello_world",
                name="Hello World Task",
                description=(
                    "Receives any message via SendTask and immediately completes "
                    "with 'Hello World!'"
                ),
            )
        ],
    )


def hello_world_task(ctx: TaskContext) -> Task:
    """Ignore the input and complete the task with a greeting."""
    logger.info("[Task %s] Received HelloWorld request.", ctx.id)
    final_task = ctx.current_task
    if final_task is None:
        raise RuntimeError(f"internal error: current task not found in context for task {ctx.id}")

    final_task.status.state = TaskState.COMPLETED
    final_task.status.message = Message(role=Role.AGENT, parts=[TextPart(text=GREETING)])
    final_task.status.set_timestamp(datetime.now(timezone.utc))
    final_task.artifacts = []

    logger.info("[Task %s] Responded with Hello World.", ctx.id)
    return final_task


def main(argv: list[str] | None = None) -> int:
    """Serve the greeting agent until interrupted."""
    parser = argparse.ArgumentParser(description="Run the HelloWorld A2A agent.")
    parser.add_argument("--addr", default=":8080", help="Address to listen on")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
    log = logging.getLogger("a2akit.examples.helloworld")
    log.info("Starting HelloWorld A2A Server on %s", args.addr)

    funcs = HandlerFuncs(get_agent_card_func=get_agent_card, send_task_func=hello_world_task)
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