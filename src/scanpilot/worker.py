import queue
import threading
from typing import Callable, Optional

from scanpilot.agent import Agent, AgentMessage, Shutdown
from scanpilot.events import LogChannel
from scanpilot.logger import setup_logger

logger = setup_logger(__name__)


class CommandChannel:
    """Unbounded FIFO of AgentMessage from the UI to the agent worker."""

    def __init__(self):
        self._queue: "queue.Queue[AgentMessage]" = queue.Queue()

    def send(self, msg: AgentMessage) -> None:
        self._queue.put(msg)

    def receive(self, timeout: Optional[float] = None) -> AgentMessage:
        return self._queue.get(timeout=timeout)

    def task_done(self) -> None:
        self._queue.task_done()

    def join(self) -> None:
        """Block until every message sent so far has been handled."""
        self._queue.join()


class AgentWorker:
    """
    Dedicated thread that owns the Agent and handles commands one at a time.

    The agent is built inside the worker thread from agent_factory, so no other
    thread ever holds a reference to it.
    """

    def __init__(
        self,
        agent_factory: Callable[[], Agent],
        commands: Optional[CommandChannel] = None,
        log_channel: Optional[LogChannel] = None,
    ):
        self.commands = commands if commands is not None else CommandChannel()
        self.log_channel = log_channel
        self.startup_error: Optional[Exception] = None
        self._agent_factory = agent_factory
        self._ready = threading.Event()
        self._thread = threading.Thread(target=self._run, name="agent-worker", daemon=True)

    def start(self) -> None:
        self._thread.start()
        self._ready.wait()

    def send(self, msg: AgentMessage) -> None:
        if self.startup_error is not None:
            logger.warning(f"Dropping {msg!r}: agent worker failed to start")
            return
        self.commands.send(msg)

    def is_alive(self) -> bool:
        return self._thread.is_alive()

    def stop(self, timeout: Optional[float] = 1.0) -> bool:
        """
        Ask the worker to exit after the messages already queued. An in-flight
        scan is not interrupted; returns False if the thread is still busy.
        """
        self.commands.send(Shutdown())
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def _run(self) -> None:
        try:
            agent = self._agent_factory()
        except Exception as e:
            logger.exception("Agent worker could not build the agent")
            self.startup_error = e
            if self.log_channel is not None:
                self.log_channel.emit("Agent failed to start ⛔", f"{type(e).__name__}: {e}")
            return
        finally:
            self._ready.set()
        logger.info("Agent worker started")
        while True:
            msg = self.commands.receive()
            try:
                if isinstance(msg, Shutdown):
                    logger.info("Agent worker stopping")
                    return
                agent.handle_message(msg)
            except Exception:
                logger.exception(f"Agent failed to handle {msg!r}")
            finally:
                self.commands.task_done()
