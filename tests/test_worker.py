import queue
import threading
import unittest
import sys
import os

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../src')))

from scanpilot.agent import Poke, SetHost
from scanpilot.events import LogChannel
from scanpilot.worker import AgentWorker, CommandChannel


class RecordingAgent:
    def __init__(self):
        self.handled = []
        self.threads = set()

    def handle_message(self, msg):
        self.threads.add(threading.current_thread().name)
        self.handled.append(msg)
        if isinstance(msg, SetHost) and msg.host == "explode":
            raise RuntimeError("agent bug")


class TestAgentWorker(unittest.TestCase):
    def test_messages_handled_in_order_on_worker_thread(self):
        agent = RecordingAgent()
        worker = AgentWorker(lambda: agent)
        worker.start()
        msgs = [SetHost("10.0.0.5"), Poke(), Poke(), SetHost("10.0.0.6")]
        for msg in msgs:
            worker.send(msg)
        worker.commands.join()
        self.assertEqual(agent.handled, msgs)
        self.assertEqual(agent.threads, {"agent-worker"})
        self.assertTrue(worker.stop(timeout=2))
        self.assertFalse(worker.is_alive())

    def test_agent_built_inside_worker(self):
        names = []

        def factory():
            names.append(threading.current_thread().name)
            return RecordingAgent()

        worker = AgentWorker(factory)
        worker.start()
        self.assertEqual(names, ["agent-worker"])
        self.assertTrue(worker.stop(timeout=2))

    def test_agent_exception_does_not_kill_worker(self):
        agent = RecordingAgent()
        worker = AgentWorker(lambda: agent)
        worker.start()
        worker.send(SetHost("explode"))
        worker.send(Poke())
        worker.commands.join()
        self.assertTrue(worker.is_alive())
        self.assertEqual(agent.handled[-1], Poke())
        self.assertTrue(worker.stop(timeout=2))

    def test_factory_failure_is_reported(self):
        log = LogChannel()

        def factory():
            raise OSError("rustscan config unreadable")

        worker = AgentWorker(factory, log_channel=log)
        with self.assertLogs("scanpilot.worker", level="ERROR"):
            worker.start()
        self.assertIsInstance(worker.startup_error, OSError)
        entries = log.drain()
        self.assertEqual(entries[0][0], "Agent failed to start ⛔")
        self.assertIn("rustscan config unreadable", entries[0][1])

        worker.send(Poke())
        with self.assertRaises(queue.Empty):
            worker.commands.receive(timeout=0)
        self.assertTrue(worker.stop(timeout=2))

    def test_stop_waits_for_queued_messages(self):
        agent = RecordingAgent()
        worker = AgentWorker(lambda: agent)
        worker.start()
        worker.send(Poke())
        worker.send(Poke())
        self.assertTrue(worker.stop(timeout=2))
        self.assertEqual(len(agent.handled), 2)


class TestCommandChannel(unittest.TestCase):
    def test_fifo(self):
        channel = CommandChannel()
        channel.send(Poke())
        channel.send(SetHost("a"))
        self.assertEqual(channel.receive(timeout=1), Poke())
        self.assertEqual(channel.receive(timeout=1), SetHost("a"))


if __name__ == '__main__':
    unittest.main()
