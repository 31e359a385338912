import unittest
import sys
import os

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../src')))

from scanpilot.agent import Poke, SetHost
from scanpilot.commands import (
    EXIT,
    HELP,
    CommandSession,
    ParsedCommand,
    normalize_target_token,
    parse_command,
    to_action,
)


class TestParseCommand(unittest.TestCase):
    def test_first_token_is_command(self):
        self.assertEqual(parse_command("SetHost 10.0.0.5"), ParsedCommand("sethost", ["10.0.0.5"]))

    def test_blank_line(self):
        self.assertIsNone(parse_command("   "))

    def test_actions(self):
        self.assertEqual(to_action(parse_command("sethost 10.0.0.5")), SetHost("10.0.0.5"))
        self.assertEqual(to_action(parse_command("sethost host=10.0.0.5")), SetHost("10.0.0.5"))
        self.assertEqual(to_action(parse_command("poke")), Poke())
        self.assertEqual(to_action(parse_command("exit")), EXIT)
        self.assertEqual(to_action(parse_command("quit")), EXIT)
        self.assertEqual(to_action(parse_command("help")), HELP)

    def test_unrecognized_and_incomplete_are_ignored(self):
        self.assertIsNone(to_action(parse_command("hello world")))
        self.assertIsNone(to_action(parse_command("sethost")))
        self.assertIsNone(to_action(None))

    def test_normalize_target_token(self):
        self.assertEqual(normalize_target_token("localhost"), "localhost")
        self.assertEqual(normalize_target_token("target=localhost"), "localhost")
        self.assertEqual(normalize_target_token("host=10.0.0.1"), "10.0.0.1")
        self.assertEqual(normalize_target_token("a=b"), "a=b")


class TestCommandSession(unittest.TestCase):
    def test_sessions_are_independent(self):
        first, second = CommandSession(), CommandSession()
        self.assertEqual(first.submit("poke"), ParsedCommand("poke", []))
        self.assertEqual(first.last_command.name, "poke")
        self.assertEqual(first.history, ["poke"])
        self.assertIsNone(second.last_command)
        self.assertEqual(second.history, [])

    def test_empty_submit_keeps_last_command(self):
        session = CommandSession()
        session.submit("  sethost 10.0.0.5 ")
        self.assertIsNone(session.submit(""))
        self.assertEqual(session.last_command, ParsedCommand("sethost", ["10.0.0.5"]))
        self.assertEqual(session.history, ["sethost 10.0.0.5"])


if __name__ == '__main__':
    unittest.main()
