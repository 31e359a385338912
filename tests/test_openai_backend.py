import unittest
from unittest.mock import MagicMock
import sys
import os

import requests

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../src')))

from scanpilot.chat import NetworkError, ProtocolError, Role
from scanpilot.chat.openai_backend import OpenAIChatBackend


class FakeResponse:
    def __init__(self, payload=None, status_code=200, text="", bad_json=False):
        self.payload = payload
        self.status_code = status_code
        self.text = text
        self.bad_json = bad_json

    def json(self):
        if self.bad_json:
            raise ValueError("Expecting value")
        return self.payload


def reply(content):
    return FakeResponse({"choices": [{"message": {"role": "assistant", "content": content}}]})


class TestOpenAIChatBackend(unittest.TestCase):
    def setUp(self):
        self.session = MagicMock()
        self.backend = OpenAIChatBackend(api_key="sk-test", model="gpt-test", base_url="http://api.local/v1/", session=self.session)

    def test_send_message_posts_full_history(self):
        self.session.post.return_value = reply("hi there")
        self.backend.set_system_message("sys")
        content = self.backend.send_message("hello", Role.USER)

        self.assertEqual(content, "hi there")
        args, kwargs = self.session.post.call_args
        self.assertEqual(args[0], "http://api.local/v1/chat/completions")
        self.assertEqual(kwargs["headers"]["Authorization"], "Bearer sk-test")
        self.assertEqual(kwargs["headers"]["Content-Type"], "application/json")
        body = kwargs["json"]
        self.assertEqual(body["model"], "gpt-test")
        self.assertIs(body["stream"], False)
        self.assertEqual(
            body["messages"],
            [{"role": "system", "content": "sys"}, {"role": "user", "content": "hello"}],
        )

    def test_reply_not_appended_by_default(self):
        self.session.post.return_value = reply("answer")
        self.backend.send_message("question")
        history = self.backend.get_chat_history()
        self.assertEqual([m.content for m in history], ["question"])

    def test_reply_appended_when_remembering(self):
        backend = OpenAIChatBackend(api_key="k", session=self.session, remember_replies=True)
        self.session.post.return_value = reply("answer")
        backend.send_message("question")
        history = backend.get_chat_history()
        self.assertEqual([(m.role, m.content) for m in history], [(Role.USER, "question"), (Role.ASSISTANT, "answer")])

    def test_empty_choices_is_protocol_error(self):
        self.session.post.return_value = FakeResponse({"choices": []})
        with self.assertRaises(ProtocolError):
            self.backend.send_message("hello")

    def test_missing_content_is_protocol_error(self):
        self.session.post.return_value = FakeResponse({"choices": [{"message": {"role": "assistant"}}]})
        with self.assertRaises(ProtocolError):
            self.backend.send_message("hello")

    def test_invalid_json_is_protocol_error(self):
        self.session.post.return_value = FakeResponse(bad_json=True)
        with self.assertRaises(ProtocolError):
            self.backend.send_message("hello")

    def test_transport_failure_is_network_error_and_message_kept(self):
        self.session.post.side_effect = requests.ConnectionError("refused")
        with self.assertRaises(NetworkError):
            self.backend.send_message("hello")
        self.assertEqual([m.content for m in self.backend.get_chat_history()], ["hello"])

    def test_http_error_status_is_network_error(self):
        self.session.post.return_value = FakeResponse({"error": "bad key"}, status_code=401, text="bad key")
        with self.assertRaises(NetworkError) as ctx:
            self.backend.send_message("hello")
        self.assertIn("401", str(ctx.exception))

    def test_images_are_not_sent(self):
        result = self.backend.send_message_with_images("look", ["aGVsbG8="])
        self.assertEqual(result, "")
        self.session.post.assert_not_called()
        self.assertEqual(self.backend.get_chat_history(), [])


if __name__ == '__main__':
    unittest.main()
