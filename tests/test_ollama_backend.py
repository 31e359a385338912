import json
import unittest
from unittest.mock import MagicMock
import sys
import os

import requests

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../src')))

from scanpilot.chat import NetworkError, Role
from scanpilot.chat.ollama_backend import OllamaChatBackend, accumulate_ndjson


class FakeStreamResponse:
    def __init__(self, chunks, status_code=200, error=None):
        self.chunks = chunks
        self.status_code = status_code
        self.text = ""
        self.error = error
        self.closed = False

    def iter_content(self, chunk_size=None):
        for chunk in self.chunks:
            yield chunk
        if self.error is not None:
            raise self.error

    def close(self):
        self.closed = True


HEL = b'{"message":{"role":"assistant","content":"Hel"}}\n'
LO = b'{"message":{"role":"assistant","content":"lo"}}\n'


class TestAccumulateNdjson(unittest.TestCase):
    def test_concatenates_content(self):
        self.assertEqual(accumulate_ndjson([HEL + LO]), "Hello")

    def test_skips_malformed_line(self):
        self.assertEqual(accumulate_ndjson([HEL + b"not-json\n" + LO]), "Hello")

    def test_line_split_across_chunks_is_dropped(self):
        split = b'{"message":{"role":"assistant","content":" world"}}\n'
        chunks = [HEL + split[:20], split[20:] + LO]
        self.assertEqual(accumulate_ndjson(chunks), "Hello")

    def test_unicode_line_separators_inside_content_are_kept(self):
        for ch in ("\u0085", "\u2028", "\u2029"):
            line = json.dumps({"message": {"role": "assistant", "content": f"a{ch}b"}}, ensure_ascii=False)
            self.assertEqual(accumulate_ndjson([line.encode("utf-8") + b"\n"]), f"a{ch}b")

    def test_crlf_line_endings(self):
        self.assertEqual(accumulate_ndjson([HEL.replace(b"\n", b"\r\n") + LO]), "Hello")

    def test_lines_without_message_are_ignored(self):
        done = b'{"done":true,"total_duration":123}\n'
        self.assertEqual(accumulate_ndjson([HEL, b"\n", done, LO]), "Hello")


class TestOllamaChatBackend(unittest.TestCase):
    def setUp(self):
        self.session = MagicMock()
        self.backend = OllamaChatBackend(model="llama-test", base_url="http://ollama:11434/", session=self.session)

    def test_send_message_streams_reply(self):
        resp = FakeStreamResponse([HEL, LO])
        self.session.post.return_value = resp
        self.backend.set_system_message("sys")
        content = self.backend.send_message("hello")

        self.assertEqual(content, "Hello")
        self.assertTrue(resp.closed)
        args, kwargs = self.session.post.call_args
        self.assertEqual(args[0], "http://ollama:11434/api/chat")
        self.assertTrue(kwargs["stream"])
        self.assertEqual(kwargs["headers"], {"Content-Type": "application/json"})
        body = kwargs["json"]
        self.assertEqual(body["model"], "llama-test")
        self.assertEqual(body["keep_alive"], 0)
        self.assertEqual(
            body["messages"],
            [{"role": "system", "content": "sys"}, {"role": "user", "content": "hello"}],
        )

    def test_images_attached_to_last_message(self):
        self.session.post.return_value = FakeStreamResponse([HEL, LO])
        self.backend.add_message("earlier", Role.ASSISTANT)
        self.backend.send_message_with_images("what is this?", ["aW1n"])

        body = self.session.post.call_args[1]["json"]
        self.assertEqual(body["messages"][0], {"role": "assistant", "content": "earlier"})
        self.assertEqual(body["messages"][-1], {"role": "user", "content": "what is this?", "images": ["aW1n"]})

    def test_images_on_empty_history_go_on_the_new_message(self):
        self.session.post.return_value = FakeStreamResponse([HEL, LO])
        self.assertEqual(self.backend.send_message_with_images("look", ["aW1n"]), "Hello")

        body = self.session.post.call_args[1]["json"]
        self.assertEqual(body["messages"], [{"role": "user", "content": "look", "images": ["aW1n"]}])

    def test_transport_failure_is_network_error(self):
        self.session.post.side_effect = requests.ConnectionError("no route")
        with self.assertRaises(NetworkError):
            self.backend.send_message("hello")
        self.assertEqual(len(self.backend.get_chat_history()), 1)

    def test_interrupted_stream_is_network_error(self):
        self.session.post.return_value = FakeStreamResponse([HEL], error=requests.exceptions.ChunkedEncodingError("cut"))
        with self.assertRaises(NetworkError):
            self.backend.send_message("hello")

    def test_http_error_status_is_network_error(self):
        self.session.post.return_value = FakeStreamResponse([], status_code=404)
        with self.assertRaises(NetworkError):
            self.backend.send_message("hello")

    def test_clear_history_keeps_system(self):
        self.backend.set_system_message("sys")
        self.backend.add_message("a", Role.USER)
        self.backend.clear_history(True)
        history = self.backend.get_chat_history()
        self.assertEqual([(m.role, m.content) for m in history], [(Role.SYSTEM, "sys")])


if __name__ == '__main__':
    unittest.main()
