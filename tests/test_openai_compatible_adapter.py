"""Tests for OpenAICompatibleAdapter and LLMClient.

All network I/O is mocked; backoff sleeps are patched out.
"""

import unittest
from unittest.mock import patch, MagicMock

import requests

from llm_client import LLMClient
from providers.openai_compatible_adapter import OpenAICompatibleAdapter

MESSAGES = [{"role": "user", "content": "hello"}]
OK = {"choices": [{"message": {"content": '{"programs": []}'}, "finish_reason": "stop"}]}


def _make_adapter(**kwargs):
    defaults = dict(
        api_url="https://example.com/v1/chat/completions",
        model="test-model",
        auth_token="sk-test",
        timeout=5,
        max_retries=2,
    )
    defaults.update(kwargs)
    return OpenAICompatibleAdapter(**defaults)


def _mock_response(payload=None, status_code=200):
    resp = MagicMock()
    resp.status_code = status_code
    resp.text = "error body"
    resp.json.return_value = payload
    if status_code >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(response=resp)
    return resp


@patch("providers.openai_compatible_adapter.time.sleep")
class TestChatComplete(unittest.TestCase):

    @patch("providers.openai_compatible_adapter.requests.post")
    def test_payload_carries_response_format_and_auth(self, mock_post, _sleep):
        mock_post.return_value = _mock_response(OK)
        adapter = _make_adapter(temperature=0.3)

        result = adapter.chat_complete(MESSAGES, response_format={"type": "json_object"})

        self.assertEqual(result, OK)
        _, kwargs = mock_post.call_args
        self.assertEqual(kwargs["json"]["response_format"], {"type": "json_object"})
        self.assertEqual(kwargs["json"]["temperature"], 0.3)
        self.assertEqual(kwargs["headers"]["Authorization"], "Bearer sk-test")

    @patch("providers.openai_compatible_adapter.requests.post")
    def test_retries_server_errors_then_succeeds(self, mock_post, sleep):
        mock_post.side_effect = [_mock_response(status_code=503), _mock_response(OK)]
        self.assertEqual(_make_adapter().chat_complete(MESSAGES), OK)
        self.assertEqual(mock_post.call_count, 2)
        sleep.assert_called_once()

    @patch("providers.openai_compatible_adapter.requests.post")
    def test_client_errors_are_not_retried(self, mock_post, _sleep):
        mock_post.return_value = _mock_response(status_code=401)
        with self.assertRaises(RuntimeError):
            _make_adapter().chat_complete(MESSAGES)
        self.assertEqual(mock_post.call_count, 1)

    @patch("providers.openai_compatible_adapter.requests.post")
    def test_timeouts_exhaust_retries(self, mock_post, _sleep):
        mock_post.side_effect = requests.Timeout()
        with self.assertRaises(RuntimeError):
            _make_adapter(max_retries=2).chat_complete(MESSAGES)
        self.assertEqual(mock_post.call_count, 3)

    @patch("providers.openai_compatible_adapter.requests.post")
    def test_invalid_shape_raises(self, mock_post, _sleep):
        mock_post.return_value = _mock_response({"choices": []})
        with self.assertRaises(RuntimeError):
            _make_adapter().chat_complete(MESSAGES)


class TestLLMClient(unittest.TestCase):

    def test_extractors(self):
        client = LLMClient(api_url="https://example.com/v1/chat/completions", model="m", auth_token=None)
        self.assertEqual(client.extract_content(OK), '{"programs": []}')
        self.assertEqual(client.extract_finish_reason(OK), "stop")
        self.assertIsNone(client.extract_content({"choices": []}))

    def test_chat_complete_forwards_settings(self):
        client = LLMClient(api_url="https://example.com/v1/chat/completions", model="m", max_tokens=100, temperature=0.1, auth_token=None)
        with patch.object(client.adapter, "chat_complete", return_value=OK) as chat:
            client.chat_complete(MESSAGES, response_format={"type": "json_object"})
        chat.assert_called_once_with(MESSAGES, temperature=0.1, max_tokens=100, response_format={"type": "json_object"})


if __name__ == "__main__":
    unittest.main()
