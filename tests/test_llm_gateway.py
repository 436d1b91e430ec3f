"""Tests for the LLM gateway client."""

from unittest.mock import MagicMock

import pytest
import requests

from services.llm_gateway import LLMGateway, parse_json_content
from utils.exceptions import RateLimitError, UpstreamAPIError


def gateway_with(status_code=200, payload=None):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload
    response.text = ""
    session = MagicMock(spec=requests.Session)
    session.post.return_value = response
    gateway = LLMGateway(session=session, url="https://gateway.test/v1/chat/completions", api_key="key", model="test-model")
    return gateway, session


def completion(content):
    return {"model": "test-model", "choices": [{"message": {"content": content}}], "usage": {"total_tokens": 12}}


class TestChat:
    def test_returns_content_and_metadata(self):
        gateway, session = gateway_with(payload=completion("Spend less on takeaways."))

        result = gateway.chat([{"role": "user", "content": "hi"}], max_tokens=50)

        assert result["content"] == "Spend less on takeaways."
        assert result["model"] == "test-model"
        assert result["usage"] == {"total_tokens": 12}
        payload = session.post.call_args.kwargs["json"]
        assert payload["max_tokens"] == 50
        assert "response_format" not in payload
        assert session.post.call_args.kwargs["headers"]["Authorization"] == "Bearer key"

    @pytest.mark.parametrize("status_code", [429, 402])
    def test_quota_statuses_raise_rate_limit(self, status_code):
        gateway, _ = gateway_with(status_code=status_code)

        with pytest.raises(RateLimitError):
            gateway.chat([{"role": "user", "content": "hi"}])

    def test_server_error_raises_upstream_error(self):
        gateway, _ = gateway_with(status_code=500)

        with pytest.raises(UpstreamAPIError):
            gateway.chat([{"role": "user", "content": "hi"}])

    def test_missing_choices_raise_upstream_error(self):
        gateway, _ = gateway_with(payload={"choices": []})

        with pytest.raises(UpstreamAPIError):
            gateway.chat([{"role": "user", "content": "hi"}])

    def test_chat_json_requests_json_mode(self):
        gateway, session = gateway_with(payload=completion('{"category": "GROCERIES", "confidence": 0.9}'))

        result = gateway.chat_json([{"role": "user", "content": "categorize"}])

        assert result["data"] == {"category": "GROCERIES", "confidence": 0.9}
        assert session.post.call_args.kwargs["json"]["response_format"] == {"type": "json_object"}


class TestParseJsonContent:
    def test_plain_json(self):
        assert parse_json_content('{"a": 1}') == {"a": 1}

    def test_json_wrapped_in_prose(self):
        assert parse_json_content('Sure! ```json\n{"a": 1}\n``` Hope that helps.') == {"a": 1}

    def test_invalid_reply(self):
        with pytest.raises(UpstreamAPIError):
            parse_json_content("I cannot help with that.")
