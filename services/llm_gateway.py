"""
LLM gateway client for AI-assisted insights.

Talks to an OpenAI-compatible chat completions endpoint. The gateway URL,
key and default model come from Parameter Store.
"""

import json
import logging
import re
import time
from typing import Any, Dict, List, Optional

import requests

from services.parameter_store import config
from utils.exceptions import RateLimitError, UpstreamAPIError

logger = logging.getLogger(__name__)

SERVICE_NAME = "LLM gateway"
DEFAULT_GATEWAY_URL = "https://ai.gateway.lovable.dev/v1/chat/completions"
DEFAULT_MODEL = "google/gemini-2.5-flash"
DEFAULT_TIMEOUT = 30

_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)


class LLMGateway:
    def __init__(
        self,
        session: Optional[requests.Session] = None,
        url: Optional[str] = None,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
    ):
        self.session = session or requests.Session()
        self._url = url
        self._api_key = api_key
        self._model = model

    @property
    def url(self) -> str:
        if self._url is None:
            self._url = config.get("llm/gateway-url", DEFAULT_GATEWAY_URL)
        return self._url

    @property
    def api_key(self) -> str:
        if self._api_key is None:
            self._api_key = config.get_required("llm/api-key")
        return self._api_key

    @property
    def model(self) -> str:
        if self._model is None:
            self._model = config.get("llm/model", DEFAULT_MODEL)
        return self._model

    def chat(
        self,
        messages: List[Dict[str, str]],
        json_mode: bool = False,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> Dict[str, Any]:
        """
        Send a chat completion and return ``{"content", "model", "latency_ms", "usage"}``.
        """
        payload: Dict[str, Any] = {"model": self.model, "messages": messages}
        if json_mode:
            payload["response_format"] = {"type": "json_object"}
        if max_tokens is not None:
            payload["max_tokens"] = max_tokens
        if temperature is not None:
            payload["temperature"] = temperature

        start = time.time()
        try:
            response = self.session.post(
                self.url,
                json=payload,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                timeout=DEFAULT_TIMEOUT,
            )
        except requests.RequestException as err:
            logger.error("LLM gateway request failed: %s", err)
            raise UpstreamAPIError(SERVICE_NAME, "request failed") from err

        latency_ms = int((time.time() - start) * 1000)

        if response.status_code == 429:
            raise RateLimitError(SERVICE_NAME, "rate limited", 429)
        if response.status_code == 402:
            raise RateLimitError(SERVICE_NAME, "credits exhausted", 402)
        if response.status_code >= 400:
            logger.error("LLM gateway returned %s: %s", response.status_code, response.text[:300])
            raise UpstreamAPIError(SERVICE_NAME, f"HTTP {response.status_code}", response.status_code)

        data = response.json()
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as err:
            raise UpstreamAPIError(SERVICE_NAME, "response had no message content") from err

        logger.info(
            "LLM completion finished",
            extra={"model": data.get("model", self.model), "latency_ms": latency_ms},
        )
        return {
            "content": content,
            "model": data.get("model", self.model),
            "latency_ms": latency_ms,
            "usage": data.get("usage", {}),
        }

    def chat_json(self, messages: List[Dict[str, str]], **kwargs) -> Dict[str, Any]:
        """Chat in JSON mode and parse the reply, tolerating text around the object."""
        result = self.chat(messages, json_mode=True, **kwargs)
        return {**result, "data": parse_json_content(result["content"])}


def parse_json_content(content: str) -> Dict[str, Any]:
    """Parse a model reply that should be a JSON object."""
    try:
        return json.loads(content)
    except json.JSONDecodeError:
        match = _JSON_OBJECT.search(content or "")
        if match:
            try:
                return json.loads(match.group(0))
            except json.JSONDecodeError:
                pass
    raise UpstreamAPIError(SERVICE_NAME, "reply was not valid JSON")


llm_gateway = LLMGateway()
