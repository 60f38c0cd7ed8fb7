"""
Chat completions against OpenRouter with a failover list of API keys.

Each key gets a few attempts with capped exponential backoff (a 429 honours
the server's Retry-After hint). Any error on a key moves on to the next one;
the call only fails once every key has failed.
"""

import logging
import time
from typing import Any, Callable, List, Optional, Union

import openai
from fastapi import Request
from openai import OpenAI

from .config import Settings
from .errors import ServiceUnavailable, UpstreamError

logger = logging.getLogger(__name__)

DEFAULT_RETRY_AFTER = 10.0

Content = Union[str, List[dict]]


class MalformedCompletion(Exception):
    pass


def _retry_after(exc: Exception) -> Optional[float]:
    response = getattr(exc, "response", None)
    if response is None:
        return None
    value = response.headers.get("retry-after")
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


class CompletionClient:
    def __init__(self, settings: Settings, client_factory: Callable[..., Any] = OpenAI):
        self.settings = settings
        self.client_factory = client_factory
        self.keys = list(settings.ai_api_keys)

    def _client(self, api_key: str):
        return self.client_factory(
            api_key=api_key,
            base_url=self.settings.ai_base_url,
            max_retries=0,
            timeout=self.settings.http_timeout_seconds,
            default_headers={
                "HTTP-Referer": self.settings.ai_app_url,
                "X-Title": self.settings.ai_app_title,
            },
        )

    def _wait(self, seconds: float) -> None:
        time.sleep(min(seconds, self.settings.ai_max_backoff_seconds))

    def _request(self, client, content: Content) -> str:
        resp = client.chat.completions.create(
            model=self.settings.ai_model,
            messages=[{"role": "user", "content": content}],
        )
        choices = getattr(resp, "choices", None)
        if not choices or choices[0].message is None or not choices[0].message.content:
            raise MalformedCompletion("Unexpected API response structure")
        return choices[0].message.content

    def _request_with_retry(self, client, content: Content) -> str:
        retries = self.settings.ai_max_retries
        for attempt in range(retries):
            try:
                return self._request(client, content)
            except openai.RateLimitError as e:
                if attempt == retries - 1:
                    raise
                delay = _retry_after(e)
                self._wait(DEFAULT_RETRY_AFTER if delay is None else delay)
            except (openai.APIConnectionError, openai.InternalServerError):
                if attempt == retries - 1:
                    raise
                self._wait(self.settings.ai_backoff_seconds * 2 ** (attempt + 1))
        raise UpstreamError("Max retries reached")

    def complete(self, content: Content) -> str:
        """Return the first message content any key manages to produce."""
        if not self.keys:
            raise ServiceUnavailable("No AI API keys configured")

        last_error: Optional[Exception] = None
        for i, api_key in enumerate(self.keys):
            logger.info("Attempting completion with key %d of %d", i + 1, len(self.keys))
            try:
                text = self._request_with_retry(self._client(api_key), content)
                logger.info("Completion succeeded with key %d", i + 1)
                return text
            except Exception as e:
                logger.error("Error with API key %d: %s", i + 1, e)
                last_error = e

        raise UpstreamError("Failed to generate a response from the AI service", details=str(last_error))


def get_completion_client(request: Request) -> CompletionClient:
    return request.app.state.completions
