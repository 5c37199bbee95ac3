"""
Generic OpenAI-compatible backend.

Supports any endpoint that speaks OpenAI API format:
- llama.cpp server
- vLLM
- Text Generation WebUI (TGI)
- LocalAI
- Ollama
- OpenAI itself
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

import httpx

from gptline.backends.base import BaseBackend, BackendError

logger = logging.getLogger(__name__)


class OpenAICompatibleBackend(BaseBackend):
    """
    Backend for endpoints implementing {url}/chat/completions with SSE streaming.

    `url` is the API base, including any version segment
    (e.g. http://127.0.0.1:8080/v1).
    """

    def __init__(
        self,
        name: str,
        url: str,
        timeout: float = 120,
        api_key: str = "",
        transport: httpx.BaseTransport | None = None,
    ):
        super().__init__(name, url, timeout)
        self.api_key = api_key
        self._client = httpx.Client(timeout=timeout, transport=transport)

    def _headers(self) -> dict:
        headers = {
            "Content-Type": "application/json",
            "Accept": "text/event-stream",
        }
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    @property
    def chat_url(self) -> str:
        return f"{self.url}/chat/completions"

    @contextmanager
    def stream_lines(self, body: dict) -> Iterator[Iterator[str]]:
        """Open a streaming request and yield its body lines."""
        try:
            with self._client.stream(
                "POST",
                self.chat_url,
                json=body,
                headers=self._headers(),
            ) as resp:
                if not resp.is_success:
                    resp.read()
                    text = resp.text
                    logger.info(
                        "Backend '%s' returned HTTP %d", self.name, resp.status_code
                    )
                    raise BackendError(
                        f"received non-OK HTTP status: {resp.status_code} "
                        f"{resp.reason_phrase}, Body: {text}",
                        status_code=resp.status_code,
                        body=text,
                    )
                yield resp.iter_lines()
        except httpx.TimeoutException as e:
            logger.info("Backend '%s' timed out after %ss", self.name, self.timeout)
            raise BackendError(f"Timeout after {self.timeout}s: {e}") from e
        except httpx.HTTPError as e:
            logger.info("Backend '%s' stream failed: %s", self.name, e)
            raise BackendError(f"could not complete request: {e}") from e

    def close(self) -> None:
        self._client.close()
