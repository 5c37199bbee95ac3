"""
Base backend abstraction.
A backend takes an OpenAI-compatible request body and hands back the
response body as a stream of lines. The chat loop only talks to this
interface, so tests can swap in a fake.
"""

from __future__ import annotations

import abc
import logging
from collections.abc import Iterable, Iterator
from contextlib import AbstractContextManager

from gptline.conversation import Message

logger = logging.getLogger(__name__)


class BackendError(Exception):
    """A request failed: transport error, bad status, or broken stream."""

    def __init__(self, message: str, status_code: int | None = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


def build_chat_request(model: str, messages: Iterable[Message]) -> dict:
    """
    Serialize a conversation into a streaming chat completion body.
    Message order and content are passed through untouched.
    """
    if not model:
        raise ValueError("model must be a non-empty string")
    return {
        "model": model,
        "messages": [m.to_openai_format() for m in messages],
        "stream": True,
    }


class BaseBackend(abc.ABC):
    """
    Abstract base for chat backends.
    """

    def __init__(self, name: str, url: str, timeout: float = 120):
        self.name = name
        self.url = url.rstrip("/")
        self.timeout = timeout

    @abc.abstractmethod
    def stream_lines(self, body: dict) -> AbstractContextManager[Iterator[str]]:
        """
        Send a streaming chat completion request.
        Context manager yielding the response body line by line; the
        response is released on exit. Raises BackendError on any failure,
        including errors hit while iterating.
        """
        ...

    def close(self) -> None:
        """Release pooled connections, if any."""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r} url={self.url!r}>"
