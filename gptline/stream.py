"""
SSE stream decoder for OpenAI-compatible chat completions.

Reads `data:` lines from a streaming response body and turns them into text
fragments as they arrive:

    data: {"choices":[{"delta":{"content":"Hi"},"finish_reason":null}]}
    data: [DONE]

Decoding stops at `[DONE]`, at the first non-null finish_reason on choice 0,
or when the underlying stream runs out. Lines after a terminal event are
never read. Payloads that aren't the expected shape are skipped; servers mix
in keep-alives, usage blocks and other metadata.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"


@dataclass(frozen=True)
class StreamFragment:
    """One decoded unit: a text delta, or the end-of-stream marker."""
    text: str = ""
    done: bool = False
    finish_reason: object = None


class _Skip(Exception):
    """Payload is not a chat completion chunk."""


def _parse_chunk(payload: str) -> tuple[str, object] | None:
    """
    Extract (content, finish_reason) from choice 0 of a chunk.
    Returns None when the chunk has no choices.
    """
    try:
        chunk = json.loads(payload)
    except json.JSONDecodeError as e:
        raise _Skip(f"invalid JSON: {e}") from e

    if not isinstance(chunk, dict):
        raise _Skip("payload is not an object")

    choices = chunk.get("choices")
    if choices is None:
        return None
    if not isinstance(choices, list):
        raise _Skip("choices is not a list")
    if not choices:
        return None

    choice = choices[0]
    if not isinstance(choice, dict):
        raise _Skip("choice is not an object")

    delta = choice.get("delta") or {}
    if not isinstance(delta, dict):
        raise _Skip("delta is not an object")

    content = delta.get("content")
    if content is None:
        content = ""
    elif not isinstance(content, str):
        raise _Skip("delta.content is not a string")

    return content, choice.get("finish_reason")


class StreamDecoder:
    """
    Incremental decoder over a line stream.

    Iterate it to get StreamFragments; the last one always has done=True.
    `text` holds everything emitted so far.

        decoder = StreamDecoder(resp.iter_lines())
        for fragment in decoder:
            ...
        reply = decoder.text
    """

    def __init__(self, lines: Iterable[str | bytes]):
        self._lines = lines
        self._parts: list[str] = []
        self.finish_reason: object = None
        self.finished = False

    @property
    def text(self) -> str:
        return "".join(self._parts)

    def __iter__(self) -> Iterator[StreamFragment]:
        for raw in self._lines:
            line = raw.decode("utf-8") if isinstance(raw, bytes) else raw
            line = line.strip()
            if not line.startswith(DATA_PREFIX):
                continue

            payload = line[len(DATA_PREFIX):].lstrip()
            if payload == DONE_SENTINEL:
                break

            try:
                parsed = _parse_chunk(payload)
            except _Skip as e:
                logger.debug("Skipping stream event (%s): %.80s", e, payload)
                continue
            if parsed is None:
                continue

            content, finish_reason = parsed
            if content:
                self._parts.append(content)
                yield StreamFragment(text=content)

            if finish_reason is not None:
                self.finish_reason = finish_reason
                break

        self.finished = True
        yield StreamFragment(done=True, finish_reason=self.finish_reason)


def decode_stream(lines: Iterable[str | bytes]) -> Iterator[str]:
    """Yield only the text deltas from a line stream."""
    for fragment in StreamDecoder(lines):
        if not fragment.done:
            yield fragment.text
