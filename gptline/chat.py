"""
The interactive chat loop.

    AwaitingInput --(line)--> StreamingResponse --(ok / error)--> AwaitingInput
          |
          +--(EOF, exit, quit)--> Closed

Each turn appends the user message, streams the reply to the terminal as it
arrives, then commits it as an assistant message. If anything goes wrong
mid-turn the user message is rolled back so the failed turn never reaches
the next request's context.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Callable, TextIO

from gptline.backends.base import BaseBackend, BackendError, build_chat_request
from gptline.config import Config
from gptline.conversation import Conversation, Message
from gptline.stream import StreamDecoder

logger = logging.getLogger(__name__)

# ANSI colors
C_RESET = "\033[0m"
C_USER = "\033[33m"       # yellow
C_ASSISTANT = "\033[36m"  # cyan
C_ERROR = "\033[91m"      # red

EXIT_WORDS = ("exit", "quit")
ASSISTANT_LABEL = "GPTLine"


def use_color(out: TextIO) -> bool:
    if os.environ.get("NO_COLOR"):
        return False
    isatty = getattr(out, "isatty", None)
    return bool(isatty and isatty())


class ChatLoop:
    """Runs one interactive session against a backend."""

    def __init__(
        self,
        config: Config,
        backend: BaseBackend,
        conversation: Conversation | None = None,
        input_fn: Callable[[str], str] = input,
        out: TextIO | None = None,
        color: bool | None = None,
    ):
        self.config = config
        self.backend = backend
        if conversation is None:
            conversation = Conversation.with_system_prompt(config.system_prompt)
        self.conversation = conversation
        self.input_fn = input_fn
        self.out = out or sys.stdout
        self.color = use_color(self.out) if color is None else color

    def _c(self, code: str) -> str:
        return code if self.color else ""

    def _print(self, text: str = "", end: str = "\n") -> None:
        print(text, end=end, file=self.out, flush=True)

    def read_input(self) -> str | None:
        """
        Prompt for one line. Returns the trimmed text, "" to re-prompt,
        or None when the session should close.
        """
        prompt = f"{self._c(C_USER)}{self.config.username}:{self._c(C_RESET)} "
        try:
            line = self.input_fn(prompt)
        except EOFError:
            self._print()
            return None
        except OSError as e:
            self._print(f"\nError reading input: {e}")
            return None

        line = line.strip()
        if line.lower() in EXIT_WORDS:
            return None
        return line

    def stream_reply(self) -> str:
        """
        Send the conversation and print the reply as it streams in.
        Returns the full reply text. Raises BackendError on failure.
        """
        body = build_chat_request(self.config.model, self.conversation.snapshot())

        with self.backend.stream_lines(body) as lines:
            self._print(f"\n{self._c(C_ASSISTANT)}{ASSISTANT_LABEL}:{self._c(C_RESET)}")
            decoder = StreamDecoder(lines)
            for fragment in decoder:
                if fragment.text:
                    self._print(fragment.text, end="")

        self._print(f"{self._c(C_RESET)}\n")
        logger.debug(
            "Stream finished: %d chars, finish_reason=%r",
            len(decoder.text), decoder.finish_reason,
        )
        return decoder.text

    def turn(self, user_input: str) -> bool:
        """Run one turn. Returns True if the reply was committed."""
        self.conversation.append(Message(role="user", content=user_input))
        try:
            reply = self.stream_reply()
        except (BackendError, ValueError) as e:
            self._print(f"\n{self._c(C_ERROR)}Error getting response: {e}{self._c(C_RESET)}")
            self.conversation.remove_last()
            logger.debug("Rolled back turn; history has %d messages", len(self.conversation))
            return False
        except BaseException:
            # Interrupted or unexpected: history must not keep the unanswered message
            self.conversation.remove_last()
            raise

        self.conversation.append(Message(role="assistant", content=reply))
        return True

    def run(self) -> None:
        """Loop until EOF or an exit word."""
        while True:
            user_input = self.read_input()
            if user_input is None:
                self._print("Goodbye!")
                return
            if not user_input:
                continue
            self.turn(user_input)
