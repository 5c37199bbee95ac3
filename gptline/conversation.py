"""
Conversation state for a chat session.
An ordered, append-only list of role-tagged messages. The order is the
context window sent with every request.
"""

from __future__ import annotations

from dataclasses import dataclass, field

ROLES = ("system", "user", "assistant")


@dataclass(frozen=True)
class Message:
    """A single message in a conversation."""
    role: str
    content: str = ""

    def __post_init__(self):
        if self.role not in ROLES:
            raise ValueError(f"Unknown role: {self.role!r}")

    def to_openai_format(self) -> dict:
        """Export in OpenAI messages array format."""
        return {"role": self.role, "content": self.content}


@dataclass
class Conversation:
    """
    Chat history, oldest first.
    Only the chat loop mutates it; no locking.
    """
    messages: list[Message] = field(default_factory=list)

    @classmethod
    def with_system_prompt(cls, prompt: str) -> Conversation:
        return cls(messages=[Message(role="system", content=prompt)])

    def append(self, message: Message) -> None:
        self.messages.append(message)

    def snapshot(self) -> list[Message]:
        """Return a copy of the history, safe to serialize while we keep appending."""
        return list(self.messages)

    def remove_last(self) -> Message:
        """
        Drop the trailing user message after a failed turn.
        Raises ValueError if the last message is not from the user.
        """
        if not self.messages or self.messages[-1].role != "user":
            raise ValueError("Rollback requires a trailing user message")
        return self.messages.pop()

    def to_openai_format(self) -> list[dict]:
        return [m.to_openai_format() for m in self.messages]

    def __len__(self) -> int:
        return len(self.messages)
