"""
Chat backends for gptline.
"""
from gptline.backends.base import BaseBackend, BackendError, build_chat_request
from gptline.backends.openai_compat import OpenAICompatibleBackend

__all__ = [
    "BaseBackend",
    "BackendError",
    "OpenAICompatibleBackend",
    "build_chat_request",
]
