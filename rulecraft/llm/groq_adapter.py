from __future__ import annotations

from typing import Any

import groq
import structlog
from groq import Groq
from pydantic import BaseModel

log = structlog.get_logger(__name__)


class RulingError(Exception):
    """Base class for every failure of the ruling service call."""


class RulingNotConfiguredError(RulingError):
    def __init__(self) -> None:
        super().__init__("Ruling service API key not configured")


class RulingTransportError(RulingError):
    def __init__(self, detail: str) -> None:
        super().__init__(f"Request failed: {detail}")


class RulingStatusError(RulingError):
    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(f"API error: {status_code}: {body}")
        self.status_code = status_code
        self.body = body


class RulingParseError(RulingError):
    def __init__(self, detail: str) -> None:
        super().__init__(f"Failed to parse response: {detail}")


class EmptyRulingError(RulingError):
    def __init__(self) -> None:
        super().__init__("Empty response from the ruling service")


class ChatReply(BaseModel):
    """Ordered text segments of one completion. An empty list means no ruling was produced."""

    segments: list[str]

    def first(self) -> str:
        if not self.segments:
            raise EmptyRulingError()
        return self.segments[0]


class GroqAdapter:
    """
    Groq client wrapper for single-shot chat completions.
    No retries: every failure is mapped to a RulingError subclass and raised.
    """

    def __init__(self, api_key: str, timeout_s: float = 30.0, client: Groq | None = None) -> None:
        self.client = client or Groq(api_key=api_key, timeout=timeout_s, max_retries=0)

    def complete(self, model: str, messages: list[dict], max_tokens: int) -> ChatReply:
        try:
            completion = self.client.chat.completions.create(
                messages=messages, model=model, max_tokens=max_tokens
            )
        except groq.APIStatusError as e:
            raise RulingStatusError(e.status_code, e.response.text) from e
        except groq.APIConnectionError as e:
            # APITimeoutError is a subclass, so timeouts land here too.
            raise RulingTransportError(str(e)) from e
        except (groq.APIResponseValidationError, ValueError) as e:
            raise RulingParseError(str(e)) from e
        reply = _reply_from_completion(completion)
        log.debug("llm.completion", model=model, segments=len(reply.segments))
        return reply


def _reply_from_completion(completion: Any) -> ChatReply:
    choices = getattr(completion, "choices", None)
    if not isinstance(choices, list):
        raise RulingParseError(f"expected a list of choices, got {type(choices).__name__}")
    segments: list[str] = []
    for choice in choices:
        content = getattr(getattr(choice, "message", None), "content", None)
        if content is None:
            continue
        if not isinstance(content, str):
            raise RulingParseError(f"expected text content, got {type(content).__name__}")
        segments.append(content)
    return ChatReply(segments=segments)
