"""Chat completion client for the OpenAI-compatible Lovable AI gateway."""

from __future__ import annotations

from typing import Any, Protocol

from openai import APIError as OpenAIAPIError
from openai import OpenAI
from openai import OpenAIError as OpenAIBaseError


class LovableAIError(RuntimeError):
    """Raised when the synchronous fallback provider fails."""

    def __init__(self, message: str, code: str = "LOVABLE_AI_ERROR") -> None:
        super().__init__(message)
        self.code = code


class ChatClient(Protocol):
    """Minimal contract for a single-shot chat completion."""

    def generate(self, *, system_prompt: str, user_prompt: str) -> str:
        ...


class LovableChatClient(ChatClient):
    """Thin wrapper around the OpenAI SDK pointed at the Lovable gateway."""

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = "https://ai.gateway.lovable.dev/v1",
        model: str = "google/gemini-2.5-flash",
        temperature: float = 0.7,
        timeout: float = 60.0,
    ) -> None:
        if not api_key:
            raise ValueError("LOVABLE_API_KEY is required to create a LovableChatClient.")
        self._client = OpenAI(api_key=api_key, base_url=base_url, timeout=timeout)
        self._model = model
        self._temperature = temperature

    def generate(self, *, system_prompt: str, user_prompt: str) -> str:
        try:
            response = self._client.chat.completions.create(
                model=self._model,
                temperature=self._temperature,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
            )
        except OpenAIAPIError as exc:
            code = "429_RATE_LIMIT" if getattr(exc, "status_code", 500) == 429 else "502_UPSTREAM"
            message = getattr(exc, "message", str(exc))
            raise LovableAIError(f"Lovable AI request failed: {message}", code=code) from exc
        except OpenAIBaseError as exc:
            raise LovableAIError(f"Lovable AI request failed: {exc}", code="502_UPSTREAM") from exc
        return _extract_message_text(response)


def _extract_message_text(response: Any) -> str:
    choices = getattr(response, "choices", None) or []
    if choices:
        content = getattr(choices[0].message, "content", "")
        if isinstance(content, list):
            return "".join(part.get("text", "") for part in content if isinstance(part, dict)).strip()
        if isinstance(content, str):
            return content.strip()
    raise LovableAIError("Lovable AI response did not include text output.", code="502_UPSTREAM")
