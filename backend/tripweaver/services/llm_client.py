"""Unified LLM client — tries OpenAI first, falls back to Anthropic."""

import time

import anthropic
from openai import AsyncOpenAI

from tripweaver.config import Settings
from tripweaver.exceptions import GenerationError
from tripweaver.telemetry import Telemetry


class LLMClient:
    """Unified async LLM client with OpenAI primary + Anthropic fallback.

    The returned text is never trusted to be well-formed; callers parse it.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        openai_client=None,
        anthropic_client=None,
        telemetry: Telemetry | None = None,
    ):
        self._anthropic_model = settings.anthropic_model
        self._openai = openai_client
        self._anthropic = anthropic_client
        self._telemetry = telemetry or Telemetry().child("llm")
        self._owned = []

        if self._openai is None and settings.openai_api_key:
            self._openai = AsyncOpenAI(
                api_key=settings.openai_api_key,
                timeout=settings.llm_timeout_seconds,
            )
            self._owned.append(self._openai)
        if self._anthropic is None and settings.anthropic_api_key:
            self._anthropic = anthropic.AsyncAnthropic(
                api_key=settings.anthropic_api_key,
                timeout=settings.llm_timeout_seconds,
            )
            self._owned.append(self._anthropic)

    @property
    def available(self) -> bool:
        return self._openai is not None or self._anthropic is not None

    async def complete(
        self,
        model: str,
        messages: list[dict],
        temperature: float = 0,
        max_tokens: int = 1000,
    ) -> str:
        """Get a completion from the best available LLM.

        Args:
            model: OpenAI model name; the Anthropic fallback uses its configured model.
            messages: Chat messages, optionally starting with a ``system`` message.
            temperature: Sampling temperature
            max_tokens: Max output tokens

        Returns:
            Raw text response from the LLM.

        Raises:
            GenerationError if no provider is configured or all of them fail.
        """
        errors = []

        # Try OpenAI first
        if self._openai:
            start_time = time.monotonic()
            try:
                response = await self._openai.chat.completions.create(
                    model=model,
                    max_tokens=max_tokens,
                    temperature=temperature,
                    messages=list(messages),
                )
                text = (response.choices[0].message.content or "").strip()
                self._log(model, True, start_time)
                return text
            except Exception as e:
                errors.append(f"OpenAI: {e}")
                self._log(model, False, start_time, error=repr(e))
                self._telemetry.warning("OpenAI failed, trying Anthropic: %s", e)

        # Fallback to Anthropic
        if self._anthropic:
            start_time = time.monotonic()
            system = "\n\n".join(m["content"] for m in messages if m["role"] == "system")
            chat_messages = [m for m in messages if m["role"] != "system"]
            try:
                kwargs: dict = {
                    "model": self._anthropic_model,
                    "max_tokens": max_tokens,
                    "temperature": temperature,
                    "messages": chat_messages,
                }
                if system:
                    kwargs["system"] = system
                response = await self._anthropic.messages.create(**kwargs)
                text = response.content[0].text.strip()
                self._log(self._anthropic_model, True, start_time)
                return text
            except Exception as e:
                errors.append(f"Anthropic: {e}")
                self._log(self._anthropic_model, False, start_time, error=repr(e))
                self._telemetry.warning("Anthropic also failed: %s", e)

        if not errors:
            raise GenerationError("No LLM provider configured")
        raise GenerationError(f"All LLM providers failed: {'; '.join(errors)}")

    def _log(self, model: str, success: bool, start_time: float, **extra) -> None:
        elapsed_ms = int((time.monotonic() - start_time) * 1000)
        self._telemetry.generation("complete", model, success, elapsed_ms, **extra)

    async def close(self):
        for client in self._owned:
            await client.close()
