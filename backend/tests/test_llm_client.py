from types import SimpleNamespace

import pytest

from tripweaver.exceptions import GenerationError
from tripweaver.services.llm_client import LLMClient

MESSAGES = [
    {"role": "system", "content": "You plan trips."},
    {"role": "user", "content": "Three days in Lisbon"},
]


class StubOpenAI:
    def __init__(self, reply=None, error=None):
        self.kwargs = None
        self._reply = reply
        self._error = error
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    async def _create(self, **kwargs):
        self.kwargs = kwargs
        if self._error:
            raise self._error
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=self._reply))])


class StubAnthropic:
    def __init__(self, reply=None, error=None):
        self.kwargs = None
        self._reply = reply
        self._error = error
        self.messages = SimpleNamespace(create=self._create)

    async def _create(self, **kwargs):
        self.kwargs = kwargs
        if self._error:
            raise self._error
        return SimpleNamespace(content=[SimpleNamespace(text=self._reply)])


async def test_openai_is_primary(test_settings):
    openai = StubOpenAI(reply="  {\"itinerary\": []}  ")
    anthropic = StubAnthropic(reply="unused")
    client = LLMClient(test_settings, openai_client=openai, anthropic_client=anthropic)

    text = await client.complete("gpt-4", MESSAGES, temperature=0.7, max_tokens=4000)

    assert text == '{"itinerary": []}'
    assert openai.kwargs["model"] == "gpt-4"
    assert openai.kwargs["messages"] == MESSAGES
    assert anthropic.kwargs is None


async def test_anthropic_fallback_lifts_system_message(test_settings):
    openai = StubOpenAI(error=RuntimeError("quota"))
    anthropic = StubAnthropic(reply="Day 1: ...")
    client = LLMClient(test_settings, openai_client=openai, anthropic_client=anthropic)

    assert await client.complete("gpt-4", MESSAGES) == "Day 1: ..."
    assert anthropic.kwargs["system"] == "You plan trips."
    assert anthropic.kwargs["messages"] == [MESSAGES[1]]
    assert anthropic.kwargs["model"] == test_settings.anthropic_model


async def test_both_failing_raises_generation_error(test_settings):
    client = LLMClient(
        test_settings,
        openai_client=StubOpenAI(error=RuntimeError("quota")),
        anthropic_client=StubAnthropic(error=RuntimeError("overloaded")),
    )
    with pytest.raises(GenerationError, match="quota.*overloaded"):
        await client.complete("gpt-4", MESSAGES)


async def test_unconfigured_client_raises_generation_error(test_settings):
    client = LLMClient(test_settings)
    assert client.available is False
    with pytest.raises(GenerationError, match="No LLM provider configured"):
        await client.complete("gpt-4", MESSAGES)
