"""In-memory stand-ins for redis, the clock, upstream providers and the LLM."""

import asyncio
import fnmatch

from tripweaver.exceptions import GenerationError, ProviderError
from tripweaver.services.provider_cascade import Provider


class FakeRedis:
    """The subset of ``redis.asyncio.Redis`` the cache service uses."""

    def __init__(self):
        self.store: dict[str, str] = {}
        self.expiries: dict[str, int | None] = {}
        self.fail_writes = False
        self.fail_reads = False

    async def ping(self):
        return True

    async def get(self, key):
        if self.fail_reads:
            raise ConnectionError("redis down")
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        if self.fail_writes:
            raise ConnectionError("redis down")
        self.store[key] = value
        self.expiries[key] = ex
        return True

    async def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                removed += 1
            self.expiries.pop(key, None)
        return removed

    async def scan_iter(self, match="*"):
        for key in list(self.store):
            if fnmatch.fnmatchcase(key, match):
                yield key

    async def dbsize(self):
        return len(self.store)

    async def aclose(self):
        return None


class FakeClock:
    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class StaticProvider(Provider):
    """Returns a fixed item list and counts how often it was asked."""

    def __init__(self, name: str, items: list):
        self.name = name
        self.items = items
        self.calls = 0

    async def fetch(self, params):
        self.calls += 1
        return self.items

    def transform(self, raw, params):
        return list(raw)


class FailingProvider(Provider):
    def __init__(self, name: str, error: Exception | None = None):
        self.name = name
        self.error = error or ProviderError(name, "HTTP 503")
        self.calls = 0

    async def fetch(self, params):
        self.calls += 1
        raise self.error

    def transform(self, raw, params):
        return []


class MalformedProvider(Provider):
    """Upstream answers, but not in the shape the transform expects."""

    def __init__(self, name: str):
        self.name = name
        self.calls = 0

    async def fetch(self, params):
        self.calls += 1
        return {"unexpected": True}

    def transform(self, raw, params):
        return raw["data"]


class HangingProvider(Provider):
    def __init__(self, name: str):
        self.name = name
        self.calls = 0

    async def fetch(self, params):
        self.calls += 1
        await asyncio.sleep(60)
        return []

    def transform(self, raw, params):
        return []


class FakeLLM:
    """Scripted ``complete`` responses; an exception in the script is raised instead."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls: list[dict] = []
        self.available = True

    async def complete(self, model, messages, temperature=0, max_tokens=1000):
        self.calls.append({
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        })
        if not self.responses:
            raise GenerationError("no scripted response left")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    async def close(self):
        return None
