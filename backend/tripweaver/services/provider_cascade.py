"""Provider cascade — ordered multi-source fallback shared by flights, hotels and weather."""

import asyncio
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Generic, Sequence, TypeVar

import httpx
from pydantic import BaseModel

from tripweaver.exceptions import ProviderError
from tripweaver.schemas.results import (
    FALLBACK_SOURCE,
    AggregatedResult,
    ProviderErrorRecord,
    ProviderResult,
)
from tripweaver.services.cache_service import CacheService, CachedResult
from tripweaver.services.pipeline_config import CascadeLimits
from tripweaver.telemetry import Telemetry

ParamsT = TypeVar("ParamsT", bound=BaseModel)
ItemT = TypeVar("ItemT", bound=ProviderResult)


class Provider(ABC, Generic[ParamsT, ItemT]):
    """One upstream source for one data kind: ``search = transform(fetch(params))``."""

    name: str = "provider"

    async def search(self, params: ParamsT) -> list[ItemT]:
        raw = await self.fetch(params)
        try:
            return self.transform(raw, params)
        except (KeyError, IndexError, TypeError, ValueError, AttributeError) as e:
            raise ProviderError(self.name, f"malformed response: {e!r}") from e

    @abstractmethod
    async def fetch(self, params: ParamsT) -> Any:
        """Call the upstream and return its raw payload."""

    @abstractmethod
    def transform(self, raw: Any, params: ParamsT) -> list[ItemT]:
        """Map a raw payload into normalized records."""

    async def close(self) -> None:
        return None


class SyntheticProvider(Provider[ParamsT, ItemT]):
    """Deterministic placeholder data used when every live provider comes up empty."""

    name = FALLBACK_SOURCE

    async def fetch(self, params: ParamsT) -> Any:
        return None

    def transform(self, raw: Any, params: ParamsT) -> list[ItemT]:
        return self.generate(params)

    @abstractmethod
    def generate(self, params: ParamsT) -> list[ItemT]:
        """Build items tagged ``source="fallback"``."""


class HttpProvider(Provider[ParamsT, ItemT]):
    """Provider backed by a lazily created ``httpx.AsyncClient``."""

    def __init__(self, base_url: str, timeout: float = 15.0):
        self._base_url = base_url
        self._timeout = timeout
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
            )
        return self._client

    def _require(self, *credentials: str, what: str = "API key") -> None:
        if not all(credentials):
            raise ProviderError(self.name, f"{what} not configured")

    async def _request_json(self, method: str, url: str, **kwargs) -> Any:
        client = await self._get_client()
        try:
            resp = await client.request(method, url, **kwargs)
            resp.raise_for_status()
            return resp.json()
        except httpx.HTTPStatusError as e:
            raise ProviderError(self.name, f"HTTP {e.response.status_code}") from e
        except httpx.TimeoutException as e:
            raise ProviderError(self.name, "request timed out") from e
        except httpx.RequestError as e:
            raise ProviderError(self.name, f"request failed: {e}") from e
        except ValueError as e:
            raise ProviderError(self.name, "response was not JSON") from e

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


class ProviderCascade(Generic[ParamsT, ItemT]):
    """Calls providers in priority order until enough items are collected.

    Failures are recorded per provider and never abort the run; if nothing
    at all comes back the synthetic provider fills in. Results are
    de-duplicated, sorted, truncated and cached as a whole.
    """

    def __init__(
        self,
        kind: str,
        providers: Sequence[Provider[ParamsT, ItemT]],
        fallback: SyntheticProvider[ParamsT, ItemT],
        *,
        item_model: type[ItemT],
        identity_key: Callable[[ItemT], Any],
        sort_key: Callable[[ItemT], Any] | None,
        limits: CascadeLimits | Callable[[ParamsT], CascadeLimits],
        cache: CacheService,
        ttl: int,
        timeout: float = 15.0,
        telemetry: Telemetry | None = None,
    ):
        self.kind = kind
        self.providers = list(providers)
        self.fallback = fallback
        self.identity_key = identity_key
        self.sort_key = sort_key
        self._limits = limits
        self.cache = cache
        self.ttl = ttl
        self.timeout = timeout
        self._result_model = AggregatedResult[item_model]
        self._telemetry = telemetry or Telemetry().child(f"cascade.{kind}")

    def limits_for(self, params: ParamsT) -> CascadeLimits:
        if callable(self._limits):
            return self._limits(params)
        return self._limits

    def cache_key(self, params: ParamsT) -> str:
        return self.cache.generate_key(
            self.kind, params.model_dump(mode="json", exclude_none=True)
        )

    async def aggregate(self, params: ParamsT) -> CachedResult[AggregatedResult[ItemT]]:
        """Cached cascade run. Never raises."""

        async def produce() -> dict:
            result = await self.run(params)
            return result.model_dump(mode="json")

        cached = await self.cache.get_or_set(self.cache_key(params), produce, self.ttl)
        return CachedResult(
            data=self._result_model.model_validate(cached.data),
            cached=cached.cached,
            origin=cached.origin,
        )

    async def run(self, params: ParamsT) -> AggregatedResult[ItemT]:
        """Uncached cascade run."""
        limits = self.limits_for(params)
        start_time = time.monotonic()
        collected: list[ItemT] = []
        errors: list[ProviderErrorRecord] = []

        for provider in self.providers:
            try:
                items = await asyncio.wait_for(provider.search(params), timeout=self.timeout)
            except asyncio.TimeoutError:
                errors.append(ProviderErrorRecord(
                    provider=provider.name, error=f"timed out after {self.timeout}s",
                ))
                self._log_call(provider.name, False, start_time, error="timeout")
                continue
            except ProviderError as e:
                errors.append(ProviderErrorRecord(provider=provider.name, error=e.message))
                self._log_call(provider.name, False, start_time, error=e.message)
                continue
            except Exception as e:
                errors.append(ProviderErrorRecord(provider=provider.name, error=str(e) or repr(e)))
                self._log_call(provider.name, False, start_time, error=repr(e))
                continue

            self._log_call(provider.name, True, start_time, items=len(items))
            collected.extend(items)
            if len(collected) >= limits.sufficiency:
                break

        used_fallback = not collected
        if used_fallback:
            collected = list(self.fallback.generate(params))
            self._telemetry.warning(
                "No %s results from providers, using fallback data (%d errors)",
                self.kind, len(errors),
            )

        unique = self._dedupe(collected)
        if self.sort_key is not None:
            unique.sort(key=self.sort_key)

        return self._result_model(
            items=unique[: limits.top_n],
            total_found=len(unique),
            sources_used={FALLBACK_SOURCE} if used_fallback else {i.source for i in unique},
            errors=errors or None,
            used_fallback=used_fallback,
        )

    def _dedupe(self, items: list[ItemT]) -> list[ItemT]:
        seen = set()
        unique = []
        for item in items:
            key = self.identity_key(item)
            if key in seen:
                continue
            seen.add(key)
            unique.append(item)
        return unique

    def _log_call(self, provider: str, success: bool, start_time: float, **extra) -> None:
        elapsed_ms = int((time.monotonic() - start_time) * 1000)
        self._telemetry.external_api(provider, f"{self.kind}-search", success, elapsed_ms, **extra)

    async def close(self) -> None:
        for provider in self.providers:
            await provider.close()
