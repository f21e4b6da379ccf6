from __future__ import annotations

import asyncio
import logging
from collections import OrderedDict, deque
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from time import monotonic
from typing import Any, Awaitable, Callable

import httpx

from backend.app.settings import Settings
from backend.app.translation.providers.base import (
    TranslationProvider,
    TranslationProviderError,
)
from backend.app.translation.providers.cascade import ZeroCostCascade
from backend.app.translation.providers.google import GoogleTranslationProvider
from backend.app.translation.providers.microsoft import MicrosoftTranslationProvider
from backend.app.translation.providers.papago import PapagoTranslationProvider
from backend.app.translation.quota import QuotaLedger
from backend.app.translation.types import TranslationRequest, TranslationResult

ProgressHandler = Callable[[int, int, str], Any]


class AllProvidersFailed(Exception):
    """Raised when every provider in the priority list was exhausted."""

    def __init__(self, attempts: list[dict[str, str]]) -> None:
        self.attempts = attempts
        summary = ", ".join(f"{item['provider']}={item['outcome']}" for item in attempts)
        super().__init__(f"all_providers_failed: {summary}")


class BatchTranslationFailed(Exception):
    """Raised when no target language of a batch could be translated."""

    def __init__(self, failures: dict[str, str]) -> None:
        self.failures = failures
        super().__init__(f"batch_translation_failed: {sorted(failures)}")


@dataclass
class BatchTranslationResult:
    results: dict[str, TranslationResult] = field(default_factory=dict)
    failures: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, object]:
        return {
            "results": {lang: result.to_dict() for lang, result in self.results.items()},
            "failures": dict(self.failures),
        }


@dataclass
class OrchestratorMetrics:
    started_at: str | None = None
    requests_total: int = 0
    requests_succeeded: int = 0
    requests_failed: int = 0
    provider_attempts: int = 0
    provider_errors: int = 0
    quota_skips: int = 0
    average_processing_ms: float = 0.0
    last_processing_ms: float = 0.0
    last_provider: str | None = None
    last_result_at: str | None = None
    last_error: str | None = None


def build_default_providers(
    settings: Settings,
    logger: logging.Logger,
    transport: httpx.AsyncBaseTransport | None = None,
) -> list[TranslationProvider]:
    """Providers in ascending cost order."""
    return [
        ZeroCostCascade(settings, logger, transport=transport),
        MicrosoftTranslationProvider(settings, transport=transport),
        GoogleTranslationProvider(settings, transport=transport),
        PapagoTranslationProvider(settings, transport=transport),
    ]


class TranslationOrchestrator:
    def __init__(
        self,
        settings: Settings,
        logger: logging.Logger,
        quota_ledger: QuotaLedger,
        providers: list[TranslationProvider] | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._settings = settings
        self._logger = logger
        self._quota = quota_ledger
        self._providers = providers if providers is not None else build_default_providers(settings, logger)
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self._metrics = OrchestratorMetrics(started_at=datetime.now(timezone.utc).isoformat())
        self._recent_results: deque[TranslationResult] = deque(
            maxlen=max(1, settings.recent_results_limit)
        )
        self._cache: OrderedDict[tuple[str, str, str], TranslationResult] = OrderedDict()
        self._cache_limit = max(1, settings.translation_cache_limit)

    @property
    def provider_names(self) -> list[str]:
        return [provider.name for provider in self._providers]

    def _log_extra(self, event: str, **fields: object) -> dict[str, object]:
        return {
            "event": event,
            "service_name": self._settings.service_name,
            "service_version": self._settings.service_version,
            **fields,
        }

    async def translate_single(self, request: TranslationRequest) -> TranslationResult:
        started = monotonic()
        attempts: list[dict[str, str]] = []

        for provider in self._providers:
            if provider.metered and not self._quota.has_remaining(provider.name):
                attempts.append({"provider": provider.name, "outcome": "quota_exhausted"})
                async with self._lock:
                    self._metrics.quota_skips += 1
                self._logger.info(
                    "translation_provider_skipped",
                    extra=self._log_extra(
                        "translation_provider_skipped",
                        provider=provider.name,
                        reason="quota_exhausted",
                    ),
                )
                continue

            async with self._lock:
                self._metrics.provider_attempts += 1

            try:
                result = await provider.translate(request)
            except Exception as exc:
                reason = (
                    str(exc)
                    if isinstance(exc, TranslationProviderError)
                    else f"{type(exc).__name__}:{exc}"
                )
                attempts.append({"provider": provider.name, "outcome": f"error:{reason}"})
                async with self._lock:
                    self._metrics.provider_errors += 1
                    self._metrics.last_error = reason
                self._logger.warning(
                    "translation_provider_failed",
                    extra=self._log_extra(
                        "translation_provider_failed",
                        provider=provider.name,
                        reason=reason,
                    ),
                    exc_info=not isinstance(exc, TranslationProviderError),
                )
                continue

            if result is None:
                attempts.append({"provider": provider.name, "outcome": "no_result"})
                self._logger.info(
                    "translation_provider_empty",
                    extra=self._log_extra("translation_provider_empty", provider=provider.name),
                )
                continue

            if provider.metered:
                self._quota.debit(provider.name, request.char_count)

            await self._record_success(request, result, started)
            return result

        async with self._lock:
            self._metrics.requests_total += 1
            self._metrics.requests_failed += 1
            self._metrics.last_error = "all_providers_failed"
        self._logger.error(
            "translation_all_providers_failed",
            extra=self._log_extra(
                "translation_all_providers_failed",
                from_lang=request.from_lang,
                to_lang=request.to_lang,
                attempts=attempts,
            ),
        )
        raise AllProvidersFailed(attempts)

    async def translate_batch(
        self,
        text: str,
        from_lang: str,
        to_langs: list[str],
        on_progress: ProgressHandler | None = None,
    ) -> BatchTranslationResult:
        batch = BatchTranslationResult()
        total = len(to_langs)

        for index, to_lang in enumerate(to_langs):
            try:
                request = TranslationRequest(text=text, from_lang=from_lang, to_lang=to_lang)
                batch.results[to_lang] = await self.translate_single(request)
            except (AllProvidersFailed, ValueError) as exc:
                batch.failures[to_lang] = str(exc)
                self._logger.warning(
                    "translation_batch_language_failed",
                    extra=self._log_extra(
                        "translation_batch_language_failed",
                        to_lang=to_lang,
                        reason=str(exc),
                    ),
                )

            if on_progress is not None:
                outcome = on_progress(index + 1, total, to_lang)
                if asyncio.iscoroutine(outcome):
                    await outcome

            if index + 1 < total:
                await self._sleep(self._settings.batch_delay_seconds)

        if to_langs and not batch.results:
            raise BatchTranslationFailed(batch.failures)
        return batch

    async def _record_success(
        self,
        request: TranslationRequest,
        result: TranslationResult,
        started: float,
    ) -> None:
        latency_ms = round((monotonic() - started) * 1000.0, 3)
        self._recent_results.append(result)
        key = (request.text, request.from_lang, request.to_lang)
        self._cache[key] = result
        self._cache.move_to_end(key)
        while len(self._cache) > self._cache_limit:
            self._cache.popitem(last=False)

        async with self._lock:
            previous_count = self._metrics.requests_succeeded
            previous_avg = self._metrics.average_processing_ms
            self._metrics.requests_total += 1
            self._metrics.requests_succeeded += 1
            self._metrics.last_processing_ms = latency_ms
            self._metrics.last_provider = result.translated_by
            self._metrics.last_result_at = datetime.now(timezone.utc).isoformat()
            self._metrics.average_processing_ms = round(
                ((previous_avg * previous_count) + latency_ms)
                / max(1, self._metrics.requests_succeeded),
                3,
            )

        self._logger.info(
            "translation_completed",
            extra=self._log_extra(
                "translation_completed",
                provider=result.translated_by,
                from_lang=request.from_lang,
                to_lang=request.to_lang,
                latency_ms=latency_ms,
            ),
        )

    def snapshot(self) -> dict[str, object]:
        payload = asdict(self._metrics)
        payload["providers"] = self.provider_names
        payload["available_providers"] = self.available_providers()
        payload["recent_results_count"] = len(self._recent_results)
        payload["cached_results_count"] = len(self._cache)
        return payload

    def recent_results(self, limit: int = 10) -> list[dict[str, object]]:
        bounded = max(1, min(limit, 100))
        return [item.to_dict() for item in list(self._recent_results)[-bounded:]][::-1]

    def cached_result(self, text: str, from_lang: str, to_lang: str) -> TranslationResult | None:
        return self._cache.get((text, from_lang, to_lang))

    def clear_cache(self) -> None:
        self._cache.clear()

    def available_providers(self) -> list[str]:
        available: list[str] = []
        for provider in self._providers:
            if not provider.configured:
                continue
            if provider.metered and not self._quota.has_remaining(provider.name):
                continue
            available.append(provider.name)
        return available

    def translation_stats(self) -> dict[str, object]:
        results = list(self._cache.values())
        by_provider: dict[str, int] = {}
        for result in results:
            by_provider[result.translated_by] = by_provider.get(result.translated_by, 0) + 1
        average = sum(result.confidence for result in results) / len(results) if results else 0.0
        return {
            "total_translations": len(results),
            "by_provider": by_provider,
            "average_confidence": round(average, 4),
        }

    def quota_status(self) -> dict[str, dict[str, Any]]:
        return self._quota.status()

    def quota_status_text(self) -> str:
        return self._quota.status_text()
