from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from backend.app.settings import Settings
from backend.app.translation.providers.base import TranslationProvider, TranslationProviderError
from backend.app.translation.providers.dictionary import LocalDictionary
from backend.app.translation.providers.free_endpoints import (
    FreeEndpoint,
    LibreTranslateEndpoint,
    LingueeEndpoint,
    MyMemoryAutoDetectEndpoint,
    MyMemoryEndpoint,
)
from backend.app.translation.types import (
    PROVIDER_CASCADE,
    TranslationRequest,
    TranslationResult,
    is_echo,
)

CASCADE_CONFIDENCE = 0.85
CASCADE_LANGUAGES = ("ko", "en", "ja", "zh", "es", "fr", "de")


@dataclass(frozen=True)
class CascadeCapability:
    supported_methods: tuple[str, ...]
    supported_languages: tuple[str, ...]

    @property
    def is_supported(self) -> bool:
        return bool(self.supported_methods)


class ZeroCostCascade(TranslationProvider):
    def __init__(
        self,
        settings: Settings,
        logger: logging.Logger,
        dictionary: LocalDictionary | None = None,
        endpoints: list[FreeEndpoint] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._logger = logger
        self._dictionary = dictionary or LocalDictionary()
        if endpoints is None:
            endpoints = self._build_endpoints(settings, transport) if settings.free_apis_enabled else []
        self._endpoints = endpoints
        self._capability = self._detect_capability()

    @property
    def name(self) -> str:
        return PROVIDER_CASCADE

    @property
    def metered(self) -> bool:
        return False

    def is_supported(self) -> bool:
        return self._capability.is_supported

    def supported_methods(self) -> list[str]:
        return list(self._capability.supported_methods)

    def supported_languages(self) -> list[str]:
        return list(self._capability.supported_languages)

    def _build_endpoints(
        self,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None,
    ) -> list[FreeEndpoint]:
        timeout = settings.provider_timeout_seconds
        return [
            MyMemoryEndpoint(settings.mymemory_api_base_url, timeout, transport),
            LibreTranslateEndpoint(settings.libretranslate_api_url, timeout, transport),
            LingueeEndpoint(settings.linguee_api_base_url, timeout, transport),
            MyMemoryAutoDetectEndpoint(settings.mymemory_api_base_url, timeout, transport),
        ]

    def _detect_capability(self) -> CascadeCapability:
        methods = ["dictionary"] + [endpoint.name for endpoint in self._endpoints]
        capability = CascadeCapability(
            supported_methods=tuple(methods),
            supported_languages=CASCADE_LANGUAGES,
        )
        self._logger.info(
            "cascade_capability_detected",
            extra={
                "event": "cascade_capability",
                "service_name": self._settings.service_name,
                "service_version": self._settings.service_version,
                "methods": list(capability.supported_methods),
            },
        )
        return capability

    def lookup_dictionary(self, request: TranslationRequest) -> str | None:
        return self._dictionary.lookup(request.text, request.to_lang)

    async def translate(self, request: TranslationRequest) -> TranslationResult | None:
        if not self._capability.is_supported:
            return None

        text = self.lookup_dictionary(request)
        method = "dictionary"
        # Loanwords spelled like the source only answer when no endpoint does.
        loanword = None
        if text is not None and is_echo(request.text, text):
            loanword, text = text, None
        if text is None:
            text, method = await self._try_endpoints(request)
        if text is None and loanword is not None:
            text, method = loanword, "dictionary"

        if text is None:
            self._logger.info(
                "cascade_exhausted",
                extra={
                    "event": "cascade_exhausted",
                    "service_name": self._settings.service_name,
                    "service_version": self._settings.service_version,
                    "from_lang": request.from_lang,
                    "to_lang": request.to_lang,
                },
            )
            return None

        self._logger.info(
            "cascade_translated",
            extra={
                "event": "cascade_translated",
                "service_name": self._settings.service_name,
                "service_version": self._settings.service_version,
                "method": method,
                "from_lang": request.from_lang,
                "to_lang": request.to_lang,
            },
        )
        return TranslationResult.from_request(
            request,
            translated_text=text,
            confidence=CASCADE_CONFIDENCE,
            translated_by=PROVIDER_CASCADE,
        )

    async def _try_endpoints(self, request: TranslationRequest) -> tuple[str | None, str]:
        for endpoint in self._endpoints:
            try:
                text = await endpoint.lookup(request)
            except TranslationProviderError as exc:
                self._logger.warning(
                    "cascade_endpoint_failed",
                    extra={
                        "event": "cascade_endpoint_failed",
                        "service_name": self._settings.service_name,
                        "service_version": self._settings.service_version,
                        "method": endpoint.name,
                        "reason": str(exc),
                    },
                )
                continue

            if text is None:
                continue
            if is_echo(request.text, text):
                self._logger.info(
                    "cascade_echo_rejected",
                    extra={
                        "event": "cascade_echo_rejected",
                        "service_name": self._settings.service_name,
                        "service_version": self._settings.service_version,
                        "method": endpoint.name,
                    },
                )
                continue
            return text, endpoint.name

        return None, "none"
