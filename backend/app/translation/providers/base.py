from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

import httpx

from backend.app.translation.types import TranslationRequest, TranslationResult, is_echo


class TranslationProviderError(Exception):
    """Raised when a translation provider call fails."""


class TranslationProvider(ABC):
    @property
    @abstractmethod
    def name(self) -> str:
        raise NotImplementedError

    @property
    def metered(self) -> bool:
        return True

    @property
    def configured(self) -> bool:
        return True

    @abstractmethod
    async def translate(self, request: TranslationRequest) -> TranslationResult | None:
        raise NotImplementedError


class HttpTranslationProvider(TranslationProvider):
    """Metered HTTPS backend; subclasses only know their own payload shape."""

    language_codes: dict[str, str] = {}
    default_confidence = 0.9

    def __init__(
        self,
        timeout_seconds: float,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._timeout = httpx.Timeout(timeout_seconds)
        self._transport = transport

    def map_language(self, code: str) -> str:
        return self.language_codes.get(code, code)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    async def translate(self, request: TranslationRequest) -> TranslationResult | None:
        if not self.configured:
            return None

        try:
            async with self._client() as client:
                response = await self._send(client, request)
        except httpx.RequestError as exc:
            raise TranslationProviderError(f"{self.name}_request_error:{exc}") from exc

        if response.status_code != 200:
            raise TranslationProviderError(f"{self.name}_status_error:{response.status_code}")

        try:
            payload = response.json()
            text, confidence = self._extract(payload)
        except (ValueError, KeyError, IndexError, TypeError, AttributeError) as exc:
            raise TranslationProviderError(f"{self.name}_malformed_response:{exc}") from exc

        text = (text or "").strip()
        if not text or is_echo(request.text, text):
            return None

        return TranslationResult.from_request(
            request,
            translated_text=text,
            confidence=confidence if confidence is not None else self.default_confidence,
            translated_by=self.name,
        )

    @abstractmethod
    async def _send(
        self, client: httpx.AsyncClient, request: TranslationRequest
    ) -> httpx.Response:
        raise NotImplementedError

    @abstractmethod
    def _extract(self, payload: Any) -> tuple[str, float | None]:
        raise NotImplementedError
