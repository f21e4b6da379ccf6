from __future__ import annotations

from typing import Any

import httpx

from backend.app.settings import Settings
from backend.app.translation.providers.base import HttpTranslationProvider
from backend.app.translation.types import PROVIDER_GOOGLE, TranslationRequest


class GoogleTranslationProvider(HttpTranslationProvider):
    language_codes = {"zh": "zh-CN"}
    default_confidence = 0.95

    def __init__(
        self,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(settings.provider_timeout_seconds, transport)
        self._settings = settings

    @property
    def name(self) -> str:
        return PROVIDER_GOOGLE

    @property
    def configured(self) -> bool:
        return self._settings.google_key_configured

    async def _send(
        self, client: httpx.AsyncClient, request: TranslationRequest
    ) -> httpx.Response:
        return await client.post(
            self._settings.google_translate_endpoint,
            params={
                "key": self._settings.google_translate_api_key or "",
                "q": request.text,
                "source": self.map_language(request.from_lang),
                "target": self.map_language(request.to_lang),
                "format": "text",
            },
        )

    def _extract(self, payload: Any) -> tuple[str, float | None]:
        return str(payload["data"]["translations"][0]["translatedText"]), None
