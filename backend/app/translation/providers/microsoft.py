from __future__ import annotations

from typing import Any

import httpx

from backend.app.settings import Settings
from backend.app.translation.providers.base import HttpTranslationProvider
from backend.app.translation.types import PROVIDER_MICROSOFT, TranslationRequest


class MicrosoftTranslationProvider(HttpTranslationProvider):
    default_confidence = 0.9

    def __init__(
        self,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(settings.provider_timeout_seconds, transport)
        self._settings = settings

    @property
    def name(self) -> str:
        return PROVIDER_MICROSOFT

    @property
    def configured(self) -> bool:
        return self._settings.microsoft_key_configured

    async def _send(
        self, client: httpx.AsyncClient, request: TranslationRequest
    ) -> httpx.Response:
        return await client.post(
            self._settings.microsoft_translator_endpoint,
            params={
                "api-version": "3.0",
                "from": self.map_language(request.from_lang),
                "to": self.map_language(request.to_lang),
            },
            headers={
                "Ocp-Apim-Subscription-Key": self._settings.microsoft_translator_key or "",
                "Ocp-Apim-Subscription-Region": self._settings.microsoft_translator_region,
                "Content-Type": "application/json",
            },
            json=[{"Text": request.text}],
        )

    def _extract(self, payload: Any) -> tuple[str, float | None]:
        translation = payload[0]["translations"][0]
        confidence = translation.get("confidence")
        return str(translation["text"]), float(confidence) if confidence else None
