from __future__ import annotations

from typing import Any

import httpx

from backend.app.settings import Settings
from backend.app.translation.providers.base import HttpTranslationProvider
from backend.app.translation.types import PROVIDER_PAPAGO, TranslationRequest


class PapagoTranslationProvider(HttpTranslationProvider):
    language_codes = {"zh": "zh-CN"}
    default_confidence = 0.85

    def __init__(
        self,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(settings.provider_timeout_seconds, transport)
        self._settings = settings

    @property
    def name(self) -> str:
        return PROVIDER_PAPAGO

    @property
    def configured(self) -> bool:
        return self._settings.papago_key_configured

    async def _send(
        self, client: httpx.AsyncClient, request: TranslationRequest
    ) -> httpx.Response:
        return await client.post(
            self._settings.papago_endpoint,
            headers={
                "X-Naver-Client-Id": self._settings.papago_client_id or "",
                "X-Naver-Client-Secret": self._settings.papago_client_secret or "",
            },
            data={
                "source": self.map_language(request.from_lang),
                "target": self.map_language(request.to_lang),
                "text": request.text,
            },
        )

    def _extract(self, payload: Any) -> tuple[str, float | None]:
        return str(payload["message"]["result"]["translatedText"]), None
