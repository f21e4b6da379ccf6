from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

import httpx

from backend.app.translation.providers.base import TranslationProviderError
from backend.app.translation.types import TranslationRequest

MYMEMORY_CODES = {"zh": "zh-CN"}


class FreeEndpoint(ABC):
    """Keyless network translator used inside the zero-cost cascade."""

    def __init__(
        self,
        timeout_seconds: float,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._timeout = httpx.Timeout(timeout_seconds)
        self._transport = transport

    @property
    @abstractmethod
    def name(self) -> str:
        raise NotImplementedError

    @abstractmethod
    async def fetch(self, client: httpx.AsyncClient, request: TranslationRequest) -> str | None:
        raise NotImplementedError

    async def lookup(self, request: TranslationRequest) -> str | None:
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                text = await self.fetch(client, request)
        except httpx.RequestError as exc:
            raise TranslationProviderError(f"{self.name}_request_error:{exc}") from exc
        except (ValueError, KeyError, IndexError, TypeError, AttributeError) as exc:
            raise TranslationProviderError(f"{self.name}_malformed_response:{exc}") from exc
        return text.strip() if text and text.strip() else None


def _raise_for_status(name: str, response: httpx.Response) -> None:
    if response.status_code != 200:
        raise TranslationProviderError(f"{name}_status_error:{response.status_code}")


def _mymemory_text(payload: Any) -> str | None:
    if payload.get("responseStatus") != 200:
        return None
    data = payload.get("responseData") or {}
    text = data.get("translatedText")
    return str(text) if text else None


class MyMemoryEndpoint(FreeEndpoint):
    def __init__(
        self,
        base_url: str,
        timeout_seconds: float,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(timeout_seconds, transport)
        self._base_url = base_url.rstrip("/")

    @property
    def name(self) -> str:
        return "mymemory"

    async def fetch(self, client: httpx.AsyncClient, request: TranslationRequest) -> str | None:
        source = MYMEMORY_CODES.get(request.from_lang, request.from_lang)
        target = MYMEMORY_CODES.get(request.to_lang, request.to_lang)
        response = await client.get(
            f"{self._base_url}/get",
            params={"q": request.text, "langpair": f"{source}|{target}"},
        )
        _raise_for_status(self.name, response)
        return _mymemory_text(response.json())


class MyMemoryAutoDetectEndpoint(MyMemoryEndpoint):
    @property
    def name(self) -> str:
        return "mymemory_autodetect"

    async def fetch(self, client: httpx.AsyncClient, request: TranslationRequest) -> str | None:
        response = await client.get(
            f"{self._base_url}/get",
            params={"q": request.text, "langpair": f"auto|{request.to_lang}"},
        )
        _raise_for_status(self.name, response)
        return _mymemory_text(response.json())


class LibreTranslateEndpoint(FreeEndpoint):
    def __init__(
        self,
        url: str,
        timeout_seconds: float,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(timeout_seconds, transport)
        self._url = url

    @property
    def name(self) -> str:
        return "libretranslate"

    async def fetch(self, client: httpx.AsyncClient, request: TranslationRequest) -> str | None:
        response = await client.post(
            self._url,
            json={
                "q": request.text,
                "source": request.from_lang,
                "target": request.to_lang,
                "format": "text",
            },
        )
        _raise_for_status(self.name, response)
        text = response.json().get("translatedText")
        return str(text) if text else None


class LingueeEndpoint(FreeEndpoint):
    def __init__(
        self,
        base_url: str,
        timeout_seconds: float,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(timeout_seconds, transport)
        self._base_url = base_url.rstrip("/")

    @property
    def name(self) -> str:
        return "linguee"

    async def fetch(self, client: httpx.AsyncClient, request: TranslationRequest) -> str | None:
        response = await client.get(
            f"{self._base_url}/translations",
            params={"query": request.text, "src": request.from_lang, "dst": request.to_lang},
        )
        _raise_for_status(self.name, response)
        payload = response.json()
        # the API answers with a bare list of lemmas or an object wrapping them
        entries = payload.get("translations") if isinstance(payload, dict) else payload
        if not entries:
            return None
        first = entries[0]
        text = first.get("text") if isinstance(first, dict) else None
        return str(text) if text else None
