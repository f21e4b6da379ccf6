from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

import httpx

from backend.app.settings import Settings
from backend.app.translation.languages import SUPPORTED_LANGUAGES, get_language_config


class ImageSearchError(Exception):
    """Raised when the image search backend cannot be reached."""


class ImageSearch(ABC):
    @property
    @abstractmethod
    def name(self) -> str:
        raise NotImplementedError

    @abstractmethod
    async def fetch_image_url(self, primary_text: str, secondary_text: str) -> str | None:
        raise NotImplementedError


class PexelsImageSearch(ImageSearch):
    """Searches the english word first, then the primary word."""

    def __init__(
        self,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._timeout = httpx.Timeout(settings.provider_timeout_seconds)
        self._transport = transport

    @property
    def name(self) -> str:
        return "pexels"

    async def fetch_image_url(self, primary_text: str, secondary_text: str) -> str | None:
        if not self._settings.pexels_key_configured:
            return None

        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                for query in (secondary_text, primary_text):
                    photo = await self._first_photo(client, query)
                    if photo is not None:
                        return self._select_size(photo)
        except httpx.RequestError as exc:
            raise ImageSearchError(f"pexels_request_error:{exc}") from exc
        return None

    async def _first_photo(self, client: httpx.AsyncClient, query: str) -> dict | None:
        response = await client.get(
            f"{self._settings.pexels_api_base_url.rstrip('/')}/search",
            params={"query": query, "per_page": 10, "page": 1},
            headers={"Authorization": self._settings.pexels_api_key or ""},
        )
        if response.status_code != 200:
            raise ImageSearchError(f"pexels_status_error:{response.status_code}")
        try:
            photos = response.json().get("photos") or []
        except ValueError as exc:
            raise ImageSearchError(f"pexels_malformed_response:{exc}") from exc
        return photos[0] if photos else None

    @staticmethod
    def _select_size(photo: dict) -> str | None:
        src = photo.get("src") or {}
        return src.get("medium") or src.get("small") or src.get("original")


@dataclass(frozen=True)
class Voice:
    name: str
    lang: str
    default: bool = False

    def to_dict(self) -> dict[str, object]:
        return {"name": self.name, "lang": self.lang, "default": self.default}


class VoiceCatalog(ABC):
    @abstractmethod
    async def list_voices(self) -> list[Voice]:
        raise NotImplementedError


class StaticVoiceCatalog(VoiceCatalog):
    def __init__(self, voices: list[Voice]) -> None:
        self._voices = list(voices)

    async def list_voices(self) -> list[Voice]:
        return list(self._voices)


def parse_voice_catalog(raw: str) -> list[Voice]:
    """Parse ``"ko-KR:Yuna,en-US:Samantha"`` into voices."""
    voices: list[Voice] = []
    for item in raw.split(","):
        lang, separator, name = item.strip().partition(":")
        if not lang:
            continue
        voices.append(Voice(name=name.strip() if separator else lang, lang=lang.strip()))
    return voices


def default_voices() -> list[Voice]:
    return [
        Voice(name=f"{config.name} {config.voice_keywords[0]}", lang=config.tts_lang)
        for config in SUPPORTED_LANGUAGES.values()
    ]


def build_voice_catalog(settings: Settings) -> VoiceCatalog:
    if settings.voice_catalog:
        return StaticVoiceCatalog(parse_voice_catalog(settings.voice_catalog))
    return StaticVoiceCatalog(default_voices())


class VoiceRegistry:
    """Locally installed voices; availability checks never touch the network."""

    def __init__(
        self,
        catalog: VoiceCatalog,
        settings: Settings,
        logger: logging.Logger,
    ) -> None:
        self._catalog = catalog
        self._settings = settings
        self._logger = logger
        self._voices: list[Voice] | None = None

    @property
    def voices(self) -> list[Voice]:
        return list(self._voices or [])

    def _fallback(self) -> list[Voice]:
        return [Voice(name="default", lang=self._settings.default_voice_lang, default=True)]

    async def ensure_loaded(self, timeout_seconds: float | None = None) -> list[Voice]:
        if self._voices is not None:
            return self.voices

        timeout = (
            self._settings.voice_load_timeout_seconds
            if timeout_seconds is None
            else timeout_seconds
        )
        try:
            voices = await asyncio.wait_for(self._catalog.list_voices(), timeout=timeout)
        except asyncio.TimeoutError:
            voices = []
            self._logger.warning(
                "voice_catalog_timeout",
                extra={
                    "event": "voice_catalog_timeout",
                    "service_name": self._settings.service_name,
                    "service_version": self._settings.service_version,
                    "timeout_seconds": timeout,
                },
            )
        except Exception as exc:
            voices = []
            self._logger.warning(
                "voice_catalog_failed",
                extra={
                    "event": "voice_catalog_failed",
                    "service_name": self._settings.service_name,
                    "service_version": self._settings.service_version,
                    "reason": str(exc),
                },
            )

        self._voices = voices or self._fallback()
        self._logger.info(
            "voice_catalog_loaded",
            extra={
                "event": "voice_catalog_loaded",
                "service_name": self._settings.service_name,
                "service_version": self._settings.service_version,
                "voice_count": len(self._voices),
                "fallback": not voices,
            },
        )
        return self.voices

    def _language_voices(self, language_code: str) -> list[Voice]:
        config = get_language_config(language_code)
        if config is None:
            return []
        return [voice for voice in self.voices if voice.lang.startswith(config.tts_prefix)]

    def supports(self, language_code: str) -> bool:
        return bool(self._language_voices(language_code))

    def select_voice(self, language_code: str) -> Voice | None:
        candidates = self._language_voices(language_code)
        if not candidates:
            return None
        config = get_language_config(language_code)
        for keyword in config.voice_keywords if config else ():
            for voice in candidates:
                if keyword.lower() in voice.name.lower():
                    return voice
        return candidates[0]
