from __future__ import annotations

import time
from dataclasses import dataclass, field

from backend.app.translation.languages import is_supported_language

PROVIDER_CASCADE = "cascade"
PROVIDER_MICROSOFT = "microsoft"
PROVIDER_GOOGLE = "google"
PROVIDER_PAPAGO = "papago"


def now_epoch_ms() -> int:
    return int(time.time() * 1000)


def is_echo(original: str, translated: str) -> bool:
    return translated.strip().lower() == original.strip().lower()


@dataclass(frozen=True)
class TranslationRequest:
    text: str
    from_lang: str
    to_lang: str

    def __post_init__(self) -> None:
        if not self.text or not self.text.strip():
            raise ValueError("text must not be empty")
        for code in (self.from_lang, self.to_lang):
            if not is_supported_language(code):
                raise ValueError(f"unsupported language code: {code}")

    @property
    def char_count(self) -> int:
        return len(self.text)


@dataclass(frozen=True)
class TranslationResult:
    original_text: str
    translated_text: str
    source_language: str
    target_language: str
    confidence: float
    translated_by: str
    timestamp: int = field(default_factory=now_epoch_ms)

    @classmethod
    def from_request(
        cls,
        request: TranslationRequest,
        translated_text: str,
        confidence: float,
        translated_by: str,
    ) -> "TranslationResult":
        return cls(
            original_text=request.text,
            translated_text=translated_text,
            source_language=request.from_lang,
            target_language=request.to_lang,
            confidence=max(0.0, min(1.0, float(confidence))),
            translated_by=translated_by,
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "original_text": self.original_text,
            "translated_text": self.translated_text,
            "source_language": self.source_language,
            "target_language": self.target_language,
            "confidence": self.confidence,
            "translated_by": self.translated_by,
            "timestamp": self.timestamp,
        }
