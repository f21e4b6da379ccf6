from __future__ import annotations

from dataclasses import dataclass, field

from backend.app.quality.types import QualityScore
from backend.app.quality.validator import ValidationResult
from backend.app.translation.languages import is_supported_language

PHASE_IDLE = "idle"
PHASE_IMAGE = "image"
PHASE_TRANSLATION = "translation"
PHASE_TTS = "tts"
PHASE_COMPLETED = "completed"
PHASE_CANCELLED = "cancelled"
PHASE_ERROR = "error"

STEP_PENDING = "pending"
STEP_IN_PROGRESS = "in-progress"
STEP_COMPLETED = "completed"
STEP_FAILED = "failed"

PHASE_WEIGHTS = {PHASE_IMAGE: 20, PHASE_TRANSLATION: 60, PHASE_TTS: 20}


@dataclass(frozen=True)
class WordSubmission:
    primary_text: str
    secondary_text: str
    primary_lang: str = "ko"
    secondary_lang: str = "en"

    def __post_init__(self) -> None:
        if not self.primary_text.strip() or not self.secondary_text.strip():
            raise ValueError("primary_text and secondary_text must not be empty")
        for code in (self.primary_lang, self.secondary_lang):
            if not is_supported_language(code):
                raise ValueError(f"unsupported language code: {code}")
        if self.primary_lang == self.secondary_lang:
            raise ValueError("primary_lang and secondary_lang must differ")


@dataclass
class ImagePhaseProgress:
    status: str = STEP_PENDING
    progress: float = 0.0
    image_url: str | None = None

    def to_dict(self) -> dict[str, object]:
        return {"status": self.status, "progress": self.progress, "image_url": self.image_url}


@dataclass
class TranslationPhaseProgress:
    status: str = STEP_PENDING
    progress: float = 0.0
    completed_languages: list[str] = field(default_factory=list)
    failed_languages: list[str] = field(default_factory=list)
    current_language: str = ""

    def to_dict(self) -> dict[str, object]:
        return {
            "status": self.status,
            "progress": self.progress,
            "completed_languages": list(self.completed_languages),
            "failed_languages": list(self.failed_languages),
            "current_language": self.current_language,
        }


@dataclass
class TtsPhaseProgress:
    status: str = STEP_PENDING
    progress: float = 0.0
    supported_languages: list[str] = field(default_factory=list)
    tested_languages: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {
            "status": self.status,
            "progress": self.progress,
            "supported_languages": list(self.supported_languages),
            "tested_languages": list(self.tested_languages),
        }


@dataclass(frozen=True)
class LanguageTranslation:
    text: str
    confidence: float
    source: str
    translated_by: str
    verified: bool
    validation: ValidationResult | None = None
    quality: QualityScore | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "text": self.text,
            "confidence": round(self.confidence, 4),
            "source": self.source,
            "translated_by": self.translated_by,
            "verified": self.verified,
            "validation": self.validation.to_dict() if self.validation else None,
            "quality": self.quality.to_dict() if self.quality else None,
        }


@dataclass
class ProcessingStatus:
    current_phase: str = PHASE_IDLE
    overall_progress: float = 0.0
    image: ImagePhaseProgress = field(default_factory=ImagePhaseProgress)
    translation: TranslationPhaseProgress = field(default_factory=TranslationPhaseProgress)
    tts: TtsPhaseProgress = field(default_factory=TtsPhaseProgress)
    image_url: str = ""
    translations: dict[str, LanguageTranslation] = field(default_factory=dict)
    audio_support: dict[str, bool] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {
            "current_phase": self.current_phase,
            "overall_progress": round(self.overall_progress, 2),
            "phase_progress": {
                PHASE_IMAGE: self.image.to_dict(),
                PHASE_TRANSLATION: self.translation.to_dict(),
                PHASE_TTS: self.tts.to_dict(),
            },
            "results": {
                "image_url": self.image_url,
                "translations": {
                    code: item.to_dict() for code, item in self.translations.items()
                },
                "audio_support": dict(self.audio_support),
            },
            "errors": list(self.errors),
        }


@dataclass(frozen=True)
class ProcessingResult:
    image_url: str
    translations: dict[str, LanguageTranslation]
    audio_support: dict[str, bool]
    processing_time_ms: float
    success_rate: float
    failed_languages: tuple[str, ...]
    errors: tuple[str, ...] = ()
    cancelled: bool = False

    def to_dict(self) -> dict[str, object]:
        return {
            "image_url": self.image_url,
            "translations": {code: item.to_dict() for code, item in self.translations.items()},
            "audio_support": dict(self.audio_support),
            "metadata": {
                "processing_time_ms": self.processing_time_ms,
                "success_rate": round(self.success_rate, 2),
                "failed_languages": list(self.failed_languages),
            },
            "errors": list(self.errors),
            "cancelled": self.cancelled,
        }
