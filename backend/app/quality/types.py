from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from typing import Any

from backend.app.translation.types import TranslationResult

GRADE_EXCELLENT = "excellent"
GRADE_GOOD = "good"
GRADE_FAIR = "fair"
GRADE_POOR = "poor"
GRADE_NEEDS_REVIEW = "needs_review"

CONFIDENCE_HIGH = "high"
CONFIDENCE_MEDIUM = "medium"
CONFIDENCE_LOW = "low"

STATUS_UNVALIDATED = "unvalidated"
STATUS_AUTO_VALIDATED = "auto_validated"
STATUS_USER_VALIDATED = "user_validated"
STATUS_REJECTED = "rejected"

CORRECTION_REASONS = ("grammar", "vocabulary", "context", "cultural", "other")


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class QualityBreakdown:
    provider_reliability: int
    language_pair_quality: int
    context_complexity: int
    length_appropriateness: int

    def values(self) -> list[int]:
        return [
            self.provider_reliability,
            self.language_pair_quality,
            self.context_complexity,
            self.length_appropriateness,
        ]

    def to_dict(self) -> dict[str, int]:
        return {
            "provider_reliability": self.provider_reliability,
            "language_pair_quality": self.language_pair_quality,
            "context_complexity": self.context_complexity,
            "length_appropriateness": self.length_appropriateness,
        }


@dataclass(frozen=True)
class QualityScore:
    overall: int
    breakdown: QualityBreakdown
    grade: str
    confidence: str
    recommendations: tuple[str, ...]
    needs_validation: bool

    def to_dict(self) -> dict[str, object]:
        return {
            "overall": self.overall,
            "breakdown": self.breakdown.to_dict(),
            "grade": self.grade,
            "confidence": self.confidence,
            "recommendations": list(self.recommendations),
            "needs_validation": self.needs_validation,
        }


@dataclass(frozen=True)
class UserValidation:
    original_translation: str
    corrected_translation: str
    correction_reason: str | None = None
    correction_note: str | None = None
    is_native_speaker: bool = False
    validated_at: str = field(default_factory=utc_now_iso)

    @property
    def is_correction(self) -> bool:
        return self.corrected_translation != self.original_translation

    def to_dict(self) -> dict[str, object]:
        return {
            "original_translation": self.original_translation,
            "corrected_translation": self.corrected_translation,
            "correction_reason": self.correction_reason,
            "correction_note": self.correction_note,
            "is_native_speaker": self.is_native_speaker,
            "validated_at": self.validated_at,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "UserValidation":
        return cls(
            original_translation=str(payload["original_translation"]),
            corrected_translation=str(payload["corrected_translation"]),
            correction_reason=payload.get("correction_reason"),
            correction_note=payload.get("correction_note"),
            is_native_speaker=bool(payload.get("is_native_speaker", False)),
            validated_at=str(payload.get("validated_at") or utc_now_iso()),
        )


@dataclass(frozen=True)
class TranslationFeedback:
    translation_id: str
    source_language: str
    target_language: str
    source_text: str
    translated_text: str
    provider: str
    user_validations: tuple[UserValidation, ...] = ()
    alternatives: tuple[str, ...] = ()
    use_for_learning: bool = False
    created_at: str = field(default_factory=utc_now_iso)
    updated_at: str = field(default_factory=utc_now_iso)

    @property
    def language_pair(self) -> str:
        return f"{self.source_language}-{self.target_language}"

    def to_dict(self) -> dict[str, object]:
        return {
            "translation_id": self.translation_id,
            "language_pair": {
                "source": self.source_language,
                "target": self.target_language,
            },
            "source_text": self.source_text,
            "translated_text": self.translated_text,
            "provider": self.provider,
            "user_validations": [item.to_dict() for item in self.user_validations],
            "alternatives": list(self.alternatives),
            "use_for_learning": self.use_for_learning,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "TranslationFeedback":
        pair = payload.get("language_pair") or {}
        return cls(
            translation_id=str(payload["translation_id"]),
            source_language=str(pair.get("source", "")),
            target_language=str(pair.get("target", "")),
            source_text=str(payload.get("source_text", "")),
            translated_text=str(payload.get("translated_text", "")),
            provider=str(payload.get("provider", "")),
            user_validations=tuple(
                UserValidation.from_dict(item) for item in payload.get("user_validations", [])
            ),
            alternatives=tuple(payload.get("alternatives", [])),
            use_for_learning=bool(payload.get("use_for_learning", False)),
            created_at=str(payload.get("created_at") or utc_now_iso()),
            updated_at=str(payload.get("updated_at") or utc_now_iso()),
        )


@dataclass(frozen=True)
class QualitySettings:
    min_confidence_threshold: int = 70
    enable_auto_validation: bool = True
    enable_user_validation: bool = True
    show_alternatives: bool = True
    prioritize_native_validation: bool = True
    allow_learning_data_collection: bool = True

    def to_dict(self) -> dict[str, object]:
        return {item.name: getattr(self, item.name) for item in fields(self)}

    @classmethod
    def from_dict(cls, payload: dict[str, Any], base: "QualitySettings | None" = None) -> "QualitySettings":
        values = (base or cls()).to_dict()
        for name in values:
            if name in payload and payload[name] is not None:
                values[name] = payload[name]
        threshold = int(values["min_confidence_threshold"])
        if not 0 <= threshold <= 100:
            raise ValueError("min_confidence_threshold must be between 0 and 100")
        return cls(
            min_confidence_threshold=threshold,
            enable_auto_validation=bool(values["enable_auto_validation"]),
            enable_user_validation=bool(values["enable_user_validation"]),
            show_alternatives=bool(values["show_alternatives"]),
            prioritize_native_validation=bool(values["prioritize_native_validation"]),
            allow_learning_data_collection=bool(values["allow_learning_data_collection"]),
        )


@dataclass(frozen=True)
class EnhancedTranslationResult:
    result: TranslationResult
    quality_score: QualityScore
    validation_status: str
    alternatives: tuple[str, ...] = ()
    user_corrections: tuple[UserValidation, ...] = ()
    quality_flags: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, object]:
        payload = self.result.to_dict()
        payload.update(
            {
                "quality_score": self.quality_score.to_dict(),
                "validation_status": self.validation_status,
                "alternatives": list(self.alternatives),
                "user_corrections": [item.to_dict() for item in self.user_corrections],
                "quality_flags": list(self.quality_flags),
            }
        )
        return payload
