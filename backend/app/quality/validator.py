from __future__ import annotations

import re
from dataclasses import dataclass, field, replace

_LATIN_RE = re.compile(r"[a-zA-Z]")
_HANGUL_RE = re.compile(r"[가-힣]")
_NUMBER_RE = re.compile(r"\d+")
_KANA_RE = re.compile(r"[぀-ゟ゠-ヿ]")
_KOREAN_FORMAL_RE = re.compile(r"습니다|시겠|하십시오")

BASE_CONFIDENCE = 0.8


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    confidence: float
    warnings: tuple[str, ...] = ()
    suggestions: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, object]:
        return {
            "is_valid": self.is_valid,
            "confidence": round(self.confidence, 4),
            "warnings": list(self.warnings),
            "suggestions": list(self.suggestions),
        }


def _language_specific_suggestions(translated: str, to_lang: str) -> list[str]:
    suggestions: list[str] = []
    if to_lang == "ko" and _KOREAN_FORMAL_RE.search(translated):
        suggestions.append("prefer the plain register for learner vocabulary")
    if to_lang == "en" and translated in (translated.upper(), translated.lower()):
        suggestions.append("check capitalization of the English translation")
    if to_lang == "ja" and not _KANA_RE.search(translated):
        suggestions.append("Japanese translation contains no hiragana or katakana")
    return suggestions


def validate_translation(
    original: str,
    translated: str,
    from_lang: str,
    to_lang: str,
) -> ValidationResult:
    """Heuristic sanity checks on a finished translation.

    Pure function: the result depends only on the arguments. Confidence starts at
    0.8 and is reduced per failed check, then clamped to [0, 1]. Style findings
    only ever add suggestions.
    """
    if not translated or not translated.strip():
        return ValidationResult(
            is_valid=False,
            confidence=0.0,
            warnings=("translation is empty",),
        )

    warnings: list[str] = []
    suggestions: list[str] = []
    confidence = BASE_CONFIDENCE

    ratio = len(translated) / max(1, len(original))
    if ratio < 0.3:
        warnings.append("translation is suspiciously short")
        confidence -= 0.2
    elif ratio > 3.0:
        warnings.append("translation is suspiciously long")
        confidence -= 0.1

    if from_lang == "ko" and to_lang == "en" and not _LATIN_RE.search(translated):
        warnings.append("English translation contains no Latin letters")
        confidence -= 0.3
    elif from_lang == "en" and to_lang == "ko" and not _HANGUL_RE.search(translated):
        warnings.append("Korean translation contains no Hangul")
        confidence -= 0.3

    if original.lower() == translated.lower():
        warnings.append("translation is identical to the original text")
        confidence -= 0.4

    if len(_NUMBER_RE.findall(original)) != len(_NUMBER_RE.findall(translated)):
        suggestions.append("check that numbers from the original are kept")

    suggestions.extend(_language_specific_suggestions(translated, to_lang))

    confidence = max(0.0, min(1.0, confidence))
    return ValidationResult(
        is_valid=confidence > 0.4 and not warnings,
        confidence=confidence,
        warnings=tuple(warnings),
        suggestions=tuple(suggestions),
    )


@dataclass(frozen=True)
class TranslationValidation:
    original_text: str
    translated_text: str
    from_lang: str
    to_lang: str
    validation: ValidationResult
    user_verified: bool = False
    corrected_text: str | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "original_text": self.original_text,
            "translated_text": self.translated_text,
            "from_lang": self.from_lang,
            "to_lang": self.to_lang,
            "validation": self.validation.to_dict(),
            "user_verified": self.user_verified,
            "corrected_text": self.corrected_text,
        }


@dataclass
class TranslationValidator:
    """In-process registry of validations keyed by pair and original text."""

    review_confidence_threshold: float = 0.7
    _validations: dict[str, TranslationValidation] = field(default_factory=dict)

    @staticmethod
    def _key(original_text: str, from_lang: str, to_lang: str) -> str:
        return f"{from_lang}-{to_lang}-{original_text}"

    def validate(
        self,
        original_text: str,
        translated_text: str,
        from_lang: str,
        to_lang: str,
    ) -> ValidationResult:
        result = validate_translation(original_text, translated_text, from_lang, to_lang)
        self._validations[self._key(original_text, from_lang, to_lang)] = TranslationValidation(
            original_text=original_text,
            translated_text=translated_text,
            from_lang=from_lang,
            to_lang=to_lang,
            validation=result,
        )
        return result

    def approve(
        self,
        original_text: str,
        from_lang: str,
        to_lang: str,
        corrected_text: str | None = None,
    ) -> bool:
        key = self._key(original_text, from_lang, to_lang)
        current = self._validations.get(key)
        if current is None:
            return False
        self._validations[key] = replace(
            current,
            user_verified=True,
            corrected_text=corrected_text or current.corrected_text,
        )
        return True

    def get(self, original_text: str, from_lang: str, to_lang: str) -> TranslationValidation | None:
        return self._validations.get(self._key(original_text, from_lang, to_lang))

    def stats(self) -> dict[str, object]:
        items = list(self._validations.values())
        total = len(items)
        approved = sum(1 for item in items if item.user_verified)
        with_warnings = sum(1 for item in items if item.validation.warnings)
        return {
            "total": total,
            "approved": approved,
            "with_warnings": with_warnings,
            "approval_rate": round(approved / total * 100, 1) if total else 0.0,
            "average_confidence": (
                round(sum(item.validation.confidence for item in items) / total * 100, 1)
                if total
                else 0.0
            ),
        }

    def needs_review(self) -> list[TranslationValidation]:
        return [
            item
            for item in self._validations.values()
            if not item.user_verified
            and (
                item.validation.warnings
                or item.validation.confidence < self.review_confidence_threshold
            )
        ]
