from __future__ import annotations

import logging
import math
import re
from collections import Counter

from backend.app.quality.learning import LearningStore, generate_translation_id
from backend.app.quality.types import (
    CONFIDENCE_HIGH,
    CONFIDENCE_LOW,
    CONFIDENCE_MEDIUM,
    GRADE_EXCELLENT,
    GRADE_FAIR,
    GRADE_GOOD,
    GRADE_NEEDS_REVIEW,
    GRADE_POOR,
    STATUS_AUTO_VALIDATED,
    STATUS_REJECTED,
    STATUS_UNVALIDATED,
    STATUS_USER_VALIDATED,
    EnhancedTranslationResult,
    QualityBreakdown,
    QualityScore,
    TranslationFeedback,
)
from backend.app.settings import Settings
from backend.app.translation.languages import (
    CJK_LANGUAGES,
    EUROPEAN_LANGUAGES,
    PIVOT_LANGUAGE,
    TRANSLATION_QUALITY_MATRIX,
    get_language_config,
    pair_key,
)
from backend.app.translation.types import TranslationResult

WEIGHTS = {
    "provider_reliability": 0.3,
    "language_pair_quality": 0.3,
    "context_complexity": 0.2,
    "length_appropriateness": 0.2,
}

PROVIDER_RELIABILITY = {
    "cascade": 60,
    "google": 90,
    "microsoft": 88,
    "papago": 85,
    "deepl": 92,
    "azure": 87,
    "libre": 70,
}
UNKNOWN_PROVIDER_RELIABILITY = 50

EXPECTED_LENGTH_RATIOS = {
    "ko-en": 1.2,
    "en-ko": 0.8,
    "ko-zh": 0.6,
    "zh-ko": 1.4,
    "ko-ja": 1.1,
    "ja-ko": 0.9,
}

ACCEPTABLE_DIMENSION_SCORE = 70
LOW_PROVIDER_CONFIDENCE = 0.8
FLAG_PROVIDER_CONFIDENCE = 0.7

_PUNCTUATION_RE = re.compile(r"[!@#$%^&*(),.?\":{}|<>]")
_DIGIT_RE = re.compile(r"\d")
_UPPERCASE_RE = re.compile(r"[A-Z]")
_CHARACTER_RUN_RE = re.compile(r"(.)\1{4,}")

RECOMMENDATIONS = {
    "provider_reliability": "consider a more reliable translation provider",
    "language_pair_quality": "this language pair tends to translate poorly; review manually",
    "context_complexity": "complex source text may have caused translation errors",
    "length_appropriateness": "translation length looks unusual; please double-check it",
}
LOW_CONFIDENCE_RECOMMENDATION = "provider confidence is low; a native speaker review is advised"


def round_half_up(value: float) -> int:
    """Nearest integer with .5 rounded upward, unlike the built-in round()."""
    return int(math.floor(value + 0.5))


def grade_for(overall: int) -> str:
    if overall >= 90:
        return GRADE_EXCELLENT
    if overall >= 80:
        return GRADE_GOOD
    if overall >= 70:
        return GRADE_FAIR
    if overall >= 50:
        return GRADE_POOR
    return GRADE_NEEDS_REVIEW


def confidence_level(overall: int, breakdown: QualityBreakdown) -> str:
    lowest = min(breakdown.values())
    if overall >= 85 and lowest >= 70:
        return CONFIDENCE_HIGH
    if overall >= 70 and lowest >= 50:
        return CONFIDENCE_MEDIUM
    return CONFIDENCE_LOW


def build_quality_score(
    breakdown: QualityBreakdown,
    provider_confidence: float,
    min_confidence_threshold: int = 70,
) -> QualityScore:
    """Compose the weighted overall score, grade and advice from a breakdown."""
    overall = round_half_up(
        sum(getattr(breakdown, name) * weight for name, weight in WEIGHTS.items())
    )
    grade = grade_for(overall)

    recommendations = [
        message
        for name, message in RECOMMENDATIONS.items()
        if getattr(breakdown, name) < ACCEPTABLE_DIMENSION_SCORE
    ]
    if provider_confidence < LOW_PROVIDER_CONFIDENCE:
        recommendations.append(LOW_CONFIDENCE_RECOMMENDATION)

    return QualityScore(
        overall=overall,
        breakdown=breakdown,
        grade=grade,
        confidence=confidence_level(overall, breakdown),
        recommendations=tuple(recommendations),
        needs_validation=(
            overall < min_confidence_threshold or grade in (GRADE_POOR, GRADE_NEEDS_REVIEW)
        ),
    )


def default_quality_score() -> QualityScore:
    return QualityScore(
        overall=50,
        breakdown=QualityBreakdown(50, 50, 50, 50),
        grade=GRADE_FAIR,
        confidence=CONFIDENCE_MEDIUM,
        recommendations=(),
        needs_validation=True,
    )


def has_repeated_words(text: str) -> bool:
    counts = Counter(text.split())
    return any(count >= 3 for count in counts.values())


def looks_like_failure(source_text: str, translated_text: str) -> bool:
    if source_text == translated_text:
        return True
    if len(source_text) > 5 and source_text in translated_text:
        return True
    return bool(_CHARACTER_RUN_RE.search(translated_text))


def context_complexity(source_text: str, translated_text: str) -> int:
    score = 100
    if len(source_text) > 50:
        score -= 10
    if _PUNCTUATION_RE.search(source_text):
        score -= 5
    if _DIGIT_RE.search(source_text):
        score -= 5
    if source_text and len(_UPPERCASE_RE.findall(source_text)) / len(source_text) > 0.1:
        score -= 10
    if has_repeated_words(translated_text):
        score -= 15
    if looks_like_failure(source_text, translated_text):
        score -= 30
    return max(0, min(100, score))


def length_appropriateness(
    source_text: str,
    translated_text: str,
    source_lang: str,
    target_lang: str,
) -> int:
    if not source_text or not translated_text:
        return 0
    ratio = len(translated_text) / len(source_text)
    expected = EXPECTED_LENGTH_RATIOS.get(pair_key(source_lang, target_lang), 1.0)
    deviation = abs(ratio - expected) / expected
    score = max(0.0, 100 - deviation * 100)
    if ratio > 3 or ratio < 0.3:
        score = min(score, 30.0)
    return round_half_up(score)


def heuristic_pair_quality(source_lang: str, target_lang: str) -> int:
    source = get_language_config(source_lang)
    target = get_language_config(target_lang)
    if source is not None and target is not None and source.family == target.family:
        return 85
    if PIVOT_LANGUAGE in (source_lang, target_lang):
        return 82
    if source_lang in CJK_LANGUAGES and target_lang in CJK_LANGUAGES:
        return 78
    if source_lang in EUROPEAN_LANGUAGES and target_lang in EUROPEAN_LANGUAGES:
        return 80
    return 75


class QualityScorer:
    def __init__(
        self,
        settings: Settings,
        logger: logging.Logger,
        learning_store: LearningStore,
    ) -> None:
        self._settings = settings
        self._logger = logger
        self._learning = learning_store

    def provider_reliability(self, provider: str) -> int:
        base = PROVIDER_RELIABILITY.get(provider, UNKNOWN_PROVIDER_RELIABILITY)
        performance = self._learning.provider_performance(provider)
        if performance and performance.get("sample_count", 0) > 0:
            return round_half_up((base + float(performance["average_quality"])) / 2)
        return base

    def language_pair_quality(self, source_lang: str, target_lang: str) -> int:
        learned = self._learning.language_pair(pair_key(source_lang, target_lang))
        if learned and learned.get("base_quality") is not None:
            return int(learned["base_quality"])
        static = TRANSLATION_QUALITY_MATRIX.get(source_lang, {}).get(target_lang)
        if static is not None:
            return round_half_up(static * 100)
        return heuristic_pair_quality(source_lang, target_lang)

    def breakdown(
        self,
        result: TranslationResult,
        source_text: str,
        source_lang: str,
        target_lang: str,
    ) -> QualityBreakdown:
        return QualityBreakdown(
            provider_reliability=self.provider_reliability(result.translated_by),
            language_pair_quality=self.language_pair_quality(source_lang, target_lang),
            context_complexity=context_complexity(source_text, result.translated_text),
            length_appropriateness=length_appropriateness(
                source_text, result.translated_text, source_lang, target_lang
            ),
        )

    def score(
        self,
        result: TranslationResult,
        source_text: str,
        source_lang: str,
        target_lang: str,
    ) -> QualityScore:
        threshold = self._learning.get_settings().min_confidence_threshold
        return build_quality_score(
            self.breakdown(result, source_text, source_lang, target_lang),
            result.confidence,
            threshold,
        )

    def score_or_default(
        self,
        result: TranslationResult,
        source_text: str,
        source_lang: str,
        target_lang: str,
    ) -> QualityScore:
        try:
            return self.score(result, source_text, source_lang, target_lang)
        except Exception as exc:
            self._logger.warning(
                "quality_scoring_failed",
                extra={
                    "event": "quality_scoring_failed",
                    "service_name": self._settings.service_name,
                    "service_version": self._settings.service_version,
                    "provider": result.translated_by,
                    "reason": str(exc),
                },
            )
            return default_quality_score()

    def enhance(
        self,
        result: TranslationResult,
        source_text: str,
        source_lang: str,
        target_lang: str,
    ) -> EnhancedTranslationResult:
        quality = self.score_or_default(result, source_text, source_lang, target_lang)
        feedback = self._learning.get_feedback(
            generate_translation_id(source_text, source_lang, target_lang)
        )
        return EnhancedTranslationResult(
            result=result,
            quality_score=quality,
            validation_status=validation_status(quality, feedback),
            alternatives=feedback.alternatives if feedback else (),
            user_corrections=feedback.user_validations if feedback else (),
            quality_flags=tuple(quality_flags(quality, result)),
        )


def validation_status(quality: QualityScore, feedback: TranslationFeedback | None) -> str:
    if feedback is not None and feedback.user_validations:
        last = feedback.user_validations[-1]
        return STATUS_REJECTED if last.is_correction else STATUS_USER_VALIDATED
    if quality.confidence == CONFIDENCE_HIGH and quality.overall >= 85:
        return STATUS_AUTO_VALIDATED
    return STATUS_UNVALIDATED


def quality_flags(quality: QualityScore, result: TranslationResult) -> list[str]:
    flags: list[str] = []
    if quality.grade in (GRADE_POOR, GRADE_NEEDS_REVIEW):
        flags.append("low_quality")
    if quality.confidence == CONFIDENCE_LOW:
        flags.append("low_confidence")
    if quality.needs_validation:
        flags.append("needs_validation")
    if result.confidence < FLAG_PROVIDER_CONFIDENCE:
        flags.append("provider_low_confidence")
    return flags
