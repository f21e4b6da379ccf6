from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any

from backend.app.quality.types import (
    QualitySettings,
    TranslationFeedback,
    UserValidation,
    utc_now_iso,
)
from backend.app.settings import Settings
from backend.app.storage.store import (
    FEEDBACK_KEY,
    QUALITY_DB_KEY,
    QUALITY_SETTINGS_KEY,
    StateStore,
)
from backend.app.translation.languages import is_supported_language, pair_key

PATTERN_SEPARATOR = "→"
MAX_ALTERNATIVES = 3


def generate_translation_id(source_text: str, source_lang: str, target_lang: str) -> str:
    """Deterministic 32-bit rolling hash of ``"{from}-{to}-{text}"`` as hex.

    Iterates UTF-16 code units so ids stay stable for data written by older clients.
    """
    data = f"{source_lang}-{target_lang}-{source_text}".encode("utf-16-le")
    value = 0
    for index in range(0, len(data), 2):
        code_unit = data[index] | (data[index + 1] << 8)
        value = (value * 31 + code_unit) & 0xFFFFFFFF
    if value >= 0x80000000:
        value -= 0x100000000
    return format(abs(value), "x")


def empty_quality_database() -> dict[str, Any]:
    return {
        "language_pairs": {},
        "provider_performance": {},
        "user_feedback_stats": {
            "total_validations": 0,
            "average_correction_rate": 0.0,
            "most_common_correction_reasons": {},
            "native_speaker_contributions": 0,
        },
        "learned_patterns": {
            "common_errors": {},
            "vocabulary_preferences": {},
        },
    }


def _running_average(previous: float, count: int, sample: float) -> float:
    return ((previous * (count - 1)) + sample) / max(1, count)


class LearningStore:
    """Persisted feedback records and the substitution patterns learned from them."""

    def __init__(self, settings: Settings, store: StateStore, logger: logging.Logger) -> None:
        self._settings = settings
        self._store = store
        self._logger = logger

    def _log_extra(self, event: str, **fields: object) -> dict[str, object]:
        return {
            "event": event,
            "service_name": self._settings.service_name,
            "service_version": self._settings.service_version,
            **fields,
        }

    # settings

    def _default_settings(self) -> QualitySettings:
        return QualitySettings(
            min_confidence_threshold=self._settings.quality_min_confidence_threshold
        )

    def get_settings(self) -> QualitySettings:
        raw = self._store.get(QUALITY_SETTINGS_KEY)
        if raw is None:
            return self._default_settings()
        return QualitySettings.from_dict(raw, base=self._default_settings())

    def save_settings(self, settings: QualitySettings) -> QualitySettings:
        self._store.set(QUALITY_SETTINGS_KEY, settings.to_dict())
        self._logger.info(
            "quality_settings_saved",
            extra=self._log_extra("quality_settings_saved", **settings.to_dict()),
        )
        return settings

    def update_settings(self, changes: dict[str, Any]) -> QualitySettings:
        return self.save_settings(QualitySettings.from_dict(changes, base=self.get_settings()))

    # database readers

    def database(self) -> dict[str, Any]:
        return self._store.get(QUALITY_DB_KEY) or empty_quality_database()

    def provider_performance(self, provider: str) -> dict[str, Any] | None:
        return self.database()["provider_performance"].get(provider)

    def language_pair(self, pair: str) -> dict[str, Any] | None:
        return self.database()["language_pairs"].get(pair)

    def set_language_pair_quality(self, pair: str, base_quality: int) -> None:
        if not 0 <= base_quality <= 100:
            raise ValueError("base_quality must be between 0 and 100")

        def _mutate(database: dict[str, Any]) -> dict[str, Any]:
            entry = database["language_pairs"].setdefault(pair, self._new_pair_entry())
            entry["base_quality"] = int(base_quality)
            entry["last_updated"] = utc_now_iso()
            return database

        self._store.update(QUALITY_DB_KEY, _mutate, empty_quality_database)

    @staticmethod
    def _new_pair_entry() -> dict[str, Any]:
        return {
            "base_quality": None,
            "validation_count": 0,
            "correction_count": 0,
            "average_user_satisfaction": 0.0,
            "last_updated": utc_now_iso(),
        }

    # feedback

    def get_feedback(self, translation_id: str) -> TranslationFeedback | None:
        raw = (self._store.get(FEEDBACK_KEY) or {}).get(translation_id)
        return TranslationFeedback.from_dict(raw) if raw else None

    def add_user_validation(
        self,
        translation_id: str,
        validation: UserValidation,
        *,
        source_text: str = "",
        source_lang: str | None = None,
        target_lang: str | None = None,
        translated_text: str | None = None,
        provider: str = "unknown",
    ) -> TranslationFeedback:
        existing = self.get_feedback(translation_id)
        if existing is None:
            if not (source_lang and target_lang):
                raise ValueError("language pair is required for a new feedback record")
            for code in (source_lang, target_lang):
                if not is_supported_language(code):
                    raise ValueError(f"unsupported language code: {code}")

        now = utc_now_iso()

        def _mutate_feedback(feedbacks: dict[str, Any]) -> dict[str, Any]:
            raw = feedbacks.get(translation_id)
            if raw is None:
                record = TranslationFeedback(
                    translation_id=translation_id,
                    source_language=str(source_lang),
                    target_language=str(target_lang),
                    source_text=source_text,
                    translated_text=translated_text or validation.original_translation,
                    provider=provider,
                    created_at=now,
                    updated_at=now,
                )
            else:
                record = TranslationFeedback.from_dict(raw)
            record = replace(
                record,
                user_validations=record.user_validations + (validation,),
                use_for_learning=record.use_for_learning or validation.is_correction,
                updated_at=now,
            )
            feedbacks[translation_id] = record.to_dict()
            return feedbacks

        feedbacks = self._store.update(FEEDBACK_KEY, _mutate_feedback, dict)
        feedback = TranslationFeedback.from_dict(feedbacks[translation_id])

        learn = validation.is_correction and self.get_settings().allow_learning_data_collection
        self._store.update(
            QUALITY_DB_KEY,
            lambda database: self._apply_validation(database, feedback, validation, learn),
            empty_quality_database,
        )

        self._logger.info(
            "user_validation_recorded",
            extra=self._log_extra(
                "user_validation_recorded",
                translation_id=translation_id,
                language_pair=feedback.language_pair,
                provider=feedback.provider,
                corrected=validation.is_correction,
                learned=learn,
            ),
        )
        return feedback

    def _apply_validation(
        self,
        database: dict[str, Any],
        feedback: TranslationFeedback,
        validation: UserValidation,
        learn: bool,
    ) -> dict[str, Any]:
        pair = feedback.language_pair
        patterns = database["learned_patterns"]

        if learn:
            errors = patterns["common_errors"].setdefault(pair, [])
            pattern = (
                f"{validation.original_translation}{PATTERN_SEPARATOR}"
                f"{validation.corrected_translation}"
            )
            if pattern not in errors:
                errors.append(pattern)

            words = validation.original_translation.split()
            corrected_words = validation.corrected_translation.split()
            if len(words) == len(corrected_words):
                for word, corrected in zip(words, corrected_words):
                    if word != corrected:
                        preferences = patterns["vocabulary_preferences"].setdefault(pair, {})
                        preferences[word] = corrected

        stats = database["user_feedback_stats"]
        stats["total_validations"] += 1
        stats["average_correction_rate"] = _running_average(
            stats["average_correction_rate"],
            stats["total_validations"],
            1.0 if validation.is_correction else 0.0,
        )
        if validation.correction_reason:
            reasons = stats["most_common_correction_reasons"]
            reasons[validation.correction_reason] = reasons.get(validation.correction_reason, 0) + 1
        if validation.is_native_speaker:
            stats["native_speaker_contributions"] += 1

        entry = database["language_pairs"].setdefault(pair, self._new_pair_entry())
        entry["validation_count"] += 1
        if validation.is_correction:
            entry["correction_count"] += 1
        entry["average_user_satisfaction"] = round(
            (entry["validation_count"] - entry["correction_count"])
            / entry["validation_count"]
            * 100,
            2,
        )
        entry["last_updated"] = utc_now_iso()

        performance = database["provider_performance"].setdefault(
            feedback.provider,
            {"average_quality": 0.0, "sample_count": 0, "reliability": 0.0},
        )
        performance["sample_count"] += 1
        performance["average_quality"] = round(
            _running_average(
                performance["average_quality"],
                performance["sample_count"],
                0.0 if validation.is_correction else 100.0,
            ),
            2,
        )
        performance["reliability"] = round(performance["average_quality"] / 100, 4)
        return database

    # alternatives

    def suggest_alternatives(
        self,
        text: str,
        current_translation: str,
        from_lang: str,
        to_lang: str,
    ) -> list[str]:
        pair = pair_key(from_lang, to_lang)
        patterns = self.database()["learned_patterns"]
        alternatives: list[str] = []

        preferences = patterns["vocabulary_preferences"].get(pair) or {}
        substituted = current_translation
        for word, preferred in preferences.items():
            if word and word in substituted:
                substituted = substituted.replace(word, preferred)
        if substituted != current_translation:
            alternatives.append(substituted)

        corrected = current_translation
        for pattern in patterns["common_errors"].get(pair) or []:
            wrong, separator, right = pattern.partition(PATTERN_SEPARATOR)
            wrong = wrong.strip()
            if not separator or not wrong:
                continue
            if wrong in corrected:
                corrected = corrected.replace(wrong, right.strip())
        if corrected != current_translation and corrected not in alternatives:
            alternatives.append(corrected)

        alternatives = alternatives[:MAX_ALTERNATIVES]
        if alternatives:
            self._remember_alternatives(
                generate_translation_id(text, from_lang, to_lang), alternatives
            )
        return alternatives

    def _remember_alternatives(self, translation_id: str, alternatives: list[str]) -> None:
        if self.get_feedback(translation_id) is None:
            return

        def _mutate(feedbacks: dict[str, Any]) -> dict[str, Any]:
            raw = feedbacks.get(translation_id)
            if raw is not None:
                known = list(raw.get("alternatives", []))
                raw["alternatives"] = known + [item for item in alternatives if item not in known]
            return feedbacks

        self._store.update(FEEDBACK_KEY, _mutate, dict)

    # statistics

    def quality_statistics(self) -> dict[str, Any]:
        database = self.database()
        stats = database["user_feedback_stats"]
        return {
            "database": database,
            "summary": {
                "total_validations": stats["total_validations"],
                "correction_rate": round(stats["average_correction_rate"], 4),
                "native_contributions": stats["native_speaker_contributions"],
                "language_pair_count": len(database["language_pairs"]),
                "learned_patterns_count": len(database["learned_patterns"]["common_errors"]),
            },
        }
