from __future__ import annotations

import asyncio
import logging
from time import monotonic
from typing import Awaitable, Callable

from backend.app.pipeline.collaborators import ImageSearch, VoiceRegistry
from backend.app.pipeline.types import (
    PHASE_CANCELLED,
    PHASE_COMPLETED,
    PHASE_ERROR,
    PHASE_IMAGE,
    PHASE_TRANSLATION,
    PHASE_TTS,
    PHASE_WEIGHTS,
    STEP_COMPLETED,
    STEP_FAILED,
    STEP_IN_PROGRESS,
    LanguageTranslation,
    ProcessingResult,
    ProcessingStatus,
    WordSubmission,
)
from backend.app.quality.scorer import QualityScorer
from backend.app.quality.validator import TranslationValidator
from backend.app.settings import Settings
from backend.app.translation.languages import target_languages_excluding
from backend.app.translation.orchestrator import AllProvidersFailed, TranslationOrchestrator
from backend.app.translation.types import TranslationRequest, TranslationResult

ProgressHandler = Callable[[dict[str, object]], Awaitable[None]]


class PipelineBusyError(Exception):
    """Raised when a word is submitted while another run is in flight."""


class MultiLangPipeline:
    """Image lookup, fan-out translation and voice checks for one word."""

    def __init__(
        self,
        settings: Settings,
        logger: logging.Logger,
        orchestrator: TranslationOrchestrator,
        scorer: QualityScorer,
        image_search: ImageSearch,
        voices: VoiceRegistry,
        validator: TranslationValidator | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._settings = settings
        self._logger = logger
        self._orchestrator = orchestrator
        self._scorer = scorer
        self._image_search = image_search
        self._voices = voices
        self._validator = validator if validator is not None else TranslationValidator()
        self._sleep = sleep
        self._status = ProcessingStatus()
        self._processing = False
        self._cancel_requested = False
        self._progress_handlers: list[ProgressHandler] = []

    @property
    def is_processing(self) -> bool:
        return self._processing

    @property
    def validator(self) -> TranslationValidator:
        return self._validator

    def register_progress_handler(self, handler: ProgressHandler) -> None:
        self._progress_handlers.append(handler)

    def _log_extra(self, event: str, **fields: object) -> dict[str, object]:
        return {
            "event": event,
            "service_name": self._settings.service_name,
            "service_version": self._settings.service_version,
            **fields,
        }

    def snapshot(self) -> dict[str, object]:
        payload = self._status.to_dict()
        payload["processing"] = self._processing
        payload["cancel_requested"] = self._cancel_requested
        return payload

    def reset_status(self) -> None:
        self._status = ProcessingStatus()

    def update_overall_progress(self) -> float:
        status = self._status
        overall = (
            status.image.progress * PHASE_WEIGHTS[PHASE_IMAGE]
            + status.translation.progress * PHASE_WEIGHTS[PHASE_TRANSLATION]
            + status.tts.progress * PHASE_WEIGHTS[PHASE_TTS]
        ) / 100
        status.overall_progress = min(100.0, overall)
        return status.overall_progress

    async def _emit_progress(self) -> None:
        self.update_overall_progress()
        if not self._progress_handlers:
            return
        payload = self.snapshot()
        for handler in self._progress_handlers:
            try:
                await handler(payload)
            except Exception as exc:  # pragma: no cover
                self._logger.error(
                    "pipeline_progress_handler_error",
                    extra=self._log_extra("pipeline_progress_handler_error", reason=str(exc)),
                )

    def cancel_processing(self) -> bool:
        if not self._processing:
            return False
        self._cancel_requested = True
        self._logger.info(
            "pipeline_cancel_requested",
            extra=self._log_extra(
                "pipeline_cancel_requested", current_phase=self._status.current_phase
            ),
        )
        return True

    async def process_word(self, submission: WordSubmission) -> ProcessingResult:
        if self._processing:
            raise PipelineBusyError("pipeline_busy")

        self.reset_status()
        self._processing = True
        self._cancel_requested = False
        started = monotonic()
        targets = target_languages_excluding(submission.primary_lang, submission.secondary_lang)

        self._logger.info(
            "pipeline_started",
            extra=self._log_extra(
                "pipeline_started",
                primary_lang=submission.primary_lang,
                secondary_lang=submission.secondary_lang,
                target_count=len(targets),
            ),
        )

        try:
            await self._run_image_phase(submission)
            if not self._cancel_requested:
                await self._run_translation_phase(submission, targets)
            if not self._cancel_requested:
                await self._run_tts_phase()

            if self._cancel_requested:
                self._status.current_phase = PHASE_CANCELLED
            else:
                self._status.current_phase = PHASE_COMPLETED
                self._status.overall_progress = 100.0
        except Exception as exc:
            self._status.current_phase = PHASE_ERROR
            self._status.errors.append(str(exc) or exc.__class__.__name__)
            self._logger.error(
                "pipeline_failed",
                extra=self._log_extra("pipeline_failed", reason=str(exc)),
            )
            raise
        finally:
            self._processing = False

        result = self._build_result(targets, started)
        self._logger.info(
            "pipeline_finished",
            extra=self._log_extra(
                "pipeline_finished",
                cancelled=result.cancelled,
                success_rate=result.success_rate,
                failed_languages=list(result.failed_languages),
                processing_time_ms=result.processing_time_ms,
            ),
        )
        await self._emit_progress()
        return result

    def _build_result(self, targets: list[str], started: float) -> ProcessingResult:
        status = self._status
        auto_translated = [code for code in targets if code in status.translations]
        success_rate = (len(auto_translated) / len(targets) * 100) if targets else 100.0
        return ProcessingResult(
            image_url=status.image_url,
            translations=dict(status.translations),
            audio_support=dict(status.audio_support),
            processing_time_ms=round((monotonic() - started) * 1000.0, 3),
            success_rate=success_rate,
            failed_languages=tuple(code for code in targets if code not in status.translations),
            errors=tuple(status.errors),
            cancelled=status.current_phase == PHASE_CANCELLED,
        )

    async def _run_image_phase(self, submission: WordSubmission) -> None:
        status = self._status
        status.current_phase = PHASE_IMAGE
        status.image.status = STEP_IN_PROGRESS
        await self._emit_progress()

        image_url = ""
        try:
            image_url = (
                await self._image_search.fetch_image_url(
                    submission.primary_text, submission.secondary_text
                )
                or ""
            )
            if not image_url:
                status.errors.append("image_not_found")
        except Exception as exc:
            status.errors.append(f"image_search_failed:{exc}")
            self._logger.warning(
                "pipeline_image_failed",
                extra=self._log_extra(
                    "pipeline_image_failed",
                    image_search=self._image_search.name,
                    reason=str(exc),
                ),
            )

        status.image.status = STEP_COMPLETED
        status.image.progress = 100.0
        status.image.image_url = image_url
        status.image_url = image_url
        await self._emit_progress()

    async def _run_translation_phase(self, submission: WordSubmission, targets: list[str]) -> None:
        status = self._status
        status.current_phase = PHASE_TRANSLATION
        status.translation.status = STEP_IN_PROGRESS

        for code, text in (
            (submission.primary_lang, submission.primary_text),
            (submission.secondary_lang, submission.secondary_text),
        ):
            status.translations[code] = LanguageTranslation(
                text=text,
                confidence=1.0,
                source="manual",
                translated_by="user",
                verified=True,
            )

        total = len(targets) + 2
        for index, target in enumerate(targets):
            if self._cancel_requested:
                return
            status.translation.current_language = target

            translation = await self._translate_target(submission, target)
            if translation is None:
                status.translation.failed_languages.append(target)
            else:
                status.translations[target] = translation
                status.translation.completed_languages.append(target)

            status.translation.progress = (index + 3) / total * 100
            await self._emit_progress()

            if index + 1 < len(targets):
                await self._sleep(self._settings.pipeline_language_delay_seconds)

        status.translation.status = STEP_COMPLETED
        status.translation.progress = 100.0
        status.translation.current_language = ""
        await self._emit_progress()

    async def _translate_target(
        self, submission: WordSubmission, target: str
    ) -> LanguageTranslation | None:
        request = TranslationRequest(
            text=submission.secondary_text,
            from_lang=submission.secondary_lang,
            to_lang=target,
        )
        try:
            result = await self._orchestrator.translate_single(request)
            return self._describe_translation(request, result)
        except AllProvidersFailed as exc:
            error = f"translation_failed:{target}"
            reason = str(exc)
        except Exception as exc:
            error = f"translation_error:{target}:{exc.__class__.__name__}"
            reason = str(exc)

        self._status.errors.append(error)
        self._logger.warning(
            "pipeline_language_failed",
            extra=self._log_extra("pipeline_language_failed", to_lang=target, reason=reason),
        )
        return None

    def _describe_translation(
        self, request: TranslationRequest, result: TranslationResult
    ) -> LanguageTranslation:
        target = request.to_lang
        validation = None
        confidence = result.confidence
        if self._settings.pipeline_validation_enabled:
            validation = self._validator.validate(
                request.text, result.translated_text, request.from_lang, target
            )
            confidence = min(result.confidence, validation.confidence)

        return LanguageTranslation(
            text=result.translated_text,
            confidence=confidence,
            source="auto",
            translated_by=result.translated_by,
            verified=validation.is_valid if validation else False,
            validation=validation,
            quality=self._scorer.score_or_default(
                result, request.text, request.from_lang, target
            ),
        )

    async def _run_tts_phase(self) -> None:
        status = self._status
        status.current_phase = PHASE_TTS
        status.tts.status = STEP_IN_PROGRESS
        await self._emit_progress()

        try:
            await self._voices.ensure_loaded()
        except Exception as exc:
            status.tts.status = STEP_FAILED
            status.errors.append(f"voice_catalog_failed:{exc}")
            self._logger.warning(
                "pipeline_voice_check_failed",
                extra=self._log_extra("pipeline_voice_check_failed", reason=str(exc)),
            )
            await self._emit_progress()
            return

        languages = list(status.translations)
        for index, code in enumerate(languages):
            if self._cancel_requested:
                return
            supported = self._voices.supports(code)
            status.audio_support[code] = supported
            if supported:
                status.tts.supported_languages.append(code)
            status.tts.tested_languages.append(code)
            status.tts.progress = (index + 1) / len(languages) * 100
            await self._emit_progress()

        status.tts.status = STEP_COMPLETED
        status.tts.progress = 100.0
        await self._emit_progress()

    async def retranslate_language(
        self, text: str, from_lang: str, to_lang: str
    ) -> LanguageTranslation | None:
        try:
            result = await self._orchestrator.translate_single(
                TranslationRequest(text=text, from_lang=from_lang, to_lang=to_lang)
            )
        except AllProvidersFailed as exc:
            self._logger.warning(
                "pipeline_retranslate_failed",
                extra=self._log_extra(
                    "pipeline_retranslate_failed", to_lang=to_lang, reason=str(exc)
                ),
            )
            return None

        translation = LanguageTranslation(
            text=result.translated_text,
            confidence=result.confidence,
            source="auto",
            translated_by=result.translated_by,
            verified=False,
            quality=self._scorer.score_or_default(result, text, from_lang, to_lang),
        )
        self._status.translations[to_lang] = translation
        if to_lang in self._status.translation.failed_languages:
            self._status.translation.failed_languages.remove(to_lang)
        return translation
