from __future__ import annotations

import asyncio
import logging
import unittest

import httpx

from backend.app.pipeline.collaborators import (
    ImageSearch,
    ImageSearchError,
    PexelsImageSearch,
    StaticVoiceCatalog,
    Voice,
    VoiceCatalog,
    VoiceRegistry,
    build_voice_catalog,
    parse_voice_catalog,
)
from backend.app.pipeline.processor import MultiLangPipeline, PipelineBusyError
from backend.app.pipeline.types import WordSubmission
from backend.app.quality.learning import LearningStore
from backend.app.quality.scorer import QualityScorer
from backend.app.settings import Settings
from backend.app.storage.store import InMemoryStateStore, StateStoreCorruptedError
from backend.app.translation.orchestrator import TranslationOrchestrator
from backend.app.translation.providers.base import TranslationProvider
from backend.app.translation.quota import QuotaLedger
from backend.app.translation.types import TranslationRequest, TranslationResult

TARGETS = ["zh", "ja", "es", "fr", "de", "ar", "hi", "pt"]


def _settings(**overrides: object) -> Settings:
    values: dict[str, object] = dict(
        service_name="lexibridge-backend",
        service_version="0.1.0-test",
        environment="test",
        log_level="INFO",
        host="127.0.0.1",
        port=8000,
        free_apis_enabled=False,
        batch_delay_seconds=0.0,
        pipeline_language_delay_seconds=0.2,
    )
    values.update(overrides)
    return Settings(**values)


def _logger() -> logging.Logger:
    return logging.getLogger("lexibridge.backend.test.pipeline")


class _SuffixProvider(TranslationProvider):
    def __init__(self, failing_targets: tuple[str, ...] = ()) -> None:
        self._failing_targets = failing_targets

    @property
    def name(self) -> str:
        return "cascade"

    @property
    def metered(self) -> bool:
        return False

    async def translate(self, request: TranslationRequest) -> TranslationResult | None:
        if request.to_lang in self._failing_targets:
            return None
        return TranslationResult.from_request(
            request,
            translated_text=f"{request.text}-{request.to_lang}",
            confidence=0.9,
            translated_by=self.name,
        )


class _StaticImageSearch(ImageSearch):
    def __init__(
        self,
        url: str | None = "https://images.example/tree.jpg",
        error: Exception | None = None,
    ) -> None:
        self._url = url
        self._error = error
        self.release = asyncio.Event()
        self.release.set()

    @property
    def name(self) -> str:
        return "static"

    async def fetch_image_url(self, primary_text: str, secondary_text: str) -> str | None:
        await self.release.wait()
        if self._error is not None:
            raise self._error
        return self._url


class _SlowVoiceCatalog(VoiceCatalog):
    async def list_voices(self) -> list[Voice]:
        await asyncio.sleep(1.0)
        return [Voice("Yuna", "ko-KR")]


class _BrokenVoiceCatalog(VoiceCatalog):
    async def list_voices(self) -> list[Voice]:
        raise OSError("speech service unavailable")


class _FailingVoiceRegistry(VoiceRegistry):
    def __init__(self) -> None:
        super().__init__(_BrokenVoiceCatalog(), _settings(), _logger())

    async def ensure_loaded(self, timeout_seconds: float | None = None) -> list[Voice]:
        raise OSError("speech service unavailable")


class _CorruptedQuotaOrchestrator(TranslationOrchestrator):
    async def translate_single(self, request: TranslationRequest) -> TranslationResult:
        if request.to_lang == "ja":
            raise StateStoreCorruptedError("translation_quota is not valid JSON")
        return await super().translate_single(request)


class MultiLangPipelineTest(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.sleeps: list[float] = []

    async def _sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)

    def _pipeline(
        self,
        image_search: ImageSearch | None = None,
        failing_targets: tuple[str, ...] = (),
        catalog: VoiceCatalog | None = None,
        voices: VoiceRegistry | None = None,
        orchestrator_cls: type[TranslationOrchestrator] = TranslationOrchestrator,
        **overrides: object,
    ) -> MultiLangPipeline:
        settings = _settings(**overrides)
        logger = _logger()
        store = InMemoryStateStore()
        orchestrator = orchestrator_cls(
            settings=settings,
            logger=logger,
            quota_ledger=QuotaLedger(settings=settings, store=store, logger=logger),
            providers=[_SuffixProvider(failing_targets)],
            sleep=self._sleep,
        )
        learning = LearningStore(settings=settings, store=store, logger=logger)
        return MultiLangPipeline(
            settings=settings,
            logger=logger,
            orchestrator=orchestrator,
            scorer=QualityScorer(settings=settings, logger=logger, learning_store=learning),
            image_search=image_search or _StaticImageSearch(),
            voices=voices
            or VoiceRegistry(catalog or build_voice_catalog(settings), settings, logger),
            sleep=self._sleep,
        )

    async def test_full_run_translates_every_target_from_the_pivot(self) -> None:
        pipeline = self._pipeline()
        result = await pipeline.process_word(WordSubmission("나무", "tree"))

        self.assertEqual(result.image_url, "https://images.example/tree.jpg")
        self.assertEqual(sorted(result.translations), sorted(["ko", "en"] + TARGETS))
        self.assertEqual(result.translations["ko"].translated_by, "user")
        self.assertEqual(result.translations["ko"].confidence, 1.0)
        self.assertEqual(result.translations["es"].text, "tree-es")
        self.assertAlmostEqual(result.translations["es"].confidence, 0.8)
        self.assertIsNotNone(result.translations["es"].quality)
        self.assertEqual(result.success_rate, 100.0)
        self.assertEqual(result.failed_languages, ())
        self.assertFalse(result.cancelled)
        self.assertTrue(all(result.audio_support.values()))
        self.assertEqual(len(result.audio_support), 10)
        self.assertEqual(self.sleeps, [0.2] * (len(TARGETS) - 1))

        snapshot = pipeline.snapshot()
        self.assertEqual(snapshot["current_phase"], "completed")
        self.assertEqual(snapshot["overall_progress"], 100.0)
        self.assertFalse(snapshot["processing"])

    async def test_image_failure_does_not_stop_the_run(self) -> None:
        pipeline = self._pipeline(image_search=_StaticImageSearch(error=ImageSearchError("boom")))
        result = await pipeline.process_word(WordSubmission("나무", "tree"))

        self.assertEqual(result.image_url, "")
        self.assertIn("image_search_failed:boom", result.errors)
        self.assertEqual(pipeline.snapshot()["phase_progress"]["image"]["progress"], 100.0)
        self.assertEqual(result.success_rate, 100.0)

    async def test_missing_image_is_recorded(self) -> None:
        pipeline = self._pipeline(image_search=_StaticImageSearch(url=None))
        result = await pipeline.process_word(WordSubmission("나무", "tree"))
        self.assertEqual(result.image_url, "")
        self.assertIn("image_not_found", result.errors)

    async def test_failed_language_is_reported_and_run_completes(self) -> None:
        pipeline = self._pipeline(failing_targets=("ja",))
        result = await pipeline.process_word(WordSubmission("나무", "tree"))

        self.assertEqual(result.failed_languages, ("ja",))
        self.assertEqual(result.success_rate, 87.5)
        self.assertIn("translation_failed:ja", result.errors)
        self.assertNotIn("ja", result.audio_support)
        translation = pipeline.snapshot()["phase_progress"]["translation"]
        self.assertEqual(translation["failed_languages"], ["ja"])
        self.assertEqual(translation["progress"], 100.0)

    async def test_validation_can_be_disabled(self) -> None:
        pipeline = self._pipeline(pipeline_validation_enabled=False)
        result = await pipeline.process_word(WordSubmission("나무", "tree"))
        self.assertAlmostEqual(result.translations["es"].confidence, 0.9)
        self.assertIsNone(result.translations["es"].validation)
        self.assertFalse(result.translations["es"].verified)

    async def test_cancel_between_languages_returns_partial_result(self) -> None:
        pipeline = self._pipeline()
        translation_updates: list[dict[str, object]] = []

        async def on_progress(payload: dict[str, object]) -> None:
            if payload["current_phase"] == "translation":
                translation_updates.append(payload)
                if len(translation_updates) == 2:
                    pipeline.cancel_processing()

        pipeline.register_progress_handler(on_progress)
        result = await pipeline.process_word(WordSubmission("나무", "tree"))

        self.assertTrue(result.cancelled)
        self.assertEqual(sorted(result.translations), ["en", "ja", "ko", "zh"])
        self.assertEqual(result.audio_support, {})
        self.assertEqual(result.failed_languages, ("es", "fr", "de", "ar", "hi", "pt"))
        self.assertEqual(pipeline.snapshot()["current_phase"], "cancelled")
        self.assertFalse(pipeline.cancel_processing())

    async def test_second_submission_while_running_is_rejected(self) -> None:
        image_search = _StaticImageSearch()
        image_search.release.clear()
        pipeline = self._pipeline(image_search=image_search)

        running = asyncio.create_task(pipeline.process_word(WordSubmission("나무", "tree")))
        await asyncio.sleep(0)
        self.assertTrue(pipeline.is_processing)

        with self.assertRaises(PipelineBusyError):
            await pipeline.process_word(WordSubmission("개", "dog"))

        self.assertTrue(pipeline.cancel_processing())
        image_search.release.set()
        result = await running

        self.assertTrue(result.cancelled)
        self.assertEqual(result.translations, {})
        self.assertFalse(pipeline.is_processing)

    async def test_broken_voice_catalog_falls_back_to_default_voice(self) -> None:
        pipeline = self._pipeline(catalog=_BrokenVoiceCatalog())
        result = await pipeline.process_word(WordSubmission("나무", "tree"))

        self.assertEqual(len(result.translations), 10)
        self.assertTrue(result.audio_support["en"])
        self.assertFalse(result.audio_support["ko"])
        self.assertEqual(pipeline.snapshot()["current_phase"], "completed")

    async def test_voice_check_failure_is_recorded_and_result_returned(self) -> None:
        pipeline = self._pipeline(voices=_FailingVoiceRegistry())
        result = await pipeline.process_word(WordSubmission("나무", "tree"))

        self.assertEqual(len(result.translations), 10)
        self.assertEqual(result.success_rate, 100.0)
        self.assertEqual(result.audio_support, {})
        self.assertIn("voice_catalog_failed:speech service unavailable", result.errors)
        snapshot = pipeline.snapshot()
        self.assertEqual(snapshot["current_phase"], "completed")
        self.assertEqual(snapshot["phase_progress"]["tts"]["status"], "failed")
        self.assertFalse(pipeline.is_processing)

    async def test_unexpected_error_for_one_language_keeps_the_others(self) -> None:
        pipeline = self._pipeline(orchestrator_cls=_CorruptedQuotaOrchestrator)
        result = await pipeline.process_word(WordSubmission("나무", "tree"))

        self.assertEqual(result.failed_languages, ("ja",))
        self.assertEqual(result.success_rate, 87.5)
        self.assertIn("translation_error:ja:StateStoreCorruptedError", result.errors)
        self.assertEqual(result.translations["fr"].text, "tree-fr")
        self.assertEqual(pipeline.snapshot()["current_phase"], "completed")

    async def test_retranslate_replaces_failed_language(self) -> None:
        pipeline = self._pipeline(failing_targets=("ja",))
        await pipeline.process_word(WordSubmission("나무", "tree"))

        self.assertIsNone(await pipeline.retranslate_language("tree", "en", "ja"))
        translation = await pipeline.retranslate_language("tree", "en", "fr")
        self.assertEqual(translation.text, "tree-fr")


class VoiceRegistryTest(unittest.IsolatedAsyncioTestCase):
    async def test_slow_catalog_falls_back_to_default_voice(self) -> None:
        registry = VoiceRegistry(_SlowVoiceCatalog(), _settings(), _logger())
        voices = await registry.ensure_loaded(timeout_seconds=0.01)

        self.assertEqual(voices, [Voice("default", "en-US", True)])
        self.assertTrue(registry.supports("en"))
        self.assertFalse(registry.supports("ko"))

    async def test_failing_catalog_falls_back_to_default_voice(self) -> None:
        registry = VoiceRegistry(_BrokenVoiceCatalog(), _settings(), _logger())
        with self.assertLogs("lexibridge.backend.test.pipeline", level="WARNING"):
            voices = await registry.ensure_loaded()

        self.assertEqual(voices, [Voice("default", "en-US", True)])
        self.assertTrue(registry.supports("en"))

    async def test_select_voice_prefers_language_keywords(self) -> None:
        registry = VoiceRegistry(
            StaticVoiceCatalog([Voice("Yuna", "ko-KR"), Voice("Korean female", "ko-KR")]),
            _settings(),
            _logger(),
        )
        await registry.ensure_loaded()
        self.assertEqual(registry.select_voice("ko").name, "Korean female")
        self.assertIsNone(registry.select_voice("ja"))

    def test_parse_voice_catalog(self) -> None:
        voices = parse_voice_catalog("ko-KR:Yuna, en-US:Samantha, ,ja-JP")
        self.assertEqual(
            voices,
            [Voice("Yuna", "ko-KR"), Voice("Samantha", "en-US"), Voice("ja-JP", "ja-JP")],
        )


class PexelsImageSearchTest(unittest.IsolatedAsyncioTestCase):
    async def test_falls_back_to_primary_word(self) -> None:
        queries: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            queries.append(request.url.params["query"])
            self.assertEqual(request.headers["Authorization"], "pexels-key")
            if request.url.params["query"] == "tree":
                return httpx.Response(200, json={"photos": []})
            return httpx.Response(200, json={"photos": [{"src": {"small": "https://img/s.jpg"}}]})

        search = PexelsImageSearch(
            _settings(pexels_api_key="pexels-key"), transport=httpx.MockTransport(handler)
        )
        self.assertEqual(await search.fetch_image_url("나무", "tree"), "https://img/s.jpg")
        self.assertEqual(queries, ["tree", "나무"])

    async def test_unconfigured_search_returns_none(self) -> None:
        self.assertIsNone(await PexelsImageSearch(_settings()).fetch_image_url("나무", "tree"))

    async def test_error_status_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(429)

        search = PexelsImageSearch(
            _settings(pexels_api_key="pexels-key"), transport=httpx.MockTransport(handler)
        )
        with self.assertRaisesRegex(ImageSearchError, "pexels_status_error:429"):
            await search.fetch_image_url("나무", "tree")


if __name__ == "__main__":
    unittest.main()
