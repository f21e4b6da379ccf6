from __future__ import annotations

import json
import logging
import unittest

import httpx

from backend.app.settings import Settings
from backend.app.translation.providers.base import TranslationProviderError
from backend.app.translation.providers.cascade import CASCADE_CONFIDENCE, ZeroCostCascade
from backend.app.translation.providers.dictionary import LocalDictionary
from backend.app.translation.providers.free_endpoints import FreeEndpoint
from backend.app.translation.providers.google import GoogleTranslationProvider
from backend.app.translation.providers.microsoft import MicrosoftTranslationProvider
from backend.app.translation.providers.papago import PapagoTranslationProvider
from backend.app.translation.types import TranslationRequest


def _settings(**overrides: object) -> Settings:
    values: dict[str, object] = dict(
        service_name="lexibridge-backend",
        service_version="0.1.0-test",
        environment="test",
        log_level="INFO",
        host="127.0.0.1",
        port=8000,
        free_apis_enabled=False,
    )
    values.update(overrides)
    return Settings(**values)


def _logger() -> logging.Logger:
    return logging.getLogger("lexibridge.backend.test.providers")


class _FakeEndpoint(FreeEndpoint):
    def __init__(self, name: str, answer: str | None = None, error: Exception | None = None) -> None:
        super().__init__(timeout_seconds=1.0)
        self._name = name
        self._answer = answer
        self._error = error
        self.calls = 0

    @property
    def name(self) -> str:
        return self._name

    async def fetch(self, client: httpx.AsyncClient, request: TranslationRequest) -> str | None:
        self.calls += 1
        if self._error is not None:
            raise self._error
        return self._answer


class HttpProviderTest(unittest.IsolatedAsyncioTestCase):
    async def test_microsoft_parses_translation_and_confidence(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200, json=[{"translations": [{"text": "고양이", "to": "ko", "confidence": 0.97}]}]
            )

        provider = MicrosoftTranslationProvider(
            _settings(microsoft_translator_key="ms-key"), transport=httpx.MockTransport(handler)
        )
        result = await provider.translate(TranslationRequest("cat", "en", "ko"))

        self.assertIsNotNone(result)
        self.assertEqual(result.translated_text, "고양이")
        self.assertEqual(result.translated_by, "microsoft")
        self.assertAlmostEqual(result.confidence, 0.97)
        self.assertEqual(seen[0].headers["Ocp-Apim-Subscription-Key"], "ms-key")
        self.assertEqual(seen[0].url.params["to"], "ko")
        self.assertEqual(json.loads(seen[0].content), [{"Text": "cat"}])

    async def test_google_maps_chinese_code_and_uses_default_confidence(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"data": {"translations": [{"translatedText": "猫"}]}})

        provider = GoogleTranslationProvider(
            _settings(google_translate_api_key="g-key"), transport=httpx.MockTransport(handler)
        )
        result = await provider.translate(TranslationRequest("cat", "en", "zh"))

        self.assertEqual(seen[0].url.params["target"], "zh-CN")
        self.assertEqual(result.translated_text, "猫")
        self.assertAlmostEqual(result.confidence, 0.95)

    async def test_papago_sends_client_headers(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200, json={"message": {"result": {"translatedText": "dog"}}}
            )

        provider = PapagoTranslationProvider(
            _settings(papago_client_id="id", papago_client_secret="secret"),
            transport=httpx.MockTransport(handler),
        )
        result = await provider.translate(TranslationRequest("개", "ko", "en"))

        self.assertEqual(result.translated_text, "dog")
        self.assertEqual(seen[0].headers["X-Naver-Client-Id"], "id")
        self.assertEqual(seen[0].headers["X-Naver-Client-Secret"], "secret")

    async def test_unconfigured_provider_returns_none_without_network(self) -> None:
        calls: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(500)

        provider = MicrosoftTranslationProvider(_settings(), transport=httpx.MockTransport(handler))
        self.assertFalse(provider.configured)
        self.assertIsNone(await provider.translate(TranslationRequest("cat", "en", "ko")))
        self.assertEqual(calls, [])

    async def test_echo_is_treated_as_no_result(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"data": {"translations": [{"translatedText": "Cat "}]}})

        provider = GoogleTranslationProvider(
            _settings(google_translate_api_key="g-key"), transport=httpx.MockTransport(handler)
        )
        self.assertIsNone(await provider.translate(TranslationRequest("cat", "en", "fr")))

    async def test_non_200_raises_provider_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(403, json={"error": "forbidden"})

        provider = GoogleTranslationProvider(
            _settings(google_translate_api_key="g-key"), transport=httpx.MockTransport(handler)
        )
        with self.assertRaisesRegex(TranslationProviderError, "google_status_error:403"):
            await provider.translate(TranslationRequest("cat", "en", "fr"))

    async def test_malformed_payload_raises_provider_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"unexpected": True})

        provider = MicrosoftTranslationProvider(
            _settings(microsoft_translator_key="ms-key"), transport=httpx.MockTransport(handler)
        )
        with self.assertRaisesRegex(TranslationProviderError, "microsoft_malformed_response"):
            await provider.translate(TranslationRequest("cat", "en", "fr"))


    async def test_wrongly_shaped_entry_raises_provider_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=[{"translations": ["chat"]}])

        provider = MicrosoftTranslationProvider(
            _settings(microsoft_translator_key="ms-key"), transport=httpx.MockTransport(handler)
        )
        with self.assertRaisesRegex(TranslationProviderError, "microsoft_malformed_response"):
            await provider.translate(TranslationRequest("cat", "en", "fr"))

class LocalDictionaryTest(unittest.TestCase):
    def test_lookup_is_case_and_whitespace_insensitive(self) -> None:
        dictionary = LocalDictionary()
        self.assertEqual(dictionary.lookup("  Tree ", "ko"), "나무")
        self.assertEqual(dictionary.lookup("나무", "ja"), "木")
        self.assertIsNone(dictionary.lookup("하늘", "en"))

    def test_extra_entries_extend_the_table(self) -> None:
        dictionary = LocalDictionary({"하늘": {"en": "sky"}})
        self.assertEqual(dictionary.lookup("하늘", "en"), "sky")


class ZeroCostCascadeTest(unittest.IsolatedAsyncioTestCase):
    async def test_dictionary_hit_answers_with_fixed_confidence(self) -> None:
        cascade = ZeroCostCascade(_settings(), _logger())
        result = await cascade.translate(TranslationRequest("나무", "ko", "en"))

        self.assertIsNotNone(result)
        self.assertEqual(result.translated_text, "tree")
        self.assertEqual(result.translated_by, "cascade")
        self.assertEqual(result.confidence, CASCADE_CONFIDENCE)

    async def test_capability_without_free_endpoints(self) -> None:
        cascade = ZeroCostCascade(_settings(), _logger())
        self.assertTrue(cascade.is_supported())
        self.assertEqual(cascade.supported_methods(), ["dictionary"])
        self.assertFalse(cascade.metered)
        self.assertIn("ko", cascade.supported_languages())

    async def test_echo_is_skipped_and_next_endpoint_wins(self) -> None:
        echo = _FakeEndpoint("echoing", answer="하늘")
        broken = _FakeEndpoint("broken", error=ValueError("bad json"))
        good = _FakeEndpoint("good", answer="sky")
        unused = _FakeEndpoint("unused", answer="heaven")
        cascade = ZeroCostCascade(_settings(), _logger(), endpoints=[echo, broken, good, unused])

        result = await cascade.translate(TranslationRequest("하늘", "ko", "en"))

        self.assertEqual(result.translated_text, "sky")
        self.assertEqual((echo.calls, broken.calls, good.calls, unused.calls), (1, 1, 1, 0))
        self.assertEqual(
            cascade.supported_methods(), ["dictionary", "echoing", "broken", "good", "unused"]
        )

    async def test_exhausted_cascade_returns_none(self) -> None:
        cascade = ZeroCostCascade(
            _settings(), _logger(), endpoints=[_FakeEndpoint("empty", answer="  ")]
        )
        self.assertIsNone(await cascade.translate(TranslationRequest("하늘", "ko", "en")))

    async def test_free_endpoints_use_mymemory_first(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200, json={"responseStatus": 200, "responseData": {"translatedText": "sky"}}
            )

        cascade = ZeroCostCascade(
            _settings(free_apis_enabled=True), _logger(), transport=httpx.MockTransport(handler)
        )
        result = await cascade.translate(TranslationRequest("하늘", "ko", "en"))

        self.assertEqual(result.translated_text, "sky")
        self.assertEqual(len(seen), 1)
        self.assertEqual(seen[0].url.host, "api.mymemory.translated.net")
        self.assertEqual(seen[0].url.params["langpair"], "ko|en")
        self.assertEqual(
            cascade.supported_methods(),
            ["dictionary", "mymemory", "libretranslate", "linguee", "mymemory_autodetect"],
        )

    async def test_failing_free_endpoints_fall_through_to_none(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503)

        cascade = ZeroCostCascade(
            _settings(free_apis_enabled=True), _logger(), transport=httpx.MockTransport(handler)
        )
        self.assertIsNone(await cascade.translate(TranslationRequest("하늘", "ko", "en")))

    async def test_linguee_accepts_bare_list_payload(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "linguee-api.fly.dev":
                return httpx.Response(200, json=[{"text": "sky", "pos": "noun"}])
            return httpx.Response(500)

        cascade = ZeroCostCascade(
            _settings(free_apis_enabled=True), _logger(), transport=httpx.MockTransport(handler)
        )
        result = await cascade.translate(TranslationRequest("하늘", "ko", "en"))
        self.assertEqual(result.translated_text, "sky")


    async def test_list_payload_from_free_endpoints_is_skipped(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=["unexpected"])

        cascade = ZeroCostCascade(
            _settings(free_apis_enabled=True), _logger(), transport=httpx.MockTransport(handler)
        )
        with self.assertLogs("lexibridge.backend.test.providers", level="WARNING") as logs:
            result = await cascade.translate(TranslationRequest("forest", "en", "ko"))

        self.assertIsNone(result)
        self.assertTrue(
            any("mymemory_malformed_response" in str(record.reason) for record in logs.records)
        )

    async def test_loanword_defers_to_free_endpoints(self) -> None:
        good = _FakeEndpoint("good", answer="topadora")
        cascade = ZeroCostCascade(_settings(), _logger(), endpoints=[good])

        result = await cascade.translate(TranslationRequest("bulldozer", "en", "es"))

        self.assertEqual(result.translated_text, "topadora")
        self.assertEqual(good.calls, 1)

    async def test_loanword_is_used_when_no_endpoint_answers(self) -> None:
        cascade = ZeroCostCascade(
            _settings(), _logger(), endpoints=[_FakeEndpoint("empty", answer=None)]
        )
        result = await cascade.translate(TranslationRequest("bulldozer", "en", "es"))
        self.assertEqual(result.translated_text, "bulldozer")

        offline = ZeroCostCascade(_settings(), _logger())
        result = await offline.translate(TranslationRequest("bulldozer", "en", "es"))
        self.assertEqual(result.translated_text, "bulldozer")

if __name__ == "__main__":
    unittest.main()
