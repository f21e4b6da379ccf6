from __future__ import annotations

from dataclasses import dataclass

PIVOT_LANGUAGE = "en"


@dataclass(frozen=True)
class LanguageConfig:
    code: str
    name: str
    native_name: str
    tts_lang: str
    tts_rate: float
    tts_pitch: float
    voice_keywords: tuple[str, ...]
    family: str
    script: str

    @property
    def tts_prefix(self) -> str:
        return self.tts_lang.split("-")[0]


SUPPORTED_LANGUAGES: dict[str, LanguageConfig] = {
    "ko": LanguageConfig(
        code="ko",
        name="Korean",
        native_name="한국어",
        tts_lang="ko-KR",
        tts_rate=0.7,
        tts_pitch=1.1,
        voice_keywords=("female", "woman", "girl", "korean"),
        family="koreanic",
        script="hangul",
    ),
    "zh": LanguageConfig(
        code="zh",
        name="Chinese",
        native_name="中文",
        tts_lang="zh-CN",
        tts_rate=0.8,
        tts_pitch=1.0,
        voice_keywords=("female", "mandarin", "chinese"),
        family="sino-tibetan",
        script="han",
    ),
    "en": LanguageConfig(
        code="en",
        name="English",
        native_name="English",
        tts_lang="en-US",
        tts_rate=0.8,
        tts_pitch=1.2,
        voice_keywords=("female", "american", "child"),
        family="germanic",
        script="latin",
    ),
    "ja": LanguageConfig(
        code="ja",
        name="Japanese",
        native_name="日本語",
        tts_lang="ja-JP",
        tts_rate=0.7,
        tts_pitch=1.1,
        voice_keywords=("female", "japanese"),
        family="japonic",
        script="mixed",
    ),
    "es": LanguageConfig(
        code="es",
        name="Spanish",
        native_name="Español",
        tts_lang="es-ES",
        tts_rate=0.9,
        tts_pitch=1.0,
        voice_keywords=("female", "spanish", "spain"),
        family="romance",
        script="latin",
    ),
    "fr": LanguageConfig(
        code="fr",
        name="French",
        native_name="Français",
        tts_lang="fr-FR",
        tts_rate=0.8,
        tts_pitch=1.0,
        voice_keywords=("female", "french", "france"),
        family="romance",
        script="latin",
    ),
    "de": LanguageConfig(
        code="de",
        name="German",
        native_name="Deutsch",
        tts_lang="de-DE",
        tts_rate=0.8,
        tts_pitch=0.9,
        voice_keywords=("female", "german", "deutschland"),
        family="germanic",
        script="latin",
    ),
    "ar": LanguageConfig(
        code="ar",
        name="Arabic",
        native_name="العربية",
        tts_lang="ar-SA",
        tts_rate=0.7,
        tts_pitch=1.0,
        voice_keywords=("female", "arabic", "saudi"),
        family="semitic",
        script="arabic",
    ),
    "hi": LanguageConfig(
        code="hi",
        name="Hindi",
        native_name="हिन्दी",
        tts_lang="hi-IN",
        tts_rate=0.8,
        tts_pitch=1.1,
        voice_keywords=("female", "hindi", "indian"),
        family="indo-aryan",
        script="devanagari",
    ),
    "pt": LanguageConfig(
        code="pt",
        name="Portuguese",
        native_name="Português",
        tts_lang="pt-BR",
        tts_rate=0.9,
        tts_pitch=1.0,
        voice_keywords=("female", "portuguese", "brazilian", "brasil"),
        family="romance",
        script="latin",
    ),
}

CJK_LANGUAGES = frozenset({"ko", "zh", "ja"})
EUROPEAN_LANGUAGES = frozenset({"en", "es", "fr", "de", "pt"})

# Expected pair quality on a 0-1 scale; remaining sources pivot through English.
TRANSLATION_QUALITY_MATRIX: dict[str, dict[str, float]] = {
    "en": {
        "ko": 0.85, "zh": 0.80, "ja": 0.82, "es": 0.90, "fr": 0.88,
        "de": 0.87, "ar": 0.70, "hi": 0.65, "pt": 0.86,
    },
    "ko": {
        "en": 0.85, "zh": 0.75, "ja": 0.80, "es": 0.78, "fr": 0.76,
        "de": 0.74, "ar": 0.60, "hi": 0.58, "pt": 0.72,
    },
    "zh": {
        "en": 0.80, "ko": 0.75, "ja": 0.85, "es": 0.73, "fr": 0.71,
        "de": 0.69, "ar": 0.62, "hi": 0.60, "pt": 0.70,
    },
}


def is_supported_language(code: str) -> bool:
    return code in SUPPORTED_LANGUAGES


def get_language_config(code: str) -> LanguageConfig | None:
    return SUPPORTED_LANGUAGES.get(code)


def pair_key(source_lang: str, target_lang: str) -> str:
    return f"{source_lang}-{target_lang}"


def target_languages_excluding(*excluded: str) -> list[str]:
    return [code for code in SUPPORTED_LANGUAGES if code not in excluded]
