from __future__ import annotations

from typing import Mapping

_WORDS: tuple[dict[str, str], ...] = (
    {"ko": "고양이", "en": "cat", "ja": "猫", "zh": "猫", "es": "gato", "fr": "chat",
     "de": "Katze", "ar": "قطة", "hi": "बिल्ली", "pt": "gato"},
    {"ko": "개", "en": "dog", "ja": "犬", "zh": "狗", "es": "perro", "fr": "chien",
     "de": "Hund", "ar": "كلب", "hi": "कुत्ता", "pt": "cão"},
    {"ko": "사과", "en": "apple", "ja": "りんご", "zh": "苹果", "es": "manzana",
     "fr": "pomme", "de": "Apfel", "ar": "تفاحة", "hi": "सेब", "pt": "maçã"},
    {"ko": "안녕하세요", "en": "hello", "ja": "こんにちは", "zh": "你好", "es": "hola",
     "fr": "bonjour", "de": "hallo", "ar": "مرحبا", "hi": "नमस्ते", "pt": "olá"},
    {"ko": "불도저", "en": "bulldozer", "ja": "ブルドーザー", "zh": "推土机",
     "es": "bulldozer", "fr": "bulldozer", "de": "Bulldozer", "ar": "جرافة",
     "hi": "बुलडोज़र", "pt": "bulldozer"},
    {"ko": "자동차", "en": "car", "ja": "車", "zh": "汽车", "es": "coche", "fr": "voiture",
     "de": "Auto", "ar": "سيارة", "hi": "कार", "pt": "carro"},
    {"ko": "나무", "en": "tree", "ja": "木", "zh": "树", "es": "árbol", "fr": "arbre",
     "de": "Baum", "ar": "شجرة", "hi": "पेड़", "pt": "árvore"},
    {"ko": "꽃", "en": "flower", "ja": "花", "zh": "花", "es": "flor", "fr": "fleur",
     "de": "Blume", "ar": "زهرة", "hi": "फूल", "pt": "flor"},
    {"ko": "물", "en": "water", "ja": "水", "zh": "水", "es": "agua", "fr": "eau",
     "de": "Wasser", "ar": "ماء", "hi": "पानी", "pt": "água"},
    {"ko": "불", "en": "fire", "ja": "火", "zh": "火", "es": "fuego", "fr": "feu",
     "de": "Feuer", "ar": "نار", "hi": "आग", "pt": "fogo"},
    {"ko": "집", "en": "house", "ja": "家", "zh": "房子", "es": "casa", "fr": "maison",
     "de": "Haus", "ar": "بيت", "hi": "घर", "pt": "casa"},
    {"ko": "책", "en": "book", "ja": "本", "zh": "书", "es": "libro", "fr": "livre",
     "de": "Buch", "ar": "كتاب", "hi": "किताब", "pt": "livro"},
)

# Only Korean and English spellings are lookup keys.
_KEY_LANGUAGES = ("ko", "en")


def normalize_key(text: str) -> str:
    return text.strip().lower()


class LocalDictionary:
    """Offline word table keyed by normalized Korean/English spelling."""

    def __init__(self, entries: Mapping[str, Mapping[str, str]] | None = None) -> None:
        self._entries: dict[str, dict[str, str]] = {}
        for word in _WORDS:
            for language in _KEY_LANGUAGES:
                self._entries[normalize_key(word[language])] = dict(word)
        for key, translations in (entries or {}).items():
            self.add_entry(key, translations)

    def __len__(self) -> int:
        return len(self._entries)

    def add_entry(self, key: str, translations: Mapping[str, str]) -> None:
        self._entries[normalize_key(key)] = dict(translations)

    def lookup(self, text: str, to_lang: str) -> str | None:
        entry = self._entries.get(normalize_key(text))
        if entry is None:
            return None
        return entry.get(to_lang)

    def languages_for(self, text: str) -> list[str]:
        entry = self._entries.get(normalize_key(text))
        return sorted(entry) if entry else []
