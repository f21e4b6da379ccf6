from __future__ import annotations

import unittest

from backend.app.quality.validator import TranslationValidator, validate_translation


class ValidateTranslationTest(unittest.TestCase):
    def test_clean_translation_is_valid(self) -> None:
        result = validate_translation("고양이", "Cat", "ko", "en")
        self.assertTrue(result.is_valid)
        self.assertAlmostEqual(result.confidence, 0.8)
        self.assertEqual(result.warnings, ())

    def test_empty_translation(self) -> None:
        result = validate_translation("tree", "  ", "en", "ko")
        self.assertFalse(result.is_valid)
        self.assertEqual(result.confidence, 0.0)
        self.assertEqual(result.warnings, ("translation is empty",))

    def test_identical_translation_is_flagged(self) -> None:
        result = validate_translation("hello", "Hello", "en", "fr")
        self.assertFalse(result.is_valid)
        self.assertAlmostEqual(result.confidence, 0.4)
        self.assertTrue(any("identical" in warning for warning in result.warnings))

    def test_korean_to_english_without_latin_letters(self) -> None:
        result = validate_translation("사과", "林檎", "ko", "en")
        self.assertFalse(result.is_valid)
        self.assertAlmostEqual(result.confidence, 0.5)
        self.assertIn("English translation contains no Latin letters", result.warnings)

    def test_english_to_korean_without_hangul(self) -> None:
        result = validate_translation("apple", "appel", "en", "ko")
        self.assertIn("Korean translation contains no Hangul", result.warnings)

    def test_length_ratio_checks(self) -> None:
        short = validate_translation("a fairly long english sentence", "ok", "en", "fr")
        self.assertIn("translation is suspiciously short", short.warnings)
        self.assertAlmostEqual(short.confidence, 0.6)

        long = validate_translation("hi", "a very long greeting", "en", "fr")
        self.assertIn("translation is suspiciously long", long.warnings)
        self.assertAlmostEqual(long.confidence, 0.7)

    def test_number_mismatch_only_suggests(self) -> None:
        result = validate_translation("3 cats", "chats", "en", "fr")
        self.assertEqual(result.warnings, ())
        self.assertTrue(result.is_valid)
        self.assertIn("check that numbers from the original are kept", result.suggestions)

    def test_language_specific_suggestions(self) -> None:
        formal = validate_translation("we eat", "먹습니다", "en", "ko")
        self.assertIn("prefer the plain register for learner vocabulary", formal.suggestions)

        lower = validate_translation("나무", "tree", "ko", "en")
        self.assertIn("check capitalization of the English translation", lower.suggestions)

        kanji_only = validate_translation("cat", "猫", "en", "ja")
        self.assertIn("Japanese translation contains no hiragana or katakana", kanji_only.suggestions)

        kana = validate_translation("cat", "ねこ", "en", "ja")
        self.assertEqual(kana.suggestions, ())


class TranslationValidatorTest(unittest.TestCase):
    def test_registry_tracks_approvals_and_review_queue(self) -> None:
        validator = TranslationValidator()
        validator.validate("고양이", "Cat", "ko", "en")
        validator.validate("hello", "hello", "en", "fr")

        self.assertEqual([item.original_text for item in validator.needs_review()], ["hello"])
        self.assertTrue(validator.approve("hello", "en", "fr", corrected_text="bonjour"))
        self.assertFalse(validator.approve("missing", "en", "fr"))
        self.assertEqual(validator.get("hello", "en", "fr").corrected_text, "bonjour")
        self.assertEqual(validator.needs_review(), [])

        stats = validator.stats()
        self.assertEqual(stats["total"], 2)
        self.assertEqual(stats["approved"], 1)
        self.assertEqual(stats["with_warnings"], 1)
        self.assertEqual(stats["approval_rate"], 50.0)
        self.assertEqual(stats["average_confidence"], 60.0)

    def test_empty_registry_stats(self) -> None:
        stats = TranslationValidator().stats()
        self.assertEqual(stats["total"], 0)
        self.assertEqual(stats["approval_rate"], 0.0)


if __name__ == "__main__":
    unittest.main()
