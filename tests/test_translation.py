"""
Unit tests for translation service.
Tests Google Translator functionality for the supported Indian languages.
"""

from unittest.mock import MagicMock, patch

import pytest

from labsync.services.translation_service import TranslationService


class TestTranslationService:
    """Test cases for translation service."""

    @pytest.fixture
    def translation_service_instance(self):
        return TranslationService()

    @pytest.fixture
    def sample_text(self):
        return "Your cholesterol is slightly high."

    def test_get_google_language_code(self, translation_service_instance):
        assert translation_service_instance._get_google_language_code("hi") == "hi"
        assert translation_service_instance._get_google_language_code("TA") == "ta"
        assert translation_service_instance._get_google_language_code("or") == "or"
        assert translation_service_instance._get_google_language_code("de") == "en"

    def test_supported_languages(self, translation_service_instance):
        languages = translation_service_instance.get_supported_languages()
        assert len(languages) == 13
        assert TranslationService.is_supported("bn")
        assert not TranslationService.is_supported("fr")

    @pytest.mark.asyncio
    async def test_translate_text_google_success(self, translation_service_instance, sample_text):
        with patch("labsync.services.translation_service.GoogleTranslator") as mock_gt_class:
            mock_gt = MagicMock()
            mock_gt.translate.return_value = "आपका कोलेस्ट्रॉल थोड़ा अधिक है।"
            mock_gt_class.return_value = mock_gt

            result = await translation_service_instance.translate_text(
                text=sample_text, source_lang="en", target_lang="hi"
            )

        assert result["translated_text"] == "आपका कोलेस्ट्रॉल थोड़ा अधिक है।"
        assert result["provider"] == "google"
        mock_gt_class.assert_called_once_with(source="en", target="hi")

    @pytest.mark.asyncio
    async def test_translate_same_language_passthrough(
        self, translation_service_instance, sample_text
    ):
        with patch("labsync.services.translation_service.GoogleTranslator") as mock_gt_class:
            result = await translation_service_instance.translate_text(sample_text, "en", "en")

        assert result["translated_text"] == sample_text
        assert result["provider"] == "none"
        mock_gt_class.assert_not_called()

    @pytest.mark.asyncio
    async def test_translate_text_failure_raises(self, translation_service_instance, sample_text):
        with patch("labsync.services.translation_service.GoogleTranslator") as mock_gt_class:
            mock_gt_class.return_value.translate.side_effect = Exception("quota exceeded")

            with pytest.raises(Exception, match="quota exceeded"):
                await translation_service_instance.translate_text(sample_text, "en", "ta")

        assert translation_service_instance.performance_stats["failed_translations"] == 1

    @pytest.mark.asyncio
    async def test_translate_keeps_original_on_failure(
        self, translation_service_instance, sample_text
    ):
        with patch("labsync.services.translation_service.GoogleTranslator") as mock_gt_class:
            mock_gt_class.return_value.translate.side_effect = Exception("network down")

            result = await translation_service_instance.translate(sample_text, "mr")

        assert result == sample_text

    @pytest.mark.asyncio
    async def test_translate_batch(self, translation_service_instance):
        with patch("labsync.services.translation_service.GoogleTranslator") as mock_gt_class:
            mock_gt_class.return_value.translate.side_effect = lambda text: f"[te] {text}"

            result = await translation_service_instance.translate_batch(["one", "two"], "te")

        assert result == ["[te] one", "[te] two"]
