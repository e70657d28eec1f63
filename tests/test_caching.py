"""
Test caching functionality across services.
"""

import time
from unittest.mock import MagicMock, patch

import pytest

from labsync.services.llm_service import LLMService
from labsync.services.translation_service import TranslationService
from labsync.utils.cache import CacheManager, cached, clear_cache, get_cache_stats


class TestCacheManager:
    """Test cache manager functionality."""

    def test_cache_basic_operations(self):
        cache = CacheManager(enabled=True)

        cache.set("test_key", "test_value", ttl=60)
        assert cache.get("test_key") == "test_value"
        assert cache.get("non_existent") is None

        cache.delete("test_key")
        assert cache.get("test_key") is None

    def test_cache_ttl_expiration(self):
        cache = CacheManager(enabled=True)

        cache.set("expire_key", "expire_value", ttl=0.1)
        assert cache.get("expire_key") == "expire_value"

        time.sleep(0.2)
        assert cache.get("expire_key") is None

    def test_cache_key_generation(self):
        cache = CacheManager(enabled=True)

        key1 = cache._make_key("prefix", "arg1", "arg2", kwarg1="value1")
        key2 = cache._make_key("prefix", "arg1", "arg2", kwarg1="value1")
        key3 = cache._make_key("prefix", "arg1", "arg2", kwarg1="value2")

        assert key1 == key2
        assert key1 != key3
        assert key1.startswith("prefix:")

    def test_cache_stats_count_hits_and_misses(self):
        cache = CacheManager(enabled=True)
        cache.set("key1", "value1", ttl=60)
        cache.set("key2", "value2", ttl=60)

        cache.get("key1")
        cache.get("missing")

        stats = cache.get_stats()
        assert stats["total_entries"] == 2
        assert stats["active_entries"] == 2
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["enabled"] is True

    def test_cache_disabled(self):
        cache = CacheManager(enabled=False)
        cache.set("test_key", "test_value")
        assert cache.get("test_key") is None

    def test_cache_cleanup(self):
        cache = CacheManager(enabled=True)
        cache.set("key1", "value1", ttl=0.1)
        cache.set("key2", "value2", ttl=60)

        time.sleep(0.2)

        assert cache.cleanup_expired() == 1
        assert cache.get("key1") is None
        assert cache.get("key2") == "value2"


class TestCachingDecorator:
    """Test caching decorator functionality."""

    @pytest.mark.asyncio
    async def test_async_caching_decorator(self):
        call_count = 0

        @cached("test_async", ttl=60)
        async def async_function(value):
            nonlocal call_count
            call_count += 1
            return f"result_{value}"

        assert await async_function("test") == "result_test"
        assert await async_function("test") == "result_test"
        assert call_count == 1

        assert await async_function("different") == "result_different"
        assert call_count == 2

    def test_sync_caching_decorator(self):
        call_count = 0

        @cached("test_sync", ttl=60)
        def sync_function(value):
            nonlocal call_count
            call_count += 1
            return f"result_{value}"

        assert sync_function("test") == "result_test"
        assert sync_function("test") == "result_test"
        assert call_count == 1

    @pytest.mark.asyncio
    async def test_cached_results_are_copies(self):
        @cached("test_copy", ttl=60)
        async def build():
            return {"items": [1, 2]}

        first = await build()
        first["items"].append(3)

        second = await build()
        assert second == {"items": [1, 2]}


class TestServiceCaching:
    """Test caching integration in services."""

    @pytest.mark.asyncio
    async def test_llm_provider_call_is_cached(self):
        service = LLMService()
        response = MagicMock()
        response.json.return_value = {
            "choices": [{"message": {"content": "cached answer"}}],
            "usage": {"total_tokens": 10},
        }
        response.raise_for_status.return_value = None

        messages = [{"role": "user", "content": "test prompt"}]
        with patch.object(service.groq_client, "post", return_value=response) as mock_post:
            first = await service._call_groq(messages)
            second = await service._call_groq(messages)

        assert first["content"] == second["content"] == "cached answer"
        assert mock_post.call_count == 1

    @pytest.mark.asyncio
    async def test_translation_service_caching(self):
        service = TranslationService()

        with patch("labsync.services.translation_service.GoogleTranslator") as mock_gt_class:
            mock_gt = MagicMock()
            mock_gt.translate.return_value = "अनुवादित पाठ"
            mock_gt_class.return_value = mock_gt

            result1 = await service.translate_text("test text", "en", "hi")
            result2 = await service.translate_text("test text", "en", "hi")

        assert result1["translated_text"] == result2["translated_text"] == "अनुवादित पाठ"
        assert mock_gt.translate.call_count == 1

    def test_global_cache_functions(self):
        clear_cache()
        stats = get_cache_stats()
        assert stats["total_entries"] == 0
        assert "enabled" in stats
