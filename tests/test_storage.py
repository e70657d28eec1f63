"""
Tests for the storage service on the in-memory repository.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from labsync.services.storage_service import InMemoryRepository, StorageService
from labsync.utils.errors import StorageError


class TestReports:
    @pytest.mark.asyncio
    async def test_save_get_list_delete(self, memory_storage):
        report = {"id": "rep_1", "userId": "user-1", "title": "CBC"}

        await memory_storage.save_report(report)

        assert await memory_storage.get_report("rep_1") == report
        assert await memory_storage.list_reports() == [report]
        assert await memory_storage.delete_report("rep_1") is True
        assert await memory_storage.delete_report("rep_1") is False
        assert await memory_storage.get_report("rep_1") is None

    @pytest.mark.asyncio
    async def test_save_replaces_existing_report(self, memory_storage):
        await memory_storage.save_report({"id": "rep_1", "title": "Old"})
        await memory_storage.save_report({"id": "rep_1", "title": "New"})

        assert [r["title"] for r in await memory_storage.list_reports()] == ["New"]


class TestGeneratedRecords:
    @pytest.mark.asyncio
    async def test_latest_health_plan_for_report(self, memory_storage):
        with patch(
            "labsync.services.storage_service._now",
            side_effect=["2024-01-01T00:00:00", "2024-02-01T00:00:00"],
        ):
            await memory_storage.save_health_plan({"summary": "first", "reportId": "rep_1"})
            latest_id = await memory_storage.save_health_plan({"summary": "second", "reportId": "rep_1"})

        plan = await memory_storage.get_health_plan("rep_1")

        assert latest_id.startswith("hp_")
        assert plan == {"id": latest_id, "summary": "second", "reportId": "rep_1"}
        assert await memory_storage.get_health_plan("rep_2") is None

    @pytest.mark.asyncio
    async def test_recommendations_round_trip(self, memory_storage):
        rec_id = await memory_storage.save_recommendations(
            {"recommendations": {"summary": "ok"}, "reportId": "rep_9", "userId": "user-1"}
        )

        record = await memory_storage.get_recommendations("rep_9")

        assert rec_id.startswith("rec_")
        assert record["id"] == rec_id
        assert record["recommendations"] == {"summary": "ok"}

    @pytest.mark.asyncio
    async def test_preferences_keyed_by_user(self, memory_storage):
        assert await memory_storage.get_preferences("user-1") is None

        await memory_storage.save_preferences("user-1", {"language": {"language": "hi"}})

        assert await memory_storage.get_preferences("user-1") == {"language": {"language": "hi"}}
        assert await memory_storage.get_preferences("user-2") is None


class TestFailures:
    @pytest.mark.asyncio
    async def test_repository_errors_become_storage_errors(self):
        repository = MagicMock(backend="supabase")
        repository.get = AsyncMock(side_effect=RuntimeError("connection reset"))
        storage = StorageService(repository=repository)

        with pytest.raises(StorageError, match="connection reset"):
            await storage.get_report("rep_1")

    @pytest.mark.asyncio
    async def test_health_check(self, memory_storage):
        health = await memory_storage.health_check()
        assert health["status"] == "healthy"
        assert health["providers"] == {"memory": {"status": "healthy"}}

    @pytest.mark.asyncio
    async def test_health_check_unhealthy(self):
        repository = InMemoryRepository()
        repository.ping = AsyncMock(side_effect=RuntimeError("unreachable"))

        health = await StorageService(repository=repository).health_check()

        assert health["status"] == "unhealthy"
        assert health["providers"]["memory"]["error"] == "unreachable"
