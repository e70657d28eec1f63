"""
Storage service for LabSync AI.
Persists reports, health plans, recommendations and preferences in Supabase
Postgres, or in process memory when Supabase is not configured.
"""

import time
import uuid
from datetime import datetime
from threading import Lock
from typing import Any, Dict, List, Optional

from supabase import Client, create_client
from supabase.lib.client_options import ClientOptions

from labsync.utils.config import settings
from labsync.utils.errors import StorageError
from labsync.utils.logging import get_compliance_logger, get_logger

logger = get_logger(__name__)
compliance_logger = get_compliance_logger()

REPORTS = "reports"
HEALTH_PLANS = "health_plans"
RECOMMENDATIONS = "recommendations"
PREFERENCES = "preferences"
TABLES = (REPORTS, HEALTH_PLANS, RECOMMENDATIONS, PREFERENCES)


def _now() -> str:
    return datetime.utcnow().isoformat()


class InMemoryRepository:
    """Document store kept in process memory, one dict per table."""

    backend = "memory"

    def __init__(self):
        self._tables: Dict[str, Dict[str, Dict[str, Any]]] = {t: {} for t in TABLES}
        self._lock = Lock()

    async def upsert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        with self._lock:
            self._tables[table][row["id"]] = row
        return row

    async def get(self, table: str, row_id: str) -> Optional[Dict[str, Any]]:
        return self._tables[table].get(row_id)

    async def find(self, table: str, column: str, value: Any) -> List[Dict[str, Any]]:
        rows = [r for r in self._tables[table].values() if r.get(column) == value]
        return sorted(rows, key=lambda r: r.get("created_at", ""), reverse=True)

    async def all(self, table: str) -> List[Dict[str, Any]]:
        return list(self._tables[table].values())

    async def delete(self, table: str, row_id: str) -> bool:
        with self._lock:
            return self._tables[table].pop(row_id, None) is not None

    async def ping(self) -> bool:
        return True


class SupabaseRepository:
    """Document store on Supabase tables with ``id``, ``user_id``,
    ``report_id``, ``data`` (jsonb) and ``created_at`` columns."""

    backend = "supabase"

    def __init__(self, url: str, key: str):
        options = ClientOptions(auto_refresh_token=True, persist_session=True)
        self.supabase: Client = create_client(url, key, options=options)
        logger.info("Supabase client initialized")

    async def upsert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        result = self.supabase.table(table).upsert(row).execute()
        if not result.data:
            raise StorageError(f"Failed to write {table} record")
        return result.data[0]

    async def get(self, table: str, row_id: str) -> Optional[Dict[str, Any]]:
        result = self.supabase.table(table).select("*").eq("id", row_id).execute()
        return result.data[0] if result.data else None

    async def find(self, table: str, column: str, value: Any) -> List[Dict[str, Any]]:
        result = (
            self.supabase.table(table)
            .select("*")
            .eq(column, value)
            .order("created_at", desc=True)
            .execute()
        )
        return result.data or []

    async def all(self, table: str) -> List[Dict[str, Any]]:
        result = self.supabase.table(table).select("*").execute()
        return result.data or []

    async def delete(self, table: str, row_id: str) -> bool:
        result = self.supabase.table(table).delete().eq("id", row_id).execute()
        return bool(result.data)

    async def ping(self) -> bool:
        self.supabase.table(REPORTS).select("id").limit(1).execute()
        return True


def _create_repository():
    if settings.supabase_url and settings.supabase_key:
        try:
            return SupabaseRepository(settings.supabase_url, settings.supabase_key)
        except Exception as e:
            logger.error(f"Failed to initialize Supabase client: {e}")
    logger.warning("Supabase not configured, using in-memory storage")
    return InMemoryRepository()


class StorageService:
    """Typed persistence operations with a compliance audit trail."""

    def __init__(self, repository=None):
        self.repository = repository if repository is not None else _create_repository()

    async def _audited(
        self,
        coro,
        resource_type: str,
        resource_id: str,
        user_id: Optional[str],
        operation: str,
    ):
        try:
            result = await coro
        except Exception as e:
            compliance_logger.log_data_access(
                resource_type=resource_type,
                resource_id=resource_id,
                user_id=user_id or "unknown",
                operation=operation,
                success=False,
                error=str(e),
            )
            logger.error(f"Storage {operation} {resource_type} failed: {e}")
            raise StorageError(f"Failed to {operation} {resource_type}: {e}") from e

        compliance_logger.log_data_access(
            resource_type=resource_type,
            resource_id=resource_id,
            user_id=user_id or "unknown",
            operation=operation,
            success=True,
        )
        return result

    @staticmethod
    def _row(
        data: Dict[str, Any],
        row_id: str,
        user_id: Optional[str],
        report_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        return {
            "id": row_id,
            "user_id": user_id or "unknown",
            "report_id": report_id,
            "data": data,
            "created_at": _now(),
        }

    # Reports

    async def save_report(self, report: Dict[str, Any]) -> Dict[str, Any]:
        """Insert or replace a report. The report must carry an ``id``."""
        row = self._row(report, report["id"], report.get("userId"), report["id"])
        await self._audited(
            self.repository.upsert(REPORTS, row),
            "report",
            report["id"],
            report.get("userId"),
            "create",
        )
        return report

    async def get_report(
        self, report_id: str, user_id: Optional[str] = None
    ) -> Optional[Dict[str, Any]]:
        row = await self._audited(
            self.repository.get(REPORTS, report_id), "report", report_id, user_id, "read"
        )
        return row["data"] if row else None

    async def list_reports(self, user_id: Optional[str] = None) -> List[Dict[str, Any]]:
        rows = await self._audited(
            self.repository.all(REPORTS), "report", "*", user_id, "list"
        )
        return [row["data"] for row in rows]

    async def delete_report(self, report_id: str, user_id: Optional[str] = None) -> bool:
        return await self._audited(
            self.repository.delete(REPORTS, report_id),
            "report",
            report_id,
            user_id,
            "delete",
        )

    # Health plans and recommendations

    async def save_health_plan(self, plan: Dict[str, Any]) -> str:
        """Store a generated health plan and return its id."""
        plan_id = f"hp_{uuid.uuid4().hex[:12]}"
        row = self._row(plan, plan_id, plan.get("userId"), plan.get("reportId"))
        await self._audited(
            self.repository.upsert(HEALTH_PLANS, row),
            "health_plan",
            plan_id,
            plan.get("userId"),
            "create",
        )
        return plan_id

    async def get_health_plan(self, report_id: str) -> Optional[Dict[str, Any]]:
        """Latest health plan generated for a report."""
        rows = await self._audited(
            self.repository.find(HEALTH_PLANS, "report_id", report_id),
            "health_plan",
            report_id,
            None,
            "read",
        )
        if not rows:
            return None
        return {"id": rows[0]["id"], **rows[0]["data"]}

    async def save_recommendations(self, record: Dict[str, Any]) -> str:
        rec_id = f"rec_{uuid.uuid4().hex[:12]}"
        row = self._row(record, rec_id, record.get("userId"), record.get("reportId"))
        await self._audited(
            self.repository.upsert(RECOMMENDATIONS, row),
            "recommendations",
            rec_id,
            record.get("userId"),
            "create",
        )
        return rec_id

    async def get_recommendations(self, report_id: str) -> Optional[Dict[str, Any]]:
        rows = await self._audited(
            self.repository.find(RECOMMENDATIONS, "report_id", report_id),
            "recommendations",
            report_id,
            None,
            "read",
        )
        if not rows:
            return None
        return {"id": rows[0]["id"], **rows[0]["data"]}

    # Preferences

    async def get_preferences(self, user_id: str) -> Optional[Dict[str, Any]]:
        row = await self._audited(
            self.repository.get(PREFERENCES, user_id),
            "preferences",
            user_id,
            user_id,
            "read",
        )
        return row["data"] if row else None

    async def save_preferences(
        self, user_id: str, preferences: Dict[str, Any]
    ) -> Dict[str, Any]:
        row = self._row(preferences, user_id, user_id)
        await self._audited(
            self.repository.upsert(PREFERENCES, row),
            "preferences",
            user_id,
            user_id,
            "update",
        )
        return preferences

    async def health_check(self) -> Dict[str, Any]:
        """Check storage service health."""
        status = {
            "service": "storage",
            "status": "healthy",
            "providers": {self.repository.backend: {"status": "healthy"}},
            "timestamp": time.time(),
        }
        try:
            await self.repository.ping()
        except Exception as e:
            status["status"] = "unhealthy"
            status["providers"][self.repository.backend] = {
                "status": "unhealthy",
                "error": str(e),
            }
        return status


# Global storage service instance
storage_service = StorageService()
