"""Activity log persistence."""

from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from .models import ActivityLog


if TYPE_CHECKING:
    from cassandra.cluster import Session

logger = structlog.get_logger(__name__)

DEFAULT_LIMIT = 100


class ActivityService:
    """Reads and writes activity logs."""

    def __init__(self, session: "Session", keyspace: str):
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements."""
        self._insert_tenant_log = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.activity_logs (
                tenant_id, timestamp, id, user_id, activity_type,
                resource_id, resource_type
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
        """)
        self._insert_user_log = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.activity_logs_by_user (
                user_id, timestamp, id, tenant_id, activity_type,
                resource_id, resource_type
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
        """)
        self._list_by_tenant = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.activity_logs WHERE tenant_id = ? LIMIT ?"
        )
        self._list_by_user = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.activity_logs_by_user "
            "WHERE user_id = ? LIMIT ?"
        )

    async def record(self, log: ActivityLog) -> ActivityLog:
        """Write a log entry to both timelines."""
        await self.session.aexecute(
            self._insert_tenant_log,
            [
                log.tenant_id,
                log.timestamp,
                log.id,
                log.user_id,
                log.activity_type,
                log.resource_id,
                log.resource_type,
            ],
        )
        await self.session.aexecute(
            self._insert_user_log,
            [
                log.user_id,
                log.timestamp,
                log.id,
                log.tenant_id,
                log.activity_type,
                log.resource_id,
                log.resource_type,
            ],
        )
        return log

    async def record_batch(self, logs: list[ActivityLog]) -> int:
        """Write several entries. Returns how many were written."""
        written = 0
        for log in logs:
            await self.record(log)
            written += 1
        return written

    async def list_user_logs(
        self, user_id: UUID, limit: int = DEFAULT_LIMIT
    ) -> list[ActivityLog]:
        """A user's activity, newest first."""
        rows = await self.session.aexecute(self._list_by_user, [user_id, limit])
        return [ActivityLog.from_row(r) for r in rows]

    async def list_tenant_logs(
        self, tenant_id: UUID, limit: int = DEFAULT_LIMIT
    ) -> list[ActivityLog]:
        """A tenant's activity, newest first."""
        rows = await self.session.aexecute(self._list_by_tenant, [tenant_id, limit])
        return [ActivityLog.from_row(r) for r in rows]
