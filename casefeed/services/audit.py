import json
from datetime import datetime, timezone

import structlog

import casefeed.core.database as db_module
from casefeed.core.database import AuditLog

logger = structlog.get_logger()


class AuditService:
    """Best-effort audit sink. Writes never raise into the caller."""

    def __init__(self, session_factory=None):
        self._session_factory = session_factory or db_module.async_session

    async def record(self, event: str, actor_id: str | None = None, metadata: dict | None = None) -> None:
        """Log an audit event and persist it to the audit_log table."""
        logger.info("audit_event", audit_action=event, actor_id=actor_id, metadata=metadata or {})
        await self._write(
            AuditLog(
                action=event,
                actor_id=actor_id,
                details=json.dumps(metadata, default=str, ensure_ascii=False) if metadata else None,
                timestamp=datetime.now(timezone.utc),
            )
        )

    async def record_request(
        self,
        method: str,
        path: str,
        status_code: int,
        latency_ms: float,
        actor_id: str | None = None,
    ) -> None:
        """Persist one ``http_request`` row (used by the request logging middleware)."""
        await self._write(
            AuditLog(
                action="http_request",
                actor_id=actor_id,
                method=method,
                path=path,
                status_code=status_code,
                latency_ms=latency_ms,
                timestamp=datetime.now(timezone.utc),
            )
        )

    async def _write(self, entry: AuditLog) -> None:
        try:
            async with self._session_factory() as session:
                session.add(entry)
                await session.commit()
        except Exception as exc:
            logger.warning("audit_record_failed", audit_action=entry.action, error=str(exc))
