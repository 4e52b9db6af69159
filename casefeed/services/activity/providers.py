"""Source providers: one per activity record kind.

Each provider applies the structural filters (subject, date range, actor) in
SQL and maps its rows onto ``ActivityRecord``. The free-text predicate is left
to the dispatcher so that title and subject-name matches can be unioned over
the same candidate rows.
"""

import asyncio
import datetime
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable

import structlog
from sqlalchemy import Select, select

import casefeed.core.database as db_module
from casefeed.config import settings
from casefeed.core.database import (
    Client,
    CustomizationRequest,
    Equipment,
    Rental,
    Schedule,
    ServiceRecord,
)
from casefeed.core.exceptions import SourceUnavailableError
from casefeed.services.activity.types import (
    SCHEDULE_PREFIX,
    ActivityFilter,
    ActivityRecord,
    SourceResult,
    text_matches,
)

logger = structlog.get_logger()

DEFAULT_RENTAL_TITLE = "Equipment rental"

# Narrows a batch of records, e.g. to those matching a text query
RecordFilter = Callable[[list[ActivityRecord]], Awaitable[list[ActivityRecord]]]


def _scope(stmt: Select, flt: ActivityFilter, client_col, actor_col) -> Select:
    if flt.subject_id:
        stmt = stmt.where(client_col == flt.subject_id)
    if flt.actor_id:
        stmt = stmt.where(actor_col == flt.actor_id)
    return stmt


def _date_range(stmt: Select, flt: ActivityFilter, date_col) -> Select:
    if flt.start_date is not None:
        stmt = stmt.where(date_col >= flt.start_date)
    if flt.end_date is not None:
        stmt = stmt.where(date_col <= flt.end_date)
    return stmt


def _utc_date(value: datetime.datetime) -> datetime.date:
    """Calendar date of a timestamp in UTC. Naive values are taken as UTC already."""
    if value.tzinfo is not None:
        value = value.astimezone(datetime.timezone.utc)
    return value.date()


class SourceProvider(ABC):
    """Reads one record kind and normalizes it into activity records."""

    kind: str

    def __init__(self, session_factory=None, timeout: float | None = None, max_rows: int | None = None):
        self._session_factory = session_factory or db_module.async_session
        self._timeout = timeout if timeout is not None else settings.casefeed_source_timeout
        self._max_rows = max_rows or settings.casefeed_source_max_rows

    def owns(self, activity_type: str) -> bool:
        """Whether this provider serves the given activity-type selector."""
        return activity_type in ("all", self.kind)

    def matches_text(self, record: ActivityRecord, query: str) -> bool:
        """Case-insensitive substring match against the record's own title."""
        return text_matches(record.title, query)

    async def fetch(self, flt: ActivityFilter, keep: RecordFilter | None = None) -> SourceResult:
        """Query the store. Failures come back as ``SourceResult.error``, never raised.

        ``keep`` narrows each scanned batch before the row cap is applied, so
        the cap bounds matching records rather than raw rows. A source with
        more than ``max_rows`` matches returns the newest ``max_rows`` and is
        flagged ``truncated``.
        """
        try:
            records = await asyncio.wait_for(self._load(flt, keep), timeout=self._timeout)
        except asyncio.TimeoutError:
            logger.warning("activity_source_timeout", source=self.kind, timeout=self._timeout)
            return SourceResult(
                self.kind,
                error=SourceUnavailableError(self.kind, f"Activity source '{self.kind}' timed out."),
            )
        except SourceUnavailableError as exc:
            return SourceResult(self.kind, error=exc)
        except Exception as exc:
            logger.warning("activity_source_failed", source=self.kind, error=str(exc))
            return SourceResult(self.kind, error=SourceUnavailableError(self.kind))

        truncated = len(records) > self._max_rows
        if truncated:
            logger.warning("activity_source_truncated", source=self.kind, max_rows=self._max_rows)
        return SourceResult(self.kind, records[:self._max_rows], truncated=truncated)

    async def _load(self, flt: ActivityFilter, keep: RecordFilter | None = None) -> list[ActivityRecord]:
        """Up to ``max_rows + 1`` kept records, scanning the ordered statement in batches."""
        batch_size = self._max_rows + 1
        stmt = self._statement(flt)
        records: list[ActivityRecord] = []
        offset = 0

        async with self._session_factory() as session:
            while len(records) < batch_size:
                rows = (await session.execute(stmt.limit(batch_size).offset(offset))).all()
                batch = [self._to_record(row) for row in rows]
                if keep is not None and batch:
                    batch = await keep(batch)
                records.extend(batch)
                if len(rows) < batch_size:
                    break
                offset += len(rows)

        return records[:batch_size]

    @abstractmethod
    def _statement(self, flt: ActivityFilter) -> Select:
        """Select with structural filters applied, ordered by activity date descending."""
        ...

    @abstractmethod
    def _to_record(self, row) -> ActivityRecord:
        ...


class _ServiceRecordProvider(SourceProvider):
    """Consultations and assessments share ``service_records``, split on record_type."""

    def _statement(self, flt: ActivityFilter) -> Select:
        stmt = (
            select(ServiceRecord, Client.name)
            .join(Client, Client.id == ServiceRecord.client_id)
            .where(ServiceRecord.record_type == self.kind)
        )
        stmt = _scope(stmt, flt, ServiceRecord.client_id, ServiceRecord.created_by_user_id)
        stmt = _date_range(stmt, flt, ServiceRecord.record_date)
        return stmt.order_by(
            ServiceRecord.record_date.desc(),
            ServiceRecord.created_at.desc(),
            ServiceRecord.id,
        )

    def _to_record(self, row) -> ActivityRecord:
        record, client_name = row
        return ActivityRecord(
            id=record.id,
            type=self.kind,
            title=record.title,
            date=record.record_date,
            subject_id=record.client_id,
            subject_name=client_name,
            metadata={"content": record.content},
            created_at=record.created_at,
        )


class ConsultationProvider(_ServiceRecordProvider):
    kind = "consultation"


class AssessmentProvider(_ServiceRecordProvider):
    kind = "assessment"


class CustomizationProvider(SourceProvider):
    kind = "customization"

    def _statement(self, flt: ActivityFilter) -> Select:
        stmt = select(CustomizationRequest, Client.name).join(
            Client, Client.id == CustomizationRequest.client_id
        )
        stmt = _scope(stmt, flt, CustomizationRequest.client_id, CustomizationRequest.created_by_user_id)
        stmt = _date_range(stmt, flt, CustomizationRequest.requested_date)
        return stmt.order_by(
            CustomizationRequest.requested_date.desc(),
            CustomizationRequest.created_at.desc(),
            CustomizationRequest.id,
        )

    def _to_record(self, row) -> ActivityRecord:
        request, client_name = row
        return ActivityRecord(
            id=request.id,
            type=self.kind,
            title=request.title,
            date=request.requested_date,
            subject_id=request.client_id,
            subject_name=client_name,
            metadata={"status": request.status, "description": request.description},
            created_at=request.created_at,
        )


class RentalProvider(SourceProvider):
    """Rentals are titled by the rented equipment's name."""

    kind = "rental"

    def _statement(self, flt: ActivityFilter) -> Select:
        stmt = (
            select(Rental, Client.name, Equipment.name)
            .join(Client, Client.id == Rental.client_id)
            .outerjoin(Equipment, Equipment.id == Rental.equipment_id)
        )
        stmt = _scope(stmt, flt, Rental.client_id, Rental.created_by_user_id)
        stmt = _date_range(stmt, flt, Rental.rental_date)
        return stmt.order_by(Rental.rental_date.desc(), Rental.created_at.desc(), Rental.id)

    def _to_record(self, row) -> ActivityRecord:
        rental, client_name, equipment_name = row
        return ActivityRecord(
            id=rental.id,
            type=self.kind,
            title=equipment_name or DEFAULT_RENTAL_TITLE,
            date=rental.rental_date,
            subject_id=rental.client_id,
            subject_name=client_name,
            metadata={
                "status": rental.status,
                "quantity": rental.quantity,
                "return_date": rental.return_date.isoformat() if rental.return_date else None,
                "equipment_id": rental.equipment_id,
            },
            created_at=rental.created_at,
        )


class ScheduleProvider(SourceProvider):
    """Calendar entries attached to a client, typed ``schedule_<schedule_type>``."""

    kind = "schedule"

    def owns(self, activity_type: str) -> bool:
        return activity_type in ("all", self.kind) or activity_type.startswith(SCHEDULE_PREFIX)

    def _statement(self, flt: ActivityFilter) -> Select:
        # Inner join drops schedules with no client
        stmt = select(Schedule, Client.name).join(Client, Client.id == Schedule.client_id)
        stmt = _scope(stmt, flt, Schedule.client_id, Schedule.created_by_user_id)
        if flt.schedule_kind:
            stmt = stmt.where(Schedule.schedule_type == flt.schedule_kind)

        # start_time is a timestamp: include the whole end day
        if flt.start_date is not None:
            stmt = stmt.where(
                Schedule.start_time >= datetime.datetime.combine(flt.start_date, datetime.time.min)
            )
        if flt.end_date is not None:
            next_day = flt.end_date + datetime.timedelta(days=1)
            stmt = stmt.where(Schedule.start_time < datetime.datetime.combine(next_day, datetime.time.min))

        return stmt.order_by(Schedule.start_time.desc(), Schedule.created_at.desc(), Schedule.id)

    def _to_record(self, row) -> ActivityRecord:
        schedule, client_name = row
        return ActivityRecord(
            id=schedule.id,
            type=f"{SCHEDULE_PREFIX}{schedule.schedule_type}",
            title=schedule.title,
            date=_utc_date(schedule.start_time),
            subject_id=schedule.client_id,
            subject_name=client_name,
            metadata={
                "schedule_type": schedule.schedule_type,
                "status": schedule.status,
                "start_time": schedule.start_time.isoformat(),
                "description": schedule.description,
            },
            created_at=schedule.created_at,
        )


def default_providers(session_factory=None, **options) -> list[SourceProvider]:
    """All providers in dispatch order."""
    return [
        ConsultationProvider(session_factory, **options),
        AssessmentProvider(session_factory, **options),
        CustomizationProvider(session_factory, **options),
        RentalProvider(session_factory, **options),
        ScheduleProvider(session_factory, **options),
    ]
