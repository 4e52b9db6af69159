"""Feed assembly: authorization, fan-out, merge, facets, pagination and audit."""

from collections.abc import Collection
from dataclasses import dataclass, field

import structlog

import casefeed.core.database as db_module
from casefeed.config import settings
from casefeed.core.database import Client
from casefeed.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    CaseFeedError,
    InternalError,
    NotFoundError,
)
from casefeed.services.activity.dispatcher import ActivityDispatcher
from casefeed.services.activity.facets import aggregate_facets
from casefeed.services.activity.merge import merge_results
from casefeed.services.activity.paginator import PageMeta, paginate
from casefeed.services.activity.types import ActivityFilter, ActivityRecord, Actor
from casefeed.services.audit import AuditService

logger = structlog.get_logger()

SEARCH_SCOPE = "activities_search"
CLIENT_SCOPE = "client_activities"


class RolePolicy:
    """Role allow-list for reading activity feeds."""

    def __init__(self, allowed_roles: Collection[str] | None = None):
        self._allowed = frozenset(allowed_roles) if allowed_roles is not None else settings.allowed_roles

    def is_allowed(self, actor: Actor) -> bool:
        return actor.role is not None and actor.role in self._allowed


@dataclass
class ActivityPage:
    records: list[ActivityRecord]
    meta: PageMeta
    grouped: dict[str, int] | None = None
    failed_sources: list[str] = field(default_factory=list)
    truncated_sources: list[str] = field(default_factory=list)

    @property
    def partial(self) -> bool:
        """Some source failed or hit its row cap, so totals undercount."""
        return bool(self.failed_sources or self.truncated_sources)


class ActivityFeedService:
    """Builds the unified activity feed, scoped to one client or searched across all."""

    def __init__(
        self,
        dispatcher: ActivityDispatcher | None = None,
        audit: AuditService | None = None,
        policy: RolePolicy | None = None,
        session_factory=None,
        same_day_order: str | None = None,
    ):
        self._session_factory = session_factory or db_module.async_session
        self._dispatcher = dispatcher or ActivityDispatcher()
        self._audit = audit or AuditService(self._session_factory)
        self._policy = policy or RolePolicy()
        self._same_day_order = same_day_order or settings.casefeed_same_day_order

    async def authorize(self, actor: Actor | None, scope: str) -> Actor:
        """Reject missing or under-privileged actors before any source is read."""
        if actor is None or not actor.id:
            raise AuthenticationError("No verified actor.")
        if not self._policy.is_allowed(actor):
            await self._audit.record(
                f"{scope}_forbidden",
                actor.id,
                {"role": actor.role, "security": "access_control"},
            )
            raise AuthorizationError("Forbidden: insufficient permissions.")
        return actor

    async def search(self, actor: Actor | None, flt: ActivityFilter) -> ActivityPage:
        """Cross-client search. Facet counts are included."""
        actor = await self.authorize(actor, SEARCH_SCOPE)
        flt = flt.model_copy(update={"subject_id": None})

        try:
            page = await self._build(flt, with_facets=True)
        except CaseFeedError as exc:
            await self._audit.record(
                f"{SEARCH_SCOPE}_failed", actor.id, {"error": exc.message, **exc.details}
            )
            raise
        except Exception as exc:
            await self._audit.record(f"{SEARCH_SCOPE}_exception", actor.id, {"errorMessage": str(exc)})
            raise InternalError() from exc

        await self._audit.record(
            "activities_searched",
            actor.id,
            {
                "query": flt.query,
                "activityType": flt.activity_type,
                "totalResults": page.meta.total,
                "grouped": page.grouped,
                "failedSources": page.failed_sources,
                "truncatedSources": page.truncated_sources,
            },
        )
        return page

    async def client_activities(self, actor: Actor | None, client_id: str, flt: ActivityFilter) -> ActivityPage:
        """Feed for a single client. Unknown clients raise ``NotFoundError``."""
        actor = await self.authorize(actor, CLIENT_SCOPE)

        async with self._session_factory() as session:
            client = await session.get(Client, client_id)
        if client is None:
            raise NotFoundError("Client not found.", details={"client_id": client_id})

        flt = flt.model_copy(update={"subject_id": client_id, "query": ""})

        try:
            page = await self._build(flt, with_facets=False)
        except CaseFeedError as exc:
            await self._audit.record(
                f"{CLIENT_SCOPE}_failed", actor.id, {"clientId": client_id, "error": exc.message}
            )
            raise
        except Exception as exc:
            await self._audit.record(
                f"{CLIENT_SCOPE}_exception", actor.id, {"clientId": client_id, "errorMessage": str(exc)}
            )
            raise InternalError() from exc

        await self._audit.record(
            "client_activities_viewed",
            actor.id,
            {
                "clientId": client_id,
                "clientName": client.name,
                "activityType": flt.activity_type,
                "totalActivities": page.meta.total,
                "failedSources": page.failed_sources,
                "truncatedSources": page.truncated_sources,
            },
        )
        return page

    async def _build(self, flt: ActivityFilter, with_facets: bool) -> ActivityPage:
        results = await self._dispatcher.dispatch(flt)
        failed = [result.kind for result in results if not result.ok]
        truncated = [result.kind for result in results if result.ok and result.truncated]

        if results and len(failed) == len(results):
            logger.error("activity_sources_all_failed", sources=failed)
            raise InternalError(
                "All activity sources are unavailable.", details={"failedSources": failed}
            )

        merged = merge_results(results, same_day_order=self._same_day_order)
        grouped = aggregate_facets(merged) if with_facets else None
        records, meta = paginate(merged, flt.page, flt.limit)

        logger.info(
            "activity_feed_built",
            subject_id=flt.subject_id,
            activity_type=flt.activity_type,
            total=meta.total,
            page=meta.page,
            failed_sources=failed,
            truncated_sources=truncated,
        )
        return ActivityPage(
            records=records,
            meta=meta,
            grouped=grouped,
            failed_sources=failed,
            truncated_sources=truncated,
        )
