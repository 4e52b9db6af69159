from fastapi import APIRouter, Depends, Query

from casefeed.dependencies import get_actor, get_feed_service
from casefeed.schemas.activity import (
    ActivityItem,
    ActivityListResponse,
    ActivitySearchResponse,
    Pagination,
)
from casefeed.services.activity import ActivityFeedService, ActivityFilter, ActivityPage, Actor
from casefeed.services.activity.feed import CLIENT_SCOPE, SEARCH_SCOPE
from casefeed.services.activity.types import ActivityRecord

router = APIRouter()


def _format_dt(dt) -> str | None:
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.isoformat() + "Z"
    return dt.isoformat()


def _to_item(record: ActivityRecord) -> ActivityItem:
    return ActivityItem(
        id=record.id,
        type=record.type,
        title=record.title,
        date=record.date.isoformat(),
        client_id=record.subject_id,
        client_name=record.subject_name,
        metadata=record.metadata,
        created_at=_format_dt(record.created_at),
    )


def _page_body(page: ActivityPage) -> dict:
    return {
        "data": [_to_item(r) for r in page.records],
        "pagination": Pagination(
            page=page.meta.page,
            limit=page.meta.limit,
            total=page.meta.total,
            totalPages=page.meta.total_pages,
        ),
        "partial": page.partial,
        "failedSources": page.failed_sources,
        "truncatedSources": page.truncated_sources,
    }


@router.get("/api/search/activities")
async def search_activities(
    query: str = "",
    activity_type: str = "all",
    start_date: str | None = None,
    end_date: str | None = None,
    actor_id: str | None = None,
    created_by_user_id: str | None = Query(None, description="Alias of actor_id"),
    page: int = 1,
    limit: int | None = None,
    actor: Actor = Depends(get_actor),
    service: ActivityFeedService = Depends(get_feed_service),
) -> ActivitySearchResponse:
    """Search activities of every kind across all clients, grouped by type."""
    # Checked ahead of filter validation: a denied caller gets 403 whatever its parameters
    await service.authorize(actor, SEARCH_SCOPE)
    flt = ActivityFilter.build(
        query=query,
        activity_type=activity_type,
        start_date=start_date,
        end_date=end_date,
        actor_id=actor_id or created_by_user_id,
        page=page,
        limit=limit,
    )
    result = await service.search(actor, flt)
    return ActivitySearchResponse(**_page_body(result), grouped=result.grouped or {})


@router.get("/api/clients/{client_id}/activities")
async def client_activities(
    client_id: str,
    activity_type: str = "all",
    start_date: str | None = None,
    end_date: str | None = None,
    actor_id: str | None = None,
    created_by_user_id: str | None = Query(None, description="Alias of actor_id"),
    page: int = 1,
    limit: int | None = None,
    actor: Actor = Depends(get_actor),
    service: ActivityFeedService = Depends(get_feed_service),
) -> ActivityListResponse:
    """All activities of one client, newest first."""
    # Checked ahead of filter validation: a denied caller gets 403 whatever its parameters
    await service.authorize(actor, CLIENT_SCOPE)
    flt = ActivityFilter.build(
        activity_type=activity_type,
        start_date=start_date,
        end_date=end_date,
        actor_id=actor_id or created_by_user_id,
        page=page,
        limit=limit,
    )
    result = await service.client_activities(actor, client_id, flt)
    return ActivityListResponse(**_page_body(result))
