from fastapi import Request

from casefeed.core.exceptions import AuthenticationError
from casefeed.services.activity import ActivityFeedService, Actor


def get_actor(request: Request) -> Actor:
    """Actor verified by AuthMiddleware for this request."""
    user_id = getattr(request.state, "user_id", None)
    if not user_id:
        raise AuthenticationError("No verified actor.")
    return Actor(
        id=user_id,
        role=getattr(request.state, "user_role", None),
        name=getattr(request.state, "user_name", ""),
    )


def get_feed_service() -> ActivityFeedService:
    """Fresh feed service per request; it holds no state between calls."""
    return ActivityFeedService()
