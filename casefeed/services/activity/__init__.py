"""Integrated activity aggregation and search."""

from casefeed.services.activity.dispatcher import ActivityDispatcher
from casefeed.services.activity.feed import ActivityFeedService, ActivityPage, RolePolicy
from casefeed.services.activity.resolver import ClientNameResolver
from casefeed.services.activity.types import ActivityFilter, ActivityRecord, Actor, SourceResult

__all__ = [
    "ActivityDispatcher",
    "ActivityFeedService",
    "ActivityFilter",
    "ActivityPage",
    "ActivityRecord",
    "Actor",
    "ClientNameResolver",
    "RolePolicy",
    "SourceResult",
]
