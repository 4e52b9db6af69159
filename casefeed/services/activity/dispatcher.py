import asyncio
from functools import partial

import structlog

from casefeed.config import settings
from casefeed.core.exceptions import SourceUnavailableError
from casefeed.services.activity.providers import SourceProvider, default_providers
from casefeed.services.activity.resolver import ClientNameResolver
from casefeed.services.activity.types import ActivityFilter, ActivityRecord, SourceResult

logger = structlog.get_logger()


class ActivityDispatcher:
    """Runs the providers selected by a filter concurrently and applies the text query.

    A record survives a non-empty query when its title matches, or when its
    client's name matches. The query is applied to each batch a provider
    scans, before its row cap, with one name lookup per batch.
    """

    def __init__(
        self,
        providers: list[SourceProvider] | None = None,
        resolver: ClientNameResolver | None = None,
        resolver_timeout: float | None = None,
    ):
        self._providers = providers if providers is not None else default_providers()
        self._resolver = resolver or ClientNameResolver()
        self._resolver_timeout = (
            resolver_timeout if resolver_timeout is not None else settings.casefeed_source_timeout
        )

    @property
    def providers(self) -> list[SourceProvider]:
        return list(self._providers)

    def active_providers(self, flt: ActivityFilter) -> list[SourceProvider]:
        return [p for p in self._providers if p.owns(flt.activity_type)]

    async def dispatch(self, flt: ActivityFilter) -> list[SourceResult]:
        """One result per active provider, in registration order.

        Provider failures are isolated into their result. If a call raises
        anyway, or the caller is cancelled, every in-flight provider and
        resolver call is cancelled.
        """
        active = self.active_providers(flt)
        async with asyncio.TaskGroup() as group:
            tasks = [group.create_task(self._run(provider, flt)) for provider in active]
        return [task.result() for task in tasks]

    async def _run(self, provider: SourceProvider, flt: ActivityFilter) -> SourceResult:
        if not flt.query:
            return await provider.fetch(flt)
        return await provider.fetch(flt, keep=partial(self._apply_query, provider, flt.query))

    async def _apply_query(
        self, provider: SourceProvider, query: str, records: list[ActivityRecord]
    ) -> list[ActivityRecord]:
        title_hits = [provider.matches_text(record, query) for record in records]

        # Only records the title did not already admit need a name lookup
        pending = {
            record.subject_id
            for record, hit in zip(records, title_hits)
            if not hit and record.subject_id
        }
        name_hits: set[str] = set()
        if pending:
            try:
                name_hits = await asyncio.wait_for(
                    self._resolver.resolve(pending, query), timeout=self._resolver_timeout
                )
            except Exception as exc:
                logger.warning("activity_name_lookup_failed", source=provider.kind, error=str(exc))
                raise SourceUnavailableError(
                    provider.kind, f"Client name lookup failed for source '{provider.kind}'."
                ) from exc

        return [
            record
            for record, hit in zip(records, title_hits)
            if hit or record.subject_id in name_hits
        ]
