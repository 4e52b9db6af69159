from collections.abc import Iterable

import structlog
from sqlalchemy import select

import casefeed.core.database as db_module
from casefeed.core.database import Client
from casefeed.services.activity.types import text_matches

logger = structlog.get_logger()


class ClientNameResolver:
    """Finds which of a batch of clients have a name containing the query."""

    def __init__(self, session_factory=None):
        self._session_factory = session_factory or db_module.async_session

    async def resolve(self, candidate_ids: Iterable[str], query: str) -> set[str]:
        """Return the subset of ``candidate_ids`` whose client name contains ``query``.

        One query per call regardless of batch size. Names are compared in
        Python, folded the same way as titles, since SQL ``lower()`` only
        folds ASCII on some backends. An empty query matches every candidate
        without touching the store.
        """
        ids = {cid for cid in candidate_ids if cid}
        if not query:
            return ids
        if not ids:
            return set()

        stmt = select(Client.id, Client.name).where(Client.id.in_(ids))
        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).all()

        matched = {client_id for client_id, name in rows if text_matches(name, query)}
        logger.debug("client_names_resolved", candidates=len(ids), matched=len(matched))
        return matched
