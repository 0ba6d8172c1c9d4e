"""
Client facade over the core.

Owns the aiohttp session, the request pipeline and the name/key cache for one run:

    async with Client(StaticConnection.from_config()) as client:
        nodes = await client.list_records("nodes", name="node*", fields=["$key", "name"])
        ref = await client.resolve_reference("tags", "Production")
"""

import logging
from typing import Iterable

import sentry_sdk
from aiohttp import ClientSession, ClientTimeout

from api_verge import config
from api_verge.core.connection import Connection, StaticConnection
from api_verge.core.data_access import RequestPipeline
from api_verge.core.filters import FilterCriterion, filter_wildcard, name_criterion, render_filter
from api_verge.core.normalize import drop_incomplete
from api_verge.core.query import QuerySpec
from api_verge.core.references import NameKeyCache, ReferenceResolver, ResourceReference
from api_verge.core.sentry import get_sentry_kwargs
from api_verge.core.version import get_app_version

logger = logging.getLogger(__name__)

_sentry_initialized = False


def init_sentry() -> None:
    global _sentry_initialized
    if config.SENTRY_DSN and not _sentry_initialized:
        sentry_sdk.init(**get_sentry_kwargs())
        _sentry_initialized = True


class Client:
    """Entry point of the API client core."""

    def __init__(
        self,
        connection: Connection | None = None,
        session: ClientSession | None = None,
        cache: NameKeyCache | None = None,
    ):
        self.connection = connection if connection is not None else StaticConnection.from_config()
        self._own_session = session is None
        self.session = session
        self.cache = cache if cache is not None else NameKeyCache()
        self.pipeline: RequestPipeline | None = None
        self.resolver: ReferenceResolver | None = None

    async def __aenter__(self) -> "Client":
        init_sentry()
        if self.session is None:
            self.session = ClientSession(
                timeout=ClientTimeout(total=config.REQUEST_TIMEOUT),
                headers={"User-Agent": f"{config.USER_AGENT}/{get_app_version()}"},
            )
        self.pipeline = RequestPipeline(self.session)
        self.resolver = ReferenceResolver(self.pipeline, self.connection, self.cache)
        return self

    async def __aexit__(self, *exc_info) -> None:
        if self._own_session and self.session is not None:
            await self.session.close()
            self.session = None

    async def execute(
        self, method: str, endpoint: str, body=None, query: QuerySpec | None = None
    ) -> list[dict]:
        return await self.pipeline.execute(
            method, endpoint, self.connection, body=body, query=query
        )

    async def resolve_reference(self, family: str, value) -> ResourceReference:
        return await self.resolver.resolve(family, value)

    @staticmethod
    def render_filter(criteria: Iterable[FilterCriterion | None]) -> str | None:
        return render_filter(criteria)

    async def list_records(
        self,
        endpoint: str,
        name: str | None = None,
        filters: Iterable[FilterCriterion | None] = (),
        fields: Iterable[str] = (),
        sort: Iterable[tuple[str, str]] = (),
        limit: int | None = None,
    ) -> list[dict]:
        """
        Retrieve the records of an endpoint, the way per-resource operations do.

        Args:
            endpoint: The endpoint to query, ie `vms`
            name: Exact name or wildcard pattern (`*`, `?`)
            filters: Additional criteria, and-ed with the name criterion
            fields: Field projections
            sort: (field, direction) pairs
            limit: Maximum number of records asked to the API

        Returns:
            The records bearing a key, re-filtered client side for wildcard patterns
        """
        fields = list(fields)
        # records without their key are dropped, always ask for it
        if fields and config.KEY_FIELD not in fields:
            fields.insert(0, config.KEY_FIELD)
        # and wildcard patterns are matched again client side
        if fields and name and config.NAME_FIELD not in fields:
            fields.append(config.NAME_FIELD)
        query = QuerySpec(
            filter=render_filter([name_criterion(name, config.NAME_FIELD), *filters]),
            fields=tuple(fields),
            sort=tuple(sort),
            limit=limit,
        )
        records = drop_incomplete(
            await self.execute("GET", endpoint, query=query), config.KEY_FIELD
        )
        return filter_wildcard(records, name, config.NAME_FIELD)
