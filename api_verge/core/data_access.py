"""
Data access layer for the core module.

This module issues the authenticated HTTP calls to the platform API and hands their
results to the normalizer or the error classifier.
"""

import asyncio
import json
import logging

from aiohttp import ClientError, ClientSession
from yarl import URL

from .connection import Connection, auth_header_value
from .exceptions import APIError, APIErrorKind, ConfigError, handle_exception
from .normalize import normalize
from .query import QuerySpec, build_query_string

logger = logging.getLogger(__name__)

METHODS = ("GET", "POST", "PUT", "DELETE", "PATCH")
MUTATING_METHODS = ("POST", "PUT", "PATCH")


def build_url(connection: Connection, endpoint: str, query: QuerySpec | None = None) -> str:
    url = f"{connection.base_url().rstrip('/')}/{endpoint.lstrip('/')}"
    params = query.to_params() if query else {}
    if params:
        url += f"?{build_query_string(params)}"
    return url


def build_headers(connection: Connection) -> dict[str, str]:
    return {
        "Authorization": auth_header_value(connection),
        "Content-Type": "application/json",
        "Accept": "application/json",
    }


def serialize_body(method: str, body) -> str | None:
    """Compact JSON body, only sent along with mutating methods."""
    if method not in MUTATING_METHODS or body is None:
        return None
    return json.dumps(body, separators=(",", ":"))


class RequestPipeline:
    """Handles the authenticated calls to the platform API."""

    def __init__(self, session: ClientSession):
        self.session = session

    async def execute(
        self,
        method: str,
        endpoint: str,
        connection: Connection | None,
        body=None,
        query: QuerySpec | None = None,
    ) -> list[dict]:
        """
        Issue one API call.

        Args:
            method: HTTP method, one of GET, POST, PUT, DELETE, PATCH
            endpoint: Path relative to the connection base URL, ie `vms` or `vms/42`
            connection: The connection to use
            body: JSON-serializable body, ignored for GET and DELETE
            query: Query parameters (filter, fields, sort, limit)

        Returns:
            The records of the response, in the order sent by the API

        Raises:
            ConfigError: If there is no valid connection, nothing has been sent then
            APIError: If the API answered with a non-2xx status or could not be reached
        """
        if connection is None:
            raise ConfigError("No connection to the API, connect first")
        if not connection.is_valid():
            raise ConfigError("The connection to the API is not valid anymore, reconnect")
        method = method.upper()
        if method not in METHODS:
            raise ValueError(f"method '{method}' is not among the allowed methods: {METHODS}")

        url = build_url(connection, endpoint, query)
        data = serialize_body(method, body)
        logger.debug(f"{method} {url}")
        try:
            async with self.session.request(
                method,
                # the query string is already percent-encoded
                URL(url, encoded=True),
                headers=build_headers(connection),
                data=data,
                ssl=not connection.skip_cert_verification(),
            ) as res:
                if not res.ok:
                    # raw bytes, the body may not even be valid UTF-8
                    handle_exception(res.status, await res.read(), endpoint)
                try:
                    decoded = await res.json(content_type=None)
                except ValueError as e:
                    # ie an HTML page sent by a proxy
                    raw_body = (await res.read()).decode("utf-8", errors="replace")
                    raise APIError(res.status, raw_body, APIErrorKind.UNKNOWN) from e
        except (ClientError, asyncio.TimeoutError) as e:
            raise APIError(0, str(e) or type(e).__name__, APIErrorKind.UNKNOWN) from e
        return normalize(decoded)
