import re

import aiohttp
import pytest
import pytest_asyncio
from aioresponses import aioresponses

from api_verge import config
from api_verge.core.connection import StaticConnection
from api_verge.core.data_access import RequestPipeline
from api_verge.core.references import NameKeyCache, ReferenceResolver

VERGE_URL = "https://example.com/api/v4"
CREDENTIAL = "dXNlcjpwYXNz"
NODES_PATTERN = re.compile(r"^https://example\.com/api/v4/nodes(\?.*)?$")
TAGS_PATTERN = re.compile(r"^https://example\.com/api/v4/tags(\?.*)?$")
VMS_PATTERN = re.compile(r"^https://example\.com/api/v4/vms(\?.*)?$")


def requests_made(rmock) -> list:
    """Flatten the calls recorded by aioresponses into (method, url, call) tuples"""
    return [
        (method, url, call) for (method, url), calls in rmock.requests.items() for call in calls
    ]


@pytest.fixture(autouse=True)
def setup():
    config.override(
        VERGE_URL=VERGE_URL,
        VERGE_CREDENTIAL=CREDENTIAL,
        AUTH_SCHEME="Basic",
        SKIP_CERT_VERIFICATION=False,
        KEY_FIELD="$key",
        NAME_FIELD="name",
        SENTRY_DSN="",
        SENTRY_SAMPLE_RATE=1.0,
    )


@pytest.fixture
def rmock():
    with aioresponses() as m:
        yield m


@pytest_asyncio.fixture
async def client_session():
    async with aiohttp.ClientSession() as session:
        yield session


@pytest.fixture
def connection():
    return StaticConnection(url=VERGE_URL, token=CREDENTIAL)


@pytest.fixture
def pipeline(client_session):
    return RequestPipeline(client_session)


@pytest.fixture
def cache():
    return NameKeyCache()


@pytest.fixture
def resolver(pipeline, connection, cache):
    return ReferenceResolver(pipeline, connection, cache)
