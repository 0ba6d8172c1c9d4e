import asyncio
import threading

import pytest

from api_verge.core.exceptions import APIError, NotFoundError
from api_verge.core.references import (
    ByKey,
    ByName,
    ByReference,
    NameKeyCache,
    ResourceReference,
    reference_input,
)

from .conftest import TAGS_PATTERN, VMS_PATTERN, requests_made


@pytest.mark.parametrize("family,key", [("vms", 42), ("vnets", 1), ("tenants", 987654321)])
def test_reference_round_trip(family, key):
    reference = ResourceReference(family, key)
    assert str(reference) == f"{family}/{key}"
    assert ResourceReference.parse(str(reference)) == reference


@pytest.mark.parametrize(
    "text",
    [
        "vms",
        "vms/",
        "/42",
        "vms/abc",
        "vms/42/1",
        "vms/0",
        "vms/-1",
        "vms/4_2",
        "vms/+42",
        "vms/ 42",
        "vms/²",
    ],
)
def test_reference_parse_invalid(text):
    with pytest.raises(ValueError):
        ResourceReference.parse(text)


@pytest.mark.parametrize("family,key", [("", 1), ("vms", 0), ("vms", -3), ("a/b", 1), ("vms", "1")])
def test_reference_invalid(family, key):
    with pytest.raises(ValueError):
        ResourceReference(family, key)


@pytest.mark.parametrize(
    "value,expected",
    [
        (42, ByKey(42)),
        ("42", ByKey(42)),
        ("vms/42", ByReference(ResourceReference("vms", 42))),
        (ResourceReference("vnets", 3), ByReference(ResourceReference("vnets", 3))),
        ("Production", ByName("Production")),
        ("web/frontend", ByName("web/frontend")),
        ("²", ByName("²")),
        ("vms/²", ByName("vms/²")),
        (ByName("x"), ByName("x")),
    ],
)
def test_reference_input(value, expected):
    assert reference_input(value) == expected


@pytest.mark.parametrize("value", ["", None, 1.5, True, ["vms", 1]])
def test_reference_input_invalid(value):
    with pytest.raises(ValueError):
        reference_input(value)


def test_cache():
    cache = NameKeyCache()
    assert cache.get_key("tags", "Production") is None
    cache.put("tags", "Production", 3)
    assert cache.get_key("tags", "Production") == 3
    assert cache.get_name("tags", 3) == "Production"
    # scoped per family
    assert cache.get_key("vms", "Production") is None
    assert len(cache) == 1
    cache.clear()
    assert len(cache) == 0


def test_cache_concurrent_inserts():
    cache = NameKeyCache()

    def fill():
        for i in range(1, 500):
            cache.put("vms", f"vm{i}", i)
            assert cache.get_key("vms", f"vm{i}") == i

    threads = [threading.Thread(target=fill) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    assert len(cache) == 499
    assert cache.get_name("vms", 250) == "vm250"


@pytest.mark.asyncio
async def test_resolve_name_uses_cache(rmock, resolver):
    rmock.get(TAGS_PATTERN, payload=[{"$key": 3, "name": "Production"}], repeat=True)
    first = await resolver.resolve("tags", "Production")
    assert len(requests_made(rmock)) == 1
    second = await resolver.resolve("tags", "Production")
    assert len(requests_made(rmock)) == 1
    assert first == second == ResourceReference("tags", 3)

    [(_, url, _)] = requests_made(rmock)
    assert url.query["filter"] == "name eq 'Production'"
    assert url.query["fields"] == "$key,name"


@pytest.mark.asyncio
async def test_resolve_key_without_lookup(rmock, resolver):
    assert await resolver.resolve("vms", 42) == ResourceReference("vms", 42)
    assert await resolver.resolve("vms", "42") == ResourceReference("vms", 42)
    assert await resolver.resolve("vms", ByKey(7)) == ResourceReference("vms", 7)
    assert requests_made(rmock) == []


@pytest.mark.asyncio
async def test_resolve_typed_reference_without_lookup(rmock, resolver):
    reference = ResourceReference("vnets", 5)
    # the reference carries its own family
    assert await resolver.resolve("vms", reference) == reference
    assert await resolver.resolve("tags", "vnets/5") == reference
    assert requests_made(rmock) == []


@pytest.mark.asyncio
async def test_resolve_not_found(rmock, resolver, cache):
    rmock.get(TAGS_PATTERN, payload=[])
    with pytest.raises(NotFoundError) as exc_info:
        await resolver.resolve("tags", "Missing")
    assert exc_info.value.family == "tags"
    assert len(cache) == 0


@pytest.mark.asyncio
async def test_resolve_not_found_incomplete_records(rmock, resolver):
    rmock.get(TAGS_PATTERN, payload=[{"name": "Production"}])
    with pytest.raises(NotFoundError):
        await resolver.resolve("tags", "Production")


@pytest.mark.asyncio
async def test_resolve_first_match_wins(rmock, resolver):
    # documented behavior: duplicated names resolve to the first record returned
    rmock.get(
        VMS_PATTERN,
        payload=[{"$key": 9, "name": "web"}, {"$key": 4, "name": "web"}],
    )
    assert await resolver.resolve("vms", "web") == ResourceReference("vms", 9)


@pytest.mark.asyncio
async def test_resolve_single_object_response(rmock, resolver):
    rmock.get(VMS_PATTERN, payload={"$key": 12, "name": "db"})
    assert await resolver.resolve("vms", "db") == ResourceReference("vms", 12)


@pytest.mark.asyncio
async def test_resolve_api_error_propagates(rmock, resolver):
    rmock.get(TAGS_PATTERN, status=500, body="oops")
    with pytest.raises(APIError):
        await resolver.resolve("tags", "Production")


@pytest.mark.asyncio
async def test_concurrent_resolutions_converge(rmock, resolver, cache):
    rmock.get(TAGS_PATTERN, payload=[{"$key": 3, "name": "Production"}], repeat=True)
    results = await asyncio.gather(
        resolver.resolve("tags", "Production"), resolver.resolve("tags", "Production")
    )
    assert results[0] == results[1] == ResourceReference("tags", 3)
    assert cache.get_key("tags", "Production") == 3


@pytest.mark.asyncio
async def test_display_name_from_cache(rmock, resolver, cache):
    cache.put("vms", "web", 9)
    assert await resolver.display_name(ResourceReference("vms", 9)) == "web"
    assert requests_made(rmock) == []


@pytest.mark.asyncio
async def test_display_name_lookup(rmock, resolver, cache):
    rmock.get(VMS_PATTERN, payload=[{"$key": 42, "name": "db"}])
    assert await resolver.display_name(ResourceReference("vms", 42)) == "db"
    [(_, url, _)] = requests_made(rmock)
    assert url.query["filter"] == "$key eq 42"
    assert url.query["limit"] == "1"
    assert cache.get_key("vms", "db") == 42


@pytest.mark.asyncio
async def test_display_name_unknown(rmock, resolver):
    rmock.get(VMS_PATTERN, payload=[])
    assert await resolver.display_name(ResourceReference("vms", 42)) is None
