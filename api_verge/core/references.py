"""
Typed resource references.

Cross-cutting features (tags, memberships...) point at resources of any family with a
`family/key` string, ie `vms/42`. This module parses and builds such references and
resolves user supplied names into them.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Union

from .. import config
from .connection import Connection
from .data_access import RequestPipeline
from .exceptions import NotFoundError
from .filters import Comparison, ExactMatch, render_filter
from .normalize import drop_incomplete
from .query import QuerySpec

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResourceReference:
    """Represents one resource instance of any family."""

    family: str
    key: int

    def __post_init__(self):
        if not isinstance(self.family, str) or not self.family or "/" in self.family:
            raise ValueError(f"invalid resource family: {self.family!r}")
        if isinstance(self.key, bool) or not isinstance(self.key, int) or self.key < 1:
            raise ValueError(f"resource key must be a positive integer, got {self.key!r}")

    def __str__(self) -> str:
        return f"{self.family}/{self.key}"

    @classmethod
    def parse(cls, text: str) -> "ResourceReference":
        _split = text.split("/")
        if len(_split) != 2:
            raise ValueError(f"reference '{text}' could not be parsed, expected `family/key`")
        family, key = _split
        # int() would also accept "+42", " 42" or "4_2"
        if not (key.isascii() and key.isdigit()):
            raise ValueError(f"reference '{text}' could not be parsed, key must be an integer")
        try:
            return cls(family, int(key))
        except ValueError as e:
            raise ValueError(f"reference '{text}' could not be parsed: {e}") from e


@dataclass(frozen=True)
class ByReference:
    reference: ResourceReference


@dataclass(frozen=True)
class ByKey:
    key: int


@dataclass(frozen=True)
class ByName:
    name: str


ReferenceInput = Union[ByReference, ByKey, ByName]


def reference_input(value) -> ReferenceInput:
    """
    Turn a raw identifier into a reference input.

    Accepted values are a `ResourceReference`, an already built input, a positive key
    (as an int or a string of digits), a `family/key` string, or any other non-empty
    string which is then a name.
    """
    if isinstance(value, (ByReference, ByKey, ByName)):
        return value
    if isinstance(value, ResourceReference):
        return ByReference(value)
    if isinstance(value, int) and not isinstance(value, bool):
        return ByKey(value)
    if isinstance(value, str) and value:
        if value.isascii() and value.isdigit():
            return ByKey(int(value))
        family, sep, key = value.partition("/")
        if sep and family and key.isascii() and key.isdigit():
            return ByReference(ResourceReference(family, int(key)))
        return ByName(value)
    raise ValueError(f"cannot resolve a resource reference from {value!r}")


class NameKeyCache:
    """Process local name <-> key lookups, per family. Entries are never invalidated."""

    def __init__(self):
        self._lock = threading.Lock()
        self._keys: dict[tuple[str, str], int] = {}
        self._names: dict[tuple[str, int], str] = {}

    def get_key(self, family: str, name: str) -> int | None:
        with self._lock:
            return self._keys.get((family, name))

    def get_name(self, family: str, key: int) -> str | None:
        with self._lock:
            return self._names.get((family, key))

    def put(self, family: str, name: str, key: int) -> None:
        # concurrent resolutions of the same name store the same value, last write wins
        with self._lock:
            self._keys[(family, name)] = key
            self._names[(family, key)] = name

    def clear(self) -> None:
        with self._lock:
            self._keys.clear()
            self._names.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._keys)


class ReferenceResolver:
    """Resolves identifiers of any shape into `ResourceReference`s."""

    def __init__(
        self,
        pipeline: RequestPipeline,
        connection: Connection,
        cache: NameKeyCache | None = None,
        key_field: str | None = None,
        name_field: str | None = None,
    ):
        self.pipeline = pipeline
        self.connection = connection
        self.cache = cache if cache is not None else NameKeyCache()
        self.key_field = key_field or config.KEY_FIELD
        self.name_field = name_field or config.NAME_FIELD

    async def resolve(self, family: str, value) -> ResourceReference:
        """
        Resolve a resource of `family` into a reference.

        Args:
            family: The family the value belongs to, unless it is already a reference
            value: A reference input, or a raw value accepted by `reference_input`

        Returns:
            The canonical reference

        Raises:
            NotFoundError: If no resource of `family` bears the given name
        """
        value = reference_input(value)
        if isinstance(value, ByReference):
            return value.reference
        if isinstance(value, ByKey):
            return ResourceReference(family, value.key)
        key = self.cache.get_key(family, value.name)
        if key is None:
            key = await self._lookup_key(family, value.name)
        return ResourceReference(family, key)

    async def _lookup_key(self, family: str, name: str) -> int:
        query = QuerySpec(
            filter=render_filter([ExactMatch(self.name_field, name)]),
            fields=(self.key_field, self.name_field),
        )
        records = drop_incomplete(
            await self.pipeline.execute("GET", family, self.connection, query=query),
            self.key_field,
        )
        if not records:
            raise NotFoundError(family, name)
        if len(records) > 1:
            # first match wins, callers requiring uniqueness have to check it themselves
            logger.debug(f"{len(records)} resources named '{name}' in '{family}', using the first")
        key = int(records[0][self.key_field])
        self.cache.put(family, name, key)
        return key

    async def display_name(self, reference: ResourceReference) -> str | None:
        """Name of the referenced resource, for messages. None if it has no name."""
        name = self.cache.get_name(reference.family, reference.key)
        if name is not None:
            return name
        query = QuerySpec(
            filter=render_filter([Comparison(self.key_field, "eq", reference.key)]),
            fields=(self.key_field, self.name_field),
            limit=1,
        )
        records = drop_incomplete(
            await self.pipeline.execute("GET", reference.family, self.connection, query=query),
            self.key_field,
        )
        if not records or records[0].get(self.name_field) is None:
            return None
        name = str(records[0][self.name_field])
        self.cache.put(reference.family, name, reference.key)
        return name
