"""
Query string building for the platform API.

The API understands four query parameters: `filter`, `fields`, `sort` and `limit`.
"""

from dataclasses import dataclass
from urllib.parse import quote

SORT_DIRECTIONS = {"asc": "+", "+": "+", "desc": "-", "-": "-"}


def field_alias(relation: str, subfield: str, alias: str | None = None) -> str:
    """Field projection dereferencing a related resource, ie `machine#status as status`"""
    projection = f"{relation}#{subfield}"
    if alias:
        projection += f" as {alias}"
    return projection


@dataclass(frozen=True)
class QuerySpec:
    """Represents the query parameters of one API call."""

    filter: str | None = None
    fields: tuple[str, ...] = ()
    sort: tuple[tuple[str, str], ...] = ()
    limit: int | None = None

    def __post_init__(self):
        object.__setattr__(self, "fields", tuple(self.fields))
        object.__setattr__(self, "sort", tuple(tuple(s) for s in self.sort))
        if self.limit is not None and (
            isinstance(self.limit, bool) or not isinstance(self.limit, int) or self.limit < 1
        ):
            raise ValueError(f"limit must be a positive integer, got {self.limit!r}")
        for _, direction in self.sort:
            if direction not in SORT_DIRECTIONS:
                raise ValueError(
                    f"sort direction '{direction}' is not among {list(SORT_DIRECTIONS)}"
                )

    def to_params(self) -> dict[str, str]:
        """
        Render the query parameters in wire order.

        Returns:
            Ordered dict of `filter`, `fields`, `sort` and `limit`, absent parts omitted
        """
        params = {}
        if self.filter:
            params["filter"] = self.filter
        if self.fields:
            params["fields"] = ",".join(self.fields)
        if self.sort:
            params["sort"] = ",".join(
                f"{SORT_DIRECTIONS[direction]}{column}" for column, direction in self.sort
            )
        if self.limit is not None:
            params["limit"] = str(self.limit)
        return params


def build_query_string(params: dict[str, str]) -> str:
    # keys and values are encoded independently so that `&`, `=` or `#` in a filter
    # or a projection can't break the query string
    return "&".join(
        f"{quote(str(key), safe='')}={quote(str(value), safe='')}" for key, value in params.items()
    )
