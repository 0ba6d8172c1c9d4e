"""
Core module for api_verge.

This module contains the request pipeline, the filter builder, the response normalizer,
the error classifier and the resource reference resolver.
"""

from .connection import Connection, StaticConnection, auth_header_value
from .data_access import RequestPipeline, build_url
from .exceptions import (
    APIError,
    APIErrorKind,
    ConfigError,
    NotFoundError,
    VergeError,
    classify,
    extract_message,
    handle_exception,
    tolerate_not_found,
)
from .filters import (
    BooleanGroup,
    Comparison,
    Contains,
    ExactMatch,
    FilterCriterion,
    filter_wildcard,
    name_criterion,
    render,
    render_filter,
)
from .normalize import drop_incomplete, normalize
from .query import QuerySpec, build_query_string, field_alias
from .references import (
    ByKey,
    ByName,
    ByReference,
    NameKeyCache,
    ReferenceResolver,
    ResourceReference,
    reference_input,
)
from .utils import to_epoch, to_epoch_micro

__all__ = [
    "APIError",
    "APIErrorKind",
    "BooleanGroup",
    "ByKey",
    "ByName",
    "ByReference",
    "Comparison",
    "ConfigError",
    "Connection",
    "Contains",
    "ExactMatch",
    "FilterCriterion",
    "NameKeyCache",
    "NotFoundError",
    "QuerySpec",
    "ReferenceResolver",
    "RequestPipeline",
    "ResourceReference",
    "StaticConnection",
    "VergeError",
    "auth_header_value",
    "build_query_string",
    "build_url",
    "classify",
    "drop_incomplete",
    "extract_message",
    "field_alias",
    "filter_wildcard",
    "handle_exception",
    "name_criterion",
    "normalize",
    "reference_input",
    "render",
    "render_filter",
    "to_epoch",
    "to_epoch_micro",
    "tolerate_not_found",
]
