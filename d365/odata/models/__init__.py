"""Data models."""

from .page import EntityInfo, ODataPage
from .query import QueryOptions, to_query_string

__all__ = [
    "EntityInfo",
    "ODataPage",
    "QueryOptions",
    "to_query_string",
]
