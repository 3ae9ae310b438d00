"""Shared type aliases and typed dictionaries."""

from __future__ import annotations

from typing import TypeAlias, TypedDict

JSONValue: TypeAlias = (
    str | int | float | bool | None | list["JSONValue"] | dict[str, "JSONValue"]
)
JSONObject: TypeAlias = dict[str, JSONValue]


class StoreHealth(TypedDict, total=False):
    """Document store health payload."""

    healthy: bool
    backend: str
    error: str
    database: str
    container: str
    partitions: int
    documents: int
