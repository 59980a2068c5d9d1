"""Scope vocabulary of the gateway."""

from collections.abc import Iterable
from enum import StrEnum


class Scope(StrEnum):
    SEARCH = "search"
    LIST_SOURCES = "list_sources"
    GET_INFO = "get_info"


ALL_SCOPES: tuple[Scope, ...] = tuple(Scope)
DEFAULT_SCOPES: tuple[Scope, ...] = (Scope.SEARCH, Scope.LIST_SOURCES, Scope.GET_INFO)


def parse_scopes(scope: str | None) -> list[Scope]:
    """Parse a space-separated scope parameter.

    Unknown scopes are dropped. A missing parameter, or one containing no
    known scope, yields the default set.
    """
    if not scope:
        return list(DEFAULT_SCOPES)
    parsed = filter_scopes(scope.split())
    return parsed or list(DEFAULT_SCOPES)


def filter_scopes(values: Iterable[str]) -> list[Scope]:
    """Keep known scopes in first-seen order, without duplicates."""
    known = {s.value for s in Scope}
    result: list[Scope] = []
    for value in values:
        if value in known and Scope(value) not in result:
            result.append(Scope(value))
    return result


def intersect_scopes(requested: Iterable[str], granted: Iterable[str]) -> list[Scope]:
    """Scopes present in both lists, in requested order."""
    allowed = set(granted)
    return [s for s in filter_scopes(requested) if s.value in allowed]


def format_scopes(scopes: Iterable[str]) -> str:
    return " ".join(str(s) for s in scopes)
