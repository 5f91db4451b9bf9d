from __future__ import annotations

from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from collections.abc import Callable

T = TypeVar("T")
V = TypeVar("V")


def empty_list_factory_of(_: type[T]) -> Callable[[], list[T]]:
    def _factory() -> list[T]:
        return []

    return _factory


def empty_str_dict_factory_of(_: type[V]) -> Callable[[], dict[str, V]]:
    """Typed ``default_factory`` for ``dict[str, V]`` fields."""

    def _factory() -> dict[str, V]:
        return {}

    return _factory
