from __future__ import annotations

from typing import Callable, Hashable, Iterable, TypeVar

T = TypeVar("T")


def reconcile(
    previous: Iterable[T],
    fresh: Iterable[T],
    *,
    key: Callable[[T], Hashable],
    keep: Callable[[T], bool],
) -> tuple[T, ...]:
    """Merge ``fresh`` measurements into ``previous``.

    Entries of ``previous`` rejected by ``keep`` are evicted. Each accepted
    fresh entry replaces any entry with the same key and moves to the end, so
    the result is in insertion/update order with unique keys. Fresh entries
    rejected by ``keep`` are not added.
    """
    merged: dict[Hashable, T] = {}
    for item in previous:
        if keep(item):
            merged[key(item)] = item

    for item in fresh:
        if not keep(item):
            continue
        item_key = key(item)
        merged.pop(item_key, None)
        merged[item_key] = item

    return tuple(merged.values())
