"""Sum, partition and group-by helpers over sequences."""

from collections import defaultdict
from collections.abc import Callable, Hashable, Iterable
from typing import TypeVar

T = TypeVar("T")
K = TypeVar("K", bound=Hashable)


def sum_by(items: Iterable[T], key: Callable[[T], float]) -> float:
    """Sum ``key(item)`` over ``items``; 0.0 for an empty sequence."""
    return sum((key(item) for item in items), 0.0)


def partition(items: Iterable[T], predicate: Callable[[T], bool]) -> tuple[list[T], list[T]]:
    """
    Split ``items`` into those matching ``predicate`` and the rest.

    Order within each part follows the input order.

    Returns:
        Tuple of (matching, not_matching)
    """
    matching: list[T] = []
    rest: list[T] = []
    for item in items:
        (matching if predicate(item) else rest).append(item)
    return matching, rest


def group_by(items: Iterable[T], key: Callable[[T], K]) -> dict[K, list[T]]:
    """Group ``items`` by ``key(item)``, preserving first-seen key order."""
    groups: defaultdict[K, list[T]] = defaultdict(list)
    for item in items:
        groups[key(item)].append(item)
    return dict(groups)
