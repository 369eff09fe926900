"""
DSA utilities
=============

Small, explicit algorithm helpers used by the ranking and pipeline code.

Included:
- Merge Sort (stable, O(n log n)) for ordering category rows
- Heap-based k-largest selection for top-K floors
- Fixed-size chunking for sharded (parallel) aggregation
"""

from __future__ import annotations
from typing import Callable, Iterable, Iterator, List, Sequence, TypeVar
import heapq

T = TypeVar("T")


def merge_sort(arr: Sequence[T], key: Callable[[T], object] = lambda x: x, reverse: bool = False) -> List[T]:
    """Stable merge sort.

    Equal keys keep their input order in both directions, so a secondary
    order can be applied by sorting on it first.
    """
    if len(arr) <= 1:
        return list(arr)
    mid = len(arr) // 2
    left = merge_sort(arr[:mid], key=key, reverse=reverse)
    right = merge_sort(arr[mid:], key=key, reverse=reverse)
    return _merge(left, right, key=key, reverse=reverse)


def _merge(left: List[T], right: List[T], key: Callable[[T], object], reverse: bool) -> List[T]:
    out: List[T] = []
    # i and j are pointers into each sorted list
    i = j = 0
    while i < len(left) and j < len(right):
        a, b = key(left[i]), key(right[j])
        take_left = (a >= b) if reverse else (a <= b)
        if take_left:
            out.append(left[i]); i += 1
        else:
            out.append(right[j]); j += 1
    out.extend(left[i:])
    out.extend(right[j:])
    return out


def k_largest(values: Iterable[float], k: int) -> List[float]:
    """The k largest values, largest first (min-heap of size k)."""
    if k < 1:
        raise ValueError("k must be >= 1")
    heap: List[float] = []
    for v in values:
        if len(heap) < k:
            heapq.heappush(heap, v)
        elif v > heap[0]:
            heapq.heapreplace(heap, v)
    heap.sort(reverse=True)
    return heap


def chunked(items: Sequence[T], size: int) -> Iterator[Sequence[T]]:
    """Yield consecutive slices of at most `size` items."""
    if size < 1:
        raise ValueError("chunk size must be >= 1")
    for start in range(0, len(items), size):
        yield items[start:start + size]
