"""Everyday list operations: copy, delete, insert, filter, reverse and de-duplication."""

from __future__ import annotations

import argparse
from typing import Callable, List, MutableSequence, Optional, Sequence, TypeVar

T = TypeVar("T")


def _check_index(items: Sequence[object], index: int) -> None:
    if not 0 <= index < len(items):
        raise IndexError(f"index {index} out of range for length {len(items)}")


def copy_into(dst: MutableSequence[T], src: Sequence[T]) -> int:
    """Copy the first ``min(len(dst), len(src))`` items of ``src`` over ``dst``; return the count."""
    count = min(len(dst), len(src))
    dst[:count] = list(src[:count])
    return count


def delete_at(items: List[T], index: int) -> None:
    """Remove the item at ``index``, keeping the order of the rest."""
    _check_index(items, index)
    del items[index]


def delete_swap(items: List[T], index: int) -> None:
    """Remove the item at ``index`` by moving the last item into its place; order changes."""
    _check_index(items, index)
    items[index] = items[-1]
    items.pop()


def insert_at(items: List[T], index: int, value: T) -> None:
    """Insert ``value`` before position ``index``; ``index`` may equal the length."""
    if not 0 <= index <= len(items):
        raise IndexError(f"index {index} out of range for length {len(items)}")
    items.insert(index, value)


def filter_in_place(items: List[T], predicate: Callable[[T], bool]) -> None:
    """Keep only the items for which ``predicate`` holds, in their original order."""
    items[:] = [item for item in items if predicate(item)]


def reverse_in_place(items: List[T]) -> None:
    """Reverse ``items`` in place."""
    items.reverse()


def dedup_sorted(items: Sequence[T]) -> List[T]:
    """Return ``items`` with runs of equal neighbours collapsed to one."""
    result: List[T] = []
    for item in items:
        if not result or item != result[-1]:
            result.append(item)
    return result


def delete_range(items: List[T], start: int, stop: int) -> None:
    """Remove ``items[start:stop]``; raise :class:`IndexError` unless ``0 <= start <= stop <= len``."""
    if not 0 <= start <= stop <= len(items):
        raise IndexError(f"range [{start}:{stop}] out of bounds for length {len(items)}")
    del items[start:stop]


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Demonstrate each list operation."""
    parser = argparse.ArgumentParser(prog="sliceops", description="List operation demos.")
    parser.parse_args(argv)

    print("\n━━━ Operations — copy, delete, insert, filter, reverse, dedup ━━━")

    print("  copy — min(len(dst), len(src)) items:")
    src = [1, 2, 3, 4, 5]
    dst = [0] * 3
    count = copy_into(dst, src)
    print(f"  copy(dst[3], src[5]) = {count}  dst={dst}")
    dst2 = [0] * 7
    count2 = copy_into(dst2, src)
    print(f"  copy(dst[7], src[5]) = {count2}  dst={dst2}")

    overlap = [1, 2, 3, 4, 5]
    overlap[1:-1] = overlap[2:]
    overlap.pop()
    print("  shift-left via slice assignment:", overlap)

    print("\n  Delete at index i (order preserved) — O(n):")
    d1 = [10, 20, 30, 40, 50]
    delete_at(d1, 2)
    print("  result:", d1)

    print("\n  Delete at index i (swap with last) — O(1), changes order:")
    d2 = [10, 20, 30, 40, 50]
    delete_swap(d2, 2)
    print("  result:", d2)

    print("\n  Insert value at index i:")
    ins = [1, 2, 4, 5]
    insert_at(ins, 2, 3)
    print("  result:", ins)

    print("\n  Filter in place:")
    vals = [1, 2, 3, 4, 5, 6, 7, 8]
    filter_in_place(vals, lambda v: v % 2 == 0)
    print("  evens:", vals)

    print("\n  Reverse in place:")
    rev = [1, 2, 3, 4, 5]
    reverse_in_place(rev)
    print("  reversed:", rev)

    print("\n  Deduplicate a sorted list:")
    print("  deduped:", dedup_sorted([1, 1, 2, 3, 3, 3, 4, 5, 5]))

    print("\n  Built-in operations:")
    s = [5, 3, 1, 4, 2]
    s.sort()
    print("  sort:", s)
    print("  3 in s:", str(3 in s).lower())
    print("  s.index(4):", s.index(4))
    s2 = [10, 20, 30, 40, 50]
    delete_range(s2, 1, 3)
    print("  delete_range([10..50], 1, 3):", s2)
    print("  dedup_sorted([1, 1, 2, 3, 3]):", dedup_sorted([1, 1, 2, 3, 3]))
    return 0