"""Values that live only for a call versus values that outlive it."""

from __future__ import annotations

import argparse
from typing import Any, Callable, List, Optional, Sequence

_FIXED = (1, 2, 3, 4, 5)


def return_value() -> int:
    """Return a plain value; nothing keeps a reference to the local."""
    x = 42
    return x


def sum_array() -> int:
    """Sum a fixed, immutable tuple of five numbers."""
    return sum(_FIXED)


def return_reference() -> List[int]:
    """Return a fresh one-element list holding 42; the caller may keep and change it."""
    cell = [42]
    return cell


def closure_counter() -> Callable[[], int]:
    """Return a counter whose state is captured by a closure and outlives this call."""
    count = 0

    def counter() -> int:
        nonlocal count
        count += 1
        return count

    return counter


def box_value(value: Any) -> str:
    """Format any value as text."""
    return f"{value}"


def make_list(n: int) -> List[int]:
    """Return ``[0, 2, 4, ...]`` with ``n`` items; ``n`` must not be negative."""
    if n < 0:
        raise ValueError(f"length must not be negative, got {n}")
    return [i * 2 for i in range(n)]


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Show each kind of value and how long it lives."""
    parser = argparse.ArgumentParser(prog="escape", description="Short- and long-lived values.")
    parser.parse_args(argv)

    print("=== LOCAL ===")
    print(f"return_value()  → {return_value()}  (plain copy)")
    print(f"sum_array()     → {sum_array()}  (fixed tuple)")

    print("\n=== OUTLIVES THE CALL ===")
    cell = return_reference()
    print(f"return_reference() → {cell[0]}  id={id(cell):#x}  (kept by the caller)")
    counter = closure_counter()
    first, second = counter(), counter()
    print(f"closure_counter() → {first}, {second}  (state captured by the closure)")
    print(f"box_value(99) → {box_value(99)!r}  (formatted as text)")
    print(f"make_list(4)    → {make_list(4)}  (list built at run time)")
    return 0