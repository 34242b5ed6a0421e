"""Thread-safe building blocks: atomics, once-only calls, object pools, a concurrent map."""

from __future__ import annotations

import threading
from typing import Any, Callable, Dict, Generic, Hashable, List, Optional, Tuple, TypeVar

T = TypeVar("T")


class AtomicInt:
    """An integer whose operations are indivisible with respect to other threads."""

    def __init__(self, value: int = 0) -> None:
        self._value = value
        self._lock = threading.Lock()

    def load(self) -> int:
        """Return the current value."""
        with self._lock:
            return self._value

    def store(self, value: int) -> None:
        """Unconditionally replace the value."""
        with self._lock:
            self._value = value

    def add(self, delta: int) -> int:
        """Add ``delta`` and return the new value."""
        with self._lock:
            self._value += delta
            return self._value

    def swap(self, value: int) -> int:
        """Store ``value`` and return the previous one."""
        with self._lock:
            previous, self._value = self._value, value
            return previous

    def compare_and_swap(self, old: int, new: int) -> bool:
        """Set the value to ``new`` only if it currently equals ``old``."""
        with self._lock:
            if self._value != old:
                return False
            self._value = new
            return True

    def __repr__(self) -> str:
        return f"AtomicInt({self.load()})"


class AtomicBool:
    """A boolean flag with atomic load and store."""

    def __init__(self, value: bool = False) -> None:
        self._value = bool(value)
        self._lock = threading.Lock()

    def load(self) -> bool:
        """Return the current flag."""
        with self._lock:
            return self._value

    def store(self, value: bool) -> None:
        """Set the flag."""
        with self._lock:
            self._value = bool(value)

    def __repr__(self) -> str:
        return f"AtomicBool({self.load()})"


class AtomicValue:
    """Holds an immutable value of one consistent type, replaced atomically.

    Storing ``None`` raises :class:`ValueError`; storing a value of a type
    other than the first one stored raises :class:`TypeError`.
    """

    def __init__(self) -> None:
        self._value: Any = None
        self._type: Optional[type] = None
        self._lock = threading.Lock()

    def _check(self, value: Any, action: str) -> None:
        if value is None:
            raise ValueError(f"{action} of nil value into AtomicValue")
        if self._type is not None and type(value) is not self._type:
            raise TypeError(
                f"{action} of inconsistently typed value into AtomicValue: "
                f"expected {self._type.__name__}, got {type(value).__name__}"
            )

    def load(self) -> Any:
        """Return the stored value, or ``None`` if nothing was stored yet."""
        with self._lock:
            return self._value

    def store(self, value: Any) -> None:
        """Replace the stored value."""
        with self._lock:
            self._check(value, "store")
            self._type = type(value)
            self._value = value

    def swap(self, value: Any) -> Any:
        """Store ``value`` and return the previous one (``None`` if empty)."""
        with self._lock:
            self._check(value, "swap")
            self._type = type(value)
            previous, self._value = self._value, value
            return previous

    def compare_and_swap(self, old: Any, new: Any) -> bool:
        """Replace the value with ``new`` only if it currently equals ``old``."""
        with self._lock:
            self._check(new, "compare and swap")
            if old is not None and type(old) is not type(new):
                raise TypeError("compare and swap of inconsistently typed values")
            if self._value is None:
                if old is not None:
                    return False
            elif self._value != old:
                return False
            self._type = type(new)
            self._value = new
            return True


class Once:
    """Runs a function exactly once, however many threads ask for it.

    A call that raises still counts as the one run.
    """

    def __init__(self) -> None:
        self._done = False
        self._lock = threading.Lock()

    def do(self, func: Callable[[], Any]) -> None:
        """Call ``func`` if no earlier call to :meth:`do` has run; otherwise do nothing.

        Callers that arrive while the first call is running wait for it to finish.
        """
        if self._done:
            return
        with self._lock:
            if self._done:
                return
            try:
                func()
            finally:
                self._done = True


class ObjectPool(Generic[T]):
    """A cache of reusable temporary objects, created by ``factory`` when empty."""

    def __init__(self, factory: Callable[[], T]) -> None:
        self._factory = factory
        self._free: List[T] = []
        self._lock = threading.Lock()

    def get(self) -> T:
        """Take an object from the pool, creating one if none is free."""
        with self._lock:
            if self._free:
                return self._free.pop()
        return self._factory()

    def put(self, item: T) -> None:
        """Return an object to the pool for later reuse."""
        with self._lock:
            self._free.append(item)


class ConcurrentMap:
    """A dictionary safe for use from many threads without external locking."""

    def __init__(self) -> None:
        self._data: Dict[Hashable, Any] = {}
        self._lock = threading.Lock()

    def store(self, key: Hashable, value: Any) -> None:
        """Set ``key`` to ``value``."""
        with self._lock:
            self._data[key] = value

    def load(self, key: Hashable) -> Any:
        """Return the value for ``key``; raise :class:`KeyError` if absent."""
        with self._lock:
            return self._data[key]

    def load_or_store(self, key: Hashable, value: Any) -> Tuple[Any, bool]:
        """Return ``(existing, True)`` if ``key`` is present, else store and return ``(value, False)``."""
        with self._lock:
            if key in self._data:
                return self._data[key], True
            self._data[key] = value
            return value, False

    def delete(self, key: Hashable) -> None:
        """Remove ``key`` if present."""
        with self._lock:
            self._data.pop(key, None)

    def load_and_delete(self, key: Hashable) -> Any:
        """Remove ``key`` and return its value; raise :class:`KeyError` if absent."""
        with self._lock:
            return self._data.pop(key)

    def items(self) -> List[Tuple[Hashable, Any]]:
        """Return a snapshot of the key-value pairs."""
        with self._lock:
            return list(self._data.items())

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._data

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)