"""Race conditions and their fixes: lost updates, shared maps, check-then-act, publication."""

from __future__ import annotations

import argparse
import queue
import threading
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Protocol, Sequence

from .primitives import AtomicInt, AtomicValue, ConcurrentMap, Once
from .sync_demos import _ReadWriteLock

GOROUTINES = 100
INCREMENTS = 10_000
EXPECTED = GOROUTINES * INCREMENTS


def _run_threads(count: int, target: Callable[..., None], *, with_id: bool = False) -> None:
    threads = [
        threading.Thread(target=target, args=(i,) if with_id else ())
        for i in range(count)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()


# ── Check-then-act ────────────────────────────────────────────────────────────


class _Account(Protocol):
    balance: int

    def withdraw(self, amount: int) -> bool: ...


class RacyAccount:
    """An account whose withdrawal checks and deducts in two unguarded steps."""

    def __init__(self, balance: int = 0) -> None:
        self.balance = balance

    def withdraw(self, amount: int) -> bool:
        """Deduct ``amount`` if the balance looks sufficient; not safe across threads."""
        if self.balance >= amount:  # check
            # another thread may pass the same check here
            self.balance -= amount  # act
            return True
        return False


class SafeAccount:
    """An account whose lock spans the whole check-and-act sequence."""

    def __init__(self, balance: int = 0) -> None:
        self._lock = threading.Lock()
        self._balance = balance

    @property
    def balance(self) -> int:
        with self._lock:
            return self._balance

    def withdraw(self, amount: int) -> bool:
        """Deduct ``amount`` if the balance covers it; return whether it did."""
        with self._lock:
            if self._balance >= amount:
                self._balance -= amount
                return True
            return False

    def deposit(self, amount: int) -> None:
        """Add ``amount`` to the balance."""
        with self._lock:
            self._balance += amount


def run_withdrawals(account: _Account, attempts: int = 10, amount: int = 100) -> int:
    """Try ``attempts`` concurrent withdrawals of ``amount``; return how many succeeded."""
    successes = AtomicInt()

    def attempt() -> None:
        if account.withdraw(amount):
            successes.add(1)

    _run_threads(attempts, attempt)
    return successes.load()


# ── Counters ──────────────────────────────────────────────────────────────────


def count_racy(workers: int = GOROUTINES, increments: int = INCREMENTS) -> int:
    """Increment a shared counter with an unguarded read-modify-write; updates may be lost."""
    counter = 0

    def work() -> None:
        nonlocal counter
        for _ in range(increments):
            value = counter  # load
            counter = value + 1  # add and store: another thread may interleave

    _run_threads(workers, work)
    return counter


def count_with_lock(workers: int = GOROUTINES, increments: int = INCREMENTS) -> int:
    """Increment a shared counter inside a lock; no update is lost."""
    lock = threading.Lock()
    counter = 0

    def work() -> None:
        nonlocal counter
        for _ in range(increments):
            with lock:
                counter += 1

    _run_threads(workers, work)
    return counter


def count_with_atomic(workers: int = GOROUTINES, increments: int = INCREMENTS) -> int:
    """Increment an atomic counter; no update is lost."""
    counter = AtomicInt()

    def work() -> None:
        for _ in range(increments):
            counter.add(1)

    _run_threads(workers, work)
    return counter.load()


_CLOSE = object()


def count_with_actor(workers: int = GOROUTINES, increments: int = INCREMENTS) -> int:
    """Send increment requests to a single owner thread over a bounded queue."""
    requests: "queue.Queue[object]" = queue.Queue(maxsize=512)
    result: List[int] = []

    def actor() -> None:
        counter = 0
        while requests.get() is not _CLOSE:
            counter += 1
        result.append(counter)

    owner = threading.Thread(target=actor)
    owner.start()

    def work() -> None:
        for _ in range(increments):
            requests.put(None)

    _run_threads(workers, work)
    requests.put(_CLOSE)
    owner.join()
    return result[0]


# ── Maps ──────────────────────────────────────────────────────────────────────


def fill_locked_map(writers: int = 5) -> Dict[str, int]:
    """Have writers set ``key<i>`` to ``i * 10`` while as many readers look, under a read-write lock."""
    lock = _ReadWriteLock()
    data: Dict[str, int] = {}

    def write(writer_id: int) -> None:
        with lock.write():
            data[f"key{writer_id}"] = writer_id * 10

    def read(reader_id: int) -> None:
        with lock.read():
            data.get(f"key{reader_id}")

    threads = [threading.Thread(target=write, args=(i,)) for i in range(writers)]
    threads += [threading.Thread(target=read, args=(i,)) for i in range(writers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    with lock.read():
        return dict(data)


def fill_concurrent_map(writers: int = 5) -> ConcurrentMap:
    """Have writers set ``key<i>`` to ``i * 10`` in a concurrent map with no outside lock."""
    data = ConcurrentMap()
    _run_threads(writers, lambda i: data.store(f"key{i}", i * 10), with_id=True)
    return data


# ── Publication ───────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Config:
    """Connection settings shared between threads; ``timeout`` is in seconds."""

    host: str
    port: int
    timeout: float


def _default_config() -> Config:
    return Config(host="localhost", port=5432, timeout=30.0)


_racy_instance: Optional[Config] = None
_racy_lock = threading.Lock()


def get_config_racy() -> Config:
    """Return the shared config via double-checked locking with an unguarded first check."""
    global _racy_instance
    if _racy_instance is not None:  # unsynchronised read
        return _racy_instance
    with _racy_lock:
        if _racy_instance is None:
            _racy_instance = _default_config()
        return _racy_instance


def reset_racy_config() -> None:
    """Forget the config created by :func:`get_config_racy`."""
    global _racy_instance
    with _racy_lock:
        _racy_instance = None


_config_once = Once()
_once_instance: Optional[Config] = None


def get_config_once() -> Config:
    """Return the shared config, created exactly once however many threads ask."""

    def create() -> None:
        global _once_instance
        _once_instance = _default_config()

    _config_once.do(create)
    assert _once_instance is not None
    return _once_instance


_published = AtomicValue()


def publish_config(config: Config) -> None:
    """Atomically replace the published config."""
    _published.store(config)


def read_config() -> Optional[Config]:
    """Return the published config, or ``None`` if none was published yet."""
    return _published.load()


# ── Demo runner ───────────────────────────────────────────────────────────────


def _section(title: str) -> None:
    print(f"\n━━━ {title} ━━━")


def _print_count(expected: int, got: int) -> None:
    print(f"  expected: {expected}  got: {got}  ✓")


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run every race-condition demo in turn."""
    parser = argparse.ArgumentParser(prog="races", description="Race conditions and their fixes.")
    parser.add_argument("--workers", type=int, default=GOROUTINES)
    parser.add_argument("--increments", type=int, default=INCREMENTS)
    args = parser.parse_args(argv)
    expected = args.workers * args.increments

    _section("Counter race — lost updates")
    got = count_racy(args.workers, args.increments)
    print(f"  expected: {expected}  got: {got}  lost updates: {expected - got}")

    _section("Counter fix — lock")
    _print_count(expected, count_with_lock(args.workers, args.increments))

    _section("Counter fix — atomic")
    _print_count(expected, count_with_atomic(args.workers, args.increments))

    _section("Counter fix — queue (actor)")
    _print_count(expected, count_with_actor(args.workers, args.increments))

    _section("Map race — unsynchronised concurrent access")
    print("  racy map code shown below — not executed:")
    print(
        "\n"
        "  m = {}\n"
        "  Thread(target=lambda: m.update(a=m.get('a', 0) + 1))  # writer thread\n"
        "  Thread(target=lambda: m.get('b'))                      # reader thread\n"
        "  # → lost or inconsistent updates"
    )

    _section("Map fix — read-write lock")
    print(f"  map has {len(fill_locked_map())} entries  ✓")

    _section("Map fix — concurrent map")
    print(f"  concurrent map has {len(fill_concurrent_map())} entries  ✓")

    _section("Check-then-act race (TOCTOU)")
    racy = RacyAccount(balance=100)
    successes = run_withdrawals(racy, 10, 100)
    print(f"  balance: {racy.balance}  successful withdrawals: {successes}  (expected balance ≥ 0)")

    _section("Check-then-act fix — lock the whole operation")
    safe = SafeAccount(balance=100)
    successes = run_withdrawals(safe, 10, 100)
    print(f"  balance: {safe.balance}  successful withdrawals: {successes}  ✓")

    _section("Publication hazard — partially visible object")
    reset_racy_config()
    print("  racy double-checked locking — shown but not safe to run concurrently:")
    print(
        "\n"
        "  if instance is not None:   # unsynchronised read\n"
        "      return instance         # may see a half-built object\n"
        "  with lock:\n"
        "      if instance is None:\n"
        "          instance = Config(...)"
    )
    cfg = get_config_racy()
    print(f"  (sequential call) host={cfg.host} port={cfg.port}")

    _section("Publication fix — once")
    results: List[Optional[Config]] = [None] * 10

    def fetch(index: int) -> None:
        results[index] = get_config_once()

    _run_threads(10, fetch, with_id=True)
    first = results[0]
    assert first is not None
    all_same = all(r is first and r.host and r.port for r in results)
    print(
        f"  all threads got same config: {str(all_same).lower()}  "
        f"host={first.host} port={first.port}  ✓"
    )
    return 0