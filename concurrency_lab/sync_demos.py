"""Demonstrations of mutexes, read-write locks, wait groups, once, conditions, pools and atomics."""

from __future__ import annotations

import argparse
import io
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Sequence

from .primitives import AtomicBool, AtomicInt, AtomicValue, ConcurrentMap, ObjectPool, Once


class _ReadWriteLock:
    """Many concurrent readers or one exclusive writer."""

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._readers = 0
        self._writing = False

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writing:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            while self._writing or self._readers:
                self._cond.wait()
            self._writing = True
        try:
            yield
        finally:
            with self._cond:
                self._writing = False
                self._cond.notify_all()


def count_with_mutex(workers: int = 1000) -> int:
    """Increment a shared counter once from each of ``workers`` tasks under a lock."""
    lock = threading.Lock()
    counter = 0

    def increment() -> None:
        nonlocal counter
        with lock:
            counter += 1

    with ThreadPoolExecutor(max_workers=32) as executor:
        for _ in range(workers):
            executor.submit(increment)
    return counter


def read_while_writing(readers: int = 5) -> List[str]:
    """Run ``readers`` concurrent readers and one writer over a shared cache.

    Returns the event lines in the order they happened.
    """
    lock = _ReadWriteLock()
    cache: Dict[str, str] = {"lang": "Go"}
    events: List[str] = []
    events_lock = threading.Lock()

    def record(line: str) -> None:
        with events_lock:
            events.append(line)

    def reader(reader_id: int) -> None:
        with lock.read():
            record(f"reader{reader_id}: lang={cache['lang']}")

    def writer() -> None:
        with lock.write():
            cache["lang"] = "Go 1.21"
            record("writer:  updated lang")

    threads = [threading.Thread(target=reader, args=(i,)) for i in range(readers)]
    threads.append(threading.Thread(target=writer))
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    return events


def run_workers(count: int = 5) -> List[int]:
    """Start workers 1..count, each sleeping ``id * 10`` ms; return ids in completion order."""
    finished: List[int] = []
    lock = threading.Lock()

    def work(worker_id: int) -> None:
        time.sleep(worker_id * 0.01)
        with lock:
            finished.append(worker_id)

    threads = [threading.Thread(target=work, args=(i,)) for i in range(1, count + 1)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    return finished


def consume_one(item: int = 42, delay: float = 0.03) -> int:
    """Have a consumer wait on a condition until a producer, after ``delay``, hands it ``item``."""
    cond = threading.Condition()
    queue: List[int] = []
    received: List[int] = []

    def consumer() -> None:
        with cond:
            while not queue:
                cond.wait()
            received.append(queue.pop(0))

    thread = threading.Thread(target=consumer)
    thread.start()
    time.sleep(delay)
    with cond:
        queue.append(item)
        cond.notify()
    thread.join()
    return received[0]


def broadcast_start(workers: int = 4, delay: float = 0.04) -> List[int]:
    """Release ``workers`` waiting threads at once; return their ids in start order."""
    cond = threading.Condition()
    ready = False
    started: List[int] = []
    started_lock = threading.Lock()

    def worker(worker_id: int) -> None:
        with cond:
            while not ready:
                cond.wait()
        with started_lock:
            started.append(worker_id)

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(1, workers + 1)]
    for thread in threads:
        thread.start()
    time.sleep(delay)
    with cond:
        ready = True
        cond.notify_all()
    for thread in threads:
        thread.join()
    return started


@dataclass(frozen=True)
class Database:
    """A stand-in for a shared database connection."""

    dsn: str


_db_once = Once()
_db_instance: Optional[Database] = None


def get_db() -> Database:
    """Return the shared database connection, creating it on first use."""

    def connect() -> None:
        global _db_instance
        print("  [singleton] connecting to database...")
        _db_instance = Database(dsn="postgres://localhost/mydb")

    _db_once.do(connect)
    assert _db_instance is not None
    return _db_instance


@dataclass(frozen=True)
class _AppConfig:
    max_conns: int
    timeout: int


def _section(title: str) -> None:
    print(f"\n━━━ {title} ━━━")


def _demo_rwmutex() -> None:
    for line in read_while_writing():
        print(f"  {line}")


def _demo_waitgroup() -> None:
    for worker_id in run_workers():
        print(f"  worker{worker_id} done")
    print("all workers finished")


def _demo_once() -> None:
    once = Once()
    print_lock = threading.Lock()
    init_calls = AtomicInt()

    def init() -> None:
        init_calls.add(1)
        with print_lock:
            print("  expensive init — runs exactly once")

    def run(thread_id: int) -> None:
        once.do(init)
        with print_lock:
            print(f"  thread{thread_id}: init done")

    threads = [threading.Thread(target=run, args=(i,)) for i in range(10)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    print(f"  init ran {init_calls.load()} time(s)")


def _demo_cond_signal() -> None:
    item = consume_one()
    print("  producer: sent 42")
    print("  consumer: got", item)


def _demo_cond_broadcast() -> None:
    started = broadcast_start()
    print("  broadcast: ready=true")
    for worker_id in started:
        print(f"  worker{worker_id}: starting work")


def _demo_pool() -> None:
    def new_buffer() -> io.StringIO:
        print("  pool: allocating new buffer")
        return io.StringIO()

    def reset(buf: io.StringIO) -> None:
        buf.seek(0)
        buf.truncate(0)

    pool: ObjectPool[io.StringIO] = ObjectPool(new_buffer)

    for word in ("hello", "world"):
        buf = pool.get()
        buf.write(word)
        print("  got:", buf.getvalue())
        reset(buf)
        pool.put(buf)

    print_lock = threading.Lock()

    def borrow(thread_id: int) -> None:
        buf = pool.get()
        try:
            buf.write(f"thread{thread_id}")
            with print_lock:
                print("  concurrent:", buf.getvalue())
        finally:
            reset(buf)
            pool.put(buf)

    threads = [threading.Thread(target=borrow, args=(i,)) for i in range(5)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()


def _demo_sync_map() -> None:
    registry = ConcurrentMap()
    services = [
        ("payments", "10.0.0.1:8080"),
        ("shipping", "10.0.0.2:8080"),
        ("inventory", "10.0.0.3:8080"),
    ]
    threads = [threading.Thread(target=registry.store, args=svc) for svc in services]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    print("  payments:", registry.load("payments"))
    if "unknown" not in registry:
        print("  unknown: not found")

    actual, loaded = registry.load_or_store("payments", "NEW_ADDR")
    print(f"  LoadOrStore payments: value={actual}  loaded={str(loaded).lower()}")
    actual, loaded = registry.load_or_store("reviews", "10.0.0.4:8080")
    print(f"  LoadOrStore reviews:  value={actual}  loaded={str(loaded).lower()}")

    registry.delete("inventory")
    print("  range:")
    for key, value in registry.items():
        print(f"    {key} → {value}")

    try:
        print("  LoadAndDelete shipping:", registry.load_and_delete("shipping"))
    except KeyError:
        pass


def _demo_atomic() -> None:
    counter = AtomicInt()
    with ThreadPoolExecutor(max_workers=32) as executor:
        for _ in range(1000):
            executor.submit(counter.add, 1)
    print("  counter:", counter.load())

    counter.store(0)
    previous = counter.swap(99)
    print(f"  after Swap(99): prev={previous} current={counter.load()}")

    flag = AtomicBool()
    flag.store(True)
    print("  flag:", str(flag.load()).lower())

    state = AtomicInt()
    for old, new in ((0, 1), (0, 1), (1, 2)):
        swapped = state.compare_and_swap(old, new)
        print(f"  CAS({old}→{new}): swapped={str(swapped).lower()} state={state.load()}")


def _demo_atomic_value() -> None:
    cfg = AtomicValue()
    cfg.store(_AppConfig(max_conns=10, timeout=30))
    current = cfg.load()
    print(f"  config v1: maxConns={current.max_conns} timeout={current.timeout}")

    cfg.store(_AppConfig(max_conns=50, timeout=5))
    current = cfg.load()
    print(f"  config v2: maxConns={current.max_conns} timeout={current.timeout}")

    previous = cfg.swap(_AppConfig(max_conns=100, timeout=1))
    print(f"  after Swap: prev maxConns={previous.max_conns}  new maxConns={cfg.load().max_conns}")

    swapped = cfg.compare_and_swap(cfg.load(), _AppConfig(max_conns=200, timeout=1))
    print(f"  CAS: swapped={str(swapped).lower()}  maxConns={cfg.load().max_conns}")


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run every synchronisation demo in turn."""
    parser = argparse.ArgumentParser(prog="sync-demos", description="Synchronisation primitive demos.")
    parser.parse_args(argv)

    _section("sync.Mutex")
    print("counter:", count_with_mutex())

    _section("sync.RWMutex")
    _demo_rwmutex()

    _section("sync.WaitGroup")
    _demo_waitgroup()

    _section("sync.Once")
    _demo_once()

    _section("sync.Cond — Signal")
    _demo_cond_signal()

    _section("sync.Cond — Broadcast")
    _demo_cond_broadcast()

    _section("sync.Pool")
    _demo_pool()

    _section("sync.Map")
    _demo_sync_map()

    _section("sync/atomic — counters & CAS")
    _demo_atomic()

    _section("sync/atomic — Value")
    _demo_atomic_value()
    return 0