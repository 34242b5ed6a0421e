import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

import pytest

from concurrency_lab.primitives import (
    AtomicBool,
    AtomicInt,
    AtomicValue,
    ConcurrentMap,
    ObjectPool,
    Once,
)


@dataclass(frozen=True)
class Config:
    max_conns: int
    timeout: int


def test_atomic_int_concurrent_adds():
    counter = AtomicInt()
    with ThreadPoolExecutor(max_workers=16) as executor:
        for _ in range(1000):
            executor.submit(counter.add, 1)
    assert counter.load() == 1000


def test_atomic_int_store_and_swap():
    counter = AtomicInt(1000)
    counter.store(0)
    assert counter.swap(99) == 0
    assert counter.load() == 99


def test_atomic_int_add_returns_new_value():
    counter = AtomicInt(10)
    assert counter.add(5) == 15
    assert counter.add(-15) == 0


def test_atomic_int_compare_and_swap_transitions():
    state = AtomicInt()
    assert state.compare_and_swap(0, 1) is True
    assert state.load() == 1
    assert state.compare_and_swap(0, 1) is False
    assert state.load() == 1
    assert state.compare_and_swap(1, 2) is True
    assert state.load() == 2


def test_atomic_bool():
    flag = AtomicBool()
    assert flag.load() is False
    flag.store(True)
    assert flag.load() is True


def test_atomic_value_store_load_swap():
    value = AtomicValue()
    assert value.load() is None
    value.store(Config(10, 30))
    assert value.load() == Config(10, 30)
    value.store(Config(50, 5))
    previous = value.swap(Config(100, 1))
    assert previous == Config(50, 5)
    assert value.load().max_conns == 100


def test_atomic_value_compare_and_swap():
    value = AtomicValue()
    value.store(Config(100, 1))
    current = value.load()
    assert value.compare_and_swap(current, Config(200, 1)) is True
    assert value.load().max_conns == 200
    assert value.compare_and_swap(Config(100, 1), Config(300, 1)) is False
    assert value.load().max_conns == 200


def test_atomic_value_cas_on_empty():
    value = AtomicValue()
    assert value.compare_and_swap(Config(1, 1), Config(2, 2)) is False
    assert value.load() is None
    assert value.compare_and_swap(None, Config(2, 2)) is True
    assert value.load() == Config(2, 2)


def test_atomic_value_rejects_inconsistent_types():
    value = AtomicValue()
    value.store(Config(1, 1))
    with pytest.raises(TypeError):
        value.store("not a config")
    with pytest.raises(TypeError):
        value.swap(5)
    with pytest.raises(ValueError):
        value.store(None)
    assert value.load() == Config(1, 1)


def test_once_runs_exactly_once_across_threads():
    once = Once()
    calls = AtomicInt()
    threads = [threading.Thread(target=once.do, args=(lambda: calls.add(1),)) for _ in range(10)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    assert calls.load() == 1


def test_once_counts_failing_call_as_done():
    once = Once()
    calls = []

    def boom():
        calls.append(1)
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        once.do(boom)
    once.do(boom)
    assert calls == [1]


def test_object_pool_reuses_returned_objects():
    created = []

    def factory():
        item = []
        created.append(item)
        return item

    pool = ObjectPool(factory)
    first = pool.get()
    assert len(created) == 1
    pool.put(first)
    second = pool.get()
    assert second is first
    assert len(created) == 1
    third = pool.get()
    assert third is not first
    assert len(created) == 2


def test_concurrent_map_operations():
    services = {
        "payments": "10.0.0.1:8080",
        "shipping": "10.0.0.2:8080",
        "inventory": "10.0.0.3:8080",
    }
    registry = ConcurrentMap()
    threads = [threading.Thread(target=registry.store, args=item) for item in services.items()]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert registry.load("payments") == "10.0.0.1:8080"
    with pytest.raises(KeyError):
        registry.load("unknown")

    assert registry.load_or_store("payments", "NEW_ADDR") == ("10.0.0.1:8080", True)
    assert registry.load_or_store("reviews", "10.0.0.4:8080") == ("10.0.0.4:8080", False)

    registry.delete("inventory")
    registry.delete("inventory")
    assert "inventory" not in registry
    assert dict(registry.items()) == {
        "payments": "10.0.0.1:8080",
        "shipping": "10.0.0.2:8080",
        "reviews": "10.0.0.4:8080",
    }

    assert registry.load_and_delete("shipping") == "10.0.0.2:8080"
    with pytest.raises(KeyError):
        registry.load_and_delete("shipping")
    assert len(registry) == 2