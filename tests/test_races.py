import threading

import pytest

from concurrency_lab import races
from concurrency_lab.primitives import ConcurrentMap


def test_racy_account_sequential_use_is_correct():
    account = races.RacyAccount(balance=100)
    assert account.withdraw(100) is True
    assert account.withdraw(100) is False
    assert account.balance == 0


def test_racy_account_concurrent_withdrawals_succeed_at_least_once():
    account = races.RacyAccount(balance=100)
    successes = races.run_withdrawals(account, 10, 100)
    assert 1 <= successes <= 10


def test_safe_account_allows_exactly_one_withdrawal():
    account = races.SafeAccount(balance=100)
    successes = races.run_withdrawals(account, 10, 100)
    assert successes == 1
    assert account.balance == 0


def test_safe_account_deposit_then_withdraw():
    account = races.SafeAccount(balance=0)
    assert account.withdraw(50) is False
    account.deposit(50)
    assert account.withdraw(50) is True
    assert account.balance == 0


def test_safe_account_concurrent_deposits():
    account = races.SafeAccount(balance=0)
    threads = [threading.Thread(target=account.deposit, args=(5,)) for _ in range(20)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert account.balance == 20 * 5


def test_count_racy_never_exceeds_expected():
    got = races.count_racy(4, 1000)
    assert 0 < got <= 4 * 1000


@pytest.mark.parametrize(
    "counter",
    [races.count_with_lock, races.count_with_atomic, races.count_with_actor],
)
def test_safe_counters_lose_nothing(counter):
    assert counter(8, 500) == 8 * 500


def test_count_with_actor_zero_workers():
    assert races.count_with_actor(0, 100) == 0


def test_atomic_counter_with_default_worker_count():
    assert races.count_with_atomic(races.GOROUTINES, 10) == races.GOROUTINES * 10


def test_fill_locked_map_contents():
    data = races.fill_locked_map(5)
    assert data == {f"key{i}": i * 10 for i in range(5)}


def test_fill_concurrent_map_contents():
    data = races.fill_concurrent_map(5)
    assert isinstance(data, ConcurrentMap)
    assert len(data) == 5
    assert sorted(data.items()) == [(f"key{i}", i * 10) for i in range(5)]


def test_get_config_racy_is_a_singleton():
    races.reset_racy_config()
    first = races.get_config_racy()
    assert first.host == "localhost"
    assert first.port == 5432
    assert races.get_config_racy() is first


def test_reset_racy_config_creates_new_instance():
    races.reset_racy_config()
    first = races.get_config_racy()
    races.reset_racy_config()
    second = races.get_config_racy()
    assert second is not first
    assert second == first


def test_get_config_once_same_object_across_threads():
    results = [None] * 10

    def fetch(index):
        results[index] = races.get_config_once()

    threads = [threading.Thread(target=fetch, args=(i,)) for i in range(10)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    config = races.get_config_once()
    assert all(r is config for r in results)
    assert config.host == "localhost"
    assert config.port == 5432


def test_publish_and_read_config_round_trip():
    config = races.Config(host="db.example.com", port=6543, timeout=2.0)
    races.publish_config(config)
    assert races.read_config() is config
    replacement = races.Config(host="localhost", port=5432, timeout=30.0)
    races.publish_config(replacement)
    assert races.read_config() == replacement


def test_config_is_immutable():
    config = races.Config(host="localhost", port=5432, timeout=30.0)
    with pytest.raises(AttributeError):
        config.port = 1
    assert config.port == 5432


def test_main_prints_safe_counts(capsys):
    assert races.main(["--workers", "4", "--increments", "100"]) == 0
    out = capsys.readouterr().out
    assert out.count("expected: 400  got: 400  ✓") == 3
    assert "balance: 0  successful withdrawals: 1  ✓" in out
    assert "map has 5 entries  ✓" in out
    assert "all threads got same config: true  host=localhost port=5432" in out