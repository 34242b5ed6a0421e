# concurrency-lab

A collection of small, runnable examples of concurrency idioms built on
Python's standard library: a worker pool with graceful shutdown, atomic-style
primitives, race conditions and their fixes, timers and tickers, timing
patterns (debounce, rate limiting, retry with backoff), a small request
router, and a handful of list and value idioms.

## Installation

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Library highlights

### Worker pool

```python
from concurrency_lab.workerpool import PoolConfig, WorkerPool

with WorkerPool(PoolConfig(workers=4, queue_size=20, shutdown_timeout=3.0)) as pool:
    for n in range(10):
        pool.submit(lambda cancelled, n=n: print("job", n), timeout=None)

print(pool.metrics())
```

Each job is called with a `threading.Event` that is set if shutdown runs out
of time. `submit` raises `PoolClosedError` once shutdown has begun and
`SubmitCancelledError` when the queue stays full past the given timeout.
`shutdown` drains queued jobs and raises `ShutdownTimeoutError` if running
jobs had to be cancelled; calling it again does nothing. `metrics()` returns
a `Metrics` snapshot of submitted, started, succeeded, failed and dropped jobs.

### Primitives

`concurrency_lab.primitives` offers `AtomicInt`, `AtomicBool`, `AtomicValue`,
`Once`, `ObjectPool` and `ConcurrentMap`, each safe to share between threads.

### Races

`concurrency_lab.races` contrasts `count_racy` with `count_with_lock`,
`count_with_atomic` and `count_with_actor`, `RacyAccount` with `SafeAccount`,
and shows one-time configuration through `get_config_once` and
`publish_config` / `read_config`.

### Timers

`concurrency_lab.timers` provides `Timer`, `Ticker`, `after`, `after_func` and
`wait_with_timeout`; `concurrency_lab.timer_patterns` builds `debounce`,
`rate_limited`, `retry_with_backoff` and `run_periodic` on top of them.

### Routing

`concurrency_lab.webrouter.Router` matches patterns such as
`"GET /users/{id}"`, `"/files/{path...}"`, `"/static/"` and `"/{$}"`; the
most specific pattern wins. `Router.serve` takes a `Request` and returns a
`Response`, answering 404 and 405 itself, and a `Router` is also a WSGI
application. `new_router()` and `new_user_router()` build the demo routes.

```python
from concurrency_lab.webrouter import Request, new_router

response = new_router().serve(Request.build("GET", "/greet?name=Ada"))
print(response.status, response.text)   # 200 Hello, Ada!
```

### Lists and values

`concurrency_lab.sliceops` has `copy_into`, `delete_at`, `delete_swap`,
`insert_at`, `filter_in_place`, `reverse_in_place`, `dedup_sorted` and
`delete_range`. `concurrency_lab.escape` contrasts plain values with
references and closures that outlive the call.

## Commands

Each command runs one set of demonstrations and prints what happens:

| Command | What it shows |
| --- | --- |
| `concurrency-lab-orders` | worker pool processing simulated orders until Ctrl+C, SIGTERM or `--duration` |
| `concurrency-lab-services` | two concurrent service calls under a global `--timeout` |
| `concurrency-lab-sync` | mutexes, read-write locks, wait groups, once, conditions, pools, maps, atomics |
| `concurrency-lab-races` | lost updates, check-then-act, unsafe publication and their fixes |
| `concurrency-lab-timers` | timers, tickers and timing patterns |
| `concurrency-lab-slices` | copy, delete, insert, filter, reverse and dedup on lists |
| `concurrency-lab-escape` | values, references, closures and formatting |

## What this package does not do

- It has no HTTP server or client of its own and no command for the router.
  To serve a `Router` over the network, hand it to any WSGI server, for
  example `wsgiref.simple_server.make_server("127.0.0.1", 8000, new_router())`.
- It has no shape or geometry examples.