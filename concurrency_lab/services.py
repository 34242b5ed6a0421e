"""Concurrent calls to simulated services with a global deadline."""

from __future__ import annotations

import argparse
import asyncio
import random
import time
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

_RNG = random.Random()


@dataclass(frozen=True)
class ServiceResult:
    """Outcome of one service call; ``latency`` is in seconds."""

    service: str
    value: str
    error: Optional[BaseException]
    latency: float


def _trim(value: float) -> str:
    return f"{value:.6f}".rstrip("0").rstrip(".")


def _format_duration(seconds: float) -> str:
    if seconds == 0:
        return "0s"
    sign = "-" if seconds < 0 else ""
    magnitude = abs(seconds)
    for limit, scale, unit in ((1e-6, 1e9, "ns"), (1e-3, 1e6, "µs"), (1.0, 1e3, "ms")):
        if magnitude < limit:
            return f"{sign}{_trim(magnitude * scale)}{unit}"
    return f"{sign}{_trim(magnitude)}s"


async def call_service(
    name: str,
    min_delay: float = 0.003,
    max_delay: float = 0.006,
    warmup: float = 5.0,
    rng: Optional[random.Random] = None,
) -> ServiceResult:
    """Simulate a call: a fixed warm-up, then a random latency in [min_delay, max_delay)."""
    if max_delay <= min_delay:
        raise ValueError(f"max_delay ({max_delay}) must be greater than min_delay ({min_delay})")
    rng = rng or _RNG
    delay = min_delay + rng.uniform(0, max_delay - min_delay)
    await asyncio.sleep(warmup)
    start = time.monotonic()
    await asyncio.sleep(delay)
    return ServiceResult(service=name, value=f"{name}-response", error=None, latency=time.monotonic() - start)


async def gather_services(
    names: Iterable[str],
    timeout: float = 10.0,
    min_delay: float = 0.003,
    max_delay: float = 0.006,
    warmup: float = 5.0,
    rng: Optional[random.Random] = None,
) -> List[ServiceResult]:
    """Call every service concurrently and collect results in completion order.

    Calls still running when ``timeout`` elapses are cancelled and left out.
    """
    tasks = [
        asyncio.create_task(call_service(name, min_delay, max_delay, warmup, rng))
        for name in names
    ]
    results: List[ServiceResult] = []
    try:
        for next_done in asyncio.as_completed(tasks, timeout=timeout):
            try:
                results.append(await next_done)
            except asyncio.TimeoutError:
                break
    finally:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
    return results


def _format_result(result: ServiceResult) -> str:
    latency = _format_duration(result.latency)
    if result.error is not None:
        return f"❌ {result.service} failed after {latency}: {result.error}"
    return f"✅ {result.service} ok after {latency}: {result.value}"


def format_summary(results: Sequence[ServiceResult], want: int) -> str:
    """Render the summary block for the collected results."""
    lines = [f"\n--- summary ({len(results)}/{want} collected) ---"]
    for result in results:
        latency = _format_duration(result.latency)
        if result.error is not None:
            lines.append(f"- {result.service}: err={result.error} (after {latency})")
        else:
            lines.append(f"- {result.service}: ok={result.value} (after {latency})")
    return "\n".join(lines)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Call the payments and shipping services under a global deadline."""
    parser = argparse.ArgumentParser(prog="services", description="Concurrent service calls with a deadline.")
    parser.add_argument("--timeout", type=float, default=10.0, help="global deadline in seconds")
    parser.add_argument("--warmup", type=float, default=5.0, help="fixed delay before each call, seconds")
    parser.add_argument("--min-delay", type=float, default=0.003, help="seconds")
    parser.add_argument("--max-delay", type=float, default=0.006, help="seconds")
    args = parser.parse_args(argv)

    names = ["payments", "shipping"]
    want = len(names)
    try:
        results = asyncio.run(
            gather_services(names, args.timeout, args.min_delay, args.max_delay, args.warmup)
        )
    except KeyboardInterrupt:
        print("\n🛑 stopped: interrupted")
        print(format_summary([], want))
        return 0

    for result in results:
        print(_format_result(result))

    if len(results) < want:
        print("\n🛑 stopped: deadline exceeded")
    else:
        print("\n🎉 all services finished")
    print(format_summary(results, want))
    return 0