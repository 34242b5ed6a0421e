import random

import pytest

from concurrency_lab.services import (
    ServiceResult,
    call_service,
    format_summary,
    gather_services,
    main,
)


@pytest.mark.asyncio
async def test_call_service_returns_response():
    result = await call_service("payments", 0.001, 0.002, 0.0, random.Random(1))
    assert result.service == "payments"
    assert result.value == "payments-response"
    assert result.error is None
    assert result.latency >= 0.001


@pytest.mark.asyncio
async def test_call_service_rejects_empty_delay_range():
    with pytest.raises(ValueError):
        await call_service("payments", 0.005, 0.005, 0.0)


@pytest.mark.asyncio
async def test_gather_services_collects_all():
    results = await gather_services(
        ["payments", "shipping"], timeout=1.0, min_delay=0.001, max_delay=0.002, warmup=0.0, rng=random.Random(2)
    )
    assert sorted(r.service for r in results) == ["payments", "shipping"]
    assert all(r.value == f"{r.service}-response" for r in results)


@pytest.mark.asyncio
async def test_gather_services_deadline_drops_unfinished():
    results = await gather_services(["payments", "shipping"], timeout=0.05, warmup=1.0)
    assert results == []


def test_format_summary_lines():
    results = [
        ServiceResult("payments", "payments-response", None, 0.004),
        ServiceResult("shipping", "", TimeoutError("deadline exceeded"), 0.002),
    ]
    lines = format_summary(results, 3).splitlines()
    assert lines[1] == "--- summary (2/3 collected) ---"
    assert lines[2].startswith("- payments: ok=payments-response (after ")
    assert lines[3].startswith("- shipping: err=deadline exceeded (after ")


def test_format_summary_empty():
    assert format_summary([], 2).strip() == "--- summary (0/2 collected) ---"


def test_main_all_finished(capsys):
    code = main(["--warmup", "0", "--timeout", "1", "--min-delay", "0.001", "--max-delay", "0.002"])
    out = capsys.readouterr().out
    assert code == 0
    assert "all services finished" in out
    assert "--- summary (2/2 collected) ---" in out
    assert "payments ok after" in out


def test_main_deadline(capsys):
    code = main(["--warmup", "1", "--timeout", "0.05"])
    out = capsys.readouterr().out
    assert code == 0
    assert "stopped: deadline exceeded" in out
    assert "--- summary (0/2 collected) ---" in out