from __future__ import annotations

import asyncio
import random

import httpx
import pytest
import respx

from blast.config import RunConfig, TargetConfig
from blast.errors import ConfigurationError
from blast.loadgen.runner import run_experiment, run_load
from blast.metrics import ErrorType, RequestOutcome
from blast.storage import Storage

URL = "http://target.test/"


def _config(requests: int, concurrency: int, **kwargs: object) -> RunConfig:
    return RunConfig(
        target=TargetConfig(url=URL),
        requests=requests,
        concurrency=concurrency,
        **kwargs,  # type: ignore[arg-type]
    )


def _ok(latency_ms: float = 1.0) -> RequestOutcome:
    return RequestOutcome(
        success=True,
        status_code=200,
        error_type=None,
        byte_count=10,
        latency_ms=latency_ms,
    )


def test_in_flight_never_exceeds_concurrency() -> None:
    in_flight = 0
    peak = 0
    started: list[int] = []

    async def execute(index: int) -> RequestOutcome:
        nonlocal in_flight, peak
        started.append(index)
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.001)
        in_flight -= 1
        return _ok()

    result = asyncio.run(run_load(_config(50, 4), execute))
    assert peak == 4
    assert sorted(started) == list(range(50))
    assert result.summary.requests_seen == 50


@pytest.mark.parametrize(("requests", "concurrency"), [(1, 1), (3, 10), (17, 5), (64, 64)])
def test_every_request_yields_one_outcome(requests: int, concurrency: int) -> None:
    calls = 0

    async def execute(index: int) -> RequestOutcome:
        nonlocal calls
        calls += 1
        await asyncio.sleep(0)
        return _ok()

    summary = asyncio.run(run_load(_config(requests, concurrency), execute)).summary
    assert calls == requests
    assert summary.requests_seen == requests
    assert summary.requests_dispatched == requests


def test_zero_requests_produce_empty_summary() -> None:
    async def execute(index: int) -> RequestOutcome:
        raise AssertionError("no request should be sent")

    summary = asyncio.run(run_load(_config(0, 3), execute)).summary
    assert summary.requests_seen == 0
    assert summary.success_rate == 0.0
    assert summary.requests_per_second == 0.0


def test_mixed_outcomes_any_arrival_order() -> None:
    rng = random.Random(42)
    latencies = [float(rng.randint(1, 500)) for _ in range(100)]
    outcomes = [
        RequestOutcome(
            success=i < 70,
            status_code=200 if i < 70 else 500,
            error_type=None if i < 70 else ErrorType.STATUS,
            byte_count=100 if i < 70 else 0,
            latency_ms=latencies[i],
        )
        for i in range(100)
    ]
    delays = [rng.random() / 500 for _ in range(100)]

    async def execute(index: int) -> RequestOutcome:
        await asyncio.sleep(delays[index])
        return outcomes[index]

    summary = asyncio.run(run_load(_config(100, 10), execute)).summary
    assert summary.success_rate == 70.0
    assert summary.error_count == 30
    assert summary.total_bytes == 7000
    assert summary.fastest_ms == min(latencies)
    assert summary.slowest_ms == max(latencies)
    assert summary.mean_latency_ms == pytest.approx(sum(latencies) / 100)
    assert summary.elapsed_sec > 0
    assert summary.requests_per_second == pytest.approx(100 / summary.elapsed_sec)


@pytest.mark.parametrize(
    "config",
    [
        _config(10, 0),
        _config(10, -2),
        _config(-1, 4),
        RunConfig(target=TargetConfig(url="not a url")),
        RunConfig(target=TargetConfig(url="ftp://target.test/")),
        RunConfig(target=TargetConfig(url=URL, timeout_sec=0)),
        _config(10, 2, run_timeout_sec=0.0),
    ],
)
def test_invalid_config_dispatches_nothing(config: RunConfig) -> None:
    calls = 0

    async def execute(index: int) -> RequestOutcome:
        nonlocal calls
        calls += 1
        return _ok()

    with pytest.raises(ConfigurationError):
        asyncio.run(run_load(config, execute))
    assert calls == 0


@respx.mock
def test_unreachable_target() -> None:
    respx.get(URL).mock(side_effect=httpx.ConnectError("connection refused"))
    summary = asyncio.run(run_load(_config(10, 4))).summary
    assert summary.success_rate == 0.0
    assert summary.error_count == 10
    assert summary.total_bytes == 0
    assert summary.error_types == {"connect": 10}


@respx.mock
def test_single_successful_request() -> None:
    respx.get(URL).mock(return_value=httpx.Response(200, content=b"y" * 27))
    summary = asyncio.run(run_load(_config(1, 1))).summary
    assert summary.success_rate == 100.0
    assert summary.total_bytes == 27
    assert summary.fastest_ms == summary.slowest_ms == summary.mean_latency_ms


@respx.mock
def test_run_deadline_terminates_hung_target() -> None:
    async def hang(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(5.0)
        return httpx.Response(200)

    respx.get(URL).mock(side_effect=hang)
    summary = asyncio.run(run_load(_config(6, 2, run_timeout_sec=0.05))).summary
    assert summary.requests_seen == 6
    assert summary.error_types == {"cancelled": 6}
    assert summary.elapsed_sec < 5.0


@respx.mock
def test_run_experiment_persists_summary(tmp_path) -> None:
    respx.get(URL).mock(return_value=httpx.Response(200, content=b"ok"))
    storage = Storage(tmp_path / "runs.duckdb")
    config = _config(5, 2, run_id="run-1")
    result = asyncio.run(run_experiment(config, storage))
    assert result.run_id == "run-1"
    assert storage.load_summary("run-1") == result.summary

    with pytest.raises(ValueError, match="already exists"):
        asyncio.run(run_experiment(config, storage))


def test_executor_failure_stops_all_workers() -> None:
    calls = 0

    async def execute(index: int) -> RequestOutcome:
        nonlocal calls
        calls += 1
        if index == 0:
            raise RuntimeError("executor bug")
        await asyncio.sleep(0.01)
        return _ok()

    async def scenario() -> tuple[int, int, list[asyncio.Task[object]]]:
        with pytest.raises(RuntimeError, match="executor bug"):
            await run_load(_config(200, 4), execute)
        calls_at_failure = calls
        await asyncio.sleep(0.05)
        pending = [task for task in asyncio.all_tasks() if task is not asyncio.current_task()]
        return calls_at_failure, calls, pending

    calls_at_failure, final_calls, pending = asyncio.run(scenario())
    assert calls_at_failure <= 4
    assert final_calls == calls_at_failure
    assert pending == []
