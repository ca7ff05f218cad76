from __future__ import annotations

import asyncio
import time
import uuid
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterator

import httpx

from blast.config import RunConfig, validate_config
from blast.loadgen.channel import ResultChannel
from blast.loadgen.client import send_request
from blast.logging import get_logger
from blast.metrics import AggregateTotals, Aggregator, RequestOutcome, Summary, summarize
from blast.storage import Storage

logger = get_logger(__name__)

Executor = Callable[[int], Awaitable[RequestOutcome]]


@dataclass(frozen=True, slots=True)
class RunResult:
    run_id: str
    summary: Summary


def _new_run_id() -> str:
    return uuid.uuid4().hex


async def run_experiment(config: RunConfig, storage: Storage) -> RunResult:
    run_id = config.run_id or _new_run_id()
    if storage.run_exists(run_id):
        msg = f"Run {run_id} already exists"
        raise ValueError(msg)
    result = await run_load(config, run_id=run_id)
    storage.save_run(config, run_id, result.summary)
    logger.info("run_saved", run_id=run_id, db_path=str(storage.db_path))
    return result


async def run_load(
    config: RunConfig,
    execute: Executor | None = None,
    run_id: str | None = None,
) -> RunResult:
    """Issue ``config.requests`` requests with at most ``config.concurrency`` in flight.

    ``execute`` performs request number *i* and must always return an
    outcome. When omitted, requests go to ``config.target`` through one
    shared ``httpx.AsyncClient``.
    """
    validate_config(config)
    run_id = run_id or config.run_id or _new_run_id()
    if execute is not None:
        summary = await _execute_load(config, execute)
    else:
        limits = httpx.Limits(
            max_connections=config.concurrency,
            max_keepalive_connections=config.concurrency,
        )
        async with httpx.AsyncClient(limits=limits) as client:
            deadline = None
            if config.run_timeout_sec is not None:
                deadline = time.perf_counter() + config.run_timeout_sec

            async def execute_http(index: int) -> RequestOutcome:
                return await send_request(client, config.target, deadline)

            summary = await _execute_load(config, execute_http)
    return RunResult(run_id=run_id, summary=summary)


async def _execute_load(config: RunConfig, execute: Executor) -> Summary:
    total = config.requests
    workers = min(config.concurrency, total)
    logger.info(
        "run_started",
        url=config.target.url,
        requests=total,
        concurrency=config.concurrency,
    )
    if total == 0:
        return summarize(AggregateTotals(), 0, 0.0)

    started = time.perf_counter()
    channel = ResultChannel(capacity=config.concurrency)
    aggregator = Aggregator(expected=total)
    consumer = asyncio.create_task(aggregator.consume(channel))
    indices = iter(range(total))
    tasks = [asyncio.create_task(_worker(indices, execute, channel)) for _ in range(workers)]
    try:
        await asyncio.gather(*tasks)
    except BaseException:
        # gather leaves siblings running; they would block on the unread channel.
        for task in (*tasks, consumer):
            task.cancel()
        await asyncio.gather(*tasks, consumer, return_exceptions=True)
        raise
    await channel.close()
    totals = await consumer
    elapsed = time.perf_counter() - started

    summary = summarize(totals, total, elapsed)
    logger.info(
        "run_finished",
        requests=summary.requests_seen,
        errors=summary.error_count,
        success_rate=round(summary.success_rate, 2),
        rps=round(summary.requests_per_second, 1),
        elapsed_sec=round(elapsed, 3),
    )
    return summary


async def _worker(
    indices: Iterator[int],
    execute: Executor,
    channel: ResultChannel,
) -> None:
    # Each worker holds at most one request in flight, so the pool size
    # is the concurrency limit.
    for index in indices:
        outcome = await execute(index)
        await channel.send(outcome)
