from __future__ import annotations

import asyncio
import time

import httpx

from blast.config import TargetConfig
from blast.logging import get_logger
from blast.metrics import ErrorType, RequestOutcome

logger = get_logger(__name__)

SUCCESS_STATUS = 200


async def send_request(
    client: httpx.AsyncClient,
    target: TargetConfig,
    deadline: float | None = None,
) -> RequestOutcome:
    """Perform one GET and describe what happened.

    Only an exact 200 counts as success. Transport failures, other status
    codes and an expired run deadline all come back as an errored outcome;
    nothing raises out of here. ``deadline`` is a ``time.perf_counter()``
    instant.
    """
    start = time.perf_counter()
    if deadline is not None and deadline <= start:
        return _finish(_failure(ErrorType.CANCELLED, 0.0))
    try:
        if deadline is None:
            status_code, byte_count = await _fetch(client, target)
        else:
            status_code, byte_count = await asyncio.wait_for(
                _fetch(client, target),
                timeout=deadline - start,
            )
    except asyncio.TimeoutError:
        err = ErrorType.CANCELLED
    except httpx.TimeoutException:
        err = ErrorType.TIMEOUT
    except httpx.ConnectError:
        err = ErrorType.CONNECT
    except httpx.ReadError:
        err = ErrorType.READ
    except httpx.HTTPError:
        err = ErrorType.OTHER
    else:
        latency_ms = (time.perf_counter() - start) * 1000.0
        success = status_code == SUCCESS_STATUS
        return _finish(
            RequestOutcome(
                success=success,
                status_code=status_code,
                error_type=None if success else ErrorType.STATUS,
                byte_count=byte_count,
                latency_ms=latency_ms,
            )
        )
    latency_ms = (time.perf_counter() - start) * 1000.0
    return _finish(_failure(err, latency_ms))


async def _fetch(client: httpx.AsyncClient, target: TargetConfig) -> tuple[int, int]:
    # The body must be fully drained before the stream closes so the
    # connection goes back to the pool for reuse.
    async with client.stream("GET", target.url, timeout=target.timeout_sec) as resp:
        byte_count = 0
        async for chunk in resp.aiter_bytes():
            byte_count += len(chunk)
        return resp.status_code, byte_count


def _failure(err: ErrorType, latency_ms: float) -> RequestOutcome:
    return RequestOutcome(
        success=False,
        status_code=None,
        error_type=err,
        byte_count=0,
        latency_ms=latency_ms,
    )


def _finish(outcome: RequestOutcome) -> RequestOutcome:
    logger.debug(
        "request_complete",
        success=outcome.success,
        status_code=outcome.status_code,
        error_type=outcome.error_type.value if outcome.error_type else None,
        bytes=outcome.byte_count,
        latency_ms=round(outcome.latency_ms, 3),
    )
    return outcome
