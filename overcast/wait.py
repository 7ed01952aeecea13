"""Polling loops for job completion and instance readiness.

Both loops are bounded by a wall-clock timeout and an optional attempt
count. Transient query failures (HTTP 0, 429, 5xx) are retried with
exponential backoff; anything else propagates.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterable

from loguru import logger
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from overcast.errors import ApiError, JobFailed, PollTimeout
from overcast.models import Job, JobState, LinodeStatus
from overcast.providers.base import Gateway

_log = logger.bind(component="wait")


def _is_transient(e: BaseException) -> bool:
    return isinstance(e, ApiError) and e.transient


def _log_retry(state: RetryCallState) -> None:
    exc = state.outcome.exception() if state.outcome else None
    _log.warning(
        "Retry {n} after {err}, waiting {delay:.1f}s",
        n=state.attempt_number,
        err=exc,
        delay=state.next_action.sleep if state.next_action else 0.0,
    )


async def _query[T](fn: Callable[[], Awaitable[T]], *, retries: int, backoff: float) -> T:
    async for attempt in AsyncRetrying(
        retry=retry_if_exception(_is_transient),
        stop=stop_after_attempt(retries + 1),
        wait=wait_exponential(multiplier=backoff, max=30),
        before_sleep=_log_retry,
        reraise=True,
    ):
        with attempt:
            result = await fn()
    return result


async def wait_for_ready[T](
    poll_fn: Callable[[], Awaitable[T | None]],
    ready_check: Callable[[T], bool],
    *,
    terminal_check: Callable[[T], bool] | None = None,
    timeout: float = 300.0,
    interval: float = 5.0,
    max_attempts: int | None = None,
    description: str = "resource",
) -> T:
    """Wait until poll_fn returns something that passes ready_check.

    Args:
        poll_fn: Async function that polls for the resource state.
        ready_check: Function that returns True when resource is ready.
        terminal_check: Optional function that returns True if resource reached
            a terminal failure state.
        timeout: Maximum time to wait in seconds.
        interval: Time between polls in seconds.
        max_attempts: Maximum number of polls. None means bounded by timeout only.
        description: Description for error messages.

    Returns:
        The ready resource.

    Raises:
        PollTimeout: If timeout or max_attempts is exceeded.
        RuntimeError: If resource reaches terminal state.
    """
    loop = asyncio.get_running_loop()
    start = loop.time()
    attempts = 0

    while True:
        result = await poll_fn()
        attempts += 1

        if result is not None:
            if ready_check(result):
                return result

            if terminal_check is not None and terminal_check(result):
                raise RuntimeError(f"{description} reached terminal state: {result}")

        elapsed = loop.time() - start
        if elapsed > timeout or (max_attempts is not None and attempts >= max_attempts):
            raise PollTimeout(description, elapsed, attempts)

        await asyncio.sleep(interval)


async def wait_for_jobs(
    gateway: Gateway,
    jobs: Iterable[Job],
    *,
    interval: float = 5.0,
    timeout: float = 600.0,
    max_attempts: int | None = None,
    retries: int = 3,
    backoff: float = 1.0,
) -> None:
    """Block until every job succeeded.

    The first job observed as failed raises ``JobFailed`` right away, even
    while sibling jobs are still pending.
    """
    watching = list(dict.fromkeys(jobs))
    if not watching:
        return

    loop = asyncio.get_running_loop()
    start = loop.time()
    attempts = 0
    _log.debug("Waiting for jobs {ids}", ids=[j.id for j in watching])

    while True:
        attempts += 1
        remaining: list[Job] = []
        for job in watching:
            state: JobState = await _query(
                lambda job=job: gateway.job_state(job), retries=retries, backoff=backoff,
            )
            match state.status:
                case "succeeded":
                    _log.debug("Job {id} ({kind}) succeeded", id=job.id, kind=job.kind)
                case "failed":
                    _log.error("Job {id} ({kind}) failed: {msg}", id=job.id, kind=job.kind, msg=state.message)
                    raise JobFailed(job, state.message)
                case _:
                    remaining.append(job)

        watching = remaining
        if not watching:
            return

        elapsed = loop.time() - start
        if elapsed > timeout or (max_attempts is not None and attempts >= max_attempts):
            ids = ", ".join(str(j.id) for j in watching)
            raise PollTimeout(f"jobs {ids}", elapsed, attempts)

        await asyncio.sleep(interval)


async def wait_for_running(
    gateway: Gateway,
    linode_id: int,
    *,
    interval: float = 5.0,
    timeout: float = 300.0,
    max_attempts: int | None = None,
    retries: int = 3,
    backoff: float = 1.0,
) -> LinodeStatus:
    """Poll the instance's own status until it reports running."""

    async def poll() -> LinodeStatus:
        return await _query(
            lambda: gateway.linode_status(linode_id), retries=retries, backoff=backoff,
        )

    return await wait_for_ready(
        poll,
        lambda status: status == "running",
        timeout=timeout,
        interval=interval,
        max_attempts=max_attempts,
        description=f"linode {linode_id} to boot",
    )


__all__ = ["wait_for_jobs", "wait_for_ready", "wait_for_running"]
