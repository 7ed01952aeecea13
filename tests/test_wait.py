from __future__ import annotations

import pytest

from overcast.errors import ApiError, JobFailed, PollTimeout
from overcast.models import Job
from overcast.wait import wait_for_jobs, wait_for_ready, wait_for_running

pytestmark = [pytest.mark.unit]


def _job(job_id: int) -> Job:
    return Job(id=job_id, linode_id=1, kind="create")


# ─── wait_for_jobs ───────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_no_jobs_resolves_without_queries(make_gateway):
    gw = make_gateway()
    await wait_for_jobs(gw, [], interval=0)
    assert gw.calls == []


@pytest.mark.asyncio
async def test_waits_until_every_job_succeeded(make_gateway):
    gw = make_gateway(jobs={1: ["pending", "running", "succeeded"], 2: ["succeeded"]})
    await wait_for_jobs(gw, [_job(1), _job(2)], interval=0)

    queried = [arg for op, arg in gw.calls if op == "job_state"]
    # job 2 leaves the watch set after the first round
    assert queried == [1, 2, 1, 1]


@pytest.mark.asyncio
async def test_failed_job_aborts_while_siblings_pending(make_gateway):
    gw = make_gateway(jobs={
        1: ["succeeded"],
        2: ["pending", "succeeded"],
        3: ["failed"],
    })

    with pytest.raises(JobFailed) as exc:
        await wait_for_jobs(gw, [_job(1), _job(2), _job(3)], interval=0)

    assert exc.value.job.id == 3
    assert exc.value.detail == "job 3 failed"
    # a single round was enough to observe the failure
    assert [arg for op, arg in gw.calls if op == "job_state"] == [1, 2, 3]


@pytest.mark.asyncio
async def test_attempt_bound_raises_timeout(make_gateway):
    gw = make_gateway(jobs={1: ["pending"]})

    with pytest.raises(PollTimeout) as exc:
        await wait_for_jobs(gw, [_job(1)], interval=0, max_attempts=3)

    assert exc.value.attempts == 3
    assert isinstance(exc.value, TimeoutError)


@pytest.mark.asyncio
async def test_time_bound_raises_timeout(make_gateway):
    gw = make_gateway(jobs={1: ["running"]})

    with pytest.raises(PollTimeout):
        await wait_for_jobs(gw, [_job(1)], interval=0.01, timeout=0.05)


@pytest.mark.asyncio
async def test_transient_query_errors_are_retried(make_gateway):
    gw = make_gateway(jobs={1: ["succeeded"]})
    failures = [ApiError("linode.job.list", "bad gateway", status=502)]
    original = gw.job_state

    async def flaky(job):
        if failures:
            raise failures.pop()
        return await original(job)

    gw.job_state = flaky
    await wait_for_jobs(gw, [_job(1)], interval=0, retries=2, backoff=0)
    assert failures == []


@pytest.mark.asyncio
async def test_provider_rejection_is_not_retried(make_gateway):
    gw = make_gateway()
    calls = 0

    async def rejected(job):
        nonlocal calls
        calls += 1
        raise ApiError("linode.job.list", "Authentication failed (code 4)")

    gw.job_state = rejected
    with pytest.raises(ApiError):
        await wait_for_jobs(gw, [_job(1)], interval=0, retries=5, backoff=0)
    assert calls == 1


# ─── readiness ───────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_wait_for_running_polls_instance_status(make_gateway):
    gw = make_gateway(statuses={7: ["brand-new", "being-created", "running"]})
    status = await wait_for_running(gw, 7, interval=0)

    assert status == "running"
    assert gw.ops.count("linode_status") == 3


@pytest.mark.asyncio
async def test_wait_for_running_is_bounded(make_gateway):
    gw = make_gateway(statuses={7: ["powered-off"]})

    with pytest.raises(PollTimeout, match="linode 7"):
        await wait_for_running(gw, 7, interval=0, max_attempts=4)
    assert gw.ops.count("linode_status") == 4


@pytest.mark.asyncio
async def test_wait_for_ready_terminal_state():
    async def poll() -> str:
        return "archived"

    with pytest.raises(RuntimeError, match="terminal state"):
        await wait_for_ready(
            poll,
            lambda s: s == "running",
            terminal_check=lambda s: s == "archived",
            interval=0,
        )


@pytest.mark.asyncio
async def test_wait_for_ready_skips_none_results():
    results = [None, None, "running"]

    async def poll() -> str | None:
        return results.pop(0)

    assert await wait_for_ready(poll, lambda s: s == "running", interval=0) == "running"
