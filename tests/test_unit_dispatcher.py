import asyncio

from dispatched.jobs.job import Job
from dispatched.models.enums import JobStatus


def test_successful_delivery_completes_job(store, dispatcher, transport):
    job = store.put(Job.new({"data": "test-data"}))

    result = asyncio.run(dispatcher.dispatch(job))

    assert result.status is JobStatus.COMPLETED
    assert store.get(job.id).status is JobStatus.COMPLETED
    assert len(transport.calls) == 1
    call = transport.calls[0]
    assert call["url"] == "http://forward.test/webhook"
    assert call["headers"]["Authorization"] == "Bearer test-secret"
    assert call["headers"]["Content-Type"] == "application/json"
    body = call["body"]
    assert body["jobId"] == job.id
    assert body["attemptNumber"] == 1
    assert body["status"] == "DISPATCHED"
    assert body["payload"] == {"data": "test-data"}
    assert body["attemptId"] and body["attemptId"] != job.id


def test_each_attempt_gets_fresh_attempt_id(store, dispatcher, transport):
    first = store.put(Job.new({}))
    second = store.put(Job.new({}))

    async def run():
        await dispatcher.dispatch(first)
        await dispatcher.dispatch(second)

    asyncio.run(run())
    ids = {c["body"]["attemptId"] for c in transport.calls}
    assert len(ids) == 2


def test_non_success_status_fails_job(store, dispatcher, transport):
    transport.status_code = 500
    job = store.put(Job.new({}))
    result = asyncio.run(dispatcher.dispatch(job))
    assert result.status is JobStatus.FAILED
    assert store.get(job.id).status is JobStatus.FAILED


def test_transport_error_fails_job_without_retry(store, dispatcher, transport):
    transport.error = "connection refused"
    job = store.put(Job.new({}))
    asyncio.run(dispatcher.dispatch(job))
    assert store.get(job.id).status is JobStatus.FAILED
    assert len(transport.calls) == 1


def test_dispatch_skips_job_no_longer_queued(store, dispatcher, transport):
    job = store.put(Job.new({}))
    store.put(job.with_status(JobStatus.CANCELLED))

    result = asyncio.run(dispatcher.dispatch(job))

    assert result is None
    assert transport.calls == []
    assert store.get(job.id).status is JobStatus.CANCELLED


def test_job_marked_dispatched_while_send_in_flight(store, dispatcher, transport):
    job = store.put(Job.new({}))

    async def run():
        transport.gate = asyncio.Event()
        task = dispatcher.spawn(job)
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        mid_flight = store.get(job.id).status
        transport.gate.set()
        await task
        return mid_flight

    assert asyncio.run(run()) is JobStatus.DISPATCHED
    assert store.get(job.id).status is JobStatus.COMPLETED


def test_outcome_overwrites_cancel_after_double_check(store, dispatcher, transport):
    job = store.put(Job.new({}))

    async def run():
        transport.gate = asyncio.Event()
        task = dispatcher.spawn(job)
        while not transport.calls:
            await asyncio.sleep(0)
        # Cancel lands while the POST is in flight.
        store.put(store.get(job.id).with_status(JobStatus.CANCELLED))
        transport.gate.set()
        await task

    asyncio.run(run())
    assert store.get(job.id).status is JobStatus.COMPLETED


def test_crash_inside_attempt_records_failure(store, dispatcher, transport):
    async def broken(url, body, headers):
        raise RuntimeError("boom")

    transport.post_json = broken
    job = store.put(Job.new({}))

    async def run():
        await dispatcher.spawn(job)

    asyncio.run(run())
    assert store.get(job.id).status is JobStatus.FAILED


def test_drain_waits_for_spawned_dispatches(store, dispatcher, transport):
    jobs = [store.put(Job.new({"n": i})) for i in range(3)]

    async def run():
        for job in jobs:
            dispatcher.spawn(job)
        assert dispatcher.inflight == 3
        await dispatcher.drain()
        return dispatcher.inflight

    assert asyncio.run(run()) == 0
    assert all(store.get(j.id).status is JobStatus.COMPLETED for j in jobs)
