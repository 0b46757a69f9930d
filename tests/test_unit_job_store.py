from datetime import datetime, timedelta, timezone

import pytest

from dispatched.exceptions import JobNotFoundError
from dispatched.jobs.job import Job
from dispatched.jobs.store import JobStore
from dispatched.models.enums import JobStatus
from dispatched.utils.time import utc_now


def test_get_unknown_id_raises_not_found_with_id():
    store = JobStore()
    with pytest.raises(JobNotFoundError) as exc:
        store.get("missing")
    assert exc.value.job_id == "missing"
    assert exc.value.details == {"job_id": "missing"}


def test_put_replaces_whole_record():
    store = JobStore()
    job = store.put(Job.new({"a": 1}))
    store.put(job.with_status(JobStatus.CANCELLED))
    stored = store.get(job.id)
    assert stored.status is JobStatus.CANCELLED
    assert stored.payload == {"a": 1}
    assert stored.created_at == job.created_at
    # the earlier record object is untouched
    assert job.status is JobStatus.QUEUED


def test_list_ready_applies_delay():
    store = JobStore()
    now = utc_now()
    job = store.put(Job.new({}, now + timedelta(seconds=5), now=now))
    assert store.list_ready(now + timedelta(seconds=9), delay_seconds=5) == []
    assert store.list_ready(now + timedelta(seconds=10), delay_seconds=5) == [job]


def test_list_ready_insertion_order_and_queued_only():
    store = JobStore()
    now = utc_now()
    past = now - timedelta(seconds=1)
    first = store.put(Job.new({"n": 1}, past, now=now))
    second = store.put(Job.new({"n": 2}, past - timedelta(seconds=30), now=now))
    cancelled = store.put(Job.new({"n": 3}, past, now=now).with_status(JobStatus.CANCELLED))
    third = store.put(Job.new({"n": 4}, past, now=now))
    # Rescheduling an existing job keeps its position.
    store.put(first.rescheduled(past - timedelta(seconds=60)))

    ready = store.list_ready(now, delay_seconds=0)
    assert [j.payload["n"] for j in ready] == [1, 2, 4]
    assert cancelled.id not in {j.id for j in ready}
    assert second in ready and third in ready


def test_snapshot_counts_statuses():
    store = JobStore()
    store.put(Job.new({}))
    store.put(Job.new({}).with_status(JobStatus.FAILED))
    snap = store.snapshot()
    assert snap["total"] == 2
    assert snap["queued"] == 1
    assert snap["failed"] == 1
    assert snap["completed"] == 0
    assert len(store) == 2


def test_purge_clears_records():
    store = JobStore()
    job = store.put(Job.new({}))
    assert job.id in store
    store.purge()
    assert job.id not in store
    assert len(store) == 0


def test_new_job_defaults():
    now = utc_now()
    job = Job.new(None, now=now)
    assert job.status is JobStatus.QUEUED
    assert job.scheduled_for == now
    assert job.created_at == now
    assert job.payload == {}
    assert Job.new({}).id != Job.new({}).id


def test_list_ready_tolerates_far_future_schedule():
    store = JobStore()
    now = utc_now()
    store.put(Job.new({}, datetime.max.replace(tzinfo=timezone.utc), now=now))
    due = store.put(Job.new({}, now, now=now))
    assert store.list_ready(now + timedelta(seconds=60), delay_seconds=30) == [due]
