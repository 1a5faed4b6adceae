"""Unit tests for dualquery.dispatch.pool.WorkerPool."""

import threading
import time

import pytest

from dualquery.dispatch.pool import WorkerPool


@pytest.mark.unit
def test_submit_requires_a_running_pool():
    pool = WorkerPool()
    assert not pool.running
    with pytest.raises(RuntimeError):
        pool.submit(lambda cancel: None)


@pytest.mark.unit
def test_each_task_gets_its_own_token():
    with WorkerPool(max_workers=2) as pool:
        first = pool.submit(lambda cancel: cancel)
        second = pool.submit(lambda cancel: cancel)
        assert first.result(timeout=2) is not second.result(timeout=2)


@pytest.mark.unit
def test_interrupt_sets_only_that_task_token():
    with WorkerPool(max_workers=2) as pool:
        target = pool.submit(lambda cancel: cancel.wait(5))
        bystander = pool.submit(lambda cancel: cancel.wait(0.2))
        assert pool.interrupt(target)
        assert target.result(timeout=2) is True
        assert bystander.result(timeout=2) is False


@pytest.mark.unit
def test_interrupt_of_finished_task_is_a_no_op():
    with WorkerPool() as pool:
        done = pool.submit(lambda cancel: 1)
        done.result(timeout=2)
        assert pool.interrupt(done) is False


@pytest.mark.unit
def test_shutdown_drains_within_grace_period():
    pool = WorkerPool(max_workers=2, shutdown_grace_seconds=2.0).start()
    futures = [pool.submit(lambda cancel: time.sleep(0.05) or "done") for _ in range(3)]
    assert pool.shutdown() is True
    assert [f.result(timeout=0) for f in futures] == ["done", "done", "done"]
    assert not pool.running


@pytest.mark.unit
def test_shutdown_interrupts_stragglers_after_grace_period():
    pool = WorkerPool(max_workers=2, shutdown_grace_seconds=0.1).start()
    started = threading.Event()

    def waits_in_backoff(cancel):
        started.set()
        return cancel.wait(10)

    running = pool.submit(waits_in_backoff)
    blocker = pool.submit(lambda cancel: cancel.wait(10))
    queued = pool.submit(lambda cancel: "never ran")
    assert started.wait(2)

    t0 = time.monotonic()
    assert pool.shutdown() is False
    assert running.result(timeout=2) is True
    assert blocker.result(timeout=2) is True
    assert time.monotonic() - t0 < 2
    assert queued.cancelled()


@pytest.mark.unit
def test_pool_can_restart_after_shutdown():
    pool = WorkerPool()
    pool.start()
    pool.shutdown()
    with pytest.raises(RuntimeError):
        pool.submit(lambda cancel: None)
    pool.start()
    try:
        assert pool.submit(lambda cancel: "again").result(timeout=2) == "again"
    finally:
        pool.shutdown()
