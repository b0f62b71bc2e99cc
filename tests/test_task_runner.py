import asyncio

import pytest

from podcast_pipeline.task_runner import TaskRunner

pytestmark = pytest.mark.asyncio


async def test_duplicate_task_id_is_rejected():
    runner = TaskRunner(max_concurrent_tasks=1)
    release = asyncio.Event()

    async def job():
        await release.wait()

    runner.submit_task("task-1", job)
    with pytest.raises(ValueError):
        runner.submit_task("task-1", job)

    release.set()
    await runner.wait_for("task-1")
    assert not runner.is_task_running("task-1")


async def test_capacity_is_enforced_and_extra_tasks_wait():
    runner = TaskRunner(max_concurrent_tasks=2)
    release = asyncio.Event()
    started = []

    async def job(name):
        started.append(name)
        await release.wait()
        return name

    for name in ("a", "b", "c"):
        runner.submit_task(name, job, name)
    await asyncio.sleep(0.01)

    assert sorted(started) == ["a", "b"]
    status = runner.get_queue_status()
    assert status["active_tasks"] == 2
    assert status["waiting_tasks"] == 1
    assert not runner.can_accept_new_task()

    release.set()
    for name in ("a", "b", "c"):
        await runner.wait_for(name)
    assert sorted(started) == ["a", "b", "c"]
    assert runner.get_running_task_count() == 0


async def test_failing_task_is_contained():
    runner = TaskRunner()

    async def boom():
        raise RuntimeError("pipeline crashed")

    task = runner.submit_task("bad", boom)
    await runner.wait_for("bad")
    assert task.done()
    assert task.result() is None
    assert not runner.is_task_running("bad")


async def test_shutdown_cancels_outstanding_work():
    runner = TaskRunner()

    async def forever():
        await asyncio.Event().wait()

    task = runner.submit_task("stuck", forever)
    await asyncio.sleep(0)
    await runner.shutdown()
    assert task.cancelled()


async def test_active_tasks_report_execution_state():
    runner = TaskRunner(max_concurrent_tasks=1)
    release = asyncio.Event()

    async def job():
        await release.wait()

    runner.submit_task("first", job)
    runner.submit_task("second", job)
    await asyncio.sleep(0.01)

    assert runner.get_active_tasks() == [
        {"task_id": "first", "executing": True},
        {"task_id": "second", "executing": False},
    ]

    release.set()
    await runner.wait_for("first")
    await runner.wait_for("second")
    assert runner.get_active_tasks() == []
