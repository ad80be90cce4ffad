"""Tests for the enrichment request/acknowledge ledger."""

from datetime import timedelta
from uuid import uuid4

from studyspark.boundary.db.base import utc_now
from studyspark.core.enrichment.task_queue import STALE_TASK_MESSAGE, EnrichmentTaskQueue
from studyspark.models.processing_record import EnrichmentFeature

DOC_ID = "a1b2c3d4-biology"


async def test_enqueue_skips_while_open(task_queue):
    first = await task_queue.enqueue(DOC_ID, EnrichmentFeature.QUIZ)

    assert first is not None
    assert await task_queue.enqueue(DOC_ID, EnrichmentFeature.QUIZ) is None
    assert await task_queue.has_open(DOC_ID, EnrichmentFeature.QUIZ)
    assert not await task_queue.has_open(DOC_ID, EnrichmentFeature.FLASHCARDS)


async def test_lifecycle(task_queue):
    task_id = await task_queue.enqueue(DOC_ID, EnrichmentFeature.FLASHCARDS)

    await task_queue.acknowledge(task_id)
    assert await task_queue.has_open(DOC_ID, EnrichmentFeature.FLASHCARDS)

    await task_queue.complete(task_id)
    assert not await task_queue.has_open(DOC_ID, EnrichmentFeature.FLASHCARDS)

    [task] = await task_queue.list_for_document(DOC_ID)
    assert task.id == task_id
    assert task.status == "completed"
    assert task.error_message is None


async def test_failed_task_records_error_and_allows_new_request(task_queue):
    task_id = await task_queue.enqueue(DOC_ID, EnrichmentFeature.QUIZ)

    await task_queue.fail(task_id, "Failed to generate quiz")

    assert await task_queue.enqueue(DOC_ID, EnrichmentFeature.QUIZ) is not None
    tasks = await task_queue.list_for_document(DOC_ID)
    assert [t.status for t in tasks] == ["failed", "pending"]
    assert tasks[0].error_message == "Failed to generate quiz"


async def test_unknown_task_is_ignored(task_queue):
    await task_queue.complete(uuid4())

    assert await task_queue.list_for_document(DOC_ID) == []


def queue_at(session_factory, offset):
    """Queue whose clock runs `offset` ahead of real time."""
    return EnrichmentTaskQueue(
        session_factory,
        stale_after=timedelta(minutes=15),
        clock=lambda: utc_now() + offset,
    )


async def test_stale_running_task_is_expired_on_enqueue(task_queue, session_factory):
    stuck = await task_queue.enqueue(DOC_ID, EnrichmentFeature.QUIZ)
    await task_queue.acknowledge(stuck)

    later = queue_at(session_factory, timedelta(minutes=20))
    fresh = await later.enqueue(DOC_ID, EnrichmentFeature.QUIZ)

    assert fresh is not None and fresh != stuck
    tasks = await later.list_for_document(DOC_ID)
    assert [(t.id, t.status) for t in tasks] == [(stuck, "failed"), (fresh, "pending")]
    assert tasks[0].error_message == STALE_TASK_MESSAGE


async def test_recent_task_still_blocks(task_queue, session_factory):
    await task_queue.enqueue(DOC_ID, EnrichmentFeature.QUIZ)

    soon = queue_at(session_factory, timedelta(minutes=5))

    assert await soon.has_open(DOC_ID, EnrichmentFeature.QUIZ)
    assert await soon.enqueue(DOC_ID, EnrichmentFeature.QUIZ) is None


async def test_has_open_ignores_stale_task(task_queue, session_factory):
    await task_queue.enqueue(DOC_ID, EnrichmentFeature.FLASHCARDS)

    assert not await queue_at(session_factory, timedelta(hours=1)).has_open(
        DOC_ID, EnrichmentFeature.FLASHCARDS
    )


async def test_abandon_only_touches_open_tasks(task_queue):
    done = await task_queue.enqueue(DOC_ID, EnrichmentFeature.QUIZ)
    await task_queue.fail(done, "Failed to generate quiz")
    running = await task_queue.enqueue(DOC_ID, EnrichmentFeature.QUIZ)

    assert await task_queue.abandon(done, "interrupted") is False
    assert await task_queue.abandon(running, "interrupted") is True

    tasks = await task_queue.list_for_document(DOC_ID)
    assert [(t.status, t.error_message) for t in tasks] == [
        ("failed", "Failed to generate quiz"),
        ("failed", "interrupted"),
    ]
