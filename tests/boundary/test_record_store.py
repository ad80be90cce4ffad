"""
Tests for the reactive processing record store.
"""

import asyncio

import pytest

from studyspark.boundary.db.record_store import ProcessingRecordStore
from studyspark.core.exceptions import ImmutableFieldError, RecordNotFoundError

DOC_ID = "lecture-03"


class TestReadWrite:
    async def test_get_absent_returns_none(self, record_store):
        assert await record_store.get(DOC_ID) is None

    async def test_set_then_get(self, record_store):
        await record_store.set(DOC_ID, {"status": "processing", "originalFile": "lecture-03.pdf"})

        assert await record_store.get(DOC_ID) == {
            "status": "processing",
            "originalFile": "lecture-03.pdf",
        }

    async def test_get_returns_a_copy(self, record_store):
        await record_store.set(DOC_ID, {"summary": {"cheat_sheet": ["a"]}})

        snapshot = await record_store.get(DOC_ID)
        snapshot["summary"]["cheat_sheet"].append("b")

        assert (await record_store.get(DOC_ID))["summary"] == {"cheat_sheet": ["a"]}

    async def test_overwrite_drops_missing_fields(self, record_store):
        await record_store.set(DOC_ID, {"status": "error", "errorMessage": "old"})
        await record_store.set(DOC_ID, {"status": "processing"}, merge=False)

        assert await record_store.get(DOC_ID) == {"status": "processing"}

    async def test_merge_keeps_other_fields(self, record_store):
        await record_store.set(DOC_ID, {"status": "processing", "summaryMode": "detailed"})
        await record_store.set(DOC_ID, {"status": "error"}, merge=True)

        assert await record_store.get(DOC_ID) == {"status": "error", "summaryMode": "detailed"}

    async def test_merge_creates_missing_record(self, record_store):
        await record_store.set(DOC_ID, {"status": "error"}, merge=True)

        assert await record_store.get(DOC_ID) == {"status": "error"}

    async def test_update_absent_raises(self, record_store):
        with pytest.raises(RecordNotFoundError):
            await record_store.update(DOC_ID, {"requestQuiz": True})

        assert await record_store.get(DOC_ID) is None

    async def test_update_returns_change(self, record_store):
        await record_store.set(DOC_ID, {"status": "summary_completed"})

        change = await record_store.update(DOC_ID, {"requestQuiz": True})

        assert change.before == {"status": "summary_completed"}
        assert change.after == {"status": "summary_completed", "requestQuiz": True}

    async def test_delete(self, record_store):
        await record_store.set(DOC_ID, {"status": "processing"})

        assert await record_store.delete(DOC_ID) is True
        assert await record_store.delete(DOC_ID) is False
        assert await record_store.get(DOC_ID) is None


class TestFileHandleIsWriteOnce:
    async def test_merge_cannot_change_handle(self, record_store):
        await record_store.set(DOC_ID, {"modelFileHandle": "files/one"})

        with pytest.raises(ImmutableFieldError):
            await record_store.update(DOC_ID, {"modelFileHandle": "files/two"})

        assert (await record_store.get(DOC_ID))["modelFileHandle"] == "files/one"

    async def test_merge_with_same_handle_allowed(self, record_store):
        await record_store.set(DOC_ID, {"modelFileHandle": "files/one"})

        await record_store.update(DOC_ID, {"modelFileHandle": "files/one", "status": "error"})

        assert (await record_store.get(DOC_ID))["status"] == "error"

    async def test_handle_can_be_set_once_by_merge(self, record_store):
        await record_store.set(DOC_ID, {"status": "processing"})

        await record_store.update(DOC_ID, {"modelFileHandle": "files/one"})

        assert (await record_store.get(DOC_ID))["modelFileHandle"] == "files/one"

    async def test_overwrite_replaces_handle(self, record_store):
        await record_store.set(DOC_ID, {"modelFileHandle": "files/one"})

        await record_store.set(DOC_ID, {"modelFileHandle": "files/two"}, merge=False)

        assert (await record_store.get(DOC_ID))["modelFileHandle"] == "files/two"


class TestListeners:
    async def test_listener_receives_before_and_after(self, record_store):
        changes = []

        async def listener(change):
            changes.append(change)

        record_store.add_listener(listener)
        await record_store.set(DOC_ID, {"status": "processing"})
        await record_store.update(DOC_ID, {"status": "summary_completed"})
        await record_store.delete(DOC_ID)
        await record_store.drain()

        assert [(c.before, c.after) for c in changes] == [
            (None, {"status": "processing"}),
            ({"status": "processing"}, {"status": "summary_completed"}),
            ({"status": "summary_completed"}, None),
        ]

    async def test_failing_listener_does_not_break_writes(self, record_store):
        async def listener(change):
            raise RuntimeError("listener bug")

        record_store.add_listener(listener)
        await record_store.set(DOC_ID, {"status": "processing"})
        await record_store.drain()

        assert await record_store.get(DOC_ID) == {"status": "processing"}

    async def test_drain_waits_for_cascading_writes(self, record_store):
        async def listener(change):
            if change.after and change.after.get("status") == "processing":
                await record_store.update(DOC_ID, {"status": "summary_completed"})

        record_store.add_listener(listener)
        await record_store.set(DOC_ID, {"status": "processing"})
        await record_store.drain()

        assert (await record_store.get(DOC_ID))["status"] == "summary_completed"


class TestSubscribe:
    async def test_first_snapshot_is_current_state(self, record_store):
        snapshots = record_store.subscribe(DOC_ID)
        try:
            assert await anext(snapshots) is None
        finally:
            await snapshots.aclose()

    async def test_emits_on_change(self, record_store):
        snapshots = record_store.subscribe(DOC_ID)
        try:
            assert await anext(snapshots) is None

            await record_store.set(DOC_ID, {"status": "processing"})
            assert await asyncio.wait_for(anext(snapshots), 2) == {"status": "processing"}

            await record_store.update(DOC_ID, {"summary": {"cheat_sheet": ["x"]}})
            snapshot = await asyncio.wait_for(anext(snapshots), 2)
            assert snapshot["summary"] == {"cheat_sheet": ["x"]}
        finally:
            await snapshots.aclose()

    async def test_sees_writes_from_another_store(self, record_store, session_factory):
        other = ProcessingRecordStore(session_factory)
        snapshots = record_store.subscribe(DOC_ID)
        try:
            assert await anext(snapshots) is None

            await other.set(DOC_ID, {"status": "processing"})

            # Picked up by polling
            assert await asyncio.wait_for(anext(snapshots), 2) == {"status": "processing"}
        finally:
            await snapshots.aclose()


class TestChangeFeed:
    @pytest.fixture
    def changes(self, record_store):
        seen = []

        async def listener(change):
            seen.append(change)

        record_store.add_listener(listener)
        return seen

    @pytest.fixture
    def other(self, session_factory):
        return ProcessingRecordStore(session_factory)

    async def test_first_scan_is_baseline(self, record_store, other, changes):
        await other.set(DOC_ID, {"status": "processing"})

        assert await record_store.poll_changes() == 0
        await record_store.drain()

        assert changes == []

    async def test_dispatches_writes_from_another_store(self, record_store, other, changes):
        await record_store.poll_changes()

        await other.set(DOC_ID, {"status": "processing"})
        await other.update(DOC_ID, {"requestQuiz": True})
        await other.delete("never-seen")

        assert await record_store.poll_changes() == 1
        await record_store.drain()

        [change] = changes
        assert change.before is None
        assert change.after == {"status": "processing", "requestQuiz": True}

    async def test_before_is_last_observed_state(self, record_store, other, changes):
        await other.set(DOC_ID, {"status": "summary_completed"})
        await record_store.poll_changes()

        await other.update(DOC_ID, {"requestFlashcards": True})
        await record_store.poll_changes()
        await other.delete(DOC_ID)
        await record_store.poll_changes()
        await record_store.drain()

        assert [(c.before, c.after) for c in changes] == [
            ({"status": "summary_completed"}, {"status": "summary_completed", "requestFlashcards": True}),
            ({"status": "summary_completed", "requestFlashcards": True}, None),
        ]

    async def test_own_writes_not_dispatched_twice(self, record_store, changes):
        await record_store.poll_changes()

        await record_store.set(DOC_ID, {"status": "processing"})
        await record_store.delete(DOC_ID)
        await record_store.set(DOC_ID, {"status": "processing"})

        assert await record_store.poll_changes() == 0
        await record_store.drain()

        assert len(changes) == 3

    async def test_running_feed_picks_up_external_write(self, record_store, other, changes):
        await record_store.start_change_feed()

        await other.set(DOC_ID, {"status": "processing"})

        async def _wait():
            while not changes:
                await asyncio.sleep(0.01)

        await asyncio.wait_for(_wait(), 2)
        await record_store.stop_change_feed()
        assert changes[0].after == {"status": "processing"}
