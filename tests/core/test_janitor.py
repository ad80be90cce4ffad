"""Tests for the blob retention sweep."""

from datetime import datetime, timedelta, timezone

from studyspark.core.exceptions import BlobStoreError
from studyspark.core.janitor import BlobJanitor
from tests.fakes import InMemoryBlobStore

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def make_janitor(blob_store, hours=2):
    return BlobJanitor(blob_store, retention=timedelta(hours=hours), clock=lambda: NOW)


async def test_deletes_only_blobs_older_than_retention(blob_store):
    blob_store.add("old.pdf", created=NOW - timedelta(hours=3))
    blob_store.add("just-expired.pdf", created=NOW - timedelta(hours=2, seconds=1))
    blob_store.add("boundary.pdf", created=NOW - timedelta(hours=2))
    blob_store.add("fresh.pdf", created=NOW - timedelta(minutes=5))

    deleted = await make_janitor(blob_store).sweep()

    assert deleted == 2
    assert sorted(blob_store.deleted) == ["just-expired.pdf", "old.pdf"]
    assert set(blob_store.blobs) == {"boundary.pdf", "fresh.pdf"}


async def test_empty_bucket(blob_store):
    assert await make_janitor(blob_store).sweep() == 0


async def test_naive_timestamps_treated_as_utc(blob_store):
    blob_store.add("naive.pdf", created=(NOW - timedelta(hours=5)).replace(tzinfo=None))

    assert await make_janitor(blob_store).sweep() == 1


async def test_records_are_not_touched(blob_store, record_store):
    await record_store.set("old", {"status": "summary_completed"})
    blob_store.add("old.pdf", created=NOW - timedelta(days=1))

    await make_janitor(blob_store).sweep()

    assert (await record_store.get("old"))["status"] == "summary_completed"


class StubbornBlobStore(InMemoryBlobStore):
    """Refuses to delete the named blobs."""

    def __init__(self, *stuck):
        super().__init__()
        self.stuck = set(stuck)

    async def delete(self, name):
        if name in self.stuck:
            raise BlobStoreError("Access Denied", name)
        await super().delete(name)


async def test_failed_delete_does_not_stop_sweep(caplog):
    blob_store = StubbornBlobStore("locked.pdf")
    blob_store.add("locked.pdf", created=NOW - timedelta(hours=4))
    blob_store.add("old.pdf", created=NOW - timedelta(hours=3))
    blob_store.add("older.pdf", created=NOW - timedelta(hours=5))

    with caplog.at_level("WARNING", logger="studyspark.core.janitor.janitor"):
        deleted = await make_janitor(blob_store).sweep()

    assert deleted == 2
    assert sorted(blob_store.deleted) == ["old.pdf", "older.pdf"]
    assert "locked.pdf" in blob_store.blobs
    assert any("locked.pdf" in r.getMessage() for r in caplog.records)
