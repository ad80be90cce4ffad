"""
Reactive processing record store.

Key/value document store over the processing_records table with the
semantics the pipeline needs:

- set(id, fields, merge): create or overwrite; merge=True keeps fields not
  mentioned in `fields`
- update(id, fields): merge write that fails if the record is absent
- delete(id)
- subscribe(id): async iterator of snapshots, emitted on every change
- listeners: called with RecordChange(before, after) after each committed
  write; this is how the enrichment trigger is fired
- change feed: once started, polls the table and hands writes made by other
  processes (ingestion Lambda, other API workers, clients) to the same
  listeners. Writes made through this store are not dispatched twice.

Merge writes are compare-and-swap on the row version and are retried on
conflict, so two writers touching disjoint fields never lose each other's
updates. Merge writes may not change a write-once field that already has a
value; a whole-record overwrite (new upload) may.

Dependencies: sqlalchemy, asyncio
System role: Reactive record store shared by triggers, API and client
"""

import asyncio
import copy
import logging
from collections import defaultdict
from contextlib import suppress
from dataclasses import dataclass
from typing import Any, AsyncIterator, Awaitable, Callable

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from studyspark.boundary.db.models.record_model import ProcessingRecordModel
from studyspark.core.exceptions import (
    ConcurrentWriteError,
    ImmutableFieldError,
    RecordNotFoundError,
)
from studyspark.models.processing_record import IMMUTABLE_FIELDS
from studyspark.observability import summarize_record

logger = logging.getLogger(__name__)

Snapshot = dict[str, Any]


@dataclass(frozen=True)
class RecordChange:
    """Before/after snapshots of one committed write. None means absent."""

    document_id: str
    before: Snapshot | None
    after: Snapshot | None


RecordListener = Callable[[RecordChange], Awaitable[Any]]

_UNSET = object()


class ProcessingRecordStore:
    """Processing record store with change notification."""

    def __init__(
        self,
        session_factory: async_sessionmaker,
        poll_interval: float = 1.0,
        max_write_attempts: int = 5,
    ) -> None:
        """
        Initialize store.

        Args:
            session_factory: Async session factory for the records database
            poll_interval: Seconds between polls while subscribed and between
                change feed scans; in-process writes wake subscribers immediately
            max_write_attempts: Optimistic concurrency retries per write
        """
        self._session_factory = session_factory
        self._poll_interval = poll_interval
        self._max_write_attempts = max_write_attempts
        self._listeners: list[RecordListener] = []
        self._watchers: dict[str, set[asyncio.Event]] = defaultdict(set)
        self._pending: set[asyncio.Task] = set()
        self._seen: dict[str, tuple[int, Snapshot]] | None = None
        self._feed_lock = asyncio.Lock()
        self._feed_task: asyncio.Task | None = None

    def add_listener(self, listener: RecordListener) -> None:
        """Register a coroutine called with every RecordChange."""
        self._listeners.append(listener)

    async def get(self, document_id: str) -> Snapshot | None:
        """
        Read a record.

        Args:
            document_id: Record id

        Returns:
            Copy of the record fields, None if absent
        """
        async with self._session_factory() as session:
            row = await self._load(session, document_id)
            return copy.deepcopy(row.fields) if row is not None else None

    async def set(self, document_id: str, fields: Snapshot, merge: bool = False) -> RecordChange:
        """
        Create or overwrite a record.

        Args:
            document_id: Record id
            fields: Fields to write
            merge: Keep existing fields not present in `fields`

        Returns:
            RecordChange: The committed change
        """
        return await self._write(document_id, fields, merge=merge, must_exist=False)

    async def update(self, document_id: str, fields: Snapshot) -> RecordChange:
        """
        Merge fields into an existing record.

        Raises:
            RecordNotFoundError: Record does not exist
        """
        return await self._write(document_id, fields, merge=True, must_exist=True)

    async def delete(self, document_id: str) -> bool:
        """
        Delete a record.

        Returns:
            True if a record was deleted
        """
        async with self._session_factory() as session:
            row = await self._load(session, document_id)
            if row is None:
                return False
            before = copy.deepcopy(row.fields)
            await session.execute(
                delete(ProcessingRecordModel).where(
                    ProcessingRecordModel.document_id == document_id
                )
            )
            async with self._feed_lock:
                await session.commit()
                if self._seen is not None:
                    self._seen.pop(document_id, None)

        logger.info(f"{__name__}:delete - Record deleted", extra={"document_id": document_id})
        self._publish(RecordChange(document_id, before, None))
        return True

    async def subscribe(self, document_id: str) -> AsyncIterator[Snapshot | None]:
        """
        Stream snapshots of a record.

        Yields the current state first (None if absent), then every distinct
        state after it. Runs until the consumer stops iterating or the task is
        cancelled.

        Args:
            document_id: Record id

        Yields:
            Snapshot | None: Record fields, None while absent
        """
        wake = asyncio.Event()
        self._watchers[document_id].add(wake)
        last: Any = _UNSET
        try:
            while True:
                wake.clear()
                snapshot = await self.get(document_id)
                if snapshot != last:
                    last = snapshot
                    yield copy.deepcopy(snapshot)
                try:
                    await asyncio.wait_for(wake.wait(), timeout=self._poll_interval)
                except asyncio.TimeoutError:
                    pass
        finally:
            watchers = self._watchers.get(document_id)
            if watchers is not None:
                watchers.discard(wake)
                if not watchers:
                    del self._watchers[document_id]

    async def drain(self) -> None:
        """Wait until all listener dispatches (including cascades) finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def start_change_feed(self) -> None:
        """
        Start dispatching listeners for writes made outside this store.

        Records present at start are taken as the baseline and not
        dispatched. Idempotent.
        """
        if self._feed_task is not None:
            return
        await self.poll_changes()
        self._feed_task = asyncio.create_task(self._run_change_feed())
        logger.info(
            f"{__name__}:start_change_feed - Started",
            extra={"poll_interval": self._poll_interval, "records": len(self._seen or {})},
        )

    async def stop_change_feed(self) -> None:
        """Stop the change feed and forget its baseline."""
        task, self._feed_task = self._feed_task, None
        if task is not None:
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task
        self._seen = None

    async def poll_changes(self) -> int:
        """
        Scan the table once and dispatch every change not written through
        this store. The first scan only records the baseline.

        Returns:
            int: Number of changes dispatched
        """
        async with self._feed_lock:
            async with self._session_factory() as session:
                result = await session.execute(select(ProcessingRecordModel))
                current = {
                    row.document_id: (row.version, copy.deepcopy(row.fields))
                    for row in result.scalars()
                }

            if self._seen is None:
                self._seen = current
                return 0

            changes = []
            for document_id, state in current.items():
                previous = self._seen.get(document_id)
                if previous == state:
                    continue
                before = previous[1] if previous is not None else None
                changes.append(RecordChange(document_id, copy.deepcopy(before), copy.deepcopy(state[1])))
            for document_id in self._seen.keys() - current.keys():
                changes.append(RecordChange(document_id, copy.deepcopy(self._seen[document_id][1]), None))
            self._seen = current

        for change in changes:
            logger.debug(
                f"{__name__}:poll_changes - External change",
                extra={"document_id": change.document_id, "record": summarize_record(change.after)},
            )
            self._publish(change)
        return len(changes)

    async def _run_change_feed(self) -> None:
        while True:
            await asyncio.sleep(self._poll_interval)
            try:
                await self.poll_changes()
            except SQLAlchemyError as e:
                logger.error(f"{__name__}:_run_change_feed - Scan failed: {type(e).__name__}: {e}")

    async def _load(self, session: AsyncSession, document_id: str) -> ProcessingRecordModel | None:
        stmt = select(ProcessingRecordModel).where(
            ProcessingRecordModel.document_id == document_id
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def _write(
        self,
        document_id: str,
        fields: Snapshot,
        *,
        merge: bool,
        must_exist: bool,
    ) -> RecordChange:
        for attempt in range(1, self._max_write_attempts + 1):
            async with self._session_factory() as session:
                row = await self._load(session, document_id)
                if row is None and must_exist:
                    raise RecordNotFoundError(document_id)

                before = copy.deepcopy(row.fields) if row is not None else None
                if merge:
                    _check_immutable(document_id, before, fields)
                    after = {**(before or {}), **copy.deepcopy(fields)}
                else:
                    after = copy.deepcopy(fields)

                version = 1 if row is None else row.version + 1
                try:
                    if row is None:
                        session.add(
                            ProcessingRecordModel(document_id=document_id, fields=after, version=version)
                        )
                    else:
                        stmt = (
                            update(ProcessingRecordModel)
                            .where(
                                ProcessingRecordModel.document_id == document_id,
                                ProcessingRecordModel.version == row.version,
                            )
                            .values(fields=after, version=version)
                            .execution_options(synchronize_session=False)
                        )
                        result = await session.execute(stmt)
                        if result.rowcount == 0:
                            await session.rollback()
                            logger.debug(
                                f"{__name__}:_write - Version conflict, retrying",
                                extra={"document_id": document_id, "attempt": attempt},
                            )
                            continue
                    async with self._feed_lock:
                        await session.commit()
                        if self._seen is not None:
                            self._seen[document_id] = (version, copy.deepcopy(after))
                except IntegrityError:
                    # Concurrent insert of the same id; re-read and merge
                    await session.rollback()
                    continue

            logger.debug(
                f"{__name__}:_write - Committed",
                extra={"document_id": document_id, "record": summarize_record(after)},
            )
            change = RecordChange(document_id, before, after)
            self._publish(change)
            return change

        raise ConcurrentWriteError(
            f"Write kept conflicting after {self._max_write_attempts} attempts",
            document_id,
        )

    def _publish(self, change: RecordChange) -> None:
        for wake in self._watchers.get(change.document_id, ()):
            wake.set()
        for listener in self._listeners:
            task = asyncio.create_task(self._dispatch(listener, change))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

    async def _dispatch(self, listener: RecordListener, change: RecordChange) -> None:
        try:
            await listener(change)
        except Exception as e:
            logger.exception(
                f"{__name__}:_dispatch - Listener failed: {type(e).__name__}: {e}",
                extra={"document_id": change.document_id},
            )


def _check_immutable(document_id: str, before: Snapshot | None, fields: Snapshot) -> None:
    if not before:
        return
    for field in IMMUTABLE_FIELDS:
        current = before.get(field)
        if field in fields and current is not None and fields[field] != current:
            raise ImmutableFieldError(document_id, field)
