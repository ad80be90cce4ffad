"""
Shared test fixtures and configuration for entire test suite.

Provides: temporary SQLite record store, enrichment task queue, in-memory
blob store, mocked Gemini client
Dependencies: pytest, pytest-asyncio, sqlalchemy, unittest.mock
System role: Test infrastructure and fixture management
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool

from studyspark.boundary.db.connection import create_all_tables, get_async_session_factory
from studyspark.boundary.db.record_store import ProcessingRecordStore
from studyspark.core.enrichment.task_queue import EnrichmentTaskQueue
from studyspark.core.retry import RetryPolicy
from tests.fakes import FILE_HANDLE, MODEL_RESPONSES, InMemoryBlobStore


@pytest.fixture
async def db_engine(tmp_path):
    """
    Temporary file-backed SQLite database with all tables.

    NullPool keeps connections from outliving the test's event loop.

    Yields:
        AsyncEngine: Test engine
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'studyspark_test.db'}",
        poolclass=NullPool,
    )
    await create_all_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return get_async_session_factory(db_engine)


@pytest.fixture
async def record_store(session_factory):
    """Record store with fast polling; waits for listener tasks on teardown."""
    store = ProcessingRecordStore(session_factory, poll_interval=0.05)
    yield store
    await store.stop_change_feed()
    await store.drain()


@pytest.fixture
def task_queue(session_factory):
    return EnrichmentTaskQueue(session_factory)


@pytest.fixture
def blob_store():
    return InMemoryBlobStore()


@pytest.fixture
def retry_policy():
    """Three attempts, no waiting."""
    return RetryPolicy(max_attempts=3, base_delay=0.0, multiplier=2.0, max_delay=0.0, jitter=0.0)


@pytest.fixture
def mock_gemini():
    """
    Create mock GeminiClient answering each prompt with a valid payload.

    Returns:
        MagicMock: Mocked GeminiClient with async methods
    """
    gemini = MagicMock()
    gemini.upload_file = AsyncMock(return_value=FILE_HANDLE)

    async def _generate(file_handle, prompt, mime_type="application/pdf"):
        return MODEL_RESPONSES[prompt]

    gemini.generate_json = AsyncMock(side_effect=_generate)
    return gemini
