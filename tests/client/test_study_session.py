"""
Tests for the client upload-and-study session.

The ingestion side is simulated by writing the record directly.
"""

import asyncio

import pytest

from studyspark.client import StudySession, UploadState, score_quiz
from studyspark.client.study_session import PROCESSING_FAILED_MESSAGE, UPLOAD_FAILED_MESSAGE
from studyspark.core.exceptions import InvalidStateTransitionError, RecordNotFoundError
from studyspark.models.processing_record import EnrichmentFeature, SummaryMode
from tests.fakes import CHEAT_SHEET, FLASHCARDS, QUIZ

FILENAME = "a1b2c3d4-biology.pdf"
DOC_ID = "a1b2c3d4-biology"


@pytest.fixture
async def session(blob_store, record_store, task_queue):
    views = []
    study_session = StudySession(blob_store, record_store, task_queue, on_change=views.append)
    study_session.views = views
    yield study_session
    await study_session.close()


async def complete_summary(record_store):
    await record_store.set(DOC_ID, {"status": "processing", "summaryMode": "cheat-sheet"})
    await record_store.update(DOC_ID, {"summary": CHEAT_SHEET, "status": "summary_completed"})


@pytest.fixture
async def completed_session(session, record_store):
    await session.start_upload(FILENAME, b"%PDF-1.4 biology", SummaryMode.CHEAT_SHEET)
    await complete_summary(record_store)
    await session.wait_for_state(UploadState.COMPLETE, timeout=2)
    return session


def distinct_states(views):
    states = []
    for view in views:
        if not states or states[-1] != view.state:
            states.append(view.state)
    return states


class TestUpload:
    async def test_happy_path_reaches_complete(self, session, blob_store, record_store):
        await session.start_upload(FILENAME, b"%PDF-1.4 biology", SummaryMode.CHEAT_SHEET)

        assert session.state == UploadState.ANALYZING
        assert session.progress == 100
        assert session.document_id == DOC_ID
        assert blob_store.metadata[FILENAME] == {"summarymode": "cheat-sheet"}

        await complete_summary(record_store)
        await session.wait_for_state(UploadState.COMPLETE, timeout=2)

        assert session.record["summary"] == CHEAT_SHEET
        assert distinct_states(session.views) == [
            UploadState.UPLOADING,
            UploadState.SUCCESS,
            UploadState.ANALYZING,
            UploadState.COMPLETE,
        ]

    async def test_processing_record_without_summary_keeps_analyzing(self, session, record_store):
        await session.start_upload(FILENAME, b"%PDF")
        await record_store.set(DOC_ID, {"status": "processing"})
        await asyncio.sleep(0.2)

        assert session.state == UploadState.ANALYZING

    async def test_previous_record_deleted_before_upload(self, session, record_store):
        await record_store.set(DOC_ID, {"status": "error", "errorMessage": "stale failure"})

        await session.start_upload(FILENAME, b"%PDF")
        await asyncio.sleep(0.2)

        assert await record_store.get(DOC_ID) is None
        assert session.state == UploadState.ANALYZING

    async def test_upload_failure(self, session, blob_store):
        blob_store.fail_put = True

        await session.start_upload(FILENAME, b"%PDF")

        assert session.state == UploadState.ERROR
        assert session.error_message == UPLOAD_FAILED_MESSAGE

    async def test_ingestion_error_surfaces_message(self, session, record_store):
        await session.start_upload(FILENAME, b"%PDF")
        await record_store.set(
            DOC_ID,
            {"status": "error", "errorMessage": "The AI response could not be read. Please upload the PDF again."},
        )

        await session.wait_for_state(UploadState.ERROR, timeout=2)

        assert session.error_message.startswith("The AI response could not be read")

    async def test_ingestion_error_without_message(self, session, record_store):
        await session.start_upload(FILENAME, b"%PDF")
        await record_store.set(DOC_ID, {"status": "error"})

        await session.wait_for_state(UploadState.ERROR, timeout=2)

        assert session.error_message == PROCESSING_FAILED_MESSAGE

    async def test_second_upload_requires_reset(self, session):
        await session.start_upload(FILENAME, b"%PDF")

        with pytest.raises(InvalidStateTransitionError):
            await session.start_upload("other.pdf", b"%PDF")

    async def test_reset_ignores_late_snapshots(self, session, record_store):
        await session.start_upload(FILENAME, b"%PDF")
        await session.reset()

        await complete_summary(record_store)
        await asyncio.sleep(0.2)

        assert session.state == UploadState.IDLE
        assert session.record is None
        assert session.document_id is None

    async def test_upload_again_after_reset(self, session, record_store):
        await session.start_upload(FILENAME, b"%PDF")
        await session.reset()

        await session.start_upload(FILENAME, b"%PDF")
        await complete_summary(record_store)

        assert await session.wait_for_state(UploadState.COMPLETE, timeout=2) == UploadState.COMPLETE


class TestRequestFeature:
    async def test_rejected_before_complete(self, session, record_store):
        await session.start_upload(FILENAME, b"%PDF")

        assert await session.request_feature(EnrichmentFeature.QUIZ) is False
        assert await record_store.get(DOC_ID) is None

    async def test_request_raises_flag_and_clears_error(self, completed_session, record_store):
        await record_store.update(DOC_ID, {"quizError": "old failure"})

        assert await completed_session.request_feature(EnrichmentFeature.QUIZ) is True

        record = await record_store.get(DOC_ID)
        assert record["requestQuiz"] is True
        assert record["quizError"] is None
        assert completed_session.is_busy(EnrichmentFeature.QUIZ)

    async def test_duplicate_request_ignored_while_busy(self, completed_session):
        assert await completed_session.request_feature(EnrichmentFeature.QUIZ) is True
        assert await completed_session.request_feature(EnrichmentFeature.QUIZ) is False

    async def test_busy_cleared_when_data_arrives(self, completed_session, record_store):
        await completed_session.request_feature(EnrichmentFeature.QUIZ)

        await record_store.update(DOC_ID, {"quiz": QUIZ, "requestQuiz": False, "quizError": None})
        await completed_session.wait_until(
            lambda s: not s.is_busy(EnrichmentFeature.QUIZ), timeout=2
        )

        assert completed_session.record["quiz"] == QUIZ

    async def test_busy_cleared_on_error(self, completed_session, record_store):
        await completed_session.request_feature(EnrichmentFeature.FLASHCARDS)

        await record_store.update(
            DOC_ID, {"requestFlashcards": False, "flashcardsError": "Failed to generate flashcards"}
        )
        await completed_session.wait_until(
            lambda s: not s.is_busy(EnrichmentFeature.FLASHCARDS), timeout=2
        )

        assert completed_session.state == UploadState.COMPLETE

    async def test_features_tracked_independently(self, completed_session, record_store):
        await completed_session.request_feature(EnrichmentFeature.QUIZ)
        await completed_session.request_feature(EnrichmentFeature.FLASHCARDS)

        await record_store.update(
            DOC_ID, {"flashcards": FLASHCARDS, "requestFlashcards": False}
        )
        await completed_session.wait_until(
            lambda s: not s.is_busy(EnrichmentFeature.FLASHCARDS), timeout=2
        )

        assert completed_session.is_busy(EnrichmentFeature.QUIZ)

    async def test_failed_write_releases_busy(self, completed_session, record_store):
        await record_store.delete(DOC_ID)

        with pytest.raises(RecordNotFoundError):
            await completed_session.request_feature(EnrichmentFeature.QUIZ)

        assert not completed_session.is_busy(EnrichmentFeature.QUIZ)

    async def test_running_task_blocks_request(self, completed_session, record_store, task_queue):
        await task_queue.enqueue(DOC_ID, EnrichmentFeature.QUIZ)

        assert await completed_session.request_feature(EnrichmentFeature.QUIZ) is False

        assert not completed_session.is_busy(EnrichmentFeature.QUIZ)
        assert (await record_store.get(DOC_ID)).get("requestQuiz") is None


class TestScoreQuiz:
    QUESTIONS = [
        {"question": "Q1", "options": ["a", "b", "c", "d"], "answer": "b"},
        {"question": "Q2", "options": ["a", "b", "c", "d"], "answer": "d"},
        {"question": "Q3", "options": ["a", "b", "c", "d"], "answer": "a"},
    ]

    def test_counts_exact_matches(self):
        assert score_quiz(self.QUESTIONS, {0: "b", 1: "c", 2: "a"}) == 2

    def test_unanswered_questions_score_zero(self):
        assert score_quiz(self.QUESTIONS, {1: "d"}) == 1
        assert score_quiz(self.QUESTIONS, {}) == 0
