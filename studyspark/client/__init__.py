"""
Client side of the pipeline: upload, follow, request artifacts.

Exports: StudySession, UploadState, SessionView, score_quiz
"""

from .quiz import score_quiz
from .study_session import SessionView, StudySession, UploadState

__all__ = ["SessionView", "StudySession", "UploadState", "score_quiz"]
