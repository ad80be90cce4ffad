"""
Test doubles and sample model payloads shared across the suite.
"""

import json
from datetime import datetime, timezone

from studyspark.boundary.aws.s3_client import BlobInfo
from studyspark.core.exceptions import BlobStoreError
from studyspark.core.study_aids.prompts import (
    CHEAT_SHEET_PROMPT,
    DETAILED_SUMMARY_PROMPT,
    FLASHCARDS_PROMPT,
    QUIZ_PROMPT,
)

FILE_HANDLE = "https://generativelanguage.googleapis.com/v1beta/files/abc123"

CHEAT_SHEET = {"cheat_sheet": ["Mitochondria produce ATP", "DNA is double stranded"]}

DETAILED = {
    "definitions": [{"term": "ATP", "definition": "Energy currency of the cell"}],
    "must_revise": [{"concept": "Krebs cycle", "reason": "Appears every year"}],
    "important_questions": [{"question": "Explain glycolysis", "importance": "High"}],
    "exam_focus": [{"topic": "Respiration", "strategy": "Draw the pathway"}],
    "common_mistakes": [{"point": "ATP is stored long term", "correction": "It is used immediately"}],
}

FLASHCARDS = [
    {"front": "ATP", "back": "Energy currency of the cell"},
    {"front": "Ribosome", "back": "Site of protein synthesis"},
]

QUIZ = [
    {
        "question": "Where is ATP mostly produced?",
        "options": ["Nucleus", "Mitochondria", "Ribosome", "Golgi"],
        "answer": "Mitochondria",
        "explanation": "Oxidative phosphorylation happens in mitochondria.",
    }
]

MODEL_RESPONSES = {
    CHEAT_SHEET_PROMPT: json.dumps(CHEAT_SHEET),
    DETAILED_SUMMARY_PROMPT: json.dumps(DETAILED),
    FLASHCARDS_PROMPT: json.dumps({"flashcards": FLASHCARDS}),
    QUIZ_PROMPT: json.dumps({"quiz": QUIZ}),
}


class InMemoryBlobStore:
    """Blob store double with S3 semantics (lowercased metadata keys)."""

    def __init__(self):
        self.blobs: dict[str, bytes] = {}
        self.metadata: dict[str, dict[str, str]] = {}
        self.created: dict[str, datetime] = {}
        self.downloads: list[str] = []
        self.deleted: list[str] = []
        self.fail_put = False

    def add(self, name: str, data: bytes = b"%PDF-1.4\n", metadata=None, created=None) -> None:
        self.blobs[name] = data
        self.metadata[name] = {k.lower(): v for k, v in (metadata or {}).items()}
        self.created[name] = created or datetime.now(timezone.utc)

    async def put(self, name, data, metadata=None, progress_callback=None, content_type="application/pdf"):
        if self.fail_put:
            raise BlobStoreError("Connection reset", name)
        half = len(data) // 2
        if progress_callback is not None:
            progress_callback(half)
            progress_callback(len(data) - half)
        self.add(name, data, metadata)

    async def download_to(self, name, local_path):
        if name not in self.blobs:
            raise BlobStoreError(f"File not found in S3: {name}", name)
        data = self.blobs[name]
        with open(local_path, "wb") as f:
            f.write(data)
        self.downloads.append(local_path)
        return local_path

    async def get_metadata(self, name):
        if name not in self.blobs:
            raise BlobStoreError(f"File not found in S3: {name}", name)
        return dict(self.metadata[name])

    async def delete(self, name):
        self.blobs.pop(name, None)
        self.metadata.pop(name, None)
        self.created.pop(name, None)
        self.deleted.append(name)

    async def list(self, prefix=""):
        return [
            BlobInfo(name=name, time_created=created)
            for name, created in self.created.items()
            if name.startswith(prefix)
        ]

