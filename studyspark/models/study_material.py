"""
Study material schemas.

Shapes the model must return for each artifact. Parsing the model's JSON
through these models is the validation step of both triggers.

Dependencies: pydantic
System role: Data contracts for generated study aids
"""

from pydantic import BaseModel, Field, model_validator


class CheatSheetSummary(BaseModel):
    """Ultra-terse bullet list summary."""

    cheat_sheet: list[str] = Field(min_length=1, description="One fact per line")


class Definition(BaseModel):
    term: str
    definition: str


class MustRevise(BaseModel):
    concept: str
    reason: str


class ImportantQuestion(BaseModel):
    question: str
    importance: str = Field(description="Very High | High | Medium")


class ExamFocus(BaseModel):
    topic: str
    strategy: str


class CommonMistake(BaseModel):
    point: str
    correction: str


class DetailedSummary(BaseModel):
    """Five-section exam revision guide."""

    definitions: list[Definition] = Field(default_factory=list)
    must_revise: list[MustRevise] = Field(default_factory=list)
    important_questions: list[ImportantQuestion] = Field(default_factory=list)
    exam_focus: list[ExamFocus] = Field(default_factory=list)
    common_mistakes: list[CommonMistake] = Field(default_factory=list)

    @model_validator(mode="after")
    def _require_content(self) -> "DetailedSummary":
        if not any(
            (
                self.definitions,
                self.must_revise,
                self.important_questions,
                self.exam_focus,
                self.common_mistakes,
            )
        ):
            raise ValueError("detailed summary has no sections")
        return self


class Flashcard(BaseModel):
    front: str = Field(min_length=1)
    back: str = Field(min_length=1)


class FlashcardDeck(BaseModel):
    flashcards: list[Flashcard] = Field(min_length=1)


class QuizQuestion(BaseModel):
    """Four-option multiple-choice question; answer must be one of the options verbatim."""

    question: str
    options: list[str] = Field(min_length=4, max_length=4)
    answer: str
    explanation: str = ""

    @model_validator(mode="after")
    def _answer_is_an_option(self) -> "QuizQuestion":
        if self.answer not in self.options:
            raise ValueError(f"answer {self.answer!r} is not one of the options")
        return self


class Quiz(BaseModel):
    quiz: list[QuizQuestion] = Field(min_length=1)
