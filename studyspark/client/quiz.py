"""Quiz scoring for rendered quizzes."""

from typing import Any, Mapping, Sequence


def score_quiz(questions: Sequence[Mapping[str, Any]], answers: Mapping[int, str]) -> int:
    """
    Count correctly answered questions.

    Args:
        questions: Quiz entries as stored on the record
        answers: Chosen option per question index; unanswered questions are absent

    Returns:
        int: Number of answers equal to the question's answer
    """
    return sum(
        1
        for index, question in enumerate(questions)
        if answers.get(index) is not None and answers.get(index) == question.get("answer")
    )
