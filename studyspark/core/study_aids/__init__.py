"""
Study aid prompts and response parsing.

Exports: summary_prompt_for, enrichment_prompt_for, parse_summary,
parse_flashcards, parse_quiz, parse_enrichment
"""

from .parsing import parse_enrichment, parse_flashcards, parse_quiz, parse_summary
from .prompts import enrichment_prompt_for, summary_prompt_for

__all__ = [
    "enrichment_prompt_for",
    "parse_enrichment",
    "parse_flashcards",
    "parse_quiz",
    "parse_summary",
    "summary_prompt_for",
]
