"""Prompt templates for study aid generation.

Fixed instructions sent alongside the uploaded PDF. Each prompt pins the
exact JSON shape so the response can be parsed without post-processing.

Dependencies: None (pure prompt templates)
System role: Instruction set for ingestion and enrichment model calls
"""

from studyspark.models.processing_record import EnrichmentFeature, SummaryMode

CHEAT_SHEET_PROMPT = """You are an expert tutor preparing a one-page cheat sheet from the attached study material.

Read the whole PDF and extract the facts a student must have memorised before an exam:
key formulas, definitions, dates, rules and relationships.

Rules:
- 8 to 15 bullet points
- Each bullet is a single self-contained sentence
- No introductions, headings or commentary
- Use only information found in the document

Return ONLY a JSON object of this exact shape:
{
  "cheat_sheet": ["bullet point", "bullet point"]
}
"""

DETAILED_SUMMARY_PROMPT = """You are an expert tutor writing an exam preparation guide from the attached study material.

Read the whole PDF and produce a guide with five sections:

1. definitions: the key terms and their precise definitions
2. must_revise: concepts the student must revise, with the reason each matters
3. important_questions: likely exam questions, rated "Very High", "High" or "Medium"
4. exam_focus: topics examiners focus on, with a strategy for answering
5. common_mistakes: frequent errors, each with the correct understanding

Rules:
- 3 to 8 entries per section
- Keep every string concise and specific to the document
- Use only information found in the document

Return ONLY a JSON object of this exact shape:
{
  "definitions": [{"term": "...", "definition": "..."}],
  "must_revise": [{"concept": "...", "reason": "..."}],
  "important_questions": [{"question": "...", "importance": "High"}],
  "exam_focus": [{"topic": "...", "strategy": "..."}],
  "common_mistakes": [{"point": "...", "correction": "..."}]
}
"""

FLASHCARDS_PROMPT = """You are an expert tutor creating flashcards from the attached study material.

Create between 10 and 15 flashcards covering the most important ideas in the PDF.

Rules:
- "front" is a term, question or prompt
- "back" is the answer in at most 15 words
- No duplicate cards
- Use only information found in the document

Return ONLY a JSON object of this exact shape:
{
  "flashcards": [{"front": "...", "back": "..."}]
}
"""

QUIZ_PROMPT = """You are an expert examiner writing a multiple-choice quiz from the attached study material.

Write between 5 and 10 questions that test understanding, not just recall.

Rules:
- Exactly 4 options per question
- "answer" must be copied exactly, character for character, from one of the options
- "explanation" says in one or two sentences why the answer is correct
- Use only information found in the document

Return ONLY a JSON object of this exact shape:
{
  "quiz": [
    {
      "question": "...",
      "options": ["...", "...", "...", "..."],
      "answer": "...",
      "explanation": "..."
    }
  ]
}
"""


def summary_prompt_for(mode: SummaryMode) -> str:
    """Return the ingestion summary prompt for a summary mode."""
    if mode == SummaryMode.CHEAT_SHEET:
        return CHEAT_SHEET_PROMPT
    return DETAILED_SUMMARY_PROMPT


def enrichment_prompt_for(feature: EnrichmentFeature) -> str:
    """Return the on-demand prompt for an enrichment feature."""
    return {
        EnrichmentFeature.DETAILED_SUMMARY: DETAILED_SUMMARY_PROMPT,
        EnrichmentFeature.FLASHCARDS: FLASHCARDS_PROMPT,
        EnrichmentFeature.QUIZ: QUIZ_PROMPT,
    }[feature]
