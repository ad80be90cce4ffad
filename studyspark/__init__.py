"""StudySpark: AI study aids (summary, flashcards, quiz) from uploaded PDFs."""
