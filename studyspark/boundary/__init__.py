"""
Boundary layer for external system integrations.

Handles all interactions with external systems (S3 blob storage, the record
database, the Gemini model provider).
"""
