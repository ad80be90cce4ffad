"""
Core pipeline logic: retry wrapper, ingestion, enrichment, janitor.

Dependencies: studyspark.boundary, studyspark.models
System role: Business logic of the study material pipeline
"""
