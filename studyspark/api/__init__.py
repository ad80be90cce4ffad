"""HTTP API for uploads, records and artifact requests."""
