"""Lambda helpers: secrets bootstrap and S3 event parsing."""
