"""
Naming rules for browser uploads.

Only a bare `.pdf` filename is accepted. The stored blob is renamed to
`<8 hex chars>-<slug>.pdf`, so uploading the same file twice yields two
document ids.
"""

import re
import secrets

MAX_FILENAME_LENGTH = 255
FALLBACK_SLUG = "document"

_NOT_SLUG = re.compile(r"[^A-Za-z0-9_-]+")


class PdfFilenameError(ValueError):
    """Upload name rejected; the message is returned to the caller."""


def check_pdf_filename(filename: str) -> None:
    """Raise PdfFilenameError unless `filename` is a single-segment .pdf name."""
    if not 0 < len(filename) <= MAX_FILENAME_LENGTH:
        raise PdfFilenameError(f"Filename must be 1-{MAX_FILENAME_LENGTH} characters")
    if ".." in filename or "/" in filename or "\\" in filename:
        raise PdfFilenameError("Filename must not contain a path")
    _, dot, extension = filename.rpartition(".")
    if not dot or extension.lower() != "pdf":
        raise PdfFilenameError("Only .pdf uploads are accepted")


def blob_name_for(filename: str) -> str:
    stem = filename.rpartition(".")[0] or filename
    slug = _NOT_SLUG.sub("", stem) or FALLBACK_SLUG
    return f"{secrets.token_hex(4)}-{slug}.pdf"
