"""Helpers shared by the document routes."""

from studyspark.api.routers.router_utils.upload_naming import (
    PdfFilenameError,
    blob_name_for,
    check_pdf_filename,
)

__all__ = ["PdfFilenameError", "blob_name_for", "check_pdf_filename"]
