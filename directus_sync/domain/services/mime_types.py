"""MIME type inference for uploaded binaries."""

from __future__ import annotations

import mimetypes

GENERIC_CONTENT_TYPES = {"", "application/octet-stream", "binary/octet-stream", "application/unknown"}
DEFAULT_CONTENT_TYPE = "application/octet-stream"


def guess_content_type(filename: str | None, declared: str | None = None) -> str:
    """
    Content type to upload a binary with.
    
    A specific declared type is kept; a generic or missing one is replaced by
    the type implied by the filename extension.
    """
    if declared and declared.lower() not in GENERIC_CONTENT_TYPES:
        return declared
    if filename:
        guessed, _ = mimetypes.guess_type(filename)
        if guessed:
            return guessed
    return DEFAULT_CONTENT_TYPE
