"""
transcript_reader.py

Reads transcript sources as plain text.

    - .txt (and any other non-PDF extension): decoded as UTF-8
    - .pdf: screenplay PDFs, text extracted page by page with pdfplumber and
      joined with newlines so indentation-based speaker labels survive as far
      as the extractor keeps them

Errors (missing file, permission, undecodable bytes) propagate to the caller.
A damaged PDF surfaces as TranscriptReadError, an OSError.
"""
from __future__ import annotations

import logging
import os
from typing import Any, Callable, Iterable, List

import pdfplumber
from pdfminer.psparser import PSException
from pdfplumber.utils.exceptions import PdfminerException

from transcript_project.errors import TranscriptReadError

logger = logging.getLogger(__name__)

DEFAULT_EXTENSIONS = (".txt",)


def read_pdf_text(path: str, *, pdf_open: Callable[..., Any] = pdfplumber.open) -> str:
    pages: List[str] = []
    try:
        with pdf_open(path) as pdf:
            for p in pdf.pages:
                pages.append(p.extract_text(layout=True) or "")
    except (PSException, PdfminerException) as exc:
        raise TranscriptReadError(f"cannot extract text from {path}: {exc}") from exc
    return "\n".join(pages)


def read_transcript_text(path: str, *, pdf_open: Callable[..., Any] = pdfplumber.open) -> str:
    if path.lower().endswith(".pdf"):
        return read_pdf_text(path, pdf_open=pdf_open)
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def list_transcript_files(directory: str, extensions: Iterable[str] = DEFAULT_EXTENSIONS) -> List[str]:
    """
    Recursively list transcript files under directory, sorted by path.

    A missing or unreadable directory is logged and yields [].
    """
    if not os.path.isdir(directory):
        logger.error("transcript directory not found: %s", directory)
        return []

    exts = tuple(e.lower() for e in extensions)
    found: List[str] = []

    def on_walk_error(exc: OSError) -> None:
        logger.error("error listing %s: %s", exc.filename, exc)

    for root, dirs, files in os.walk(directory, onerror=on_walk_error):
        dirs.sort()
        for name in files:
            if name.lower().endswith(exts):
                found.append(os.path.join(root, name))

    found.sort()
    logger.info("found %d transcript file(s) in %s", len(found), directory)
    return found
