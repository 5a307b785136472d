"""
Document-to-text conversion for CVs, job descriptions and recruiter profiles.
"""
import io
import logging
import mimetypes
from typing import Optional

import docx
from pypdf import PdfReader
from pypdf.errors import PyPdfError

from ..errors import ParseFailure

logger = logging.getLogger("documents")

PDF = "application/pdf"
DOCX = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
TEXT = "text/plain"
MARKDOWN = "text/markdown"


def guess_media_type(filename: str) -> str:
    lower = filename.lower()
    for suffix, media_type in ((".pdf", PDF), (".docx", DOCX), (".md", MARKDOWN)):
        if lower.endswith(suffix):
            return media_type
    # mime.types on the host may not know every document type
    guessed, _ = mimetypes.guess_type(lower)
    return guessed or TEXT


class DocumentConverter:
    """Binary blob plus declared media type -> plain text."""

    def to_text(self, data: bytes, media_type: str) -> str:
        if media_type == PDF:
            text = self._pdf(data)
        elif media_type == DOCX:
            text = self._docx(data)
        elif media_type.startswith("text/"):
            text = self._plain(data)
        else:
            raise ParseFailure(f"Unsupported media type: {media_type}",
                               user_message="Unsupported file type. Please upload PDF, DOCX or text.")

        text = text.strip()
        if not text:
            raise ParseFailure(f"No text extracted from {media_type} document",
                               user_message="The document appears to be empty.")
        return text

    def file_to_text(self, path: str, media_type: Optional[str] = None) -> str:
        with open(path, "rb") as f:
            data = f.read()
        return self.to_text(data, media_type or guess_media_type(path))

    def _pdf(self, data: bytes) -> str:
        try:
            reader = PdfReader(io.BytesIO(data))
            pages = [page.extract_text() or "" for page in reader.pages]
        except (PyPdfError, ValueError, OSError) as e:
            logger.warning("PDF parse failed: %s", e)
            raise ParseFailure(f"Could not read PDF: {e}") from e
        return "\n".join(pages)

    def _docx(self, data: bytes) -> str:
        try:
            document = docx.Document(io.BytesIO(data))
        except Exception as e:
            # python-docx surfaces zip/xml errors from several libraries
            logger.warning("DOCX parse failed: %s", e)
            raise ParseFailure(f"Could not read DOCX: {e}") from e
        return "\n".join(p.text for p in document.paragraphs)

    def _plain(self, data: bytes) -> str:
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError:
            return data.decode("latin-1")
