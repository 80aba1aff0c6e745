"""Plain-text extraction from uploaded documents (.txt, .md, .pdf, .docx)."""
from __future__ import annotations

import io
import logging

logger = logging.getLogger("chat.text_extraction")

SUPPORTED_EXTENSIONS = ("txt", "md", "pdf", "docx")


class UnsupportedFileType(ValueError):
    pass


def file_extension(filename: str) -> str:
    return filename.rsplit(".", 1)[-1].lower() if "." in filename else ""


def extract_text(file_bytes: bytes, filename: str) -> str:
    """Extract text from an uploaded file. May return an empty string."""
    ext = file_extension(filename)

    if ext in ("txt", "md"):
        return file_bytes.decode("utf-8", errors="replace")
    if ext == "pdf":
        return _extract_pdf(file_bytes)
    if ext == "docx":
        return _extract_docx(file_bytes)
    raise UnsupportedFileType(
        f"Unsupported file type '.{ext}'. Use one of: "
        + ", ".join(f".{e}" for e in SUPPORTED_EXTENSIONS)
    )


def _extract_pdf(file_bytes: bytes) -> str:
    from pypdf import PdfReader

    reader = PdfReader(io.BytesIO(file_bytes))
    pages = []
    for page in reader.pages:
        text = page.extract_text() or ""
        if text.strip():
            pages.append(text)

    full_text = "\n\n".join(pages)
    logger.info("PDF: extracted %d chars from %d pages", len(full_text), len(reader.pages))
    return full_text


def _extract_docx(file_bytes: bytes) -> str:
    """Paragraphs first, then table rows as `cell | cell`."""
    from docx import Document as DocxDocument

    doc = DocxDocument(io.BytesIO(file_bytes))
    parts = [para.text for para in doc.paragraphs if para.text.strip()]

    for table in doc.tables:
        for row in table.rows:
            cells = [cell.text.strip() for cell in row.cells if cell.text.strip()]
            if cells:
                parts.append(" | ".join(cells))

    full_text = "\n".join(parts)
    logger.info("DOCX: extracted %d chars", len(full_text))
    return full_text
