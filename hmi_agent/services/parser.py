# hmi_agent/services/parser.py

import logging
import os
from io import BytesIO

from docx import Document
from PyPDF2 import PdfReader

logger = logging.getLogger(__name__)

UNREADABLE_TEMPLATE = "[Document could not be read: {reason}]"

FILE_TYPES = {
    ".txt": "text/plain",
    ".pdf": "application/pdf",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}


def extract_text_from_bytes(file_bytes: bytes, file_type: str) -> str:
    """
    Extract text from uploaded file bytes based on the file type.
    Supports: PDF, DOCX, and plain text.
    Raises on a corrupt rich document so the caller can pick a fallback.
    """
    if not file_bytes:
        return ""

    file_type = (file_type or "").lower()

    # ----- PDF -----
    if "pdf" in file_type:
        reader = PdfReader(BytesIO(file_bytes))
        pages_text = []
        for page in reader.pages:
            pages_text.append(page.extract_text() or "")
        return "\n".join(pages_text)

    # ----- DOCX (Word) -----
    if "word" in file_type or "docx" in file_type:
        doc = Document(BytesIO(file_bytes))
        return "\n".join(p.text for p in doc.paragraphs)

    # ----- Plain text -----
    return file_bytes.decode("utf-8", errors="ignore")


def file_type_for(path: str) -> str:
    ext = os.path.splitext(path)[1].lower()
    return FILE_TYPES.get(ext, "text/plain")


def read_document(path: str) -> str:
    """
    Read an uploaded FDS document into plain text. Never raises: a rich
    document that cannot be parsed is decoded as raw text, and a file that
    cannot be opened at all yields a placeholder string.
    """
    try:
        with open(path, "rb") as f:
            file_bytes = f.read()
    except OSError as e:
        logger.warning("Could not open document %s: %s", path, e)
        return UNREADABLE_TEMPLATE.format(reason=e)

    file_type = file_type_for(path)
    try:
        text = extract_text_from_bytes(file_bytes, file_type)
    except Exception as e:
        logger.warning("Text extraction failed for %s (%s), reading raw bytes", path, e)
        text = file_bytes.decode("utf-8", errors="ignore")
        if not text.strip():
            return UNREADABLE_TEMPLATE.format(reason=e)

    logger.info("Read %d characters from %s", len(text), os.path.basename(path))
    return text
