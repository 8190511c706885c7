import logging
import os
from typing import Optional

from src.services.errors import UnsupportedDocument

logger = logging.getLogger(__name__)

TEXT_EXTENSIONS = {".txt", ".md", ".markdown", ".csv"}
BINARY_EXTENSIONS = {".pdf", ".doc", ".docx", ".ppt", ".pptx", ".odt", ".rtf"}


def extract_document_text(filename: str, content: bytes, content_type: Optional[str] = None) -> str:
    """Só texto puro: PDF/DOCX precisam ser convertidos antes pelo usuário."""
    ext = os.path.splitext(filename or "")[1].lower()
    is_text = ext in TEXT_EXTENSIONS or (not ext and (content_type or "").startswith("text/"))

    if ext in BINARY_EXTENSIONS or not is_text:
        raise UnsupportedDocument(detail=f"filename={filename!r} content_type={content_type!r}")

    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError:
        logger.info(f"{filename} não é UTF-8; lendo como latin-1")
        text = content.decode("latin-1")

    text = text.strip()
    if not text:
        raise UnsupportedDocument("The document is empty.", detail=f"filename={filename!r}")
    return text
