import pytest

from src.services.document_service import extract_document_text
from src.services.errors import UnsupportedDocument


def test_plain_text_is_decoded():
    assert extract_document_text("notes.txt", "  Photosynthesis\n".encode()) == "Photosynthesis"


def test_utf8_bom_is_dropped():
    assert extract_document_text("notes.md", b"\xef\xbb\xbf" + "Célula".encode("utf-8")) == "Célula"


def test_latin1_fallback():
    assert extract_document_text("notes.txt", "Função".encode("latin-1")) == "Função"


def test_text_content_type_without_extension():
    assert extract_document_text("clipboard", b"hello", "text/plain") == "hello"


@pytest.mark.parametrize("filename", ["paper.pdf", "essay.DOCX", "old.doc", "image.png"])
def test_binary_documents_rejected(filename):
    with pytest.raises(UnsupportedDocument) as info:
        extract_document_text(filename, b"%PDF-1.7 ...")
    assert "plain text" in info.value.user_message


def test_empty_document_rejected():
    with pytest.raises(UnsupportedDocument):
        extract_document_text("empty.txt", b"   \n")
