from docx import Document

from hmi_agent.services.parser import extract_text_from_bytes, file_type_for, read_document


def test_plain_text_is_read(tmp_path) -> None:
    path = tmp_path / "fds.txt"
    path.write_text("HOME SCREEN\nStart button", encoding="utf-8")
    assert read_document(str(path)) == "HOME SCREEN\nStart button"


def test_docx_paragraphs_are_joined(tmp_path) -> None:
    path = tmp_path / "fds.docx"
    doc = Document()
    doc.add_paragraph("1. Overview")
    doc.add_paragraph("Alarm Screen")
    doc.save(str(path))
    assert read_document(str(path)) == "1. Overview\nAlarm Screen"


def test_corrupt_pdf_is_decoded_as_text(tmp_path) -> None:
    path = tmp_path / "fds.pdf"
    path.write_bytes(b"not really a pdf, just Home Screen text")
    assert "Home Screen" in read_document(str(path))


def test_missing_file_yields_placeholder(tmp_path) -> None:
    text = read_document(str(tmp_path / "missing.txt"))
    assert text.startswith("[Document could not be read:")


def test_file_types() -> None:
    assert file_type_for("a.PDF") == "application/pdf"
    assert file_type_for("a.md") == "text/plain"
    assert extract_text_from_bytes(b"", "application/pdf") == ""
