import pytest

from lexcanada.core.constants import DEFAULT_DOCUMENT_TITLE, EXPORT_WATERMARK
from lexcanada.core.errors import ValidationError
from lexcanada.services.document_export import DocumentExporter, extract_title, parse_blocks, slugify

CONTENT = """# Notice of Termination

This notice ends the lease.

## Details
- Unit 4B
- Effective July 31

Signed in Toronto."""


class TestParsing:
    def test_title_prefers_first_level_one_heading(self):
        assert extract_title(CONTENT, "Ignored") == "Notice of Termination"
        assert extract_title("No headings here", "Fallback") == "Fallback"
        assert extract_title("No headings here") == DEFAULT_DOCUMENT_TITLE

    def test_blocks(self):
        blocks = parse_blocks(CONTENT, "Notice of Termination")

        assert [(b.kind, b.text) for b in blocks] == [
            ("paragraph", "This notice ends the lease."),
            ("heading", "Details"),
            ("bullet", "Unit 4B"),
            ("bullet", "Effective July 31"),
            ("paragraph", "Signed in Toronto."),
        ]

    def test_slugify(self):
        assert slugify("Bail résidentiel / Québec") == "bail-r-sidentiel-qu-bec"
        assert slugify("!!!") == "document"


class TestExport:
    def test_txt_contains_title_and_watermark(self):
        result = DocumentExporter().export(CONTENT, fmt="txt")

        text = result.content.decode("utf-8")
        assert text.startswith("Notice of Termination\n" + "=" * len("Notice of Termination"))
        assert text.rstrip().endswith(EXPORT_WATERMARK)
        assert result.filename == "notice-of-termination.txt"
        assert result.degraded is False

    def test_html_escapes_content(self):
        result = DocumentExporter().export("# Title\n\n<b>bold</b> & more", fmt="html")

        html = result.content.decode("utf-8")
        assert "&lt;b&gt;bold&lt;/b&gt; &amp; more" in html
        assert result.media_type.startswith("text/html")

    def test_format_is_case_insensitive(self):
        assert DocumentExporter().export(CONTENT, fmt="TXT").format == "txt"

    def test_pdf_failure_degrades_to_html(self, monkeypatch):
        exporter = DocumentExporter()

        def broken(document):
            raise RuntimeError("font missing")

        monkeypatch.setattr(exporter, "render_pdf", broken)
        result = exporter.export(CONTENT, fmt="pdf")

        assert result.format == "html"
        assert result.requested_format == "pdf"
        assert result.degraded is True
        assert result.attempted == ["pdf", "html"]
        assert result.filename.endswith(".html")

    def test_docx_chain_ends_in_text(self, monkeypatch):
        exporter = DocumentExporter()

        def broken(document):
            raise RuntimeError("renderer down")

        monkeypatch.setattr(exporter, "render_docx", broken)
        monkeypatch.setattr(exporter, "render_html", broken)
        result = exporter.export(CONTENT, fmt="docx")

        assert result.format == "txt"
        assert result.attempted == ["docx", "html", "txt"]

    def test_empty_content(self):
        with pytest.raises(ValidationError):
            DocumentExporter().export("   ", fmt="pdf")

    def test_unknown_format(self):
        with pytest.raises(ValidationError) as exc_info:
            DocumentExporter().export(CONTENT, fmt="rtf")

        assert "format" in exc_info.value.errors
