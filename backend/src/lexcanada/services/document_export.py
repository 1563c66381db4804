"""
Document export pipeline.

Renders legal documents to PDF (reportlab), DOCX (python-docx), a
printable HTML page or plain text. Each requested format has a fallback
chain; when a renderer fails the next one runs and the result is flagged
as degraded. Plain text always succeeds.
"""

import io
import re
import html
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Tuple

from reportlab.lib import colors
from reportlab.lib.pagesizes import LETTER
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from reportlab.lib.enums import TA_CENTER
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, ListFlowable, ListItem
from docx import Document
from docx.shared import Pt
from docx.enum.text import WD_ALIGN_PARAGRAPH

from lexcanada.core.constants import DEFAULT_DOCUMENT_TITLE, EXPORT_WATERMARK
from lexcanada.core.errors import ApiError, ValidationError

logger = logging.getLogger(__name__)

EXPORT_FORMATS = ("pdf", "docx", "html", "txt")

FALLBACK_CHAINS = {
    "pdf": ["pdf", "html", "txt"],
    "docx": ["docx", "html", "txt"],
    "html": ["html", "txt"],
    "txt": ["txt"],
}

MEDIA_TYPES = {
    "pdf": "application/pdf",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "html": "text/html; charset=utf-8",
    "txt": "text/plain; charset=utf-8",
}

_HEADING_RE = re.compile(r"^(#{1,6})\s+(.*)$")
_BULLET_RE = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s+(.*)$")

HTML_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>{title}</title>
<style>
  body {{ font-family: "Times New Roman", Times, serif; font-size: 12pt; line-height: 1.5; max-width: 8.5in; margin: 0 auto; padding: 1in; color: #000; }}
  h1 {{ text-align: center; font-size: 18pt; margin-bottom: 0.25in; }}
  h2 {{ font-size: 14pt; margin-top: 0.3in; }}
  h3 {{ font-size: 12pt; }}
  p {{ margin: 0 0 0.15in 0; }}
  .meta {{ text-align: center; color: #555; font-size: 10pt; margin-bottom: 0.3in; }}
  .watermark {{ margin-top: 0.5in; border-top: 1px solid #ccc; padding-top: 0.1in; text-align: center; color: #888; font-size: 9pt; }}
  @media print {{
    body {{ padding: 0; }}
    @page {{ size: letter; margin: 1in; }}
    .watermark {{ position: fixed; bottom: 0; left: 0; right: 0; }}
  }}
</style>
</head>
<body>
<h1>{title}</h1>
<div class="meta">Generated on {generated}</div>
{body}
<div class="watermark">{watermark}</div>
</body>
</html>
"""


@dataclass
class Block:
    kind: str  # "heading", "bullet" or "paragraph"
    text: str
    level: int = 0


@dataclass
class PreparedDocument:
    title: str
    content: str
    generated_at: datetime
    blocks: List[Block] = field(default_factory=list)


@dataclass
class ExportResult:
    content: bytes
    media_type: str
    filename: str
    format: str
    requested_format: str
    degraded: bool
    attempted: List[str]


def extract_title(content: str, title: Optional[str] = None) -> str:
    """First level-one Markdown heading, else the given title, else the default."""
    for line in content.splitlines():
        stripped = line.strip()
        if stripped.startswith("# "):
            heading = stripped[2:].strip()
            if heading:
                return heading
    if title and title.strip():
        return title.strip()
    return DEFAULT_DOCUMENT_TITLE


def parse_blocks(content: str, title: Optional[str] = None) -> List[Block]:
    """Split Markdown-lite text into headings, bullet items and paragraphs."""
    blocks: List[Block] = []
    paragraph: List[str] = []
    title_skipped = False

    def flush():
        if paragraph:
            blocks.append(Block("paragraph", "\n".join(paragraph)))
            paragraph.clear()

    for raw_line in content.splitlines():
        line = raw_line.rstrip()
        if not line.strip():
            flush()
            continue

        heading = _HEADING_RE.match(line.strip())
        if heading:
            flush()
            level = len(heading.group(1))
            text = heading.group(2).strip()
            # The document title is rendered separately
            if level == 1 and not title_skipped and text == title:
                title_skipped = True
                continue
            blocks.append(Block("heading", text, level))
            continue

        bullet = _BULLET_RE.match(line)
        if bullet:
            flush()
            blocks.append(Block("bullet", bullet.group(1).strip()))
            continue

        paragraph.append(line.strip())

    flush()
    return blocks


def slugify(title: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", title.lower()).strip("-")
    return slug[:80] or "document"


class DocumentExporter:
    """Renders a document in one of the export formats with fallback."""

    def prepare(self, content: str, title: Optional[str] = None) -> PreparedDocument:
        if not content or not content.strip():
            raise ValidationError("Document content is empty", errors={"content": "Content is required"})

        resolved_title = extract_title(content, title)
        return PreparedDocument(
            title=resolved_title,
            content=content,
            generated_at=datetime.utcnow(),
            blocks=parse_blocks(content, resolved_title),
        )

    def export(self, content: str, title: Optional[str] = None, fmt: str = "pdf") -> ExportResult:
        fmt = (fmt or "pdf").lower()
        if fmt not in FALLBACK_CHAINS:
            raise ValidationError(
                f"Unsupported export format: {fmt}",
                errors={"format": f"Must be one of: {', '.join(EXPORT_FORMATS)}"},
            )

        document = self.prepare(content, title)
        attempted: List[str] = []

        for candidate in FALLBACK_CHAINS[fmt]:
            attempted.append(candidate)
            renderer = getattr(self, f"render_{candidate}")
            try:
                payload = renderer(document)
            except Exception as e:
                logger.warning(f"Export to {candidate} failed for '{document.title}': {e}")
                continue

            if candidate != fmt:
                logger.info(f"Export of '{document.title}' degraded from {fmt} to {candidate}")
            return ExportResult(
                content=payload,
                media_type=MEDIA_TYPES[candidate],
                filename=f"{slugify(document.title)}.{candidate}",
                format=candidate,
                requested_format=fmt,
                degraded=candidate != fmt,
                attempted=attempted,
            )

        raise ApiError(f"Document could not be exported as {fmt}", 500)

    # Renderers

    def render_pdf(self, document: PreparedDocument) -> bytes:
        buffer = io.BytesIO()
        pdf = SimpleDocTemplate(
            buffer,
            pagesize=LETTER,
            leftMargin=inch,
            rightMargin=inch,
            topMargin=inch,
            bottomMargin=inch,
            title=document.title,
            author="LexCanada",
        )

        styles = getSampleStyleSheet()
        title_style = ParagraphStyle("DocTitle", parent=styles["Title"], fontName="Times-Bold", fontSize=18)
        meta_style = ParagraphStyle("DocMeta", parent=styles["Normal"], alignment=TA_CENTER, fontSize=9,
                                    textColor=colors.HexColor("#555555"), spaceAfter=18)
        body_style = ParagraphStyle("DocBody", parent=styles["BodyText"], fontName="Times-Roman", fontSize=11,
                                    leading=15, spaceAfter=8)
        heading_styles = {
            2: ParagraphStyle("DocH2", parent=styles["Heading2"], fontName="Times-Bold"),
            3: ParagraphStyle("DocH3", parent=styles["Heading3"], fontName="Times-Bold"),
        }

        story = [
            Paragraph(_pdf_text(document.title), title_style),
            Paragraph(f"Generated on {document.generated_at.strftime('%B %d, %Y')}", meta_style),
        ]

        bullets: List[ListItem] = []
        for block in document.blocks:
            if block.kind == "bullet":
                bullets.append(ListItem(Paragraph(_pdf_text(block.text), body_style)))
                continue
            if bullets:
                story.append(ListFlowable(bullets, bulletType="bullet", leftIndent=18))
                bullets = []
            if block.kind == "heading":
                style = heading_styles.get(min(max(block.level, 2), 3))
                story.append(Paragraph(_pdf_text(block.text), style))
            else:
                story.append(Paragraph(_pdf_text(block.text), body_style))
        if bullets:
            story.append(ListFlowable(bullets, bulletType="bullet", leftIndent=18))

        story.append(Spacer(1, 24))
        story.append(Paragraph(EXPORT_WATERMARK, meta_style))

        pdf.build(story)
        return buffer.getvalue()

    def render_docx(self, document: PreparedDocument) -> bytes:
        doc = Document()
        normal = doc.styles["Normal"]
        normal.font.name = "Times New Roman"
        normal.font.size = Pt(12)
        doc.core_properties.title = document.title
        doc.core_properties.author = "LexCanada"

        doc.add_heading(document.title, level=0)
        meta = doc.add_paragraph(f"Generated on {document.generated_at.strftime('%B %d, %Y')}")
        meta.alignment = WD_ALIGN_PARAGRAPH.CENTER

        for block in document.blocks:
            if block.kind == "heading":
                doc.add_heading(block.text, level=min(max(block.level - 1, 1), 3))
            elif block.kind == "bullet":
                doc.add_paragraph(block.text, style="List Bullet")
            else:
                doc.add_paragraph(block.text)

        footer = doc.sections[0].footer.paragraphs[0]
        footer.text = EXPORT_WATERMARK
        footer.alignment = WD_ALIGN_PARAGRAPH.CENTER

        buffer = io.BytesIO()
        doc.save(buffer)
        return buffer.getvalue()

    def render_html(self, document: PreparedDocument) -> bytes:
        return self.build_html(document).encode("utf-8")

    def build_html(self, document: PreparedDocument) -> str:
        parts: List[str] = []
        in_list = False
        for block in document.blocks:
            if block.kind == "bullet":
                if not in_list:
                    parts.append("<ul>")
                    in_list = True
                parts.append(f"<li>{html.escape(block.text)}</li>")
                continue
            if in_list:
                parts.append("</ul>")
                in_list = False
            if block.kind == "heading":
                level = min(max(block.level, 2), 4)
                parts.append(f"<h{level}>{html.escape(block.text)}</h{level}>")
            else:
                parts.append(f"<p>{html.escape(block.text).replace(chr(10), '<br>')}</p>")
        if in_list:
            parts.append("</ul>")

        return HTML_TEMPLATE.format(
            title=html.escape(document.title),
            generated=document.generated_at.strftime("%B %d, %Y"),
            body="\n".join(parts),
            watermark=html.escape(EXPORT_WATERMARK),
        )

    def render_txt(self, document: PreparedDocument) -> bytes:
        lines = [
            document.title,
            "=" * len(document.title),
            f"Generated on {document.generated_at.strftime('%B %d, %Y')}",
            "",
            document.content.strip(),
            "",
            "---",
            EXPORT_WATERMARK,
        ]
        return "\n".join(lines).encode("utf-8")


def _pdf_text(text: str) -> str:
    return html.escape(text, quote=False).replace("\n", "<br/>")


def preview_html(content: str, title: Optional[str] = None) -> Tuple[str, str]:
    """HTML rendering for inline preview; returns (title, html)."""
    exporter = DocumentExporter()
    document = exporter.prepare(content, title)
    return document.title, exporter.build_html(document)


document_exporter = DocumentExporter()
