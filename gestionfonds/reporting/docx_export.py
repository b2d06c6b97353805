"""Export Word natif (``.docx``) avec python-docx."""
from __future__ import annotations

from datetime import datetime
from io import BytesIO
import logging
from typing import Any, Mapping, Sequence

from docx import Document
from docx.enum.section import WD_ORIENT
from docx.enum.table import WD_TABLE_ALIGNMENT
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.oxml import OxmlElement
from docx.oxml.ns import qn
from docx.shared import Mm, Pt, RGBColor

from ..core.settings import ReportSettings
from .layout import (
    TableLayout,
    build_table,
    generated_line,
    page_size_mm,
    reference_line,
    resolve_row_style,
)
from .models import ReportTemplate, RowStyle
from .pdf import image_source

logger = logging.getLogger(__name__)

MIME_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

_PARAGRAPH_ALIGN = {
    "left": WD_ALIGN_PARAGRAPH.LEFT,
    "center": WD_ALIGN_PARAGRAPH.CENTER,
    "right": WD_ALIGN_PARAGRAPH.RIGHT,
}


def _rgb(value: str | None) -> RGBColor | None:
    if not value or not value.startswith("#") or len(value) != 7:
        return None
    try:
        return RGBColor.from_string(value[1:].upper())
    except ValueError:
        return None


def shade_cell(cell: Any, color: str | None) -> None:
    """Fond uni d'une cellule (``w:shd``)."""

    if not color or not color.startswith("#"):
        return
    properties = cell._tc.get_or_add_tcPr()
    shading = OxmlElement("w:shd")
    shading.set(qn("w:val"), "clear")
    shading.set(qn("w:color"), "auto")
    shading.set(qn("w:fill"), color[1:].upper())
    properties.append(shading)


def add_field(paragraph: Any, instruction: str) -> None:
    """Insère un champ calculé par Word (``PAGE``, ``NUMPAGES``)."""

    run = paragraph.add_run()
    begin = OxmlElement("w:fldChar")
    begin.set(qn("w:fldCharType"), "begin")
    text = OxmlElement("w:instrText")
    text.set(qn("xml:space"), "preserve")
    text.text = instruction
    end = OxmlElement("w:fldChar")
    end.set(qn("w:fldCharType"), "end")
    run._r.append(begin)
    run._r.append(text)
    run._r.append(end)


def _style_run(run: Any, style: RowStyle, size: float, font: str) -> None:
    run.font.name = font
    run.font.size = Pt(size)
    run.font.bold = style.bold
    run.font.italic = style.italic
    run.font.underline = style.underline
    color = _rgb(style.text_color)
    if color is not None:
        run.font.color.rgb = color


class DocxReportRenderer:
    def __init__(
        self,
        template: ReportTemplate,
        *,
        settings: ReportSettings | None = None,
        generated_at: datetime | None = None,
    ) -> None:
        self.template = template
        self.settings = settings or ReportSettings()
        self.generated_at = generated_at or datetime.now()

    def _setup_section(self, doc: Any) -> Any:
        section = doc.sections[0]
        width_mm, height_mm = page_size_mm(self.template)
        if self.template.is_landscape:
            section.orientation = WD_ORIENT.LANDSCAPE
        section.page_width = Mm(width_mm)
        section.page_height = Mm(height_mm)
        margin = Mm(self.settings.margin_mm)
        section.left_margin = margin
        section.right_margin = margin
        section.top_margin = Mm(10)
        section.bottom_margin = Mm(20)
        return section

    def _paragraph(
        self,
        doc: Any,
        text: str,
        *,
        align: str = "center",
        size: float = 10,
        bold: bool = False,
        italic: bool = False,
        underline: bool = False,
        font: str = "Times New Roman",
    ) -> Any:
        paragraph = doc.add_paragraph()
        paragraph.alignment = _PARAGRAPH_ALIGN[align]
        paragraph.paragraph_format.space_after = Pt(0)
        run = paragraph.add_run(text)
        run.font.name = font
        run.font.size = Pt(size)
        run.font.bold = bold
        run.font.italic = italic
        run.font.underline = underline
        return paragraph

    def _add_logo(self, doc: Any) -> None:
        header = self.template.header
        logo_path = self.settings.logo_path
        if not header.show_logo or not logo_path:
            return
        try:
            doc.add_picture(image_source(logo_path), width=Mm(25))
        except Exception as exc:
            logger.warning("Logo illisible : %s", logo_path, exc_info=exc)
            return
        doc.paragraphs[-1].alignment = _PARAGRAPH_ALIGN[header.logo_position]

    def _add_header(self, doc: Any) -> None:
        header = self.template.header
        self._add_logo(doc)
        variants = ((False, True), (True, False), (True, False), (True, True))
        for text, (bold, italic) in zip(header.lines, variants):
            self._paragraph(doc, text, bold=bold, italic=italic)
        year = self.settings.reference_year or self.generated_at.year
        reference = reference_line(header, year)
        if reference:
            self._paragraph(doc, reference, align="left", size=9)
        doc.add_paragraph()

    def _add_title(self, doc: Any, title: str, subtitle: str | None) -> None:
        styles = self.template.styles
        self._paragraph(
            doc, title.upper(), size=styles.title_size, bold=True, underline=True, font=styles.title_font
        )
        if subtitle:
            self._paragraph(doc, subtitle, italic=True, font=styles.body_font)
        doc.add_paragraph()

    def _fill_row(
        self,
        cells: Sequence[Any],
        texts: Sequence[str],
        aligns: Sequence[str],
        style: RowStyle,
        background: str | None,
    ) -> None:
        styles = self.template.styles
        for cell, text, align in zip(cells, texts, aligns):
            paragraph = cell.paragraphs[0]
            paragraph.alignment = _PARAGRAPH_ALIGN[align]
            _style_run(paragraph.add_run(text), style, styles.body_size, styles.body_font)
            shade_cell(cell, background)

    def _add_table(self, doc: Any, table: TableLayout) -> None:
        if not table.columns:
            return
        styles = self.template.styles
        header_style = resolve_row_style(styles, "header")
        data_style = resolve_row_style(styles, "data")
        total_style = resolve_row_style(styles, "total")

        doc_table = doc.add_table(rows=1, cols=len(table.columns))
        doc_table.style = "Table Grid"
        doc_table.alignment = WD_TABLE_ALIGNMENT.CENTER
        self._fill_row(
            doc_table.rows[0].cells,
            table.headers,
            ["center"] * len(table.headers),
            header_style,
            header_style.background_color,
        )
        for position, cells in enumerate(table.body):
            background = (
                styles.alternate_row_color
                if TableLayout.is_alternate(position)
                else data_style.background_color
            )
            self._fill_row(doc_table.add_row().cells, cells, table.aligns, data_style, background)
        if table.totals_row is not None:
            self._fill_row(
                doc_table.add_row().cells,
                table.totals_row,
                table.aligns,
                total_style,
                total_style.background_color,
            )

        width_mm = page_size_mm(self.template)[0] - 2 * self.settings.margin_mm
        for column, fraction in zip(doc_table.columns, table.width_fractions):
            for cell in column.cells:
                cell.width = Mm(width_mm * fraction)

    def _add_footer(self, section: Any) -> None:
        footer = self.template.footer
        paragraph = section.footer.paragraphs[0]
        paragraph.alignment = WD_ALIGN_PARAGRAPH.CENTER
        sizes = ((7, True), (7, False), (7, False), (6, False))
        first = True
        for text, (size, italic) in zip(footer.lines, sizes):
            if not text:
                continue
            target = paragraph if first else section.footer.add_paragraph()
            target.alignment = WD_ALIGN_PARAGRAPH.CENTER
            run = target.add_run(text)
            run.font.size = Pt(size)
            run.font.italic = italic
            run.font.color.rgb = RGBColor(0x64, 0x64, 0x64)
            first = False
        if footer.show_page_numbers:
            target = paragraph if first else section.footer.add_paragraph()
            target.alignment = WD_ALIGN_PARAGRAPH.CENTER
            target.add_run("Page ")
            add_field(target, "PAGE")
            target.add_run(" sur ")
            add_field(target, "NUMPAGES")

    def render(self, rows: Sequence[Mapping[str, Any]], title: str, subtitle: str | None = None) -> bytes:
        doc = Document()
        section = self._setup_section(doc)
        self._add_header(doc)
        self._add_title(doc, title, subtitle)
        self._add_table(doc, build_table(self.template, rows))
        self._paragraph(doc, generated_line(self.generated_at, with_time=True), align="left", size=8)
        self._add_footer(section)

        buffer = BytesIO()
        doc.save(buffer)
        return buffer.getvalue()


def render_docx(
    template: ReportTemplate,
    rows: Sequence[Mapping[str, Any]],
    title: str,
    subtitle: str | None = None,
    *,
    settings: ReportSettings | None = None,
    generated_at: datetime | None = None,
) -> bytes:
    renderer = DocxReportRenderer(template, settings=settings, generated_at=generated_at)
    return renderer.render(rows, title, subtitle)
