"""Rendu PDF des rapports avec ReportLab.

Déroulé : en-tête, titre, tableau (en-tête répété sur chaque page, totaux en
dernière ligne), puis une passe de décoration par page (filigrane et pied de
page « Page X sur N »).
"""
from __future__ import annotations

import base64
from datetime import datetime
from functools import partial
from io import BytesIO
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Sequence, Tuple
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_LEFT, TA_RIGHT
from reportlab.lib.pagesizes import A4, landscape, portrait
from reportlab.lib.styles import ParagraphStyle
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen.canvas import Canvas
from reportlab.platypus import Image, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle
from reportlab.platypus.flowables import HRFlowable

from ..core.settings import ReportSettings
from .layout import (
    TableLayout,
    build_table,
    reference_line,
    resolve_row_style,
    resolve_watermark,
    watermark_anchors,
    watermark_color,
    watermark_image_width,
)
from .models import ReportTemplate, RowStyle, WatermarkConfig

logger = logging.getLogger(__name__)

LOGO_SIZE = 25 * mm
HEADER_FONT_SIZE = 10
WATERMARK_FONT = "Times-Bold"

_FONT_FAMILIES: Dict[str, Tuple[str, str, str, str]] = {
    "times": ("Times-Roman", "Times-Bold", "Times-Italic", "Times-BoldItalic"),
    "helvetica": ("Helvetica", "Helvetica-Bold", "Helvetica-Oblique", "Helvetica-BoldOblique"),
    "courier": ("Courier", "Courier-Bold", "Courier-Oblique", "Courier-BoldOblique"),
}
_ALIGNMENTS = {"left": TA_LEFT, "center": TA_CENTER, "right": TA_RIGHT}

# Positions verticales du pied de page, en mm depuis le bas de la page.
_FOOTER_SEPARATOR_Y = 32
_FOOTER_LINES_Y = (28, 23, 18, 13)
_FOOTER_PAGE_Y = 6


def font_family(name: str) -> str:
    lowered = (name or "").lower()
    if "courier" in lowered:
        return "courier"
    if any(token in lowered for token in ("arial", "helvetica", "sans")):
        return "helvetica"
    return "times"


def font_name(family: str, *, bold: bool = False, italic: bool = False) -> str:
    regular, bold_font, italic_font, bold_italic = _FONT_FAMILIES[family]
    if bold and italic:
        return bold_italic
    if bold:
        return bold_font
    if italic:
        return italic_font
    return regular


def page_size(template: ReportTemplate) -> Tuple[float, float]:
    return landscape(A4) if template.is_landscape else portrait(A4)


def image_source(source: str | Path) -> str | BytesIO:
    """Chemin ou URL tels quels ; contenu décodé pour une URL ``data:``."""

    text = str(source)
    if text.startswith("data:"):
        _, _, payload = text.partition(",")
        return BytesIO(base64.b64decode(payload))
    return text


def load_image(source: str | Path) -> ImageReader:
    return ImageReader(image_source(source))


def _color(value: str | None, fallback: colors.Color = colors.black) -> colors.Color:
    if not value:
        return fallback
    try:
        return colors.HexColor(value)
    except (ValueError, TypeError):
        return fallback


class PageDecorator:
    """Dessine filigrane puis pied de page sur une page terminée."""

    def __init__(
        self,
        template: ReportTemplate,
        pagesize: Tuple[float, float],
        *,
        margin: float,
        watermark: WatermarkConfig | None = None,
        watermark_image: ImageReader | None = None,
    ) -> None:
        self.template = template
        self.pagesize = pagesize
        self.margin = margin
        self.watermark = watermark
        self.watermark_image = watermark_image

    def decorate(self, canvas: Canvas, page_number: int, page_count: int) -> None:
        self.draw_watermark(canvas)
        self.draw_footer(canvas, page_number, page_count)

    def draw_watermark(self, canvas: Canvas) -> None:
        config = self.watermark
        if config is None:
            return
        if config.type == "image" and self.watermark_image is None:
            return
        width, height = self.pagesize
        canvas.saveState()
        try:
            if config.type == "image":
                self._draw_image_watermark(canvas, config, width, height)
            else:
                self._draw_text_watermark(canvas, config, width, height)
        finally:
            canvas.restoreState()

    def _draw_text_watermark(
        self, canvas: Canvas, config: WatermarkConfig, width: float, height: float
    ) -> None:
        red, green, blue = watermark_color(config)
        canvas.setFillColorRGB(red / 255, green / 255, blue / 255)
        canvas.setFont(WATERMARK_FONT, config.font_size)
        for x, y, angle in watermark_anchors(width, height, config):
            canvas.saveState()
            canvas.translate(x, y)
            canvas.rotate(angle)
            canvas.drawCentredString(0, -config.font_size / 3, config.text)
            canvas.restoreState()

    def _draw_image_watermark(
        self, canvas: Canvas, config: WatermarkConfig, width: float, height: float
    ) -> None:
        image = self.watermark_image
        image_width = watermark_image_width(width, config)
        source_width, source_height = image.getSize()
        image_height = image_width * source_height / source_width if source_width else image_width
        canvas.setFillAlpha(config.opacity / 100)
        for x, y, angle in watermark_anchors(width, height, config):
            canvas.saveState()
            canvas.translate(x, y)
            canvas.rotate(angle)
            canvas.drawImage(
                image,
                -image_width / 2,
                -image_height / 2,
                width=image_width,
                height=image_height,
                mask="auto",
            )
            canvas.restoreState()

    def draw_footer(self, canvas: Canvas, page_number: int, page_count: int) -> None:
        footer = self.template.footer
        width, _ = self.pagesize
        center = width / 2
        canvas.saveState()
        try:
            canvas.setStrokeColorRGB(200 / 255, 200 / 255, 200 / 255)
            canvas.setLineWidth(0.3 * mm)
            canvas.line(self.margin, _FOOTER_SEPARATOR_Y * mm, width - self.margin, _FOOTER_SEPARATOR_Y * mm)

            canvas.setFillColorRGB(100 / 255, 100 / 255, 100 / 255)
            fonts = (("Times-Italic", 7), ("Times-Roman", 7), ("Times-Roman", 7), ("Times-Roman", 6))
            for text, (font, size), y in zip(footer.lines, fonts, _FOOTER_LINES_Y):
                if not text:
                    continue
                canvas.setFont(font, size)
                canvas.drawCentredString(center, y * mm, text)

            if footer.show_page_numbers:
                canvas.setFillColor(colors.black)
                canvas.setFont("Times-Roman", 8)
                canvas.drawCentredString(center, _FOOTER_PAGE_Y * mm, f"Page {page_number} sur {page_count}")
        finally:
            canvas.restoreState()


class _DecoratedCanvas(Canvas):
    """Canvas qui diffère la décoration jusqu'à connaître le nombre de pages."""

    def __init__(self, *args: Any, decorator: PageDecorator, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._decorator = decorator
        self._saved_pages: List[Dict[str, Any]] = []

    def showPage(self) -> None:  # noqa: N802 - API ReportLab
        self._saved_pages.append(dict(self.__dict__))
        self._startPage()

    def save(self) -> None:
        page_count = len(self._saved_pages)
        for page_number, state in enumerate(self._saved_pages, start=1):
            self.__dict__.update(state)
            self._decorator.decorate(self, page_number, page_count)
            super().showPage()
        super().save()


class PdfReportRenderer:
    """Construit le document PDF d'un modèle de rapport."""

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
        self.pagesize = page_size(template)
        self.margin = self.settings.margin_mm * mm
        self.family = font_family(template.styles.body_font)
        self.title_family = font_family(template.styles.title_font)
        self._paragraph_styles: Dict[tuple, ParagraphStyle] = {}
        self._story: list = []

    @property
    def available_width(self) -> float:
        return self.pagesize[0] - 2 * self.margin

    # ------------------------------------------------------------------
    # Styles
    # ------------------------------------------------------------------
    def _style(
        self,
        *,
        family: str | None = None,
        size: float | None = None,
        align: str = "center",
        bold: bool = False,
        italic: bool = False,
        color: str | None = None,
    ) -> ParagraphStyle:
        family = family or self.family
        size = size or self.template.styles.body_size
        key = (family, size, align, bold, italic, color)
        style = self._paragraph_styles.get(key)
        if style is None:
            style = ParagraphStyle(
                name=f"report-{len(self._paragraph_styles)}",
                fontName=font_name(family, bold=bold, italic=italic),
                fontSize=size,
                leading=size * 1.2,
                alignment=_ALIGNMENTS[align],
                textColor=_color(color),
            )
            self._paragraph_styles[key] = style
        return style

    def _cell(self, text: str, align: str, row_style: RowStyle) -> Paragraph:
        markup = escape(text)
        if row_style.underline and markup:
            markup = f"<u>{markup}</u>"
        style = self._style(
            align=align,
            bold=row_style.bold,
            italic=row_style.italic,
            color=row_style.text_color,
        )
        return Paragraph(markup, style)

    # ------------------------------------------------------------------
    # Blocs du document
    # ------------------------------------------------------------------
    def _load_logo(self) -> Image | None:
        logo_path = self.settings.logo_path
        if not logo_path:
            logger.debug("Aucun logo configuré, en-tête sans logo.")
            return None
        try:
            reader = load_image(logo_path)
            source_width, source_height = reader.getSize()
        except Exception as exc:
            logger.warning("Logo illisible : %s", logo_path, exc_info=exc)
            return None
        height = LOGO_SIZE * source_height / source_width if source_width else LOGO_SIZE
        logo = Image(image_source(logo_path), width=LOGO_SIZE, height=height)
        logo.hAlign = self.template.header.logo_position.upper()
        return logo

    def add_header(self) -> None:
        header = self.template.header
        variants = ((False, True), (True, False), (True, False), (True, True))
        lines = [
            Paragraph(escape(text), self._style(family="times", size=HEADER_FONT_SIZE, bold=bold, italic=italic))
            for text, (bold, italic) in zip(header.lines, variants)
        ]

        logo = self._load_logo() if header.show_logo else None
        if logo is None:
            self._story.extend(lines)
        elif header.logo_position == "center":
            self._story.append(logo)
            self._story.extend(lines)
        else:
            left: Any = logo if header.logo_position == "left" else ""
            right: Any = logo if header.logo_position == "right" else ""
            block = Table(
                [[left, lines, right]],
                colWidths=[LOGO_SIZE, self.available_width - 2 * LOGO_SIZE, LOGO_SIZE],
            )
            block.setStyle(
                TableStyle(
                    [
                        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
                        ("LEFTPADDING", (0, 0), (-1, -1), 0),
                        ("RIGHTPADDING", (0, 0), (-1, -1), 0),
                    ]
                )
            )
            self._story.append(block)

        year = self.settings.reference_year or self.generated_at.year
        reference = reference_line(header, year)
        if reference:
            self._story.append(Spacer(1, 2 * mm))
            self._story.append(Paragraph(escape(reference), self._style(family="times", size=9, align="left")))

        self._story.append(
            HRFlowable(
                width="100%",
                thickness=0.8 * mm,
                color=_color(self.template.styles.accent_color),
                spaceBefore=2 * mm,
                spaceAfter=6 * mm,
            )
        )

    def add_title(self, title: str, subtitle: str | None = None) -> None:
        styles = self.template.styles
        title_style = self._style(family=self.title_family, size=styles.title_size, bold=True)
        self._story.append(Paragraph(f"<u>{escape(title.upper())}</u>", title_style))
        if subtitle:
            self._story.append(Spacer(1, 2 * mm))
            self._story.append(Paragraph(escape(subtitle), self._style(size=10, italic=True)))
        self._story.append(Spacer(1, 6 * mm))

    def add_table(self, table: TableLayout) -> None:
        if not table.columns:
            return
        styles = self.template.styles
        header_style = resolve_row_style(styles, "header")
        data_style = resolve_row_style(styles, "data")
        total_style = resolve_row_style(styles, "total")

        data = [[self._cell(text, "center", header_style) for text in table.headers]]
        for cells in table.body:
            data.append([self._cell(text, align, data_style) for text, align in zip(cells, table.aligns)])
        if table.totals_row is not None:
            data.append(
                [self._cell(text, align, total_style) for text, align in zip(table.totals_row, table.aligns)]
            )

        commands: list = [
            ("GRID", (0, 0), (-1, -1), 0.1 * mm, _color(styles.border_color)),
            ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
            ("TOPPADDING", (0, 0), (-1, -1), 2 * mm),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 2 * mm),
            ("LEFTPADDING", (0, 0), (-1, -1), 2 * mm),
            ("RIGHTPADDING", (0, 0), (-1, -1), 2 * mm),
            ("BACKGROUND", (0, 0), (-1, 0), _color(header_style.background_color, colors.white)),
        ]
        for index in range(len(table.body)):
            if TableLayout.is_alternate(index):
                background = _color(styles.alternate_row_color, colors.white)
            else:
                background = _color(data_style.background_color, colors.white)
            commands.append(("BACKGROUND", (0, index + 1), (-1, index + 1), background))
        if table.totals_row is not None:
            commands.append(("BACKGROUND", (0, -1), (-1, -1), _color(total_style.background_color, colors.white)))

        col_widths = [fraction * self.available_width for fraction in table.width_fractions]
        pdf_table = Table(data, colWidths=col_widths or None, repeatRows=1)
        pdf_table.setStyle(TableStyle(commands))
        self._story.append(pdf_table)

    # ------------------------------------------------------------------
    # Assemblage
    # ------------------------------------------------------------------
    def _load_watermark(self) -> tuple[WatermarkConfig | None, ImageReader | None]:
        config = resolve_watermark(self.template)
        if config is None or config.type != "image":
            return config, None
        try:
            return config, load_image(config.image_url)
        except Exception as exc:
            logger.warning("Image de filigrane illisible : %s", config.image_url[:80], exc_info=exc)
            return config, None

    def render(
        self, rows: Sequence[Mapping[str, Any]], title: str, subtitle: str | None = None
    ) -> bytes:
        self._story = []
        self.add_header()
        self.add_title(title, subtitle)
        self.add_table(build_table(self.template, rows))

        watermark, watermark_image = self._load_watermark()
        decorator = PageDecorator(
            self.template,
            self.pagesize,
            margin=self.margin,
            watermark=watermark,
            watermark_image=watermark_image,
        )
        buffer = BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=self.pagesize,
            leftMargin=self.margin,
            rightMargin=self.margin,
            topMargin=8 * mm,
            bottomMargin=self.settings.footer_height_mm * mm,
            title=title,
            author=self.template.header.line3,
        )
        doc.build(self._story, canvasmaker=partial(_DecoratedCanvas, decorator=decorator))
        return buffer.getvalue()


def render_pdf(
    template: ReportTemplate,
    rows: Sequence[Mapping[str, Any]],
    title: str,
    subtitle: str | None = None,
    *,
    settings: ReportSettings | None = None,
    generated_at: datetime | None = None,
) -> bytes:
    """Rend le rapport en PDF et retourne le contenu binaire."""

    renderer = PdfReportRenderer(template, settings=settings, generated_at=generated_at)
    return renderer.render(rows, title, subtitle)
