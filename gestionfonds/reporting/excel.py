"""Export Excel (XLSX) avec openpyxl."""
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from io import BytesIO
import re
from typing import Any, List, Mapping, Sequence

from openpyxl import Workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from ..core.settings import ReportSettings
from .formatting import is_blank, to_number
from .layout import (
    DEFAULT_COLUMN_WIDTH,
    TableLayout,
    build_table,
    generated_line,
    reference_line,
    resolve_row_style,
)
from .models import ReportTemplate, RowStyle

MIME_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
DEFAULT_SHEET_NAME = "Rapport"
SEPARATOR = "─" * 50

_SHEET_NAME_FORBIDDEN = re.compile(r"[\[\]:*?/\\]")


def sanitize_cell(value: Any) -> Any:
    """Valeur sûre pour une cellule : jamais d'exception, jamais de formule.

    Les caractères de contrôle interdits par le format sont retirés, les
    objets non scalaires sont convertis en texte. Les chaînes commençant par
    ``=`` restent du texte (voir :func:`_write_row`).
    """

    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float, Decimal)):
        number = to_number(value)
        return str(value) if number is None else value
    if isinstance(value, (datetime, date)):
        return value
    text = value if isinstance(value, str) else str(value)
    return ILLEGAL_CHARACTERS_RE.sub("", text)


def sheet_name(title: str) -> str:
    name = _SHEET_NAME_FORBIDDEN.sub("", title or "").strip().strip("'")[:31]
    return name or DEFAULT_SHEET_NAME


def _hex(value: str | None) -> str | None:
    if not value or not value.startswith("#") or len(value) != 7:
        return None
    return "FF" + value[1:].upper()


def _row_font(style: RowStyle, size: float, name: str) -> Font:
    return Font(
        name=name,
        size=size,
        bold=style.bold,
        italic=style.italic,
        underline="single" if style.underline else None,
        color=_hex(style.text_color),
    )


def _fill(color: str | None) -> PatternFill | None:
    argb = _hex(color)
    if argb is None:
        return None
    return PatternFill(fill_type="solid", start_color=argb, end_color=argb)


def _write_row(ws: Worksheet, values: Sequence[Any]) -> int:
    ws.append([sanitize_cell(value) for value in values])
    row_index = ws.max_row
    for column_index in range(1, len(values) + 1):
        cell = ws.cell(row_index, column_index)
        if isinstance(cell.value, str) and cell.value.startswith("="):
            cell.data_type = "s"
    return row_index


def _numeric_value(value: Any) -> float | int | None:
    if is_blank(value):
        return None
    return to_number(value)


class ExcelReportRenderer:
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
        self.font_name = template.styles.body_font

    def _span(self, ws: Worksheet, row_index: int, width: int, *, align: str = "center") -> None:
        if width > 1:
            ws.merge_cells(start_row=row_index, start_column=1, end_row=row_index, end_column=width)
        ws.cell(row_index, 1).alignment = Alignment(horizontal=align)

    def _write_header(self, ws: Worksheet, width: int) -> None:
        header = self.template.header
        variants = ((False, True), (True, False), (True, False), (True, True))
        for text, (bold, italic) in zip(header.lines, variants):
            row_index = _write_row(ws, [text])
            ws.cell(row_index, 1).font = Font(name="Times New Roman", size=10, bold=bold, italic=italic)
            self._span(ws, row_index, width)
        year = self.settings.reference_year or self.generated_at.year
        reference = reference_line(header, year)
        if reference:
            row_index = _write_row(ws, [reference])
            ws.cell(row_index, 1).font = Font(name="Times New Roman", size=9)
        _write_row(ws, [None])

    def _write_title(self, ws: Worksheet, width: int, title: str, subtitle: str | None) -> None:
        styles = self.template.styles
        row_index = _write_row(ws, [title.upper()])
        ws.cell(row_index, 1).font = Font(
            name=styles.title_font, size=styles.title_size, bold=True, underline="single"
        )
        self._span(ws, row_index, width)
        if subtitle:
            row_index = _write_row(ws, [subtitle])
            ws.cell(row_index, 1).font = Font(name=styles.body_font, size=10, italic=True)
            self._span(ws, row_index, width)
        row_index = _write_row(ws, [generated_line(self.generated_at)])
        ws.cell(row_index, 1).font = Font(name=styles.body_font, size=8, color="FF666666")
        _write_row(ws, [None])

    def _write_table(self, ws: Worksheet, table: TableLayout) -> None:
        if not table.columns:
            return
        styles = self.template.styles
        size = styles.body_size
        border_color = _hex(styles.border_color) or "FF000000"
        side = Side(style="thin", color=border_color)
        border = Border(left=side, right=side, top=side, bottom=side)
        header_style = resolve_row_style(styles, "header")
        data_style = resolve_row_style(styles, "data")
        total_style = resolve_row_style(styles, "total")

        row_index = _write_row(ws, table.headers)
        for cell in ws[row_index][: len(table.headers)]:
            cell.font = _row_font(header_style, size, self.font_name)
            cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)
            cell.border = border
            fill = _fill(header_style.background_color)
            if fill is not None:
                cell.fill = fill

        for position, (raw_cells, text_cells) in enumerate(zip(table.raw_body, table.body)):
            values: List[Any] = []
            for column, raw, text in zip(table.columns, raw_cells, text_cells):
                values.append(_numeric_value(raw) if column.is_numeric else (text or None))
            row_index = _write_row(ws, values)
            if TableLayout.is_alternate(position):
                fill = _fill(styles.alternate_row_color)
            else:
                fill = _fill(data_style.background_color)
            self._style_body_row(ws, row_index, table, data_style, border, fill)

        if table.totals_row is not None:
            values = []
            for index, column in enumerate(table.columns):
                if index == 0:
                    values.append(table.totals_row[0])
                elif column.key in table.totals:
                    values.append(table.totals[column.key])
                else:
                    values.append(None)
            row_index = _write_row(ws, values)
            self._style_body_row(
                ws, row_index, table, total_style, border, _fill(total_style.background_color)
            )

    def _style_body_row(
        self,
        ws: Worksheet,
        row_index: int,
        table: TableLayout,
        style: RowStyle,
        border: Border,
        fill: PatternFill | None,
    ) -> None:
        font = _row_font(style, self.template.styles.body_size, self.font_name)
        for column_index, (column, align) in enumerate(zip(table.columns, table.aligns), start=1):
            cell = ws.cell(row_index, column_index)
            cell.font = font
            cell.border = border
            cell.alignment = Alignment(horizontal=align, vertical="center")
            if fill is not None:
                cell.fill = fill
            if column.is_numeric and isinstance(cell.value, (int, float)):
                cell.number_format = "#,##0.00" if isinstance(cell.value, float) and not cell.value.is_integer() else "#,##0"

    def _write_footer(self, ws: Worksheet, width: int) -> None:
        _write_row(ws, [None])
        row_index = _write_row(ws, [SEPARATOR])
        ws.cell(row_index, 1).font = Font(color="FFC8C8C8")
        sizes = ((7, True), (7, False), (7, False), (6, False))
        for text, (size, italic) in zip(self.template.footer.lines, sizes):
            row_index = _write_row(ws, [text])
            ws.cell(row_index, 1).font = Font(name="Times New Roman", size=size, italic=italic, color="FF646464")
            self._span(ws, row_index, width)

    def render(self, rows: Sequence[Mapping[str, Any]], title: str, subtitle: str | None = None) -> bytes:
        table = build_table(self.template, rows)
        width = max(len(table.columns), 1)
        wb = Workbook()
        ws = wb.active
        ws.title = sheet_name(title)

        self._write_header(ws, width)
        self._write_title(ws, width, title, subtitle)
        self._write_table(ws, table)
        self._write_footer(ws, width)

        for index, column in enumerate(table.columns, start=1):
            ws.column_dimensions[get_column_letter(index)].width = column.width or DEFAULT_COLUMN_WIDTH

        buffer = BytesIO()
        wb.save(buffer)
        return buffer.getvalue()


def render_excel(
    template: ReportTemplate,
    rows: Sequence[Mapping[str, Any]],
    title: str,
    subtitle: str | None = None,
    *,
    settings: ReportSettings | None = None,
    generated_at: datetime | None = None,
) -> bytes:
    """Classeur XLSX d'une feuille ; montants stockés en nombres bruts."""

    renderer = ExcelReportRenderer(template, settings=settings, generated_at=generated_at)
    return renderer.render(rows, title, subtitle)
