"""Mise en page commune à l'aperçu et aux exports.

Tous les rendus passent par :func:`build_table` et :func:`resolve_watermark`
afin qu'une même cellule s'affiche à l'identique dans chaque format.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Sequence, Tuple

from .formatting import blend_with_white, format_value
from .models import (
    ReportHeader,
    ReportTemplate,
    RowCondition,
    RowStyle,
    TableColumn,
    TemplateStyles,
    WatermarkConfig,
)
from .totals import aggregate, totals_cells

A4_MM = (210.0, 297.0)
TILE_COLUMNS = 3
TILE_ROWS = 4
TILED_IMAGE_SCALE = 0.4
DEFAULT_COLUMN_WIDTH = 15.0

_FALLBACK_ROW_COLORS: Dict[str, Tuple[str | None, str, str]] = {
    "header": ("#ffffff", "#000000", "bold"),
    "subheader": ("#f0f0f0", "#000000", "bold"),
    "data": (None, "#000000", "normal"),
    "total": ("#e5e7eb", "#000000", "bold"),
    "subtotal": ("#f3f4f6", "#000000", "bold"),
}


def _fallback_row_style(condition: RowCondition) -> RowStyle:
    background, text, weight = _FALLBACK_ROW_COLORS[condition]
    return RowStyle(condition, background, text, font_weight=weight)  # type: ignore[arg-type]


@dataclass(slots=True)
class TableLayout:
    """Tableau prêt à dessiner : en-têtes, cellules formatées, totaux."""

    columns: List[TableColumn]
    headers: List[str]
    aligns: List[str]
    body: List[List[str]]
    raw_body: List[List[Any]]
    totals: Dict[str, float | int]
    totals_row: List[str] | None = None
    hidden_rows: int = 0
    widths: List[float] = field(default_factory=list)

    @property
    def width_fractions(self) -> List[float]:
        """Largeurs relatives normalisées (somme = 1)."""

        total = sum(self.widths)
        if not total:
            return []
        return [width / total for width in self.widths]

    @staticmethod
    def is_alternate(row_index: int) -> bool:
        return row_index % 2 == 1


def build_table(
    template: ReportTemplate,
    rows: Sequence[Mapping[str, Any]],
    *,
    limit: int | None = None,
) -> TableLayout:
    """Formate les lignes du jeu de données selon les colonnes du modèle.

    ``limit`` tronque le corps du tableau (aperçu) ; les totaux portent
    toujours sur l'ensemble des lignes.
    """

    columns = list(template.columns)
    visible = list(rows if limit is None else rows[:limit])
    totals = aggregate(rows, columns)
    body = [[format_value(row.get(col.key), col.type) for col in columns] for row in visible]
    raw_body = [[row.get(col.key) for col in columns] for row in visible]
    totals_row = totals_cells(columns, totals) if template.show_totals and columns else None
    return TableLayout(
        columns=columns,
        headers=[col.header for col in columns],
        aligns=[col.resolved_align for col in columns],
        body=body,
        raw_body=raw_body,
        totals=totals,
        totals_row=totals_row,
        hidden_rows=max(len(rows) - len(visible), 0),
        widths=[col.width or DEFAULT_COLUMN_WIDTH for col in columns],
    )


def resolve_row_style(styles: TemplateStyles, condition: RowCondition) -> RowStyle:
    return styles.row_style(condition) or _fallback_row_style(condition)


def reference_line(header: ReportHeader, year: int) -> str | None:
    """Numéro de référence suivi de l'année : ``DGDA/.../SDAF/2024``."""

    reference = header.reference_number.strip()
    if not reference:
        return None
    return f"{reference.rstrip('/')}/{year}"


def generated_line(generated_at: datetime, *, with_time: bool = False) -> str:
    line = f"Généré le {generated_at.strftime('%d/%m/%Y')}"
    if with_time:
        line += f" à {generated_at.strftime('%H:%M:%S')}"
    return line


def page_size_mm(template: ReportTemplate) -> Tuple[float, float]:
    width, height = A4_MM
    return (height, width) if template.is_landscape else (width, height)


# ----------------------------------------------------------------------
# Filigrane
# ----------------------------------------------------------------------
def resolve_watermark(template: ReportTemplate) -> WatermarkConfig | None:
    """Filigrane effectif du modèle.

    La configuration structurée prime sur l'ancien champ texte ``watermark`` ;
    un filigrane image sans image retombe sur le texte.
    """

    config = template.watermark_config
    if config is None:
        if not template.watermark:
            return None
        return WatermarkConfig(text=template.watermark)
    if not config.enabled:
        return None
    if config.type == "image" and not config.image_url:
        if not (config.text or template.watermark):
            return None
        return WatermarkConfig(
            enabled=True,
            text=config.text or template.watermark or "",
            opacity=config.opacity,
            rotation=config.rotation,
            font_size=config.font_size,
            color=config.color,
            position=config.position,
            type="text",
            image_size=config.image_size,
        )
    if config.type == "text" and not config.text:
        return None
    return config


def watermark_color(config: WatermarkConfig) -> Tuple[int, int, int]:
    return blend_with_white(config.color, config.opacity)


def watermark_anchors(
    width: float, height: float, config: WatermarkConfig
) -> List[Tuple[float, float, float]]:
    """Points d'ancrage ``(x, y, angle)`` du filigrane sur une page.

    ``center`` : une instance sans rotation ; ``diagonal`` : une instance
    tournée ; ``tiled`` : grille fixe de 3 x 4 instances tournées.
    """

    if config.position == "tiled":
        anchors = []
        for row in range(TILE_ROWS):
            for col in range(TILE_COLUMNS):
                x = width * (2 * col + 1) / (2 * TILE_COLUMNS)
                y = height * (2 * row + 1) / (2 * TILE_ROWS)
                anchors.append((x, y, config.rotation))
        return anchors
    if config.position == "center":
        return [(width / 2, height / 2, 0.0)]
    return [(width / 2, height / 2, config.rotation)]


def watermark_image_width(page_width: float, config: WatermarkConfig) -> float:
    scale = TILED_IMAGE_SCALE if config.position == "tiled" else 1.0
    return page_width * config.image_size / 100 * scale
