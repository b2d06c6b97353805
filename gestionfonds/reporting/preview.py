"""Aperçu HTML des rapports, rendu avec Jinja2.

Le même contexte de document alimente l'export Word (voir :mod:`.word`).
"""
from __future__ import annotations

import base64
from datetime import datetime
import logging
import mimetypes
from pathlib import Path
from typing import Any, Dict, Mapping, Sequence

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape

from ..core.settings import ReportSettings
from .layout import (
    build_table,
    generated_line,
    page_size_mm,
    reference_line,
    resolve_row_style,
    resolve_watermark,
    watermark_anchors,
    watermark_color,
    watermark_image_width,
)
from .formatting import rgb_to_hex
from .models import ReportTemplate, RowStyle, WatermarkConfig

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).with_name("templates")

_environment: Environment | None = None


def environment() -> Environment:
    global _environment
    if _environment is None:
        _environment = Environment(
            loader=FileSystemLoader(TEMPLATE_DIR),
            autoescape=select_autoescape(["html", "j2"]),
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
        )
    return _environment


def row_css(style: RowStyle) -> str:
    declarations = []
    if style.background_color:
        declarations.append(f"background-color: {style.background_color};")
    if style.text_color:
        declarations.append(f"color: {style.text_color};")
    declarations.append(f"font-weight: {style.font_weight};")
    declarations.append(f"font-style: {style.font_style};")
    if style.underline:
        declarations.append("text-decoration: underline;")
    return " ".join(declarations)


def logo_data_uri(logo_path: str | None) -> str | None:
    """Logo embarqué en URL ``data:`` ; ``None`` si absent ou illisible."""

    if not logo_path:
        return None
    if logo_path.startswith("data:"):
        return logo_path
    path = Path(logo_path)
    try:
        payload = path.read_bytes()
    except OSError as exc:
        logger.warning("Logo illisible : %s", path, exc_info=exc)
        return None
    mime_type = mimetypes.guess_type(path.name)[0] or "image/png"
    return f"data:{mime_type};base64,{base64.b64encode(payload).decode('ascii')}"


def watermark_context(config: WatermarkConfig | None) -> Dict[str, Any] | None:
    """Couche de filigrane CSS, positions exprimées en pourcentage de la page."""

    if config is None:
        return None
    instances = [
        {"left": round(x, 2), "top": round(100 - y, 2), "angle": -angle}
        for x, y, angle in watermark_anchors(100.0, 100.0, config)
    ]
    return {
        "kind": config.type,
        "text": config.text,
        "color": rgb_to_hex(watermark_color(config)),
        "font_size": config.font_size,
        "opacity": round(config.opacity / 100, 2),
        "image_url": config.image_url,
        "image_width": round(watermark_image_width(100.0, config), 2),
        "instances": instances,
    }


def document_context(
    template: ReportTemplate,
    rows: Sequence[Mapping[str, Any]],
    title: str,
    subtitle: str | None,
    settings: ReportSettings,
    generated_at: datetime,
    *,
    limit: int | None = None,
    with_time: bool = False,
) -> Dict[str, Any]:
    table = build_table(template, rows, limit=limit)
    styles = template.styles
    width_mm, height_mm = page_size_mm(template)
    year = settings.reference_year or generated_at.year
    return {
        "title": title,
        "subtitle": subtitle or "",
        "landscape": template.is_landscape,
        "page": {"width_mm": width_mm, "height_mm": height_mm, "margin_mm": settings.margin_mm},
        "styles": styles,
        "row_css": {
            condition: row_css(resolve_row_style(styles, condition))
            for condition in ("header", "data", "total")
        },
        "header_lines": template.header.lines,
        "reference": reference_line(template.header, year),
        "logo": None,
        "logo_position": template.header.logo_position,
        "table": table,
        "widths": [round(fraction * 100, 2) for fraction in table.width_fractions],
        "footer": template.footer,
        "generated": generated_line(generated_at, with_time=with_time),
        "watermark": watermark_context(resolve_watermark(template)),
    }


def render_preview(
    template: ReportTemplate,
    rows: Sequence[Mapping[str, Any]],
    title: str,
    subtitle: str | None = None,
    *,
    settings: ReportSettings | None = None,
    generated_at: datetime | None = None,
) -> str:
    """Aperçu à l'écran : les premières lignes seulement, totaux sur tout le jeu."""

    settings = settings or ReportSettings()
    context = document_context(
        template,
        rows,
        title,
        subtitle,
        settings,
        generated_at or datetime.now(),
        limit=settings.preview_row_limit,
    )
    if template.header.show_logo:
        context["logo"] = logo_data_uri(settings.logo_path)
    return environment().get_template("preview.html.j2").render(context)
