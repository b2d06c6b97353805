"""Export Word : document HTML compatible Office enregistré en ``.doc``."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Sequence

from ..core.settings import ReportSettings
from .models import ReportTemplate
from .preview import document_context, environment

BOM = "\ufeff"
MIME_TYPE = "application/msword"


def render_word_html(
    template: ReportTemplate,
    rows: Sequence[Mapping[str, Any]],
    title: str,
    subtitle: str | None = None,
    *,
    settings: ReportSettings | None = None,
    generated_at: datetime | None = None,
) -> str:
    context = document_context(
        template,
        rows,
        title,
        subtitle,
        settings or ReportSettings(),
        generated_at or datetime.now(),
        with_time=True,
    )
    return environment().get_template("word.html.j2").render(context)


def render_word(
    template: ReportTemplate,
    rows: Sequence[Mapping[str, Any]],
    title: str,
    subtitle: str | None = None,
    *,
    settings: ReportSettings | None = None,
    generated_at: datetime | None = None,
) -> bytes:
    """Document complet, encodé en UTF-8 précédé d'un BOM pour Word."""

    html = render_word_html(
        template, rows, title, subtitle, settings=settings, generated_at=generated_at
    )
    return (BOM + html).encode("utf-8")
