"""Point d'entrée unique des exports : rendu, nommage et écriture du fichier."""
from __future__ import annotations

import copy
from dataclasses import dataclass
from datetime import date, datetime
import logging
import os
from pathlib import Path
import tempfile
from typing import Any, Callable, Dict, Mapping, Sequence

from ..core.settings import ReportSettings
from . import csv_export, docx_export, excel, word
from .csv_export import render_csv
from .docx_export import render_docx
from .excel import render_excel
from .formatting import slugify_title
from .models import ReportTemplate
from .pdf import render_pdf
from .word import render_word

logger = logging.getLogger(__name__)

EXPORT_FAILED_MESSAGE = "Export échoué"

Renderer = Callable[..., bytes]


@dataclass(frozen=True, slots=True)
class ExportFormat:
    name: str
    extension: str
    mime_type: str
    renderer: Renderer


EXPORT_FORMATS: Dict[str, ExportFormat] = {
    "pdf": ExportFormat("pdf", "pdf", "application/pdf", render_pdf),
    "excel": ExportFormat("excel", "xlsx", excel.MIME_TYPE, render_excel),
    "word": ExportFormat("word", "doc", word.MIME_TYPE, render_word),
    "docx": ExportFormat("docx", "docx", docx_export.MIME_TYPE, render_docx),
    "csv": ExportFormat("csv", "csv", csv_export.MIME_TYPE, render_csv),
}


class ReportExportError(RuntimeError):
    """Échec d'un export ; le message reste celui affiché à l'utilisateur."""

    def __init__(self, message: str = EXPORT_FAILED_MESSAGE, *, fmt: str | None = None) -> None:
        super().__init__(message)
        self.fmt = fmt


@dataclass(slots=True)
class ExportResult:
    format: str
    filename: str
    path: Path
    mime_type: str
    size_bytes: int


def get_format(fmt: str) -> ExportFormat:
    try:
        return EXPORT_FORMATS[fmt]
    except KeyError:
        raise ValueError(f"Format d'export inconnu : {fmt}") from None


def build_filename(title: str, fmt: str, day: date | None = None) -> str:
    """``"Feuille de caisse"`` -> ``feuille_de_caisse_2024-01-31.pdf``."""

    export_format = get_format(fmt)
    day = day or date.today()
    slug = slugify_title(title) or "rapport"
    return f"{slug}_{day.isoformat()}.{export_format.extension}"


def render_report(
    fmt: str,
    template: ReportTemplate,
    rows: Sequence[Mapping[str, Any]],
    title: str,
    subtitle: str | None = None,
    *,
    settings: ReportSettings | None = None,
    generated_at: datetime | None = None,
) -> bytes:
    """Rend le rapport en mémoire sur des copies du modèle et des lignes.

    Toute erreur de rendu est journalisée puis signalée par
    :class:`ReportExportError`.
    """

    export_format = get_format(fmt)
    try:
        return export_format.renderer(
            copy.deepcopy(template),
            copy.deepcopy(list(rows)),
            title,
            subtitle,
            settings=settings,
            generated_at=generated_at,
        )
    except Exception as exc:
        logger.exception("Rendu %s du rapport %r impossible", fmt, title)
        raise ReportExportError(fmt=fmt) from exc


def _write_atomic(target: Path, payload: bytes) -> None:
    handle, temp_name = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".tmp", dir=target.parent)
    try:
        with os.fdopen(handle, "wb") as stream:
            stream.write(payload)
        os.replace(temp_name, target)
    except BaseException:
        Path(temp_name).unlink(missing_ok=True)
        raise


def export_report(
    fmt: str,
    template: ReportTemplate,
    rows: Sequence[Mapping[str, Any]],
    title: str,
    subtitle: str | None = None,
    *,
    output_dir: Path | str | None = None,
    settings: ReportSettings | None = None,
    generated_at: datetime | None = None,
) -> ExportResult:
    """Rend puis écrit le rapport dans ``output_dir``.

    Le fichier n'apparaît qu'une fois entièrement écrit ; en cas d'échec
    aucun fichier partiel ne subsiste.
    """

    settings = settings or ReportSettings()
    generated_at = generated_at or datetime.now()
    export_format = get_format(fmt)
    payload = render_report(
        fmt, template, rows, title, subtitle, settings=settings, generated_at=generated_at
    )

    directory = Path(output_dir or settings.output_dir)
    filename = build_filename(title, fmt, generated_at.date())
    target = directory / filename
    try:
        directory.mkdir(parents=True, exist_ok=True)
        _write_atomic(target, payload)
    except OSError as exc:
        logger.exception("Écriture de %s impossible", target)
        raise ReportExportError(fmt=fmt) from exc

    logger.info("Rapport exporté : %s (%d octets)", target, len(payload))
    return ExportResult(
        format=fmt,
        filename=filename,
        path=target,
        mime_type=export_format.mime_type,
        size_bytes=len(payload),
    )
