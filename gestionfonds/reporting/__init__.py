"""Moteur de rapports : modèles, aperçu HTML et exports PDF, Excel, Word, CSV."""
from .export import (
    EXPORT_FORMATS,
    ExportResult,
    ReportExportError,
    build_filename,
    export_report,
    render_report,
)
from .models import (
    ReportFooter,
    ReportHeader,
    ReportTemplate,
    RowStyle,
    TableColumn,
    TemplateError,
    TemplateStyles,
    WatermarkConfig,
    clone_template,
    move_column,
    template_from_dict,
)
from .presets import get_template_by_type, report_templates
from .preview import render_preview

__all__ = [
    "EXPORT_FORMATS",
    "ExportResult",
    "ReportExportError",
    "ReportFooter",
    "ReportHeader",
    "ReportTemplate",
    "RowStyle",
    "TableColumn",
    "TemplateError",
    "TemplateStyles",
    "WatermarkConfig",
    "build_filename",
    "clone_template",
    "export_report",
    "get_template_by_type",
    "move_column",
    "render_preview",
    "render_report",
    "report_templates",
    "template_from_dict",
]
