"""Ligne de commande : génère un rapport à partir d'un fichier JSON de lignes."""
from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
import sys
from typing import Any, List, Mapping, Sequence

from gestionfonds.core.settings import SettingsError, load_settings
from gestionfonds.reporting.export import EXPORT_FORMATS, ReportExportError, export_report
from gestionfonds.reporting.models import ReportTemplate, TemplateError, template_from_dict
from gestionfonds.reporting.presets import DEFAULT_TITLES, PRESET_FACTORIES, get_template_by_type
from gestionfonds.reporting.preview import render_preview

logger = logging.getLogger(__name__)

FORMATS = [*EXPORT_FORMATS, "preview"]


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gestionfonds-report",
        description="Génère un rapport DGDA (PDF, Excel, Word, CSV ou aperçu HTML).",
    )
    parser.add_argument("--format", choices=FORMATS, default="pdf")
    parser.add_argument("--data", type=Path, required=True, help="Fichier JSON des lignes")
    parser.add_argument(
        "--template",
        default="feuille_caisse",
        help=f"Type de modèle ({', '.join(PRESET_FACTORIES)}) ou chemin d'un modèle JSON",
    )
    parser.add_argument("--title")
    parser.add_argument("--subtitle")
    parser.add_argument("--output-dir", type=Path)
    parser.add_argument("--settings", type=Path)
    parser.add_argument("--verbose", "-v", action="store_true")
    return parser


def load_template(value: str) -> ReportTemplate:
    template = get_template_by_type(value)
    if template is not None:
        return template
    path = Path(value)
    if not path.exists():
        raise TemplateError(f"Modèle introuvable : {value}")
    return template_from_dict(json.loads(path.read_text(encoding="utf-8")))


def load_rows(path: Path) -> List[Mapping[str, Any]]:
    raw = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(raw, dict):
        raw = raw.get("rows", [])
    if not isinstance(raw, list) or not all(isinstance(row, dict) for row in raw):
        raise ValueError(f"{path} doit contenir une liste d'objets")
    return raw


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        settings = load_settings(args.settings)
        template = load_template(args.template)
        rows = load_rows(args.data)
    except (SettingsError, TemplateError, ValueError, OSError) as exc:
        print(f"Erreur : {exc}", file=sys.stderr)
        return 2

    default_title, default_subtitle = DEFAULT_TITLES.get(template.type, (template.name, ""))
    title = args.title or default_title
    subtitle = args.subtitle if args.subtitle is not None else default_subtitle

    if args.format == "preview":
        sys.stdout.write(render_preview(template, rows, title, subtitle, settings=settings))
        return 0

    try:
        result = export_report(
            args.format,
            template,
            rows,
            title,
            subtitle,
            output_dir=args.output_dir,
            settings=settings,
        )
    except ReportExportError as exc:
        print(str(exc), file=sys.stderr)
        return 1
    print(result.path)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
