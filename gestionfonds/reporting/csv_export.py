"""Export CSV : tableau seul, séparateur ``;`` et BOM pour Excel."""
from __future__ import annotations

import csv
from datetime import datetime
import io
import re
from typing import Any, List, Mapping, Sequence

from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE

from ..core.settings import ReportSettings
from .layout import build_table
from .models import ReportTemplate

MIME_TYPE = "text/csv"
DELIMITER = ";"

_FORMULA_PREFIXES = ("=", "+", "-", "@", "\t", "\r")
_FORMATTED_NUMBER_RE = re.compile(r"^-\d{1,3}( \d{3})*(,\d+)?$")


def neutralize_cell(text: str) -> str:
    """Cellule inerte pour un tableur : ni caractère de contrôle ni formule.

    Un texte commençant par ``=``, ``+``, ``-``, ``@``, une tabulation ou un
    retour chariot est préfixé d'une apostrophe. Les montants négatifs déjà
    formatés (``-2 500 000``) restent tels quels.
    """

    text = ILLEGAL_CHARACTERS_RE.sub("", text)
    if text.startswith(_FORMULA_PREFIXES) and not _FORMATTED_NUMBER_RE.match(text):
        return "'" + text
    return text


def _neutralize_row(cells: Sequence[str]) -> List[str]:
    return [neutralize_cell(cell) for cell in cells]


def render_csv(
    template: ReportTemplate,
    rows: Sequence[Mapping[str, Any]],
    title: str,
    subtitle: str | None = None,
    *,
    settings: ReportSettings | None = None,
    generated_at: datetime | None = None,
) -> bytes:
    """En-têtes de colonnes, lignes formatées puis ligne de totaux.

    Le titre et l'en-tête institutionnel ne sont pas repris : le fichier doit
    rester relisible par un tableur ou un script. Chaque cellule passe par :func:`neutralize_cell`.
    """

    table = build_table(template, rows)
    buffer = io.StringIO()
    writer = csv.writer(buffer, delimiter=DELIMITER)
    if table.columns:
        writer.writerow(_neutralize_row(table.headers))
        writer.writerows(_neutralize_row(cells) for cells in table.body)
        if table.totals_row is not None:
            writer.writerow(_neutralize_row(table.totals_row))
    return ("\ufeff" + buffer.getvalue()).encode("utf-8")
