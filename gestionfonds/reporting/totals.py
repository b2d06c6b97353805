"""Calcul des totaux par colonne."""
from __future__ import annotations

from typing import Any, Dict, List, Mapping, Sequence

from .formatting import format_value, to_number
from .models import TableColumn

TOTAL_LABEL = "TOTAL"


def aggregate(rows: Sequence[Mapping[str, Any]], columns: Sequence[TableColumn]) -> Dict[str, float | int]:
    """Somme des colonnes ``currency``/``number``.

    Les valeurs manquantes ou non numériques comptent pour zéro. Les colonnes
    d'autres types sont absentes du résultat (« pas de total »).
    """

    totals: Dict[str, float | int] = {}
    for column in columns:
        if not column.is_numeric:
            continue
        total: float | int = 0
        for row in rows:
            total += to_number(row.get(column.key)) or 0
        totals[column.key] = total
    return totals


def totals_cells(columns: Sequence[TableColumn], totals: Mapping[str, float | int]) -> List[str]:
    """Ligne de totaux affichée : ``TOTAL`` en première colonne, puis les sommes."""

    cells: List[str] = []
    for index, column in enumerate(columns):
        if index == 0:
            cells.append(TOTAL_LABEL)
        elif column.key in totals:
            cells.append(format_value(totals[column.key], column.type))
        else:
            cells.append("")
    return cells
