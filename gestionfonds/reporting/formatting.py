"""Formatage des valeurs de cellule, partagé par tous les rendus.

Montants au format RDC : espace comme séparateur de milliers, virgule
décimale, sans symbole monétaire (le « FC » est porté par les libellés).
"""
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
import math
import re
from typing import Any

_NUMERIC_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")
_HEX_RE = re.compile(r"^#?([0-9a-fA-F]{2})([0-9a-fA-F]{2})([0-9a-fA-F]{2})$")
_WHITESPACE_RE = re.compile(r"\s+")

THOUSANDS_SEPARATOR = " "
DECIMAL_SEPARATOR = ","


def is_blank(value: Any) -> bool:
    return value is None or value == ""


def to_number(value: Any) -> float | int | None:
    """Conversion numérique tolérante ; ``None`` si la valeur n'est pas un nombre fini."""

    if value is None:
        return None
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        try:
            float(value)
        except OverflowError:
            return None
        return value
    if isinstance(value, (float, Decimal)):
        number = float(value)
        return number if math.isfinite(number) else None
    if isinstance(value, str):
        text = value.strip()
        if not _NUMERIC_RE.match(text):
            return None
        number = float(text)
        if not math.isfinite(number):
            return None
        return int(number) if number.is_integer() and "." not in text and "e" not in text.lower() else number
    return None


def _group_thousands(integer_part: str) -> str:
    groups = []
    while len(integer_part) > 3:
        groups.insert(0, integer_part[-3:])
        integer_part = integer_part[:-3]
    groups.insert(0, integer_part)
    return THOUSANDS_SEPARATOR.join(groups)


def _format_decimal(number: float | int, max_decimals: int, fixed_decimals: bool) -> str:
    negative = number < 0
    if isinstance(number, int):
        text = f"{abs(number)}.{'0' * max_decimals}"
    else:
        text = f"{round(abs(number), max_decimals):.{max_decimals}f}"
    integer_part, _, fraction = text.partition(".")
    if fixed_decimals:
        if int(fraction or "0") == 0:
            fraction = ""
    else:
        fraction = fraction.rstrip("0")
    result = _group_thousands(integer_part)
    if fraction:
        result = f"{result}{DECIMAL_SEPARATOR}{fraction}"
    if negative and result.strip("0 ,"):
        result = f"-{result}"
    return result


def format_amount(number: float | int) -> str:
    """``1000`` -> ``"1 000"``, ``1234.5`` -> ``"1 234,50"``."""

    return _format_decimal(number, 2, fixed_decimals=True)


def format_number(number: float | int) -> str:
    """Nombre groupé à la française, jusqu'à trois décimales."""

    return _format_decimal(number, 3, fixed_decimals=False)


def format_date(value: Any) -> str:
    if isinstance(value, datetime):
        return value.strftime("%d/%m/%Y")
    if isinstance(value, date):
        return value.strftime("%d/%m/%Y")
    if isinstance(value, str):
        text = value.strip()
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            return value
        return parsed.strftime("%d/%m/%Y")
    return str(value)


def format_value(value: Any, column_type: str) -> str:
    """Texte affiché d'une cellule selon le type déclaré de la colonne."""

    if is_blank(value):
        return ""
    if column_type == "currency":
        number = to_number(value)
        return "" if number is None else format_amount(number)
    if column_type == "number":
        number = to_number(value)
        return "" if number is None else format_number(number)
    if column_type == "date":
        return format_date(value)
    return str(value)


def hex_to_rgb(value: str) -> tuple[int, int, int]:
    """``"#1e40af"`` -> ``(30, 64, 175)`` ; noir pour une valeur invalide."""

    match = _HEX_RE.match((value or "").strip())
    if not match:
        return (0, 0, 0)
    return tuple(int(part, 16) for part in match.groups())  # type: ignore[return-value]


def rgb_to_hex(rgb: tuple[int, int, int]) -> str:
    return "#{:02x}{:02x}{:02x}".format(*rgb)


def blend_with_white(color: str, opacity: float) -> tuple[int, int, int]:
    """Simule l'opacité en mélangeant la couleur vers le blanc (0-100)."""

    factor = max(0.0, min(100.0, float(opacity))) / 100
    return tuple(round(255 - (255 - channel) * factor) for channel in hex_to_rgb(color))  # type: ignore[return-value]


def slugify_title(title: str) -> str:
    """Minuscules, espaces remplacés par des tirets bas."""

    return _WHITESPACE_RE.sub("_", title.strip()).lower()
