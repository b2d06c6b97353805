from datetime import date, datetime
from decimal import Decimal

import pytest

from gestionfonds.reporting.formatting import (
    blend_with_white,
    format_date,
    format_value,
    hex_to_rgb,
    rgb_to_hex,
    slugify_title,
    to_number,
)


@pytest.mark.parametrize(
    "value, expected",
    [
        (1000, "1 000"),
        (1234.5, "1 234,50"),
        (0, "0"),
        (-2500000, "-2 500 000"),
        ("1500000", "1 500 000"),
        (Decimal("12.5"), "12,50"),
        (999.999, "1 000"),
        (-0.001, "0"),
    ],
)
def test_currency_formatting(value, expected):
    assert format_value(value, "currency") == expected


@pytest.mark.parametrize(
    "value, expected",
    [
        (1234.5678, "1 234,568"),
        (2.5, "2,5"),
        (1000000, "1 000 000"),
        ("3.10", "3,1"),
    ],
)
def test_number_formatting(value, expected):
    assert format_value(value, "number") == expected


@pytest.mark.parametrize("column_type", ["currency", "number"])
@pytest.mark.parametrize("value", ["abc", "", None, float("nan"), float("inf"), [1], "12abc"])
def test_non_numeric_values_render_blank(value, column_type):
    assert format_value(value, column_type) == ""


def test_dates():
    assert format_value("2024-01-15", "date") == "15/01/2024"
    assert format_value("2024-01-15T23:30:00Z", "date") == "15/01/2024"
    assert format_value(date(2024, 3, 1), "date") == "01/03/2024"
    assert format_value(datetime(2024, 3, 1, 8, 0), "date") == "01/03/2024"
    assert format_value("hier", "date") == "hier"
    assert format_date(20240115) == "20240115"


def test_text_and_blank():
    assert format_value(None, "text") == ""
    assert format_value("", "text") == ""
    assert format_value(42, "text") == "42"
    assert format_value("A", "unknown") == "A"


@pytest.mark.parametrize(
    "value, column_type",
    [(1234.5, "currency"), ("2024-01-15", "date"), (3.14159, "number"), ("x", "text"), ("abc", "currency")],
)
def test_formatting_is_idempotent(value, column_type):
    assert format_value(value, column_type) == format_value(value, column_type)


def test_to_number():
    assert to_number("42") == 42
    assert to_number(" 4.5 ") == 4.5
    assert to_number("1e3") == 1000.0
    assert to_number(True) == 1
    assert to_number("1 000") is None
    assert to_number(float("inf")) is None
    assert to_number(object()) is None


def test_colors():
    assert hex_to_rgb("#1e40af") == (30, 64, 175)
    assert hex_to_rgb("pas une couleur") == (0, 0, 0)
    assert rgb_to_hex((30, 64, 175)) == "#1e40af"
    assert blend_with_white("#000000", 100) == (0, 0, 0)
    assert blend_with_white("#000000", 0) == (255, 255, 255)
    assert blend_with_white("#cccccc", 15) == (247, 247, 247)


def test_slugify_title():
    assert slugify_title("  Feuille de   caisse ") == "feuille_de_caisse"
    assert slugify_title("SOMMAIRE\tJANVIER") == "sommaire_janvier"


def test_out_of_range_integers_render_blank():
    assert to_number(10**400) is None
    assert format_value(10**400, "currency") == ""
    assert format_value(-(10**400), "number") == ""
    assert format_value(10**20, "currency") == "100 000 000 000 000 000 000"
