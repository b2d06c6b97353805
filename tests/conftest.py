from __future__ import annotations

from datetime import datetime

import pytest

from gestionfonds.core.settings import ReportSettings
from gestionfonds.reporting.models import ReportTemplate, TableColumn
from gestionfonds.reporting.presets import feuille_caisse_template


@pytest.fixture
def generated_at() -> datetime:
    return datetime(2024, 1, 31, 10, 30, 0)


@pytest.fixture
def settings(tmp_path) -> ReportSettings:
    return ReportSettings(output_dir=str(tmp_path / "exports"))


@pytest.fixture
def cash_template() -> ReportTemplate:
    return feuille_caisse_template()


@pytest.fixture
def cash_rows() -> list[dict]:
    return [
        {
            "date": "2024-01-02",
            "numero_ordre": "001",
            "numero_beo": "B-17",
            "libelle": "Solde précédent",
            "recette": 1500000,
            "depense": None,
            "imputation": "",
        },
        {
            "date": "2024-01-05",
            "numero_ordre": "002",
            "numero_beo": "B-18",
            "libelle": "Achat fournitures",
            "recette": None,
            "depense": 1234.5,
            "imputation": "604",
        },
        {
            "date": "2024-01-09",
            "numero_ordre": "003",
            "numero_beo": "B-19",
            "libelle": "Frais de mission",
            "depense": "250000",
            "imputation": "625",
        },
    ]


@pytest.fixture
def amount_template() -> ReportTemplate:
    """Deux colonnes : un montant puis un libellé."""

    return ReportTemplate(
        id="test",
        name="Test",
        columns=[
            TableColumn("montant", "MONTANT", "montant", type="currency"),
            TableColumn("libelle", "LIBELLÉ", "libelle"),
        ],
        show_totals=True,
    )


@pytest.fixture
def amount_rows() -> list[dict]:
    return [
        {"montant": 1000, "libelle": "A"},
        {"montant": "abc", "libelle": "B"},
        {"montant": None, "libelle": "C"},
    ]
