"""Modèles officiels DGDA préconfigurés.

Chaque fonction construit un objet neuf : aucun modèle n'est partagé entre
deux appels, les modifications de l'éditeur restent donc locales.
"""
from __future__ import annotations

from typing import Callable, Dict, List

from .models import (
    ReportFooter,
    ReportHeader,
    ReportTemplate,
    RowStyle,
    TableColumn,
    TemplateStyles,
    WatermarkConfig,
    clone_template,
)

DEFAULT_REFERENCE_NUMBER = "DGDA/3400/DP/KV/SDAF/"

# Titre et sous-titre proposés lors du changement de type de rapport.
DEFAULT_TITLES: Dict[str, tuple[str, str]] = {
    "feuille_caisse": ("FEUILLE DE CAISSE", "MOIS DE JANVIER 2024"),
    "sommaire": ("SOMMAIRE DU MOIS DE JANVIER 2024", ""),
    "programmation": ("PROGRAMMATION MENSUELLE", "MOIS DE JANVIER 2024"),
}


def default_header() -> ReportHeader:
    return ReportHeader(
        line1="République Démocratique du Congo",
        line2="Ministère des Finances",
        line3="Direction Générale des Douanes et Accises",
        line4="Direction Provinciale de Kin – Ville",
        show_logo=True,
        logo_position="left",
        reference_number=DEFAULT_REFERENCE_NUMBER,
    )


def default_footer() -> ReportFooter:
    return ReportFooter(
        slogan="Toujours davantage, aujourd'hui plus qu'hier et demain plus qu'aujourd'hui !",
        address="Immeuble DGDA, Place LE ROYAL, Bld du 30 Juin, Kinshasa/Gombe",
        contact=(
            "B.P.8248 KIN I / Tél. : (0) 1 503 07 00 - (0) 1 503 07 04 / "
            "Fax : +243 (0) 1 503 07 03 N.I.F. : A0700230J"
        ),
        email="Email : info@douanesrdc.com bco@douanesrdc.com - Web : http://www.douanesgouv.cd",
        show_page_numbers=True,
    )


def default_watermark_config() -> WatermarkConfig:
    return WatermarkConfig(
        enabled=True,
        text="ORIGINAL",
        opacity=15,
        rotation=45,
        font_size=60,
        color="#cccccc",
        position="diagonal",
        type="text",
        image_url=None,
        image_size=40,
    )


def _default_row_styles() -> List[RowStyle]:
    return [
        RowStyle("header", "#ffffff", "#000000", font_weight="bold"),
        RowStyle("subheader", "#f0f0f0", "#000000", font_weight="bold"),
        RowStyle("data", "#ffffff", "#000000"),
        RowStyle("total", "#e5e7eb", "#000000", font_weight="bold"),
        RowStyle("subtotal", "#f3f4f6", "#000000", font_weight="bold"),
    ]


def default_styles() -> TemplateStyles:
    return TemplateStyles(
        title_font="Times New Roman",
        title_size=14,
        body_font="Times New Roman",
        body_size=10,
        header_color="#1e40af",
        header_text_color="#000000",
        alternate_row_color="#f5f7fa",
        border_color="#000000",
        accent_color="#1e40af",
        row_styles=_default_row_styles(),
    )


def feuille_caisse_columns() -> List[TableColumn]:
    return [
        TableColumn("date", "DATE", "date", type="date", width=12, align="center"),
        TableColumn("numero_ordre", "N° ORD", "numero_ordre", width=8, align="center"),
        TableColumn("numero_beo", "N° BEO", "numero_beo", width=8, align="center"),
        TableColumn("libelle", "LIBELLÉ", "libelle", width=40, align="left"),
        TableColumn("recette", "RECETTE", "recette", type="currency", width=15, align="right"),
        TableColumn("depense", "DÉPENSE", "depense", type="currency", width=15, align="right"),
        TableColumn("imputation", "IMP", "imputation", width=10, align="center"),
    ]


def sommaire_columns() -> List[TableColumn]:
    return [
        TableColumn("article", "ART.", "article", width=12, align="center"),
        TableColumn("designation", "DESIGNATION", "designation", width=50, align="left"),
        TableColumn("recettes", "RECETTES", "recettes", type="currency", width=18, align="right"),
        TableColumn("depenses", "DEPENSES", "depenses", type="currency", width=18, align="right"),
    ]


def programmation_columns() -> List[TableColumn]:
    return [
        TableColumn("numero_ordre", "N° ORD", "numero_ordre", type="number", width=10, align="center"),
        TableColumn("designation", "DÉSIGNATION", "designation", width=50, align="left"),
        TableColumn(
            "montant_prevu", "MONTANT PRÉVU", "montant_prevu", type="currency", width=20, align="right"
        ),
        TableColumn("rubrique", "RUBRIQUE", "rubrique", width=15, align="center"),
        TableColumn("periode", "PÉRIODE", "periode", width=15, align="center"),
    ]


def feuille_caisse_template() -> ReportTemplate:
    return ReportTemplate(
        id="feuille_caisse",
        name="Feuille de Caisse",
        type="feuille_caisse",
        description="Feuille de caisse mensuelle avec suivi des recettes et dépenses",
        orientation="landscape",
        header=default_header(),
        footer=default_footer(),
        styles=default_styles(),
        columns=feuille_caisse_columns(),
        show_totals=True,
        show_subtotals=False,
        watermark="ORIGINAL",
        watermark_config=default_watermark_config(),
    )


def sommaire_template() -> ReportTemplate:
    styles = default_styles()
    styles.row_styles = [
        RowStyle("header", "#ffffff", "#000000", font_weight="bold", underline=True),
        RowStyle("subheader", "#ffffff", "#000000", font_weight="bold"),
        RowStyle("data", "#ffffff", "#000000"),
        RowStyle("total", "#ffffff", "#000000", font_weight="bold"),
        RowStyle("subtotal", "#ffffff", "#000000", font_weight="bold"),
    ]
    return ReportTemplate(
        id="sommaire",
        name="Sommaire Mensuel",
        type="sommaire",
        description="Sommaire mensuel des opérations par rubrique budgétaire",
        orientation="portrait",
        header=default_header(),
        footer=default_footer(),
        styles=styles,
        columns=sommaire_columns(),
        show_totals=True,
        show_subtotals=True,
        group_by="category",
        watermark="ORIGINAL",
        watermark_config=default_watermark_config(),
    )


def programmation_template() -> ReportTemplate:
    return ReportTemplate(
        id="programmation",
        name="Programmation Mensuelle",
        type="programmation",
        description="Programmation mensuelle des dépenses prévisionnelles",
        orientation="portrait",
        header=default_header(),
        footer=default_footer(),
        styles=default_styles(),
        columns=programmation_columns(),
        show_totals=True,
        show_subtotals=False,
        watermark="ORIGINAL",
        watermark_config=default_watermark_config(),
    )


PRESET_FACTORIES: Dict[str, Callable[[], ReportTemplate]] = {
    "feuille_caisse": feuille_caisse_template,
    "sommaire": sommaire_template,
    "programmation": programmation_template,
}


def report_templates() -> List[ReportTemplate]:
    """Liste des modèles disponibles, construits à neuf."""

    return [factory() for factory in PRESET_FACTORIES.values()]


def get_template_by_type(template_type: str) -> ReportTemplate | None:
    """Retourne une copie modifiable du modèle du type demandé.

    Utilisé pour « changer de type de rapport » et « réinitialiser ».
    """

    factory = PRESET_FACTORIES.get(template_type)
    if factory is None:
        return None
    return clone_template(factory())
