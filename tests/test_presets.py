from gestionfonds.reporting.presets import (
    DEFAULT_TITLES,
    feuille_caisse_template,
    get_template_by_type,
    report_templates,
)


def test_presets_are_available():
    templates = {template.type: template for template in report_templates()}

    assert set(templates) == {"feuille_caisse", "sommaire", "programmation"}
    assert templates["feuille_caisse"].is_landscape
    assert not templates["sommaire"].is_landscape
    assert templates["sommaire"].group_by == "category"
    assert set(DEFAULT_TITLES) == set(templates)


def test_factories_return_fresh_objects():
    first = feuille_caisse_template()
    first.columns.clear()
    first.header.line1 = "modifié"
    first.styles.row_styles.clear()

    second = feuille_caisse_template()

    assert len(second.columns) == 7
    assert second.header.line1 == "République Démocratique du Congo"
    assert second.styles.row_styles


def test_get_template_by_type():
    template = get_template_by_type("sommaire")

    assert template is not None
    assert template.id.startswith("sommaire_")
    assert get_template_by_type("sommaire") is not template
    assert get_template_by_type("inconnu") is None


def test_cash_sheet_columns():
    template = feuille_caisse_template()
    numeric = [column.key for column in template.columns if column.is_numeric]

    assert numeric == ["recette", "depense"]
    assert template.header.reference_number == "DGDA/3400/DP/KV/SDAF/"
