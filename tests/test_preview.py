import base64

from gestionfonds.core.settings import ReportSettings
from gestionfonds.reporting.preview import logo_data_uri, render_preview, watermark_context
from gestionfonds.reporting.models import WatermarkConfig


def test_preview_contains_report_parts(cash_template, cash_rows, generated_at):
    html = render_preview(
        cash_template, cash_rows, "Feuille de caisse", "Mois de janvier 2024", generated_at=generated_at
    )

    assert "FEUILLE DE CAISSE" in html
    assert "Mois de janvier 2024" in html
    assert "DGDA/3400/DP/KV/SDAF/2024" in html
    assert "1 500 000" in html
    assert "251 234,50" in html
    assert "02/01/2024" in html
    assert "TOTAL" in html
    assert "Page 1 sur 1" in html
    assert "Généré le 31/01/2024" in html
    assert "ORIGINAL" in html


def test_preview_truncates_rows(cash_template, generated_at):
    rows = [{"libelle": f"Ligne {index}", "recette": 1} for index in range(20)]

    html = render_preview(cash_template, rows, "Caisse", generated_at=generated_at)

    assert "Ligne 14" in html
    assert "Ligne 15" not in html
    assert "... et 5 autres lignes" in html
    # le total porte sur les vingt lignes
    assert ">20<" in html


def test_preview_row_limit_from_settings(cash_template, generated_at):
    rows = [{"libelle": f"Ligne {index}"} for index in range(4)]

    html = render_preview(
        cash_template, rows, "Caisse", settings=ReportSettings(preview_row_limit=2), generated_at=generated_at
    )

    assert "... et 2 autres lignes" in html


def test_preview_escapes_cell_content(amount_template, generated_at):
    rows = [{"montant": 1, "libelle": "<script>alert(1)</script>"}]

    html = render_preview(amount_template, rows, "Test", generated_at=generated_at)

    assert "<script>" not in html
    assert "&lt;script&gt;" in html


def test_tiled_watermark_layer_with_no_rows(cash_template, generated_at):
    cash_template.watermark_config.position = "tiled"

    html = render_preview(cash_template, [], "Caisse", generated_at=generated_at)

    assert html.count('class="watermark"') == 12


def test_disabled_watermark_is_not_rendered(cash_template, generated_at):
    cash_template.watermark_config.enabled = False

    html = render_preview(cash_template, [], "Caisse", generated_at=generated_at)

    assert "watermark-layer\"" not in html
    assert 'class="watermark"' not in html


def test_logo_embedded_as_data_uri(tmp_path, cash_template, generated_at):
    logo = tmp_path / "logo.png"
    logo.write_bytes(b"\x89PNG fake")

    html = render_preview(
        cash_template, [], "Caisse", settings=ReportSettings(logo_path=str(logo)), generated_at=generated_at
    )

    assert "data:image/png;base64," + base64.b64encode(b"\x89PNG fake").decode("ascii") in html


def test_missing_logo_is_skipped_with_warning(tmp_path, caplog):
    assert logo_data_uri(str(tmp_path / "absent.png")) is None
    assert "Logo illisible" in caplog.text


def test_watermark_context_positions():
    context = watermark_context(WatermarkConfig(position="center", opacity=100, color="#ff0000"))

    assert context["instances"] == [{"left": 50.0, "top": 50.0, "angle": -0.0}]
    assert context["color"] == "#ff0000"
    assert watermark_context(None) is None
