import re
from unittest.mock import MagicMock

from reportlab.lib.pagesizes import A4, landscape
from reportlab.pdfgen.canvas import Canvas

from gestionfonds.core.settings import ReportSettings
from gestionfonds.reporting.layout import build_table
from gestionfonds.reporting.models import WatermarkConfig
from gestionfonds.reporting.pdf import (
    PageDecorator,
    PdfReportRenderer,
    _DecoratedCanvas,
    font_family,
    render_pdf,
)

MEDIA_BOX_RE = re.compile(rb"/MediaBox\s*\[\s*0 0 ([\d.]+) ([\d.]+)")


def _page_size(pdf: bytes) -> tuple[float, float]:
    match = MEDIA_BOX_RE.search(pdf)
    assert match is not None
    return float(match.group(1)), float(match.group(2))


def test_landscape_page_is_wider_than_tall(cash_template, cash_rows, generated_at):
    pdf = render_pdf(cash_template, cash_rows, "Feuille de caisse", generated_at=generated_at)

    assert pdf.startswith(b"%PDF")
    width, height = _page_size(pdf)
    assert width > height


def test_portrait_page_is_taller_than_wide(cash_template, cash_rows, generated_at):
    cash_template.orientation = "portrait"

    width, height = _page_size(render_pdf(cash_template, cash_rows, "Caisse", generated_at=generated_at))

    assert height > width


def test_many_rows_span_several_pages(cash_template, generated_at):
    rows = [{"libelle": f"Opération {index}", "recette": index} for index in range(200)]

    pdf = render_pdf(cash_template, rows, "Caisse", generated_at=generated_at)

    assert len(MEDIA_BOX_RE.findall(pdf)) > 1


def test_render_does_not_mutate_inputs(cash_template, cash_rows, generated_at):
    template_before = cash_template.to_dict()
    rows_before = [dict(row) for row in cash_rows]

    render_pdf(cash_template, cash_rows, "Caisse", generated_at=generated_at)

    assert cash_template.to_dict() == template_before
    assert cash_rows == rows_before


def test_table_cells_match_shared_layout(amount_template, amount_rows, generated_at):
    renderer = PdfReportRenderer(amount_template, generated_at=generated_at)
    table = build_table(amount_template, amount_rows)

    renderer.add_table(table)
    cells = renderer._story[-1]._cellvalues

    assert [cell.getPlainText() for cell in cells[0]] == ["MONTANT", "LIBELLÉ"]
    assert [row[0].getPlainText() for row in cells[1:4]] == ["1 000", "", ""]
    assert [row[1].getPlainText() for row in cells[1:4]] == ["A", "B", "C"]
    assert [cell.getPlainText() for cell in cells[-1]] == ["TOTAL", ""]


def test_tiled_watermark_draws_full_grid():
    decorator = PageDecorator(
        _template_stub(),
        landscape(A4),
        margin=40,
        watermark=WatermarkConfig(position="tiled", text="COPIE"),
    )
    canvas = MagicMock()

    decorator.draw_watermark(canvas)

    assert canvas.drawCentredString.call_count == 12
    assert canvas.rotate.call_count == 12
    assert canvas.saveState.call_count == canvas.restoreState.call_count == 13


def test_center_watermark_is_not_rotated():
    decorator = PageDecorator(
        _template_stub(), A4, margin=40, watermark=WatermarkConfig(position="center", rotation=45)
    )
    canvas = MagicMock()

    decorator.draw_watermark(canvas)

    canvas.rotate.assert_called_once_with(0.0)
    canvas.drawCentredString.assert_called_once()


def test_watermark_colour_lightens_with_opacity():
    def fill_for(opacity):
        canvas = MagicMock()
        PageDecorator(
            _template_stub(), A4, margin=40, watermark=WatermarkConfig(color="#000000", opacity=opacity)
        ).draw_watermark(canvas)
        return canvas.setFillColorRGB.call_args.args

    assert fill_for(10)[0] > fill_for(50)[0] > fill_for(100)[0]
    assert fill_for(100) == (0.0, 0.0, 0.0)


def test_footer_page_numbers(cash_template):
    canvas = MagicMock()
    decorator = PageDecorator(cash_template, A4, margin=40)

    decorator.draw_footer(canvas, 2, 5)

    texts = [call.args[2] for call in canvas.drawCentredString.call_args_list]
    assert "Page 2 sur 5" in texts
    assert cash_template.footer.slogan in texts


def test_footer_without_page_numbers(cash_template):
    cash_template.footer.show_page_numbers = False
    canvas = MagicMock()

    PageDecorator(cash_template, A4, margin=40).draw_footer(canvas, 1, 1)

    texts = [call.args[2] for call in canvas.drawCentredString.call_args_list]
    assert not any(text.startswith("Page") for text in texts)


def test_tiled_watermark_with_zero_rows_fills_the_page(cash_template, generated_at, monkeypatch):
    drawn = []

    def record(canvas, x, y, text, *args, **kwargs):
        drawn.append(text)
        return Canvas.drawCentredString(canvas, x, y, text, *args, **kwargs)

    monkeypatch.setattr(_DecoratedCanvas, "drawCentredString", record)
    cash_template.watermark_config.position = "tiled"
    cash_template.watermark_config.text = "COPIE"

    pdf = render_pdf(cash_template, [], "Caisse", generated_at=generated_at)

    assert pdf.startswith(b"%PDF")
    assert drawn.count("COPIE") == 12
    assert "Page 1 sur 1" in drawn


def test_unreadable_images_are_skipped(tmp_path, cash_template, cash_rows, generated_at, caplog):
    cash_template.watermark_config.type = "image"
    cash_template.watermark_config.image_url = str(tmp_path / "absent.png")
    settings = ReportSettings(logo_path=str(tmp_path / "logo-absent.png"))

    pdf = render_pdf(cash_template, cash_rows, "Caisse", settings=settings, generated_at=generated_at)

    assert pdf.startswith(b"%PDF")
    assert "Logo illisible" in caplog.text
    assert "Image de filigrane illisible" in caplog.text


def test_font_families():
    assert font_family("Times New Roman") == "times"
    assert font_family("Arial") == "helvetica"
    assert font_family("Courier New") == "courier"
    assert font_family("Inconnue") == "times"


def _template_stub():
    from gestionfonds.reporting.presets import programmation_template

    return programmation_template()
