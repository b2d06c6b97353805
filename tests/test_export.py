import logging
from datetime import date

import pytest

from gestionfonds.reporting import export as export_module
from gestionfonds.reporting.export import (
    EXPORT_FORMATS,
    ExportFormat,
    ReportExportError,
    build_filename,
    export_report,
    render_report,
)


def test_build_filename():
    assert build_filename("Feuille de caisse", "pdf", date(2024, 1, 31)) == "feuille_de_caisse_2024-01-31.pdf"
    assert build_filename("Sommaire", "excel", date(2024, 1, 31)) == "sommaire_2024-01-31.xlsx"
    assert build_filename("Sommaire", "word", date(2024, 1, 31)) == "sommaire_2024-01-31.doc"
    assert build_filename("  ", "csv", date(2024, 1, 31)) == "rapport_2024-01-31.csv"
    with pytest.raises(ValueError):
        build_filename("x", "odt")


@pytest.mark.parametrize(
    "fmt, mime_type, magic",
    [
        ("pdf", "application/pdf", b"%PDF"),
        ("excel", "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet", b"PK"),
        ("word", "application/msword", b"\xef\xbb\xbf"),
        ("docx", "application/vnd.openxmlformats-officedocument.wordprocessingml.document", b"PK"),
        ("csv", "text/csv", b"\xef\xbb\xbf"),
    ],
)
def test_export_writes_file(tmp_path, cash_template, cash_rows, generated_at, fmt, mime_type, magic, caplog):
    caplog.set_level(logging.INFO)

    result = export_report(
        fmt, cash_template, cash_rows, "Feuille de caisse", output_dir=tmp_path, generated_at=generated_at
    )

    assert result.path.exists()
    assert result.path.parent == tmp_path
    assert result.filename.startswith("feuille_de_caisse_2024-01-31.")
    assert result.mime_type == mime_type
    assert result.size_bytes == result.path.stat().st_size
    assert result.path.read_bytes().startswith(magic)
    assert [path.name for path in tmp_path.iterdir()] == [result.filename]
    assert "Rapport exporté" in caplog.text


def test_export_uses_settings_output_dir(tmp_path, settings, cash_template, generated_at):
    result = export_report("csv", cash_template, [], "Caisse", settings=settings, generated_at=generated_at)

    assert result.path.parent == tmp_path / "exports"


def _failing_renderer(template, rows, title, subtitle=None, **kwargs):
    template.columns.clear()
    rows.clear()
    raise RuntimeError("boom")


def test_failed_export_leaves_nothing_behind(tmp_path, monkeypatch, cash_template, cash_rows, caplog):
    monkeypatch.setitem(EXPORT_FORMATS, "pdf", ExportFormat("pdf", "pdf", "application/pdf", _failing_renderer))

    with pytest.raises(ReportExportError) as excinfo:
        export_report("pdf", cash_template, cash_rows, "Caisse", output_dir=tmp_path)

    assert str(excinfo.value) == "Export échoué"
    assert isinstance(excinfo.value.__cause__, RuntimeError)
    assert list(tmp_path.iterdir()) == []
    assert len(cash_template.columns) == 7
    assert len(cash_rows) == 3
    assert "boom" in caplog.text


def test_failed_write_removes_temporary_file(tmp_path, monkeypatch, cash_template, generated_at):
    def broken_replace(source, target):
        raise OSError("disque plein")

    monkeypatch.setattr(export_module.os, "replace", broken_replace)

    with pytest.raises(ReportExportError):
        export_report("csv", cash_template, [], "Caisse", output_dir=tmp_path, generated_at=generated_at)

    assert list(tmp_path.iterdir()) == []


def test_cross_format_parity(tmp_path, cash_template, cash_rows, generated_at):
    from io import BytesIO

    from docx import Document
    from openpyxl import load_workbook

    from gestionfonds.reporting.preview import render_preview

    expected = "251 234,50"
    html = render_preview(cash_template, cash_rows, "Caisse", generated_at=generated_at)
    word = render_report("word", cash_template, cash_rows, "Caisse", generated_at=generated_at).decode("utf-8-sig")
    csv_text = render_report("csv", cash_template, cash_rows, "Caisse").decode("utf-8-sig")
    doc = Document(BytesIO(render_report("docx", cash_template, cash_rows, "Caisse", generated_at=generated_at)))
    ws = load_workbook(BytesIO(render_report("excel", cash_template, cash_rows, "Caisse", generated_at=generated_at))).active

    assert expected in html
    assert expected in word
    assert expected in csv_text
    assert doc.tables[0].rows[-1].cells[5].text == expected
    totals = next(row for row in ws.iter_rows() if row[0].value == "TOTAL")
    assert totals[5].value == 251234.5
    assert "Achat fournitures" in html and "Achat fournitures" in word and "Achat fournitures" in csv_text
