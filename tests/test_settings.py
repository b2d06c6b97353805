import pytest

from gestionfonds.core.settings import ReportSettings, SettingsError, load_settings, save_settings


def test_missing_file_gives_defaults(tmp_path):
    settings = load_settings(tmp_path / "absent.json")

    assert settings == ReportSettings()
    assert settings.preview_row_limit == 15
    assert settings.margin_mm == 15.0
    assert settings.footer_height_mm == 35.0


def test_round_trip(tmp_path):
    target = tmp_path / "conf" / "settings.json"
    save_settings(ReportSettings(logo_path="logo.png", preview_row_limit=5, reference_year=2025), target)

    loaded = load_settings(target)

    assert loaded.logo_path == "logo.png"
    assert loaded.preview_row_limit == 5
    assert loaded.reference_year == 2025


def test_unknown_keys_are_ignored(tmp_path):
    target = tmp_path / "settings.json"
    target.write_text('{"output_dir": "sortie", "theme": "sombre"}', encoding="utf-8")

    assert load_settings(target).output_dir == "sortie"


@pytest.mark.parametrize("content", ["{pas du json", "[1, 2]", '{"preview_row_limit": 0}'])
def test_invalid_files_raise(tmp_path, content):
    target = tmp_path / "settings.json"
    target.write_text(content, encoding="utf-8")

    with pytest.raises(SettingsError):
        load_settings(target)
