"""Paramètres de génération des rapports, stockés dans un fichier JSON."""
from __future__ import annotations

from dataclasses import asdict, dataclass, fields
import json
from pathlib import Path
from typing import Any, Dict

SETTINGS_PATH = Path(__file__).with_name("settings.json")


@dataclass(slots=True)
class ReportSettings:
    """Réglages communs à tous les rendus."""

    logo_path: str | None = None
    preview_row_limit: int = 15
    output_dir: str = "exports"
    reference_year: int | None = None
    margin_mm: float = 15.0
    footer_height_mm: float = 35.0


class SettingsError(RuntimeError):
    """Erreur de lecture ou d'écriture du fichier de paramètres."""


def _from_dict(raw: Dict[str, Any]) -> ReportSettings:
    known = {item.name for item in fields(ReportSettings)}
    values = {key: value for key, value in raw.items() if key in known}
    settings = ReportSettings(**values)
    if settings.preview_row_limit < 1:
        raise SettingsError("preview_row_limit doit être supérieur à zéro")
    return settings


def load_settings(path: Path | None = None) -> ReportSettings:
    """Charge les paramètres ; valeurs par défaut si le fichier n'existe pas."""

    target = path or SETTINGS_PATH
    if not target.exists():
        return ReportSettings()
    try:
        raw = json.loads(target.read_text(encoding="utf-8"))
    except Exception as exc:  # pragma: no cover - erreurs du système de fichiers
        raise SettingsError(f"Paramètres {target} illisibles") from exc
    if not isinstance(raw, dict):
        raise SettingsError(f"Paramètres {target} corrompus")
    try:
        return _from_dict(raw)
    except TypeError as exc:
        raise SettingsError(f"Paramètres {target} invalides : {exc}") from exc


def save_settings(settings: ReportSettings, path: Path | None = None) -> None:
    target = path or SETTINGS_PATH
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(
            json.dumps(asdict(settings), indent=2, ensure_ascii=False), encoding="utf-8"
        )
    except OSError as exc:  # pragma: no cover - erreurs du système de fichiers
        raise SettingsError(f"Paramètres {target} impossibles à écrire") from exc
