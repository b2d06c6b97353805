"""Structures de données des modèles de rapport (éditeur de rapports avancé)."""
from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Literal, Mapping, Sequence

ReportTemplateType = Literal["feuille_caisse", "sommaire", "programmation", "custom"]
PageOrientation = Literal["portrait", "landscape"]
TextAlignment = Literal["left", "center", "right"]
ColumnType = Literal["text", "number", "currency", "date"]
RowCondition = Literal["header", "subheader", "data", "total", "subtotal"]
WatermarkPosition = Literal["center", "diagonal", "tiled"]
WatermarkType = Literal["text", "image"]

TEMPLATE_TYPES = ("feuille_caisse", "sommaire", "programmation", "custom")
ORIENTATIONS = ("portrait", "landscape")
ALIGNMENTS = ("left", "center", "right")
COLUMN_TYPES = ("text", "number", "currency", "date")
NUMERIC_TYPES = ("number", "currency")
ROW_CONDITIONS = ("header", "subheader", "data", "total", "subtotal")
WATERMARK_POSITIONS = ("center", "diagonal", "tiled")
WATERMARK_TYPES = ("text", "image")

MIN_COLUMN_WIDTH = 5
MAX_COLUMN_WIDTH = 50


class TemplateError(ValueError):
    """Signale une configuration de modèle invalide."""


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


@dataclass(slots=True)
class ReportHeader:
    """En-tête officiel : quatre lignes, logo et numéro de référence."""

    line1: str = ""
    line2: str = ""
    line3: str = ""
    line4: str = ""
    show_logo: bool = True
    logo_position: TextAlignment = "left"
    reference_number: str = ""

    def __post_init__(self) -> None:
        if self.logo_position not in ALIGNMENTS:
            raise TemplateError(f"Position de logo inconnue : {self.logo_position}")

    @property
    def lines(self) -> List[str]:
        return [self.line1, self.line2, self.line3, self.line4]


@dataclass(slots=True)
class ReportFooter:
    slogan: str = ""
    address: str = ""
    contact: str = ""
    email: str = ""
    show_page_numbers: bool = True

    @property
    def lines(self) -> List[str]:
        return [self.slogan, self.address, self.contact, self.email]


@dataclass(slots=True)
class RowStyle:
    condition: RowCondition
    background_color: str | None = None
    text_color: str | None = None
    font_weight: Literal["normal", "bold"] = "normal"
    font_style: Literal["normal", "italic"] = "normal"
    underline: bool = False

    @property
    def bold(self) -> bool:
        return self.font_weight == "bold"

    @property
    def italic(self) -> bool:
        return self.font_style == "italic"


@dataclass(slots=True)
class TemplateStyles:
    title_font: str = "Times New Roman"
    title_size: float = 14
    body_font: str = "Times New Roman"
    body_size: float = 10
    header_color: str = "#1e40af"
    header_text_color: str = "#000000"
    alternate_row_color: str = "#f5f7fa"
    border_color: str = "#000000"
    accent_color: str = "#1e40af"
    row_styles: List[RowStyle] = field(default_factory=list)

    def row_style(self, condition: RowCondition) -> RowStyle | None:
        """Retourne la règle de style d'une catégorie de ligne, si définie."""

        for style in self.row_styles:
            if style.condition == condition:
                return style
        return None


@dataclass(slots=True)
class TableColumn:
    """Colonne du tableau ; ``key`` désigne le champ lu dans chaque ligne."""

    id: str
    header: str
    key: str
    type: ColumnType = "text"
    width: float | None = None
    align: TextAlignment | None = None
    format: str | None = None

    def __post_init__(self) -> None:
        if self.type not in COLUMN_TYPES:
            raise TemplateError(f"Type de colonne inconnu : {self.type}")
        if self.align is not None and self.align not in ALIGNMENTS:
            raise TemplateError(f"Alignement inconnu : {self.align}")
        if self.width is not None:
            self.width = _clamp(float(self.width), MIN_COLUMN_WIDTH, MAX_COLUMN_WIDTH)

    @property
    def is_numeric(self) -> bool:
        return self.type in NUMERIC_TYPES

    @property
    def resolved_align(self) -> TextAlignment:
        if self.align:
            return self.align
        return "right" if self.is_numeric else "left"


@dataclass(slots=True)
class WatermarkConfig:
    enabled: bool = True
    text: str = "ORIGINAL"
    opacity: float = 15
    rotation: float = 45
    font_size: float = 60
    color: str = "#cccccc"
    position: WatermarkPosition = "diagonal"
    type: WatermarkType = "text"
    image_url: str | None = None
    image_size: float = 40

    def __post_init__(self) -> None:
        if self.position not in WATERMARK_POSITIONS:
            raise TemplateError(f"Position de filigrane inconnue : {self.position}")
        if self.type not in WATERMARK_TYPES:
            raise TemplateError(f"Type de filigrane inconnu : {self.type}")
        self.opacity = _clamp(float(self.opacity), 5, 100)
        self.rotation = _clamp(float(self.rotation), -90, 90)
        self.image_size = _clamp(float(self.image_size), 1, 100)


@dataclass(slots=True)
class ReportTemplate:
    """Description déclarative et sérialisable d'un rapport."""

    id: str
    name: str
    type: ReportTemplateType = "custom"
    description: str = ""
    orientation: PageOrientation = "portrait"
    header: ReportHeader = field(default_factory=ReportHeader)
    footer: ReportFooter = field(default_factory=ReportFooter)
    styles: TemplateStyles = field(default_factory=TemplateStyles)
    columns: List[TableColumn] = field(default_factory=list)
    show_totals: bool = True
    show_subtotals: bool = False
    group_by: str | None = None
    sort_by: List[str] | None = None
    watermark: str | None = None
    watermark_config: WatermarkConfig | None = None
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self) -> None:
        if self.type not in TEMPLATE_TYPES:
            raise TemplateError(f"Type de rapport inconnu : {self.type}")
        if self.orientation not in ORIENTATIONS:
            raise TemplateError(f"Orientation inconnue : {self.orientation}")

    @property
    def is_landscape(self) -> bool:
        return self.orientation == "landscape"

    def touch(self) -> None:
        self.updated_at = datetime.now()

    def to_dict(self) -> Dict[str, Any]:
        """Sérialise le modèle au format JSON de l'application (camelCase)."""

        wm = self.watermark_config
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "description": self.description,
            "orientation": self.orientation,
            "header": {
                "line1": self.header.line1,
                "line2": self.header.line2,
                "line3": self.header.line3,
                "line4": self.header.line4,
                "showLogo": self.header.show_logo,
                "logoPosition": self.header.logo_position,
                "referenceNumber": self.header.reference_number,
            },
            "footer": {
                "slogan": self.footer.slogan,
                "address": self.footer.address,
                "contact": self.footer.contact,
                "email": self.footer.email,
                "showPageNumbers": self.footer.show_page_numbers,
            },
            "columns": [
                {
                    "id": col.id,
                    "header": col.header,
                    "key": col.key,
                    "width": col.width,
                    "type": col.type,
                    "align": col.align,
                    "format": col.format,
                }
                for col in self.columns
            ],
            "styles": {
                "titleFont": self.styles.title_font,
                "titleSize": self.styles.title_size,
                "bodyFont": self.styles.body_font,
                "bodySize": self.styles.body_size,
                "headerColor": self.styles.header_color,
                "headerTextColor": self.styles.header_text_color,
                "alternateRowColor": self.styles.alternate_row_color,
                "borderColor": self.styles.border_color,
                "accentColor": self.styles.accent_color,
                "rowStyles": [
                    {
                        "condition": style.condition,
                        "backgroundColor": style.background_color,
                        "textColor": style.text_color,
                        "fontWeight": style.font_weight,
                        "fontStyle": style.font_style,
                        "underline": style.underline,
                    }
                    for style in self.styles.row_styles
                ],
            },
            "showTotals": self.show_totals,
            "showSubtotals": self.show_subtotals,
            "groupBy": self.group_by,
            "sortBy": list(self.sort_by) if self.sort_by is not None else None,
            "watermark": self.watermark,
            "watermarkConfig": None
            if wm is None
            else {
                "enabled": wm.enabled,
                "text": wm.text,
                "opacity": wm.opacity,
                "rotation": wm.rotation,
                "fontSize": wm.font_size,
                "color": wm.color,
                "position": wm.position,
                "type": wm.type,
                "imageUrl": wm.image_url,
                "imageSize": wm.image_size,
            },
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }


def clone_template(template: ReportTemplate) -> ReportTemplate:
    """Copie profonde d'un modèle avec un nouvel identifiant.

    En-tête, pied de page, colonnes, styles de lignes et filigrane ne sont
    jamais partagés entre l'original et la copie.
    """

    cloned = copy.deepcopy(template)
    now = datetime.now()
    cloned.id = f"{template.id}_{int(now.timestamp() * 1000)}"
    cloned.created_at = now
    cloned.updated_at = now
    return cloned


def move_column(template: ReportTemplate, from_index: int, to_index: int) -> None:
    """Déplace une colonne (équivalent d'un glisser-déposer dans l'éditeur)."""

    count = len(template.columns)
    if not 0 <= from_index < count or not 0 <= to_index < count:
        raise IndexError(f"Index de colonne hors limites ({from_index} -> {to_index}, {count} colonnes)")
    column = template.columns.pop(from_index)
    template.columns.insert(to_index, column)
    template.touch()


# ----------------------------------------------------------------------
# Désérialisation
# ----------------------------------------------------------------------
def _as_text(value: Any) -> str:
    return "" if value is None else str(value)


def _as_mapping(raw: Any, name: str) -> Mapping[str, Any]:
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        raise TemplateError(f"'{name}' doit être un objet")
    return raw


def _as_float(value: Any, name: str, *, optional: bool = False) -> float | None:
    if value is None and optional:
        return None
    if isinstance(value, bool):
        raise TemplateError(f"'{name}' doit être un nombre")
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise TemplateError(f"'{name}' doit être un nombre : {value!r}") from exc


def _parse_datetime(raw: Any) -> datetime:
    if isinstance(raw, datetime):
        return raw
    if isinstance(raw, str) and raw:
        try:
            return datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError as exc:
            raise TemplateError(f"Horodatage invalide : {raw}") from exc
    return datetime.now()


def _parse_column(raw: Any) -> TableColumn:
    data = _as_mapping(raw, "columns[]")
    if "key" not in data:
        raise TemplateError("Chaque colonne doit définir une clé 'key'")
    key = _as_text(data["key"])
    return TableColumn(
        id=_as_text(data.get("id") or key),
        header=_as_text(data.get("header", key)),
        key=key,
        type=data.get("type") or "text",
        width=_as_float(data.get("width"), "width", optional=True),
        align=data.get("align") or None,
        format=data.get("format"),
    )


def _parse_row_style(raw: Any) -> RowStyle:
    data = _as_mapping(raw, "rowStyles[]")
    condition = data.get("condition")
    if condition not in ROW_CONDITIONS:
        raise TemplateError(f"Condition de style inconnue : {condition}")
    return RowStyle(
        condition=condition,
        background_color=data.get("backgroundColor"),
        text_color=data.get("textColor"),
        font_weight=data.get("fontWeight") or "normal",
        font_style=data.get("fontStyle") or "normal",
        underline=bool(data.get("underline", False)),
    )


def _parse_watermark(raw: Any) -> WatermarkConfig | None:
    if raw is None:
        return None
    data = _as_mapping(raw, "watermarkConfig")
    defaults = WatermarkConfig()
    return WatermarkConfig(
        enabled=bool(data.get("enabled", defaults.enabled)),
        text=_as_text(data.get("text", defaults.text)),
        opacity=_as_float(data.get("opacity", defaults.opacity), "opacity"),
        rotation=_as_float(data.get("rotation", defaults.rotation), "rotation"),
        font_size=_as_float(data.get("fontSize", defaults.font_size), "fontSize"),
        color=_as_text(data.get("color", defaults.color)),
        position=data.get("position", defaults.position),
        type=data.get("type", defaults.type),
        image_url=data.get("imageUrl"),
        image_size=_as_float(data.get("imageSize", defaults.image_size), "imageSize"),
    )


def _parse_columns(raw: Any) -> List[TableColumn]:
    if raw is None:
        return []
    if isinstance(raw, (str, bytes)) or not isinstance(raw, Sequence):
        raise TemplateError("'columns' doit être une liste")
    return [_parse_column(item) for item in raw]


def template_from_dict(raw: Any) -> ReportTemplate:
    """Construit un :class:`ReportTemplate` à partir du JSON de l'application."""

    data = _as_mapping(raw, "template")
    header = _as_mapping(data.get("header"), "header")
    footer = _as_mapping(data.get("footer"), "footer")
    styles = _as_mapping(data.get("styles"), "styles")
    default_styles = TemplateStyles()
    sort_by = data.get("sortBy")

    return ReportTemplate(
        id=_as_text(data.get("id") or "custom"),
        name=_as_text(data.get("name", "")),
        type=data.get("type") or "custom",
        description=_as_text(data.get("description", "")),
        orientation=data.get("orientation") or "portrait",
        header=ReportHeader(
            line1=_as_text(header.get("line1")),
            line2=_as_text(header.get("line2")),
            line3=_as_text(header.get("line3")),
            line4=_as_text(header.get("line4")),
            show_logo=bool(header.get("showLogo", True)),
            logo_position=header.get("logoPosition") or "left",
            reference_number=_as_text(header.get("referenceNumber")),
        ),
        footer=ReportFooter(
            slogan=_as_text(footer.get("slogan")),
            address=_as_text(footer.get("address")),
            contact=_as_text(footer.get("contact")),
            email=_as_text(footer.get("email")),
            show_page_numbers=bool(footer.get("showPageNumbers", True)),
        ),
        styles=TemplateStyles(
            title_font=_as_text(styles.get("titleFont", default_styles.title_font)),
            title_size=_as_float(styles.get("titleSize", default_styles.title_size), "titleSize"),
            body_font=_as_text(styles.get("bodyFont", default_styles.body_font)),
            body_size=_as_float(styles.get("bodySize", default_styles.body_size), "bodySize"),
            header_color=_as_text(styles.get("headerColor", default_styles.header_color)),
            header_text_color=_as_text(
                styles.get("headerTextColor", default_styles.header_text_color)
            ),
            alternate_row_color=_as_text(
                styles.get("alternateRowColor", default_styles.alternate_row_color)
            ),
            border_color=_as_text(styles.get("borderColor", default_styles.border_color)),
            accent_color=_as_text(styles.get("accentColor", default_styles.accent_color)),
            row_styles=[_parse_row_style(item) for item in styles.get("rowStyles") or []],
        ),
        columns=_parse_columns(data.get("columns")),
        show_totals=bool(data.get("showTotals", True)),
        show_subtotals=bool(data.get("showSubtotals", False)),
        group_by=data.get("groupBy"),
        sort_by=[_as_text(item) for item in sort_by] if sort_by is not None else None,
        watermark=data.get("watermark"),
        watermark_config=_parse_watermark(data.get("watermarkConfig")),
        created_at=_parse_datetime(data.get("createdAt")),
        updated_at=_parse_datetime(data.get("updatedAt")),
    )
