"""
docpipe - Form Field Builder

Creates AcroForm fields (text, checkbox, dropdown, radio group) with their
widget annotations directly in a pikepdf document.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum

import pikepdf
from pikepdf import Array, Dictionary, Name, String

from docpipe.utils.exceptions import InvalidOptionsError

logger = logging.getLogger(__name__)

# Field flags (PDF 32000-1, 12.7.3.1 and 12.7.4)
FF_REQUIRED = 1 << 1
FF_MULTILINE = 1 << 12
FF_NO_TOGGLE_TO_OFF = 1 << 14
FF_RADIO = 1 << 15
FF_COMBO = 1 << 17

# Annotation flag: print
ANNOT_PRINT = 4

RADIO_SPACING_PT = 5.0
DEFAULT_APPEARANCE = "/Helv 0 Tf 0 g"

_BEZIER_K = 0.5523


class FieldType(Enum):
    TEXT = "text"
    CHECKBOX = "checkbox"
    DROPDOWN = "dropdown"
    RADIO = "radio"


@dataclass
class FormField:
    """Definition of one form field.

    Attributes:
        type: Field kind
        name: Fully qualified field name, unique within the document
        page_number: 1-based page the widget goes on
        x, y, width, height: Widget rectangle in PDF points
        options: Choices for dropdown and radio fields
        default_value: Initial text, choice, or checked state
        required: Mark the field as required
        multiline: Multi-line text field
    """

    type: FieldType | str
    name: str
    page_number: int
    x: float
    y: float
    width: float
    height: float
    options: list[str] = field(default_factory=list)
    default_value: str | bool | None = None
    required: bool = False
    multiline: bool = False

    def __post_init__(self) -> None:
        try:
            self.type = FieldType(self.type)
        except ValueError:
            raise InvalidOptionsError(
                f"Unknown field type '{self.type}'.", option="fields"
            ) from None
        if not str(self.name).strip():
            raise InvalidOptionsError("Every form field needs a name.", option="fields")
        if self.width <= 0 or self.height <= 0:
            raise InvalidOptionsError(
                f"Field '{self.name}' must have a positive width and height.", option="fields"
            )
        self.options = [str(o) for o in self.options]


def _is_checked(value: str | bool | None) -> bool:
    if isinstance(value, str):
        return value.strip().lower() not in ("", "false", "0", "off", "no")
    return bool(value)


def _export_name(option: str, taken: set[str]) -> str:
    """A PDF-name-safe, unique appearance state for a radio option."""
    base = re.sub(r"[^A-Za-z0-9_.-]", "_", option) or "Option"
    if base == "Off":
        base = "Off_"
    name, n = base, 1
    while name in taken:
        n += 1
        name = f"{base}_{n}"
    taken.add(name)
    return name


def _circle(cx: float, cy: float, r: float) -> str:
    k = r * _BEZIER_K
    return (
        f"{cx + r:.2f} {cy:.2f} m "
        f"{cx + r:.2f} {cy + k:.2f} {cx + k:.2f} {cy + r:.2f} {cx:.2f} {cy + r:.2f} c "
        f"{cx - k:.2f} {cy + r:.2f} {cx - r:.2f} {cy + k:.2f} {cx - r:.2f} {cy:.2f} c "
        f"{cx - r:.2f} {cy - k:.2f} {cx - k:.2f} {cy - r:.2f} {cx:.2f} {cy - r:.2f} c "
        f"{cx + k:.2f} {cy - r:.2f} {cx + r:.2f} {cy - k:.2f} {cx + r:.2f} {cy:.2f} c"
    )


class FormBuilder:
    """Adds fields to the document's AcroForm, creating it when missing."""

    def __init__(self, pdf: pikepdf.Pdf) -> None:
        self.pdf = pdf
        root = pdf.Root
        if "/AcroForm" not in root:
            root["/AcroForm"] = pdf.make_indirect(Dictionary(Fields=Array()))
        self.acroform = root["/AcroForm"]
        if "/Fields" not in self.acroform:
            self.acroform["/Fields"] = Array()

        self.acroform["/NeedAppearances"] = True
        if "/DA" not in self.acroform:
            self.acroform["/DA"] = String(DEFAULT_APPEARANCE)
        if "/DR" not in self.acroform:
            self.acroform["/DR"] = Dictionary()
        resources = self.acroform["/DR"]
        if "/Font" not in resources:
            resources["/Font"] = Dictionary()
        if "/Helv" not in resources["/Font"]:
            resources["/Font"]["/Helv"] = pdf.make_indirect(
                Dictionary(
                    Type=Name.Font,
                    Subtype=Name.Type1,
                    BaseFont=Name.Helvetica,
                    Encoding=Name.WinAnsiEncoding,
                )
            )

        self._names = {str(f.get("/T", "")) for f in self.acroform["/Fields"]}

    # ------------------------------------------------------------------
    # Appearance streams
    # ------------------------------------------------------------------

    def _appearance(self, width: float, height: float, content: str) -> pikepdf.Stream:
        stream = pikepdf.Stream(self.pdf, content.encode("ascii"))
        stream["/Type"] = Name.XObject
        stream["/Subtype"] = Name.Form
        stream["/BBox"] = Array([0, 0, width, height])
        return stream

    def _checkbox_states(self, width: float, height: float) -> tuple[pikepdf.Stream, pikepdf.Stream]:
        border = f"0 G 0.5 w 0.25 0.25 {width - 0.5:.2f} {height - 0.5:.2f} re S"
        pad = min(width, height) * 0.2
        cross = (
            f"1 w {pad:.2f} {pad:.2f} m {width - pad:.2f} {height - pad:.2f} l S "
            f"{pad:.2f} {height - pad:.2f} m {width - pad:.2f} {pad:.2f} l S"
        )
        on = self._appearance(width, height, f"q {border} {cross} Q")
        off = self._appearance(width, height, f"q {border} Q")
        return on, off

    def _radio_states(self, width: float, height: float) -> tuple[pikepdf.Stream, pikepdf.Stream]:
        cx, cy = width / 2, height / 2
        r = min(width, height) / 2 - 0.5
        ring = f"0 G 0.5 w {_circle(cx, cy, r)} S"
        dot = f"0 g {_circle(cx, cy, r * 0.5)} f"
        on = self._appearance(width, height, f"q {ring} {dot} Q")
        off = self._appearance(width, height, f"q {ring} Q")
        return on, off

    # ------------------------------------------------------------------
    # Field construction
    # ------------------------------------------------------------------

    def _widget(self, page: pikepdf.Page, x: float, y: float, width: float, height: float) -> Dictionary:
        return Dictionary(
            Type=Name.Annot,
            Subtype=Name.Widget,
            Rect=Array([x, y, x + width, y + height]),
            P=page.obj,
            F=ANNOT_PRINT,
        )

    def _attach(self, page: pikepdf.Page, annot: pikepdf.Object) -> None:
        if "/Annots" not in page.obj:
            page.obj["/Annots"] = Array()
        page.obj["/Annots"].append(annot)

    def add(self, field_def: FormField, page: pikepdf.Page) -> None:
        """Create *field_def* on *page*.

        Raises:
            ValueError: For a duplicate name or a default value that is not
                one of the field's options.
        """
        if field_def.name in self._names:
            raise ValueError(f"A field named '{field_def.name}' already exists")

        builders = {
            FieldType.TEXT: self._text_field,
            FieldType.CHECKBOX: self._checkbox_field,
            FieldType.DROPDOWN: self._dropdown_field,
            FieldType.RADIO: self._radio_field,
        }
        field_obj = builders[field_def.type](field_def, page)
        self.acroform["/Fields"].append(field_obj)
        self._names.add(field_def.name)
        logger.debug("Created %s field '%s'", field_def.type.value, field_def.name)

    def _flags(self, field_def: FormField, extra: int = 0) -> int:
        return extra | (FF_REQUIRED if field_def.required else 0)

    def _text_field(self, field_def: FormField, page: pikepdf.Page) -> pikepdf.Object:
        widget = self._widget(page, field_def.x, field_def.y, field_def.width, field_def.height)
        widget["/FT"] = Name.Tx
        widget["/T"] = String(field_def.name)
        widget["/DA"] = String(DEFAULT_APPEARANCE)
        widget["/Ff"] = self._flags(field_def, FF_MULTILINE if field_def.multiline else 0)
        if field_def.default_value:
            widget["/V"] = String(str(field_def.default_value))
        obj = self.pdf.make_indirect(widget)
        self._attach(page, obj)
        return obj

    def _checkbox_field(self, field_def: FormField, page: pikepdf.Page) -> pikepdf.Object:
        on, off = self._checkbox_states(field_def.width, field_def.height)
        state = Name.Yes if _is_checked(field_def.default_value) else Name.Off

        widget = self._widget(page, field_def.x, field_def.y, field_def.width, field_def.height)
        widget["/FT"] = Name.Btn
        widget["/T"] = String(field_def.name)
        widget["/Ff"] = self._flags(field_def)
        widget["/V"] = state
        widget["/AS"] = state
        widget["/AP"] = Dictionary(N=Dictionary(Yes=on, Off=off))
        obj = self.pdf.make_indirect(widget)
        self._attach(page, obj)
        return obj

    def _dropdown_field(self, field_def: FormField, page: pikepdf.Page) -> pikepdf.Object:
        widget = self._widget(page, field_def.x, field_def.y, field_def.width, field_def.height)
        widget["/FT"] = Name.Ch
        widget["/T"] = String(field_def.name)
        widget["/DA"] = String(DEFAULT_APPEARANCE)
        widget["/Ff"] = self._flags(field_def, FF_COMBO)
        widget["/Opt"] = Array([String(o) for o in field_def.options])
        if field_def.options and field_def.default_value:
            value = str(field_def.default_value)
            if value not in field_def.options:
                raise ValueError(f"Default value '{value}' is not one of the options")
            widget["/V"] = String(value)
        obj = self.pdf.make_indirect(widget)
        self._attach(page, obj)
        return obj

    def _radio_field(self, field_def: FormField, page: pikepdf.Page) -> pikepdf.Object:
        if not field_def.options:
            raise ValueError("A radio group needs at least one option")
        selected = str(field_def.default_value) if field_def.default_value else None
        if selected is not None and selected not in field_def.options:
            raise ValueError(f"Default value '{selected}' is not one of the options")

        parent = self.pdf.make_indirect(
            Dictionary(
                FT=Name.Btn,
                T=String(field_def.name),
                Ff=self._flags(field_def, FF_RADIO | FF_NO_TOGGLE_TO_OFF),
                Opt=Array([String(o) for o in field_def.options]),
                Kids=Array(),
            )
        )
        parent["/V"] = Name.Off

        taken: set[str] = set()
        for idx, option in enumerate(field_def.options):
            state = Name("/" + _export_name(option, taken))
            on, off = self._radio_states(field_def.width, field_def.height)
            y = field_def.y - idx * (field_def.height + RADIO_SPACING_PT)
            kid = self._widget(page, field_def.x, y, field_def.width, field_def.height)
            kid["/Parent"] = parent
            kid["/AP"] = Dictionary(N=Dictionary({str(state): on, "/Off": off}))
            if option == selected:
                kid["/AS"] = state
                parent["/V"] = state
            else:
                kid["/AS"] = Name.Off
            kid_obj = self.pdf.make_indirect(kid)
            parent["/Kids"].append(kid_obj)
            self._attach(page, kid_obj)
        return parent
