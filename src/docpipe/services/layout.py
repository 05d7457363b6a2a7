"""
Page Layout Engine.

Computes the size of a new page and the rectangle where content (a raster
image or a rendered page) is drawn on it, from the content dimensions and
the target page configuration. All values are PDF points with the origin
at the bottom-left corner of the page.
"""

import logging
from dataclasses import dataclass
from enum import Enum

from reportlab.lib.pagesizes import A3, A4, A5, legal, letter

from docpipe.constants import DEFAULT_PAGE_MARGIN_PT
from docpipe.utils.exceptions import InvalidOptionsError

logger = logging.getLogger(__name__)

_SCALE_EPSILON = 1e-9


class PageSizePreset(Enum):
    """Named page sizes. FIT sizes the page to the content plus margins."""

    A4 = "A4"
    LETTER = "LETTER"
    LEGAL = "LEGAL"
    A3 = "A3"
    A5 = "A5"
    FIT = "FIT"


class Orientation(Enum):
    PORTRAIT = "portrait"
    LANDSCAPE = "landscape"
    AUTO = "auto"


PAGE_SIZES: dict[PageSizePreset, tuple[float, float]] = {
    PageSizePreset.A4: A4,
    PageSizePreset.LETTER: letter,
    PageSizePreset.LEGAL: legal,
    PageSizePreset.A3: A3,
    PageSizePreset.A5: A5,
}


@dataclass
class LayoutSpec:
    """Target page configuration.

    Attributes:
        page_size: Preset name/enum or an explicit (width, height) in points
        orientation: Page orientation policy
        margin: Margin on every side, in points
        center: Center the content instead of anchoring it at (margin, margin)
        scale_to_fit: Shrink (never enlarge) content to fit inside the margins
    """

    page_size: PageSizePreset | str | tuple[float, float] = PageSizePreset.A4
    orientation: Orientation | str = Orientation.AUTO
    margin: float = DEFAULT_PAGE_MARGIN_PT
    center: bool = True
    scale_to_fit: bool = True


@dataclass(frozen=True)
class PageGeometry:
    """Final page size and content placement rectangle."""

    page_width: float
    page_height: float
    x: float
    y: float
    width: float
    height: float

    @property
    def page_size(self) -> tuple[float, float]:
        return (self.page_width, self.page_height)


def page_size_for(name: PageSizePreset | str) -> PageSizePreset:
    """Look up a preset by enum or case-insensitive name."""
    if isinstance(name, PageSizePreset):
        return name
    try:
        return PageSizePreset(name.strip().upper())
    except ValueError:
        choices = ", ".join(p.value for p in PageSizePreset)
        raise InvalidOptionsError(
            f"Unknown page size '{name}'. Choose one of: {choices}.", option="page_size"
        ) from None


def _orientation_for(value: Orientation | str) -> Orientation:
    try:
        return Orientation(value)
    except ValueError:
        raise InvalidOptionsError(
            f"Unknown orientation '{value}'.", option="orientation"
        ) from None


def _base_page_size(
    content_width: float, content_height: float, setup: LayoutSpec
) -> tuple[float, float, PageSizePreset | None]:
    """Step 1: page size from the preset table or the explicit size."""
    if isinstance(setup.page_size, (tuple, list)):
        width, height = (float(v) for v in setup.page_size)
        if width <= 0 or height <= 0:
            raise InvalidOptionsError("Page dimensions must be positive.", option="page_size")
        return width, height, None

    preset = page_size_for(setup.page_size)
    if preset is PageSizePreset.FIT:
        return (
            content_width + setup.margin * 2,
            content_height + setup.margin * 2,
            preset,
        )
    width, height = PAGE_SIZES[preset]
    return float(width), float(height), preset


def _apply_orientation(
    width: float,
    height: float,
    content_width: float,
    content_height: float,
    orientation: Orientation,
    preset: PageSizePreset | None,
) -> tuple[float, float]:
    """Step 2: swap the page axes according to the orientation policy."""
    if orientation is Orientation.LANDSCAPE:
        if width < height:
            width, height = height, width
    elif orientation is Orientation.PORTRAIT:
        if width > height:
            width, height = height, width
    elif preset is not None:
        # AUTO only re-orients named presets
        content_is_landscape = content_width > content_height
        page_is_landscape = width > height
        if content_is_landscape != page_is_landscape:
            width, height = height, width
    return width, height


def compute_geometry(
    content_width: float, content_height: float, setup: LayoutSpec | None = None
) -> PageGeometry:
    """Compute the destination page size and the content placement rectangle.

    Args:
        content_width: Content width in points.
        content_height: Content height in points.
        setup: Target page configuration (defaults to A4, auto orientation,
            36pt margin, centered, scale-to-fit).

    Returns:
        PageGeometry. With scale-to-fit the rectangle always lies inside the
        page and inside the margins.

    Raises:
        InvalidOptionsError: For non-positive content, negative margins,
            unknown presets, or margins that leave no room for the content.
    """
    setup = setup or LayoutSpec()
    if content_width <= 0 or content_height <= 0:
        raise InvalidOptionsError(
            f"Content dimensions must be positive, got {content_width}x{content_height}."
        )
    if setup.margin < 0:
        raise InvalidOptionsError("Margin must not be negative.", option="margin")

    orientation = _orientation_for(setup.orientation)
    page_width, page_height, preset = _base_page_size(content_width, content_height, setup)
    if preset is not PageSizePreset.FIT:
        page_width, page_height = _apply_orientation(
            page_width, page_height, content_width, content_height, orientation, preset
        )

    # Step 3: placement
    available_width = page_width - setup.margin * 2
    available_height = page_height - setup.margin * 2

    width, height = float(content_width), float(content_height)
    if setup.scale_to_fit:
        if available_width <= 0 or available_height <= 0:
            raise InvalidOptionsError(
                f"A margin of {setup.margin}pt leaves no room on a "
                f"{page_width:.0f}x{page_height:.0f}pt page.",
                option="margin",
            )
        factor = min(available_width / content_width, available_height / content_height, 1.0)
        if factor > 1.0 - _SCALE_EPSILON:
            # absorb float noise from the margin arithmetic
            factor = 1.0
        width = content_width * factor
        height = content_height * factor

    if setup.center:
        x = (page_width - width) / 2
        y = (page_height - height) / 2
    else:
        x = y = setup.margin

    geometry = PageGeometry(page_width, page_height, x, y, width, height)
    logger.debug("Layout %sx%s -> %s", content_width, content_height, geometry)
    return geometry
