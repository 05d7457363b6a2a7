"""
Pixel Recoloring Engine.

Rewrites pixels of an RGBA buffer whose brightness (mean of R, G and B)
falls on one side of a threshold. The pass is a single vectorized
classification: a pixel's neighbours never influence it, so hard text
edges can look jagged at low render scales. Render the page at a higher
scale before recoloring and place it back at the original size instead.
"""

import logging
from enum import Enum

import numpy as np

from docpipe.constants import DEFAULT_BRIGHTNESS_THRESHOLD, MAX_CHANNEL_VALUE
from docpipe.utils.exceptions import InvalidOptionsError

logger = logging.getLogger(__name__)

RGBColor = tuple[int, int, int]


class RecolorMode(Enum):
    """Which side of the brightness threshold gets rewritten."""

    DARK = "dark"  # dark text on a light background
    LIGHT = "light"  # light text on a dark background


def validate_color(color: RGBColor) -> RGBColor:
    """Check an RGB triple (0-255 per channel) and return it as ints."""
    if not isinstance(color, (tuple, list)) or len(color) != 3:
        raise InvalidOptionsError("Color must have exactly three components.", option="color")
    for component in color:
        if not 0 <= component <= MAX_CHANNEL_VALUE:
            raise InvalidOptionsError(
                f"Color components must be within 0-{MAX_CHANNEL_VALUE}, got {component}.",
                option="color",
            )
    return (int(color[0]), int(color[1]), int(color[2]))


def brightness(pixels: np.ndarray) -> np.ndarray:
    """Return the per-pixel mean of the R, G and B channels (0-255 scale)."""
    return pixels[..., :3].astype(np.float32).sum(axis=-1) / 3.0


def recolor(
    pixels: np.ndarray,
    mode: RecolorMode | str = RecolorMode.DARK,
    threshold: float = DEFAULT_BRIGHTNESS_THRESHOLD,
    color: RGBColor = (0, 0, 0),
) -> int:
    """Recolor an RGBA buffer in place.

    Args:
        pixels: uint8 array of shape (height, width, 4).
        mode: DARK rewrites pixels strictly darker than the threshold,
            LIGHT rewrites pixels strictly brighter.
        threshold: Brightness threshold in [0, 255].
        color: Replacement RGB color, 0-255 per channel.

    Returns:
        Number of pixels rewritten. Alpha is never touched.
    """
    if pixels.ndim != 3 or pixels.shape[2] != 4:
        raise ValueError(f"Expected an RGBA buffer of shape (h, w, 4), got {pixels.shape}")
    if pixels.dtype != np.uint8:
        raise ValueError(f"Expected a uint8 buffer, got {pixels.dtype}")

    try:
        mode = RecolorMode(mode)
    except ValueError:
        raise InvalidOptionsError(f"Unknown recolor mode '{mode}'.", option="mode") from None
    if not 0 <= threshold <= MAX_CHANNEL_VALUE:
        raise InvalidOptionsError(
            f"Threshold must be within 0-{MAX_CHANNEL_VALUE}, got {threshold}.",
            option="threshold",
        )
    target = validate_color(color)

    # mean(r, g, b) < t  <=>  r + g + b < 3t
    channel_sum = pixels[..., :3].sum(axis=-1, dtype=np.uint16)
    if mode is RecolorMode.DARK:
        mask = channel_sum < threshold * 3
    else:
        mask = channel_sum > threshold * 3

    changed = int(np.count_nonzero(mask))
    if changed:
        pixels[mask, :3] = target
    logger.debug(
        "Recolored %d of %d pixels (%s, threshold=%s)", changed, mask.size, mode.value, threshold
    )
    return changed


def recolor_buffer(
    buffer: bytearray | memoryview,
    width: int,
    height: int,
    mode: RecolorMode | str = RecolorMode.DARK,
    threshold: float = DEFAULT_BRIGHTNESS_THRESHOLD,
    color: RGBColor = (0, 0, 0),
) -> int:
    """Recolor a raw, writable, row-major RGBA byte buffer in place."""
    expected = width * height * 4
    if len(buffer) != expected:
        raise ValueError(
            f"Buffer holds {len(buffer)} bytes, expected {expected} for {width}x{height} RGBA"
        )

    view = np.frombuffer(buffer, dtype=np.uint8).reshape(height, width, 4)
    return recolor(view, mode, threshold, color)
