"""
docpipe - Numeric Constants

Simple numeric constants with ZERO internal imports to avoid circular dependencies.
For application-level constants (strings, paths), use config.py.
"""

from typing import Final

# ============================================================================
# Recoloring
# ============================================================================

DEFAULT_BRIGHTNESS_THRESHOLD: Final[int] = 128
MAX_CHANNEL_VALUE: Final[int] = 255

# ============================================================================
# Rendering Scales (1.0 = 72 DPI)
# ============================================================================

DEFAULT_TEXT_COLOR_SCALE: Final[float] = 3.0
DEFAULT_OCR_SCALE: Final[float] = 2.0
DEFAULT_SVG_SCALE: Final[float] = 2.0
MAX_SVG_SCALE: Final[float] = 4.0

# ============================================================================
# Page Layout (PDF points, 72 per inch)
# ============================================================================

DEFAULT_PAGE_MARGIN_PT: Final[float] = 36.0

# ============================================================================
# Image Encoding
# ============================================================================

DEFAULT_JPEG_QUALITY: Final[int] = 92

# ============================================================================
# Progress
# ============================================================================

PROGRESS_MIN: Final[float] = 0.0
PROGRESS_MAX: Final[float] = 100.0
