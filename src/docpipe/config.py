"""
docpipe - Configuration Module

This module contains application constants and paths used across the package.
"""

import logging
import os
from typing import Final

# ============================================================================
# Application Constants
# ============================================================================

APP_NAME: Final[str] = "docpipe"
APP_VERSION: Final[str] = "1.0.0"
APP_DESCRIPTION: Final[str] = "Page-level PDF transformations: OCR, split, recolor, tint, forms"


# ============================================================================
# Configuration Directory
# ============================================================================

CONFIG_DIR: Final[str] = os.path.expanduser(
    os.environ.get("DOCPIPE_CONFIG_DIR", "~/.config/docpipe")
)
CONFIG_FILE_PATH: Final[str] = os.path.join(CONFIG_DIR, "settings.json")


# ============================================================================
# Logging Configuration
# ============================================================================

LOG_LEVEL: int = logging.INFO
LOG_FORMAT: Final[str] = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT: Final[str] = "%H:%M:%S"


def setup_logging(verbose: bool = False) -> None:
    """Configure the root logger for command-line use.

    Args:
        verbose: Log at DEBUG level instead of INFO.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else LOG_LEVEL,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
    )
