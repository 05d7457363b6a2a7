"""
docpipe - Internationalization Module

Binds the gettext domain for user-facing messages (job outcome messages
and CLI output). Without an installed catalog, ``_`` returns its input.
"""

import gettext
import os
import sys
from collections.abc import Callable

TEXT_DOMAIN = "docpipe"

LOCALE_DIRS = (
    os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "locale"),
    os.path.join(sys.prefix, "share", "locale"),
    "/usr/share/locale",
)


def _load_translations() -> gettext.NullTranslations:
    """Return the first catalog found in LOCALE_DIRS, or a pass-through one."""
    for locale_dir in LOCALE_DIRS:
        if not os.path.isdir(locale_dir):
            continue
        try:
            return gettext.translation(TEXT_DOMAIN, localedir=locale_dir)
        except OSError:
            continue
    return gettext.NullTranslations()


_: Callable[[str], str] = _load_translations().gettext
