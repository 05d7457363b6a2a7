"""
docpipe - Utils Package

Pipeline core utilities: page ranges, progress, naming, errors, settings.
"""

from docpipe.utils.exceptions import DocPipeError
from docpipe.utils.i18n import _
from docpipe.utils.page_ranges import PageRange, SelectionPolicy, resolve_pages
from docpipe.utils.progress import ProgressCoordinator, Stage

__all__ = [
    "_",
    "DocPipeError",
    "PageRange",
    "SelectionPolicy",
    "resolve_pages",
    "ProgressCoordinator",
    "Stage",
]
