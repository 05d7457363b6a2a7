"""
docpipe - Document Transformation Pipeline

Page-level PDF operations (OCR, split, background tint, text recoloring,
annotation removal, form fields, image conversion) on a shared core of
page-range resolution, weighted progress with cooperative cancellation,
page layout and pixel recoloring.
"""

__version__ = "1.0.0"
__license__ = "GPL-3.0"

from docpipe.services.jobs import (
    ErrorCode,
    InputFile,
    JobOutcome,
    JobRequest,
    Operation,
    OutputFile,
    run_job,
)

__all__ = [
    "ErrorCode",
    "InputFile",
    "JobOutcome",
    "JobRequest",
    "Operation",
    "OutputFile",
    "run_job",
    "__version__",
    "__license__",
]
