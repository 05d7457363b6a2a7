"""
docpipe - Job Contract

Request and outcome types shared by every operation, the error
classification that turns exceptions into typed failure outcomes, and the
``run_job`` dispatcher. No exception raised inside an operation crosses
this boundary.
"""

import dataclasses
import functools
import logging
import mimetypes
import re
import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, TypeVar

import pikepdf

from docpipe.utils.exceptions import (
    DocPipeError,
    EncryptedDocumentError,
    InvalidFileTypeError,
    InvalidOptionsError,
    InvalidPageRangeError,
    NoValidPagesError,
    ProcessingCancelledError,
)
from docpipe.utils.i18n import _
from docpipe.utils.progress import ProgressCallback, ProgressCoordinator, Stage

logger = logging.getLogger(__name__)

PDF_MIME_TYPE = "application/pdf"

OptionsT = TypeVar("OptionsT")


class ErrorCode(Enum):
    """Failure classification of a job outcome."""

    INVALID_OPTIONS = "INVALID_OPTIONS"
    FILE_TYPE_INVALID = "FILE_TYPE_INVALID"
    INVALID_PAGE_RANGE = "INVALID_PAGE_RANGE"
    NO_VALID_PAGES = "NO_VALID_PAGES"
    PROCESSING_CANCELLED = "PROCESSING_CANCELLED"
    PROCESSING_FAILED = "PROCESSING_FAILED"
    PDF_ENCRYPTED = "PDF_ENCRYPTED"


class Operation(Enum):
    SPLIT = "split"
    BACKGROUND_COLOR = "background-color"
    TEXT_COLOR = "text-color"
    REMOVE_ANNOTATIONS = "remove-annotations"
    FORM_FIELDS = "form-fields"
    IMAGES_TO_PDF = "images-to-pdf"
    OCR = "ocr"


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass
class InputFile:
    """An input document or image held in memory."""

    name: str
    data: bytes
    mime_type: str = ""

    @classmethod
    def from_path(cls, path: str | Path) -> "InputFile":
        path = Path(path)
        mime_type, _encoding = mimetypes.guess_type(path.name)
        return cls(name=path.name, data=path.read_bytes(), mime_type=mime_type or "")

    @property
    def extension(self) -> str:
        return Path(self.name).suffix.lower()

    @property
    def is_pdf(self) -> bool:
        return "pdf" in self.mime_type.lower() or self.extension == ".pdf"


@dataclass
class OutputFile:
    """A produced file: name, content and MIME type."""

    name: str
    data: bytes
    mime_type: str = PDF_MIME_TYPE

    def write_to(self, directory: str | Path) -> Path:
        target = Path(directory) / self.name
        target.write_bytes(self.data)
        return target


@dataclass
class JobRequest:
    """Everything an operation needs for one run.

    Attributes:
        files: Input files, in order
        options: The operation's options dataclass, or a mapping of its fields
        progress_callback: Receives (percentage, message) on every change
        cancel_event: Set it from any thread to request cancellation
    """

    files: list[InputFile]
    options: Any = None
    progress_callback: ProgressCallback | None = None
    cancel_event: threading.Event = field(default_factory=threading.Event)

    def coordinator(self, stages: list[Stage]) -> ProgressCoordinator:
        return ProgressCoordinator(stages, self.progress_callback, self.cancel_event)


@dataclass
class JobOutcome:
    """Typed result of a job: outputs on success, an error code on failure."""

    success: bool
    outputs: list[OutputFile] = field(default_factory=list)
    message: str = ""
    details: str | None = None
    error_code: ErrorCode | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def output(self) -> OutputFile | None:
        return self.outputs[0] if self.outputs else None


# ---------------------------------------------------------------------------
# Error classification
# ---------------------------------------------------------------------------


def _classify_error(e: Exception) -> ErrorCode:
    """Classify an exception into an ErrorCode."""
    if isinstance(e, ProcessingCancelledError):
        return ErrorCode.PROCESSING_CANCELLED
    if isinstance(e, NoValidPagesError):
        return ErrorCode.NO_VALID_PAGES
    if isinstance(e, InvalidPageRangeError):
        return ErrorCode.INVALID_PAGE_RANGE
    if isinstance(e, InvalidFileTypeError):
        return ErrorCode.FILE_TYPE_INVALID
    if isinstance(e, InvalidOptionsError):
        return ErrorCode.INVALID_OPTIONS
    if isinstance(e, (EncryptedDocumentError, pikepdf.PasswordError)):
        return ErrorCode.PDF_ENCRYPTED
    return ErrorCode.PROCESSING_FAILED


def _friendly_error(e: Exception) -> str:
    """Map common exceptions to user-friendly messages."""
    if isinstance(e, DocPipeError):
        return e.message
    if isinstance(e, pikepdf.PasswordError):
        return _("This PDF is password-protected. Remove the password first.")
    if isinstance(e, pikepdf.PdfError):
        return _("The PDF file appears to be damaged or invalid.")
    if isinstance(e, FileNotFoundError):
        return _("Could not find the file. Was it moved or deleted?")
    return str(e) or type(e).__name__


def _fail(e: Exception, context: str | None = None) -> JobOutcome:
    """Create a failed JobOutcome from an exception.

    Args:
        e: The exception that ended the job.
        context: Message used for unexpected failures, e.g. "Failed to split PDF file."
    """
    code = _classify_error(e)
    if isinstance(e, DocPipeError):
        message, details = e.message, e.details
    elif code is ErrorCode.PROCESSING_FAILED and context:
        message, details = context, _friendly_error(e)
    else:
        message, details = _friendly_error(e), str(e) or None
    return JobOutcome(success=False, message=message, details=details, error_code=code)


def job_boundary(context: str) -> Callable[[Callable[..., JobOutcome]], Callable[..., JobOutcome]]:
    """Convert anything an operation raises into a failed JobOutcome.

    Args:
        context: Message reported for unexpected failures.
    """

    def decorator(func: Callable[..., JobOutcome]) -> Callable[..., JobOutcome]:
        @functools.wraps(func)
        def wrapper(request: JobRequest, *args: Any, **kwargs: Any) -> JobOutcome:
            try:
                return func(request, *args, **kwargs)
            except ProcessingCancelledError as e:
                logger.info("%s cancelled", func.__name__)
                return _fail(e)
            except DocPipeError as e:
                logger.warning("%s rejected: %s", func.__name__, e)
                return _fail(e)
            except Exception as e:
                logger.error("%s failed: %s", func.__name__, e, exc_info=True)
                return _fail(e, context)

        return wrapper

    return decorator


# ---------------------------------------------------------------------------
# Shared validation helpers
# ---------------------------------------------------------------------------


def coerce_options(options_cls: type[OptionsT], options: Any) -> OptionsT:
    """Accept an options dataclass instance, a mapping of its fields, or None."""
    if options is None:
        return options_cls()
    if isinstance(options, options_cls):
        return options
    if isinstance(options, Mapping):
        known = {f.name for f in dataclasses.fields(options_cls)}
        unknown = sorted(set(options) - known)
        if unknown:
            raise InvalidOptionsError(
                f"Unknown option(s): {', '.join(unknown)}.", option=unknown[0]
            )
        return options_cls(**options)
    raise InvalidOptionsError(
        f"Expected {options_cls.__name__} or a mapping, got {type(options).__name__}."
    )


def single_pdf(request: JobRequest) -> InputFile:
    """Return the only input file, which must be a PDF."""
    if len(request.files) != 1:
        raise InvalidOptionsError(
            _("Exactly 1 PDF file is required (received {count}).").format(
                count=len(request.files)
            ),
            option="files",
        )
    file = request.files[0]
    if not file.is_pdf:
        raise InvalidFileTypeError(file.name, "a PDF file", file.mime_type or None)
    return file


def output_name(original: str, suffix: str, extension: str = ".pdf") -> str:
    """``report.pdf`` + ``_form`` -> ``report_form.pdf``."""
    base = re.sub(r"\.pdf$", "", original, flags=re.IGNORECASE)
    return f"{base}{suffix}{extension}"


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


def run_job(operation: Operation | str, request: JobRequest) -> JobOutcome:
    """Run one operation and return its outcome. Never raises."""
    from docpipe.services import ocr_processor, pdf_operations, raster_operations

    handlers: dict[Operation, Callable[[JobRequest], JobOutcome]] = {
        Operation.SPLIT: pdf_operations.split_document,
        Operation.BACKGROUND_COLOR: pdf_operations.add_background_color,
        Operation.REMOVE_ANNOTATIONS: pdf_operations.remove_annotations,
        Operation.FORM_FIELDS: pdf_operations.add_form_fields,
        Operation.TEXT_COLOR: raster_operations.change_text_color,
        Operation.IMAGES_TO_PDF: raster_operations.images_to_pdf,
        Operation.OCR: ocr_processor.run_ocr,
    }

    try:
        operation = Operation(operation)
    except ValueError:
        return _fail(InvalidOptionsError(f"Unknown operation '{operation}'.", option="operation"))

    logger.info("Running %s on %d file(s)", operation.value, len(request.files))
    outcome = handlers[operation](request)
    if outcome.success:
        logger.info("%s produced %d output(s)", operation.value, len(outcome.outputs))
    return outcome
