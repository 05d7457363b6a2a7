"""
docpipe - OCR Processor

Runs text recognition over the selected pages of a PDF. One OCR session
serves the whole job and is torn down on every exit path. A page that
fails to render or recognize gets an inline error marker instead of
aborting the job.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum

from docpipe.constants import DEFAULT_OCR_SCALE
from docpipe.services.document import open_pdf, save_pdf
from docpipe.services.jobs import (
    JobOutcome,
    JobRequest,
    OutputFile,
    coerce_options,
    job_boundary,
    output_name,
    single_pdf,
)
from docpipe.services.ocr_session import (
    EngineFactory,
    PageText,
    RapidOCREngine,
    ocr_session,
    validate_languages,
)
from docpipe.services.raster_operations import RasterizerFactory
from docpipe.services.rasterizer import PdfiumRasterizer
from docpipe.utils.exceptions import InvalidOptionsError
from docpipe.utils.i18n import _
from docpipe.utils.page_ranges import SelectionPolicy, resolve_pages
from docpipe.utils.progress import Stage

logger = logging.getLogger(__name__)

OCR_STAGES = [Stage("load", 5), Stage("engine", 20), Stage("pages", 70), Stage("output", 5)]

PAGE_SEPARATOR = "\n\n"


class OutputFormat(Enum):
    TEXT = "text"
    SEARCHABLE_PDF = "searchable-pdf"


@dataclass
class OCROptions:
    """OCR settings.

    Attributes:
        languages: Language codes, first one preferred (see LANGUAGE_NAMES)
        scale: Render scale; higher reads small print better but is slower
        pages: 1-based page numbers, empty for all pages
        output_format: Plain text or the original PDF tagged as OCR processed
    """

    languages: list[str] = field(default_factory=lambda: ["eng"])
    scale: float = DEFAULT_OCR_SCALE
    pages: list[int] = field(default_factory=list)
    output_format: OutputFormat | str = OutputFormat.TEXT

    def __post_init__(self) -> None:
        if isinstance(self.languages, str):
            self.languages = [code for code in self.languages.replace("+", ",").split(",") if code]
        self.languages = validate_languages(self.languages)
        if self.scale <= 0:
            raise InvalidOptionsError("Render scale must be positive.", option="scale")
        try:
            self.output_format = OutputFormat(self.output_format)
        except ValueError:
            raise InvalidOptionsError(
                f"Unknown output format '{self.output_format}'.", option="output_format"
            ) from None


def join_page_texts(results: Sequence[PageText]) -> str:
    """``--- Page N ---`` blocks separated by blank lines."""
    return PAGE_SEPARATOR.join(str(result) for result in results)


def _searchable_pdf(data: bytes, filename: str, languages: Sequence[str]) -> bytes:
    """Tag the original document as OCR processed."""
    with open_pdf(data, filename) as pdf:
        with pdf.open_metadata(set_pikepdf_as_editor=False) as meta:
            meta["dc:title"] = f"{filename} (OCR)"
            meta["dc:description"] = "OCR processed document"
            meta["pdf:Keywords"] = ", ".join(["OCR", "searchable", *languages])
        pdf.docinfo["/Title"] = f"{filename} (OCR)"
        pdf.docinfo["/Subject"] = "OCR processed document"
        pdf.docinfo["/Keywords"] = ", ".join(["OCR", "searchable", *languages])
        return save_pdf(pdf)


@job_boundary(_("Failed to perform OCR on PDF."))
def run_ocr(
    request: JobRequest,
    engine_factory: EngineFactory = RapidOCREngine,
    rasterizer_factory: RasterizerFactory = PdfiumRasterizer,
) -> JobOutcome:
    """Recognize text on the selected pages of one PDF."""
    file = single_pdf(request)
    options = coerce_options(OCROptions, request.options)
    progress = request.coordinator(OCR_STAGES)

    progress.advance("load", 0, _("Loading PDF document..."))
    progress.check_cancelled("load")

    # The document is checked before the engine loads its models
    with rasterizer_factory(file.data, filename=file.name) as rasterizer:
        total_pages = rasterizer.page_count
        selection = options.pages or "all"
        indices = resolve_pages(selection, total_pages, policy=SelectionPolicy.FILTER)
        progress.advance("load", 1, _("Initializing OCR engine..."))
        progress.check_cancelled("engine")

        with ocr_session(options.languages, engine_factory) as session:
            progress.advance(
                "engine", 1, _("Processing {0} page(s)...").format(len(indices))
            )

            progress.set_items("pages", len(indices))
            results: list[PageText] = []
            for i, idx in enumerate(indices):
                progress.check_cancelled("pages")
                progress.advance(
                    "pages",
                    i,
                    _("OCR processing page {0} of {1}...").format(idx + 1, total_pages),
                )
                results.append(
                    session.recognize_page(
                        idx + 1,
                        lambda idx=idx: rasterizer.render_page(idx, options.scale).pixels,
                    )
                )
                progress.advance("pages", i + 1)

    progress.check_cancelled("output")
    progress.advance("output", 0, _("Generating output..."))

    if options.output_format is OutputFormat.TEXT:
        output = OutputFile(
            output_name(file.name, "_ocr", ".txt"),
            join_page_texts(results).encode("utf-8"),
            mime_type="text/plain",
        )
    else:
        output = OutputFile(
            output_name(file.name, "_searchable"),
            _searchable_pdf(file.data, file.name, options.languages),
        )

    failed = [r.page_number for r in results if r.failed]
    if failed:
        logger.warning("OCR failed on %d page(s): %s", len(failed), failed)

    progress.finish(_("Complete!"))
    return JobOutcome(
        success=True,
        outputs=[output],
        message=_("OCR completed for {0} page(s).").format(len(results)),
        metadata={
            "page_count": len(results),
            "languages": list(options.languages),
            "output_format": options.output_format.value,
            "failed_pages": failed,
        },
    )
