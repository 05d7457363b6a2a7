"""
docpipe - Document Operations

Operations that work on the document structure through pikepdf: split,
background tint, annotation removal and form-field creation. Each takes a
JobRequest and returns a JobOutcome.
"""

import logging
from dataclasses import dataclass, field

import pikepdf

from docpipe.services.document import copy_pages, open_pdf, paint_background, save_pdf
from docpipe.services.forms import FormBuilder, FormField
from docpipe.services.jobs import (
    JobOutcome,
    JobRequest,
    OutputFile,
    coerce_options,
    job_boundary,
    output_name,
    single_pdf,
)
from docpipe.services.recolor import RGBColor, validate_color
from docpipe.utils.exceptions import InvalidOptionsError
from docpipe.utils.i18n import _
from docpipe.utils.page_ranges import PageRange, PageSelection, SelectionPolicy, resolve_pages
from docpipe.utils.progress import Stage
from docpipe.utils.split_naming import parse_page_ranges, ranges_every_n, split_filename

logger = logging.getLogger(__name__)

SPLIT_STAGES = [Stage("load", 15), Stage("extract", 80), Stage("save", 5)]
BACKGROUND_STAGES = [Stage("load", 30), Stage("tint", 60), Stage("save", 10)]
ANNOTATION_STAGES = [Stage("load", 30), Stage("strip", 60), Stage("save", 10)]
FORM_STAGES = [Stage("load", 30), Stage("fields", 60), Stage("save", 10)]

DEFAULT_BACKGROUND_COLOR: RGBColor = (255, 255, 230)

# Annotation subtypes removed by each selective option
ANNOTATION_GROUPS: dict[str, frozenset[str]] = {
    "comments": frozenset({"/Text", "/FreeText", "/Popup"}),
    "highlights": frozenset({"/Highlight", "/Underline", "/StrikeOut", "/Squiggly"}),
    "links": frozenset({"/Link"}),
}


# ---------------------------------------------------------------------------
# Options
# ---------------------------------------------------------------------------


@dataclass
class SplitOptions:
    """Split by explicit ranges or into chunks of ``every_n`` pages.

    ``ranges`` accepts PageRange items, ``(start, end)`` pairs, single page
    numbers, or a text such as ``"1-3, 5"``.
    """

    ranges: list[PageRange] | str = field(default_factory=list)
    every_n: int | None = None

    def __post_init__(self) -> None:
        if isinstance(self.ranges, str):
            self.ranges = parse_page_ranges(self.ranges)
        else:
            self.ranges = [self._to_range(item) for item in self.ranges]

        if self.ranges and self.every_n is not None:
            raise InvalidOptionsError(
                _("Specify either page ranges or pages per part, not both."), option="every_n"
            )
        if self.every_n is not None and self.every_n < 1:
            raise InvalidOptionsError(_("Pages per part must be at least 1."), option="every_n")
        if not self.ranges and self.every_n is None:
            raise InvalidOptionsError(
                _("At least one page range is required for splitting."), option="ranges"
            )

    @staticmethod
    def _to_range(item: PageRange | tuple[int, int] | int) -> PageRange:
        if isinstance(item, PageRange):
            return item
        if isinstance(item, int) and not isinstance(item, bool):
            return PageRange(item, item)
        if isinstance(item, (tuple, list)) and len(item) == 2:
            return PageRange(int(item[0]), int(item[1]))
        raise InvalidOptionsError(f"Invalid page range: {item!r}", option="ranges")


@dataclass
class BackgroundColorOptions:
    color: RGBColor = DEFAULT_BACKGROUND_COLOR
    pages: PageSelection = "all"
    opacity: float = 1.0

    def __post_init__(self) -> None:
        self.color = validate_color(self.color)
        if not 0.0 <= self.opacity <= 1.0:
            raise InvalidOptionsError(
                f"Opacity must be within 0-1, got {self.opacity}.", option="opacity"
            )


@dataclass
class RemoveAnnotationsOptions:
    remove_all: bool = True
    remove_comments: bool = False
    remove_highlights: bool = False
    remove_links: bool = False
    pages: PageSelection = "all"

    def subtypes(self) -> frozenset[str] | None:
        """Subtypes to remove, or None for every annotation."""
        if self.remove_all:
            return None
        selected = frozenset().union(
            *(
                ANNOTATION_GROUPS[group]
                for group, enabled in (
                    ("comments", self.remove_comments),
                    ("highlights", self.remove_highlights),
                    ("links", self.remove_links),
                )
                if enabled
            )
        )
        if not selected:
            raise InvalidOptionsError(
                _("Select at least one annotation type to remove."), option="remove_all"
            )
        return selected


@dataclass
class FormOptions:
    fields: list[FormField] = field(default_factory=list)

    def __post_init__(self) -> None:
        try:
            self.fields = [
                f if isinstance(f, FormField) else FormField(**f) for f in self.fields
            ]
        except TypeError as e:
            raise InvalidOptionsError(f"Invalid form field definition: {e}", option="fields") from e
        if not self.fields:
            raise InvalidOptionsError(
                _("At least one form field is required."), option="fields"
            )


# ---------------------------------------------------------------------------
# Split
# ---------------------------------------------------------------------------


@job_boundary(_("Failed to split PDF file."))
def split_document(request: JobRequest) -> JobOutcome:
    """Extract each page range into its own PDF.

    Encrypted documents are refused. Every range is validated before the
    first page is copied.
    """
    file = single_pdf(request)
    options = coerce_options(SplitOptions, request.options)
    progress = request.coordinator(SPLIT_STAGES)

    progress.advance("load", 0, _("Loading source PDF..."))
    progress.check_cancelled("load")

    with open_pdf(file.data, file.name, strict=True) as source:
        total_pages = len(source.pages)
        ranges = options.ranges or ranges_every_n(total_pages, options.every_n)
        selected = resolve_pages(ranges, total_pages, policy=SelectionPolicy.STRICT)
        progress.advance("load", 1, _("Source PDF has {0} pages.").format(total_pages))

        progress.set_items("extract", len(ranges))
        outputs: list[OutputFile] = []
        for i, page_range in enumerate(ranges):
            progress.check_cancelled("extract")
            progress.advance(
                "extract", i, _("Extracting pages {0}...").format(page_range)
            )
            with pikepdf.Pdf.new() as part:
                copy_pages(source, part, page_range.indices())
                data = save_pdf(part)
            name = split_filename(file.name, page_range, i + 1, len(ranges))
            outputs.append(OutputFile(name, data))
            logger.info("Wrote %s (%d pages)", name, page_range.page_count)
            progress.advance("extract", i + 1)

    progress.advance("save", 0, _("Finalizing..."))
    progress.finish(_("Complete!"))
    return JobOutcome(
        success=True,
        outputs=outputs,
        message=_("Split into {0} file(s).").format(len(outputs)),
        metadata={
            "range_count": len(ranges),
            "source_page_count": total_pages,
            "pages_extracted": len(selected),
            "output_files": [o.name for o in outputs],
        },
    )


# ---------------------------------------------------------------------------
# Background color
# ---------------------------------------------------------------------------


@job_boundary(_("Failed to add background color."))
def add_background_color(request: JobRequest) -> JobOutcome:
    """Paint a solid color under the content of the selected pages."""
    file = single_pdf(request)
    options = coerce_options(BackgroundColorOptions, request.options)
    progress = request.coordinator(BACKGROUND_STAGES)
    rgb = tuple(c / 255 for c in options.color)

    progress.advance("load", 0, _("Loading PDF..."))
    progress.check_cancelled("load")

    with open_pdf(file.data, file.name) as pdf:
        total_pages = len(pdf.pages)
        indices = resolve_pages(options.pages, total_pages, policy=SelectionPolicy.FILTER)
        progress.advance("load", 1)

        progress.set_items("tint", len(indices))
        for i, idx in enumerate(indices):
            progress.check_cancelled("tint")
            paint_background(pdf, pdf.pages[idx], rgb, options.opacity)
            progress.advance("tint", i + 1, _("Processing page {0}...").format(idx + 1))

        progress.check_cancelled("save")
        progress.advance("save", 0, _("Saving PDF..."))
        data = save_pdf(pdf)

    progress.finish(_("Complete!"))
    logger.info("Tinted %d of %d pages of %s", len(indices), total_pages, file.name)
    return JobOutcome(
        success=True,
        outputs=[OutputFile(output_name(file.name, "_background"), data)],
        message=_("Background color added to {0} page(s).").format(len(indices)),
        metadata={"page_count": total_pages, "pages_processed": len(indices)},
    )


# ---------------------------------------------------------------------------
# Annotations
# ---------------------------------------------------------------------------


def _strip_annotations(page: pikepdf.Page, subtypes: frozenset[str] | None) -> int:
    """Remove matching annotations from one page; return how many were removed."""
    annots = page.obj.get("/Annots")
    if annots is None:
        return 0

    if subtypes is None:
        removed = len(annots)
        del page.obj["/Annots"]
        return removed

    keep = [a for a in annots if str(a.get("/Subtype", "")) not in subtypes]
    removed = len(annots) - len(keep)
    if not keep:
        del page.obj["/Annots"]
    elif removed:
        page.obj["/Annots"] = pikepdf.Array(keep)
    return removed


@job_boundary(_("Failed to remove annotations."))
def remove_annotations(request: JobRequest) -> JobOutcome:
    """Remove all annotations, or only comments/highlights/links, from the selected pages."""
    file = single_pdf(request)
    options = coerce_options(RemoveAnnotationsOptions, request.options)
    subtypes = options.subtypes()
    progress = request.coordinator(ANNOTATION_STAGES)

    progress.advance("load", 0, _("Loading PDF..."))
    progress.check_cancelled("load")

    with open_pdf(file.data, file.name) as pdf:
        total_pages = len(pdf.pages)
        indices = resolve_pages(options.pages, total_pages, policy=SelectionPolicy.FILTER)
        progress.advance("load", 1, _("Removing annotations..."))

        progress.set_items("strip", len(indices))
        removed = 0
        for i, idx in enumerate(indices):
            progress.check_cancelled("strip")
            removed += _strip_annotations(pdf.pages[idx], subtypes)
            progress.advance("strip", i + 1, _("Processing page {0}...").format(idx + 1))

        progress.check_cancelled("save")
        progress.advance("save", 0, _("Saving PDF..."))
        data = save_pdf(pdf)

    progress.finish(_("Complete!"))
    logger.info("Removed %d annotations from %s", removed, file.name)
    return JobOutcome(
        success=True,
        outputs=[OutputFile(output_name(file.name, "_no_annotations"), data)],
        message=_("Removed {0} annotation(s).").format(removed),
        metadata={
            "page_count": total_pages,
            "pages_processed": len(indices),
            "annotations_removed": removed,
        },
    )


# ---------------------------------------------------------------------------
# Form fields
# ---------------------------------------------------------------------------


@job_boundary(_("Failed to create form."))
def add_form_fields(request: JobRequest) -> JobOutcome:
    """Add form fields to the document.

    Fields placed on pages the document does not have are skipped, and so
    is a field that cannot be created; both are logged.
    """
    file = single_pdf(request)
    options = coerce_options(FormOptions, request.options)
    progress = request.coordinator(FORM_STAGES)

    progress.advance("load", 0, _("Loading PDF..."))
    progress.check_cancelled("load")

    with open_pdf(file.data, file.name) as pdf:
        total_pages = len(pdf.pages)
        builder = FormBuilder(pdf)
        progress.advance("load", 1, _("Creating form fields..."))

        progress.set_items("fields", len(options.fields))
        created: list[str] = []
        skipped: list[str] = []
        for i, definition in enumerate(options.fields):
            progress.check_cancelled("fields")
            if not 1 <= definition.page_number <= total_pages:
                logger.warning(
                    "Skipping field '%s': page %d is outside 1-%d",
                    definition.name,
                    definition.page_number,
                    total_pages,
                )
                skipped.append(definition.name)
            else:
                try:
                    builder.add(definition, pdf.pages[definition.page_number - 1])
                    created.append(definition.name)
                except (ValueError, pikepdf.PdfError) as e:
                    logger.warning("Failed to create field %s: %s", definition.name, e)
                    skipped.append(definition.name)
            progress.advance("fields", i + 1, _("Creating field {0}...").format(i + 1))

        progress.check_cancelled("save")
        progress.advance("save", 0, _("Saving PDF..."))
        data = save_pdf(pdf)

    progress.finish(_("Complete!"))
    logger.info("Created %d form field(s) in %s", len(created), file.name)
    return JobOutcome(
        success=True,
        outputs=[OutputFile(output_name(file.name, "_form"), data)],
        message=_("Created {0} form field(s).").format(len(created)),
        metadata={"fields_created": len(created), "fields_skipped": skipped},
    )
