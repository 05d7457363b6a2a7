"""
docpipe - Raster Operations

Operations that go through pixels: text recoloring (render, recolor, place
back at the original page size) and image to PDF conversion.
"""

import io
import logging
from collections.abc import Callable
from dataclasses import dataclass

import pikepdf
from PIL import Image
from pillow_heif import register_heif_opener

from docpipe.constants import (
    DEFAULT_BRIGHTNESS_THRESHOLD,
    DEFAULT_JPEG_QUALITY,
    DEFAULT_PAGE_MARGIN_PT,
    DEFAULT_SVG_SCALE,
    DEFAULT_TEXT_COLOR_SCALE,
    MAX_CHANNEL_VALUE,
    MAX_SVG_SCALE,
)
from docpipe.services.document import draw_image_page, embed_image, save_pdf
from docpipe.services.jobs import (
    JobOutcome,
    JobRequest,
    OutputFile,
    coerce_options,
    job_boundary,
    output_name,
    single_pdf,
)
from docpipe.services.layout import (
    LayoutSpec,
    Orientation,
    PageSizePreset,
    compute_geometry,
    page_size_for,
)
from docpipe.services.rasterizer import PdfiumRasterizer
from docpipe.services.recolor import RecolorMode, RGBColor, recolor, validate_color
from docpipe.utils.exceptions import (
    InvalidFileTypeError,
    InvalidOptionsError,
    ProcessingFailedError,
)
from docpipe.utils.i18n import _
from docpipe.utils.page_ranges import PageSelection, SelectionPolicy, resolve_pages
from docpipe.utils.progress import Stage
from docpipe.utils.split_naming import strip_extension

logger = logging.getLogger(__name__)

# HEIC/HEIF decoding for Image.open
register_heif_opener()

RasterizerFactory = Callable[..., PdfiumRasterizer]

TEXT_COLOR_STAGES = [Stage("load", 15), Stage("recolor", 75), Stage("save", 10)]
IMAGE_STAGES = [Stage("setup", 10), Stage("images", 85), Stage("save", 5)]

SVG_MIME_TYPE = "image/svg+xml"

SUPPORTED_IMAGE_TYPES = frozenset(
    {
        "image/jpeg",
        "image/png",
        "image/webp",
        "image/bmp",
        "image/x-ms-bmp",
        "image/tiff",
        "image/gif",
        "image/heic",
        "image/heif",
        SVG_MIME_TYPE,
    }
)
SUPPORTED_IMAGE_EXTENSIONS = (
    ".jpg", ".jpeg", ".png", ".webp", ".bmp", ".tiff", ".tif", ".gif", ".heic", ".heif", ".svg",
)

# JPEG colour modes that can be embedded without re-encoding
_JPEG_PASSTHROUGH_MODES = ("RGB", "L")


# ---------------------------------------------------------------------------
# Options
# ---------------------------------------------------------------------------


@dataclass
class TextColorOptions:
    color: RGBColor = (0, 0, 0)
    pages: PageSelection = "all"
    mode: RecolorMode | str = RecolorMode.DARK
    threshold: float = DEFAULT_BRIGHTNESS_THRESHOLD
    scale: float = DEFAULT_TEXT_COLOR_SCALE

    def __post_init__(self) -> None:
        self.color = validate_color(self.color)
        try:
            self.mode = RecolorMode(self.mode)
        except ValueError:
            raise InvalidOptionsError(f"Unknown mode '{self.mode}'.", option="mode") from None
        if not 0 <= self.threshold <= MAX_CHANNEL_VALUE:
            raise InvalidOptionsError(
                f"Threshold must be within 0-{MAX_CHANNEL_VALUE}.", option="threshold"
            )
        if self.scale <= 0:
            raise InvalidOptionsError("Render scale must be positive.", option="scale")


@dataclass
class ImagesToPdfOptions:
    """Page setup for image conversion.

    Raster image pixels map 1:1 to points. SVG files are rendered at
    ``svg_scale`` pixels per point and keep their natural size on the page.
    """

    page_size: PageSizePreset | str | tuple[float, float] = PageSizePreset.A4
    orientation: Orientation | str = Orientation.AUTO
    margin: float = DEFAULT_PAGE_MARGIN_PT
    quality: int = DEFAULT_JPEG_QUALITY
    center: bool = True
    scale_to_fit: bool = True
    svg_scale: float = DEFAULT_SVG_SCALE

    def __post_init__(self) -> None:
        if isinstance(self.page_size, str):
            self.page_size = page_size_for(self.page_size)
        try:
            self.orientation = Orientation(self.orientation)
        except ValueError:
            raise InvalidOptionsError(
                f"Unknown orientation '{self.orientation}'.", option="orientation"
            ) from None
        if self.margin < 0:
            raise InvalidOptionsError("Margin must not be negative.", option="margin")
        if not 1 <= self.quality <= 100:
            raise InvalidOptionsError("Quality must be within 1-100.", option="quality")
        if not 1 <= self.svg_scale <= MAX_SVG_SCALE:
            raise InvalidOptionsError(
                f"SVG scale must be within 1-{MAX_SVG_SCALE:g}.", option="svg_scale"
            )

    def layout(self) -> LayoutSpec:
        return LayoutSpec(
            page_size=self.page_size,
            orientation=self.orientation,
            margin=self.margin,
            center=self.center,
            scale_to_fit=self.scale_to_fit,
        )


# ---------------------------------------------------------------------------
# Text color
# ---------------------------------------------------------------------------


@job_boundary(_("Failed to change text color."))
def change_text_color(
    request: JobRequest, rasterizer_factory: RasterizerFactory = PdfiumRasterizer
) -> JobOutcome:
    """Recolor text on the selected pages.

    Each page is rendered at ``scale``, recolored, and drawn back at its
    original size. The output holds the processed pages only.
    """
    file = single_pdf(request)
    options = coerce_options(TextColorOptions, request.options)
    progress = request.coordinator(TEXT_COLOR_STAGES)

    progress.advance("load", 0, _("Loading PDF..."))
    progress.check_cancelled("load")

    with rasterizer_factory(file.data, filename=file.name) as rasterizer, pikepdf.Pdf.new() as out:
        total_pages = rasterizer.page_count
        indices = resolve_pages(options.pages, total_pages, policy=SelectionPolicy.FILTER)
        progress.advance("load", 1, _("Changing text color..."))

        progress.set_items("recolor", len(indices))
        for i, idx in enumerate(indices):
            progress.check_cancelled("recolor")
            progress.advance(
                "recolor",
                i,
                _("Processing page {0} of {1}...").format(idx + 1, total_pages),
            )

            rendered = rasterizer.render_page(idx, options.scale)
            changed = recolor(rendered.pixels, options.mode, options.threshold, options.color)
            xobject = embed_image(out, Image.fromarray(rendered.pixels))
            geometry = compute_geometry(
                rendered.width_pts,
                rendered.height_pts,
                LayoutSpec(page_size=(rendered.width_pts, rendered.height_pts), margin=0),
            )
            draw_image_page(out, xobject, geometry)
            logger.debug("Page %d: %d pixels recolored", idx + 1, changed)
            del rendered

            progress.advance("recolor", i + 1)

        progress.check_cancelled("save")
        progress.advance("save", 0, _("Saving PDF..."))
        data = save_pdf(out)

    progress.finish(_("Complete!"))
    logger.info("Recolored %d page(s) of %s", len(indices), file.name)
    return JobOutcome(
        success=True,
        outputs=[OutputFile(output_name(file.name, "_textcolor"), data)],
        message=_("Text color changed on {0} page(s).").format(len(indices)),
        metadata={"page_count": len(indices), "source_page_count": total_pages},
    )


# ---------------------------------------------------------------------------
# Images to PDF
# ---------------------------------------------------------------------------


def is_supported_image(name: str, mime_type: str) -> bool:
    if mime_type.lower() in SUPPORTED_IMAGE_TYPES:
        return True
    return name.lower().endswith(SUPPORTED_IMAGE_EXTENSIONS)


def is_svg(name: str, mime_type: str) -> bool:
    return mime_type.lower() == SVG_MIME_TYPE or name.lower().endswith(".svg")


def _rasterize_svg(name: str, data: bytes, scale: float) -> Image.Image:
    """Render an SVG document to an RGBA image at *scale* pixels per point."""
    # cairosvg loads the cairo shared library on import
    import cairosvg

    try:
        png = cairosvg.svg2png(bytestring=data, scale=scale)
        image = Image.open(io.BytesIO(png))
        image.load()
    except (ValueError, SyntaxError, OSError) as e:
        raise ProcessingFailedError(str(e) or type(e).__name__, item=name) from e
    logger.debug("Rendered %s at scale %.1f: %dx%d px", name, scale, *image.size)
    return image


def _embed_svg(
    pdf: pikepdf.Pdf, name: str, data: bytes, scale: float
) -> tuple[pikepdf.Stream, float, float]:
    image = _rasterize_svg(name, data, scale)
    width, height = image.size
    return embed_image(pdf, image), width / scale, height / scale


def _embed_file_image(pdf: pikepdf.Pdf, name: str, data: bytes, quality: int) -> tuple[pikepdf.Stream, int, int]:
    """Decode one image file and embed it. Returns (xobject, width, height)."""
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (OSError, Image.DecompressionBombError) as e:
        raise ProcessingFailedError(str(e), item=name) from e

    width, height = image.size
    if image.format == "JPEG":
        if image.mode in _JPEG_PASSTHROUGH_MODES:
            return embed_image(pdf, image, jpeg_data=data), width, height
        # CMYK and other JPEG modes are re-encoded as RGB
        rgb = image.convert("RGB")
        buf = io.BytesIO()
        rgb.save(buf, format="JPEG", quality=quality)
        return embed_image(pdf, rgb, jpeg_data=buf.getvalue()), width, height

    return embed_image(pdf, image), width, height


def _images_output_name(names: list[str]) -> str:
    if len(names) == 1:
        return f"{strip_extension(names[0])}.pdf"
    return f"images_{len(names)}_pages.pdf"


@job_boundary(_("Failed to convert images to PDF."))
def images_to_pdf(request: JobRequest) -> JobOutcome:
    """Convert images to a PDF, one page per image, in input order.

    Any image that cannot be decoded aborts the job.
    """
    if not request.files:
        raise InvalidOptionsError(_("At least 1 image file is required."), option="files")
    for file in request.files:
        if not is_supported_image(file.name, file.mime_type):
            raise InvalidFileTypeError(
                file.name,
                "JPG, PNG, WebP, BMP, TIFF, GIF, HEIC or SVG",
                file.mime_type or None,
            )
    options = coerce_options(ImagesToPdfOptions, request.options)
    layout = options.layout()

    progress = request.coordinator(IMAGE_STAGES)
    progress.set_items("images", len(request.files))
    progress.advance("setup", 0, _("Creating PDF document..."))
    progress.check_cancelled("setup")

    with pikepdf.Pdf.new() as pdf:
        progress.advance("setup", 1)
        for i, file in enumerate(request.files):
            progress.check_cancelled("images")
            progress.advance(
                "images",
                i,
                _("Processing image {0} of {1}: {2}").format(i + 1, len(request.files), file.name),
            )
            if is_svg(file.name, file.mime_type):
                xobject, width, height = _embed_svg(pdf, file.name, file.data, options.svg_scale)
            else:
                xobject, width, height = _embed_file_image(
                    pdf, file.name, file.data, options.quality
                )
            geometry = compute_geometry(width, height, layout)
            draw_image_page(pdf, xobject, geometry)
            progress.advance("images", i + 1)

        progress.check_cancelled("save")
        progress.advance("save", 0, _("Saving PDF..."))
        data = save_pdf(pdf)

    progress.finish(_("Complete!"))
    count = len(request.files)
    logger.info("Converted %d image(s) to PDF", count)
    return JobOutcome(
        success=True,
        outputs=[OutputFile(_images_output_name([f.name for f in request.files]), data)],
        message=_("Converted {0} image(s).").format(count),
        metadata={"page_count": count, "image_count": count},
    )
