"""
Document Model helpers built on pikepdf.

Loading (tolerant or strict), saving to bytes, page copying, raster image
embedding and drawing. Operations go through these helpers instead of
calling pikepdf directly for anything beyond dictionary edits.
"""

import io
import logging
from collections.abc import Iterable

import pikepdf
from pikepdf import Name
from PIL import Image

from docpipe.services.layout import PageGeometry
from docpipe.utils.exceptions import EncryptedDocumentError

logger = logging.getLogger(__name__)

# Colour modes a JPEG can keep when embedded without re-encoding
_PASSTHROUGH_JPEG_MODES = ("RGB", "L")


def open_pdf(data: bytes, filename: str = "document.pdf", *, strict: bool = False) -> pikepdf.Pdf:
    """Load a PDF from memory.

    Tolerant mode (the default) lets qpdf repair minor structural damage and
    opens documents that are encrypted with an owner password only. Strict
    mode disables recovery and refuses any encrypted document.

    Raises:
        EncryptedDocumentError: If the document needs a password, or is
            encrypted at all in strict mode.
        pikepdf.PdfError: If the data is not a usable PDF.
    """
    try:
        pdf = pikepdf.open(io.BytesIO(data), attempt_recovery=not strict)
    except pikepdf.PasswordError:
        raise EncryptedDocumentError(filename) from None

    if strict and pdf.is_encrypted:
        pdf.close()
        raise EncryptedDocumentError(filename)

    logger.debug("Opened %s (%d pages, strict=%s)", filename, len(pdf.pages), strict)
    return pdf


def save_pdf(pdf: pikepdf.Pdf) -> bytes:
    """Serialize a document with compressed streams and object streams."""
    buf = io.BytesIO()
    pdf.save(
        buf,
        compress_streams=True,
        object_stream_mode=pikepdf.ObjectStreamMode.generate,
    )
    return buf.getvalue()


def copy_pages(source: pikepdf.Pdf, target: pikepdf.Pdf, indices: Iterable[int]) -> int:
    """Append pages of *source* (0-based *indices*, in order) to *target*."""
    count = 0
    for idx in indices:
        target.pages.append(source.pages[idx])
        count += 1
    return count


def page_dimensions(page: pikepdf.Page) -> tuple[float, float, float, float]:
    """Return (x0, y0, width, height) of the page's media box."""
    x0, y0, x1, y1 = (float(v) for v in page.mediabox)
    return x0, y0, x1 - x0, y1 - y0


def _fmt(value: float) -> str:
    return f"{value:.4f}".rstrip("0").rstrip(".") or "0"


def _image_stream(pdf: pikepdf.Pdf, data: bytes, width: int, height: int, gray: bool) -> pikepdf.Stream:
    stream = pikepdf.Stream(pdf, data)
    stream["/Type"] = Name.XObject
    stream["/Subtype"] = Name.Image
    stream["/Width"] = width
    stream["/Height"] = height
    stream["/ColorSpace"] = Name.DeviceGray if gray else Name.DeviceRGB
    stream["/BitsPerComponent"] = 8
    return stream


def embed_image(
    pdf: pikepdf.Pdf,
    image: Image.Image,
    *,
    jpeg_data: bytes | None = None,
) -> pikepdf.Stream:
    """Create an image XObject in *pdf* from a PIL image.

    Args:
        pdf: Target document.
        image: Decoded image.
        jpeg_data: Original JPEG bytes. Embedded as-is (DCTDecode) when the
            colour mode allows it, avoiding a lossy re-encode.

    Returns:
        The image stream, ready to be registered as a page resource.
    """
    width, height = image.size

    if jpeg_data is not None and image.mode in _PASSTHROUGH_JPEG_MODES:
        stream = _image_stream(pdf, jpeg_data, width, height, gray=image.mode == "L")
        stream["/Filter"] = Name.DCTDecode
        return stream

    alpha: Image.Image | None = None
    if image.mode in ("RGBA", "LA", "PA") or (
        image.mode == "P" and "transparency" in image.info
    ):
        rgba = image.convert("RGBA")
        alpha = rgba.getchannel("A")
        image = rgba.convert("RGB")
    elif image.mode not in ("RGB", "L"):
        image = image.convert("RGB")

    # Left unfiltered here; save_pdf() flate-compresses the stream
    stream = _image_stream(pdf, image.tobytes(), width, height, gray=image.mode == "L")

    if alpha is not None and alpha.getextrema() != (255, 255):
        stream["/SMask"] = _image_stream(pdf, alpha.tobytes(), width, height, gray=True)

    return stream


def draw_image_page(
    pdf: pikepdf.Pdf, xobject: pikepdf.Stream, geometry: PageGeometry
) -> pikepdf.Page:
    """Append a page sized by *geometry* with *xobject* drawn in its placement rectangle."""
    page = pdf.add_blank_page(page_size=(geometry.page_width, geometry.page_height))
    name = page.add_resource(xobject, Name.XObject, prefix="Im")
    content = (
        f"q {_fmt(geometry.width)} 0 0 {_fmt(geometry.height)} "
        f"{_fmt(geometry.x)} {_fmt(geometry.y)} cm {name} Do Q"
    )
    page.obj["/Contents"] = pdf.make_stream(content.encode("ascii"))
    return page


def paint_background(
    pdf: pikepdf.Pdf,
    page: pikepdf.Page,
    color: tuple[float, float, float],
    opacity: float = 1.0,
) -> None:
    """Fill the page's media box with *color* underneath the existing content.

    Args:
        pdf: Document owning the page.
        page: Page to tint.
        color: RGB components in 0.0-1.0.
        opacity: Fill opacity in 0.0-1.0.
    """
    x0, y0, width, height = page_dimensions(page)
    ops = ["q"]
    if opacity < 1.0:
        gstate = pikepdf.Dictionary(Type=Name.ExtGState, ca=opacity, CA=opacity)
        gs_name = page.add_resource(gstate, Name.ExtGState, prefix="GS")
        ops.append(f"{gs_name} gs")
    r, g, b = color
    ops.append(f"{_fmt(r)} {_fmt(g)} {_fmt(b)} rg")
    ops.append(f"{_fmt(x0)} {_fmt(y0)} {_fmt(width)} {_fmt(height)} re f")
    ops.append("Q")
    page.contents_add(pdf.make_stream(" ".join(ops).encode("ascii")), prepend=True)
