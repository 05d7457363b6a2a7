"""
Page Rasterizer built on pypdfium2.

Renders single PDF pages into RGBA numpy buffers at a given scale
(1.0 = 72 DPI). One page is rendered at a time; callers consume the
buffer before asking for the next page.
"""

import logging
from dataclasses import dataclass

import numpy as np
import pypdfium2 as pdfium
import pypdfium2.raw as pdfium_c

from docpipe.utils.exceptions import EncryptedDocumentError

logger = logging.getLogger(__name__)


@dataclass
class RenderedPage:
    """A rendered page and the size of the page it came from.

    Attributes:
        pixels: uint8 RGBA array of shape (height, width, 4), writable
        width_pts: Page width in PDF points
        height_pts: Page height in PDF points
    """

    pixels: np.ndarray
    width_pts: float
    height_pts: float

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])


class PdfiumRasterizer:
    """Rasterizer over an in-memory PDF. Use as a context manager."""

    def __init__(self, data: bytes, filename: str = "document.pdf") -> None:
        self._data = data
        self._filename = filename
        self._doc: pdfium.PdfDocument | None = None

    def open(self) -> "PdfiumRasterizer":
        if self._doc is None:
            try:
                self._doc = pdfium.PdfDocument(self._data)
            except pdfium.PdfiumError as e:
                if e.err_code == pdfium_c.FPDF_ERR_PASSWORD:
                    raise EncryptedDocumentError(self._filename) from None
                raise
        return self

    def close(self) -> None:
        if self._doc is not None:
            self._doc.close()
            self._doc = None

    def __enter__(self) -> "PdfiumRasterizer":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def page_count(self) -> int:
        return len(self._require_doc())

    def _require_doc(self) -> pdfium.PdfDocument:
        if self._doc is None:
            raise RuntimeError("Rasterizer is not open")
        return self._doc

    def render_page(self, index: int, scale: float) -> RenderedPage:
        """Render the page at 0-based *index*.

        Args:
            index: 0-based page index.
            scale: Pixels per PDF point.

        Returns:
            RenderedPage with a writable RGBA buffer.
        """
        if scale <= 0:
            raise ValueError(f"Render scale must be positive, got {scale}")

        doc = self._require_doc()
        page = doc[index]
        try:
            width_pts, height_pts = page.get_size()
            bitmap = page.render(scale=scale)
            try:
                image = bitmap.to_pil().convert("RGBA")
            finally:
                bitmap.close()
        finally:
            page.close()

        pixels = np.array(image, dtype=np.uint8)
        logger.debug(
            "Rendered page %d at scale %.2f: %dx%d px", index + 1, scale, pixels.shape[1], pixels.shape[0]
        )
        return RenderedPage(pixels=pixels, width_pts=float(width_pts), height_pts=float(height_pts))
