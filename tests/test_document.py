"""Tests for the pikepdf document helpers."""

import io

import pikepdf
import pytest
from PIL import Image

from conftest import make_encrypted_pdf_bytes, make_image_bytes, make_pdf_bytes
from docpipe.services.document import (
    copy_pages,
    draw_image_page,
    embed_image,
    open_pdf,
    page_dimensions,
    paint_background,
    save_pdf,
)
from docpipe.services.layout import PageGeometry
from docpipe.utils.exceptions import EncryptedDocumentError


class TestOpenSave:
    def test_round_trip_page_count(self):
        with open_pdf(make_pdf_bytes(4)) as pdf:
            data = save_pdf(pdf)
        with pikepdf.open(io.BytesIO(data)) as pdf:
            assert len(pdf.pages) == 4

    def test_password_protected(self):
        with pytest.raises(EncryptedDocumentError) as exc:
            open_pdf(make_encrypted_pdf_bytes(), "locked.pdf")
        assert exc.value.filename == "locked.pdf"

    def test_owner_only_encryption_refused_in_strict_mode(self):
        data = make_encrypted_pdf_bytes(user="")
        with open_pdf(data) as pdf:
            assert pdf.is_encrypted
        with pytest.raises(EncryptedDocumentError):
            open_pdf(data, strict=True)

    def test_garbage_raises_pdf_error(self):
        with pytest.raises(pikepdf.PdfError):
            open_pdf(b"this is not a pdf", strict=True)


class TestPages:
    def test_copy_pages_in_given_order(self):
        with open_pdf(make_pdf_bytes(5)) as source, pikepdf.Pdf.new() as target:
            assert copy_pages(source, target, [4, 0]) == 2
            assert len(target.pages) == 2
            assert b"Page 5" in target.pages[0].obj.Contents.read_bytes()

    def test_page_dimensions(self):
        with open_pdf(make_pdf_bytes(1, size=(300, 400))) as pdf:
            assert page_dimensions(pdf.pages[0]) == (0, 0, 300, 400)


class TestImages:
    def test_jpeg_passthrough(self):
        data = make_image_bytes(40, 20, fmt="JPEG")
        image = Image.open(io.BytesIO(data))
        with pikepdf.Pdf.new() as pdf:
            stream = embed_image(pdf, image, jpeg_data=data)
            assert stream.Filter == pikepdf.Name.DCTDecode
            assert stream.read_raw_bytes() == data
            assert int(stream.Width) == 40

    def test_grayscale(self):
        image = Image.new("L", (8, 6), 100)
        with pikepdf.Pdf.new() as pdf:
            stream = embed_image(pdf, image)
            assert stream.ColorSpace == pikepdf.Name.DeviceGray
            assert len(stream.read_bytes()) == 48

    def test_translucent_image_gets_soft_mask(self):
        image = Image.new("RGBA", (4, 4), (10, 20, 30, 100))
        with pikepdf.Pdf.new() as pdf:
            stream = embed_image(pdf, image)
            assert "/SMask" in stream
            assert stream.ColorSpace == pikepdf.Name.DeviceRGB

    def test_opaque_rgba_has_no_mask(self):
        image = Image.new("RGBA", (4, 4), (10, 20, 30, 255))
        with pikepdf.Pdf.new() as pdf:
            assert "/SMask" not in embed_image(pdf, image)

    def test_draw_image_page(self):
        geometry = PageGeometry(200, 100, 10, 20, 50.5, 30)
        with pikepdf.Pdf.new() as pdf:
            xobject = embed_image(pdf, Image.new("RGB", (5, 3)))
            page = draw_image_page(pdf, xobject, geometry)
            assert [float(v) for v in page.mediabox] == [0, 0, 200, 100]
            content = page.obj.Contents.read_bytes().decode()
            assert "50.5 0 0 30 10 20 cm" in content
            assert len(page.obj.Resources.XObject.keys()) == 1


class TestPaintBackground:
    def test_prepended_fill(self):
        with open_pdf(make_pdf_bytes(1)) as pdf:
            page = pdf.pages[0]
            paint_background(pdf, page, (1.0, 1.0, 0.5))
            streams = page.obj.Contents
            assert isinstance(streams, pikepdf.Array)
            first = streams[0].read_bytes().decode()
            assert "1 1 0.5 rg" in first
            assert "0 0 612 792 re f" in first
            assert b"Page 1" in streams[1].read_bytes()

    def test_opacity_uses_extgstate(self):
        with open_pdf(make_pdf_bytes(1)) as pdf:
            page = pdf.pages[0]
            paint_background(pdf, page, (0, 0, 0), opacity=0.25)
            gstates = page.obj.Resources.ExtGState
            (gs,) = [gstates[k] for k in gstates.keys()]
            assert float(gs.ca) == 0.25
