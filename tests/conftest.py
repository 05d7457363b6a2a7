"""Shared fixtures for docpipe tests."""

import io

import pikepdf
import pytest
from PIL import Image

from docpipe.services.jobs import InputFile


def make_pdf_bytes(num_pages=3, size=(612, 792), annots_per_page=None, text=True):
    """Build a minimal valid PDF in memory.

    Args:
        num_pages: Number of pages.
        size: MediaBox (width, height) in points.
        annots_per_page: Optional list of annotation subtypes added to every page.
        text: Draw "Page N" on each page so pages are distinguishable.
    """
    pdf = pikepdf.Pdf.new()
    font = pdf.make_indirect(
        pikepdf.Dictionary(
            Type=pikepdf.Name.Font, Subtype=pikepdf.Name.Type1, BaseFont=pikepdf.Name.Helvetica
        )
    )
    for n in range(1, num_pages + 1):
        content = f"BT /F1 24 Tf 72 700 Td (Page {n}) Tj ET".encode() if text else b""
        page = pikepdf.Page(
            pikepdf.Dictionary(
                Type=pikepdf.Name.Page,
                MediaBox=[0, 0, size[0], size[1]],
                Resources=pikepdf.Dictionary(Font=pikepdf.Dictionary(F1=font)),
                Contents=pdf.make_stream(content),
            )
        )
        pdf.pages.append(page)

    if annots_per_page:
        for page in pdf.pages:
            page.obj["/Annots"] = pikepdf.Array(
                [
                    pdf.make_indirect(
                        pikepdf.Dictionary(
                            Type=pikepdf.Name.Annot,
                            Subtype=pikepdf.Name(subtype),
                            Rect=[10, 10, 50, 50],
                        )
                    )
                    for subtype in annots_per_page
                ]
            )

    buf = io.BytesIO()
    pdf.save(buf)
    return buf.getvalue()


def make_encrypted_pdf_bytes(num_pages=2, user="secret", owner="owner"):
    pdf = pikepdf.open(io.BytesIO(make_pdf_bytes(num_pages)))
    buf = io.BytesIO()
    pdf.save(buf, encryption=pikepdf.Encryption(owner=owner, user=user))
    return buf.getvalue()


def make_image_bytes(width=200, height=100, mode="RGB", fmt="PNG", color=(200, 30, 30)):
    if mode == "L":
        color = color[0]
    elif mode == "RGBA" and len(color) == 3:
        color = (*color, 128)
    image = Image.new(mode, (width, height), color)
    buf = io.BytesIO()
    image.save(buf, format=fmt)
    return buf.getvalue()


def pdf_input(num_pages=3, name="report.pdf", **kwargs):
    return InputFile(name, make_pdf_bytes(num_pages, **kwargs), "application/pdf")


@pytest.fixture
def make_pdf():
    return make_pdf_bytes


@pytest.fixture
def make_image():
    return make_image_bytes


@pytest.fixture
def pdf_file():
    return pdf_input


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point the global settings singleton at a throwaway file."""
    from docpipe.utils import config_manager

    manager = config_manager.ConfigManager(config_path=str(tmp_path / "settings.json"))
    monkeypatch.setattr(config_manager, "_config_manager", manager)
    return manager
