"""Tests for CLI argument parsing and command handlers."""

import argparse
import io
import json

import pikepdf
import pytest

from conftest import make_encrypted_pdf_bytes, make_image_bytes, make_pdf_bytes
from docpipe.cli import EXIT_FAILURE, EXIT_OK, _page_selection, build_parser, main, parse_color


class TestParseColor:
    def test_hex(self):
        assert parse_color("#ff8000") == (255, 128, 0)

    def test_triple(self):
        assert parse_color(" 1, 2 ,3 ") == (1, 2, 3)

    @pytest.mark.parametrize("text", ["#fff", "red", "1,2", "0,0,256", "#gg0000"])
    def test_invalid(self, text):
        with pytest.raises(argparse.ArgumentTypeError):
            parse_color(text)


class TestPageSelection:
    def test_default_all(self):
        assert _page_selection(None) == "all"

    def test_list(self):
        assert _page_selection("1-3,7") == [1, 2, 3, 7]


class TestBuildParser:
    def test_split_ranges(self):
        args = build_parser().parse_args(["split", "in.pdf", "--ranges", "1-3,4"])
        assert args.command == "split"
        assert args.ranges == "1-3,4"
        assert args.every is None

    def test_split_requires_policy(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["split", "in.pdf"])

    def test_split_policies_exclusive(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["split", "in.pdf", "--ranges", "1", "--every", "2"])

    def test_background_color(self):
        args = build_parser().parse_args(["background", "in.pdf", "--color", "#000010"])
        assert args.color == (0, 0, 16)
        assert args.opacity == 1.0

    def test_ocr_format(self):
        args = build_parser().parse_args(["ocr", "in.pdf", "--format", "searchable-pdf"])
        assert args.output_format == "searchable-pdf"

    def test_images_multiple_inputs(self):
        args = build_parser().parse_args(["images", "a.png", "b.jpg", "--no-center"])
        assert len(args.inputs) == 2
        assert args.no_center

    def test_images_svg_scale(self):
        args = build_parser().parse_args(["images", "logo.svg", "--svg-scale", "3"])
        assert args.svg_scale == 3.0

    def test_global_flags(self):
        args = build_parser().parse_args(["-v", "-f", "info", "x.pdf"])
        assert args.verbose and args.force


class TestMain:
    def test_no_command_prints_help(self, capsys):
        assert main([]) == EXIT_OK
        assert "usage" in capsys.readouterr().out

    def test_missing_input(self, tmp_path):
        assert main(["info", str(tmp_path / "nope.pdf")]) == EXIT_FAILURE

    def test_info(self, tmp_path, capsys):
        path = tmp_path / "doc.pdf"
        path.write_bytes(make_pdf_bytes(3))
        assert main(["info", str(path)]) == EXIT_OK
        assert "Pages:      3" in capsys.readouterr().out

    def test_info_encrypted(self, tmp_path, capsys):
        path = tmp_path / "locked.pdf"
        path.write_bytes(make_encrypted_pdf_bytes())
        assert main(["info", str(path)]) == EXIT_OK
        assert "password required" in capsys.readouterr().out

    def test_split_writes_parts(self, tmp_path):
        path = tmp_path / "doc.pdf"
        path.write_bytes(make_pdf_bytes(4))
        out = tmp_path / "parts"
        assert main(["split", str(path), "-o", str(out), "--every", "2"]) == EXIT_OK
        names = sorted(p.name for p in out.iterdir())
        assert names == ["doc_part1_pages_1-2.pdf", "doc_part2_pages_3-4.pdf"]

    def test_split_bad_range_fails(self, tmp_path, capsys):
        path = tmp_path / "doc.pdf"
        path.write_bytes(make_pdf_bytes(2))
        assert main(["split", str(path), "--ranges", "1-9"]) == EXIT_FAILURE
        assert "Range 1" in capsys.readouterr().err

    def test_existing_output_needs_force(self, tmp_path):
        path = tmp_path / "doc.pdf"
        path.write_bytes(make_pdf_bytes(1))
        (tmp_path / "doc_background.pdf").write_bytes(b"old")
        assert main(["background", str(path)]) == EXIT_FAILURE
        assert (tmp_path / "doc_background.pdf").read_bytes() == b"old"
        assert main(["-f", "background", str(path)]) == EXIT_OK
        assert (tmp_path / "doc_background.pdf").read_bytes() != b"old"

    def test_existing_later_part_blocks_every_write(self, tmp_path, capsys):
        path = tmp_path / "doc.pdf"
        path.write_bytes(make_pdf_bytes(4))
        out = tmp_path / "parts"
        out.mkdir()
        (out / "doc_part2_pages_3-4.pdf").write_bytes(b"old")
        assert main(["split", str(path), "-o", str(out), "--every", "2"]) == EXIT_FAILURE
        assert "already exists" in capsys.readouterr().err
        assert sorted(p.name for p in out.iterdir()) == ["doc_part2_pages_3-4.pdf"]
        assert (out / "doc_part2_pages_3-4.pdf").read_bytes() == b"old"

    def test_form_from_json(self, tmp_path):
        path = tmp_path / "doc.pdf"
        path.write_bytes(make_pdf_bytes(1))
        fields = tmp_path / "fields.json"
        fields.write_text(
            json.dumps(
                {"fields": [{"type": "text", "name": "city", "page_number": 1,
                             "x": 50, "y": 50, "width": 100, "height": 20}]}
            )
        )
        assert main(["form", str(path), "--fields", str(fields)]) == EXIT_OK
        with pikepdf.open(tmp_path / "doc_form.pdf") as pdf:
            assert str(pdf.Root.AcroForm.Fields[0].T) == "city"

    def test_images_use_configured_defaults(self, tmp_path, isolated_config):
        isolated_config.set("images.page_size", "FIT", save_immediately=False)
        isolated_config.set("images.margin", 0, save_immediately=False)
        image = tmp_path / "photo.png"
        image.write_bytes(make_image_bytes(120, 80))
        assert main(["images", str(image)]) == EXIT_OK
        with pikepdf.open(io.BytesIO((tmp_path / "photo.pdf").read_bytes())) as pdf:
            assert [float(v) for v in pdf.pages[0].mediabox] == [0, 0, 120, 80]

    def test_configured_output_directory(self, tmp_path, isolated_config):
        out = tmp_path / "configured"
        isolated_config.set("output.directory", str(out), save_immediately=False)
        path = tmp_path / "doc.pdf"
        path.write_bytes(make_pdf_bytes(1))
        assert main(["strip-annotations", str(path)]) == EXIT_OK
        assert (out / "doc_no_annotations.pdf").exists()
