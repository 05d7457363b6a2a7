"""Tests for split part naming and range parsing."""

import pytest

from docpipe.utils.exceptions import InvalidOptionsError
from docpipe.utils.page_ranges import PageRange
from docpipe.utils.split_naming import (
    parse_page_numbers,
    parse_page_ranges,
    ranges_every_n,
    ranges_every_page,
    split_filename,
    strip_extension,
)


class TestSplitFilename:
    def test_single_part_single_page(self):
        assert split_filename("report.pdf", PageRange(2, 2), 1, 1) == "report_page_2.pdf"

    def test_single_part_range(self):
        assert split_filename("report.pdf", PageRange(1, 3), 1, 1) == "report_pages_1-3.pdf"

    def test_multi_part(self):
        assert (
            split_filename("report.pdf", PageRange(1, 3), 2, 3) == "report_part2_pages_1-3.pdf"
        )

    def test_multi_part_single_page(self):
        assert split_filename("report.pdf", PageRange(7, 7), 4, 5) == "report_part4_page_7.pdf"

    def test_only_last_extension_removed(self):
        assert split_filename("a.b.pdf", PageRange(1, 1), 1, 1) == "a.b_page_1.pdf"

    def test_deterministic(self):
        args = ("x.pdf", PageRange(3, 9), 2, 2)
        assert split_filename(*args) == split_filename(*args)


class TestStripExtension:
    def test_plain(self):
        assert strip_extension("scan.PDF") == "scan"

    def test_no_extension(self):
        assert strip_extension("README") == "README"

    def test_dotfile(self):
        assert strip_extension(".hidden") == ".hidden"


class TestRangeGenerators:
    def test_every_n_last_chunk_shorter(self):
        assert ranges_every_n(7, 3) == [PageRange(1, 3), PageRange(4, 6), PageRange(7, 7)]

    def test_every_n_covers_document_once(self):
        pages = [p for r in ranges_every_n(23, 5) for p in range(r.start, r.end + 1)]
        assert pages == list(range(1, 24))

    def test_every_page(self):
        assert ranges_every_page(3) == [PageRange(1, 1), PageRange(2, 2), PageRange(3, 3)]

    def test_n_larger_than_document(self):
        assert ranges_every_n(2, 10) == [PageRange(1, 2)]

    def test_n_below_one(self):
        with pytest.raises(InvalidOptionsError):
            ranges_every_n(5, 0)


class TestParsePageRanges:
    def test_mixed(self):
        assert parse_page_ranges("1-5, 7, 9-10") == [
            PageRange(1, 5),
            PageRange(7, 7),
            PageRange(9, 10),
        ]

    def test_order_preserved(self):
        assert parse_page_ranges("9,1-2") == [PageRange(9, 9), PageRange(1, 2)]

    def test_malformed_tokens_skipped(self):
        assert parse_page_ranges("abc, 3, 4-x, , 6 - 8") == [PageRange(3, 3), PageRange(6, 8)]

    def test_bounds_not_checked(self):
        assert parse_page_ranges("5-2") == [PageRange(5, 2)]

    def test_empty(self):
        assert parse_page_ranges("") == []


class TestParsePageNumbers:
    def test_expands_ranges(self):
        assert parse_page_numbers("1-3,7") == [1, 2, 3, 7]

    def test_keeps_input_order(self):
        assert parse_page_numbers("7,1-2") == [7, 1, 2]
