"""
docpipe - Split Naming Scheme

Deterministic output names for split parts, range generators for the
"every N pages" policy, and a forgiving page-range text parser.
"""

from docpipe.utils.exceptions import InvalidOptionsError
from docpipe.utils.page_ranges import PageRange


def strip_extension(filename: str) -> str:
    """Return *filename* without its last extension."""
    last_dot = filename.rfind(".")
    if last_dot <= 0:
        return filename
    return filename[:last_dot]


def split_filename(
    original_name: str,
    page_range: PageRange,
    range_index: int,
    total_ranges: int,
    extension: str = ".pdf",
) -> str:
    """Build the output filename for one split part.

    Args:
        original_name: Name of the source file.
        page_range: Pages contained in this part.
        range_index: 1-based position of the range in the request.
        total_ranges: Number of parts produced by the request.
        extension: Extension appended to the result.

    Returns:
        e.g. ``report_page_2.pdf`` for a single part, or
        ``report_part2_pages_1-3.pdf`` when several parts are produced.
    """
    base = strip_extension(original_name)
    if total_ranges > 1:
        base = f"{base}_part{range_index}"

    if page_range.start == page_range.end:
        return f"{base}_page_{page_range.start}{extension}"
    return f"{base}_pages_{page_range.start}-{page_range.end}{extension}"


def ranges_every_n(total_pages: int, n: int) -> list[PageRange]:
    """Cover pages 1..total_pages with consecutive chunks of *n* pages.

    The last chunk may be shorter.
    """
    if n < 1:
        raise InvalidOptionsError("Pages per part must be at least 1.", option="every_n")

    return [
        PageRange(start, min(start + n - 1, total_pages))
        for start in range(1, total_pages + 1, n)
    ]


def ranges_every_page(total_pages: int) -> list[PageRange]:
    return ranges_every_n(total_pages, 1)


def parse_page_ranges(text: str) -> list[PageRange]:
    """Parse ``"1-5, 7, 9-10"`` into page ranges.

    Tokens are kept in input order. A token that does not parse as an
    integer or an integer pair is skipped; it does not abort the parse.
    Bounds are not checked here, see ``validate_ranges``.
    """
    ranges: list[PageRange] = []
    for part in text.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            if "-" in part:
                start_s, end_s = part.split("-", 1)
                ranges.append(PageRange(int(start_s.strip()), int(end_s.strip())))
            else:
                page = int(part)
                ranges.append(PageRange(page, page))
        except ValueError:
            continue
    return ranges


def parse_page_numbers(text: str) -> list[int]:
    """Expand a page selection into 1-based page numbers, in input order."""
    return [
        page
        for page_range in parse_page_ranges(text)
        for page in range(page_range.start, page_range.end + 1)
    ]
