"""
docpipe - Page Range Resolver

Turns a page selection ("all", explicit 1-based page numbers, or
``PageRange`` lists) into an ordered, de-duplicated list of 0-based page
indices for a document with a known page count.
"""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum, auto
from typing import Union

from docpipe.utils.exceptions import (
    InvalidOptionsError,
    InvalidPageRangeError,
    NoValidPagesError,
)

logger = logging.getLogger(__name__)

ALL_PAGES = "all"


@dataclass(frozen=True)
class PageRange:
    """A 1-based inclusive page range."""

    start: int
    end: int

    @property
    def page_count(self) -> int:
        return self.end - self.start + 1

    def indices(self) -> list[int]:
        """Return the 0-based page indices covered by this range."""
        return list(range(self.start - 1, self.end))

    def __str__(self) -> str:
        if self.start == self.end:
            return str(self.start)
        return f"{self.start}-{self.end}"


PageSelection = Union[str, Sequence[int], Sequence[PageRange]]


class SelectionPolicy(Enum):
    """How out-of-range entries in an explicit page list are treated.

    FILTER suits additive operations (tinting, recoloring): dropping a page
    only narrows the effect. STRICT suits extractive operations (splitting),
    where silently dropping a page would lose caller intent.
    """

    FILTER = auto()
    STRICT = auto()


def validate_ranges(ranges: Sequence[PageRange], total_pages: int) -> None:
    """Validate ranges one by one, in the order given.

    Args:
        ranges: Ranges to check.
        total_pages: Page count of the document.

    Raises:
        InvalidPageRangeError: On the first range that violates a bound.
    """
    for position, page_range in enumerate(ranges, 1):
        start, end = page_range.start, page_range.end
        if start < 1:
            raise InvalidPageRangeError(
                "Start page must be at least 1.",
                position=position,
                bound="start",
                total_pages=total_pages,
            )
        if end < start:
            raise InvalidPageRangeError(
                f"End page ({end}) cannot be less than start page ({start}).",
                position=position,
                bound="order",
                total_pages=total_pages,
            )
        if end > total_pages:
            raise InvalidPageRangeError(
                f"End page ({end}) exceeds total pages ({total_pages}).",
                position=position,
                bound="end",
                total_pages=total_pages,
            )


def _dedupe(indices: Iterable[int]) -> list[int]:
    seen: set[int] = set()
    result: list[int] = []
    for idx in indices:
        if idx not in seen:
            seen.add(idx)
            result.append(idx)
    return result


def _resolve_numbers(
    numbers: Sequence[int], total_pages: int, policy: SelectionPolicy
) -> list[int]:
    indices: list[int] = []
    for position, number in enumerate(numbers, 1):
        if 1 <= number <= total_pages:
            indices.append(number - 1)
        elif policy is SelectionPolicy.STRICT:
            raise InvalidPageRangeError(
                f"Page {number} is outside 1-{total_pages}.",
                position=position,
                bound="page",
                total_pages=total_pages,
            )
        else:
            logger.debug("Ignoring page %d (document has %d pages)", number, total_pages)
    return indices


def resolve_pages(
    selection: PageSelection,
    total_pages: int,
    *,
    policy: SelectionPolicy = SelectionPolicy.FILTER,
    require_pages: bool = True,
) -> list[int]:
    """Resolve a page selection into 0-based page indices.

    Input order is preserved (never sorted); repeated pages are kept only
    at their first occurrence.

    Args:
        selection: "all", a sequence of 1-based page numbers, or a sequence
            of PageRange.
        total_pages: Page count of the document.
        policy: Treatment of out-of-range page numbers. Ranges are always
            validated strictly.
        require_pages: Raise NoValidPagesError if nothing is selected.

    Returns:
        Ordered list of 0-based indices, each in [0, total_pages).

    Raises:
        InvalidOptionsError: If the selection has an unsupported shape.
        InvalidPageRangeError: If a range (or, under STRICT, a number) is
            out of bounds.
        NoValidPagesError: If the result is empty and require_pages is set.
    """
    if isinstance(selection, str):
        if selection.strip().lower() != ALL_PAGES:
            raise InvalidOptionsError(
                f"Unknown page selection '{selection}'.", option="pages"
            )
        indices = list(range(total_pages))
    else:
        items = list(selection)
        if all(isinstance(item, PageRange) for item in items):
            validate_ranges(items, total_pages)
            indices = [idx for page_range in items for idx in page_range.indices()]
        elif all(isinstance(item, int) and not isinstance(item, bool) for item in items):
            indices = _resolve_numbers(items, total_pages, policy)
        else:
            raise InvalidOptionsError(
                "Page selection must be 'all', page numbers, or page ranges.",
                option="pages",
            )

    indices = _dedupe(indices)
    if require_pages and not indices:
        raise NoValidPagesError(total_pages)
    return indices
