"""
docpipe - Progress & Cancellation Module

Maps an ordered table of weighted stages to a single monotonic 0-100
progress value and exposes the cooperative cancellation checkpoint that
operations consult between units of work.
"""

import logging
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from docpipe.constants import PROGRESS_MAX, PROGRESS_MIN
from docpipe.utils.exceptions import ProcessingCancelledError

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float, str], None]


@dataclass(frozen=True)
class Stage:
    """One phase of a job.

    Attributes:
        name: Stage identifier, also usable instead of its index
        weight: Relative share of the total progress
        items: Number of items processed linearly within the stage
    """

    name: str
    weight: float
    items: int = 1


class ProgressCoordinator:
    """Weighted stage progress plus a cancellation flag for one job run.

    Weights are normalized by their sum, so a table does not have to add
    up to exactly 100. The reported value never decreases within a run.
    """

    def __init__(
        self,
        stages: Sequence[Stage],
        callback: ProgressCallback | None = None,
        cancel_event: threading.Event | None = None,
    ) -> None:
        if not stages:
            raise ValueError("At least one stage is required")
        if any(stage.weight < 0 for stage in stages):
            raise ValueError("Stage weights must not be negative")

        self._names = [stage.name for stage in stages]
        self._weights = [float(stage.weight) for stage in stages]
        self._items = [stage.items for stage in stages]
        self._total_weight = sum(self._weights) or 1.0
        self._callback = callback
        self.cancel_event = cancel_event or threading.Event()
        self._value = PROGRESS_MIN
        self._message = ""

    @property
    def percentage(self) -> float:
        return self._value

    @property
    def message(self) -> str:
        return self._message

    def reset(self) -> None:
        """Return to 0% at the start of a run."""
        self._value = PROGRESS_MIN
        self._message = ""

    def _index(self, stage: int | str) -> int:
        if isinstance(stage, str):
            try:
                return self._names.index(stage)
            except ValueError:
                raise KeyError(f"Unknown stage: {stage}") from None
        if not 0 <= stage < len(self._names):
            raise IndexError(f"Stage index out of range: {stage}")
        return stage

    def set_items(self, stage: int | str, count: int) -> None:
        """Declare how many items an iterative stage will process."""
        self._items[self._index(stage)] = count

    def compute(self, stage: int | str, items_done: float) -> float:
        """Compute the global percentage for a point inside a stage.

        Args:
            stage: Stage index or name.
            items_done: Items completed within that stage.

        Returns:
            previous stages' weight + stage weight * fraction, scaled to
            [0, 100]. Monotonicity is not applied here.
        """
        idx = self._index(stage)
        item_count = self._items[idx]
        if item_count <= 0:
            fraction = 1.0
        else:
            fraction = min(max(items_done / item_count, 0.0), 1.0)

        previous = sum(self._weights[:idx])
        raw = (previous + self._weights[idx] * fraction) / self._total_weight * PROGRESS_MAX
        return min(max(raw, PROGRESS_MIN), PROGRESS_MAX)

    def advance(self, stage: int | str, items_done: float = 0, message: str = "") -> float:
        """Report progress within a stage.

        Args:
            stage: Stage index or name.
            items_done: Items completed within that stage.
            message: Optional status text passed to the callback.

        Returns:
            Current global percentage, never lower than any earlier value.
        """
        value = max(self._value, self.compute(stage, items_done))
        changed = value != self._value or (message and message != self._message)
        self._value = value
        if message:
            self._message = message
        if changed and self._callback is not None:
            self._callback(self._value, self._message)
        return self._value

    def finish(self, message: str = "") -> float:
        """Report completion of the whole run."""
        return self.advance(len(self._names) - 1, self._items[-1] or 1, message)

    def is_cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def check_cancelled(self, stage: str | None = None) -> None:
        """Cancellation checkpoint, called between units of work.

        Raises:
            ProcessingCancelledError: If cancellation was requested.
        """
        if self.cancel_event.is_set():
            logger.info("Cancellation requested, stopping before %s", stage or "next unit")
            raise ProcessingCancelledError(stage)

    def __str__(self) -> str:
        return f"Progress: {self._value:.0f}% | {self._message}"
