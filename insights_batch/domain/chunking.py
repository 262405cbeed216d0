"""
Pure helpers for splitting work into fixed-size batches.  ZERO I/O.
"""

from __future__ import annotations

from typing import Sequence, TypeVar

from insights_kernel.exceptions import InvalidArgumentError

T = TypeVar("T")


def chunk(sequence: Sequence[T], size: int) -> list[list[T]]:
    """Split ``sequence`` into contiguous groups of at most ``size`` items.

    Every group but the last has exactly ``size`` items; concatenating the
    groups gives back ``sequence``.  An empty input gives no groups.

    Raises:
        InvalidArgumentError: If ``size`` is not a positive integer.
    """
    if isinstance(size, bool) or not isinstance(size, int) or size <= 0:
        raise InvalidArgumentError("size", size, "must be a positive integer")
    items = list(sequence)
    return [items[i:i + size] for i in range(0, len(items), size)]


def total_batch_count(item_count: int, batch_size: int) -> int:
    """ceil(item_count / batch_size) in integer arithmetic."""
    if batch_size <= 0:
        raise InvalidArgumentError("batch_size", batch_size, "must be greater than 0")
    return -(-max(item_count, 0) // batch_size)


def planned_batch_count(
    item_count: int, batch_size: int, max_batches: int | None = None,
) -> int:
    """Number of batches to run: the total, clamped to ``max_batches``."""
    total = total_batch_count(item_count, batch_size)
    if max_batches is None:
        return total
    return min(total, max_batches)
