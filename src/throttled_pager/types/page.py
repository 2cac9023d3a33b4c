# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Page and progress types.

PageResult is what a PageFetcher returns for one network call. ProgressEvent
is what the pagination engine reports to the caller for every emitted item
and once more when the stream ends. Both are transient: the engine never
keeps them after handing them out.
"""

from collections.abc import Hashable, Sequence
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

T = TypeVar("T")

# Opaque continuation token. Offsets, page tokens, and URLs all qualify.
Cursor = Hashable


@dataclass(frozen=True)
class PageResult(Generic[T]):
    """
    One page of items plus continuation state.

    Attributes:
        items: Items in server order
        continuation: Cursor for the next page, or None when there is no
            next page
        is_last: Server says this is the final page. Authoritative: a page
            marked last ends the stream even if it carries a continuation.
        total: Optional server-reported total item count, used only as a
            progress hint
    """

    items: Sequence[T] = field(default_factory=tuple)
    continuation: Cursor | None = None
    is_last: bool = False
    total: int | None = None

    def __post_init__(self) -> None:
        # Freeze the item sequence so callers cannot mutate a delivered page
        if not isinstance(self.items, tuple):
            object.__setattr__(self, "items", tuple(self.items))

    @property
    def has_more(self) -> bool:
        """Whether another page should be requested after this one."""
        return not self.is_last and self.continuation is not None


@dataclass(frozen=True)
class ProgressEvent:
    """
    Progress report emitted per item and at stream end.

    Attributes:
        current: Items emitted so far (1-based running count)
        total: Expected total. A running estimate until the last page is seen.
        percentage: ``current / total`` as an integer in 0..100
        page: 1-based ordinal of the page the item came from
        estimated: True while ``total`` is an estimate
        final: True only for the event emitted after the last item
    """

    current: int
    total: int
    percentage: int
    page: int
    estimated: bool = False
    final: bool = False

    def as_dict(self) -> dict[str, Any]:
        return {
            "current": self.current,
            "total": self.total,
            "percentage": self.percentage,
            "page": self.page,
            "estimated": self.estimated,
            "final": self.final,
        }


def percentage_of(current: int, total: int) -> int:
    """Integer percentage clamped to 0..100; 0 when the total is unknown."""
    if total <= 0:
        return 0
    # Halves round up
    return max(0, min(100, int(current * 100 / total + 0.5)))


__all__ = ["Cursor", "PageResult", "ProgressEvent", "percentage_of"]
