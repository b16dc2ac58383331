from bisect import bisect_right
from typing import List, Optional, Sequence, Tuple, TypeVar

T = TypeVar("T")


def default(val: Optional[T], default: T) -> T:
    return val if val is not None else default


def span_overlaps(spans: Sequence[Tuple[int, int]], starts: List[int], start: int, end: int) -> bool:
    """
    Check if the range `[start, end)` overlaps any of the sorted, non-overlapping `spans`.

    `starts` MUST be the list of the start indices of `spans`, so it can be bisected.
    """
    # The only candidates are the last span that starts before `end`, and those before it
    # that may still reach into the range. Since the spans do not overlap, the one right before
    # `end` is the only one we need to check.
    index = bisect_right(starts, end - 1) - 1
    if index < 0:
        return False
    span_start, span_end = spans[index]
    return span_start < end and start < span_end
