"""Greedy "take the best remaining candidate, suppress what conflicts with it" selection."""

from collections.abc import Callable, Iterable, Sequence
from typing import TypeVar

C = TypeVar("C")
A = TypeVar("A")


def greedy_select(
    candidates: Iterable[C],
    conflicts: Callable[[C, Sequence[A]], bool],
    accept: Callable[[C, Sequence[A]], A] | None = None,
    limit: int | None = None,
) -> list[A]:
    """Greedy non-maximum suppression over candidates that arrive in priority order.

    Each candidate is checked against everything accepted so far. A candidate that
    conflicts with any accepted result is dropped, otherwise it is turned into a
    result by `accept` and appended. Since candidates are visited best first, this
    is equivalent to accepting the best candidate and then discarding everything
    that conflicts with it, repeated until no candidates remain.

    Candidates are pulled lazily, so a generator draining a priority queue stops
    being consumed as soon as `limit` results have been accepted.

    Args:
        candidates: candidates ordered from highest to lowest priority
        conflicts: predicate called with (candidate, accepted results); returns True
            if the candidate must be suppressed
        accept: builds the accepted result from a candidate and the results accepted
            before it. Defaults to accepting the candidate itself.
        limit: maximum number of results to accept, or None for no limit

    Returns:
        accepted results in acceptance order
    """
    accepted: list[A] = []
    if limit is not None and limit <= 0:
        return accepted

    for candidate in candidates:
        if conflicts(candidate, accepted):
            continue

        accepted.append(accept(candidate, accepted) if accept is not None else candidate)
        if limit is not None and len(accepted) >= limit:
            break

    return accepted
