"""Lowest-unique-value elimination rule."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Collection, Sequence


@dataclass(frozen=True, slots=True)
class RoundOutcome:
    """Survivors of one round, ordered by ascending submitted value.

    ``errored`` lists the competitors whose value is the sentinel because their
    client was in ``ERROR`` when the value was collected.
    """

    values: tuple[int, ...]
    survivors: tuple[int, ...]
    errored: tuple[int, ...] = ()

    @property
    def winner(self) -> int | None:
        """Lowest surviving competitor, unless that would credit an errored one.

        An errored competitor is only credited when nobody else submitted a
        real value.
        """

        errored = set(self.errored)
        for index in self.survivors:
            if index not in errored:
                return index
        real_submitted = len(errored) < len(self.values)
        if self.survivors and not real_submitted:
            return self.survivors[0]
        return None

    @property
    def has_winner(self) -> bool:
        return self.winner is not None


def compute_round_outcome(
    values: Sequence[int],
    *,
    errored: Collection[int] = (),
) -> RoundOutcome:
    """Eliminate every value submitted more than once; rank the rest by value.

    Survivors are pairwise distinct by construction, so the order needs no
    tie-break. Sentinels of errored competitors are eliminated by the same
    duplicate rule as any other value.
    """

    submitted = tuple(values)
    counts = Counter(submitted)
    unique = [(value, index) for index, value in enumerate(submitted) if counts[value] == 1]
    unique.sort()
    return RoundOutcome(
        values=submitted,
        survivors=tuple(index for _, index in unique),
        errored=tuple(sorted(index for index in errored if 0 <= index < len(submitted))),
    )


__all__ = ["RoundOutcome", "compute_round_outcome"]
