"""
Transitions: the scale restricted to a single time slice.

A ``Transition`` is a cursor over the temporal extent of a scale. It works
as a locator (time locked at its index, every other extent free), knows
whether it is the final slice, and can build the transition preceding it.
Index 0 is the initialization slice; hosts hand transitions ``1 .. n-1``
to ``compute`` in strictly increasing order.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from .errors import OutOfRangeError
from .scale import Locator, Scale


@dataclass(frozen=True, eq=False)
class Transition(Locator):
    """One temporal step of a run.

    Attributes:
        scale: The full scale of the run.
        index: 0-based index into the scale's temporal extent.
    """

    scale: Scale
    index: int

    def __post_init__(self) -> None:
        time = self.scale.time
        if time is None:
            raise OutOfRangeError("scale has no temporal extent")
        if not 0 <= self.index < time.multiplicity:
            raise OutOfRangeError(
                f"transition {self.index} outside temporal extent of {time.multiplicity} steps"
            )

    @property
    def is_last(self) -> bool:
        return self.index == self.scale.time_multiplicity - 1

    @property
    def is_first(self) -> bool:
        return self.index == 0

    @property
    def start(self) -> float:
        return self.scale.time.time_at(self.index)

    @property
    def end(self) -> float:
        return self.start + self.scale.time.step

    def previous(self) -> "Transition":
        """Return the transition for ``index - 1``.

        Raises:
            OutOfRangeError: on the initial transition.
        """
        if self.index == 0:
            raise OutOfRangeError("the initial transition has no predecessor")
        return Transition(self.scale, self.index - 1)

    def locked(self) -> Mapping[str, int]:
        return {self.scale.time.name: self.index}

    def __eq__(self, other: object) -> bool:
        return (
            isinstance(other, Transition)
            and other.scale is self.scale
            and other.index == self.index
        )

    def __hash__(self) -> int:
        return hash((id(self.scale), self.index))

    def __repr__(self) -> str:
        return f"Transition({self.index}/{self.scale.time_multiplicity})"
