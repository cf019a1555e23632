"""
Common value types shared by the core modules.

``UNDEFINED`` is the not-a-number sentinel stored in states that have no
value yet. ``ObservableKind`` is the tagged variant describing what kind
of observer a declared input or output carries; it is checked once when a
process unit is initialised.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Union

#: Value of a state entry that was never set. Propagates through arithmetic.
UNDEFINED = float("nan")


def is_undefined(value: float) -> bool:
    return isinstance(value, float) and math.isnan(value)


class ObservableKind(Enum):
    """Declared kind of an input or output variable."""

    QUANTITY = "quantity"
    COUNT = "count"
    PROPORTION = "proportion"
    CATEGORY = "category"
    PRESENCE = "presence"
    # subjects, processes and events: no observer attached
    DIRECT = "direct"

    @property
    def has_observer(self) -> bool:
        return self is not ObservableKind.DIRECT

    @property
    def is_numeric(self) -> bool:
        return self in (ObservableKind.QUANTITY, ObservableKind.COUNT, ObservableKind.PROPORTION)


@dataclass(frozen=True)
class Observable:
    """A named variable together with its declared kind."""

    name: str
    kind: ObservableKind = ObservableKind.QUANTITY

    @property
    def accepted_as_numeric(self) -> bool:
        """True unless the variable carries a non-numeric observer."""
        return not self.kind.has_observer or self.kind.is_numeric


#: What hosts may pass for each expected input or output.
ObservableSpec = Union[Observable, ObservableKind]


@dataclass(frozen=True)
class Point:
    """A 2-D position. ``x`` is always the horizontal axis."""

    x: float
    y: float
