"""
Scale subsystem: the discretized domain and its linear addressing.

A ``Scale`` is an ordered list of extents (a temporal sequence, a spatial
grid, a set of shapes, or any other finite dimension). Every point in the
domain has one linear offset in ``[0, cardinality)``; offsets decompose
into one coordinate per extent using strides computed once when the scale
is built. The temporal extent, if any, is always the first (slowest
varying) dimension so that one time slice is a contiguous run of offsets.

Locators lock some extents to fixed coordinates and iterate the others.
``Scale.offsets_under`` turns a locator into an ``OffsetIndex``, a lazy and
restartable sequence of offsets that can also be materialised as a numpy
array for vectorized state access. Passing ``None`` selects the
initialization configuration (time locked at its first slice).
"""

from __future__ import annotations

import itertools
from typing import Dict, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from .errors import OutOfRangeError
from .types import Point


class Extent:
    """A named, finite dimension of the domain."""

    kind = "generic"

    def __init__(self, name: str, multiplicity: int):
        if multiplicity < 1:
            raise ValueError(f"extent {name!r} must have at least one element")
        self.name = name
        self.multiplicity = int(multiplicity)

    def check(self, coordinate: int) -> int:
        if not 0 <= coordinate < self.multiplicity:
            raise OutOfRangeError(
                f"coordinate {coordinate} outside extent {self.name!r} of size {self.multiplicity}"
            )
        return int(coordinate)

    def __len__(self) -> int:
        return self.multiplicity

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r}, {self.multiplicity})"


class TemporalExtent(Extent):
    """A regular sequence of time steps.

    ``start`` and ``step`` only label the slices; addressing uses the
    0-based step index.
    """

    kind = "time"

    def __init__(self, steps: int, start: float = 0.0, step: float = 1.0, name: str = "time"):
        super().__init__(name, steps)
        self.start = float(start)
        self.step = float(step)

    def time_at(self, index: int) -> float:
        """Return the start time of slice ``index``."""
        return self.start + self.check(index) * self.step


class SpatialExtent(Extent):
    """Base for spatial extents: maps a spatial offset to a position."""

    kind = "space"

    def centroid(self, offset: int) -> Point:
        raise NotImplementedError


class GridExtent(SpatialExtent):
    """A regular grid of ``rows`` x ``cols`` cells.

    Cells are numbered row by row, so ``x`` (the column, horizontal axis)
    varies fastest.
    """

    def __init__(
        self,
        rows: int,
        cols: int,
        cell_size: float = 1.0,
        origin: Tuple[float, float] = (0.0, 0.0),
        name: str = "space",
    ):
        super().__init__(name, rows * cols)
        self.rows = int(rows)
        self.cols = int(cols)
        self.cell_size = float(cell_size)
        self.origin = origin

    def xy_offsets(self, offset: int) -> Tuple[int, int]:
        """Return the (x, y) cell coordinates of a spatial offset."""
        offset = self.check(offset)
        return offset % self.cols, offset // self.cols

    def offset_of_xy(self, x: int, y: int) -> int:
        if not (0 <= x < self.cols and 0 <= y < self.rows):
            raise OutOfRangeError(f"cell ({x}, {y}) outside {self.cols}x{self.rows} grid")
        return y * self.cols + x

    def centroid(self, offset: int) -> Point:
        x, y = self.xy_offsets(offset)
        ox, oy = self.origin
        return Point(ox + (x + 0.5) * self.cell_size, oy + (y + 0.5) * self.cell_size)


class ShapeExtent(SpatialExtent):
    """A set of arbitrary shapes, represented by their centroids."""

    def __init__(self, centroids: Sequence[Tuple[float, float]], name: str = "space"):
        super().__init__(name, len(centroids))
        self._centroids = [Point(float(x), float(y)) for x, y in centroids]

    def centroid(self, offset: int) -> Point:
        return self._centroids[self.check(offset)]


class Locator:
    """Locks zero or more extents (by name) to a fixed coordinate."""

    def __init__(self, **fixed: int):
        self._fixed: Dict[str, int] = {k: int(v) for k, v in fixed.items()}

    def locked(self) -> Mapping[str, int]:
        return dict(self._fixed)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Locator) and self._fixed == other._fixed

    def __hash__(self) -> int:
        return hash(tuple(sorted(self._fixed.items())))

    def __repr__(self) -> str:
        args = ", ".join(f"{k}={v}" for k, v in sorted(self._fixed.items()))
        return f"Locator({args})"


class OffsetIndex:
    """Restartable, finite sequence of offsets selected by a locator.

    Each coordinate axis is either a single locked value or the full range
    of its extent. Iteration walks the combinations in offset order without
    materialising them; ``to_array`` builds the same offsets as a numpy
    array.
    """

    def __init__(self, axes: Sequence[range], strides: Sequence[int]):
        self._axes = tuple(axes)
        self._strides = tuple(strides)

    def __iter__(self) -> Iterator[int]:
        for coords in itertools.product(*self._axes):
            yield sum(c * s for c, s in zip(coords, self._strides))

    def __len__(self) -> int:
        n = 1
        for axis in self._axes:
            n *= len(axis)
        return n

    def to_array(self) -> np.ndarray:
        offsets = np.zeros(1, dtype=np.int64)
        for axis, stride in zip(self._axes, self._strides):
            coords = np.arange(axis.start, axis.stop, dtype=np.int64) * stride
            offsets = (offsets[:, np.newaxis] + coords[np.newaxis, :]).ravel()
        return offsets

    def __eq__(self, other: object) -> bool:
        return (
            isinstance(other, OffsetIndex)
            and self._axes == other._axes
            and self._strides == other._strides
        )

    def __repr__(self) -> str:
        return f"OffsetIndex(len={len(self)})"


ExtentRef = Union[Extent, str]


class Scale:
    """Immutable multi-extent domain with linear offset addressing.

    Attributes:
        extents: Extents in addressing order (time first when present).
        cardinality: Product of all extent multiplicities.
        time: The temporal extent, or None.
        space: The first spatial extent, or None.
    """

    def __init__(self, extents: Sequence[Extent]):
        names = [e.name for e in extents]
        if len(set(names)) != len(names):
            raise ValueError(f"duplicate extent names in {names}")
        temporal = [e for e in extents if e.kind == "time"]
        if len(temporal) > 1:
            raise ValueError("a scale can hold at most one temporal extent")
        ordered = temporal + [e for e in extents if e.kind != "time"]
        self._extents: Tuple[Extent, ...] = tuple(ordered)
        self._by_name: Dict[str, int] = {e.name: i for i, e in enumerate(self._extents)}
        # row-major strides, last extent fastest; computed once
        strides: List[int] = []
        acc = 1
        for extent in reversed(self._extents):
            strides.append(acc)
            acc *= extent.multiplicity
        self._strides: Tuple[int, ...] = tuple(reversed(strides))
        self._cardinality = acc
        self.time: Optional[TemporalExtent] = temporal[0] if temporal else None  # type: ignore[assignment]
        self.space: Optional[SpatialExtent] = next(
            (e for e in self._extents if isinstance(e, SpatialExtent)), None
        )

    @property
    def extents(self) -> Tuple[Extent, ...]:
        return self._extents

    @property
    def cardinality(self) -> int:
        return self._cardinality

    @property
    def strides(self) -> Tuple[int, ...]:
        return self._strides

    @property
    def time_multiplicity(self) -> int:
        return self.time.multiplicity if self.time is not None else 1

    @property
    def slice_cardinality(self) -> int:
        """Number of offsets in one time slice."""
        return self._cardinality // self.time_multiplicity

    @property
    def is_temporally_distributed(self) -> bool:
        """True when the scale has more than one time step."""
        return self.time is not None and self.time.multiplicity > 1

    def _position(self, extent: ExtentRef) -> int:
        name = extent if isinstance(extent, str) else extent.name
        try:
            return self._by_name[name]
        except KeyError:
            raise KeyError(f"scale has no extent named {name!r}") from None

    def check_offset(self, offset: int) -> int:
        if not 0 <= offset < self._cardinality:
            raise OutOfRangeError(f"offset {offset} outside scale of cardinality {self._cardinality}")
        return int(offset)

    def extent_offset(self, extent: ExtentRef, offset: int) -> int:
        """Return the coordinate of ``offset`` along one extent."""
        i = self._position(extent)
        offset = self.check_offset(offset)
        return (offset // self._strides[i]) % self._extents[i].multiplicity

    def time_offset(self, offset: int) -> int:
        """Return the time slice of an offset (0 for scales without time)."""
        if self.time is None:
            self.check_offset(offset)
            return 0
        return self.extent_offset(self.time, offset)

    def coordinates(self, offset: int) -> Tuple[int, ...]:
        offset = self.check_offset(offset)
        return tuple(
            (offset // stride) % extent.multiplicity
            for extent, stride in zip(self._extents, self._strides)
        )

    def offset_of(self, coordinates: Sequence[int]) -> int:
        if len(coordinates) != len(self._extents):
            raise ValueError(f"expected {len(self._extents)} coordinates, got {len(coordinates)}")
        return sum(
            extent.check(c) * stride
            for extent, c, stride in zip(self._extents, coordinates, self._strides)
        )

    def offsets_under(self, locator: Optional[Locator] = None) -> OffsetIndex:
        """Return the offsets consistent with ``locator``.

        ``None`` is the initialization configuration: the first time slice
        for scales with time, the whole domain otherwise. An empty
        ``Locator()`` selects every offset.
        """
        if locator is None:
            fixed = {self.time.name: 0} if self.time is not None else {}
        else:
            fixed = dict(locator.locked())
        axes: List[range] = []
        for extent in self._extents:
            if extent.name in fixed:
                c = extent.check(fixed.pop(extent.name))
                axes.append(range(c, c + 1))
            else:
                axes.append(range(extent.multiplicity))
        if fixed:
            raise KeyError(f"scale has no extent named {sorted(fixed)[0]!r}")
        return OffsetIndex(axes, self._strides)

    def transition(self, index: int) -> "Transition":
        from .transition import Transition

        return Transition(self, index)

    def transitions(self, start: int = 1) -> Iterator["Transition"]:
        """Yield transitions ``start .. n-1`` in increasing order.

        Index 0 is the initialization slice, so hosts start at 1.
        """
        for index in range(start, self.time_multiplicity):
            yield self.transition(index)

    def __repr__(self) -> str:
        return f"Scale({list(self._extents)!r})"
