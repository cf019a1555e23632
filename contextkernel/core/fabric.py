"""
Fabric subsystem: numeric state storage with per-transition history.

A ``State`` holds one value per offset of a scale for a single named
variable. Storage is organised in time slices: each slice is a float64
numpy array of ``scale.slice_cardinality`` values, initialised to
``UNDEFINED``. A state keeps a bounded window of slices (``history``):
the default of 2 retains the previous and current slice, which is all a
``compute`` step needs to read the prior value of an offset before
overwriting it; ``history=None`` keeps every slice of the run.

Slices are opened lazily. The first write into a newer transition copies
the newest slice forward, so values not rewritten in a step remain visible
at later transitions, while reads under an earlier transition keep seeing
the old values. Writing into a slice older than the newest one is
refused: history is never rewritten.

``StateStore`` is the per-context collection of states, keyed by name. It
does not implement any dynamics; process units read and write through it.
"""

from __future__ import annotations

from collections import OrderedDict
from typing import Any, Dict, Iterator, List, Optional, Sequence, Union

import numpy as np

from .errors import StaleReadError
from .scale import Scale
from .transition import Transition
from .types import UNDEFINED


class State:
    """Dense numeric array over a scale, with a window of time slices.

    Attributes:
        name: Variable name.
        scale: Scale the state is defined over.
        history: Number of slices retained, or None for all of them.
    """

    def __init__(self, name: str, scale: Scale, history: Optional[int] = 2):
        if history is not None and history < 2:
            raise ValueError("a state must retain at least two slices")
        self.name = name
        self.scale = scale
        self.history = history
        self._slice_size = scale.slice_cardinality
        self._slices: "OrderedDict[int, np.ndarray]" = OrderedDict()
        self._slices[0] = np.full(self._slice_size, UNDEFINED, dtype=np.float64)

    def __len__(self) -> int:
        return self.scale.cardinality

    def __repr__(self) -> str:
        return f"State({self.name!r}, slices={list(self._slices)})"

    @property
    def newest(self) -> int:
        """Index of the newest time slice written so far."""
        return next(reversed(self._slices))

    @property
    def oldest(self) -> int:
        """Index of the oldest time slice still retained."""
        return next(iter(self._slices))

    def retained(self) -> List[int]:
        return list(self._slices)

    def _locate(self, offset: int, transition: Optional[Transition]) -> tuple[int, int]:
        offset = self.scale.check_offset(int(offset))
        slot = offset % self._slice_size
        t = transition.index if transition is not None else offset // self._slice_size
        return t, slot

    def _slice_for_read(self, t: int) -> np.ndarray:
        if t >= self.newest:
            return self._slices[self.newest]
        # newest retained slice at or before t; slices between retained
        # keys were never written, so the earlier key is still current
        found = None
        for key in self._slices:
            if key > t:
                break
            found = key
        if found is None:
            raise StaleReadError(
                f"state {self.name!r}: transition {t} is older than the retained history "
                f"(oldest slice {self.oldest})"
            )
        return self._slices[found]

    def _slice_for_write(self, t: int) -> np.ndarray:
        newest = self.newest
        if t == newest:
            return self._slices[t]
        if t < newest:
            raise StaleReadError(
                f"state {self.name!r}: cannot write transition {t} after transition {newest}"
            )
        self._slices[t] = self._slices[newest].copy()
        if self.history is not None:
            while len(self._slices) > self.history:
                self._slices.popitem(last=False)
        return self._slices[t]

    def get(self, offset: int, transition: Optional[Transition] = None) -> float:
        """Return the value at ``offset``.

        When ``transition`` is given the offset is re-addressed to that
        transition's time slice, as it stood at or just before it. Without
        one the offset is read in its own time slice, since a full-domain
        offset carries its time coordinate; once that slice has left a
        bounded history the read fails, so current values are read by
        passing the current transition (or with ``snapshot()``). Unset
        entries read as ``UNDEFINED``.

        Raises:
            StaleReadError: if the requested time is older than the
                retained history.
        """
        t, slot = self._locate(offset, transition)
        return float(self._slice_for_read(t)[slot])

    def set(self, offset: int, value: float, transition: Optional[Transition] = None) -> None:
        """Record ``value`` at ``offset`` for the current (or given) transition."""
        t, slot = self._locate(offset, transition)
        self._slice_for_write(t)[slot] = value

    def _locate_many(self, offsets: np.ndarray, transition: Optional[Transition]) -> tuple[int, np.ndarray]:
        offsets = np.asarray(offsets, dtype=np.int64)
        if offsets.size and (offsets.min() < 0 or offsets.max() >= self.scale.cardinality):
            # reuse the scalar check for the error message
            bad = offsets[(offsets < 0) | (offsets >= self.scale.cardinality)][0]
            self.scale.check_offset(int(bad))
        slots = offsets % self._slice_size
        if transition is not None:
            return transition.index, slots
        times = np.unique(offsets // self._slice_size)
        if times.size > 1:
            raise ValueError("offsets span more than one time slice; pass a transition")
        t = int(times[0]) if times.size else self.newest
        return t, slots

    def values(self, offsets: Sequence[int], transition: Optional[Transition] = None) -> np.ndarray:
        """Return a copy of the values at ``offsets`` (all in one time slice)."""
        t, slots = self._locate_many(np.asarray(offsets), transition)
        return self._slice_for_read(t)[slots].copy()

    def set_values(
        self,
        offsets: Sequence[int],
        values: Union[float, np.ndarray],
        transition: Optional[Transition] = None,
    ) -> None:
        t, slots = self._locate_many(np.asarray(offsets), transition)
        self._slice_for_write(t)[slots] = values

    def snapshot(self, transition: Optional[Transition] = None) -> np.ndarray:
        """Return a copy of a whole slice (the newest one by default)."""
        t = transition.index if transition is not None else self.newest
        return self._slice_for_read(t).copy()


StateRef = Union[State, str]

#: Marker for "use the store default" in StateStore.create.
STORE_DEFAULT = object()


class StateStore:
    """Named states of one context, all defined over the same scale."""

    def __init__(self, scale: Scale, history: Optional[int] = 2):
        self.scale = scale
        self.history = history
        self._states: Dict[str, State] = {}

    def create(self, name: str, history: Any = STORE_DEFAULT) -> State:
        """Return the state called ``name``, creating it if needed.

        ``history`` overrides the store default; None keeps all slices.
        """
        state = self._states.get(name)
        if state is None:
            state = State(name, self.scale, self.history if history is STORE_DEFAULT else history)
            self._states[name] = state
        return state

    def add(self, state: State) -> State:
        if state.scale is not self.scale:
            raise ValueError(f"state {state.name!r} is defined over a different scale")
        self._states[state.name] = state
        return state

    def _resolve(self, state: StateRef) -> State:
        if isinstance(state, State):
            return state
        return self._states[state]

    def get(self, state: StateRef, offset: int, transition: Optional[Transition] = None) -> float:
        return self._resolve(state).get(offset, transition)

    def set(self, state: StateRef, offset: int, value: float, transition: Optional[Transition] = None) -> None:
        self._resolve(state).set(offset, value, transition)

    def names(self) -> List[str]:
        return list(self._states)

    def __getitem__(self, name: str) -> State:
        return self._states[name]

    def __contains__(self, name: object) -> bool:
        return name in self._states

    def __iter__(self) -> Iterator[State]:
        return iter(self._states.values())

    def __len__(self) -> int:
        return len(self._states)
