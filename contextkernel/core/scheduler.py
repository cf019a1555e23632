"""
Scheduler: a minimal host driving process units through a run.

The scheduler plays the host side of the unit contract. For one process
it applies the model parameters, calls ``initialize`` once, then calls
``compute`` for each transition after the initialization slice in
increasing order, polling ``disposable`` after every call and retiring
the unit as soon as it reads True. Units are kept in a ``UnitPool`` keyed
by process identity for as long as they are running.

A ``Monitor`` is handed to the unit at initialization. It forwards
messages to ``logging`` and carries the cancellation flag: a cancelled
run stops at the next transition boundary, leaving every state as the
last completed ``compute`` wrote it. The cancelled unit is released from
the pool, so a later run under the same key starts from a fresh unit.

Errors raised by a unit are logged, the unit is released from the pool,
and the error is re-raised unchanged.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Hashable, List, Mapping, Optional, Union

from .config import EngineConfig
from .errors import ContextualizationError
from .fabric import State, StateStore
from .process import ProcessUnit
from .registry import PrototypeRegistry, default_registry
from .scale import Scale
from .types import ObservableSpec

logger = logging.getLogger(__name__)


class Monitor:
    """Message and cancellation channel between a host and its units."""

    def __init__(self, name: str = "run"):
        self.name = name
        self._cancelled = False
        self._logger = logging.getLogger(f"{__name__}.{name}")
        self.errors: List[str] = []

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True
        self._logger.info("cancellation requested")

    def info(self, message: str) -> None:
        self._logger.info(message)

    def warn(self, message: str) -> None:
        self._logger.warning(message)

    def error(self, message: str) -> None:
        self.errors.append(message)
        self._logger.error(message)


class UnitPool:
    """Running units keyed by process identity."""

    def __init__(self):
        self._units: Dict[Hashable, ProcessUnit] = {}

    def acquire(self, key: Hashable, factory: Callable[[], ProcessUnit]) -> ProcessUnit:
        """Return the unit for ``key``, creating it with ``factory`` if absent."""
        unit = self._units.get(key)
        if unit is None:
            unit = factory()
            self._units[key] = unit
        return unit

    def get(self, key: Hashable) -> Optional[ProcessUnit]:
        return self._units.get(key)

    def release(self, key: Hashable) -> Optional[ProcessUnit]:
        """Remove and dispose the unit for ``key``."""
        unit = self._units.pop(key, None)
        if unit is not None:
            unit.dispose()
        return unit

    def keys(self) -> List[Hashable]:
        return list(self._units)

    def __contains__(self, key: object) -> bool:
        return key in self._units

    def __len__(self) -> int:
        return len(self._units)


@dataclass
class RunResult:
    """Outcome of one process run.

    Attributes:
        outputs: Output name -> State as returned by the last lifecycle call.
        transitions: Indices of the transitions passed to ``compute``.
        cancelled: True if the monitor stopped the run early.
        disposed: True if the unit reported disposable and was retired.
    """
    outputs: Dict[str, State] = field(default_factory=dict)
    transitions: List[int] = field(default_factory=list)
    cancelled: bool = False
    disposed: bool = False


class Scheduler:
    """Drive process units through initialize and per-transition compute."""

    def __init__(self, config: Optional[EngineConfig] = None, registry: Optional[PrototypeRegistry] = None):
        self.cfg = config or EngineConfig()
        self.registry = registry or default_registry
        self.pool = UnitPool()

    def _factory(self, key: str, unit: Union[ProcessUnit, str], parameters: Optional[Mapping[str, Any]]):
        if isinstance(unit, str):
            return lambda: self.registry.create(unit, parameters, self.cfg, key)

        def configured() -> ProcessUnit:
            unit.set_context(parameters)
            return unit

        return configured

    def run(
        self,
        key: Hashable,
        unit: Union[ProcessUnit, str],
        scale: Scale,
        expected_inputs: Mapping[str, ObservableSpec],
        expected_outputs: Mapping[str, ObservableSpec],
        context: StateStore,
        parameters: Optional[Mapping[str, Any]] = None,
        monitor: Optional[Monitor] = None,
    ) -> RunResult:
        """Run one process to completion (or cancellation).

        ``unit`` is either a unit instance or a registered prototype id.
        Input states are looked up in ``context`` by the names in
        ``expected_inputs`` at every transition.
        A cancelled run releases the unit without marking it disposed.
        """
        monitor = monitor or Monitor(str(key))
        result = RunResult()
        try:
            instance = self.pool.acquire(key, self._factory(str(key), unit, parameters))
            result.outputs = instance.initialize(scale, expected_inputs, expected_outputs, context, monitor)
            if instance.disposable:
                logger.debug("%s: disposable after initialize", key)
            else:
                for transition in scale.transitions():
                    if monitor.cancelled:
                        result.cancelled = True
                        logger.info("%s: cancelled before transition %d", key, transition.index)
                        break
                    inputs = {name: context[name] for name in expected_inputs if name in context}
                    result.outputs = instance.compute(transition, inputs)
                    result.transitions.append(transition.index)
                    if instance.disposable:
                        break
        except (ContextualizationError, ValueError) as exc:
            monitor.error(f"{key}: {type(exc).__name__}: {exc}")
            self.pool.release(key)
            raise
        if instance.disposable:
            self.pool.release(key)
            result.disposed = True
            logger.info("%s: retired after %d transitions", key, len(result.transitions))
        elif result.cancelled:
            self.pool.release(key)
        return result
