"""
Process units: stateful computations stepped once per transition.

A ``ProcessUnit`` is created by the host for one running process. The host
calls ``initialize`` once, then ``compute`` for every transition after the
initialization slice in increasing order, and polls ``disposable`` after
each call; once it reads True the unit is retired and receives no further
calls.

The base class owns the lifecycle: phase checks, validation of the
declared input and output kinds, allocation of output states and the
disposability flag. Subclasses implement the numerics in two hooks:

``seed(outputs, inputs, offsets)``
    fill the output states at the initialization slice.
``update(transition, previous, offsets, inputs)``
    derive the values of one transition from the previous one.

Units hold no global state; everything they use is owned by the instance
and lives as long as it does.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, Mapping, Optional

import numpy as np

from .config import EngineConfig
from .configurator import ContextConfigurator
from .entropy import EntropySource
from .errors import LifecycleError, StaleReadError, TypeMismatchError
from .fabric import State, StateStore
from .scale import Scale
from .transition import Transition
from .types import Observable, ObservableKind, ObservableSpec

logger = logging.getLogger(__name__)


class Phase(Enum):
    CREATED = "created"
    INITIALIZED = "initialized"
    STEPPING = "stepping"
    DISPOSABLE = "disposable"
    DISPOSED = "disposed"


class ProcessUnit:
    """Base class for process contextualizers.

    Attributes:
        cfg: Run configuration.
        key: Identity of the running process; seeds the unit's entropy stream.
        entropy: Source of all random draws made by the unit.
        scale: Scale of the process, set by ``initialize``.
        outputs: Output name -> State, filled by ``initialize``.
        inputs: Declared inputs, normalised to Observables.
    """

    #: Parameters understood by the unit; set by the ``prototype`` decorator.
    parameters: tuple = ()
    #: Registered id, if any.
    prototype_id: Optional[str] = None

    def __init__(self, config: Optional[EngineConfig] = None, key: str = ""):
        self.cfg = config or EngineConfig()
        self.key = key
        self.entropy = EntropySource(
            self.cfg.base_seed, self.cfg.entropy_mode, self.cfg.replay_mode, stream=key
        )
        self.scale: Optional[Scale] = None
        self.outputs: Dict[str, State] = {}
        self.inputs: Dict[str, Observable] = {}
        self._phase = Phase.CREATED
        self._disposable = False
        self._last_index = 0
        for param in self.parameters:
            if param.default is not None:
                setattr(self, param.name, param.default)

    @property
    def disposable(self) -> bool:
        """True once the unit expects no further lifecycle calls."""
        return self._disposable

    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def last_index(self) -> int:
        """Index of the last transition computed (0 after initialize)."""
        return self._last_index

    def set_context(self, parameters: Optional[Mapping[str, object]]) -> Dict[str, object]:
        """Apply model parameters to this unit. Unknown names are ignored."""
        if self._phase not in (Phase.CREATED, Phase.INITIALIZED):
            raise LifecycleError(f"cannot configure a unit in phase {self._phase.value}")
        return ContextConfigurator(self.parameters).apply(self, parameters)

    def initialize(
        self,
        scale: Scale,
        expected_inputs: Mapping[str, ObservableSpec],
        expected_outputs: Mapping[str, ObservableSpec],
        context: StateStore,
        monitor=None,
    ) -> Dict[str, State]:
        """Validate declarations, allocate and seed the outputs.

        Inputs already present in ``context`` are used to seed the outputs.
        The unit becomes disposable immediately when the scale has no
        meaningful temporal extent, since ``compute`` will never be called.

        Returns:
            Output name -> State.

        Raises:
            TypeMismatchError: if a declared input or output carries a
                non-numeric observer. Nothing is allocated in that case.
            LifecycleError: if the unit was already initialised.
            ValueError: if ``context`` is not defined over ``scale``.
        """
        if self._phase is not Phase.CREATED:
            raise LifecycleError(f"initialize called on a unit in phase {self._phase.value}")

        inputs = self._validate(expected_inputs, "input")
        outputs = self._validate(expected_outputs, "output")
        if context.scale is not scale:
            raise ValueError(
                f"{type(self).__name__}: context states are defined over a different scale"
            )

        self.scale = scale
        self.inputs = inputs
        self._disposable = not scale.is_temporally_distributed

        for name in outputs:
            self.outputs[name] = context.create(name, self.cfg.history_depth)

        available = {name: context[name] for name in inputs if name in context}
        offsets = scale.offsets_under(None).to_array()
        self.seed(self.outputs, available, offsets)

        self._phase = Phase.DISPOSABLE if self._disposable else Phase.INITIALIZED
        logger.debug(
            "%s initialized: %d outputs over %d offsets, inputs available %s, disposable=%s",
            type(self).__name__, len(self.outputs), scale.cardinality, sorted(available), self._disposable,
        )
        if monitor is not None and not available and inputs:
            monitor.info(f"{type(self).__name__}: no input values available, using fallback")
        return dict(self.outputs)

    def compute(self, transition: Transition, inputs: Optional[Mapping[str, State]] = None) -> Dict[str, State]:
        """Derive the outputs for one transition from the previous one.

        Returns:
            Output name -> State.

        Raises:
            StaleReadError: if called before ``initialize`` or with a
                transition not after the last one computed.
            LifecycleError: if the unit already reported disposable.
            OutOfRangeError: on the initialization transition (index 0).
        """
        if self._phase is Phase.CREATED:
            raise StaleReadError("compute called before initialize")
        if self._phase in (Phase.DISPOSABLE, Phase.DISPOSED):
            raise LifecycleError(f"compute called on a unit in phase {self._phase.value}")
        previous = transition.previous()
        if transition.index <= self._last_index:
            raise StaleReadError(
                f"transition {transition.index} is not after transition {self._last_index}"
            )
        offsets = self.scale.offsets_under(transition).to_array()

        self.update(transition, previous, offsets, dict(inputs or {}))

        self._last_index = transition.index
        self._disposable = transition.is_last
        self._phase = Phase.DISPOSABLE if self._disposable else Phase.STEPPING
        return dict(self.outputs)

    def dispose(self) -> None:
        """Mark the unit as retired by the host."""
        self._phase = Phase.DISPOSED
        self._disposable = True

    def seed(self, outputs: Dict[str, State], inputs: Dict[str, State], offsets: np.ndarray) -> None:
        """Fill ``outputs`` at the initialization offsets."""
        raise NotImplementedError

    def update(
        self,
        transition: Transition,
        previous: Transition,
        offsets: np.ndarray,
        inputs: Dict[str, State],
    ) -> None:
        """Write the values of ``transition`` at ``offsets``."""
        raise NotImplementedError

    def _validate(self, declared: Mapping[str, ObservableSpec], role: str) -> Dict[str, Observable]:
        observables: Dict[str, Observable] = {}
        for name, declaration in declared.items():
            if isinstance(declaration, Observable):
                observable = declaration
            else:
                try:
                    observable = Observable(name, ObservableKind(declaration))
                except ValueError:
                    raise TypeMismatchError(name, f"{role} {name!r} has unknown kind {declaration!r}") from None
            if not observable.accepted_as_numeric:
                raise TypeMismatchError(
                    name, f"{type(self).__name__}: {role} state {name!r} is not numeric"
                )
            observables[name] = observable
        return observables
