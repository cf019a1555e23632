"""Core engine components: addressing, state storage and unit lifecycle."""

from .config import EngineConfig
from .configurator import ContextConfigurator, Parameter
from .entropy import EntropySource
from .errors import (
    ConfigurationError,
    ContextualizationError,
    LifecycleError,
    OutOfRangeError,
    ReplayMismatchError,
    StaleReadError,
    TypeMismatchError,
)
from .fabric import State, StateStore
from .process import Phase, ProcessUnit
from .registry import Prototype, PrototypeRegistry, default_registry, prototype
from .scale import Extent, GridExtent, Locator, OffsetIndex, Scale, ShapeExtent, SpatialExtent, TemporalExtent
from .scheduler import Monitor, RunResult, Scheduler, UnitPool
from .transition import Transition
from .types import UNDEFINED, Observable, ObservableKind, Point, is_undefined

__all__ = [
    "ConfigurationError",
    "ContextConfigurator",
    "ContextualizationError",
    "EngineConfig",
    "EntropySource",
    "Extent",
    "GridExtent",
    "LifecycleError",
    "Locator",
    "Monitor",
    "Observable",
    "ObservableKind",
    "OffsetIndex",
    "OutOfRangeError",
    "Parameter",
    "Phase",
    "Point",
    "ProcessUnit",
    "Prototype",
    "PrototypeRegistry",
    "ReplayMismatchError",
    "RunResult",
    "Scale",
    "Scheduler",
    "ShapeExtent",
    "SpatialExtent",
    "StaleReadError",
    "State",
    "StateStore",
    "TemporalExtent",
    "Transition",
    "TypeMismatchError",
    "UNDEFINED",
    "UnitPool",
    "default_registry",
    "is_undefined",
    "prototype",
]
