"""
Prototype registry: identifiers and parameter schemas of process units.

Unit classes are registered under a string id together with the
parameters they accept, mirroring how models refer to them (for example
``example.p`` with an optional ``m|multiplier`` integer). A registry can
create a fresh, configured unit from its id; a host keeps one such unit
per running process.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Type

from .config import EngineConfig
from .configurator import ContextConfigurator, Parameter


@dataclass(frozen=True)
class Prototype:
    """Registration record for a unit class."""

    id: str
    factory: Type
    parameters: Tuple[Parameter, ...] = ()
    published: bool = False
    description: str = ""

    def configurator(self) -> ContextConfigurator:
        return ContextConfigurator(self.parameters)


@dataclass
class PrototypeRegistry:
    """Maps prototype ids to unit classes."""

    prototypes: Dict[str, Prototype] = field(default_factory=dict)

    def register(self, proto: Prototype) -> Prototype:
        if proto.id in self.prototypes:
            raise ValueError(f"prototype {proto.id!r} is already registered")
        self.prototypes[proto.id] = proto
        return proto

    def get(self, proto_id: str) -> Prototype:
        try:
            return self.prototypes[proto_id]
        except KeyError:
            raise KeyError(f"unknown prototype {proto_id!r}") from None

    def create(
        self,
        proto_id: str,
        parameters: Optional[Mapping[str, Any]] = None,
        config: Optional[EngineConfig] = None,
        key: str = "",
    ) -> Any:
        """Instantiate the unit registered as ``proto_id`` and apply ``parameters``.

        ``key`` identifies the running process and seeds the unit's
        entropy stream.
        """
        proto = self.get(proto_id)
        unit = proto.factory(config, key)
        proto.configurator().apply(unit, parameters)
        return unit

    def ids(self, published_only: bool = False) -> List[str]:
        return sorted(p.id for p in self.prototypes.values() if p.published or not published_only)

    def __contains__(self, proto_id: object) -> bool:
        return proto_id in self.prototypes

    def __len__(self) -> int:
        return len(self.prototypes)


#: Registry populated by the ``prototype`` decorator.
default_registry = PrototypeRegistry()


def prototype(
    proto_id: str,
    parameters: Tuple[Parameter, ...] = (),
    published: bool = False,
    registry: Optional[PrototypeRegistry] = None,
) -> Callable[[Type], Type]:
    """Class decorator registering a unit class under ``proto_id``.

    The parameters are also stored on the class as ``parameters`` so that
    units created directly can be configured the same way.
    """

    def decorate(cls: Type) -> Type:
        cls.prototype_id = proto_id
        cls.parameters = tuple(parameters)
        (registry or default_registry).register(
            Prototype(proto_id, cls, tuple(parameters), published, (cls.__doc__ or "").strip().split("\n")[0])
        )
        return cls

    return decorate
