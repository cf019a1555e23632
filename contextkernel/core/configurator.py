"""
Parameter application for process units.

Models pass a flat mapping of parameter name to value. A unit class
declares which parameters it understands as ``Parameter`` objects; the
``ContextConfigurator`` resolves aliases, coerces every recognised value
and only then assigns them to the unit, so a bad value leaves the unit
untouched. Unknown names are ignored.
"""

from __future__ import annotations

import logging
import math
import numbers
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple, Type

from .errors import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Parameter:
    """A named, typed parameter with optional short aliases.

    Attributes:
        name: Canonical name, also the attribute set on the unit.
        type: One of ``int``, ``float``, ``bool`` or ``str``.
        default: Value used when the model does not pass one.
        aliases: Alternative names accepted in parameter mappings.
        optional: Whether the model may omit the parameter.
    """

    name: str
    type: Type = int
    default: Any = None
    aliases: Tuple[str, ...] = ()
    optional: bool = True

    @classmethod
    def parse(cls, notation: str, type: Type = int, default: Any = None) -> "Parameter":
        """Build a parameter from compact notation such as ``"? m|multiplier"``.

        A leading ``?`` marks the parameter optional and ``|`` separates
        alternative names; the last name is the canonical one.
        """
        text = notation.strip()
        optional = text.startswith("?")
        if optional:
            text = text[1:].strip()
        names = [n.strip() for n in text.split("|") if n.strip()]
        if not names:
            raise ValueError(f"no parameter name in {notation!r}")
        return cls(names[-1], type, default, tuple(names[:-1]), optional)

    def names(self) -> Tuple[str, ...]:
        return (self.name,) + self.aliases

    def coerce(self, value: Any) -> Any:
        """Convert ``value`` to this parameter's type.

        Raises:
            ConfigurationError: if the value cannot be represented.
        """
        if self.type is bool:
            if isinstance(value, bool):
                return value
            raise ConfigurationError(self.name, f"parameter {self.name!r} expects a boolean, got {value!r}")
        if self.type is str:
            if isinstance(value, str):
                return value
            raise ConfigurationError(self.name, f"parameter {self.name!r} expects a string, got {value!r}")
        # numeric: any real number, but never a bool or a string
        if isinstance(value, bool) or not isinstance(value, numbers.Real):
            raise ConfigurationError(
                self.name, f"parameter {self.name!r} expects a number, got {type(value).__name__}"
            )
        if not math.isfinite(float(value)):
            raise ConfigurationError(self.name, f"parameter {self.name!r} must be finite, got {value!r}")
        return self.type(value)


class ContextConfigurator:
    """Apply named parameters to a unit's fields."""

    def __init__(self, parameters: Iterable[Parameter]):
        self.parameters: Tuple[Parameter, ...] = tuple(parameters)
        self._lookup: Dict[str, Parameter] = {}
        for param in self.parameters:
            for name in param.names():
                if name in self._lookup:
                    raise ValueError(f"parameter name {name!r} declared twice")
                self._lookup[name] = param

    def resolve(self, name: str) -> Optional[Parameter]:
        return self._lookup.get(name)

    def coerce(self, values: Mapping[str, Any]) -> Dict[str, Any]:
        """Return canonical name -> coerced value for the recognised entries."""
        coerced: Dict[str, Any] = {}
        for key, value in values.items():
            param = self._lookup.get(key)
            if param is None:
                logger.debug("ignoring unknown parameter %r", key)
                continue
            coerced[param.name] = param.coerce(value)
        return coerced

    def defaults(self) -> Dict[str, Any]:
        return {p.name: p.default for p in self.parameters if p.default is not None}

    def apply(self, unit: Any, values: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
        """Set recognised parameters on ``unit`` and return what was applied.

        All values are coerced before any is assigned.

        Raises:
            ConfigurationError: if a recognised value has the wrong type.
        """
        coerced = self.coerce(values or {})
        for param in self.parameters:
            if not param.optional and param.name not in coerced:
                raise ConfigurationError(param.name, f"required parameter {param.name!r} is missing")
        for name, value in coerced.items():
            setattr(unit, name, value)
        if coerced:
            logger.debug("applied parameters %s to %s", coerced, type(unit).__name__)
        return coerced
