"""
Random-walk perturbation process.

This module defines the reference process contextualizer. It demonstrates
the full unit lifecycle with the simplest meaningful numerics:

  * At initialization every output is set, at each offset of the first
    time slice, to the sum of the available inputs plus a centred random
    perturbation scaled by ``multiplier``, clamped at zero. Without any
    input state the outputs are drawn from the fallback distribution
    ``U[fallback_low, fallback_high)`` instead.
  * At every transition the value of each output at the previous
    transition receives a new perturbation and is clamped at zero again.

Undefined values are never replaced: an undefined input produces an
undefined output, and an undefined output stays undefined through every
transition. All randomness comes from the unit's ``EntropySource``, so a
run is reproducible from ``EngineConfig.base_seed``.
"""

from __future__ import annotations

from typing import Dict

import numpy as np

from ...core.configurator import Parameter
from ...core.fabric import State
from ...core.registry import prototype
from ...core.process import ProcessUnit
from ...core.transition import Transition


def clamp_non_negative(values: np.ndarray) -> np.ndarray:
    """Clamp at zero, leaving undefined (NaN) entries undefined."""
    # NaN < 0 is False, so NaN passes through unchanged
    return np.where(values < 0.0, 0.0, values)


@prototype("example.p", parameters=(Parameter.parse("? m|multiplier", int, default=1),))
class PerturbationProcess(ProcessUnit):
    """Perturb numeric outputs by a bounded random amount at each transition."""

    multiplier: int = 1

    def __init__(self, config=None, key=""):
        super().__init__(config, key)
        self.multiplier = self.cfg.default_multiplier

    def perturbation(self, checkpoint_id: str, tick: int, size: int) -> np.ndarray:
        """Return ``size`` draws in ``multiplier * [-width/2, width/2)``."""
        return self.multiplier * self.entropy.centred(
            checkpoint_id, tick, size, self.cfg.perturbation_width
        )

    def seed(self, outputs: Dict[str, State], inputs: Dict[str, State], offsets: np.ndarray) -> None:
        base = None
        for state in inputs.values():
            values = state.values(offsets)
            base = values if base is None else base + values

        for name, state in outputs.items():
            if base is None:
                low, high = self.cfg.fallback_low, self.cfg.fallback_high
                u = self.entropy.uniform(f"seed:{name}", 0, len(offsets))
                state.set_values(offsets, low + u * (high - low))
            else:
                value = base + self.perturbation(f"seed:{name}", 0, len(offsets))
                state.set_values(offsets, clamp_non_negative(value))

    def update(
        self,
        transition: Transition,
        previous: Transition,
        offsets: np.ndarray,
        inputs: Dict[str, State],
    ) -> None:
        for name, state in self.outputs.items():
            prior = state.values(offsets, previous)
            value = prior + self.perturbation(f"perturb:{name}", transition.index, len(offsets))
            state.set_values(offsets, clamp_non_negative(value), transition)
