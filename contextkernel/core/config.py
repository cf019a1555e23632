"""
Run configuration definitions.

This module defines the configuration dataclass used to parameterise a
contextualization run. Configurations are defined with explicit defaults
so that test runs can be created easily without requiring the user to
supply values for every field. See ``EngineConfig`` for the top-level
configuration consumed by process units and the scheduler.

Per-unit parameters supplied by a model (such as ``multiplier``) are not
part of this dataclass; they are applied to the unit itself by the
``ContextConfigurator``.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class EngineConfig:
    """Top level configuration for contextualization runs.

    Where appropriate, fields include defaults that reproduce the
    behaviour of the reference perturbation process. Users are
    encouraged to override these as needed when building a scenario.
    """

    # Random seeds and entropy
    base_seed: int = 42
    entropy_mode: bool = False  # if True, inject run salt so runs differ
    replay_mode: bool = False   # if True, record entropy draws for exact replay

    # Number of time slices each state retains. 2 keeps previous/current
    # only; None keeps the full history of the run.
    history_depth: int | None = 2

    # Fallback distribution used to seed outputs when no input is available
    fallback_low: float = 0.0
    fallback_high: float = 500.0

    # Total width of the centred perturbation added at every transition;
    # draws fall in [-width/2, width/2) before scaling by the multiplier.
    perturbation_width: float = 100.0

    # Multiplier used when the model does not pass one
    default_multiplier: int = 1

    # Reserved for scenario specific settings
    extras: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Return a dict representation of the configuration.

        Useful for serialisation or interfacing with dynamic
        configuration loaders.
        """
        return self.__dict__.copy()
