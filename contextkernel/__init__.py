"""
Contextkernel: a stepwise process-contextualization engine.

This package computes derived numeric fields over a discretized
spatial-temporal domain, advancing one time slice ("transition") at a
time. Process units are initialised once over a scale, then stepped
through every transition, reading prior values from history-aware states
and reporting when they may be retired.

The major subpackages are:

``contextkernel.core``       Scales, extents and locators, transitions,
                             state storage, parameter handling, the
                             process unit lifecycle and a reference
                             scheduler.
``contextkernel.domains``    Concrete process units (the random-walk
                             perturbation process).
``contextkernel.scenarios``  Entry points running a unit on a concrete
                             scale from the command line.

Please see the individual modules for further documentation.
"""

import logging

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"

__all__ = [
    "core",
    "domains",
    "scenarios",
]
