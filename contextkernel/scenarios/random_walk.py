"""
Random-walk scenario.

Usage:
    python -m contextkernel.scenarios.random_walk [options]

Builds a ``rows x cols`` grid over ``steps`` time steps, runs the
perturbation process (prototype ``example.p``) through the scheduler and
prints min/mean/max of the output for every transition.

Examples:
    python -m contextkernel.scenarios.random_walk --rows 4 --cols 4 --steps 10
    python -m contextkernel.scenarios.random_walk --steps 3 --input 10.0 -m 2
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

import numpy as np

from ..core import (
    ContextualizationError,
    EngineConfig,
    GridExtent,
    ObservableKind,
    Scale,
    Scheduler,
    StateStore,
    TemporalExtent,
)
from ..domains.perturbation import PerturbationProcess

OUTPUT = "value"
INPUT = "driver"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Run the random-walk perturbation process on a grid",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument('--rows', type=int, default=1, help='grid rows (default: 1)')
    parser.add_argument('--cols', type=int, default=1, help='grid columns (default: 1)')
    parser.add_argument('--steps', type=int, default=3, help='time steps, including initialization (default: 3)')
    parser.add_argument('-m', '--multiplier', type=int, default=1, help='perturbation multiplier (default: 1)')
    parser.add_argument('--seed', type=int, default=42, help='base seed (default: 42)')
    parser.add_argument('--input', type=float, default=None,
                        help='constant input value; without it outputs start from the fallback distribution')
    parser.add_argument('--entropy', action='store_true', help='salt the seed so every run differs')
    parser.add_argument('-v', '--verbose', action='store_true', help='log lifecycle events')
    return parser


def summarize(values: np.ndarray) -> str:
    defined = values[~np.isnan(values)]
    if defined.size == 0:
        return "undefined"
    return f"min={defined.min():9.3f} mean={defined.mean():9.3f} max={defined.max():9.3f}"


def run(args: argparse.Namespace) -> List[str]:
    """Run the scenario and return the report lines."""
    cfg = EngineConfig(base_seed=args.seed, entropy_mode=args.entropy, history_depth=None)
    scale = Scale([GridExtent(args.rows, args.cols), TemporalExtent(args.steps)])
    context = StateStore(scale, history=None)
    inputs = {}
    if args.input is not None:
        driver = context.create(INPUT)
        driver.set_values(scale.offsets_under(None).to_array(), args.input)
        inputs[INPUT] = ObservableKind.QUANTITY

    scheduler = Scheduler(cfg)
    result = scheduler.run(
        "random-walk",
        PerturbationProcess.prototype_id,
        scale,
        inputs,
        {OUTPUT: ObservableKind.QUANTITY},
        context,
        parameters={"multiplier": args.multiplier},
    )

    state = result.outputs[OUTPUT]
    lines = [f"t=0 {summarize(state.snapshot(scale.transition(0)))}"]
    for index in result.transitions:
        lines.append(f"t={index} {summarize(state.snapshot(scale.transition(index)))}")
    return lines


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if min(args.rows, args.cols, args.steps) < 1:
        parser.error("--rows, --cols and --steps must be at least 1")
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    try:
        lines = run(args)
    except ContextualizationError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    for line in lines:
        print(line)
    return 0


if __name__ == "__main__":
    sys.exit(main())
