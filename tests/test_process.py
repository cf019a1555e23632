"""
Tests for the core.process module and the perturbation process.

This module tests the unit lifecycle (initialize, compute, disposability
and call ordering), declaration checks, and the numerics of the
reference random-walk process.
"""

import unittest
import sys
import os
import math

import numpy as np

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from contextkernel.core.config import EngineConfig
from contextkernel.core.errors import (
    LifecycleError,
    OutOfRangeError,
    StaleReadError,
    TypeMismatchError,
)
from contextkernel.core.fabric import StateStore
from contextkernel.core.process import Phase
from contextkernel.core.scale import GridExtent, Scale, TemporalExtent
from contextkernel.core.types import Observable, ObservableKind, is_undefined
from contextkernel.domains.perturbation import PerturbationProcess, clamp_non_negative

QUANTITY = ObservableKind.QUANTITY


class RecordingMonitor:
    """Minimal monitor collecting messages."""

    def __init__(self):
        self.messages = []
        self.cancelled = False

    def info(self, message):
        self.messages.append(message)


def make_scale(steps=3, rows=1, cols=1):
    return Scale([TemporalExtent(steps), GridExtent(rows, cols)])


class TestSingleCellWalk(unittest.TestCase):
    """One cell over three steps, as a host would drive it."""

    def setUp(self):
        self.scale = make_scale()
        self.store = StateStore(self.scale, history=None)
        self.cfg = EngineConfig(history_depth=None)

    def test_without_inputs(self):
        unit = PerturbationProcess(self.cfg)
        outputs = unit.initialize(self.scale, {}, {"out": QUANTITY}, self.store)
        state = outputs["out"]
        v0 = state.get(0, self.scale.transition(0))
        self.assertGreaterEqual(v0, 0.0)
        self.assertLess(v0, 500.0)
        self.assertFalse(unit.disposable)
        self.assertIs(self.store["out"], state)

        unit.compute(self.scale.transition(1))
        v1 = state.get(0, self.scale.transition(1))
        self.assertGreaterEqual(v1, 0.0)
        self.assertLessEqual(abs(v1 - v0), 50.0)
        self.assertFalse(unit.disposable)

        unit.compute(self.scale.transition(2))
        v2 = state.get(0, self.scale.transition(2))
        self.assertGreaterEqual(v2, 0.0)
        self.assertLessEqual(abs(v2 - v1), 50.0)
        self.assertTrue(unit.disposable)
        self.assertEqual(unit.phase, Phase.DISPOSABLE)

        # earlier transitions are not rewritten
        self.assertEqual(state.get(0, self.scale.transition(0)), v0)

    def test_with_constant_input(self):
        self.store.create("in").set(0, 10.0)
        unit = PerturbationProcess(self.cfg)
        outputs = unit.initialize(self.scale, {"in": QUANTITY}, {"out": QUANTITY}, self.store)
        v0 = outputs["out"].get(0, self.scale.transition(0))
        self.assertGreaterEqual(v0, 0.0)
        self.assertLess(v0, 60.0)

    def test_multiplier_scales_perturbation(self):
        values = {}
        for m in (1, 3):
            store = StateStore(self.scale, history=None)
            store.create("in").set(0, 1000.0)
            unit = PerturbationProcess(self.cfg)
            unit.set_context({"m": m})
            outputs = unit.initialize(self.scale, {"in": QUANTITY}, {"out": QUANTITY}, store)
            values[m] = outputs["out"].get(0) - 1000.0
        self.assertAlmostEqual(values[3], 3 * values[1])
        self.assertLess(abs(values[3]), 150.0)

    def test_reproducible_from_seed(self):
        runs = []
        for _ in range(2):
            store = StateStore(self.scale, history=None)
            unit = PerturbationProcess(self.cfg)
            outputs = unit.initialize(self.scale, {}, {"out": QUANTITY}, store)
            for transition in self.scale.transitions():
                unit.compute(transition)
            runs.append([outputs["out"].get(0, self.scale.transition(i)) for i in range(3)])
        self.assertEqual(runs[0], runs[1])

    def test_keys_seed_separate_streams(self):
        values = {}
        for key in ("a", "b"):
            store = StateStore(self.scale, history=None)
            unit = PerturbationProcess(self.cfg, key=key)
            outputs = unit.initialize(self.scale, {}, {"out": QUANTITY}, store)
            values[key] = outputs["out"].get(0)
        self.assertNotEqual(values["a"], values["b"])

    def test_monitor_told_about_missing_inputs(self):
        monitor = RecordingMonitor()
        unit = PerturbationProcess(self.cfg)
        unit.initialize(self.scale, {"in": QUANTITY}, {"out": QUANTITY}, self.store, monitor)
        self.assertEqual(len(monitor.messages), 1)
        v0 = self.store["out"].get(0)
        self.assertTrue(0.0 <= v0 < 500.0)


class TestUndefinedValues(unittest.TestCase):
    """Undefined inputs and outputs stay undefined."""

    def test_undefined_input_propagates(self):
        scale = make_scale()
        store = StateStore(scale, history=None)
        store.create("in")
        unit = PerturbationProcess(EngineConfig(history_depth=None))
        outputs = unit.initialize(scale, {"in": QUANTITY}, {"out": QUANTITY}, store)
        self.assertTrue(is_undefined(outputs["out"].get(0)))
        unit.compute(scale.transition(1))
        self.assertTrue(math.isnan(outputs["out"].get(0, scale.transition(1))))

    def test_clamp_keeps_nan(self):
        result = clamp_non_negative(np.array([-1.0, 0.0, 2.0, np.nan]))
        np.testing.assert_array_equal(result[:3], [0.0, 0.0, 2.0])
        self.assertTrue(np.isnan(result[3]))


class TestGridWalk(unittest.TestCase):
    """Many cells: outputs never go negative."""

    def test_non_negative_everywhere(self):
        scale = make_scale(steps=5, rows=10, cols=10)
        store = StateStore(scale, history=None)
        store.create("in").set_values(scale.offsets_under(None).to_array(), 5.0)
        unit = PerturbationProcess(EngineConfig(history_depth=None))
        unit.set_context({"multiplier": 4})
        outputs = unit.initialize(scale, {"in": QUANTITY}, {"out": QUANTITY}, store)
        for transition in scale.transitions():
            unit.compute(transition)
        for index in range(5):
            snapshot = outputs["out"].snapshot(scale.transition(index))
            self.assertEqual(snapshot.shape, (100,))
            self.assertTrue((snapshot >= 0.0).all())

    def test_default_history_window(self):
        scale = make_scale(steps=4)
        store = StateStore(scale)
        unit = PerturbationProcess()
        outputs = unit.initialize(scale, {}, {"out": QUANTITY}, store)
        for transition in scale.transitions():
            unit.compute(transition)
        self.assertEqual(outputs["out"].retained(), [2, 3])
        with self.assertRaises(StaleReadError):
            outputs["out"].get(0, scale.transition(0))


class TestDisposability(unittest.TestCase):
    """Units without meaningful time are disposable right away."""

    def test_no_temporal_extent(self):
        scale = Scale([GridExtent(2, 2)])
        store = StateStore(scale)
        unit = PerturbationProcess()
        outputs = unit.initialize(scale, {}, {"out": QUANTITY}, store)
        self.assertTrue(unit.disposable)
        values = outputs["out"].values(scale.offsets_under(None).to_array())
        self.assertTrue(((values >= 0.0) & (values < 500.0)).all())

    def test_single_time_step(self):
        scale = make_scale(steps=1)
        unit = PerturbationProcess()
        unit.initialize(scale, {}, {"out": QUANTITY}, StateStore(scale))
        self.assertTrue(unit.disposable)

    def test_two_steps(self):
        scale = make_scale(steps=2)
        unit = PerturbationProcess()
        unit.initialize(scale, {}, {"out": QUANTITY}, StateStore(scale))
        self.assertFalse(unit.disposable)
        unit.compute(scale.transition(1))
        self.assertTrue(unit.disposable)


class TestDeclarations(unittest.TestCase):
    """Declared kinds are checked before anything is allocated."""

    def setUp(self):
        self.scale = make_scale()
        self.store = StateStore(self.scale)

    def test_non_numeric_output(self):
        unit = PerturbationProcess()
        with self.assertRaises(TypeMismatchError) as ctx:
            unit.initialize(self.scale, {}, {"out": ObservableKind.CATEGORY}, self.store)
        self.assertEqual(ctx.exception.variable, "out")
        self.assertEqual(len(self.store), 0)
        self.assertEqual(unit.phase, Phase.CREATED)

    def test_non_numeric_input_allocates_nothing(self):
        unit = PerturbationProcess()
        with self.assertRaises(TypeMismatchError):
            unit.initialize(
                self.scale, {"in": ObservableKind.PRESENCE}, {"out": QUANTITY}, self.store
            )
        self.assertNotIn("out", self.store)

    def test_context_over_another_scale(self):
        store = StateStore(make_scale(rows=1, cols=1))
        unit = PerturbationProcess()
        with self.assertRaises(ValueError):
            unit.initialize(make_scale(rows=2, cols=2), {}, {"out": QUANTITY}, store)
        self.assertNotIn("out", store)
        self.assertEqual(unit.phase, Phase.CREATED)

    def test_context_over_an_equal_but_distinct_scale(self):
        with self.assertRaises(ValueError):
            PerturbationProcess().initialize(
                make_scale(), {}, {"out": QUANTITY}, StateStore(make_scale())
            )

    def test_unknown_kind(self):
        with self.assertRaises(TypeMismatchError):
            PerturbationProcess().initialize(self.scale, {}, {"out": "colour"}, self.store)

    def test_accepted_kinds(self):
        unit = PerturbationProcess()
        outputs = unit.initialize(
            self.scale,
            {"agent": ObservableKind.DIRECT},
            {"n": Observable("n", ObservableKind.COUNT), "share": ObservableKind.PROPORTION},
            self.store,
        )
        self.assertEqual(sorted(outputs), ["n", "share"])
        self.assertEqual(unit.inputs["agent"].kind, ObservableKind.DIRECT)


class TestSequencing(unittest.TestCase):
    """Lifecycle calls made out of order are rejected."""

    def setUp(self):
        self.scale = make_scale(steps=4)
        self.store = StateStore(self.scale)
        self.unit = PerturbationProcess()

    def _init(self):
        self.unit.initialize(self.scale, {}, {"out": QUANTITY}, self.store)

    def test_compute_before_initialize(self):
        with self.assertRaises(StaleReadError):
            self.unit.compute(self.scale.transition(1))

    def test_initialize_twice(self):
        self._init()
        with self.assertRaises(LifecycleError):
            self._init()

    def test_initial_transition(self):
        self._init()
        with self.assertRaises(OutOfRangeError):
            self.unit.compute(self.scale.transition(0))

    def test_repeated_transition(self):
        self._init()
        self.unit.compute(self.scale.transition(1))
        with self.assertRaises(StaleReadError):
            self.unit.compute(self.scale.transition(1))

    def test_backwards_transition(self):
        self._init()
        self.unit.compute(self.scale.transition(2))
        self.assertEqual(self.unit.last_index, 2)
        with self.assertRaises(StaleReadError):
            self.unit.compute(self.scale.transition(1))

    def test_compute_after_disposable(self):
        self._init()
        for transition in self.scale.transitions():
            self.unit.compute(transition)
        self.assertTrue(self.unit.disposable)
        with self.assertRaises(LifecycleError):
            self.unit.compute(self.scale.transition(3))

    def test_configure_while_stepping(self):
        self._init()
        self.unit.set_context({"m": 2})
        self.unit.compute(self.scale.transition(1))
        with self.assertRaises(LifecycleError):
            self.unit.set_context({"m": 3})
        self.assertEqual(self.unit.multiplier, 2)

    def test_dispose(self):
        self._init()
        self.unit.dispose()
        self.assertEqual(self.unit.phase, Phase.DISPOSED)
        with self.assertRaises(LifecycleError):
            self.unit.compute(self.scale.transition(1))


if __name__ == "__main__":
    unittest.main()
