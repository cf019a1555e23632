"""
Entropy subsystem: seeded, replayable randomness for process units.

All random draws made by process units are channelled through
``EntropySource`` so that runs are reproducible and auditable. Each draw
is identified by a checkpoint id (e.g. ``"seed:out"`` or
``"perturb:out"``), the transition index and the number of values drawn;
a seed is derived from these, the base seed and the stream (the key of
the unit that owns the source) with blake2s and fed to
``numpy.random.default_rng``. Units running side by side under different
keys therefore draw independent sequences.

The entropy source uses blake2s for stable hash derivation, ensuring
deterministic behavior across Python interpreter sessions and versions.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import List, Optional

import numpy as np

from .errors import ReplayMismatchError


@dataclass
class EntropyRecord:
    """Record of a single batch of draws for replay support.

    Attributes:
        checkpoint_id: Identifier for the sampling checkpoint.
        tick: Transition index when the draw was made (0 at initialization).
        size: Number of values drawn.
        values: The sampled values in [0, 1).
    """
    checkpoint_id: str
    tick: int
    size: int
    values: np.ndarray


class EntropySource:
    """Centralised source of pseudorandomness with replay support.

    Attributes:
        base_seed: The base seed for deterministic generation.
        entropy_mode: If True, adds run-specific salt for variation.
        replay_mode: If True, records samples for later replay.
        stream: Identity of the owning unit, mixed into every seed.
        run_salt: Random salt added when entropy_mode is True.
        replay_log: List of recorded samples when replay_mode is True.
        replay_cursor: Current position in replay_log during replay.
    """

    def __init__(
        self,
        base_seed: int,
        entropy_mode: bool = False,
        replay_mode: bool = False,
        stream: str = "",
    ):
        self.base_seed = base_seed
        self.stream = stream
        self.entropy_mode = entropy_mode
        self.replay_mode = replay_mode
        self.run_salt: int = int(np.random.randint(0, 2**31 - 1)) if entropy_mode else 0
        self.replay_log: List[EntropyRecord] = []
        self.replay_cursor: int = 0
        self._replaying = False

    def _derive_seed(self, checkpoint_id: str, tick: int, size: int) -> int:
        """Derive a 64-bit seed from the checkpoint and run identity."""
        h = hashlib.blake2s(digest_size=8)
        h.update(int(self.base_seed).to_bytes(8, byteorder='big', signed=True))
        h.update(int(self.run_salt).to_bytes(8, byteorder='big', signed=False))
        stream = self.stream.encode('utf-8')
        h.update(len(stream).to_bytes(4, byteorder='big', signed=False))
        h.update(stream)
        h.update(int(tick).to_bytes(8, byteorder='big', signed=True))
        h.update(int(size).to_bytes(8, byteorder='big', signed=False))
        h.update(checkpoint_id.encode('utf-8'))
        return int.from_bytes(h.digest(), byteorder='big', signed=False)

    def uniform(self, checkpoint_id: str, tick: int, size: int) -> np.ndarray:
        """Return ``size`` uniform samples in [0, 1).

        The samples are deterministic given the base seed, run salt, stream,
        checkpoint id, tick and size. After ``rewind`` in ``replay_mode``,
        recorded batches are returned in order instead of generating new
        ones until the log is exhausted.

        Raises:
            ReplayMismatchError: if a replayed record was drawn for a
                different checkpoint, tick or size.
        """
        if self._replaying and self.replay_cursor < len(self.replay_log):
            rec = self.replay_log[self.replay_cursor]
            if (rec.checkpoint_id, rec.tick, rec.size) != (checkpoint_id, tick, size):
                raise ReplayMismatchError(
                    f"replay record {self.replay_cursor} was drawn for "
                    f"({rec.checkpoint_id!r}, {rec.tick}, {rec.size}), "
                    f"not ({checkpoint_id!r}, {tick}, {size})"
                )
            self.replay_cursor += 1
            return rec.values.copy()
        rng = np.random.default_rng(self._derive_seed(checkpoint_id, tick, size))
        values = rng.random(size)
        if self.replay_mode and not self._replaying:
            self.replay_log.append(EntropyRecord(checkpoint_id, tick, size, values.copy()))
        return values

    def sample_uniform(self, checkpoint_id: str, tick: int) -> float:
        """Return a single uniform sample in [0, 1)."""
        return float(self.uniform(checkpoint_id, tick, 1)[0])

    def centred(self, checkpoint_id: str, tick: int, size: int, width: float) -> np.ndarray:
        """Return ``size`` samples in [-width/2, width/2)."""
        return self.uniform(checkpoint_id, tick, size) * width - width / 2.0

    def rewind(self, log: Optional[List[EntropyRecord]] = None) -> None:
        """Restart replay from the beginning of ``log`` (or the current log)."""
        if log is not None:
            self.replay_log = list(log)
        self.replay_cursor = 0
        self._replaying = self.replay_mode
