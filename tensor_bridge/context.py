"""
Determinism controls.

A DeterminismContext is threaded explicitly into anything that draws
randomness (parameter initializers) or picks algorithms (the evaluator). The
module-level functions operate on a process-wide default context for callers
that do not pass one.
"""

import secrets
import threading
from dataclasses import dataclass, field
from typing import Optional

import numpy as np

MAX_SEED = 2**64 - 1


def _check_seed(seed: int) -> int:
    if isinstance(seed, bool) or not isinstance(seed, (int, np.integer)):
        raise TypeError(f"Random seed must be an int, got {type(seed).__name__}")
    seed = int(seed)
    if seed < 0 or seed > MAX_SEED:
        raise ValueError(f"Random seed {seed} outside [0, {MAX_SEED}]")
    return seed


@dataclass
class DeterminismContext:
    random_seed: int = 0
    seed_fixed: bool = False
    force_deterministic: bool = False
    _draws: int = field(default=0, repr=False, compare=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def __post_init__(self):
        self.random_seed = _check_seed(self.random_seed)

    def set_fixed_random_seed(self, seed: int):
        seed = _check_seed(seed)
        with self._lock:
            self.random_seed = seed
            self.seed_fixed = True
            self._draws = 0

    def reset_random_seed(self):
        with self._lock:
            self.random_seed = 0
            self.seed_fixed = False
            self._draws = 0

    def force_deterministic_algorithms(self):
        self.force_deterministic = True

    def draw_seed(self) -> int:
        """
        Seed for one consumer of randomness. With a fixed seed the n-th draw
        after set_fixed_random_seed is always seed + n, otherwise fresh entropy.
        """
        with self._lock:
            if self.seed_fixed:
                seed = (self.random_seed + self._draws) % (MAX_SEED + 1)
                self._draws += 1
                return seed
        return secrets.randbits(64)

    def rng(self) -> np.random.Generator:
        return np.random.default_rng(self.draw_seed())


_default_context = DeterminismContext()


def default_context() -> DeterminismContext:
    return _default_context


def resolve_context(context: Optional[DeterminismContext]) -> DeterminismContext:
    return context if context is not None else _default_context


def set_fixed_random_seed(seed: int):
    _default_context.set_fixed_random_seed(seed)


def get_random_seed() -> int:
    return _default_context.random_seed


def is_random_seed_fixed() -> bool:
    return _default_context.seed_fixed


def reset_random_seed():
    _default_context.reset_random_seed()


def force_deterministic_algorithms():
    _default_context.force_deterministic_algorithms()


def should_force_deterministic_algorithms() -> bool:
    return _default_context.force_deterministic
