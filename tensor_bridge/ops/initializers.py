import math
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from ..context import DeterminismContext, resolve_context
from ..ir.dtypes import DType


@dataclass(frozen=True)
class Initializer:
    """
    Recipe for a parameter's initial value. Randomness is drawn when
    `generate` runs, from `seed` if given, else from the determinism context.
    """

    kind: str
    scale: float = 1.0
    output_rank: int = 1
    filter_rank: int = 0
    seed: Optional[int] = None
    value: float = 0.0

    def _fans(self, shape: Tuple[int, ...]) -> Tuple[int, int]:
        rank = len(shape)
        filter_rank = min(self.filter_rank, rank)
        output_rank = min(self.output_rank, rank - filter_rank)
        receptive = math.prod(shape[rank - filter_rank :])
        fan_out = math.prod(shape[:output_rank]) * receptive
        fan_in = math.prod(shape[output_rank : rank - filter_rank]) * receptive
        return fan_in, fan_out

    def generate(
        self,
        shape: Tuple[int, ...],
        dtype: DType = DType.FP32,
        context: Optional[DeterminismContext] = None,
    ) -> np.ndarray:
        if self.kind == "constant":
            return np.full(shape, self.value, dtype=dtype.numpy)

        if self.seed is not None:
            rng = np.random.default_rng(self.seed)
        else:
            rng = resolve_context(context).rng()

        if self.kind == "uniform":
            data = rng.uniform(-self.scale, self.scale, size=shape)
        elif self.kind == "normal":
            data = rng.normal(0.0, self.scale, size=shape)
        elif self.kind == "glorot_uniform":
            fan_in, fan_out = self._fans(shape)
            limit = self.scale * math.sqrt(6.0 / (fan_in + fan_out))
            data = rng.uniform(-limit, limit, size=shape)
        elif self.kind == "glorot_normal":
            fan_in, fan_out = self._fans(shape)
            std = self.scale * math.sqrt(2.0 / (fan_in + fan_out))
            data = rng.normal(0.0, std, size=shape)
        else:
            raise ValueError(f"Unknown initializer kind: {self.kind}")
        return data.astype(dtype.numpy)


def constant_initializer(value: float = 0.0) -> Initializer:
    return Initializer("constant", value=value)


def uniform_initializer(scale: float = 0.05, seed: Optional[int] = None) -> Initializer:
    return Initializer("uniform", scale=scale, seed=seed)


def normal_initializer(scale: float = 1.0, seed: Optional[int] = None) -> Initializer:
    return Initializer("normal", scale=scale, seed=seed)


def glorot_uniform_initializer(
    scale: float = 1.0,
    output_rank: int = 1,
    filter_rank: int = 0,
    seed: Optional[int] = None,
) -> Initializer:
    return Initializer(
        "glorot_uniform",
        scale=scale,
        output_rank=output_rank,
        filter_rank=filter_rank,
        seed=seed,
    )


def glorot_normal_initializer(
    scale: float = 1.0,
    output_rank: int = 1,
    filter_rank: int = 0,
    seed: Optional[int] = None,
) -> Initializer:
    return Initializer(
        "glorot_normal",
        scale=scale,
        output_rank=output_rank,
        filter_rank=filter_rank,
        seed=seed,
    )
