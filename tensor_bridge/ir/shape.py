import math
import numbers
from typing import Iterable, Iterator, Tuple, Union

from ..errors import ShapeMismatch


class Shape:
    """
    Ordered, immutable sequence of positive dimension sizes.

    A Value's shape is its variable's shape with one trailing dimension
    appended for the number of samples it holds.
    """

    __slots__ = ("_dims",)

    def __init__(self, dims: Iterable[int] = ()):
        dims = tuple(dims)
        for d in dims:
            # numpy integers register as Integral; numpy bools do not
            if isinstance(d, bool) or not isinstance(d, numbers.Integral):
                raise ShapeMismatch(f"Shape dimensions must be ints, got {dims}")
            if d <= 0:
                raise ShapeMismatch(f"Shape dimensions must be positive, got {dims}")
        self._dims: Tuple[int, ...] = tuple(int(d) for d in dims)

    @classmethod
    def of(cls, shape: Union["Shape", Iterable[int]]) -> "Shape":
        if isinstance(shape, Shape):
            return shape
        return cls(shape)

    @property
    def dims(self) -> Tuple[int, ...]:
        return self._dims

    @property
    def rank(self) -> int:
        return len(self._dims)

    @property
    def total_size(self) -> int:
        return math.prod(self._dims)

    def append(self, dim: int) -> "Shape":
        return Shape(self._dims + (dim,))

    def sub_shape(self, start: int = 0, end: int = None) -> "Shape":
        return Shape(self._dims[start:end])

    def is_prefix_of(self, other: "Shape") -> bool:
        other = Shape.of(other)
        return other.dims[: self.rank] == self._dims

    def __len__(self) -> int:
        return len(self._dims)

    def __iter__(self) -> Iterator[int]:
        return iter(self._dims)

    def __getitem__(self, idx):
        return self._dims[idx]

    def __eq__(self, other) -> bool:
        if isinstance(other, Shape):
            return self._dims == other._dims
        if isinstance(other, (tuple, list)):
            return self._dims == tuple(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._dims)

    def __repr__(self) -> str:
        return f"Shape{self._dims}"
