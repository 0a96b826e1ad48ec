from .atomic_types import OpType
from .initializers import (
    Initializer,
    constant_initializer,
    glorot_normal_initializer,
    glorot_uniform_initializer,
    normal_initializer,
    uniform_initializer,
)
from .library import (
    alias,
    constant,
    element_times,
    exp,
    input_variable,
    minus,
    negate,
    parameter,
    plus,
    relu,
    sigmoid,
    tanh,
    times,
)
