from .cpu_numpy import *
from .torch_kernels import *
