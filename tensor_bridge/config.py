import os

DEBUG_EXECUTION = False
DEBUG_DETAILED = False
DEBUG_MEMORY = False

# Values built from caller buffers copy them unless the caller opts into borrowing.
DEFAULT_COPY_MODE = "copy"

# Bumped whenever the graph metadata stored by persistence.save changes shape.
PERSISTENCE_FORMAT_VERSION = 1

# "cpu", "cpu_torch", "gpu" or "gpu:N". Empty means ask torch.
DEFAULT_DEVICE_OVERRIDE = os.environ.get("TENSOR_BRIDGE_DEVICE", "")
