class TensorBridgeError(RuntimeError):
    """Base class for every error raised by the engine."""


class ShapeMismatch(TensorBridgeError, ValueError):
    """Raised when an element count or shape disagrees with what is declared."""


class UnsupportedDevice(TensorBridgeError):
    """Raised when storage is requested on an unknown or unavailable device."""


class UnboundInput(TensorBridgeError):
    """Raised when a required argument of a function has no value bound."""


class UnknownOutput(TensorBridgeError):
    """Raised when an output mapping names a variable the function does not produce."""


class DeviceMismatch(TensorBridgeError):
    """Raised when an input value lives on a device the evaluation cannot read."""


class PersistenceFormatError(TensorBridgeError):
    """Raised when a saved model is corrupt, truncated or of an unknown version."""


class KernelUnavailableError(TensorBridgeError):
    """Raised when a kernel is not available for the requested backend."""
