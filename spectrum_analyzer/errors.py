"""Exception types raised by the analyzer."""


class AnalyzerError(Exception):
    """Base class for analyzer failures."""


class DeviceError(AnalyzerError):
    """No usable input device, or the input stream could not be opened."""


class TransformError(AnalyzerError, ValueError):
    """Buffer handed to the transform does not match its plan length."""


class TransportClosedError(AnalyzerError):
    """Frame sent after the consumer side of the transport was closed."""
