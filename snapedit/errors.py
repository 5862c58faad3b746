"""Error taxonomy for the transform and history engines."""

import enum


class ErrorKind(enum.Enum):
    INVALID_DIMENSION = "invalid_dimension"
    INVALID_PARAMETER = "invalid_parameter"
    UNSUPPORTED_FORMAT = "unsupported_format"
    TRANSPARENCY_REQUIRED = "transparency_required"
    IMMUTABILITY_VIOLATION = "immutability_violation"
    CODEC_ERROR = "codec_error"


class TransformError(Exception):
    """Base class for user-facing transform failures.

    Every subclass pins a single ErrorKind so callers can branch on `kind`
    instead of on the exception type.
    """
    kind: ErrorKind = ErrorKind.INVALID_PARAMETER

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class InvalidDimension(TransformError):
    kind = ErrorKind.INVALID_DIMENSION


class InvalidParameter(TransformError):
    kind = ErrorKind.INVALID_PARAMETER


class UnsupportedFormat(TransformError):
    kind = ErrorKind.UNSUPPORTED_FORMAT


class TransparencyRequired(TransformError):
    kind = ErrorKind.TRANSPARENCY_REQUIRED


class CodecError(TransformError):
    """Decode/encode failure reported by Pillow (or a registered plugin)."""
    kind = ErrorKind.CODEC_ERROR


class ImmutabilityViolation(RuntimeError):
    """A transform changed its input buffer.

    This is a programming error, not an operation failure, and it does not
    derive from TransformError: `except TransformError` never catches it.
    """
    kind = ErrorKind.IMMUTABILITY_VIOLATION

    def __init__(self, operation: str, details: str):
        super().__init__(f"{operation} mutated its input: {details}")
        self.operation = operation
        self.details = details
