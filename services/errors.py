"""
Error types for the recognition pipeline.

InitializationError   model or capture device unavailable; session stops
DetectionError        one detect call failed; logged, loop keeps going
StoreError            member store read/write failed; surfaced, never retried
ValidationError       bad member input

"No match" is a normal outcome, not an exception.
"""


class FaceRollError(Exception):
    """Base class for application errors."""


class InitializationError(FaceRollError):
    pass


class DetectionError(FaceRollError):
    pass


class StoreError(FaceRollError):
    pass


class ValidationError(FaceRollError):
    def __init__(self, message, details=None):
        super().__init__(message)
        self.details = details or []
