# Custom exceptions

"""
Custom exceptions for sipwatch capture and extraction.

Missing fields in a decoded packet and still-incomplete TCP streams are
not errors; those are reported as a ``None`` result.
"""

class CaptureError(Exception):
    """Base exception for all capture-related errors."""
    pass

class SessionError(CaptureError):
    """Raised when a capture session cannot be opened (bad interface or filter)."""
    pass

class CloseError(CaptureError):
    """Raised when a capture session fails to close."""
    pass

class DecodeError(CaptureError):
    """Raised when a raw frame cannot be decoded."""
    pass

class ExtractionError(CaptureError):
    """Raised when a packet payload cannot be converted to text."""
    pass
