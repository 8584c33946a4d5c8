"""
Live packet capture subsystem.
"""

from .icapture_backend import ICaptureBackend, ICaptureSession, CaptureConfig, DEFAULT_SIP_FILTER
from .exceptions import CaptureError, SessionError, CloseError, DecodeError, ExtractionError
from .packet_decoder import decode_frame
from .scapy_backend import ScapyBackend
from .dummy_backend import DummyBackend

__all__ = [
    'ICaptureBackend',
    'ICaptureSession',
    'CaptureConfig',
    'DEFAULT_SIP_FILTER',
    'CaptureError',
    'SessionError',
    'CloseError',
    'DecodeError',
    'ExtractionError',
    'decode_frame',
    'ScapyBackend',
    'DummyBackend',
]
