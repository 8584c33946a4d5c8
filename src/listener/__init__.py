"""
SIP message recovery: classification, extraction, TCP reassembly,
formatting, and the capture orchestrator that ties them together.
"""

from .classifier import classify_sip_message
from .extractor import extract_sip_message
from .reassembly import reassemble_tcp_stream, make_stream_key
from .formatting import format_sip_message
from .packet_capture import SipPacketCapture

__all__ = [
    'classify_sip_message',
    'extract_sip_message',
    'reassemble_tcp_stream',
    'make_stream_key',
    'format_sip_message',
    'SipPacketCapture',
]
