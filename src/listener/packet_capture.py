"""
SIP capture orchestration.

SipPacketCapture opens a capture session, decodes every frame the session
delivers and routes it:

- TCP frames go through stream reassembly (the stream table lives here),
- everything else goes through single-packet extraction.

Recovered messages are formatted and handed to a sink. Decode and
extraction failures are logged and the frame is skipped; capture carries
on with the next frame.
"""
from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, Optional

from capture.exceptions import CloseError, ExtractionError, SessionError
from capture.icapture_backend import CaptureConfig, DEFAULT_SIP_FILTER, ICaptureBackend
from capture.packet_decoder import DLT_EN10MB, decode_frame
from models.packet import IP_PROTO_TCP, IP_PROTO_UDP, SipMessageEvent

from .extractor import extract_sip_message
from .formatting import format_sip_message
from .reassembly import reassemble_tcp_stream, stream_key_for

logger = logging.getLogger(__name__)

MessageSink = Callable[[SipMessageEvent], None]


def log_sink(event: SipMessageEvent) -> None:
    """Default sink: log the formatted message."""
    logger.info("SIP message (%s):\n%s", event.transport, event.formatted)


class SipPacketCapture:
    """
    Live SIP listener bound to one capture session.

    Args:
        backend: capture backend used to open the session
        interface: interface name to capture on
        filter: BPF filter expression
        decoder: callable mapping raw frame bytes to a decoded packet;
            defaults to decode_frame with the session's link type
        sink: called with a SipMessageEvent for every recovered message

    Raises:
        SessionError: if the session cannot be opened
    """

    def __init__(self, backend: ICaptureBackend, interface: str,
                 filter: Optional[str] = DEFAULT_SIP_FILTER,
                 decoder: Optional[Callable[[bytes], Any]] = None,
                 sink: Optional[MessageSink] = None):
        self.interface = interface
        self.filter = filter
        self.decoder = decoder or self._decode_frame
        self.sink = sink or log_sink
        self.tcp_streams: Dict[str, bytes] = {}

        # Reentrant: a sink may read stats while handle_packet holds the lock
        self._lock = threading.RLock()
        self._stats = {
            'frames': 0,
            'decode_errors': 0,
            'extraction_errors': 0,
            'processing_errors': 0,
            'messages': 0,
            'no_message': 0,
        }

        config = CaptureConfig(interface=interface, filter=filter)
        try:
            self.session = backend.open(config)
        except Exception as e:
            logger.error("Failed to create capture session on '%s': %s", interface, e)
            raise SessionError(f"Failed to open capture on '{interface}': {e}") from e

        logger.info("Listening on %s with filter '%s'...", interface, filter)

    def start(self) -> bool:
        """Register for packets. Returns False if the session cannot deliver them."""
        on = getattr(self.session, 'on', None)
        if not callable(on):
            logger.error("Session 'on' method not available")
            return False
        on('packet', self.handle_packet)
        return True

    def stop(self) -> Optional[Dict[str, Any]]:
        """
        Close the session and return its metadata.

        Partially reassembled TCP streams are abandoned, not flushed.
        """
        try:
            metadata = self.session.close()
        except Exception as e:
            logger.error("Failed to close session: %s", e)
            raise CloseError("Failed to close session") from e

        if self.tcp_streams:
            logger.debug("Abandoning %d incomplete TCP stream(s)", len(self.tcp_streams))
        logger.info("Packet capture session stopped.")
        return metadata

    @property
    def stats(self) -> Dict[str, int]:
        with self._lock:
            stats = dict(self._stats)
            stats['pending_streams'] = len(self.tcp_streams)
        return stats

    def handle_packet(self, raw_frame: bytes) -> Optional[SipMessageEvent]:
        """Process one raw frame to completion. Never raises."""
        with self._lock:
            self._stats['frames'] += 1
            logger.debug("Raw packet captured.")

            try:
                packet = self.decoder(raw_frame)
            except Exception as e:
                self._stats['decode_errors'] += 1
                logger.error("Failed to decode packet: %s", e)
                return None

            try:
                return self._route(packet)
            except ExtractionError as e:
                self._stats['extraction_errors'] += 1
                logger.error("Failed to extract SIP message: %s", e)
            except Exception:
                self._stats['processing_errors'] += 1
                logger.exception("Failed to process packet")
            return None

    def _decode_frame(self, raw_frame: bytes):
        link_type = getattr(self.session, 'link_type', DLT_EN10MB)
        return decode_frame(raw_frame, link_type)

    def _route(self, packet) -> Optional[SipMessageEvent]:
        protocol = getattr(getattr(packet, 'payload', None), 'protocol', None)

        if protocol == IP_PROTO_TCP:
            message = reassemble_tcp_stream(packet, self.tcp_streams)
            if message is None:
                return None
            return self._emit(message, 'TCP', stream_key_for(packet))

        message = extract_sip_message(packet)
        if message is None:
            self._stats['no_message'] += 1
            logger.warning("No SIP message found in the packet.")
            return None
        return self._emit(message, 'UDP' if protocol == IP_PROTO_UDP else 'OTHER')

    def _emit(self, message: str, transport: str,
              stream_key: Optional[str] = None) -> SipMessageEvent:
        event = SipMessageEvent(
            message=message,
            formatted=format_sip_message(message),
            transport=transport,
            stream_key=stream_key,
        )
        self._stats['messages'] += 1
        logger.debug("Extracted SIP message: %r", message)
        self.sink(event)
        return event
