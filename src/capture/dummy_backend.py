"""
Dummy capture backend for testing without a capture driver.

Generates synthetic SIP traffic: UDP requests and responses, a TCP
REGISTER split across several segments, and the odd non-SIP datagram.
"""
import itertools
import logging
import threading
import time
from typing import Any, Dict, Iterable, List, Optional

try:
    from capture.icapture_backend import ICaptureBackend, ICaptureSession, CaptureConfig, PacketHandler
    from capture.frame_builder import build_tcp_frame, build_udp_frame, split_payload
except ImportError:
    from .icapture_backend import ICaptureBackend, ICaptureSession, CaptureConfig, PacketHandler
    from .frame_builder import build_tcp_frame, build_udp_frame, split_payload

logger = logging.getLogger(__name__)

DUMMY_INTERFACES = [
    {
        'id': 'dummy0',
        'name': 'dummy0',
        'description': 'Dummy Ethernet Interface',
        'is_up': True,
        'mac': '00:11:22:33:44:55',
        'ips': ['192.168.1.100', '10.0.0.1'],
    },
    {
        'id': 'dummy1',
        'name': 'dummy1',
        'description': 'Dummy Wi-Fi Interface',
        'is_up': True,
        'mac': 'AA:BB:CC:DD:EE:FF',
        'ips': ['192.168.1.101'],
    },
]

PHONE_IP = '192.168.1.100'
REGISTRAR_IP = '192.168.1.1'

_SDP_BODY = (
    "v=0\r\n"
    "o=alice 2890844526 2890844526 IN IP4 192.168.1.100\r\n"
    "s=-\r\n"
    "c=IN IP4 192.168.1.100\r\n"
    "t=0 0\r\n"
    "m=audio 49170 RTP/AVP 0\r\n"
)


def _register(cseq: int, transport: str, body: str = "") -> bytes:
    lines = [
        "REGISTER sip:example.com SIP/2.0",
        f"Via: SIP/2.0/{transport} {PHONE_IP}:5060;branch=z9hG4bK-{cseq:06d}",
        "From: <sip:alice@example.com>;tag=1928301774",
        "To: <sip:alice@example.com>",
        f"Call-ID: a84b4c76e66710-{cseq}@{PHONE_IP}",
        f"CSeq: {cseq} REGISTER",
        f"Contact: <sip:alice@{PHONE_IP}:5060>",
    ]
    if body:
        lines.append("Content-Type: application/sdp")
    lines.append(f"Content-Length: {len(body.encode('utf-8'))}")
    return ("\r\n".join(lines) + "\r\n\r\n" + body).encode("utf-8")


def _ok(cseq: int) -> bytes:
    return (
        "SIP/2.0 200 OK\r\n"
        f"Via: SIP/2.0/UDP {PHONE_IP}:5060;branch=z9hG4bK-{cseq:06d}\r\n"
        f"CSeq: {cseq} REGISTER\r\n"
        "Content-Length: 0\r\n"
        "\r\n"
    ).encode("utf-8")


def sip_traffic(segment_size: int = 96) -> Iterable[bytes]:
    """Yield an endless stream of synthetic frames, one scenario at a time."""
    tcp_seq = 1000
    for cseq in itertools.count(1):
        yield build_udp_frame(PHONE_IP, REGISTRAR_IP, 5060, 5060, _register(cseq, "UDP"))
        yield build_udp_frame(REGISTRAR_IP, PHONE_IP, 5060, 5060, _ok(cseq))

        message = _register(cseq, "TCP", _SDP_BODY)
        for chunk in split_payload(message, segment_size):
            yield build_tcp_frame(PHONE_IP, REGISTRAR_IP, 49152, 5060, chunk, seq=tcp_seq)
            tcp_seq += len(chunk)

        yield build_udp_frame(PHONE_IP, REGISTRAR_IP, 40000, 5060, b"GET / HTTP/1.1\r\n\r\n")


class DummySession(ICaptureSession):
    """Replays frames to registered handlers from a background thread."""

    def __init__(self, config: CaptureConfig, frames: Iterable[bytes], interval: float):
        self.config = config
        self.session_id = f"dummy_{int(time.time())}"
        self._frames = iter(frames)
        self._interval = interval
        self._handlers: List[PacketHandler] = []
        self._lock = threading.RLock()
        self._stop_event = threading.Event()
        self._ready = threading.Event()
        self._finished = threading.Event()
        self._stats = {
            'packets_total': 0,
            'bytes_total': 0,
            'handler_errors': 0,
            'start_time': time.time(),
        }
        self._thread = threading.Thread(target=self._generate, daemon=True)
        self._thread.start()

    def _generate(self):
        """Deliver frames once a handler is registered."""
        while not self._ready.wait(0.05):
            if self._stop_event.is_set():
                return

        for raw_frame in self._frames:
            if self._stop_event.is_set():
                break
            with self._lock:
                handlers = list(self._handlers)
                self._stats['packets_total'] += 1
                self._stats['bytes_total'] += len(raw_frame)

            for handler in handlers:
                try:
                    handler(raw_frame)
                except Exception:
                    with self._lock:
                        self._stats['handler_errors'] += 1
                    logger.exception("Packet handler failed")

            if self._interval:
                self._stop_event.wait(self._interval)

        self._finished.set()

    def on(self, event: str, handler: PacketHandler) -> None:
        if event != 'packet':
            raise ValueError(f"Unsupported event '{event}'")
        with self._lock:
            self._handlers.append(handler)
        self._ready.set()

    def wait_finished(self, timeout: Optional[float] = None) -> bool:
        """Block until a finite frame source has been fully delivered."""
        return self._finished.wait(timeout)

    def close(self) -> Dict[str, Any]:
        self._stop_event.set()
        self._thread.join(timeout=1.0)
        with self._lock:
            self._handlers.clear()

        return {
            'session_id': self.session_id,
            'backend': 'dummy',
            'interface': self.config.interface,
            'start_ts': self._stats['start_time'],
            'end_ts': time.time(),
            'config': {'interface': self.config.interface, 'filter': self.config.filter},
            'stats_summary': self.get_stats(),
        }

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            return self._stats.copy()


class DummyBackend(ICaptureBackend):
    """
    Dummy backend that generates synthetic SIP frames.

    Pass ``frames`` to replay a fixed sequence instead of the endless
    built-in traffic; ``interval`` is the pause between frames in seconds.
    """

    def __init__(self, frames: Optional[Iterable[bytes]] = None, interval: float = 0.2):
        self._frames = frames
        self._interval = interval

    def list_interfaces(self) -> List[Dict]:
        """Return dummy interfaces."""
        return [dict(iface) for iface in DUMMY_INTERFACES]

    def open(self, config: CaptureConfig) -> DummySession:
        names = [iface['name'] for iface in DUMMY_INTERFACES]
        if config.interface not in names:
            raise ValueError(f"Unknown dummy interface '{config.interface}' (expected one of {', '.join(names)})")

        frames = self._frames if self._frames is not None else sip_traffic()
        return DummySession(config, frames, self._interval)
