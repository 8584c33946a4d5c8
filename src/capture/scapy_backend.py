import logging
import threading
import time
from typing import Any, Dict, List

try:
    from capture.icapture_backend import ICaptureBackend, ICaptureSession, CaptureConfig, PacketHandler
    from capture.packet_decoder import DLT_EN10MB, DLT_LINUX_SLL, DLT_NULL, DLT_RAW
except ImportError:
    from .icapture_backend import ICaptureBackend, ICaptureSession, CaptureConfig, PacketHandler
    from .packet_decoder import DLT_EN10MB, DLT_LINUX_SLL, DLT_NULL, DLT_RAW

try:
    from scapy.all import AsyncSniffer, get_if_list, get_if_addr
    from scapy.interfaces import resolve_iface
    from scapy.layers.inet import IP
    from scapy.layers.l2 import CookedLinux, Ether, Loopback
    SCAPY_AVAILABLE = True
except ImportError:
    SCAPY_AVAILABLE = False

logger = logging.getLogger(__name__)

# How long open() waits for the sniffer thread to fail on a bad interface/filter
STARTUP_GRACE_S = 0.5


def _link_type_of(packet) -> int:
    if isinstance(packet, Ether):
        return DLT_EN10MB
    if isinstance(packet, CookedLinux):
        return DLT_LINUX_SLL
    if isinstance(packet, Loopback):
        return DLT_NULL
    if isinstance(packet, IP):
        return DLT_RAW
    return DLT_EN10MB


class ScapySession(ICaptureSession):
    """Live capture session backed by a Scapy AsyncSniffer."""

    def __init__(self, config: CaptureConfig):
        self.config = config
        self.session_id = f"scapy_{int(time.time())}_{hash(config.interface)}"
        self._handlers: List[PacketHandler] = []
        self._lock = threading.RLock()
        self._stats = {
            'packets_total': 0,
            'bytes_total': 0,
            'packets_unhandled': 0,
            'handler_errors': 0,
            'start_time': time.time(),
        }
        self._sniffer = AsyncSniffer(
            iface=config.interface,
            prn=self._packet_callback,
            filter=config.filter,
            store=False,  # Don't store in Scapy's memory
            promisc=config.promisc,
            monitor=config.monitor,
        )

    def start(self) -> None:
        self._sniffer.start()

        # Interface and BPF errors surface in the sniffer thread, not in start()
        deadline = time.time() + STARTUP_GRACE_S
        while True:
            error = getattr(self._sniffer, 'exception', None)
            if error is not None:
                raise error
            thread = getattr(self._sniffer, 'thread', None)
            if thread is not None and not thread.is_alive():
                raise RuntimeError(f"Sniffer on '{self.config.interface}' exited during startup")
            if time.time() >= deadline:
                break
            time.sleep(0.05)

    def _packet_callback(self, packet) -> None:
        """Callback for each captured packet, called from the sniffer thread."""
        with self._lock:
            self._stats['packets_total'] += 1
            self._stats['bytes_total'] += len(packet)
            handlers = list(self._handlers)
            self.link_type = _link_type_of(packet)

        if not handlers:
            with self._lock:
                self._stats['packets_unhandled'] += 1
            return

        raw_frame = bytes(packet)
        for handler in handlers:
            try:
                handler(raw_frame)
            except Exception:
                with self._lock:
                    self._stats['handler_errors'] += 1
                logger.exception("Packet handler failed")

    def on(self, event: str, handler: PacketHandler) -> None:
        if event != 'packet':
            raise ValueError(f"Unsupported event '{event}'")
        with self._lock:
            self._handlers.append(handler)

    def close(self) -> Dict[str, Any]:
        with self._lock:
            self._handlers.clear()
        if self._sniffer.running:
            self._sniffer.stop()

        return {
            'session_id': self.session_id,
            'backend': 'scapy',
            'interface': self.config.interface,
            'start_ts': self._stats['start_time'],
            'end_ts': time.time(),
            'config': {
                'interface': self.config.interface,
                'snaplen': self.config.snaplen,
                'promisc': self.config.promisc,
                'filter': self.config.filter,
            },
            'stats_summary': self.get_stats(),
        }

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            return self._stats.copy()


class ScapyBackend(ICaptureBackend):
    """Scapy-based capture backend."""

    def __init__(self):
        if not SCAPY_AVAILABLE:
            raise RuntimeError("Scapy not available. Install with: pip install scapy")

    def list_interfaces(self) -> List[Dict]:
        """List network interfaces using Scapy."""
        interfaces = []

        for iface_name in get_if_list():
            try:
                iface = resolve_iface(iface_name)
                address = get_if_addr(iface_name)
                interfaces.append({
                    'id': iface_name,
                    'name': iface_name,
                    'description': getattr(iface, 'description', None) or iface_name,
                    'is_up': True,  # Scapy doesn't easily check this
                    'mac': getattr(iface, 'mac', None),
                    'ips': [address] if address and address != '0.0.0.0' else [],
                })
            except Exception as e:
                logger.debug("Could not query interface %s: %s", iface_name, e)
                interfaces.append({
                    'id': iface_name,
                    'name': iface_name,
                    'description': iface_name,
                    'is_up': True,
                    'mac': None,
                    'ips': [],
                })

        return interfaces

    def open(self, config: CaptureConfig) -> ScapySession:
        session = ScapySession(config)
        session.start()
        logger.debug("Scapy session %s started on %s", session.session_id, config.interface)
        return session
