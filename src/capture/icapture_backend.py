"""
Capture backend interface definition.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

try:
    from capture.packet_decoder import DLT_EN10MB
except ImportError:
    from .packet_decoder import DLT_EN10MB

DEFAULT_SIP_FILTER = "udp port 5060 or tcp port 5060"

PacketHandler = Callable[[bytes], None]


@dataclass
class CaptureConfig:
    """Capture configuration."""
    interface: str
    filter: Optional[str] = DEFAULT_SIP_FILTER
    snaplen: int = 65535
    promisc: bool = True
    timeout_ms: int = 1000
    buffer_size: int = 10000
    monitor: bool = False  # Monitor mode for WiFi


class ICaptureSession(ABC):
    """An open capture: delivers raw frames to registered handlers until closed."""

    link_type: int = DLT_EN10MB
    """libpcap DLT_* of the frames passed to handlers"""

    @abstractmethod
    def on(self, event: str, handler: PacketHandler) -> None:
        """Register a handler for ``event``. Only 'packet' is supported."""
        pass

    @abstractmethod
    def close(self) -> Dict[str, Any]:
        """Stop capturing, return session metadata."""
        pass

    @abstractmethod
    def get_stats(self) -> Dict[str, Any]:
        """Get current capture statistics."""
        pass


class ICaptureBackend(ABC):
    """Capture backend interface."""

    @abstractmethod
    def open(self, config: CaptureConfig) -> ICaptureSession:
        """Open a capture session on ``config.interface``."""
        pass

    @abstractmethod
    def list_interfaces(self) -> List[Dict]:
        """List available network interfaces."""
        pass
