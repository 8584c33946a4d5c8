# Packet data model
"""
Decoded packet models for sipwatch.

THESE MODELS ARE IMMUTABLE - the listener only ever reads them.
A decoded frame is a chain of layers linked through ``payload``:

    DecodedPacket -> IPv4Packet -> TcpSegment/UdpDatagram -> PayloadData

Consumers walk the chain by attribute name (``payload``, ``data``,
``protocol``, ``saddr`` ...) rather than by type, so any object with the
same shape can stand in for a decoded packet.
"""

from dataclasses import dataclass
from typing import Any, Optional

# IP protocol tags carried by IPv4Packet.protocol
IP_PROTO_TCP = 6
IP_PROTO_UDP = 17


@dataclass(frozen=True)
class PayloadData:
    """Innermost layer: application bytes, not decoded any further."""
    data: bytes = b""


@dataclass(frozen=True)
class TcpSegment:
    sport: int
    dport: int
    seq: int = 0
    ack: int = 0
    flags: int = 0
    payload: Optional[PayloadData] = None


@dataclass(frozen=True)
class UdpDatagram:
    sport: int
    dport: int
    length: int = 0
    payload: Optional[PayloadData] = None


@dataclass(frozen=True)
class IPv4Packet:
    """
    Network layer.

    ``protocol`` is the IP protocol number (6 = TCP, 17 = UDP) and is what
    the listener branches on.
    """
    saddr: str
    daddr: str
    protocol: int
    ttl: int = 0
    payload: Optional[Any] = None
    """TcpSegment, UdpDatagram, or PayloadData for other protocols"""


@dataclass(frozen=True)
class DecodedPacket:
    """
    Frame after decoding.

    Link-layer details are flattened onto this object; ``payload`` is the
    network layer (IPv4Packet), or a PayloadData leaf holding the raw link
    payload for frames that are not IPv4 (ARP, IPv6, ...).
    """
    link_type: int
    payload: Optional[Any] = None
    src_mac: Optional[str] = None
    dst_mac: Optional[str] = None
    ethertype: Optional[int] = None

    @property
    def transport_protocol(self) -> Optional[int]:
        """IP protocol tag of the network layer, if there is one."""
        return getattr(self.payload, "protocol", None)


@dataclass(frozen=True)
class SipMessageEvent:
    """What the listener emits for every SIP message it recovers."""
    message: str
    """Raw SIP text as extracted or reassembled"""

    formatted: str
    """Numbered-line rendering of ``message``"""

    transport: str
    """'TCP', 'UDP' or 'OTHER'"""

    stream_key: Optional[str] = None
    """Connection key for reassembled TCP messages"""


def unwrap_layer(layer: Any) -> Optional[Any]:
    """Return the layer nested inside ``layer``, or None at the innermost layer."""
    if layer is None:
        return None
    return getattr(layer, "payload", None) or None
