"""
Decoded packet data models.
"""

from .packet import (
    DecodedPacket,
    IPv4Packet,
    TcpSegment,
    UdpDatagram,
    PayloadData,
    SipMessageEvent,
    unwrap_layer,
    IP_PROTO_TCP,
    IP_PROTO_UDP,
)

__all__ = [
    'DecodedPacket',
    'IPv4Packet',
    'TcpSegment',
    'UdpDatagram',
    'PayloadData',
    'SipMessageEvent',
    'unwrap_layer',
    'IP_PROTO_TCP',
    'IP_PROTO_UDP',
]
