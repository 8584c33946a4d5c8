"""
Raw frame decoding (L2/L3/L4).

Turns captured frame bytes into the nested layer chain from
``models.packet``:

    DecodedPacket -> IPv4Packet -> TcpSegment/UdpDatagram -> PayloadData

Only headers are parsed; application bytes are handed over untouched.
Frames that are too short for the headers they announce raise DecodeError.
Non-IPv4 frames (ARP, IPv6, ...) decode to a DecodedPacket whose payload is
the raw link payload.
"""
from __future__ import annotations

import struct
from typing import Optional, Tuple

try:
    from ..models.packet import (
        DecodedPacket, IPv4Packet, TcpSegment, UdpDatagram, PayloadData,
        IP_PROTO_TCP, IP_PROTO_UDP,
    )
    from .exceptions import DecodeError
except ImportError:
    from models.packet import (
        DecodedPacket, IPv4Packet, TcpSegment, UdpDatagram, PayloadData,
        IP_PROTO_TCP, IP_PROTO_UDP,
    )
    from capture.exceptions import DecodeError

# Link type constants (libpcap DLT_*)
DLT_NULL = 0
DLT_EN10MB = 1
DLT_RAW = 12
DLT_LINUX_SLL = 113

# EtherType constants
ETH_TYPE_IPV4 = 0x0800
ETH_TYPE_ARP = 0x0806
ETH_TYPE_IPV6 = 0x86DD
ETH_TYPE_VLAN = 0x8100
ETH_TYPE_QINQ = 0x88A8

# BSD loopback address families
AF_INET = 2


def decode_frame(raw: bytes, link_type: int = DLT_EN10MB) -> DecodedPacket:
    """Decode raw frame bytes captured with the given link type."""
    if raw is None:
        raise DecodeError("No frame data")
    data = bytes(raw)
    cap_len = len(data)

    if link_type == DLT_EN10MB:
        if cap_len < 14:
            raise DecodeError(f"Ethernet frame too short ({cap_len} bytes)")
        dst_mac = _format_mac(data[0:6])
        src_mac = _format_mac(data[6:12])
        ethertype = struct.unpack_from("!H", data, 12)[0]
        offset = 14

        # VLAN tags (single or double)
        for _ in range(2):
            if ethertype in (ETH_TYPE_VLAN, ETH_TYPE_QINQ):
                if cap_len < offset + 4:
                    raise DecodeError("Truncated VLAN tag")
                ethertype = struct.unpack_from("!H", data, offset + 2)[0]
                offset += 4
            else:
                break

        return DecodedPacket(
            link_type=link_type,
            payload=_decode_network(data, offset, ethertype == ETH_TYPE_IPV4),
            src_mac=src_mac,
            dst_mac=dst_mac,
            ethertype=ethertype,
        )

    if link_type == DLT_LINUX_SLL:
        if cap_len < 16:
            raise DecodeError(f"Linux SLL frame too short ({cap_len} bytes)")
        ethertype = struct.unpack_from("!H", data, 14)[0]
        return DecodedPacket(
            link_type=link_type,
            payload=_decode_network(data, 16, ethertype == ETH_TYPE_IPV4),
            ethertype=ethertype,
        )

    if link_type == DLT_RAW:
        if cap_len < 1:
            raise DecodeError("Empty raw IP frame")
        is_ipv4 = (data[0] >> 4) == 4
        return DecodedPacket(
            link_type=link_type,
            payload=_decode_network(data, 0, is_ipv4),
            ethertype=ETH_TYPE_IPV4 if is_ipv4 else None,
        )

    if link_type == DLT_NULL:
        if cap_len < 4:
            raise DecodeError(f"Loopback frame too short ({cap_len} bytes)")
        family_le = struct.unpack_from("<I", data, 0)[0]
        family_be = struct.unpack_from(">I", data, 0)[0]
        is_ipv4 = AF_INET in (family_le, family_be)
        return DecodedPacket(
            link_type=link_type,
            payload=_decode_network(data, 4, is_ipv4),
            ethertype=ETH_TYPE_IPV4 if is_ipv4 else None,
        )

    raise DecodeError(f"Unsupported link type {link_type}")


def _decode_network(data: bytes, offset: int, is_ipv4: bool):
    if not is_ipv4:
        rest = data[offset:]
        return PayloadData(rest) if rest else None

    saddr, daddr, ip_proto, ttl, l4_offset, end, frag_offset = _parse_ipv4(data, offset)

    if frag_offset:
        # Non-first fragment: no transport header to read
        transport = PayloadData(data[l4_offset:end]) if end > l4_offset else None
    elif ip_proto == IP_PROTO_TCP:
        transport = _parse_tcp(data, l4_offset, end)
    elif ip_proto == IP_PROTO_UDP:
        transport = _parse_udp(data, l4_offset, end)
    else:
        transport = PayloadData(data[l4_offset:end]) if end > l4_offset else None

    return IPv4Packet(saddr=saddr, daddr=daddr, protocol=ip_proto, ttl=ttl, payload=transport)


def _parse_ipv4(data: bytes, offset: int) -> Tuple[str, str, int, int, int, int, int]:
    cap_len = len(data)
    if offset + 20 > cap_len:
        raise DecodeError("Truncated IPv4 header")
    vihl = data[offset]
    version = vihl >> 4
    ihl = (vihl & 0x0F) * 4
    if version != 4 or ihl < 20:
        raise DecodeError(f"Malformed IPv4 header (version={version}, ihl={ihl})")
    if offset + ihl > cap_len:
        raise DecodeError("Truncated IPv4 options")

    total_length = struct.unpack_from("!H", data, offset + 2)[0]
    frag_offset = struct.unpack_from("!H", data, offset + 6)[0] & 0x1FFF
    ttl = data[offset + 8]
    ip_proto = data[offset + 9]
    saddr = _format_ipv4(data[offset + 12:offset + 16])
    daddr = _format_ipv4(data[offset + 16:offset + 20])

    # Trim Ethernet padding; a zero total length (segmentation offload) means "to the end"
    end = cap_len
    if ihl <= total_length and offset + total_length <= cap_len:
        end = offset + total_length
    return saddr, daddr, ip_proto, ttl, offset + ihl, end, frag_offset


def _parse_tcp(data: bytes, offset: int, end: int) -> TcpSegment:
    if offset + 20 > end:
        raise DecodeError("Truncated TCP header")
    sport, dport, seq, ack = struct.unpack_from("!HHII", data, offset)
    data_offset = (data[offset + 12] >> 4) * 4
    if data_offset < 20 or offset + data_offset > end:
        raise DecodeError(f"Malformed TCP data offset ({data_offset})")
    flags = data[offset + 13]
    body = data[offset + data_offset:end]
    return TcpSegment(
        sport=sport,
        dport=dport,
        seq=seq,
        ack=ack,
        flags=flags,
        payload=PayloadData(body) if body else None,
    )


def _parse_udp(data: bytes, offset: int, end: int) -> UdpDatagram:
    if offset + 8 > end:
        raise DecodeError("Truncated UDP header")
    sport, dport, length = struct.unpack_from("!HHH", data, offset)
    if length >= 8:
        end = min(end, offset + length)
    body = data[offset + 8:end]
    return UdpDatagram(
        sport=sport,
        dport=dport,
        length=length,
        payload=PayloadData(body) if body else None,
    )


def _format_ipv4(addr: bytes) -> str:
    return "{}.{}.{}.{}".format(addr[0], addr[1], addr[2], addr[3])


def _format_mac(addr: bytes) -> Optional[str]:
    if len(addr) != 6:
        return None
    return ":".join(f"{b:02x}" for b in addr)
