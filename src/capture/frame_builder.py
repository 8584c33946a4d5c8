"""
Synthetic Ethernet/IPv4/TCP/UDP frame construction.

Used by the dummy backend to generate SIP traffic and by tests.
Checksums are left at zero; the decoder does not verify them.
"""
import struct
from typing import Tuple

ETH_DST = b"\xaa\xbb\xcc\xdd\xee\xff"
ETH_SRC = b"\x11\x22\x33\x44\x55\x66"

TCP_FLAG_PSH = 0x08
TCP_FLAG_ACK = 0x10


def _ip_bytes(addr: str) -> Tuple[int, ...]:
    parts = tuple(int(p) for p in addr.split("."))
    if len(parts) != 4:
        raise ValueError(f"Not an IPv4 address: {addr}")
    return parts


def build_ipv4_frame(src_ip: str, dst_ip: str, protocol: int, l4: bytes,
                     ttl: int = 64, ethertype: int = 0x0800) -> bytes:
    """Wrap an L4 header + payload in IPv4 and Ethernet headers."""
    total_length = 20 + len(l4)
    ip_header = struct.pack(
        "!BBHHHBBH4B4B",
        0x45,           # Version 4, IHL 5
        0,              # DSCP/ECN
        total_length,
        0,              # Identification
        0x4000,         # Don't fragment
        ttl,
        protocol,
        0,              # Header checksum
        *_ip_bytes(src_ip),
        *_ip_bytes(dst_ip),
    )
    eth_header = ETH_DST + ETH_SRC + struct.pack("!H", ethertype)
    return eth_header + ip_header + l4


def build_udp_frame(src_ip: str, dst_ip: str, src_port: int, dst_port: int,
                    payload: bytes = b"") -> bytes:
    udp_header = struct.pack("!HHHH", src_port, dst_port, 8 + len(payload), 0)
    return build_ipv4_frame(src_ip, dst_ip, 17, udp_header + payload)


def build_tcp_frame(src_ip: str, dst_ip: str, src_port: int, dst_port: int,
                    payload: bytes = b"", seq: int = 1, ack: int = 0,
                    flags: int = TCP_FLAG_PSH | TCP_FLAG_ACK) -> bytes:
    data_offset = 5  # 20 bytes, no options
    tcp_header = struct.pack(
        "!HHIIHHHH",
        src_port,
        dst_port,
        seq,
        ack,
        (data_offset << 12) | flags,
        65535,  # Window
        0,      # Checksum
        0,      # Urgent pointer
    )
    return build_ipv4_frame(src_ip, dst_ip, 6, tcp_header + payload)


def split_payload(payload: bytes, chunk_size: int):
    """Split ``payload`` into consecutive chunks of at most ``chunk_size`` bytes."""
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    return [payload[i:i + chunk_size] for i in range(0, len(payload), chunk_size)]
