"""
TCP stream reassembly for SIP.

SIP over TCP is a byte stream: one message can span several segments.
Bytes are accumulated per connection direction in a caller-owned table
until the buffer holds a complete message:

- the header block is terminated by a blank line (CRLF CRLF), and
- if a Content-Length header is present, at least that many body bytes
  follow the terminator.

Segments are appended in arrival order. Retransmissions and out-of-order
segments are not handled, and there is no timeout: a flow that never
completes keeps its table entry until the table is discarded.
"""
from __future__ import annotations

import re
from typing import Any, MutableMapping, Optional

HEADER_TERMINATOR = b"\r\n\r\n"

_CONTENT_LENGTH_RE = re.compile(r"Content-Length:\s*(\d+)", re.IGNORECASE | re.ASCII)

StreamTable = MutableMapping[str, bytes]


def make_stream_key(saddr: Any, sport: Any, daddr: Any, dport: Any) -> str:
    """Identity of one TCP flow direction: '<saddr>:<sport>-<daddr>:<dport>'."""
    return f"{saddr}:{sport}-{daddr}:{dport}"


def find_content_length(headers: str) -> Optional[int]:
    """Value of the first Content-Length header in ``headers``, if any."""
    match = _CONTENT_LENGTH_RE.search(headers)
    if match is None:
        return None
    return int(match.group(1))


def stream_key_for(packet: Any) -> Optional[str]:
    """Connection key of a decoded TCP packet, or None if a field is missing."""
    ip = getattr(packet, "payload", None)
    tcp = getattr(ip, "payload", None)
    saddr = getattr(ip, "saddr", None)
    daddr = getattr(ip, "daddr", None)
    sport = getattr(tcp, "sport", None)
    dport = getattr(tcp, "dport", None)
    if not saddr or not daddr or not sport or not dport:
        return None
    return make_stream_key(saddr, sport, daddr, dport)


def reassemble_tcp_stream(packet: Any, tcp_streams: StreamTable) -> Optional[str]:
    """
    Feed one TCP segment into ``tcp_streams`` and return a complete SIP
    message once one is available.

    Returns None while the message is still incomplete, and also when the
    packet lacks an address, a port or a segment payload (the table is
    left untouched in that case).

    When the headers carry no Content-Length the message ends at the blank
    line: anything already received past it is dropped along with the
    table entry. With a Content-Length the whole buffer is returned as
    soon as the body is long enough, including any surplus bytes.
    """
    key = stream_key_for(packet)
    segment = getattr(getattr(getattr(packet, "payload", None), "payload", None), "payload", None)
    if key is None or segment is None:
        return None

    # Decoded segments carry bytes in .data; a bare bytes-like payload is also accepted
    data = getattr(segment, "data", segment)
    if data is None:
        return None

    buffer = tcp_streams.get(key, b"") + bytes(data)

    header_end = buffer.find(HEADER_TERMINATOR)
    if header_end == -1:
        tcp_streams[key] = buffer
        return None

    headers = buffer[:header_end].decode("utf-8", errors="replace")
    content_length = find_content_length(headers)
    body_start = header_end + len(HEADER_TERMINATOR)

    if content_length is None:
        tcp_streams.pop(key, None)
        return buffer[:body_start].decode("utf-8", errors="replace")

    if len(buffer) - body_start >= content_length:
        tcp_streams.pop(key, None)
        return buffer.decode("utf-8", errors="replace")

    tcp_streams[key] = buffer
    return None
