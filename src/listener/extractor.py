"""
SIP extraction from single (non-TCP) packets.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

from capture.exceptions import ExtractionError
from models.packet import unwrap_layer

from .classifier import classify_sip_message

logger = logging.getLogger(__name__)


def innermost_layer(packet: Any) -> Optional[Any]:
    """Follow the ``payload`` chain from ``packet.payload`` to its last layer."""
    layer = unwrap_layer(packet)
    while layer is not None:
        inner = unwrap_layer(layer)
        if inner is None:
            break
        layer = inner
    return layer


def extract_sip_message(packet: Any) -> Optional[str]:
    """
    Return the SIP message carried by ``packet``, or None.

    Raises ExtractionError if the innermost payload cannot be turned into
    bytes; missing layers or data are not errors.
    """
    layer = innermost_layer(packet)
    data = getattr(layer, "data", None)
    if data is None:
        return None

    try:
        payload = bytes(data)
    except Exception as e:
        logger.error("Error extracting SIP message: %s", e)
        raise ExtractionError(f"Cannot read packet payload: {e}") from e

    return classify_sip_message(payload)
