"""
SIP message recognition.
"""
from typing import Optional

SIP_START_TOKENS = ("REGISTER", "UNREGISTER", "SIP/2.0")


def classify_sip_message(candidate: bytes) -> Optional[str]:
    """
    Return the stripped text of ``candidate`` if it starts a SIP message.

    Recognized starts are a REGISTER or UNREGISTER request line, or a
    SIP/2.0 status line. The match is a case-sensitive prefix test.
    Returns None for anything else.
    """
    text = candidate.decode("utf-8", errors="replace").strip()
    if text.startswith(SIP_START_TOKENS):
        return text
    return None
