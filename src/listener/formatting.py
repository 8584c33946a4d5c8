"""
Display formatting for SIP messages.
"""
import re
from typing import Optional

_LINE_BREAK_RE = re.compile(r"\r?\n")


def format_sip_message(message: Optional[str]) -> str:
    """Render ``message`` as '1: ...' numbered lines, skipping blank ones."""
    if not message:
        return ""
    lines = [line for line in _LINE_BREAK_RE.split(message) if line.strip()]
    return "\n".join(f"{index}: {line}" for index, line in enumerate(lines, start=1))
