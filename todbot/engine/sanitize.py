"""
todbot.engine.sanitize — User Text Normalization
=================================================

Everything a member types passes through :func:`sanitize` before it is
stored or echoed back.  The result never exceeds ``max_length`` and
sanitizing twice gives the same string as sanitizing once.
"""

from __future__ import annotations

import re

# C0 controls except TAB and LF, plus DEL.  CR is folded into LF first.
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_LINE_ENDINGS = re.compile(r"\r\n?")


def sanitize(text: str, max_length: int | None = None) -> str:
    """Strip control characters, normalize newlines, trim, and truncate.

    Trimming runs again after truncation so a cut that lands on whitespace
    doesn't leave a trailing blank.
    """
    if not isinstance(text, str):
        return ""

    cleaned = _CONTROL_CHARS.sub("", _LINE_ENDINGS.sub("\n", text)).strip()
    if max_length is not None and max_length > 0 and len(cleaned) > max_length:
        cleaned = cleaned[:max_length].strip()
    return cleaned
