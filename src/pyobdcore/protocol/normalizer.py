"""Normalisation of raw adapter output into response lines."""

from __future__ import annotations

import re
from typing import Iterable, List, Optional, Union

from .constants import ERROR_TOKENS


def split_response_lines(raw: Optional[str]) -> List[str]:
    """Split raw adapter output into trimmed, non-empty lines.

    Carriage returns count as line breaks. Order is preserved and nothing
    besides whitespace is removed, so prompt characters and echoed commands
    survive as lines of their own.
    """

    if not raw:
        return []
    text = str(raw).replace("\r", "\n")
    return [piece.strip() for piece in text.split("\n") if piece.strip()]


def find_last_line(
    lines: Iterable[str],
    pattern: Union[str, re.Pattern[str]],
) -> Optional[str]:
    """Return the last line matching ``pattern``, or ``None``."""

    regex = re.compile(pattern, re.IGNORECASE) if isinstance(pattern, str) else pattern
    for line in reversed(list(lines)):
        if regex.search(line):
            return line
    return None


def contains_error_token(text: Optional[str]) -> bool:
    """Whether ``text`` carries one of the adapter's error replies."""

    if not text:
        return False
    upper = text.upper()
    return any(token in upper for token in ERROR_TOKENS)
