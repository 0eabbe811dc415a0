import bisect
import re
from typing import List, Optional, Tuple

_WORD_RE = re.compile(r"\w+", re.UNICODE)


def fold_case(text: str) -> str:
    """Lower-case ``text`` without changing its length, so offsets stay valid."""
    if not text:
        return ""
    lowered = text.lower()
    if len(lowered) == len(text):
        return lowered
    # A handful of code points expand when lowered (e.g. U+0130).
    return "".join(ch if len(ch.lower()) != 1 else ch.lower() for ch in text)


def normalize_newlines(text: str) -> str:
    if "\r" not in text:
        return text
    return text.replace("\r\n", "\n")


def split_lines(text: str) -> List[str]:
    """Physical lines split on ``\\n`` with a trailing ``\\r`` removed."""
    lines = text.split("\n")
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def line_starts(text: str) -> List[int]:
    starts = [0]
    pos = text.find("\n")
    while pos != -1:
        starts.append(pos + 1)
        pos = text.find("\n", pos + 1)
    return starts


def offset_to_position(starts: List[int], offset: int) -> Tuple[int, int]:
    """Map a buffer offset to a zero-based (line, column)."""
    line = bisect.bisect_right(starts, offset) - 1
    return line, offset - starts[line]


def is_multiline(query: str) -> bool:
    return "\n" in query or "\r" in query


def initial_query(text: str, selection: Optional[Tuple[int, int]] = None, cursor: Optional[int] = None) -> str:
    """
    Seed query for a search prompt opened from an editor.

    Uses the selected text when there is a non-blank selection, otherwise the
    word under the cursor, otherwise "".
    """
    if not text:
        return ""
    if selection is not None:
        start, end = sorted(selection)
        selected = text[max(0, start):max(0, end)].strip()
        if selected:
            return selected
        if cursor is None:
            cursor = end
    if cursor is None:
        return ""
    cursor = max(0, min(cursor, len(text)))
    for m in _WORD_RE.finditer(text):
        if m.start() <= cursor <= m.end():
            return m.group(0)
        if m.start() > cursor:
            break
    return ""
