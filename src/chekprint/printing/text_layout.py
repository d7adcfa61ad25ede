"""Fixed-grid text layout helpers for thermal receipts.

All functions work on character columns of a monospace printer font
(32 columns on 58mm paper, 48 on 80mm). Content longer than the target
width is never truncated: padding helpers pass it through unchanged and
the printer wraps it physically.
"""

import logging
from typing import List

logger = logging.getLogger(__name__)


# Characters the printer fonts don't carry, mapped to the nearest ASCII.
# Every replacement is plain ASCII, so applying the table twice is a no-op.
TRANSLITERATION_TABLE = {
    # Apostrophe variants (o'zbek lotin yozuvi)
    "ʻ": "'",  # modifier letter turned comma
    "ʼ": "'",  # modifier letter apostrophe
    "‘": "'",
    "’": "'",
    "`": "'",
    "´": "'",
    # Uzbek Cyrillic letters missing from the printer code page
    "ҳ": "h",
    "Ҳ": "H",
    "қ": "q",
    "Қ": "Q",
    "ғ": "g'",
    "Ғ": "G'",
    "ў": "u",
    "Ў": "U",
}


def wrap(text: str, max_len: int) -> List[str]:
    """Wrap text into lines no longer than max_len.

    Words are packed greedily with a single space between them. A word
    that can't fit on a line by itself is split into chunks of
    ``max_len - 1`` characters, each ending with a hyphen, until the
    remainder fits.

    Args:
        text: Text to wrap
        max_len: Maximum line length in columns

    Returns:
        List of lines, never empty (empty input gives ``[""]``)
    """
    words = text.split()
    if not words:
        return [""]

    # Too narrow for a hyphen: split into single characters
    chunk = max_len - 1 if max_len >= 2 else 1
    hyphen = "-" if max_len >= 2 else ""
    limit = max(1, max_len)

    lines: List[str] = []
    current = ""
    for word in words:
        if len(word) > limit:
            if current:
                lines.append(current)
                current = ""
            while len(word) > limit:
                lines.append(word[:chunk] + hyphen)
                word = word[chunk:]
            current = word
            continue

        if not current:
            current = word
        elif len(current) + 1 + len(word) <= limit:
            current = f"{current} {word}"
        else:
            lines.append(current)
            current = word

    if current:
        lines.append(current)

    return lines


def pad_right(text: str, width: int) -> str:
    """Left-align text by padding spaces on the right."""
    if len(text) >= width:
        return text
    return text + " " * (width - len(text))


def pad_left(text: str, width: int) -> str:
    """Right-align text by padding spaces on the left."""
    if len(text) >= width:
        return text
    return " " * (width - len(text)) + text


def center(text: str, width: int) -> str:
    """Center text in width columns.

    The odd column of padding, if any, goes to the right.
    """
    if len(text) >= width:
        return text
    left = (width - len(text)) // 2
    right = width - len(text) - left
    return " " * left + text + " " * right


def justify(left: str, right: str, width: int) -> str:
    """Place two fragments at opposite ends of a line.

    The gap is at least one space, so the fragments never run together
    even when they overflow the line.
    """
    gap = max(1, width - len(left) - len(right))
    return left + " " * gap + right


def sanitize(text: str) -> str:
    """Replace characters the printer can't render with ASCII look-alikes."""
    if not text:
        return text
    return "".join(TRANSLITERATION_TABLE.get(char, char) for char in text)
