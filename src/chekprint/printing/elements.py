"""Printable elements of a receipt.

An element describes one printable unit (a run of text, a two-column
row, a rule, a barcode, a feed) with its style flags. The template
renderer produces a sequence of elements and the command encoder turns
that sequence into printer bytes; neither side knows about the other.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Mapping, Optional, Union

logger = logging.getLogger(__name__)


class Alignment(Enum):
    """Text alignment options."""

    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"
    JUSTIFIED = "justified"


class TextSize(Enum):
    """Text size options (printer-specific)."""

    NORMAL = 1         # Normal size
    DOUBLE_HEIGHT = 2  # Double height, same column count


class Symbology(Enum):
    """Supported 2D/1D code types."""

    QR = "qr"
    CODE128 = "code128"


@dataclass(frozen=True)
class TextElement:
    """A single run of text.

    After template rendering ``content`` holds one fixed-width line.
    """

    content: str
    alignment: Alignment = Alignment.LEFT
    bold: bool = False
    underline: bool = False
    left_padding: int = 0
    size: TextSize = TextSize.NORMAL


@dataclass(frozen=True)
class JustifiedRow:
    """Two fragments pushed to opposite ends of a line."""

    left: str
    right: str
    bold: bool = False


@dataclass(frozen=True)
class RuleElement:
    """A horizontal rule. ``width`` of None means full page width."""

    width: Optional[int] = None
    char: str = "-"


@dataclass(frozen=True)
class CodeElement:
    """A QR code or barcode carrying ``payload`` verbatim."""

    payload: str
    symbology: Symbology = Symbology.QR
    position: Alignment = Alignment.CENTER
    size: int = 6  # QR module size in dots / barcode height multiplier


@dataclass(frozen=True)
class FeedCut:
    """Blank line feeds, optionally followed by a paper cut."""

    lines: int = 0
    cut: bool = False


Element = Union[TextElement, JustifiedRow, RuleElement, CodeElement, FeedCut]


def parse_alignment(value: Any, default: Alignment = Alignment.LEFT) -> Alignment:
    """Resolve an alignment tag, falling back to ``default`` when unknown."""
    if isinstance(value, Alignment):
        return value
    if value is None or value == "":
        return default
    try:
        return Alignment(str(value).strip().lower())
    except ValueError:
        logger.warning(f"Unknown alignment {value!r}, using {default.value}")
        return default


def _as_bool(value: Any, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def _as_int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def element_from_mapping(data: Mapping[str, Any]) -> Optional[Element]:
    """Build an element from a host-application override entry.

    Recognized ``type`` values are ``text`` (default), ``row``, ``rule``,
    ``qrcode``, ``barcode`` and ``feed``. Unknown types are skipped and
    unknown keys are ignored.

    Returns:
        The element, or None if the entry can't be printed
    """
    kind = str(data.get("type") or "text").strip().lower()

    if kind == "text":
        alignment = parse_alignment(data.get("alignment"))
        content = str(data.get("text", data.get("content", "")) or "")
        bold = _as_bool(data.get("bold"))
        if alignment == Alignment.JUSTIFIED:
            return JustifiedRow(
                left=content,
                right=str(data.get("right", data.get("value", "")) or ""),
                bold=bold,
            )
        return TextElement(
            content=content,
            alignment=alignment,
            bold=bold,
            underline=_as_bool(data.get("underline")),
            left_padding=max(0, _as_int(data.get("leftPadding", data.get("left_padding")))),
            size=TextSize.DOUBLE_HEIGHT if _as_bool(data.get("large")) else TextSize.NORMAL,
        )

    if kind == "row":
        return JustifiedRow(
            left=str(data.get("left", "") or ""),
            right=str(data.get("right", "") or ""),
            bold=_as_bool(data.get("bold")),
        )

    if kind == "rule":
        width = data.get("width")
        return RuleElement(
            width=_as_int(width) if width is not None else None,
            char=str(data.get("char") or "-")[:1],
        )

    if kind in ("qrcode", "qr", "barcode"):
        payload = str(data.get("payload", data.get("data", "")) or "")
        if not payload:
            logger.warning(f"Skipping {kind} element without payload")
            return None
        return CodeElement(
            payload=payload,
            symbology=Symbology.CODE128 if kind == "barcode" else Symbology.QR,
            position=parse_alignment(data.get("position"), Alignment.CENTER),
            size=max(1, _as_int(data.get("size"), 6)),
        )

    if kind in ("feed", "cut"):
        return FeedCut(
            lines=max(0, _as_int(data.get("lines"))),
            cut=_as_bool(data.get("cut"), default=kind == "cut"),
        )

    logger.warning(f"Skipping unknown template element type {kind!r}")
    return None


def elements_from_mappings(entries: List[Mapping[str, Any]]) -> List[Element]:
    """Parse a list of override entries, dropping the unprintable ones."""
    elements: List[Element] = []
    for entry in entries:
        if not isinstance(entry, Mapping):
            logger.warning(f"Skipping non-mapping template element: {entry!r}")
            continue
        element = element_from_mapping(entry)
        if element is not None:
            elements.append(element)
    return elements
