"""Command encoders for thermal printers.

Converts laid-out element sequences into printer byte streams. Each
protocol profile is a small frozen dataclass describing the target
printer; ``encode`` picks the encoder registered for the profile type:

- CharacterProtocol: ESC/POS escape sequences for receipt printers
- LabelProtocol: TSPL (TSC Printer Language) for label printers
- PreviewProtocol: framed plain text, for simulators and logs

Encoders only look at element types and style flags, never at what a
line means on the receipt.
"""

import logging
import math
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Type, Union

from chekprint.printing.elements import (
    Alignment,
    CodeElement,
    Element,
    FeedCut,
    JustifiedRow,
    RuleElement,
    Symbology,
    TextElement,
    TextSize,
)
from chekprint.printing.text_layout import center, justify, pad_right, sanitize

logger = logging.getLogger(__name__)

MM_PER_INCH = 25.4


@dataclass(frozen=True)
class CharacterProtocol:
    """ESC/POS receipt printer profile."""

    columns: int = 32        # 58mm paper, Font A
    encoding: str = "utf-8"
    code_table: int = 2      # ESC t n, printer-specific code page


@dataclass(frozen=True)
class LabelProtocol:
    """TSPL label printer profile.

    ``height_mm`` of None sizes the label to its content.
    """

    width_mm: float = 58
    height_mm: Optional[float] = None
    gap_mm: float = 2
    dpi: int = 203
    columns: int = 32
    font: str = "2"            # 12x20 dot built-in font
    char_width: int = 12       # dots per column for the font
    row_pitch: int = 24        # dots between text rows
    margin_x: int = 16
    margin_y: int = 16
    qr_ecc: str = "L"
    copies: int = 1
    encoding: str = "utf-8"


@dataclass(frozen=True)
class PreviewProtocol:
    """Plain-text receipt preview."""

    columns: int = 32
    encoding: str = "utf-8"


Profile = Union[CharacterProtocol, LabelProtocol, PreviewProtocol]


def encode_text(text: str, encoding: str) -> bytes:
    """Encode printable text, dropping characters the encoding lacks.

    Text is transliterated first, so only characters outside both the
    transliteration table and the target encoding are lost.
    """
    clean = sanitize(text)
    try:
        return clean.encode(encoding)
    except UnicodeEncodeError:
        encoded = clean.encode(encoding, errors="ignore")
        logger.debug(f"Dropped unencodable characters from {clean!r} ({encoding})")
        return encoded


class CharacterEncoder:
    """Renders elements to ESC/POS commands."""

    # ESC/POS command constants
    ESC = b'\x1b'
    GS = b'\x1d'
    LF = b'\x0a'

    def __init__(self, profile: CharacterProtocol):
        self.profile = profile

    def encode(self, elements: Iterable[Element]) -> bytes:
        """Render elements to ESC/POS command bytes.

        Args:
            elements: Laid-out elements in print order

        Returns:
            Command bytes ready to send to the printer
        """
        commands = [self._cmd_init(), self._cmd_code_table()]

        for element in elements:
            if isinstance(element, TextElement):
                commands.append(self._render_text(element))
            elif isinstance(element, JustifiedRow):
                commands.append(self._render_text(TextElement(
                    content=pad_right(
                        justify(element.left, element.right, self.profile.columns),
                        self.profile.columns,
                    ),
                    bold=element.bold,
                )))
            elif isinstance(element, RuleElement):
                commands.append(self._render_rule(element))
            elif isinstance(element, CodeElement):
                commands.append(self._render_code(element))
            elif isinstance(element, FeedCut):
                commands.append(self._render_feed(element))
            else:
                logger.warning(f"Cannot encode element {element!r}")

        return b''.join(commands)

    def _cmd_init(self) -> bytes:
        """Initialize printer command."""
        return self.ESC + b'@'

    def _cmd_code_table(self) -> bytes:
        """Select character code table."""
        return self.ESC + b't' + bytes([self.profile.code_table])

    def _cmd_cut(self) -> bytes:
        """Partial paper cut command."""
        return self.GS + b'V' + b'\x01'

    def _cmd_align(self, alignment: Alignment) -> bytes:
        """Set text alignment."""
        align_byte = {
            Alignment.LEFT: b'\x00',
            Alignment.CENTER: b'\x01',
            Alignment.RIGHT: b'\x02',
        }
        return self.ESC + b'a' + align_byte.get(alignment, b'\x00')

    def _cmd_bold(self, enabled: bool) -> bytes:
        """Set bold mode."""
        return self.ESC + b'E' + (b'\x01' if enabled else b'\x00')

    def _cmd_underline(self, enabled: bool) -> bytes:
        """Set underline mode."""
        return self.ESC + b'-' + (b'\x01' if enabled else b'\x00')

    def _cmd_double_height(self, enabled: bool) -> bytes:
        """GS ! n - select character size."""
        return self.GS + b'!' + (b'\x01' if enabled else b'\x00')

    def _render_text(self, element: TextElement) -> bytes:
        """Render one laid-out text line."""
        large = element.size == TextSize.DOUBLE_HEIGHT
        commands = [self._cmd_align(element.alignment)]

        if element.bold:
            commands.append(self._cmd_bold(True))
        if element.underline:
            commands.append(self._cmd_underline(True))
        if large:
            commands.append(self._cmd_double_height(True))

        commands.append(encode_text(element.content, self.profile.encoding))
        commands.append(self.LF)

        # Reset formatting
        if large:
            commands.append(self._cmd_double_height(False))
        if element.underline:
            commands.append(self._cmd_underline(False))
        if element.bold:
            commands.append(self._cmd_bold(False))

        return b''.join(commands)

    def _render_rule(self, element: RuleElement) -> bytes:
        """Render a rule as a bold run of the rule character."""
        width = element.width or self.profile.columns
        return b''.join([
            self._cmd_bold(True),
            encode_text(element.char * width, self.profile.encoding),
            self.LF,
            self._cmd_bold(False),
        ])

    def _render_code(self, element: CodeElement) -> bytes:
        """Render a QR code or CODE128 barcode."""
        if element.symbology == Symbology.QR:
            body = self._qr_commands(element)
        else:
            body = self._code128_commands(element)
        return self._cmd_align(element.position) + body + self.LF

    def _qr_commands(self, element: CodeElement) -> bytes:
        """GS ( k - QR code model 2: select model, size, ECC, store, print."""
        data = element.payload.encode('utf-8')
        size = max(1, min(element.size, 16))
        store_len = len(data) + 3
        commands = [
            self.GS + b'(k' + b'\x04\x00' + b'1A2\x00',
            self.GS + b'(k' + b'\x03\x00' + b'1C' + bytes([size]),
            self.GS + b'(k' + b'\x03\x00' + b'1E0',
            self.GS + b'(k' + bytes([store_len & 0xFF, (store_len >> 8) & 0xFF]) + b'1P0' + data,
            self.GS + b'(k' + b'\x03\x00' + b'1Q0',
        ]
        return b''.join(commands)

    def _code128_commands(self, element: CodeElement) -> bytes:
        """GS k 73 - CODE128 using code set B, HRI text below."""
        data = b'{B' + element.payload.encode('ascii', errors='ignore')[:251]
        height = max(1, min(element.size * 10, 255))
        return b''.join([
            self.GS + b'h' + bytes([height]),
            self.GS + b'w' + b'\x02',
            self.GS + b'H' + b'\x02',
            self.GS + b'k' + b'\x49' + bytes([len(data)]) + data,
        ])

    def _render_feed(self, element: FeedCut) -> bytes:
        """Feed blank lines and optionally cut."""
        commands = self.LF * element.lines
        if element.cut:
            commands += self._cmd_cut()
        return commands


class LabelEncoder:
    """Renders elements to TSPL label commands.

    Text rows are placed at absolute positions, one row pitch apart.
    Label printers separate labels at the gap, so cut requests only
    advance the layout.
    """

    CRLF = "\r\n"

    def __init__(self, profile: LabelProtocol):
        self.profile = profile

    @property
    def dots_per_mm(self) -> float:
        return self.profile.dpi / MM_PER_INCH

    @property
    def label_width_dots(self) -> int:
        return int(self.profile.width_mm * self.dots_per_mm)

    def encode(self, elements: Iterable[Element]) -> bytes:
        """Render elements to TSPL command bytes."""
        profile = self.profile
        body: List[bytes] = []
        y = profile.margin_y

        for element in elements:
            if isinstance(element, TextElement):
                body.append(self._line(self._text(element.content, y, element.size)))
                y += profile.row_pitch * (2 if element.size == TextSize.DOUBLE_HEIGHT else 1)
            elif isinstance(element, JustifiedRow):
                body.append(self._line(self._text(
                    justify(element.left, element.right, profile.columns), y, TextSize.NORMAL,
                )))
                y += profile.row_pitch
            elif isinstance(element, RuleElement):
                width = (element.width or profile.columns) * profile.char_width
                bar_y = y + profile.row_pitch // 2 - 1
                body.append(self._line(f"BAR {profile.margin_x},{bar_y},{width},2"))
                y += profile.row_pitch
            elif isinstance(element, CodeElement):
                directive, height = self._code(element, y)
                # Code payloads are sent as UTF-8 without transliteration
                body.append((directive + self.CRLF).encode("utf-8"))
                y += height + profile.row_pitch
            elif isinstance(element, FeedCut):
                y += profile.row_pitch * element.lines
            else:
                logger.warning(f"Cannot encode element {element!r}")

        height_mm = profile.height_mm
        if height_mm is None:
            height_mm = math.ceil((y + profile.margin_y) / self.dots_per_mm)

        return b''.join([
            self._line(f"SIZE {_mm(profile.width_mm)} mm, {_mm(height_mm)} mm"),
            self._line(f"GAP {_mm(profile.gap_mm)} mm, 0 mm"),
            self._line("CLS"),
            *body,
            self._line(f"PRINT {profile.copies}"),
        ])

    def _line(self, directive: str) -> bytes:
        return encode_text(directive + self.CRLF, self.profile.encoding)

    def _text(self, content: str, y: int, size: TextSize) -> str:
        scale_y = 2 if size == TextSize.DOUBLE_HEIGHT else 1
        return (
            f'TEXT {self.profile.margin_x},{y},"{self.profile.font}",0,1,{scale_y},'
            f'"{_quote(content)}"'
        )

    def _code(self, element: CodeElement, y: int):
        """Build a QRCODE/BARCODE directive and its height in dots."""
        profile = self.profile
        if element.symbology == Symbology.QR:
            # Version 2 symbol (25 modules) plus quiet zone, an estimate for placement
            extent = element.size * 29
            x = self._code_x(element.position, extent)
            return (
                f'QRCODE {x},{y},{profile.qr_ecc},{element.size},A,0,"{_quote(element.payload)}"',
                extent,
            )

        height = element.size * 10
        extent = (len(element.payload) + 3) * 11 * 2
        x = self._code_x(element.position, extent)
        return (
            f'BARCODE {x},{y},"128",{height},1,0,2,2,"{_quote(element.payload)}"',
            height + profile.row_pitch,
        )

    def _code_x(self, position: Alignment, extent: int) -> int:
        margin = self.profile.margin_x
        if position == Alignment.CENTER:
            return max(margin, (self.label_width_dots - extent) // 2)
        if position == Alignment.RIGHT:
            return max(margin, self.label_width_dots - margin - extent)
        return margin


class PreviewEncoder:
    """Renders elements as a framed text preview."""

    def __init__(self, profile: PreviewProtocol):
        self.profile = profile

    def encode(self, elements: Iterable[Element]) -> bytes:
        return self.preview_text(elements).encode(self.profile.encoding, errors="replace")

    def preview_text(self, elements: Iterable[Element]) -> str:
        """Generate an ASCII-framed picture of the printed receipt."""
        chars_per_line = self.profile.columns
        lines = ["+" + "-" * chars_per_line + "+"]

        def row(text: str) -> str:
            return "|" + pad_right(text[:chars_per_line], chars_per_line) + "|"

        for element in elements:
            if isinstance(element, TextElement):
                text = element.content
                if element.size == TextSize.DOUBLE_HEIGHT:
                    text = text.upper()
                lines.append(row(sanitize(text)))
            elif isinstance(element, JustifiedRow):
                lines.append(row(sanitize(justify(element.left, element.right, chars_per_line))))
            elif isinstance(element, RuleElement):
                lines.append(row(element.char * (element.width or chars_per_line)))
            elif isinstance(element, CodeElement):
                label = f"[{element.symbology.value.upper()}: {element.payload}]"
                lines.append(row(center(label[:chars_per_line], chars_per_line)))
            elif isinstance(element, FeedCut):
                for _ in range(element.lines):
                    lines.append(row(""))
                if element.cut:
                    lines.append(row(center("- - cut - -", chars_per_line)))

        lines.append("+" + "-" * chars_per_line + "+")
        return "\n".join(lines)


_ENCODERS: Dict[Type, Callable] = {
    CharacterProtocol: CharacterEncoder,
    LabelProtocol: LabelEncoder,
    PreviewProtocol: PreviewEncoder,
}


def register_encoder(profile_type: Type, factory: Callable) -> None:
    """Register an encoder factory for a new profile type."""
    _ENCODERS[profile_type] = factory


def encoder_for(profile: Profile):
    """Get the encoder for a protocol profile."""
    factory = _ENCODERS.get(type(profile))
    if factory is None:
        raise TypeError(f"No encoder registered for profile {type(profile).__name__}")
    return factory(profile)


def encode(elements: Iterable[Element], profile: Profile) -> bytes:
    """Encode laid-out elements for the given protocol profile."""
    return encoder_for(profile).encode(list(elements))


def _mm(value: float) -> str:
    return f"{value:g}"


def _quote(text: str) -> str:
    # TSPL escapes a double quote inside a string as \["]
    return text.replace('"', '\\["]')
