"""Printing module for chekprint - receipt layout and command encoding."""

from chekprint.printing.currency import format_currency
from chekprint.printing.document import (
    LineItem,
    PaymentMethod,
    ReceiptDocument,
    TemplateSettings,
)
from chekprint.printing.elements import (
    Alignment,
    CodeElement,
    FeedCut,
    JustifiedRow,
    RuleElement,
    Symbology,
    TextElement,
    TextSize,
)
from chekprint.printing.encoder import (
    CharacterProtocol,
    LabelProtocol,
    PreviewProtocol,
    encode,
)
from chekprint.printing.engine import preview, render, render_elements
from chekprint.printing.manager import PrintManager
from chekprint.printing.template import TemplateRenderer

__all__ = [
    # Engine
    "render",
    "render_elements",
    "preview",
    "encode",
    "TemplateRenderer",
    "format_currency",
    "PrintManager",
    # Profiles
    "CharacterProtocol",
    "LabelProtocol",
    "PreviewProtocol",
    # Document
    "ReceiptDocument",
    "LineItem",
    "PaymentMethod",
    "TemplateSettings",
    # Elements
    "Alignment",
    "TextSize",
    "Symbology",
    "TextElement",
    "JustifiedRow",
    "RuleElement",
    "CodeElement",
    "FeedCut",
]
