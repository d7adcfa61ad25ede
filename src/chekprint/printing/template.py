"""Receipt templates.

Turns a ReceiptDocument into the ordered element sequence the encoder
prints. Every text element produced here holds one line already laid
out to the page width, so encoders never wrap or pad.

Layout of the default sale receipt on 32 columns::

         COMPANY NAME (bold, 2x)
    Sana: 02.01.2024     Vaqt: 14:30
    Chek raqami: 123
    Sotuvchi:                   Aziz
    --------------------------------
    Non
    (2 dona)              8 000 so'm
    --------------------------------
    Jami:                 8 000 so'm
    QQS (15%):            1 200 so'm
    Naqd:                 8 000 so'm
    Qaytim:                   0 so'm
    --------------------------------
        Xaridingiz uchun rahmat!
"""

import logging
from datetime import datetime
from typing import List, Optional

from chekprint.printing.currency import format_currency
from chekprint.printing.document import ReceiptDocument, TemplateSettings
from chekprint.printing.elements import (
    Alignment,
    CodeElement,
    Element,
    FeedCut,
    JustifiedRow,
    RuleElement,
    TextElement,
    TextSize,
)
from chekprint.printing.text_layout import center, justify, pad_left, pad_right, wrap

logger = logging.getLogger(__name__)


# Columns reserved for a label when its value has to wrap
LABEL_WIDTH = 13

DATE_FORMAT = "%d.%m.%Y"
TIME_FORMAT = "%H:%M"

LABEL_DATE = "Sana:"
LABEL_TIME = "Vaqt:"
LABEL_TRANSACTION = "Chek raqami:"
LABEL_SUPPLIER = "Yetkazib beruvchi:"
LABEL_RECEIVER = "Qabul qiluvchi:"
LABEL_SELLER = "Sotuvchi:"
LABEL_STATUS = "Holati:"
LABEL_TOTAL = "Jami:"
LABEL_FINAL = "To'lanadi:"
LABEL_TAX = "QQS (15%):"
LABEL_CHANGE = "Qaytim:"
RETURNED_SUFFIX = "(Qaytarilgan)"
THANK_YOU = "Xaridingiz uchun rahmat!"

PAYMENT_LABELS = {
    "cash": "Naqd:",
    "card": "Karta:",
}


def format_quantity(quantity: float) -> str:
    """Format a quantity without a trailing ``.0`` for whole numbers."""
    if float(quantity).is_integer():
        return str(int(quantity))
    return f"{quantity:.3f}".rstrip("0").rstrip(".")


class TemplateRenderer:
    """Lays out receipts as element sequences.

    The renderer is stateless: every call reads its page geometry from
    the document's template settings.
    """

    def render(self, document: ReceiptDocument) -> List[Element]:
        """Render a document to laid-out elements.

        Args:
            document: The receipt to lay out

        Returns:
            Elements in print order, ending with a FeedCut

        Raises:
            StructuralError: If the template settings are unusable
        """
        settings = document.template_settings
        settings.check()

        if document.elements:
            logger.debug(f"Rendering {len(document.elements)} explicit template elements")
            return self.render_explicit(document.elements, settings)

        return self._render_default(document, settings)

    def render_explicit(self, elements, settings: TemplateSettings) -> List[Element]:
        """Lay out caller-supplied elements, honoring their own styles."""
        settings.check()
        width = settings.page_width
        result: List[Element] = []

        for element in elements:
            if isinstance(element, TextElement):
                result.extend(self._resolve_text(element, width))
            elif isinstance(element, JustifiedRow):
                row = justify(element.left, element.right, width)
                result.append(self._line(row, width, bold=element.bold))
            elif isinstance(element, RuleElement):
                result.append(RuleElement(width=element.width or width, char=element.char))
            elif isinstance(element, (CodeElement, FeedCut)):
                result.append(element)
            else:
                logger.warning(f"Skipping unsupported element {element!r}")

        if not any(isinstance(element, FeedCut) for element in result):
            result.append(self._finish(settings))

        return result

    def test_receipt(
        self,
        printed_at: datetime,
        settings: Optional[TemplateSettings] = None,
    ) -> List[Element]:
        """Fixed sample receipt for checking a freshly paired printer."""
        settings = settings or TemplateSettings()
        settings.check()
        width = settings.page_width

        elements: List[Element] = []
        elements.extend(self._centered("DO'KON NOMI", width, bold=True))
        elements.extend(self._centered("SINOV CHEKI", width))
        elements.extend(self._centered(printed_at.strftime("%Y-%m-%d %H:%M:%S"), width))
        elements.append(RuleElement(width=width))
        elements.extend(self._pair("Mahsulot 1", format_currency(10000), width))
        elements.extend(self._pair("Mahsulot 2", format_currency(15000), width))
        elements.append(RuleElement(width=width))
        elements.extend(self._pair(LABEL_TOTAL, format_currency(25000), width, bold=True))
        elements.append(FeedCut(lines=1))
        elements.extend(self._centered(THANK_YOU, width))
        elements.append(self._finish(settings))
        return elements

    # Default business template

    def _render_default(self, document: ReceiptDocument, settings: TemplateSettings) -> List[Element]:
        width = settings.page_width
        elements: List[Element] = []

        elements.extend(self._centered(
            document.company_name, width, bold=True, size=TextSize.DOUBLE_HEIGHT,
        ))

        if document.created_at is not None:
            elements.extend(self._pair(
                f"{LABEL_DATE} {document.created_at.strftime(DATE_FORMAT)}",
                f"{LABEL_TIME} {document.created_at.strftime(TIME_FORMAT)}",
                width,
            ))

        elements.extend(self._labeled(LABEL_TRANSACTION, document.transaction_id, width, spread=False))

        if document.is_purchase:
            elements.extend(self._labeled(LABEL_SUPPLIER, document.supplier_name, width))
            elements.extend(self._labeled(LABEL_RECEIVER, document.receiver_name, width))
        else:
            elements.extend(self._labeled(LABEL_SELLER, document.seller_name, width))

        if document.status_name:
            elements.extend(self._labeled(LABEL_STATUS, document.status_name, width))

        elements.append(RuleElement(width=width))

        for item in document.products:
            name = item.name
            if item.is_returned:
                name = f"{name} {RETURNED_SUFFIX}" if name else RETURNED_SUFFIX
            for chunk in wrap(name, width):
                elements.append(self._line(chunk, width, bold=True))

            quantity = format_quantity(item.quantity)
            amount = f"({quantity} {item.unit})" if item.unit else f"({quantity})"
            elements.extend(self._pair(amount, format_currency(item.line_total), width))

        elements.append(RuleElement(width=width))

        elements.extend(self._pair(LABEL_TOTAL, format_currency(document.total), width, bold=True))
        if document.final != document.total:
            elements.extend(self._pair(LABEL_FINAL, format_currency(document.final), width, bold=True))
        elements.extend(self._pair(LABEL_TAX, format_currency(document.tax), width))

        if not document.is_purchase:
            for payment in document.payment_methods:
                label = PAYMENT_LABELS.get(payment.method, f"{payment.method.capitalize()}:")
                elements.extend(self._pair(label, format_currency(payment.amount), width))

        elements.extend(self._pair(LABEL_CHANGE, format_currency(0), width))
        elements.append(RuleElement(width=width))

        if not document.is_purchase:
            elements.extend(self._centered(THANK_YOU, width))

        elements.append(self._finish(settings))
        return elements

    # Line helpers

    def _line(
        self,
        text: str,
        width: int,
        bold: bool = False,
        alignment: Alignment = Alignment.LEFT,
    ) -> TextElement:
        return TextElement(content=pad_right(text, width), alignment=alignment, bold=bold)

    def _centered(
        self,
        text: str,
        width: int,
        bold: bool = False,
        size: TextSize = TextSize.NORMAL,
    ) -> List[TextElement]:
        return [
            TextElement(content=center(line, width), alignment=Alignment.CENTER, bold=bold, size=size)
            for line in wrap(text, width)
        ]

    def _pair(self, left: str, right: str, width: int, bold: bool = False) -> List[TextElement]:
        """Justified row; the right fragment drops to its own line if both don't fit."""
        if len(left) + 1 + len(right) <= width:
            return [self._line(justify(left, right, width), width, bold=bold)]
        rows = [self._line(chunk, width, bold=bold) for chunk in wrap(left, width)]
        rows.extend(
            TextElement(content=pad_left(chunk, width), bold=bold) for chunk in wrap(right, width)
        )
        return rows

    def _labeled(self, label: str, value: str, width: int, spread: bool = True) -> List[TextElement]:
        """Label/value row that wraps the value under a label gutter.

        ``spread`` pushes the value to the right edge when it fits on
        the label's line; otherwise the value follows the label.
        """
        if not value:
            return []

        if len(label) + 1 + len(value) <= width:
            text = justify(label, value, width) if spread else f"{label} {value}"
            return [self._line(text, width)]

        gutter = LABEL_WIDTH if width > LABEL_WIDTH else 0
        chunks = wrap(value, width - gutter)

        rows: List[TextElement] = []
        if gutter and len(label) < gutter:
            rows.append(self._line(pad_right(label, gutter) + chunks[0], width))
            chunks = chunks[1:]
        else:
            rows.append(self._line(label, width))

        for chunk in chunks:
            rows.append(self._line(" " * gutter + chunk, width))
        return rows

    def _resolve_text(self, element: TextElement, width: int) -> List[TextElement]:
        padding = min(element.left_padding, width - 1)
        lines = wrap(element.content, width - padding)

        resolved = []
        for line in lines:
            if element.alignment == Alignment.CENTER:
                content = center(line, width)
            elif element.alignment == Alignment.RIGHT:
                content = pad_left(line, width)
            else:
                content = pad_right(" " * padding + line, width)
            resolved.append(TextElement(
                content=content,
                alignment=element.alignment if element.alignment != Alignment.JUSTIFIED else Alignment.LEFT,
                bold=element.bold,
                underline=element.underline,
                size=element.size,
            ))
        return resolved

    def _finish(self, settings: TemplateSettings) -> FeedCut:
        return FeedCut(lines=settings.feed_line_count, cut=settings.use_auto_cut)
