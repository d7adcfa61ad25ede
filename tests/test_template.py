"""Tests for template.py - receipt layout."""

from datetime import datetime

import pytest

from chekprint.errors import StructuralError
from chekprint.printing.document import ReceiptDocument, TemplateSettings
from chekprint.printing.elements import (
    Alignment,
    CodeElement,
    FeedCut,
    JustifiedRow,
    RuleElement,
    TextElement,
    TextSize,
)
from chekprint.printing.template import LABEL_WIDTH, TemplateRenderer, format_quantity
from chekprint.printing.text_layout import justify


def text_lines(elements):
    return [e.content for e in elements if isinstance(e, TextElement)]


def render(mapping):
    return TemplateRenderer().render(ReceiptDocument.from_mapping(mapping))


class TestDefaultSaleReceipt:
    def test_header(self, sale_mapping):
        elements = render(sale_mapping)
        title = elements[0]
        assert title.content.strip() == "Bozor"
        assert title.bold
        assert title.size == TextSize.DOUBLE_HEIGHT
        assert title.alignment == Alignment.CENTER
        assert elements[1].content == "Sana: 02.01.2024     Vaqt: 14:30"

    def test_transaction_row_inline(self, sale_mapping):
        lines = text_lines(render(sale_mapping))
        assert "Chek raqami: 123".ljust(32) in lines

    def test_item_rows(self, sale_mapping):
        lines = text_lines(render(sale_mapping))
        index = lines.index("Non".ljust(32))
        assert lines[index + 1] == "(1 dona)" + " " * 13 + "10 000 so'm"

    def test_item_row_shows_line_total(self):
        lines = text_lines(render({"products": [
            {"name": "Choy", "quantity": 2, "unit": "dona", "price": 4000},
        ]}))
        index = lines.index("Choy".ljust(32))
        assert lines[index + 1] == "(2 dona)" + " " * 14 + "8 000 so'm"

    def test_totals(self, sale_mapping):
        lines = text_lines(render(sale_mapping))
        assert "Jami:" + " " * 16 + "25 000 so'm" in lines
        assert "QQS (15%):" + " " * 12 + "3 750 so'm" in lines
        assert "Naqd:" + " " * 16 + "25 000 so'm" in lines
        assert not any(line.startswith("To'lanadi:") for line in lines)

    def test_final_row_when_discounted(self, sale_mapping):
        sale_mapping["finalAmount"] = 20000
        lines = text_lines(render(sale_mapping))
        assert any(line.startswith("To'lanadi:") and line.endswith("20 000 so'm") for line in lines)

    def test_ends_with_thank_you_and_finish(self, sale_mapping):
        elements = render(sale_mapping)
        assert elements[-2].content.strip() == "Xaridingiz uchun rahmat!"
        assert elements[-1] == FeedCut(lines=4, cut=True)

    def test_every_line_fits_page(self, sale_mapping):
        for width in (24, 32, 48):
            sale_mapping["templateSettings"]["pageWidth"] = width
            for line in text_lines(render(sale_mapping)):
                assert len(line) == width

    def test_rules_span_page(self, sale_mapping):
        rules = [e for e in render(sale_mapping) if isinstance(e, RuleElement)]
        assert len(rules) == 3
        assert all(rule.width == 32 for rule in rules)

    def test_returned_item_marked(self, sale_mapping):
        sale_mapping["products"][1]["status"] = 0
        lines = text_lines(render(sale_mapping))
        assert "Sut (Qaytarilgan)".ljust(32) in lines
        assert "Jami:" + " " * 16 + "10 000 so'm" in lines

    def test_no_date_row_without_timestamp(self, sale_mapping):
        del sale_mapping["createdAt"]
        lines = text_lines(render(sale_mapping))
        assert not any(line.startswith("Sana:") for line in lines)

    def test_deterministic(self, sale_mapping):
        assert render(sale_mapping) == render(sale_mapping)


class TestPurchaseReceipt:
    def test_supplier_and_receiver_rows(self, purchase_mapping):
        lines = text_lines(render(purchase_mapping))
        assert lines[2] == "Yetkazib beruvchi:".ljust(32)
        assert lines[3] == " " * LABEL_WIDTH + "Ulgurji savdo".ljust(32 - LABEL_WIDTH)
        assert any(line.startswith("Qabul qiluvchi:") and line.endswith("Dilshod") for line in lines)

    def test_no_payments_or_thank_you(self, purchase_mapping):
        lines = text_lines(render(purchase_mapping))
        assert not any(line.startswith("Karta:") for line in lines)
        assert not any("rahmat" in line for line in lines)
        assert not any(line.startswith("Sotuvchi:") for line in lines)


class TestScenarios:
    def test_short_transaction_id_single_row(self):
        lines = text_lines(render({"transactionId": "123"}))
        assert [line for line in lines if "Chek raqami:" in line] == ["Chek raqami: 123".ljust(32)]

    def test_long_centered_text_wraps_before_centering(self):
        name = "Toshkent shahar markaziy savdo uyi MChJ"
        assert len(name) > 32
        elements = render({"elements": [{"type": "text", "text": name, "alignment": "center"}]})
        lines = [e for e in elements if isinstance(e, TextElement)]
        assert len(lines) > 1
        assert all(len(line.content) == 32 for line in lines)
        assert all(line.alignment == Alignment.CENTER for line in lines)
        assert " ".join(line.content.strip() for line in lines) == name

    def test_two_items_total_and_tax(self):
        lines = text_lines(render({"products": [
            {"name": "A", "quantity": 1, "price": 10000},
            {"name": "B", "quantity": 1, "price": 15000},
        ]}))
        assert any(line.startswith("Jami:") and line.endswith("25 000 so'm") for line in lines)
        assert any(line.startswith("QQS (15%):") and line.endswith("3 750 so'm") for line in lines)


class TestLabeledRows:
    def test_long_value_wraps_under_gutter(self):
        seller = "Abdulazizxon Muhammadyusufov Toshkentlik"
        lines = text_lines(render({"sellerName": seller}))
        start = next(i for i, line in enumerate(lines) if line.startswith("Sotuvchi:"))
        assert lines[start].startswith("Sotuvchi:".ljust(LABEL_WIDTH))
        assert lines[start + 1].startswith(" " * LABEL_WIDTH)
        assert all(len(line) == 32 for line in lines[start:start + 2])

    def test_empty_value_omitted(self):
        lines = text_lines(render({"sellerName": ""}))
        assert not any(line.startswith("Sotuvchi:") for line in lines)


class TestExplicitElements:
    def test_styles_preserved(self):
        elements = render({"elements": [
            {"text": "Salom", "alignment": "right", "bold": True, "underline": True},
            {"type": "rule", "char": "="},
            {"type": "qrcode", "payload": "https://example.uz/c/1"},
            {"type": "feed", "lines": 1, "cut": True},
        ]})
        assert elements[0] == TextElement(
            content="Salom".rjust(32), alignment=Alignment.RIGHT, bold=True, underline=True,
        )
        assert elements[1] == RuleElement(width=32, char="=")
        assert elements[2] == CodeElement(payload="https://example.uz/c/1")
        assert elements[3] == FeedCut(lines=1, cut=True)
        assert len(elements) == 4

    def test_finish_appended_when_missing(self):
        elements = render({
            "elements": [{"text": "Hi"}],
            "templateSettings": {"useAutoCut": False, "feedLineCount": 2},
        })
        assert elements[-1] == FeedCut(lines=2, cut=False)

    def test_left_padding(self):
        elements = render({"elements": [{"text": "Hi", "leftPadding": 3}]})
        assert elements[0].content == "   Hi".ljust(32)

    def test_justified_row(self):
        elements = TemplateRenderer().render_explicit(
            [JustifiedRow(left="Jami:", right="5 so'm", bold=True)], TemplateSettings(),
        )
        assert elements[0].content == "Jami:" + " " * 21 + "5 so'm"
        assert elements[0].bold

    def test_overflowing_justified_row_stays_on_one_line(self):
        left, right = "Yetkazib beruvchi nomi", "Ulgurji savdo MChJ"
        elements = TemplateRenderer().render_explicit(
            [JustifiedRow(left=left, right=right)], TemplateSettings(),
        )
        assert text_lines(elements) == [left + " " + right]
        assert text_lines(elements) == [justify(left, right, 32)]


class TestStructuralErrors:
    @pytest.mark.parametrize("settings", [{"pageWidth": 0}, {"feedLineCount": -1}])
    def test_impossible_geometry_raises(self, settings):
        with pytest.raises(StructuralError):
            render({"templateSettings": settings})

    def test_width_one_still_renders(self):
        lines = text_lines(render({"companyName": "AB", "templateSettings": {"pageWidth": 1}}))
        assert all(len(line) >= 1 for line in lines)


class TestTestReceipt:
    def test_fixed_content(self):
        elements = TemplateRenderer().test_receipt(datetime(2024, 5, 1, 9, 15, 0))
        lines = [line.strip() for line in text_lines(elements)]
        assert lines[:3] == ["DO'KON NOMI", "SINOV CHEKI", "2024-05-01 09:15:00"]
        assert any(line.endswith("25 000 so'm") for line in lines)
        assert elements[-1] == FeedCut(lines=4, cut=True)


class TestFormatQuantity:
    @pytest.mark.parametrize("value,expected", [(1, "1"), (2.0, "2"), (1.5, "1.5"), (0.125, "0.125")])
    def test_format(self, value, expected):
        assert format_quantity(value) == expected
