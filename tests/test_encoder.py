"""Tests for encoder.py - ESC/POS, TSPL and preview output."""

import pytest

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
    encode_text,
    encoder_for,
    register_encoder,
)
from chekprint.printing.engine import render
from chekprint.printing.text_layout import center

INIT = b"\x1b@\x1bt\x02"


class TestEncodeText:
    def test_transliterates_before_encoding(self):
        assert encode_text("Oʻzbek", "ascii") == b"O'zbek"

    def test_drops_unencodable_characters(self):
        assert encode_text("Narx €5", "ascii") == b"Narx 5"

    def test_utf8_keeps_everything(self):
        assert encode_text("Narx €5", "utf-8") == "Narx €5".encode("utf-8")


class TestCharacterEncoder:
    def test_starts_with_init_and_code_table(self):
        assert encode([], CharacterProtocol()) == INIT
        assert encode([], CharacterProtocol(code_table=17)) == b"\x1b@\x1bt\x11"

    def test_plain_text_line(self):
        data = encode([TextElement("Hi")], CharacterProtocol())
        assert data == INIT + b"\x1ba\x00" + b"Hi\n"

    def test_styles_set_and_reset(self):
        element = TextElement(
            "Hi", alignment=Alignment.CENTER, bold=True, underline=True, size=TextSize.DOUBLE_HEIGHT,
        )
        data = encode([element], CharacterProtocol())
        assert data == INIT + (
            b"\x1ba\x01" + b"\x1bE\x01" + b"\x1b-\x01" + b"\x1d!\x01"
            + b"Hi\n"
            + b"\x1d!\x00" + b"\x1b-\x00" + b"\x1bE\x00"
        )

    def test_right_alignment(self):
        data = encode([TextElement("Hi", alignment=Alignment.RIGHT)], CharacterProtocol())
        assert b"\x1ba\x02" in data

    def test_rule(self):
        data = encode([RuleElement(width=4, char="=")], CharacterProtocol())
        assert data == INIT + b"\x1bE\x01" + b"====\n" + b"\x1bE\x00"

    def test_rule_defaults_to_profile_columns(self):
        data = encode([RuleElement()], CharacterProtocol(columns=48))
        assert b"-" * 48 + b"\n" in data

    def test_justified_row_fills_columns(self):
        data = encode([JustifiedRow("A", "B")], CharacterProtocol(columns=10))
        assert b"A        B\n" in data

    def test_feed_and_cut(self):
        assert encode([FeedCut(lines=3, cut=True)], CharacterProtocol()) == INIT + b"\n\n\n\x1dV\x01"

    def test_feed_without_cut(self):
        assert encode([FeedCut(lines=2)], CharacterProtocol()) == INIT + b"\n\n"

    def test_qr_code(self):
        data = encode([CodeElement("abc", size=4)], CharacterProtocol())
        assert b"\x1ba\x01" in data
        assert b"\x1d(k\x04\x001A2\x00" in data
        assert b"\x1d(k\x03\x001C\x04" in data
        assert b"\x1d(k\x06\x001P0abc" in data
        assert data.endswith(b"\x1d(k\x03\x001Q0\n")

    def test_code128(self):
        element = CodeElement("12345", symbology=Symbology.CODE128, position=Alignment.LEFT)
        data = encode([element], CharacterProtocol())
        assert b"\x1dk\x49\x07{B12345" in data

    def test_non_ascii_text_with_narrow_code_page(self):
        data = encode([TextElement("Choy €")], CharacterProtocol(encoding="cp437"))
        assert b"Choy \n" in data


class TestAutoCutDisabled:
    def test_receipt_ends_with_feed_only(self, sale_mapping):
        sale_mapping["templateSettings"] = {"useAutoCut": False, "feedLineCount": 2}
        data = render(sale_mapping, CharacterProtocol())
        last_line = b"\x1ba\x01" + center("Xaridingiz uchun rahmat!", 32).encode() + b"\n"
        assert data.endswith(last_line + b"\n\n")
        assert b"\x1dV" not in data

    def test_explicit_elements_end_with_feed_only(self):
        data = render({
            "elements": [{"text": "Hi"}],
            "templateSettings": {"useAutoCut": False, "feedLineCount": 2},
        })
        assert data == INIT + b"\x1ba\x00" + b"Hi".ljust(32) + b"\n" + b"\n\n"


class TestLabelEncoder:
    def lines(self, elements, **profile):
        data = encode(elements, LabelProtocol(**profile))
        text = data.decode("utf-8")
        assert text.endswith("\r\n")
        return text.split("\r\n")[:-1]

    def test_envelope(self):
        lines = self.lines([TextElement("Hi")])
        assert lines[0].startswith("SIZE 58 mm, ")
        assert lines[1] == "GAP 2 mm, 0 mm"
        assert lines[2] == "CLS"
        assert lines[3] == 'TEXT 16,16,"2",0,1,1,"Hi"'
        assert lines[-1] == "PRINT 1"

    def test_height_from_content(self):
        lines = self.lines([TextElement("Hi")])
        # 16 margin + 24 row + 16 margin = 56 dots, just over 7 mm at 203 dpi
        assert lines[0] == "SIZE 58 mm, 8 mm"

    def test_fixed_height_and_copies(self):
        lines = self.lines([TextElement("Hi")], height_mm=40, copies=3)
        assert lines[0] == "SIZE 58 mm, 40 mm"
        assert lines[-1] == "PRINT 3"

    def test_rows_advance(self):
        lines = self.lines([
            TextElement("A", size=TextSize.DOUBLE_HEIGHT),
            TextElement("B"),
            RuleElement(width=2),
            TextElement("C"),
        ])
        assert lines[3] == 'TEXT 16,16,"2",0,1,2,"A"'
        assert lines[4] == 'TEXT 16,64,"2",0,1,1,"B"'
        assert lines[5] == "BAR 16,99,24,2"
        assert lines[6] == 'TEXT 16,112,"2",0,1,1,"C"'

    def test_quotes_escaped(self):
        lines = self.lines([TextElement('say "hi"')])
        assert lines[3] == 'TEXT 16,16,"2",0,1,1,"say \\["]hi\\["]"'

    def test_codes(self):
        lines = self.lines([
            CodeElement("abc", position=Alignment.LEFT),
            CodeElement("123", symbology=Symbology.CODE128, position=Alignment.LEFT),
        ])
        assert lines[3] == 'QRCODE 16,16,L,6,A,0,"abc"'
        assert lines[4].startswith('BARCODE 16,')
        assert lines[4].endswith(',"128",60,1,0,2,2,"123"')

    def test_code_payload_not_transliterated(self):
        payload = "https://x.uz/o‘zbek?q=`a`&n=Ҳ"
        lines = self.lines([CodeElement(payload, position=Alignment.LEFT), TextElement("o‘zbek")])
        assert lines[3] == f'QRCODE 16,16,L,6,A,0,"{payload}"'
        assert lines[4].endswith(',"o\'zbek"')

    def test_no_cut_directive(self):
        lines = self.lines([FeedCut(lines=2, cut=True)])
        assert lines == ["SIZE 58 mm, 11 mm", "GAP 2 mm, 0 mm", "CLS", "PRINT 1"]


class TestPreviewEncoder:
    def test_framed_output(self):
        text = encode([
            TextElement("Hi"),
            RuleElement(),
            FeedCut(lines=1, cut=True),
        ], PreviewProtocol(columns=8)).decode("utf-8")
        assert text.split("\n") == [
            "+--------+",
            "|Hi      |",
            "|--------|",
            "|        |",
            "|- - cut |",
            "+--------+",
        ]


class TestRegistry:
    def test_unknown_profile_rejected(self):
        with pytest.raises(TypeError):
            encoder_for(object())

    def test_register_custom_encoder(self):
        class Custom:
            pass

        class CustomEncoder:
            def __init__(self, profile):
                self.profile = profile

            def encode(self, elements):
                return b"%d" % len(elements)

        register_encoder(Custom, CustomEncoder)
        assert encode([TextElement("a"), FeedCut()], Custom()) == b"2"
