"""Receipt document model.

The host application hands over receipts as loosely-typed maps with
camelCase keys. These models pin down the recognized keys and the
default used for every missing or malformed value; unknown keys are
ignored. All models are frozen.
"""

import logging
import math
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, ValidationInfo, field_validator, model_validator
from pydantic.alias_generators import to_camel

from chekprint.errors import StructuralError
from chekprint.printing.elements import Element, elements_from_mappings

logger = logging.getLogger(__name__)


DEFAULT_COMPANY_NAME = "Kompaniya"
DEFAULT_TRANSACTION_ID = "-"
DEFAULT_PAGE_WIDTH = 32
DEFAULT_FEED_LINES = 4
STATUS_NORMAL = 1
TAX_RATE = 0.15


def _number(value: Any, default: Optional[float]) -> Optional[float]:
    """Coerce a host value to a finite float, or return ``default``."""
    if value is None or value == "" or isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        logger.debug(f"Ignoring non-numeric value {value!r}")
        return default
    if not math.isfinite(number):
        return default
    return number


def _text(value: Any, default: str) -> Any:
    """Pass strings and numbers through; anything else, or a blank string, is ``default``."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    if not isinstance(value, str) or not value.strip():
        return default
    return value


TRUE_WORDS = ("true", "1", "yes", "on")
FALSE_WORDS = ("false", "0", "no", "off")


class _InputModel(BaseModel):
    """Base for models built from host-application maps."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
        coerce_numbers_to_str=True,
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        # JSON nulls mean "not given": let the field default apply
        if isinstance(data, Mapping):
            return {key: value for key, value in data.items() if value is not None}
        return data


class ItemStatus(Enum):
    """Line item status."""

    NORMAL = "normal"
    RETURNED = "returned"


class PaymentKind(Enum):
    """Known payment methods."""

    CASH = "cash"
    CARD = "card"


class LineItem(_InputModel):
    """One product line of a receipt."""

    name: str = ""
    quantity: float = 1.0
    unit: str = ""
    price: float = 0.0
    status: ItemStatus = ItemStatus.NORMAL

    @field_validator("name", "unit", mode="before")
    @classmethod
    def _lenient_text(cls, value: Any) -> Any:
        return _text(value, "")

    @field_validator("quantity", mode="before")
    @classmethod
    def _lenient_quantity(cls, value: Any) -> float:
        return _number(value, 1.0)

    @field_validator("price", mode="before")
    @classmethod
    def _lenient_price(cls, value: Any) -> float:
        return _number(value, 0.0)

    @field_validator("status", mode="before")
    @classmethod
    def _lenient_status(cls, value: Any) -> ItemStatus:
        if isinstance(value, ItemStatus):
            return value
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return ItemStatus.NORMAL if int(value) == STATUS_NORMAL else ItemStatus.RETURNED
        if str(value).strip().lower() in ("returned", "qaytarilgan", "return"):
            return ItemStatus.RETURNED
        return ItemStatus.NORMAL

    @property
    def is_returned(self) -> bool:
        return self.status == ItemStatus.RETURNED

    @property
    def line_total(self) -> float:
        return self.quantity * self.price


class PaymentMethod(_InputModel):
    """A payment towards the receipt total."""

    method: str = PaymentKind.CASH.value
    amount: float = 0.0

    @field_validator("method", mode="before")
    @classmethod
    def _normalize_method(cls, value: Any) -> str:
        return str(value).strip().lower()

    @field_validator("amount", mode="before")
    @classmethod
    def _lenient_amount(cls, value: Any) -> float:
        return _number(value, 0.0)


class TemplateSettings(_InputModel):
    """Page geometry and finishing options."""

    page_width: int = DEFAULT_PAGE_WIDTH
    use_auto_cut: bool = True
    feed_line_count: int = DEFAULT_FEED_LINES

    @field_validator("page_width", mode="before")
    @classmethod
    def _lenient_width(cls, value: Any) -> int:
        number = _number(value, DEFAULT_PAGE_WIDTH)
        return int(number)

    @field_validator("feed_line_count", mode="before")
    @classmethod
    def _lenient_feed(cls, value: Any) -> int:
        number = _number(value, DEFAULT_FEED_LINES)
        return int(number)

    @field_validator("use_auto_cut", mode="before")
    @classmethod
    def _lenient_cut(cls, value: Any) -> bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, (int, float)) and value in (0, 1):
            return bool(value)
        if isinstance(value, str) and value.strip().lower() in TRUE_WORDS + FALSE_WORDS:
            return value.strip().lower() in TRUE_WORDS
        logger.debug(f"Ignoring auto-cut flag {value!r}")
        return True

    def check(self) -> None:
        """Raise StructuralError if the geometry can't be laid out."""
        if self.page_width < 1:
            raise StructuralError(f"page width must be at least 1 column, got {self.page_width}")
        if self.feed_line_count < 0:
            raise StructuralError(f"feed line count can't be negative, got {self.feed_line_count}")


class ReceiptDocument(_InputModel):
    """A receipt (cheque) ready to be laid out.

    A non-empty ``supplier_name`` marks a purchase receipt; anything
    else is rendered as a sale. When ``elements`` is non-empty the
    business template is bypassed and those elements are printed as
    given.
    """

    company_name: str = DEFAULT_COMPANY_NAME
    transaction_id: str = DEFAULT_TRANSACTION_ID
    status: int = STATUS_NORMAL
    status_name: str = ""
    seller_name: str = ""
    receiver_name: str = ""
    supplier_name: str = ""
    total_amount: Optional[float] = None
    final_amount: Optional[float] = None
    created_at: Optional[datetime] = None
    products: Tuple[LineItem, ...] = ()
    payment_methods: Tuple[PaymentMethod, ...] = ()
    elements: Tuple[Any, ...] = ()
    template_settings: TemplateSettings = TemplateSettings()

    @field_validator(
        "company_name", "transaction_id", "status_name", "seller_name", "receiver_name", "supplier_name",
        mode="before",
    )
    @classmethod
    def _lenient_text(cls, value: Any, info: ValidationInfo) -> Any:
        return _text(value, cls.model_fields[info.field_name].default)

    @field_validator("status", mode="before")
    @classmethod
    def _lenient_status(cls, value: Any) -> int:
        return int(_number(value, STATUS_NORMAL))

    @field_validator("total_amount", "final_amount", mode="before")
    @classmethod
    def _lenient_amount(cls, value: Any) -> Optional[float]:
        return _number(value, None)

    @field_validator("created_at", mode="before")
    @classmethod
    def _lenient_timestamp(cls, value: Any) -> Optional[datetime]:
        if isinstance(value, datetime):
            return value
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            # Host timestamps may be in milliseconds
            seconds = value / 1000 if value > 1e11 else value
            try:
                return datetime.fromtimestamp(seconds, tz=timezone.utc)
            except (OverflowError, OSError, ValueError):
                logger.debug(f"Ignoring out-of-range timestamp {value!r}")
                return None
        if isinstance(value, str):
            try:
                return datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
            except ValueError:
                logger.debug(f"Ignoring unparseable timestamp {value!r}")
        return None

    @field_validator("products", "payment_methods", mode="before")
    @classmethod
    def _mappings_only(cls, value: Any) -> Any:
        if not isinstance(value, (list, tuple)):
            return ()
        return tuple(entry for entry in value if isinstance(entry, (Mapping, BaseModel)))

    @field_validator("elements", mode="before")
    @classmethod
    def _parse_elements(cls, value: Any) -> Tuple[Element, ...]:
        if not isinstance(value, (list, tuple)):
            return ()
        parsed = []
        for entry in value:
            if isinstance(entry, Mapping):
                parsed.extend(elements_from_mappings([entry]))
            elif entry is not None:
                parsed.append(entry)
        return tuple(parsed)

    @field_validator("template_settings", mode="before")
    @classmethod
    def _settings_mapping(cls, value: Any) -> Any:
        if isinstance(value, (Mapping, TemplateSettings)):
            return value
        return TemplateSettings()

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ReceiptDocument":
        """Build a document from a host-application map."""
        return cls.model_validate(dict(data))

    @property
    def is_purchase(self) -> bool:
        """Purchase receipts name a supplier; everything else is a sale."""
        return bool(self.supplier_name.strip())

    @property
    def total(self) -> float:
        """Receipt total, summed from non-returned items when not given."""
        if self.total_amount is not None:
            return self.total_amount
        return sum(item.line_total for item in self.products if not item.is_returned)

    @property
    def final(self) -> float:
        """Amount due after discounts; equals the total when not given."""
        if self.final_amount is not None:
            return self.final_amount
        return self.total

    @property
    def tax(self) -> float:
        """VAT included in the final amount."""
        return self.final * TAX_RATE

