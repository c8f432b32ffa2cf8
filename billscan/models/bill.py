"""This file contains the bill model for the application."""

from datetime import UTC, date as date_type, datetime, time
from decimal import Decimal, DecimalException
from typing import Annotated, Any, List, Optional
from bson import Decimal128
from pydantic import AfterValidator, AliasChoices, Field, PlainSerializer, field_validator

from billscan.models.base import BaseModel


def fits_decimal128(v: Decimal) -> Decimal:
    """Reject values MongoDB cannot store exactly as Decimal128."""
    try:
        Decimal128(v)
    except DecimalException:
        raise ValueError("must have at most 34 significant digits and fit the Decimal128 exponent range") from None
    return v


# Exact in Python, stored as Decimal128, emitted as a JSON number.
JsonDecimal = Annotated[
    Decimal,
    AfterValidator(fits_decimal128),
    PlainSerializer(float, return_type=float, when_used="json"),
]


class LineItem(BaseModel):
    """A single purchased item on a bill.

    ``total_price`` is stored as reported and never recomputed from
    ``quantity * unit_price``.
    """

    item_name: Optional[str] = None
    quantity: Optional[JsonDecimal] = None
    unit_price: Optional[JsonDecimal] = None
    total_price: Optional[JsonDecimal] = None


class Bill(BaseModel):
    """Bill model for storing scanned receipts.

    Attributes:
        id: Document id (``_id`` in MongoDB), immutable once assigned
        vendor: Name of the vendor or store
        date: Purchase date normalized to UTC
        total_amount: Final amount due
        payment_method: Payment method, if known
        line_items: Purchased items in bill order
    """

    id: Optional[str] = Field(default=None, alias="id", validation_alias=AliasChoices("id", "_id"))
    vendor: Optional[str] = None
    date: Optional[datetime] = None
    total_amount: Optional[JsonDecimal] = None
    payment_method: Optional[str] = None
    line_items: List[LineItem] = Field(default_factory=list)

    @field_validator("date", mode="before")
    @classmethod
    def parse_bill_date(cls, v: Any) -> Any:
        """Accept ISO-8601 dates and treat a missing time as midnight UTC."""
        if v is None:
            return None
        if isinstance(v, str):
            v = v.strip()
            if not v:
                return None
            if len(v) == 10:
                v = date_type.fromisoformat(v)
        if isinstance(v, date_type) and not isinstance(v, datetime):
            return datetime.combine(v, time.min, tzinfo=UTC)
        return v

    @field_validator("date")
    @classmethod
    def normalize_to_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        if v is None:
            return None
        if v.tzinfo is None:
            return v.replace(tzinfo=UTC)
        return v.astimezone(UTC)

    @field_validator("payment_method", mode="before")
    @classmethod
    def blank_payment_method(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("line_items", mode="before")
    @classmethod
    def default_line_items(cls, v: Any) -> Any:
        return [] if v is None else v
