"""
Billing period and money helpers.

A billing period is a calendar month, written "YYYY-MM" wherever it is stored.
"""
import calendar
import re
import uuid
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterator, Optional

from dairy_billing.core.exceptions import ValidationError


MONEY_QUANT = Decimal("0.01")
PERIOD_PATTERN = re.compile(r"^(\d{4})-(\d{2})$")


def to_money(value) -> Decimal:
    """Round a numeric value half-up to paise."""
    if value is None:
        return Decimal("0.00")
    return Decimal(str(value)).quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True, order=True)
class BillingPeriod:
    year: int
    month: int

    def __post_init__(self):
        if not isinstance(self.year, int) or not 2000 <= self.year <= 9999:
            raise ValidationError(f"Invalid billing year: {self.year}")
        if not isinstance(self.month, int) or not 1 <= self.month <= 12:
            raise ValidationError(f"Invalid billing month: {self.month}")

    @classmethod
    def parse(cls, label: str) -> "BillingPeriod":
        """Parse a "YYYY-MM" label."""
        match = PERIOD_PATTERN.match(label or "")
        if not match:
            raise ValidationError(f"Billing period must be YYYY-MM, got {label!r}")
        return cls(int(match.group(1)), int(match.group(2)))

    @classmethod
    def containing(cls, day: date) -> "BillingPeriod":
        return cls(day.year, day.month)

    @property
    def label(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"

    @property
    def days(self) -> int:
        return calendar.monthrange(self.year, self.month)[1]

    @property
    def first_day(self) -> date:
        return date(self.year, self.month, 1)

    @property
    def last_day(self) -> date:
        return date(self.year, self.month, self.days)

    def next(self) -> "BillingPeriod":
        if self.month == 12:
            return BillingPeriod(self.year + 1, 1)
        return BillingPeriod(self.year, self.month + 1)

    def previous(self) -> "BillingPeriod":
        if self.month == 1:
            return BillingPeriod(self.year - 1, 12)
        return BillingPeriod(self.year, self.month - 1)

    def dates(self) -> Iterator[date]:
        day = self.first_day
        while day <= self.last_day:
            yield day
            day += timedelta(days=1)

    def is_future(self, today: Optional[date] = None) -> bool:
        """True when the period has not started yet."""
        today = today or date.today()
        return self.first_day > today

    def due_date(self, due_day: int) -> date:
        """Due date: `due_day` of the following month, clamped to its length."""
        following = self.next()
        return date(following.year, following.month, min(due_day, following.days))

    def __str__(self) -> str:
        return self.label


def customer_code(customer_id: uuid.UUID) -> str:
    """Short, stable customer code used inside invoice numbers."""
    return customer_id.hex[:8].upper()


def format_invoice_number(
    prefix: str,
    period: BillingPeriod,
    customer_id: uuid.UUID,
    sequence: int,
) -> str:
    """e.g. INV-202411-1A2B3C4D-0007"""
    return f"{prefix}-{period.year:04d}{period.month:02d}-{customer_code(customer_id)}-{sequence:04d}"
