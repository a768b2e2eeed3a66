"""
Payment date-window policy for customer self-service payments.

When enabled, a customer may only pay the previous month's bill, and only
during days 1..PAYMENT_WINDOW_LAST_DAY of the current month. Applied by the
API layer before PaymentProcessor.record_payment; the processor itself never
checks it.
"""
from dataclasses import dataclass
from datetime import date
from typing import Optional

from dairy_billing.config import settings
from dairy_billing.core.exceptions import ValidationError
from dairy_billing.core.periods import BillingPeriod


@dataclass(frozen=True)
class PaymentWindowPolicy:
    enabled: bool = False
    last_day: int = 10

    @classmethod
    def from_settings(cls) -> "PaymentWindowPolicy":
        return cls(
            enabled=settings.PAYMENT_WINDOW_ENABLED,
            last_day=settings.PAYMENT_WINDOW_LAST_DAY,
        )

    def check(self, billing_period: str, today: Optional[date] = None) -> None:
        """Raise ValidationError when a payment for `billing_period` is outside the window."""
        if not self.enabled:
            return

        today = today or date.today()
        payable = BillingPeriod.containing(today).previous()
        period = BillingPeriod.parse(billing_period)

        if period != payable:
            raise ValidationError(
                f"Only the {payable} bill can be paid in {BillingPeriod.containing(today)}"
            )
        if today.day > self.last_day:
            raise ValidationError(
                f"Payments for {payable} are accepted from day 1 to day {self.last_day} "
                "of the month"
            )


def check_payment_window(billing_period: str, today: Optional[date] = None) -> None:
    PaymentWindowPolicy.from_settings().check(billing_period, today)
