from datetime import date
from decimal import Decimal
import uuid

import pytest
from pydantic import ValidationError as PydanticValidationError

from dairy_billing.config import Settings
from dairy_billing.core.exceptions import ValidationError
from dairy_billing.core.periods import BillingPeriod, format_invoice_number, to_money
from dairy_billing.services.payment_policy import PaymentWindowPolicy


def test_to_money_rounds_half_up():
    assert to_money(Decimal("10.005")) == Decimal("10.01")
    assert to_money("2.675") == Decimal("2.68")
    assert to_money(None) == Decimal("0.00")


def test_period_bounds_handle_leap_february():
    period = BillingPeriod(2024, 2)
    assert period.days == 29
    assert period.last_day == date(2024, 2, 29)
    assert len(list(period.dates())) == 29


def test_due_date_rolls_into_next_year_and_clamps():
    assert BillingPeriod(2024, 12).due_date(10) == date(2025, 1, 10)
    assert BillingPeriod(2025, 1).due_date(31) == date(2025, 2, 28)


@pytest.mark.parametrize("label", ["2024-13", "2024-1", "24-11", "", "2024/11"])
def test_parse_rejects_malformed_labels(label):
    with pytest.raises(ValidationError):
        BillingPeriod.parse(label)


def test_current_month_is_billable_but_next_is_not():
    today = date(2024, 11, 15)
    assert not BillingPeriod(2024, 11).is_future(today)
    assert BillingPeriod(2024, 12).is_future(today)


def test_invoice_number_format():
    customer_id = uuid.UUID("1a2b3c4d-0000-0000-0000-000000000000")
    number = format_invoice_number("INV", BillingPeriod(2024, 11), customer_id, 7)
    assert number == "INV-202411-1A2B3C4D-0007"


def test_disabled_window_allows_anything():
    PaymentWindowPolicy(enabled=False).check("2020-01", date(2024, 11, 28))


def test_window_allows_previous_month_in_first_days():
    policy = PaymentWindowPolicy(enabled=True, last_day=10)
    policy.check("2024-10", date(2024, 11, 1))
    policy.check("2024-12", date(2025, 1, 10))


def test_window_rejects_late_or_wrong_month():
    policy = PaymentWindowPolicy(enabled=True, last_day=10)
    with pytest.raises(ValidationError):
        policy.check("2024-10", date(2024, 11, 11))
    with pytest.raises(ValidationError):
        policy.check("2024-11", date(2024, 11, 5))
    with pytest.raises(ValidationError):
        policy.check("2024-09", date(2024, 11, 5))


def test_billing_settings_are_the_ones_the_engine_reads():
    fields = set(Settings.model_fields)
    assert {"BILL_DUE_DAY", "INVOICE_PREFIX", "PAYMENT_WINDOW_ENABLED", "PAYMENT_WINDOW_LAST_DAY"} <= fields
    assert "CURRENCY" not in fields


@pytest.mark.parametrize("day", [0, 32])
def test_due_day_setting_must_be_a_day_of_month(day):
    with pytest.raises(PydanticValidationError):
        Settings(BILL_DUE_DAY=day)
