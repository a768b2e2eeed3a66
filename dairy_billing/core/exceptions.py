"""
Billing error taxonomy.

- ValidationError: malformed input or missing billing configuration (400)
- NotFoundError: referenced bill/customer/record does not exist (404)
- DuplicateBillError: bill already issued for (customer, period) (409)
- InvoiceNumberCollisionError: generated invoice number already taken (409)
- IntegrityFault: stored balance disagrees with the bill/payment ledger (500).
  Never retried; the customer is put on billing hold until an operator clears it.
"""
import uuid
from decimal import Decimal
from typing import Optional


class BillingError(Exception):
    """Base class for billing domain errors."""
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(BillingError):
    """Raised when input or billing configuration is invalid."""
    status_code = 400


class BilledPeriodLockedError(ValidationError):
    """Raised when a delivery record in an already billed period is changed."""
    pass


class NotFoundError(BillingError):
    """Raised when a referenced entity does not exist."""
    status_code = 404


class DuplicateBillError(BillingError):
    """Raised when a bill already exists for the customer and period."""
    status_code = 409

    def __init__(self, customer_id: uuid.UUID, billing_period: str):
        super().__init__(
            f"Bill already exists for customer {customer_id} in {billing_period}"
        )
        self.customer_id = customer_id
        self.billing_period = billing_period


class InvoiceNumberCollisionError(BillingError):
    """Raised when a generated invoice number is already in use."""
    status_code = 409


class IntegrityFault(BillingError):
    """Raised when a customer's stored balance does not match the ledger."""
    status_code = 500

    def __init__(
        self,
        customer_id: uuid.UUID,
        discrepancy: Optional[Decimal] = None,
        message: Optional[str] = None,
    ):
        if message is None:
            message = (
                f"Balance for customer {customer_id} is off by {discrepancy}; "
                "writes are on hold until resolved"
            )
        super().__init__(message)
        self.customer_id = customer_id
        self.discrepancy = discrepancy
