from dairy_billing.models.customer import (
    Customer, BillingType, CustomerType, BillingPlan, SubscriptionPlan, PerLiterPlan
)
from dairy_billing.models.delivery import (
    DeliveryRecord, AdditionalProductLine, DeliveryStatus, ProductType
)
from dairy_billing.models.bill import Bill, BillPayment, BillStatus, PaymentMethod

__all__ = [
    "Customer", "BillingType", "CustomerType", "BillingPlan", "SubscriptionPlan", "PerLiterPlan",
    "DeliveryRecord", "AdditionalProductLine", "DeliveryStatus", "ProductType",
    "Bill", "BillPayment", "BillStatus", "PaymentMethod",
]
