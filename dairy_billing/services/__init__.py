# Services module
from dairy_billing.services.customer_service import CustomerService
from dairy_billing.services.delivery_ledger_service import DeliveryLedgerService
from dairy_billing.services.bill_service import BillService
from dairy_billing.services.bill_generator import BillGenerator
from dairy_billing.services.payment_processor import PaymentProcessor
from dairy_billing.services.balance_reconciler import BalanceReconciler
from dairy_billing.services.payment_policy import PaymentWindowPolicy

__all__ = [
    "CustomerService",
    "DeliveryLedgerService",
    "BillService",
    "BillGenerator",
    "PaymentProcessor",
    "BalanceReconciler",
    "PaymentWindowPolicy",
]
