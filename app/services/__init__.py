# Services module
from app.services.baseline_provider import BaselineProvider, OrderBaseline
from app.services.grn_service import GRNService, OrderReceiptStatus
from app.services.vendor_payment_service import VendorPaymentService, PaymentOutcome, CreditDueInfo

__all__ = [
    "BaselineProvider",
    "OrderBaseline",
    # Receiving
    "GRNService",
    "OrderReceiptStatus",
    # Payments
    "VendorPaymentService",
    "PaymentOutcome",
    "CreditDueInfo",
]
