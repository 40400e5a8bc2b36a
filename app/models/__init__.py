from app.models.purchase import (
    POApprovalStatus,
    PaymentType,
    POPaymentStatus,
    PurchaseOrder,
    PurchaseOrderItem,
    PurchaseOrderSkuMatrix,
)
from app.models.receiving import (
    GRNLineStatus,
    GRNStatus,
    VarianceReason,
    GoodsReceiptNote,
    GRNLine,
    GRNBatch,
    GRNPhoto,
)
from app.models.payment import (
    PaymentTransactionStatus,
    PaymentMode,
    CreditNoteStatus,
    CreditNoteSource,
    PaymentTransaction,
    CreditNote,
)

__all__ = [
    "POApprovalStatus",
    "PaymentType",
    "POPaymentStatus",
    "PurchaseOrder",
    "PurchaseOrderItem",
    "PurchaseOrderSkuMatrix",
    "GRNLineStatus",
    "GRNStatus",
    "VarianceReason",
    "GoodsReceiptNote",
    "GRNLine",
    "GRNBatch",
    "GRNPhoto",
    "PaymentTransactionStatus",
    "PaymentMode",
    "CreditNoteStatus",
    "CreditNoteSource",
    "PaymentTransaction",
    "CreditNote",
]
