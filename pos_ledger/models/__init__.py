"""
Database models package.

All models must be imported here so that Alembic can discover
them through Base.metadata when generating migrations.
"""

from pos_ledger.models.base import Base
from pos_ledger.models.enums import (
    AccountType,
    CashTransactionType,
    CashTransactionStatus,
    StockMovementType,
    ReceiveStatus,
    ClaimType,
    ClaimStatus,
    PartyKind,
    DocumentKind,
)
from pos_ledger.models.account import Account
from pos_ledger.models.journal_entry import JournalEntry
from pos_ledger.models.journal_posting import JournalPosting
from pos_ledger.models.payment_method_account import PaymentMethodAccount
from pos_ledger.models.cash_transaction import CashTransaction
from pos_ledger.models.inventory import Product, ProductStock, StockMovement
from pos_ledger.models.parties import Customer, Vendor
from pos_ledger.models.sales import (
    Sale,
    SaleItem,
    Payment,
    SaleReturn,
    SaleReturnItem,
    SaleReturnRefund,
    Receipt,
    ReceiptAllocation,
)
from pos_ledger.models.purchases import (
    Purchase,
    PurchaseItem,
    PurchasePayment,
    PurchaseClaim,
    PurchaseClaimItem,
    PurchaseClaimReceipt,
    VendorPayment,
)

__all__ = [
    "Base",
    "AccountType",
    "CashTransactionType",
    "CashTransactionStatus",
    "StockMovementType",
    "ReceiveStatus",
    "ClaimType",
    "ClaimStatus",
    "PartyKind",
    "DocumentKind",
    "Account",
    "JournalEntry",
    "JournalPosting",
    "PaymentMethodAccount",
    "CashTransaction",
    "Product",
    "ProductStock",
    "StockMovement",
    "Customer",
    "Vendor",
    "Sale",
    "SaleItem",
    "Payment",
    "SaleReturn",
    "SaleReturnItem",
    "SaleReturnRefund",
    "Receipt",
    "ReceiptAllocation",
    "Purchase",
    "PurchaseItem",
    "PurchasePayment",
    "PurchaseClaim",
    "PurchaseClaimItem",
    "PurchaseClaimReceipt",
    "VendorPayment",
]
