"""
Shared enumerations for database models.

Using Python enums mapped to database enums ensures that
only valid values can be stored. An invalid account_type
or cash transaction type is caught at the database level,
not just in Python validation.
"""

import enum


class AccountType(str, enum.Enum):
    """The five fundamental accounting categories."""
    ASSET = "ASSET"
    LIABILITY = "LIABILITY"
    EQUITY = "EQUITY"
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


class CashTransactionType(str, enum.Enum):
    RECEIPT = "receipt"
    PAYMENT = "payment"
    EXPENSE = "expense"
    TRANSFER_IN = "transfer_in"
    TRANSFER_OUT = "transfer_out"


# Types that add to / take from a cash or bank account
CASH_INFLOW_TYPES = (CashTransactionType.RECEIPT, CashTransactionType.TRANSFER_IN)
CASH_OUTFLOW_TYPES = (
    CashTransactionType.PAYMENT,
    CashTransactionType.EXPENSE,
    CashTransactionType.TRANSFER_OUT,
)


class CashTransactionStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    VOID = "void"


class StockMovementType(str, enum.Enum):
    """Reason a product's on-hand quantity changed at a branch."""
    PURCHASE = "purchase"
    SALE = "sale"
    RETURN = "return"
    ADJUSTMENT = "adjustment"
    TRANSFER_IN = "transfer_in"
    TRANSFER_OUT = "transfer_out"
    PURCHASE_CLAIM = "purchase_claim"
    PURCHASE_RETURN = "purchase_return"


class ReceiveStatus(str, enum.Enum):
    ORDERED = "ordered"
    PARTIAL = "partial"
    RECEIVED = "received"


class ClaimType(str, enum.Enum):
    DAMAGE = "damage"
    EXPIRY = "expiry"
    SHORTAGE = "shortage"
    WRONG_ITEM = "wrong_item"
    OTHER = "other"


class ClaimStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CLOSED = "closed"


class PartyKind(str, enum.Enum):
    """Who a receivable/payable posting is attributed to."""
    CUSTOMER = "customer"
    VENDOR = "vendor"


class DocumentKind(str, enum.Enum):
    """Business documents that can originate postings or cash rows."""
    SALE = "sale"
    PAYMENT = "payment"
    SALE_RETURN = "sale_return"
    SALE_RETURN_REFUND = "sale_return_refund"
    RECEIPT = "receipt"
    PURCHASE = "purchase"
    PURCHASE_PAYMENT = "purchase_payment"
    PURCHASE_CLAIM = "purchase_claim"
    PURCHASE_CLAIM_RECEIPT = "purchase_claim_receipt"
    VENDOR_PAYMENT = "vendor_payment"
