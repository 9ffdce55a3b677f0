"""
The fixed chart of accounts.

Account codes are the stable contract every posting call site uses.
The constants below are the only place a code is spelled out; the
seeder creates the matching rows and the global payment-method
mappings.
"""

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from pos_ledger.models.account import Account
from pos_ledger.models.enums import AccountType
from pos_ledger.models.payment_method_account import PaymentMethodAccount

logger = logging.getLogger(__name__)

CASH = "1000"
BANK = "1010"
ACCOUNTS_RECEIVABLE = "1200"
INVENTORY = "1400"
INPUT_VAT = "2105"
ACCOUNTS_PAYABLE = "2000"
SALES_TAX_PAYABLE_LEGACY = "2100"
OUTPUT_VAT = "2205"
RETAINED_EARNINGS = "3100"
SALES_REVENUE = "4000"
COGS = "5100"
PURCHASE_PRICE_VARIANCE = "5205"
GENERAL_EXPENSES = "5300"

# Cost of goods sold section of the P&L
COGS_CODES = (COGS, PURCHASE_PRICE_VARIANCE)

CHART_OF_ACCOUNTS = [
    (CASH, "Cash in Hand", AccountType.ASSET),
    (BANK, "Bank", AccountType.ASSET),
    (ACCOUNTS_RECEIVABLE, "Accounts Receivable", AccountType.ASSET),
    (INVENTORY, "Inventory", AccountType.ASSET),
    (INPUT_VAT, "Input VAT (Recoverable)", AccountType.ASSET),
    (ACCOUNTS_PAYABLE, "Accounts Payable", AccountType.LIABILITY),
    (SALES_TAX_PAYABLE_LEGACY, "Sales Tax Payable (legacy)", AccountType.LIABILITY),
    (OUTPUT_VAT, "Output VAT (Sales Tax Payable)", AccountType.LIABILITY),
    (RETAINED_EARNINGS, "Retained Earnings", AccountType.EQUITY),
    (SALES_REVENUE, "Sales Revenue", AccountType.INCOME),
    (COGS, "Cost of Goods Sold", AccountType.EXPENSE),
    (PURCHASE_PRICE_VARIANCE, "Purchase Price Variance", AccountType.EXPENSE),
    (GENERAL_EXPENSES, "General Expenses", AccountType.EXPENSE),
]

DEFAULT_METHOD_ACCOUNTS = {
    "cash": CASH,
    "bank": BANK,
    "card": BANK,
    "wallet": BANK,
}


def seed_chart_of_accounts(db: Session) -> dict[str, Account]:
    """
    Create any missing chart rows and global method mappings.

    Safe to run repeatedly: existing accounts and mappings are left
    untouched. Returns every chart account keyed by code.
    """
    existing = {
        a.code: a for a in db.execute(select(Account)).scalars().all()
    }

    created = 0
    for code, name, account_type in CHART_OF_ACCOUNTS:
        if code in existing:
            continue
        account = Account(code=code, name=name, account_type=account_type)
        db.add(account)
        existing[code] = account
        created += 1
    db.flush()

    mapped = set(
        db.execute(
            select(PaymentMethodAccount.method).where(
                PaymentMethodAccount.branch_id.is_(None)
            )
        ).scalars().all()
    )
    for method, code in DEFAULT_METHOD_ACCOUNTS.items():
        if method in mapped:
            continue
        db.add(PaymentMethodAccount(
            method=method,
            account_id=existing[code].id,
            branch_id=None,
        ))
    db.flush()

    if created:
        logger.info("Seeded %d chart of accounts row(s)", created)
    return existing
