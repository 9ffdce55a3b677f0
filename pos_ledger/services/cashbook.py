"""
Daily cashbook.

Receipts are debits to the cash/bank accounts, payments are credits.
The expense column is the part of each entry's cash outflow that paid
an expense: min(cash credits, expense debits) per journal entry, so an
expense settled partly on account is not counted twice.
"""

import logging
from collections import defaultdict
from datetime import date, datetime, timedelta

from sqlalchemy import select, func, case, or_
from sqlalchemy.orm import Session

from pos_ledger import chart
from pos_ledger.config import get_settings
from pos_ledger.exceptions import LedgerError
from pos_ledger.models.account import Account
from pos_ledger.models.enums import AccountType
from pos_ledger.models.journal_entry import JournalEntry
from pos_ledger.models.journal_posting import JournalPosting
from pos_ledger.money import ZERO, to_money
from pos_ledger.schemas.reports import (
    CashbookQuery, CashbookResult, CashbookDay, CashbookTotals,
)
from pos_ledger.services.running_balance import (
    EFFECTIVE_DATE, NET_DEBIT, check_range, clamp_per_page, date_series,
    day_start, next_day_start, paginate, scalar_money,
)

logger = logging.getLogger(__name__)

MAX_PER_PAGE = 5000


class CashbookService:

    def __init__(self, db: Session):
        self.db = db
        self.settings = get_settings()

    def _account_ids(self, query: CashbookQuery) -> tuple[list[str], list[int]]:
        if query.account_codes:
            codes = list(query.account_codes)
        elif query.include_bank:
            codes = list(self.settings.CASH_ACCOUNT_CODES)
        else:
            codes = [chart.CASH]

        ids = list(self.db.execute(
            select(Account.id).where(Account.code.in_(codes))
        ).scalars().all())
        if not ids:
            raise LedgerError(
                f"No cashbook accounts found for codes {codes}; seed the chart of accounts"
            )
        return codes, ids

    def daily_summary(self, query: CashbookQuery | None = None, **params) -> CashbookResult:
        query = query or CashbookQuery(**params)
        today = datetime.utcnow().date()
        date_from = query.date_from or today - timedelta(days=6)
        date_to = query.date_to or today
        check_range(date_from, date_to)

        codes, account_ids = self._account_ids(query)

        opening_stmt = (
            select(NET_DEBIT)
            .select_from(JournalPosting)
            .join(JournalEntry, JournalEntry.id == JournalPosting.journal_entry_id)
            .where(
                JournalPosting.account_id.in_(account_ids),
                EFFECTIVE_DATE < day_start(date_from),
            )
        )
        if query.branch_id:
            opening_stmt = opening_stmt.where(JournalEntry.branch_id == query.branch_id)
        opening = scalar_money(self.db, opening_stmt)

        is_cash = JournalPosting.account_id.in_(account_ids)
        is_expense = Account.account_type == AccountType.EXPENSE
        per_entry = (
            select(
                JournalEntry.id,
                EFFECTIVE_DATE.label("eff_date"),
                func.sum(case((is_cash, JournalPosting.debit), else_=0)).label("cash_debit"),
                func.sum(case((is_cash, JournalPosting.credit), else_=0)).label("cash_credit"),
                func.sum(case((is_expense, JournalPosting.debit), else_=0)).label("expense_debit"),
            )
            .select_from(JournalPosting)
            .join(JournalEntry, JournalEntry.id == JournalPosting.journal_entry_id)
            .join(Account, Account.id == JournalPosting.account_id)
            .where(
                EFFECTIVE_DATE >= day_start(date_from),
                EFFECTIVE_DATE < next_day_start(date_to),
                or_(is_cash, is_expense),
            )
            .group_by(JournalEntry.id, EFFECTIVE_DATE)
        )
        if query.branch_id:
            per_entry = per_entry.where(JournalEntry.branch_id == query.branch_id)

        per_day = defaultdict(lambda: {"receipts": ZERO, "payments": ZERO, "expense": ZERO})
        for row in self.db.execute(per_entry):
            bucket = per_day[row.eff_date.date()]
            receipts = to_money(row.cash_debit)
            payments = to_money(row.cash_credit)
            bucket["receipts"] += receipts
            bucket["payments"] += payments
            bucket["expense"] += min(payments, to_money(row.expense_debit))

        rows = []
        running = opening
        for day in date_series(date_from, date_to):
            bucket = per_day.get(day, {"receipts": ZERO, "payments": ZERO, "expense": ZERO})
            net = bucket["receipts"] - bucket["payments"]
            running += net
            rows.append(CashbookDay(
                day=day,
                receipts=bucket["receipts"],
                payments=bucket["payments"],
                expense=bucket["expense"],
                net=net,
                closing=running,
            ))

        receipts = sum((r.receipts for r in rows), ZERO)
        payments = sum((r.payments for r in rows), ZERO)
        totals = CashbookTotals(
            receipts=receipts,
            payments=payments,
            expense=sum((r.expense for r in rows), ZERO),
            net=receipts - payments,
            closing=running,
        )

        pagination = None
        if query.page is not None:
            per_page = clamp_per_page(query.per_page, MAX_PER_PAGE)
            offset, pagination = paginate(query.page, per_page, len(rows))
            rows = rows[offset:offset + per_page]

        return CashbookResult(
            date_from=date_from,
            date_to=date_to,
            branch_id=query.branch_id,
            account_codes=codes,
            opening=opening,
            rows=rows,
            totals=totals,
            pagination=pagination,
        )
