"""
DayBook: day-by-day cash movement across all accounts.

Cash in is debits to the cash/bank accounts, cash out is credits to
them, and the expense column is debits to EXPENSE accounts. Days are
grouped on the entry's nominal date and every day in the range is
listed, with or without activity.

The line drilldown tags each posting with a flow direction per
account type:

    ASSET, LIABILITY, EQUITY, INCOME   credit -> in,  debit -> out
    EXPENSE                            debit -> in,   credit -> out
"""

import logging
import math
from datetime import date, datetime, timedelta

from sqlalchemy import select, func, case, cast, or_, String
from sqlalchemy.orm import Session

from pos_ledger.config import get_settings
from pos_ledger.models.account import Account
from pos_ledger.models.enums import AccountType
from pos_ledger.models.journal_entry import JournalEntry
from pos_ledger.models.journal_posting import JournalPosting
from pos_ledger.money import ZERO, to_money
from pos_ledger.schemas.reports import (
    DayBookQuery, DayBookSummary, DayBookDay, DayBookTotals,
    DayBookDetailsQuery, DayBookDetails, DayBookEntryRow, DayBookLine,
    Pagination,
)
from pos_ledger.services.running_balance import (
    NET_DEBIT, check_range, clamp_per_page, date_series, scalar_money,
)

logger = logging.getLogger(__name__)

SUMMARY_MAX_PER_PAGE = 200
DETAILS_MAX_PER_PAGE = 500

# account type -> (flow of a debit, flow of a credit)
FLOW = {
    AccountType.ASSET: ("out", "in"),
    AccountType.LIABILITY: ("out", "in"),
    AccountType.EQUITY: ("out", "in"),
    AccountType.INCOME: ("out", "in"),
    AccountType.EXPENSE: ("in", "out"),
}


def line_flow(account_type: AccountType, debit, credit) -> str | None:
    debit_flow, credit_flow = FLOW[account_type]
    if debit and debit > 0:
        return debit_flow
    if credit and credit > 0:
        return credit_flow
    return None


def _clamped_page(page: int, per_page: int, total: int) -> tuple[int, Pagination]:
    # Out-of-range pages fall back to the last page
    last_page = max(1, math.ceil(total / per_page))
    current = min(page, last_page)
    return (current - 1) * per_page, Pagination(
        current_page=current, per_page=per_page, last_page=last_page, total=total,
    )


class DayBookService:

    def __init__(self, db: Session):
        self.db = db
        self.cash_codes = list(get_settings().CASH_ACCOUNT_CODES)

    def _amounts(self):
        is_cash = Account.code.in_(self.cash_codes)
        is_expense = Account.account_type == AccountType.EXPENSE
        return (
            func.coalesce(func.sum(case((is_cash, JournalPosting.debit), else_=0)), 0),
            func.coalesce(func.sum(case((is_cash, JournalPosting.credit), else_=0)), 0),
            func.coalesce(func.sum(case((is_expense, JournalPosting.debit), else_=0)), 0),
        )

    def _postings(self, stmt, branch_id: int | None):
        stmt = (
            stmt.select_from(JournalPosting)
            .join(JournalEntry, JournalEntry.id == JournalPosting.journal_entry_id)
            .join(Account, Account.id == JournalPosting.account_id)
        )
        if branch_id is not None:
            stmt = stmt.where(JournalEntry.branch_id == branch_id)
        return stmt

    def _cash_before(self, day: date, branch_id: int | None):
        return scalar_money(self.db, self._postings(select(NET_DEBIT), branch_id).where(
            JournalEntry.entry_date < day,
            Account.code.in_(self.cash_codes),
        ))

    def summary(self, query: DayBookQuery | None = None, **params) -> DayBookSummary:
        """
        Opening, in, out, expense, net and closing per day.

        Computed ascending so closings carry forward, then returned in
        the requested order. Defaults to the 30 days ending today.
        """
        query = query or DayBookQuery(**params)
        date_to = query.date_to or datetime.utcnow().date()
        date_from = query.date_from or date_to - timedelta(days=29)
        check_range(date_from, date_to)
        per_page = clamp_per_page(query.per_page, SUMMARY_MAX_PER_PAGE)

        opening = self._cash_before(date_from, query.branch_id)

        cash_in, cash_out, expense = self._amounts()
        by_day = {
            row.entry_date: row for row in self.db.execute(
                self._postings(
                    select(
                        JournalEntry.entry_date,
                        cash_in.label("cash_in"),
                        cash_out.label("cash_out"),
                        expense.label("expense"),
                    ),
                    query.branch_id,
                )
                .where(JournalEntry.entry_date.between(date_from, date_to))
                .group_by(JournalEntry.entry_date)
            )
        }

        days = []
        running = opening
        for day in date_series(date_from, date_to):
            row = by_day.get(day)
            day_in = to_money(row.cash_in) if row else ZERO
            day_out = to_money(row.cash_out) if row else ZERO
            day_expense = to_money(row.expense) if row else ZERO
            day_opening = running
            running = running + day_in - day_out
            days.append(DayBookDay(
                day=day,
                opening=day_opening,
                cash_in=day_in,
                cash_out=day_out,
                expense=day_expense,
                net=day_in - day_out,
                closing=running,
            ))

        totals = _totals(days, closing=running)
        if query.order == "desc":
            days.reverse()
        offset, pagination = _clamped_page(query.page, per_page, len(days))
        page_days = days[offset:offset + per_page]

        return DayBookSummary(
            branch_id=query.branch_id,
            date_from=date_from,
            date_to=date_to,
            order=query.order,
            opening=opening,
            totals=totals,
            page_totals=_totals(page_days),
            days=page_days,
            pagination=pagination,
        )

    def details(self, query: DayBookDetailsQuery | None = None, **params) -> DayBookDetails:
        """Journal entries of one day with per-entry cash in/out and totals."""
        query = query or DayBookDetailsQuery(**params)
        per_page = clamp_per_page(query.per_page, DETAILS_MAX_PER_PAGE)

        opening = self._cash_before(query.day, query.branch_id)

        cash_in, cash_out, expense = self._amounts()
        day_in, day_out, day_expense = self.db.execute(
            self._postings(select(cash_in, cash_out, expense), query.branch_id)
            .where(JournalEntry.entry_date == query.day)
        ).one()
        day_in, day_out = to_money(day_in), to_money(day_out)
        totals = DayBookTotals(
            cash_in=day_in,
            cash_out=day_out,
            expense=to_money(day_expense),
            net=day_in - day_out,
        )

        def narrow(stmt):
            stmt = stmt.where(JournalEntry.entry_date == query.day)
            if query.branch_id is not None:
                stmt = stmt.where(JournalEntry.branch_id == query.branch_id)
            if query.reference_type:
                stmt = stmt.where(JournalEntry.reference_type == query.reference_type.value)
            if query.search:
                stmt = stmt.where(or_(
                    JournalEntry.memo.contains(query.search, autoescape=True),
                    cast(JournalEntry.reference_id, String).contains(
                        query.search, autoescape=True
                    ),
                ))
            return stmt

        total = self.db.execute(
            narrow(select(func.count(JournalEntry.id)))
        ).scalar() or 0
        offset, pagination = _clamped_page(query.page, per_page, total)

        in_col, out_col, expense_col = (
            cash_in.label("cash_in"), cash_out.label("cash_out"), expense.label("expense"),
        )
        sort_key = {
            "created_at": [JournalEntry.created_at, JournalEntry.id],
            "in": [in_col],
            "out": [out_col],
            "expense": [expense_col],
            "net": [cash_in - cash_out],
            "reference_type": [JournalEntry.reference_type, JournalEntry.id],
        }[query.sort]
        if query.order == "desc":
            sort_key = [col.desc() for col in sort_key]

        entries = self.db.execute(
            narrow(
                select(
                    JournalEntry.id,
                    JournalEntry.created_at,
                    JournalEntry.memo,
                    JournalEntry.reference_type,
                    JournalEntry.reference_id,
                    in_col, out_col, expense_col,
                )
                .select_from(JournalPosting)
                .join(JournalEntry, JournalEntry.id == JournalPosting.journal_entry_id)
                .join(Account, Account.id == JournalPosting.account_id)
            )
            .group_by(
                JournalEntry.id, JournalEntry.created_at, JournalEntry.memo,
                JournalEntry.reference_type, JournalEntry.reference_id,
            )
            .order_by(*sort_key)
            .offset(offset)
            .limit(per_page)
        ).all()

        lines_by_entry = {}
        if query.include_lines and entries:
            for line in self.db.execute(
                select(
                    JournalPosting.journal_entry_id,
                    JournalPosting.account_id,
                    Account.code,
                    Account.name,
                    Account.account_type,
                    JournalPosting.debit,
                    JournalPosting.credit,
                )
                .join(Account, Account.id == JournalPosting.account_id)
                .where(JournalPosting.journal_entry_id.in_([e.id for e in entries]))
                .order_by(JournalPosting.journal_entry_id, Account.code)
            ):
                lines_by_entry.setdefault(line.journal_entry_id, []).append(DayBookLine(
                    account_id=line.account_id,
                    account_code=line.code,
                    account_name=line.name,
                    account_type=line.account_type,
                    debit=to_money(line.debit),
                    credit=to_money(line.credit),
                    flow=line_flow(line.account_type, line.debit, line.credit),
                ))

        rows = []
        for entry in entries:
            entry_in, entry_out = to_money(entry.cash_in), to_money(entry.cash_out)
            rows.append(DayBookEntryRow(
                entry_id=entry.id,
                time=entry.created_at,
                memo=entry.memo,
                reference_type=entry.reference_type,
                reference_id=entry.reference_id,
                cash_in=entry_in,
                cash_out=entry_out,
                expense=to_money(entry.expense),
                net=entry_in - entry_out,
                lines=lines_by_entry.get(entry.id, []) if query.include_lines else None,
            ))

        return DayBookDetails(
            day=query.day,
            branch_id=query.branch_id,
            opening=opening,
            closing=opening + totals.net,
            totals=totals,
            rows=rows,
            pagination=pagination,
            sort=query.sort,
            order=query.order,
        )


def _totals(days: list[DayBookDay], closing=None) -> DayBookTotals:
    cash_in = sum((d.cash_in for d in days), ZERO)
    cash_out = sum((d.cash_out for d in days), ZERO)
    return DayBookTotals(
        cash_in=cash_in,
        cash_out=cash_out,
        expense=sum((d.expense for d in days), ZERO),
        net=cash_in - cash_out,
        closing=closing,
    )
