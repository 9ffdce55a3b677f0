"""
Profit & loss from the general ledger.

INCOME accounts report credit - debit; EXPENSE accounts report
debit - credit. Expense accounts in chart.COGS_CODES form the cost of
goods section, the rest are operating expenses.
"""

import logging

from sqlalchemy import select, func
from sqlalchemy.orm import Session

from pos_ledger import chart
from pos_ledger.models.account import Account
from pos_ledger.models.enums import AccountType
from pos_ledger.models.journal_entry import JournalEntry
from pos_ledger.models.journal_posting import JournalPosting
from pos_ledger.money import ZERO, to_money
from pos_ledger.schemas.reports import (
    ProfitLossQuery, ProfitLossReport, ProfitLossSection, ProfitLossLine,
)
from pos_ledger.services.running_balance import (
    EFFECTIVE_DATE, check_range, day_start, next_day_start,
)

logger = logging.getLogger(__name__)


class ProfitLossService:

    def __init__(self, db: Session):
        self.db = db

    def summary(self, query: ProfitLossQuery | None = None, **params) -> ProfitLossReport:
        query = query or ProfitLossQuery(**params)
        check_range(query.date_from, query.date_to)

        stmt = (
            select(
                Account.id,
                Account.code,
                Account.name,
                Account.account_type,
                func.coalesce(func.sum(JournalPosting.debit), 0).label("debits"),
                func.coalesce(func.sum(JournalPosting.credit), 0).label("credits"),
            )
            .select_from(JournalPosting)
            .join(JournalEntry, JournalEntry.id == JournalPosting.journal_entry_id)
            .join(Account, Account.id == JournalPosting.account_id)
            .where(Account.account_type.in_([AccountType.INCOME, AccountType.EXPENSE]))
            .group_by(Account.id, Account.code, Account.name, Account.account_type)
            .order_by(Account.account_type, Account.code)
        )
        if query.date_from:
            stmt = stmt.where(EFFECTIVE_DATE >= day_start(query.date_from))
        if query.date_to:
            stmt = stmt.where(EFFECTIVE_DATE < next_day_start(query.date_to))
        if query.branch_id:
            stmt = stmt.where(JournalEntry.branch_id == query.branch_id)

        income, cogs, expenses = ProfitLossSection(), ProfitLossSection(), ProfitLossSection()
        for row in self.db.execute(stmt):
            net_debit = to_money(row.debits) - to_money(row.credits)
            if row.account_type == AccountType.INCOME:
                section, amount = income, -net_debit
            elif row.code in chart.COGS_CODES:
                section, amount = cogs, net_debit
            else:
                section, amount = expenses, net_debit

            section.rows.append(ProfitLossLine(
                account_id=row.id,
                account_code=row.code,
                account_name=row.name,
                account_type=row.account_type,
                amount=amount,
            ))
            section.total += amount

        gross_profit = income.total - cogs.total
        return ProfitLossReport(
            date_from=query.date_from,
            date_to=query.date_to,
            branch_id=query.branch_id,
            income=income,
            cogs=cogs,
            expenses=expenses,
            gross_profit=gross_profit,
            net_profit=gross_profit - expenses.total,
        )
