"""
Party and account statements.

A statement lists postings in (effective date, posting id) order with a
running balance of debit - credit. Any page can be produced on its own:
opening (before the range) + the delta of the rows before the page +
a walk over the page.
"""

import logging
from datetime import date

from sqlalchemy import select, func
from sqlalchemy.orm import Session

from pos_ledger.exceptions import LedgerError
from pos_ledger.models.account import Account
from pos_ledger.models.enums import PartyKind
from pos_ledger.models.journal_entry import JournalEntry
from pos_ledger.models.journal_posting import JournalPosting
from pos_ledger.models.references import PARTY_MODELS, resolve_party
from pos_ledger.money import ZERO, to_money
from pos_ledger.schemas.reports import (
    LedgerQuery, LedgerResult, LedgerRow, PartyBalanceRow,
)
from pos_ledger.services.running_balance import (
    EFFECTIVE_DATE, NET_DEBIT, before_row, check_range, clamp_per_page,
    day_start, next_day_start, paginate, scalar_money, walk,
)

logger = logging.getLogger(__name__)

MAX_PER_PAGE = 100


class LedgerReportService:

    def __init__(self, db: Session):
        self.db = db

    def _filtered(self, stmt, query: LedgerQuery, party_type: PartyKind | None):
        stmt = (
            stmt.select_from(JournalPosting)
            .join(JournalEntry, JournalEntry.id == JournalPosting.journal_entry_id)
            .join(Account, Account.id == JournalPosting.account_id)
        )
        if party_type:
            stmt = stmt.where(JournalPosting.party_type == party_type.value)
            if query.party_id:
                stmt = stmt.where(JournalPosting.party_id == query.party_id)
        if query.account_code:
            stmt = stmt.where(Account.code == query.account_code)
        if query.branch_id:
            stmt = stmt.where(JournalEntry.branch_id == query.branch_id)
        return stmt

    def _in_range(self, stmt, query: LedgerQuery):
        if query.date_from:
            stmt = stmt.where(EFFECTIVE_DATE >= day_start(query.date_from))
        if query.date_to:
            stmt = stmt.where(EFFECTIVE_DATE < next_day_start(query.date_to))
        return stmt

    def get_ledger(self, query: LedgerQuery | None = None, **params) -> LedgerResult:
        """
        Running-balance statement for a party, a party type, or an account.

        With no party and no account the statement aggregates every
        customer posting. party_id without party_type means a customer,
        and an unknown party raises DocumentNotFoundError.
        """
        query = query or LedgerQuery(**params)
        check_range(query.date_from, query.date_to)

        party_type = query.party_type
        if party_type is None and (query.party_id or not query.account_code):
            party_type = PartyKind.CUSTOMER
        if query.party_id and party_type is None:
            raise LedgerError("party_id needs a party_type")

        party_name = None
        if query.party_id:
            party_name = resolve_party(self.db, party_type, query.party_id).display_name

        per_page = clamp_per_page(query.per_page, MAX_PER_PAGE)

        # 1) opening: everything before the range
        opening = ZERO
        if query.date_from:
            opening = scalar_money(self.db, self._filtered(
                select(NET_DEBIT), query, party_type
            ).where(EFFECTIVE_DATE < day_start(query.date_from)))

        total = self.db.execute(
            self._in_range(self._filtered(
                select(func.count(JournalPosting.id)), query, party_type
            ), query)
        ).scalar() or 0
        offset, pagination = paginate(query.page, per_page, total)

        eff = EFFECTIVE_DATE.label("eff_date")
        page_rows = self.db.execute(
            self._in_range(self._filtered(
                select(
                    JournalPosting.id.label("posting_id"),
                    JournalPosting.journal_entry_id,
                    eff,
                    JournalEntry.branch_id,
                    JournalEntry.memo,
                    JournalEntry.reference_type,
                    JournalEntry.reference_id,
                    JournalPosting.party_type,
                    JournalPosting.party_id,
                    Account.code.label("account_code"),
                    Account.name.label("account_name"),
                    JournalPosting.debit,
                    JournalPosting.credit,
                ),
                query, party_type,
            ), query)
            .order_by(EFFECTIVE_DATE, JournalPosting.id)
            .offset(offset)
            .limit(per_page)
        ).all()

        # 2) rows in range that sort before this page
        opening_for_page = opening
        if offset and page_rows:
            first = page_rows[0]
            opening_for_page += scalar_money(self.db, self._in_range(self._filtered(
                select(NET_DEBIT), query, party_type
            ), query).where(
                before_row(EFFECTIVE_DATE, JournalPosting.id, first.eff_date, first.posting_id)
            ))

        # 3) walk
        items = []
        closing = opening_for_page
        for row, balance in walk(page_rows, opening_for_page):
            closing = balance
            items.append(LedgerRow(
                posting_id=row.posting_id,
                journal_entry_id=row.journal_entry_id,
                date=row.eff_date,
                branch_id=row.branch_id,
                account_code=row.account_code,
                account_name=row.account_name,
                memo=row.memo,
                reference_type=row.reference_type,
                reference_id=row.reference_id,
                party_type=row.party_type,
                party_id=row.party_id,
                debit=to_money(row.debit),
                credit=to_money(row.credit),
                balance=balance,
            ))

        return LedgerResult(
            party_type=party_type,
            party_id=query.party_id if party_type else None,
            party_name=party_name,
            account_code=query.account_code,
            opening=opening,
            opening_for_page=opening_for_page,
            closing_for_page=closing,
            items=items,
            pagination=pagination,
        )

    def party_balances(
        self,
        party_type: PartyKind,
        branch_id: int | None = None,
        as_of: date | None = None,
    ) -> list[PartyBalanceRow]:
        """
        Outstanding balance per customer or vendor.

        Customers read debit - credit (what they owe us); vendors read
        credit - debit (what we owe them).
        """
        stmt = (
            select(
                JournalPosting.party_id,
                func.coalesce(func.sum(JournalPosting.debit), 0),
                func.coalesce(func.sum(JournalPosting.credit), 0),
            )
            .select_from(JournalPosting)
            .join(JournalEntry, JournalEntry.id == JournalPosting.journal_entry_id)
            .where(
                JournalPosting.party_type == party_type.value,
                JournalPosting.party_id.is_not(None),
            )
            .group_by(JournalPosting.party_id)
            .order_by(JournalPosting.party_id)
        )
        if branch_id:
            stmt = stmt.where(JournalEntry.branch_id == branch_id)
        if as_of:
            stmt = stmt.where(EFFECTIVE_DATE < next_day_start(as_of))

        totals = self.db.execute(stmt).all()
        model = PARTY_MODELS[party_type]
        names = {
            p.id: p.display_name for p in self.db.execute(
                select(model).where(model.id.in_([t[0] for t in totals]))
            ).scalars().all()
        } if totals else {}

        rows = []
        for party_id, debit, credit in totals:
            debit, credit = to_money(debit), to_money(credit)
            balance = debit - credit if party_type is PartyKind.CUSTOMER else credit - debit
            rows.append(PartyBalanceRow(
                party_type=party_type,
                party_id=party_id,
                name=names.get(party_id),
                debit=debit,
                credit=credit,
                balance=balance,
            ))
        return rows
