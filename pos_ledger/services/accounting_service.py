"""
Posting engine: the only writer of journal entries.

This service enforces the rules every financial event must obey:
1. The lines of an entry balance (debits = credits, to the cent)
2. Every account code resolves to an existing, active account
3. An entry and all of its postings are written together or not at all

Sale posting, purchase posting, adjustments, claims and party
payments all route through post(). Nothing else inserts postings.
"""

import logging
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import select, func
from sqlalchemy.orm import Session, selectinload

from pos_ledger import chart
from pos_ledger.exceptions import (
    LedgerError, UnbalancedEntryError, UnknownAccountError, DocumentNotFoundError,
)
from pos_ledger.models.account import Account
from pos_ledger.models.enums import AccountType
from pos_ledger.models.journal_entry import JournalEntry
from pos_ledger.models.journal_posting import JournalPosting
from pos_ledger.models.references import document_kind, resolve_document
from pos_ledger.money import ZERO, to_money
from pos_ledger.schemas.ledger import (
    PostingLine, IntegrityReport, TrialBalance, TrialBalanceRow,
)
from pos_ledger.schemas.references import DocumentRef
from pos_ledger.services.running_balance import EFFECTIVE_DATE, next_day_start

logger = logging.getLogger(__name__)

# Branch-blind fallback kept for callers that predate per-branch mappings
LEGACY_METHOD_ACCOUNTS = {
    "cash": chart.CASH,
    "bank": chart.BANK,
    "card": chart.BANK,
    "wallet": chart.BANK,
}

DEBIT_NATURE = (AccountType.ASSET, AccountType.EXPENSE)


class AccountingService:
    """
    All journal writes pass through this service.

    The service takes a database session as a constructor argument and
    only flushes. The caller controls the transaction boundary: commit
    after success, roll back on any exception.
    """

    def __init__(self, db: Session):
        self.db = db

    def post(
        self,
        branch_id: int | None,
        memo: str,
        lines: list[PostingLine],
        reference=None,
        entry_date: date | None = None,
        actor_id: int | None = None,
    ) -> JournalEntry:
        """
        Post one balanced journal entry.

        `reference` is the originating document (a registered model
        instance or a DocumentRef). Every check runs before anything is
        added to the session, so a failure leaves no partial entry.

        Raises UnbalancedEntryError or UnknownAccountError.
        """
        lines = [
            line if isinstance(line, PostingLine) else PostingLine.model_validate(line)
            for line in lines
        ]
        if not lines:
            raise LedgerError("A journal entry needs at least one posting line")

        # --- Enforce balance rule ---
        total_debit = to_money(sum((line.debit for line in lines), ZERO))
        total_credit = to_money(sum((line.credit for line in lines), ZERO))
        if total_debit != total_credit:
            raise UnbalancedEntryError(total_debit, total_credit)

        # --- Resolve every account before writing ---
        accounts = self._accounts_by_code({line.account_code for line in lines})

        reference_type, reference_id = self._reference_pair(reference)

        now = datetime.utcnow()
        entry_date = entry_date or now.date()
        # Backdated entries sort on their nominal day
        stamped_at = datetime.combine(entry_date, now.time())

        entry = JournalEntry(
            entry_date=entry_date,
            memo=memo,
            branch_id=branch_id,
            reference_type=reference_type,
            reference_id=reference_id,
            created_by=actor_id,
        )
        for line in lines:
            entry.postings.append(JournalPosting(
                account_id=accounts[line.account_code].id,
                debit=to_money(line.debit),
                credit=to_money(line.credit),
                party_type=line.party.kind if line.party else None,
                party_id=line.party.id if line.party else None,
                created_at=stamped_at,
            ))

        self.db.add(entry)
        self.db.flush()

        logger.info(
            "Posted journal entry %s %r (%s lines, %s)",
            entry.id, memo, len(lines), total_debit,
        )
        return entry

    def _accounts_by_code(self, codes: set[str]) -> dict[str, Account]:
        accounts = {
            a.code: a for a in self.db.execute(
                select(Account).where(Account.code.in_(codes))
            ).scalars().all()
        }

        missing = codes - set(accounts)
        if missing:
            raise UnknownAccountError(missing)

        for account in accounts.values():
            if not account.is_active:
                raise LedgerError(f"Account {account.code} is not active")
        return accounts

    @staticmethod
    def _reference_pair(reference) -> tuple[str | None, int | None]:
        if reference is None:
            return None, None
        if isinstance(reference, DocumentRef):
            return reference.kind.value, reference.id
        return document_kind(reference).value, reference.id

    def get_account(self, code: str) -> Account:
        account = self.db.execute(
            select(Account).where(Account.code == code)
        ).scalar_one_or_none()
        if account is None:
            raise UnknownAccountError({code})
        return account

    def get_entry(self, entry_id: int) -> JournalEntry:
        entry = self.db.execute(
            select(JournalEntry)
            .options(selectinload(JournalEntry.postings))
            .where(JournalEntry.id == entry_id)
        ).scalar_one_or_none()
        if entry is None:
            raise DocumentNotFoundError("journal entry", entry_id)
        return entry

    def entries_for(self, reference) -> list[JournalEntry]:
        """Entries posted for a document, oldest first."""
        reference_type, reference_id = self._reference_pair(reference)
        return list(self.db.execute(
            select(JournalEntry)
            .where(
                JournalEntry.reference_type == reference_type,
                JournalEntry.reference_id == reference_id,
            )
            .order_by(JournalEntry.id)
        ).scalars().all())

    def source_document(self, entry: JournalEntry):
        """The document an entry was posted for; None for manual entries."""
        if entry.reference_kind is None:
            return None
        return resolve_document(self.db, entry.reference_kind, entry.reference_id)

    def set_entry_status(self, entry_id: int, status: str) -> JournalEntry:
        """The one post-hoc change an entry allows."""
        entry = self.get_entry(entry_id)
        entry.status = status
        self.db.flush()
        return entry

    def payment_account_id_from_method(self, method: str | None) -> int | None:
        """
        Static method-to-account lookup, blind to branches.

        Prefer CashSyncService.map_method_to_account, which honours
        branch overrides of the configured mapping.
        """
        code = LEGACY_METHOD_ACCOUNTS.get(method or "")
        if code is None:
            return None
        return self.db.execute(
            select(Account.id).where(Account.code == code)
        ).scalar_one_or_none()

    def account_balance(self, code: str) -> Decimal:
        """
        Derive an account's balance from its postings.

        ASSET and EXPENSE accounts: debits - credits.
        LIABILITY, EQUITY and INCOME: credits - debits.
        """
        account = self.get_account(code)
        debits, credits = self.db.execute(
            select(
                func.coalesce(func.sum(JournalPosting.debit), 0),
                func.coalesce(func.sum(JournalPosting.credit), 0),
            ).where(JournalPosting.account_id == account.id)
        ).one()

        if account.account_type in DEBIT_NATURE:
            return to_money(debits) - to_money(credits)
        return to_money(credits) - to_money(debits)

    def check_integrity(self) -> IntegrityReport:
        """Verify the whole ledger balances, and name any entry that does not."""
        total_debits, total_credits = self.db.execute(
            select(
                func.coalesce(func.sum(JournalPosting.debit), 0),
                func.coalesce(func.sum(JournalPosting.credit), 0),
            )
        ).one()
        total_debits = to_money(total_debits)
        total_credits = to_money(total_credits)

        unbalanced = self.db.execute(
            select(JournalPosting.journal_entry_id)
            .group_by(JournalPosting.journal_entry_id)
            .having(
                func.round(
                    func.sum(JournalPosting.debit - JournalPosting.credit), 2
                ) != 0
            )
            .order_by(JournalPosting.journal_entry_id)
        ).scalars().all()

        if unbalanced:
            logger.warning("Unbalanced journal entries: %s", list(unbalanced))

        return IntegrityReport(
            is_balanced=total_debits == total_credits and not unbalanced,
            total_debits=total_debits,
            total_credits=total_credits,
            difference=total_debits - total_credits,
            unbalanced_entry_ids=list(unbalanced),
        )

    def trial_balance(
        self, as_of: date | None = None, branch_id: int | None = None
    ) -> TrialBalance:
        """Net debit or credit per account, up to and including `as_of`."""
        stmt = (
            select(
                Account.code,
                Account.name,
                Account.account_type,
                func.coalesce(func.sum(JournalPosting.debit), 0),
                func.coalesce(func.sum(JournalPosting.credit), 0),
            )
            .join(JournalPosting, JournalPosting.account_id == Account.id)
            .join(JournalEntry, JournalEntry.id == JournalPosting.journal_entry_id)
            .group_by(Account.code, Account.name, Account.account_type)
            .order_by(Account.code)
        )
        if as_of:
            stmt = stmt.where(EFFECTIVE_DATE < next_day_start(as_of))
        if branch_id:
            stmt = stmt.where(JournalEntry.branch_id == branch_id)

        rows = []
        for code, name, account_type, debits, credits in self.db.execute(stmt):
            net = to_money(debits) - to_money(credits)
            rows.append(TrialBalanceRow(
                account_code=code,
                account_name=name,
                account_type=account_type,
                debit=net if net > 0 else ZERO,
                credit=-net if net < 0 else ZERO,
            ))

        return TrialBalance(
            as_of=as_of,
            branch_id=branch_id,
            rows=rows,
            total_debit=sum((r.debit for r in rows), ZERO),
            total_credit=sum((r.credit for r in rows), ZERO),
        )
