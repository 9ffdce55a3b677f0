"""
Journal posting model.

Each posting is one debit or credit line of a journal entry.
Within an entry, SUM(debit) == SUM(credit). This invariant is
enforced by the AccountingService, not by the database: any write
path that bypasses the service can break it.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import String, DateTime, Numeric, Integer, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pos_ledger.models.base import Base


class JournalPosting(Base):
    __tablename__ = "journal_postings"
    __table_args__ = (
        Index("ix_journal_postings_party", "party_type", "party_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    journal_entry_id: Mapped[int] = mapped_column(
        ForeignKey("journal_entries.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    debit: Mapped[Decimal] = mapped_column(
        Numeric(18, 2), nullable=False, default=Decimal("0")
    )
    credit: Mapped[Decimal] = mapped_column(
        Numeric(18, 2), nullable=False, default=Decimal("0")
    )
    # Sub-ledger attribution for receivable/payable lines
    party_type: Mapped[str | None] = mapped_column(String(20), nullable=True)
    party_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    # Effective timestamp; reports order by (created_at, id)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    journal_entry: Mapped["JournalEntry"] = relationship(
        back_populates="postings"
    )
    account: Mapped["Account"] = relationship(back_populates="postings")

    @property
    def account_code(self) -> str:
        return self.account.code

    def __repr__(self) -> str:
        return (
            f"<JournalPosting entry={self.journal_entry_id} "
            f"Dr {self.debit} Cr {self.credit}>"
        )
