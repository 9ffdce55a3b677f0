"""
Journal entry model.

One balanced financial event. An entry owns its postings and is
written together with them in a single flush by the
AccountingService. Entries are never updated afterwards, apart
from the optional `status` flag.
"""

from datetime import date, datetime

from sqlalchemy import String, Date, DateTime, Integer, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pos_ledger.models.base import Base
from pos_ledger.models.enums import DocumentKind


class JournalEntry(Base):
    __tablename__ = "journal_entries"
    __table_args__ = (
        Index("ix_journal_entries_reference", "reference_type", "reference_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    entry_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    memo: Mapped[str | None] = mapped_column(String(255), nullable=True)
    branch_id: Mapped[int | None] = mapped_column(
        Integer, nullable=True, index=True
    )
    # Originating document, resolved through models.references
    reference_type: Mapped[str | None] = mapped_column(
        String(40), nullable=True
    )
    reference_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    status: Mapped[str | None] = mapped_column(String(20), nullable=True)
    created_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    postings: Mapped[list["JournalPosting"]] = relationship(
        back_populates="journal_entry",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="JournalPosting.id",
    )

    @property
    def reference_kind(self) -> DocumentKind | None:
        return DocumentKind(self.reference_type) if self.reference_type else None

    def __repr__(self) -> str:
        return f"<JournalEntry {self.id} {self.entry_date} {self.memo!r}>"
