"""
Cash transaction model.

A read-optimised mirror of cash-affecting documents, so the cash
book can show a plain in/out feed without replaying postings. It
is not the ledger. At most one live row exists per source
document; the source holds the back-reference in its own
`cash_transaction_id` column.
"""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    String, Text, Date, DateTime, Numeric, Integer, ForeignKey, Index,
    Enum as SAEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pos_ledger.models.base import Base
from pos_ledger.models.enums import CashTransactionType, CashTransactionStatus


class CashTransaction(Base):
    __tablename__ = "cash_transactions"
    __table_args__ = (
        Index("ix_cash_transactions_day", "txn_date", "account_id", "branch_id"),
        Index("ix_cash_transactions_source", "source_type", "source_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    txn_date: Mapped[date] = mapped_column(Date, nullable=False)
    account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id"), nullable=False
    )
    branch_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    type: Mapped[CashTransactionType] = mapped_column(
        SAEnum(CashTransactionType, name="cash_transaction_type_enum"),
        nullable=False,
    )
    # Always positive; direction comes from `type`
    amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    method: Mapped[str | None] = mapped_column(String(30), nullable=True)
    counterparty_type: Mapped[str | None] = mapped_column(
        String(20), nullable=True
    )
    counterparty_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    source_type: Mapped[str | None] = mapped_column(String(40), nullable=True)
    source_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    reference: Mapped[str | None] = mapped_column(String(100), nullable=True)
    voucher_no: Mapped[str | None] = mapped_column(
        String(50), nullable=True, index=True
    )
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[CashTransactionStatus] = mapped_column(
        SAEnum(CashTransactionStatus, name="cash_transaction_status_enum"),
        nullable=False,
        default=CashTransactionStatus.APPROVED,
        index=True,
    )
    created_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    approved_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )
    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime, nullable=True, default=None
    )

    account: Mapped["Account"] = relationship()

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def __repr__(self) -> str:
        return (
            f"<CashTransaction {self.id} {self.type.value} "
            f"{self.amount} ({self.status.value})>"
        )
