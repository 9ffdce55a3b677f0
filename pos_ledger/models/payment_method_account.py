"""
Payment method to cash/bank account mapping.

Operator-configured data. A row with a branch_id overrides the
global row (branch_id NULL) for the same method.
"""

from datetime import datetime

from sqlalchemy import String, DateTime, Integer, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pos_ledger.models.base import Base


class PaymentMethodAccount(Base):
    __tablename__ = "payment_method_accounts"
    __table_args__ = (
        UniqueConstraint("method", "branch_id", name="uq_method_branch"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    method: Mapped[str] = mapped_column(String(30), nullable=False)
    account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False
    )
    branch_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    account: Mapped["Account"] = relationship()

    def __repr__(self) -> str:
        scope = f"branch {self.branch_id}" if self.branch_id else "global"
        return f"<PaymentMethodAccount {self.method} -> {self.account_id} ({scope})>"
