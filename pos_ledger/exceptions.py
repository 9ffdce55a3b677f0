"""
Domain errors raised by the accounting core.

All of them derive from ValueError: they describe bad input or
missing configuration, never transient faults, so nothing here is
retried. The API layer turns them into 4xx responses.
"""

from decimal import Decimal


class LedgerError(ValueError):
    """Base class for every accounting-core failure."""


class UnbalancedEntryError(LedgerError):
    def __init__(self, total_debit: Decimal, total_credit: Decimal):
        self.total_debit = total_debit
        self.total_credit = total_credit
        super().__init__(
            f"Unbalanced entry: debit {total_debit} != credit {total_credit}"
        )


class UnknownAccountError(LedgerError):
    def __init__(self, codes):
        self.codes = sorted(codes)
        super().__init__(f"Unknown account code(s): {', '.join(self.codes)}")


class NoMappingFoundError(LedgerError):
    def __init__(self, method: str, branch_id: int | None = None):
        self.method = method
        self.branch_id = branch_id
        where = f" (branch {branch_id})" if branch_id else ""
        super().__init__(
            f"No account mapping found for payment method [{method}]{where}."
        )


class ClaimOverQuantityError(LedgerError):
    """Raised once per request, listing every line over its ceiling."""

    def __init__(self, violations: list[str]):
        self.violations = violations
        super().__init__(
            "Purchase claim validation failed: " + " ".join(violations)
        )


class InvalidDateRangeError(LedgerError):
    def __init__(self, date_from, date_to):
        super().__init__(
            f"`from` ({date_from}) must be on or before `to` ({date_to})."
        )


class ExpenseAccountRequiredError(LedgerError):
    def __init__(self):
        super().__init__("Either account_id or method is required for an expense.")


class DocumentStateError(LedgerError):
    """A document is not in a state that allows the requested action."""


class DocumentNotFoundError(LedgerError):
    def __init__(self, kind: str, document_id):
        self.kind = kind
        self.document_id = document_id
        super().__init__(f"{kind} {document_id} not found")
