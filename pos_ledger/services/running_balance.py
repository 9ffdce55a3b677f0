"""
Shared machinery for running-balance reports.

Every statement-style report follows the same three steps:

1. opening: the net of everything before the requested range;
2. prior-page delta: the net of the rows in range that sort before
   the first row of the requested page;
3. walk: add each row's delta to opening + prior delta, in order.

Steps 1 and 2 are single aggregate queries, so any page of a feed
can be produced without materialising the pages before it. The
ordering key is always (effective timestamp, row id); the id breaks
ties between rows stamped at the same instant.
"""

import math
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Callable, Iterable, Iterator

from sqlalchemy import and_, func, or_

from pos_ledger.exceptions import InvalidDateRangeError
from pos_ledger.models.journal_entry import JournalEntry
from pos_ledger.models.journal_posting import JournalPosting
from pos_ledger.money import ZERO, to_money
from pos_ledger.schemas.reports import Pagination

# When a posting happened. The posting's own timestamp wins, then the
# entry's nominal date, then the entry's insert time.
EFFECTIVE_DATE = func.coalesce(
    JournalPosting.created_at,
    JournalEntry.entry_date,
    JournalEntry.created_at,
)

NET_DEBIT = func.coalesce(func.sum(JournalPosting.debit - JournalPosting.credit), 0)


def check_range(date_from: date | None, date_to: date | None) -> None:
    if date_from and date_to and date_from > date_to:
        raise InvalidDateRangeError(date_from, date_to)


def day_start(d: date) -> datetime:
    return datetime.combine(d, time.min)


def next_day_start(d: date) -> datetime:
    """Exclusive upper bound for an inclusive `to` date."""
    return datetime.combine(d + timedelta(days=1), time.min)


def date_series(start: date, end: date) -> list[date]:
    """Every calendar day from start to end, inclusive."""
    return [start + timedelta(days=n) for n in range((end - start).days + 1)]


def clamp_per_page(per_page: int, maximum: int) -> int:
    return max(1, min(maximum, per_page))


def paginate(page: int, per_page: int, total: int) -> tuple[int, Pagination]:
    """Return the row offset for `page` and its Pagination block."""
    last_page = max(1, math.ceil(total / per_page))
    return (page - 1) * per_page, Pagination(
        current_page=page,
        per_page=per_page,
        last_page=last_page,
        total=total,
    )


def before_row(order_col, id_col, eff, row_id):
    """Rows that sort strictly before (eff, row_id)."""
    return or_(order_col < eff, and_(order_col == eff, id_col < row_id))


def up_to_row(order_col, id_col, eff, row_id):
    """Rows that sort before or at (eff, row_id)."""
    return or_(order_col < eff, and_(order_col == eff, id_col <= row_id))


def walk(
    rows: Iterable,
    opening: Decimal,
    delta: Callable = lambda row: to_money(row.debit) - to_money(row.credit),
) -> Iterator[tuple[object, Decimal]]:
    """Yield (row, running balance after the row) in the given order."""
    running = to_money(opening)
    for row in rows:
        running += delta(row)
        yield row, running


def scalar_money(db, stmt) -> Decimal:
    value = db.execute(stmt).scalar()
    return to_money(value) if value is not None else ZERO
