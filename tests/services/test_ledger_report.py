"""
Tests for party/account statements and party balances.

The key property: any page of a statement carries the same running
balances as the single unpaginated statement.
"""

from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import update

from pos_ledger import chart
from pos_ledger.exceptions import InvalidDateRangeError, DocumentNotFoundError
from pos_ledger.models.enums import PartyKind
from pos_ledger.models.journal_posting import JournalPosting
from pos_ledger.schemas.ledger import PostingLine
from pos_ledger.schemas.references import CustomerParty, VendorParty
from pos_ledger.services.accounting_service import AccountingService
from pos_ledger.services.ledger_report import LedgerReportService

START = date(2026, 1, 1)


def post_customer_stream(db, customer_id, count=25):
    """
    Odd entries: DR receivable 100 (credit sale). Even entries: CR
    receivable 50 (receipt). One entry per day from START.
    """
    service = AccountingService(db)
    party = CustomerParty(id=customer_id)
    for n in range(1, count + 1):
        if n % 2:
            lines = [
                PostingLine(account_code=chart.ACCOUNTS_RECEIVABLE, debit=Decimal("100"),
                            party=party),
                PostingLine(account_code=chart.SALES_REVENUE, credit=Decimal("100")),
            ]
        else:
            lines = [
                PostingLine(account_code=chart.CASH, debit=Decimal("50")),
                PostingLine(account_code=chart.ACCOUNTS_RECEIVABLE, credit=Decimal("50"),
                            party=party),
            ]
        service.post(branch_id=1, memo=f"Entry {n}", lines=lines,
                     entry_date=START + timedelta(days=n - 1))
    db.commit()


def expected_balance(rows):
    odd = (rows + 1) // 2
    even = rows // 2
    return Decimal(100 * odd - 50 * even)


class TestPageInvariance:

    def test_pages_match_single_page(self, db_session, seeded_chart, customer):
        post_customer_stream(db_session, customer.id)
        service = LedgerReportService(db_session)

        whole = service.get_ledger(party_type=PartyKind.CUSTOMER, party_id=customer.id,
                                   per_page=25)
        pages = [
            service.get_ledger(party_type=PartyKind.CUSTOMER, party_id=customer.id,
                               per_page=10, page=page)
            for page in (1, 2, 3)
        ]
        paged = [row for p in pages for row in p.items]

        assert whole.pagination.total == 25
        assert pages[0].pagination.last_page == 3
        assert [r.balance for r in paged] == [r.balance for r in whole.items]
        for row_number in (10, 11, 20, 21):
            assert paged[row_number - 1].balance == expected_balance(row_number)

    def test_opening_for_page_carries_prior_rows(self, db_session, seeded_chart, customer):
        post_customer_stream(db_session, customer.id)

        second = LedgerReportService(db_session).get_ledger(
            party_id=customer.id, per_page=10, page=2
        )

        assert second.party_type == PartyKind.CUSTOMER
        assert second.opening == Decimal("0.00")
        assert second.opening_for_page == expected_balance(10)
        assert second.closing_for_page == expected_balance(20)

    def test_date_range_opening(self, db_session, seeded_chart, customer):
        post_customer_stream(db_session, customer.id)

        # Entries 1..10 fall before the range
        result = LedgerReportService(db_session).get_ledger(
            party_id=customer.id, date_from=START + timedelta(days=10),
            date_to=START + timedelta(days=14),
        )

        assert result.opening == expected_balance(10)
        assert len(result.items) == 5
        assert result.items[-1].balance == expected_balance(15)

    def test_uneven_page_sizes(self, db_session, seeded_chart, customer):
        post_customer_stream(db_session, customer.id)
        service = LedgerReportService(db_session)

        paged = []
        for page in range(1, 5):
            paged.extend(service.get_ledger(party_id=customer.id, per_page=7, page=page).items)

        assert [r.balance for r in paged] == [expected_balance(n) for n in range(1, 26)]

    def test_equal_timestamps_order_by_posting_id(self, db_session, seeded_chart, customer):
        post_customer_stream(db_session, customer.id)
        db_session.execute(update(JournalPosting).values(created_at=datetime(2026, 1, 1, 9, 0)))
        db_session.commit()
        service = LedgerReportService(db_session)

        whole = service.get_ledger(party_id=customer.id, per_page=25)
        paged = []
        for page in (1, 2, 3):
            paged.extend(service.get_ledger(party_id=customer.id, per_page=10, page=page).items)

        ids = [r.posting_id for r in whole.items]
        assert ids == sorted(ids)
        assert [r.posting_id for r in paged] == ids
        assert [r.balance for r in paged] == [expected_balance(n) for n in range(1, 26)]
        assert [r.balance for r in whole.items] == [r.balance for r in paged]


class TestLedgerFilters:

    def test_account_statement(self, db_session, seeded_chart, customer):
        post_customer_stream(db_session, customer.id, count=4)

        result = LedgerReportService(db_session).get_ledger(account_code=chart.CASH)

        assert result.party_type is None
        assert [r.debit for r in result.items] == [Decimal("50.00"), Decimal("50.00")]
        assert result.closing_for_page == Decimal("100.00")

    def test_per_page_is_capped(self, db_session, seeded_chart, customer):
        result = LedgerReportService(db_session).get_ledger(party_id=customer.id,
                                                            per_page=10_000)
        assert result.pagination.per_page == 100

    def test_party_statement_names_the_party(self, db_session, seeded_chart, customer):
        post_customer_stream(db_session, customer.id, count=2)

        result = LedgerReportService(db_session).get_ledger(party_id=customer.id)

        assert result.party_name == "Ayesha Rahman"
        assert result.closing_for_page == Decimal("50.00")

    def test_unknown_party_rejected(self, db_session, seeded_chart):
        with pytest.raises(DocumentNotFoundError, match="vendor 999"):
            LedgerReportService(db_session).get_ledger(
                party_type=PartyKind.VENDOR, party_id=999
            )

    def test_reversed_range_rejected(self, db_session, seeded_chart):
        with pytest.raises(InvalidDateRangeError):
            LedgerReportService(db_session).get_ledger(
                date_from=date(2026, 2, 1), date_to=date(2026, 1, 1)
            )


class TestPartyBalances:

    def test_customer_and_vendor_signs(self, db_session, seeded_chart, customer, vendor):
        post_customer_stream(db_session, customer.id, count=3)
        AccountingService(db_session).post(
            branch_id=1, memo="Bill",
            lines=[
                PostingLine(account_code=chart.INVENTORY, debit=Decimal("700")),
                PostingLine(account_code=chart.ACCOUNTS_PAYABLE, credit=Decimal("700"),
                            party=VendorParty(id=vendor.id)),
            ],
        )
        db_session.commit()
        service = LedgerReportService(db_session)

        customers = service.party_balances(PartyKind.CUSTOMER)
        vendors = service.party_balances(PartyKind.VENDOR)

        assert customers[0].party_id == customer.id
        assert customers[0].name == "Ayesha Rahman"
        assert customers[0].balance == Decimal("150.00")
        assert vendors[0].name == "Acme Wholesale"
        assert vendors[0].balance == Decimal("700.00")
