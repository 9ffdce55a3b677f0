"""Business logic services."""

from pos_ledger.services.accounting_service import AccountingService
from pos_ledger.services.adjustments import AdjustmentService
from pos_ledger.services.cash_mirror_hooks import CashMirrorHooks
from pos_ledger.services.cash_sync_service import CashSyncService
from pos_ledger.services.cashbook import CashbookService
from pos_ledger.services.daybook import DayBookService
from pos_ledger.services.inventory_valuation import InventoryValuationService
from pos_ledger.services.ledger_report import LedgerReportService
from pos_ledger.services.party_payments import CustomerPaymentService, VendorPaymentService
from pos_ledger.services.profit_loss import ProfitLossService
from pos_ledger.services.purchase_claim_service import PurchaseClaimService
from pos_ledger.services.purchase_posting import PurchasePostingService
from pos_ledger.services.sale_posting import SalePostingService
from pos_ledger.services.sales_report import SalesReportService
from pos_ledger.services.stock_movement_report import StockMovementReportService

__all__ = [
    "AccountingService",
    "AdjustmentService",
    "CashMirrorHooks",
    "CashSyncService",
    "CashbookService",
    "DayBookService",
    "InventoryValuationService",
    "LedgerReportService",
    "CustomerPaymentService",
    "VendorPaymentService",
    "ProfitLossService",
    "PurchaseClaimService",
    "PurchasePostingService",
    "SalePostingService",
    "SalesReportService",
    "StockMovementReportService",
]
