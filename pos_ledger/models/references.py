"""
Explicit registries for the type+id associations.

Journal entries point at their originating document, postings and
cash rows point at a party, and cash rows point at their source
document. All of these are stored as a (kind, id) pair and resolved
through the lookup tables below, never by class name.
"""

from sqlalchemy.orm import Session

from pos_ledger.exceptions import DocumentNotFoundError
from pos_ledger.models.enums import DocumentKind, PartyKind
from pos_ledger.models.parties import Customer, Vendor
from pos_ledger.models.sales import (
    Sale, Payment, SaleReturn, SaleReturnRefund, Receipt,
)
from pos_ledger.models.purchases import (
    Purchase, PurchasePayment, PurchaseClaim, PurchaseClaimReceipt,
    VendorPayment,
)

DOCUMENT_MODELS = {
    DocumentKind.SALE: Sale,
    DocumentKind.PAYMENT: Payment,
    DocumentKind.SALE_RETURN: SaleReturn,
    DocumentKind.SALE_RETURN_REFUND: SaleReturnRefund,
    DocumentKind.RECEIPT: Receipt,
    DocumentKind.PURCHASE: Purchase,
    DocumentKind.PURCHASE_PAYMENT: PurchasePayment,
    DocumentKind.PURCHASE_CLAIM: PurchaseClaim,
    DocumentKind.PURCHASE_CLAIM_RECEIPT: PurchaseClaimReceipt,
    DocumentKind.VENDOR_PAYMENT: VendorPayment,
}

PARTY_MODELS = {
    PartyKind.CUSTOMER: Customer,
    PartyKind.VENDOR: Vendor,
}

_KIND_BY_MODEL = {model: kind for kind, model in DOCUMENT_MODELS.items()}


def document_kind(document) -> DocumentKind:
    """Return the registered kind for a document instance."""
    try:
        return _KIND_BY_MODEL[type(document)]
    except KeyError:
        raise ValueError(
            f"{type(document).__name__} is not a registered document type"
        ) from None


def resolve_document(db: Session, kind: DocumentKind | str, document_id: int):
    kind = DocumentKind(kind)
    document = db.get(DOCUMENT_MODELS[kind], document_id)
    if document is None:
        raise DocumentNotFoundError(kind.value, document_id)
    return document


def resolve_party(db: Session, kind: PartyKind | str, party_id: int):
    kind = PartyKind(kind)
    party = db.get(PARTY_MODELS[kind], party_id)
    if party is None:
        raise DocumentNotFoundError(kind.value, party_id)
    return party
