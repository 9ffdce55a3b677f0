"""
Tagged references used across schemas.

A party is either a customer or a vendor; a document reference names
one of the registered document kinds. Both are stored as a plain
(kind, id) pair on the rows and validated here on the way in.
"""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field

from pos_ledger.models.enums import DocumentKind, PartyKind


class CustomerParty(BaseModel):
    kind: Literal["customer"] = "customer"
    id: int = Field(gt=0)


class VendorParty(BaseModel):
    kind: Literal["vendor"] = "vendor"
    id: int = Field(gt=0)


Party = Annotated[Union[CustomerParty, VendorParty], Field(discriminator="kind")]


def party_of(kind: PartyKind | str | None, party_id: int | None):
    """Build a Party from a stored (type, id) pair; None if either is missing."""
    if not kind or not party_id:
        return None
    if PartyKind(kind) is PartyKind.CUSTOMER:
        return CustomerParty(id=party_id)
    return VendorParty(id=party_id)


class DocumentRef(BaseModel):
    """Pointer to the business document an entry or cash row came from."""
    kind: DocumentKind
    id: int = Field(gt=0)
