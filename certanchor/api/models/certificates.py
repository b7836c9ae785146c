"""Certificate API response models.

Field names are camelCase on the wire, matching the original dashboard
contract; Python attributes stay snake_case.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class AnchorResponse(BaseModel):
    """Response for POST /certificates.

    Attributes:
        fingerprint: Lowercase hex SHA-256 of the uploaded bytes.
        ledger_reference: Transaction id of the anchor on the ledger.
        already_anchored: True if the fingerprint was anchored before this call.
        storage_locator: Where the original document was stored.
    """

    model_config = ConfigDict(populate_by_name=True)

    fingerprint: str = Field(..., min_length=64, max_length=64)
    ledger_reference: str = Field(..., alias="ledgerReference")
    already_anchored: bool = Field(False, alias="alreadyAnchored")
    storage_locator: Optional[str] = Field(None, alias="storageLocator")


class VerificationResponse(BaseModel):
    """Response for the verification endpoints."""

    fingerprint: str = Field(..., min_length=64, max_length=64)
    anchored: bool


class ProblemDetail(BaseModel):
    """RFC 7807 problem body, documented for OpenAPI."""

    type: str
    title: str
    status: int
    detail: str
    instance: str
