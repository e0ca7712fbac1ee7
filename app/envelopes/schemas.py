# app/envelopes/schemas.py

"""
Pydantic schemas for the Envelopes module
"""

from datetime import datetime
from typing import List, Optional
from enum import Enum as PyEnum

from pydantic import BaseModel, ConfigDict


# === Enums ===

class SignerStatus(str, PyEnum):
    """Signer lifecycle status."""
    PENDING = "PENDING"
    SENT = "SENT"
    DELIVERED = "DELIVERED"
    COMPLETED = "COMPLETED"
    VOIDED = "VOIDED"


class DocumentStatus(str, PyEnum):
    """Envelope-level aggregate status."""
    PENDING = "PENDING"
    SENT = "SENT"
    DELIVERED = "DELIVERED"
    COMPLETED = "COMPLETED"
    VOIDED = "VOIDED"


# === Inputs ===

class Recipient(BaseModel):
    """A normalized recipient."""
    email: str
    name: str = ""


class TemplateFields(BaseModel):
    """Values filled into the document templates."""
    name: Optional[str] = None
    address: Optional[str] = None
    company_name: Optional[str] = None
    uen: Optional[str] = None
    reg_address: Optional[str] = None
    date: Optional[str] = None


# === Responses ===

class EnvelopeFileResponse(BaseModel):
    filename: str
    public_url: str
    mimetype: str

    model_config = ConfigDict(from_attributes=True)


class SignerLinkResponse(BaseModel):
    email: str
    name: str
    status: SignerStatus
    sent_at: Optional[datetime] = None
    signed_url: str
    notified: bool = False


class EnvelopeCreateResponse(BaseModel):
    """Response after creating an envelope."""
    ok: bool = True
    envelope_id: str
    # Link of the first signer
    envelope_sign_url: str
    document_status: DocumentStatus
    files: List[EnvelopeFileResponse]
    signers: List[SignerLinkResponse]


class SignerSnapshot(BaseModel):
    index: int
    email: str
    name: str
    status: SignerStatus
    sent_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class EnvelopeFileLink(BaseModel):
    url: str
    mimetype: str


class EnvelopeByTokenResponse(BaseModel):
    """What a signer sees when opening their link."""
    envelope_id: str
    document_status: DocumentStatus
    signer: SignerSnapshot
    files: List[EnvelopeFileLink]


class EnvelopeCompleteResponse(BaseModel):
    ok: bool = True
    download_url: str
    envelope_id: str
    signer_index: int
    signer_email: str
    document_status: DocumentStatus


class EnvelopeCancelResponse(BaseModel):
    ok: bool = True
    message: str = "Cancelled"
    envelope_id: str

