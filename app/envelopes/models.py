# app/envelopes/models.py

"""
SQLAlchemy 2.x models for the envelopes module
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    String, DateTime, ForeignKey, Integer, UniqueConstraint,
    Enum as SQLEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.db import Base, TimestampMixin
from app.envelopes.schemas import DocumentStatus, SignerStatus


class Envelope(Base, TimestampMixin):
    """
    One signing transaction: a fixed set of documents sent to a fixed,
    ordered list of signers.
    """
    __tablename__ = "envelopes"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)

    document_status: Mapped[DocumentStatus] = mapped_column(
        SQLEnum(DocumentStatus, native_enum=False, length=16),
        nullable=False, default=DocumentStatus.PENDING, index=True,
        comment="Aggregate of the signer statuses"
    )
    signed_pdf: Mapped[str] = mapped_column(
        String(1024), nullable=False, default="",
        comment="URL of the most recently uploaded signed artifact"
    )
    signed_url: Mapped[str] = mapped_column(
        String(2048), nullable=False, default="",
        comment="Signing link of the first signer, fixed at creation"
    )
    version_id: Mapped[int] = mapped_column(Integer, nullable=False)

    signers: Mapped[List["EnvelopeSigner"]] = relationship(
        "EnvelopeSigner", back_populates="envelope", cascade="all, delete-orphan",
        order_by="EnvelopeSigner.signer_index", lazy="selectin"
    )
    files: Mapped[List["EnvelopeFile"]] = relationship(
        "EnvelopeFile", back_populates="envelope", cascade="all, delete-orphan",
        order_by="EnvelopeFile.position", lazy="selectin"
    )

    __mapper_args__ = {"version_id_col": version_id}

    def signer_at(self, index: int) -> Optional["EnvelopeSigner"]:
        """Signer addressed by a token index, if it exists."""
        if 0 <= index < len(self.signers):
            return self.signers[index]
        return None

    def __repr__(self):
        return f"<Envelope(id={self.id}, status={self.document_status}, signers={len(self.signers)})>"


class EnvelopeSigner(Base):
    """
    A recipient with its own lifecycle inside an envelope.
    Addressed only by (envelope_id, signer_index).
    """
    __tablename__ = "envelope_signers"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    envelope_id: Mapped[str] = mapped_column(
        ForeignKey("envelopes.id", ondelete="CASCADE"),
        nullable=False, index=True
    )
    signer_index: Mapped[int] = mapped_column(
        Integer, nullable=False, comment="Position in the envelope, referenced by tokens"
    )
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False, default="")

    status: Mapped[SignerStatus] = mapped_column(
        SQLEnum(SignerStatus, native_enum=False, length=16),
        nullable=False, default=SignerStatus.PENDING
    )
    sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    delivered_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    signed_url: Mapped[str] = mapped_column(
        String(2048), nullable=False, default="",
        comment="Personal signing link"
    )
    signed_pdf: Mapped[str] = mapped_column(
        String(1024), nullable=False, default="",
        comment="URL of this signer's uploaded artifact"
    )

    envelope: Mapped["Envelope"] = relationship("Envelope", back_populates="signers")

    __table_args__ = (
        UniqueConstraint("envelope_id", "signer_index", name="uq_envelope_signer_index"),
    )

    def __repr__(self):
        return f"<EnvelopeSigner(envelope_id={self.envelope_id}, index={self.signer_index}, status={self.status})>"


class EnvelopeFile(Base):
    """An original document generated for an envelope."""
    __tablename__ = "envelope_files"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    envelope_id: Mapped[str] = mapped_column(
        ForeignKey("envelopes.id", ondelete="CASCADE"),
        nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    filename: Mapped[str] = mapped_column(String(255), nullable=False)
    stored_name: Mapped[str] = mapped_column(String(512), nullable=False)
    public_url: Mapped[str] = mapped_column(String(1024), nullable=False)
    mimetype: Mapped[str] = mapped_column(String(128), nullable=False)

    envelope: Mapped["Envelope"] = relationship("Envelope", back_populates="files")
