# app/envelopes/repository.py

"""
Data Access Layer for the Envelopes module.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from app.envelopes.models import Envelope


class EnvelopeRepository:
    """
    Repository for envelopes and their embedded signers and files.
    """

    def __init__(self, db: Session):
        self.db = db

    def create(self, envelope: Envelope) -> Envelope:
        """Insert an envelope with its signers and files in one transaction."""
        self.db.add(envelope)
        self.db.commit()
        self.db.refresh(envelope)
        return envelope

    def get(self, envelope_id: str) -> Optional[Envelope]:
        """Fetch an envelope with signers and files loaded."""
        stmt = (
            select(Envelope)
            .options(selectinload(Envelope.signers), selectinload(Envelope.files))
            .where(Envelope.id == envelope_id)
            .execution_options(populate_existing=True)
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def save(self, envelope: Envelope) -> Envelope:
        """
        Commit pending changes. The envelope row carries a version counter,
        so a concurrent writer makes this raise StaleDataError.
        """
        self.db.flush()
        self.db.commit()
        self.db.refresh(envelope)
        return envelope

    def rollback(self) -> None:
        """Discard pending changes after a failed write."""
        self.db.rollback()
