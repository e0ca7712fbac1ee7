# app/envelopes/services.py

"""
Business Logic Layer for the Envelopes module.
Owns every signer and envelope status transition.
"""

import uuid
from datetime import datetime, timezone
from typing import Callable, List, Tuple

from fastapi import Depends
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.core.db import get_db
from app.core.jwt import build_signing_link, create_signing_token
from app.envelopes.exceptions import (
    ConcurrentUpdateException, EnvelopeNotFoundException,
    EnvelopeStateException, SignerNotFoundException, ValidationError,
)
from app.envelopes.models import Envelope, EnvelopeFile, EnvelopeSigner
from app.envelopes.repository import EnvelopeRepository
from app.envelopes.schemas import DocumentStatus, Recipient, SignerStatus
from app.envelopes.utils import recompute_document_status, resolve_signer
from app.utils.logger import get_logger

logger = get_logger(__name__)

MAX_TRANSITION_ATTEMPTS = 3


def _now() -> datetime:
    return datetime.now(timezone.utc)


class EnvelopeService:
    """
    Service layer for envelope operations.
    Every mutation is a read-modify-write of a single envelope guarded by
    its version counter, retried on conflict.
    """

    def __init__(self, db: Session = Depends(get_db)):
        self.db = db
        self.repo = EnvelopeRepository(db)

    # === Creation ===

    def create_envelope(
        self, files: List[dict], recipients: List[Recipient], fallback_name: str = ""
    ) -> Envelope:
        """
        Create an envelope with every signer SENT and a signing link minted
        per signer, in a single write.

        Args:
            files: Stored original documents ({filename, stored_name, public_url, mimetype})
            recipients: Normalized recipients, in signing order
            fallback_name: Name used for recipients that did not give one

        Raises:
            ValidationError: If there are no recipients or no files
        """
        if not recipients:
            raise ValidationError("Provide at least one valid recipient email")
        if not files:
            raise ValidationError("No templates found")

        envelope_id = uuid.uuid4().hex
        sent_at = _now()

        signers = []
        for index, recipient in enumerate(recipients):
            token = create_signing_token(envelope_id, recipient.email, index)
            signers.append(
                EnvelopeSigner(
                    signer_index=index,
                    email=recipient.email,
                    name=recipient.name or fallback_name or "",
                    status=SignerStatus.SENT,
                    sent_at=sent_at,
                    signed_url=build_signing_link(token),
                )
            )

        envelope = Envelope(
            id=envelope_id,
            document_status=DocumentStatus.SENT,
            signed_pdf="",
            signed_url=signers[0].signed_url,
            signers=signers,
            files=[
                EnvelopeFile(
                    position=position,
                    filename=f["filename"],
                    stored_name=f["stored_name"],
                    public_url=f["public_url"],
                    mimetype=f["mimetype"],
                )
                for position, f in enumerate(files)
            ],
        )
        envelope = self.repo.create(envelope)
        logger.info(
            "Envelope created",
            envelope_id=envelope.id,
            signers=len(envelope.signers),
            files=len(envelope.files),
        )
        return envelope

    # === Lookups ===

    def get_envelope(self, envelope_id: str) -> Envelope:
        """Fetch an envelope or raise EnvelopeNotFoundException."""
        envelope = self.repo.get(envelope_id)
        if envelope is None:
            raise EnvelopeNotFoundException(envelope_id)
        return envelope

    def resolve(self, envelope_id: str, claimed_index, claimed_email) -> Tuple[Envelope, int]:
        """Fetch the envelope a token points at and the signer it addresses."""
        envelope = self.get_envelope(envelope_id)
        return envelope, resolve_signer(envelope, claimed_index, claimed_email)

    def ensure_can_complete(self, envelope: Envelope, signer_index: int) -> None:
        """Reject completion for signers that already finished or were voided."""
        signer = envelope.signers[signer_index]
        if signer.status in (SignerStatus.COMPLETED, SignerStatus.VOIDED):
            raise EnvelopeStateException(
                envelope.id, signer_index, signer.status.value, SignerStatus.COMPLETED.value
            )

    # === Transitions ===

    def record_delivery(self, envelope_id: str, signer_index: int) -> Envelope:
        """
        Mark a signer as having opened their link. Only a SENT signer moves;
        for any other status this is a no-op.
        """
        def apply(envelope: Envelope) -> bool:
            signer = self._signer(envelope, signer_index)
            if signer.status != SignerStatus.SENT:
                return False
            signer.status = SignerStatus.DELIVERED
            if signer.delivered_at is None:
                signer.delivered_at = _now()
            return True

        return self._transition(envelope_id, apply, "delivered", signer_index)

    def record_completion(
        self, envelope_id: str, signer_index: int, signed_artifact_url: str
    ) -> Envelope:
        """
        Mark a signer as COMPLETED with the artifact they uploaded. The
        envelope-level pointer always holds the latest artifact.

        Raises:
            EnvelopeStateException: If the signer is already COMPLETED or VOIDED
        """
        def apply(envelope: Envelope) -> bool:
            signer = self._signer(envelope, signer_index)
            self.ensure_can_complete(envelope, signer_index)
            signer.status = SignerStatus.COMPLETED
            if signer.completed_at is None:
                signer.completed_at = _now()
            signer.signed_pdf = signed_artifact_url
            envelope.signed_pdf = signed_artifact_url
            return True

        return self._transition(envelope_id, apply, "completed", signer_index)

    def cancel_envelope(self, envelope_id: str) -> Envelope:
        """
        Void the envelope and every signer, whatever state they are in.
        """
        def apply(envelope: Envelope) -> bool:
            changed = envelope.document_status != DocumentStatus.VOIDED
            for signer in envelope.signers:
                if signer.status != SignerStatus.VOIDED:
                    signer.status = SignerStatus.VOIDED
                    changed = True
            return changed

        return self._transition(envelope_id, apply, "voided")

    # === Internals ===

    @staticmethod
    def _signer(envelope: Envelope, signer_index: int) -> EnvelopeSigner:
        signer = envelope.signer_at(signer_index)
        if signer is None:
            raise SignerNotFoundException(envelope.id, signer_index=signer_index)
        return signer

    def _transition(
        self,
        envelope_id: str,
        apply: Callable[[Envelope], bool],
        event: str,
        signer_index: int = None,
    ) -> Envelope:
        """
        Run one transition: load fresh state, apply the change, recompute
        the aggregate and write it back. A lost race re-runs the whole step.
        """
        for attempt in range(1, MAX_TRANSITION_ATTEMPTS + 1):
            envelope = self.get_envelope(envelope_id)
            if not apply(envelope):
                logger.info(
                    "Envelope transition skipped",
                    envelope_id=envelope_id, transition=event, signer_index=signer_index,
                )
                return envelope

            envelope.document_status = recompute_document_status(
                signer.status for signer in envelope.signers
            )
            # Touch the envelope row so its version is checked and bumped
            envelope.updated_on = _now()
            try:
                envelope = self.repo.save(envelope)
            except StaleDataError:
                self.repo.rollback()
                logger.warning(
                    "Concurrent envelope update, retrying",
                    envelope_id=envelope_id, transition=event, attempt=attempt,
                )
                continue

            logger.info(
                "Envelope transition applied",
                envelope_id=envelope_id,
                transition=event,
                signer_index=signer_index,
                document_status=envelope.document_status.value,
            )
            return envelope

        raise ConcurrentUpdateException(envelope_id, MAX_TRANSITION_ATTEMPTS)
