# app/envelopes/notifications.py

import asyncio
from typing import Dict, Iterable

from app.core.config import settings
from app.utils.email_service import EmailService
from app.utils.logger import get_logger

logger = get_logger(__name__)

SIGNING_REQUEST_TEMPLATE = "signing_request.html"


async def _notify_one(email_service: EmailService, signer, fallback_name: str) -> bool:
    try:
        await email_service.send_templated_email(
            to_email=signer.email,
            subject=settings.email_subject,
            template_name=SIGNING_REQUEST_TEMPLATE,
            context={
                "signer_name": signer.name or fallback_name or "",
                "signing_link": signer.signed_url,
            },
        )
        return True
    except Exception as e:
        # The envelope and its links stay valid; the link can be shared another way
        logger.error(
            "Failed to send signing request",
            envelope_id=signer.envelope_id,
            signer_index=signer.signer_index,
            error_message=str(e),
        )
        return False


async def notify_signers(
    email_service: EmailService, signers: Iterable, fallback_name: str = ""
) -> Dict[str, bool]:
    """
    Email every signer their link, all at once. Returns whether each
    recipient's send succeeded; never raises for a failed send.
    """
    signers = list(signers)
    results = await asyncio.gather(
        *(_notify_one(email_service, signer, fallback_name) for signer in signers)
    )
    return {signer.email: ok for signer, ok in zip(signers, results)}
