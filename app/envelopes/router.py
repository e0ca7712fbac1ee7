# app/envelopes/router.py

from pathlib import Path

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from fastapi.responses import FileResponse, PlainTextResponse

from app.core.jwt import (
    SigningClaims, TokenError, TokenExpiredError, verify_signing_token,
)
from app.envelopes.documents import render_documents
from app.envelopes.exceptions import (
    EnvelopeBaseException, ValidationError, convert_to_http_exception,
)
from app.envelopes.notifications import notify_signers
from app.envelopes.schemas import (
    EnvelopeByTokenResponse, EnvelopeCancelResponse, EnvelopeCompleteResponse,
    EnvelopeCreateResponse, EnvelopeFileLink, EnvelopeFileResponse,
    SignerLinkResponse, SignerSnapshot, TemplateFields,
)
from app.envelopes.services import EnvelopeService
from app.envelopes.utils import parse_recipients, parse_template_selection
from app.utils.email_service import EmailService, get_email_service
from app.utils.file_utils import validate_file
from app.utils.logger import get_logger
from app.utils.storage import BlobStore, StorageError, get_blob_store

router = APIRouter(tags=["Envelopes"])
logger = get_logger(__name__)

SIGN_PAGE = Path(__file__).parent.parent / "web" / "sign.html"


def get_signing_claims(token: str) -> SigningClaims:
    """
    Dependency that authenticates a signer by the token in the path.
    Runs before any envelope is loaded.
    """
    try:
        return verify_signing_token(token)
    except TokenExpiredError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Token has expired"
        ) from e
    except TokenError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token"
        ) from e


@router.post("/envelopes", response_model=EnvelopeCreateResponse)
async def create_envelope(
    templates: str = Form(None),
    emails: str = Form(None),
    name: str = Form(None),
    address: str = Form(None),
    company_name: str = Form(None),
    uen: str = Form(None),
    reg_address: str = Form(None),
    date: str = Form(None),
    envelope_service: EnvelopeService = Depends(),
    blob_store: BlobStore = Depends(get_blob_store),
    email_service: EmailService = Depends(get_email_service),
):
    """
    Generate the selected documents once and create a single envelope with
    one signing link per recipient. Each recipient is emailed their link;
    a failed email does not fail the request.
    """
    try:
        selected = parse_template_selection(templates)
        recipients = parse_recipients(emails)
        if not recipients:
            raise ValidationError("Provide at least one valid recipient email")

        fields = TemplateFields(
            name=name, address=address, company_name=company_name,
            uen=uen, reg_address=reg_address, date=date,
        )
        files = render_documents(selected, fields, blob_store)
        envelope = envelope_service.create_envelope(files, recipients, fallback_name=name or "")
    except EnvelopeBaseException as e:
        logger.error(f"Failed to create envelope: {e.message}", error_details=e.details)
        raise convert_to_http_exception(e) from e
    except Exception as e:
        logger.error("Error creating envelope", error_message=str(e), exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Generation failed"
        ) from e

    notified = await notify_signers(email_service, envelope.signers, fallback_name=name or "")

    return EnvelopeCreateResponse(
        envelope_id=envelope.id,
        envelope_sign_url=envelope.signed_url,
        document_status=envelope.document_status,
        files=[EnvelopeFileResponse.model_validate(f) for f in envelope.files],
        signers=[
            SignerLinkResponse(
                email=s.email,
                name=s.name,
                status=s.status,
                sent_at=s.sent_at,
                signed_url=s.signed_url,
                notified=notified.get(s.email, False),
            )
            for s in envelope.signers
        ],
    )


@router.get("/envelopes/by-token/{token}", response_model=EnvelopeByTokenResponse)
async def read_envelope_by_token(
    claims: SigningClaims = Depends(get_signing_claims),
    envelope_service: EnvelopeService = Depends(),
):
    """
    Envelope as seen by the signer holding the token. The first read moves
    the signer from SENT to DELIVERED.
    """
    try:
        envelope, index = envelope_service.resolve(claims.envelope_id, claims.index, claims.email)
        envelope = envelope_service.record_delivery(envelope.id, index)
    except EnvelopeBaseException as e:
        raise convert_to_http_exception(e) from e

    signer = envelope.signers[index]
    return EnvelopeByTokenResponse(
        envelope_id=envelope.id,
        document_status=envelope.document_status,
        signer=SignerSnapshot(
            index=index,
            email=signer.email,
            name=signer.name,
            status=signer.status,
            sent_at=signer.sent_at,
            delivered_at=signer.delivered_at,
            completed_at=signer.completed_at,
        ),
        files=[EnvelopeFileLink(url=f.public_url, mimetype=f.mimetype) for f in envelope.files],
    )


@router.post("/envelopes/{token}/complete", response_model=EnvelopeCompleteResponse)
async def complete_envelope(
    file: UploadFile = File(default=None),
    claims: SigningClaims = Depends(get_signing_claims),
    envelope_service: EnvelopeService = Depends(),
    blob_store: BlobStore = Depends(get_blob_store),
):
    """Store the signer's signed PDF and mark them COMPLETED."""
    is_valid, error = validate_file(file)
    if not is_valid:
        logger.error("Invalid file", error_message=error)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=error)

    try:
        envelope, index = envelope_service.resolve(claims.envelope_id, claims.index, claims.email)
        envelope_service.ensure_can_complete(envelope, index)
        stored = blob_store.receive_upload(file.file)
        try:
            envelope = envelope_service.record_completion(envelope.id, index, stored.public_url)
        except EnvelopeBaseException:
            # Lost to a cancel or a concurrent completion, nothing points at the upload
            logger.warning(
                "Discarding unreferenced signed document",
                envelope_id=claims.envelope_id, signer_index=index, stored_name=stored.stored_name,
            )
            blob_store.discard(stored)
            raise
    except EnvelopeBaseException as e:
        raise convert_to_http_exception(e) from e
    except StorageError as e:
        logger.error("Error storing signed document", envelope_id=claims.envelope_id, error_message=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Upload failed"
        ) from e

    return EnvelopeCompleteResponse(
        download_url=envelope.signed_pdf,
        envelope_id=envelope.id,
        signer_index=index,
        signer_email=envelope.signers[index].email,
        document_status=envelope.document_status,
    )


@router.post("/envelopes/{token}/cancel", response_model=EnvelopeCancelResponse)
async def cancel_envelope(
    claims: SigningClaims = Depends(get_signing_claims),
    envelope_service: EnvelopeService = Depends(),
):
    """Void the envelope for every signer."""
    try:
        envelope, index = envelope_service.resolve(claims.envelope_id, claims.index, claims.email)
        envelope = envelope_service.cancel_envelope(envelope.id)
    except EnvelopeBaseException as e:
        raise convert_to_http_exception(e) from e

    logger.info("Envelope cancelled", envelope_id=envelope.id, signer_index=index)
    return EnvelopeCancelResponse(envelope_id=envelope.id)


@router.get("/sign/{token}", include_in_schema=False)
async def signing_page(token: str):
    """Serve the signing page for a valid link."""
    try:
        verify_signing_token(token)
    except TokenError:
        return PlainTextResponse("Link expired", status_code=status.HTTP_401_UNAUTHORIZED)
    return FileResponse(SIGN_PAGE, media_type="text/html")
