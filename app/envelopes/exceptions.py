# app/envelopes/exceptions.py

"""
Custom exceptions for the Envelopes module.
"""

from typing import Optional
from fastapi import HTTPException, status


class EnvelopeBaseException(Exception):
    """Base exception for all Envelope-related errors."""
    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(EnvelopeBaseException):
    """Raised when request input is missing or unusable."""


class EnvelopeNotFoundException(EnvelopeBaseException):
    """Raised when an envelope does not exist."""
    def __init__(self, envelope_id: str):
        super().__init__("Envelope not found", {"envelope_id": envelope_id})


class SignerNotFoundException(EnvelopeBaseException):
    """Raised when a signer cannot be resolved inside its envelope."""
    def __init__(self, envelope_id: str, signer_index: Optional[int] = None, email: Optional[str] = None):
        super().__init__(
            "Signer not found in envelope",
            {"envelope_id": envelope_id, "signer_index": signer_index, "email": email},
        )


class EnvelopeStateException(EnvelopeBaseException):
    """Raised when a transition is not allowed from the signer's current state."""
    def __init__(self, envelope_id: str, signer_index: int, current_state: str, attempted_state: str):
        msg = f"Cannot transition signer {signer_index} from {current_state} to {attempted_state}"
        super().__init__(
            msg,
            {
                "envelope_id": envelope_id,
                "signer_index": signer_index,
                "current_state": current_state,
                "attempted_state": attempted_state,
            },
        )


class ConcurrentUpdateException(EnvelopeBaseException):
    """Raised when a transition keeps losing the race against other writers."""
    def __init__(self, envelope_id: str, attempts: int):
        msg = f"Envelope {envelope_id} was modified concurrently, gave up after {attempts} attempts"
        super().__init__(msg, {"envelope_id": envelope_id, "attempts": attempts})


class DocumentGenerationException(EnvelopeBaseException):
    """Raised when rendering or storing the original documents fails."""


def convert_to_http_exception(exc: EnvelopeBaseException) -> HTTPException:
    """
    Convert an EnvelopeBaseException to an HTTPException with appropriate status code.

    Args:
        exc: The envelope exception to convert

    Returns:
        HTTPException with appropriate status code and detail
    """
    if isinstance(exc, EnvelopeNotFoundException):
        status_code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, (ValidationError, SignerNotFoundException)):
        status_code = status.HTTP_400_BAD_REQUEST
    elif isinstance(exc, (EnvelopeStateException, ConcurrentUpdateException)):
        status_code = status.HTTP_409_CONFLICT
    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return HTTPException(
        status_code=status_code,
        detail={"message": exc.message, "details": exc.details},
    )
