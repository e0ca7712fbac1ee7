# app/core/jwt.py

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt, ExpiredSignatureError

from app.core.config import settings
from app.utils.logger import get_logger

logger = get_logger(__name__)

SIGNING_SCOPE = "envelope_signing"


class TokenError(Exception):
    """Base class for signing token failures."""


class TokenMalformedError(TokenError):
    """Token is not decodable, carries a bad signature or the wrong claims."""


class TokenExpiredError(TokenError):
    """Token is past its validity window."""


@dataclass(frozen=True)
class SigningClaims:
    """The signer a capability token was minted for."""

    envelope_id: str
    email: str
    index: int


# --- Signing Token Management ---

def create_signing_token(
    envelope_id: str,
    email: str,
    index: int,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Create a capability token for one signer of one envelope"""
    issued_at = datetime.now(timezone.utc)
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.signing_token_expire_minutes)
    to_encode = {
        "sub": envelope_id,
        "email": email,
        "idx": index,
        "scope": SIGNING_SCOPE,
        "iat": issued_at,
        "exp": issued_at + expires_delta,
    }
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def verify_signing_token(token: str) -> SigningClaims:
    """
    Verifies a signing token and returns the claims it was minted with.
    Raises TokenExpiredError or TokenMalformedError on failure.
    """
    if not token:
        raise TokenMalformedError("Missing token")
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except ExpiredSignatureError as ese:
        logger.warning("Signing token has expired")
        raise TokenExpiredError("Token has expired") from ese
    except JWTError as je:
        logger.warning("Invalid signing token", error_message=str(je))
        raise TokenMalformedError("Invalid token") from je

    if payload.get("scope") != SIGNING_SCOPE:
        raise TokenMalformedError("Invalid token scope")

    envelope_id = payload.get("sub")
    email = payload.get("email")
    index = payload.get("idx")
    if not envelope_id or not email or not isinstance(index, int) or isinstance(index, bool):
        raise TokenMalformedError("Token is missing signer claims")

    return SigningClaims(envelope_id=envelope_id, email=email, index=index)


def build_signing_link(token: str) -> str:
    """Render a token as the signer's personal link"""
    return f"{settings.app_base_url.rstrip('/')}/sign/{token}"
