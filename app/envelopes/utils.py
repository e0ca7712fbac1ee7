# app/envelopes/utils.py

import json
import re
from typing import Any, Iterable, List, Optional

from app.envelopes.exceptions import SignerNotFoundException, ValidationError
from app.envelopes.schemas import DocumentStatus, Recipient, SignerStatus

EMAIL_REGEX = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
NAMED_ADDRESS_REGEX = re.compile(r"^(.*)<([^>]+)>$")
RECIPIENT_SEPARATORS = re.compile(r"[\n,;]+")
TEMPLATE_SEPARATORS = re.compile(r"[,\s]+")


def _recipient_entries(raw: Any) -> List[str]:
    """Flatten the accepted input shapes into raw 'Name <email>' / 'email' strings."""
    if isinstance(raw, list):
        parsed = raw
    else:
        try:
            parsed = json.loads(raw)
        except (TypeError, ValueError):
            return RECIPIENT_SEPARATORS.split(str(raw or ""))
        if not isinstance(parsed, list):
            return []

    entries = []
    for value in parsed:
        if isinstance(value, str):
            entries.append(value)
        elif isinstance(value, dict) and value.get("email"):
            entries.append(f"{value.get('name') or ''} <{value['email']}>")
    return entries


def parse_recipients(raw: Any) -> List[Recipient]:
    """
    Normalize freeform recipient input into unique, valid recipients.

    Accepts a JSON array (of strings and/or {email, name} objects), a list, or a
    string delimited by commas, semicolons or newlines. Each entry may be a bare
    address or "Name <email>". Emails are trimmed and lowercased; the first
    occurrence of an address wins and invalid entries are dropped.
    """
    unique = {}
    for entry in _recipient_entries(raw):
        entry = str(entry or "").strip()
        if not entry:
            continue

        name = ""
        email = entry
        match = NAMED_ADDRESS_REGEX.match(entry)
        if match:
            name = match.group(1).strip().strip('"')
            email = match.group(2).strip()
        email = email.lower()

        if not EMAIL_REGEX.match(email):
            continue
        if email not in unique:
            unique[email] = Recipient(email=email, name=name)

    return list(unique.values())


def parse_template_selection(raw: Any) -> List[str]:
    """Template names from a JSON array or a comma/whitespace separated string."""
    try:
        selected = json.loads(raw)
    except (TypeError, ValueError):
        selected = TEMPLATE_SEPARATORS.split(str(raw or ""))

    if isinstance(selected, str):
        selected = [selected]
    if not isinstance(selected, list):
        selected = []

    names = [str(name).strip() for name in selected if str(name).strip()]
    if not names:
        raise ValidationError("Select at least one template")
    return names


def recompute_document_status(statuses: Iterable[SignerStatus]) -> DocumentStatus:
    """
    Envelope status as a pure function of its signers' statuses.
    """
    statuses = list(statuses)
    if not statuses:
        raise ValueError("An envelope must have at least one signer")

    if any(s == SignerStatus.VOIDED for s in statuses):
        return DocumentStatus.VOIDED
    if all(s == SignerStatus.COMPLETED for s in statuses):
        return DocumentStatus.COMPLETED
    if all(s in (SignerStatus.DELIVERED, SignerStatus.COMPLETED) for s in statuses):
        return DocumentStatus.DELIVERED
    return DocumentStatus.SENT


def resolve_signer(envelope, claimed_index: Optional[int], claimed_email: Optional[str]) -> int:
    """
    Locate the signer a token addresses.

    The index claimed by the token is preferred and must point at a signer
    holding the claimed email. Without an index the email is looked up.
    """
    email = (claimed_email or "").strip().lower()

    if isinstance(claimed_index, int) and not isinstance(claimed_index, bool):
        signer = envelope.signer_at(claimed_index)
        if signer is None or (email and signer.email != email):
            raise SignerNotFoundException(envelope.id, signer_index=claimed_index, email=email)
        return claimed_index

    for signer in envelope.signers:
        if email and signer.email == email:
            return signer.signer_index
    raise SignerNotFoundException(envelope.id, signer_index=claimed_index, email=email)
