"""Webhook signature verification."""

import hashlib
import hmac
from typing import List, Optional, Union

SIGNATURE_PREFIX = "sha256="


def compute_signature(secret: str, body: bytes) -> str:
    digest = hmac.new(secret.encode("utf-8"), msg=body, digestmod=hashlib.sha256)
    return SIGNATURE_PREFIX + digest.hexdigest()


def verify_signature(
    body: bytes,
    signature: Union[str, List[str], None],
    secret: Optional[str],
) -> bool:
    """Return True only when ``signature`` is the HMAC-SHA256 of the raw body.

    Fails closed: no secret, a missing header, repeated header values or a
    length mismatch all yield False. Must run before the body is parsed.
    """
    if not secret or not signature:
        return False
    if isinstance(signature, list):
        if len(signature) != 1:
            return False
        signature = signature[0]

    expected = compute_signature(secret, body).encode("utf-8")
    try:
        supplied = signature.encode("ascii")
    except UnicodeEncodeError:
        return False
    if len(supplied) != len(expected):
        return False
    return hmac.compare_digest(supplied, expected)
