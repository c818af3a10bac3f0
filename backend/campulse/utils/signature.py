"""
Paystack webhook signature verification
"""

import hashlib
import hmac
from typing import Optional, Union

SIGNATURE_HEADER = "x-paystack-signature"


def _as_bytes(value: Union[str, bytes]) -> bytes:
    return value.encode("utf-8") if isinstance(value, str) else value


def compute_signature(raw_body: Union[str, bytes], secret: str) -> str:
    """Hex HMAC-SHA512 of the body exactly as received"""
    return hmac.new(_as_bytes(secret), _as_bytes(raw_body), hashlib.sha512).hexdigest()


def verify_signature(raw_body: Union[str, bytes], signature: Optional[str], secret: Optional[str]) -> bool:
    """
    Check the signature header against the raw request body.

    The body must be the bytes off the wire; a parsed and re-serialized
    JSON document will not hash to the same value.
    """
    if not secret or not signature:
        return False
    computed = compute_signature(raw_body, secret).encode("ascii")
    # Header values arrive latin-1 decoded; compare bytes so non-ASCII input is a plain mismatch
    return hmac.compare_digest(computed, signature.strip().encode("latin-1", "replace"))
