import hashlib
import hmac
from typing import Any, Mapping, Optional

SIGNATURE_HEADER = "x-webhook-signature"


class InvalidSignature(ValueError):
    pass


def _header(headers: Mapping[str, Any], name: str) -> Optional[str]:
    value = headers.get(name)
    if value is None:
        for key, v in headers.items():
            if key.lower() == name:
                value = v
                break
    return value if isinstance(value, str) else None


def verify_bland_signature(secret: Optional[str], headers: Mapping[str, Any], raw_body: bytes):
    """
    Bland signs the raw body with HMAC-SHA256 and sends the hex digest in
    X-Webhook-Signature. Without a configured secret verification is skipped.
    """
    if not secret:
        return
    if not raw_body:
        raise InvalidSignature("missing body for webhook verification")

    signature = _header(headers, SIGNATURE_HEADER)
    if not signature:
        raise InvalidSignature("missing X-Webhook-Signature header")

    expected = hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).digest()
    try:
        given = bytes.fromhex(signature.strip())
    except ValueError:
        raise InvalidSignature("malformed webhook signature") from None

    if not hmac.compare_digest(given, expected):
        raise InvalidSignature("invalid webhook signature")
