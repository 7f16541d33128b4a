import hashlib
import hmac
from typing import Optional

from payout_relay.exceptions import InvalidSignature
from payout_relay.logging_config import get_logger

logger = get_logger(__name__)

SIGNATURE_HEADER = "x-squad-encrypted-body"


def compute_signature(raw_body: bytes, secret: str) -> str:
    """
    HMAC-SHA512 of the exact bytes received, as upper-case hex (Squad's format).
    """
    return hmac.new(secret.encode(), raw_body, hashlib.sha512).hexdigest().upper()


def verify_signature(raw_body: bytes, signature: Optional[str], secret: str) -> None:
    if not signature:
        logger.warning("Webhook rejected: missing %s header", SIGNATURE_HEADER)
        raise InvalidSignature("Missing signature")
    expected = compute_signature(raw_body, secret)
    if not hmac.compare_digest(expected.encode(), signature.strip().encode()):
        logger.warning("Webhook rejected: invalid signature")
        raise InvalidSignature()
