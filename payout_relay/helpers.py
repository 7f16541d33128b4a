import time
import uuid
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional, Sequence

from fastapi import Request

from payout_relay.exceptions import InvalidRequest

MINOR_UNITS_PER_MAJOR = 100


def parse_amount(value: Any) -> Decimal:
    """
    Parse a caller-supplied amount into a Decimal. Floats go through their
    string form so 150.005 stays 150.005 instead of its binary approximation.
    """
    if value is None or isinstance(value, bool):
        raise InvalidRequest()
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise InvalidRequest("Amount must be a number") from exc
    if not amount.is_finite():
        raise InvalidRequest("Amount must be a number")
    return amount


def to_minor_units(amount: Any) -> int:
    """
    Major to minor currency units, rounding half-up: 150.005 -> 15001.
    """
    try:
        minor = parse_amount(amount) * MINOR_UNITS_PER_MAJOR
        return int(minor.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    except InvalidOperation as exc:
        # more digits than the decimal context holds
        raise InvalidRequest("Amount must be a number") from exc


def to_major_units(minor: int) -> Decimal:
    return Decimal(minor) / MINOR_UNITS_PER_MAJOR


class ReferenceGenerator:
    """
    Produces unique transfer references such as `wd_1718000000000_9f2c1ab3`.
    """

    def __init__(self, prefix: str = "wd"):
        self.prefix = prefix

    def __call__(self) -> str:
        millis = int(time.time() * 1000)
        return f"{self.prefix}_{millis}_{uuid.uuid4().hex[:8]}"


def get_client_ip(request: Request, trusted_proxies: Sequence[str] = ()) -> Optional[str]:
    """
    Socket peer address of the caller. Forwarding headers are honoured only
    when the peer itself is a trusted proxy ("*" trusts every peer).
    """
    peer = request.client.host if request.client else None
    if peer is None or not (peer in trusted_proxies or "*" in trusted_proxies):
        return peer

    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip
    return peer
