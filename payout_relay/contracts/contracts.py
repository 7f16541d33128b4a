from typing import Any, Optional

from pydantic import BaseModel

from payout_relay.config import TransferStatus

GATEWAY_SUCCESS_STATUSES = ("SUCCESS", 200)


def _field(body: dict, key: str) -> Optional[str]:
    """
    Squad answers with some fields at the top level and some under `data`.
    """
    value: Any = body.get(key)
    if value is None and isinstance(body.get("data"), dict):
        value = body["data"].get(key)
    if value is None or value == "":
        return None
    return str(value)


class AccountLookupRequest(BaseModel):
    account_number: str
    bank_code: str


class LookupResult(BaseModel):
    account_name: Optional[str] = None
    raw_message: Optional[str] = None

    @classmethod
    def from_gateway(cls, body: dict) -> "LookupResult":
        return cls(
            account_name=_field(body, "account_name"),
            raw_message=_field(body, "message"),
        )


class TransferRequest(BaseModel):
    amount: int  # minor units
    account_number: str
    bank_code: str
    beneficiary_name: str
    currency: str
    narration: str
    reference: str


class TransferResult(BaseModel):
    status: TransferStatus
    reference: str
    raw_message: Optional[str] = None

    @classmethod
    def from_gateway(cls, body: dict, request: TransferRequest) -> "TransferResult":
        succeeded = body.get("status") in GATEWAY_SUCCESS_STATUSES
        return cls(
            status=TransferStatus.SUCCESS if succeeded else TransferStatus.FAILURE,
            reference=_field(body, "reference") or request.reference,
            raw_message=_field(body, "message"),
        )

    @property
    def succeeded(self) -> bool:
        return self.status == TransferStatus.SUCCESS
