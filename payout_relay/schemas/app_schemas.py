from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, Any


class LookupRequest(BaseModel):
    accountNumber: Optional[str] = None
    bankCode: Optional[str] = None


class LookupResponse(BaseModel):
    success: bool
    accountName: Optional[str] = None
    message: Optional[str] = None


class WithdrawRequest(BaseModel):
    # amount stays loose so bad values reach the orchestrator's validation
    amount: Optional[Any] = None
    accountNumber: Optional[str] = None
    bankCode: Optional[str] = None
    beneficiaryName: Optional[str] = None


class WithdrawResponse(BaseModel):
    success: bool
    message: Optional[str] = None
    ref: Optional[str] = None


class WebhookEventData(BaseModel):
    model_config = ConfigDict(extra="ignore")

    transaction_ref: str
    amount: int  # minor units
    email: str


class WebhookEvent(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    event: str = Field(alias="Event")
    transaction_ref: Optional[str] = Field(None, alias="TransactionRef")
    body: dict = Field(default_factory=dict, alias="Body")

    def charge(self) -> WebhookEventData:
        return WebhookEventData.model_validate(self.body)
