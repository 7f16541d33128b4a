import hashlib
import hmac
import json
import logging
import os
import uuid
from typing import Dict, List, Optional

import httpx
from fastapi import FastAPI, Header, HTTPException
from pydantic import BaseModel

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("mock-gateway")

app = FastAPI(title="Mock Payout Gateway")

SECRET_KEY = os.getenv("GATEWAY_SECRET_KEY", "sandbox_sk_test")
RELAY_WEBHOOK_URL = os.getenv("RELAY_WEBHOOK_URL")

# (bank_code, account_number) -> account holder
ACCOUNTS: Dict[tuple, str] = {
    ("058", "0123456789"): "ADE ABUKA JOY",
    ("044", "1111111111"): "OKAFOR CHINEDU EMMANUEL",
    ("033", "2222222222"): "BELLO AISHA",
}
TRANSFERS: List[dict] = []


class LookupBody(BaseModel):
    account_number: str
    bank_code: str


class TransferBody(BaseModel):
    amount: int
    account_number: str
    bank_code: str
    beneficiary_name: str
    currency: str
    narration: str
    reference: str


class ChargeBody(BaseModel):
    email: str
    amount: int
    transaction_ref: Optional[str] = None


def _authorize(authorization: Optional[str]):
    if authorization != f"Bearer {SECRET_KEY}":
        raise HTTPException(status_code=401, detail="Unauthorized")


def sign(raw_body: bytes) -> str:
    return hmac.new(SECRET_KEY.encode(), raw_body, hashlib.sha512).hexdigest().upper()


@app.post("/payout/account/lookup")
async def account_lookup(body: LookupBody, authorization: Optional[str] = Header(None)):
    _authorize(authorization)
    name = ACCOUNTS.get((body.bank_code, body.account_number))
    logger.info("Lookup bank=%s account=%s found=%s", body.bank_code, body.account_number, name is not None)
    if not name:
        return {"status": 200, "success": False, "message": "Account not found", "data": {}}
    return {
        "status": 200,
        "success": True,
        "message": "Success",
        "data": {"account_name": name, "account_number": body.account_number},
    }


@app.post("/payout/transfer")
async def transfer(body: TransferBody, authorization: Optional[str] = Header(None)):
    _authorize(authorization)
    if (body.bank_code, body.account_number) not in ACCOUNTS:
        logger.warning("Transfer to unknown account reference=%s", body.reference)
        return {"status": 400, "success": False, "message": "Beneficiary account not found"}
    TRANSFERS.append(body.model_dump())
    logger.info("Transfer accepted reference=%s amount=%s", body.reference, body.amount)
    return {
        "status": 200,
        "success": True,
        "message": "Success",
        "data": {"reference": body.reference, "amount": body.amount, "currency": body.currency},
    }


@app.get("/transactions")
async def list_transactions():
    return TRANSFERS


@app.post("/simulate/charge")
async def simulate_charge(body: ChargeBody):
    """
    Sign a charge_successful event and deliver it to the relay webhook.
    """
    if not RELAY_WEBHOOK_URL:
        raise HTTPException(status_code=400, detail="RELAY_WEBHOOK_URL not configured")
    transaction_ref = body.transaction_ref or f"SQ{uuid.uuid4().hex[:12].upper()}"
    event = {
        "Event": "charge_successful",
        "TransactionRef": transaction_ref,
        "Body": {
            "amount": body.amount,
            "transaction_ref": transaction_ref,
            "email": body.email,
            "currency": "NGN",
            "transaction_status": "Success",
        },
    }
    raw_body = json.dumps(event).encode()
    async with httpx.AsyncClient(timeout=5.0) as client:
        resp = await client.post(
            RELAY_WEBHOOK_URL,
            content=raw_body,
            headers={"Content-Type": "application/json", "x-squad-encrypted-body": sign(raw_body)},
        )
    logger.info("Delivered charge_successful transactionRef=%s relay_status=%s", transaction_ref, resp.status_code)
    return {"transactionRef": transaction_ref, "relayStatus": resp.status_code, "relayBody": resp.text}
