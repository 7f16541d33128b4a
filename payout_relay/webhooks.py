import json
from typing import Optional

from pydantic import ValidationError

from payout_relay.config import WebhookEventType
from payout_relay.db import LedgerStore
from payout_relay.exceptions import InvalidWebhookPayload, WebhookProcessingError
from payout_relay.helpers import to_major_units
from payout_relay.logging_config import get_logger
from payout_relay.schemas.app_schemas import WebhookEvent
from payout_relay.security import verify_signature

logger = get_logger(__name__)

ACK = "ok"


def parse_event(raw_body: bytes) -> WebhookEvent:
    try:
        return WebhookEvent.model_validate(json.loads(raw_body))
    except (ValueError, ValidationError) as exc:
        logger.warning("Signed webhook with unreadable payload: %s", exc)
        raise InvalidWebhookPayload() from exc


def handle_webhook(
    raw_body: bytes,
    signature: Optional[str],
    ledger: LedgerStore,
    secret: str,
) -> str:
    """
    Verify the signature over the raw body, then apply a successful charge to
    the ledger. Nothing touches the ledger before verification passes.
    Blocking: the ledger is a synchronous session, so call it from a worker thread.
    """
    verify_signature(raw_body, signature, secret)
    event = parse_event(raw_body)
    logger.info("Received webhook event=%s transactionRef=%s", event.event, event.transaction_ref)

    if event.event != WebhookEventType.CHARGE_SUCCESSFUL.value:
        logger.info("Ignoring webhook event=%s", event.event)
        return ACK

    try:
        charge = event.charge()
    except ValidationError as exc:
        logger.warning("charge_successful without usable body transactionRef=%s", event.transaction_ref)
        raise InvalidWebhookPayload() from exc

    try:
        return _apply_charge(ledger, charge.transaction_ref, charge.amount, charge.email)
    except Exception as exc:  # noqa: BLE001
        logger.exception(
            "Webhook processing failed event=%s transactionRef=%s email=%s",
            event.event,
            charge.transaction_ref,
            charge.email,
        )
        raise WebhookProcessingError(detail=repr(exc)) from exc


def _apply_charge(ledger: LedgerStore, transaction_ref: str, amount_minor: int, email: str) -> str:
    if ledger.payment_exists(transaction_ref):
        logger.info("Payment already recorded transactionRef=%s, skipping", transaction_ref)
        return ACK

    user = ledger.find_user_by_email(email)
    if user is None:
        logger.warning("No user for webhook email=%s transactionRef=%s", email, transaction_ref)
        return ACK

    amount = to_major_units(amount_minor)
    credited = ledger.apply_payment(user, transaction_ref, amount)
    logger.info(
        "Payment applied user=%s transactionRef=%s amount=%s referrer=%s referrerCredit=%s",
        user.uid,
        transaction_ref,
        amount,
        user.referrer_uid,
        credited,
    )
    return ACK
