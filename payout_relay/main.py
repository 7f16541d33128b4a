from contextlib import asynccontextmanager

import uvicorn
from fastapi import Depends, FastAPI, Header, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from payout_relay.clients.gateway_client import GatewayClient
from payout_relay.config import settings
from payout_relay.database import Database
from payout_relay.db import LedgerStore, get_ledger
from payout_relay.exceptions import RateLimited, RelayError, UpstreamError, WebhookError
from payout_relay.gate import ConcurrencyGate, RateLimiter
from payout_relay.helpers import get_client_ip
from payout_relay.logging_config import get_logger
from payout_relay.schemas.app_schemas import LookupRequest, LookupResponse, WithdrawRequest, WithdrawResponse
from payout_relay.security import SIGNATURE_HEADER
from payout_relay.webhooks import handle_webhook
from payout_relay.withdrawals import Success, WithdrawalService, validate_account


logger = get_logger(__name__)

general_limiter = RateLimiter(
    settings.general_rate_limit,
    settings.general_rate_window_seconds,
    message="Too many requests, try again later",
)
withdraw_limiter = RateLimiter(
    settings.withdraw_rate_limit,
    settings.withdraw_rate_window_seconds,
    message="Withdrawal limit reached, try again tomorrow",
)
withdraw_gate = ConcurrencyGate(settings.max_concurrent_withdrawals)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting payout relay gateway=%s", settings.gateway_base_url)
    app.state.database = Database(settings.db_url)
    app.state.database.connect()
    app.state.gateway = GatewayClient(
        str(settings.gateway_base_url),
        settings.gateway_secret_key,
        timeout=settings.gateway_timeout_seconds,
    )
    try:
        yield
    finally:
        logger.info("Shutting down payout relay")
        await app.state.gateway.aclose()
        app.state.database.dispose()


app = FastAPI(title="Payout Relay", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_gateway(request: Request) -> GatewayClient:
    return request.app.state.gateway


def get_withdrawal_service(gateway: GatewayClient = Depends(get_gateway)) -> WithdrawalService:
    return WithdrawalService(gateway, currency=settings.currency, narration=settings.narration)


def _client_key(request: Request) -> str:
    return get_client_ip(request, settings.trusted_proxies) or "unknown"


async def limit_general(request: Request):
    general_limiter.hit(_client_key(request))


async def limit_withdrawals(request: Request):
    withdraw_limiter.hit(_client_key(request))


@app.exception_handler(RelayError)
async def relay_error_handler(request: Request, exc: RelayError):
    if isinstance(exc, UpstreamError) or exc.status_code >= 500:
        logger.error(
            "%s on %s %s detail=%s",
            type(exc).__name__,
            request.method,
            request.url.path,
            exc.detail,
        )
    headers = {"Retry-After": str(exc.retry_after)} if isinstance(exc, RateLimited) else None
    if isinstance(exc, WebhookError):
        return PlainTextResponse(exc.message, status_code=exc.status_code)
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.message},
        headers=headers,
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    logger.info("Rejected malformed request on %s: %s", request.url.path, exc.errors())
    return JSONResponse(status_code=400, content={"success": False, "message": "Fill all fields"})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"success": False, "message": "Server error, try again"})


@app.post("/lookup", response_model=LookupResponse, response_model_exclude_none=True)
async def lookup_route(
    body: LookupRequest,
    _limit=Depends(limit_general),
    gateway: GatewayClient = Depends(get_gateway),
):
    validate_account(body.accountNumber, body.bankCode)
    result = await gateway.lookup_account(body.accountNumber, body.bankCode)
    if result.account_name:
        return {"success": True, "accountName": result.account_name}
    return JSONResponse(
        status_code=400,
        content={"success": False, "message": result.raw_message or "Invalid account details"},
    )


@app.post("/withdraw", response_model=WithdrawResponse, response_model_exclude_none=True)
async def withdraw_route(
    body: WithdrawRequest,
    _limit=Depends(limit_general),
    _withdraw_limit=Depends(limit_withdrawals),
    service: WithdrawalService = Depends(get_withdrawal_service),
):
    async with withdraw_gate.admit():
        outcome = await service.withdraw(
            body.amount,
            body.accountNumber,
            body.bankCode,
            body.beneficiaryName,
        )
    if isinstance(outcome, Success):
        return {"success": True, "message": "Withdrawal successful!", "ref": outcome.reference}
    return JSONResponse(status_code=400, content={"success": False, "message": outcome.message})


@app.post(settings.webhook_path, response_class=PlainTextResponse)
async def webhook_route(
    request: Request,
    signature: str | None = Header(None, alias=SIGNATURE_HEADER),
    ledger: LedgerStore = Depends(get_ledger),
):
    raw_body = await request.body()
    return await run_in_threadpool(handle_webhook, raw_body, signature, ledger, settings.signing_secret)


@app.get("/health")
async def health():
    return {"status": "ok"}


def run():
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
