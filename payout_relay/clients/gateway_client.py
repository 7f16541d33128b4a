from typing import Optional

import httpx

from payout_relay.contracts.contracts import (
    AccountLookupRequest,
    LookupResult,
    TransferRequest,
    TransferResult,
)
from payout_relay.exceptions import InvalidRequest, UpstreamError
from payout_relay.logging_config import get_logger

logger = get_logger(__name__)

LOOKUP_PATH = "/payout/account/lookup"
TRANSFER_PATH = "/payout/transfer"


class GatewayClient:
    """
    Thin async client for the Squad payout API. Calls are never retried here;
    failures surface as UpstreamError and the caller decides what to do.
    """

    def __init__(
        self,
        base_url: str,
        secret_key: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={
                "Authorization": f"Bearer {secret_key}",
                "Content-Type": "application/json",
            },
        )

    async def aclose(self) -> None:
        await self.client.aclose()

    async def _post(self, path: str, payload: dict) -> httpx.Response:
        try:
            return await self.client.post(path, json=payload)
        except httpx.HTTPError as exc:
            logger.error("Gateway request failed path=%s error=%r", path, exc)
            raise UpstreamError(detail=f"gateway request error on {path}: {exc!r}") from exc

    @staticmethod
    def _json(response: httpx.Response, path: str) -> dict:
        try:
            body = response.json()
        except ValueError as exc:
            logger.error(
                "Gateway returned non-JSON body path=%s status=%s",
                path,
                response.status_code,
            )
            raise UpstreamError(detail=f"non-JSON response from {path}") from exc
        if not isinstance(body, dict):
            raise UpstreamError(detail=f"unexpected response shape from {path}")
        return body

    async def lookup_account(self, account_number: str, bank_code: str) -> LookupResult:
        if not account_number or not bank_code:
            raise InvalidRequest("Need account number and bank")
        payload = AccountLookupRequest(account_number=account_number, bank_code=bank_code)
        response = await self._post(LOOKUP_PATH, payload.model_dump())
        if not response.is_success:
            logger.error(
                "Account lookup rejected status=%s body=%s",
                response.status_code,
                response.text,
            )
            raise UpstreamError(detail=f"lookup returned {response.status_code}")
        result = LookupResult.from_gateway(self._json(response, LOOKUP_PATH))
        logger.info(
            "Account lookup bank=%s resolved=%s",
            bank_code,
            result.account_name is not None,
        )
        return result

    async def transfer(self, request: TransferRequest) -> TransferResult:
        response = await self._post(TRANSFER_PATH, request.model_dump())
        result = TransferResult.from_gateway(self._json(response, TRANSFER_PATH), request)
        logger.info(
            "Transfer submitted reference=%s http_status=%s status=%s",
            request.reference,
            response.status_code,
            result.status.value,
        )
        return result
