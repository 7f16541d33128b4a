from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol, Union

from payout_relay.contracts.contracts import LookupResult, TransferRequest, TransferResult
from payout_relay.exceptions import InvalidRequest, NameMismatch, RelayError, UpstreamError
from payout_relay.helpers import ReferenceGenerator, parse_amount, to_minor_units
from payout_relay.logging_config import get_logger
from payout_relay.matching import matches

logger = get_logger(__name__)

DEFAULT_TRANSFER_FAILED_MESSAGE = "Transfer failed"


class Gateway(Protocol):
    async def lookup_account(self, account_number: str, bank_code: str) -> LookupResult: ...

    async def transfer(self, request: TransferRequest) -> TransferResult: ...


@dataclass(frozen=True)
class Success:
    reference: str


@dataclass(frozen=True)
class TransferFailed:
    message: str


WithdrawalOutcome = Union[Success, TransferFailed]


def _missing(value: Any) -> bool:
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


def validate_account(account_number: Optional[str], bank_code: Optional[str]) -> None:
    if _missing(account_number) or _missing(bank_code):
        raise InvalidRequest("Need account number and bank")
    if not account_number.isdigit():
        raise InvalidRequest("Account number must contain digits only")


class WithdrawalService:
    """
    Lookup, name check, then transfer. The transfer is only issued once the
    resolved account name matches the beneficiary the caller claimed.
    """

    def __init__(
        self,
        gateway: Gateway,
        currency: str = "NGN",
        narration: str = "Earnings Withdrawal",
        reference_factory: Optional[Callable[[], str]] = None,
    ):
        self.gateway = gateway
        self.currency = currency
        self.narration = narration
        self.reference_factory = reference_factory or ReferenceGenerator()

    def _validate(
        self,
        amount: Any,
        account_number: Optional[str],
        bank_code: Optional[str],
        beneficiary_name: Optional[str],
    ) -> int:
        if any(_missing(v) for v in (amount, account_number, bank_code, beneficiary_name)):
            raise InvalidRequest()
        validate_account(account_number, bank_code)
        if parse_amount(amount) <= 0:
            raise InvalidRequest("Amount must be greater than zero")
        minor_units = to_minor_units(amount)
        if minor_units < 1:
            raise InvalidRequest("Amount is too small")
        return minor_units

    async def withdraw(
        self,
        amount: Any,
        account_number: Optional[str],
        bank_code: Optional[str],
        beneficiary_name: Optional[str],
    ) -> WithdrawalOutcome:
        minor_units = self._validate(amount, account_number, bank_code, beneficiary_name)
        try:
            return await self._execute(minor_units, account_number, bank_code, beneficiary_name)
        except RelayError:
            raise
        except Exception as exc:
            logger.exception("Unexpected error during withdrawal bank=%s", bank_code)
            raise UpstreamError(detail=repr(exc)) from exc

    async def _execute(
        self,
        minor_units: int,
        account_number: str,
        bank_code: str,
        beneficiary_name: str,
    ) -> WithdrawalOutcome:
        lookup = await self.gateway.lookup_account(account_number, bank_code)
        if not matches(lookup.account_name or "", beneficiary_name):
            logger.info(
                "Name mismatch bank=%s resolved=%s claimed=%s",
                bank_code,
                lookup.account_name,
                beneficiary_name,
            )
            raise NameMismatch()

        request = TransferRequest(
            amount=minor_units,
            account_number=account_number,
            bank_code=bank_code,
            beneficiary_name=beneficiary_name,
            currency=self.currency,
            narration=self.narration,
            reference=self.reference_factory(),
        )
        result = await self.gateway.transfer(request)
        if result.succeeded:
            logger.info("Withdrawal completed reference=%s amount=%s", result.reference, minor_units)
            return Success(reference=result.reference)
        logger.warning(
            "Withdrawal transfer failed reference=%s message=%s",
            request.reference,
            result.raw_message,
        )
        return TransferFailed(message=result.raw_message or DEFAULT_TRANSFER_FAILED_MESSAGE)
