from typing import Optional

from fastapi import status


class RelayError(Exception):
    """
    Base error for the relay. `message` is safe to return to the caller,
    `detail` is for the server log only.
    """

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Server error, try again"

    def __init__(self, message: Optional[str] = None, detail: Optional[str] = None):
        self.message = message or self.default_message
        self.detail = detail
        super().__init__(self.message)


class InvalidRequest(RelayError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Fill all fields"


class NameMismatch(RelayError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Name mismatch, check spelling or try a variation"


class UpstreamError(RelayError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Server error, try again"


class RateLimited(RelayError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_message = "Too many requests, try again later"

    def __init__(self, message: Optional[str] = None, retry_after: int = 0):
        super().__init__(message)
        self.retry_after = retry_after


class ServerBusy(RelayError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Server busy, try again later"


class WebhookError(RelayError):
    """Errors raised on the webhook path are rendered as plain text."""


class InvalidSignature(WebhookError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid signature"


class InvalidWebhookPayload(WebhookError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid payload"


class WebhookProcessingError(WebhookError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Webhook processing failed"
