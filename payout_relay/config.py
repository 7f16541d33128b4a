from enum import Enum
from pydantic import AnyHttpUrl, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env")

    gateway_secret_key: str
    gateway_base_url: AnyHttpUrl = "https://api-d.squadco.com"
    gateway_timeout_seconds: float = 30.0
    webhook_secret: Optional[str] = None
    webhook_path: str = "/webhook/squad"
    db_url: str = "sqlite:///./ledger.db"
    host: str = "0.0.0.0"
    port: int = 3000
    currency: str = "NGN"
    narration: str = "Earnings Withdrawal"
    cors_origins: list[str] = ["*"]
    trusted_proxies: list[str] = []
    general_rate_limit: int = 50
    general_rate_window_seconds: int = 15 * 60
    withdraw_rate_limit: int = 5
    withdraw_rate_window_seconds: int = 60 * 60
    max_concurrent_withdrawals: int = 2

    @field_validator("gateway_secret_key")
    @classmethod
    def _secret_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("gateway_secret_key must not be empty")
        return value

    @property
    def signing_secret(self) -> str:
        return self.webhook_secret or self.gateway_secret_key


settings = Settings()


class WebhookEventType(str, Enum):
    CHARGE_SUCCESSFUL = "charge_successful"


class TransferStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
