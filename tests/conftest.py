import os
import sys
from importlib import reload
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("GATEWAY_SECRET_KEY", "sk_test_default")

from payout_relay.contracts.contracts import LookupResult, TransferResult  # noqa: E402

WEBHOOK_SECRET = "whsec_test"


class FakeGateway:
    """
    Stands in for GatewayClient and records every call.
    """

    def __init__(self, account_name="ADE ABUKA JOY", transfer_body=None):
        self.account_name = account_name
        self.lookup_message = None
        self.lookup_error = None
        self.transfer_error = None
        self.transfer_body = transfer_body if transfer_body is not None else {"status": 200, "message": "Success"}
        self.lookup_calls = []
        self.transfer_calls = []

    async def lookup_account(self, account_number, bank_code):
        self.lookup_calls.append((account_number, bank_code))
        if self.lookup_error:
            raise self.lookup_error
        return LookupResult(account_name=self.account_name, raw_message=self.lookup_message)

    async def transfer(self, request):
        self.transfer_calls.append(request)
        if self.transfer_error:
            raise self.transfer_error
        return TransferResult.from_gateway(self.transfer_body, request)


@pytest.fixture
def fake_gateway():
    return FakeGateway()


@pytest.fixture(scope="function")
def app_module(tmp_path_factory):
    """
    Reload the app against a disposable SQLite ledger.
    """
    db_path = tmp_path_factory.mktemp("data") / "ledger.db"
    new_env = {
        "GATEWAY_SECRET_KEY": "sk_test_123",
        "GATEWAY_BASE_URL": "https://gateway.test",
        "WEBHOOK_SECRET": WEBHOOK_SECRET,
        "DB_URL": f"sqlite:///{db_path}",
        "GENERAL_RATE_LIMIT": "1000",
        "WITHDRAW_RATE_LIMIT": "1000",
        "MAX_CONCURRENT_WITHDRAWALS": "2",
    }
    old_env = {k: os.environ.get(k) for k in new_env}
    os.environ.update(new_env)

    try:
        import payout_relay.config as config
        import payout_relay.main as main

        reload(config)
        reload(main)
        return main
    finally:
        for key, value in old_env.items():
            if value is None:
                os.environ.pop(key, None)
            else:
                os.environ[key] = value


@pytest.fixture
def client(app_module, fake_gateway):
    app_module.app.dependency_overrides[app_module.get_gateway] = lambda: fake_gateway
    with TestClient(app_module.app) as client:
        yield client
    app_module.app.dependency_overrides.clear()
