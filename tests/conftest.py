import pytest

from ssoauth.client.settings import SSOSettings
from ssoauth.shared.credentials import Credential


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def settings() -> SSOSettings:
    return SSOSettings(
        authority_url="https://login.example.com/api/v2",
        token_name="test-token",
        storage_backend="memory",
        operation_timeout=5.0,
    )


@pytest.fixture
def credential() -> Credential:
    return Credential(
        consumer_key="consumer-key",
        consumer_secret="consumer-secret",
        token_key="token-key",
        token_secret="token-secret",
        token_name="test-token",
    )


@pytest.fixture
def other_credential() -> Credential:
    return Credential(
        consumer_key="other-consumer-key",
        consumer_secret="other-consumer-secret",
        token_key="other-token-key",
        token_secret="other-token-secret",
    )
