"""Tests for the SSO client."""

import re

import anyio
import httpx
import pytest

from ssoauth.client.credential_store import CredentialStore
from ssoauth.client.keyring_storage import KeyringSessionStorage
from ssoauth.client.settings import SSOSettings
from ssoauth.client.sso import SSOClient
from ssoauth.client.storage import InMemorySessionStorage
from ssoauth.shared.credentials import Credential, Placement
from ssoauth.shared.error_reporting import GENERIC_ERROR_MESSAGE
from ssoauth.shared.exceptions import AuthError, AuthErrorKind
from tests.test_helpers import issued_credential_body, mock_http_client_factory


def make_client(settings: SSOSettings, handler, **kwargs) -> SSOClient:
    kwargs.setdefault("storage", InMemorySessionStorage())
    return SSOClient(settings, http_client_factory=mock_http_client_factory(handler), **kwargs)


def issuing(credential: Credential):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=issued_credential_body(credential))

    return handler


def issuing_nothing(request: httpx.Request) -> httpx.Response:
    raise AssertionError(f"unexpected request to {request.url}")


def rejecting(message: str, code: str = "INVALID_CREDENTIALS"):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"code": code, "message": message, "extra": {}})

    return handler


class BlockingAuthority:
    """Handler that holds every request until released."""

    def __init__(self, credential: Credential):
        self.credential = credential
        self.started = anyio.Event()
        self.release = anyio.Event()

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.started.set()
        await self.release.wait()
        return httpx.Response(200, json=issued_credential_body(self.credential))


class SlowStorage(InMemorySessionStorage):
    """Storage whose reads and writes stall, like a keyring waiting on an unlock prompt."""

    def __init__(self, credential: Credential | None = None, delay: float = 10):
        super().__init__(credential)
        self.delay = delay
        self.started = anyio.Event()

    async def get(self) -> Credential | None:
        self.started.set()
        await anyio.sleep(self.delay)
        return await super().get()

    async def put(self, credential: Credential) -> None:
        self.started.set()
        await anyio.sleep(self.delay)
        await super().put(credential)


class TestLogin:
    @pytest.mark.anyio
    async def test_login_installs_and_persists_credential(self, settings, credential):
        storage = InMemorySessionStorage()
        client = make_client(settings, issuing(credential), storage=storage)

        issued = await client.login("user@example.com", "secret", "")

        assert issued == credential
        assert client.store.get() == credential
        assert client.credential == credential
        assert await storage.get() == credential

    @pytest.mark.anyio
    async def test_login_replaces_previous_credential(self, settings, credential, other_credential):
        store = CredentialStore(credential)
        client = make_client(settings, issuing(other_credential), store=store)

        await client.login("user@example.com", "secret")

        assert store.get() == other_credential

    @pytest.mark.anyio
    async def test_failed_login_leaves_store_unchanged(self, settings, credential):
        store = CredentialStore(credential)
        client = make_client(settings, rejecting("Invalid password"), store=store)

        with pytest.raises(AuthError):
            await client.login("user@example.com", "wrong")

        assert store.get() is credential

    @pytest.mark.anyio
    async def test_failed_login_from_absent_stays_absent(self, settings):
        storage = InMemorySessionStorage()
        client = make_client(settings, rejecting("Invalid password"), storage=storage)

        with pytest.raises(AuthError):
            await client.login("user@example.com", "wrong")

        assert client.store.get() is None
        assert await storage.get() is None

    @pytest.mark.anyio
    async def test_wrong_password_is_described_by_remote_message(self, settings):
        client = make_client(settings, rejecting("Invalid password"))

        with pytest.raises(AuthError) as exc_info:
            await client.login("user@example.com", "wrong")

        assert exc_info.value.kind is AuthErrorKind.INVALID_CREDENTIALS
        assert client.describe_error(exc_info.value) == "Invalid password"

    @pytest.mark.anyio
    async def test_two_factor_required(self, settings):
        client = make_client(settings, rejecting("2-factor authentication required.", code="TWOFACTOR_REQUIRED"))

        with pytest.raises(AuthError) as exc_info:
            await client.login("user@example.com", "secret")

        assert exc_info.value.kind is AuthErrorKind.TWO_FACTOR_REQUIRED
        assert exc_info.value.info.remote_message == "2-factor authentication required."

    @pytest.mark.anyio
    async def test_transport_failure(self, settings, credential):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("certificate verify failed", request=request)

        store = CredentialStore(credential)
        client = make_client(settings, handler, store=store)

        with pytest.raises(AuthError) as exc_info:
            await client.login("user@example.com", "secret")

        error = exc_info.value
        assert error.kind is AuthErrorKind.TRANSPORT_FAILURE
        assert error.info.remote_message is None
        assert error.info.transport_reason == "certificate verify failed"
        assert store.get() is credential

    @pytest.mark.anyio
    @pytest.mark.parametrize(("email", "password"), [("", "secret"), ("user@example.com", "")])
    async def test_email_and_password_required(self, settings, credential, email, password):
        client = make_client(settings, issuing(credential))

        with pytest.raises(ValueError):
            await client.login(email, password)

    @pytest.mark.anyio
    async def test_persistence_failure_does_not_fail_login(self, settings, credential):
        class BrokenStorage(InMemorySessionStorage):
            async def put(self, credential: Credential) -> None:
                raise OSError("keyring unavailable")

        client = make_client(settings, issuing(credential), storage=BrokenStorage())

        await client.login("user@example.com", "secret")

        assert client.store.get() == credential


class TestGetCredentials:
    @pytest.mark.anyio
    async def test_no_prior_session(self, settings):
        client = make_client(settings, issuing_nothing)

        with pytest.raises(AuthError) as exc_info:
            await client.get_credentials()

        assert exc_info.value.kind is AuthErrorKind.NOT_LOGGED_IN
        assert client.describe_error(exc_info.value) == GENERIC_ERROR_MESSAGE
        assert client.store.get() is None

    @pytest.mark.anyio
    async def test_restores_persisted_credential(self, settings, credential):
        client = make_client(settings, issuing_nothing, storage=InMemorySessionStorage(credential))

        restored = await client.get_credentials()

        assert restored == credential
        assert client.store.get() == credential

    @pytest.mark.anyio
    async def test_unreadable_storage(self, settings, credential):
        class LockedStorage(InMemorySessionStorage):
            async def get(self) -> Credential | None:
                raise OSError("Failed to read credentials from keyring: collection is locked")

        store = CredentialStore(credential)
        client = make_client(settings, issuing_nothing, storage=LockedStorage(), store=store)

        with pytest.raises(AuthError) as exc_info:
            await client.get_credentials()

        assert exc_info.value.kind is AuthErrorKind.NOT_LOGGED_IN
        assert str(exc_info.value) == "Failed to read credentials from keyring: collection is locked"
        assert store.get() is credential

    @pytest.mark.anyio
    async def test_login_then_restore_in_new_client(self, settings, credential):
        storage = InMemorySessionStorage()
        await make_client(settings, issuing(credential), storage=storage).login("user@example.com", "secret")

        fresh = make_client(settings, issuing_nothing, storage=storage)
        assert fresh.credential is None
        assert await fresh.get_credentials() == credential


class TestConcurrency:
    @pytest.mark.anyio
    async def test_second_login_while_pending_is_busy(self, settings, credential):
        authority = BlockingAuthority(credential)
        client = make_client(settings, authority)
        results: list[Credential] = []

        async def first_login():
            results.append(await client.login("user@example.com", "secret"))

        async with anyio.create_task_group() as tg:
            tg.start_soon(first_login)
            await authority.started.wait()
            assert client.busy

            with pytest.raises(AuthError) as exc_info:
                await client.login("user@example.com", "secret")
            assert exc_info.value.kind is AuthErrorKind.BUSY

            with pytest.raises(AuthError) as exc_info:
                await client.get_credentials()
            assert exc_info.value.kind is AuthErrorKind.BUSY

            authority.release.set()

        assert results == [credential]
        assert not client.busy

    @pytest.mark.anyio
    async def test_timeout_leaves_store_unchanged(self, settings, credential, other_credential):
        authority = BlockingAuthority(other_credential)
        store = CredentialStore(credential)
        client = make_client(settings, authority, store=store)

        with pytest.raises(AuthError) as exc_info:
            await client.login("user@example.com", "secret", timeout=0.05)

        assert exc_info.value.kind is AuthErrorKind.TIMEOUT
        assert client.describe_error(exc_info.value)
        assert store.get() is credential
        assert not client.busy

    @pytest.mark.anyio
    async def test_cancel_leaves_store_unchanged(self, settings, credential, other_credential):
        authority = BlockingAuthority(other_credential)
        store = CredentialStore(credential)
        client = make_client(settings, authority, store=store)
        errors: list[AuthError] = []

        async def login():
            with pytest.raises(AuthError) as exc_info:
                await client.login("user@example.com", "secret")
            errors.append(exc_info.value)

        async with anyio.create_task_group() as tg:
            tg.start_soon(login)
            await authority.started.wait()
            client.cancel()

        assert [e.kind for e in errors] == [AuthErrorKind.CANCELLED]
        assert store.get() is credential
        assert not client.busy

    @pytest.mark.anyio
    async def test_timeout_covers_persisting_the_credential(self, settings, credential, other_credential):
        storage = SlowStorage()
        store = CredentialStore(credential)
        client = make_client(settings, issuing(other_credential), storage=storage, store=store)

        with anyio.fail_after(2):
            with pytest.raises(AuthError) as exc_info:
                await client.login("user@example.com", "secret", timeout=0.1)

        assert exc_info.value.kind is AuthErrorKind.TIMEOUT
        assert store.get() is credential
        assert not client.busy
        storage.delay = 0
        assert await storage.get() is None

    @pytest.mark.anyio
    async def test_cancel_while_persisting_the_credential(self, settings, credential, other_credential):
        storage = SlowStorage()
        store = CredentialStore(credential)
        client = make_client(settings, issuing(other_credential), storage=storage, store=store)
        errors: list[AuthError] = []

        async def login():
            with pytest.raises(AuthError) as exc_info:
                await client.login("user@example.com", "secret")
            errors.append(exc_info.value)

        with anyio.fail_after(2):
            async with anyio.create_task_group() as tg:
                tg.start_soon(login)
                await storage.started.wait()
                client.cancel()

        assert [e.kind for e in errors] == [AuthErrorKind.CANCELLED]
        assert store.get() is credential

    @pytest.mark.anyio
    async def test_get_credentials_timeout(self, settings, credential):
        client = make_client(settings, issuing_nothing, storage=SlowStorage(credential))

        with anyio.fail_after(2):
            with pytest.raises(AuthError) as exc_info:
                await client.get_credentials(timeout=0.05)

        assert exc_info.value.kind is AuthErrorKind.TIMEOUT
        assert client.credential is None
        assert not client.busy

    @pytest.mark.anyio
    async def test_cancel_get_credentials(self, settings, credential):
        storage = SlowStorage(credential)
        client = make_client(settings, issuing_nothing, storage=storage)
        errors: list[AuthError] = []

        async def restore():
            with pytest.raises(AuthError) as exc_info:
                await client.get_credentials()
            errors.append(exc_info.value)

        async with anyio.create_task_group() as tg:
            tg.start_soon(restore)
            await storage.started.wait()
            client.cancel()

        assert [e.kind for e in errors] == [AuthErrorKind.CANCELLED]
        assert client.credential is None
        assert not client.busy

    @pytest.mark.anyio
    async def test_cancellation_from_caller_scope_propagates(self, settings, credential, other_credential):
        authority = BlockingAuthority(other_credential)
        store = CredentialStore(credential)
        client = make_client(settings, authority, store=store)

        with anyio.move_on_after(0.05) as scope:
            await client.login("user@example.com", "secret")

        assert scope.cancelled_caught
        assert store.get() is credential
        assert not client.busy

        # the guard is free again
        authority.release.set()
        assert await client.login("user@example.com", "secret") == other_credential

    @pytest.mark.anyio
    async def test_signing_during_login_sees_whole_credentials(self, settings, credential, other_credential):
        authority = BlockingAuthority(other_credential)
        client = make_client(settings, authority, store=CredentialStore(credential))
        url = "https://api.example.com/items"

        async with anyio.create_task_group() as tg:
            tg.start_soon(client.login, "user@example.com", "secret")
            await authority.started.wait()

            for _ in range(10):
                header = client.sign("GET", url)
                assert f'oauth_consumer_key="{credential.consumer_key}"' in header
                assert f'oauth_token="{credential.token_key}"' in header
                await anyio.sleep(0)

            authority.release.set()

        header = client.sign("GET", url)
        assert f'oauth_consumer_key="{other_credential.consumer_key}"' in header
        assert f'oauth_token="{other_credential.token_key}"' in header

    @pytest.mark.anyio
    async def test_instances_are_independent(self, settings, credential, other_credential):
        first = make_client(settings, issuing(credential))
        second = make_client(settings, issuing(other_credential))

        await first.login("first@example.com", "secret")
        await second.login("second@example.com", "secret")

        assert first.credential == credential
        assert second.credential == other_credential


class TestSigning:
    @pytest.mark.anyio
    async def test_login_then_sign_as_query(self, settings, credential):
        client = make_client(settings, issuing(credential))
        await client.login("user@example.com", "secret", "")

        query = client.sign("GET", "https://api.example.com/items", Placement.QUERY)

        assert query
        assert not re.search(r"[\x00-\x1f\x7f]", query)
        assert "oauth_signature=" in query
        assert f"oauth_token={credential.token_key}" in query

    def test_sign_without_credential(self, settings):
        client = make_client(settings, issuing_nothing)

        with pytest.raises(AuthError) as exc_info:
            client.sign("GET", "https://api.example.com/items")

        assert exc_info.value.kind is AuthErrorKind.NOT_LOGGED_IN


class TestLogout:
    @pytest.mark.anyio
    async def test_logout_forgets_everything(self, settings, credential):
        storage = InMemorySessionStorage()
        client = make_client(settings, issuing(credential), storage=storage)
        await client.login("user@example.com", "secret")

        await client.logout()

        assert client.credential is None
        assert await storage.get() is None

    @pytest.mark.anyio
    async def test_logout_during_login_is_not_undone(self, settings, credential, other_credential):
        authority = BlockingAuthority(other_credential)
        storage = InMemorySessionStorage(credential)
        client = make_client(settings, authority, storage=storage, store=CredentialStore(credential))
        errors: list[AuthError] = []

        async def login():
            with pytest.raises(AuthError) as exc_info:
                await client.login("user@example.com", "secret")
            errors.append(exc_info.value)

        async with anyio.create_task_group() as tg:
            tg.start_soon(login)
            await authority.started.wait()
            await client.logout()
            authority.release.set()

        assert [e.kind for e in errors] == [AuthErrorKind.CANCELLED]
        assert client.credential is None
        assert await storage.get() is None
        assert not client.busy

    @pytest.mark.anyio
    async def test_invalidate_keeps_persisted_credential(self, settings, credential):
        storage = InMemorySessionStorage(credential)
        client = make_client(settings, issuing_nothing, storage=storage)
        await client.get_credentials()

        client.invalidate()

        assert client.credential is None
        assert await storage.get() == credential


class TestDefaults:
    def test_memory_storage_from_settings(self, settings):
        client = SSOClient(settings)
        assert isinstance(client.storage, InMemorySessionStorage)

    def test_keyring_storage_from_settings(self):
        settings = SSOSettings(storage_backend="keyring", keyring_service="svc", keyring_account="acct")
        client = SSOClient(settings)

        assert isinstance(client.storage, KeyringSessionStorage)
        assert client.storage.service_name == "svc"
        assert client.storage.account == "acct"

    def test_authority_from_settings(self, settings):
        client = SSOClient(settings)
        assert client.authority.tokens_url == "https://login.example.com/api/v2/tokens/oauth"
        assert client.authority.token_name == "test-token"

    def test_not_busy_outside_event_loop(self, settings):
        assert SSOClient(settings).busy is False
