"""
Single sign-on client.

SSOClient logs the local user in against the authority, restores persisted
credentials from a previous session, and signs outgoing requests with the
current credential. Each instance serves one identity; create as many
instances as identities are needed.
"""

from collections.abc import Awaitable, Callable

import anyio

from ssoauth.client.authority import AuthorityClient
from ssoauth.client.credential_store import CredentialStore
from ssoauth.client.httpx_auth import CredentialAuth
from ssoauth.client.keyring_storage import KeyringSessionStorage
from ssoauth.client.settings import SSOSettings
from ssoauth.client.storage import InMemorySessionStorage, SessionStorage
from ssoauth.shared.credentials import Credential, LoginRequest, Placement
from ssoauth.shared.error_reporting import describe_error
from ssoauth.shared.exceptions import AuthError, AuthErrorKind, ErrorInfo
from ssoauth.shared.httpx_utils import SSOHttpClientFactory, create_sso_http_client
from ssoauth.shared.signing import RequestSigner
from ssoauth.utilities.logging import get_logger

logger = get_logger(__name__)


def _default_storage(settings: SSOSettings) -> SessionStorage:
    if settings.storage_backend == "memory":
        return InMemorySessionStorage()
    return KeyringSessionStorage(settings.keyring_service, settings.keyring_account)


class SSOClient:
    """
    Login, credential lookup and request signing for one local identity.

    Only one login or credential lookup may be in flight per instance; a
    second call made while one is pending fails immediately with
    AuthError(BUSY).
    """

    def __init__(
        self,
        settings: SSOSettings | None = None,
        *,
        storage: SessionStorage | None = None,
        store: CredentialStore | None = None,
        signer: RequestSigner | None = None,
        authority: AuthorityClient | None = None,
        http_client_factory: SSOHttpClientFactory = create_sso_http_client,
    ):
        """
        Args:
            settings: Client settings; read from the environment when omitted
            storage: Persisted session storage; chosen from settings when omitted
            store: In-memory holder of the current credential
            signer: Request signer; uses settings.signature_method when omitted
            authority: Authority client; built from settings when omitted
            http_client_factory: Factory for the httpx clients used to reach the authority
        """
        self.settings = settings or SSOSettings()
        self.storage = storage if storage is not None else _default_storage(self.settings)
        self.store = store if store is not None else CredentialStore()
        self.signer = signer or RequestSigner(self.settings.signature_method)
        self.authority = authority or AuthorityClient(
            str(self.settings.authority_url),
            self.settings.token_name,
            http_client_factory=http_client_factory,
            request_timeout=self.settings.request_timeout,
        )

        self._operation_lock = anyio.Lock()
        self._cancel_scope: anyio.CancelScope | None = None
        self._busy = False

    @property
    def credential(self) -> Credential | None:
        return self.store.get()

    @property
    def busy(self) -> bool:
        return self._busy

    async def _run_exclusive(
        self,
        name: str,
        operation: Callable[[], Awaitable[Credential]],
        timeout: float | None,
    ) -> Credential:
        """Run one operation under the busy guard, timeout and cancel scope.

        The whole operation, persistence included, is bounded by `timeout` and
        `cancel()`. The credential store is only set once it has returned.
        """
        try:
            self._operation_lock.acquire_nowait()
        except anyio.WouldBlock:
            logger.debug(f"Rejecting {name}: another operation is in progress")
            raise AuthError(AuthErrorKind.BUSY) from None

        self._busy = True
        try:
            credential: Credential | None = None
            with anyio.CancelScope() as scope:
                self._cancel_scope = scope
                try:
                    with anyio.fail_after(timeout):
                        credential = await operation()
                except TimeoutError:
                    logger.warning(f"{name} timed out after {timeout}s")
                    raise AuthError(AuthErrorKind.TIMEOUT, ErrorInfo(transport_reason="operation timed out")) from None

            if scope.cancelled_caught or credential is None:
                logger.info(f"{name} cancelled")
                raise AuthError(AuthErrorKind.CANCELLED, ErrorInfo(transport_reason="operation cancelled"))

            self.store.set(credential)
            return credential
        finally:
            self._cancel_scope = None
            self._busy = False
            self._operation_lock.release()

    def cancel(self) -> None:
        """Cancel the in-flight login or credential lookup, if any.

        The cancelled call raises AuthError(CANCELLED) and leaves the current
        credential untouched.
        """
        if self._cancel_scope is not None:
            self._cancel_scope.cancel()

    async def get_credentials(self, timeout: float | None = None) -> Credential:
        """Restore the credential persisted by an earlier login.

        Args:
            timeout: Seconds before giving up; settings.operation_timeout when None

        Returns:
            The restored credential, which also becomes the current one

        Raises:
            AuthError: NOT_LOGGED_IN when nothing usable is persisted, or
                BUSY, TIMEOUT, CANCELLED
        """

        async def lookup() -> Credential:
            try:
                credential = await self.storage.get()
            except OSError as e:
                logger.warning(f"Could not read persisted credentials: {e}")
                raise AuthError(AuthErrorKind.NOT_LOGGED_IN, ErrorInfo(transport_reason=str(e))) from e
            if credential is None:
                raise AuthError(AuthErrorKind.NOT_LOGGED_IN)
            logger.info("Restored persisted credentials")
            return credential

        return await self._run_exclusive(
            "get_credentials",
            lookup,
            timeout if timeout is not None else self.settings.operation_timeout,
        )

    async def login(
        self,
        email: str,
        password: str,
        second_factor: str | None = None,
        timeout: float | None = None,
    ) -> Credential:
        """Log in against the authority and make the issued credential current.

        Args:
            email: Account email, must be non-empty
            password: Account password, must be non-empty
            second_factor: One-time code; "" or None when not supplied
            timeout: Seconds before giving up, persisting the credential included;
                settings.operation_timeout when None

        Returns:
            The newly issued credential

        Raises:
            ValueError: If email or password is empty
            AuthError: On any login failure; the current credential is unchanged
        """
        if not email or not password:
            raise ValueError("email and password are required")
        request = LoginRequest(email=email, password=password, second_factor=second_factor)

        async def issue() -> Credential:
            credential = await self.authority.login(request)
            try:
                await self.storage.put(credential)
            except OSError as e:
                logger.warning(f"Logged in, but the credentials could not be persisted: {e}")
            return credential

        return await self._run_exclusive(
            "login",
            issue,
            timeout if timeout is not None else self.settings.operation_timeout,
        )

    async def logout(self) -> None:
        """Forget the current credential and delete the persisted one.

        A login or credential lookup still in flight is cancelled first, so it
        cannot reinstate the credential afterwards.
        """
        self.cancel()
        async with self._operation_lock:
            self._busy = True
            try:
                self.store.clear()
                await self.storage.delete()
            finally:
                self._busy = False
        logger.info("Logged out")

    def invalidate(self) -> None:
        """Drop the in-memory credential after it was found to be revoked."""
        self.store.clear()

    def sign(self, method: str, url: str, placement: Placement = Placement.HEADER) -> str:
        """Sign a request with the current credential.

        Raises:
            AuthError: NOT_LOGGED_IN when there is no current credential
        """
        return self.signer.sign(self.store.get(), method, url, placement)

    def describe_error(self, error: ErrorInfo | AuthError | None) -> str:
        return describe_error(error)

    def auth(self, placement: Placement = Placement.HEADER) -> CredentialAuth:
        """Return an httpx.Auth that signs requests with this client's credential."""
        return CredentialAuth(self, placement)
