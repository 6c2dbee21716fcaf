"""
Credential persistence in the OS keyring.

The credential is stored as a single JSON blob under (service, account) in
whatever backend `keyring` resolves to: Secret Service on Linux, Keychain on
macOS, Credential Manager on Windows.
"""

import anyio.to_thread
import keyring
import keyring.errors
from keyring.backend import KeyringBackend
from pydantic import ValidationError

from ssoauth.shared.credentials import Credential
from ssoauth.utilities.logging import get_logger

logger = get_logger(__name__)

DEFAULT_SERVICE_NAME = "ssoauth"
DEFAULT_ACCOUNT = "credentials"


class KeyringSessionStorage:
    """SessionStorage backed by the `keyring` library.

    Keyring calls block (D-Bus, Keychain, unlock prompts), so they run in a
    worker thread. Reads and writes are abandoned on cancellation so a stuck
    prompt cannot outlive the caller's timeout.
    """

    def __init__(
        self,
        service_name: str = DEFAULT_SERVICE_NAME,
        account: str = DEFAULT_ACCOUNT,
        backend: KeyringBackend | None = None,
    ):
        """
        Args:
            service_name: Keyring service the credential is filed under
            account: Keyring user name the credential is filed under
            backend: Explicit keyring backend; the default keyring when None
        """
        self.service_name = service_name
        self.account = account
        self._backend = backend

    def _get_password(self) -> str | None:
        if self._backend is not None:
            return self._backend.get_password(self.service_name, self.account)
        return keyring.get_password(self.service_name, self.account)

    def _set_password(self, value: str) -> None:
        if self._backend is not None:
            self._backend.set_password(self.service_name, self.account, value)
        else:
            keyring.set_password(self.service_name, self.account, value)

    def _delete_password(self) -> None:
        if self._backend is not None:
            self._backend.delete_password(self.service_name, self.account)
        else:
            keyring.delete_password(self.service_name, self.account)

    async def get(self) -> Credential | None:
        try:
            stored = await anyio.to_thread.run_sync(self._get_password, abandon_on_cancel=True)
        except keyring.errors.KeyringError as e:
            raise OSError(f"Failed to read credentials from keyring: {e}") from e

        if not stored:
            return None
        try:
            return Credential.model_validate_json(stored)
        except ValidationError:
            logger.warning(f"Ignoring unreadable credentials stored under {self.service_name}/{self.account}")
            return None

    async def put(self, credential: Credential) -> None:
        payload = credential.model_dump_json(exclude_none=True)
        try:
            # an abandoned write may still land after a timeout
            await anyio.to_thread.run_sync(self._set_password, payload, abandon_on_cancel=True)
        except keyring.errors.KeyringError as e:
            raise OSError(f"Failed to store credentials in keyring: {e}") from e
        logger.debug(f"Stored credentials under {self.service_name}/{self.account}")

    async def delete(self) -> None:
        try:
            await anyio.to_thread.run_sync(self._delete_password)
        except keyring.errors.PasswordDeleteError:
            # nothing stored
            return
        except keyring.errors.KeyringError as e:
            raise OSError(f"Failed to delete credentials from keyring: {e}") from e
        logger.debug(f"Deleted credentials under {self.service_name}/{self.account}")
