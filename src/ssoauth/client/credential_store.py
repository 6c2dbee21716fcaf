import threading

from ssoauth.shared.credentials import Credential


class CredentialStore:
    """Holds the current credential for a single local identity.

    At most one credential is held at a time. `set` swaps the reference under
    a lock, and credentials are immutable, so a reader on any thread sees
    either the previous credential or the new one in full.
    """

    def __init__(self, credential: Credential | None = None):
        self._lock = threading.Lock()
        self._credential = credential

    def set(self, credential: Credential) -> None:
        """Replace the current credential."""
        if not isinstance(credential, Credential):
            raise TypeError(f"Expected Credential, got {type(credential).__name__}")
        with self._lock:
            self._credential = credential

    def get(self) -> Credential | None:
        """Return the current credential, or None when logged out."""
        with self._lock:
            return self._credential

    def clear(self) -> None:
        with self._lock:
            self._credential = None

    @property
    def has_credential(self) -> bool:
        return self.get() is not None
