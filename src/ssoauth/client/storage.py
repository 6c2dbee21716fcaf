from typing import Protocol

from ssoauth.shared.credentials import Credential


class SessionStorage(Protocol):
    """Protocol for persisted credential storage implementations."""

    async def get(self) -> Credential | None:
        """Get the persisted credential, or None if there is none."""
        ...

    async def put(self, credential: Credential) -> None:
        """Persist a credential, replacing any previous one."""
        ...

    async def delete(self) -> None:
        """Remove the persisted credential. Deleting nothing is not an error."""
        ...


class InMemorySessionStorage:
    """Session storage that lives only as long as the process."""

    def __init__(self, credential: Credential | None = None):
        self._credential = credential

    async def get(self) -> Credential | None:
        return self._credential

    async def put(self, credential: Credential) -> None:
        self._credential = credential

    async def delete(self) -> None:
        self._credential = None
