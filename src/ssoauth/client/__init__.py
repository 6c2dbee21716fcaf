"""ssoauth client module."""

from ssoauth.client.authority import AuthorityClient
from ssoauth.client.credential_store import CredentialStore
from ssoauth.client.httpx_auth import CredentialAuth
from ssoauth.client.keyring_storage import KeyringSessionStorage
from ssoauth.client.settings import SSOSettings
from ssoauth.client.sso import SSOClient
from ssoauth.client.storage import InMemorySessionStorage, SessionStorage

__all__ = [
    "AuthorityClient",
    "CredentialAuth",
    "CredentialStore",
    "InMemorySessionStorage",
    "KeyringSessionStorage",
    "SSOClient",
    "SSOSettings",
    "SessionStorage",
]
