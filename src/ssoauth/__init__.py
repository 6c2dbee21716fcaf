"""Desktop single sign-on client with OAuth 1.0 request signing.

Use ssoauth to:

- Log a local user in against an SSO authority (email, password, optional one-time code)
- Persist the issued credentials in the OS keyring and restore them later
- Sign outgoing HTTP requests, as an Authorization header or as query parameters

## Example

```python
import httpx

from ssoauth import AuthError, Placement, SSOClient, SSOSettings

client = SSOClient(SSOSettings())
try:
    await client.get_credentials()
except AuthError:
    await client.login("user@example.com", "secret")

header = client.sign("GET", "https://api.example.com/items")

async with httpx.AsyncClient(auth=client.auth(Placement.QUERY)) as http:
    await http.get("https://api.example.com/items")
```
"""

from .client.credential_store import CredentialStore
from .client.httpx_auth import CredentialAuth
from .client.settings import SSOSettings
from .client.sso import SSOClient
from .shared.credentials import Credential, LoginRequest, Placement, SignatureMethod, SignedRequest
from .shared.error_reporting import GENERIC_ERROR_MESSAGE, describe_error
from .shared.exceptions import AuthError, AuthErrorKind, ErrorInfo
from .shared.signing import RequestSigner

__all__ = [
    "GENERIC_ERROR_MESSAGE",
    "AuthError",
    "AuthErrorKind",
    "Credential",
    "CredentialAuth",
    "CredentialStore",
    "ErrorInfo",
    "LoginRequest",
    "Placement",
    "RequestSigner",
    "SSOClient",
    "SSOSettings",
    "SignatureMethod",
    "SignedRequest",
    "describe_error",
]
