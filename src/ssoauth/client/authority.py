"""
Client for the remote authority that issues credentials.

The authority accepts a JSON login at {authority_url}/tokens/oauth and answers
with an OAuth 1.0 credential set, or with a JSON error body of the form
{"code": ..., "message": ..., "extra": {...}}.
"""

from typing import Any

import httpx
from pydantic import ValidationError

from ssoauth.shared.credentials import Credential, LoginRequest
from ssoauth.shared.exceptions import AuthError, AuthErrorKind, ErrorInfo
from ssoauth.shared.httpx_utils import SSOHttpClientFactory, create_sso_http_client
from ssoauth.utilities.logging import get_logger, redact_sensitive_data

logger = get_logger(__name__)

TOKENS_PATH = "/tokens/oauth"

# Error codes sent by the authority, mapped onto error kinds
ERROR_CODE_KINDS: dict[str, AuthErrorKind] = {
    "INVALID_CREDENTIALS": AuthErrorKind.INVALID_CREDENTIALS,
    "TWOFACTOR_FAILURE": AuthErrorKind.INVALID_CREDENTIALS,
    "TWOFACTOR_REQUIRED": AuthErrorKind.TWO_FACTOR_REQUIRED,
}


def _error_body(response: httpx.Response) -> dict[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def error_from_response(response: httpx.Response) -> AuthError:
    """Translate a rejected authority response into an AuthError.

    The authority's message is kept as remote_message; the HTTP reason phrase
    is kept as transport_reason.
    """
    body = _error_body(response)
    code = body.get("code")
    message = body.get("message")
    info = ErrorInfo(
        remote_message=message if isinstance(message, str) and message else None,
        transport_reason=response.reason_phrase or f"HTTP {response.status_code}",
    )

    kind = ERROR_CODE_KINDS.get(code) if isinstance(code, str) else None
    if kind is None:
        kind = AuthErrorKind.UNKNOWN if info.remote_message else AuthErrorKind.TRANSPORT_FAILURE
    return AuthError(kind, info)


def error_from_transport(exc: httpx.TransportError) -> AuthError:
    """Translate a network failure (DNS, TLS, connect, timeout) into an AuthError."""
    reason = str(exc) or type(exc).__name__
    kind = AuthErrorKind.TIMEOUT if isinstance(exc, httpx.TimeoutException) else AuthErrorKind.TRANSPORT_FAILURE
    return AuthError(kind, ErrorInfo(transport_reason=reason))


class AuthorityClient:
    """Talks to the authority's token endpoint."""

    def __init__(
        self,
        authority_url: str,
        token_name: str,
        http_client_factory: SSOHttpClientFactory = create_sso_http_client,
        request_timeout: float = 30.0,
    ):
        self.authority_url = authority_url.rstrip("/")
        self.token_name = token_name
        self._http_client_factory = http_client_factory
        self._request_timeout = request_timeout

    @property
    def tokens_url(self) -> str:
        return f"{self.authority_url}{TOKENS_PATH}"

    async def login(self, request: LoginRequest) -> Credential:
        """Exchange email, password and optional second factor for a credential.

        Raises:
            AuthError: INVALID_CREDENTIALS or TWO_FACTOR_REQUIRED when the
                authority rejects the login, TRANSPORT_FAILURE or TIMEOUT when
                the authority cannot be reached, UNKNOWN otherwise.
        """
        payload: dict[str, str] = {
            "email": request.email,
            "password": request.password,
            "token_name": self.token_name,
        }
        if request.second_factor:
            payload["otp"] = request.second_factor

        logger.debug(f"Requesting token from {self.tokens_url}: {redact_sensitive_data(payload)}")

        try:
            async with self._http_client_factory(timeout=httpx.Timeout(self._request_timeout)) as client:
                response = await client.post(self.tokens_url, json=payload)
        except httpx.TransportError as e:
            logger.warning(f"Authority unreachable: {e!r}")
            raise error_from_transport(e) from e

        if response.status_code not in (200, 201):
            error = error_from_response(response)
            logger.info(f"Login rejected ({response.status_code}, {error.kind.value}): {error}")
            raise error

        try:
            credential = Credential.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            logger.error(f"Authority returned an unusable credential: {e}")
            raise AuthError(
                AuthErrorKind.UNKNOWN,
                ErrorInfo(transport_reason="authority returned an invalid credential"),
            ) from e

        logger.info(f"Credentials issued for token {credential.token_name or self.token_name!r}")
        return credential
