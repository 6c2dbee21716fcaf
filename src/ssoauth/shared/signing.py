"""
OAuth 1.0 request signing (RFC 5849).

Signatures cover the HTTP method and the request URL, including its query
parameters. The canonical call order is always method first, then URL.
"""

import base64
import hashlib
import hmac
import re
import secrets
import time
from collections.abc import Callable
from urllib.parse import parse_qsl, quote, urlsplit, urlunsplit

from ssoauth.shared.credentials import Credential, Placement, SignatureMethod, SignedRequest
from ssoauth.shared.exceptions import AuthError, AuthErrorKind

OAUTH_VERSION = "1.0"

# RFC 7230 token characters
_METHOD_RE = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")
_DEFAULT_PORTS = {"http": 80, "https": 443}


def percent_encode(value: str) -> str:
    """Encode per RFC 5849 section 3.6: everything but unreserved characters."""
    return quote(value, safe="-._~")


def normalize_base_uri(url: str) -> str:
    """Build the base string URI (RFC 5849 section 3.4.1.2).

    Scheme and host are lowercased, default ports are dropped, and the query
    and fragment are removed.
    """
    parts = urlsplit(url)
    scheme = parts.scheme.lower()
    host = (parts.hostname or "").lower()
    if ":" in host:
        host = f"[{host}]"
    netloc = host
    if parts.port is not None and parts.port != _DEFAULT_PORTS.get(scheme):
        netloc = f"{host}:{parts.port}"
    return urlunsplit((scheme, netloc, parts.path or "/", "", ""))


def normalize_parameters(params: list[tuple[str, str]]) -> str:
    """Encode, sort and join request parameters (RFC 5849 section 3.4.1.3.2)."""
    encoded = sorted((percent_encode(k), percent_encode(v)) for k, v in params)
    return "&".join(f"{k}={v}" for k, v in encoded)


def _validate_request_target(method: str, url: str) -> None:
    if not method or not _METHOD_RE.match(method):
        raise ValueError(f"Invalid HTTP method {method!r}; expected sign(credential, method, url, ...)")
    parts = urlsplit(url)
    if parts.scheme.lower() not in _DEFAULT_PORTS or not parts.hostname:
        raise ValueError(f"Invalid request URL {url!r}; expected an absolute http(s) URL")


def _generate_nonce() -> str:
    return secrets.token_hex(16)


class RequestSigner:
    """Computes OAuth 1.0 signatures for outgoing requests.

    The signer holds no credential of its own; each call borrows the
    credential it is given for the duration of that call only.
    """

    def __init__(
        self,
        signature_method: SignatureMethod = SignatureMethod.HMAC_SHA1,
        clock: Callable[[], float] = time.time,
        nonce_factory: Callable[[], str] = _generate_nonce,
    ):
        self.signature_method = SignatureMethod(signature_method)
        self._clock = clock
        self._nonce_factory = nonce_factory

    def protocol_parameters(self, credential: Credential, timestamp: int, nonce: str) -> list[tuple[str, str]]:
        return [
            ("oauth_consumer_key", credential.consumer_key),
            ("oauth_nonce", nonce),
            ("oauth_signature_method", self.signature_method.value),
            ("oauth_timestamp", str(timestamp)),
            ("oauth_token", credential.token_key),
            ("oauth_version", OAUTH_VERSION),
        ]

    def signature_base_string(self, credential: Credential, method: str, url: str, timestamp: int, nonce: str) -> str:
        """Build the signature base string for a request.

        Args:
            credential: Credential whose keys go into the protocol parameters
            method: HTTP method, e.g. "GET"
            url: Absolute request URL, query parameters included
            timestamp: Seconds since the epoch
            nonce: Random string unique for the timestamp

        Returns:
            METHOD&encoded-base-uri&encoded-parameters
        """
        _validate_request_target(method, url)
        params = parse_qsl(urlsplit(url).query, keep_blank_values=True)
        params.extend(self.protocol_parameters(credential, timestamp, nonce))
        return "&".join(
            [
                percent_encode(method.upper()),
                percent_encode(normalize_base_uri(url)),
                percent_encode(normalize_parameters(params)),
            ]
        )

    def compute_signature(self, credential: Credential, base_string: str) -> str:
        key = f"{percent_encode(credential.consumer_secret)}&{percent_encode(credential.token_secret)}"
        if self.signature_method is SignatureMethod.PLAINTEXT:
            return key
        digest = hmac.new(key.encode("utf-8"), base_string.encode("utf-8"), hashlib.sha1).digest()
        return base64.b64encode(digest).decode("ascii")

    def sign_with(
        self,
        credential: Credential | None,
        method: str,
        url: str,
        placement: Placement,
        timestamp: int,
        nonce: str,
    ) -> str:
        """Sign a request with an explicit timestamp and nonce."""
        if credential is None:
            raise AuthError(AuthErrorKind.NOT_LOGGED_IN)

        base_string = self.signature_base_string(credential, method, url, timestamp, nonce)
        params = self.protocol_parameters(credential, timestamp, nonce)
        params.append(("oauth_signature", self.compute_signature(credential, base_string)))

        if Placement(placement) is Placement.QUERY:
            return "&".join(f"{k}={percent_encode(v)}" for k, v in params)
        fields = ", ".join(f'{k}="{percent_encode(v)}"' for k, v in params)
        return f'OAuth realm="", {fields}'

    def sign(self, credential: Credential | None, method: str, url: str, placement: Placement) -> str:
        """Sign a request.

        Args:
            credential: The credential to sign with; None raises NOT_LOGGED_IN
            method: HTTP method
            url: Absolute request URL
            placement: HEADER for an Authorization header value, QUERY for
                       parameters to append to the URL query

        Returns:
            The signature in the requested placement format

        Raises:
            AuthError: If no credential is available
            ValueError: If method or url is malformed, e.g. passed in the wrong order
        """
        return self.sign_with(
            credential,
            method,
            url,
            placement,
            timestamp=int(self._clock()),
            nonce=self._nonce_factory(),
        )

    def sign_request(self, credential: Credential | None, request: SignedRequest) -> str:
        return self.sign(credential, request.method, request.url, request.placement)
