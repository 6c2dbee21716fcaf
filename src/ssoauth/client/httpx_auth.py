from collections.abc import AsyncGenerator, Generator
from typing import TYPE_CHECKING

import httpx

from ssoauth.shared.credentials import Placement
from ssoauth.utilities.logging import get_logger

if TYPE_CHECKING:
    from ssoauth.client.sso import SSOClient

logger = get_logger(__name__)


class CredentialAuth(httpx.Auth):
    """
    Signs httpx requests with the current credential of an SSOClient.

    With QUERY placement the OAuth parameters are appended to the request URL;
    otherwise they go into the Authorization header. A 401 response is taken
    as revocation and clears the in-memory credential.
    """

    def __init__(self, client: "SSOClient", placement: Placement = Placement.HEADER):
        self.client = client
        self.placement = Placement(placement)

    def _sign(self, request: httpx.Request) -> None:
        signature = self.client.sign(request.method, str(request.url), self.placement)
        if self.placement is Placement.QUERY:
            query = request.url.query
            merged = query + b"&" + signature.encode("ascii") if query else signature.encode("ascii")
            request.url = request.url.copy_with(query=merged)
        else:
            request.headers["Authorization"] = signature

    def _check_response(self, response: httpx.Response) -> None:
        if response.status_code == 401:
            logger.info("Signed request was rejected with 401, discarding credentials")
            self.client.invalidate()

    def sync_auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        self._sign(request)
        response = yield request
        self._check_response(response)

    async def async_auth_flow(self, request: httpx.Request) -> AsyncGenerator[httpx.Request, httpx.Response]:
        self._sign(request)
        response = yield request
        self._check_response(response)
