"""
HTTP gateway for the Alfresco and Share web scripts.

Thin wrapper over httpx with basic auth. Responses are returned whatever
their status; callers decide what counts as failure. Transport errors are
raised as RemoteCallError.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from ..errors import RemoteCallError

logger = logging.getLogger(__name__)


@dataclass
class HttpResponse:
    """Status and body of an HTTP call."""

    status_code: int
    text: str
    url: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def json(self) -> Any:
        """
        Parse the body as JSON.

        Raises:
            RemoteCallError: If the body is not JSON
        """
        try:
            return json.loads(self.text)
        except json.JSONDecodeError as e:
            raise RemoteCallError(f"Invalid JSON response from {self.url}: {e}", self.url, self.status_code) from e


class HttpGateway:
    """Basic-auth HTTP client shared by all calls of one process."""

    def __init__(
        self,
        user: str,
        password: str,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ):
        """
        Initialize the gateway.

        Args:
            user: Alfresco user name
            password: Alfresco password
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests)
        """
        self.user = user
        self.timeout = timeout
        self._client = httpx.Client(auth=(user, password), timeout=timeout, transport=transport)

    def get(self, url: str) -> HttpResponse:
        return self._request("GET", url)

    def post(self, url: str, body: str, content_type: str) -> HttpResponse:
        return self._request(
            "POST", url, content=body.encode("utf-8"), headers={"Content-Type": f"{content_type}; charset=UTF-8"}
        )

    def delete(self, url: str) -> HttpResponse:
        return self._request("DELETE", url)

    def _request(self, method: str, url: str, **kwargs) -> HttpResponse:
        logger.info(f"Executing {method} '{url}'")
        try:
            response = self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"{method} {url} failed: {e}")
            raise RemoteCallError(f"{method} {url} failed: {e}", url) from e

        logger.info(f"Response status code: {response.status_code}")
        logger.debug(f"Response body: {response.text}")
        return HttpResponse(status_code=response.status_code, text=response.text, url=url)

    def close(self):
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
