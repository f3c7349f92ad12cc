"""HTTP gateway to the blob store service."""

import logging

import httpx

from ..core.constants import FLUSH_TIMEOUT_SECONDS
from ..core.exceptions import PersistenceError
from .base import StoredBlob

logger = logging.getLogger(__name__)


class HttpGateway:
    """
    Talks to /api/storyboards with a bearer token.

    The token is attached to every request and otherwise treated as opaque.
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        timeout: float = FLUSH_TIMEOUT_SECONDS,
        client: httpx.Client | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self.client = client or httpx.Client(timeout=timeout)
        self.headers = {"Authorization": f"Bearer {token}"}

    def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        url = f"{self.base_url}{path}"
        try:
            return self.client.request(method, url, headers=self.headers, **kwargs)
        except httpx.TimeoutException as e:
            raise PersistenceError(f"Blob store timeout on {method} {path}") from e
        except httpx.HTTPError as e:
            raise PersistenceError(f"Cannot reach blob store at {self.base_url}: {e}") from e

    @staticmethod
    def _check(response: httpx.Response, action: str):
        if response.status_code >= 400:
            raise PersistenceError(
                f"Blob store rejected {action}: {response.status_code} {response.text}"
            )

    @staticmethod
    def _json(response: httpx.Response, action: str):
        try:
            return response.json()
        except ValueError as e:
            raise PersistenceError(
                f"Blob store returned a non-JSON body on {action}: {response.status_code}"
            ) from e

    def fetch_latest(self) -> StoredBlob | None:
        response = self._request("GET", "/api/storyboards/latest")
        if response.status_code == 404:
            return None
        self._check(response, "fetch")
        return StoredBlob.from_dict(self._json(response, "fetch"))

    def store(self, document_id: str, data: str) -> StoredBlob:
        response = self._request("PUT", f"/api/storyboards/{document_id}", json={"data": data})
        self._check(response, "store")
        blob = StoredBlob.from_dict(self._json(response, "store"))
        logger.debug(f"Stored blob {document_id} ({len(data)} chars)")
        return blob

    def close(self):
        if self._owns_client:
            self.client.close()
