"""
HTTP client for a remote token endpoint, and the validator built on it.
"""

from typing import Any, Optional

import httpx

from restalexa.auth import Identity
from restalexa.errors import AuthenticationError

DEFAULT_TOKEN_PATH = "/token/introspect"


class HttpClient:
    def __init__(self, base_url: str, timeout: float = 10.0, transport: Optional[httpx.BaseTransport] = None):
        self._base_url = base_url.rstrip("/")
        self._client = httpx.Client(
            base_url=self._base_url,
            headers={"User-Agent": "restalexa/0.1.0", "Accept": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    @staticmethod
    def _auth_headers(token: Optional[str]) -> dict[str, str]:
        headers: dict[str, str] = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    @staticmethod
    def _unwrap(json_data: Any) -> Any:
        """Unwrap ``{"status": ..., "data": <actual_data>}`` responses."""
        if isinstance(json_data, dict) and "status" in json_data and "data" in json_data:
            return json_data["data"]
        return json_data

    def get(self, path: str, token: Optional[str] = None) -> Any:
        resp = self._client.get(path, headers=self._auth_headers(token))
        if resp.status_code >= 400:
            raise AuthenticationError(f"HTTP {resp.status_code}: {resp.text[:200]}")
        return self._unwrap(resp.json())

    def close(self) -> None:
        self._client.close()


class RemoteTokenValidator:
    """Checks tokens against ``GET {base_url}{path}`` with a Bearer header."""

    def __init__(self, base_url: str, path: str = DEFAULT_TOKEN_PATH, http: Optional[HttpClient] = None):
        self._http = http or HttpClient(base_url)
        self._path = path

    def authenticate(self, token: str) -> Identity:
        try:
            data = self._http.get(self._path, token=token)
        except httpx.HTTPError as e:
            raise AuthenticationError(f"Token endpoint unreachable: {e}")
        if not isinstance(data, dict):
            raise AuthenticationError("Token endpoint returned no identity")
        return Identity.model_validate(data)

    def close(self) -> None:
        self._http.close()
