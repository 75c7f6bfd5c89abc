"""Low-level HTTP client for the Azure AD Graph API.

Handles authentication, token management, and HTTP operations.
"""
from __future__ import annotations
import os
from typing import Optional, Dict, Any
from datetime import datetime, timedelta

import requests

from .exceptions import GraphAPIError, GraphAuthError

REQUEST_TIMEOUT = 5
DEFAULT_GRAPH_URL = "https://graph.windows.net"
DEFAULT_AUTHORITY = "https://login.microsoftonline.com"
DEFAULT_API_VERSION = "1.6"

# Refresh tokens this long before they expire
TOKEN_REFRESH_LEEWAY = timedelta(seconds=10)


class GraphClient:
    """HTTP client for the Azure AD Graph API with automatic token management.

    Every request is scoped to one tenant: paths are relative to
    ``{base_url}/{tenant_id}`` and carry the ``api-version`` query parameter.

    Usage:
        client = GraphClient("contoso.onmicrosoft.com")
        client.authenticate_service_principal(client_id, client_secret)
        response = client.get("/oauth2PermissionGrants")
    """

    def __init__(
        self,
        tenant_id: str,
        base_url: Optional[str] = None,
        api_version: str = DEFAULT_API_VERSION,
        authority_host: str = DEFAULT_AUTHORITY,
    ):
        """Initialize Graph client.

        Args:
            tenant_id: Azure AD tenant ID or domain
            base_url: Graph base URL (defaults to GRAPH_BASE_URL env var)
            api_version: Value of the api-version query parameter
            authority_host: Azure AD login endpoint used for tokens
        """
        self.tenant_id = tenant_id
        self.base_url = (base_url or os.environ.get("GRAPH_BASE_URL", DEFAULT_GRAPH_URL)).rstrip("/")
        self.api_version = api_version
        self.authority_host = authority_host.rstrip("/")
        self._token: Optional[str] = None
        self._token_expires_at: Optional[datetime] = None
        self._credentials: Dict[str, Any] = {}

    def set_credentials(self, client_id: str, client_secret: str) -> None:
        """Store service principal credentials; a token is fetched on first request."""
        self._credentials = {"client_id": client_id, "client_secret": client_secret}

    def authenticate_service_principal(self, client_id: str, client_secret: str) -> str:
        """Authenticate with the client credentials flow and store credentials for auto-refresh.

        Returns:
            Access token
        """
        self.set_credentials(client_id, client_secret)
        self._refresh_token()
        return self._token

    def _ensure_authenticated(self) -> None:
        """Ensure we have a valid token, refreshing if necessary."""
        if self._token and self._token_expires_at and datetime.now() < self._token_expires_at - TOKEN_REFRESH_LEEWAY:
            return
        if not self._credentials:
            raise GraphAuthError("Not authenticated - call authenticate_service_principal or set_credentials first")
        self._refresh_token()

    def _refresh_token(self) -> None:
        token, expires_in = self._get_service_principal_token(
            self._credentials["client_id"],
            self._credentials["client_secret"],
        )
        self._token = token
        self._token_expires_at = datetime.now() + timedelta(seconds=expires_in)

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{self.tenant_id}{path}"

    def _params(self, params: Optional[Dict]) -> Dict:
        merged = {"api-version": self.api_version}
        if params:
            merged.update(params)
        return merged

    def _headers(self, kwargs: Dict) -> Dict:
        headers = kwargs.pop("headers", {})
        headers["Authorization"] = f"Bearer {self._token}"
        return headers

    def get(self, path: str, params: Optional[Dict] = None, **kwargs) -> requests.Response:
        """Execute GET request with automatic authentication.

        Raises:
            GraphAPIError: On HTTP error
        """
        self._ensure_authenticated()
        headers = self._headers(kwargs)
        resp = requests.get(self._url(path), params=self._params(params), headers=headers, timeout=REQUEST_TIMEOUT, **kwargs)
        self._handle_error(resp)
        return resp

    def post(self, path: str, json: Optional[Dict] = None, params: Optional[Dict] = None, **kwargs) -> requests.Response:
        """Execute POST request with automatic authentication.

        Raises:
            GraphAPIError: On HTTP error
        """
        self._ensure_authenticated()
        headers = self._headers(kwargs)
        resp = requests.post(self._url(path), json=json, params=self._params(params), headers=headers, timeout=REQUEST_TIMEOUT, **kwargs)
        self._handle_error(resp)
        return resp

    def delete(self, path: str, params: Optional[Dict] = None, **kwargs) -> requests.Response:
        """Execute DELETE request with automatic authentication.

        Raises:
            GraphAPIError: On HTTP error
        """
        self._ensure_authenticated()
        headers = self._headers(kwargs)
        resp = requests.delete(self._url(path), params=self._params(params), headers=headers, timeout=REQUEST_TIMEOUT, **kwargs)
        self._handle_error(resp)
        return resp

    def _get_service_principal_token(self, client_id: str, client_secret: str) -> tuple[str, int]:
        """Fetch an app-only token using the client credentials flow."""
        url = f"{self.authority_host}/{self.tenant_id}/oauth2/v2.0/token"
        data = {
            "grant_type": "client_credentials",
            "client_id": client_id,
            "client_secret": client_secret,
            "scope": f"{self.base_url}/.default",
        }
        resp = requests.post(url, data=data, timeout=REQUEST_TIMEOUT)
        if resp.status_code != 200:
            raise GraphAuthError(f"[{resp.status_code}] {url}: {resp.text}")
        payload = resp.json()
        return payload["access_token"], int(payload.get("expires_in", 60))

    def _handle_error(self, resp: requests.Response) -> None:
        """Centralized error handling for HTTP responses.

        Raises:
            GraphAPIError: If response status indicates error
        """
        if resp.status_code >= 400:
            raise GraphAPIError(resp.status_code, _error_message(resp), resp.url)


def _error_message(resp: requests.Response) -> str:
    """Extract the OData error message, falling back to the raw body."""
    try:
        payload = resp.json()
    except ValueError:
        return resp.text
    if not isinstance(payload, dict):
        return resp.text
    # AD Graph uses "odata.error", Microsoft Graph uses "error"
    error = payload.get("odata.error") or payload.get("error")
    if isinstance(error, dict):
        message = error.get("message")
        if isinstance(message, dict):
            return message.get("value", resp.text)
        if message:
            return str(message)
    return resp.text


def create_client_with_token(tenant_id: str, token: str, expires_in: int = 3600, **kwargs) -> GraphClient:
    """Create a pre-authenticated GraphClient.

    Useful when the caller already holds a token (e.g. from the Azure CLI).
    The client cannot refresh it once it expires.
    """
    client = GraphClient(tenant_id, **kwargs)
    client._token = token
    client._token_expires_at = datetime.now() + timedelta(seconds=expires_in)
    return client
