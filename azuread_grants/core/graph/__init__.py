"""Azure AD Graph API client library.

Architecture:
- client.py: HTTP client with client-credentials authentication and auto-refresh
- permission_grants.py: oauth2PermissionGrants collection (create, list, delete)
- exceptions.py: Typed exceptions for error handling

Usage:
    from azuread_grants.core.graph import GraphClient, PermissionGrantService

    client = GraphClient("contoso.onmicrosoft.com")
    client.authenticate_service_principal(client_id, client_secret)

    grants = PermissionGrantService(client)
    resp = grants.list(object_id)
"""
from .client import (
    GraphClient,
    create_client_with_token,
    REQUEST_TIMEOUT,
)
from .exceptions import (
    GraphError,
    GraphAPIError,
    GraphAuthError,
)
from .permission_grants import (
    PermissionGrantService,
    grants_from_response,
)

__all__ = [
    "GraphClient",
    "create_client_with_token",
    "REQUEST_TIMEOUT",
    "GraphError",
    "GraphAPIError",
    "GraphAuthError",
    "PermissionGrantService",
    "grants_from_response",
]
