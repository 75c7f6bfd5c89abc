"""OAuth2 permission grant operations against the Azure AD Graph API."""
from __future__ import annotations
from typing import Any, Dict, List

import requests

from .client import GraphClient

GRANTS_PATH = "/oauth2PermissionGrants"
GRANT_ODATA_TYPE = "Microsoft.DirectoryServices.OAuth2PermissionGrant"


class PermissionGrantService:
    """Remote contract for the oauth2PermissionGrants collection.

    Each method issues exactly one HTTP call and returns the raw response;
    status checking beyond the client's >= 400 guard is left to the caller.
    """

    def __init__(self, client: GraphClient):
        """Initialize permission grant service.

        Args:
            client: Graph client (authenticated, or holding credentials)
        """
        self.client = client

    def create(self, grant: Dict[str, Any]) -> requests.Response:
        """Create a permission grant.

        Args:
            grant: Grant body in Graph wire format (clientId, objectId, ...)
        """
        body = {"odata.type": GRANT_ODATA_TYPE}
        body.update(grant)
        return self.client.post(GRANTS_PATH, json=body)

    def list(self, object_id: str) -> requests.Response:
        """List the grants recorded under an object ID."""
        return self.client.get(GRANTS_PATH, params={"$filter": f"objectId eq '{object_id}'"})

    def delete(self, object_id: str) -> requests.Response:
        """Delete the grant keyed by an object ID."""
        return self.client.delete(f"{GRANTS_PATH}/{object_id}")


def grants_from_response(resp: requests.Response) -> List[Dict[str, Any]]:
    """Extract the grant collection from an OData list response.

    Raises:
        ValueError: If the body is not JSON or does not hold a list of grant objects
    """
    payload = resp.json()
    if isinstance(payload, dict):
        payload = payload.get("value", [])
    if not isinstance(payload, list):
        raise ValueError(f"expected a list of grants, got {type(payload).__name__}")
    for grant in payload:
        if not isinstance(grant, dict):
            raise ValueError(f"expected grant objects, got {type(grant).__name__}")
    return payload
