"""Pytest shared fixtures."""
import json
import os
import pathlib
import sys
from datetime import datetime, timezone
from unittest.mock import MagicMock

# Add project root to Python path
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Configure test environment BEFORE any app imports
os.environ.setdefault("DEMO_MODE", "true")

import pytest
import requests

from azuread_grants.core.graph import PermissionGrantService
from azuread_grants.core.permission_grant_resource import PermissionGrantResource
from scripts import audit

CLIENT_ID = "11111111-2222-3333-4444-555555555555"
OBJECT_ID = "aaaaaaaa-bbbb-cccc-dddd-eeeeeeeeeeee"
RESOURCE_ID = "99999999-8888-7777-6666-555555555555"
FIXED_NOW = datetime(2025, 3, 14, 9, 26, 53, tzinfo=timezone.utc)


class StubResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(self, payload=None, status_code: int = 200, url: str = "https://graph.windows.net/tenant/oauth2PermissionGrants"):
        self._payload = payload if payload is not None else {}
        self.status_code = status_code
        self.url = url
        self.text = json.dumps(self._payload)

    def json(self):
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(response=self)


def remote_grant(**overrides) -> dict:
    """A grant as the Graph API lists it."""
    grant = {
        "odata.type": "Microsoft.DirectoryServices.OAuth2PermissionGrant",
        "objectId": OBJECT_ID,
        "clientId": CLIENT_ID,
        "resourceId": RESOURCE_ID,
        "consentType": "Principal",
        "principalId": None,
        "scope": "read",
        "startTime": "2025-03-14T09:26:53Z",
        "expiryTime": "2027-03-14T09:26:53Z",
    }
    grant.update(overrides)
    return grant


# ─────────────────────────────────────────────────────────────────────────────
# Guard Rails
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture(autouse=True)
def _block_network(monkeypatch, request):
    """
    Prevent unit tests from hitting Azure AD.

    Integration tests are explicitly marked with @pytest.mark.integration and
    are allowed to perform real HTTP calls by skipping this fixture.
    """
    if request.node.get_closest_marker("integration"):
        return

    def _unexpected(method):
        def _fail(url, *args, **kwargs):
            raise RuntimeError(f"Unexpected HTTP {method} in unit test: {url}")
        return _fail

    monkeypatch.setattr(requests, "get", _unexpected("GET"))
    monkeypatch.setattr(requests, "post", _unexpected("POST"))
    monkeypatch.setattr(requests, "delete", _unexpected("DELETE"))


@pytest.fixture(autouse=True)
def audit_file(monkeypatch, tmp_path):
    """Send audit events to an isolated, signed log per test."""
    audit_dir = tmp_path / "audit"
    audit_log = audit_dir / "grant-events.jsonl"
    monkeypatch.setattr(audit, "AUDIT_LOG_DIR", audit_dir)
    monkeypatch.setattr(audit, "AUDIT_LOG_FILE", audit_log)
    monkeypatch.setenv("AUDIT_LOG_SIGNING_KEY", "test-signing-key-for-audit-trail")
    return audit_log


# ─────────────────────────────────────────────────────────────────────────────
# Remote service fakes
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture
def service():
    """PermissionGrantService mock whose calls succeed by default.

    list() returns the grant a default create would produce.
    """
    mock = MagicMock(spec=PermissionGrantService)
    mock.create.return_value = StubResponse(remote_grant())
    mock.list.return_value = StubResponse({"value": [remote_grant()]})
    mock.delete.return_value = StubResponse()
    return mock


@pytest.fixture
def resource(service):
    return PermissionGrantResource(service, clock=lambda: FIXED_NOW, operator="pytest", tenant="contoso")


@pytest.fixture
def grant_config():
    """Required attributes only."""
    return {
        "client_id": CLIENT_ID,
        "object_id": OBJECT_ID,
        "resource_id": RESOURCE_ID,
        "consent_type": "Principal",
    }
