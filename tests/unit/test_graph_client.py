"""Unit tests for the Graph HTTP client and the permission grant service."""
import pytest
import requests

from azuread_grants.core.graph import (
    GraphAPIError,
    GraphAuthError,
    GraphClient,
    PermissionGrantService,
    create_client_with_token,
    grants_from_response,
)
from azuread_grants.core.graph import client as client_module
from conftest import OBJECT_ID, StubResponse, remote_grant

TENANT = "contoso.onmicrosoft.com"


class _Calls(list):
    """Recorded (method, url, kwargs) tuples plus queued responses."""


@pytest.fixture
def http_calls(monkeypatch):
    """Record requests calls and answer with queued responses."""
    calls = _Calls()
    responses = {"get": [], "post": [], "delete": []}

    def _fake(method):
        def _call(url, **kwargs):
            calls.append((method, url, kwargs))
            return responses[method].pop(0)
        return _call

    for method in responses:
        monkeypatch.setattr(requests, method, _fake(method))
    calls.responses = responses
    return calls


def _token_response(token="tok-1", expires_in=3600):
    return StubResponse({"access_token": token, "expires_in": expires_in, "token_type": "Bearer"})


def test_authenticate_uses_client_credentials(http_calls):
    http_calls.responses["post"].append(_token_response())
    client = GraphClient(TENANT)

    assert client.authenticate_service_principal("svc-id", "svc-secret") == "tok-1"

    method, url, kwargs = http_calls[0]
    assert method == "post"
    assert url == f"https://login.microsoftonline.com/{TENANT}/oauth2/v2.0/token"
    assert kwargs["data"] == {
        "grant_type": "client_credentials",
        "client_id": "svc-id",
        "client_secret": "svc-secret",
        "scope": "https://graph.windows.net/.default",
    }
    assert kwargs["timeout"] == client_module.REQUEST_TIMEOUT


def test_token_failure_raises_auth_error(http_calls):
    http_calls.responses["post"].append(StubResponse({"error": "invalid_client"}, status_code=401))

    with pytest.raises(GraphAuthError, match="401"):
        GraphClient(TENANT).authenticate_service_principal("svc-id", "wrong")


def test_request_without_credentials_raises(http_calls):
    with pytest.raises(GraphAuthError, match="Not authenticated"):
        GraphClient(TENANT).get("/oauth2PermissionGrants")
    assert http_calls == []


def test_lazy_credentials_fetch_token_once(http_calls):
    http_calls.responses["post"].append(_token_response())
    http_calls.responses["get"].extend([StubResponse({"value": []}), StubResponse({"value": []})])
    client = GraphClient(TENANT)
    client.set_credentials("svc-id", "svc-secret")

    client.get("/oauth2PermissionGrants")
    client.get("/oauth2PermissionGrants")

    assert [c[0] for c in http_calls] == ["post", "get", "get"]


def test_expiring_token_is_refreshed(http_calls):
    http_calls.responses["post"].extend([_token_response("tok-1", expires_in=5), _token_response("tok-2")])
    http_calls.responses["get"].append(StubResponse({"value": []}))
    client = GraphClient(TENANT)
    client.authenticate_service_principal("svc-id", "svc-secret")

    client.get("/oauth2PermissionGrants")

    assert http_calls[-1][2]["headers"]["Authorization"] == "Bearer tok-2"


def test_requests_are_tenant_scoped_and_versioned(http_calls):
    http_calls.responses["get"].append(StubResponse({"value": []}))
    client = create_client_with_token(TENANT, "preissued", base_url="https://graph.example/", api_version="1.6")

    client.get("/oauth2PermissionGrants", params={"$top": "5"})

    method, url, kwargs = http_calls[0]
    assert url == f"https://graph.example/{TENANT}/oauth2PermissionGrants"
    assert kwargs["params"] == {"api-version": "1.6", "$top": "5"}
    assert kwargs["headers"] == {"Authorization": "Bearer preissued"}


def test_http_error_carries_odata_message(http_calls):
    http_calls.responses["delete"].append(StubResponse(
        {"odata.error": {"code": "Request_ResourceNotFound", "message": {"lang": "en", "value": "Resource not found."}}},
        status_code=404,
    ))
    client = create_client_with_token(TENANT, "preissued")

    with pytest.raises(GraphAPIError) as exc_info:
        client.delete(f"/oauth2PermissionGrants/{OBJECT_ID}")

    assert exc_info.value.status_code == 404
    assert "Resource not found." in str(exc_info.value)


def test_http_error_falls_back_to_body_text(http_calls):
    http_calls.responses["post"].append(StubResponse(["unexpected"], status_code=500))
    client = create_client_with_token(TENANT, "preissued")

    with pytest.raises(GraphAPIError) as exc_info:
        client.post("/oauth2PermissionGrants", json={})

    assert exc_info.value.message == '["unexpected"]'


class TestPermissionGrantService:
    @pytest.fixture
    def service(self, http_calls):
        return PermissionGrantService(create_client_with_token(TENANT, "preissued"))

    def test_create_posts_typed_body(self, service, http_calls):
        http_calls.responses["post"].append(StubResponse(remote_grant(), status_code=201))

        service.create({"clientId": "c", "objectId": OBJECT_ID})

        _, url, kwargs = http_calls[0]
        assert url.endswith(f"/{TENANT}/oauth2PermissionGrants")
        assert kwargs["json"] == {
            "odata.type": "Microsoft.DirectoryServices.OAuth2PermissionGrant",
            "clientId": "c",
            "objectId": OBJECT_ID,
        }

    def test_list_filters_by_object_id(self, service, http_calls):
        http_calls.responses["get"].append(StubResponse({"value": [remote_grant()]}))

        resp = service.list(OBJECT_ID)

        assert http_calls[0][2]["params"]["$filter"] == f"objectId eq '{OBJECT_ID}'"
        assert grants_from_response(resp) == [remote_grant()]

    def test_delete_targets_object_id(self, service, http_calls):
        http_calls.responses["delete"].append(StubResponse(status_code=204))

        service.delete(OBJECT_ID)

        assert http_calls[0][1].endswith(f"/oauth2PermissionGrants/{OBJECT_ID}")


class TestGrantsFromResponse:
    def test_missing_value_is_empty(self):
        assert grants_from_response(StubResponse({"odata.metadata": "https://graph/$metadata"})) == []

    @pytest.mark.parametrize(
        "payload",
        ["text", {"value": ["x"]}, {"value": {"a": 1}}, {"value": None}, [remote_grant(), 42]],
    )
    def test_rejects_anything_but_a_list_of_objects(self, payload):
        with pytest.raises(ValueError, match="expected"):
            grants_from_response(StubResponse(payload))
