"""Permission grant REST endpoints.

Thin HTTP layer over PermissionGrantResource; the caller (an orchestrator
or operator tooling) stores the returned state.

Routes:
    POST   /grants                 create, then read back
    GET    /grants/<object_id>     read (optional client_id, resource_id, consent_type, principal_id filters)
    PUT    /grants/<object_id>     replace (delete + create)
    DELETE /grants/<object_id>     delete
    POST   /grants/import          pass-through import by id, then read
    POST   /grants/plan            compare prior and desired configuration
"""

from __future__ import annotations
import logging

from flask import Blueprint, abort, current_app, g, jsonify, request

from azuread_grants.api.decorators import require_api_token
from azuread_grants.core.permission_grant_resource import PermissionGrantResource
from azuread_grants.core.schema import PermissionGrantState

bp = Blueprint("grants", __name__)

JSON_MAX_SIZE_BYTES = 65536  # 64 KB
READ_FILTERS = ("client_id", "resource_id", "consent_type", "principal_id")

logger = logging.getLogger(__name__)


def _resource() -> PermissionGrantResource:
    resource = current_app.extensions.get("permission_grants")
    if resource is None:
        abort(503, description="Permission grant resource is not configured")
    return resource


def _json_body() -> dict:
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        abort(400, description="Request body must be a JSON object")
    return payload


@bp.before_request
def limit_payload_size():
    if request.content_length and request.content_length > JSON_MAX_SIZE_BYTES:
        abort(413)


@bp.after_request
def add_correlation_id(response):
    """Echo the correlation ID and auth method for tracing."""
    correlation_id = request.headers.get("X-Correlation-Id")
    if correlation_id:
        response.headers["X-Correlation-Id"] = correlation_id
    auth_method = getattr(g, "auth_method", None)
    if auth_method:
        response.headers["X-Auth-Method"] = auth_method
    return response


@bp.route("/grants", methods=["POST"])
@require_api_token
def create_grant():
    state = _resource().create(_json_body())
    response = jsonify(state.to_dict())
    response.status_code = 201
    response.headers["Location"] = f"{request.script_root}/grants/{state.id}"
    return response


@bp.route("/grants/<object_id>", methods=["GET"])
@require_api_token
def read_grant(object_id: str):
    filters = {name: request.args[name] for name in READ_FILTERS if request.args.get(name)}
    state = _resource().read(PermissionGrantState(object_id=object_id, **filters))
    if state is None:
        abort(404, description=f"No permission grant found for application '{object_id}'")
    return jsonify(state.to_dict()), 200


@bp.route("/grants/<object_id>", methods=["PUT"])
@require_api_token
def replace_grant(object_id: str):
    payload = _json_body()
    payload.setdefault("object_id", object_id)
    if payload["object_id"] != object_id:
        # object_id is force-new: a different one is a new resource, not a replace
        abort(400, description="object_id in body does not match the URL; create a new grant instead")
    state = _resource().replace(object_id, payload)
    return jsonify(state.to_dict()), 200


@bp.route("/grants/<object_id>", methods=["DELETE"])
@require_api_token
def delete_grant(object_id: str):
    logger.info(f"Delete requested for grant of application {object_id} (correlation_id={request.headers.get('X-Correlation-Id', 'none')})")
    _resource().delete(object_id)
    return ("", 204)


@bp.route("/grants/import", methods=["POST"])
@require_api_token
def import_grant():
    import_id = _json_body().get("id")
    if not isinstance(import_id, str) or not import_id.strip():
        abort(400, description="'id' is required")
    resource = _resource()
    state = resource.read(resource.import_state(import_id))
    if state is None:
        abort(404, description=f"No permission grant found for application '{import_id}'")
    return jsonify(state.to_dict()), 200


@bp.route("/grants/plan", methods=["POST"])
@require_api_token
def plan_grant():
    payload = _json_body()
    prior, desired = payload.get("prior"), payload.get("desired")
    if not isinstance(prior, dict) or not isinstance(desired, dict):
        abort(400, description="'prior' and 'desired' must both be objects")
    plan = _resource().plan(prior, desired)
    return jsonify({
        "changed": list(plan.changed),
        "replace_fields": list(plan.replace_fields),
        "requires_replace": plan.requires_replace,
    }), 200
