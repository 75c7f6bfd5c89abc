"""
Permission Grant Resource - Lifecycle of azuread_application_permission_grant

Maps a declarative grant configuration onto the Azure AD Graph
oauth2PermissionGrants collection and reconciles desired state with
remote state.

Architecture:
    CLI (scripts/grants.py) ──┐
                              ├──> PermissionGrantResource ──> PermissionGrantService ──> Graph API
    HTTP API (/grants/*)  ────┘

Lifecycle:
    absent ──create──> present ──update (delete + create)──> present
    present ──delete──> absent

Update is a non-atomic replace. When the delete succeeds and the recreate
fails, ReplacePartialFailureError reports that the remote grant is gone
while the desired state still describes it.

Every change, successful or not, is appended to the signed audit trail
(scripts/audit.py) by the resource itself.
"""

from __future__ import annotations
import logging
from datetime import datetime
from typing import Any, Callable, Mapping, Optional

import requests

from azuread_grants.core.errors import (
    RemoteCreateError,
    RemoteDeleteError,
    RemoteReadError,
    RemoteUpdateError,
    ReplacePartialFailureError,
)
from azuread_grants.core.graph import GraphClient, GraphError, PermissionGrantService, grants_from_response
from azuread_grants.core.schema import (
    GRANT_SCHEMA,
    PermissionGrantConfig,
    PermissionGrantState,
    Plan,
    plan_changes,
)
from azuread_grants.core.validity import DEFAULT_VALIDITY_YEARS, resolve_validity_window, utcnow
from scripts import audit

logger = logging.getLogger(__name__)

RESOURCE_TYPE = "azuread_application_permission_grant"


def _is_success(resp: requests.Response) -> bool:
    return resp.status_code == 200


class PermissionGrantResource:
    """Create, read, replace and delete OAuth2 permission grants.

    The remote service and the clock are injected; the resource itself
    keeps no state between calls.
    """

    def __init__(
        self,
        service: PermissionGrantService,
        *,
        clock: Callable[[], datetime] = utcnow,
        validity_years: int = DEFAULT_VALIDITY_YEARS,
        operator: str = "system",
        tenant: str = "",
    ):
        """Initialize the resource.

        Args:
            service: Remote permission grant API
            clock: Returns the current UTC time, used for default start_time
            validity_years: Calendar years added to start_time for default expiry_time
            operator: Name recorded in audit events
            tenant: Tenant recorded in audit events
        """
        self.service = service
        self.clock = clock
        self.validity_years = validity_years
        self.operator = operator
        self.tenant = tenant

    # ─────────────────────────────────────────────────────────────────────
    # Lifecycle operations
    # ─────────────────────────────────────────────────────────────────────

    def create(self, desired: PermissionGrantConfig | Mapping[str, Any]) -> PermissionGrantState:
        """Create the grant, then read it back.

        Raises:
            ConfigValidationError: Before any remote call, on invalid configuration
            RemoteCreateError: On transport error or non-success status
            RemoteReadError: If the follow-up read fails
        """
        config = PermissionGrantConfig.coerce(desired)
        try:
            state = self._create(config)
        except RemoteCreateError as exc:
            self._audit("grant_create", config.object_id, config, exc)
            raise
        self._audit("grant_create", config.object_id, state)
        return self._read_back(state)

    def read(self, current: PermissionGrantState | PermissionGrantConfig) -> Optional[PermissionGrantState]:
        """Fetch the grants of the object ID and refresh the matching one.

        Returns:
            Refreshed state, or None when no remote grant matches (the caller
            should drop the resource from its state)

        Raises:
            RemoteReadError: On transport error, non-success status, or an
                import that matches more than one grant
        """
        if isinstance(current, PermissionGrantConfig):
            current = PermissionGrantState.from_config(current)
        object_id = current.object_id

        try:
            resp = self.service.list(object_id)
        except (GraphError, requests.RequestException) as exc:
            raise RemoteReadError(object_id, exc, status_code=getattr(exc, "status_code", None))
        if not _is_success(resp):
            raise RemoteReadError(object_id, status_code=resp.status_code)

        try:
            grants = grants_from_response(resp)
        except ValueError as exc:
            raise RemoteReadError(object_id, exc, status_code=resp.status_code, detail=f"invalid response body: {exc}")

        candidates = [grant for grant in grants if current.matches(grant)]
        if not candidates:
            logger.warning("No permission grant matches %s for application %s; treating it as deleted", current.client_id, object_id)
            return None
        if len(candidates) > 1 and current.client_id is None:
            raise RemoteReadError(
                object_id,
                status_code=resp.status_code,
                detail=f"{len(candidates)} grants found, cannot tell which one to import",
            )
        return current.refreshed_from(candidates[0])

    def update(self, desired: PermissionGrantConfig | Mapping[str, Any]) -> PermissionGrantState:
        """Apply a new configuration by replacing the grant."""
        config = PermissionGrantConfig.coerce(desired)
        return self.replace(config.object_id, config)

    def replace(self, object_id: str, desired: PermissionGrantConfig | Mapping[str, Any]) -> PermissionGrantState:
        """Delete the existing grant, then create it from the desired configuration.

        Exactly one delete followed by exactly one create. Not atomic.

        Raises:
            ConfigValidationError: Before any remote call, on invalid configuration
            RemoteUpdateError: The delete failed; nothing was changed remotely
            ReplacePartialFailureError: The delete succeeded and the create failed
        """
        config = PermissionGrantConfig.coerce(desired)

        try:
            self._delete(object_id)
        except RemoteDeleteError as exc:
            error = RemoteUpdateError(object_id, "delete", exc)
            self._audit("grant_replace", object_id, config, error)
            raise error

        try:
            state = self._create(config)
        except RemoteCreateError as exc:
            logger.error("Grant for application %s was deleted but could not be recreated: %s", object_id, exc)
            error = ReplacePartialFailureError(object_id, exc)
            self._audit("grant_replace", object_id, config, error)
            raise error

        self._audit("grant_replace", config.object_id, state)
        try:
            return self._read_back(state)
        except RemoteReadError as exc:
            raise RemoteUpdateError(config.object_id, "read", exc)

    def delete(self, object_id: str) -> None:
        """Delete the grant keyed by object ID.

        Raises:
            RemoteDeleteError: On transport error or non-success status
        """
        try:
            self._delete(object_id)
        except RemoteDeleteError as exc:
            self._audit("grant_delete", object_id, error=exc)
            raise
        self._audit("grant_delete", object_id)

    def import_state(self, resource_id: str) -> PermissionGrantState:
        """Pass-through import: the identifier becomes the object ID as-is."""
        self._audit("grant_import", resource_id)
        return PermissionGrantState(object_id=resource_id)

    def plan(self, prior: PermissionGrantConfig | Mapping[str, Any], desired: PermissionGrantConfig | Mapping[str, Any]) -> Plan:
        """Compare recorded and desired configuration."""
        return plan_changes(PermissionGrantConfig.coerce(prior), PermissionGrantConfig.coerce(desired))

    # ─────────────────────────────────────────────────────────────────────
    # Remote calls
    # ─────────────────────────────────────────────────────────────────────

    def _audit(self, event_type: str, object_id: str, grant: Any = None, error: Optional[Exception] = None) -> None:
        audit.record_grant_event(
            event_type,
            object_id,
            grant=grant,
            error=error,
            operator=self.operator,
            tenant=self.tenant,
        )

    def build_request(self, config: PermissionGrantConfig) -> dict[str, Any]:
        """Build the Graph request body, resolving default start and expiry."""
        start_time, expiry_time = resolve_validity_window(
            config.start_time,
            config.expiry_time,
            clock=self.clock,
            years=self.validity_years,
        )
        resolved = dict(config.to_dict(), start_time=start_time, expiry_time=expiry_time)
        return {
            spec.wire_name: resolved[spec.name]
            for spec in GRANT_SCHEMA
            if not spec.computed and resolved.get(spec.name) is not None
        }

    def _create(self, config: PermissionGrantConfig) -> PermissionGrantState:
        body = self.build_request(config)
        logger.info("Creating permission grant for application %s (client %s)", config.object_id, config.client_id)
        try:
            resp = self.service.create(body)
        except (GraphError, requests.RequestException) as exc:
            raise RemoteCreateError(config.object_id, exc, status_code=getattr(exc, "status_code", None))
        if not _is_success(resp):
            raise RemoteCreateError(config.object_id, status_code=resp.status_code)
        return PermissionGrantState.from_config(
            config,
            start_time=body["startTime"],
            expiry_time=body["expiryTime"],
        )

    def _read_back(self, state: PermissionGrantState) -> PermissionGrantState:
        # A grant just created may not be listed yet
        refreshed = self.read(state)
        return refreshed if refreshed is not None else state

    def _delete(self, object_id: str) -> None:
        logger.info("Deleting permission grant for application %s", object_id)
        try:
            resp = self.service.delete(object_id)
        except (GraphError, requests.RequestException) as exc:
            raise RemoteDeleteError(object_id, exc, status_code=getattr(exc, "status_code", None))
        if not _is_success(resp):
            raise RemoteDeleteError(object_id, status_code=resp.status_code)


def resource_from_settings(cfg, operator: str = "system") -> PermissionGrantResource:
    """Build a resource backed by a Graph client for the configured tenant.

    No token is requested until the first remote call.
    """
    client = GraphClient(
        cfg.tenant_id,
        base_url=cfg.graph_base_url,
        api_version=cfg.graph_api_version,
        authority_host=cfg.authority_host,
    )
    client.set_credentials(cfg.client_id, cfg.client_secret_resolved)
    return PermissionGrantResource(
        PermissionGrantService(client),
        validity_years=cfg.default_validity_years,
        operator=operator,
        tenant=cfg.tenant_id,
    )
