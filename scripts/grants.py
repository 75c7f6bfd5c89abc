"""Command-line management of Azure AD application permission grants.

This module serves as a CLI wrapper around PermissionGrantResource. State is
printed as JSON on stdout; errors go to stderr with a non-zero exit code.
"""
from __future__ import annotations
import argparse
import json
import os
import sys
from pathlib import Path

SCRIPT_DIR = Path(__file__).parent
PROJECT_ROOT = SCRIPT_DIR.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from azuread_grants.core.errors import (
    ConfigValidationError,
    RemoteOperationError,
    ReplacePartialFailureError,
)
from azuread_grants.core.graph import GraphClient, GraphError, PermissionGrantService
from azuread_grants.core.permission_grant_resource import PermissionGrantResource
from azuread_grants.core.schema import CONSENT_TYPES, PermissionGrantState
from azuread_grants.core.validity import DEFAULT_VALIDITY_YEARS

CONFIG_ARGS = (
    "client_id",
    "object_id",
    "resource_id",
    "consent_type",
    "principal_id",
    "scope",
    "start_time",
    "expiry_time",
)


def build_resource(args: argparse.Namespace) -> PermissionGrantResource:
    """Authenticate against the tenant and wire up the resource."""
    client = GraphClient(
        args.tenant,
        base_url=args.graph_url,
        api_version=args.api_version,
        authority_host=args.authority,
    )
    client.authenticate_service_principal(args.svc_client_id, args.svc_client_secret)
    return PermissionGrantResource(
        PermissionGrantService(client),
        validity_years=args.validity_years,
        operator=args.operator,
        tenant=args.tenant,
    )


def _config_from_args(args: argparse.Namespace) -> dict:
    return {name: getattr(args, name, None) for name in CONFIG_ARGS if getattr(args, name, None) is not None}


def _add_config_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--client-id", required=True, help="Client service principal (UUID)")
    parser.add_argument("--object-id", required=True, help="Application object ID (UUID)")
    parser.add_argument("--resource-id", required=True, help="Resource service principal")
    parser.add_argument("--consent-type", required=True, choices=CONSENT_TYPES)
    parser.add_argument("--principal-id", help="User the grant applies to (Principal consent)")
    parser.add_argument("--scope", help="Space-delimited scopes, e.g. 'User.Read openid'")
    parser.add_argument("--start-time", help="ISO-8601 start (default: now)")
    parser.add_argument("--expiry-time", help="ISO-8601 expiry (default: start + validity years)")


def _print_state(state) -> None:
    print(json.dumps(state.to_dict(), indent=2))


def main() -> None:
    """Command-line entry point."""
    parser = argparse.ArgumentParser(description="Azure AD application permission grant helper")
    parser.add_argument("--tenant", default=os.environ.get("AZURE_TENANT_ID"))
    parser.add_argument("--graph-url", default=os.environ.get("GRAPH_BASE_URL", "https://graph.windows.net"))
    parser.add_argument("--api-version", default=os.environ.get("GRAPH_API_VERSION", "1.6"))
    parser.add_argument("--authority", default=os.environ.get("AZURE_AUTHORITY_HOST", "https://login.microsoftonline.com"))
    parser.add_argument("--svc-client-id", default=os.environ.get("AZURE_CLIENT_ID"))
    parser.add_argument("--svc-client-secret", default=os.environ.get("AZURE_CLIENT_SECRET"))
    parser.add_argument("--validity-years", type=int,
                        default=int(os.environ.get("GRANT_DEFAULT_VALIDITY_YEARS", DEFAULT_VALIDITY_YEARS)))
    parser.add_argument("--operator", default="cli",
                        help="Operator identifier for audit logs (default: cli)")

    sub = parser.add_subparsers(dest="cmd")

    sc = sub.add_parser("create", help="Create a grant and print its state")
    _add_config_args(sc)

    sr = sub.add_parser("read", help="Read the grant recorded under an object ID")
    sr.add_argument("--object-id", required=True)
    sr.add_argument("--client-id")
    sr.add_argument("--resource-id")
    sr.add_argument("--consent-type", choices=CONSENT_TYPES)
    sr.add_argument("--principal-id")

    su = sub.add_parser("update", help="Replace a grant (delete, then create)")
    _add_config_args(su)

    sd = sub.add_parser("delete", help="Delete the grant keyed by an object ID")
    sd.add_argument("--object-id", required=True)

    si = sub.add_parser("import", help="Import an existing grant by ID")
    si.add_argument("--id", required=True, dest="import_id")

    args = parser.parse_args()

    if not args.cmd:
        parser.print_help()
        return

    if not args.tenant:
        parser.error("Missing tenant (--tenant or AZURE_TENANT_ID)")
    if not args.svc_client_id or not args.svc_client_secret:
        parser.error("Missing service principal credentials")

    try:
        resource = build_resource(args)
    except GraphError as e:
        print(f"[auth] Error: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        if args.cmd == "create":
            _print_state(resource.create(_config_from_args(args)))
        elif args.cmd == "read":
            filters = {name: getattr(args, name) for name in ("client_id", "resource_id", "consent_type", "principal_id")
                       if getattr(args, name) is not None}
            state = resource.read(PermissionGrantState(object_id=args.object_id, **filters))
            if state is None:
                print(f"[read] No permission grant found for application {args.object_id}", file=sys.stderr)
                sys.exit(3)
            _print_state(state)
        elif args.cmd == "update":
            _print_state(resource.update(_config_from_args(args)))
        elif args.cmd == "delete":
            resource.delete(args.object_id)
            print(f"[delete] Permission grant for application {args.object_id} deleted", file=sys.stderr)
        elif args.cmd == "import":
            state = resource.read(resource.import_state(args.import_id))
            if state is None:
                print(f"[import] No permission grant found for application {args.import_id}", file=sys.stderr)
                sys.exit(3)
            _print_state(state)
    except ConfigValidationError as e:
        for message in e.errors:
            print(f"[{args.cmd}] Invalid configuration: {message}", file=sys.stderr)
        sys.exit(2)
    except RemoteOperationError as e:
        print(f"[{args.cmd}] Error: {e}", file=sys.stderr)
        if isinstance(e, ReplacePartialFailureError):
            print(f"[{args.cmd}] WARNING: the remote grant is now absent; re-run create to restore it", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
