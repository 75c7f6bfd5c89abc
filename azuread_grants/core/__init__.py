"""Core Business Logic Module

This module provides the permission grant logic, independent of HTTP
frameworks (Flask) and of the CLI.

Module Structure:
    - graph/                        : Low-level Azure AD Graph API client
    - permission_grant_resource.py  : Create/read/replace/delete/import lifecycle
    - schema.py                     : Field table, typed config and state, change planning
    - validity.py                   : Default start/expiry computation
    - validators.py                 : Field validators
    - errors.py                     : Resource error taxonomy

Usage Pattern:
    These modules are NOT auto-imported to avoid pulling in requests
    when only the schema or validators are needed.

    Import explicitly when needed:
        from azuread_grants.core.permission_grant_resource import PermissionGrantResource
        from azuread_grants.core.schema import PermissionGrantConfig
        from azuread_grants.core.errors import RemoteCreateError
"""
