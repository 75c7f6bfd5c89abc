"""Azure AD application permission grant management.

To use the resource directly:
    from azuread_grants.core.permission_grant_resource import PermissionGrantResource

To use the Graph API client:
    from azuread_grants.core.graph import GraphClient, PermissionGrantService

To use the Flask app:
    from azuread_grants.flask_app import create_app
"""
# Note: We don't import flask_app by default to avoid Flask dependency
# for CLI scripts that only use azuread_grants.core
