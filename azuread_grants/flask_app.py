"""Flask application factory and bootstrap.

This module provides the create_app() factory function for initializing
the Flask application with all blueprints and configuration.
"""
from __future__ import annotations
from typing import Optional

from flask import Flask

from azuread_grants.config import AppConfig, load_settings
from azuread_grants.core.permission_grant_resource import PermissionGrantResource, resource_from_settings


# ─────────────────────────────────────────────────────────────────────────────
# Application Factory
# ─────────────────────────────────────────────────────────────────────────────
def create_app(cfg: Optional[AppConfig] = None, resource: Optional[PermissionGrantResource] = None) -> Flask:
    """Create and configure Flask application.

    Args:
        cfg: Settings (loaded from the environment when omitted)
        resource: Grant resource to serve (built from cfg when omitted)
    """
    cfg = cfg or load_settings()

    app = Flask(__name__)
    app.config["APP_CONFIG"] = cfg
    app.config["DEMO_MODE"] = cfg.demo_mode

    app.extensions["permission_grants"] = resource or resource_from_settings(cfg, operator="api")

    from azuread_grants.api import errors, grants, health

    app.register_blueprint(health.bp)
    app.register_blueprint(grants.bp)

    errors.register_error_handlers(app)

    mode_label = "DEMO" if cfg.demo_mode else "PRODUCTION"
    print(f"[flask_app] Mode={mode_label}")
    print(f"[flask_app] Permission grant API registered at /grants (tenant {cfg.tenant_id})")

    if cfg.demo_mode:
        print("[flask_app] WARNING: Demo mode active - do not deploy with demo credentials")

    return app
