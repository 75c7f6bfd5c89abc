"""Settings loader with environment variable and Docker secrets integration."""
from __future__ import annotations
import os
import secrets
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

DEMO_TENANT_ID = "00000000-0000-0000-0000-000000000000"
DEMO_CLIENT_ID = "11111111-1111-1111-1111-111111111111"
DEMO_CLIENT_SECRET = "demo-client-secret"


def _load_secret_from_file(secret_name: str, env_var: str | None = None) -> str | None:
    """
    Load secret from /run/secrets (Docker secrets pattern).

    Priority:
    1. /run/secrets/{secret_name} (Docker secrets mount)
    2. Environment variable (fallback)

    Args:
        secret_name: Name of the secret file in /run/secrets
        env_var: Optional environment variable name to check as fallback

    Returns:
        Secret value or None if not found
    """
    secret_file = Path("/run/secrets") / secret_name

    if secret_file.exists() and secret_file.is_file():
        try:
            secret_value = secret_file.read_text().strip()
            if secret_value:
                print(f"[settings] ✓ Loaded {secret_name} from /run/secrets")
                return secret_value
        except OSError as e:
            print(f"[settings] ✗ Failed to read /run/secrets/{secret_name}: {e}")

    if env_var:
        secret_value = os.getenv(env_var)
        if secret_value:
            print(f"[settings] ✓ Loaded {env_var} from environment (fallback)")
            return secret_value

    return None


@dataclass
class AppConfig:
    """Application configuration container."""
    demo_mode: bool

    # Azure AD service principal used to call the Graph API
    tenant_id: str
    client_id: str
    client_secret: str = ""

    # Graph endpoints
    graph_base_url: str = "https://graph.windows.net"
    graph_api_version: str = "1.6"
    authority_host: str = "https://login.microsoftonline.com"

    # Grant defaults
    default_validity_years: int = 2

    # HTTP API bearer token
    api_token: str = ""

    @property
    def client_secret_resolved(self) -> str:
        """Get the service principal client secret with smart fallback.

        Priority:
        1. Demo mode: hardcoded demo secret
        2. Configured value in client_secret
        3. Docker secrets: /run/secrets/azure_client_secret
        4. Environment variable: AZURE_CLIENT_SECRET

        Raises:
            ValueError: If secret not found in production mode
        """
        if self.demo_mode:
            return DEMO_CLIENT_SECRET

        if self.client_secret:
            return self.client_secret

        for secret_name in ["azure_client_secret", "azure-client-secret"]:
            secret_path = Path("/run/secrets") / secret_name
            if secret_path.exists():
                secret = secret_path.read_text().strip()
                if secret:
                    return secret

        secret = os.environ.get("AZURE_CLIENT_SECRET")
        if secret:
            return secret

        raise ValueError(
            "AZURE_CLIENT_SECRET not found. "
            "Set DEMO_MODE=true or provide secret via Docker secrets or environment variable."
        )


def _get_or_generate(var_name: str, demo_default: Optional[str] = None, required: bool = True, demo_mode: bool = False) -> str:
    """Get environment variable or use demo default."""
    value = os.environ.get(var_name)
    if value:
        return value

    if demo_mode and demo_default is not None:
        print(f"[demo-mode] Using default for {var_name}")
        os.environ[var_name] = demo_default
        return demo_default

    if not required:
        return ""

    raise RuntimeError(f"Environment variable {var_name} is required in production mode.")


def _parse_positive_int(var_name: str, default: int) -> int:
    raw = os.environ.get(var_name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise RuntimeError(f"Environment variable {var_name} must be an integer, got {raw!r}")
    if value < 1:
        raise RuntimeError(f"Environment variable {var_name} must be at least 1, got {value}")
    return value


def load_settings() -> AppConfig:
    """Load application settings from environment and /run/secrets."""
    demo_mode = os.environ.get("DEMO_MODE", "false").lower() == "true"

    tenant_id = _get_or_generate("AZURE_TENANT_ID", demo_default=DEMO_TENANT_ID, demo_mode=demo_mode)
    client_id = _get_or_generate("AZURE_CLIENT_ID", demo_default=DEMO_CLIENT_ID, demo_mode=demo_mode)

    client_secret = _load_secret_from_file("azure_client_secret", "AZURE_CLIENT_SECRET")
    if client_secret:
        os.environ["AZURE_CLIENT_SECRET"] = client_secret
    elif demo_mode:
        client_secret = DEMO_CLIENT_SECRET
        print("[demo-mode] Using demo AZURE_CLIENT_SECRET")
    else:
        raise RuntimeError("AZURE_CLIENT_SECRET not found in /run/secrets or environment")

    api_token = _load_secret_from_file("api_static_token", "API_STATIC_TOKEN")
    if not api_token and demo_mode:
        api_token = secrets.token_urlsafe(32)
        os.environ["API_STATIC_TOKEN"] = api_token
        print("[demo-mode] Generated temporary API_STATIC_TOKEN")

    graph_base_url = os.environ.get("GRAPH_BASE_URL", "https://graph.windows.net").rstrip("/")
    graph_api_version = os.environ.get("GRAPH_API_VERSION", "1.6").strip() or "1.6"
    authority_host = os.environ.get("AZURE_AUTHORITY_HOST", "https://login.microsoftonline.com").rstrip("/")
    default_validity_years = _parse_positive_int("GRANT_DEFAULT_VALIDITY_YEARS", 2)

    mode_label = "DEMO" if demo_mode else "PRODUCTION"
    print(f"[settings] Mode={mode_label}; tenant={tenant_id}; graph={graph_base_url} (api-version {graph_api_version})")

    if demo_mode:
        print("[settings] WARNING: Demo credentials in use. Do not deploy with these defaults.")

    return AppConfig(
        demo_mode=demo_mode,
        tenant_id=tenant_id,
        client_id=client_id,
        client_secret=client_secret or "",
        graph_base_url=graph_base_url,
        graph_api_version=graph_api_version,
        authority_host=authority_host,
        default_validity_years=default_validity_years,
        api_token=api_token or "",
    )
