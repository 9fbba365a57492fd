"""Credential discovery for the gateway (ingress) and backend (M2M) tokens."""

from __future__ import annotations

import base64
import json
import logging
import os
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import requests

from mcpcli.core.errors import AuthError

_auth_log = logging.getLogger("mcpcli.auth")

GATEWAY_TOKEN_ENV_VARS = ("MCP_GATEWAY_TOKEN", "INGRESS_TOKEN")
INGRESS_JSON_PATH = Path(".oauth-tokens") / "ingress.json"
INGRESS_TOKEN_FILE = Path("~/.mcp/ingress_token")
DEFAULT_KEYCLOAK_REALM = "mcp-gateway"


@dataclass
class TokenInspection:
    label: str
    expires_at: datetime | None = None
    expired: bool = False
    warning: str | None = None

    def describe(self) -> str:
        text = self.label
        if self.expires_at is not None:
            text += " expires in the past" if self.expired else f" expires at {self.expires_at.isoformat()}"
        if self.warning:
            text += f" - {self.warning}"
        return text


@dataclass
class AuthContext:
    gateway_token: str | None = None
    backend_token: str | None = None
    gateway_source: str = "none"
    backend_source: str = "none"
    token_file: str | None = None
    inspections: list[TokenInspection] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def gateway_label(self) -> str:
        return {
            "env": "environment token",
            "ingress-json": str(INGRESS_JSON_PATH),
            "token-file": str(INGRESS_TOKEN_FILE),
        }.get(self.gateway_source, "none")

    @property
    def backend_label(self) -> str:
        if self.backend_source == "token-file":
            return f"token file ({self.token_file})" if self.token_file else "token file"
        return {
            "m2m": "Keycloak M2M credentials",
            "explicit": "explicit token",
        }.get(self.backend_source, "none")

    def describe(self) -> list[str]:
        lines = [f"Gateway auth: {self.gateway_label}", f"Backend auth: {self.backend_label}"]
        lines.extend(inspection.describe() for inspection in self.inspections)
        lines.extend(f"Warning: {warning}" for warning in self.warnings)
        return lines


def inspect_token(label: str, token: str, now: float | None = None) -> TokenInspection:
    """Read the ``exp`` claim of a JWT without verifying it."""
    parts = token.split(".")
    if len(parts) != 3:
        return TokenInspection(label=label, warning="not a JWT; expiry unknown")
    try:
        padded = parts[1] + "=" * (-len(parts[1]) % 4)
        claims = json.loads(base64.urlsafe_b64decode(padded.encode("ascii")))
    except (ValueError, UnicodeDecodeError):
        return TokenInspection(label=label, warning="could not decode JWT claims")

    exp = claims.get("exp") if isinstance(claims, dict) else None
    if not isinstance(exp, (int, float)):
        return TokenInspection(label=label, warning="no expiry claim")

    try:
        expires_at = datetime.fromtimestamp(exp, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return TokenInspection(label=label, warning="invalid expiry claim")
    expired = exp <= (now if now is not None else time.time())
    return TokenInspection(
        label=label,
        expires_at=expires_at,
        expired=expired,
        warning="token expired; refresh it before calling the gateway" if expired else None,
    )


def read_token_file(path: Path) -> str | None:
    """Read a token from a plain-text file or a JSON file with ``access_token``/``token``."""
    content = path.read_text(encoding="utf-8").strip()
    if not content:
        return None
    if content.startswith("{"):
        try:
            data = json.loads(content)
        except ValueError:
            return None
        for key in ("access_token", "token"):
            value = data.get(key) if isinstance(data, dict) else None
            if isinstance(value, str) and value:
                return value
        return None
    return content


def fetch_m2m_token(
    keycloak_url: str,
    realm: str,
    client_id: str,
    client_secret: str,
    timeout: float = 10.0,
) -> str:
    """Exchange client credentials for an access token (OAuth2 client-credentials grant)."""
    token_url = f"{keycloak_url.rstrip('/')}/realms/{realm}/protocol/openid-connect/token"
    try:
        response = requests.post(
            token_url,
            data={
                "grant_type": "client_credentials",
                "client_id": client_id,
                "client_secret": client_secret,
            },
            timeout=timeout,
        )
        response.raise_for_status()
        payload: Any = response.json()
    except (requests.RequestException, ValueError) as e:
        raise AuthError(f"Keycloak token request to {token_url} failed: {e}") from e

    token = payload.get("access_token") if isinstance(payload, dict) else None
    if not isinstance(token, str) or not token:
        raise AuthError(f"Keycloak response from {token_url} did not include an access_token")
    return token


def _discover_gateway_token(cwd: Path, environ: dict[str, str]) -> tuple[str | None, str]:
    for name in GATEWAY_TOKEN_ENV_VARS:
        if environ.get(name):
            return environ[name], "env"

    ingress_json = cwd / INGRESS_JSON_PATH
    if ingress_json.is_file():
        token = read_token_file(ingress_json)
        if token:
            return token, "ingress-json"

    ingress_file = INGRESS_TOKEN_FILE.expanduser()
    if ingress_file.is_file():
        token = read_token_file(ingress_file)
        if token:
            return token, "token-file"

    return None, "none"


def resolve_auth(
    token_file: str | None = None,
    explicit_token: str | None = None,
    cwd: str | None = None,
    environ: dict[str, str] | None = None,
) -> AuthContext:
    """Discover both tokens.

    Raises:
        AuthError: an explicitly named token file is missing or empty
    """
    environ = dict(os.environ) if environ is None else environ
    base_dir = Path(cwd) if cwd else Path.cwd()
    context = AuthContext(token_file=token_file)

    context.gateway_token, context.gateway_source = _discover_gateway_token(base_dir, environ)

    if explicit_token:
        context.backend_token, context.backend_source = explicit_token, "explicit"
    elif token_file:
        path = Path(token_file).expanduser()
        if not path.is_absolute():
            path = base_dir / path
        if not path.is_file():
            raise AuthError(f"Token file not found: {path}")
        token = read_token_file(path)
        if not token:
            raise AuthError(f"Token file {path} does not contain a token")
        context.backend_token, context.backend_source = token, "token-file"
    elif environ.get("KEYCLOAK_URL") and environ.get("KEYCLOAK_M2M_CLIENT_ID"):
        try:
            context.backend_token = fetch_m2m_token(
                environ["KEYCLOAK_URL"],
                environ.get("KEYCLOAK_REALM", DEFAULT_KEYCLOAK_REALM),
                environ["KEYCLOAK_M2M_CLIENT_ID"],
                environ.get("KEYCLOAK_M2M_CLIENT_SECRET", ""),
            )
            context.backend_source = "m2m"
        except AuthError as e:
            _auth_log.warning("%s", e)
            context.warnings.append(str(e))

    if context.gateway_token:
        context.inspections.append(inspect_token("Gateway token", context.gateway_token))
    if context.backend_token:
        context.inspections.append(inspect_token("Backend token", context.backend_token))
    if not context.gateway_token and not context.backend_token:
        context.warnings.append("No gateway or backend token found; requests are unauthenticated.")
    return context
