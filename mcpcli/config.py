"""Runtime settings, read from the environment (and a ``.env`` file when present)."""

import os
import re
from dataclasses import dataclass
from urllib.parse import urlsplit

from dotenv import load_dotenv

from mcpcli.core.constants import DEFAULT_GATEWAY_URL, DEFAULT_TIMEOUT_MS

load_dotenv()

_GATEWAY_PATH_SUFFIX = re.compile(r"/mcpgw/mcp(?:/.*)?$")


@dataclass(frozen=True)
class Settings:
    gateway_url: str = DEFAULT_GATEWAY_URL
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    backend: str = "anthropic"
    model: str | None = None
    anthropic_api_key: str | None = None
    openai_api_key: str | None = None
    log_dir: str | None = None
    scripts_dir: str | None = None

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "Settings":
        env = os.environ if environ is None else environ
        timeout_value = env.get("MCP_TIMEOUT_MS", "")
        backend = env.get("MCPCLI_BACKEND", "anthropic")
        model_var = "OPENAI_MODEL" if backend == "openai" else "ANTHROPIC_MODEL"
        return cls(
            gateway_url=env.get("MCP_URL") or DEFAULT_GATEWAY_URL,
            timeout_ms=int(timeout_value) if timeout_value.isdigit() else DEFAULT_TIMEOUT_MS,
            backend=backend,
            model=env.get(model_var) or None,
            anthropic_api_key=env.get("ANTHROPIC_API_KEY") or None,
            openai_api_key=env.get("OPENAI_API_KEY") or None,
            log_dir=env.get("MCPCLI_LOG_DIR") or None,
            scripts_dir=env.get("MCPCLI_SCRIPTS_DIR") or None,
        )

    def api_key_for(self, backend: str) -> str | None:
        return self.openai_api_key if backend == "openai" else self.anthropic_api_key


def derive_gateway_base(url: str) -> str:
    """Strip the ``/mcpgw/mcp`` endpoint path to get the registry base URL."""
    if not url:
        return ""
    parts = urlsplit(url)
    if not parts.scheme or not parts.netloc:
        return _GATEWAY_PATH_SUFFIX.sub("", url)
    path = _GATEWAY_PATH_SUFFIX.sub("", parts.path)
    if path == "/":
        path = ""
    return f"{parts.scheme}://{parts.netloc}{path}"
