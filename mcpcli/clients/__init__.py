from typing import Any

from dotenv import load_dotenv

from mcpcli.clients.base_provider import BaseProvider
from mcpcli.core.types import ProviderBackend

load_dotenv()


def get_provider(
    backend: ProviderBackend | str,
    backend_kwargs: dict[str, Any] | None = None,
) -> BaseProvider:
    """
    Routes a backend name and its kwargs to the matching provider.
    Currently supported backends: ['anthropic', 'openai']
    """
    backend_kwargs = backend_kwargs or {}
    if backend == "anthropic":
        from mcpcli.clients.anthropic import AnthropicProvider

        return AnthropicProvider(**backend_kwargs)
    elif backend == "openai":
        from mcpcli.clients.openai import OpenAIProvider

        return OpenAIProvider(**backend_kwargs)
    else:
        raise ValueError(
            f"Unknown backend: {backend}. Supported backends: ['anthropic', 'openai']"
        )
