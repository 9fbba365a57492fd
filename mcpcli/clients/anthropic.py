import os
from typing import Any, cast

import anthropic

from mcpcli.clients.base_provider import BaseProvider
from mcpcli.core.errors import ProviderError
from mcpcli.core.types import ContentBlock, ProviderResponse, TextBlock, ToolUseBlock

DEFAULT_ANTHROPIC_MODEL = "claude-haiku-4-5"


class AnthropicProvider(BaseProvider):
    """
    Provider for running the agent loop against the Anthropic Messages API.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model_name: str | None = None,
        max_tokens: int = 1024,
        timeout: float | None = None,
        **kwargs: Any,
    ) -> None:
        resolved_model_name = model_name or os.getenv("ANTHROPIC_MODEL") or DEFAULT_ANTHROPIC_MODEL
        super().__init__(model_name=resolved_model_name, timeout=timeout, **kwargs)
        resolved_api_key = api_key or os.getenv("ANTHROPIC_API_KEY")
        if not resolved_api_key:
            raise ProviderError("Anthropic API key is required (set ANTHROPIC_API_KEY).")
        if timeout is not None:
            self.async_client = anthropic.AsyncAnthropic(api_key=resolved_api_key, timeout=timeout)
        else:
            self.async_client = anthropic.AsyncAnthropic(api_key=resolved_api_key)
        self.max_tokens = max_tokens

    async def create_message(
        self,
        system: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]],
    ) -> ProviderResponse:
        response = cast(
            anthropic.types.Message,
            await self.async_client.messages.create(
                model=self.model_name,
                max_tokens=self.max_tokens,
                system=system,
                messages=cast(Any, messages),
                tools=cast(Any, tools),
            ),
        )
        usage = getattr(response, "usage", None)
        if usage is not None:
            self.track_usage(self.model_name, usage.input_tokens, usage.output_tokens)
        return ProviderResponse(
            content=self._convert_blocks(response.content),
            stop_reason=getattr(response, "stop_reason", None),
        )

    def _convert_blocks(self, blocks: Any) -> list[ContentBlock]:
        converted: list[ContentBlock] = []
        for block in blocks or []:
            block_type = getattr(block, "type", None)
            if block_type == "text":
                converted.append(TextBlock(text=block.text))
            elif block_type == "tool_use":
                converted.append(
                    ToolUseBlock(id=block.id, name=block.name, input=dict(block.input or {}))
                )
        return converted
