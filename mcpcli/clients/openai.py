import json
import os
from typing import Any, cast

import openai

from mcpcli.clients.base_provider import BaseProvider
from mcpcli.core.errors import ProviderError
from mcpcli.core.types import ContentBlock, ProviderResponse, TextBlock, ToolUseBlock

DEFAULT_OPENAI_MODEL = "gpt-4o-mini"


class OpenAIProvider(BaseProvider):
    """
    Provider for OpenAI-compatible chat completions with function calling. Works with
    vLLM and other compatible servers through ``base_url``.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model_name: str | None = None,
        base_url: str | None = None,
        max_tokens: int = 1024,
        timeout: float | None = None,
        **kwargs: Any,
    ) -> None:
        resolved_model_name = model_name or os.getenv("OPENAI_MODEL") or DEFAULT_OPENAI_MODEL
        super().__init__(model_name=resolved_model_name, timeout=timeout, **kwargs)
        resolved_api_key = api_key or os.getenv("OPENAI_API_KEY")
        if resolved_api_key is None and base_url is None:
            raise ProviderError("OpenAI API key is required (set OPENAI_API_KEY).")
        self.async_client = openai.AsyncOpenAI(
            api_key=resolved_api_key or "unused",
            base_url=base_url,
            timeout=timeout or openai.NOT_GIVEN,
        )
        self.max_tokens = max_tokens

    async def create_message(
        self,
        system: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]],
    ) -> ProviderResponse:
        response = await self.async_client.chat.completions.create(
            model=self.model_name,
            max_tokens=self.max_tokens,
            messages=cast(Any, self.convert_messages(system, messages)),
            tools=cast(Any, self.convert_tools(tools)),
        )
        if response.usage is not None:
            self.track_usage(
                self.model_name, response.usage.prompt_tokens, response.usage.completion_tokens
            )

        choice = response.choices[0]
        content: list[ContentBlock] = []
        if choice.message.content:
            content.append(TextBlock(text=choice.message.content))
        for tool_call in choice.message.tool_calls or []:
            content.append(
                ToolUseBlock(
                    id=tool_call.id,
                    name=tool_call.function.name,
                    input=_decode_arguments(tool_call.function.arguments),
                )
            )
        return ProviderResponse(content=content, stop_reason=choice.finish_reason)

    @staticmethod
    def convert_tools(tools: list[dict[str, Any]]) -> list[dict[str, Any]]:
        return [
            {
                "type": "function",
                "function": {
                    "name": tool["name"],
                    "description": tool.get("description", ""),
                    "parameters": tool.get("input_schema", {"type": "object"}),
                },
            }
            for tool in tools
        ]

    @staticmethod
    def convert_messages(system: str, messages: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Translate content-block messages into chat-completion messages."""
        converted: list[dict[str, Any]] = [{"role": "system", "content": system}]
        for message in messages:
            role = message["role"]
            content = message["content"]
            if isinstance(content, str):
                converted.append({"role": role, "content": content})
                continue

            texts = [block["text"] for block in content if block.get("type") == "text"]
            if role == "assistant":
                entry: dict[str, Any] = {"role": "assistant", "content": "\n".join(texts) or None}
                tool_calls = [
                    {
                        "id": block["id"],
                        "type": "function",
                        "function": {"name": block["name"], "arguments": json.dumps(block["input"])},
                    }
                    for block in content
                    if block.get("type") == "tool_use"
                ]
                if tool_calls:
                    entry["tool_calls"] = tool_calls
                converted.append(entry)
                continue

            for block in content:
                if block.get("type") == "tool_result":
                    converted.append(
                        {
                            "role": "tool",
                            "tool_call_id": block["tool_use_id"],
                            "content": str(block.get("content", "")),
                        }
                    )
            if texts:
                converted.append({"role": role, "content": "\n".join(texts)})
        return converted


def _decode_arguments(raw: str | None) -> dict[str, Any]:
    if not raw:
        return {}
    try:
        decoded = json.loads(raw)
    except ValueError:
        return {}
    return decoded if isinstance(decoded, dict) else {}
