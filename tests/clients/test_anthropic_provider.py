import asyncio
from unittest.mock import AsyncMock, patch

import pytest
from anthropic.types import Message

from mcpcli.clients import get_provider
from mcpcli.clients.anthropic import AnthropicProvider
from mcpcli.core.errors import ProviderError
from mcpcli.core.types import TextBlock, ToolUseBlock


def _message(content: list[dict], stop_reason: str = "end_turn") -> Message:
    return Message.model_validate(
        {
            "id": "msg_test",
            "type": "message",
            "role": "assistant",
            "model": "claude-haiku-4-5",
            "content": content,
            "stop_reason": stop_reason,
            "stop_sequence": None,
            "usage": {"input_tokens": 12, "output_tokens": 3},
        }
    )


def test_anthropic_provider_requires_api_key(monkeypatch) -> None:
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    with pytest.raises(ProviderError, match="Anthropic API key is required"):
        AnthropicProvider(api_key="")


def test_anthropic_provider_model_from_environment(monkeypatch) -> None:
    monkeypatch.setenv("ANTHROPIC_MODEL", "claude-sonnet-4-5")
    with patch("mcpcli.clients.anthropic.anthropic.AsyncAnthropic"):
        provider = AnthropicProvider(api_key="test-key")
    assert provider.model_name == "claude-sonnet-4-5"


def test_anthropic_provider_converts_blocks_and_tracks_usage() -> None:
    with patch("mcpcli.clients.anthropic.anthropic.AsyncAnthropic"):
        provider = AnthropicProvider(api_key="test-key", model_name="claude-haiku-4-5")

    provider.async_client.messages.create = AsyncMock(
        return_value=_message(
            [
                {"type": "text", "text": "Let me check."},
                {"type": "tool_use", "id": "toolu_1", "name": "mcp_command", "input": {"command": "ping"}},
            ],
            stop_reason="tool_use",
        )
    )
    tools = [{"name": "mcp_command", "input_schema": {"type": "object"}}]
    response = asyncio.run(
        provider.create_message("system prompt", [{"role": "user", "content": "ping"}], tools)
    )

    assert response.content == [
        TextBlock("Let me check."),
        ToolUseBlock(id="toolu_1", name="mcp_command", input={"command": "ping"}),
    ]
    assert response.stop_reason == "tool_use"
    kwargs = provider.async_client.messages.create.call_args.kwargs
    assert kwargs["system"] == "system prompt"
    assert kwargs["tools"] == tools
    assert kwargs["max_tokens"] == 1024

    usage = provider.get_usage_summary().to_dict()
    assert usage["claude-haiku-4-5"] == {
        "total_calls": 1,
        "total_input_tokens": 12,
        "total_output_tokens": 3,
    }


def test_get_provider_routes_backends() -> None:
    with patch("mcpcli.clients.anthropic.anthropic.AsyncAnthropic"):
        provider = get_provider("anthropic", {"api_key": "test-key"})
    assert isinstance(provider, AnthropicProvider)


def test_get_provider_rejects_unknown_backend() -> None:
    with pytest.raises(ValueError, match="Unknown backend"):
        get_provider("gemini", {})
