import copy
import json
from typing import Any

import pytest
import requests
from requests.structures import CaseInsensitiveDict

from mcpcli.clients.base_provider import BaseProvider
from mcpcli.core.types import ProviderResponse, TaskContext


def build_http_response(
    status: int = 200,
    body: str | dict[str, Any] = "",
    headers: dict[str, str] | None = None,
    reason: str = "OK",
) -> requests.Response:
    """Build a real ``requests.Response`` for patched ``requests.post`` calls."""
    response = requests.Response()
    response.status_code = status
    response.reason = reason
    raw = body if isinstance(body, str) else json.dumps(body)
    response._content = raw.encode("utf-8")
    response.headers = CaseInsensitiveDict(
        headers if headers is not None else {"content-type": "application/json"}
    )
    return response


class ScriptedProvider(BaseProvider):
    """Provider that replays canned responses and records every request it receives."""

    def __init__(
        self,
        responses: list[ProviderResponse] | None = None,
        repeat: ProviderResponse | None = None,
    ) -> None:
        super().__init__(model_name="scripted-model")
        self.responses = list(responses or [])
        self.repeat = repeat
        self.calls: list[dict[str, Any]] = []

    async def create_message(
        self,
        system: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]],
    ) -> ProviderResponse:
        self.calls.append({"system": system, "messages": copy.deepcopy(messages), "tools": tools})
        self.track_usage(self.model_name, 10, 5)
        if self.responses:
            return self.responses.pop(0)
        if self.repeat is not None:
            return self.repeat
        raise AssertionError("ScriptedProvider ran out of responses")


@pytest.fixture
def http_response():
    return build_http_response


@pytest.fixture
def scripted_provider():
    return ScriptedProvider


@pytest.fixture
def task_context() -> TaskContext:
    return TaskContext(
        gateway_url="http://gateway.test/mcpgw/mcp",
        gateway_base_url="http://gateway.test",
        gateway_token="gw-token",
        backend_token="backend-token",
    )
