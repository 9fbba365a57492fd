from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Any

from mcpcli.core.types import ModelUsageSummary, ProviderResponse, UsageSummary


class BaseProvider(ABC):
    """
    Base class for language-model providers driving the agent loop. Providers speak a
    neutral message format (Anthropic-style content blocks) and translate as needed.
    """

    def __init__(self, model_name: str, timeout: float | None = None, **kwargs: Any) -> None:
        self.model_name = model_name
        self.timeout = timeout
        self.kwargs = kwargs

        # Per-model usage tracking
        self.model_call_counts: dict[str, int] = defaultdict(int)
        self.model_input_tokens: dict[str, int] = defaultdict(int)
        self.model_output_tokens: dict[str, int] = defaultdict(int)

    @abstractmethod
    async def create_message(
        self,
        system: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]],
    ) -> ProviderResponse:
        """Send one model turn and return its text and tool-use blocks."""
        raise NotImplementedError

    def track_usage(self, model: str, input_tokens: int, output_tokens: int) -> None:
        self.model_call_counts[model] += 1
        self.model_input_tokens[model] += input_tokens
        self.model_output_tokens[model] += output_tokens

    def get_usage_summary(self) -> UsageSummary:
        return UsageSummary(
            model_usage_summaries={
                model: ModelUsageSummary(
                    total_calls=self.model_call_counts[model],
                    total_input_tokens=self.model_input_tokens[model],
                    total_output_tokens=self.model_output_tokens[model],
                )
                for model in self.model_call_counts
            }
        )
