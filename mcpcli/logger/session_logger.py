"""
Logger for agent turns.

Writes one JSON line per operator turn (history in, replies and tool outputs out) for
later review of what the assistant did against the gateway.
"""

import json
import os
import uuid
from datetime import datetime
from typing import Any

from mcpcli.core.types import AgentMessage, AgentResult


class SessionLogger:
    """Logger that writes agent turns to a JSON-lines file."""

    def __init__(self, log_dir: str, file_name: str = "mcpcli"):
        self.log_dir = log_dir
        os.makedirs(log_dir, exist_ok=True)

        timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
        run_id = str(uuid.uuid4())[:8]
        self.log_file_path = os.path.join(log_dir, f"{file_name}_{timestamp}_{run_id}.jsonl")

        self._turn_count = 0

    def log_turn(
        self,
        history: list[AgentMessage],
        result: AgentResult,
        usage: dict[str, Any] | None = None,
    ) -> None:
        """Append one agent turn to the file."""
        self._turn_count += 1

        entry = {
            "turn": self._turn_count,
            "timestamp": datetime.now().isoformat(),
            "history": list(history),
            "messages": list(result.messages),
            "tool_outputs": [output.to_dict() for output in result.tool_outputs],
            "iterations": result.iterations,
        }
        if usage:
            entry["usage"] = usage

        with open(self.log_file_path, "a") as f:
            json.dump(entry, f)
            f.write("\n")

    @property
    def turn_count(self) -> int:
        return self._turn_count
