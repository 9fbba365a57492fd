from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Literal

from mcpcli.core.types import ScriptCommand, TaskContext

TaskCategory = Literal["service", "import", "user", "diagnostic"]

DefaultValue = str | Callable[[TaskContext], str]
TaskBuilder = Callable[[dict[str, str], TaskContext], ScriptCommand]


@dataclass(frozen=True)
class TaskField:
    name: str
    label: str
    required: bool = True
    default: DefaultValue | None = None
    placeholder: str | None = None

    def resolve_default(self, context: TaskContext | None) -> str | None:
        if callable(self.default):
            return self.default(context) if context is not None else None
        return self.default


@dataclass(frozen=True)
class ScriptTask:
    """A pre-defined external administrative operation."""

    key: str
    label: str
    build: TaskBuilder
    description: str = ""
    fields: tuple[TaskField, ...] = field(default_factory=tuple)

    @property
    def category(self) -> str:
        return self.key.split("-", 1)[0]

    @property
    def action(self) -> str:
        return self.key.split("-", 1)[1]

    def usage(self) -> str:
        parts = [f"/{self.category} {self.action}"]
        for task_field in self.fields:
            token = f"{task_field.name}=<{task_field.placeholder or task_field.name}>"
            optional = not task_field.required or task_field.default is not None
            parts.append(f"[{token}]" if optional else token)
        return " ".join(parts)
