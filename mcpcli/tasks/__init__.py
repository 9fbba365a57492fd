from mcpcli.core.errors import TaskResolutionError
from mcpcli.core.types import TaskCommand, TaskContext
from mcpcli.tasks.catalog import TASK_CATALOG
from mcpcli.tasks.types import ScriptTask, TaskCategory, TaskField

__all__ = [
    "TASK_CATALOG",
    "ScriptTask",
    "TaskCategory",
    "TaskField",
    "describe_available_tasks",
    "get_task",
    "resolve_default_values",
    "resolve_task_command",
]


def get_task(category: str, action: str) -> ScriptTask | None:
    """Look up a task by category and action (``service`` + ``add``) or full key."""
    for task in TASK_CATALOG.get(category, []):
        if action in (task.action, task.key):
            return task
    return None


def resolve_default_values(task: ScriptTask, context: TaskContext | None = None) -> dict[str, str]:
    defaults: dict[str, str] = {}
    for task_field in task.fields:
        value = task_field.resolve_default(context)
        if value:
            defaults[task_field.name] = value
    return defaults


def resolve_task_command(
    command: TaskCommand, context: TaskContext | None = None
) -> tuple[ScriptTask, dict[str, str]]:
    """Map a parsed task invocation onto its definition and validated field values.

    Field names match case-insensitively; defaults fill in omitted fields.

    Raises:
        TaskResolutionError: unknown category, action or field, or a missing required field
    """
    if command.category not in TASK_CATALOG:
        raise TaskResolutionError(
            f"Unknown task category '{command.category}'. "
            f"Available categories: {', '.join(TASK_CATALOG)}"
        )

    task = get_task(command.category, command.action)
    if task is None:
        actions = ", ".join(t.action for t in TASK_CATALOG[command.category])
        raise TaskResolutionError(
            f"Unknown {command.category} task '{command.action}'. Available tasks: {actions}"
        )

    by_lower = {task_field.name.lower(): task_field for task_field in task.fields}
    values = resolve_default_values(task, context)
    for raw_key, raw_value in command.raw_args.items():
        task_field = by_lower.get(raw_key.lower())
        if task_field is None:
            expected = ", ".join(f.name for f in task.fields) or "none"
            raise TaskResolutionError(
                f"Unknown field '{raw_key}' for /{task.category} {task.action}. Expected: {expected}"
            )
        values[task_field.name] = raw_value.strip()

    missing = [f.name for f in task.fields if f.required and not values.get(f.name)]
    if missing:
        raise TaskResolutionError(
            f"Missing required field(s) for /{task.category} {task.action}: {', '.join(missing)}. "
            f"Usage: {task.usage()}"
        )
    return task, values


def describe_available_tasks() -> str:
    lines: list[str] = []
    for category, tasks in TASK_CATALOG.items():
        lines.append(f"Category: {category}")
        for task in tasks:
            lines.append(f"  - {task.action}: {task.description}")
    return "\n".join(lines)
