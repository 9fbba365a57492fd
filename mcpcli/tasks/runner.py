"""Task runners: execute a ``ScriptCommand`` and capture its output."""

import asyncio
import logging
import os
from abc import ABC, abstractmethod

from mcpcli.core.types import ScriptCommand, TaskRunResult

_runner_log = logging.getLogger("mcpcli.tasks")


class BaseTaskRunner(ABC):
    @abstractmethod
    async def run(
        self, category: str, command: ScriptCommand, values: dict[str, str]
    ) -> TaskRunResult:
        raise NotImplementedError


class SubprocessTaskRunner(BaseTaskRunner):
    """Runs task commands as child processes of the CLI.

    Args:
        cwd: Working directory for commands that do not set their own (the registry checkout)
        timeout: Seconds before the child is killed
    """

    def __init__(self, cwd: str | None = None, timeout: float = 600.0) -> None:
        self.cwd = cwd
        self.timeout = timeout

    async def run(
        self, category: str, command: ScriptCommand, values: dict[str, str]
    ) -> TaskRunResult:
        _runner_log.info("Running %s task: %s", category, command.display())
        process = await asyncio.create_subprocess_exec(
            command.program,
            *command.args,
            cwd=command.cwd or self.cwd,
            env={**os.environ, **command.env},
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            return TaskRunResult(
                stdout="",
                stderr=f"Task timed out after {self.timeout:g} s",
                exit_code=-1,
                command=command,
            )

        return TaskRunResult(
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
            exit_code=process.returncode,
            command=command,
        )
