class BeginError(Exception):
    """Base exception for the build orchestration engine."""


class ConfigurationError(BeginError):
    pass


class TaskNotFoundError(BeginError):
    def __init__(self, task_name: str):
        self.task_name = task_name
        super().__init__(f"Task not found: {task_name}")


class CyclicDependencyError(BeginError):
    """Raised when the task dependency graph contains a cycle."""


class ToolError(BeginError):
    def __init__(self, tool: str, detail: str):
        self.tool = tool
        super().__init__(f"{tool}: {detail}")


class StageError(BeginError):
    def __init__(self, stage: str, detail: str):
        self.stage = stage
        super().__init__(f"Stage '{stage}' failed: {detail}")


class ProcessError(BeginError):
    def __init__(self, command: list[str] | tuple[str, ...], detail: str):
        self.command = list(command)
        super().__init__(f"Command {' '.join(self.command)!r} failed: {detail}")


class LiveReloadError(BeginError):
    pass
