"""Shared error types for the runtime safety layer."""


class RuntimeSafetyError(Exception):
    """Base error for all runtime safety failures."""


class SandboxError(RuntimeSafetyError):
    """A sandbox operation failed."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(detail or "Sandbox error")


class SandboxEscapeError(SandboxError):
    """A relative path resolved outside the sandbox root."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Path escapes sandbox: {path}")


class ToolInputError(RuntimeSafetyError):
    """An argument passed validation but the handler still cannot use it."""


class ToolExecutionError(RuntimeSafetyError):
    """Underlying I/O or network work failed during a validated call."""

    def __init__(self, name: str, detail: str = "") -> None:
        self.name = name
        self.detail = detail
        super().__init__(detail or f"Tool execution failed: {name}")
