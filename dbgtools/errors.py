"""Exceptions raised by the debug tools."""


class DbgToolsError(Exception):
    """Base class for all tool errors."""
    pass


class UsageError(DbgToolsError):
    """Raised when a required argument is missing or invalid."""
    pass


class MissingDependencyError(DbgToolsError):
    """Raised when a required external binary cannot be located."""

    def __init__(self, program: str):
        self.program = program
        super().__init__(f"Unable to locate {program}. Aborting.")


class StepFailed(DbgToolsError):
    """Raised in strict mode when a playlist command exits nonzero."""

    def __init__(self, step, returncode: int):
        self.step = step
        self.returncode = returncode
        super().__init__(f"Command failed with exit code {returncode}: {step}")
