"""Task and configuration error classes."""

from typing import Optional


class TaskExecutionError(Exception):
    """A task could not be executed.

    Attributes:
        task_id: Identifier of the failing task.
        attempt: Attempt number, if the caller tracks one.
        provider: Provider that was running the task.
    """

    def __init__(
        self,
        message: str,
        *,
        task_id: Optional[str] = None,
        attempt: Optional[int] = None,
        provider: Optional[str] = None,
    ):
        super().__init__(message)
        self.task_id = task_id
        self.attempt = attempt
        self.provider = provider


class TaskValidationError(Exception):
    """A task failed validation before or after execution."""

    def __init__(
        self,
        message: str,
        *,
        task_id: Optional[str] = None,
        validation_type: Optional[str] = None,
    ):
        super().__init__(message)
        self.task_id = task_id
        self.validation_type = validation_type


class ConfigurationError(Exception):
    """Orchestrator configuration is invalid."""

    def __init__(self, message: str, *, config_path: Optional[str] = None):
        super().__init__(message)
        self.config_path = config_path
