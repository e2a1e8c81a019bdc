"""Provider error classes.

Raised by provider adapters and consumed by the fallback executor, which
maps them onto fallback log entry types.
"""

from typing import Any, Dict, Optional


class ProviderError(RuntimeError):
    """Base exception for provider errors."""

    def __init__(self, message: str, *, provider: Optional[str] = None):
        self.provider = provider
        super().__init__(message)


class ProviderUnavailableError(ProviderError):
    """Raised when a provider cannot run at all (binary missing, auth issues)."""


class ProviderTimeoutError(ProviderError):
    """Raised when a provider exceeds its allotted execution time.

    Attributes:
        provider: Provider that timed out
        elapsed: Actual elapsed time in seconds before timeout
        timeout: Configured timeout value in seconds
    """

    def __init__(
        self,
        message: str,
        *,
        provider: Optional[str] = None,
        elapsed: Optional[float] = None,
        timeout: Optional[float] = None,
    ):
        super().__init__(message, provider=provider)
        self.elapsed = elapsed
        self.timeout = timeout


class ProviderExecutionError(ProviderError):
    """Raised when a provider ran but returned a non-zero or invalid result.

    Carries whatever output the tool produced so callers can inspect it
    in the fallback log.

    Attributes:
        stdout: Captured standard output (may be partial)
        stderr: Captured standard error (may be partial)
        exit_code: Process exit code, if the tool exited
    """

    def __init__(
        self,
        message: str,
        *,
        provider: Optional[str] = None,
        stdout: str = "",
        stderr: str = "",
        exit_code: Optional[int] = None,
    ):
        super().__init__(message, provider=provider)
        self.stdout = stdout
        self.stderr = stderr
        self.exit_code = exit_code

    def to_details(self) -> Dict[str, Any]:
        """Return the captured process output as a details dict."""
        return {
            "stdout": self.stdout,
            "stderr": self.stderr,
            "exit_code": self.exit_code,
        }
