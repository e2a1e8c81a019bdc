"""Advisory backend error classes.

Raised by the LLM client used for provider-selection advice.
"""

from typing import Any, Optional


class AdvisoryClientError(Exception):
    """Base error for advisory backend operations.

    Attributes:
        operation: Client operation that failed (e.g. "generate").
    """

    def __init__(self, message: str, *, operation: Optional[str] = None):
        super().__init__(message)
        self.operation = operation


class AdvisoryRequestError(AdvisoryClientError):
    """The request could not be built or could not reach the backend."""


class AdvisoryResponseError(AdvisoryClientError):
    """The backend answered with an error status or an unusable payload.

    Attributes:
        status_code: HTTP status code, if the backend responded.
        response_data: Raw response body, if available.
    """

    def __init__(
        self,
        message: str,
        *,
        operation: Optional[str] = None,
        status_code: Optional[int] = None,
        response_data: Any = None,
    ):
        super().__init__(message, operation=operation)
        self.status_code = status_code
        self.response_data = response_data
