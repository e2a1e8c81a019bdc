"""Unified error hierarchy for kc-orchestrator.

All custom exception classes are defined in domain-specific modules within
this package. This __init__.py re-exports everything for convenient access.

Usage:
    # Import from domain modules for specificity
    from kc_orchestrator.core.errors.provider import ProviderTimeoutError

    # Or import from the package
    from kc_orchestrator.core.errors import AllProvidersFailedError
"""

# --- Advisory errors ---
from kc_orchestrator.core.errors.advisory import (
    AdvisoryClientError,
    AdvisoryRequestError,
    AdvisoryResponseError,
)

# --- Orchestration errors ---
from kc_orchestrator.core.errors.orchestration import (
    AllProvidersCircuitOpenError,
    AllProvidersFailedError,
    NoProvidersAvailableError,
)

# --- Provider errors ---
from kc_orchestrator.core.errors.provider import (
    ProviderError,
    ProviderExecutionError,
    ProviderTimeoutError,
    ProviderUnavailableError,
)

# --- Task errors ---
from kc_orchestrator.core.errors.task import (
    ConfigurationError,
    TaskExecutionError,
    TaskValidationError,
)

__all__ = [
    # Provider errors
    "ProviderError",
    "ProviderUnavailableError",
    "ProviderExecutionError",
    "ProviderTimeoutError",
    # Orchestration errors
    "AllProvidersFailedError",
    "AllProvidersCircuitOpenError",
    "NoProvidersAvailableError",
    # Advisory errors
    "AdvisoryClientError",
    "AdvisoryRequestError",
    "AdvisoryResponseError",
    # Task errors
    "TaskExecutionError",
    "TaskValidationError",
    "ConfigurationError",
]
