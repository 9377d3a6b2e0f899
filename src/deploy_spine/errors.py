"""
Structured error types for deploy-spine.

Every failure the orchestration core can surface is a ``DeploySpineError``
carrying a category, a structured context (container, deployable, action,
run id) and an optional chained cause. The taxonomy mirrors the propagation
policy of the orchestrator:

Architecture:
    ::

        ┌───────────────────────────────────────────────────────────────┐
        │                      DeploySpineError                          │
        │            (category, context, cause, result)                  │
        ├───────────────────────────────────────────────────────────────┤
        │  UnsupportedBackendError   CONFIG      selection: fatal        │
        │                                        monitor creation: ignored│
        │  ResolutionError           RESOLUTION  fatal, aborts the run   │
        │  DeploymentActionError     ACTION      fatal, aborts the run   │
        │  MonitorTimeoutWarning     MONITOR     recorded per artifact   │
        │  PlanError                 CONFIG      invalid plan file       │
        └───────────────────────────────────────────────────────────────┘

Guardrails:
    ❌ DON'T: Retry inside the core. Retry policy belongs to the backend.
    ✅ DO: Chain the underlying exception with ``cause=``.

    ❌ DON'T: Raise ``MonitorTimeoutWarning`` out of a run.
    ✅ DO: Record it on the artifact result; the action already executed.

Examples:
    >>> err = ResolutionError("No file for artifact").with_context(deployable="acme:shop:war")
    >>> err.context.deployable
    'acme:shop:war'
    >>> err.to_dict()["category"]
    'RESOLUTION'

Tags:
    error-handling, exception-hierarchy, deploy-spine
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from deploy_spine.results import OrchestrationResult


class ErrorCategory(str, Enum):
    """Error categories used for classification and reporting."""

    CONFIG = "CONFIG"  # Missing registration, bad override, bad plan
    RESOLUTION = "RESOLUTION"  # Descriptor -> runtime artifact handle
    ACTION = "ACTION"  # Deployer call failed
    MONITOR = "MONITOR"  # Readiness not observed in time
    INTERNAL = "INTERNAL"


@dataclass
class ErrorContext:
    """Structured metadata attached to a deploy-spine error.

    Attributes:
        container: Container id the run targeted
        deployable: Identity of the deployable being processed
        action: Deployer action name (deploy, undeploy, ...)
        run_id: Orchestration run identifier
        metadata: Additional key-value pairs
    """

    container: str | None = None
    deployable: str | None = None
    action: str | None = None
    run_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["container", "deployable", "action", "run_id"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class DeploySpineError(Exception):
    """
    Base exception for all deploy-spine errors.

    Subclasses set ``default_category``. Errors raised out of an orchestration
    run carry the partial ``OrchestrationResult`` on ``result`` so callers can
    inspect which artifacts were acted on before the failure.
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
        result: OrchestrationResult | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause
        self.result = result

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> DeploySpineError:
        """
        Add context to this error (fluent API).

        Usage:
            raise ResolutionError("Missing file").with_context(
                container="tomcat9x",
                deployable="acme:shop:war",
            )
        """
        for key, value in kwargs.items():
            if key != "metadata" and hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


class UnsupportedBackendError(DeploySpineError):
    """No deployer (or monitor) is available for the requested container family."""

    default_category = ErrorCategory.CONFIG


class PlanError(DeploySpineError):
    """A deployment plan file could not be loaded or validated."""

    default_category = ErrorCategory.CONFIG


class ResolutionError(DeploySpineError):
    """A descriptor cannot be turned into a runtime artifact handle."""

    default_category = ErrorCategory.RESOLUTION


class DeploymentActionError(DeploySpineError):
    """The deployer's action call failed for one artifact.

    ``identity`` is the identity key of the failing descriptor.
    """

    default_category = ErrorCategory.ACTION

    def __init__(self, message: str, *, identity: str | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.identity = identity
        if identity is not None and self.context.deployable is None:
            self.context.deployable = identity


class MonitorTimeoutWarning(DeploySpineError, UserWarning):
    """Expected state was not observed before the monitor's deadline.

    Non-fatal: the orchestrator records it against the artifact and moves on.
    """

    default_category = ErrorCategory.MONITOR

    def __init__(self, message: str, *, timeout_seconds: float | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.timeout_seconds = timeout_seconds


def categorize_error(error: Exception) -> ErrorCategory:
    """Return the category of *error*, ``INTERNAL`` for foreign exceptions."""
    if isinstance(error, DeploySpineError):
        return error.category
    return ErrorCategory.INTERNAL
