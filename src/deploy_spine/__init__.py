"""deploy-spine — deployer selection, deployable resolution and readiness monitoring.

deploy-spine drives a set of deployable artifacts (web archives, enterprise
archives, resource definitions, exploded directories) onto a runtime container
through a pluggable deployer, then confirms each one reached the expected
state by polling a readiness probe.

Key Concepts:
    DeployerSelector: Picks the deployer for a container — explicit override
        or the default registered for the container family.
    DeployableSetResolver: Merges explicit descriptors with the project's own
        build output (the auto-deployable), removing duplicates.
    DeploymentOrchestrator: Resolve → deployer action → monitor wait, per
        artifact, sequential and fail-fast.
    DeployableMonitor: Bounded polling of one artifact, edge-triggered
        ``deployed()`` / ``undeployed()`` callbacks.
    DeployerListener: Records and logs monitor transitions.
    OrchestrationResult: Structured per-artifact outcomes for reporting.

Architecture::

    ┌──────────────────────────────────────────────────────────────┐
    │                      deploy-spine                             │
    ├──────────────┬──────────────┬─────────────┬──────────────────┤
    │  Deployer    │  Deployable  │ Orchestrator│   Monitor +      │
    │  Selector    │  Resolver    │             │   Listener       │
    ├──────────────┴──────────────┴─────────────┴──────────────────┤
    │   Deployer protocol  │  Readiness probes (httpx)              │
    ├──────────────────────────────────────────────────────────────┤
    │   Config (pydantic) │ Results │ Errors │ Logging (structlog)  │
    └──────────────────────────────────────────────────────────────┘

Example:
    >>> from deploy_spine import DeploymentOrchestrator, DeployerRegistry, DeployerSelector
    >>> registry = DeployerRegistry()
    >>> orchestrator = DeploymentOrchestrator(selector=DeployerSelector(registry))

Tags:
    deploy, deployer, deployables, orchestration, monitor, readiness
"""

from deploy_spine.config import (
    DeployableConfig,
    DeployerConfig,
    DeploymentPlan,
    DeploySettings,
    IdentityPolicy,
    MonitorConfig,
)
from deploy_spine.deployables import DefaultDeployableFactory, Deployable
from deploy_spine.deployers import Deployer, DeployerAction, StubDeployer
from deploy_spine.errors import (
    DeploymentActionError,
    DeploySpineError,
    MonitorTimeoutWarning,
    PlanError,
    ResolutionError,
    UnsupportedBackendError,
)
from deploy_spine.listener import DeployerListener
from deploy_spine.model import (
    Container,
    ContainerType,
    DeployableType,
    DeployerType,
    Project,
    ProjectArtifact,
)
from deploy_spine.monitor import (
    DefaultDeployableMonitorFactory,
    DeployableMonitor,
    MonitorStatus,
)
from deploy_spine.orchestrator import DeploymentOrchestrator
from deploy_spine.resolver import DeployableSetResolver, ResolvedDeployables
from deploy_spine.results import (
    ArtifactOutcome,
    ArtifactResult,
    OrchestrationResult,
    OverallStatus,
)
from deploy_spine.selector import DeployerRegistry, DeployerSelector

__all__ = [
    # Model
    "Container",
    "ContainerType",
    "DeployableType",
    "DeployerType",
    "Project",
    "ProjectArtifact",
    # Config
    "DeployableConfig",
    "DeployerConfig",
    "DeploymentPlan",
    "DeploySettings",
    "IdentityPolicy",
    "MonitorConfig",
    # Components
    "DefaultDeployableFactory",
    "DefaultDeployableMonitorFactory",
    "Deployable",
    "DeployableMonitor",
    "DeployableSetResolver",
    "Deployer",
    "DeployerAction",
    "DeployerListener",
    "DeployerRegistry",
    "DeployerSelector",
    "DeploymentOrchestrator",
    "MonitorStatus",
    "ResolvedDeployables",
    "StubDeployer",
    # Results
    "ArtifactOutcome",
    "ArtifactResult",
    "OrchestrationResult",
    "OverallStatus",
    # Errors
    "DeploySpineError",
    "DeploymentActionError",
    "MonitorTimeoutWarning",
    "PlanError",
    "ResolutionError",
    "UnsupportedBackendError",
]
