"""Deployment orchestrator — drives every resolved deployable through a deployer.

Provides the high-level entry point that ties selection, resolution, deployer
actions and readiness monitoring into one ``run()`` returning a structured
``OrchestrationResult``.

Per deployable, in resolution order::

    1. resolve descriptor → Deployable bound to container.id   (ResolutionError)
    2. create monitor (never for the auto-deployable;
       any failure here means "no monitor")
    3. register a DeployerListener on the monitor
    4. deployer.<action>(deployable)                            (DeploymentActionError)
    5. monitor.wait(expected state)                             (MonitorTimeoutWarning
                                                                 → recorded, run continues)

Architecture Decisions:
    - Sequential: later artifacts may depend on earlier ones being live.
    - Fail-fast: the first resolution or action failure stops the run. The
      failing artifact is ``failed``, the rest ``skipped``, and the error is
      raised with the partial result on ``error.result``.
    - Best-effort monitoring: a missing probe mechanism or a timeout never
      fails a run whose deployer calls succeeded.
    - No retries: retry policy belongs to the deployer backend.

Example::

    orchestrator = DeploymentOrchestrator(selector=DeployerSelector(registry))
    result = orchestrator.execute(container, project, plan.deployables)
    print(result.summary)

Related Modules:
    - :mod:`deploy_spine.selector` — DeployerSelector
    - :mod:`deploy_spine.resolver` — DeployableSetResolver
    - :mod:`deploy_spine.monitor` — DeployableMonitor
    - :mod:`deploy_spine.results` — OrchestrationResult

Tags:
    orchestration, deployment, runner, monitor, fail-fast
"""

from __future__ import annotations

import time
import uuid
from collections.abc import Callable, Iterable

from deploy_spine.config import DeployableConfig, DeployerConfig, DeploySettings
from deploy_spine.deployables import DefaultDeployableFactory, Deployable, DeployableFactory
from deploy_spine.deployers import Deployer, DeployerAction, perform
from deploy_spine.errors import (
    DeploymentActionError,
    DeploySpineError,
    MonitorTimeoutWarning,
    ResolutionError,
    UnsupportedBackendError,
)
from deploy_spine.listener import DeployerListener
from deploy_spine.logging import LogContext, get_logger
from deploy_spine.model import Container, Project
from deploy_spine.monitor import (
    DefaultDeployableMonitorFactory,
    DeployableMonitor,
    DeployableMonitorFactory,
)
from deploy_spine.resolver import DeployableSetResolver, ResolvedDeployables
from deploy_spine.results import ArtifactOutcome, ArtifactResult, OrchestrationResult
from deploy_spine.selector import DeployerRegistry, DeployerSelector

logger = get_logger(__name__)


class DeploymentOrchestrator:
    """Performs a deployer action on all deployables of a run.

    Parameters
    ----------
    selector
        Deployer selector used by ``execute()``. Defaults to an empty registry,
        which only works with an explicit deployer override.
    resolver
        Deployable set resolver used by ``execute()``.
    deployable_factory
        Descriptor → ``Deployable`` resolution.
    monitor_factory
        Descriptor → ``DeployableMonitor`` (or None).
    listener_factory
        Builds the listener registered on each monitor.
    settings
        Defaults for the factories built here.
    """

    def __init__(
        self,
        *,
        selector: DeployerSelector | None = None,
        resolver: DeployableSetResolver | None = None,
        deployable_factory: DeployableFactory | None = None,
        monitor_factory: DeployableMonitorFactory | None = None,
        listener_factory: Callable[[Deployable], DeployerListener] = DeployerListener,
        settings: DeploySettings | None = None,
    ) -> None:
        self.settings = settings or DeploySettings()
        policy = self.settings.identity_policy
        self.selector = selector or DeployerSelector(DeployerRegistry())
        self.resolver = resolver or DeployableSetResolver(policy)
        self.deployable_factory = deployable_factory or DefaultDeployableFactory(policy)
        self.monitor_factory = monitor_factory or DefaultDeployableMonitorFactory(self.settings)
        self.listener_factory = listener_factory

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def execute(
        self,
        container: Container,
        project: Project,
        descriptors: Iterable[DeployableConfig] | None,
        action: DeployerAction = DeployerAction.DEPLOY,
        override: DeployerConfig | None = None,
        run_id: str | None = None,
    ) -> OrchestrationResult:
        """Resolve, select and run in one call.

        Returns a no-op result without selecting a deployer when there is
        nothing to act on.
        """
        resolved = self.resolver.resolve(descriptors, container, project)
        if resolved.is_noop:
            return self._noop_result(container, action, run_id)
        deployer = self.selector.select(container, override)
        return self.run(container, deployer, resolved, action, project, run_id=run_id)

    def run(
        self,
        container: Container,
        deployer: Deployer,
        resolved: ResolvedDeployables | Iterable[DeployableConfig],
        action: DeployerAction = DeployerAction.DEPLOY,
        project: Project | None = None,
        run_id: str | None = None,
    ) -> OrchestrationResult:
        """Perform *action* on every deployable, in order.

        A plain descriptor iterable is resolved first against *project*, so
        the auto-deployable and duplicate removal apply as in ``execute()``.

        Raises
        ------
        ResolutionError
            A descriptor could not be resolved. ``error.result`` holds the
            partial result.
        DeploymentActionError
            The deployer failed for one artifact. ``error.result`` holds the
            partial result.
        """
        project = project or Project()
        if not isinstance(resolved, ResolvedDeployables):
            resolved = self.resolver.resolve(resolved, container, project)
        if resolved.is_noop:
            return self._noop_result(container, action, run_id)

        result = OrchestrationResult(
            run_id=run_id or uuid.uuid4().hex[:12],
            container_id=container.id,
            container_name=container.name,
            deployer=type(deployer).__name__,
            action=action.value,
        )
        descriptors = list(resolved)

        with LogContext(run_id=result.run_id, container=container.id):
            logger.debug("run.started", container_name=container.name, deployables=len(descriptors))

            for index, descriptor in enumerate(descriptors):
                artifact = ArtifactResult(
                    name=descriptor.label,
                    action=action.value,
                    auto=descriptor.auto,
                )
                result.artifacts.append(artifact)
                try:
                    self._perform_on_single(container, deployer, descriptor, project, action, artifact, result)
                except (ResolutionError, DeploymentActionError) as exc:
                    artifact.outcome = ArtifactOutcome.FAILED
                    artifact.error = exc.message
                    for remaining in descriptors[index + 1:]:
                        result.artifacts.append(
                            ArtifactResult(
                                name=remaining.label,
                                action=action.value,
                                auto=remaining.auto,
                            )
                        )
                    result.error = exc.message
                    result.mark_complete()
                    exc.with_context(run_id=result.run_id, action=action.value)
                    exc.result = result
                    logger.error("run.failed", deployable=descriptor.label, error=exc.message)
                    raise

            result.mark_complete()
            logger.info("run.complete", summary=result.summary, timeouts=len(result.timeouts))
        return result

    # ------------------------------------------------------------------
    # Private methods
    # ------------------------------------------------------------------

    def _perform_on_single(
        self,
        container: Container,
        deployer: Deployer,
        descriptor: DeployableConfig,
        project: Project,
        action: DeployerAction,
        artifact: ArtifactResult,
        result: OrchestrationResult,
    ) -> None:
        start = time.monotonic()
        deployable = self._resolve(container, descriptor, project)
        artifact.identity = deployable.identity
        artifact.type = deployable.type.value
        artifact.location = str(deployable.file)

        # The auto-deployable has no per-artifact monitoring configuration.
        monitor = None if descriptor.auto else self._create_monitor(container, descriptor, deployable)
        listener = None
        if monitor is not None:
            listener = self.listener_factory(deployable)
            monitor.register_listener(listener)
            artifact.monitored = True

        logger.info("deployable.action", action=action.value, deployable=deployable.name)
        artifact.action_invoked = True
        try:
            perform(deployer, action, deployable)
        except Exception as exc:
            raise DeploymentActionError(
                f"Failed to {action.value} [{deployable.name}]: {exc}",
                identity=deployable.identity,
                cause=exc,
            ).with_context(container=container.id) from exc

        artifact.outcome = ArtifactOutcome.SUCCEEDED
        if monitor is not None:
            self._wait(monitor, action, artifact, result)
            artifact.events = list(listener.events) if listener is not None else []
        artifact.duration_seconds = time.monotonic() - start

    def _resolve(
        self,
        container: Container,
        descriptor: DeployableConfig,
        project: Project,
    ) -> Deployable:
        try:
            return self.deployable_factory.create(container.id, descriptor, project)
        except DeploySpineError as exc:
            if isinstance(exc, ResolutionError):
                raise
            raise ResolutionError(exc.message, cause=exc).with_context(
                container=container.id, deployable=descriptor.label
            ) from exc
        except Exception as exc:
            raise ResolutionError(
                f"Cannot resolve deployable [{descriptor.label}]: {exc}",
                cause=exc,
            ).with_context(container=container.id, deployable=descriptor.label) from exc

    def _create_monitor(
        self,
        container: Container,
        descriptor: DeployableConfig,
        deployable: Deployable,
    ) -> DeployableMonitor | None:
        try:
            return self.monitor_factory.create(container, descriptor, deployable)
        except UnsupportedBackendError as exc:
            logger.info("monitor.unsupported", deployable=deployable.name, reason=exc.message)
            return None
        except Exception as exc:
            logger.warning(
                "monitor.create_failed",
                deployable=deployable.name,
                error=str(exc),
                exc_info=True,
            )
            return None

    def _wait(
        self,
        monitor: DeployableMonitor,
        action: DeployerAction,
        artifact: ArtifactResult,
        result: OrchestrationResult,
    ) -> None:
        try:
            monitor.wait(action.expected_status)
        except MonitorTimeoutWarning as warning:
            artifact.outcome = ArtifactOutcome.SUCCEEDED_WITH_TIMEOUT
            artifact.warning = warning.message
            result.warnings.append(warning.message)
            logger.warning(
                "monitor.timeout",
                deployable=monitor.deployable.name,
                timeout_seconds=warning.timeout_seconds,
                attempts=monitor.attempts,
            )
        artifact.monitor_status = monitor.status.value

    def _noop_result(
        self,
        container: Container,
        action: DeployerAction,
        run_id: str | None,
    ) -> OrchestrationResult:
        logger.info("run.nothing_to_do", container=container.id, action=action.value)
        result = OrchestrationResult(
            run_id=run_id or uuid.uuid4().hex[:12],
            container_id=container.id,
            container_name=container.name,
            action=action.value,
            noop=True,
        )
        result.mark_complete()
        return result
