"""Deployer Protocol — the single backend interface.

Manifesto:
Whatever a container needs to receive an artifact (file copy into a deploy
directory, an embedded server API, a remote admin call), the orchestrator
only sees ``Deployer``. It is a ``typing.Protocol``: any object with the right
methods satisfies it, no base class required.

ARCHITECTURE
────────────
::

    Deployer (Protocol)
      ├── .deploy(deployable)
      ├── .undeploy(deployable)
      ├── .start(deployable)
      ├── .stop(deployable)
      └── .redeploy(deployable)

    DeployerAction ─ names the method, and the state a monitor waits for
      deploy / start / redeploy  → deployed
      undeploy / stop            → undeployed

    Implementations:
      StubDeployer ─ records calls, never touches a container (tests, --dry-run)
      <backend>    ─ provided by container integrations, registered in a
                     DeployerRegistry

Tags:
    deployer, protocol, interface, backend, stub
"""

from __future__ import annotations

from enum import Enum
from typing import Protocol, runtime_checkable

from deploy_spine.deployables import Deployable
from deploy_spine.model import Container, DeployerType
from deploy_spine.monitor import MonitorStatus


class DeployerAction(str, Enum):
    """Action to perform on every resolved deployable."""

    DEPLOY = "deploy"
    UNDEPLOY = "undeploy"
    START = "start"
    STOP = "stop"
    REDEPLOY = "redeploy"

    @property
    def expected_status(self) -> MonitorStatus:
        """State a monitor must observe to confirm the action."""
        if self in (DeployerAction.UNDEPLOY, DeployerAction.STOP):
            return MonitorStatus.UNDEPLOYED
        return MonitorStatus.DEPLOYED


@runtime_checkable
class Deployer(Protocol):
    """Deploys, undeploys, starts and stops deployables on one container.

    A deployer is bound to its container at construction and is reused for
    every artifact of a run, invoked sequentially. It must not keep mutable
    state across calls beyond that binding.
    """

    @property
    def container(self) -> Container:
        ...

    @property
    def deployer_type(self) -> DeployerType:
        ...

    def deploy(self, deployable: Deployable) -> None:
        ...

    def undeploy(self, deployable: Deployable) -> None:
        ...

    def start(self, deployable: Deployable) -> None:
        ...

    def stop(self, deployable: Deployable) -> None:
        ...

    def redeploy(self, deployable: Deployable) -> None:
        ...


def perform(deployer: Deployer, action: DeployerAction, deployable: Deployable) -> None:
    """Invoke *action* on *deployer*."""
    getattr(deployer, action.value)(deployable)


class StubDeployer:
    """No-op deployer for testing and dry runs.

    Records every call so tests can assert on order; ``fail_on`` makes the
    call for a given file name raise ``RuntimeError``.

    Example:
        >>> deployer = StubDeployer(Container("tomcat9x"))
        >>> deployer.deploy(handle)
        >>> deployer.calls
        [('deploy', 'shop.war')]
    """

    def __init__(
        self,
        container: Container,
        deployer_type: DeployerType | None = None,
        fail_on: set[str] | None = None,
    ) -> None:
        self._container = container
        self._deployer_type = deployer_type or container.default_deployer_type
        self._fail_on = set(fail_on or ())
        self._calls: list[tuple[str, str]] = []

    @property
    def container(self) -> Container:
        return self._container

    @property
    def deployer_type(self) -> DeployerType:
        return self._deployer_type

    def _record(self, action: str, deployable: Deployable) -> None:
        self._calls.append((action, deployable.name))
        if deployable.name in self._fail_on:
            raise RuntimeError(f"stub {action} failed for {deployable.name}")

    def deploy(self, deployable: Deployable) -> None:
        self._record("deploy", deployable)

    def undeploy(self, deployable: Deployable) -> None:
        self._record("undeploy", deployable)

    def start(self, deployable: Deployable) -> None:
        self._record("start", deployable)

    def stop(self, deployable: Deployable) -> None:
        self._record("stop", deployable)

    def redeploy(self, deployable: Deployable) -> None:
        self._record("redeploy", deployable)

    # === TEST HELPERS ===

    @property
    def calls(self) -> list[tuple[str, str]]:
        """Calls made so far as ``(action, file name)`` pairs."""
        return self._calls.copy()

    def clear(self) -> None:
        self._calls.clear()
