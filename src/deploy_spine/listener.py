"""Deployer listener — logs and records monitor transitions for one deployable."""

from __future__ import annotations

from deploy_spine.deployables import Deployable
from deploy_spine.logging import get_logger

logger = get_logger(__name__)


class DeployerListener:
    """``DeployableMonitorListener`` that logs.

    ``events`` keeps the transitions seen, in order, so the orchestrator can
    copy them into the artifact result.
    """

    def __init__(self, deployable: Deployable) -> None:
        self.deployable = deployable
        self.events: list[str] = []

    def deployed(self) -> None:
        self.events.append("deployed")
        logger.debug("watchdog.deployed", file=str(self.deployable.file))

    def undeployed(self) -> None:
        self.events.append("undeployed")
        logger.debug("watchdog.undeployed", file=str(self.deployable.file))
