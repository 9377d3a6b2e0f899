"""Deployable set resolution — explicit descriptors plus the auto-deployable.

Merges the explicitly configured descriptors with the implicit
"auto-deployable" (the project's own build output) and removes duplicates.

Algorithm:
    1. Copy explicit descriptors into an ordered list, dropping any whose
       identity key was already seen (first occurrence wins).
    2. If the project packaging is deployable-classified and no kept
       descriptor represents the project's own output, append a synthetic
       descriptor (``auto=True``) for it — always last, never monitored.
    3. Nothing explicit and no auto-deployable → ``is_noop``. Not an error:
       callers can skip container startup entirely.

"Represents the project's own output" holds when the identity keys match
under the active policy, or when both descriptors resolve to the same
normalised file.

Related Modules:
    - :mod:`deploy_spine.deployables` — identity keys and path normalisation
    - :mod:`deploy_spine.orchestrator` — consumes ``ResolvedDeployables``
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from deploy_spine.config import DeployableConfig, IdentityPolicy
from deploy_spine.deployables import identity_key, normalize_path, resolve_location
from deploy_spine.logging import get_logger
from deploy_spine.model import Container, Project

logger = get_logger(__name__)


@dataclass(frozen=True)
class ResolvedDeployables:
    """Ordered, duplicate-free descriptors for one run (auto-deployable last)."""

    explicit: tuple[DeployableConfig, ...] = ()
    auto_deployable: DeployableConfig | None = None

    @property
    def descriptors(self) -> tuple[DeployableConfig, ...]:
        if self.auto_deployable is None:
            return self.explicit
        return (*self.explicit, self.auto_deployable)

    @property
    def is_noop(self) -> bool:
        """True when there is nothing to deploy or undeploy."""
        return not self.explicit and self.auto_deployable is None

    def __iter__(self) -> Iterator[DeployableConfig]:
        return iter(self.descriptors)

    def __len__(self) -> int:
        return len(self.descriptors)


def auto_descriptor(project: Project) -> DeployableConfig:
    """Synthetic descriptor for the project's own build output."""
    fields = {
        "group_id": project.group_id,
        "artifact_id": project.artifact_id,
        "type": project.deployable_type,
        "location": project.artifact_path,
        "auto": True,
    }
    if project.artifact_path is None and (project.group_id is None or project.artifact_id is None):
        # No coordinates and no path: resolution raises ResolutionError for it.
        return DeployableConfig.model_construct(**fields)
    return DeployableConfig(**fields)


class DeployableSetResolver:
    """Produces the ordered deployable set for a run.

    Parameters
    ----------
    policy
        Identity policy for duplicate detection and own-output matching.
    """

    def __init__(self, policy: IdentityPolicy = IdentityPolicy.COORDINATES) -> None:
        self.policy = policy

    def resolve(
        self,
        descriptors: Iterable[DeployableConfig] | None,
        container: Container,
        project: Project,
    ) -> ResolvedDeployables:
        seen: set[str] = set()
        explicit: list[DeployableConfig] = []
        for descriptor in descriptors or ():
            key = identity_key(descriptor, project, self.policy)
            if key in seen:
                logger.debug("deployable.duplicate", deployable=descriptor.label, identity=key)
                continue
            seen.add(key)
            explicit.append(descriptor)

        auto = None
        if project.is_deployable_packaging:
            candidate = auto_descriptor(project)
            if not any(self.represents(d, candidate, project) for d in explicit):
                auto = candidate

        resolved = ResolvedDeployables(explicit=tuple(explicit), auto_deployable=auto)
        if resolved.is_noop:
            logger.info("deployables.nothing_to_do", container=container.id)
        else:
            logger.debug(
                "deployables.resolved",
                container=container.id,
                explicit=len(explicit),
                auto=auto is not None,
            )
        return resolved

    def represents(
        self,
        descriptor: DeployableConfig,
        other: DeployableConfig,
        project: Project,
    ) -> bool:
        """Whether *descriptor* and *other* name the same artifact."""
        if identity_key(descriptor, project, self.policy) == identity_key(other, project, self.policy):
            return True
        left = resolve_location(descriptor, project)
        right = resolve_location(other, project)
        return left is not None and right is not None and normalize_path(left) == normalize_path(right)
