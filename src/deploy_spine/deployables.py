"""Runtime artifact handles and descriptor resolution.

A ``DeployableConfig`` says *what* the user wants acted on; a ``Deployable``
is the concrete, container-bound thing a deployer receives. Resolution picks
the file (explicit location, the project's own build output, or a project
dependency), settles the deployable type, and stamps the handle with the
descriptor's identity key.

Identity keys are also used by the resolver for duplicate removal and for
"does an explicit descriptor already represent the project's own output".
Normalisation rules:

- the type of a descriptor without one is derived (project packaging for the
  project's own coordinates, dependency type, file extension);
- paths are made absolute and normalised (no symlink resolution);
- ``auto`` never takes part in identity.

Example:
    >>> from deploy_spine.config import DeployableConfig, IdentityPolicy
    >>> from deploy_spine.model import Project
    >>> project = Project("com.acme", "shop", "war")
    >>> d = DeployableConfig(group_id="com.acme", artifact_id="shop")
    >>> identity_key(d, project, IdentityPolicy.COORDINATES)
    'com.acme:shop:war:'
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol, runtime_checkable

from deploy_spine.config import DeployableConfig, IdentityPolicy
from deploy_spine.errors import ResolutionError
from deploy_spine.logging import get_logger
from deploy_spine.model import DeployableType, Project

logger = get_logger(__name__)

_SUFFIX_TYPES: dict[str, DeployableType] = {
    ".war": DeployableType.WAR,
    ".ear": DeployableType.EAR,
    ".rar": DeployableType.RAR,
    ".sar": DeployableType.SAR,
}


@dataclass(frozen=True)
class Deployable:
    """Container-specific resolved form of a descriptor."""

    container_id: str
    type: DeployableType
    file: Path
    identity: str
    properties: dict[str, str] = field(default_factory=dict)
    auto: bool = False

    @property
    def name(self) -> str:
        return self.file.name

    @property
    def context(self) -> str | None:
        """Web context for web archives (``context`` property or file stem)."""
        if self.type is not DeployableType.WAR:
            return self.properties.get("context")
        context = self.properties.get("context") or self.file.stem
        return context.strip("/") or "/"


def normalize_path(path: Path) -> Path:
    return Path(os.path.normpath(path.expanduser().absolute()))


def _infer_type(path: Path) -> DeployableType:
    suffix = path.suffix.lower()
    if suffix in _SUFFIX_TYPES:
        return _SUFFIX_TYPES[suffix]
    if path.is_dir():
        return DeployableType.DIR
    return DeployableType.FILE


def resolve_location(descriptor: DeployableConfig, project: Project) -> Path | None:
    """File a descriptor points at, or None if it cannot be determined."""
    if descriptor.location is not None:
        return descriptor.location
    if project.is_own_output(descriptor.group_id, descriptor.artifact_id):
        return project.artifact_path
    artifact = project.find_artifact(
        descriptor.group_id,
        descriptor.artifact_id,
        descriptor.type.value if descriptor.type else None,
        descriptor.classifier,
    )
    return artifact.path if artifact else None


def effective_type(descriptor: DeployableConfig, project: Project) -> DeployableType | None:
    """Deployable type of a descriptor, derived when not configured."""
    if descriptor.type is not None:
        return descriptor.type
    if project.is_own_output(descriptor.group_id, descriptor.artifact_id):
        return project.deployable_type
    if descriptor.location is not None:
        return _infer_type(descriptor.location)
    artifact = project.find_artifact(
        descriptor.group_id, descriptor.artifact_id, None, descriptor.classifier
    )
    if artifact is not None:
        try:
            return DeployableType(artifact.type)
        except ValueError:
            return None
    return None


def identity_key(
    descriptor: DeployableConfig,
    project: Project,
    policy: IdentityPolicy = IdentityPolicy.COORDINATES,
) -> str:
    """Normalised identity of a descriptor under *policy*."""
    if policy is IdentityPolicy.EXACT:
        dumped = descriptor.model_dump(mode="json", exclude={"auto"})
        return json.dumps(dumped, sort_keys=True)

    if policy is IdentityPolicy.LOCATION:
        location = resolve_location(descriptor, project)
        if location is not None:
            return f"location:{normalize_path(location)}"

    # Partial coordinates cannot tell two files apart.
    if descriptor.group_id is None or descriptor.artifact_id is None:
        return f"location:{normalize_path(descriptor.location or Path())}"

    dtype = effective_type(descriptor, project)
    return ":".join(
        [
            descriptor.group_id or "",
            descriptor.artifact_id or "",
            dtype.value if dtype else "",
            descriptor.classifier or "",
        ]
    )


@runtime_checkable
class DeployableFactory(Protocol):
    """Turns a descriptor into a runtime artifact handle."""

    def create(
        self,
        container_id: str,
        descriptor: DeployableConfig,
        project: Project,
    ) -> Deployable:
        ...


class DefaultDeployableFactory:
    """Resolves descriptors against the hosting project.

    Parameters
    ----------
    policy
        Identity policy stamped onto each handle.
    supported_types
        Optional map ``container_id -> allowed types``; a descriptor of another
        type fails resolution for that container. Containers not in the map
        accept every type.
    """

    def __init__(
        self,
        policy: IdentityPolicy = IdentityPolicy.COORDINATES,
        supported_types: dict[str, frozenset[DeployableType]] | None = None,
    ) -> None:
        self.policy = policy
        self.supported_types = supported_types or {}

    def create(
        self,
        container_id: str,
        descriptor: DeployableConfig,
        project: Project,
    ) -> Deployable:
        """Resolve *descriptor* into a ``Deployable`` bound to *container_id*.

        Raises
        ------
        ResolutionError
            If no file or no type can be determined, or the container does not
            accept the type.
        """
        location = resolve_location(descriptor, project)
        if location is None:
            raise ResolutionError(
                f"Cannot locate artifact for deployable [{descriptor.label}]: "
                "no location configured and no matching project artifact"
            ).with_context(container=container_id, deployable=descriptor.label)

        dtype = effective_type(descriptor, project)
        if dtype is None:
            raise ResolutionError(
                f"Cannot determine the type of deployable [{descriptor.label}]"
            ).with_context(container=container_id, deployable=descriptor.label)

        allowed = self.supported_types.get(container_id)
        if allowed is not None and dtype not in allowed:
            raise ResolutionError(
                f"Container {container_id!r} does not accept {dtype.value} deployables"
            ).with_context(container=container_id, deployable=descriptor.label)

        deployable = Deployable(
            container_id=container_id,
            type=dtype,
            file=location,
            identity=identity_key(descriptor, project, self.policy),
            properties=dict(descriptor.properties),
            auto=descriptor.auto,
        )
        logger.debug(
            "deployable.resolved",
            deployable=descriptor.label,
            file=str(location),
            type=dtype.value,
        )
        return deployable
