"""Container and project model for deploy-spine.

The orchestration core only *reads* these objects. They are produced by the
collaborators that own container lifecycle and build configuration, or built
from a deployment plan file (see :mod:`deploy_spine.config`).

Key Concepts:
    Container: Frozen dataclass — backend-type id, display name, container
        type. Immutable for a run.
    ContainerType / DeployerType: installed, embedded, remote. The default
        deployer type of a container follows its container type.
    Project: Frozen dataclass — coordinates, packaging and build output of the
        project hosting the run. ``is_deployable_packaging`` is the packaging
        classification that drives auto-deployable detection.
    DeployableType: Kinds of artifact a container can receive.

Architecture Decisions:
    - Frozen dataclasses (not Pydantic): these are runtime values handed in by
      the caller, not user input. Pydantic models in ``config`` build them.
    - Packaging classification is a plain frozenset lookup so callers with a
      richer classifier can subclass ``Project`` and override the property.

Tags:
    container, project, packaging, deployable-type, model
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class ContainerType(str, Enum):
    """How the runtime container is managed."""

    INSTALLED = "installed"  # Local installation on disk
    EMBEDDED = "embedded"  # Runs inside the current process
    REMOTE = "remote"  # Already running somewhere, reachable by admin API


class DeployerType(str, Enum):
    """Family of deployer able to act on a container."""

    INSTALLED = "installed"  # Drops files into the container's deploy dir
    EMBEDDED = "embedded"  # Calls the embedded container's API
    REMOTE = "remote"  # Talks to an admin/management endpoint

    @classmethod
    def for_container(cls, container_type: ContainerType) -> DeployerType:
        """Default deployer type for a container type."""
        return cls(container_type.value)


class DeployableType(str, Enum):
    """Kind of artifact to deploy."""

    WAR = "war"  # Web archive
    EAR = "ear"  # Enterprise archive
    EJB = "ejb"
    RAR = "rar"  # Resource adapter archive
    BUNDLE = "bundle"  # OSGi bundle
    SAR = "sar"  # Service archive
    FILE = "file"  # Plain file copied as is
    DIR = "dir"  # Exploded directory
    RESOURCE = "resource"  # Datasource / resource definition


# Packagings whose build output is itself something a container can run.
DEPLOYABLE_PACKAGINGS: frozenset[str] = frozenset(
    {"war", "ear", "ejb", "rar", "uberwar", "bundle", "sar"}
)

_PACKAGING_TYPES: dict[str, DeployableType] = {
    "uberwar": DeployableType.WAR,
}


def deployable_type_for_packaging(packaging: str) -> DeployableType:
    """Map a project packaging to the deployable type of its build output.

    Raises
    ------
    ValueError
        If the packaging has no deployable counterpart.
    """
    key = packaging.lower().strip()
    if key in _PACKAGING_TYPES:
        return _PACKAGING_TYPES[key]
    try:
        return DeployableType(key)
    except ValueError:
        raise ValueError(f"Packaging {packaging!r} does not produce a deployable") from None


@dataclass(frozen=True)
class Container:
    """Runtime container targeted by an orchestration run."""

    id: str
    """Backend-type id (e.g. 'tomcat9x', 'jetty12x', 'wildfly30x')."""

    name: str = ""
    """Display name used in log and report output."""

    type: ContainerType = ContainerType.INSTALLED

    def __post_init__(self) -> None:
        if not self.name:
            object.__setattr__(self, "name", self.id)

    @property
    def default_deployer_type(self) -> DeployerType:
        return DeployerType.for_container(self.type)


@dataclass(frozen=True)
class ProjectArtifact:
    """A resolved artifact of the project's build (its own output or a dependency)."""

    group_id: str
    artifact_id: str
    type: str
    path: Path
    classifier: str | None = None

    def matches(
        self,
        group_id: str | None,
        artifact_id: str | None,
        type: str | None,
        classifier: str | None = None,
    ) -> bool:
        return (
            self.group_id == group_id
            and self.artifact_id == artifact_id
            and (type is None or self.type == type)
            and self.classifier == classifier
        )


@dataclass(frozen=True)
class Project:
    """The project whose build hosts the orchestration run."""

    group_id: str | None = None
    artifact_id: str | None = None
    packaging: str | None = None
    artifact_path: Path | None = None
    """Build output of the project itself (e.g. ``target/shop.war``)."""
    dependencies: tuple[ProjectArtifact, ...] = field(default_factory=tuple)

    @property
    def is_deployable_packaging(self) -> bool:
        """Whether the container expects the project's own output as an archive."""
        return self.packaging is not None and self.packaging.lower() in DEPLOYABLE_PACKAGINGS

    @property
    def deployable_type(self) -> DeployableType | None:
        if not self.is_deployable_packaging:
            return None
        return deployable_type_for_packaging(self.packaging or "")

    def find_artifact(
        self,
        group_id: str | None,
        artifact_id: str | None,
        type: str | None = None,
        classifier: str | None = None,
    ) -> ProjectArtifact | None:
        """Find a dependency artifact by coordinates."""
        for artifact in self.dependencies:
            if artifact.matches(group_id, artifact_id, type, classifier):
                return artifact
        return None

    def is_own_output(self, group_id: str | None, artifact_id: str | None) -> bool:
        return (
            group_id is not None
            and group_id == self.group_id
            and artifact_id == self.artifact_id
        )
