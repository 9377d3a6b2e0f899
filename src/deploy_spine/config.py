"""Configuration models for deploy-spine.

Provides Pydantic v2 models for everything a caller configures: the
deployables to act on (with optional per-artifact monitoring), an explicit
deployer override, the target container and the hosting project, bundled in a
``DeploymentPlan`` that can be loaded from YAML or JSON. Process-wide defaults
(poll interval, monitor timeout, identity policy, logging) come from
``DeploySettings`` and the ``DEPLOY_SPINE_*`` environment.

Key Concepts:
    DeployableConfig: The deployable descriptor — coordinates, type, location,
        properties, optional ``monitor``. Value equality.
    MonitorConfig: Ping URL, timeout, expected content, poll interval.
    DeployerConfig: Explicit override — ``implementation`` import reference
        (``"package.module:Class"``) and/or forced deployer ``type``.
    DeploymentPlan: container + project + deployer + deployables.
        ``from_file()`` reads ``.yaml``/``.yml``/``.json``.
    DeploySettings: pydantic-settings model, ``DEPLOY_SPINE_`` prefix.
    IdentityPolicy: How descriptors are compared for duplicates and for
        "represents the project's own output".

Architecture Decisions:
    - Pydantic v2 (not dataclass): plans are user input and get validated.
    - Descriptors are frozen so a resolved set can never be mutated mid-run.
    - ``run_id`` is auto-generated by a ``model_validator`` so every run is
      traceable in logs and results.

Related Modules:
    - :mod:`deploy_spine.resolver` — dedup and auto-deployable detection
    - :mod:`deploy_spine.selector` — consumes ``DeployerConfig``
    - :mod:`deploy_spine.monitor` — consumes ``MonitorConfig``

Tags:
    config, settings, pydantic, deployables, plan, environment
"""

from __future__ import annotations

import importlib
import json
import uuid
from enum import Enum
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from deploy_spine.errors import PlanError
from deploy_spine.model import (
    Container,
    ContainerType,
    DeployableType,
    DeployerType,
    Project,
    ProjectArtifact,
)


class IdentityPolicy(str, Enum):
    """How two descriptors are judged to be the same deployable."""

    COORDINATES = "coordinates"  # group, artifact, type, classifier
    LOCATION = "location"  # normalized file path
    EXACT = "exact"  # every configured field


class MonitorConfig(BaseModel):
    """Per-artifact monitoring parameters."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    ping_url: str | None = Field(
        default=None,
        description="URL answering 2xx once the artifact is live",
    )
    timeout_seconds: float | None = Field(
        default=None,
        gt=0,
        description="Deadline for the expected state (defaults to settings)",
    )
    expected_content: str | None = Field(
        default=None,
        description="Text the ping response body must contain",
    )
    poll_interval_seconds: float | None = Field(
        default=None,
        gt=0,
        description="Delay between probes (defaults to settings)",
    )


class DeployableConfig(BaseModel):
    """Configuration-time description of one artifact to act on.

    Example::

        DeployableConfig(
            group_id="com.acme",
            artifact_id="shop",
            type=DeployableType.WAR,
            properties={"context": "/shop"},
            monitor=MonitorConfig(ping_url="http://localhost:8080/shop/health"),
        )
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    group_id: str | None = None
    artifact_id: str | None = None
    type: DeployableType | None = Field(
        default=None,
        description="Artifact kind; derived from packaging or extension when unset",
    )
    classifier: str | None = None
    location: Path | None = Field(
        default=None,
        description="Explicit file or directory; otherwise resolved from the project",
    )
    properties: dict[str, str] = Field(default_factory=dict)
    monitor: MonitorConfig | None = None
    auto: bool = Field(
        default=False,
        description="Set on the synthetic descriptor for the project's own output",
    )

    @model_validator(mode="after")
    def _check_target(self) -> DeployableConfig:
        if self.location is None and (self.group_id is None or self.artifact_id is None):
            raise ValueError("a deployable needs a location or both group_id and artifact_id")
        return self

    @property
    def label(self) -> str:
        """Human-readable name for logs and reports."""
        if self.group_id and self.artifact_id:
            parts = [self.group_id, self.artifact_id]
            if self.type:
                parts.append(self.type.value)
            if self.classifier:
                parts.append(self.classifier)
            return ":".join(parts)
        return str(self.location)


class DeployerConfig(BaseModel):
    """Explicit deployer override.

    ``implementation`` names a class or factory as ``"package.module:Name"``;
    it is called with the container plus ``properties`` as keyword arguments.
    With only ``type`` set, the registry is consulted for that deployer type
    instead of the container's default.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    type: DeployerType | None = None
    implementation: str | None = None
    properties: dict[str, Any] = Field(default_factory=dict)

    def resolve_implementation(self) -> Any:
        """Import and return the configured implementation.

        Raises:
            ValueError: If no implementation is configured or the reference is malformed.
            ImportError: If the module cannot be imported.
            AttributeError: If the name is missing from the module.
        """
        if not self.implementation:
            raise ValueError("DeployerConfig has no implementation")
        module_path, _, attr_path = self.implementation.partition(":")
        if not attr_path:
            raise ValueError(f"Invalid implementation ref (missing ':'): {self.implementation!r}")
        obj: Any = importlib.import_module(module_path)
        for part in attr_path.split("."):
            obj = getattr(obj, part)
        if not callable(obj):
            raise TypeError(f"{self.implementation!r} resolved to non-callable: {type(obj)}")
        return obj


class ContainerConfig(BaseModel):
    id: str
    name: str = ""
    type: ContainerType = ContainerType.INSTALLED

    def to_container(self) -> Container:
        return Container(id=self.id, name=self.name, type=self.type)


class ArtifactConfig(BaseModel):
    group_id: str
    artifact_id: str
    type: str = "jar"
    classifier: str | None = None
    path: Path


class ProjectConfig(BaseModel):
    group_id: str | None = None
    artifact_id: str | None = None
    packaging: str | None = None
    artifact_path: Path | None = None
    dependencies: list[ArtifactConfig] = Field(default_factory=list)

    def to_project(self) -> Project:
        return Project(
            group_id=self.group_id,
            artifact_id=self.artifact_id,
            packaging=self.packaging,
            artifact_path=self.artifact_path,
            dependencies=tuple(
                ProjectArtifact(
                    group_id=d.group_id,
                    artifact_id=d.artifact_id,
                    type=d.type,
                    classifier=d.classifier,
                    path=d.path,
                )
                for d in self.dependencies
            ),
        )


class DeploymentPlan(BaseModel):
    """Everything one orchestration run needs, as loaded from a plan file.

    Example (YAML)::

        container:
          id: tomcat9x
          type: installed
        project:
          group_id: com.acme
          artifact_id: shop
          packaging: war
          artifact_path: target/shop.war
        deployables:
          - location: resources/orders-ds.xml
            type: resource
            monitor:
              ping_url: http://localhost:8080/orders/ping
              timeout_seconds: 5
    """

    container: ContainerConfig
    project: ProjectConfig = Field(default_factory=ProjectConfig)
    deployer: DeployerConfig | None = None
    deployables: list[DeployableConfig] = Field(default_factory=list)
    run_id: str = Field(default="", description="Unique run identifier (auto-generated)")

    @model_validator(mode="after")
    def _set_defaults(self) -> DeploymentPlan:
        if not self.run_id:
            self.run_id = uuid.uuid4().hex[:12]
        return self

    @classmethod
    def from_file(cls, path: str | Path) -> DeploymentPlan:
        """Load a plan from a YAML or JSON file.

        Raises
        ------
        PlanError
            If the file is unreadable, not a mapping, or fails validation.
        """
        path = Path(path)
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise PlanError(f"Cannot read plan {path}: {exc}", cause=exc) from exc

        try:
            if path.suffix.lower() == ".json":
                data = json.loads(text)
            else:
                data = yaml.safe_load(text)
        except (json.JSONDecodeError, yaml.YAMLError) as exc:
            raise PlanError(f"Cannot parse plan {path}: {exc}", cause=exc) from exc

        if not isinstance(data, dict):
            raise PlanError(f"Plan {path} must be a mapping, got {type(data).__name__}")

        try:
            plan = cls.model_validate(data)
        except ValidationError as exc:
            raise PlanError(f"Invalid plan {path}: {exc}", cause=exc) from exc
        return plan._relative_to(path.parent)

    def _relative_to(self, base: Path) -> DeploymentPlan:
        """Anchor relative locations on the plan file's directory."""

        def anchor(p: Path | None) -> Path | None:
            if p is None or p.is_absolute():
                return p
            return base / p

        project = self.project.model_copy(
            update={
                "artifact_path": anchor(self.project.artifact_path),
                "dependencies": [
                    d.model_copy(update={"path": anchor(d.path)})
                    for d in self.project.dependencies
                ],
            }
        )
        deployables = [
            d.model_copy(update={"location": anchor(d.location)}) for d in self.deployables
        ]
        return self.model_copy(update={"project": project, "deployables": deployables})

    def to_container(self) -> Container:
        return self.container.to_container()

    def to_project(self) -> Project:
        return self.project.to_project()


class DeploySettings(BaseSettings):
    """Process-wide defaults, read from ``DEPLOY_SPINE_*`` env vars and ``.env``."""

    model_config = SettingsConfigDict(
        env_prefix="DEPLOY_SPINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    poll_interval_seconds: float = Field(default=0.5, gt=0)
    monitor_timeout_seconds: float = Field(default=20.0, gt=0)
    ping_request_timeout_seconds: float = Field(default=5.0, gt=0)
    identity_policy: IdentityPolicy = IdentityPolicy.COORDINATES
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "console"] | None = None
