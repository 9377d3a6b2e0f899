"""Deployer selection — registry of default deployers plus explicit overrides.

The ``DeployerRegistry`` maps ``(container id, deployer type)`` to a factory
``(container) -> Deployer``. The ``DeployerSelector`` picks the deployer for a
run:

    .. code-block:: text

        select(container, override)
          ├── override.implementation set → construct it, bound to the container
          ├── override.type set           → registry[(container.id, override.type)]
          └── no override                 → registry[(container.id, default type)]
                                             default type follows container.type
          lookup order: exact container id, then wildcard "*"
          nothing found → UnsupportedBackendError

The registry is an ordinary object built by the caller and handed to the
selector, never a module-level singleton, so two runs in the same process can
use different registrations.

Tags:
    deployer, registry, selection, strategy, factory
"""

from __future__ import annotations

from collections.abc import Callable
from importlib.metadata import entry_points

from deploy_spine.config import DeployerConfig
from deploy_spine.deployers import Deployer
from deploy_spine.errors import UnsupportedBackendError
from deploy_spine.logging import get_logger
from deploy_spine.model import Container, DeployerType

logger = get_logger(__name__)

DeployerFactory = Callable[[Container], Deployer]

WILDCARD = "*"
ENTRY_POINT_GROUP = "deploy_spine.deployers"


class DeployerRegistry:
    """Registry of default deployer factories keyed by container family.

    Example:
        >>> registry = DeployerRegistry()
        >>> registry.register("tomcat9x", DeployerType.INSTALLED, StubDeployer)
        >>> registry.get("tomcat9x", DeployerType.INSTALLED)
        <class 'deploy_spine.deployers.StubDeployer'>
    """

    def __init__(self) -> None:
        self._factories: dict[tuple[str, DeployerType], DeployerFactory] = {}

    def register(
        self,
        container_id: str,
        deployer_type: DeployerType,
        factory: DeployerFactory,
    ) -> None:
        """Register *factory* for a container id (``"*"`` for any container).

        An existing registration for the same key is replaced with a warning.
        """
        key = (container_id, deployer_type)
        if key in self._factories:
            logger.warning(
                "deployer.registration_replaced",
                container=container_id,
                deployer_type=deployer_type.value,
            )
        self._factories[key] = factory
        logger.debug(
            "deployer.registered",
            container=container_id,
            deployer_type=deployer_type.value,
        )

    def unregister(self, container_id: str, deployer_type: DeployerType) -> bool:
        return self._factories.pop((container_id, deployer_type), None) is not None

    def get(self, container_id: str, deployer_type: DeployerType) -> DeployerFactory | None:
        """Factory for the exact id, else the wildcard registration, else None."""
        factory = self._factories.get((container_id, deployer_type))
        if factory is None:
            factory = self._factories.get((WILDCARD, deployer_type))
        return factory

    def list_registrations(self) -> list[tuple[str, DeployerType]]:
        return sorted(self._factories, key=lambda k: (k[0], k[1].value))

    def __contains__(self, key: tuple[str, DeployerType]) -> bool:
        return key in self._factories

    def __len__(self) -> int:
        return len(self._factories)

    @classmethod
    def from_entry_points(cls, group: str = ENTRY_POINT_GROUP) -> DeployerRegistry:
        """Build a registry from installed distributions.

        Each entry point is named ``<container id>.<deployer type>`` (e.g.
        ``tomcat9x.installed``) and loads to a deployer factory.
        """
        registry = cls()
        for ep in entry_points(group=group):
            container_id, _, type_name = ep.name.rpartition(".")
            try:
                deployer_type = DeployerType(type_name)
            except ValueError:
                logger.warning("deployer.entry_point_invalid", name=ep.name, group=group)
                continue
            registry.register(container_id or WILDCARD, deployer_type, ep.load())
        return registry


class DeployerSelector:
    """Chooses the deployer for a container.

    Parameters
    ----------
    registry
        Default deployers by container family.
    """

    def __init__(self, registry: DeployerRegistry) -> None:
        self.registry = registry

    def select(self, container: Container, override: DeployerConfig | None = None) -> Deployer:
        """Return the deployer to use for *container*.

        Raises
        ------
        UnsupportedBackendError
            If no override is given and nothing is registered for the family,
            or the override implementation cannot be loaded.
        """
        if override is not None and override.implementation:
            return self._from_override(container, override)

        deployer_type = (
            override.type if override is not None and override.type else container.default_deployer_type
        )
        factory = self.registry.get(container.id, deployer_type)
        if factory is None:
            raise UnsupportedBackendError(
                f"No {deployer_type.value} deployer registered for container {container.id!r}"
            ).with_context(container=container.id, deployer_type=deployer_type.value)

        deployer = factory(container)
        logger.info(
            "deployer.selected",
            container=container.id,
            deployer_type=deployer_type.value,
            deployer=type(deployer).__name__,
        )
        return deployer

    def _from_override(self, container: Container, override: DeployerConfig) -> Deployer:
        try:
            implementation = override.resolve_implementation()
        except (ValueError, TypeError, ImportError, AttributeError) as exc:
            raise UnsupportedBackendError(
                f"Cannot load deployer implementation {override.implementation!r}: {exc}",
                cause=exc,
            ).with_context(container=container.id) from exc

        deployer = implementation(container, **override.properties)
        logger.info(
            "deployer.selected",
            container=container.id,
            deployer=type(deployer).__name__,
            override=True,
        )
        return deployer
