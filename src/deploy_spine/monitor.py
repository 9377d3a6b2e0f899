"""Deployable monitors — bounded readiness polling with edge-triggered callbacks.

A ``DeployableMonitor`` watches exactly one deployable. It samples a
backend-supplied readiness probe on a fixed interval until the probe reports
the expected state or a deadline passes.

State machine (single use)::

    UNKNOWN ──probe says deployed──▶ DEPLOYED     (listeners: deployed())
    UNKNOWN ──probe says gone──────▶ UNDEPLOYED   (listeners: undeployed())
    UNKNOWN ──deadline─────────────▶ UNKNOWN      (no callback, MonitorTimeoutWarning)

Guarantees:
    - Each registered listener is notified at most once per monitor.
    - No probe is sampled and no listener is notified after the deadline.
    - The final sleep is clipped to the deadline; polling never runs unbounded.
    - A failing listener is logged and does not stop the others.

The probe is any zero-argument callable returning ``True`` when the artifact
is reachable/deployed. An exception from the probe counts as "not reachable"
for that sample. Clock and sleep are injectable for deterministic tests.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from enum import Enum
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from deploy_spine.config import DeployableConfig, DeploySettings
from deploy_spine.errors import MonitorTimeoutWarning, UnsupportedBackendError
from deploy_spine.logging import get_logger
from deploy_spine.model import Container, DeployableType
from deploy_spine.probes import http_ping_probe

if TYPE_CHECKING:
    from deploy_spine.deployables import Deployable

logger = get_logger(__name__)

ReadinessProbe = Callable[[], bool]
ProbeFactory = Callable[[Container, DeployableConfig], ReadinessProbe]


class MonitorStatus(str, Enum):
    UNKNOWN = "unknown"
    DEPLOYED = "deployed"
    UNDEPLOYED = "undeployed"


@runtime_checkable
class DeployableMonitorListener(Protocol):
    """Callback sink for monitor transitions."""

    def deployed(self) -> None:
        ...

    def undeployed(self) -> None:
        ...


class DeployableMonitor:
    """Polls a readiness probe for one deployable.

    Parameters
    ----------
    deployable
        The runtime artifact handle being watched.
    probe
        Zero-argument callable, ``True`` when the artifact is live.
    timeout_seconds
        Deadline measured from the start of ``wait()``.
    poll_interval_seconds
        Delay between two probe samples.
    clock, sleep
        Time source and sleep function (``time.monotonic`` / ``time.sleep``).
    """

    def __init__(
        self,
        deployable: Deployable,
        probe: ReadinessProbe,
        timeout_seconds: float,
        poll_interval_seconds: float,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")
        if poll_interval_seconds <= 0:
            raise ValueError("poll_interval_seconds must be positive")
        self.deployable = deployable
        self.timeout_seconds = timeout_seconds
        self.poll_interval_seconds = poll_interval_seconds
        self._probe = probe
        self._clock = clock
        self._sleep = sleep
        self._listeners: list[DeployableMonitorListener] = []
        self._status = MonitorStatus.UNKNOWN
        self._attempts = 0
        self._elapsed = 0.0

    @property
    def status(self) -> MonitorStatus:
        return self._status

    @property
    def attempts(self) -> int:
        """Number of probe samples taken."""
        return self._attempts

    @property
    def elapsed_seconds(self) -> float:
        return self._elapsed

    @property
    def listeners(self) -> list[DeployableMonitorListener]:
        return self._listeners.copy()

    def register_listener(self, listener: DeployableMonitorListener) -> None:
        self._listeners.append(listener)

    def wait(self, expected: MonitorStatus) -> None:
        """Block until the probe reports *expected* or the deadline passes.

        Raises
        ------
        MonitorTimeoutWarning
            If the expected state was not observed in time.
        ValueError
            If *expected* is ``UNKNOWN``.
        RuntimeError
            If the monitor already finished in the opposite state.
        """
        if expected is MonitorStatus.UNKNOWN:
            raise ValueError("expected status must be deployed or undeployed")
        if self._status is not MonitorStatus.UNKNOWN:
            if self._status is expected:
                return
            raise RuntimeError(
                f"monitor for {self.deployable.name} already finished as {self._status.value}"
            )

        start = self._clock()
        deadline = start + self.timeout_seconds
        while True:
            observed = self._sample()
            now = self._clock()
            self._elapsed = now - start
            if observed is expected and now <= deadline:
                self._transition(expected)
                return
            remaining = deadline - now
            if remaining <= 0:
                break
            self._sleep(min(self.poll_interval_seconds, remaining))
            # Never sample past the deadline, even if the sleep overshot.
            now = self._clock()
            if now > deadline:
                self._elapsed = now - start
                break

        logger.debug(
            "monitor.deadline",
            deployable=self.deployable.name,
            expected=expected.value,
            attempts=self._attempts,
        )
        raise MonitorTimeoutWarning(
            f"[{self.deployable.name}] not {expected.value} within {self.timeout_seconds:g}s",
            timeout_seconds=self.timeout_seconds,
        ).with_context(container=self.deployable.container_id, deployable=self.deployable.identity)

    def _sample(self) -> MonitorStatus:
        self._attempts += 1
        try:
            live = bool(self._probe())
        except Exception as exc:
            logger.debug(
                "monitor.probe_failed",
                deployable=self.deployable.name,
                error=str(exc),
            )
            live = False
        return MonitorStatus.DEPLOYED if live else MonitorStatus.UNDEPLOYED

    def _transition(self, status: MonitorStatus) -> None:
        self._status = status
        logger.debug(
            "monitor.transition",
            deployable=self.deployable.name,
            status=status.value,
            attempts=self._attempts,
        )
        for listener in self._listeners:
            try:
                if status is MonitorStatus.DEPLOYED:
                    listener.deployed()
                else:
                    listener.undeployed()
            except Exception:
                logger.warning(
                    "monitor.listener_failed",
                    deployable=self.deployable.name,
                    listener=type(listener).__name__,
                    exc_info=True,
                )


@runtime_checkable
class DeployableMonitorFactory(Protocol):
    """Creates a monitor for a (container, descriptor) pair, or None."""

    def create(
        self,
        container: Container,
        descriptor: DeployableConfig,
        deployable: Deployable,
    ) -> DeployableMonitor | None:
        ...


class DefaultDeployableMonitorFactory:
    """Builds monitors from per-artifact ``MonitorConfig``.

    Lookup for a descriptor with monitoring configured:

    1. a probe factory registered for ``(container.id, type)``,
       ``(container.id, None)``, ``("*", type)``, ``("*", None)`` in that order;
    2. an HTTP ping probe when ``monitor.ping_url`` is set;
    3. otherwise ``UnsupportedBackendError``.

    Descriptors without ``monitor`` get no monitor.
    """

    def __init__(
        self,
        settings: DeploySettings | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.settings = settings or DeploySettings()
        self._clock = clock
        self._sleep = sleep
        self._probes: dict[tuple[str, DeployableType | None], ProbeFactory] = {}

    def register_probe(
        self,
        factory: ProbeFactory,
        container_id: str = "*",
        deployable_type: DeployableType | None = None,
    ) -> None:
        """Register a backend-specific readiness probe factory."""
        key = (container_id, deployable_type)
        if key in self._probes:
            logger.warning("monitor.probe_replaced", container=container_id, type=deployable_type)
        self._probes[key] = factory

    def _find_probe_factory(
        self, container: Container, dtype: DeployableType
    ) -> ProbeFactory | None:
        for key in (
            (container.id, dtype),
            (container.id, None),
            ("*", dtype),
            ("*", None),
        ):
            if key in self._probes:
                return self._probes[key]
        return None

    def create(
        self,
        container: Container,
        descriptor: DeployableConfig,
        deployable: Deployable,
    ) -> DeployableMonitor | None:
        config = descriptor.monitor
        if config is None:
            return None

        factory = self._find_probe_factory(container, deployable.type)
        if factory is not None:
            probe = factory(container, descriptor)
        elif config.ping_url:
            probe = http_ping_probe(
                config.ping_url,
                expected_content=config.expected_content,
                request_timeout=self.settings.ping_request_timeout_seconds,
            )
        else:
            raise UnsupportedBackendError(
                f"No readiness probe for {deployable.type.value} deployables "
                f"on container {container.id!r}"
            ).with_context(container=container.id, deployable=deployable.identity)

        return DeployableMonitor(
            deployable,
            probe,
            timeout_seconds=config.timeout_seconds or self.settings.monitor_timeout_seconds,
            poll_interval_seconds=config.poll_interval_seconds or self.settings.poll_interval_seconds,
            clock=self._clock,
            sleep=self._sleep,
        )
