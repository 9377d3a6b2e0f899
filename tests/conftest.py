"""
Shared pytest fixtures and configuration for deploy-spine tests.

This module provides:
- A deterministic clock whose ``sleep`` advances time (monitor timing tests)
- Container / project fixtures with artifacts under ``tmp_path``
- Settings isolated from ``DEPLOY_SPINE_*`` environment variables
- A recording stub deployer

Usage:
    def test_monitor(fake_clock):
        monitor = DeployableMonitor(..., clock=fake_clock, sleep=fake_clock.sleep)
"""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from deploy_spine.config import DeploySettings
from deploy_spine.deployers import StubDeployer
from deploy_spine.model import Container, Project, ProjectArtifact


class FakeClock:
    """Monotonic clock that only moves when ``sleep`` is called."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


# =============================================================================
# Environment isolation
# =============================================================================


@pytest.fixture(autouse=True)
def clean_deploy_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove DEPLOY_SPINE_* variables so settings defaults are predictable."""
    for key in list(os.environ):
        if key.startswith("DEPLOY_SPINE_"):
            monkeypatch.delenv(key, raising=False)


# =============================================================================
# Core fixtures
# =============================================================================


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> DeploySettings:
    return DeploySettings(_env_file=None)


@pytest.fixture
def container() -> Container:
    return Container("tomcat9x", name="Shop Tomcat")


@pytest.fixture
def stub_deployer(container: Container) -> StubDeployer:
    return StubDeployer(container)


@pytest.fixture
def war_project(tmp_path: Path) -> Project:
    """A war-packaged project whose build output is ``target/shop.war``."""
    return Project(
        group_id="com.acme",
        artifact_id="shop",
        packaging="war",
        artifact_path=tmp_path / "target" / "shop.war",
        dependencies=(
            ProjectArtifact(
                group_id="com.acme",
                artifact_id="billing",
                type="war",
                path=tmp_path / "repo" / "billing-1.0.war",
            ),
            ProjectArtifact(
                group_id="com.acme",
                artifact_id="orders",
                type="ear",
                path=tmp_path / "repo" / "orders-2.1.ear",
            ),
        ),
    )


@pytest.fixture
def pom_project() -> Project:
    """An aggregator project with nothing of its own to deploy."""
    return Project(group_id="com.acme", artifact_id="parent", packaging="pom")
