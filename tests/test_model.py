"""Tests for deploy_spine.model."""

from pathlib import Path

import pytest

from deploy_spine.model import (
    Container,
    ContainerType,
    DeployableType,
    DeployerType,
    Project,
    ProjectArtifact,
    deployable_type_for_packaging,
)


class TestContainer:
    """Test the Container value object."""

    def test_name_defaults_to_id(self):
        assert Container("jetty12x").name == "jetty12x"

    def test_explicit_name_kept(self):
        assert Container("jetty12x", name="Catalog").name == "Catalog"

    def test_frozen(self):
        container = Container("jetty12x")
        with pytest.raises(AttributeError):
            container.id = "tomcat9x"  # type: ignore[misc]

    @pytest.mark.parametrize(
        "container_type,deployer_type",
        [
            (ContainerType.INSTALLED, DeployerType.INSTALLED),
            (ContainerType.EMBEDDED, DeployerType.EMBEDDED),
            (ContainerType.REMOTE, DeployerType.REMOTE),
        ],
    )
    def test_default_deployer_type_follows_container_type(self, container_type, deployer_type):
        assert Container("x", type=container_type).default_deployer_type is deployer_type


class TestPackagingClassification:
    """Test packaging -> deployable classification."""

    @pytest.mark.parametrize("packaging", ["war", "ear", "ejb", "rar", "uberwar", "bundle", "sar", "WAR"])
    def test_deployable_packagings(self, packaging):
        assert Project("g", "a", packaging).is_deployable_packaging

    @pytest.mark.parametrize("packaging", ["jar", "pom", "maven-plugin", None])
    def test_non_deployable_packagings(self, packaging):
        project = Project("g", "a", packaging)
        assert not project.is_deployable_packaging
        assert project.deployable_type is None

    def test_uberwar_maps_to_war(self):
        assert deployable_type_for_packaging("uberwar") is DeployableType.WAR
        assert Project("g", "a", "uberwar").deployable_type is DeployableType.WAR

    def test_unknown_packaging_raises(self):
        with pytest.raises(ValueError, match="does not produce a deployable"):
            deployable_type_for_packaging("jar")


class TestProjectArtifacts:
    """Test dependency lookup and own-output detection."""

    def test_find_artifact_by_coordinates(self, war_project):
        found = war_project.find_artifact("com.acme", "billing")
        assert found is not None
        assert found.path.name == "billing-1.0.war"

    def test_find_artifact_type_must_match_when_given(self, war_project):
        assert war_project.find_artifact("com.acme", "billing", "ear") is None
        assert war_project.find_artifact("com.acme", "orders", "ear") is not None

    def test_classifier_must_match(self):
        artifact = ProjectArtifact("g", "a", "war", Path("a-tests.war"), classifier="tests")
        project = Project("g", "p", "pom", dependencies=(artifact,))
        assert project.find_artifact("g", "a") is None
        assert project.find_artifact("g", "a", classifier="tests") is artifact

    def test_is_own_output(self, war_project):
        assert war_project.is_own_output("com.acme", "shop")
        assert not war_project.is_own_output("com.acme", "billing")
        assert not war_project.is_own_output(None, None)
