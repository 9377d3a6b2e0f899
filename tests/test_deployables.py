"""Tests for deploy_spine.deployables — identity keys and descriptor resolution."""

from __future__ import annotations

from pathlib import Path

import pytest

from deploy_spine.config import DeployableConfig, IdentityPolicy
from deploy_spine.deployables import (
    DefaultDeployableFactory,
    Deployable,
    DeployableFactory,
    identity_key,
    normalize_path,
)
from deploy_spine.errors import ResolutionError
from deploy_spine.model import DeployableType


class TestDeployable:
    """Test the runtime artifact handle."""

    def test_name_is_file_name(self):
        d = Deployable("tomcat9x", DeployableType.WAR, Path("/srv/shop.war"), "id")
        assert d.name == "shop.war"

    def test_war_context_defaults_to_stem(self):
        d = Deployable("tomcat9x", DeployableType.WAR, Path("/srv/shop.war"), "id")
        assert d.context == "shop"

    def test_war_context_property_strips_slashes(self):
        d = Deployable(
            "tomcat9x",
            DeployableType.WAR,
            Path("/srv/shop.war"),
            "id",
            properties={"context": "/store/"},
        )
        assert d.context == "store"

    def test_root_context(self):
        d = Deployable("tomcat9x", DeployableType.WAR, Path("/srv/ROOT.war"), "id", properties={"context": "/"})
        assert d.context == "/"

    def test_non_war_has_no_default_context(self):
        d = Deployable("tomcat9x", DeployableType.EAR, Path("/srv/orders.ear"), "id")
        assert d.context is None


class TestIdentityKey:
    """Test identity normalisation under each policy."""

    def test_coordinates_derive_type_from_packaging(self, war_project):
        d = DeployableConfig(group_id="com.acme", artifact_id="shop")
        assert identity_key(d, war_project) == "com.acme:shop:war:"

    def test_coordinates_derive_type_from_dependency(self, war_project):
        d = DeployableConfig(group_id="com.acme", artifact_id="orders")
        assert identity_key(d, war_project) == "com.acme:orders:ear:"

    def test_explicit_and_derived_type_match(self, war_project):
        implicit = DeployableConfig(group_id="com.acme", artifact_id="billing")
        explicit = DeployableConfig(group_id="com.acme", artifact_id="billing", type=DeployableType.WAR)
        assert identity_key(implicit, war_project) == identity_key(explicit, war_project)

    def test_classifier_distinguishes(self, war_project):
        plain = DeployableConfig(group_id="com.acme", artifact_id="billing", type=DeployableType.WAR)
        tests = DeployableConfig(
            group_id="com.acme", artifact_id="billing", type=DeployableType.WAR, classifier="tests"
        )
        assert identity_key(plain, war_project) != identity_key(tests, war_project)

    def test_location_only_descriptor_uses_normalized_path(self, tmp_path, pom_project):
        a = DeployableConfig(location=tmp_path / "ds" / ".." / "ds.xml")
        b = DeployableConfig(location=tmp_path / "ds.xml")
        assert identity_key(a, pom_project) == identity_key(b, pom_project)
        assert identity_key(a, pom_project).startswith("location:")

    def test_partial_coordinates_fall_back_to_location(self, tmp_path, pom_project):
        a = DeployableConfig(group_id="com.acme", location=tmp_path / "a.war")
        b = DeployableConfig(group_id="com.acme", location=tmp_path / "b.war")
        assert identity_key(a, pom_project) != identity_key(b, pom_project)
        assert identity_key(a, pom_project).startswith("location:")

    def test_location_policy_equates_coordinates_and_path(self, war_project):
        by_coordinates = DeployableConfig(group_id="com.acme", artifact_id="billing")
        by_path = DeployableConfig(location=war_project.dependencies[0].path)
        policy = IdentityPolicy.LOCATION
        assert identity_key(by_coordinates, war_project, policy) == identity_key(by_path, war_project, policy)

    def test_exact_policy_includes_properties(self, pom_project):
        a = DeployableConfig(group_id="g", artifact_id="a", properties={"context": "/one"})
        b = DeployableConfig(group_id="g", artifact_id="a", properties={"context": "/two"})
        assert identity_key(a, pom_project, IdentityPolicy.EXACT) != identity_key(b, pom_project, IdentityPolicy.EXACT)
        assert identity_key(a, pom_project) == identity_key(b, pom_project)

    def test_auto_flag_never_part_of_identity(self, war_project):
        a = DeployableConfig(group_id="com.acme", artifact_id="shop")
        b = DeployableConfig(group_id="com.acme", artifact_id="shop", auto=True)
        for policy in IdentityPolicy:
            assert identity_key(a, war_project, policy) == identity_key(b, war_project, policy)


class TestDefaultDeployableFactory:
    """Test descriptor -> Deployable resolution."""

    def test_satisfies_protocol(self):
        assert isinstance(DefaultDeployableFactory(), DeployableFactory)

    def test_explicit_location(self, tmp_path, pom_project):
        d = DeployableConfig(location=tmp_path / "orders-ds.xml", type=DeployableType.RESOURCE)
        handle = DefaultDeployableFactory().create("tomcat9x", d, pom_project)
        assert handle.container_id == "tomcat9x"
        assert handle.type is DeployableType.RESOURCE
        assert handle.file == tmp_path / "orders-ds.xml"
        assert handle.identity == identity_key(d, pom_project)

    def test_type_inferred_from_suffix(self, tmp_path, pom_project):
        handle = DefaultDeployableFactory().create(
            "tomcat9x", DeployableConfig(location=tmp_path / "shop.war"), pom_project
        )
        assert handle.type is DeployableType.WAR

    def test_type_inferred_for_directory(self, tmp_path, pom_project):
        exploded = tmp_path / "exploded-shop"
        exploded.mkdir()
        handle = DefaultDeployableFactory().create("tomcat9x", DeployableConfig(location=exploded), pom_project)
        assert handle.type is DeployableType.DIR

    def test_type_inferred_plain_file(self, tmp_path, pom_project):
        handle = DefaultDeployableFactory().create(
            "tomcat9x", DeployableConfig(location=tmp_path / "context.xml"), pom_project
        )
        assert handle.type is DeployableType.FILE

    def test_own_output(self, war_project):
        d = DeployableConfig(group_id="com.acme", artifact_id="shop", properties={"context": "/"})
        handle = DefaultDeployableFactory().create("tomcat9x", d, war_project)
        assert handle.file == war_project.artifact_path
        assert handle.type is DeployableType.WAR
        assert handle.properties == {"context": "/"}

    def test_dependency(self, war_project):
        d = DeployableConfig(group_id="com.acme", artifact_id="orders")
        handle = DefaultDeployableFactory().create("jboss7x", d, war_project)
        assert handle.file.name == "orders-2.1.ear"
        assert handle.type is DeployableType.EAR

    def test_unknown_artifact(self, war_project):
        d = DeployableConfig(group_id="com.acme", artifact_id="missing")
        with pytest.raises(ResolutionError, match="Cannot locate artifact") as exc_info:
            DefaultDeployableFactory().create("tomcat9x", d, war_project)
        assert exc_info.value.context.container == "tomcat9x"
        assert exc_info.value.context.deployable == "com.acme:missing"

    def test_unsupported_type_for_container(self, tmp_path, pom_project):
        factory = DefaultDeployableFactory(supported_types={"jetty12x": frozenset({DeployableType.WAR})})
        d = DeployableConfig(location=tmp_path / "orders.ear")
        with pytest.raises(ResolutionError, match="does not accept ear"):
            factory.create("jetty12x", d, pom_project)
        assert factory.create("tomcat9x", d, pom_project).type is DeployableType.EAR

    def test_identity_follows_policy(self, war_project):
        d = DeployableConfig(group_id="com.acme", artifact_id="billing")
        handle = DefaultDeployableFactory(IdentityPolicy.LOCATION).create("tomcat9x", d, war_project)
        assert handle.identity == f"location:{normalize_path(war_project.dependencies[0].path)}"
