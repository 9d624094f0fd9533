from datetime import timedelta

import pytest

from composekit.api import RunOptions
from composekit.errors import NotFoundError
from composekit.model import (
    BuildConfig,
    HealthCheckConfig,
    NetworkConfig,
    Project,
    ServiceConfig,
    ServiceDependency,
    ServiceNetworkConfig,
    new_mapping_with_equals,
    resolve_mapping,
)


def test_run_options_environment_map():
    opts = RunOptions(environment=["FOO=BAR", "ZOT=", "QIX"])
    env = new_mapping_with_equals(opts.environment)
    assert env["FOO"] == "BAR"
    assert env["ZOT"] == ""
    assert env["QIX"] is None


def test_value_may_contain_equals():
    assert new_mapping_with_equals(["A=b=c"]) == {"A": "b=c"}


def test_resolve_mapping_uses_lookup_for_unset_only():
    env = {"HOME": "/root"}
    resolved = resolve_mapping({"HOME": None, "SET": "x", "MISSING": None}, env.get)
    assert resolved == {"HOME": "/root", "SET": "x", "MISSING": None}


def _project():
    return Project(
        name="demo",
        services=[
            ServiceConfig(name="web", depends_on={"db": ServiceDependency()}, links=["cache:c"]),
            ServiceConfig(name="db"),
            ServiceConfig(name="cache", network_mode="service:db"),
            ServiceConfig(name="other"),
        ],
    )


def test_get_service_missing_raises():
    with pytest.raises(NotFoundError):
        _project().get_service("nope")


def test_get_services_all_and_named():
    project = _project()
    assert [s.name for s in project.get_services()] == project.service_names()
    assert [s.name for s in project.get_services("db", "web")] == ["db", "web"]


def test_get_dependencies():
    service = ServiceConfig(
        name="app",
        depends_on={"db": ServiceDependency()},
        links=["cache:c", "queue"],
        ipc="service:ipcsrv",
        volumes_from=["data", "container:abc"],
    )
    assert service.get_dependencies() == ["db", "cache", "queue", "ipcsrv", "data"]


def test_for_services_keeps_transitive_dependencies_in_order():
    project = _project()
    project.for_services(["web"])
    assert project.service_names() == ["web", "db", "cache"]


def test_for_services_empty_keeps_everything():
    project = _project()
    project.for_services([])
    assert project.service_names() == ["web", "db", "cache", "other"]


def test_for_services_unknown_raises():
    with pytest.raises(NotFoundError):
        _project().for_services(["ghost"])


def test_networks_by_priority():
    service = ServiceConfig(
        name="s",
        networks={
            "low": ServiceNetworkConfig(priority=1),
            "none": None,
            "high": ServiceNetworkConfig(priority=10),
        },
    )
    assert service.networks_by_priority() == ["high", "low", "none"]


def test_to_dict_omits_empty_values():
    project = Project(
        name="demo",
        services=[
            ServiceConfig(
                name="web",
                image="nginx",
                build=BuildConfig(context="."),
                custom_labels={"hidden": "yes"},
                extensions={"x-lifecycle": "force_recreate"},
            )
        ],
        networks={"default": NetworkConfig(name="demo_default")},
    )
    data = project.to_dict()
    assert data["name"] == "demo"
    web = data["services"]["web"]
    assert web["image"] == "nginx"
    assert web["build"] == {"context": "."}
    assert web["x-lifecycle"] == "force_recreate"
    assert "custom_labels" not in web
    assert "links" not in web
    assert data["networks"] == {"default": {"name": "demo_default"}}
    assert "volumes" not in data


def test_to_dict_formats_durations():
    project = Project(
        name="p",
        services=[
            ServiceConfig(
                name="s",
                healthcheck=HealthCheckConfig(test=["CMD", "true"], interval=timedelta(seconds=30)),
            )
        ],
    )
    check = project.to_dict()["services"]["s"]["healthcheck"]
    assert check["interval"] == "30s"
    assert check["test"] == ["CMD", "true"]