import json

import pytest
import yaml

from composekit.api import (
    DEPENDENCIES_LABEL,
    ONEOFF_LABEL,
    PROJECT_LABEL,
    SERVICE_LABEL,
    ConvertOptions,
)
from composekit.compose import (
    actual_state,
    convert_project,
    escape_dollar_sign,
    project_from_name,
)
from composekit.containers import Container
from composekit.convergence import SERVICE_CONDITION_RUNNING_OR_HEALTHY
from composekit.errors import ComposeError, NotFoundError, is_not_found_error
from composekit.model import Project, ServiceConfig


class FakeClient:
    def __init__(self, containers):
        self.containers = containers
        self.calls = []

    def list_containers(self, label_filters, include_stopped):
        self.calls.append((list(label_filters), include_stopped))
        result = []
        for container in self.containers:
            ok = True
            for item in label_filters:
                key, _, value = item.partition("=")
                if container.labels.get(key) != value:
                    ok = False
            if ok:
                result.append(container)
        return result

    def inspect_container(self, container_id):
        raise AssertionError("not used")


def make_container(cid, project, service, depends=None, image="img"):
    labels = {PROJECT_LABEL: project, SERVICE_LABEL: service, ONEOFF_LABEL: "False"}
    if depends is not None:
        labels[DEPENDENCIES_LABEL] = depends
    return Container(id=cid, names=[f"/{project}-{service}-{cid}"], image=image, labels=labels)


def test_escape_dollar_sign():
    assert escape_dollar_sign(b"a$b$$c") == b"a$$b$$$$c"
    assert escape_dollar_sign(b"plain") == b"plain"


def test_convert_json_round_trip():
    project = Project(name="demo", services=[ServiceConfig(name="web", image="nginx")])
    out = convert_project(project, ConvertOptions(format="json"))
    data = json.loads(out)
    assert data["name"] == "demo"
    assert data["services"]["web"]["image"] == "nginx"
    assert out.startswith(b"{\n  ")


def test_convert_yaml_escapes_dollar():
    service = ServiceConfig(name="web", image="nginx", environment={"A": "$X"})
    project = Project(name="demo", services=[service])
    out = convert_project(project, ConvertOptions(format="yaml"))
    assert b"$$X" in out
    data = yaml.safe_load(out)
    assert data["services"]["web"]["environment"]["A"] == "$$X"


def test_convert_unsupported_format():
    with pytest.raises(ComposeError, match="unsupported format"):
        convert_project(Project(name="demo"), ConvertOptions(format="toml"))


def test_project_from_name_no_containers():
    with pytest.raises(NotFoundError) as info:
        project_from_name([], "demo")
    assert is_not_found_error(info.value)
    assert '"demo"' in str(info.value)


def test_project_from_name_counts_scale_and_dependencies():
    containers = [
        make_container("1", "demo", "web", depends="db:service_healthy,cache"),
        make_container("2", "demo", "web", depends="db:service_healthy,cache"),
        make_container("3", "demo", "db"),
        make_container("4", "demo", "cache"),
    ]
    project = project_from_name(containers, "demo")
    assert project.name == "demo"
    assert project.service_names() == ["web", "db", "cache"]
    web = project.get_service("web")
    assert web.scale == 2
    assert web.image == "img"
    assert web.depends_on["db"].condition == "service_healthy"
    assert web.depends_on["cache"].condition == SERVICE_CONDITION_RUNNING_OR_HEALTHY
    assert project.get_service("db").scale == 1
    assert project.get_service("db").depends_on == {}


def test_project_from_name_unknown_service():
    containers = [make_container("1", "demo", "web")]
    with pytest.raises(NotFoundError, match="no such service"):
        project_from_name(containers, "demo", "missing")


def test_project_from_name_keeps_dependencies_of_selected():
    containers = [
        make_container("1", "demo", "web", depends="db"),
        make_container("2", "demo", "db"),
        make_container("3", "demo", "other"),
    ]
    project = project_from_name(containers, "demo", "web")
    assert sorted(project.service_names()) == ["db", "web"]


def test_actual_state_filters_services():
    containers = [
        make_container("1", "demo", "web"),
        make_container("2", "demo", "db"),
        make_container("3", "other", "web"),
    ]
    client = FakeClient(containers)
    found, project = actual_state(client, "demo", ["web"])
    assert [c.id for c in found] == ["1"]
    assert project.service_names() == ["web"]
    assert client.calls == [([f"{PROJECT_LABEL}=demo"], True)]


def test_actual_state_without_containers_gives_empty_project():
    client = FakeClient([])
    found, project = actual_state(client, "demo", [])
    assert found == []
    assert project.name == "demo"
    assert project.services == []


def test_actual_state_unknown_service_falls_back_to_full_project():
    containers = [make_container("1", "demo", "web")]
    found, project = actual_state(FakeClient(containers), "demo", ["missing"])
    assert found == []
    assert project.service_names() == ["web"]