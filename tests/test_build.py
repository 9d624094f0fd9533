import os

import pytest

from composekit.build import (
    BuildSpec,
    dockerfile_path,
    flatten,
    image_build_options,
    is_git_url,
    is_local_dir,
    merge_args,
    to_build_options,
)
from composekit.errors import ComposeError
from composekit.model import BuildConfig, Project, SecretConfig, ServiceConfig, SSHKey


def _project(service, **kwargs):
    return Project(name="demo", services=[service], **kwargs)


def test_flatten_drops_unset_values():
    assert flatten({"A": "1", "B": None, "C": ""}) == {"A": "1", "C": ""}


def test_flatten_empty():
    assert flatten({}) == {}


def test_merge_args_later_wins():
    assert merge_args({"A": "1", "B": "2"}, {"B": "3"}) == {"A": "1", "B": "3"}


@pytest.mark.parametrize(
    "value, expected",
    [
        ("git://example.com/repo", True),
        ("github.com/user/repo", True),
        ("git@example.com:user/repo.git", True),
        ("https://example.com/repo.git", True),
        ("https://example.com/repo.git#main", True),
        ("https://example.com/archive.tar", False),
        ("./local", False),
    ],
)
def test_is_git_url(value, expected):
    assert is_git_url(value) is expected


def test_dockerfile_path_git_context_keeps_dockerfile():
    assert dockerfile_path("git://example.com/repo", "Dockerfile") == "Dockerfile"


def test_dockerfile_path_absolute_dockerfile():
    absolute = os.path.abspath("Dockerfile.dev")
    assert dockerfile_path("ctx", absolute) == absolute


def test_dockerfile_path_relative_is_joined():
    assert dockerfile_path("ctx", "Dockerfile") == os.path.join("ctx", "Dockerfile")


def test_is_local_dir(tmp_path):
    assert is_local_dir(str(tmp_path))
    assert not is_local_dir(str(tmp_path / "missing"))


def test_to_build_options_basic():
    service = ServiceConfig(
        name="web",
        build=BuildConfig(
            context="ctx",
            dockerfile="Dockerfile",
            args={"FROM_ENV": None, "FIXED": "x", "MISSING": None},
            tags=["extra:tag"],
            target="prod",
            labels={"a": "b"},
            network="host",
            extra_hosts=["h:1.2.3.4"],
            no_cache=True,
        ),
    )
    project = _project(service, environment={"FROM_ENV": "resolved"})
    spec = to_build_options(project, service, "demo-web", [])
    assert spec.tags == ["demo-web", "extra:tag"]
    assert spec.build_args == {"FROM_ENV": "resolved", "FIXED": "x"}
    assert spec.dockerfile_path == os.path.join("ctx", "Dockerfile")
    assert spec.context_path == "ctx"
    assert spec.target == "prod"
    assert spec.no_cache is True
    assert spec.network_mode == "host"
    assert spec.exports == [{"type": "image"}]


def test_to_build_options_platforms():
    service = ServiceConfig(name="web", platform="linux/arm64", build=BuildConfig(context="."))
    project = _project(service, environment={"DOCKER_DEFAULT_PLATFORM": "linux/amd64"})
    spec = to_build_options(project, service, "img", [])
    assert spec.platforms == ["linux/amd64", "linux/arm64"]


def test_to_build_options_invalid_platform():
    service = ServiceConfig(name="web", platform="linux/*", build=BuildConfig(context="."))
    with pytest.raises(ComposeError):
        to_build_options(_project(service), service, "img", [])


def test_to_build_options_cache_entries():
    service = ServiceConfig(
        name="web",
        build=BuildConfig(
            context=".",
            cache_from=["myrepo/cache"],
            cache_to=["type=local,dest=/tmp/cache"],
        ),
    )
    spec = to_build_options(_project(service), service, "img", [])
    assert spec.cache_from == [{"type": "registry", "ref": "myrepo/cache"}]
    assert spec.cache_to == [{"type": "local", "dest": "/tmp/cache"}]


def test_to_build_options_cache_missing_type():
    service = ServiceConfig(name="web", build=BuildConfig(context=".", cache_to=["dest=/tmp"]))
    with pytest.raises(ComposeError, match="type required"):
        to_build_options(_project(service), service, "img", [])


def test_to_build_options_secrets_must_be_files():
    service = ServiceConfig(name="web", build=BuildConfig(context=".", secrets=["s"]))
    project = _project(service, secrets={"s": SecretConfig(name="s")})
    with pytest.raises(ComposeError, match="file-based secrets"):
        to_build_options(project, service, "img", [])


def test_to_build_options_file_secret():
    service = ServiceConfig(name="web", build=BuildConfig(context=".", secrets=["s"]))
    project = _project(service, secrets={"s": SecretConfig(name="s", file="/run/s.txt")})
    spec = to_build_options(project, service, "img", [])
    assert spec.secrets == {"s": "/run/s.txt"}


def test_to_build_options_merges_ssh_keys():
    own = SSHKey(id="default")
    extra = SSHKey(id="other", path="/keys/other")
    service = ServiceConfig(name="web", build=BuildConfig(context=".", ssh=[own]))
    spec = to_build_options(_project(service), service, "img", [extra])
    assert spec.ssh == [own, extra]


def test_to_build_options_requires_build_section():
    service = ServiceConfig(name="web", image="nginx")
    with pytest.raises(ComposeError):
        to_build_options(_project(service), service, "img", [])


def test_image_build_options():
    spec = BuildSpec(
        tags=["a"],
        no_cache=True,
        pull=True,
        build_args={"K": "V"},
        labels={"l": "v"},
        network_mode="host",
        extra_hosts=["h:1.2.3.4"],
        target="t",
    )
    options = image_build_options(spec)
    assert options.remove is True
    assert options.pull_parent is True
    assert options.no_cache is True
    assert options.tags == ["a"]
    assert options.build_args == {"K": "V"}
    assert options.labels == {"l": "v"}
    assert options.network_mode == "host"
    assert options.extra_hosts == ["h:1.2.3.4"]
    assert options.target == "t"