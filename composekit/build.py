"""Turning service build sections into image build settings."""

from __future__ import annotations

import csv
import json
import os
import re
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional

from .errors import ComposeError
from .model import MappingWithEquals, Project, ServiceConfig, SSHKey, resolve_mapping

DEFAULT_PLATFORM_VARIABLE = "DOCKER_DEFAULT_PLATFORM"

_GIT_URL_SUFFIX = re.compile(r"\.git(?:#.+)?$")
_PLATFORM = re.compile(r"^[a-z0-9_]+(?:/[a-z0-9_.]+){0,2}$")


@dataclass
class BuildSpec:
    """Everything needed to build one service image."""

    context_path: str = ""
    dockerfile_path: str = ""
    cache_from: list[dict[str, str]] = field(default_factory=list)
    cache_to: list[dict[str, str]] = field(default_factory=list)
    no_cache: bool = False
    pull: bool = False
    build_args: dict[str, str] = field(default_factory=dict)
    tags: list[str] = field(default_factory=list)
    target: str = ""
    exports: list[dict[str, str]] = field(default_factory=lambda: [{"type": "image"}])
    platforms: list[str] = field(default_factory=list)
    labels: dict[str, str] = field(default_factory=dict)
    network_mode: str = ""
    extra_hosts: list[str] = field(default_factory=list)
    ssh: list[SSHKey] = field(default_factory=list)
    secrets: dict[str, str] = field(default_factory=dict)
    """Secret id mapped to the file holding it."""
    image_id_file: str = ""


@dataclass
class ImageBuildOptions:
    """Options of a classic (non-BuildKit) engine image build."""

    tags: list[str] = field(default_factory=list)
    no_cache: bool = False
    remove: bool = True
    pull_parent: bool = False
    build_args: dict[str, Optional[str]] = field(default_factory=dict)
    labels: dict[str, str] = field(default_factory=dict)
    network_mode: str = ""
    extra_hosts: list[str] = field(default_factory=list)
    target: str = ""


def flatten(mapping: MappingWithEquals) -> dict[str, str]:
    """Drop the unset entries of a mapping."""
    return {key: value for key, value in mapping.items() if value is not None}


def merge_args(*mappings: Mapping[str, str]) -> dict[str, str]:
    """Merge mappings; later ones win."""
    merged: dict[str, str] = {}
    for mapping in mappings:
        merged.update(mapping)
    return merged


def is_git_url(value: str) -> bool:
    """Whether ``value`` names a git repository."""
    if value.startswith(("http://", "https://")) and _GIT_URL_SUFFIX.search(value):
        return True
    return value.startswith(("git://", "github.com/", "git@"))


def dockerfile_path(context: str, dockerfile: str) -> str:
    """Path of the Dockerfile, relative to the context unless absolute or remote."""
    if is_git_url(context) or os.path.isabs(dockerfile):
        return dockerfile
    parts = [part for part in (context, dockerfile) if part]
    if not parts:
        return ""
    return os.path.normpath(os.path.join(*parts))


def is_local_dir(path: str) -> bool:
    """Whether ``path`` exists on the local filesystem."""
    try:
        os.stat(path)
    except (OSError, ValueError):
        return False
    return True


def _parse_platform(spec: str) -> str:
    normalized = spec.strip().lower()
    if "*" in normalized or not _PLATFORM.match(normalized):
        raise ComposeError(f"{json.dumps(spec)}: invalid platform specifier")
    return normalized


def _parse_cache_entries(values: Iterable[str]) -> list[dict[str, str]]:
    entries: list[dict[str, str]] = []
    for value in values:
        fields_ = next(csv.reader([value]), [])
        if all("=" not in item for item in fields_):
            entries.extend({"type": "registry", "ref": item} for item in fields_)
            continue
        entry: dict[str, str] = {}
        cache_type = ""
        for item in fields_:
            key, sep, item_value = item.partition("=")
            if not sep:
                raise ComposeError(f"invalid value {item}")
            key = key.lower()
            if key == "type":
                cache_type = item_value
            else:
                entry[key] = item_value
        if not cache_type:
            raise ComposeError(f"type required form> {json.dumps(value)}")
        entries.append({"type": cache_type, **entry})
    return entries


def to_build_options(
    project: Project, service: ServiceConfig, image_tag: str, ssh_keys: Iterable[SSHKey]
) -> BuildSpec:
    """Build settings for ``service``, tagged ``image_tag``."""
    build = service.build
    if build is None:
        raise ComposeError(f"service {json.dumps(service.name)} has no build section")

    tags = [image_tag]
    build_args = flatten(resolve_mapping(build.args, project.environment.get))

    platforms: list[str] = []
    default_platform = project.environment.get(DEFAULT_PLATFORM_VARIABLE)
    if default_platform is not None:
        platforms.append(_parse_platform(default_platform))
    if service.platform:
        platforms.append(_parse_platform(service.platform))

    cache_from = _parse_cache_entries(build.cache_from)
    cache_to = _parse_cache_entries(build.cache_to)

    ssh = [*build.ssh, *ssh_keys]

    secrets: dict[str, str] = {}
    for source in build.secrets:
        config = project.secrets.get(source)
        if config is None or not config.file:
            raise ComposeError(
                f"build.secrets only supports file-based secrets: {json.dumps(source)}"
            )
        secrets[source] = config.file

    tags.extend(build.tags)

    return BuildSpec(
        context_path=build.context,
        dockerfile_path=dockerfile_path(build.context, build.dockerfile),
        cache_from=cache_from,
        cache_to=cache_to,
        no_cache=build.no_cache,
        pull=build.pull,
        build_args=build_args,
        tags=tags,
        target=build.target,
        platforms=platforms,
        labels=dict(build.labels),
        network_mode=build.network,
        extra_hosts=list(build.extra_hosts),
        ssh=ssh,
        secrets=secrets,
    )


def image_build_options(options: BuildSpec) -> ImageBuildOptions:
    """Classic engine build options for a build spec."""
    return ImageBuildOptions(
        tags=list(options.tags),
        no_cache=options.no_cache,
        remove=True,
        pull_parent=options.pull,
        build_args=dict(options.build_args),
        labels=dict(options.labels),
        network_mode=options.network_mode,
        extra_hosts=list(options.extra_hosts),
        target=options.target,
    )