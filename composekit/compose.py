"""Rendering a project model, and rebuilding one from labelled containers."""

from __future__ import annotations

import json
from typing import Iterable

import yaml

from .api import DEPENDENCIES_LABEL, SERVICE_LABEL, ConvertOptions
from .containers import (
    Container,
    ContainerClient,
    OneOff,
    filter_containers,
    get_containers,
    is_service,
)
from .convergence import SERVICE_CONDITION_RUNNING_OR_HEALTHY
from .errors import ComposeError, NotFoundError, is_not_found_error, wrap
from .model import Project, ServiceConfig, ServiceDependency


def escape_dollar_sign(data: bytes) -> bytes:
    """Double every ``$`` so the output can be read back without interpolation."""
    return data.replace(b"$", b"$$")


def convert_project(project: Project, options: ConvertOptions) -> bytes:
    """Render ``project`` as JSON or YAML, with dollar signs escaped."""
    if options.format == "json":
        rendered = json.dumps(project.to_dict(), indent=2)
    elif options.format == "yaml":
        rendered = yaml.safe_dump(project.to_dict(), sort_keys=False)
    else:
        raise ComposeError(f"unsupported format {json.dumps(options.format)}")
    return escape_dollar_sign(rendered.encode("utf-8"))


def _parse_dependencies(value: str) -> dict[str, ServiceDependency]:
    depends_on: dict[str, ServiceDependency] = {}
    for entry in value.split(","):
        parts = entry.split(":")
        condition = parts[1] if len(parts) > 1 else SERVICE_CONDITION_RUNNING_OR_HEALTHY
        depends_on[parts[0]] = ServiceDependency(condition=condition)
    return depends_on


def _build_project(containers: Iterable[Container], project_name: str) -> Project:
    services: dict[str, ServiceConfig] = {}
    for container in containers:
        name = container.labels.get(SERVICE_LABEL, "")
        service = services.get(name)
        if service is None:
            service = ServiceConfig(
                name=name, image=container.image, labels=dict(container.labels), scale=0
            )
            services[name] = service
        service.scale += 1
    for service in services.values():
        dependencies = service.labels.get(DEPENDENCIES_LABEL, "")
        if dependencies:
            service.depends_on = _parse_dependencies(dependencies)
    return Project(name=project_name, services=list(services.values()))


def project_from_name(
    containers: Iterable[Container], project_name: str, *services: str
) -> Project:
    """Rebuild a project from containers carrying compose labels.

    Raises :class:`NotFoundError` when there is no container, or when a
    requested service has none.
    """
    containers = list(containers)
    if not containers:
        raise wrap(NotFoundError(), f"no container found for project {json.dumps(project_name)}")
    project = _build_project(containers, project_name)
    known = set(project.service_names())
    for requested in services:
        if requested not in known:
            raise wrap(NotFoundError(), f"no such service: {json.dumps(requested)}")
    project.for_services(services)
    return project


def actual_state(
    client: ContainerClient, project_name: str, services: Iterable[str]
) -> tuple[list[Container], Project]:
    """Containers of the project, and the project model they describe."""
    services = list(services)
    containers = get_containers(client, project_name, OneOff.INCLUDE, True)
    try:
        project = project_from_name(containers, project_name, *services)
    except ComposeError as err:
        if not is_not_found_error(err):
            raise
        project = _build_project(containers, project_name)
    if services:
        containers = filter_containers(containers, is_service(*services))
    return containers, project