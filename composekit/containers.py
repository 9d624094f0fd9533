"""Container records and helpers to list, name and filter project containers."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable, Optional, Protocol

from .api import (
    CONTAINER_NUMBER_LABEL,
    ONEOFF_LABEL,
    PROJECT_LABEL,
    SERVICE_LABEL,
)
from .convert import HealthConfig
from .errors import ComposeError

CONTAINER_CREATED = "created"
CONTAINER_RESTARTING = "restarting"
CONTAINER_RUNNING = "running"
CONTAINER_REMOVING = "removing"
CONTAINER_PAUSED = "paused"
CONTAINER_EXITED = "exited"
CONTAINER_DEAD = "dead"


@dataclass
class Container:
    """Summary of a container as listed by the engine."""

    id: str
    names: list[str] = field(default_factory=list)
    image: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    state: str = ""
    networks: dict[str, list[str]] = field(default_factory=dict)
    """Aliases of the container on each network it is attached to."""


@dataclass
class ContainerDetails:
    """Inspected state of a single container."""

    id: str
    name: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    tty: bool = False
    healthcheck: Optional[HealthConfig] = None
    status: Optional[str] = None
    health: Optional[str] = None
    exit_code: int = 0
    networks: dict[str, list[str]] = field(default_factory=dict)


class OneOff(Enum):
    """Whether one-off containers are included in a listing."""

    INCLUDE = "include"
    EXCLUDE = "exclude"
    ONLY = "only"


class ContainerClient(Protocol):
    """The container engine operations these helpers rely on."""

    def list_containers(self, label_filters: list[str], include_stopped: bool) -> list[Container]:
        """Containers carrying every ``key=value`` label in ``label_filters``."""

    def inspect_container(self, container_id: str) -> ContainerDetails:
        """Detailed state of one container."""


ContainerPredicate = Callable[[Container], bool]


def _project_filter(project: str) -> str:
    return f"{PROJECT_LABEL}={project}"


def _service_filter(service: str) -> str:
    return f"{SERVICE_LABEL}={service}"


def _one_off_filter(one_off: bool) -> str:
    return f"{ONEOFF_LABEL}={'True' if one_off else 'False'}"


def _container_number_filter(index: int) -> str:
    return f"{CONTAINER_NUMBER_LABEL}={index}"


def _default_filters(project: str, one_off: OneOff, selected_services: tuple[str, ...]) -> list[str]:
    filters = [_project_filter(project)]
    if len(selected_services) == 1:
        filters.append(_service_filter(selected_services[0]))
    if one_off is OneOff.ONLY:
        filters.append(_one_off_filter(True))
    elif one_off is OneOff.EXCLUDE:
        filters.append(_one_off_filter(False))
    return filters


def canonical_container_name(container: Container) -> str:
    """The container's own name, without link aliases or the leading slash."""
    if not container.names:
        return container.id[:12]
    for name in container.names:
        if name.rfind("/") == 0:
            return name[1:]
    return container.names[0][1:]


def container_name_without_project(container: Container) -> str:
    """The canonical name with a legacy ``project_service_`` prefix trimmed."""
    name = canonical_container_name(container)
    project = container.labels.get(PROJECT_LABEL, "")
    service = container.labels.get(SERVICE_LABEL, "")
    if name.startswith(f"{project}_{service}_"):
        return name[len(project) + 1:]
    return name


def is_service(*services: str) -> ContainerPredicate:
    """Predicate: the container belongs to one of ``services``."""
    return lambda container: container.labels.get(SERVICE_LABEL, "") in services


def is_not_service(*services: str) -> ContainerPredicate:
    """Predicate: the container belongs to none of ``services``."""
    return lambda container: container.labels.get(SERVICE_LABEL, "") not in services


def is_not_one_off(container: Container) -> bool:
    """True unless the container is labelled as a one-off container."""
    return container.labels.get(ONEOFF_LABEL, "False") == "False"


def filter_containers(
    containers: Iterable[Container], predicate: ContainerPredicate
) -> list[Container]:
    return [container for container in containers if predicate(container)]


def container_names(containers: Iterable[Container]) -> list[str]:
    return [canonical_container_name(container) for container in containers]


def sorted_containers(containers: Iterable[Container]) -> list[Container]:
    """Containers ordered by canonical name."""
    return sorted(containers, key=canonical_container_name)


def get_containers(
    client: ContainerClient,
    project: str,
    one_off: OneOff,
    stopped: bool,
    *selected_services: str,
) -> list[Container]:
    """List the project's containers, optionally limited to some services."""
    filters = _default_filters(project, one_off, selected_services)
    containers = client.list_containers(filters, stopped)
    if len(selected_services) > 1:
        containers = filter_containers(containers, is_service(*selected_services))
    return list(containers)


def get_specified_container(
    client: ContainerClient,
    project_name: str,
    one_off: OneOff,
    stopped: bool,
    service_name: str,
    index: int,
) -> Container:
    """Return container number ``index`` of a service; raise if there is none."""
    filters = _default_filters(project_name, one_off, (service_name,))
    filters.append(_container_number_filter(index))
    containers = client.list_containers(filters, stopped)
    if not containers:
        raise ComposeError(f'service "{service_name}" is not running container #{index}')
    return containers[0]