"""Reconciling service containers with the desired project state."""

from __future__ import annotations

import json
import logging
import threading
import time
from typing import Iterable, Mapping

from .api import (
    CONFIG_HASH_LABEL,
    CONTAINER_NUMBER_LABEL,
    IMAGE_DIGEST_LABEL,
    ONEOFF_LABEL,
    RECREATE_FORCE,
    RECREATE_NEVER,
    SERVICE_LABEL,
)
from .containers import (
    Container,
    ContainerClient,
    OneOff,
    canonical_container_name,
    container_name_without_project,
    filter_containers,
    get_containers,
    is_not_one_off,
)
from .errors import ComposeError
from .model import (
    NETWORK_MODE_CONTAINER_PREFIX,
    SERVICE_CONDITION_COMPLETED_SUCCESSFULLY,
    SERVICE_CONDITION_HEALTHY,
    SERVICE_CONDITION_STARTED,
    SERVICE_PREFIX,
    Project,
    ServiceConfig,
    ServiceDependency,
)

logger = logging.getLogger(__name__)

SEPARATOR = "-"
"""Separator used when naming project resources."""

EXT_LIFECYCLE = "x-lifecycle"
FORCE_RECREATE = "force_recreate"

SERVICE_CONDITION_RUNNING_OR_HEALTHY = "running_or_healthy"
"""Dependency condition satisfied by a healthy, or running without healthcheck, service."""

DOUBLED_CONTAINER_NAME_WARNING = (
    "WARNING: The {service} service is using the custom container name {container}. "
    "Docker requires each container to have a unique name. "
    "Remove the custom name to scale the service.\n"
)

_HEALTHY = "healthy"
_UNHEALTHY = "unhealthy"
_STARTING = "starting"

_project_lock = threading.Lock()


def _quote(value: str) -> str:
    return json.dumps(value)


class Convergence:
    """Observed containers of each service, updated as services converge."""

    def __init__(self, services: Iterable[str], state: Iterable[Container]) -> None:
        self._lock = threading.Lock()
        self._observed: dict[str, list[Container]] = {name: [] for name in services}
        for container in filter_containers(state, is_not_one_off):
            service = container.labels.get(SERVICE_LABEL, "")
            self._observed.setdefault(service, []).append(container)

    def get_observed_state(self, service_name: str) -> list[Container]:
        with self._lock:
            return list(self._observed.get(service_name, []))

    def set_observed_state(self, service_name: str, containers: Iterable[Container]) -> None:
        with self._lock:
            self._observed[service_name] = list(containers)

    def update_project(self, project: Project, service_name: str) -> None:
        """Resolve references to a converged service into its actual containers."""
        with _project_lock:
            containers = self.get_observed_state(service_name)
            for service in project.services:
                update_services(service, containers)


def _dependent_service_from_mode(mode: str) -> str:
    if mode.startswith(SERVICE_PREFIX):
        return mode[len(SERVICE_PREFIX):]
    return ""


def update_services(service: ServiceConfig, containers: list[Container]) -> None:
    """Point ``service:`` modes and self links of ``service`` at real containers."""
    if not containers:
        return
    first = containers[0]
    converged = first.labels.get(SERVICE_LABEL, "")
    target = NETWORK_MODE_CONTAINER_PREFIX + first.id

    if _dependent_service_from_mode(service.network_mode) == converged:
        service.network_mode = target
    if _dependent_service_from_mode(service.ipc) == converged:
        service.ipc = target
    if _dependent_service_from_mode(service.pid) == converged:
        service.pid = target

    links: list[str] = []
    for service_link in list(service.links):
        parts = service_link.split(":")
        link_service = service_link
        alias = ""
        if len(parts) == 2:
            link_service, alias = parts
        if link_service != service.name:
            links.append(service_link)
            continue
        for container in containers:
            name = canonical_container_name(container)
            if alias:
                links.append(f"{name}:{alias}")
            links.append(f"{name}:{name}")
            links.append(f"{name}:{container_name_without_project(container)}")
        service.links = list(links)


def get_scale(config: ServiceConfig) -> int:
    """Number of containers the service should run."""
    scale = 1
    if config.deploy is not None and config.deploy.replicas is not None:
        scale = int(config.deploy.replicas)
    if scale > 1 and config.container_name:
        raise ComposeError(
            DOUBLED_CONTAINER_NAME_WARNING.format(
                service=_quote(config.name), container=_quote(config.container_name)
            )
        )
    return scale


def get_container_name(project_name: str, service: ServiceConfig, number: int) -> str:
    """Name of container ``number`` of a service, unless it sets its own."""
    if service.container_name:
        return service.container_name
    return SEPARATOR.join([project_name, service.name, str(number)])


def container_progress_name(container: Container) -> str:
    return "Container " + canonical_container_name(container)


def next_container_number(containers: Iterable[Container]) -> int:
    """One more than the highest container number; raises ValueError on a bad label."""
    highest = 0
    for container in containers:
        number = int(container.labels.get(CONTAINER_NUMBER_LABEL, ""))
        highest = max(highest, number)
    return highest + 1


def must_recreate(
    expected: ServiceConfig, actual: Container, policy: str, config_hash: str
) -> bool:
    """Whether ``actual`` must be recreated to match ``expected``."""
    if policy == RECREATE_NEVER:
        return False
    if policy == RECREATE_FORCE or expected.extensions.get(EXT_LIFECYCLE) == FORCE_RECREATE:
        return True
    config_changed = actual.labels.get(CONFIG_HASH_LABEL, "") != config_hash
    image_updated = actual.labels.get(IMAGE_DIGEST_LABEL, "") != expected.custom_labels.get(
        IMAGE_DIGEST_LABEL, ""
    )
    return config_changed or image_updated


def set_dependent_lifecycle(project: Project, service: str, strategy: str) -> None:
    """Set the lifecycle strategy of every service depending on ``service``."""
    for candidate in project.services:
        if service in candidate.get_dependencies():
            candidate.extensions[EXT_LIFECYCLE] = strategy


def should_wait_for_dependency(
    service_name: str, dependency: ServiceDependency, project: Project
) -> bool:
    """Whether starting a dependent must wait on ``service_name``."""
    if dependency.condition == SERVICE_CONDITION_STARTED:
        return False
    service = project.get_service(service_name)
    return service.scale != 0


def short_id_alias_exists(container_id: str, *aliases: str) -> bool:
    return container_id[:12] in aliases


def get_links(
    client: ContainerClient, project_name: str, service: ServiceConfig, number: int
) -> list[str]:
    """Container links for container ``number`` of ``service``."""

    def service_containers(name: str) -> list[Container]:
        return get_containers(client, project_name, OneOff.EXCLUDE, True, name)

    links: list[str] = []
    for raw_link in service.links:
        parts = raw_link.split(":")
        link_service = parts[0]
        link_name = parts[1] if len(parts) == 2 else link_service
        for container in service_containers(link_service):
            name = canonical_container_name(container)
            links.append(f"{name}:{link_name}")
            links.append(f"{name}:{SEPARATOR.join([link_service, str(number)])}")
            links.append(
                f"{name}:{SEPARATOR.join([project_name, link_service, str(number)])}"
            )

    if service.labels.get(ONEOFF_LABEL) == "True":
        prefix = project_name + SEPARATOR
        for container in service_containers(service.name):
            name = canonical_container_name(container)
            short = name[len(prefix):] if name.startswith(prefix) else name
            links.append(f"{name}:{service.name}")
            links.append(f"{name}:{short}")
            links.append(f"{name}:{name}")

    for raw_link in service.external_links:
        parts = raw_link.split(":")
        external = parts[0]
        link_name = parts[1] if len(parts) == 2 else external
        links.append(f"{external}:{link_name}")
    return links


def is_service_healthy(
    client: ContainerClient, project_name: str, service: str, fallback_running: bool
) -> bool:
    """Whether every running container of ``service`` reports healthy."""
    containers = get_containers(client, project_name, OneOff.EXCLUDE, False, service)
    if not containers:
        return False
    for container in containers:
        details = client.inspect_container(container.id)
        if details.healthcheck is None and fallback_running:
            return details.status == "running"
        if details.status is None or details.health is None:
            raise ComposeError(
                f"container for service {_quote(service)} has no healthcheck configured"
            )
        if details.health == _HEALTHY:
            continue
        if details.health == _UNHEALTHY:
            raise ComposeError(f"container for service {_quote(service)} is unhealthy")
        if details.health == _STARTING:
            return False
        raise ComposeError(
            f"container for service {_quote(service)} had unexpected health status "
            f"{_quote(details.health)}"
        )
    return True


def is_service_completed(
    client: ContainerClient, project_name: str, dependency: str
) -> tuple[bool, int]:
    """``(exited, exit_code)`` of the first exited container of ``dependency``."""
    containers = get_containers(client, project_name, OneOff.EXCLUDE, True, dependency)
    for container in containers:
        details = client.inspect_container(container.id)
        if details.status == "exited":
            return True, details.exit_code
    return False, 0


_SUPPORTED_CONDITIONS = (
    SERVICE_CONDITION_RUNNING_OR_HEALTHY,
    SERVICE_CONDITION_HEALTHY,
    SERVICE_CONDITION_COMPLETED_SUCCESSFULLY,
)


def _dependency_satisfied(
    client: ContainerClient, project_name: str, dependency: str, condition: str
) -> bool:
    if condition == SERVICE_CONDITION_RUNNING_OR_HEALTHY:
        return is_service_healthy(client, project_name, dependency, True)
    if condition == SERVICE_CONDITION_HEALTHY:
        return is_service_healthy(client, project_name, dependency, False)
    exited, code = is_service_completed(client, project_name, dependency)
    if exited and code != 0:
        raise ComposeError(
            f"service {_quote(dependency)} didn't completed successfully: exit {code}"
        )
    return exited


def wait_dependencies(
    client: ContainerClient,
    project: Project,
    dependencies: Mapping[str, ServiceDependency],
    interval: float = 0.5,
) -> None:
    """Poll every ``interval`` seconds until all dependency conditions hold."""
    pending: dict[str, str] = {}
    for dependency, config in dependencies.items():
        if not should_wait_for_dependency(dependency, config, project):
            continue
        if config.condition not in _SUPPORTED_CONDITIONS:
            logger.warning("unsupported depends_on condition: %s", config.condition)
            continue
        pending[dependency] = config.condition

    while pending:
        time.sleep(interval)
        for dependency, condition in list(pending.items()):
            if _dependency_satisfied(client, project.name, dependency, condition):
                del pending[dependency]