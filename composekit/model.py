"""Compose project model: services, networks, volumes and secrets."""

from __future__ import annotations

from dataclasses import dataclass, field, fields, is_dataclass
from datetime import timedelta
from typing import Any, Callable, Iterable, Optional

from .errors import NotFoundError

SERVICE_PREFIX = "service:"
CONTAINER_PREFIX = "container:"
NETWORK_MODE_CONTAINER_PREFIX = CONTAINER_PREFIX
PULL_POLICY_BUILD = "build"
SERVICE_CONDITION_STARTED = "service_started"
SERVICE_CONDITION_HEALTHY = "service_healthy"
SERVICE_CONDITION_COMPLETED_SUCCESSFULLY = "service_completed_successfully"

MappingWithEquals = dict[str, Optional[str]]


def new_mapping_with_equals(values: Iterable[str]) -> MappingWithEquals:
    """Parse ``KEY=VALUE`` entries; a bare ``KEY`` maps to None."""
    mapping: MappingWithEquals = {}
    for value in values:
        key, sep, rest = value.partition("=")
        mapping[key] = rest if sep else None
    return mapping


def resolve_mapping(
    mapping: MappingWithEquals, lookup: Callable[[str], Optional[str]]
) -> MappingWithEquals:
    """Fill unset entries from ``lookup``; entries it cannot resolve stay None."""
    resolved: MappingWithEquals = {}
    for key, value in mapping.items():
        resolved[key] = lookup(key) if value is None else value
    return resolved


@dataclass
class SSHKey:
    id: str
    path: str = ""


@dataclass
class SecretConfig:
    name: str = ""
    file: str = ""


@dataclass
class BuildConfig:
    context: str = ""
    dockerfile: str = ""
    args: MappingWithEquals = field(default_factory=dict)
    ssh: list[SSHKey] = field(default_factory=list)
    labels: dict[str, str] = field(default_factory=dict)
    cache_from: list[str] = field(default_factory=list)
    cache_to: list[str] = field(default_factory=list)
    no_cache: bool = False
    pull: bool = False
    network: str = ""
    target: str = ""
    secrets: list[str] = field(default_factory=list)
    extra_hosts: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)


@dataclass
class DeployConfig:
    replicas: Optional[int] = None


@dataclass
class HealthCheckConfig:
    test: list[str] = field(default_factory=list)
    interval: Optional[timedelta] = None
    timeout: Optional[timedelta] = None
    start_period: Optional[timedelta] = None
    retries: Optional[int] = None
    disable: bool = False


@dataclass
class ServiceDependency:
    condition: str = SERVICE_CONDITION_STARTED


@dataclass
class ServiceNetworkConfig:
    aliases: list[str] = field(default_factory=list)
    ipv4_address: str = ""
    ipv6_address: str = ""
    priority: int = 0


@dataclass
class ServiceConfig:
    name: str
    image: str = ""
    build: Optional[BuildConfig] = None
    deploy: Optional[DeployConfig] = None
    container_name: str = ""
    scale: int = 1
    labels: dict[str, str] = field(default_factory=dict)
    custom_labels: dict[str, str] = field(default_factory=dict)
    depends_on: dict[str, ServiceDependency] = field(default_factory=dict)
    links: list[str] = field(default_factory=list)
    external_links: list[str] = field(default_factory=list)
    volumes_from: list[str] = field(default_factory=list)
    network_mode: str = ""
    ipc: str = ""
    pid: str = ""
    networks: dict[str, Optional[ServiceNetworkConfig]] = field(default_factory=dict)
    platform: str = ""
    pull_policy: str = ""
    environment: MappingWithEquals = field(default_factory=dict)
    healthcheck: Optional[HealthCheckConfig] = None
    extensions: dict[str, Any] = field(default_factory=dict)

    def get_dependencies(self) -> list[str]:
        """Names of the services this one depends on, in first-seen order."""
        found: dict[str, None] = dict.fromkeys(self.depends_on)
        for link in self.links:
            parts = link.split(":")
            found.setdefault(parts[0] if len(parts) == 2 else link)
        for mode in (self.network_mode, self.ipc, self.pid):
            if mode.startswith(SERVICE_PREFIX):
                found.setdefault(mode[len(SERVICE_PREFIX):])
        for source in self.volumes_from:
            if not source.startswith(CONTAINER_PREFIX):
                found.setdefault(source.split(":")[0])
        return list(found)

    def networks_by_priority(self) -> list[str]:
        """Network names, highest priority first."""

        def priority(name: str) -> int:
            config = self.networks[name]
            return config.priority if config is not None else 0

        return sorted(self.networks, key=lambda name: (-priority(name), name))


@dataclass
class NetworkConfig:
    name: str = ""
    driver: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    external: bool = False


@dataclass
class VolumeConfig:
    name: str = ""
    driver: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    external: bool = False


def _format_duration(value: timedelta) -> str:
    micros = value // timedelta(microseconds=1)
    if micros == 0:
        return "0s"
    sign = "-" if micros < 0 else ""
    micros = abs(micros)
    hours, micros = divmod(micros, 3_600_000_000)
    minutes, micros = divmod(micros, 60_000_000)
    seconds, fraction = divmod(micros, 1_000_000)
    text = f"{hours}h" if hours else ""
    if hours or minutes:
        text += f"{minutes}m"
    if fraction:
        text += f"{seconds}.{fraction:06d}".rstrip("0") + "s"
    else:
        text += f"{seconds}s"
    return sign + text


def _is_empty(value: Any) -> bool:
    return value is None or value is False or value == "" or (
        isinstance(value, (dict, list, tuple)) and not value
    )


def _to_plain(value: Any) -> Any:
    if is_dataclass(value):
        plain = {}
        for item in fields(value):
            converted = _to_plain(getattr(value, item.name))
            if not _is_empty(converted):
                plain[item.name] = converted
        return plain
    if isinstance(value, timedelta):
        return _format_duration(value)
    if isinstance(value, dict):
        return {key: _to_plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_plain(item) for item in value]
    return value


@dataclass
class Project:
    name: str
    services: list[ServiceConfig] = field(default_factory=list)
    networks: dict[str, NetworkConfig] = field(default_factory=dict)
    volumes: dict[str, VolumeConfig] = field(default_factory=dict)
    secrets: dict[str, SecretConfig] = field(default_factory=dict)
    environment: dict[str, str] = field(default_factory=dict)
    working_dir: str = ""

    def service_names(self) -> list[str]:
        return [service.name for service in self.services]

    def get_service(self, name: str) -> ServiceConfig:
        """Return the named service; raise NotFoundError if there is none."""
        for service in self.services:
            if service.name == name:
                return service
        raise NotFoundError(f"no such service: {name}")

    def get_services(self, *names: str) -> list[ServiceConfig]:
        """Return the named services, or all of them when none is named."""
        if not names:
            return list(self.services)
        return [self.get_service(name) for name in names]

    def for_services(self, names: Iterable[str]) -> None:
        """Keep only the named services and everything they depend on."""
        pending = list(names)
        if not pending:
            return
        wanted: set[str] = set()
        while pending:
            name = pending.pop()
            if name in wanted:
                continue
            service = self.get_service(name)
            wanted.add(name)
            pending.extend(service.get_dependencies())
        self.services = [s for s in self.services if s.name in wanted]

    def to_dict(self) -> dict[str, Any]:
        """Plain mapping of the project, with empty values left out."""
        services = {}
        for service in self.services:
            plain = _to_plain(service)
            for hidden in ("name", "custom_labels", "extensions"):
                plain.pop(hidden, None)
            plain.update(_to_plain(service.extensions))
            services[service.name] = plain
        result: dict[str, Any] = {"name": self.name, "services": services}
        for key in ("networks", "volumes", "secrets"):
            converted = _to_plain(getattr(self, key))
            if converted:
                result[key] = converted
        return result