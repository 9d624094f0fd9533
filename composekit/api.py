"""Service interface, operation options and result types, and resource labels."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import IntEnum
from typing import Callable, Iterable, Optional, Protocol

from .model import MappingWithEquals, Project, SSHKey

PROJECT_LABEL = "com.docker.compose.project"
SERVICE_LABEL = "com.docker.compose.service"
CONFIG_HASH_LABEL = "com.docker.compose.config-hash"
CONTAINER_NUMBER_LABEL = "com.docker.compose.container-number"
VOLUME_LABEL = "com.docker.compose.volume"
NETWORK_LABEL = "com.docker.compose.network"
WORKING_DIR_LABEL = "com.docker.compose.project.working_dir"
CONFIG_FILES_LABEL = "com.docker.compose.project.config_files"
ENVIRONMENT_FILE_LABEL = "com.docker.compose.project.environment_file"
ONEOFF_LABEL = "com.docker.compose.oneoff"
SLUG_LABEL = "com.docker.compose.slug"
IMAGE_DIGEST_LABEL = "com.docker.compose.image"
DEPENDENCIES_LABEL = "com.docker.compose.depends_on"
VERSION_LABEL = "com.docker.compose.version"

STARTING = "Starting"
RUNNING = "Running"
UPDATING = "Updating"
REMOVING = "Removing"
UNKNOWN = "Unknown"
FAILED = "Failed"

RECREATE_DIVERGED = "diverged"
RECREATE_FORCE = "force"
RECREATE_NEVER = "never"

_VERSION_RE = re.compile(
    r"^v?([0-9]+(?:\.[0-9]+)*?)"
    r"(?:-([0-9]+[0-9A-Za-z\-~]*(?:\.[0-9A-Za-z\-~]+)*)"
    r"|(?:-?([A-Za-z\-~]+[0-9A-Za-z\-~]*(?:\.[0-9A-Za-z\-~]+)*)))?"
    r"(?:\+([0-9A-Za-z\-~]+(?:\.[0-9A-Za-z\-~]+)*))?$"
)


def compose_version(version: str) -> str:
    """Return ``major.minor.patch`` of a version string, or "" if it does not parse."""
    match = _VERSION_RE.match(version)
    if match is None:
        return ""
    segments = [int(part) for part in match.group(1).split(".")]
    segments.extend([0] * (3 - len(segments)))
    return "{}.{}.{}".format(*segments[:3])


class LogConsumer(Protocol):
    """Receives log lines and status updates from service containers."""

    def log(self, service: str, container: str, message: str) -> None:
        """Handle one log line."""

    def status(self, container: str, msg: str) -> None:
        """Handle a container status message."""

    def register(self, container: str) -> None:
        """Announce a container that will produce logs."""


@dataclass
class BuildOptions:
    pull: bool = False
    progress: str = ""
    args: MappingWithEquals = field(default_factory=dict)
    no_cache: bool = False
    quiet: bool = False
    services: list[str] = field(default_factory=list)
    sshs: list[SSHKey] = field(default_factory=list)


@dataclass
class CreateOptions:
    services: list[str] = field(default_factory=list)
    remove_orphans: bool = False
    ignore_orphans: bool = False
    recreate: str = ""
    recreate_dependencies: str = ""
    inherit: bool = False
    timeout: Optional[timedelta] = None
    quiet_pull: bool = False


@dataclass
class StartOptions:
    project: Optional[Project] = None
    attach: Optional[LogConsumer] = None
    attach_to: list[str] = field(default_factory=list)
    cascade_stop: bool = False
    exit_code_from: str = ""
    wait: bool = False


@dataclass
class RestartOptions:
    timeout: Optional[timedelta] = None
    services: list[str] = field(default_factory=list)


@dataclass
class StopOptions:
    timeout: Optional[timedelta] = None
    services: list[str] = field(default_factory=list)


@dataclass
class UpOptions:
    create: CreateOptions = field(default_factory=CreateOptions)
    start: StartOptions = field(default_factory=StartOptions)


@dataclass
class DownOptions:
    remove_orphans: bool = False
    project: Optional[Project] = None
    timeout: Optional[timedelta] = None
    images: str = ""
    volumes: bool = False


@dataclass
class ConvertOptions:
    format: str = ""
    output: str = ""


@dataclass
class PushOptions:
    ignore_failures: bool = False


@dataclass
class PullOptions:
    quiet: bool = False
    ignore_failures: bool = False


@dataclass
class ImagesOptions:
    services: list[str] = field(default_factory=list)


@dataclass
class KillOptions:
    services: list[str] = field(default_factory=list)
    signal: str = ""


@dataclass
class RemoveOptions:
    dry_run: bool = False
    volumes: bool = False
    force: bool = False
    services: list[str] = field(default_factory=list)


@dataclass
class RunOptions:
    name: str = ""
    service: str = ""
    command: list[str] = field(default_factory=list)
    entrypoint: list[str] = field(default_factory=list)
    detach: bool = False
    auto_remove: bool = False
    tty: bool = False
    interactive: bool = False
    working_dir: str = ""
    user: str = ""
    environment: list[str] = field(default_factory=list)
    labels: dict[str, str] = field(default_factory=dict)
    privileged: bool = False
    use_network_aliases: bool = False
    no_deps: bool = False
    quiet_pull: bool = False
    index: int = 0


@dataclass
class Event:
    """A container runtime event."""

    timestamp: datetime
    service: str = ""
    container: str = ""
    status: str = ""
    attributes: dict[str, str] = field(default_factory=dict)

    def __str__(self) -> str:
        stamp = self.timestamp.strftime("%Y-%m-%d %H:%M:%S.%f")
        attrs = ", ".join(f"{key}={value}" for key, value in self.attributes.items())
        return f"{stamp} container {self.status} {self.container} ({attrs})\n"


@dataclass
class EventsOptions:
    services: list[str] = field(default_factory=list)
    consumer: Optional[Callable[[Event], None]] = None


@dataclass
class PortOptions:
    protocol: str = ""
    index: int = 0


@dataclass
class ListOptions:
    all: bool = False


@dataclass
class PsOptions:
    all: bool = False
    services: list[str] = field(default_factory=list)


@dataclass
class CopyOptions:
    source: str = ""
    destination: str = ""
    all: bool = False
    index: int = 0
    follow_link: bool = False
    copy_uid_gid: bool = False


@dataclass(frozen=True)
class PortPublisher:
    url: str = ""
    target_port: int = 0
    published_port: int = 0
    protocol: str = ""


def sorted_publishers(publishers: Iterable[PortPublisher]) -> list[PortPublisher]:
    """Order publishers by URL, target port, published port, then protocol."""
    return sorted(
        publishers,
        key=lambda p: (p.url, p.target_port, p.published_port, p.protocol),
    )


@dataclass
class ContainerSummary:
    id: str = ""
    name: str = ""
    command: str = ""
    project: str = ""
    service: str = ""
    state: str = ""
    health: str = ""
    exit_code: int = 0
    publishers: list[PortPublisher] = field(default_factory=list)


@dataclass
class ContainerProcSummary:
    id: str = ""
    name: str = ""
    processes: list[list[str]] = field(default_factory=list)
    titles: list[str] = field(default_factory=list)


@dataclass
class ImageSummary:
    id: str = ""
    container_name: str = ""
    repository: str = ""
    tag: str = ""
    size: int = 0


@dataclass
class ServiceStatus:
    id: str = ""
    name: str = ""
    replicas: int = 0
    desired: int = 0
    ports: list[str] = field(default_factory=list)
    publishers: list[PortPublisher] = field(default_factory=list)


@dataclass
class LogOptions:
    services: list[str] = field(default_factory=list)
    tail: str = ""
    since: str = ""
    until: str = ""
    follow: bool = False
    timestamps: bool = False


@dataclass
class PauseOptions:
    services: list[str] = field(default_factory=list)


@dataclass
class Stack:
    id: str = ""
    name: str = ""
    status: str = ""
    config_files: str = ""
    reason: str = ""


class ContainerEventType(IntEnum):
    LOG = 0
    ATTACH = 1
    STOPPED = 2
    EXIT = 3
    USER_CANCEL = 4


@dataclass
class ContainerEvent:
    type: ContainerEventType
    container: str = ""
    service: str = ""
    line: str = ""
    exit_code: int = 0
    restarting: bool = False


ContainerEventListener = Callable[[ContainerEvent], None]


class Service(Protocol):
    """Manages a compose project."""

    def build(self, project: Project, options: BuildOptions) -> None:
        """Build service images."""

    def push(self, project: Project, options: PushOptions) -> None:
        """Push service images."""

    def pull(self, project: Project, options: PullOptions) -> None:
        """Pull service images."""

    def create(self, project: Project, options: CreateOptions) -> None:
        """Create service containers."""

    def start(self, project_name: str, options: StartOptions) -> None:
        """Start service containers."""

    def restart(self, project_name: str, options: RestartOptions) -> None:
        """Restart service containers."""

    def stop(self, project_name: str, options: StopOptions) -> None:
        """Stop service containers."""

    def up(self, project: Project, options: UpOptions) -> None:
        """Create and start service containers."""

    def down(self, project_name: str, options: DownOptions) -> None:
        """Stop and remove project resources."""

    def logs(self, project_name: str, consumer: LogConsumer, options: LogOptions) -> None:
        """Forward container logs to ``consumer``."""

    def ps(self, project_name: str, options: PsOptions) -> list[ContainerSummary]:
        """List project containers."""

    def list(self, options: ListOptions) -> list[Stack]:
        """List projects."""

    def convert(self, project: Project, options: ConvertOptions) -> bytes:
        """Render the project model in the requested format."""

    def kill(self, project_name: str, options: KillOptions) -> None:
        """Send a signal to service containers."""

    def run_one_off_container(self, project: Project, options: RunOptions) -> int:
        """Run a one-off container and return its exit code."""

    def remove(self, project_name: str, options: RemoveOptions) -> None:
        """Remove stopped service containers."""

    def exec(self, project_name: str, options: RunOptions) -> int:
        """Run a command in a service container and return its exit code."""

    def copy(self, project_name: str, options: CopyOptions) -> None:
        """Copy files between a service container and the local filesystem."""

    def pause(self, project_name: str, options: PauseOptions) -> None:
        """Pause service containers."""

    def unpause(self, project_name: str, options: PauseOptions) -> None:
        """Unpause service containers."""

    def top(self, project_name: str, services: list[str]) -> list[ContainerProcSummary]:
        """List processes running in service containers."""

    def events(self, project_name: str, options: EventsOptions) -> None:
        """Stream container events to the options' consumer."""

    def port(
        self, project_name: str, service: str, port: int, options: PortOptions
    ) -> tuple[str, int]:
        """Return the public address and port bound to a container port."""

    def images(self, project_name: str, options: ImagesOptions) -> list[ImageSummary]:
        """List images used by service containers."""